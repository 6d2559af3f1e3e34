import threading

import numpy as np
import pytest

from fractal_voyager.acceleration.parallel import (ThreadedSampler, TileSpec, create_tile_grid,
                                                   get_optimal_thread_count)
from fractal_voyager.core.config import EngineConfig, get_preset
from fractal_voyager.core.iteration import IterationEngine
from fractal_voyager.core.precision import SamplePlane
from fractal_voyager.exceptions import DivisionByZero


def test_tile_grid_covers_every_sample():
    tiles = create_tile_grid(10, 7, tile_size=4)
    assert len(tiles) == 6
    covered = np.zeros((7, 10), dtype=int)
    for tile in tiles:
        covered[tile.y_start:tile.y_end, tile.x_start:tile.x_end] += 1
    assert (covered == 1).all()
    assert [tile.tile_id for tile in tiles] == list(range(6))
    assert tiles[-1].width == 2 and tiles[-1].height == 3


def test_optimal_thread_count():
    assert get_optimal_thread_count() >= 1


@pytest.mark.parametrize('config', [
    EngineConfig(max_iterations=60),
    EngineConfig(max_iterations=60, hardware=True),
    get_preset('multibrot3').replace(max_iterations=30),
], ids=['arbitrary', 'hardware', 'general'])
def test_threaded_render_matches_sequential(config):
    sampler = ThreadedSampler(config, num_threads=4, tile_size=3)
    plane = SamplePlane('-2', '1', '-1.2', '1.2', 9, 7, precision=sampler.engine.sample_precision)

    result = sampler.render_plane(plane)

    engine = IterationEngine(config)
    expected = [[engine.iterate(plane.pixel_to_complex(px, py)) for px in range(plane.width)]
                for py in range(plane.height)]
    assert result.shape == (7, 9)
    assert result.tolist() == expected


def test_results_land_in_their_own_cells():
    config = EngineConfig(max_iterations=100)
    sampler = ThreadedSampler(config, num_threads=3, tile_size=1)
    engine = sampler.engine
    points = [[engine.point('-0.8130614', '0.3311725'), engine.point(0, 0)],
              [engine.point(3, 0), engine.point('-1.5301676', '0.2678571')]]
    assert sampler.render(points).tolist() == [[8, 100], [0, 4]]


def test_tile_result_carries_its_offsets():
    sampler = ThreadedSampler(EngineConfig(max_iterations=100), num_threads=1)
    engine = sampler.engine
    points = [[engine.point(0, 0), engine.point(3, 0)],
              [engine.point(3, 0), engine.point(0, 0)]]
    result = sampler._process_tile(points, TileSpec(5, 1, 2, 0, 2))
    assert (result.tile_id, result.x_start, result.y_start) == (5, 1, 0)
    assert result.iterations.tolist() == [[0], [100]]


def test_ragged_grid_rejected():
    sampler = ThreadedSampler(EngineConfig(), num_threads=1)
    one = sampler.engine.point(0, 0)
    with pytest.raises(ValueError):
        sampler.render([[one, one], [one]])


def test_empty_grid():
    sampler = ThreadedSampler(EngineConfig(), num_threads=1)
    assert sampler.render([]).shape == (0, 0)


def test_division_by_zero_aborts_render():
    sampler = ThreadedSampler(EngineConfig(denominator=0), num_threads=2, tile_size=2)
    plane = SamplePlane(-1, 1, -1, 1, 4, 4, precision=sampler.engine.sample_precision)
    with pytest.raises(DivisionByZero):
        sampler.render_plane(plane)


def test_error_value_records_failed_samples():
    sampler = ThreadedSampler(EngineConfig(denominator=0), num_threads=2, tile_size=2, error_value=-1)
    plane = SamplePlane(-1, 1, -1, 1, 4, 4, precision=sampler.engine.sample_precision)
    assert (sampler.render_plane(plane) == -1).all()


def test_progress_callbacks():
    sampler = ThreadedSampler(EngineConfig(max_iterations=20), num_threads=2, tile_size=2)
    calls = []
    lock = threading.Lock()

    def callback(completed, total):
        with lock:
            calls.append((completed, total))

    sampler.add_progress_callback(callback)
    plane = SamplePlane(-2, 1, -1, 1, 4, 4, precision=sampler.engine.sample_precision)
    sampler.render_plane(plane)
    assert [c for c, _ in calls] == [1, 2, 3, 4]
    assert all(total == 4 for _, total in calls)


def test_each_worker_thread_gets_its_own_engine():
    sampler = ThreadedSampler(get_preset('sine').replace(max_iterations=10), num_threads=4, tile_size=1)
    engines = {}
    build_engine = sampler._worker_engine

    def recording_worker_engine():
        engine = build_engine()
        engines.setdefault(threading.get_ident(), set()).add(id(engine))
        return engine

    sampler._worker_engine = recording_worker_engine
    plane = SamplePlane(-1, 1, -1, 1, 4, 4, precision=sampler.engine.sample_precision)
    sampler.render_plane(plane)
    assert all(len(ids) == 1 for ids in engines.values())
    assert len(set().union(*engines.values())) == len(engines)
