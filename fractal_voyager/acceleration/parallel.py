"""
Thread pool backend for parallel grid sampling.

The grid is split into tiles that are handed to a fixed-size pool of worker
threads. Every worker builds its own IterationEngine from the shared,
immutable EngineConfig, since terms mutate their rebinding state while they
evaluate. Each tile writes into its own slice of a preallocated array, so
tiles may finish in any order.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from ..core.config import EngineConfig
from ..core.iteration import IterationEngine
from ..core.precision import SamplePlane

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class TileSpec:
    """Specification for a single tile in parallel rendering."""
    tile_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def height(self) -> int:
        return self.y_end - self.y_start


@dataclass
class TileResult:
    """Result from processing a single tile."""
    tile_id: int
    iterations: np.ndarray
    x_start: int
    y_start: int
    processing_time: float


def create_tile_grid(width: int, height: int, tile_size: int = 32) -> List[TileSpec]:
    """
    Create a grid of tiles for parallel processing.

    Args:
        width: Total grid width
        height: Total grid height
        tile_size: Target tile size (samples per side)

    Returns:
        List of TileSpec objects
    """
    tiles = []
    tile_id = 0

    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            tiles.append(TileSpec(
                tile_id=tile_id,
                x_start=x,
                x_end=min(x + tile_size, width),
                y_start=y,
                y_end=min(y + tile_size, height),
            ))
            tile_id += 1

    logger.debug(f"Created {len(tiles)} tiles of target size {tile_size}x{tile_size}")
    return tiles


def get_optimal_thread_count() -> int:
    """Number of worker threads: one per available CPU."""
    try:
        return max(1, len(os.sched_getaffinity(0)))
    except AttributeError:
        return max(1, os.cpu_count() or 1)


class ThreadedSampler:
    """Evaluate a grid of sample points on a pool of worker threads."""

    def __init__(self, config: EngineConfig, num_threads: Optional[int] = None,
                 tile_size: int = 32, error_value: Optional[int] = None):
        """
        Initialize the sampler.

        Args:
            config: Recurrence configuration shared by every worker
            num_threads: Number of worker threads (None for CPU count)
            tile_size: Size of tiles handed to workers
            error_value: When given, samples that raise DivisionByZero are
                recorded with this value; otherwise the error aborts the render
        """
        self.config = config
        self.num_threads = num_threads or get_optimal_thread_count()
        self.tile_size = max(1, tile_size)
        self.error_value = error_value
        self._local = threading.local()
        self.progress_callbacks: List[ProgressCallback] = []

        # Building an engine validates the configuration before any sample runs
        self.engine = IterationEngine(config)
        logger.info(f"Threaded sampler: {self.num_threads} threads, {self.tile_size}x{self.tile_size} tiles, "
                    f"{self.engine.kind.value}")

    def add_progress_callback(self, callback: ProgressCallback):
        """
        Add callback for progress updates.

        Args:
            callback: Function called with (completed_tiles, total_tiles)
        """
        self.progress_callbacks.append(callback)

    def _worker_engine(self) -> IterationEngine:
        engine = getattr(self._local, 'engine', None)
        if engine is None:
            engine = IterationEngine(self.config)
            self._local.engine = engine
        return engine

    def _process_tile(self, points: Sequence[Sequence[Any]], tile: TileSpec) -> TileResult:
        start_time = time.perf_counter()
        engine = self._worker_engine()
        block = [row[tile.x_start:tile.x_end] for row in points[tile.y_start:tile.y_end]]
        iterations = engine.iterate_block(block, self.error_value)
        processing_time = time.perf_counter() - start_time
        logger.debug(f"[{threading.current_thread().name}] tile {tile.tile_id} "
                     f"({tile.width}x{tile.height}) took {processing_time:.3f}s")
        return TileResult(tile.tile_id, iterations, tile.x_start, tile.y_start, processing_time)

    def render(self, points: Sequence[Sequence[Any]]) -> np.ndarray:
        """
        Iterate every point of a rectangular grid.

        Args:
            points: Rows of sample points, all rows the same length

        Returns:
            int64 array of iteration counts indexed [row, column]

        Raises:
            DivisionByZero: if a sample divides by zero and no error_value
                was configured
        """
        height = len(points)
        width = len(points[0]) if height else 0
        if any(len(row) != width for row in points):
            raise ValueError("Sample grid rows must all have the same length")

        iterations = np.zeros((height, width), dtype=np.int64)
        if height == 0 or width == 0:
            return iterations

        tiles = create_tile_grid(width, height, self.tile_size)
        start_time = time.perf_counter()
        logger.info(f"Sampling {width}x{height} grid in {len(tiles)} tiles")

        with ThreadPoolExecutor(max_workers=self.num_threads,
                                thread_name_prefix='fractal-worker') as executor:
            futures = [executor.submit(self._process_tile, points, tile) for tile in tiles]
            completed = 0
            total_processing_time = 0.0
            try:
                for future in as_completed(futures):
                    result = future.result()
                    rows, cols = result.iterations.shape
                    iterations[result.y_start:result.y_start + rows,
                               result.x_start:result.x_start + cols] = result.iterations
                    total_processing_time += result.processing_time
                    completed += 1
                    logger.debug(f"Tile {result.tile_id} placed ({completed}/{len(tiles)})")

                    if completed % max(1, len(tiles) // 10) == 0:
                        progress = (completed / len(tiles)) * 100
                        logger.info(f"Completed {completed}/{len(tiles)} tiles ({progress:.1f}%)")
                    for callback in self.progress_callbacks:
                        callback(completed, len(tiles))
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        total_time = time.perf_counter() - start_time
        logger.info(f"Sampling complete: {total_time:.2f}s total, "
                    f"{total_processing_time:.2f}s processing time")
        return iterations

    def render_plane(self, plane: SamplePlane) -> np.ndarray:
        """Sample a SamplePlane in the engine's sample precision."""
        precision = self.engine.sample_precision
        points = [[precision.complex(plane.xmin + px * plane.x_scale, plane.ymin + py * plane.y_scale)
                   for px in range(plane.width)]
                  for py in range(plane.height)]
        return self.render(points)
