"""
Main API classes for fractal iteration.

This module provides the high-level interface, combining the iteration
engine, the sample plane and the threaded sampler into easy-to-use classes.
"""

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .acceleration.parallel import ThreadedSampler, get_optimal_thread_count
from .core.config import EngineConfig, RenderConfig
from .core.iteration import IterationEngine
from .core.precision import PrecisionConfig, SamplePlane

logger = logging.getLogger(__name__)

BENCHMARK_POINT = ('0.26', '-0.14')


@dataclass
class RenderResult:
    """Iteration counts for a sampled grid."""

    iterations: np.ndarray
    max_iterations: int
    kind: str
    elapsed: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def escaped(self) -> np.ndarray:
        """Boolean mask of samples that escaped before the cap."""
        return (self.iterations >= 0) & (self.iterations < self.max_iterations)

    @property
    def shape(self):
        return self.iterations.shape

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the iteration counts as ``.npy`` plus a JSON metadata sidecar.

        Args:
            path: Output path; ``.npy`` is appended when missing

        Returns:
            Path of the written array
        """
        path = Path(path)
        if path.suffix != '.npy':
            path = path.with_name(path.name + '.npy')
        path.parent.mkdir(parents=True, exist_ok=True)
        np.save(path, self.iterations)

        metadata = dict(self.metadata)
        metadata.update({
            'shape': list(self.iterations.shape),
            'max_iterations': self.max_iterations,
            'kind': self.kind,
            'elapsed_seconds': self.elapsed,
            'escaped_fraction': float(self.escaped.mean()) if self.iterations.size else 0.0,
        })
        with open(path.with_suffix('.json'), 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2)
        logger.info(f"Iteration data saved to {path}")
        return path


class FractalRenderer:
    """Main fractal rendering entry point."""

    def __init__(self, engine_config: Optional[EngineConfig] = None,
                 render_config: Optional[RenderConfig] = None):
        """
        Initialize fractal renderer.

        Args:
            engine_config: Recurrence configuration (uses defaults if None)
            render_config: Grid configuration (uses defaults if None)
        """
        self.engine_config = engine_config or EngineConfig()
        self.render_config = render_config or RenderConfig()
        self.render_config.validate()

        self.sampler = ThreadedSampler(
            self.engine_config,
            num_threads=self.render_config.threads,
            tile_size=self.render_config.tile_size,
            error_value=self.render_config.error_value,
        )
        self.engine = self.sampler.engine

        logger.info(f"FractalRenderer initialized: {self.engine.describe()}")

    def create_plane(self) -> SamplePlane:
        """Sample plane from the render configuration's bounds."""
        rc = self.render_config
        return SamplePlane(*rc.bounds, rc.width, rc.height, precision=self.engine.sample_precision)

    def render(self, plane: Optional[SamplePlane] = None,
               progress_callback: Optional[callable] = None) -> RenderResult:
        """
        Iterate every sample of a plane.

        Args:
            plane: Plane to sample (defaults to the render configuration)
            progress_callback: Optional function called with
                (completed_tiles, total_tiles)

        Returns:
            RenderResult with one iteration count per sample
        """
        plane = plane or self.create_plane()
        if progress_callback:
            self.sampler.add_progress_callback(progress_callback)

        start_time = time.perf_counter()
        try:
            iterations = self.sampler.render_plane(plane)
        finally:
            if progress_callback:
                self.sampler.progress_callbacks.remove(progress_callback)
        elapsed = time.perf_counter() - start_time

        logger.info(f"Render complete: {elapsed:.2f}s")
        return RenderResult(
            iterations=iterations,
            max_iterations=self.engine.max_iter,
            kind=self.engine.kind.value,
            elapsed=elapsed,
            metadata={
                'formula': self.engine.describe(),
                'bounds': [str(plane.xmin), str(plane.xmax), str(plane.ymin), str(plane.ymax)],
                'engine': self.engine_config.to_dict(),
            },
        )

    def iterate_point(self, real: Any, imag: Any = 0) -> int:
        """Iteration count for a single sample point."""
        return self.engine.iterate(self.engine.point(real, imag))


def benchmark(iterations: int = 1000, precision: Union[int, str] = 30,
              num_threads: Optional[int] = None, repeats: int = 1) -> List[Dict[str, Any]]:
    """
    Time raw z*z + c steps at a given precision on every worker thread.

    Every thread iterates from z = 0 with c = 0.26 - 0.14i for ``iterations``
    steps, ``repeats`` times, and reports the time of each run.

    Args:
        iterations: Steps per timed run
        precision: Precision specification (see PrecisionConfig)
        num_threads: Number of threads (None for CPU count)
        repeats: Timed runs per thread

    Returns:
        List of {'thread', 'run', 'seconds', 'iterations', 'precision'} records
    """
    num_threads = num_threads or get_optimal_thread_count()
    records: List[Dict[str, Any]] = []
    records_lock = threading.Lock()

    def run(thread_id: int):
        config = PrecisionConfig(precision)
        c = config.complex(*BENCHMARK_POINT).value
        for run_index in range(repeats):
            z = config.zero.value
            start = time.perf_counter()
            for _ in range(iterations):
                z = z * z + c
            seconds = time.perf_counter() - start
            logger.info(f"[Thread {thread_id}] Took {seconds:.3f} s to compute {iterations} "
                        f"iterations with precision {config.digits}")
            with records_lock:
                records.append({
                    'thread': thread_id,
                    'run': run_index,
                    'seconds': seconds,
                    'iterations': iterations,
                    'precision': config.digits,
                })

    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        for future in [executor.submit(run, t) for t in range(num_threads)]:
            future.result()

    return sorted(records, key=lambda r: (r['thread'], r['run']))
