"""
Numba JIT compilation backend for the hardware-precision Mandelbrot path.

The classic recurrence on two native doubles is cheap enough that loop
bookkeeping dominates, so the kernel only records the index at which the
orbit escapes instead of maintaining a running counter.
"""

import logging

import numba
import numpy as np
from numba import njit

logger = logging.getLogger(__name__)
logger.debug(f"Numba available: {numba.__version__}")


@njit(cache=True, nogil=True)
def mandelbrot_point_kernel(cr, ci, max_iter, escape_radius_sq):
    """
    JIT-compiled escape-time loop for z <- z*z + c.

    Args:
        cr, ci: Real and imaginary parts of c
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius

    Returns:
        Number of completed iterations before escape, or ``max_iter``
    """
    zr = 0.0
    zi = 0.0
    for n in range(max_iter):
        temp = zr * zr - zi * zi + cr
        zi = 2.0 * zr * zi + ci
        zr = temp
        # written so a NaN from overflow also escapes
        if not zr * zr + zi * zi < escape_radius_sq:
            return n
    return max_iter


@njit(cache=True, nogil=True)
def mandelbrot_grid_kernel(c_real, c_imag, max_iter, escape_radius_sq):
    """
    Apply mandelbrot_point_kernel to every cell of a 2-D grid.

    Args:
        c_real: Real components of c values
        c_imag: Imaginary components of c values
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius

    Returns:
        int64 array of iteration counts with the grid's shape
    """
    height, width = c_real.shape
    iterations = np.empty((height, width), dtype=np.int64)
    for i in range(height):
        for j in range(width):
            iterations[i, j] = mandelbrot_point_kernel(c_real[i, j], c_imag[i, j],
                                                       max_iter, escape_radius_sq)
    return iterations


def mandelbrot_hardware_iteration(c: np.ndarray, max_iter: int,
                                  escape_radius_sq: float) -> np.ndarray:
    """
    Iterate a complex128 array of sample points with the JIT kernel.

    Args:
        c: Complex parameter array (2-D)
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius

    Returns:
        int64 array of iteration counts
    """
    c = np.asarray(c, dtype=np.complex128)
    if c.ndim != 2:
        raise ValueError("Sample array must be two-dimensional")
    return mandelbrot_grid_kernel(np.ascontiguousarray(c.real), np.ascontiguousarray(c.imag),
                                  int(max_iter), float(escape_radius_sq))
