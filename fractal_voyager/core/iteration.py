"""
Escape-time iteration engine.

The engine sums up to three terms, adds the sample point ``c``, divides by
``J`` and raises the result to ``K``:

    z <- ((s1(z) + s2(z) + s3(z) + c) / J) ** K

starting from ``z = 0``. A point escapes once ``|z|^2 >= escape_radius^2``;
the returned count is the number of completed iterations before the
escaping one, or the iteration cap when the orbit never escapes.

The configuration is classified once at construction. The classic
quadratic recurrence skips the general machinery entirely and runs either a
direct ``z*z + c`` loop in arbitrary precision or a JIT-compiled loop on
native doubles.
"""

import enum
import logging
import time
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from .coefficients import SubstitutableCoefficient
from .config import EngineConfig
from .precision import ComplexValue, PrecisionConfig, HARDWARE
from .terms import Term
from ..acceleration.numba_backend import mandelbrot_point_kernel, mandelbrot_hardware_iteration
from ..exceptions import DivisionByZero, PrecisionMismatchError

logger = logging.getLogger(__name__)


class RecurrenceKind(enum.Enum):
    """Evaluation strategy, slowest last."""

    PURE_MANDELBROT_HARDWARE = 'pure_mandelbrot_hardware'
    PURE_MANDELBROT_ARBITRARY = 'pure_mandelbrot_arbitrary'
    GENERAL_1_TERM = 'general_1_term'
    GENERAL_2_TERM = 'general_2_term'
    GENERAL_3_TERM = 'general_3_term'

    @property
    def is_general(self) -> bool:
        return self not in (RecurrenceKind.PURE_MANDELBROT_HARDWARE,
                            RecurrenceKind.PURE_MANDELBROT_ARBITRARY)


_GENERAL_KINDS = {
    0: RecurrenceKind.GENERAL_1_TERM,
    1: RecurrenceKind.GENERAL_1_TERM,
    2: RecurrenceKind.GENERAL_2_TERM,
    3: RecurrenceKind.GENERAL_3_TERM,
}


class IterationEngine:
    """
    Per-session iteration engine.

    Terms carry rebinding state that changes during evaluation, so an
    engine must not be used by two threads at once. Build one engine per
    worker from the same EngineConfig instead.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the engine.

        Args:
            config: Recurrence configuration (defaults to the classic
                Mandelbrot recurrence at 30 digits)

        Raises:
            ConfigurationError: for unknown functions, mismatched flags or
                invalid numeric settings
        """
        self.config = config or EngineConfig()
        self.max_iter = self.config.max_iterations
        self.precision = PrecisionConfig(self.config.precision)

        self.terms: Tuple[Term, ...] = tuple(term.build(self.precision) for term in self.config.terms)
        self.J = SubstitutableCoefficient.create(
            self.config.denominator.value, self.precision, self.config.denominator.substitute)
        self.K = SubstitutableCoefficient.create(
            self.config.exponent.value, self.precision, self.config.exponent.substitute)

        radius = self.precision.real(self.config.escape_radius)
        # inf on doubles once the radius passes about 1.3e154
        self.escape_radius_sq = radius * radius
        self.escape_radius_sq_fast = float(self.escape_radius_sq)

        self.kind = self._classify()
        empty = Term.empty(self.precision)
        self.active_terms: Tuple[Term, ...] = tuple(term for term in self.terms if term != empty)

        if self.kind is RecurrenceKind.PURE_MANDELBROT_HARDWARE:
            self.sample_precision = PrecisionConfig(HARDWARE)
        else:
            self.sample_precision = self.precision

        logger.debug(f"IterationEngine: {self.kind.value}, max_iter={self.max_iter}, "
                     f"precision={self.precision!r}")

    def _classify(self) -> RecurrenceKind:
        """Pick the cheapest evaluator that reproduces this recurrence."""
        empty = Term.empty(self.precision)
        unit = SubstitutableCoefficient(self.precision.one)

        pure_mandelbrot = (self.terms[0] == Term.mandelbrot(self.precision)
                           and self.terms[1] == empty
                           and self.terms[2] == empty
                           and self.J == unit
                           and self.K == unit)
        if pure_mandelbrot:
            if self.config.hardware or self.precision.is_hardware:
                return RecurrenceKind.PURE_MANDELBROT_HARDWARE
            return RecurrenceKind.PURE_MANDELBROT_ARBITRARY

        if self.config.hardware and not self.precision.is_hardware:
            logger.info("Hardware precision only applies to the pure Mandelbrot recurrence; "
                        f"using {self.precision.digits} digits")
        active = sum(1 for term in self.terms if term != empty)
        return _GENERAL_KINDS[active]

    def point(self, real: Any, imag: Any = 0) -> ComplexValue:
        """Create a sample point in the precision this engine iterates in."""
        return self.sample_precision.complex(real, imag)

    def _as_point(self, c: Any) -> ComplexValue:
        if isinstance(c, ComplexValue):
            if c.precision != self.precision:
                raise PrecisionMismatchError(
                    f"Sample point has {c.precision!r}, engine iterates in {self.precision!r}")
            return c
        return self.precision.complex(c)

    def iterate(self, c: Any) -> int:
        """
        Iterate one sample point.

        Args:
            c: Sample point (ComplexValue, number, string or (real, imag) pair)

        Returns:
            Iterations completed before escape, or ``max_iter`` if the point
            never escaped

        Raises:
            DivisionByZero: if the recurrence divides by an exact zero
        """
        if self.kind is RecurrenceKind.PURE_MANDELBROT_HARDWARE:
            if not isinstance(c, ComplexValue):
                c = self.sample_precision.complex(c)
            return self.iterate_mandelbrot_hardware(c.real, c.imag)
        c = self._as_point(c)
        if self.kind is RecurrenceKind.PURE_MANDELBROT_ARBITRARY:
            return self.iterate_mandelbrot(c)
        return self.iterate_general(c)

    def iterate_general(self, c: Any) -> int:
        """
        Evaluate the full term/denominator/exponent recurrence.

        On doubles an iterate that overflows, or comes out infinite or NaN,
        counts as escaped at that step. mpmath never overflows, so a
        non-finite iterate in arbitrary precision means a pole was hit and
        raises DivisionByZero. The cap is only returned for bounded orbits.
        """
        c = self._as_point(c)
        z = self.precision.zero
        limit = self.escape_radius_sq
        terms = self.active_terms
        J, K = self.J, self.K
        hardware = self.precision.is_hardware
        debug = logger.isEnabledFor(logging.DEBUG)

        for n in range(self.max_iter):
            start = time.perf_counter() if debug else 0.0

            J.rebind(z)
            K.rebind(z)
            try:
                total = None
                for term in terms:
                    value = term.evaluate(z)
                    total = value if total is None else total + value
                total = c if total is None else total + c
                z = total.divide(J.scalar_value()).power(K.scalar_value())
            except OverflowError:
                logger.debug(f"Iterate overflowed at iteration {n}, counted as escaped")
                return n

            if not z.is_finite():
                if hardware:
                    logger.debug(f"Iterate left the double range at iteration {n}, counted as escaped")
                    return n
                raise DivisionByZero(f"Orbit of {c} became undefined at iteration {n}")
            if z.norm_squared() >= limit:
                return n

            if debug:
                logger.debug(f"Iteration {n} took {time.perf_counter() - start:.6f}s "
                             f"(max_iter={self.max_iter}, precision={self.precision.digits})")
        return self.max_iter

    def iterate_mandelbrot(self, c: Any) -> int:
        """z <- z*z + c directly on the context's complex type."""
        c = self._as_point(c).value
        z = self.precision.zero.value
        limit = self.escape_radius_sq

        for n in range(self.max_iter):
            z = z * z + c
            re = z.real
            im = z.imag
            # NaN from overflow on doubles escapes too
            if not re * re + im * im < limit:
                return n
        return self.max_iter

    def iterate_mandelbrot_hardware(self, cr, ci) -> int:
        """JIT-compiled z <- z*z + c on native doubles."""
        return int(mandelbrot_point_kernel(float(cr), float(ci), self.max_iter,
                                           self.escape_radius_sq_fast))

    def iterate_block(self, points: Sequence[Sequence[Any]],
                      error_value: Optional[int] = None) -> np.ndarray:
        """
        Iterate a 2-D block of sample points.

        Args:
            points: Rows of sample points
            error_value: When given, samples raising DivisionByZero are
                recorded with this value instead of aborting the block

        Returns:
            int64 array of iteration counts
        """
        height = len(points)
        width = len(points[0]) if height else 0

        if self.kind is RecurrenceKind.PURE_MANDELBROT_HARDWARE:
            c = np.empty((height, width), dtype=np.complex128)
            for py, row in enumerate(points):
                for px, point in enumerate(row):
                    c[py, px] = complex(float(point.real), float(point.imag))
            return mandelbrot_hardware_iteration(c, self.max_iter, self.escape_radius_sq_fast)

        iterations = np.empty((height, width), dtype=np.int64)
        for py, row in enumerate(points):
            for px, point in enumerate(row):
                try:
                    iterations[py, px] = self.iterate(point)
                except DivisionByZero as e:
                    if error_value is None:
                        raise
                    logger.warning(f"Sample ({px}, {py}) failed: {e}")
                    iterations[py, px] = error_value
        return iterations

    def describe(self) -> str:
        """Readable form of the recurrence for log output."""
        parts = [term.describe() for term in self.active_terms] + ['c']
        J = 'z' if self.J.substitute else str(self.J.constant)
        K = 'z' if self.K.substitute else str(self.K.constant)
        if self.J.substitute and self.J.constant != 1:
            J = f"{self.J.constant}*z"
        if self.K.substitute and self.K.constant != 1:
            K = f"{self.K.constant}*z"
        return f"z <- (({' + '.join(parts)}) / ({J})) ^ ({K})"
