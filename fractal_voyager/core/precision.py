"""
Precision handling and complex arithmetic for the iteration engine.

Two representations are supported: hardware doubles (mpmath's ``fp``
context, backed by Python's ``complex``) and arbitrary precision (a private
``mpmath.MPContext`` per configuration, so concurrent renders never share
or mutate the global ``mpmath.mp`` precision).
"""

import math
import logging
from typing import Union, Tuple, Any

import mpmath

from ..exceptions import ConfigurationError, DivisionByZero, PrecisionMismatchError

logger = logging.getLogger(__name__)

HARDWARE = 'hardware'
HARDWARE_DIGITS = 15
QUAD_DIGITS = 34


class PrecisionConfig:
    """Configuration for precision levels and arithmetic operations."""

    def __init__(self, precision: Union[str, int] = 30):
        """
        Initialize precision configuration.

        Args:
            precision: 'hardware' (or 'double'), 'quad', or a number of
                significant decimal digits
        """
        self.precision = precision
        self._setup_precision()

    def _setup_precision(self):
        """Setup the mpmath context based on configuration."""
        precision = self.precision
        if isinstance(precision, str):
            name = precision.strip().lower()
            if name in (HARDWARE, 'double'):
                self.is_hardware = True
                self.digits = HARDWARE_DIGITS
                self.context = mpmath.fp
                return
            if name == 'quad':
                precision = QUAD_DIGITS
            else:
                try:
                    precision = int(name)
                except ValueError:
                    raise ConfigurationError(f"Unknown precision type: {self.precision}") from None

        if isinstance(precision, bool) or not isinstance(precision, int):
            raise ConfigurationError(f"Invalid precision specification: {self.precision!r}")
        if precision <= 0:
            raise ConfigurationError(f"Precision must be a positive digit count, got {precision}")

        self.is_hardware = False
        self.digits = precision
        self.context = mpmath.MPContext()
        self.context.dps = precision

    @property
    def key(self) -> Tuple[bool, int]:
        return (self.is_hardware, self.digits)

    def __eq__(self, other):
        if not isinstance(other, PrecisionConfig):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __repr__(self) -> str:
        if self.is_hardware:
            return "PrecisionConfig('hardware')"
        return f"PrecisionConfig({self.digits})"

    def convert(self, value: Any):
        """
        Convert a value into this context's native complex type.

        Args:
            value: ComplexValue, number, decimal string or (real, imag) pair

        Returns:
            ``complex`` for hardware precision, ``mpc`` otherwise
        """
        if isinstance(value, ComplexValue):
            if value.precision != self:
                raise PrecisionMismatchError(
                    f"Cannot use a {value.precision!r} value in {self!r} arithmetic")
            return value.value
        ctx = self.context
        if isinstance(value, (tuple, list)):
            if len(value) != 2:
                raise ConfigurationError(f"Complex pair must have two elements, got {value!r}")
            real, imag = value
            result = ctx.mpc(ctx.convert(real), ctx.convert(imag))
        else:
            try:
                result = ctx.mpc(ctx.convert(value))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Cannot interpret {value!r} as a complex number") from e
        if not ctx.isfinite(result):
            raise ConfigurationError(f"Complex values must be finite, got {value!r}")
        return result

    def complex(self, real: Any = 0, imag: Any = None) -> 'ComplexValue':
        """Create a ComplexValue in this precision."""
        if imag is None:
            return ComplexValue(self.convert(real), self)
        return ComplexValue(self.convert((real, imag)), self)

    def real(self, value: Any):
        """Convert a real number to this context's native real type."""
        return self.context.mpf(value)

    @property
    def zero(self) -> 'ComplexValue':
        return ComplexValue(self.context.mpc(0), self)

    @property
    def one(self) -> 'ComplexValue':
        return ComplexValue(self.context.mpc(1), self)

    def format_number(self, value: Union[float, complex, 'ComplexValue']) -> str:
        """Format a number according to the precision configuration."""
        if isinstance(value, ComplexValue):
            value = value.value
        n = min(10, self.digits)
        if isinstance(value, complex) or hasattr(value, '_mpc_'):
            real_str = mpmath.nstr(mpmath.mpf(value.real), n=n)
            imag_str = mpmath.nstr(mpmath.mpf(value.imag), n=n)
            return f"{real_str} + {imag_str}i"
        return mpmath.nstr(mpmath.mpf(value), n=n)


class ComplexValue:
    """Immutable complex number tied to a PrecisionConfig."""

    __slots__ = ('value', 'precision')

    def __init__(self, value, precision: PrecisionConfig):
        self.value = value
        self.precision = precision

    def _coerce(self, other):
        if isinstance(other, ComplexValue):
            if other.precision != self.precision:
                raise PrecisionMismatchError(
                    f"Cannot combine {self.precision!r} and {other.precision!r} values")
            return other.value
        return self.precision.convert(other)

    def _wrap(self, value) -> 'ComplexValue':
        return ComplexValue(value, self.precision)

    def add(self, other) -> 'ComplexValue':
        return self._wrap(self.value + self._coerce(other))

    def subtract(self, other) -> 'ComplexValue':
        return self._wrap(self.value - self._coerce(other))

    def multiply(self, other) -> 'ComplexValue':
        return self._wrap(self.value * self._coerce(other))

    def divide(self, other) -> 'ComplexValue':
        """Divide, raising DivisionByZero for an exactly zero divisor."""
        divisor = self._coerce(other)
        if divisor == 0:
            raise DivisionByZero(f"Division of {self} by zero")
        return self._wrap(self.value / divisor)

    def power(self, exponent) -> 'ComplexValue':
        """
        General complex power, exp(exponent * log(self)).

        Integral real exponents are evaluated by exact repeated
        multiplication, following mpmath's branch conventions.
        """
        exponent = self._coerce(exponent)
        try:
            return self._wrap(self.value ** exponent)
        except ZeroDivisionError as e:
            raise DivisionByZero(f"Zero raised to a negative or complex power ({exponent})") from e

    def norm_squared(self):
        """Calculate squared absolute value (real^2 + imag^2)."""
        real = self.value.real
        imag = self.value.imag
        return real * real + imag * imag

    def is_zero(self) -> bool:
        return self.value == 0

    def is_finite(self) -> bool:
        return bool(self.precision.context.isfinite(self.value))

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
    __pow__ = power

    def __radd__(self, other):
        return self._wrap(self._coerce(other) + self.value)

    def __rsub__(self, other):
        return self._wrap(self._coerce(other) - self.value)

    def __rmul__(self, other):
        return self._wrap(self._coerce(other) * self.value)

    def __neg__(self):
        return self._wrap(-self.value)

    def __eq__(self, other):
        if isinstance(other, ComplexValue):
            return self.value == other.value
        if isinstance(other, (int, float, complex)):
            return self.value == other
        return NotImplemented

    def __hash__(self):
        return hash(self.value)

    @property
    def real(self):
        return self.value.real

    @property
    def imag(self):
        return self.value.imag

    def to_complex(self) -> complex:
        """Convert to standard Python complex (may lose precision)."""
        return complex(float(self.value.real), float(self.value.imag))

    def __str__(self) -> str:
        return self.precision.format_number(self)

    def __repr__(self) -> str:
        return f"ComplexValue({self.value!r}, {self.precision!r})"


class SamplePlane:
    """Rectangular grid of sample points with decimal-exact bounds."""

    def __init__(self, xmin: Union[str, float], xmax: Union[str, float],
                 ymin: Union[str, float], ymax: Union[str, float],
                 width: int, height: int,
                 precision: Union[PrecisionConfig, str, int] = 30):
        """
        Initialize the sampled plane.

        Args:
            xmin, xmax, ymin, ymax: Plane bounds (can be strings for exact precision)
            width, height: Resolution in samples
            precision: Precision the coordinates are computed in
        """
        if not isinstance(precision, PrecisionConfig):
            precision = PrecisionConfig(precision)
        self.precision = precision
        ctx = precision.context

        self.xmin = ctx.mpf(xmin)
        self.xmax = ctx.mpf(xmax)
        self.ymin = ctx.mpf(ymin)
        self.ymax = ctx.mpf(ymax)
        self.width = width
        self.height = height

        if width <= 0 or height <= 0:
            raise ConfigurationError("Width and height must be positive")
        if self.xmin >= self.xmax or self.ymin >= self.ymax:
            raise ConfigurationError("Invalid bounds: min values must be less than max values")

        self.x_scale = (self.xmax - self.xmin) / width
        self.y_scale = (self.ymax - self.ymin) / height

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def pixel_to_complex(self, px: int, py: int) -> ComplexValue:
        """Convert sample coordinates to a complex value."""
        real = self.xmin + px * self.x_scale
        imag = self.ymin + py * self.y_scale
        return self.precision.complex(real, imag)

    def create_point_grid(self) -> list:
        """Create the full grid as a list of rows."""
        return [[self.pixel_to_complex(px, py) for px in range(self.width)]
                for py in range(self.height)]


def detect_precision_need(span: float) -> Union[str, int]:
    """
    Detect if high precision is needed for a view of the given width.

    Args:
        span: Width of the sampled region on the real axis

    Returns:
        'hardware' or a recommended number of significant digits
    """
    if span <= 0:
        raise ConfigurationError("span must be positive")
    digits_needed = max(0.0, -math.log10(span) + 4)

    if digits_needed <= 13:
        return HARDWARE
    return int(digits_needed + 10)
