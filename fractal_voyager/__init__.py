"""
Escape-time fractal iteration engine.

This library iterates configurable recurrences over complex sample points
and returns one iteration count per point, in hardware double precision or
in arbitrary precision.

Key Features:
- Composable recurrence terms B * F(A * t^p, extras)^q, up to three per formula
- Any coefficient may be bound to the loop variable on every iteration
- Registry of named complex functions (sin, gamma, pow, hyp2f1, ...)
- Dedicated fast paths for the classic Mandelbrot recurrence
- Thread-pool sampling with one engine per worker

Example usage:
    >>> from fractal_voyager import IterationEngine, EngineConfig
    >>> engine = IterationEngine(EngineConfig(max_iterations=100))
    >>> engine.iterate(engine.point('-1.5301676', '0.2678571'))
    4
"""

__version__ = "1.0.0"
__author__ = "Fractal Voyager Team"

from fractal_voyager.core.config import EngineConfig, TermConfig, CoefficientConfig, RenderConfig
from fractal_voyager.core.precision import PrecisionConfig, ComplexValue, SamplePlane
from fractal_voyager.core.functions import FunctionRegistry
from fractal_voyager.core.coefficients import Binding, SubstitutableCoefficient, ExtendedParameterList
from fractal_voyager.core.terms import Term
from fractal_voyager.core.iteration import IterationEngine, RecurrenceKind
from fractal_voyager.acceleration.parallel import ThreadedSampler
from fractal_voyager.exceptions import (FractalError, ConfigurationError, UnknownFunctionError,
                                        ParameterLengthError, PrecisionMismatchError, DivisionByZero)

# Main API classes
from fractal_voyager.api import FractalRenderer, RenderResult

__all__ = [
    "FractalRenderer",
    "RenderResult",
    "EngineConfig",
    "TermConfig",
    "CoefficientConfig",
    "RenderConfig",
    "PrecisionConfig",
    "ComplexValue",
    "SamplePlane",
    "FunctionRegistry",
    "Binding",
    "SubstitutableCoefficient",
    "ExtendedParameterList",
    "Term",
    "IterationEngine",
    "RecurrenceKind",
    "ThreadedSampler",
    "FractalError",
    "ConfigurationError",
    "UnknownFunctionError",
    "ParameterLengthError",
    "PrecisionMismatchError",
    "DivisionByZero",
]
