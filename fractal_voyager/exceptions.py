"""
Exception hierarchy for the fractal engine.

Configuration problems are reported while the engine is being built, before
any sample is processed. Arithmetic problems are reported per sample.
"""


class FractalError(Exception):
    """Base class for all errors raised by fractal_voyager."""


class ConfigurationError(FractalError, ValueError):
    """Invalid recurrence or render configuration."""


class UnknownFunctionError(ConfigurationError):
    """A term refers to a function name that is not registered."""

    def __init__(self, name: str, available=()):
        self.name = name
        self.available = tuple(available)
        message = f"Unknown function '{name}'"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class ParameterLengthError(ConfigurationError):
    """Extra arguments and substitution flags disagree in length."""


class PrecisionMismatchError(FractalError, TypeError):
    """Two values of different precision were combined."""


class DivisionByZero(FractalError, ZeroDivisionError):
    """A sample hit a pole or its orbit became undefined."""
