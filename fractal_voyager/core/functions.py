"""
Named complex functions available to recurrence terms.

Every entry has the signature ``fn(primary, extras) -> ComplexValue`` where
``primary`` is the term's main argument and ``extras`` are the additional
arguments supplied through an ExtendedParameterList. The table is built once
at import time and exposed read-only; adding a function means adding an
entry to ``_FUNCTIONS``.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Sequence, Tuple

from .precision import ComplexValue
from ..exceptions import DivisionByZero, UnknownFunctionError

logger = logging.getLogger(__name__)

ApplyFunc = Callable[[ComplexValue, Sequence[ComplexValue]], ComplexValue]


@dataclass(frozen=True)
class FractalFunction:
    """A registered complex function."""

    name: str
    apply: ApplyFunc
    arity: int = 0
    description: str = ""

    def __call__(self, primary: ComplexValue, extras: Sequence[ComplexValue] = ()) -> ComplexValue:
        return self.apply(primary, extras)


def _unary(name: str) -> ApplyFunc:
    """Wrap a one-argument mpmath function; extra arguments are ignored."""
    def apply(x, extras):
        fn = getattr(x.precision.context, name)
        return ComplexValue(fn(x.value), x.precision)
    apply.__name__ = name
    return apply


def _identity(x, extras):
    return x


def _gamma(x, extras):
    try:
        value = x.precision.context.gamma(x.value)
    except (ValueError, ZeroDivisionError) as e:
        raise DivisionByZero(f"gamma pole at {x}") from e
    return ComplexValue(value, x.precision)


def _log(x, extras):
    if x.is_zero():
        raise DivisionByZero(f"log pole at {x}")
    try:
        value = x.precision.context.log(x.value)
    except (ValueError, ZeroDivisionError) as e:
        raise DivisionByZero(f"log pole at {x}") from e
    return ComplexValue(value, x.precision)


def _pow(x, extras):
    # primary is the base, the first extra argument is the exponent
    return x.power(extras[0])


def _hyp2f1(x, extras):
    precision = x.precision
    a, b, c = (precision.convert(e) for e in extras[:3])
    try:
        value = precision.context.hyp2f1(a, b, c, x.value)
    except ZeroDivisionError as e:
        raise DivisionByZero(f"hyp2f1 pole for c={extras[2]}") from e
    return ComplexValue(value, precision)


_FUNCTIONS: Dict[str, FractalFunction] = {
    'identity': FractalFunction('identity', _identity, 0, "x"),
    'sin': FractalFunction('sin', _unary('sin'), 0, "sin(x)"),
    'cos': FractalFunction('cos', _unary('cos'), 0, "cos(x)"),
    'exp': FractalFunction('exp', _unary('exp'), 0, "exp(x)"),
    'log': FractalFunction('log', _log, 0, "principal log(x)"),
    'gamma': FractalFunction('gamma', _gamma, 0, "gamma(x)"),
    'pow': FractalFunction('pow', _pow, 1, "x ** e1"),
    'hyp2f1': FractalFunction('hyp2f1', _hyp2f1, 3, "2F1(e1, e2; e3; x)"),
}


class FunctionRegistry:
    """Read-only registry of the functions a term may apply."""

    _functions = MappingProxyType(_FUNCTIONS)

    @classmethod
    def get(cls, name: str) -> FractalFunction:
        """
        Get a function by name.

        Args:
            name: Function identifier

        Returns:
            The registered FractalFunction

        Raises:
            UnknownFunctionError: if no function has that name
        """
        function = cls._functions.get(name)
        if function is None:
            raise UnknownFunctionError(name, sorted(cls._functions))
        return function

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(cls._functions)

    @classmethod
    def list_functions(cls) -> Dict[str, str]:
        """Get a dictionary of available functions and their descriptions."""
        return {name: fn.description for name, fn in cls._functions.items()}

    @classmethod
    def arity(cls, name: str) -> int:
        """Number of extra arguments the named function consumes."""
        return cls.get(name).arity

    @classmethod
    def functions(cls):
        return cls._functions


def get_function(name: str) -> FractalFunction:
    return FunctionRegistry.get(name)


def function_names() -> Tuple[str, ...]:
    return FunctionRegistry.names()


def arity(name: str) -> int:
    return FunctionRegistry.arity(name)
