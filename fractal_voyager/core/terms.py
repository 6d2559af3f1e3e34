"""
Recurrence terms ("z-slots").

A term contributes ``B * F(A * t**p, extras) ** q`` to the numerator of the
recurrence, where ``F`` is a registered function and any of B, A, t, p, q or
the extras may be bound to the loop variable. Up to three terms are summed
per iteration; each extra term costs a full function evaluation, so unused
slots are left as the empty term.
"""

import logging
from typing import Any, Optional, Sequence, Union

from .coefficients import ExtendedParameterList, SubstitutableCoefficient
from .functions import FunctionRegistry
from .precision import ComplexValue, PrecisionConfig
from ..exceptions import ParameterLengthError

logger = logging.getLogger(__name__)

POSITIONS = ('B', 'A', 't', 'p', 'q')


class Term:
    """One generalized recurrence term."""

    def __init__(self, function: str = 'identity', B: Any = 1, A: Any = 1,
                 t: Any = 0, p: Any = 1, q: Any = 1,
                 extras: Sequence[Any] = (),
                 substitute: Optional[Sequence[bool]] = None,
                 precision: Union[PrecisionConfig, str, int, None] = None):
        """
        Initialize a term.

        Args:
            function: Name of a registered function
            B, A, t, p, q: Coefficient constants
            extras: Extra function arguments after the primary one
            substitute: Flags for B, A, t, p, q and then each extra; a True
                flag multiplies that position by the loop variable
            precision: Precision the constants are stored in

        Raises:
            UnknownFunctionError: if ``function`` is not registered
            ParameterLengthError: if flags and extras disagree in length, or
                the function needs more extra arguments than given
        """
        self.function_name = function
        self.function = FunctionRegistry.get(function)

        extras = tuple(extras)
        if substitute is None:
            substitute = (False,) * (len(POSITIONS) + len(extras))
        substitute = tuple(bool(flag) for flag in substitute)
        if len(substitute) - len(POSITIONS) != len(extras):
            raise ParameterLengthError(
                f"Substitution flags must cover B, A, t, p, q and every extra parameter: "
                f"{len(substitute)} flags, {len(extras)} extras")
        if len(extras) < self.function.arity:
            raise ParameterLengthError(
                f"Function '{function}' needs {self.function.arity} extra parameters, got {len(extras)}")

        if not isinstance(precision, PrecisionConfig):
            precision = PrecisionConfig(30 if precision is None else precision)
        self.precision = precision
        self.substitute = substitute

        self.B, self.A, self.t, self.p, self.q = (
            SubstitutableCoefficient.create(value, precision, flag)
            for value, flag in zip((B, A, t, p, q), substitute)
        )
        self.extras = ExtendedParameterList(extras, substitute[len(POSITIONS):], precision)

    @classmethod
    def empty(cls, precision=None) -> 'Term':
        """A term that evaluates to zero for every z."""
        return cls('identity', B=0, A=1, t=0, p=1, q=1, precision=precision)

    @classmethod
    def mandelbrot(cls, precision=None) -> 'Term':
        """The classic quadratic term, z**2."""
        return cls('identity', B=1, A=1, t=1, p=2, q=1,
                   substitute=(False, False, True, False, False), precision=precision)

    @property
    def coefficients(self):
        return (self.B, self.A, self.t, self.p, self.q)

    @property
    def is_empty(self) -> bool:
        """True when the term contributes nothing for any z."""
        return self.B.constant.is_zero() and not self.B.substitute

    def evaluate(self, z: ComplexValue) -> ComplexValue:
        """
        Evaluate ``B * F(A * t**p, extras) ** q`` at ``z``.

        The power ``t**p`` binds tighter than the multiply by ``A``, and the
        outer ``q`` applies to the function result only.
        """
        for coefficient in self.coefficients:
            coefficient.rebind(z)
        self.extras.rebind_all(z)

        primary = self.A.scalar_value() * self.t.scalar_value().power(self.p.scalar_value())
        value = self.function(primary, self.extras.scalar_array())
        return self.B.scalar_value() * value.power(self.q.scalar_value())

    def describe(self) -> str:
        """Readable formula, e.g. ``1*identity(1*(z)^2)^1``."""
        B, A, t, p, q = (_describe_coefficient(c) for c in self.coefficients)
        args = [f"{A}*({t})^({p})"] + [_describe_coefficient(e) for e in self.extras]
        return f"{B}*{self.function_name}({', '.join(args)})^({q})"

    def __eq__(self, other):
        if not isinstance(other, Term):
            return NotImplemented
        return (self.function_name == other.function_name
                and self.coefficients == other.coefficients
                and self.extras == other.extras)

    def __hash__(self):
        return hash((self.function_name, self.coefficients, self.extras))

    def __repr__(self) -> str:
        return f"Term({self.describe()})"


def _describe_coefficient(coefficient: SubstitutableCoefficient) -> str:
    if not coefficient.substitute:
        return str(coefficient.constant)
    if coefficient.constant == 1:
        return "z"
    return f"{coefficient.constant}*z"
