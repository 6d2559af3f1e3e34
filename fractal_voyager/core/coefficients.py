"""
Coefficients that can hold a constant, the loop variable, or both.

A coefficient keeps a constant ``c`` and a partner slot. The partner is the
multiplicative identity when the coefficient is FIXED and the current
iterate ``z`` when it is SUBSTITUTE, so the scalar value is always ``c`` or
``c * z``. The partner is overwritten on every rebind, never multiplied into
itself.
"""

import enum
import logging
from typing import Any, Optional, Sequence, Tuple

from .precision import ComplexValue, PrecisionConfig
from ..exceptions import ParameterLengthError

logger = logging.getLogger(__name__)


class Binding(enum.Enum):
    FIXED = 'fixed'
    SUBSTITUTE = 'substitute'

    @classmethod
    def from_flag(cls, flag) -> 'Binding':
        if isinstance(flag, Binding):
            return flag
        return cls.SUBSTITUTE if flag else cls.FIXED


class SubstitutableCoefficient:
    """A constant that is optionally multiplied by the loop variable."""

    __slots__ = ('constant', 'binding', '_partner')

    def __init__(self, constant: ComplexValue, binding: Any = Binding.FIXED):
        self.constant = constant
        self.binding = Binding.from_flag(binding)
        # None stands for the multiplicative identity
        self._partner = None

    @classmethod
    def create(cls, value: Any, precision: PrecisionConfig,
               substitute: bool = False) -> 'SubstitutableCoefficient':
        return cls(precision.complex(value), substitute)

    @property
    def substitute(self) -> bool:
        return self.binding is Binding.SUBSTITUTE

    @property
    def precision(self) -> PrecisionConfig:
        return self.constant.precision

    def rebind(self, z: ComplexValue, binding: Optional[Binding] = None) -> None:
        """
        Point the partner slot at ``z`` or at one.

        Args:
            z: Current iterate
            binding: Overrides the stored binding for this rebind
        """
        if binding is None:
            binding = self.binding
        self._partner = z if binding is Binding.SUBSTITUTE else None

    def scalar_value(self) -> ComplexValue:
        """The coefficient's value after the last rebind."""
        if self._partner is None:
            return self.constant
        return self.constant * self._partner

    def resolve(self, z: ComplexValue) -> ComplexValue:
        """Scalar value for ``z`` without touching the partner slot."""
        if self.binding is Binding.FIXED:
            return self.constant
        return self.constant * z

    def __eq__(self, other):
        if not isinstance(other, SubstitutableCoefficient):
            return NotImplemented
        return self.constant == other.constant and self.binding is other.binding

    def __hash__(self):
        return hash((self.constant, self.binding))

    def __repr__(self) -> str:
        return f"SubstitutableCoefficient({self.constant}, {self.binding.name})"


class ExtendedParameterList:
    """Ordered extra arguments for functions taking more than one input."""

    def __init__(self, values: Sequence[Any], flags: Sequence[Any],
                 precision: PrecisionConfig):
        """
        Initialize the parameter list.

        Args:
            values: Constants, one per extra argument
            flags: Substitution flag per argument, same length as ``values``
            precision: Precision the constants are stored in
        """
        if len(values) != len(flags):
            raise ParameterLengthError(
                f"Extra parameters and substitution flags must match in length: "
                f"{len(values)} values, {len(flags)} flags")
        self.params: Tuple[SubstitutableCoefficient, ...] = tuple(
            SubstitutableCoefficient.create(value, precision, flag)
            for value, flag in zip(values, flags)
        )

    def __len__(self) -> int:
        return len(self.params)

    def __iter__(self):
        return iter(self.params)

    def __getitem__(self, index: int) -> SubstitutableCoefficient:
        return self.params[index]

    def rebind_all(self, z: ComplexValue, flags: Optional[Sequence[Any]] = None) -> None:
        """Rebind every parameter, optionally with explicit flags."""
        if flags is None:
            for param in self.params:
                param.rebind(z)
            return
        if len(flags) != len(self.params):
            raise ParameterLengthError(
                f"Expected {len(self.params)} substitution flags, got {len(flags)}")
        for param, flag in zip(self.params, flags):
            param.rebind(z, Binding.from_flag(flag))

    def scalar_array(self) -> Tuple[ComplexValue, ...]:
        return tuple(param.scalar_value() for param in self.params)

    def resolve_all(self, z: ComplexValue) -> Tuple[ComplexValue, ...]:
        return tuple(param.resolve(z) for param in self.params)

    def __eq__(self, other):
        if not isinstance(other, ExtendedParameterList):
            return NotImplemented
        return self.params == other.params

    def __hash__(self):
        return hash(self.params)
