"""
Configuration for recurrences and grid renders.

Configuration objects are frozen dataclasses holding plain Python values
(numbers, decimal strings, ``[real, imag]`` pairs). They carry no numeric
context; engines build their own coefficients from them, so one config can
be shared by every worker thread.
"""

import json
import math
import logging
import dataclasses
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .terms import Term
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MAX_TERMS = 3
TERM_POSITIONS = ('B', 'A', 't', 'p', 'q')


def _freeze_value(value: Any) -> Any:
    """Lists from JSON become tuples so configs stay hashable."""
    if isinstance(value, list):
        return tuple(value)
    return value


def _plain_value(value: Any) -> Any:
    """Inverse of _freeze_value, for JSON output."""
    if isinstance(value, complex):
        return [value.real, value.imag]
    if isinstance(value, tuple):
        return list(value)
    return value


@dataclass(frozen=True)
class CoefficientConfig:
    """A constant plus whether it is multiplied by the loop variable."""

    value: Any = 1
    substitute: bool = False

    @classmethod
    def from_value(cls, data: Any) -> 'CoefficientConfig':
        """Accept a bare value or a {"value": ..., "substitute": ...} dict."""
        if isinstance(data, CoefficientConfig):
            return data
        if isinstance(data, dict):
            unknown = set(data) - {'value', 'substitute'}
            if unknown:
                raise ConfigurationError(f"Unknown coefficient keys: {sorted(unknown)}")
            return cls(_freeze_value(data.get('value', 1)), bool(data.get('substitute', False)))
        return cls(_freeze_value(data))

    def to_dict(self) -> Dict[str, Any]:
        return {'value': _plain_value(self.value), 'substitute': self.substitute}


@dataclass(frozen=True)
class TermConfig:
    """
    One recurrence term, ``B * function(A * t**p, extras) ** q``.

    ``substitute`` holds one flag per position in the order B, A, t, p, q
    followed by one flag per extra argument. When omitted every position is
    fixed.
    """

    function: str = 'identity'
    B: Any = 1
    A: Any = 1
    t: Any = 0
    p: Any = 1
    q: Any = 1
    extras: Tuple[Any, ...] = ()
    substitute: Optional[Tuple[bool, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, 'extras', tuple(_freeze_value(e) for e in self.extras))
        for name in TERM_POSITIONS:
            object.__setattr__(self, name, _freeze_value(getattr(self, name)))
        if self.substitute is None:
            object.__setattr__(self, 'substitute', (False,) * (len(TERM_POSITIONS) + len(self.extras)))
        else:
            object.__setattr__(self, 'substitute', tuple(bool(flag) for flag in self.substitute))

    @classmethod
    def empty(cls) -> 'TermConfig':
        """A term that always evaluates to zero."""
        return cls('identity', B=0, A=1, t=0, p=1, q=1)

    @classmethod
    def mandelbrot(cls) -> 'TermConfig':
        """The single term of the classic recurrence, z**2."""
        return cls('identity', B=1, A=1, t=1, p=2, q=1,
                   substitute=(False, False, True, False, False))

    @property
    def coefficients(self) -> Tuple[Any, ...]:
        return (self.B, self.A, self.t, self.p, self.q)

    def build(self, precision):
        """Create a Term bound to the given precision."""
        return Term(self.function, *self.coefficients, extras=self.extras,
                    substitute=self.substitute, precision=precision)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TermConfig':
        if isinstance(data, TermConfig):
            return data
        if not isinstance(data, dict):
            raise ConfigurationError(f"Term description must be a mapping, got {data!r}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid term description: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        result = {'function': self.function}
        for name in TERM_POSITIONS:
            result[name] = _plain_value(getattr(self, name))
        result['extras'] = [_plain_value(e) for e in self.extras]
        result['substitute'] = list(self.substitute)
        return result


@dataclass(frozen=True)
class EngineConfig:
    """Immutable description of one render session's recurrence."""

    max_iterations: int = 1000
    precision: Union[int, str] = 30
    escape_radius: Union[float, str] = 2.0
    hardware: bool = False
    terms: Tuple[TermConfig, ...] = (TermConfig.mandelbrot(),)
    denominator: CoefficientConfig = CoefficientConfig(1)
    exponent: CoefficientConfig = CoefficientConfig(1)

    def __post_init__(self):
        terms = tuple(TermConfig.from_dict(term) for term in self.terms)
        if len(terms) > MAX_TERMS:
            raise ConfigurationError(f"At most {MAX_TERMS} terms are supported, got {len(terms)}")
        terms += (TermConfig.empty(),) * (MAX_TERMS - len(terms))
        object.__setattr__(self, 'terms', terms)
        object.__setattr__(self, 'denominator', CoefficientConfig.from_value(self.denominator))
        object.__setattr__(self, 'exponent', CoefficientConfig.from_value(self.exponent))
        self.validate()

    def validate(self):
        """Validate configuration parameters."""
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ConfigurationError("max_iterations must be an integer")
        if self.max_iterations <= 0:
            raise ConfigurationError("max_iterations must be positive")

        if isinstance(self.precision, int) and not isinstance(self.precision, bool):
            if self.precision <= 0:
                raise ConfigurationError("precision must be positive")
        elif not isinstance(self.precision, str):
            raise ConfigurationError(f"Invalid precision specification: {self.precision!r}")

        try:
            radius = float(self.escape_radius)
        except (TypeError, ValueError):
            raise ConfigurationError(f"escape_radius must be a real number, got {self.escape_radius!r}") from None
        if not 0 < radius < math.inf:
            raise ConfigurationError("escape_radius must be positive and finite")

    def replace(self, **changes) -> 'EngineConfig':
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create an engine configuration from a dictionary."""
        data = dict(data)
        if 'terms' in data:
            data['terms'] = tuple(TermConfig.from_dict(term) for term in data['terms'])
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid engine configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_iterations': self.max_iterations,
            'precision': self.precision,
            'escape_radius': self.escape_radius,
            'hardware': self.hardware,
            'terms': [term.to_dict() for term in self.terms],
            'denominator': self.denominator.to_dict(),
            'exponent': self.exponent.to_dict(),
        }


@dataclass
class RenderConfig:
    """Configuration for sampling a rectangular grid."""

    width: int = 64
    height: int = 64
    bounds: Tuple[Any, Any, Any, Any] = ('-2.5', '1.0', '-1.25', '1.25')  # xmin, xmax, ymin, ymax
    threads: Optional[int] = None
    tile_size: int = 32
    error_value: Optional[int] = None

    def __post_init__(self):
        self.bounds = tuple(self.bounds)

    def validate(self):
        """Validate configuration parameters."""
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError("Width and height must be positive")

        if len(self.bounds) != 4:
            raise ConfigurationError("bounds must be (xmin, xmax, ymin, ymax)")

        xmin, xmax, ymin, ymax = (float(b) for b in self.bounds)
        if xmin >= xmax or ymin >= ymax:
            raise ConfigurationError("Invalid bounds: min values must be less than max")

        if self.threads is not None and self.threads < 1:
            raise ConfigurationError("threads must be >= 1")

        if self.tile_size < 1:
            raise ConfigurationError("tile_size must be >= 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        try:
            config = cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid render configuration: {e}") from e
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['bounds'] = list(self.bounds)
        return result


PRESETS: Dict[str, Dict[str, Any]] = {
    'mandelbrot': {},
    'mandelbrot-fast': {'hardware': True},
    'multibrot3': {
        'terms': [{'function': 'identity', 't': 1, 'p': 3,
                   'substitute': [False, False, True, False, False]}],
    },
    'sine': {
        'terms': [{'function': 'sin', 't': 1, 'p': 1,
                   'substitute': [False, False, True, False, False]}],
        'escape_radius': 50,
    },
    'z-power-z': {
        'terms': [{'function': 'identity', 't': 1, 'p': 1,
                   'substitute': [False, False, True, True, False]}],
    },
    'cubic-quadratic': {
        'terms': [
            {'function': 'identity', 't': 1, 'p': 2,
             'substitute': [False, False, True, False, False]},
            {'function': 'pow', 'B': '0.5', 'A': 1, 't': 1, 'p': 1, 'extras': [3],
             'substitute': [False, False, True, False, False, False]},
        ],
    },
    'halved-square': {
        'denominator': 2,
        'exponent': 2,
    },
}


def get_preset(name: str) -> EngineConfig:
    """Create an engine configuration from a named preset."""
    try:
        data = PRESETS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown preset '{name}'. Available: {', '.join(PRESETS)}") from None
    return EngineConfig.from_dict(data)


def load_config(path: Union[str, Path]) -> Tuple[EngineConfig, RenderConfig]:
    """
    Load engine and render configuration from a JSON file.

    The file holds an object with optional "engine" and "render" sections.

    Args:
        path: Configuration file path

    Returns:
        Tuple of (EngineConfig, RenderConfig)
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Couldn't load configuration file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be an object")
    unknown = set(data) - {'engine', 'render'}
    if unknown:
        raise ConfigurationError(f"{path}: unknown sections {sorted(unknown)}")

    engine_config = EngineConfig.from_dict(data.get('engine', {}))
    render_config = RenderConfig.from_dict(data.get('render', {}))
    logger.info(f"Loaded configuration from {path}")
    return engine_config, render_config


def save_config(path: Union[str, Path], engine_config: EngineConfig,
                render_config: Optional[RenderConfig] = None) -> None:
    """Write engine and render configuration as JSON."""
    data = {'engine': engine_config.to_dict()}
    data['render'] = (render_config or RenderConfig()).to_dict()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
    logger.info(f"Configuration written to {path}")
