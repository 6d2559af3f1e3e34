import mpmath
import pytest

from fractal_voyager.core.precision import (PrecisionConfig, ComplexValue, SamplePlane,
                                            detect_precision_need)
from fractal_voyager.exceptions import ConfigurationError, DivisionByZero, PrecisionMismatchError


@pytest.fixture(params=['hardware', 40], ids=['hardware', 'arbitrary'])
def precision(request):
    return PrecisionConfig(request.param)


def test_precision_config_kinds():
    hardware = PrecisionConfig('hardware')
    assert hardware.is_hardware
    assert hardware.context is mpmath.fp
    assert PrecisionConfig('double') == hardware

    arbitrary = PrecisionConfig(50)
    assert not arbitrary.is_hardware
    assert arbitrary.digits == 50
    assert arbitrary.context.dps == 50
    assert PrecisionConfig('quad').digits == 34
    assert PrecisionConfig('60').digits == 60


@pytest.mark.parametrize('value', ['single', 'nonsense', 0, -5, 2.5, True])
def test_invalid_precision_is_a_configuration_error(value):
    with pytest.raises(ConfigurationError):
        PrecisionConfig(value)


def test_private_context_leaves_global_precision_alone():
    before = mpmath.mp.dps
    PrecisionConfig(120)
    assert mpmath.mp.dps == before


def test_arbitrary_precision_keeps_digits():
    precision = PrecisionConfig(60)
    third = precision.one / 3
    assert abs(third.real * 3 - 1) < mpmath.mpf(10) ** -55

    hardware = PrecisionConfig('hardware')
    third = hardware.one / 3
    assert isinstance(third.value, complex)


def test_arithmetic(precision):
    a = precision.complex(1, 2)
    b = precision.complex(3, -1)
    assert a + b == precision.complex(4, 1)
    assert a - b == precision.complex(-2, 3)
    assert a * b == precision.complex(5, 5)
    assert a.add(b) == a + b
    assert a.norm_squared() == 5
    assert -a == precision.complex(-1, -2)


def test_power_matches_complex_power(precision):
    i = precision.complex(0, 1)
    assert i ** 2 == precision.complex(-1, 0)
    z = precision.complex('1.5', '-0.5')
    assert z.power(precision.complex(2)) == z * z

    w = precision.complex('0.3', '0.7')
    expected = complex(1.5, -0.5) ** complex(0.3, 0.7)
    assert abs(z.power(w).to_complex() - expected) < 1e-12


def test_divide_by_exact_zero(precision):
    with pytest.raises(DivisionByZero):
        precision.one / precision.zero
    with pytest.raises(ZeroDivisionError):
        precision.one.divide(0)


def test_zero_to_negative_power(precision):
    with pytest.raises(DivisionByZero):
        precision.zero ** precision.complex(-1)


def test_mixing_precisions_is_rejected():
    hardware = PrecisionConfig('hardware').one
    arbitrary = PrecisionConfig(30).one
    with pytest.raises(PrecisionMismatchError):
        hardware + arbitrary
    with pytest.raises(PrecisionMismatchError):
        PrecisionConfig(50).one * arbitrary


def test_same_digit_count_is_compatible():
    a = PrecisionConfig(30).complex(1, 1)
    b = PrecisionConfig(30).complex(2, 0)
    assert a * b == PrecisionConfig(30).complex(2, 2)


def test_value_parsing(precision):
    assert precision.complex((1, 2)) == precision.complex(1, 2)
    assert precision.complex(complex(1, 2)) == precision.complex(1, 2)
    with pytest.raises(ConfigurationError):
        precision.complex((1, 2, 3))


@pytest.mark.parametrize('value', ['nan', 'inf', ('-inf', 0), (0, float('nan')), complex('inf')])
def test_non_finite_values_are_rejected(precision, value):
    with pytest.raises(ConfigurationError):
        precision.complex(value)


def test_is_finite(precision):
    assert precision.complex('1e300', -5).is_finite()
    ctx = precision.context
    assert not ComplexValue(ctx.mpc(ctx.inf, 0), precision).is_finite()
    assert not ComplexValue(ctx.mpc(0, ctx.nan), precision).is_finite()


def test_equality_and_hash():
    a = PrecisionConfig(30).complex(2, 1)
    b = PrecisionConfig(30).complex(2, 1)
    assert a == b
    assert hash(a) == hash(b)
    assert PrecisionConfig(30).complex(3) == 3


def test_sample_plane_keeps_decimal_bounds():
    plane = SamplePlane('-0.75000000000000000000001', '-0.75', '0.1', '0.2', 4, 2, precision=40)
    assert plane.shape == (2, 4)
    assert plane.xmin < plane.xmax
    point = plane.pixel_to_complex(0, 0)
    assert isinstance(point, ComplexValue)
    assert point.real == plane.xmin

    grid = plane.create_point_grid()
    assert len(grid) == 2 and len(grid[0]) == 4
    assert grid[1][2] == plane.pixel_to_complex(2, 1)


def test_sample_plane_validation():
    with pytest.raises(ConfigurationError):
        SamplePlane(1, -1, 0, 1, 10, 10)
    with pytest.raises(ConfigurationError):
        SamplePlane(-1, 1, 0, 1, 0, 10)


def test_detect_precision_need():
    assert detect_precision_need(3.0) == 'hardware'
    digits = detect_precision_need(1e-30)
    assert isinstance(digits, int) and digits > 30
