import pytest

from fractal_voyager.core.precision import PrecisionConfig
from fractal_voyager.core.terms import Term
from fractal_voyager.exceptions import ConfigurationError, ParameterLengthError, UnknownFunctionError

T_ONLY = (False, False, True, False, False)


@pytest.fixture(params=['hardware', 30], ids=['hardware', 'arbitrary'])
def precision(request):
    return PrecisionConfig(request.param)


def test_mandelbrot_term_squares(precision):
    term = Term.mandelbrot(precision)
    z = precision.complex(1, 2)
    assert term.evaluate(z) == precision.complex(-3, 4)
    assert term.evaluate(precision.complex(3)) == 9


def test_empty_term_is_zero(precision):
    term = Term.empty(precision)
    assert term.is_empty
    for z in ((0, 0), (1, 2), ('-3.5', '0.25')):
        assert term.evaluate(precision.complex(z)) == 0


def test_power_binds_tighter_than_coefficient(precision):
    z = precision.complex(2)
    # 2 * (3 * 2**2), not 2 * (3 * 2)**2
    assert Term('identity', B=2, A=3, t=1, p=2, substitute=T_ONLY, precision=precision).evaluate(z) == 24
    # the outer exponent applies to the function result only
    assert Term('identity', B=2, A=3, t=1, p=2, q=2, substitute=T_ONLY,
                precision=precision).evaluate(z) == 288


def test_self_power_term(precision):
    term = Term('identity', t=1, p=1, substitute=(False, False, True, True, False), precision=precision)
    assert term.evaluate(precision.complex(2)) == 4
    assert term.evaluate(precision.complex(3)) == 27


def test_substituted_extra_parameter(precision):
    term = Term('pow', t=1, p=1, extras=[1],
                substitute=(False, False, True, False, False, True), precision=precision)
    assert term.evaluate(precision.complex(2)) == 4
    assert term.evaluate(precision.complex(3)) == 27


def test_function_applied_to_primary(precision):
    term = Term('exp', A=2, t=1, p=1, substitute=T_ONLY, precision=precision)
    value = term.evaluate(precision.complex('0.5'))
    assert abs(value.to_complex() - 2.718281828459045) < 1e-12


@pytest.mark.parametrize('flags', [(True,) * 4, (True,) * 6])
def test_flag_length_must_match(flags):
    with pytest.raises(ParameterLengthError):
        Term('identity', t=1, substitute=flags)


def test_extras_flag_length_must_match():
    with pytest.raises(ParameterLengthError):
        Term('pow', t=1, extras=[2, 3], substitute=(False,) * 6)


def test_missing_extra_arguments():
    with pytest.raises(ParameterLengthError):
        Term('pow', t=1)
    with pytest.raises(ConfigurationError):
        Term('hyp2f1', t=1, extras=[1, 1], substitute=(False,) * 7)


def test_unknown_function():
    with pytest.raises(UnknownFunctionError):
        Term('tan', t=1)


def test_equality():
    assert Term.empty() == Term('identity', B=0)
    assert hash(Term.empty()) == hash(Term('identity', B=0))
    assert Term.mandelbrot() == Term('identity', t=1, p=2, substitute=T_ONLY)
    assert Term.mandelbrot() != Term('identity', t=1, p=2)
    assert Term.mandelbrot() != Term('sin', t=1, p=2, substitute=T_ONLY)
    assert Term.mandelbrot() != Term.empty()


def test_describe():
    assert 'identity' in Term.mandelbrot().describe()
    assert 'z' in Term.mandelbrot().describe()
