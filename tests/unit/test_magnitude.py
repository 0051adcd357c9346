"""
Тесты для Magnitude — точного ненулевого множителя

Проверяет:
1. Конструирование и нормализацию (mag, PI, sqrt, root)
2. Классификацию (integer / rational / irrational, знак)
3. Арифметику (произведение, деление, inverse, abs, степени)
4. numerator / denominator
5. value_in(rep): OK / ERR_NON_INTEGER_IN_INTEGER_TYPE / ERR_CANNOT_FIT
"""

import math
from fractions import Fraction

import numpy as np
import pytest

from src.core.domain.representation import (
    COMPLEX64,
    FLOAT32,
    FLOAT64,
    INT8,
    INT32,
    UINT8,
    non_arithmetic,
)
from src.core.math.magnitude import (
    ONE,
    PI,
    MagRepresentationOutcome,
    mag,
    root,
    sqrt,
)


# =============================================================================
# КОНСТРУИРОВАНИЕ
# =============================================================================


class TestConstruction:
    """Тесты конструкторов"""

    def test_integer(self) -> None:
        m = mag(12)
        assert m.is_integer
        assert m.is_rational
        assert m.is_positive
        assert m.to_fraction() == 12
        assert str(m) == "12"

    def test_negative_fraction(self) -> None:
        m = mag(Fraction(-3, 4))
        assert not m.is_integer
        assert m.is_rational
        assert not m.is_positive
        assert str(m) == "-3/4"

    def test_one_is_empty_product(self) -> None:
        assert mag(1) == ONE
        assert ONE.is_integer
        assert str(ONE) == "1"

    def test_zero_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot be zero"):
            mag(0)

    @pytest.mark.parametrize("value", [1.5, True, "3"])
    def test_non_rational_input_rejected(self, value) -> None:
        with pytest.raises(ValueError, match="requires int or Fraction"):
            mag(value)

    def test_normalized_equality_and_hash(self) -> None:
        """Равенство и хэш по нормализованной форме"""
        assert mag(2) * mag(3) == mag(6)
        assert {mag(6): "six"}[mag(12) / mag(2)] == "six"

    def test_large_prime(self) -> None:
        """Простое 2^61 - 1 не раскладывается пробным делением за разумное время"""
        prime = 2**61 - 1
        m = mag(prime)
        assert m.powers == ((prime, Fraction(1)),)
        assert m.to_fraction() == prime

    def test_product_of_large_primes(self) -> None:
        m = mag(Fraction(12 * (2**61 - 1) ** 2, 2**31 - 1))
        assert m.powers == (
            (2, Fraction(2)),
            (3, Fraction(1)),
            (2**31 - 1, Fraction(-1)),
            (2**61 - 1, Fraction(2)),
        )

    def test_square_of_prime_above_trial_division(self) -> None:
        assert mag(1000003**2) == mag(1000003) ** 2
        assert mag(1000003**2).powers == ((1000003, Fraction(2)),)

    def test_product_of_primes_above_trial_division(self) -> None:
        m = mag(1000003 * 1000033)
        assert m.powers == ((1000003, Fraction(1)), (1000033, Fraction(1)))


# =============================================================================
# АРИФМЕТИКА
# =============================================================================


class TestArithmetic:
    """Тесты арифметики Magnitude"""

    def test_product_and_quotient(self) -> None:
        assert mag(6) * mag(Fraction(1, 3)) == mag(2)
        assert mag(2) / mag(2) == ONE
        assert mag(-2) * mag(-3) == mag(6)

    def test_negation_and_abs(self) -> None:
        assert -mag(3) == mag(-3)
        assert mag(-5).abs() == mag(5)

    def test_inverse(self) -> None:
        assert mag(Fraction(-3, 4)).inverse() == mag(Fraction(-4, 3))
        assert mag(1000).inverse().inverse() == mag(1000)
        assert mag(Fraction(1, 3)).inverse().is_integer

    def test_powers_and_roots(self) -> None:
        assert mag(10) ** 3 == mag(1000)
        assert mag(10) ** -2 == mag(Fraction(1, 100))
        assert sqrt(mag(4)) == mag(2)
        assert root(mag(-8), 3) == mag(-2)
        assert mag(-2) ** 2 == mag(4)

    def test_irrational_root(self) -> None:
        m = sqrt(mag(2))
        assert not m.is_rational
        assert m.approx() == pytest.approx(math.sqrt(2))
        assert m * m == mag(2)

    def test_even_root_of_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="Even root"):
            sqrt(mag(-4))

    def test_invalid_root_degree(self) -> None:
        with pytest.raises(ValueError, match="root degree must be positive"):
            root(mag(8), 0)


class TestNumeratorDenominator:
    """Тесты numerator / denominator"""

    def test_rational_parts(self) -> None:
        m = mag(Fraction(-3, 4))
        assert m.numerator() == mag(-3)
        assert m.denominator() == mag(4)

    def test_integer_has_unit_denominator(self) -> None:
        assert mag(7).denominator() == ONE
        assert mag(7).numerator() == mag(7)

    def test_irrational_has_no_parts(self) -> None:
        with pytest.raises(ValueError, match="irrational"):
            PI.numerator()
        with pytest.raises(ValueError, match="irrational"):
            (PI / mag(2)).denominator()


class TestIrrational:
    """Тесты иррациональных множителей"""

    def test_pi(self) -> None:
        assert not PI.is_rational
        assert not PI.is_integer
        assert PI.approx() == pytest.approx(math.pi)

    def test_degrees_to_radians_display(self) -> None:
        assert str(PI / mag(180)) == "pi / 180"

    def test_to_fraction_rejected(self) -> None:
        with pytest.raises(ValueError, match="irrational"):
            PI.to_fraction()

    def test_approx_overflow_is_infinite(self) -> None:
        assert (mag(10) ** 400).approx() == math.inf
        assert (-(mag(10) ** 400)).approx() == -math.inf

    def test_approx_of_large_irrational_power_is_infinite(self) -> None:
        assert (PI**1000).approx() == math.inf
        assert (-(PI**1001)).approx() == -math.inf
        assert (PI**-1000).approx() == 0.0

    def test_approx_when_parts_overflow_separately(self) -> None:
        m = mag(10) ** 400 / PI**300
        expected = math.exp(400 * math.log(10) - 300 * math.log(math.pi))
        assert m.approx() == pytest.approx(expected, rel=1e-9)

    def test_log_abs(self) -> None:
        assert (PI**1000).log_abs() == pytest.approx(1000 * math.log(math.pi))
        assert mag(Fraction(-1, 8)).log_abs() == pytest.approx(-3 * math.log(2))
        assert ONE.log_abs() == 0.0

    def test_abs_at_least_one(self) -> None:
        assert mag(Fraction(-3, 2)).abs_at_least_one()
        assert mag(-1).abs_at_least_one()
        assert not mag(Fraction(1, 2)).abs_at_least_one()
        assert PI.abs_at_least_one()
        assert not (PI / mag(4)).abs_at_least_one()


# =============================================================================
# VALUE IN REPRESENTATION
# =============================================================================


class TestValueIn:
    """Тесты value_in(rep)"""

    def test_integer_fits(self) -> None:
        result = mag(100).value_in(INT8)
        assert result.outcome == MagRepresentationOutcome.OK
        assert result.ok
        assert result.value == 100
        assert isinstance(result.value, np.int8)

    def test_integer_too_large(self) -> None:
        result = mag(300).value_in(INT8)
        assert result.outcome == MagRepresentationOutcome.ERR_CANNOT_FIT
        assert result.value is None

    def test_negative_in_unsigned(self) -> None:
        assert mag(-1).value_in(UINT8).outcome == MagRepresentationOutcome.ERR_CANNOT_FIT

    def test_lowest_of_signed_fits(self) -> None:
        assert mag(-128).value_in(INT8).value == -128

    def test_non_integer_in_integer_type(self) -> None:
        result = mag(Fraction(1, 2)).value_in(INT32)
        assert result.outcome == MagRepresentationOutcome.ERR_NON_INTEGER_IN_INTEGER_TYPE
        assert PI.value_in(INT32).outcome == MagRepresentationOutcome.ERR_NON_INTEGER_IN_INTEGER_TYPE

    def test_fraction_in_float(self) -> None:
        result = mag(Fraction(1, 2)).value_in(FLOAT32)
        assert result.ok
        assert result.value == np.float32(0.5)

    def test_too_large_for_float32(self) -> None:
        huge = mag(10) ** 40
        assert huge.value_in(FLOAT32).outcome == MagRepresentationOutcome.ERR_CANNOT_FIT
        assert huge.value_in(FLOAT64).ok

    def test_underflow_cannot_fit(self) -> None:
        """Ненулевой множитель, ставший нулём, не помещается"""
        assert (mag(10) ** -50).value_in(FLOAT32).outcome == MagRepresentationOutcome.ERR_CANNOT_FIT
        assert (mag(10) ** -40).value_in(FLOAT32).ok

    def test_irrational_in_float(self) -> None:
        result = PI.value_in(FLOAT64)
        assert result.ok
        assert result.value == pytest.approx(math.pi)

    def test_large_irrational_cannot_fit(self) -> None:
        assert (PI**1000).value_in(FLOAT64).outcome == MagRepresentationOutcome.ERR_CANNOT_FIT
        assert (PI**-1000).value_in(FLOAT64).outcome == MagRepresentationOutcome.ERR_CANNOT_FIT

    def test_complex_uses_real_part(self) -> None:
        result = mag(Fraction(1, 4)).value_in(COMPLEX64)
        assert result.ok
        assert isinstance(result.value, np.float32)

    def test_non_arithmetic_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-arithmetic"):
            mag(2).value_in(non_arithmetic("opaque"))
