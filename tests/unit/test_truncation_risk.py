"""
Тесты для Truncation Risk Classifier

Проверяет:
1. Риск одиночных Cast / Scale
2. Пересчёт риска через операцию (update_risk)
3. Объединение рисков в последовательности (lcm делителей, доминирование)
4. would_truncate для каждого вида риска
"""

from decimal import Decimal
from fractions import Fraction

import numpy as np
import pytest

from src.conversion.operations import Cast, OpSequence, Scale
from src.conversion.truncation_risk import (
    AllNonzeroValuesRisk,
    CannotAssessRisk,
    NonIntegerValuesRisk,
    NoTruncationRisk,
    NotDivisibleByRisk,
    truncation_risk_for,
    update_risk,
)
from src.core.domain.representation import (
    COMPLEX64,
    FLOAT32,
    FLOAT64,
    INT16,
    INT32,
    non_arithmetic,
)
from src.core.math.magnitude import PI, mag


@pytest.fixture
def decimal_rep():
    return non_arithmetic("decimal", Decimal)


# =============================================================================
# ОДИНОЧНЫЕ ОПЕРАЦИИ
# =============================================================================


class TestSingleOperation:
    """Тесты риска Cast / Scale"""

    def test_float_to_int_cast(self) -> None:
        assert truncation_risk_for(Cast(FLOAT64, INT32)) == NonIntegerValuesRisk(FLOAT64)

    def test_int_to_float_cast(self) -> None:
        assert truncation_risk_for(Cast(INT32, FLOAT64)) == NoTruncationRisk(INT32)

    def test_float_narrowing_cast(self) -> None:
        assert truncation_risk_for(Cast(FLOAT64, FLOAT32)) == NoTruncationRisk(FLOAT64)

    def test_divide_on_integer(self) -> None:
        risk = truncation_risk_for(Scale(INT16, mag(Fraction(1, 3))))
        assert risk == NotDivisibleByRisk(INT16, divisor=mag(3))
        assert risk.divisor_value == 3

    def test_rational_on_integer_uses_denominator(self) -> None:
        risk = truncation_risk_for(Scale(INT16, mag(Fraction(2, 3))))
        assert risk == NotDivisibleByRisk(INT16, divisor=mag(3))

    def test_multiply_on_integer(self) -> None:
        assert truncation_risk_for(Scale(INT32, mag(-7))) == NoTruncationRisk(INT32)

    def test_divide_on_float(self) -> None:
        assert truncation_risk_for(Scale(FLOAT32, mag(Fraction(1, 3)))) == NoTruncationRisk(FLOAT32)

    def test_irrational_on_integer(self) -> None:
        assert truncation_risk_for(Scale(INT32, PI)) == AllNonzeroValuesRisk(INT32)

    def test_irrational_on_float(self) -> None:
        assert truncation_risk_for(Scale(FLOAT64, PI)) == NoTruncationRisk(FLOAT64)

    def test_non_arithmetic(self, decimal_rep) -> None:
        op = Scale(decimal_rep, mag(2))
        risk = truncation_risk_for(op)
        assert isinstance(risk, CannotAssessRisk)
        assert risk.op == op
        assert risk.rep == decimal_rep

    def test_not_an_operation(self) -> None:
        with pytest.raises(TypeError, match="Not an operation"):
            truncation_risk_for("scale")

    def test_kinds(self) -> None:
        assert NoTruncationRisk.kind == "no_risk"
        assert NonIntegerValuesRisk.kind == "non_integer_values"
        assert AllNonzeroValuesRisk.kind == "all_nonzero_values"
        assert NotDivisibleByRisk.kind == "not_divisible_by"
        assert CannotAssessRisk.kind == "cannot_assess"


# =============================================================================
# UPDATE RISK
# =============================================================================


class TestUpdateRisk:
    """Тесты пересчёта риска во вход операции"""

    def test_cast_retags(self) -> None:
        downstream = NotDivisibleByRisk(INT32, divisor=mag(3))
        assert update_risk(Cast(INT16, INT32), downstream) == NotDivisibleByRisk(INT16, divisor=mag(3))

    def test_non_integer_through_int_to_float_cast(self) -> None:
        """Целый вход всегда целый: NonInteger исчезает"""
        downstream = NonIntegerValuesRisk(FLOAT64)
        assert update_risk(Cast(INT32, FLOAT64), downstream) == NoTruncationRisk(INT32)

    def test_scale_reduces_divisor(self) -> None:
        """x·6 кратно 4 <=> x кратно 2"""
        downstream = NotDivisibleByRisk(INT32, divisor=mag(4))
        assert update_risk(Scale(INT32, mag(6)), downstream) == NotDivisibleByRisk(INT32, divisor=mag(2))

    def test_scale_removes_divisor(self) -> None:
        downstream = NotDivisibleByRisk(INT32, divisor=mag(2))
        assert update_risk(Scale(INT32, mag(4)), downstream) == NoTruncationRisk(INT32)

    def test_divide_grows_divisor(self) -> None:
        downstream = NonIntegerValuesRisk(FLOAT64)
        result = update_risk(Scale(FLOAT64, mag(Fraction(1, 10))), downstream)
        assert result == NotDivisibleByRisk(FLOAT64, divisor=mag(10))

    def test_negative_factor_uses_absolute_value(self) -> None:
        downstream = NotDivisibleByRisk(INT32, divisor=mag(4))
        assert update_risk(Scale(INT32, mag(-2)), downstream) == NotDivisibleByRisk(INT32, divisor=mag(2))

    def test_irrational_scale(self) -> None:
        downstream = NotDivisibleByRisk(FLOAT64, divisor=mag(2))
        assert update_risk(Scale(FLOAT64, PI), downstream) == AllNonzeroValuesRisk(FLOAT64)

    def test_no_risk_and_all_nonzero_retag(self) -> None:
        assert update_risk(Scale(INT32, mag(3)), NoTruncationRisk(INT32)) == NoTruncationRisk(INT32)
        assert update_risk(Cast(INT16, INT32), AllNonzeroValuesRisk(INT32)) == AllNonzeroValuesRisk(INT16)

    def test_cannot_assess_accumulates_residual(self, decimal_rep) -> None:
        residual = Scale(decimal_rep, mag(2))
        downstream = CannotAssessRisk(decimal_rep, op=residual)
        cast = Cast(FLOAT64, decimal_rep)

        result = update_risk(cast, downstream)

        assert isinstance(result, CannotAssessRisk)
        assert result.rep == FLOAT64
        assert result.op == OpSequence((cast, residual))

    def test_through_sequence(self) -> None:
        op = OpSequence((Cast(INT16, INT32), Scale(INT32, mag(6))))
        downstream = NotDivisibleByRisk(INT32, divisor=mag(4))
        assert update_risk(op, downstream) == NotDivisibleByRisk(INT16, divisor=mag(2))


# =============================================================================
# ПОСЛЕДОВАТЕЛЬНОСТИ
# =============================================================================


class TestSequenceRisk:
    """Тесты риска последовательности"""

    def test_int_float_int_round_trip(self) -> None:
        op = OpSequence((Cast(INT32, FLOAT64), Cast(FLOAT64, INT32)))
        assert truncation_risk_for(op) == NoTruncationRisk(INT32)

    def test_divide_in_float_then_truncate(self) -> None:
        op = OpSequence(
            (
                Cast(INT32, FLOAT64),
                Scale(FLOAT64, mag(Fraction(1, 10))),
                Cast(FLOAT64, INT32),
            )
        )
        risk = truncation_risk_for(op)
        assert risk == NotDivisibleByRisk(INT32, divisor=mag(10))
        assert risk.would_truncate(25)
        assert not risk.would_truncate(30)

    def test_consecutive_divisions(self) -> None:
        op = OpSequence((Scale(INT32, mag(Fraction(1, 4))), Scale(INT32, mag(Fraction(1, 6)))))
        assert truncation_risk_for(op) == NotDivisibleByRisk(INT32, divisor=mag(24))

    def test_non_integer_joins_divisibility(self) -> None:
        op = OpSequence((Cast(FLOAT64, INT32), Scale(INT32, mag(Fraction(1, 3)))))
        risk = truncation_risk_for(op)
        assert risk == NotDivisibleByRisk(FLOAT64, divisor=mag(3))
        assert risk.would_truncate(2.5)
        assert not risk.would_truncate(6.0)

    def test_all_nonzero_dominates(self) -> None:
        op = OpSequence((Scale(INT32, mag(Fraction(1, 2))), Scale(INT32, PI)))
        assert truncation_risk_for(op) == AllNonzeroValuesRisk(INT32)

    def test_cannot_assess_dominates(self, decimal_rep) -> None:
        op = OpSequence((Cast(FLOAT64, INT32), Cast(INT32, decimal_rep), Scale(decimal_rep, mag(2))))
        risk = truncation_risk_for(op)
        assert isinstance(risk, CannotAssessRisk)
        assert risk.rep == FLOAT64


# =============================================================================
# WOULD TRUNCATE
# =============================================================================


class TestWouldTruncate:
    """Тесты would_truncate"""

    def test_no_risk(self) -> None:
        assert not NoTruncationRisk(FLOAT64).would_truncate(0.5)

    def test_non_integer(self) -> None:
        risk = NonIntegerValuesRisk(FLOAT64)
        assert risk.would_truncate(2.5)
        assert not risk.would_truncate(np.float64(-3.0))

    def test_all_nonzero(self) -> None:
        risk = AllNonzeroValuesRisk(INT32)
        assert not risk.would_truncate(0)
        assert risk.would_truncate(1)

    def test_not_divisible(self) -> None:
        risk = NotDivisibleByRisk(INT16, divisor=mag(3))
        assert risk.would_truncate(np.int16(10))
        assert not risk.would_truncate(np.int16(-9))

    def test_complex_checks_both_parts(self) -> None:
        risk = NotDivisibleByRisk(COMPLEX64, divisor=mag(3))
        assert not risk.would_truncate(np.complex64(6 + 3j))
        assert risk.would_truncate(np.complex64(6 + 1j))

    def test_cannot_assess_always_truncates(self, decimal_rep) -> None:
        assert CannotAssessRisk(decimal_rep).would_truncate(Decimal(0))
