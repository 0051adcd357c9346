"""
Тесты для Conversion Builder

Проверяет:
1. Cast(old, P) ; apply_factor ; Cast(P, new) через арифметическое повышение
2. Схлопывание шагов, когда old / new совпадают с P
3. Разложение нецелого рационального множителя на целом типе
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from src.conversion.builder import application_strategy_for, build_conversion
from src.conversion.operations import OpSequence, Scale, describe_op, op_input, op_output
from src.core.domain.representation import (
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    UINT8,
    non_arithmetic,
)
from src.core.math.magnitude import PI, mag


class TestApplicationStrategy:
    """Тесты application_strategy_for"""

    def test_integer_factor(self) -> None:
        assert application_strategy_for(INT32, mag(5)) == Scale(INT32, mag(5))

    def test_inverse_integer_factor(self) -> None:
        assert application_strategy_for(INT32, mag(Fraction(1, 8))) == Scale(INT32, mag(Fraction(1, 8)))

    def test_rational_factor_on_integer_is_split(self) -> None:
        strategy = application_strategy_for(INT32, mag(Fraction(-2, 3)))
        assert strategy == OpSequence((Scale(INT32, mag(-2)), Scale(INT32, mag(Fraction(1, 3)))))

    def test_rational_factor_on_float(self) -> None:
        assert application_strategy_for(FLOAT32, mag(Fraction(2, 3))) == Scale(FLOAT32, mag(Fraction(2, 3)))

    def test_irrational_factor(self) -> None:
        assert application_strategy_for(INT32, PI) == Scale(INT32, PI)


class TestBuildConversion:
    """Тесты build_conversion"""

    def test_narrow_integer_is_promoted(self) -> None:
        op = build_conversion(INT16, INT16, mag(Fraction(1, 3)))
        assert describe_op(op) == [
            "Cast(int16 -> int32)",
            "Scale(int32 * 1/3)",
            "Cast(int32 -> int16)",
        ]

    def test_single_operation_when_already_promoted(self) -> None:
        op = build_conversion(INT32, INT32, mag(2))
        assert op == Scale(INT32, mag(2))

    def test_split_when_already_promoted(self) -> None:
        op = build_conversion(INT64, INT64, mag(Fraction(3, 2)))
        assert isinstance(op, OpSequence)
        assert describe_op(op) == ["Scale(int64 * 3)", "Scale(int64 * 1/2)"]

    def test_split_is_flattened(self) -> None:
        op = build_conversion(INT16, INT16, mag(Fraction(2, 3)))
        assert len(op.ops) == 4
        assert describe_op(op) == [
            "Cast(int16 -> int32)",
            "Scale(int32 * 2)",
            "Scale(int32 * 1/3)",
            "Cast(int32 -> int16)",
        ]

    def test_int_to_float(self) -> None:
        op = build_conversion(INT16, FLOAT64, mag(1))
        assert describe_op(op) == ["Cast(int16 -> float64)", "Scale(float64 * 1)"]

    def test_float_to_int(self) -> None:
        op = build_conversion(FLOAT64, INT8, mag(10))
        assert describe_op(op) == ["Scale(float64 * 10)", "Cast(float64 -> int8)"]

    def test_unsigned_to_wide_signed(self) -> None:
        op = build_conversion(UINT8, INT64, mag(-2))
        assert describe_op(op) == ["Cast(uint8 -> int64)", "Scale(int64 * -2)"]

    def test_irrational_factor(self) -> None:
        op = build_conversion(INT16, INT16, PI / mag(180))
        assert describe_op(op)[1] == "Scale(int32 * pi / 180)"

    def test_input_and_output(self) -> None:
        op = build_conversion(UINT8, FLOAT32, mag(Fraction(1, 1000)))
        assert op_input(op) == UINT8
        assert op_output(op) == FLOAT32

    def test_mixed_non_arithmetic_rejected(self) -> None:
        with pytest.raises(ValueError, match="No arithmetic promotion"):
            build_conversion(non_arithmetic("decimal", Decimal), INT8, mag(2))
