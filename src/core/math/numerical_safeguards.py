"""
Numerical Safeguards — точные примитивы для анализа конверсий

Модуль обеспечивает точную (без потери точности) арифметику, на которую
опираются анализаторы переполнения и усечения:
- Целочисленное деление с округлением к нулю (семантика C/C++)
- Модульное "заворачивание" целых в заданную битовую ширину
- Точное представление чисел для сравнения int/float без промежуточного округления
- Проверки целочисленности и делимости

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Сравнения int vs float выполняются точно (через Fraction), а не в float
2. Деление на ноль никогда не маскируется: ZeroDivisionError пробрасывается
3. Все операции детерминированы и не имеют состояния
"""

import math
from fractions import Fraction
from typing import Union

import numpy as np

ExactValue = Union[int, Fraction, float]


# =============================================================================
# ЦЕЛОЧИСЛЕННАЯ АРИФМЕТИКА
# =============================================================================


def divide_toward_zero(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением к нулю.

    Python `//` округляет к минус бесконечности, тогда как целочисленное
    деление в C/C++ отбрасывает дробную часть. Границы переполнения считаются
    в семантике C, поэтому используем именно этот вариант.

    Args:
        numerator: Делимое
        denominator: Делитель (ненулевой)

    Returns:
        Частное, округлённое к нулю

    Raises:
        ZeroDivisionError: Если denominator == 0

    Examples:
        >>> divide_toward_zero(7, 2)
        3
        >>> divide_toward_zero(-7, 2)
        -3
        >>> divide_toward_zero(-128, 3)
        -42
    """
    if denominator == 0:
        raise ZeroDivisionError("integer division by zero")

    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def wrap_integer(value: int, bits: int, signed: bool) -> int:
    """
    Приведение целого к диапазону bits-битного типа по модулю 2**bits.

    Args:
        value: Исходное целое (любого размера)
        bits: Ширина типа в битах
        signed: True для знакового типа (дополнительный код)

    Returns:
        Значение в диапазоне типа

    Examples:
        >>> wrap_integer(256, 8, signed=False)
        0
        >>> wrap_integer(128, 8, signed=True)
        -128
        >>> wrap_integer(-1, 16, signed=False)
        65535
    """
    if bits <= 0:
        raise ValueError(f"bits must be positive, got {bits}")

    modulus = 1 << bits
    wrapped = value % modulus

    if signed and wrapped >= modulus >> 1:
        wrapped -= modulus

    return wrapped


# =============================================================================
# ТОЧНЫЕ СРАВНЕНИЯ
# =============================================================================


def exact_value(value) -> ExactValue:
    """
    Точное представление числа для сравнений между разными типами.

    Целые (Python int, numpy integer, bool) → int.
    Конечные float (включая numpy float32/float64) → Fraction (точно).
    NaN/Inf остаются float: Fraction их не представляет, а сравнение
    Fraction с ±inf в Python корректно.

    Examples:
        >>> exact_value(np.int64(5))
        5
        >>> exact_value(0.5)
        Fraction(1, 2)
    """
    if isinstance(value, (int, np.integer)):
        return int(value)

    if isinstance(value, Fraction):
        return value

    as_float = float(value)
    if not math.isfinite(as_float):
        return as_float

    return Fraction(as_float)


def is_integral_value(value) -> bool:
    """
    Проверка, что значение является целым числом (для float: без дробной части).

    NaN/Inf не считаются целыми.
    """
    exact = exact_value(value)
    if isinstance(exact, int):
        return True
    if isinstance(exact, float):
        return False
    return exact.denominator == 1


def is_divisible_by(value, divisor: int) -> bool:
    """
    Проверка делимости значения на положительное целое divisor.

    Для float значений проверяется, что value / divisor — целое число.

    Raises:
        ValueError: Если divisor не положительный
    """
    if divisor <= 0:
        raise ValueError(f"divisor must be positive, got {divisor}")

    exact = exact_value(value)
    if isinstance(exact, float):
        return False

    quotient = Fraction(exact) / divisor
    return quotient.denominator == 1
