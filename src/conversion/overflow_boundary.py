"""
Overflow Boundary Analyzer — границы входа, безопасные от переполнения

Для любой операции (Cast / Scale / OpSequence) вычисляет:
- min_good(op): наименьший вход, который не переполнит выход (или CANNOT_OVERFLOW)
- max_good(op): наибольший такой вход (или CANNOT_OVERFLOW)
- can_overflow_below / can_overflow_above: граница строго внутри диапазона входа
- is_too_small / is_too_large / would_input_produce_overflow: runtime проверка значения

Границы выражены в real_part() входного представления операции. Для
последовательностей границы распространяются с конца к началу: Limits для
op_i синтезируются из границ суффикса op_{i+1}..op_N.

Правила для Scale(T, M):
- |M| >= 1: соответствующий предел делится на M (уменьшение, переполнения нет)
- |M| < 1: предел умножается на |1/M| с clamp к экстремуму T
- M == -1 и M == lowest(T) для знаковых целых обрабатываются отдельно
- беззнаковый T и отрицательный M: обе границы схлопываются в 0
- делитель, не помещающийся в T (ERR_CANNOT_FIT): "деление на бесконечность"

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Анализ чистый и детерминированный: результаты кэшируются (lru_cache)
2. Не-арифметические представления отвергаются при определении конверсии
   (OverflowBoundaryNotImplementedError), а не при конверсии значения
3. Сравнения границ со значением выполняются точно (int / Fraction)
"""

import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Optional, Union

import numpy as np

from src.conversion.operations import Cast, OpSequence, Operation, Scale, op_input
from src.core.domain.representation import Representation
from src.core.math.magnitude import Magnitude, mag
from src.core.math.numerical_safeguards import divide_toward_zero, exact_value


# =============================================================================
# EXCEPTIONS
# =============================================================================


class OverflowBoundaryNotImplementedError(NotImplementedError):
    """Для комбинации операции и представлений нет правила анализа границ."""

    pass


# =============================================================================
# ТИПЫ
# =============================================================================


class OverflowSentinel(Enum):
    """Маркер "ни одно значение не переполнит в этом направлении"."""

    CANNOT_OVERFLOW = "cannot_overflow"

    def __repr__(self) -> str:
        return "CANNOT_OVERFLOW"


CANNOT_OVERFLOW = OverflowSentinel.CANNOT_OVERFLOW

Bound = Union[Any, OverflowSentinel]


@dataclass(frozen=True)
class Limits:
    """
    Необязательная пара (lower, upper), сужающая естественные границы выхода.

    None означает естественную границу представления.
    """

    lower: Any = None
    upper: Any = None


NO_LIMITS = Limits()


# =============================================================================
# ПРЕДЕЛЫ
# =============================================================================


def _lower_limit(rep: Representation, limits: Limits):
    return rep.lowest if limits.lower is None else rep.scalar(limits.lower)


def _upper_limit(rep: Representation, limits: Limits):
    return rep.highest if limits.upper is None else rep.scalar(limits.upper)


def _negative_lower_limit(rep: Representation, limits: Limits):
    """-lower, но highest для знакового целого, если lower == lowest."""
    lower = _lower_limit(rep, limits)
    if rep.is_integral and rep.is_signed and lower == rep.lowest:
        return rep.highest
    if rep.is_integral:
        return rep.scalar(-int(lower))
    return -lower


def _round_inward(rep: Representation, value, target, upper: bool):
    """Шаг по сетке float внутрь диапазона, если округление вынесло value за target."""
    if upper and exact_value(value) > exact_value(target):
        return rep.real_part().dtype.type(np.nextafter(value, rep.lowest))
    if not upper and exact_value(value) < exact_value(target):
        return rep.real_part().dtype.type(np.nextafter(value, rep.highest))
    return value


def _limit_in_source(rep: Representation, limit, upper: bool):
    """
    Предел выхода, выраженный во входном типе без выхода за сам предел.

    Для целого входа: floor (верхний) / ceil (нижний) точного значения.
    Для float входа: ближайшее значение с шагом внутрь при необходимости.
    Результат прижимается к [lowest, highest] входного типа.
    """
    exact = exact_value(limit)
    if exact >= exact_value(rep.highest):
        return rep.highest
    if exact <= exact_value(rep.lowest):
        return rep.lowest

    if rep.is_integral:
        return rep.scalar(math.floor(exact) if upper else math.ceil(exact))

    with np.errstate(over="ignore"):
        value = rep.cast(limit)
    return _round_inward(rep, value, limit, upper)


# =============================================================================
# CAST
# =============================================================================


def _source_lowest_unless_dest_limit_higher(source: Representation, target: Representation, limits: Limits):
    target_lower = _lower_limit(target, limits)
    if exact_value(source.lowest) >= exact_value(target_lower):
        return source.lowest
    return _limit_in_source(source, target_lower, upper=False)


def _source_highest_unless_dest_limit_lower(source: Representation, target: Representation, limits: Limits):
    target_upper = _upper_limit(target, limits)
    if exact_value(source.highest) <= exact_value(target_upper):
        return source.highest
    return _limit_in_source(source, target_upper, upper=True)


@lru_cache(maxsize=None)
def _max_float_not_exceeding_max_int(source: Representation, target: Representation):
    """
    Наибольшее значение float-типа source, которое не превышает max целого target.

    Максимум целого редко является степенью двойки, поэтому ближайший к нему
    float обычно оказывается чуть больше. Ищем удвоением значения со всеми
    единицами в мантиссе, пока следующее удвоение не превысит предел.
    """
    scalar_type = source.dtype.type
    one = scalar_type(1)

    x = one
    max_mantissa = x
    while x + one > x:
        max_mantissa = x
        x = scalar_type(x + (x + one))

    with np.errstate(over="ignore"):
        limit = scalar_type(int(target.highest))

    if limit <= max_mantissa:
        return limit

    x = max_mantissa
    while x + x < limit:
        x = scalar_type(x + x)
    return x


def _cast_min_good(op: Cast, limits: Limits):
    source = op.source.real_part()
    target = op.target.real_part()
    return _source_lowest_unless_dest_limit_higher(source, target, limits)


def _cast_max_good(op: Cast, limits: Limits):
    source = op.source.real_part()
    target = op.target.real_part()

    bound = _source_highest_unless_dest_limit_lower(source, target, limits)
    if source.is_floating_point and target.is_integral:
        float_limit = _max_float_not_exceeding_max_int(source, target)
        if float_limit < bound:
            return float_limit
    return bound


# =============================================================================
# SCALE
# =============================================================================


def _divide_by_mag(rep: Representation, x, m: Magnitude):
    result = m.value_in(rep)
    if not result.ok:
        # Делитель не помещается в тип: "деление на бесконечность"
        return rep.scalar(0)
    if rep.is_integral:
        return rep.scalar(divide_toward_zero(int(x), int(result.value)))
    return rep.dtype.type(x / result.value)


def _lowest_of_limits_divided_by_value(rep: Representation, m: Magnitude, limits: Limits):
    relevant = _lower_limit(rep, limits) if m.is_positive else _upper_limit(rep, limits)
    return _divide_by_mag(rep, relevant, m)


def _highest_of_limits_divided_by_value(rep: Representation, m: Magnitude, limits: Limits):
    relevant = _upper_limit(rep, limits) if m.is_positive else _lower_limit(rep, limits)

    # |lowest| знакового целого на единицу больше highest
    as_value = m.value_in(rep)
    if as_value.ok and as_value.value == rep.lowest:
        return rep.scalar(1)
    if m == mag(-1) and _lower_limit(rep, limits) == rep.lowest:
        return rep.highest

    return _divide_by_mag(rep, relevant, m)


def _clamp_lowest_of_limits_times_inverse_value(rep: Representation, m: Magnitude, limits: Limits):
    if m.is_positive:
        relevant = _lower_limit(rep, limits)
    else:
        upper = _upper_limit(rep, limits)
        relevant = rep.scalar(-int(upper)) if rep.is_integral else -upper

    abs_divisor = m.abs().inverse().value_in(rep)
    if not abs_divisor.ok:
        return rep.lowest

    if rep.is_integral:
        divisor = int(abs_divisor.value)
        if m.is_positive:
            bound = divide_toward_zero(int(rep.lowest), divisor)
        else:
            bound = -divide_toward_zero(int(rep.highest), divisor)
        if bound >= int(relevant):
            return rep.lowest
        return rep.scalar(int(relevant) * divisor)

    with np.errstate(over="ignore"):
        divisor = abs_divisor.value
        bound = rep.lowest / divisor if m.is_positive else -(rep.highest / divisor)
        if bound >= relevant:
            return rep.lowest
        return rep.dtype.type(relevant * divisor)


def _clamp_highest_of_limits_times_inverse_value(rep: Representation, m: Magnitude, limits: Limits):
    if m.is_positive:
        relevant = _upper_limit(rep, limits)
    else:
        relevant = _negative_lower_limit(rep, limits)

    abs_divisor = m.abs().inverse().value_in(rep)
    if not abs_divisor.ok:
        return rep.highest

    if rep.is_integral:
        divisor = int(abs_divisor.value)
        if m.is_positive:
            bound = divide_toward_zero(int(rep.highest), divisor)
        else:
            bound = -divide_toward_zero(int(rep.lowest), divisor)
        if bound <= int(relevant):
            return rep.highest
        return rep.scalar(int(relevant) * divisor)

    with np.errstate(over="ignore"):
        divisor = abs_divisor.value
        bound = rep.highest / divisor if m.is_positive else -(rep.lowest / divisor)
        if bound <= relevant:
            return rep.highest
        return rep.dtype.type(relevant * divisor)


def _is_exact_for_integer(m: Magnitude) -> bool:
    return m.is_integer or m.inverse().is_integer


def _split_rational(op: Scale) -> OpSequence:
    """Целый тип × нецелый рациональный M = (× числитель) ; (÷ знаменатель)."""
    return OpSequence(
        (
            Scale(op.rep, op.factor.numerator()),
            Scale(op.rep, op.factor.denominator().inverse()),
        )
    )


def _is_collapsed(op: Operation) -> bool:
    """Scale, после которого без переполнения выживает только 0."""
    if isinstance(op, OpSequence):
        return len(op.ops) == 1 and _is_collapsed(op.ops[0])
    if not isinstance(op, Scale):
        return False

    rep = op.rep.real_part()
    if rep.is_unsigned and not op.factor.is_positive:
        return True
    return rep.is_integral and not op.factor.is_rational


def _scale_min_good(op: Scale, limits: Limits):
    rep = op.rep.real_part()
    m = op.factor

    if rep.is_unsigned:
        return rep.scalar(0)

    if rep.is_integral and not _is_exact_for_integer(m):
        if m.is_rational:
            return _min_good_raw(_split_rational(op), limits)
        return rep.scalar(0)

    if m.abs_at_least_one():
        return _lowest_of_limits_divided_by_value(rep, m, limits)
    return _clamp_lowest_of_limits_times_inverse_value(rep, m, limits)


def _scale_max_good(op: Scale, limits: Limits):
    rep = op.rep.real_part()
    m = op.factor

    if rep.is_unsigned and not m.is_positive:
        return rep.scalar(0)

    if m.is_integer:
        return _highest_of_limits_divided_by_value(rep, m, limits)
    if m.inverse().is_integer:
        return _clamp_highest_of_limits_times_inverse_value(rep, m, limits)

    if rep.is_integral:
        if m.is_rational:
            return _max_good_raw(_split_rational(op), limits)
        return rep.scalar(0)

    if m.abs_at_least_one():
        return _highest_of_limits_divided_by_value(rep, m, limits)
    return _clamp_highest_of_limits_times_inverse_value(rep, m, limits)


# =============================================================================
# ДИСПЕТЧЕРИЗАЦИЯ
# =============================================================================


def _require_supported(op: Operation) -> None:
    if isinstance(op, OpSequence):
        for inner in op.ops:
            _require_supported(inner)
        return

    if isinstance(op, Cast):
        reps = (op.source, op.target)
    elif isinstance(op, Scale):
        reps = (op.rep,)
    else:
        raise TypeError(f"Not an operation: {op!r}")

    for rep in reps:
        if not rep.real_part().is_arithmetic:
            raise OverflowBoundaryNotImplementedError(
                f"Overflow boundary not implemented for {op} (non-arithmetic {rep.name})"
            )


@lru_cache(maxsize=4096)
def _min_good_raw(op: Operation, limits: Limits):
    if isinstance(op, Cast):
        return _cast_min_good(op, limits)
    if isinstance(op, Scale):
        return _scale_min_good(op, limits)
    if len(op.ops) == 1:
        return _min_good_raw(op.ops[0], limits)
    return _min_good_raw(op.ops[0], _limits_for_raw(OpSequence(op.ops[1:]), limits))


@lru_cache(maxsize=4096)
def _max_good_raw(op: Operation, limits: Limits):
    if isinstance(op, Cast):
        return _cast_max_good(op, limits)
    if isinstance(op, Scale):
        return _scale_max_good(op, limits)
    if len(op.ops) == 1:
        return _max_good_raw(op.ops[0], limits)
    return _max_good_raw(op.ops[0], _limits_for_raw(OpSequence(op.ops[1:]), limits))


def _limits_for_raw(op: Operation, limits: Limits) -> Limits:
    return Limits(lower=_min_good_raw(op, limits), upper=_max_good_raw(op, limits))


# =============================================================================
# PUBLIC API
# =============================================================================


def limits_for(op: Operation, limits: Optional[Limits] = None) -> Limits:
    """
    Limits для операции, предшествующей op, синтезированные из границ op.

    Значения выражены в real_part() входного представления op.
    """
    _require_supported(op)
    return _limits_for_raw(op, NO_LIMITS if limits is None else limits)


def min_possible(op: Operation):
    """Естественный минимум входного представления операции."""
    _require_supported(op)
    return op_input(op).real_part().lowest


def max_possible(op: Operation):
    """Естественный максимум входного представления операции."""
    _require_supported(op)
    return op_input(op).real_part().highest


def min_good(op: Operation, limits: Optional[Limits] = None) -> Bound:
    """
    Наименьший вход, при котором op не переполняет выход и не нарушает limits.

    Args:
        op: Операция (Cast / Scale / OpSequence)
        limits: Дополнительные пределы на выходе op (None — естественные)

    Returns:
        Значение в real_part() входного представления или CANNOT_OVERFLOW,
        если граница совпадает с естественным минимумом входа

    Raises:
        OverflowBoundaryNotImplementedError: Не-арифметическое представление

    Examples:
        >>> min_good(Cast(INT8, UINT64))
        np.int8(0)
        >>> min_good(Cast(INT8, INT8))
        CANNOT_OVERFLOW
    """
    _require_supported(op)
    value = _min_good_raw(op, NO_LIMITS if limits is None else limits)
    if _is_collapsed(op):
        return value
    if value == op_input(op).real_part().lowest:
        return CANNOT_OVERFLOW
    return value


def max_good(op: Operation, limits: Optional[Limits] = None) -> Bound:
    """
    Наибольший вход, при котором op не переполняет выход и не нарушает limits.

    Симметрично min_good().
    """
    _require_supported(op)
    value = _max_good_raw(op, NO_LIMITS if limits is None else limits)
    if _is_collapsed(op):
        return value
    if value == op_input(op).real_part().highest:
        return CANNOT_OVERFLOW
    return value


def can_overflow_below(op: Operation) -> bool:
    """True, если min_good строго выше естественного минимума входа."""
    bound = min_good(op)
    if bound is CANNOT_OVERFLOW:
        return False
    return exact_value(bound) > exact_value(min_possible(op))


def can_overflow_above(op: Operation) -> bool:
    """True, если max_good строго ниже естественного максимума входа."""
    bound = max_good(op)
    if bound is CANNOT_OVERFLOW:
        return False
    return exact_value(bound) < exact_value(max_possible(op))


def real_value(x):
    """Вещественная часть входа: границы сравниваются по ней."""
    if isinstance(x, (complex, np.complexfloating)):
        return x.real
    return x


def is_too_small(op: Operation, x) -> bool:
    """Вход x ниже min_good (False без сравнения, если переполнение вниз невозможно)."""
    if not can_overflow_below(op):
        return False
    return exact_value(real_value(x)) < exact_value(min_good(op))


def is_too_large(op: Operation, x) -> bool:
    """Вход x выше max_good (False без сравнения, если переполнение вверх невозможно)."""
    if not can_overflow_above(op):
        return False
    return exact_value(real_value(x)) > exact_value(max_good(op))


def would_input_produce_overflow(op: Operation, x) -> bool:
    return is_too_small(op, x) or is_too_large(op, x)
