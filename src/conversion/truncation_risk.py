"""
Truncation Risk Classifier — какие входы теряют информацию

Для операции вычисляет символьный дескриптор риска усечения, привязанный к
входному представлению операции:
- NoTruncationRisk: ни одно значение не теряет точность
- NonIntegerValuesRisk: теряются нецелые значения (float → int)
- AllNonzeroValuesRisk: точно переживает только 0 (иррациональный множитель на целом)
- NotDivisibleByRisk(n): теряются значения, не кратные n
- CannotAssessRisk(op): оценка невозможна (не-арифметическое представление);
  хранит остаточную последовательность операций

Для последовательности [op1, rest...] риск = объединение собственного риска op1
и риска rest, пересчитанного во вход op1 (update_risk). Порядок доминирования
при объединении: CannotAssess > AllNonzero > делимость (lcm делителей,
NonInteger = делимость на 1) > NoTruncationRisk.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Дескриптор всегда выражен во входном представлении операции
2. NonIntegerValuesRisk на целом хранении бессодержателен и нормализуется в NoTruncationRisk
3. Круговой путь int → float → int даёт NoTruncationRisk
4. Классификатор чистый: результаты кэшируются (lru_cache)
"""

import math
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, ClassVar, Optional, Union

import numpy as np

from src.conversion.operations import Cast, OpSequence, Operation, Scale, op_input
from src.core.domain.representation import Representation
from src.core.math.magnitude import ONE, Magnitude, mag
from src.core.math.numerical_safeguards import is_divisible_by, is_integral_value


# =============================================================================
# ДЕСКРИПТОРЫ РИСКА
# =============================================================================


def _parts(x) -> tuple:
    if isinstance(x, (complex, np.complexfloating)):
        return (x.real, x.imag)
    return (x,)


@dataclass(frozen=True)
class TruncationRisk:
    """Базовый дескриптор риска, привязанный к представлению rep."""

    rep: Representation

    kind: ClassVar[str] = "abstract"

    def retag(self, rep: Representation) -> "TruncationRisk":
        return replace(self, rep=rep)

    def would_truncate(self, x) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class NoTruncationRisk(TruncationRisk):
    kind: ClassVar[str] = "no_risk"

    def would_truncate(self, x) -> bool:
        return False


@dataclass(frozen=True)
class NonIntegerValuesRisk(TruncationRisk):
    kind: ClassVar[str] = "non_integer_values"

    def would_truncate(self, x) -> bool:
        return not all(is_integral_value(part) for part in _parts(x))


@dataclass(frozen=True)
class AllNonzeroValuesRisk(TruncationRisk):
    kind: ClassVar[str] = "all_nonzero_values"

    def would_truncate(self, x) -> bool:
        return any(part != 0 for part in _parts(x))


@dataclass(frozen=True)
class NotDivisibleByRisk(TruncationRisk):
    """Значения, не кратные divisor (целый Magnitude > 1), теряют точность."""

    divisor: Magnitude = ONE

    kind: ClassVar[str] = "not_divisible_by"

    @property
    def divisor_value(self) -> int:
        return int(self.divisor.to_fraction())

    def would_truncate(self, x) -> bool:
        return not all(is_divisible_by(part, self.divisor_value) for part in _parts(x))


@dataclass(frozen=True)
class CannotAssessRisk(TruncationRisk):
    """Оценка невозможна; op — остаточная последовательность, для которой нет правила."""

    op: Any = None

    kind: ClassVar[str] = "cannot_assess"

    def would_truncate(self, x) -> bool:
        return True


RiskDescriptor = Union[
    NoTruncationRisk,
    NonIntegerValuesRisk,
    AllNonzeroValuesRisk,
    NotDivisibleByRisk,
    CannotAssessRisk,
]


def _divisibility_risk(rep: Representation, divisor: Magnitude) -> TruncationRisk:
    """Риск "не кратно divisor"; делимость на 1 — это NonInteger (или ничего для целых)."""
    if divisor == ONE:
        if rep.real_part().is_integral:
            return NoTruncationRisk(rep)
        return NonIntegerValuesRisk(rep)
    return NotDivisibleByRisk(rep, divisor=divisor)


def _divisor_of(risk: TruncationRisk) -> Optional[int]:
    if isinstance(risk, NotDivisibleByRisk):
        return risk.divisor_value
    if isinstance(risk, NonIntegerValuesRisk):
        return 1
    return None


# =============================================================================
# РИСК ОДНОЙ ОПЕРАЦИИ
# =============================================================================


def _cast_risk(op: Cast) -> TruncationRisk:
    source = op.source.real_part()
    target = op.target.real_part()

    if not (source.is_arithmetic and target.is_arithmetic):
        return CannotAssessRisk(op.source, op=op)
    if source.is_floating_point and target.is_integral:
        return NonIntegerValuesRisk(op.source)
    return NoTruncationRisk(op.source)


def _scale_risk(op: Scale) -> TruncationRisk:
    rep = op.rep.real_part()
    m = op.factor

    if not rep.is_arithmetic:
        return CannotAssessRisk(op.rep, op=op)

    if m.is_rational:
        if m.is_integer or not rep.is_integral:
            return NoTruncationRisk(op.rep)
        return NotDivisibleByRisk(op.rep, divisor=m.denominator())

    if rep.is_integral:
        return AllNonzeroValuesRisk(op.rep)
    return NoTruncationRisk(op.rep)


# =============================================================================
# ПЕРЕСЧЁТ РИСКА ЧЕРЕЗ ОПЕРАЦИЮ
# =============================================================================


def _prepend(op: Operation, residual: Operation) -> OpSequence:
    if isinstance(residual, OpSequence):
        return residual.prepend(op)
    return OpSequence((op, residual))


def update_risk(op: Operation, downstream: TruncationRisk) -> TruncationRisk:
    """
    Пересчёт риска, вычисленного для хвоста последовательности, во вход op.

    Args:
        op: Операция, предшествующая хвосту
        downstream: Риск хвоста (в выходном представлении op)

    Returns:
        Риск хвоста, выраженный во входном представлении op
    """
    if isinstance(op, OpSequence):
        for inner in reversed(op.ops):
            downstream = update_risk(inner, downstream)
        return downstream

    rep = op_input(op)

    if isinstance(downstream, CannotAssessRisk):
        return CannotAssessRisk(rep, op=_prepend(op, downstream.op))

    if isinstance(op, Cast):
        if isinstance(downstream, NonIntegerValuesRisk) and rep.real_part().is_integral:
            return NoTruncationRisk(rep)
        return downstream.retag(rep)

    if isinstance(downstream, (NoTruncationRisk, AllNonzeroValuesRisk)):
        return downstream.retag(rep)

    divisor = _divisor_of(downstream)
    if not op.factor.is_rational:
        # Иррациональный множитель уничтожает информацию о делимости
        return AllNonzeroValuesRisk(rep)

    # x·M1 кратно n  <=>  x кратно n / |M1|; берём числитель этой дроби
    combined = (mag(divisor) / op.factor.abs()).numerator()
    return _divisibility_risk(rep, combined)


# =============================================================================
# ОБЪЕДИНЕНИЕ
# =============================================================================


def _union(own: TruncationRisk, downstream: TruncationRisk) -> TruncationRisk:
    if isinstance(downstream, CannotAssessRisk):
        return downstream
    if isinstance(own, CannotAssessRisk):
        return own

    rep = own.rep
    if isinstance(own, AllNonzeroValuesRisk) or isinstance(downstream, AllNonzeroValuesRisk):
        return AllNonzeroValuesRisk(rep)

    divisors = [d for d in (_divisor_of(own), _divisor_of(downstream)) if d is not None]
    if not divisors:
        return NoTruncationRisk(rep)
    return _divisibility_risk(rep, mag(math.lcm(*divisors)))


# =============================================================================
# PUBLIC API
# =============================================================================


@lru_cache(maxsize=4096)
def truncation_risk_for(op: Operation) -> TruncationRisk:
    """
    Дескриптор риска усечения для операции.

    Examples:
        >>> truncation_risk_for(Scale(INT16, mag(Fraction(1, 3))))
        NotDivisibleByRisk(rep=Representation(int16), divisor=Magnitude(3))
        >>> truncation_risk_for(Cast(FLOAT64, INT32))
        NonIntegerValuesRisk(rep=Representation(float64))
    """
    if isinstance(op, Cast):
        return _cast_risk(op)
    if isinstance(op, Scale):
        return _scale_risk(op)
    if not isinstance(op, OpSequence):
        raise TypeError(f"Not an operation: {op!r}")

    first, rest = op.ops[0], op.ops[1:]
    own = truncation_risk_for(first)
    if not rest:
        return own
    downstream = truncation_risk_for(OpSequence(rest))
    return _union(own, update_risk(first, downstream))
