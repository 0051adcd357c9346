"""
Conversion Guard — политика вызывающего слоя над анализом конверсии

Разделение фаз:
1. Определение конверсии (Conversion / conversion_for): сборка последовательности,
   анализ границ переполнения и риска усечения. Неподдерживаемые комбинации
   представлений отвергаются здесь (OverflowBoundaryNotImplementedError).
2. Конверсия значения (evaluate / convert): дешёвая проверка значения против
   заранее вычисленных границ и дескриптора риска, затем выполнение.

Порядок проверок в evaluate():
1. Переполнение вниз (overflow_below)
2. Переполнение вверх (overflow_above)
3. Усечение (truncation)
Каждая проверка отключается через ConversionPolicy.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Анализ выполняется один раз на (old, new, factor): conversion_for кэширует Conversion
2. Заблокированное значение не выполняется (GuardResult.value = None)
3. convert() бросает ConversionRiskError только по решению политики
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from src.conversion.builder import build_conversion
from src.conversion.operations import apply_op, describe_op
from src.conversion.overflow_boundary import (
    can_overflow_above,
    can_overflow_below,
    max_good,
    min_good,
    real_value,
)
from src.conversion.truncation_risk import truncation_risk_for
from src.core.domain.representation import Representation
from src.core.math.magnitude import Magnitude
from src.core.math.numerical_safeguards import exact_value

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ConversionRiskError(ArithmeticError):
    """Политика запретила конверсию значения."""

    pass


class ConversionOverflowError(ConversionRiskError):
    """Значение переполнит целевое представление."""

    pass


class ConversionTruncationError(ConversionRiskError):
    """Значение потеряет точность при конверсии."""

    pass


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class ConversionPolicy:
    """Какие риски блокируют конверсию значения."""

    check_overflow: bool = True
    check_truncation: bool = True


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class GuardResult:
    """Результат проверки значения."""

    conversion_allowed: bool
    block_reason: str  # "", "overflow_below", "overflow_above", "truncation"

    # Сконвертированное значение (None, если заблокировано)
    value: Any

    # Детали
    details: str


# =============================================================================
# CONVERSION
# =============================================================================


class Conversion:
    """
    Проанализированная конверсия old → new с множителем factor.

    Attributes:
        operation: Последовательность операций (build_conversion)
        min_good / max_good: Границы входа или CANNOT_OVERFLOW
        can_overflow_below / can_overflow_above: Возможно ли переполнение
        risk: Дескриптор риска усечения во входном представлении
    """

    def __init__(self, old: Representation, new: Representation, factor: Magnitude):
        self.old = old
        self.new = new
        self.factor = factor

        self.operation = build_conversion(old, new, factor)

        self.min_good = min_good(self.operation)
        self.max_good = max_good(self.operation)
        self.can_overflow_below = can_overflow_below(self.operation)
        self.can_overflow_above = can_overflow_above(self.operation)
        self.risk = truncation_risk_for(self.operation)

        # Точные границы для проверки значений без повторного анализа
        self._lower_exact = exact_value(self.min_good) if self.can_overflow_below else None
        self._upper_exact = exact_value(self.max_good) if self.can_overflow_above else None

        logger.debug(
            "Analyzed conversion %s: min_good=%r max_good=%r risk=%s",
            self,
            self.min_good,
            self.max_good,
            self.risk.kind,
        )

    def __repr__(self) -> str:
        return f"Conversion({self.old.name} -> {self.new.name} by {self.factor})"

    @property
    def steps(self) -> list[str]:
        return describe_op(self.operation)

    def is_too_small(self, x) -> bool:
        return self._lower_exact is not None and exact_value(real_value(x)) < self._lower_exact

    def is_too_large(self, x) -> bool:
        return self._upper_exact is not None and exact_value(real_value(x)) > self._upper_exact

    def would_overflow(self, x) -> bool:
        return self.is_too_small(x) or self.is_too_large(x)

    def would_truncate(self, x) -> bool:
        return self.risk.would_truncate(x)

    def apply(self, x):
        """Выполнение без проверок (вызывающий отвечает за would_overflow)."""
        return apply_op(self.operation, x)

    def evaluate(self, x, policy: ConversionPolicy | None = None) -> GuardResult:
        """
        Проверка значения x по политике и выполнение, если оно разрешено.

        Args:
            x: Значение во входном представлении old
            policy: Политика (по умолчанию проверяются оба риска)

        Returns:
            GuardResult с block_reason и сконвертированным значением
        """
        policy = policy or ConversionPolicy()

        if policy.check_overflow:
            if self.is_too_small(x):
                return self._blocked_result(
                    reason="overflow_below",
                    details=f"{x!r} < min_good {self.min_good!r}",
                )
            if self.is_too_large(x):
                return self._blocked_result(
                    reason="overflow_above",
                    details=f"{x!r} > max_good {self.max_good!r}",
                )

        if policy.check_truncation and self.risk.would_truncate(x):
            return self._blocked_result(
                reason="truncation",
                details=f"{x!r} is lost under {self.risk.kind} ({self.risk.rep.name})",
            )

        return GuardResult(
            conversion_allowed=True,
            block_reason="",
            value=self.apply(x),
            details=f"{self!r}: ok",
        )

    def convert(self, x, policy: ConversionPolicy | None = None):
        """
        Конверсия значения с проверкой политики.

        Raises:
            ConversionOverflowError: Значение вне [min_good, max_good]
            ConversionTruncationError: Значение теряет точность
        """
        result = self.evaluate(x, policy)
        if result.conversion_allowed:
            return result.value

        if result.block_reason == "truncation":
            raise ConversionTruncationError(result.details)
        raise ConversionOverflowError(result.details)

    def _blocked_result(self, reason: str, details: str) -> GuardResult:
        logger.info("Conversion %r blocked: %s (%s)", self, reason, details)
        return GuardResult(
            conversion_allowed=False,
            block_reason=reason,
            value=None,
            details=f"{self!r}: {details}",
        )


@lru_cache(maxsize=1024)
def conversion_for(old: Representation, new: Representation, factor: Magnitude) -> Conversion:
    """Conversion для (old, new, factor); анализ выполняется один раз."""
    return Conversion(old, new, factor)
