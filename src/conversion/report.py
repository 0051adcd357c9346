"""
ConversionReport — статический отчёт о конверсии

Immutable Pydantic модель, описывающая проанализированную конверсию:
представления, множитель, шаги, границы переполнения и риск усечения.
Соответствует схеме src/core/contracts/schema/conversion_report.json.

Границы сериализуются как JSON числа; CANNOT_OVERFLOW → null.
"""

from enum import Enum
from typing import Optional, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator

from src.conversion.guard import Conversion
from src.conversion.overflow_boundary import CANNOT_OVERFLOW
from src.conversion.truncation_risk import NotDivisibleByRisk


# =============================================================================
# ENUMS
# =============================================================================


class RiskKind(str, Enum):
    """Вид риска усечения"""

    NO_RISK = "no_risk"
    NON_INTEGER_VALUES = "non_integer_values"
    ALL_NONZERO_VALUES = "all_nonzero_values"
    NOT_DIVISIBLE_BY = "not_divisible_by"
    CANNOT_ASSESS = "cannot_assess"


# =============================================================================
# REPORT MODEL
# =============================================================================


class ConversionReport(BaseModel):
    """
    Отчёт о конверсии old → new с множителем factor.

    Immutable модель (frozen=True): строится один раз на определение конверсии.
    """

    # Конверсия
    old_rep: str = Field(..., min_length=1, description="Исходное представление (например, 'int16')")
    new_rep: str = Field(..., min_length=1, description="Целевое представление")
    factor: str = Field(..., min_length=1, description="Точный множитель (например, '1/3')")
    factor_is_rational: bool = Field(..., description="Множитель рациональный")
    steps: tuple[str, ...] = Field(..., min_length=1, description="Элементарные операции по порядку")

    # Переполнение (None: переполнение в этом направлении невозможно)
    min_good: Optional[Union[int, float]] = Field(..., description="Наименьший безопасный вход")
    max_good: Optional[Union[int, float]] = Field(..., description="Наибольший безопасный вход")
    can_overflow_below: bool
    can_overflow_above: bool

    # Усечение
    risk_kind: RiskKind = Field(..., description="Вид риска усечения")
    risk_rep: str = Field(..., min_length=1, description="Представление дескриптора риска")
    risk_divisor: Optional[int] = Field(
        None, validate_default=True, description="Делитель для not_divisible_by"
    )

    model_config = {"frozen": True}  # Immutable

    @field_validator("risk_divisor")
    @classmethod
    def validate_divisor_matches_kind(cls, v: Optional[int], info) -> Optional[int]:
        """Делитель задан (>= 2) тогда и только тогда, когда риск not_divisible_by"""
        kind = info.data.get("risk_kind")
        if kind == RiskKind.NOT_DIVISIBLE_BY:
            if v is None or v < 2:
                raise ValueError(f"risk_divisor must be an integer >= 2 for {kind.value}, got {v}")
        elif v is not None:
            raise ValueError(f"risk_divisor must be None for risk_kind {kind}, got {v}")
        return v

    def to_contract(self) -> dict:
        """JSON-совместимый dict для conversion_report контракта."""
        return self.model_dump(mode="json")


# =============================================================================
# BUILDER
# =============================================================================


def _bound_to_json(bound) -> Optional[Union[int, float]]:
    if bound is CANNOT_OVERFLOW:
        return None
    if isinstance(bound, (int, np.integer)):
        return int(bound)
    return float(bound)


def build_report(conversion: Conversion) -> ConversionReport:
    """Отчёт по проанализированной конверсии."""
    risk = conversion.risk
    divisor = risk.divisor_value if isinstance(risk, NotDivisibleByRisk) else None

    return ConversionReport(
        old_rep=conversion.old.name,
        new_rep=conversion.new.name,
        factor=str(conversion.factor),
        factor_is_rational=conversion.factor.is_rational,
        steps=tuple(conversion.steps),
        min_good=_bound_to_json(conversion.min_good),
        max_good=_bound_to_json(conversion.max_good),
        can_overflow_below=conversion.can_overflow_below,
        can_overflow_above=conversion.can_overflow_above,
        risk_kind=RiskKind(risk.kind),
        risk_rep=risk.rep.name,
        risk_divisor=divisor,
    )
