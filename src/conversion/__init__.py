"""Conversion — анализ рисков конверсии числовых значений.

- operations: абстрактные операции Cast / Scale / OpSequence
- overflow_boundary: границы входа, безопасные от переполнения
- truncation_risk: классификация потери точности
- builder: сборка конверсии old → new с множителем
- guard: политика проверки значений и выполнение
- report: статический отчёт (pydantic) для conversion_report контракта
"""

from .builder import application_strategy_for, build_conversion
from .guard import (
    Conversion,
    ConversionOverflowError,
    ConversionPolicy,
    ConversionRiskError,
    ConversionTruncationError,
    GuardResult,
    conversion_for,
)
from .operations import (
    Cast,
    OpSequence,
    OpSequenceMismatchError,
    Scale,
    apply_op,
    describe_op,
    op_input,
    op_output,
)
from .overflow_boundary import (
    CANNOT_OVERFLOW,
    Limits,
    OverflowBoundaryNotImplementedError,
    can_overflow_above,
    can_overflow_below,
    is_too_large,
    is_too_small,
    limits_for,
    max_good,
    max_possible,
    min_good,
    min_possible,
    would_input_produce_overflow,
)
from .report import ConversionReport, RiskKind, build_report
from .truncation_risk import (
    AllNonzeroValuesRisk,
    CannotAssessRisk,
    NonIntegerValuesRisk,
    NoTruncationRisk,
    NotDivisibleByRisk,
    TruncationRisk,
    truncation_risk_for,
    update_risk,
)

__all__ = [
    # Operations
    "Cast",
    "Scale",
    "OpSequence",
    "OpSequenceMismatchError",
    "op_input",
    "op_output",
    "apply_op",
    "describe_op",
    # Overflow boundary
    "CANNOT_OVERFLOW",
    "Limits",
    "OverflowBoundaryNotImplementedError",
    "min_good",
    "max_good",
    "min_possible",
    "max_possible",
    "can_overflow_below",
    "can_overflow_above",
    "is_too_small",
    "is_too_large",
    "would_input_produce_overflow",
    "limits_for",
    # Truncation risk
    "TruncationRisk",
    "NoTruncationRisk",
    "NonIntegerValuesRisk",
    "AllNonzeroValuesRisk",
    "NotDivisibleByRisk",
    "CannotAssessRisk",
    "truncation_risk_for",
    "update_risk",
    # Builder
    "application_strategy_for",
    "build_conversion",
    # Guard
    "ConversionPolicy",
    "Conversion",
    "GuardResult",
    "ConversionRiskError",
    "ConversionOverflowError",
    "ConversionTruncationError",
    "conversion_for",
    # Report
    "ConversionReport",
    "RiskKind",
    "build_report",
]
