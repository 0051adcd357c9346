"""
Contract Validation Module

Модуль для валидации JSON контрактов отчётов о конверсиях.
"""

from .validators import (
    ContractValidator,
    ConversionReportValidator,
    SchemaLoader,
    validate_conversion_report,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "ConversionReportValidator",
    # Functions
    "validate_conversion_report",
]
