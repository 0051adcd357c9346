"""
Core math modules

Точные численные примитивы и точный масштабный множитель (Magnitude).
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    ExactValue,
    # Integer arithmetic
    divide_toward_zero,
    wrap_integer,
    # Exact comparisons
    exact_value,
    is_divisible_by,
    is_integral_value,
)

# Magnitude
from src.core.math.magnitude import (
    ONE,
    PI,
    PI_CONSTANT,
    IrrationalConstant,
    Magnitude,
    MagRepresentationOutcome,
    MagRepresentationResult,
    mag,
    root,
    sqrt,
)

__all__ = [
    # Numerical Safeguards
    "ExactValue",
    "divide_toward_zero",
    "wrap_integer",
    "exact_value",
    "is_divisible_by",
    "is_integral_value",
    # Magnitude
    "ONE",
    "PI",
    "PI_CONSTANT",
    "IrrationalConstant",
    "Magnitude",
    "MagRepresentationOutcome",
    "MagRepresentationResult",
    "mag",
    "root",
    "sqrt",
]
