"""
Domain value objects.

Contains the numeric storage descriptors (Representation) and the standard
representation table.
"""

from src.core.domain.representation import (
    COMPLEX64,
    COMPLEX128,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    PROMOTION_FLOOR,
    STANDARD_REPRESENTATIONS,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    Category,
    Representation,
    UnknownRepresentationError,
    non_arithmetic,
    promoted_common,
    representation_for,
)

__all__ = [
    # Types
    "Category",
    "Representation",
    "UnknownRepresentationError",
    # Standard representations
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "FLOAT32",
    "FLOAT64",
    "COMPLEX64",
    "COMPLEX128",
    "STANDARD_REPRESENTATIONS",
    "PROMOTION_FLOOR",
    # Functions
    "non_arithmetic",
    "promoted_common",
    "representation_for",
]
