"""
Core domain descriptors, exact mathematical primitives, and contracts.

This module contains the foundational building blocks of the conversion
analysis engine that are independent of any particular conversion.
"""
