"""
Test suite for conversion risk analysis

Contains:
- tests/unit/          : Unit tests for individual modules
"""
