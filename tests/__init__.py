"""
Test suite for the tranche sale purchase engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
