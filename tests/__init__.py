"""
Test suite for mpx

Contains:
- tests/unit/          : Unit tests for individual modules
"""
