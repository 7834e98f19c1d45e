"""
Test helpers package for Appforge

Provides reusable helpers for:
- Test data factories (factories.py)
- Event binding readers (definitions.py)
"""
