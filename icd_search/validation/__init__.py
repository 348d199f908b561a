"""
Validation Module
Input rules checked before any resource is declared
"""

from .functions import validate_inputs, ensure_valid

__all__ = ["validate_inputs", "ensure_valid"]
