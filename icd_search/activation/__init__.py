"""
Activation Module
Two-step text embedding model activation
"""

from .functions import activate_model

__all__ = ["activate_model"]
