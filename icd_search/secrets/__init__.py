"""
Secrets Module
Secrets Manager mirroring of service credentials
"""

from .functions import SecretsManagerMirror, role_crn

__all__ = ["SecretsManagerMirror", "role_crn"]
