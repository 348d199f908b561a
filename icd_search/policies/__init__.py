"""
Policies Module
Authorization policies and the settling step that follows each one
"""

from .functions import (
    SETTLING_DELAY_SECONDS,
    AuthorizationPolicySpec,
    SettlingStrategy,
    FixedDelaySettle,
    kms_authorization_policy,
    secrets_manager_authorization_policy,
    create_authorization_policy,
)

__all__ = [
    "SETTLING_DELAY_SECONDS",
    "AuthorizationPolicySpec",
    "SettlingStrategy",
    "FixedDelaySettle",
    "kms_authorization_policy",
    "secrets_manager_authorization_policy",
    "create_authorization_policy",
]
