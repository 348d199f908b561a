"""
KMS Module
Encryption key selection, backup key fallback and key creation
"""

from .functions import (
    CrnParts,
    EncryptionPlan,
    KeyProvisioner,
    parse_crn,
    classify_key_family,
    resolve_backup_key,
    resolve_encryption_plan,
)

__all__ = [
    "CrnParts",
    "EncryptionPlan",
    "KeyProvisioner",
    "parse_crn",
    "classify_key_family",
    "resolve_backup_key",
    "resolve_encryption_plan",
]
