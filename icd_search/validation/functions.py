"""
Validation Module Functions
Rejects inconsistent input combinations before anything is declared
"""

from typing import List

import pulumi

from icd_search.config import ADMINISTRATOR_ROLE, MODEL_ACTIVATION_PLAN, SearchClusterInput
from icd_search.exceptions import ConfigurationError
from icd_search.kms.functions import KEY_FAMILY_HS_CRYPTO, KEY_FAMILY_KMS, classify_key_family

ALLOWED_PLANS = ("enterprise", "platinum")
ALLOWED_SERVICE_ENDPOINTS = ("public", "private", "public-and-private")


def check_encryption_keys(inputs: SearchClusterInput) -> List[str]:
    """
    Check the key identifiers against the kms_encryption_enabled toggle

    Args:
        inputs: Deployment input

    Returns:
        List of rule violation messages
    """
    errors = []
    has_key = inputs.kms_key_crn is not None or inputs.backup_encryption_key_crn is not None

    if not inputs.kms_encryption_enabled and has_key:
        errors.append(
            "When 'kms_encryption_enabled' is false, 'kms_key_crn' and "
            "'backup_encryption_key_crn' must not be set."
        )

    if inputs.kms_encryption_enabled and not has_key:
        errors.append(
            "When 'kms_encryption_enabled' is true, at least one of 'kms_key_crn' "
            "or 'backup_encryption_key_crn' must be set."
        )

    if (inputs.kms_encryption_enabled
            and not inputs.skip_iam_authorization_policy
            and not inputs.existing_kms_instance_crn):
        errors.append(
            "When 'kms_encryption_enabled' is true and 'skip_iam_authorization_policy' "
            "is false, 'existing_kms_instance_crn' must be set."
        )

    if inputs.backup_encryption_key_crn is not None and inputs.use_default_backup_encryption_key:
        errors.append(
            "'backup_encryption_key_crn' cannot be set when "
            "'use_default_backup_encryption_key' is true."
        )

    return errors


def check_key_material(inputs: SearchClusterInput) -> List[str]:
    """
    Check that the encryption key can be created and authorized

    Args:
        inputs: Deployment input

    Returns:
        List of rule violation messages
    """
    if not inputs.kms_encryption_enabled:
        return []

    errors = []
    creates_key = inputs.kms_key_crn is None and inputs.backup_encryption_key_crn is not None

    # Without the skip, the missing instance is already reported by check_encryption_keys
    if creates_key and inputs.skip_iam_authorization_policy and not inputs.existing_kms_instance_crn:
        errors.append(
            "When 'kms_key_crn' is not set, 'existing_kms_instance_crn' must be set "
            "so the encryption key can be created."
        )

    if not inputs.skip_iam_authorization_policy:
        # A created key is classified by the instance that holds it
        key_source = inputs.existing_kms_instance_crn if creates_key else inputs.kms_key_crn
        family = classify_key_family(key_source)
        if key_source is not None and family not in (KEY_FAMILY_KMS, KEY_FAMILY_HS_CRYPTO):
            errors.append(
                f"'{key_source}' must belong to a kms or hs-crypto instance to authorize "
                f"access to it (got key service '{family}')."
            )

    return errors


def check_model_activation(inputs: SearchClusterInput) -> List[str]:
    """
    Check that the text embedding model can be activated

    Args:
        inputs: Deployment input

    Returns:
        List of rule violation messages
    """
    if not inputs.enable_elser_model:
        return []

    errors = []

    if inputs.plan != MODEL_ACTIVATION_PLAN:
        errors.append(
            f"When 'enable_elser_model' is true, 'plan' must be '{MODEL_ACTIVATION_PLAN}' "
            f"(got '{inputs.plan}')."
        )

    has_admin_credential = ADMINISTRATOR_ROLE in inputs.service_credential_names.values()
    if not has_admin_credential and inputs.admin_pass is None:
        errors.append(
            "When 'enable_elser_model' is true, either 'service_credential_names' must "
            f"contain a credential with the '{ADMINISTRATOR_ROLE}' role or 'admin_pass' must be set."
        )

    return errors


def check_cluster_settings(inputs: SearchClusterInput) -> List[str]:
    errors = []
    if inputs.plan not in ALLOWED_PLANS:
        errors.append(f"'plan' must be one of {', '.join(ALLOWED_PLANS)} (got '{inputs.plan}').")
    if inputs.service_endpoints not in ALLOWED_SERVICE_ENDPOINTS:
        errors.append(
            f"'service_endpoints' must be one of {', '.join(ALLOWED_SERVICE_ENDPOINTS)} "
            f"(got '{inputs.service_endpoints}')."
        )
    if inputs.members < 1:
        errors.append(f"'members' must be at least 1 (got {inputs.members}).")
    if inputs.service_credential_secrets and not inputs.existing_secrets_manager_instance_crn:
        errors.append(
            "'existing_secrets_manager_instance_crn' must be set when "
            "'service_credential_secrets' is not empty."
        )
    return errors


def validate_inputs(inputs: SearchClusterInput) -> List[str]:
    """
    Run every input rule and collect all violations

    Args:
        inputs: Deployment input

    Returns:
        List of messages, empty when the input is valid
    """
    return (
        check_encryption_keys(inputs)
        + check_key_material(inputs)
        + check_model_activation(inputs)
        + check_cluster_settings(inputs)
    )


def ensure_valid(inputs: SearchClusterInput) -> None:
    """Raise ConfigurationError listing every failed rule"""
    errors = validate_inputs(inputs)
    if errors:
        for message in errors:
            pulumi.log.error(message)
        raise ConfigurationError(errors)
