"""
KMS Module Functions
Resolves the encryption key, the backup key and the key service family
Creates a key ring and key when no existing key is supplied
"""

from typing import Any, NamedTuple, Optional

import pulumi

from icd_search.backend import DeclaredResource, ProvisioningBackend
from icd_search.config import SearchClusterInput
from icd_search.exceptions import ConfigurationError, MalformedIdentifier

CRN_DELIMITER = ":"
CRN_GUID_OFFSET = -3
CRN_REGION_OFFSET = -5

KEY_FAMILY_KMS = "kms"
KEY_FAMILY_HS_CRYPTO = "hs-crypto"
KEY_FAMILY_UNRECOGNIZED = "unrecognized"
KEY_FAMILY_NONE = "none"


class CrnParts(NamedTuple):
    guid: str
    region: str


class EncryptionPlan(NamedTuple):
    primary_key_crn: Any
    backup_key_crn: Any
    key_service_family: str
    kms_instance_guid: Optional[str]
    kms_region: Optional[str]
    requires_authorization_policy: bool
    requires_cross_account_policy: bool
    provisioned_key: Optional[DeclaredResource] = None


def parse_crn(crn: str) -> CrnParts:
    """
    Extract the instance GUID and region from a CRN

    Args:
        crn: Colon-delimited identifier, GUID third and region fifth from the end

    Returns:
        CrnParts with guid and region

    Raises:
        MalformedIdentifier: fewer than five fields
    """
    if not crn:
        raise MalformedIdentifier(str(crn), "identifier is empty")
    fields = crn.split(CRN_DELIMITER)
    if len(fields) < abs(CRN_REGION_OFFSET):
        raise MalformedIdentifier(
            crn, f"expected at least {abs(CRN_REGION_OFFSET)} fields, found {len(fields)}"
        )
    return CrnParts(guid=fields[CRN_GUID_OFFSET], region=fields[CRN_REGION_OFFSET])


def classify_key_family(key_crn: Optional[str]) -> str:
    """
    Identify the key management service that owns a key

    Case-sensitive substring match, "kms" checked before "hs-crypto".
    """
    if key_crn is None:
        return KEY_FAMILY_NONE
    if KEY_FAMILY_KMS in key_crn:
        return KEY_FAMILY_KMS
    if KEY_FAMILY_HS_CRYPTO in key_crn:
        return KEY_FAMILY_HS_CRYPTO
    return KEY_FAMILY_UNRECOGNIZED


def resolve_backup_key(use_default_backup_key: bool,
                       backup_key_crn: Optional[str],
                       primary_key_crn: Optional[str]) -> Optional[str]:
    """
    Pick the key used to encrypt backups

    Args:
        use_default_backup_key: Use the service-managed key for backups
        backup_key_crn: Explicit backup key, if any
        primary_key_crn: Resolved primary key, the fallback

    Returns:
        Backup key CRN, or None for the service default. None is also returned
        when neither an explicit backup nor a primary key exists.
    """
    if use_default_backup_key:
        return None
    if backup_key_crn is not None:
        return backup_key_crn
    return primary_key_crn


class KeyProvisioner:
    """
    Creates one key ring holding one key in a key management instance.

    Resource names derive only from the ring and key names, so a repeated run
    resolves to the same declarations.
    """

    def __init__(self, backend: ProvisioningBackend, instance_guid: str,
                 endpoint_type: str = "private"):
        self.backend = backend
        self.instance_guid = instance_guid
        self.endpoint_type = endpoint_type

    def ensure_key(self, ring_name: str, key_name: str, region: str,
                   rotation_months: int, standard_key: bool) -> DeclaredResource:
        pulumi.log.info(f"Creating key '{key_name}' in key ring '{ring_name}' ({region})")

        key_ring = self.backend.declare(
            "key_ring", ring_name,
            {
                "instance_id": self.instance_guid,
                "key_ring_id": ring_name,
                "endpoint_type": self.endpoint_type,
                "region": region,
            },
        )

        return self.backend.declare(
            "kms_key", key_name,
            {
                "instance_id": self.instance_guid,
                "key_name": key_name,
                "key_ring_id": ring_name,
                "standard_key": standard_key,
                "endpoint_type": self.endpoint_type,
                "force_delete": True,
                "region": region,
                "rotation": {"interval_month": rotation_months},
            },
            depends_on=[key_ring],
        )


def resolve_encryption_plan(inputs: SearchClusterInput,
                            backend: Optional[ProvisioningBackend] = None) -> EncryptionPlan:
    """
    Resolve every encryption-related value for one deployment

    Args:
        inputs: Validated deployment input
        backend: Needed only when a key has to be created

    Returns:
        EncryptionPlan

    Raises:
        MalformedIdentifier: existing_kms_instance_crn cannot be parsed
        ConfigurationError: a key must be created but no instance is known
    """
    instance = parse_crn(inputs.existing_kms_instance_crn) if inputs.existing_kms_instance_crn else None

    provisioned_key = None
    if not inputs.kms_encryption_enabled:
        primary_key_crn = None
    elif inputs.kms_key_crn is not None:
        primary_key_crn = inputs.kms_key_crn
    else:
        if instance is None:
            raise ConfigurationError(
                "'existing_kms_instance_crn' is required to create an encryption key "
                "when 'kms_key_crn' is not set."
            )
        if backend is None:
            raise ConfigurationError("A provisioning backend is required to create an encryption key.")
        provisioner = KeyProvisioner(backend, instance.guid)
        provisioned_key = provisioner.ensure_key(
            inputs.effective_key_ring_name,
            inputs.effective_key_name,
            instance.region,
            inputs.key_rotation_interval_months,
            inputs.standard_key,
        )
        primary_key_crn = backend.output(provisioned_key, "crn")

    # A created key's CRN is only known once the key exists; classify it by
    # the service of the instance that holds it.
    if provisioned_key is not None:
        family = classify_key_family(inputs.existing_kms_instance_crn)
    else:
        family = classify_key_family(primary_key_crn)

    requires_policy = inputs.kms_encryption_enabled and not inputs.skip_iam_authorization_policy
    requires_cross_account = (
        not inputs.skip_iam_authorization_policy and inputs.ibmcloud_kms_api_key is not None
    )

    return EncryptionPlan(
        primary_key_crn=primary_key_crn,
        backup_key_crn=resolve_backup_key(
            inputs.use_default_backup_encryption_key,
            inputs.backup_encryption_key_crn,
            primary_key_crn,
        ),
        key_service_family=family,
        kms_instance_guid=instance.guid if instance else None,
        kms_region=instance.region if instance else None,
        requires_authorization_policy=requires_policy,
        requires_cross_account_policy=requires_cross_account,
        provisioned_key=provisioned_key,
    )
