"""
Composer Module Functions
Assembles the whole search cluster deployment in dependency order
"""

from typing import Any, Dict, Mapping, Optional

import pulumi

from icd_search.activation import activate_model
from icd_search.backend import DeclaredResource, ProvisioningBackend
from icd_search.cbr import create_cbr_rules
from icd_search.config import ADMINISTRATOR_ROLE, SERVICE_NAME, SearchClusterInput
from icd_search.credentials import (
    AdminCredentials,
    activation_connection_string,
    build_connection_object,
    create_service_credentials,
    resolve_admin_credentials,
    service_credentials_json,
)
from icd_search.exceptions import ConfigurationError
from icd_search.kms import CrnParts, EncryptionPlan, parse_crn, resolve_encryption_plan
from icd_search.kms.functions import KEY_FAMILY_HS_CRYPTO, KEY_FAMILY_KMS
from icd_search.policies import (
    SettlingStrategy,
    create_authorization_policy,
    kms_authorization_policy,
    secrets_manager_authorization_policy,
)
from icd_search.policies.functions import KMS_PROVIDER
from icd_search.secrets import SecretsManagerMirror
from icd_search.topology import TopologyPlan, auto_scaling_block, select_topology
from icd_search.validation import ensure_valid

# Changing any of these replaces the cluster instead of updating it
IMMUTABLE_INSTANCE_ATTRIBUTES = ["version", "key_protect_key", "backup_encryption_key_crn"]


def parse_instance_identifiers(inputs: SearchClusterInput) -> Dict[str, Optional[CrnParts]]:
    """
    Parse the CRNs of the existing key management and Secrets Manager instances

    Raises:
        MalformedIdentifier: a CRN could not be parsed
    """
    return {
        "kms": parse_crn(inputs.existing_kms_instance_crn) if inputs.existing_kms_instance_crn else None,
        "secrets_manager": (
            parse_crn(inputs.existing_secrets_manager_instance_crn)
            if inputs.existing_secrets_manager_instance_crn else None
        ),
    }


def create_resource_group(backend: ProvisioningBackend, inputs: SearchClusterInput) -> Dict[str, Any]:
    """Use the existing resource group when given, otherwise create one"""
    if inputs.existing_resource_group_id:
        return {"resource_group": None, "resource_group_id": inputs.existing_resource_group_id}

    resource_group = backend.declare(
        "resource_group", inputs.effective_resource_group_name,
        {"name": inputs.effective_resource_group_name},
    )
    return {
        "resource_group": resource_group,
        "resource_group_id": backend.output(resource_group, "id"),
    }


def create_kms_authorization(backend: ProvisioningBackend, inputs: SearchClusterInput,
                             encryption: EncryptionPlan,
                             settle: Optional[SettlingStrategy] = None) -> Optional[Dict[str, DeclaredResource]]:
    """
    Grant the search service read access to the encryption key instance

    Returns:
        Dict with policy and settling step, or None when not required
    """
    if not encryption.requires_authorization_policy:
        pulumi.log.info("Skipping key management authorization policy")
        return None

    if encryption.key_service_family not in (KEY_FAMILY_KMS, KEY_FAMILY_HS_CRYPTO):
        raise ConfigurationError(
            f"Cannot authorize access to key '{encryption.primary_key_crn}': "
            f"key service '{encryption.key_service_family}' is neither kms nor hs-crypto."
        )

    return create_authorization_policy(
        backend, f"{inputs.name}-kms-policy",
        kms_authorization_policy(encryption.key_service_family, encryption.kms_instance_guid),
        settle=settle,
        depends_on=[encryption.provisioned_key],
        provider=KMS_PROVIDER if encryption.requires_cross_account_policy else None,
    )


def instance_attributes(inputs: SearchClusterInput, resource_group_id: Any,
                        encryption: EncryptionPlan, topology: TopologyPlan) -> Dict[str, Any]:
    """Desired state of the cluster instance"""
    attributes = {
        "name": inputs.name,
        "plan": inputs.plan,
        "location": inputs.region,
        "service": SERVICE_NAME,
        "version": inputs.elasticsearch_version,
        "resource_group_id": resource_group_id,
        "service_endpoints": inputs.service_endpoints,
        "tags": list(inputs.tags),
        "key_protect_key": encryption.primary_key_crn,
        "backup_encryption_key_crn": encryption.backup_key_crn,
        "groups": [topology.to_group()],
        "adminpassword": inputs.admin_pass,
        "users": [
            {"name": user.name, "password": user.password, "type": user.type, "role": user.role}
            for user in inputs.users
        ],
        "backup_id": inputs.backup_crn,
        "deletion_protection": inputs.deletion_protection,
    }

    auto_scaling = auto_scaling_block(inputs.auto_scaling)
    if auto_scaling is not None:
        attributes["auto_scaling"] = auto_scaling

    return attributes


def create_access_tags(backend: ProvisioningBackend, inputs: SearchClusterInput,
                       instance: DeclaredResource) -> Optional[DeclaredResource]:
    if not inputs.access_tags:
        return None
    return backend.declare(
        "resource_tag", f"{inputs.name}-access-tags",
        {
            "resource_id": backend.output(instance, "crn"),
            "tags": list(inputs.access_tags),
            "tag_type": "access",
        },
        depends_on=[instance],
    )


def _admin_source(credential_names: Mapping[str, str], admin_pass: Optional[str]) -> Optional[str]:
    """Which administrator login model activation will use, decided from plain inputs"""
    if ADMINISTRATOR_ROLE in credential_names.values():
        return "service_credential"
    if admin_pass is not None:
        return "admin_pass"
    return None


def _activation_endpoint(connection: Mapping[str, Any], connectionstrings: Any) -> Dict[str, Any]:
    if connection.get("hostname") is not None:
        return {"hostname": connection["hostname"], "port": connection["port"]}
    host = ((connectionstrings or [{}])[0].get("hosts") or [{}])[0]
    return {"hostname": host.get("hostname"), "port": host.get("port")}


def create_model_activation(backend: ProvisioningBackend, inputs: SearchClusterInput,
                            instance: DeclaredResource, credentials: Dict[str, DeclaredResource],
                            connection: Any) -> Optional[Dict[str, DeclaredResource]]:
    """
    Install and start the text embedding model when enabled

    Returns:
        Dict with install and start steps, or None when not enabled
    """
    if not inputs.enable_elser_model:
        return None

    if _admin_source(inputs.service_credential_names, inputs.admin_pass) is None:
        # Unreachable once the input rules have passed
        pulumi.log.warn("No administrator credentials, model activation skipped")
        return None

    names = inputs.service_credential_names
    admin_pass = inputs.admin_pass

    def connection_string(values: Dict[str, Any]) -> Optional[str]:
        admin: AdminCredentials = resolve_admin_credentials(names, values["connection"], admin_pass)
        endpoint = _activation_endpoint(values["connection"], values["connectionstrings"])
        return activation_connection_string(admin, endpoint["hostname"], endpoint["port"])

    es_url = backend.apply(
        {
            "connection": connection,
            "connectionstrings": backend.output(instance, "connectionstrings"),
        },
        connection_string,
    )

    return activate_model(
        backend, inputs.name, es_url, inputs.elser_model_type,
        script_dir=inputs.elser_script_dir,
        depends_on=[instance, *credentials.values()],
    )


def create_secret_mirrors(backend: ProvisioningBackend, inputs: SearchClusterInput,
                          instance: DeclaredResource, credentials: Dict[str, DeclaredResource],
                          secrets_manager: Optional[CrnParts],
                          settle: Optional[SettlingStrategy] = None) -> Dict[str, Any]:
    """
    Authorize Secrets Manager on the cluster, then mirror the credential secrets

    Returns:
        Dict with the policy (or None) and the declared secrets
    """
    if not inputs.service_credential_secrets:
        return {"policy": None, "secrets": []}

    policy = None
    if inputs.skip_es_sm_auth_policy:
        pulumi.log.info("Skipping Secrets Manager authorization policy")
    else:
        policy = create_authorization_policy(
            backend, f"{inputs.name}-sm-policy",
            secrets_manager_authorization_policy(secrets_manager.guid, backend.output(instance, "guid")),
            settle=settle,
            depends_on=[instance],
        )

    mirror = SecretsManagerMirror(backend, inputs.name, secrets_manager.guid, secrets_manager.region)
    secrets = mirror.mirror_credentials(
        inputs.service_credential_secrets,
        backend.output(instance, "crn"),
        depends_on=[instance, policy["ready"] if policy else None, *credentials.values()],
    )

    return {"policy": policy, "secrets": secrets}


def compose_search_cluster(inputs: SearchClusterInput,
                           backend: ProvisioningBackend,
                           settle: Optional[SettlingStrategy] = None) -> Dict[str, Any]:
    """
    Validate the input and declare the complete deployment

    Order: resource group, key material, key authorization and settling step,
    cluster instance, access tags, restriction rules, service credentials,
    Secrets Manager authorization and settling step, secret mirrors, model
    activation (install then start).

    Args:
        inputs: Deployment input
        backend: Provisioning backend receiving every declaration
        settle: Settling strategy used after each authorization policy

    Returns:
        Dict with deployment outputs and, under underscore keys, the declared resources

    Raises:
        ConfigurationError: input rules failed; nothing was declared
        MalformedIdentifier: a CRN could not be parsed; nothing was declared
        ProvisioningError / DependencyAborted: raised by the backend
    """
    ensure_valid(inputs)
    # Malformed CRNs fail here, before the first declaration
    identifiers = parse_instance_identifiers(inputs)

    topology = select_topology(
        inputs.member_host_flavor,
        inputs.member_memory_mb,
        inputs.member_disk_mb,
        inputs.member_cpu_count,
        inputs.members,
    )
    pulumi.log.info(f"Using {topology.kind} member group for '{inputs.name}'")

    # Resource group
    resource_group_result = create_resource_group(backend, inputs)

    # Encryption key and its authorization
    encryption = resolve_encryption_plan(inputs, backend)
    kms_authorization = create_kms_authorization(backend, inputs, encryption, settle)

    # Cluster instance
    instance = backend.declare(
        "database", inputs.name,
        instance_attributes(inputs, resource_group_result["resource_group_id"], encryption, topology),
        depends_on=[
            resource_group_result["resource_group"],
            encryption.provisioned_key,
            kms_authorization["ready"] if kms_authorization else None,
        ],
        replace_on_changes=IMMUTABLE_INSTANCE_ATTRIBUTES,
    )

    access_tags = create_access_tags(backend, inputs, instance)
    cbr_rules = create_cbr_rules(
        backend, inputs.name, inputs.cbr_rules,
        backend.output(instance, "guid"),
        depends_on=[instance],
    )

    # Credentials
    credentials = create_service_credentials(
        backend, inputs.name, inputs.service_credential_names, instance
    )
    names = inputs.service_credential_names
    raw_credentials = {name: backend.output(cred, "credentials") for name, cred in credentials.items()}
    if raw_credentials:
        connection = backend.apply(raw_credentials, lambda values: build_connection_object(names, values))
        credentials_json = backend.apply(raw_credentials, service_credentials_json)
    else:
        connection = build_connection_object(names, {})
        credentials_json = {}

    secret_mirrors = create_secret_mirrors(
        backend, inputs, instance, credentials, identifiers["secrets_manager"], settle
    )
    activation = create_model_activation(backend, inputs, instance, credentials, connection)

    return {
        "id": backend.output(instance, "id"),
        "guid": backend.output(instance, "guid"),
        "crn": backend.output(instance, "crn"),
        "version": backend.output(instance, "version"),
        "adminuser": backend.output(instance, "adminuser"),
        "resource_group_id": resource_group_result["resource_group_id"],
        "hostname": backend.apply({"connection": connection}, lambda v: v["connection"]["hostname"]),
        "port": backend.apply({"connection": connection}, lambda v: v["connection"]["port"]),
        "certificate_base64": backend.apply({"connection": connection}, lambda v: v["connection"]["certificate"]),
        "service_credentials_json": credentials_json,
        "service_credentials_object": connection,
        "cbr_rule_ids": [backend.output(rule, "id") for rule in cbr_rules],
        "secrets_manager_secrets": {
            secret.name: backend.output(secret, "crn")
            for secret in secret_mirrors["secrets"]
        },
        "kms_key_crn": encryption.primary_key_crn,
        "backup_encryption_key_crn": encryption.backup_key_crn,
        "key_service_family": encryption.key_service_family,
        "topology": topology,
        # Keep references to resources for dependencies
        "_resource_group": resource_group_result["resource_group"],
        "_encryption": encryption,
        "_kms_authorization": kms_authorization,
        "_instance": instance,
        "_access_tags": access_tags,
        "_cbr_rules": cbr_rules,
        "_credentials": credentials,
        "_secrets_manager_policy": secret_mirrors["policy"],
        "_secrets": secret_mirrors["secrets"],
        "_activation": activation,
    }
