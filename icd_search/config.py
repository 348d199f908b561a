"""
Configuration management for the search cluster deployment
Builds one immutable input record from Pulumi stack configuration
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pulumi

MULTITENANT_FLAVOR = "multitenant"
ADMINISTRATOR_ROLE = "Administrator"
MODEL_ACTIVATION_PLAN = "platinum"
SERVICE_NAME = "databases-for-elasticsearch"


@dataclass(frozen=True)
class DiskAutoScaling:
    enabled: bool = False
    capacity_free_space_less_than_percent: int = 10
    io_above_percent: int = 90
    io_over_period: str = "15m"
    io_enabled: bool = False
    rate_increase_percent: int = 10
    rate_limit_mb_per_member: int = 3670016
    rate_period_seconds: int = 900
    rate_units: str = "mb"


@dataclass(frozen=True)
class MemoryAutoScaling:
    enabled: bool = False
    io_above_percent: int = 90
    io_over_period: str = "15m"
    rate_increase_percent: int = 10
    rate_limit_mb_per_member: int = 114688
    rate_period_seconds: int = 900
    rate_units: str = "mb"


@dataclass(frozen=True)
class AutoScalingPolicy:
    """Disk and memory auto-scaling settings, passed through to the cluster as-is"""

    disk: DiskAutoScaling = field(default_factory=DiskAutoScaling)
    memory: MemoryAutoScaling = field(default_factory=MemoryAutoScaling)


@dataclass(frozen=True)
class DatabaseUser:
    name: str
    password: str
    type: str = "database"
    role: Optional[str] = None


@dataclass(frozen=True)
class CbrRuleSpec:
    """One context-based restriction rule bound to the cluster instance"""

    account_id: str
    description: str = ""
    enforcement_mode: str = "enabled"
    rule_contexts: Tuple[Dict[str, Any], ...] = ()
    operations: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class SecretSpec:
    secret_name: str
    service_credentials_source_service_role: str
    secret_labels: Tuple[str, ...] = ()
    secret_auto_rotation: bool = True
    secret_auto_rotation_unit: str = "day"
    secret_auto_rotation_interval: int = 89


@dataclass(frozen=True)
class SecretGroupSpec:
    secret_group_name: str
    service_credentials: Tuple[SecretSpec, ...] = ()
    secret_group_description: Optional[str] = None
    existing_secret_group: bool = False


@dataclass(frozen=True)
class SearchClusterInput:
    """
    Every caller-supplied setting for one deployment.

    Instances are frozen; ``service_credential_names`` keeps the caller's
    insertion order and is exposed read-only.
    """

    name: str
    region: str = "us-south"
    plan: str = "enterprise"
    elasticsearch_version: Optional[str] = None
    resource_group_name: Optional[str] = None
    existing_resource_group_id: Optional[str] = None
    service_endpoints: str = "private"
    tags: Tuple[str, ...] = ()
    access_tags: Tuple[str, ...] = ()
    deletion_protection: bool = True
    backup_crn: Optional[str] = None

    # Encryption
    kms_encryption_enabled: bool = False
    kms_key_crn: Optional[str] = None
    backup_encryption_key_crn: Optional[str] = None
    use_default_backup_encryption_key: bool = False
    existing_kms_instance_crn: Optional[str] = None
    skip_iam_authorization_policy: bool = False
    ibmcloud_kms_api_key: Optional[str] = None
    key_ring_name: Optional[str] = None
    key_name: Optional[str] = None
    key_rotation_interval_months: int = 3
    standard_key: bool = False

    # Member topology
    member_host_flavor: Optional[str] = None
    members: int = 3
    member_memory_mb: int = 4096
    member_disk_mb: int = 5120
    member_cpu_count: int = 0
    auto_scaling: Optional[AutoScalingPolicy] = None

    # Credentials
    service_credential_names: Mapping[str, str] = field(default_factory=dict)
    admin_pass: Optional[str] = None
    users: Tuple[DatabaseUser, ...] = ()

    # Secrets Manager mirroring
    service_credential_secrets: Tuple[SecretGroupSpec, ...] = ()
    existing_secrets_manager_instance_crn: Optional[str] = None
    skip_es_sm_auth_policy: bool = False

    # Context-based restrictions
    cbr_rules: Tuple[CbrRuleSpec, ...] = ()

    # Text embedding model activation
    enable_elser_model: bool = False
    elser_model_type: str = ".elser_model_2_linux-x86_64"
    # Directory holding install-model.sh and start-model.sh, relative to the program
    elser_script_dir: str = "scripts"

    def __post_init__(self):
        object.__setattr__(
            self, "service_credential_names",
            MappingProxyType(dict(self.service_credential_names or {}))
        )
        for name in ("tags", "access_tags", "users", "service_credential_secrets", "cbr_rules"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))

    @property
    def effective_resource_group_name(self) -> str:
        return self.resource_group_name or f"{self.name}-rg"

    @property
    def effective_key_ring_name(self) -> str:
        return self.key_ring_name or f"{self.name}-es-key-ring"

    @property
    def effective_key_name(self) -> str:
        return self.key_name or f"{self.name}-es-key"


def _auto_scaling_from_object(raw: Optional[Dict[str, Any]]) -> Optional[AutoScalingPolicy]:
    if not raw:
        return None
    return AutoScalingPolicy(
        disk=DiskAutoScaling(**(raw.get("disk") or {})),
        memory=MemoryAutoScaling(**(raw.get("memory") or {})),
    )


def _secret_groups_from_object(raw: Optional[List[Dict[str, Any]]]) -> Tuple[SecretGroupSpec, ...]:
    groups = []
    for group in raw or []:
        secrets = tuple(
            SecretSpec(
                **{**secret, "secret_labels": tuple(secret.get("secret_labels") or ())}
            )
            for secret in group.get("service_credentials") or []
        )
        groups.append(SecretGroupSpec(
            secret_group_name=group["secret_group_name"],
            secret_group_description=group.get("secret_group_description"),
            existing_secret_group=group.get("existing_secret_group", False),
            service_credentials=secrets,
        ))
    return tuple(groups)


def _cbr_rules_from_object(raw: Optional[List[Dict[str, Any]]]) -> Tuple[CbrRuleSpec, ...]:
    return tuple(
        CbrRuleSpec(
            account_id=rule["account_id"],
            description=rule.get("description", ""),
            enforcement_mode=rule.get("enforcement_mode", "enabled"),
            rule_contexts=tuple(rule.get("rule_contexts") or ()),
            operations=tuple(rule.get("operations") or ()),
        )
        for rule in raw or []
    )


class Config:
    """Centralized configuration management for the search cluster deployment"""

    def __init__(self, config: Optional[pulumi.Config] = None):
        self.config = config or pulumi.Config()

    def load(self) -> SearchClusterInput:
        c = self.config

        # Cluster
        name = c.get("name") or "search-cluster"
        region = c.get("region") or "us-south"
        plan = c.get("plan") or "enterprise"

        users = tuple(
            DatabaseUser(**user) for user in (c.get_object("users") or [])
        )

        return SearchClusterInput(
            name=name,
            region=region,
            plan=plan,
            elasticsearch_version=c.get("elasticsearch_version"),
            resource_group_name=c.get("resource_group_name"),
            existing_resource_group_id=c.get("existing_resource_group_id"),
            service_endpoints=c.get("service_endpoints") or "private",
            tags=tuple(c.get_object("tags") or ()),
            access_tags=tuple(c.get_object("access_tags") or ()),
            deletion_protection=_bool(c.get_bool("deletion_protection"), True),
            backup_crn=c.get("backup_crn"),
            kms_encryption_enabled=_bool(c.get_bool("kms_encryption_enabled"), False),
            kms_key_crn=c.get("kms_key_crn"),
            backup_encryption_key_crn=c.get("backup_encryption_key_crn"),
            use_default_backup_encryption_key=_bool(c.get_bool("use_default_backup_encryption_key"), False),
            existing_kms_instance_crn=c.get("existing_kms_instance_crn"),
            skip_iam_authorization_policy=_bool(c.get_bool("skip_iam_authorization_policy"), False),
            ibmcloud_kms_api_key=c.get("ibmcloud_kms_api_key"),
            key_ring_name=c.get("key_ring_name"),
            key_name=c.get("key_name"),
            key_rotation_interval_months=c.get_int("key_rotation_interval_months") or 3,
            standard_key=_bool(c.get_bool("standard_key"), False),
            member_host_flavor=c.get("member_host_flavor"),
            members=c.get_int("members") or 3,
            member_memory_mb=c.get_int("member_memory_mb") or 4096,
            member_disk_mb=c.get_int("member_disk_mb") or 5120,
            member_cpu_count=c.get_int("member_cpu_count") or 0,
            auto_scaling=_auto_scaling_from_object(c.get_object("auto_scaling")),
            service_credential_names=c.get_object("service_credential_names") or {},
            admin_pass=c.get("admin_pass"),
            users=users,
            service_credential_secrets=_secret_groups_from_object(c.get_object("service_credential_secrets")),
            existing_secrets_manager_instance_crn=c.get("existing_secrets_manager_instance_crn"),
            skip_es_sm_auth_policy=_bool(c.get_bool("skip_es_sm_auth_policy"), False),
            cbr_rules=_cbr_rules_from_object(c.get_object("cbr_rules")),
            enable_elser_model=_bool(c.get_bool("enable_elser_model"), False),
            elser_model_type=c.get("elser_model_type") or ".elser_model_2_linux-x86_64",
            elser_script_dir=c.get("elser_script_dir") or "scripts",
        )


def _bool(value: Optional[bool], default: bool) -> bool:
    return default if value is None else value


def get_config() -> SearchClusterInput:
    """Get the deployment input from the current Pulumi stack configuration"""
    return Config().load()
