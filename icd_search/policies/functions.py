"""
Policies Module Functions
IAM authorization policies between services, each followed by a settling step
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import pulumi

from icd_search.backend import DeclaredResource, ProvisioningBackend
from icd_search.config import SERVICE_NAME

SETTLING_DELAY_SECONDS = 30
KMS_READER_ROLE = "Reader"
KEY_MANAGER_ROLE = "Key Manager"
SECRETS_MANAGER_SERVICE = "secrets-manager"
KMS_PROVIDER = "kms"


class AuthorizationPolicySpec(NamedTuple):
    source_service: str
    target_service: str
    roles: List[str]
    description: str
    source_instance: Any = None
    target_instance: Any = None

    def to_attributes(self) -> Dict[str, Any]:
        attributes = {
            "source_service_name": self.source_service,
            "target_service_name": self.target_service,
            "roles": list(self.roles),
            "description": self.description,
        }
        if self.source_instance is not None:
            attributes["source_resource_instance_id"] = self.source_instance
        if self.target_instance is not None:
            attributes["target_resource_instance_id"] = self.target_instance
        return attributes


class SettlingStrategy(ABC):
    """Declares the step dependents wait on after an authorization policy"""

    @abstractmethod
    def settle(self, backend: ProvisioningBackend, name: str,
               policy: DeclaredResource) -> DeclaredResource:
        ...


class FixedDelaySettle(SettlingStrategy):
    """Unconditional fixed wait; does not observe whether the grant has propagated"""

    def __init__(self, duration_seconds: int = SETTLING_DELAY_SECONDS):
        self.duration_seconds = duration_seconds

    def settle(self, backend, name, policy):
        return backend.wait(f"{name}-settle", self.duration_seconds, depends_on=[policy])


def kms_authorization_policy(key_service_family: str, kms_instance_guid: str) -> AuthorizationPolicySpec:
    """Let the search service read keys from the key management instance"""
    return AuthorizationPolicySpec(
        source_service=SERVICE_NAME,
        target_service=key_service_family,
        target_instance=kms_instance_guid,
        roles=[KMS_READER_ROLE],
        description=f"Allow all {SERVICE_NAME} instances to read keys from {key_service_family} "
                    f"instance {kms_instance_guid}",
    )


def secrets_manager_authorization_policy(secrets_manager_guid: str, cluster_guid: Any) -> AuthorizationPolicySpec:
    """Let Secrets Manager create service credentials on the cluster"""
    return AuthorizationPolicySpec(
        source_service=SECRETS_MANAGER_SERVICE,
        source_instance=secrets_manager_guid,
        target_service=SERVICE_NAME,
        target_instance=cluster_guid,
        roles=[KEY_MANAGER_ROLE],
        description=f"Allow Secrets Manager instance {secrets_manager_guid} to manage "
                    f"{SERVICE_NAME} service credentials",
    )


def create_authorization_policy(backend: ProvisioningBackend,
                                name: str,
                                spec: AuthorizationPolicySpec,
                                settle: Optional[SettlingStrategy] = None,
                                depends_on: Optional[Iterable[Optional[DeclaredResource]]] = None,
                                provider: Optional[str] = None) -> Dict[str, DeclaredResource]:
    """
    Declare one authorization policy and its settling step

    Args:
        backend: Provisioning backend
        name: Logical name of the policy
        spec: Source, target and roles of the grant
        settle: Strategy producing the settling step (fixed 30s wait by default)
        depends_on: Declarations the policy waits for
        provider: Provider alias, set for cross-account grants

    Returns:
        Dict with the policy and the settling step; dependents depend on "ready"
    """
    settle = settle or FixedDelaySettle()

    pulumi.log.info(
        f"Authorizing {spec.source_service} -> {spec.target_service} ({', '.join(spec.roles)})"
    )
    policy = backend.declare(
        "authorization_policy", name, spec.to_attributes(),
        depends_on=depends_on,
        provider=provider,
    )
    ready = settle.settle(backend, name, policy)

    return {
        "policy": policy,
        "ready": ready,
    }
