"""
Secrets Module Functions
Mirrors cluster service credentials into Secrets Manager secret groups
"""

from typing import Any, Iterable, List, Optional, Sequence

import pulumi

from icd_search.backend import DeclaredResource, ProvisioningBackend
from icd_search.config import SecretGroupSpec, SecretSpec

PLATFORM_ROLES = ("Administrator", "Editor", "Operator", "Viewer")


def role_crn(role: str) -> str:
    """IAM role CRN for a role name; platform roles and service roles differ in type"""
    role_type = "role" if role in PLATFORM_ROLES else "serviceRole"
    return f"crn:v1:bluemix:public:iam::::{role_type}:{role}"


class SecretsManagerMirror:
    """
    Creates service credential secrets in one Secrets Manager instance.

    Logical names carry the cluster prefix and the group name, so secrets of
    the same name in different groups stay distinct.
    """

    def __init__(self, backend: ProvisioningBackend, name_prefix: str,
                 secrets_manager_guid: str, region: str):
        self.backend = backend
        self.name_prefix = name_prefix
        self.secrets_manager_guid = secrets_manager_guid
        self.region = region

    def _secret_group(self, group: SecretGroupSpec,
                      depends_on: List[DeclaredResource]) -> Optional[DeclaredResource]:
        if group.existing_secret_group:
            return None
        return self.backend.declare(
            "secret_group", f"{self.name_prefix}-sm-group-{group.secret_group_name}",
            {
                "instance_id": self.secrets_manager_guid,
                "region": self.region,
                "name": group.secret_group_name,
                "description": group.secret_group_description,
            },
            depends_on=depends_on,
        )

    def _secret(self, group: SecretGroupSpec, group_resource: Optional[DeclaredResource],
                secret: SecretSpec, source_crn: Any,
                depends_on: List[DeclaredResource]) -> DeclaredResource:
        if group_resource is not None:
            secret_group_id = self.backend.output(group_resource, "secret_group_id")
        else:
            secret_group_id = group.secret_group_name

        rotation = None
        if secret.secret_auto_rotation:
            rotation = {
                "auto_rotate": True,
                "interval": secret.secret_auto_rotation_interval,
                "unit": secret.secret_auto_rotation_unit,
            }

        return self.backend.declare(
            "service_credentials_secret", f"{self.name_prefix}-sm-{group.secret_group_name}-{secret.secret_name}",
            {
                "instance_id": self.secrets_manager_guid,
                "region": self.region,
                "name": secret.secret_name,
                "secret_group_id": secret_group_id,
                "labels": list(secret.secret_labels),
                "rotation": rotation,
                "source_service": {
                    "instance": {"crn": source_crn},
                    "role": {"crn": role_crn(secret.service_credentials_source_service_role)},
                },
            },
            depends_on=[dep for dep in (group_resource, *depends_on) if dep is not None],
        )

    def mirror_credentials(self, groups: Sequence[SecretGroupSpec], source_crn: Any,
                           depends_on: Optional[Iterable[Optional[DeclaredResource]]] = None) -> List[DeclaredResource]:
        """
        Mirror every requested credential, groups and secrets in caller order

        Args:
            groups: Secret group specifications
            source_crn: CRN of the cluster the credentials are issued against
            depends_on: Declarations to wait for, normally the settled authorization

        Returns:
            Declared secrets, in caller order
        """
        dependencies = [dep for dep in (depends_on or []) if dep is not None]
        handles = []
        for group in groups:
            group_resource = self._secret_group(group, dependencies)
            for secret in group.service_credentials:
                handles.append(self._secret(group, group_resource, secret, source_crn, dependencies))

        pulumi.log.info(f"Mirroring {len(handles)} service credential secret(s) to Secrets Manager")
        return handles
