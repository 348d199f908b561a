"""
Provisioning Backend Module
Pulumi-backed and in-memory implementations of the declare/resolve contract
"""

from .functions import (
    RESOURCE_TYPES,
    TYPED_RESOURCES,
    DeclaredResource,
    ProvisioningBackend,
    PulumiBackend,
    InMemoryBackend,
    ibm_provider,
    schema_name,
    to_schema,
)

__all__ = [
    "RESOURCE_TYPES",
    "TYPED_RESOURCES",
    "DeclaredResource",
    "ProvisioningBackend",
    "PulumiBackend",
    "InMemoryBackend",
    "ibm_provider",
    "schema_name",
    "to_schema",
]
