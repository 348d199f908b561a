"""
Provisioning Backend Functions
Declares desired resources and hands back their resolved attributes
Two implementations: Pulumi resources and an in-memory recorder for previews and tests
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import pulumi
import pulumi_command as command
import pulumiverse_time as time

from icd_search.exceptions import DependencyAborted, ProvisioningError

# Pulumi type tokens of the bridged ibm provider, one per declaration kind
RESOURCE_TYPES = {
    "resource_group": "ibm:index/resourceGroup:ResourceGroup",
    "key_ring": "ibm:index/kmsKeyRings:KmsKeyRings",
    "kms_key": "ibm:index/kmsKey:KmsKey",
    "authorization_policy": "ibm:index/iamAuthorizationPolicy:IamAuthorizationPolicy",
    "database": "ibm:index/database:Database",
    "resource_tag": "ibm:index/resourceTag:ResourceTag",
    "cbr_rule": "ibm:index/cbrRule:CbrRule",
    "resource_key": "ibm:index/resourceKey:ResourceKey",
    "secret_group": "ibm:index/smSecretGroup:SmSecretGroup",
    "service_credentials_secret": "ibm:index/smServiceCredentialsSecret:SmServiceCredentialsSecret",
}

# Kinds declared through a typed provider SDK
TYPED_RESOURCES = {
    "wait": time.Sleep,
    "command": command.local.Command,
}

# Attributes the provider computes; registered as outputs on the custom resource
OUTPUT_PROPERTIES = {
    "resource_group": ["crn"],
    "key_ring": ["key_ring_id"],
    "kms_key": ["crn", "key_id"],
    "authorization_policy": [],
    "database": ["guid", "crn", "version", "adminuser", "connectionstrings"],
    "resource_tag": [],
    "cbr_rule": ["crn"],
    "resource_key": ["crn", "credentials"],
    "secret_group": ["secret_group_id"],
    "service_credentials_secret": ["crn", "secret_id"],
}

IBM_PROVIDER = "ibm"


def schema_name(key: str) -> str:
    """Provider schema name of a snake_case attribute, e.g. resource_group_id -> resourceGroupId"""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_schema(value: Any) -> Any:
    """Rename every nested attribute key to its provider schema name"""
    if isinstance(value, dict):
        return {schema_name(key): to_schema(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_schema(item) for item in value]
    return value


def ibm_provider(name: str, api_key: str, region: str) -> pulumi.ProviderResource:
    """Explicit ibm provider, used for grants made with another account's API key"""
    return pulumi.ProviderResource(
        IBM_PROVIDER, name,
        to_schema({"ibmcloud_api_key": pulumi.Output.secret(api_key), "region": region}),
    )


class DeclaredResource:
    """Handle for one declaration: its kind, logical name and resolved attributes"""

    def __init__(self, kind: str, name: str, attributes: Dict[str, Any],
                 handle: Any = None, depends_on: Optional[List[str]] = None,
                 status: str = "created"):
        self.kind = kind
        self.name = name
        self.attributes = attributes
        self.handle = handle
        self.depends_on = depends_on or []
        self.status = status

    def __repr__(self) -> str:
        return f"DeclaredResource(kind={self.kind!r}, name={self.name!r}, status={self.status!r})"


def _dependency_list(depends_on: Optional[Iterable[Optional[DeclaredResource]]]) -> List[DeclaredResource]:
    return [dep for dep in (depends_on or []) if dep is not None]


class ProvisioningBackend(ABC):
    """
    Contract every backend implements.

    ``declare`` registers one desired resource after everything in
    ``depends_on``; ``wait`` registers a fixed-duration step; ``output`` reads
    a resolved attribute; ``apply`` derives a value from resolved attributes.
    """

    @abstractmethod
    def declare(self, kind: str, name: str, attributes: Dict[str, Any],
                depends_on: Optional[Iterable[Optional[DeclaredResource]]] = None,
                replace_on_changes: Optional[List[str]] = None,
                provider: Optional[str] = None) -> DeclaredResource:
        ...

    def wait(self, name: str, duration_seconds: int,
             depends_on: Optional[Iterable[Optional[DeclaredResource]]] = None) -> DeclaredResource:
        return self.declare(
            "wait", name,
            {"create_duration": f"{duration_seconds}s"},
            depends_on=depends_on,
        )

    @abstractmethod
    def output(self, resource: DeclaredResource, key: str) -> Any:
        ...

    @abstractmethod
    def apply(self, values: Dict[str, Any], fn: Callable[[Dict[str, Any]], Any]) -> Any:
        ...


class PulumiBackend(ProvisioningBackend):
    """
    Declares waits and commands through their typed SDKs and ibm resources as
    custom resources of the mapped type token, with attribute names
    translated to the provider schema
    """

    def __init__(self, providers: Optional[Dict[str, pulumi.ProviderResource]] = None,
                 resource_types: Optional[Dict[str, str]] = None):
        self.providers = providers or {}
        self.resource_types = {**RESOURCE_TYPES, **(resource_types or {})}

    def declare(self, kind, name, attributes, depends_on=None,
                replace_on_changes=None, provider=None):
        if kind not in TYPED_RESOURCES and kind not in self.resource_types:
            raise ProvisioningError(name, kind, "no resource type registered for this kind")

        dependencies = _dependency_list(depends_on)
        opts = pulumi.ResourceOptions(
            depends_on=[dep.handle for dep in dependencies if dep.handle is not None],
            replace_on_changes=[schema_name(key) for key in replace_on_changes] if replace_on_changes else None,
            provider=self.providers.get(provider) if provider else None,
        )

        pulumi.log.debug(f"Declaring {kind} '{name}'")
        if kind in TYPED_RESOURCES:
            handle = TYPED_RESOURCES[kind](name, opts=opts, **attributes)
        else:
            props = {schema_name(key): None for key in OUTPUT_PROPERTIES.get(kind, [])}
            props.update(to_schema(attributes))
            handle = pulumi.CustomResource(self.resource_types[kind], name, props, opts)

        return DeclaredResource(
            kind, name, attributes,
            handle=handle,
            depends_on=[dep.name for dep in dependencies],
        )

    def output(self, resource, key):
        if key == "id":
            return resource.handle.id
        if resource.kind in TYPED_RESOURCES:
            return getattr(resource.handle, key)
        return getattr(resource.handle, schema_name(key))

    def apply(self, values, fn):
        return pulumi.Output.all(**values).apply(fn)


def _synthetic_outputs(kind: str, name: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
    digest = hashlib.sha256(f"{kind}/{name}".encode()).hexdigest()
    guid = f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"
    region = attributes.get("location") or attributes.get("region") or "us-south"
    return {
        "id": f"{kind}/{name}",
        "guid": guid,
        "crn": f"crn:v1:bluemix:public:{kind}:{region}:a/preview:{guid}::",
    }


class InMemoryBackend(ProvisioningBackend):
    """
    Records declarations in order without contacting any provider.

    Used for previews and tests. ``outputs`` can add resolved attributes per
    declaration. Names or kinds listed in ``failures`` fail; every declaration
    depending on a failed one, directly or transitively, is aborted without
    being attempted. With ``strict`` (the default) the first failure or abort
    is raised as ``ProvisioningError`` or ``DependencyAborted``; otherwise the
    handle is returned with status "failed" or "aborted", the error is kept in
    ``errors`` and independent branches carry on.
    """

    def __init__(self, outputs: Optional[Callable[[str, str, Dict[str, Any]], Dict[str, Any]]] = None,
                 failures: Optional[Iterable[str]] = None,
                 sleep: Optional[Callable[[int], None]] = None,
                 strict: bool = True):
        self.outputs = outputs
        self.failures: Set[str] = set(failures or [])
        self.sleep = sleep
        self.strict = strict
        self.declarations: List[DeclaredResource] = []
        self.errors: List[Exception] = []
        self.replace_on_changes: Dict[str, List[str]] = {}
        self.providers: Dict[str, str] = {}

    def _reject(self, resource: DeclaredResource, error: Exception) -> DeclaredResource:
        self.declarations.append(resource)
        self.errors.append(error)
        if self.strict:
            raise error
        return resource

    def declare(self, kind, name, attributes, depends_on=None,
                replace_on_changes=None, provider=None):
        dependencies = _dependency_list(depends_on)
        dependency_names = [dep.name for dep in dependencies]

        for dep in dependencies:
            if dep.status != "created":
                pulumi.log.warn(f"Skipping {kind} '{name}': dependency '{dep.name}' did not complete")
                return self._reject(
                    DeclaredResource(kind, name, dict(attributes), depends_on=dependency_names, status="aborted"),
                    DependencyAborted(name, dep.name),
                )

        if name in self.failures or kind in self.failures:
            return self._reject(
                DeclaredResource(kind, name, dict(attributes), depends_on=dependency_names, status="failed"),
                ProvisioningError(name, kind, "injected failure"),
            )

        resolved = {**_synthetic_outputs(kind, name, attributes), **attributes}
        if self.outputs:
            resolved.update(self.outputs(kind, name, attributes) or {})

        resource = DeclaredResource(kind, name, resolved, depends_on=dependency_names)
        self.declarations.append(resource)
        if replace_on_changes:
            self.replace_on_changes[name] = list(replace_on_changes)
        if provider:
            self.providers[name] = provider
        return resource

    def wait(self, name, duration_seconds, depends_on=None):
        resource = super().wait(name, duration_seconds, depends_on)
        if self.sleep and resource.status == "created":
            self.sleep(duration_seconds)
        return resource

    def output(self, resource, key):
        return resource.attributes.get(key)

    def apply(self, values, fn):
        return fn(dict(values))

    def names(self, kind: Optional[str] = None, status: str = "created") -> List[str]:
        """Declared names in order, optionally only those of one kind"""
        return [
            r.name for r in self.declarations
            if (kind is None or r.kind == kind) and r.status == status
        ]

    def get(self, name: str) -> DeclaredResource:
        for resource in self.declarations:
            if resource.name == name:
                return resource
        raise KeyError(name)
