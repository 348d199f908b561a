"""
Errors raised while resolving and declaring the search cluster deployment
"""

from typing import List


class SearchClusterError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(SearchClusterError):
    """
    One or more input rules failed. Raised before any resource is declared.

    The individual rule messages are kept on ``messages`` so callers can
    report all of them at once.
    """

    def __init__(self, messages: List[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class MalformedIdentifier(SearchClusterError):
    """A CRN or other delimited identifier could not be parsed"""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Malformed identifier '{identifier}': {reason}")


class ProvisioningError(SearchClusterError):
    """The provisioning backend reported a failure for a declaration"""

    def __init__(self, name: str, kind: str, reason: str = ""):
        self.name = name
        self.kind = kind
        self.reason = reason
        message = f"Provisioning of {kind} '{name}' failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DependencyAborted(SearchClusterError):
    """A declaration was not attempted because one of its dependencies failed"""

    def __init__(self, name: str, failed_dependency: str):
        self.name = name
        self.failed_dependency = failed_dependency
        super().__init__(
            f"'{name}' was not attempted because dependency '{failed_dependency}' failed"
        )
