"""
Pulumi modules for a managed search cluster
Simple function-based approach: each concern resolves its values and declares its resources
"""

from .config import SearchClusterInput, get_config
from .composer import compose_search_cluster
from .backend import PulumiBackend, InMemoryBackend

__all__ = [
    "SearchClusterInput",
    "get_config",
    "compose_search_cluster",
    "PulumiBackend",
    "InMemoryBackend",
]
