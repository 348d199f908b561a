"""
Composer Module
Declares the complete search cluster deployment
"""

from .functions import compose_search_cluster, IMMUTABLE_INSTANCE_ATTRIBUTES

__all__ = ["compose_search_cluster", "IMMUTABLE_INSTANCE_ATTRIBUTES"]
