"""
CBR Module
Context-based restriction rules for the cluster
"""

from .functions import create_cbr_rules, rule_resources

__all__ = ["create_cbr_rules", "rule_resources"]
