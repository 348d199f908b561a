"""
CBR Module Functions
Context-based restriction rules scoped to the cluster instance
"""

from typing import Any, Iterable, List, Optional, Sequence

from icd_search.backend import DeclaredResource, ProvisioningBackend
from icd_search.config import SERVICE_NAME, CbrRuleSpec


def rule_resources(rule: CbrRuleSpec, instance_guid: Any) -> List[dict]:
    """Resource attributes that bind one rule to the cluster instance"""
    return [{
        "attributes": [
            {"name": "accountId", "value": rule.account_id},
            {"name": "serviceInstance", "value": instance_guid},
            {"name": "serviceName", "value": SERVICE_NAME},
        ],
    }]


def create_cbr_rules(backend: ProvisioningBackend,
                     name_prefix: str,
                     rules: Sequence[CbrRuleSpec],
                     instance_guid: Any,
                     depends_on: Optional[Iterable[Optional[DeclaredResource]]] = None) -> List[DeclaredResource]:
    """
    Create one restriction rule per entry, in caller order

    Args:
        backend: Provisioning backend
        name_prefix: Prefix for logical resource names
        rules: Rule specifications; empty means no rules
        instance_guid: GUID of the cluster instance
        depends_on: Declarations to wait for

    Returns:
        Declared rules, in caller order
    """
    declared = []
    for index, rule in enumerate(rules):
        declared.append(backend.declare(
            "cbr_rule", f"{name_prefix}-cbr-rule-{index}",
            {
                "description": rule.description,
                "enforcement_mode": rule.enforcement_mode,
                "contexts": list(rule.rule_contexts),
                "operations": list(rule.operations),
                "resources": rule_resources(rule, instance_guid),
            },
            depends_on=depends_on,
        ))
    return declared
