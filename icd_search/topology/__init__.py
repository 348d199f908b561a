"""
Topology Module
Member group selection for the search cluster
"""

from .functions import (
    FixedFlavorGroup,
    MultitenantFlavorGroup,
    ClassicSizedGroup,
    TopologyPlan,
    select_topology,
    auto_scaling_block,
)

__all__ = [
    "FixedFlavorGroup",
    "MultitenantFlavorGroup",
    "ClassicSizedGroup",
    "TopologyPlan",
    "select_topology",
    "auto_scaling_block",
]
