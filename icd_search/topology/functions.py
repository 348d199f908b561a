"""
Topology Module Functions
Chooses the member group shape of the cluster and builds the auto-scaling block
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

from icd_search.config import MULTITENANT_FLAVOR, AutoScalingPolicy

GROUP_ID = "member"


@dataclass(frozen=True)
class FixedFlavorGroup:
    """Dedicated host flavor; memory and CPU come from the flavor itself"""

    flavor_id: str
    disk_mb: int
    member_count: int
    kind: str = "fixed-flavor"

    def to_group(self) -> Dict[str, Any]:
        return {
            "group_id": GROUP_ID,
            "host_flavor": {"id": self.flavor_id},
            "disk": {"allocation_mb": self.disk_mb},
            "members": {"allocation_count": self.member_count},
        }


@dataclass(frozen=True)
class MultitenantFlavorGroup:
    """Shared compute; memory and CPU are sized explicitly"""

    flavor_id: str
    disk_mb: int
    memory_mb: int
    cpu_count: int
    member_count: int
    kind: str = "multitenant-flavor"

    def to_group(self) -> Dict[str, Any]:
        return {
            "group_id": GROUP_ID,
            "host_flavor": {"id": self.flavor_id},
            "disk": {"allocation_mb": self.disk_mb},
            "memory": {"allocation_mb": self.memory_mb},
            "cpu": {"allocation_count": self.cpu_count},
            "members": {"allocation_count": self.member_count},
        }


@dataclass(frozen=True)
class ClassicSizedGroup:
    """No host flavor; sized by memory, disk and CPU allocation"""

    memory_mb: int
    disk_mb: int
    cpu_count: int
    member_count: int
    kind: str = "classic-sized"

    def to_group(self) -> Dict[str, Any]:
        return {
            "group_id": GROUP_ID,
            "memory": {"allocation_mb": self.memory_mb},
            "disk": {"allocation_mb": self.disk_mb},
            "cpu": {"allocation_count": self.cpu_count},
            "members": {"allocation_count": self.member_count},
        }


TopologyPlan = Union[FixedFlavorGroup, MultitenantFlavorGroup, ClassicSizedGroup]


def select_topology(host_flavor: Optional[str], memory_mb: int, disk_mb: int,
                    cpu_count: int, member_count: int) -> TopologyPlan:
    """
    Select exactly one member group shape

    Args:
        host_flavor: Host flavor id, "multitenant", or None
        memory_mb: Memory per member in MB
        disk_mb: Disk per member in MB
        cpu_count: Dedicated CPUs per member
        member_count: Number of members

    Returns:
        FixedFlavorGroup, MultitenantFlavorGroup or ClassicSizedGroup
    """
    if host_flavor is not None and host_flavor != MULTITENANT_FLAVOR:
        return FixedFlavorGroup(flavor_id=host_flavor, disk_mb=disk_mb, member_count=member_count)
    if host_flavor == MULTITENANT_FLAVOR:
        return MultitenantFlavorGroup(
            flavor_id=host_flavor,
            disk_mb=disk_mb,
            memory_mb=memory_mb,
            cpu_count=cpu_count,
            member_count=member_count,
        )
    return ClassicSizedGroup(
        memory_mb=memory_mb,
        disk_mb=disk_mb,
        cpu_count=cpu_count,
        member_count=member_count,
    )


def auto_scaling_block(policy: Optional[AutoScalingPolicy]) -> Optional[Dict[str, Any]]:
    """Auto-scaling settings as the cluster expects them, unchanged; None when absent"""
    if policy is None:
        return None
    return {"disk": asdict(policy.disk), "memory": asdict(policy.memory)}
