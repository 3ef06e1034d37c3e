"""
Data models shared by the reconciler, tag classifier and stack scan.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class NodeGroupType(Enum):
    """Node-group provisioning modes."""
    MANAGED = "managed"
    UNMANAGED = "unmanaged"


@dataclass(frozen=True)
class NodeGroupSpec:
    """Requested state of a node group.

    A capacity field left as None means "keep the current value"; 0 is an
    explicit request.
    """
    name: str
    desired_capacity: Optional[int] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    instance_type: Optional[str] = None
    ami_family: Optional[str] = None


@dataclass(frozen=True)
class Tag:
    """A single stack tag."""
    key: str
    value: str


@dataclass(frozen=True)
class Capacity:
    """DesiredCapacity/MinSize/MaxSize of a scaling group."""
    desired: int
    min_size: int
    max_size: int


@dataclass
class StackRecord:
    """Snapshot of a stack as returned by DescribeStacks."""
    name: str
    stack_id: str
    status: str
    tags: List[Tag] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)
    creation_time: Optional[datetime] = None


@dataclass
class NodeGroupSummary:
    """One discovered node group."""
    stack_name: str
    name: str
    node_group_type: NodeGroupType
    cluster: str
    status: str
    node_instance_role_arn: Optional[str] = None
    auto_scaling_group_name: Optional[str] = None
    desired_capacity: Optional[int] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    instance_type: Optional[str] = None
    image_id: Optional[str] = None
    creation_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        """Plain dict for JSON output."""
        return {
            "cluster": self.cluster,
            "name": self.name,
            "stack_name": self.stack_name,
            "status": self.status,
            "type": self.node_group_type.value,
            "desired_capacity": self.desired_capacity,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "instance_type": self.instance_type,
            "image_id": self.image_id,
            "node_instance_role_arn": self.node_instance_role_arn,
            "auto_scaling_group_name": self.auto_scaling_group_name,
            "creation_time": self.creation_time.isoformat() if self.creation_time else None,
        }
