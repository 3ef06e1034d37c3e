"""
Stack naming convention for node groups: <prefix>-<cluster>-nodegroup-<name>.
"""

import re
from typing import Optional, Pattern

DEFAULT_STACK_PREFIX = "eksctl"

# Logical id of the autoscaling group inside an unmanaged node-group stack
NODEGROUP_LOGICAL_ID = "NodeGroup"


def nodegroup_stack_name(prefix: str, cluster: str, nodegroup: str) -> str:
    """Stack name for a node group."""
    return f"{prefix}-{cluster}-nodegroup-{nodegroup}"


def nodegroup_stack_pattern(prefix: str, cluster: str, name_filter: Optional[str] = None) -> Pattern[str]:
    """
    Compile the pattern matching a cluster's node-group stack names.

    Args:
        prefix: Stack name prefix
        cluster: Cluster name
        name_filter: If given, only this node-group name matches

    Returns:
        Pattern with a "name" group for the node-group segment
    """
    name = re.escape(name_filter) if name_filter else ".+"
    return re.compile(rf"^{re.escape(prefix)}-{re.escape(cluster)}-nodegroup-(?P<name>{name})$")
