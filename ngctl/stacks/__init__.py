"""
Node-group stack discovery and scaling.
"""

from .manager import StackManager
from .naming import DEFAULT_STACK_PREFIX, NODEGROUP_LOGICAL_ID, nodegroup_stack_name, nodegroup_stack_pattern
from .provider import CloudFormationProvider, StackProvider
from .scan import StackScan, list_nodegroup_summaries

__all__ = [
    "StackManager",
    "DEFAULT_STACK_PREFIX",
    "NODEGROUP_LOGICAL_ID",
    "nodegroup_stack_name",
    "nodegroup_stack_pattern",
    "CloudFormationProvider",
    "StackProvider",
    "StackScan",
    "list_nodegroup_summaries",
]
