"""
Stack operations for one cluster's node groups.
"""

import logging
import threading
from typing import List, Optional, Tuple

from ..capacity import reconcile_capacity
from ..errors import NodeGroupError
from ..models import NodeGroupSpec, NodeGroupSummary, NodeGroupType
from ..tags import resolve_nodegroup_type
from .naming import DEFAULT_STACK_PREFIX, nodegroup_stack_name
from .provider import StackProvider
from .scan import list_nodegroup_summaries

logger = logging.getLogger(__name__)


class StackManager:
    """Discovers and scales the node-group stacks of a cluster."""

    def __init__(self, provider: StackProvider, cluster: str, prefix: str = DEFAULT_STACK_PREFIX):
        self.provider = provider
        self.cluster = cluster
        self.prefix = prefix

    def stack_name_for(self, nodegroup: str) -> str:
        return nodegroup_stack_name(self.prefix, self.cluster, nodegroup)

    def get_nodegroup_summaries(
        self,
        name_filter: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        timeout_s: Optional[float] = None,
    ) -> List[NodeGroupSummary]:
        """Summaries of the cluster's node groups, optionally a single one."""
        return list_nodegroup_summaries(
            self.provider,
            self.cluster,
            name_filter=name_filter,
            prefix=self.prefix,
            cancel=cancel,
            timeout_s=timeout_s,
        )

    def scale_nodegroup_template(self, spec: NodeGroupSpec) -> Tuple[str, bool]:
        """
        Compute the template update needed to scale a node group.

        Args:
            spec: Requested node-group state

        Returns:
            (template, changed) as returned by reconcile_capacity

        Raises:
            ProviderError: If the stack cannot be described or its template fetched
            NodeGroupError: If the node group is managed, or reconciliation fails
        """
        stack_name = self.stack_name_for(spec.name)
        stack = self.provider.describe_stack(stack_name)
        if resolve_nodegroup_type(stack.tags) is NodeGroupType.MANAGED:
            raise NodeGroupError(
                f"nodegroup {spec.name} is managed; its capacity is not held in stack {stack_name}"
            )

        template = self.provider.get_template(stack_name)
        return reconcile_capacity(template, spec)

    def scale_nodegroup(self, spec: NodeGroupSpec, wait: bool = True, dry_run: bool = False) -> bool:
        """
        Scale a node group by updating its stack.

        Args:
            spec: Requested node-group state
            wait: Block until the stack update completes
            dry_run: Compute the change but do not submit it

        Returns:
            True if the stack needed (or, in dry-run, would need) an update
        """
        template, changed = self.scale_nodegroup_template(spec)
        if not changed:
            logger.info(f"No change for nodegroup {spec.name} in cluster {self.cluster}")
            return False

        stack_name = self.stack_name_for(spec.name)
        if dry_run:
            logger.info(f"Dry run: would update stack {stack_name}")
            return True

        logger.info(f"Scaling nodegroup {spec.name} in cluster {self.cluster}")
        self.provider.update_stack(stack_name, template)
        if wait:
            self.provider.wait_for_update(stack_name)
        return True
