"""
Discovery scan over a cluster's node-group stacks.

The scan is strictly sequential: one page at a time, one candidate at a
time. A provider failure on a candidate aborts the whole scan, and nothing
found before the failure is returned.
"""

import logging
import threading
import time
from typing import Iterator, List, Optional, Pattern, Tuple

from ..errors import InvalidTypeError, NameNotFoundError, ProviderError, ScanCancelledError, TemplateParseError
from ..models import NodeGroupSummary, NodeGroupType
from ..tags import resolve_cluster_name, resolve_nodegroup_name, resolve_nodegroup_type
from ..template import read_template_details
from .naming import DEFAULT_STACK_PREFIX, NODEGROUP_LOGICAL_ID, nodegroup_stack_pattern
from .provider import StackProvider

logger = logging.getLogger(__name__)

INSTANCE_ROLE_ARN_OUTPUT = "InstanceRoleARN"


class StackScan:
    """
    Lazy iterator over stack names matching a node-group pattern.

    Yields (stack_name, nodegroup_name) for each match. Names that do not
    match are dropped locally without any provider call. Once abort() is
    called no further page is requested.
    """

    def __init__(
        self,
        provider: StackProvider,
        pattern: Pattern[str],
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ):
        self.provider = provider
        self.pattern = pattern
        self.cancel = cancel
        self.deadline = deadline
        self.pages_read = 0
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        """Stop the scan; no more pages will be requested."""
        self._aborted = True

    def check_cancelled(self) -> None:
        """
        Raise if the caller cancelled the scan or its deadline passed.

        Raises:
            ScanCancelledError: If cancelled or timed out
        """
        if self.cancel is not None and self.cancel.is_set():
            self.abort()
            raise ScanCancelledError()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.abort()
            raise ScanCancelledError("nodegroup scan timed out")

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        pages = self.provider.list_stack_names()
        try:
            while not self._aborted:
                self.check_cancelled()
                page = next(pages, None)
                if page is None:
                    return
                self.pages_read += 1
                for stack_name in page:
                    if self._aborted:
                        return
                    match = self.pattern.match(stack_name)
                    if match is None:
                        continue
                    yield stack_name, match.group("name")
        finally:
            close = getattr(pages, "close", None)
            if close is not None:
                close()


def _summarize(provider: StackProvider, scan: StackScan, cluster: str, stack_name: str) -> Optional[NodeGroupSummary]:
    """Build the summary for one candidate, or None if it cannot be classified."""
    scan.check_cancelled()
    stack = provider.describe_stack(stack_name)

    # A longer cluster name can share this cluster's stack name prefix
    tagged_cluster = resolve_cluster_name(stack.tags)
    if tagged_cluster is not None and tagged_cluster != cluster:
        logger.info(f"Skipping stack {stack_name}: it belongs to cluster {tagged_cluster}")
        return None

    try:
        node_group_type = resolve_nodegroup_type(stack.tags)
    except (NameNotFoundError, InvalidTypeError) as e:
        logger.warning(f"Skipping stack {stack_name}: {e}")
        return None

    summary = NodeGroupSummary(
        stack_name=stack.name,
        name=resolve_nodegroup_name(stack.tags),
        node_group_type=node_group_type,
        cluster=cluster,
        status=stack.status,
        node_instance_role_arn=stack.outputs.get(INSTANCE_ROLE_ARN_OUTPUT),
        creation_time=stack.creation_time,
    )

    # Managed groups have no autoscaling group of their own in the stack
    if node_group_type is NodeGroupType.UNMANAGED:
        scan.check_cancelled()
        summary.auto_scaling_group_name = provider.describe_resource(stack_name, NODEGROUP_LOGICAL_ID)

    scan.check_cancelled()
    template = provider.get_template(stack_name)
    try:
        details = read_template_details(template, node_group_type)
    except TemplateParseError as e:
        logger.debug(f"No template details for stack {stack_name}: {e}")
    else:
        summary.instance_type = details.instance_type
        summary.image_id = details.image_id
        if details.capacity is not None:
            summary.desired_capacity = details.capacity.desired
            summary.min_size = details.capacity.min_size
            summary.max_size = details.capacity.max_size

    logger.debug(f"Found nodegroup {summary.name} ({node_group_type.value}) in stack {stack_name}")
    return summary


def list_nodegroup_summaries(
    provider: StackProvider,
    cluster: str,
    name_filter: Optional[str] = None,
    prefix: str = DEFAULT_STACK_PREFIX,
    cancel: Optional[threading.Event] = None,
    timeout_s: Optional[float] = None,
) -> List[NodeGroupSummary]:
    """
    Discover and summarize a cluster's node groups.

    Args:
        provider: Control-plane access
        cluster: Cluster name
        name_filter: Only summarize the node group with this name
        prefix: Stack name prefix
        cancel: Event the caller sets to cancel the scan
        timeout_s: Cancel the scan after this many seconds

    Returns:
        Summaries in discovery order; empty if the cluster has no node groups

    Raises:
        ProviderError: If any call for a matching stack fails
        ScanCancelledError: If cancelled or timed out
    """
    deadline = time.monotonic() + timeout_s if timeout_s is not None else None
    pattern = nodegroup_stack_pattern(prefix, cluster, name_filter)
    scan = StackScan(provider, pattern, cancel=cancel, deadline=deadline)

    summaries: List[NodeGroupSummary] = []
    for stack_name, _ in scan:
        try:
            summary = _summarize(provider, scan, cluster, stack_name)
        except (ProviderError, ScanCancelledError):
            scan.abort()
            raise
        if summary is not None:
            summaries.append(summary)
        if name_filter is not None:
            # The filtered pattern matches at most one stack
            scan.abort()

    logger.debug(f"Scanned {scan.pages_read} page(s), found {len(summaries)} nodegroup(s) in cluster {cluster}")
    return summaries
