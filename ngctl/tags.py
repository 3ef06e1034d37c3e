"""
Tag interpretation for node-group stacks.

Node groups created by different tool versions carry different tag keys.
Resolution walks a fixed priority table per attribute, first match wins.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import InvalidTypeError, NameNotFoundError
from .models import NodeGroupType, Tag

NODEGROUP_NAME_TAG = "alpha.eksctl.io/nodegroup-name"
OLD_NODEGROUP_NAME_TAG = "eksctl.cluster.k8s.io/v1alpha1/nodegroup-name"
OLD_NODEGROUP_ID_TAG = "eksctl.io/v1alpha2/nodegroup-name"
NODEGROUP_TYPE_TAG = "alpha.eksctl.io/nodegroup-type"

CLUSTER_NAME_TAG = "alpha.eksctl.io/cluster-name"
OLD_CLUSTER_NAME_TAG = "eksctl.cluster.k8s.io/v1alpha1/cluster-name"

# Highest priority first
NODEGROUP_NAME_KEYS = (
    NODEGROUP_NAME_TAG,
    OLD_NODEGROUP_NAME_TAG,
    OLD_NODEGROUP_ID_TAG,
)

CLUSTER_NAME_KEYS = (
    CLUSTER_NAME_TAG,
    OLD_CLUSTER_NAME_TAG,
)

# Stacks created before the type tag existed are always unmanaged
DEFAULT_NODEGROUP_TYPE = NodeGroupType.UNMANAGED


def tags_from_cfn(raw_tags: Optional[Iterable[Dict[str, Any]]]) -> List[Tag]:
    """
    Convert boto3-style tags into Tag objects.

    Order and duplicate keys are kept as returned by the API.

    Args:
        raw_tags: Iterable of {"Key": ..., "Value": ...} dicts

    Returns:
        List of tags
    """
    return [Tag(key=t["Key"], value=t.get("Value", "")) for t in (raw_tags or [])]


def find_tag(tags: Sequence[Tag], key: str) -> Optional[str]:
    """Return the value of the first tag with the given key."""
    for tag in tags:
        if tag.key == key:
            return tag.value
    return None


def resolve_by_priority(tags: Sequence[Tag], keys: Sequence[str]) -> Optional[str]:
    """
    Resolve an attribute from the first key in priority order that is present.

    Args:
        tags: Stack tags
        keys: Candidate tag keys, highest priority first

    Returns:
        The tag value, or None if no key is present
    """
    for key in keys:
        value = find_tag(tags, key)
        if value is not None:
            return value
    return None


def resolve_nodegroup_name(tags: Sequence[Tag]) -> Optional[str]:
    """Node-group name from current or legacy tags."""
    return resolve_by_priority(tags, NODEGROUP_NAME_KEYS)


def resolve_cluster_name(tags: Sequence[Tag]) -> Optional[str]:
    """Cluster name from current or legacy tags."""
    return resolve_by_priority(tags, CLUSTER_NAME_KEYS)


def resolve_nodegroup_type(tags: Sequence[Tag]) -> NodeGroupType:
    """
    Classify a node group as managed or unmanaged.

    Args:
        tags: Stack tags

    Returns:
        The node-group type; unmanaged when no type tag is present

    Raises:
        NameNotFoundError: If no node-group name tag is present
        InvalidTypeError: If the type tag value is not recognized
    """
    if resolve_nodegroup_name(tags) is None:
        raise NameNotFoundError()

    value = find_tag(tags, NODEGROUP_TYPE_TAG)
    if value is None:
        return DEFAULT_NODEGROUP_TYPE

    try:
        return NodeGroupType(value)
    except ValueError:
        raise InvalidTypeError(value) from None
