"""
Read-only access to node-group stack templates.

Nothing here produces template text; see capacity.py for the in-place
capacity splice.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .errors import TemplateParseError
from .models import Capacity, NodeGroupType

ASG_RESOURCE_TYPE = "AWS::AutoScaling::AutoScalingGroup"
MANAGED_NODEGROUP_RESOURCE_TYPE = "AWS::EKS::Nodegroup"
LAUNCH_TEMPLATE_RESOURCE_TYPE = "AWS::EC2::LaunchTemplate"


@dataclass
class TemplateDetails:
    """Display fields read from a node-group template."""
    capacity: Optional[Capacity] = None
    instance_type: Optional[str] = None
    image_id: Optional[str] = None


def load_template(template: str) -> Dict[str, Any]:
    """
    Parse template text into a dict.

    Raises:
        TemplateParseError: If the text is empty, not JSON, or has no Resources map
    """
    if not template or not template.strip():
        raise TemplateParseError("template is empty")
    try:
        doc = json.loads(template)
    except json.JSONDecodeError as e:
        raise TemplateParseError(f"template is not valid JSON: {e}") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("Resources"), dict):
        raise TemplateParseError("template has no Resources section")
    return doc


def find_resources(doc: Dict[str, Any], resource_type: str) -> List[Tuple[str, Dict[str, Any]]]:
    """All (logical id, resource) pairs of the given type, in template order."""
    found = []
    for logical_id, resource in doc["Resources"].items():
        if isinstance(resource, dict) and resource.get("Type") == resource_type:
            found.append((logical_id, resource))
    return found


def find_single_resource(doc: Dict[str, Any], resource_type: str) -> Tuple[str, Dict[str, Any]]:
    """
    The only resource of the given type, with its Properties.

    Raises:
        TemplateParseError: If there is not exactly one such resource
    """
    found = find_resources(doc, resource_type)
    if len(found) != 1:
        raise TemplateParseError(f"expected exactly one {resource_type} resource, found {len(found)}")
    logical_id, resource = found[0]
    properties = resource.get("Properties")
    if not isinstance(properties, dict):
        raise TemplateParseError(f"resource {logical_id} has no Properties")
    return logical_id, properties


def is_decimal(value: Any) -> bool:
    """True for a non-empty string of ASCII digits only."""
    # str.isdigit() also accepts superscripts and other non-ASCII digits
    return isinstance(value, str) and value.isascii() and value.isdigit()


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if is_decimal(value):
        return int(value)
    return None


def _as_str(value: Any) -> Optional[str]:
    # Intrinsic functions (Ref, Fn::*) come back as dicts
    return value if isinstance(value, str) else None


def _capacity_from(properties: Dict[str, Any], desired_key: str, min_key: str, max_key: str) -> Optional[Capacity]:
    desired = _as_int(properties.get(desired_key))
    min_size = _as_int(properties.get(min_key))
    max_size = _as_int(properties.get(max_key))
    if desired is None or min_size is None or max_size is None:
        return None
    return Capacity(desired=desired, min_size=min_size, max_size=max_size)


def _launch_template_data(doc: Dict[str, Any]) -> Dict[str, Any]:
    found = find_resources(doc, LAUNCH_TEMPLATE_RESOURCE_TYPE)
    if not found:
        return {}
    properties = found[0][1].get("Properties")
    data = properties.get("LaunchTemplateData") if isinstance(properties, dict) else None
    return data if isinstance(data, dict) else {}


def read_template_details(template: str, node_group_type: NodeGroupType) -> TemplateDetails:
    """
    Read capacity, instance type and image id for display.

    Unmanaged groups keep capacity on their autoscaling group; managed
    groups keep it in the ScalingConfig of the EKS nodegroup resource.
    Fields that are absent or not literal values are left as None.

    Raises:
        TemplateParseError: If the template is not parseable or lacks the
            node-group resource for its type
    """
    doc = load_template(template)
    launch_data = _launch_template_data(doc)
    details = TemplateDetails(
        instance_type=_as_str(launch_data.get("InstanceType")),
        image_id=_as_str(launch_data.get("ImageId")),
    )

    if node_group_type is NodeGroupType.MANAGED:
        _, properties = find_single_resource(doc, MANAGED_NODEGROUP_RESOURCE_TYPE)
        scaling = properties.get("ScalingConfig")
        if isinstance(scaling, dict):
            details.capacity = _capacity_from(scaling, "DesiredSize", "MinSize", "MaxSize")
        instance_types = properties.get("InstanceTypes")
        if details.instance_type is None and isinstance(instance_types, list) and instance_types:
            details.instance_type = _as_str(instance_types[0])
    else:
        _, properties = find_single_resource(doc, ASG_RESOURCE_TYPE)
        details.capacity = _capacity_from(properties, "DesiredCapacity", "MinSize", "MaxSize")

    return details
