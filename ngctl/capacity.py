"""
Capacity reconciliation for existing node-group stacks.

A scale request only ever rewrites the digits of DesiredCapacity, MinSize
and MaxSize on the stack's autoscaling group. Every other byte of the
template is kept, so CloudFormation sees the smallest possible change set.
"""

import logging
import re
from typing import Dict, Optional, Tuple

from .errors import BoundKind, NodeGroupError, OutOfBoundsError, TemplateParseError
from .models import Capacity, NodeGroupSpec
from .template import ASG_RESOURCE_TYPE, find_single_resource, is_decimal, load_template

logger = logging.getLogger(__name__)

DESIRED_FIELD = "DesiredCapacity"
MIN_FIELD = "MinSize"
MAX_FIELD = "MaxSize"
CAPACITY_FIELDS = (DESIRED_FIELD, MIN_FIELD, MAX_FIELD)

# Returned in place of a template when nothing needs to change. Never a
# valid template: reconciling it raises TemplateParseError.
NO_CHANGE = ""

_FIELD_PATTERNS = {
    name: re.compile(r'"%s"\s*:\s*"([0-9]+)"' % re.escape(name))
    for name in CAPACITY_FIELDS
}


def _locate_fields(template: str) -> Dict[str, re.Match]:
    """Find the single value span of each capacity field in the raw text."""
    spans = {}
    for name, pattern in _FIELD_PATTERNS.items():
        matches = list(pattern.finditer(template))
        if len(matches) != 1:
            raise TemplateParseError(
                f'expected exactly one "{name}": "<number>" in template, found {len(matches)}'
            )
        spans[name] = matches[0]
    return spans


def _scan_template(template: str) -> Tuple[Capacity, Dict[str, re.Match]]:
    # Structural parse only verifies the shape; output is built from the spans
    doc = load_template(template)
    logical_id, properties = find_single_resource(doc, ASG_RESOURCE_TYPE)

    spans = _locate_fields(template)
    values = {}
    for name in CAPACITY_FIELDS:
        parsed = properties.get(name)
        if not is_decimal(parsed):
            raise TemplateParseError(f"{logical_id}.Properties.{name} is not a decimal string: {parsed!r}")
        if parsed != spans[name].group(1):
            raise TemplateParseError(f"{name} in template text does not belong to {logical_id}")
        values[name] = int(parsed)

    capacity = Capacity(
        desired=values[DESIRED_FIELD],
        min_size=values[MIN_FIELD],
        max_size=values[MAX_FIELD],
    )
    return capacity, spans


def extract_capacity(template: str) -> Capacity:
    """
    Read the current capacity of the stack's autoscaling group.

    Args:
        template: Template text as stored in CloudFormation

    Returns:
        Current desired/min/max capacity

    Raises:
        TemplateParseError: If the template does not expose the three fields
    """
    capacity, _ = _scan_template(template)
    return capacity


def validate_capacity(desired: int, min_size: int, max_size: int) -> None:
    """
    Check that desired capacity lies within [min_size, max_size].

    Raises:
        OutOfBoundsError: ABOVE_MAX is checked before BELOW_MIN
        NodeGroupError: If min is negative
    """
    if desired > max_size:
        raise OutOfBoundsError(BoundKind.ABOVE_MAX, desired, max_size)
    if desired < min_size:
        raise OutOfBoundsError(BoundKind.BELOW_MIN, desired, min_size)
    if min_size < 0:
        raise NodeGroupError(f"the nodes-min/minSize {min_size} must not be negative")


def _effective(requested: Optional[int], current: int) -> int:
    return current if requested is None else requested


def _splice(template: str, spans: Dict[str, re.Match], values: Dict[str, int]) -> str:
    # Replace from the end so earlier offsets stay valid
    result = template
    for name in sorted(spans, key=lambda n: spans[n].start(1), reverse=True):
        match = spans[name]
        result = result[:match.start(1)] + str(values[name]) + result[match.end(1):]
    return result


def reconcile_capacity(template: str, spec: NodeGroupSpec) -> Tuple[str, bool]:
    """
    Apply a node-group spec's capacity to the current stack template.

    Unset spec fields keep their current values. Bounds are validated even
    when nothing changes, so inconsistent live state is still reported.

    Args:
        template: Current template text
        spec: Requested node-group state

    Returns:
        (new_template, changed). When changed is False, new_template is
        NO_CHANGE and must not be submitted as a stack update.

    Raises:
        TemplateParseError: If the template does not expose the three fields
        OutOfBoundsError: If the effective desired capacity is outside its bounds
    """
    current, spans = _scan_template(template)

    desired = _effective(spec.desired_capacity, current.desired)
    min_size = _effective(spec.min_size, current.min_size)
    max_size = _effective(spec.max_size, current.max_size)

    validate_capacity(desired, min_size, max_size)

    if (desired, min_size, max_size) == (current.desired, current.min_size, current.max_size):
        logger.debug(
            f"nodegroup {spec.name}: capacity already at desired={desired} min={min_size} max={max_size}"
        )
        return NO_CHANGE, False

    new_template = _splice(template, spans, {
        DESIRED_FIELD: desired,
        MIN_FIELD: min_size,
        MAX_FIELD: max_size,
    })
    logger.debug(
        f"nodegroup {spec.name}: capacity {current.desired}/{current.min_size}/{current.max_size}"
        f" -> {desired}/{min_size}/{max_size} (desired/min/max)"
    )
    return new_template, True
