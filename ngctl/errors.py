"""
Error types raised by node-group reconciliation and discovery.
"""

from enum import Enum
from typing import Optional


class NodeGroupError(Exception):
    """Base class for all ngctl errors."""
    pass


class ConfigError(NodeGroupError):
    """Settings or cluster config file could not be loaded."""
    pass


class TemplateParseError(NodeGroupError):
    """The stack template does not expose the expected capacity fields."""
    pass


class BoundKind(Enum):
    """Which scaling bound a desired capacity violated."""
    ABOVE_MAX = "above_max"
    BELOW_MIN = "below_min"


class OutOfBoundsError(NodeGroupError):
    """Desired capacity falls outside the effective min/max bounds."""

    def __init__(self, kind: BoundKind, desired: int, limit: int):
        self.kind = kind
        self.desired = desired
        self.limit = limit
        if kind is BoundKind.ABOVE_MAX:
            message = f"the desired nodes {desired} is greater than the nodes-max/maxSize {limit}"
        else:
            message = f"the desired nodes {desired} is less than the nodes-min/minSize {limit}"
        super().__init__(message)


class NameNotFoundError(NodeGroupError):
    """No recognized node-group name tag was found."""

    def __init__(self, message: str = "failed to find the nodegroup name tag"):
        super().__init__(message)


class InvalidTypeError(NodeGroupError):
    """The node-group type tag holds an unrecognized value."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid nodegroup type {value!r}, expected 'managed' or 'unmanaged'")


class ProviderError(NodeGroupError):
    """A call to the infrastructure control plane failed."""

    def __init__(self, operation: str, stack_name: Optional[str] = None, cause: Optional[BaseException] = None):
        self.operation = operation
        self.stack_name = stack_name
        self.cause = cause
        target = f" for stack {stack_name}" if stack_name else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{target}{detail}")


class ScanCancelledError(NodeGroupError):
    """A discovery scan was cancelled or ran past its deadline."""

    def __init__(self, message: str = "nodegroup scan cancelled"):
        super().__init__(message)
