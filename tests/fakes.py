"""
In-memory StackProvider used by the tests.
"""

from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ngctl.errors import ProviderError
from ngctl.models import StackRecord, Tag
from ngctl.stacks.provider import StackProvider
from ngctl.tags import NODEGROUP_NAME_TAG

NODEGROUP_RESOURCE = """
{
  "Resources": {
    "NodeGroup": {
      "Type": "AWS::AutoScaling::AutoScalingGroup",
      "Properties": {
        "DesiredCapacity": "3",
        "MaxSize": "6",
        "MinSize": "1"
      }
    }
  }
}

"""


def nodegroup_template(desired: int, max_size: int, min_size: int) -> str:
    """NODEGROUP_RESOURCE with the three capacity values replaced."""
    return (
        NODEGROUP_RESOURCE
        .replace('"DesiredCapacity": "3"', f'"DesiredCapacity": "{desired}"')
        .replace('"MaxSize": "6"', f'"MaxSize": "{max_size}"')
        .replace('"MinSize": "1"', f'"MinSize": "{min_size}"')
    )


ROLE_ARN = "arn:aws:iam::1111:role/eks-nodes-base-role"


def make_stack(name: str, tags: Optional[Dict[str, str]] = None, outputs: Optional[Dict[str, str]] = None,
               status: str = "CREATE_COMPLETE") -> StackRecord:
    return StackRecord(
        name=name,
        stack_id=f"{name}-id",
        status=status,
        tags=[Tag(key=k, value=v) for k, v in (tags or {}).items()],
        outputs=dict(outputs or {}),
    )


def make_nodegroup_stack(name: str, nodegroup: str = "12345") -> StackRecord:
    return make_stack(
        name,
        tags={NODEGROUP_NAME_TAG: nodegroup},
        outputs={"InstanceRoleARN": ROLE_ARN},
    )


class FakeStackProvider(StackProvider):
    """Serves canned stacks and records every call made against it."""

    def __init__(
        self,
        pages: Sequence[Sequence[str]] = (),
        stacks: Optional[Dict[str, StackRecord]] = None,
        templates: Optional[Dict[str, str]] = None,
        resources: Optional[Dict[Tuple[str, str], str]] = None,
    ):
        self.pages = [list(p) for p in pages]
        self.stacks = dict(stacks or {})
        self.templates = dict(templates or {})
        self.resources = dict(resources or {})
        self.calls: Dict[str, List[tuple]] = defaultdict(list)
        self.pages_served = 0
        self.hooks = {}

    def count(self, operation: str) -> int:
        return len(self.calls[operation])

    def _record(self, operation: str, *args) -> None:
        self.calls[operation].append(args)
        hook = self.hooks.get(operation)
        if hook is not None:
            hook(*args)

    def list_stack_names(self) -> Iterator[List[str]]:
        for page in self.pages:
            self.pages_served += 1
            yield list(page)

    def describe_stack(self, name: str) -> StackRecord:
        self._record("describe_stack", name)
        if name not in self.stacks:
            raise ProviderError("DescribeStacks", name, RuntimeError("DescribeStacks failed"))
        return self.stacks[name]

    def get_template(self, name: str) -> str:
        self._record("get_template", name)
        if name not in self.templates:
            raise ProviderError("GetTemplate", name, RuntimeError("GetTemplate failed"))
        return self.templates[name]

    def describe_resource(self, name: str, logical_id: str) -> str:
        self._record("describe_resource", name, logical_id)
        if (name, logical_id) not in self.resources:
            raise ProviderError("DescribeStackResource", name, RuntimeError("DescribeStackResource failed"))
        return self.resources[(name, logical_id)]

    def update_stack(self, name: str, template: str) -> None:
        self._record("update_stack", name, template)

    def wait_for_update(self, name: str) -> None:
        self._record("wait_for_update", name)
