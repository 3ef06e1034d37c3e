"""
Control-plane access for node-group stacks.

StackProvider is the surface the scan and manager depend on;
CloudFormationProvider implements it with boto3.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..errors import ProviderError
from ..models import StackRecord
from ..tags import tags_from_cfn

logger = logging.getLogger(__name__)

# Every status except DELETE_COMPLETE; deleted stacks are not node groups anymore
LIVE_STACK_STATUSES = [
    "CREATE_IN_PROGRESS",
    "CREATE_FAILED",
    "CREATE_COMPLETE",
    "ROLLBACK_IN_PROGRESS",
    "ROLLBACK_FAILED",
    "ROLLBACK_COMPLETE",
    "DELETE_IN_PROGRESS",
    "DELETE_FAILED",
    "UPDATE_IN_PROGRESS",
    "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
    "UPDATE_COMPLETE",
    "UPDATE_FAILED",
    "UPDATE_ROLLBACK_IN_PROGRESS",
    "UPDATE_ROLLBACK_FAILED",
    "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
    "UPDATE_ROLLBACK_COMPLETE",
    "REVIEW_IN_PROGRESS",
    "IMPORT_IN_PROGRESS",
    "IMPORT_COMPLETE",
    "IMPORT_ROLLBACK_IN_PROGRESS",
    "IMPORT_ROLLBACK_FAILED",
    "IMPORT_ROLLBACK_COMPLETE",
]

STACK_CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


class StackNotFound(LookupError):
    """DescribeStacks returned no stack for the requested name."""
    pass


class StackProvider(ABC):
    """Abstract access to stack inventory and state."""

    @abstractmethod
    def list_stack_names(self) -> Iterator[List[str]]:
        """
        Yield stack names one page at a time.

        Pages are fetched lazily; a consumer that stops iterating stops
        further page requests.
        """
        pass

    @abstractmethod
    def describe_stack(self, name: str) -> StackRecord:
        """Status, tags and outputs of a stack."""
        pass

    @abstractmethod
    def get_template(self, name: str) -> str:
        """Raw template text of a stack."""
        pass

    @abstractmethod
    def describe_resource(self, name: str, logical_id: str) -> str:
        """Physical id of a stack resource."""
        pass

    @abstractmethod
    def update_stack(self, name: str, template: str) -> None:
        """Submit a new template for an existing stack."""
        pass

    @abstractmethod
    def wait_for_update(self, name: str) -> None:
        """Block until a stack update finishes."""
        pass


class CloudFormationProvider(StackProvider):
    """StackProvider backed by the AWS CloudFormation API."""

    def __init__(self, region: Optional[str] = None, client=None):
        self.region = region
        self.client = client

    def _get_client(self):
        """Lazy initialization of the CloudFormation client."""
        if self.client is None:
            self.client = boto3.client(
                "cloudformation",
                region_name=self.region,
                config=Config(retries={"mode": "standard", "max_attempts": 5}),
            )
        return self.client

    def list_stack_names(self) -> Iterator[List[str]]:
        paginator = self._get_client().get_paginator("list_stacks")
        try:
            for page in paginator.paginate(StackStatusFilter=LIVE_STACK_STATUSES):
                yield [s["StackName"] for s in page.get("StackSummaries", [])]
        except (ClientError, BotoCoreError) as e:
            raise ProviderError("ListStacks", None, e) from e

    def describe_stack(self, name: str) -> StackRecord:
        try:
            response = self._get_client().describe_stacks(StackName=name)
        except (ClientError, BotoCoreError) as e:
            raise ProviderError("DescribeStacks", name, e) from e

        stacks = response.get("Stacks") or []
        if not stacks:
            raise ProviderError("DescribeStacks", name, StackNotFound(f"stack {name} not found"))

        stack = stacks[0]
        outputs = {
            o["OutputKey"]: o.get("OutputValue", "")
            for o in stack.get("Outputs", [])
        }
        return StackRecord(
            name=stack.get("StackName", name),
            stack_id=stack.get("StackId", ""),
            status=stack.get("StackStatus", ""),
            tags=tags_from_cfn(stack.get("Tags")),
            outputs=outputs,
            creation_time=stack.get("CreationTime"),
        )

    def get_template(self, name: str) -> str:
        try:
            response = self._get_client().get_template(StackName=name, TemplateStage="Original")
        except (ClientError, BotoCoreError) as e:
            raise ProviderError("GetTemplate", name, e) from e

        body = response.get("TemplateBody", "")
        # botocore decodes JSON bodies into an ordered dict
        if isinstance(body, dict):
            body = json.dumps(body, indent=2)
        return body

    def describe_resource(self, name: str, logical_id: str) -> str:
        try:
            response = self._get_client().describe_stack_resource(
                StackName=name,
                LogicalResourceId=logical_id,
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderError("DescribeStackResource", name, e) from e
        return response["StackResourceDetail"]["PhysicalResourceId"]

    def update_stack(self, name: str, template: str) -> None:
        client = self._get_client()
        try:
            stacks = client.describe_stacks(StackName=name).get("Stacks") or []
            parameters = [
                {"ParameterKey": p["ParameterKey"], "UsePreviousValue": True}
                for p in (stacks[0].get("Parameters", []) if stacks else [])
            ]
            client.update_stack(
                StackName=name,
                TemplateBody=template,
                Parameters=parameters,
                Capabilities=STACK_CAPABILITIES,
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderError("UpdateStack", name, e) from e
        logger.info(f"Submitted update for stack {name}")

    def wait_for_update(self, name: str) -> None:
        waiter = self._get_client().get_waiter("stack_update_complete")
        logger.info(f"Waiting for stack {name} to finish updating...")
        try:
            waiter.wait(StackName=name, WaiterConfig={"Delay": 15, "MaxAttempts": 240})
        except (WaiterError, ClientError, BotoCoreError) as e:
            raise ProviderError("WaitForStackUpdate", name, e) from e
