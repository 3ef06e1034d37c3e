"""
Tests for the CloudFormation provider with a mocked boto3 client.
"""

import json
from collections import OrderedDict
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, WaiterError

from ngctl.errors import ProviderError
from ngctl.models import Tag
from ngctl.stacks.provider import LIVE_STACK_STATUSES, STACK_CAPABILITIES, CloudFormationProvider

STACK = "eksctl-test-cluster-nodegroup-12345"


def client_error(operation, message="Stack with id x does not exist"):
    return ClientError({"Error": {"Code": "ValidationError", "Message": message}}, operation)


class TestCloudFormationProvider:
    """Test API calls and response mapping."""

    def test_lazy_client(self):
        with patch("ngctl.stacks.provider.boto3.client") as mock_client:
            provider = CloudFormationProvider(region="us-west-2")
            mock_client.assert_not_called()
            provider._get_client()
            provider._get_client()

        mock_client.assert_called_once()
        args, kwargs = mock_client.call_args
        assert args == ("cloudformation",)
        assert kwargs["region_name"] == "us-west-2"

    def test_list_stack_names(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = iter([
            {"StackSummaries": [{"StackName": "a"}, {"StackName": "b"}]},
            {"StackSummaries": []},
            {},
        ])
        provider = CloudFormationProvider(client=client)

        assert list(provider.list_stack_names()) == [["a", "b"], [], []]
        client.get_paginator.assert_called_once_with("list_stacks")
        statuses = client.get_paginator.return_value.paginate.call_args.kwargs["StackStatusFilter"]
        assert statuses == LIVE_STACK_STATUSES
        assert "DELETE_COMPLETE" not in statuses

    def test_list_stack_names_error(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = client_error("ListStacks", "denied")
        provider = CloudFormationProvider(client=client)

        with pytest.raises(ProviderError) as exc:
            list(provider.list_stack_names())
        assert exc.value.operation == "ListStacks"

    def test_describe_stack(self):
        created = datetime(2024, 1, 2, 3, 4, 5)
        client = MagicMock()
        client.describe_stacks.return_value = {
            "Stacks": [{
                "StackName": STACK,
                "StackId": f"{STACK}-id",
                "StackStatus": "CREATE_COMPLETE",
                "CreationTime": created,
                "Tags": [{"Key": "alpha.eksctl.io/nodegroup-name", "Value": "12345"}],
                "Outputs": [{"OutputKey": "InstanceRoleARN", "OutputValue": "arn:aws:iam::1111:role/r"}],
            }]
        }
        record = CloudFormationProvider(client=client).describe_stack(STACK)

        client.describe_stacks.assert_called_once_with(StackName=STACK)
        assert record.name == STACK
        assert record.stack_id == f"{STACK}-id"
        assert record.status == "CREATE_COMPLETE"
        assert record.tags == [Tag("alpha.eksctl.io/nodegroup-name", "12345")]
        assert record.outputs == {"InstanceRoleARN": "arn:aws:iam::1111:role/r"}
        assert record.creation_time == created

    def test_describe_stack_error(self):
        client = MagicMock()
        client.describe_stacks.side_effect = client_error("DescribeStacks")

        with pytest.raises(ProviderError) as exc:
            CloudFormationProvider(client=client).describe_stack(STACK)
        assert exc.value.operation == "DescribeStacks"
        assert exc.value.stack_name == STACK
        assert isinstance(exc.value.cause, ClientError)
        assert "does not exist" in str(exc.value)

    def test_describe_stack_empty(self):
        client = MagicMock()
        client.describe_stacks.return_value = {"Stacks": []}
        with pytest.raises(ProviderError, match="not found"):
            CloudFormationProvider(client=client).describe_stack(STACK)

    def test_get_template_text(self):
        body = '{\n  "Resources": {}\n}\n'
        client = MagicMock()
        client.get_template.return_value = {"TemplateBody": body}

        assert CloudFormationProvider(client=client).get_template(STACK) == body
        client.get_template.assert_called_once_with(StackName=STACK, TemplateStage="Original")

    def test_get_template_decoded_body(self):
        """Test a decoded JSON body is serialized with key order kept."""
        body = OrderedDict([("Resources", OrderedDict([("NodeGroup", OrderedDict([
            ("Type", "AWS::AutoScaling::AutoScalingGroup"),
            ("Properties", OrderedDict([("MinSize", "1"), ("DesiredCapacity", "3"), ("MaxSize", "6")])),
        ]))]))])
        client = MagicMock()
        client.get_template.return_value = {"TemplateBody": body}

        text = CloudFormationProvider(client=client).get_template(STACK)
        assert text == json.dumps(body, indent=2)
        assert text.index("MinSize") < text.index("DesiredCapacity") < text.index("MaxSize")

    def test_get_template_error(self):
        client = MagicMock()
        client.get_template.side_effect = client_error("GetTemplate")
        with pytest.raises(ProviderError, match="GetTemplate failed"):
            CloudFormationProvider(client=client).get_template(STACK)

    def test_describe_resource(self):
        client = MagicMock()
        client.describe_stack_resource.return_value = {
            "StackResourceDetail": {"PhysicalResourceId": "asg-1"}
        }
        assert CloudFormationProvider(client=client).describe_resource(STACK, "NodeGroup") == "asg-1"
        client.describe_stack_resource.assert_called_once_with(StackName=STACK, LogicalResourceId="NodeGroup")

    def test_update_stack_keeps_parameters(self):
        client = MagicMock()
        client.describe_stacks.return_value = {
            "Stacks": [{"Parameters": [{"ParameterKey": "ClusterName", "ParameterValue": "c"}]}]
        }
        CloudFormationProvider(client=client).update_stack(STACK, "{}")

        client.update_stack.assert_called_once_with(
            StackName=STACK,
            TemplateBody="{}",
            Parameters=[{"ParameterKey": "ClusterName", "UsePreviousValue": True}],
            Capabilities=STACK_CAPABILITIES,
        )

    def test_update_stack_error(self):
        client = MagicMock()
        client.describe_stacks.return_value = {"Stacks": [{}]}
        client.update_stack.side_effect = client_error("UpdateStack", "No updates are to be performed.")
        with pytest.raises(ProviderError) as exc:
            CloudFormationProvider(client=client).update_stack(STACK, "{}")
        assert exc.value.operation == "UpdateStack"

    def test_wait_for_update_error(self):
        client = MagicMock()
        client.get_waiter.return_value.wait.side_effect = WaiterError(
            name="StackUpdateComplete", reason="terminal failure", last_response={}
        )
        with pytest.raises(ProviderError, match="WaitForStackUpdate"):
            CloudFormationProvider(client=client).wait_for_update(STACK)
        client.get_waiter.assert_called_once_with("stack_update_complete")
