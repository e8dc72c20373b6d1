"""ECS deployment trigger - starts a CodeDeploy blue/green rollout.

Implemented as a Pulumi dynamic resource. Creating (or replacing) the
resource calls CodeDeploy ``CreateDeployment`` with an AppSpec pointing at
the task definition and container to shift traffic to. Traffic shifting,
health evaluation and rollback stay with CodeDeploy; nothing here retries.
"""

import hashlib
import json
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import boto3
import pulumi
from botocore.exceptions import ClientError, WaiterError
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider, UpdateResult

if TYPE_CHECKING:
    from mypy_boto3_codedeploy import CodeDeployClient

logger = logging.getLogger(__name__)

# Inputs whose change requires a new deployment
REPLACE_ON_CHANGE = (
    "application_name",
    "deployment_group_name",
    "task_definition_arn",
    "container_name",
    "container_port",
)

# Deployment states that can still be stopped
ACTIVE_STATUSES = {"Created", "Queued", "InProgress", "Baking", "Ready"}

# Up to 30 minutes
WAITER_DELAY_SECONDS = 15
WAITER_MAX_ATTEMPTS = 120


@lru_cache
def _get_codedeploy_client(region: str | None = None) -> "CodeDeployClient":
    """Get cached CodeDeploy client."""
    return boto3.client("codedeploy", region_name=region)


def build_appspec(task_definition_arn: str, container_name: str, container_port: int) -> str:
    """Render the ECS AppSpec content for a deployment.

    Args:
        task_definition_arn: Task definition the replacement tasks run.
        container_name: Container registered into the target group.
        container_port: Port of that container.

    Returns:
        AppSpec document as a JSON string.
    """
    return json.dumps(
        {
            "version": "0.0",
            "Resources": [
                {
                    "TargetService": {
                        "Type": "AWS::ECS::Service",
                        "Properties": {
                            "TaskDefinition": task_definition_arn,
                            "LoadBalancerInfo": {
                                "ContainerName": container_name,
                                "ContainerPort": int(container_port),
                            },
                        },
                    }
                }
            ],
        },
        sort_keys=True,
    )


class EcsDeploymentProvider(ResourceProvider):
    """Dynamic provider driving CodeDeploy deployments via boto3."""

    def create(self, props: dict[str, Any]) -> CreateResult:
        deployment_id = self._start_deployment(props)
        return CreateResult(id_=deployment_id, outs={**props, "deployment_id": deployment_id})

    def diff(self, _id: str, olds: dict[str, Any], news: dict[str, Any]) -> DiffResult:
        replaces = [key for key in REPLACE_ON_CHANGE if olds.get(key) != news.get(key)]
        return DiffResult(
            changes=bool(replaces) or olds.get("wait") != news.get("wait"),
            replaces=replaces,
            delete_before_replace=False,
        )

    def update(self, _id: str, _olds: dict[str, Any], news: dict[str, Any]) -> UpdateResult:
        # Only non-replacing inputs (the wait flag) land here; keep the deployment
        return UpdateResult(outs={**news, "deployment_id": _id})

    def delete(self, _id: str, props: dict[str, Any]) -> None:
        client = _get_codedeploy_client(props.get("region"))
        try:
            info = client.get_deployment(deploymentId=_id)["deploymentInfo"]
        except ClientError as e:
            if e.response["Error"]["Code"] == "DeploymentDoesNotExistException":
                logger.info(f"Deployment {_id} no longer exists")
                return
            raise

        status = info.get("status")
        if status not in ACTIVE_STATUSES:
            logger.debug(f"Deployment {_id} already finished ({status})")
            return

        logger.info(f"Stopping deployment {_id} ({status})")
        client.stop_deployment(deploymentId=_id, autoRollbackEnabled=True)

    def _start_deployment(self, props: dict[str, Any]) -> str:
        client = _get_codedeploy_client(props.get("region"))
        content = build_appspec(
            props["task_definition_arn"],
            props["container_name"],
            props["container_port"],
        )

        try:
            response = client.create_deployment(
                applicationName=props["application_name"],
                deploymentGroupName=props["deployment_group_name"],
                description=props.get("description") or "Deployment triggered by Pulumi",
                revision={
                    "revisionType": "AppSpecContent",
                    "appSpecContent": {
                        "content": content,
                        "sha256": hashlib.sha256(content.encode()).hexdigest(),
                    },
                },
                autoRollbackConfiguration={
                    "enabled": True,
                    "events": ["DEPLOYMENT_FAILURE"],
                },
            )
        except ClientError as e:
            logger.error(
                "Failed to create deployment",
                extra={
                    "application": props["application_name"],
                    "deployment_group": props["deployment_group_name"],
                    "error": str(e),
                },
            )
            raise

        deployment_id = response["deploymentId"]
        logger.info(f"Started deployment {deployment_id}")

        if props.get("wait"):
            self._wait_for_success(client, deployment_id)

        return deployment_id

    @staticmethod
    def _wait_for_success(client: "CodeDeployClient", deployment_id: str) -> None:
        waiter = client.get_waiter("deployment_successful")
        try:
            waiter.wait(
                deploymentId=deployment_id,
                WaiterConfig={
                    "Delay": WAITER_DELAY_SECONDS,
                    "MaxAttempts": WAITER_MAX_ATTEMPTS,
                },
            )
        except WaiterError as e:
            logger.error(f"Deployment {deployment_id} did not succeed: {e}")
            raise
        logger.info(f"Deployment {deployment_id} succeeded")


class EcsDeployment(pulumi.dynamic.Resource):
    """Blue/green deployment of a task definition through CodeDeploy."""

    deployment_id: pulumi.Output[str]

    def __init__(
        self,
        name: str,
        application_name: pulumi.Input[str],
        deployment_group_name: pulumi.Input[str],
        task_definition_arn: pulumi.Input[str],
        container_name: str,
        container_port: int,
        region: pulumi.Input[str] | None = None,
        wait: bool = False,
        description: str | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__(
            EcsDeploymentProvider(),
            name,
            {
                "application_name": application_name,
                "deployment_group_name": deployment_group_name,
                "task_definition_arn": task_definition_arn,
                "container_name": container_name,
                "container_port": container_port,
                "region": region,
                "wait": wait,
                "description": description,
                "deployment_id": None,
            },
            opts,
        )
