"""Workload Component - task definition and ECS service.

The service runs on the capacity pool, registers into the blue target group
and hands rollouts to CodeDeploy (CODE_DEPLOY deployment controller).
"""

import json

import pulumi
import pulumi_aws as aws


def container_definitions(
    container_name: str,
    image: str,
    memory_mib: int,
    container_port: int,
    log_group: str,
    region: str,
) -> str:
    """Render the single-container definition list for the task."""
    return json.dumps(
        [
            {
                "name": container_name,
                "image": image,
                "essential": True,
                "memory": memory_mib,
                "portMappings": [
                    {
                        "containerPort": container_port,
                        # Dynamic host port (bridge networking)
                        "hostPort": 0,
                        "protocol": "tcp",
                    }
                ],
                "logConfiguration": {
                    "logDriver": "awslogs",
                    "options": {
                        "awslogs-group": log_group,
                        "awslogs-region": region,
                        "awslogs-stream-prefix": "ecs",
                    },
                },
            }
        ]
    )


class WorkloadComponent(pulumi.ComponentResource):
    """EC2 task definition plus a CodeDeploy-controlled ECS service."""

    def __init__(
        self,
        name: str,
        cluster_arn: pulumi.Input[str],
        capacity_provider_name: pulumi.Input[str],
        target_group_arn: pulumi.Input[str],
        container_name: str,
        container_image: str,
        container_memory_mib: int = 256,
        container_port: int = 80,
        desired_count: int = 1,
        log_retention_days: int = 7,
        depends_on: list[pulumi.Resource] | None = None,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("ecsbluegreen:compute:Workload", name, None, opts)

        self.tags = tags or {}
        self.container_name = container_name
        self.container_port = container_port

        # CloudWatch Log Group for container logs
        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=f"/ecs/{name}",
            retention_in_days=log_retention_days,
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        region = aws.get_region_output(opts=pulumi.InvokeOptions(parent=self))

        # Task Definition
        self.task_definition = aws.ecs.TaskDefinition(
            f"{name}-task",
            family=f"{name}-task",
            network_mode="bridge",
            requires_compatibilities=["EC2"],
            container_definitions=pulumi.Output.all(
                self.log_group.name, region.name
            ).apply(
                lambda args: container_definitions(
                    container_name,
                    container_image,
                    container_memory_mib,
                    container_port,
                    log_group=args[0],
                    region=args[1],
                )
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.log_group]),
        )

        # ECS Service
        self.service = aws.ecs.Service(
            f"{name}-service",
            cluster=cluster_arn,
            task_definition=self.task_definition.arn,
            desired_count=desired_count,
            capacity_provider_strategies=[
                aws.ecs.ServiceCapacityProviderStrategyArgs(
                    capacity_provider=capacity_provider_name,
                    weight=1,
                ),
            ],
            # Pack by memory first, spread across AZs as the tie-break
            ordered_placement_strategies=[
                aws.ecs.ServiceOrderedPlacementStrategyArgs(
                    type="binpack",
                    field="memory",
                ),
                aws.ecs.ServiceOrderedPlacementStrategyArgs(
                    type="spread",
                    field="attribute:ecs.availability-zone",
                ),
            ],
            deployment_controller=aws.ecs.ServiceDeploymentControllerArgs(
                type="CODE_DEPLOY",
            ),
            load_balancers=[
                aws.ecs.ServiceLoadBalancerArgs(
                    target_group_arn=target_group_arn,
                    container_name=container_name,
                    container_port=container_port,
                ),
            ],
            tags=self.tags,
            # CodeDeploy owns task definition and target group after creation
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=depends_on,
                ignore_changes=["task_definition", "load_balancers"],
            ),
        )

        self.register_outputs(
            {
                "service_name": self.service.name,
                "task_definition_arn": self.task_definition.arn,
                "log_group_name": self.log_group.name,
            }
        )
