"""Deployment Pipeline Component - CodeDeploy blue/green for the ECS service.

Wires both target groups and both listeners into a CodeDeploy deployment
group so CodeDeploy can cut traffic over all at once, then triggers a
deployment of the current task definition.
"""

import pulumi
import pulumi_aws as aws

from common.config import DEPLOYMENT_CONFIG_NAME
from components.deployment_trigger import EcsDeployment
from components.load_balancer import TrafficRoute


class DeploymentPipelineComponent(pulumi.ComponentResource):
    """CodeDeploy application, deployment group and deployment trigger."""

    def __init__(
        self,
        name: str,
        application_name: str,
        service_role_arn: str,
        cluster_name: pulumi.Input[str],
        service_name: pulumi.Input[str],
        blue: TrafficRoute,
        green: TrafficRoute,
        task_definition_arn: pulumi.Input[str],
        container_name: str,
        container_port: int,
        region: pulumi.Input[str] | None = None,
        wait_for_deployment: bool = False,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("ecsbluegreen:deploy:Pipeline", name, None, opts)

        self.tags = tags or {}

        self.application = aws.codedeploy.Application(
            f"{name}-app",
            name=application_name,
            compute_platform="ECS",
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # The role is provisioned outside this stack and only referenced here
        self.deployment_group = aws.codedeploy.DeploymentGroup(
            f"{name}-group",
            app_name=self.application.name,
            deployment_group_name=f"{application_name}-group",
            service_role_arn=service_role_arn,
            deployment_config_name=DEPLOYMENT_CONFIG_NAME,
            deployment_style=aws.codedeploy.DeploymentGroupDeploymentStyleArgs(
                deployment_option="WITH_TRAFFIC_CONTROL",
                deployment_type="BLUE_GREEN",
            ),
            blue_green_deployment_config=aws.codedeploy.DeploymentGroupBlueGreenDeploymentConfigArgs(
                deployment_ready_option=aws.codedeploy.DeploymentGroupBlueGreenDeploymentConfigDeploymentReadyOptionArgs(
                    action_on_timeout="CONTINUE_DEPLOYMENT",
                ),
                terminate_blue_instances_on_deployment_success=aws.codedeploy.DeploymentGroupBlueGreenDeploymentConfigTerminateBlueInstancesOnDeploymentSuccessArgs(
                    action="TERMINATE",
                    termination_wait_time_in_minutes=0,
                ),
            ),
            auto_rollback_configuration=aws.codedeploy.DeploymentGroupAutoRollbackConfigurationArgs(
                enabled=True,
                events=["DEPLOYMENT_FAILURE"],
            ),
            ecs_service=aws.codedeploy.DeploymentGroupEcsServiceArgs(
                cluster_name=cluster_name,
                service_name=service_name,
            ),
            load_balancer_info=aws.codedeploy.DeploymentGroupLoadBalancerInfoArgs(
                target_group_pair_info=aws.codedeploy.DeploymentGroupLoadBalancerInfoTargetGroupPairInfoArgs(
                    prod_traffic_route=aws.codedeploy.DeploymentGroupLoadBalancerInfoTargetGroupPairInfoProdTrafficRouteArgs(
                        listener_arns=[blue.listener.arn],
                    ),
                    test_traffic_route=aws.codedeploy.DeploymentGroupLoadBalancerInfoTargetGroupPairInfoTestTrafficRouteArgs(
                        listener_arns=[green.listener.arn],
                    ),
                    target_groups=[
                        aws.codedeploy.DeploymentGroupLoadBalancerInfoTargetGroupPairInfoTargetGroupArgs(
                            name=blue.target_group.name,
                        ),
                        aws.codedeploy.DeploymentGroupLoadBalancerInfoTargetGroupPairInfoTargetGroupArgs(
                            name=green.target_group.name,
                        ),
                    ],
                ),
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.deployment = EcsDeployment(
            f"{name}-deployment",
            application_name=self.application.name,
            deployment_group_name=self.deployment_group.deployment_group_name,
            task_definition_arn=task_definition_arn,
            container_name=container_name,
            container_port=container_port,
            region=region,
            wait=wait_for_deployment,
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.deployment_group]),
        )

        self.register_outputs(
            {
                "application_name": self.application.name,
                "deployment_group_name": self.deployment_group.deployment_group_name,
                "deployment_id": self.deployment.deployment_id,
            }
        )
