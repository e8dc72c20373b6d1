"""Capacity Pool Component - autoscaled EC2 container instances.

Creates:
- Security group and instance profile for the container instances
- Launch template on the ECS-optimized Amazon Linux 2 AMI
- Auto Scaling group in the private subnets with CPU target tracking
- ECS capacity provider bound to the cluster
"""

import base64
import json

import pulumi
import pulumi_aws as aws

from common.config import CPU_TARGET_UTILIZATION_PERCENT, SCALING_COOLDOWN_SECONDS

ECS_OPTIMIZED_AMI_PARAMETER = (
    "/aws/service/ecs/optimized-ami/amazon-linux-2/recommended/image_id"
)


def _user_data(cluster_name: str) -> str:
    """Bootstrap script registering the instance with the cluster."""
    script = f"#!/bin/bash\necho ECS_CLUSTER={cluster_name} >> /etc/ecs/ecs.config\n"
    return base64.b64encode(script.encode()).decode()


class CapacityPoolComponent(pulumi.ComponentResource):
    """Auto Scaling group attached to an ECS cluster as a capacity provider."""

    def __init__(
        self,
        name: str,
        vpc_id: pulumi.Input[str],
        subnet_ids: pulumi.Input[list[str]],
        cluster_name: pulumi.Input[str],
        instance_type: str = "c6a.large",
        min_capacity: int = 1,
        max_capacity: int = 2,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        if min_capacity > max_capacity:
            raise ValueError(
                f"min_capacity ({min_capacity}) exceeds max_capacity ({max_capacity})"
            )

        super().__init__("ecsbluegreen:compute:CapacityPool", name, None, opts)

        self.tags = tags or {}

        # =================================================================
        # Security Group - container instances
        # =================================================================
        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=vpc_id,
            description="Security group for ECS container instances",
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    description="Allow all traffic from the LB",
                    protocol="tcp",
                    from_port=0,
                    to_port=65535,
                    cidr_blocks=["0.0.0.0/0"],
                ),
            ],
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    description="Allow all outbound traffic",
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=["0.0.0.0/0"],
                ),
            ],
            tags={**self.tags, "Name": f"{name}-sg"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =================================================================
        # Instance Role - lets the ECS agent register and pull images
        # =================================================================
        self.instance_role = aws.iam.Role(
            f"{name}-instance-role",
            assume_role_policy=json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": "sts:AssumeRole",
                            "Principal": {"Service": "ec2.amazonaws.com"},
                            "Effect": "Allow",
                        }
                    ],
                }
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-instance-policy",
            role=self.instance_role.name,
            policy_arn="arn:aws:iam::aws:policy/service-role/AmazonEC2ContainerServiceforEC2Role",
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.instance_profile = aws.iam.InstanceProfile(
            f"{name}-instance-profile",
            role=self.instance_role.name,
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =================================================================
        # Launch Template
        # =================================================================
        ami = aws.ssm.get_parameter_output(
            name=ECS_OPTIMIZED_AMI_PARAMETER,
            opts=pulumi.InvokeOptions(parent=self),
        )

        self.launch_template = aws.ec2.LaunchTemplate(
            f"{name}-lt",
            image_id=ami.value,
            instance_type=instance_type,
            iam_instance_profile=aws.ec2.LaunchTemplateIamInstanceProfileArgs(
                arn=self.instance_profile.arn,
            ),
            vpc_security_group_ids=[self.security_group.id],
            user_data=pulumi.Output.from_input(cluster_name).apply(_user_data),
            tag_specifications=[
                aws.ec2.LaunchTemplateTagSpecificationArgs(
                    resource_type="instance",
                    tags={**self.tags, "Name": f"{name}-instance"},
                ),
            ],
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =================================================================
        # Auto Scaling Group
        # =================================================================
        self.auto_scaling_group = aws.autoscaling.Group(
            f"{name}-asg",
            min_size=min_capacity,
            max_size=max_capacity,
            vpc_zone_identifiers=subnet_ids,
            launch_template=aws.autoscaling.GroupLaunchTemplateArgs(
                id=self.launch_template.id,
                version="$Latest",
            ),
            # Required by managed termination protection
            protect_from_scale_in=True,
            # Protected instances never drain on destroy
            force_delete=True,
            tags=[
                aws.autoscaling.GroupTagArgs(
                    key="AmazonECSManaged", value="true", propagate_at_launch=True
                ),
                aws.autoscaling.GroupTagArgs(
                    key="Name", value=f"{name}-asg", propagate_at_launch=True
                ),
            ],
            # Desired capacity is driven by the scaling policy and ECS
            opts=pulumi.ResourceOptions(parent=self, ignore_changes=["desired_capacity"]),
        )

        self.cpu_scaling = aws.autoscaling.Policy(
            f"{name}-cpu-scaling",
            autoscaling_group_name=self.auto_scaling_group.name,
            policy_type="TargetTrackingScaling",
            estimated_instance_warmup=SCALING_COOLDOWN_SECONDS,
            target_tracking_configuration=aws.autoscaling.PolicyTargetTrackingConfigurationArgs(
                predefined_metric_specification=aws.autoscaling.PolicyTargetTrackingConfigurationPredefinedMetricSpecificationArgs(
                    predefined_metric_type="ASGAverageCPUUtilization",
                ),
                target_value=CPU_TARGET_UTILIZATION_PERCENT,
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )

        # =================================================================
        # Capacity Provider - binds the group to the cluster
        # =================================================================
        self.capacity_provider = aws.ecs.CapacityProvider(
            f"{name}-cp",
            auto_scaling_group_provider=aws.ecs.CapacityProviderAutoScalingGroupProviderArgs(
                auto_scaling_group_arn=self.auto_scaling_group.arn,
                managed_termination_protection="ENABLED",
                managed_scaling=aws.ecs.CapacityProviderAutoScalingGroupProviderManagedScalingArgs(
                    status="ENABLED",
                    target_capacity=100,
                ),
            ),
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.cluster_binding = aws.ecs.ClusterCapacityProviders(
            f"{name}-binding",
            cluster_name=cluster_name,
            capacity_providers=[self.capacity_provider.name],
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "auto_scaling_group_name": self.auto_scaling_group.name,
                "capacity_provider_name": self.capacity_provider.name,
                "security_group_id": self.security_group.id,
            }
        )
