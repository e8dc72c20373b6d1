"""Topology Component - the full ECS blue/green declaration.

Steps run in a fixed order and only reference what was declared before:
1. Network lookup (existing VPC)
2. ECS cluster
3. Capacity pool (Auto Scaling group + capacity provider)
4. Load balancer (blue/green listeners, target groups, host rules)
5. Workload (task definition + service)
6. Deployment pipeline (CodeDeploy + deployment trigger)
"""

import pulumi
import pulumi_aws as aws

from common.config import TopologyConfig
from components.capacity import CapacityPoolComponent
from components.cluster import ClusterComponent
from components.load_balancer import LoadBalancerComponent
from components.network import NetworkLookup
from components.pipeline import DeploymentPipelineComponent
from components.workload import WorkloadComponent


def target_provider(name: str, config: TopologyConfig) -> aws.Provider | None:
    """Explicit AWS provider pinned to the configured account/region.

    Returns ``None`` for an environment-agnostic stack so the default
    provider (ambient credentials and ``aws:region``) is used.
    """
    if config.is_environment_agnostic:
        return None

    return aws.Provider(
        f"{name}-aws",
        # Explicit providers do not read aws:* stack config
        region=config.region or pulumi.Config("aws").get("region"),
        allowed_account_ids=[config.account] if config.account else None,
    )


class TopologyComponent(pulumi.ComponentResource):
    """Cluster, capacity pool, load balancer, service and CodeDeploy pipeline."""

    def __init__(
        self,
        name: str,
        config: TopologyConfig,
        application_name: str | None = None,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("ecsbluegreen:topology:Topology", name, None, opts)

        self.config = config
        self.tags = tags or {}
        child = pulumi.ResourceOptions(parent=self)

        pulumi.log.info(
            f"Declaring topology in {config.vpc_id} "
            f"({config.instance_type}, {config.min_capacity}-{config.max_capacity} instances)",
            resource=self,
        )

        # =================================================================
        # 1. Network
        # =================================================================
        self.network = NetworkLookup(
            config.vpc_id, opts=pulumi.InvokeOptions(parent=self)
        )

        # =================================================================
        # 2. Cluster
        # =================================================================
        self.cluster = ClusterComponent(
            f"{name}-cluster",
            vpc_id=self.network.vpc.id,
            cluster_name=config.cluster_name,
            namespace=config.namespace,
            tags=self.tags,
            opts=child,
        )

        # =================================================================
        # 3. Capacity pool
        # =================================================================
        self.capacity = CapacityPoolComponent(
            f"{name}-capacity",
            vpc_id=self.network.vpc.id,
            subnet_ids=self.network.private_subnet_ids,
            cluster_name=self.cluster.cluster.name,
            instance_type=config.instance_type,
            min_capacity=config.min_capacity,
            max_capacity=config.max_capacity,
            tags=self.tags,
            opts=child,
        )

        # =================================================================
        # 4. Load balancer
        # =================================================================
        self.load_balancer = LoadBalancerComponent(
            f"{name}-lb",
            vpc_id=self.network.vpc.id,
            subnet_ids=self.network.public_subnet_ids,
            host_header=config.host_header,
            target_port=config.container_port,
            tags=self.tags,
            opts=child,
        )

        # =================================================================
        # 5. Workload
        # =================================================================
        self.workload = WorkloadComponent(
            f"{name}-workload",
            cluster_arn=self.cluster.cluster.arn,
            capacity_provider_name=self.capacity.capacity_provider.name,
            target_group_arn=self.load_balancer.blue.target_group.arn,
            container_name=config.container_name,
            container_image=config.container_image,
            container_memory_mib=config.container_memory_mib,
            container_port=config.container_port,
            desired_count=config.desired_count,
            log_retention_days=config.log_retention_days,
            # Target group must be behind a listener, capacity provider bound
            depends_on=[self.load_balancer.blue.rule, self.capacity.cluster_binding],
            tags=self.tags,
            opts=child,
        )

        # =================================================================
        # 6. Deployment pipeline
        # =================================================================
        self.pipeline = DeploymentPipelineComponent(
            f"{name}-pipeline",
            application_name=application_name or name,
            service_role_arn=config.code_deploy_role_arn,
            cluster_name=self.cluster.cluster.name,
            service_name=self.workload.service.name,
            blue=self.load_balancer.blue,
            green=self.load_balancer.green,
            task_definition_arn=self.workload.task_definition.arn,
            container_name=config.container_name,
            container_port=config.container_port,
            # boto3 follows the same region as the resources it deploys
            region=config.region
            or aws.get_region_output(opts=pulumi.InvokeOptions(parent=self)).name,
            wait_for_deployment=config.wait_for_deployment,
            tags=self.tags,
            opts=child,
        )

        self.load_balancer_dns = self.load_balancer.dns_name

        self.register_outputs(
            {
                "load_balancer_dns": self.load_balancer_dns,
                "cluster_name": self.cluster.cluster.name,
                "service_name": self.workload.service.name,
                "deployment_group_name": self.pipeline.deployment_group.deployment_group_name,
            }
        )
