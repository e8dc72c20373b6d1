"""Cluster Component - ECS cluster and its service-discovery namespace."""

import pulumi
import pulumi_aws as aws


class ClusterComponent(pulumi.ComponentResource):
    """ECS cluster with a Cloud Map private DNS namespace in the VPC."""

    def __init__(
        self,
        name: str,
        vpc_id: pulumi.Input[str],
        cluster_name: str = "TestCluster",
        namespace: str = "example.local",
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("ecsbluegreen:container:Cluster", name, None, opts)

        self.tags = tags or {}

        # Private DNS namespace for service discovery
        self.namespace = aws.servicediscovery.PrivateDnsNamespace(
            f"{name}-namespace",
            name=namespace,
            vpc=vpc_id,
            description=f"Service discovery namespace for {cluster_name}",
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.cluster = aws.ecs.Cluster(
            f"{name}-cluster",
            name=cluster_name,
            service_connect_defaults=aws.ecs.ClusterServiceConnectDefaultsArgs(
                namespace=self.namespace.arn,
            ),
            tags={**self.tags, "Name": cluster_name},
            opts=pulumi.ResourceOptions(parent=self),
        )

        self.register_outputs(
            {
                "cluster_name": self.cluster.name,
                "cluster_arn": self.cluster.arn,
                "namespace_id": self.namespace.id,
            }
        )
