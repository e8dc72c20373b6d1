"""Components package for the ECS blue/green topology.

- NetworkLookup: existing VPC and subnets
- ClusterComponent: ECS cluster + service discovery namespace
- CapacityPoolComponent: EC2 Auto Scaling group as an ECS capacity provider
- LoadBalancerComponent: ALB with blue/green listeners and target groups
- WorkloadComponent: task definition + CodeDeploy-controlled service
- DeploymentPipelineComponent: CodeDeploy application, group and trigger
- TopologyComponent: all of the above, in order
"""

from components.capacity import CapacityPoolComponent
from components.cluster import ClusterComponent
from components.deployment_trigger import EcsDeployment
from components.load_balancer import LoadBalancerComponent
from components.network import NetworkLookup
from components.pipeline import DeploymentPipelineComponent
from components.topology import TopologyComponent, target_provider
from components.workload import WorkloadComponent

__all__ = [
    "CapacityPoolComponent",
    "ClusterComponent",
    "DeploymentPipelineComponent",
    "EcsDeployment",
    "LoadBalancerComponent",
    "NetworkLookup",
    "TopologyComponent",
    "WorkloadComponent",
    "target_provider",
]
