"""ECS Blue/Green Topology - Main Entry Point.

Declares an ECS cluster on an autoscaled EC2 capacity pool behind an
internet-facing ALB, with CodeDeploy handling blue/green rollouts.

Architecture:
- Network: existing VPC (looked up, never created)
- Compute: ECS cluster + Auto Scaling group capacity provider
- Traffic: ALB, blue listener :80 / green listener :8080
- Deploy: CodeDeploy ECS application + deployment group (all at once)
"""

import pulumi

from common.config import load_topology_config
from components.topology import TopologyComponent, target_provider

# Get configuration
config = load_topology_config()
stack = pulumi.get_stack()

common_tags = {
    "Project": pulumi.get_project(),
    "Environment": stack,
    "ManagedBy": "pulumi",
}

provider = target_provider(f"{stack}-target", config)

# =============================================================================
# Topology
# =============================================================================
topology = TopologyComponent(
    f"{stack}-topology",
    config=config,
    application_name=f"{pulumi.get_project()}-{stack}",
    tags=common_tags,
    opts=pulumi.ResourceOptions(providers=[provider] if provider else None),
)

# =============================================================================
# Stack Outputs
# =============================================================================
pulumi.export("LoadBalancerDNS", topology.load_balancer_dns)
