#!/usr/bin/env python3
"""Generate AWS architecture diagrams for the ECS blue/green topology.

This script uses the `diagrams` library to generate architecture diagrams
with official AWS icons. Run this script to regenerate diagrams after
topology changes.

Requirements:
    pip install -e ".[docs]"

Usage:
    python aws_architecture.py

Output:
    - aws_architecture.png: Declared resources and their references
    - blue_green_cutover.png: How CodeDeploy shifts traffic
"""

import argparse

from diagrams import Cluster, Diagram, Edge
from diagrams.aws.compute import EC2AutoScaling, ECS, ElasticContainerServiceService
from diagrams.aws.devtools import Codedeploy
from diagrams.aws.management import Cloudwatch
from diagrams.aws.network import ELB, CloudMap
from diagrams.onprem.client import Users

SIZE_PRESETS = {
    "small": {"node_width": "1.0", "node_height": "1.0", "fontsize": "10", "title_fontsize": "16"},
    "medium": {"node_width": "1.5", "node_height": "1.5", "fontsize": "12", "title_fontsize": "20"},
    "large": {"node_width": "2.0", "node_height": "2.0", "fontsize": "14", "title_fontsize": "24"},
}

DEFAULT_SIZE = "medium"


def get_diagram_attrs(size: str = DEFAULT_SIZE) -> tuple[dict, dict]:
    """Get graph and node attributes for the given size preset."""
    preset = SIZE_PRESETS.get(size, SIZE_PRESETS["medium"])

    graph_attr = {
        "fontsize": preset["title_fontsize"],
        "bgcolor": "white",
        "pad": "0.5",
        "splines": "ortho",
    }
    node_attr = {
        "width": preset["node_width"],
        "height": preset["node_height"],
        "fontsize": preset["fontsize"],
    }
    return graph_attr, node_attr


def create_full_architecture(size: str = DEFAULT_SIZE):
    """Create the main topology diagram."""
    graph_attr, node_attr = get_diagram_attrs(size)
    with Diagram(
        "ECS Blue/Green - AWS Architecture",
        filename="aws_architecture",
        show=False,
        direction="LR",
        graph_attr=graph_attr,
        node_attr=node_attr,
    ):
        users = Users("Clients")

        with Cluster("Existing VPC"):
            with Cluster("Public Subnets"):
                alb = ELB("ALB\n:80 blue / :8080 green")

            with Cluster("Private Subnets"):
                asg = EC2AutoScaling("Auto Scaling Group\nCPU target 50%")
                cluster = ECS("ECS Cluster\nTestCluster")
                service = ElasticContainerServiceService("Service\nbinpack mem, spread AZ")

            namespace = CloudMap("example.local")

        codedeploy = Codedeploy("CodeDeploy\nAllAtOnce")
        logs = Cloudwatch("Container Logs")

        users >> alb >> Edge(label="host rule") >> service
        asg >> Edge(label="capacity provider") >> cluster
        cluster >> service
        cluster - namespace
        service >> logs
        codedeploy >> Edge(style="dashed") >> alb
        codedeploy >> Edge(style="dashed") >> service


def create_cutover_flow(size: str = DEFAULT_SIZE):
    """Create the blue/green cutover diagram."""
    graph_attr, node_attr = get_diagram_attrs(size)
    with Diagram(
        "Blue/Green Cutover",
        filename="blue_green_cutover",
        show=False,
        direction="LR",
        graph_attr=graph_attr,
        node_attr=node_attr,
    ):
        deployer = Codedeploy("EcsDeployment\n(trigger)")

        with Cluster("Load Balancer"):
            blue_listener = ELB("Blue listener :80")
            green_listener = ELB("Green listener :8080")

        with Cluster("Blue target group"):
            current = ElasticContainerServiceService("Current tasks")

        with Cluster("Green target group"):
            candidate = ElasticContainerServiceService("Replacement tasks")

        deployer >> Edge(label="1. Start replacement tasks") >> candidate
        green_listener >> Edge(label="2. Test traffic") >> candidate
        blue_listener >> Edge(label="3. Shift all traffic") >> candidate
        blue_listener >> Edge(style="dashed", label="before cutover") >> current
        deployer >> Edge(label="4. Terminate old tasks", style="dotted") >> current


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate AWS architecture diagrams")
    parser.add_argument(
        "--size",
        choices=list(SIZE_PRESETS),
        default=DEFAULT_SIZE,
        help=f"Icon size preset (default: {DEFAULT_SIZE})",
    )
    args = parser.parse_args()

    print(f"Generating architecture diagrams (size: {args.size})...")
    create_full_architecture(args.size)
    print("✓ aws_architecture.png")
    create_cutover_flow(args.size)
    print("✓ blue_green_cutover.png")
    print("\nDone! Diagrams saved to current directory.")
