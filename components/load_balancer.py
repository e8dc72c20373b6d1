"""Load Balancer Component - public entry point with blue/green listeners.

Creates an internet-facing ALB with two independent listeners:
- Blue (production) listener on port 80
- Green (test) listener on port 8080

Each listener answers unmatched requests with a fixed 404 naming its side
and forwards host-matched requests to its own target group. Only the blue
target group receives the service's tasks at creation; CodeDeploy moves
traffic between the two during a deployment.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from common.config import (
    BLUE_LISTENER_PORT,
    BLUE_RULE_PRIORITY,
    DEREGISTRATION_DELAY_SECONDS,
    GREEN_LISTENER_PORT,
    GREEN_RULE_PRIORITY,
)


@dataclass(frozen=True)
class TrafficSide:
    """One half of the blue/green pair."""

    color: str
    label: str
    port: int
    priority: int


class TrafficRoute:
    """Listener, target group and host rule for one side."""

    def __init__(
        self,
        listener: aws.lb.Listener,
        target_group: aws.lb.TargetGroup,
        rule: aws.lb.ListenerRule,
    ):
        self.listener = listener
        self.target_group = target_group
        self.rule = rule


class LoadBalancerComponent(pulumi.ComponentResource):
    """Application Load Balancer with blue and green traffic routes."""

    def __init__(
        self,
        name: str,
        vpc_id: pulumi.Input[str],
        subnet_ids: pulumi.Input[list[str]],
        host_header: str = "test.example.com",
        target_port: int = 80,
        blue_port: int = BLUE_LISTENER_PORT,
        green_port: int = GREEN_LISTENER_PORT,
        tags: dict | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        if blue_port == green_port:
            raise ValueError(
                f"Blue and green listeners must use different ports (both {blue_port})"
            )

        super().__init__("ecsbluegreen:network:LoadBalancer", name, None, opts)

        self.tags = tags or {}
        self.vpc_id = vpc_id
        self.host_header = host_header
        self.target_port = target_port

        # Security Group - listener ports open to the internet
        self.security_group = aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=vpc_id,
            description="Security group for the public load balancer",
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    description=f"Allow from anyone on port {port}",
                    protocol="tcp",
                    from_port=port,
                    to_port=port,
                    cidr_blocks=["0.0.0.0/0"],
                )
                for port in (blue_port, green_port)
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

        self.load_balancer = aws.lb.LoadBalancer(
            f"{name}-alb",
            load_balancer_type="application",
            internal=False,
            security_groups=[self.security_group.id],
            subnets=subnet_ids,
            tags={**self.tags, "Name": f"{name}-alb"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        # Blue first: production traffic, priority 1
        self.blue = self._declare_route(
            name, TrafficSide("blue", "Blue", blue_port, BLUE_RULE_PRIORITY)
        )
        self.green = self._declare_route(
            name, TrafficSide("green", "Green", green_port, GREEN_RULE_PRIORITY)
        )

        self.dns_name = self.load_balancer.dns_name

        self.register_outputs(
            {
                "dns_name": self.dns_name,
                "blue_listener_arn": self.blue.listener.arn,
                "green_listener_arn": self.green.listener.arn,
                "blue_target_group_name": self.blue.target_group.name,
                "green_target_group_name": self.green.target_group.name,
            }
        )

    def _declare_route(self, name: str, side: TrafficSide) -> TrafficRoute:
        listener = aws.lb.Listener(
            f"{name}-listener-{side.color}",
            load_balancer_arn=self.load_balancer.arn,
            port=side.port,
            protocol="HTTP",
            default_actions=[
                aws.lb.ListenerDefaultActionArgs(
                    type="fixed-response",
                    fixed_response=aws.lb.ListenerDefaultActionFixedResponseArgs(
                        content_type="text/plain",
                        status_code="404",
                        message_body=side.label,
                    ),
                ),
            ],
            tags=self.tags,
            opts=pulumi.ResourceOptions(parent=self),
        )

        target_group = aws.lb.TargetGroup(
            f"{name}-tg-{side.color}",
            vpc_id=self.vpc_id,
            port=self.target_port,
            protocol="HTTP",
            target_type="instance",
            deregistration_delay=DEREGISTRATION_DELAY_SECONDS,
            tags={**self.tags, "Side": side.color},
            opts=pulumi.ResourceOptions(parent=self),
        )

        rule = aws.lb.ListenerRule(
            f"{name}-rule-{side.color}",
            listener_arn=listener.arn,
            priority=side.priority,
            conditions=[
                aws.lb.ListenerRuleConditionArgs(
                    host_header=aws.lb.ListenerRuleConditionHostHeaderArgs(
                        values=[self.host_header],
                    ),
                ),
            ],
            actions=[
                aws.lb.ListenerRuleActionArgs(
                    type="forward",
                    target_group_arn=target_group.arn,
                ),
            ],
            tags=self.tags,
            # CodeDeploy swaps the forward target during a cutover
            opts=pulumi.ResourceOptions(parent=self, ignore_changes=["actions"]),
        )

        return TrafficRoute(listener, target_group, rule)
