"""Network lookup - resolves the existing VPC the topology is placed into.

Nothing here is created or destroyed. Subnets are classified by the routes
of their route table (the VPC main table when none is associated):
- Public subnets: default route to an internet gateway, for the load balancer
- Private subnets: egress through a NAT, for the container instances
- Isolated subnets: neither, never used
"""

import pulumi
import pulumi_aws as aws

PUBLIC = "public"
PRIVATE = "private"
ISOLATED = "isolated"


def require_subnets(ids: list[str] | None, vpc_id: str, kind: str) -> list[str]:
    """Sorted subnet ids, or a fatal error when the VPC has none of this kind."""
    if not ids:
        raise pulumi.RunError(f"VPC {vpc_id} has no {kind} subnets to place resources in")
    return sorted(ids)


def route_table_kind(routes) -> str:
    """Classify a route table by where its traffic can leave the VPC."""
    if any((route.gateway_id or "").startswith("igw-") for route in routes):
        return PUBLIC
    # NAT gateway, or a NAT instance reached through its interface
    if any(route.nat_gateway_id or route.network_interface_id for route in routes):
        return PRIVATE
    return ISOLATED


def classify_subnets(subnet_ids: list[str], route_tables) -> dict[str, list[str]]:
    """Group subnet ids into public, private and isolated.

    Args:
        subnet_ids: Every subnet in the VPC.
        route_tables: Route table lookups with ``routes`` and ``associations``.

    Returns:
        Subnet ids keyed by kind.
    """
    main_kind = ISOLATED
    explicit = {}
    for table in route_tables:
        kind = route_table_kind(table.routes or [])
        for association in table.associations or []:
            if association.main:
                main_kind = kind
            elif association.subnet_id:
                explicit[association.subnet_id] = kind

    classified = {PUBLIC: [], PRIVATE: [], ISOLATED: []}
    for subnet_id in subnet_ids:
        classified[explicit.get(subnet_id, main_kind)].append(subnet_id)
    return classified


class NetworkLookup:
    """Existing VPC and its subnets, looked up by VPC id."""

    def __init__(self, vpc_id: str, opts: pulumi.InvokeOptions | None = None):
        self.vpc_id = vpc_id

        # Fails the whole declaration if the id does not resolve
        self.vpc = aws.ec2.get_vpc_output(id=vpc_id, opts=opts)

        subnets = aws.ec2.get_subnets_output(
            filters=[aws.ec2.GetSubnetsFilterArgs(name="vpc-id", values=[vpc_id])],
            opts=opts,
        )
        route_table_ids = aws.ec2.get_route_tables_output(vpc_id=vpc_id, opts=opts).ids
        route_tables = route_table_ids.apply(
            lambda ids: pulumi.Output.all(
                *[
                    aws.ec2.get_route_table_output(route_table_id=table_id, opts=opts)
                    for table_id in sorted(ids or [])
                ]
            )
        )

        self.subnets = pulumi.Output.all(subnets.ids, route_tables).apply(
            lambda args: classify_subnets(args[0] or [], args[1])
        )
        self.public_subnet_ids = self.subnets.apply(
            lambda classified: require_subnets(classified[PUBLIC], vpc_id, PUBLIC)
        )
        self.private_subnet_ids = self.subnets.apply(
            lambda classified: require_subnets(classified[PRIVATE], vpc_id, PRIVATE)
        )
