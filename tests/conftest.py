"""Pytest configuration and fixtures.

Resources are declared against ``pulumi.runtime.set_mocks`` so nothing talks
to AWS or the Pulumi engine. Every registration is recorded on the mocks
object for inspection.
"""

import os

# Keep the deployer off any developer stack
os.environ.setdefault("STACK_NAME", "test")

import pulumi
import pytest

from common.config import TopologyConfig

MOCK_ACCOUNT = "123456789012"
MOCK_REGION = "us-east-1"

PUBLIC_SUBNETS = ["subnet-pub-b", "subnet-pub-a"]
PRIVATE_SUBNETS = ["subnet-priv-b", "subnet-priv-a"]
ISOLATED_SUBNETS = ["subnet-iso-a"]


class FakeConfig:
    """Dict-backed stand-in for ``pulumi.Config``."""

    def __init__(self, values: dict[str, str]):
        self.values = values

    def require(self, key: str) -> str:
        if key not in self.values:
            raise pulumi.ConfigMissingError(key, False)
        return self.values[key]

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def get_int(self, key: str) -> int | None:
        value = self.values.get(key)
        return int(value) if value is not None else None

    def get_bool(self, key: str) -> bool | None:
        value = self.values.get(key)
        return value == "true" if value is not None else None


def route(gateway_id: str = "", nat_gateway_id: str = "", network_interface_id: str = "") -> dict:
    """A 0.0.0.0/0 route as returned by the route table lookup."""
    return {
        "cidrBlock": "0.0.0.0/0",
        "gatewayId": gateway_id,
        "natGatewayId": nat_gateway_id,
        "networkInterfaceId": network_interface_id,
    }


def route_table(routes: list[dict], subnet_ids=(), main: bool = False) -> dict:
    """A route table with explicit subnet associations (and optionally main)."""
    associations = [{"subnetId": subnet_id, "main": False} for subnet_id in subnet_ids]
    if main:
        associations.append({"subnetId": "", "main": True})
    return {"routes": routes, "associations": associations}


# Public via IGW, private via NAT, isolated subnet left on the main table
DEFAULT_ROUTE_TABLES = {
    "rtb-public": route_table([route(gateway_id="igw-0abc")], PUBLIC_SUBNETS),
    "rtb-private": route_table([route(nat_gateway_id="nat-0abc")], PRIVATE_SUBNETS),
    "rtb-main": route_table([], main=True),
}


class TopologyMocks(pulumi.runtime.Mocks):
    """Records registrations and answers the invokes the topology makes."""

    def __init__(
        self,
        subnets: list[str] | None = None,
        route_tables: dict[str, dict] | None = None,
    ):
        self.resources: list[pulumi.runtime.MockResourceArgs] = []
        self.calls: list[pulumi.runtime.MockCallArgs] = []
        self.subnets = subnets or [*PUBLIC_SUBNETS, *PRIVATE_SUBNETS, *ISOLATED_SUBNETS]
        self.route_tables = route_tables or DEFAULT_ROUTE_TABLES

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        self.resources.append(args)
        outputs = dict(args.inputs)
        outputs.setdefault("name", args.name)
        outputs.setdefault(
            "arn", f"arn:aws:mock:{MOCK_REGION}:{MOCK_ACCOUNT}:{args.typ.split(':')[1]}/{args.name}"
        )

        if args.typ == "aws:lb/loadBalancer:LoadBalancer":
            outputs["dnsName"] = f"{args.name}-1234567890.{MOCK_REGION}.elb.amazonaws.com"
        elif args.typ == "aws:codedeploy/deploymentGroup:DeploymentGroup":
            outputs.setdefault("deploymentGroupName", args.name)
        elif args.typ == "pulumi-python:dynamic:Resource":
            outputs["deployment_id"] = "d-MOCK12345"

        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        self.calls.append(args)

        if args.token == "aws:ec2/getVpc:getVpc":
            return {
                "id": args.args.get("id"),
                "arn": f"arn:aws:ec2:{MOCK_REGION}:{MOCK_ACCOUNT}:vpc/{args.args.get('id')}",
                "cidrBlock": "10.0.0.0/16",
            }
        if args.token == "aws:ec2/getSubnets:getSubnets":
            return {"id": MOCK_REGION, "ids": list(self.subnets)}
        if args.token == "aws:ec2/getRouteTables:getRouteTables":
            return {"id": args.args.get("vpcId"), "ids": list(self.route_tables)}
        if args.token == "aws:ec2/getRouteTable:getRouteTable":
            table_id = args.args.get("routeTableId")
            return {
                "id": table_id,
                "routeTableId": table_id,
                "vpcId": "vpc-yourvpc",
                **self.route_tables[table_id],
            }
        if args.token == "aws:ssm/getParameter:getParameter":
            return {
                "id": args.args.get("name"),
                "name": args.args.get("name"),
                "type": "String",
                "value": "ami-0123456789abcdef0",
            }
        if args.token == "aws:index/getRegion:getRegion":
            return {"id": MOCK_REGION, "name": MOCK_REGION, "region": MOCK_REGION}
        return {}

    def of_type(self, typ: str) -> list[pulumi.runtime.MockResourceArgs]:
        return [r for r in self.resources if r.typ == typ]

    def named(self, suffix: str) -> pulumi.runtime.MockResourceArgs:
        matches = [r for r in self.resources if r.name.endswith(suffix)]
        assert len(matches) == 1, f"expected one resource ending in {suffix!r}, got {matches}"
        return matches[0]


def run_program(program):
    """Run ``program`` under the active mocks.

    ``program`` may return an Output (or a dict of Outputs); the resolved
    value is returned once every registration has completed.
    """
    resolved = {}

    @pulumi.runtime.test
    def run():
        return pulumi.Output.from_input(program()).apply(
            lambda value: resolved.setdefault("value", value)
        )

    run()
    return resolved.get("value")


@pytest.fixture
def install_mocks():
    """Installer for mocks answering a custom VPC layout."""

    def install(**kwargs) -> TopologyMocks:
        topology_mocks = TopologyMocks(**kwargs)
        pulumi.runtime.set_mocks(
            topology_mocks, project="ecs-bluegreen", stack="test", preview=False
        )
        return topology_mocks

    return install


@pytest.fixture
def mocks(install_mocks):
    """Fresh mocks installed for the test."""
    return install_mocks()


@pytest.fixture
def topology_config() -> TopologyConfig:
    """The reference input record."""
    return TopologyConfig(
        vpc_id="vpc-yourvpc",
        instance_type="c6a.large",
        min_capacity=1,
        max_capacity=2,
        code_deploy_role_arn="arn:aws:iam::yourrole:role/ecsCodeDeployRole",
    )


@pytest.fixture
def fake_config():
    """Factory for dict-backed stack configuration."""
    return FakeConfig


@pytest.fixture
def synth(mocks):
    """Runner for declaration programs under the installed mocks."""
    return run_program
