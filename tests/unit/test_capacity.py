"""Unit tests for the capacity pool component."""

import base64

import pytest

from components.capacity import CapacityPoolComponent, _user_data


def _declare(min_capacity: int = 1, max_capacity: int = 2):
    pool = CapacityPoolComponent(
        "test-capacity",
        vpc_id="vpc-1",
        subnet_ids=["subnet-priv-a", "subnet-priv-b"],
        cluster_name="TestCluster",
        instance_type="c6a.large",
        min_capacity=min_capacity,
        max_capacity=max_capacity,
    )
    return pool.capacity_provider.name


class TestUserData:
    """Tests for the instance bootstrap script."""

    def test_registers_with_cluster(self):
        """Test that the script joins the named cluster."""
        script = base64.b64decode(_user_data("TestCluster")).decode()
        assert script.startswith("#!/bin/bash")
        assert "ECS_CLUSTER=TestCluster" in script


class TestCapacityPoolComponent:
    """Tests for CapacityPoolComponent."""

    def test_group_bounds(self, mocks, synth):
        """Test that the group is sized by the configured bounds."""
        synth(_declare)

        group = mocks.named("-asg")
        assert group.inputs["minSize"] == 1
        assert group.inputs["maxSize"] == 2
        assert group.inputs["vpcZoneIdentifiers"] == ["subnet-priv-a", "subnet-priv-b"]
        assert group.inputs["protectFromScaleIn"] is True

    def test_group_deletes_without_draining(self, mocks, synth):
        """Test that scale-in protected instances do not block teardown."""
        synth(_declare)

        group = mocks.named("-asg")
        assert group.inputs["protectFromScaleIn"] is True
        assert group.inputs["forceDelete"] is True

    def test_fixed_size_pool(self, mocks, synth):
        """Test that min == max is accepted."""
        synth(lambda: _declare(min_capacity=2, max_capacity=2))

        group = mocks.named("-asg")
        assert group.inputs["minSize"] == group.inputs["maxSize"] == 2

    def test_rejects_min_above_max(self, mocks):
        """Test that inverted bounds are rejected before anything is declared."""
        with pytest.raises(ValueError, match="exceeds max_capacity"):
            CapacityPoolComponent(
                "bad-capacity",
                vpc_id="vpc-1",
                subnet_ids=["subnet-a"],
                cluster_name="TestCluster",
                min_capacity=3,
                max_capacity=2,
            )
        assert not mocks.resources

    def test_cpu_target_tracking(self, mocks, synth):
        """Test the CPU target tracking policy."""
        synth(_declare)

        policy = mocks.named("-cpu-scaling")
        assert policy.inputs["policyType"] == "TargetTrackingScaling"
        assert policy.inputs["estimatedInstanceWarmup"] == 60
        tracking = policy.inputs["targetTrackingConfiguration"]
        assert tracking["targetValue"] == 50
        assert (
            tracking["predefinedMetricSpecification"]["predefinedMetricType"]
            == "ASGAverageCPUUtilization"
        )

    def test_launch_template_instance_type(self, mocks, synth):
        """Test that instances use the configured type and ECS-optimized AMI."""
        synth(_declare)

        template = mocks.named("-lt")
        assert template.inputs["instanceType"] == "c6a.large"
        assert template.inputs["imageId"] == "ami-0123456789abcdef0"

    def test_capacity_provider_bound_to_cluster(self, mocks, synth):
        """Test that the group backs a managed capacity provider on the cluster."""
        name = synth(_declare)

        provider = mocks.named("-cp")
        group_provider = provider.inputs["autoScalingGroupProvider"]
        assert group_provider["managedTerminationProtection"] == "ENABLED"
        assert group_provider["managedScaling"]["status"] == "ENABLED"

        binding = mocks.named("-binding")
        assert binding.inputs["clusterName"] == "TestCluster"
        assert binding.inputs["capacityProviders"] == [name]

    def test_instance_security_group_allows_lb_traffic(self, mocks, synth):
        """Test that container instances accept the dynamic host port range."""
        synth(_declare)

        group = mocks.named("capacity-sg")
        (ingress,) = group.inputs["ingress"]
        assert ingress["protocol"] == "tcp"
        assert ingress["fromPort"] == 0
        assert ingress["toPort"] == 65535
