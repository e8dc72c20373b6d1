"""Configuration for the ECS blue/green topology.

Two layers:
- ``TopologyConfig``: the validated input record for the Pulumi program,
  read from stack configuration (``Pulumi.<stack>.yaml``).
- ``Settings``: environment-driven settings for the ``deployer`` CLI.
"""

from functools import lru_cache

import pulumi
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Scaling policy (fixed, not driven by stack config)
CPU_TARGET_UTILIZATION_PERCENT = 50
SCALING_COOLDOWN_SECONDS = 60

# Blue/green listeners
BLUE_LISTENER_PORT = 80
GREEN_LISTENER_PORT = 8080
BLUE_RULE_PRIORITY = 1
GREEN_RULE_PRIORITY = 2
DEREGISTRATION_DELAY_SECONDS = 5

# CodeDeploy
DEPLOYMENT_CONFIG_NAME = "CodeDeployDefault.ECSAllAtOnce"

DEFAULT_CONTAINER_IMAGE = "public.ecr.aws/ecs-sample-image/amazon-ecs-sample:latest"


class TopologyConfig(BaseModel):
    """Input record for the topology declaration.

    Only the network, instance shape, capacity bounds and deployment role are
    expected to change between stacks. The workload literals default to the
    sample service and can be overridden per stack.
    """

    model_config = ConfigDict(frozen=True)

    vpc_id: str = Field(min_length=1)
    instance_type: str = "c6a.large"
    min_capacity: int = Field(default=1, ge=0)
    max_capacity: int = Field(default=2, ge=0)
    code_deploy_role_arn: str = Field(min_length=1)

    # Deployment target (both unset = environment-agnostic)
    account: str | None = None
    region: str | None = None

    # Cluster
    cluster_name: str = "TestCluster"
    namespace: str = "example.local"

    # Workload
    container_name: str = "Test-Container"
    container_image: str = DEFAULT_CONTAINER_IMAGE
    container_memory_mib: int = Field(default=256, gt=0)
    container_port: int = Field(default=80, gt=0, le=65535)
    desired_count: int = Field(default=1, ge=0)
    host_header: str = "test.example.com"
    log_retention_days: int = 7

    # Block until the CodeDeploy deployment finishes
    wait_for_deployment: bool = False

    @model_validator(mode="after")
    def _check_capacity_bounds(self) -> "TopologyConfig":
        if self.min_capacity > self.max_capacity:
            raise ValueError(
                f"min_capacity ({self.min_capacity}) must not exceed "
                f"max_capacity ({self.max_capacity})"
            )
        return self

    @property
    def is_environment_agnostic(self) -> bool:
        """True when neither account nor region pins the deployment target."""
        return not (self.account or self.region)


def load_topology_config(config: pulumi.Config | None = None) -> TopologyConfig:
    """Build a ``TopologyConfig`` from Pulumi stack configuration.

    The deployment target is pinned only by the project's own ``account`` and
    ``region`` keys. ``aws:*`` settings keep configuring the default provider.

    Args:
        config: Project config namespace. Defaults to the current project.

    Returns:
        The validated topology configuration.

    Raises:
        pulumi.RunError: If the configuration does not validate.
    """
    config = config or pulumi.Config()

    values = {
        "vpc_id": config.require("vpcId"),
        "instance_type": config.get("instanceType"),
        "min_capacity": config.get_int("minCapacity"),
        "max_capacity": config.get_int("maxCapacity"),
        "code_deploy_role_arn": config.require("codeDeployRoleArn"),
        "account": config.get("account"),
        "region": config.get("region"),
        "cluster_name": config.get("clusterName"),
        "namespace": config.get("namespace"),
        "container_name": config.get("containerName"),
        "container_image": config.get("containerImage"),
        "container_memory_mib": config.get_int("containerMemoryMiB"),
        "container_port": config.get_int("containerPort"),
        "desired_count": config.get_int("desiredCount"),
        "host_header": config.get("hostHeader"),
        "log_retention_days": config.get_int("logRetentionDays"),
        "wait_for_deployment": config.get_bool("waitForDeployment"),
    }
    # Unset optional keys fall back to the model defaults
    values = {key: value for key, value in values.items() if value is not None}

    try:
        return TopologyConfig(**values)
    except ValidationError as e:
        raise pulumi.RunError(f"Invalid stack configuration: {e}") from e


class Settings(BaseSettings):
    """Deployer CLI settings loaded from environment variables.

    See .env.example for the recognised variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Pulumi project / stack
    project_name: str = "ecs-bluegreen"
    stack_name: str = "dev"
    work_dir: str = "."

    # Deployment target overrides (written into stack config when set)
    aws_region: str = ""
    aws_account_id: str = ""

    # Block `up` until the CodeDeploy deployment finishes
    wait_for_deployment: bool = False

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
