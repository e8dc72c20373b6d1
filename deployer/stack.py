"""Pulumi Automation API helpers for the topology stack.

Wraps a local Pulumi program (``__main__.py`` in ``work_dir``) so the stack
can be previewed, deployed and destroyed from Python instead of the
``pulumi`` CLI.
"""

import logging
from collections.abc import Callable

from pulumi import automation as auto

from common.config import Settings

logger = logging.getLogger(__name__)

OUTPUT_LOAD_BALANCER_DNS = "LoadBalancerDNS"


def select_stack(settings: Settings) -> auto.Stack:
    """Create or select the configured stack and push setting overrides.

    Args:
        settings: Deployer settings (stack name, work dir, target overrides).

    Returns:
        The selected automation stack.
    """
    logger.info(f"Selecting stack {settings.stack_name} in {settings.work_dir}")
    stack = auto.create_or_select_stack(
        stack_name=settings.stack_name,
        work_dir=settings.work_dir,
    )
    apply_settings(stack, settings)
    return stack


def apply_settings(stack: auto.Stack, settings: Settings) -> None:
    """Write deployment-target overrides into the stack configuration.

    Empty settings leave the stack config untouched, so values already in
    ``Pulumi.<stack>.yaml`` stay in effect. The region is pinned through the
    project's own key so the default provider keeps reading ``aws:*``.
    """
    if settings.aws_region:
        stack.set_config(
            f"{settings.project_name}:region",
            auto.ConfigValue(value=settings.aws_region),
        )
    if settings.aws_account_id:
        stack.set_config(
            f"{settings.project_name}:account",
            auto.ConfigValue(value=settings.aws_account_id),
        )


def preview(stack: auto.Stack, on_output: Callable[[str], None] = print) -> dict[str, int]:
    """Preview changes. Returns the change summary by operation."""
    result = stack.preview(on_output=on_output)
    return dict(result.change_summary)


def up(
    stack: auto.Stack,
    settings: Settings,
    on_output: Callable[[str], None] = print,
) -> str:
    """Write the wait flag, then deploy. Returns the load balancer DNS name."""
    stack.set_config(
        f"{settings.project_name}:waitForDeployment",
        auto.ConfigValue(value="true" if settings.wait_for_deployment else "false"),
    )
    result = stack.up(on_output=on_output)
    summary = result.summary.resource_changes or {}
    logger.info(f"Update finished: {summary}")
    return result.outputs[OUTPUT_LOAD_BALANCER_DNS].value


def destroy(stack: auto.Stack, on_output: Callable[[str], None] = print) -> None:
    """Tear down every resource declared by the stack."""
    result = stack.destroy(on_output=on_output)
    logger.info(f"Destroy finished: {result.summary.resource_changes}")


def refresh(stack: auto.Stack, on_output: Callable[[str], None] = print) -> None:
    """Reconcile stack state with what exists in AWS."""
    result = stack.refresh(on_output=on_output)
    logger.info(f"Refresh finished: {result.summary.resource_changes}")


def outputs(stack: auto.Stack) -> dict[str, str]:
    """Current stack outputs as plain values."""
    return {key: output.value for key, output in stack.outputs().items()}
