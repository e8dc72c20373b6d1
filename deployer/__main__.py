"""CLI entrypoint for deploying the topology stack.

Usage:
    python -m deployer                  # preview changes
    python -m deployer up               # deploy and print the LB DNS name
    python -m deployer destroy          # tear the stack down
    python -m deployer outputs          # show stack outputs
    python -m deployer refresh          # reconcile state with AWS

Reads STACK_NAME, WORK_DIR, AWS_REGION, AWS_ACCOUNT_ID and
WAIT_FOR_DEPLOYMENT from the environment (or .env).
"""

import argparse
import logging
import sys

from pulumi import automation as auto
from pydantic import ValidationError

from common.config import Settings, get_settings
from deployer import stack as stack_ops

logger = logging.getLogger(__name__)

COMMANDS = ["preview", "up", "destroy", "outputs", "refresh"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ECS blue/green stack deployer")
    parser.add_argument(
        "command",
        nargs="?",
        default="preview",
        choices=COMMANDS,
        help="Command to execute (default: preview)",
    )
    parser.add_argument("--stack", help="Stack name (overrides STACK_NAME)")
    parser.add_argument("--work-dir", help="Pulumi project directory (overrides WORK_DIR)")
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the CodeDeploy deployment to succeed during `up`",
    )
    return parser


def resolve_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    overrides = {}
    if args.stack:
        overrides["stack_name"] = args.stack
    if args.work_dir:
        overrides["work_dir"] = args.work_dir
    if args.wait:
        overrides["wait_for_deployment"] = True
    return settings.model_copy(update=overrides)


def run(command: str, settings: Settings) -> int:
    """Run a single command against the stack. Returns exit code."""
    stack = stack_ops.select_stack(settings)

    if command == "up":
        dns_name = stack_ops.up(stack, settings)
        print(f"Load balancer: http://{dns_name}")
    elif command == "destroy":
        stack_ops.destroy(stack)
    elif command == "refresh":
        stack_ops.refresh(stack)
    elif command == "outputs":
        for key, value in stack_ops.outputs(stack).items():
            print(f"{key}: {value}")
    else:
        summary = stack_ops.preview(stack)
        logger.info(f"Planned changes: {summary}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = resolve_settings(args, get_settings())
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
        logger.error(f"Invalid deployer settings: {e}")
        return 1

    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s: %(message)s")

    try:
        return run(args.command, settings)
    except auto.CommandError as e:
        logger.error(f"Pulumi {args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
