"""Plan command: show and verify signed plan files."""

import argparse
import json
import logging

from .. import paths
from ..core.plan import PlanError, read_plan
from ..core.secret import SECRET_FILE_NAME, SecretError, ensure_secret
from .common import setup_from_args

logger = logging.getLogger(__name__)


def execute_plan(args: argparse.Namespace) -> int:
    """Execute the plan command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    if setup_from_args(args) is None:
        return 1

    action = getattr(args, "plan_action", None)

    if action == "show":
        return _show_plan(args)
    elif action == "verify":
        return _verify_plan(args)
    else:
        print("Usage: gh-manager plan <show|verify> PLAN")
        return 1


def _show_plan(args: argparse.Namespace) -> int:
    """Print plan metadata and its targets."""
    try:
        plan = read_plan(args.plan_file)
    except PlanError as e:
        logger.error("%s", e)
        return 1

    if getattr(args, "json", False):
        print(json.dumps(plan.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"Plan: {args.plan_file}")
    print(f"  Schema:      {plan.schema_version}")
    print(f"  Created:     {plan.created_at}")
    print(f"  Actor:       {plan.actor}")
    print(f"  Host:        {plan.host}")
    print(f"  Tool:        {plan.tool_version or 'unknown'}")
    print(f"  Fingerprint: {plan.fingerprint or '(unsigned)'}")
    print(f"  Repos:       {plan.count}")
    print("")
    for repo in plan.repos:
        flags = [repo.visibility]
        if repo.is_fork:
            flags.append("fork")
        if repo.is_archived:
            flags.append("archived")
        print(f"  {repo.full_name:<40} {', '.join(flags)}")
    return 0


def _verify_plan(args: argparse.Namespace) -> int:
    """Validate a plan against the local signing secret."""
    secret_dir = paths.config_dir()
    if not (secret_dir / SECRET_FILE_NAME).exists():
        print(f"No signing secret found in {secret_dir}")
        print("Plans can only be verified on the installation that signed them.")
        return 1

    try:
        plan = read_plan(args.plan_file)
        secret = ensure_secret(secret_dir)
    except (PlanError, SecretError) as e:
        logger.error("%s", e)
        return 1

    reasons = plan.validation_errors(secret)
    if reasons:
        print(f"Plan {args.plan_file} is NOT valid:")
        for reason in reasons:
            print(f"  - {reason}")
        return 1

    print(f"Plan {args.plan_file} is valid ({plan.count} repositories).")
    print(f"  Fingerprint: {plan.fingerprint}")
    return 0
