# src/main.py — v1
"""CLI entry point: setup, plan, schema commands.

Usage:
    clawup setup [-C <project>] [--env-file <path>] [--skip-hooks]
    clawup plan [-C <project>]
    clawup schema [-C <project>]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from clawup.config.settings import ConfigurationError, Settings
from clawup.core.errors import ClawupError
from clawup.version import __version__

if TYPE_CHECKING:
    from clawup.api.models import SetupOptions

logger = logging.getLogger("clawup.main")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = Settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except ClawupError as exc:
        logger.error("%s", exc, exc_info=args.verbose)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="clawup",
        description=f"clawup v{__version__}: resolve agent identities and provision fleet secrets",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-C", "--project", dest="project", type=Path, default=Path("."),
        help="Project directory holding clawup.yaml (default: .)",
    )
    common.add_argument(
        "-f", "--manifest", default=None,
        help="Fleet manifest file name (default: clawup.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- setup ---
    p_setup = subparsers.add_parser(
        "setup", parents=[common],
        help="Resolve secrets and write the stack configuration",
    )
    p_setup.add_argument(
        "--env-file", type=Path, default=None,
        help="Secret source file (default: <project>/.env)",
    )
    p_setup.add_argument(
        "--skip-hooks", action="store_true", default=None,
        help="Do not run plugin resolve hooks",
    )
    p_setup.set_defaults(func=_cmd_setup)

    # --- plan ---
    p_plan = subparsers.add_parser(
        "plan", parents=[common],
        help="Dry run: resolve secrets and list the keys setup would write",
    )
    p_plan.add_argument("--env-file", type=Path, default=None)
    p_plan.add_argument("--skip-hooks", action="store_true", default=None)
    p_plan.set_defaults(func=_cmd_plan)

    # --- schema ---
    p_schema = subparsers.add_parser(
        "schema", parents=[common],
        help="Print the computed secret requirements as JSON",
    )
    p_schema.set_defaults(func=_cmd_schema)

    return parser


def _options(args: argparse.Namespace) -> SetupOptions:
    from clawup.api.models import SetupOptions

    return SetupOptions(
        manifest_file=args.manifest,
        env_file=getattr(args, "env_file", None),
        skip_hooks=getattr(args, "skip_hooks", None),
    )


async def _cmd_setup(args: argparse.Namespace, settings: Settings) -> int:
    """Run the full chain and write the stack configuration."""
    from clawup.api.facade import setup_fleet

    result = await setup_fleet(args.project, _options(args), settings)
    print(f"\nStack {result.stack} configured:")
    if result.stack_created:
        print("  Created new stack")
    print(f"  Agents:     {', '.join(result.agents)}")
    print(f"  Written:    {len(result.written_keys)}")
    print(f"  Unchanged:  {len(result.unchanged_keys)}")
    if result.removed_keys:
        print(f"  Removed:    {', '.join(result.removed_keys)}")
    _print_warnings(result.warnings, [w.env_var + ": " + w.message for w in result.validation_warnings])
    return 0


async def _cmd_plan(args: argparse.Namespace, settings: Settings) -> int:
    """Resolve everything and print the planned keys without writing."""
    from clawup.api.facade import plan_fleet

    result = await plan_fleet(args.project, _options(args), settings)
    print(f"\nPlan for stack {result.stack}:")
    for key, kind in result.planned_keys.items():
        print(f"  {key:<30} {kind}")
    for key in result.removed_keys:
        print(f"  {key:<30} remove")
    _print_warnings(result.warnings, [w.env_var + ": " + w.message for w in result.validation_warnings])
    return 0


async def _cmd_schema(args: argparse.Namespace, settings: Settings) -> int:
    """Print requirements grouped as global / per-agent."""
    from clawup.api.facade import load_fleet

    ctx = await load_fleet(args.project, settings, _options(args))
    schema = ctx.schema
    payload = {
        "global": {
            k: r.model_dump(include={"env_var", "is_secret", "required", "auto_resolvable", "sources"})
            for k, r in schema.global_requirements.items()
        },
        "agents": {
            agent: {
                k: r.model_dump(
                    include={"source_env_var", "is_secret", "required", "auto_resolvable", "sources"}
                )
                for k, r in requirements.items()
            }
            for agent, requirements in schema.per_agent.items()
        },
        "warnings": schema.warnings,
    }
    print(json.dumps(payload, indent=2, default=list))
    return 0


def _print_warnings(*groups: list[str]) -> None:
    lines = [line for group in groups for line in group]
    if not lines:
        return
    print("  Warnings:")
    for line in lines:
        print(f"    - {line}")


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from clawup.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
