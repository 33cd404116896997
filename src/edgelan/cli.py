#!/usr/bin/env python3
"""edgelan command-line interface.

Usage:
    edgelan [-c CONFIG] [--state-dir DIR] [-v] plan SITE
    edgelan [-c CONFIG] [--state-dir DIR] [-v] apply SITE
    edgelan [-c CONFIG] [--state-dir DIR] [-v] destroy SITE

Exit codes:
    0   success (plan: no drift)
    1   configuration or engine error
    2   plan found drift

Environment variables:
    EDGELAN_API_KEY     Control-plane API key (unless set in the config)
    EDGELAN_LOG_LEVEL   Console log level (default: INFO)
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .config.inventory import ControlPlaneSettings, SiteInventory
from .config.state_store import StateStore
from .controlplane.base import ControlPlane
from .controlplane.graphql import GraphQLControlPlane
from .engine.engine import ConvergenceEngine
from .engine.errors import ConfigValidationError, EngineError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DRIFT = 2


def create_control_plane(settings: ControlPlaneSettings) -> ControlPlane:
    return GraphQLControlPlane(settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edgelan",
        description="Converge site LAN interfaces and native ranges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show what would change
    edgelan plan branch-berlin

    # Apply the declared configuration
    edgelan -c configs/sites.yaml apply branch-berlin

    # Remove the site
    edgelan destroy branch-berlin
""",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Site inventory file (default: search ./configs/sites.yaml, ./sites.yaml, ...)",
    )
    parser.add_argument(
        "--state-dir",
        type=Path,
        default=None,
        help="Directory holding observed snapshots (default: ~/.edgelan/state)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("plan", "Show drift between declared and observed state"),
        ("apply", "Establish or converge a site"),
        ("destroy", "Remove a site"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("site", help="Site key in the inventory")
    return parser


async def run_plan(engine: ConvergenceEngine, inventory: SiteInventory, store: StateStore, site: str) -> int:
    declared = inventory.get_site(site)
    result = await engine.plan(declared, store.get_snapshot(site))
    print(result.summary)
    if not result.validation.valid:
        return EXIT_ERROR
    return EXIT_OK if result.diff and result.diff.no_change else EXIT_DRIFT


async def run_apply(engine: ConvergenceEngine, inventory: SiteInventory, store: StateStore, site: str) -> int:
    declared = inventory.get_site(site)
    prior = store.get_snapshot(site)
    if prior is None:
        observed = await engine.establish(declared)
    else:
        observed = await engine.converge(declared, prior)
    stored = store.save(site, observed)
    run = engine.last_run
    if run and run.reassignment:
        print(f"{site}: native range moved {run.reassignment.from_index} -> {run.reassignment.to_index}")
    print(f"{site}: converged (site {observed.site_id}, state v{stored.version})")
    return EXIT_OK


async def run_destroy(engine: ConvergenceEngine, inventory: SiteInventory, store: StateStore, site: str) -> int:
    declared = inventory.get_site(site)
    prior = store.get_snapshot(site)
    site_id = declared.site_id or (prior.site_id if prior else None)
    if not site_id:
        print(f"{site}: nothing to destroy")
        return EXIT_OK
    await engine.teardown(site_id)
    store.delete(site)
    print(f"{site}: removed (site {site_id})")
    return EXIT_OK


COMMANDS = {
    "plan": run_plan,
    "apply": run_apply,
    "destroy": run_destroy,
}


async def run_command(args: argparse.Namespace, inventory: SiteInventory, store: StateStore) -> int:
    control_plane = create_control_plane(inventory.get_settings())
    async with control_plane:
        engine = ConvergenceEngine(control_plane)
        return await COMMANDS[args.command](engine, inventory, store, args.site)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the edgelan CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)

    try:
        inventory = SiteInventory(args.config)
        store = StateStore(args.state_dir)
    except (FileNotFoundError, OSError, ValueError) as e:
        logger.error(f"Cannot load configuration: {e}")
        return EXIT_ERROR

    try:
        return asyncio.run(run_command(args, inventory, store))
    except ConfigValidationError as e:
        for issue in e.result.issues:
            logger.error(f"[{issue.code}] {issue.message}")
        return EXIT_ERROR
    except EngineError as e:
        state = e.run.state.value if e.run and e.run.state else "n/a"
        logger.error(f"{args.command} {args.site} failed (state={state}): {e}")
        return EXIT_ERROR
    except (KeyError, ValueError) as e:
        logger.error(f"Invalid configuration for {args.site}: {e}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
