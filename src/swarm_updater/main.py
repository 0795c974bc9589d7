"""Main entry point for swarm-updater."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence
from typing import Any

from swarm_updater import __version__
from swarm_updater.clients import DockerSwarmClient
from swarm_updater.config import Settings, get_settings
from swarm_updater.errors import SwarmUpdaterError
from swarm_updater.logging import get_logger, setup_logging
from swarm_updater.resolver import DigestResolver
from swarm_updater.scheduler import UpdateScheduler
from swarm_updater.sweep import SwarmSweeper
from swarm_updater.updater import ServiceUpdater


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swarm-updater",
        description="Automatically update Docker Swarm services to their newest image digest.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="Docker engine URL (default: DOCKER_HOST)")
    parser.add_argument(
        "--once", action="store_true", default=None, help="run a single sweep and exit"
    )
    parser.add_argument(
        "--label-enable",
        action="store_true",
        default=None,
        help="only update services labelled <namespace>.enable=true",
    )
    parser.add_argument(
        "--blacklist",
        action="append",
        metavar="PATTERN",
        help="regex of service names to skip (repeatable)",
    )
    parser.add_argument("--interval", type=int, metavar="SECONDS", help="seconds between sweeps")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Layer command-line overrides on top of the environment settings."""
    overrides: dict[str, Any] = {}
    if args.host is not None:
        overrides["docker_host"] = args.host
    if args.once is not None:
        overrides["run_once"] = args.once
    if args.label_enable is not None:
        overrides["label_enable"] = args.label_enable
    if args.blacklist:
        overrides["blacklist"] = [*settings.blacklist, *args.blacklist]
    if args.interval is not None:
        overrides["schedule_interval_seconds"] = args.interval
    if args.debug:
        overrides["log_level"] = "DEBUG"
    if not overrides:
        return settings
    # Re-validate so bad patterns or intervals fail the same way env values do
    return Settings.model_validate({**settings.model_dump(), **overrides})


def build_scheduler(settings: Settings) -> UpdateScheduler:
    client = DockerSwarmClient.from_settings(
        docker_host=settings.docker_host,
        tls_verify=settings.docker_tls_verify,
        cert_path=settings.docker_cert_path,
    )
    policy = settings.eligibility_policy()
    updater = ServiceUpdater(client, DigestResolver(client), labels=policy.labels)
    sweeper = SwarmSweeper(client, updater, policy)
    return UpdateScheduler(
        sweeper,
        interval_seconds=settings.schedule_interval_seconds,
        sweep_timeout_seconds=settings.sweep_timeout_seconds,
    )


async def main(argv: Sequence[str] | None = None) -> int:
    """Main application entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)

    setup_logging(settings.log_level)
    log = get_logger("swarm_updater.main")
    log.info(
        "starting_swarm_updater",
        version=__version__,
        mode=settings.eligibility_policy().mode.value,
        run_once=settings.run_once,
    )

    try:
        scheduler = build_scheduler(settings)
    except SwarmUpdaterError as exc:
        log.error("startup_failed", error=str(exc))
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, scheduler.stop)

    if settings.run_once:
        try:
            report = await scheduler.run_once()
        except SwarmUpdaterError as exc:
            log.error("sweep_failed", error=str(exc))
            return 1
        log.info("sweep_report", **report.to_dict())
        return 0

    await scheduler.run_forever()
    log.info("swarm_updater_stopped")
    return 0


def run() -> None:
    """Run the application."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
