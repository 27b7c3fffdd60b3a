#!/usr/bin/env python3
"""Agent entrypoint — loads the config, opens the incident store and runs probes.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config /etc/otto/settings.yaml

    # Override log level / format
    python scripts/run.py --log-level DEBUG --log-format console

Send SIGHUP to reload the config file, SIGINT or SIGTERM to stop.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from otto.core.config import load_settings
from otto.core.exceptions import ConfigError, StoreError
from otto.core.logging import setup_logging
from otto.core.store import SqliteIncidentStore
from otto.engine.coordinator import Coordinator
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG = Path("config/settings.yaml")


async def run(args: argparse.Namespace) -> int:
    """Start the agent and run until interrupted."""
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        print(f"otto: {exc}", file=sys.stderr)
        return 1

    setup_logging(settings.logging, level=args.log_level, fmt=args.log_format)

    # ── Incident store ───────────────────────────────────────────
    store = SqliteIncidentStore(settings.store.path)
    try:
        store.open()
    except StoreError as exc:
        logger.error("incident_store_unavailable", path=settings.store.path, error=str(exc))
        return 1

    logger.info(
        "agent_starting",
        config=str(config_path),
        schedule=settings.schedule,
        store=settings.store.path,
        prometheus=settings.prometheus.listen if settings.prometheus else "disabled",
    )

    coordinator = Coordinator(
        config_path,
        settings,
        store,
        Metrics(),
        log_level=args.log_level,
        log_format=args.log_format,
    )
    try:
        code = await coordinator.run()
    except ConfigError as exc:
        logger.error("agent_start_failed", error=str(exc))
        await coordinator.shutdown()
        return 1
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")
        await coordinator.shutdown()
        code = 0

    logger.info("agent_stopped", generations=coordinator.generation)
    return code


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the otto monitoring agent.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Log renderer override",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
