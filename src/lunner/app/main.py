"""lunner command line entry point.

Usage:
    lunner [-c PATH] [--check-config] [--version]

The config path comes from -c/--config-path, then LUNNER_CONF, then
./lunner.yml.
"""

import argparse
import asyncio
import logging
import sys

from lunner import __version__
from lunner.app.config import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    load_settings,
    resolve_config_path,
)
from lunner.app.logging import setup_logging
from lunner.control.hooks import HookDispatcher
from lunner.control.node import run_node
from lunner.core.errors import LunnerError
from lunner.core.logging_schema import Component, LogEvent

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lunner",
        description="Database-arbitrated leader election with role-change hooks",
    )
    parser.add_argument(
        "-c",
        "--config-path",
        default=None,
        help=f"YAML config file (env: {CONFIG_PATH_ENV}, default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration and hook executables, then exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config_path = resolve_config_path(args.config_path)

    try:
        settings = load_settings(config_path)
    except LunnerError as e:
        print(f"[lunner] {e.message}", file=sys.stderr)
        return e.exit_code

    setup_logging(settings.logging, node_id=settings.id)
    logger.info(
        "Loaded config %s",
        config_path,
        extra={
            "event": LogEvent.CONFIG_LOADED,
            "component": Component.CLI,
            "postgres": settings.postgres.safe_url,
            "leader_timeout_seconds": settings.leader_timeout_seconds,
            "poll_interval_seconds": settings.election.poll_interval_seconds,
        },
    )

    if args.check_config:
        try:
            HookDispatcher(settings.hooks).verify()
        except LunnerError as e:
            print(f"[lunner] {e.message}", file=sys.stderr)
            return e.exit_code
        for warning in settings.timing_warnings():
            print(f"[lunner] warning: {warning}", file=sys.stderr)
        print(
            f"[lunner] config OK: id={settings.id} "
            f"postgres={settings.postgres.safe_url} table={settings.postgres.table} "
            f"leader_timeout={settings.leader_timeout_seconds:g}s "
            f"poll_interval={settings.election.poll_interval_seconds:g}s"
        )
        return 0

    try:
        asyncio.run(run_node(settings))
    except LunnerError as e:
        logger.error(
            "Node terminated: %s",
            e.message,
            extra={"event": LogEvent.APP_STOPPED, "error_code": e.code.value},
        )
        return e.exit_code
    except KeyboardInterrupt:
        logger.info("Interrupted", extra={"event": LogEvent.APP_STOPPED})
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
