"""Command-line entry point for the capture agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from kubecapture.app import CaptureAgent, configure_logging
from kubecapture.constants.defaults import LOG_LEVEL_DEFAULT
from kubecapture.models.state.config_manager import ConfigError, ConfigManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kubecapture",
        description="Run tcpdump for pods on this node annotated with tcpdump.antrea.io.",
    )
    parser.add_argument("--config", help="Path to a YAML settings file")
    parser.add_argument("--node-name", help="Node to watch (default: $NODE_NAME)")
    parser.add_argument("--capture-dir", help="Directory capture files are written to")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {
        "node_name": args.node_name,
        "capture_dir": args.capture_dir,
        "log_level": args.log_level,
    }
    try:
        settings = ConfigManager(args.config).load(overrides=overrides)
    except ConfigError as exc:
        configure_logging(args.log_level or LOG_LEVEL_DEFAULT)
        logger.error("%s", exc)
        return 1

    configure_logging(settings.log_level)
    return asyncio.run(CaptureAgent(settings).run())


if __name__ == "__main__":
    sys.exit(main())
