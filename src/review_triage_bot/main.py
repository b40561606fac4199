"""Entry point for the review-triage-bot webhook server."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from review_triage_bot.app import create_app
from review_triage_bot.config import SERVER_REQUIRED, load_config, with_overrides

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="review-triage-bot",
        description="Serve Slack commands that triage negative reviews into Asana tasks.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Path to config YAML (default: ~/.config/review-triage-bot/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to listen on (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: from config / PORT, else 3000)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        level=getattr(logging, args.log_level),
    )
    # slack_sdk logs full request bodies at DEBUG
    logging.getLogger("slack_sdk").setLevel(logging.INFO)

    try:
        config = load_config(args.config)
        if args.port is not None:
            config = with_overrides(config, port=args.port)
        config.require(*SERVER_REQUIRED)
    except FileNotFoundError as exc:
        logger.error("Config file not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    logger.info("Configuration loaded successfully")

    app = create_app(config)

    logger.info("Listening for Slack requests on %s:%d", args.host, config.port)
    uvicorn.run(app, host=args.host, port=config.port, log_level=args.log_level.lower())
