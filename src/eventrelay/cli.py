from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from typing import List, Optional

import uvicorn

from eventrelay.config import Settings, load_settings
from eventrelay.dispatcher import Dispatcher
from eventrelay.exceptions import ConfigurationError, MonitorStartupError
from eventrelay.logs import configure_logging
from eventrelay.monitor import Supervisor
from eventrelay.router import Router
from eventrelay.uploader import LogUploader

logger = logging.getLogger("eventrelay")


def start_services(settings: Settings) -> Optional[Supervisor]:
    """Attaches the events monitor and the log uploader as the settings allow.

    Raises MonitorStartupError when the monitor fails during the startup window.
    """
    supervisor = None
    if settings.service.allow_send_events:
        node_dir = settings.handler.node_path
        if not os.path.isdir(node_dir):
            raise MonitorStartupError(f"can't find node, there is no node folder {node_dir}")

        dispatcher = Dispatcher(
            settings.service.base_url,
            timeout=settings.service.request_timeout_seconds,
        )
        supervisor = Supervisor(settings, Router(dispatcher))
        supervisor.start()

    if settings.service.allow_send_logs:
        LogUploader(settings).start()

    return supervisor


def cmd_run(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        print(f"ERROR: settings can't be loaded. {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.logging)
    try:
        supervisor = start_services(settings)
    except MonitorStartupError as exc:
        logger.error("can't attach to the node: %s", exc)
        return 1

    logger.info("handler started")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
        if supervisor is not None:
            supervisor.stop(timeout=settings.handler.startup_delay_seconds)
    return 0


def cmd_dev_collector(args: argparse.Namespace) -> int:
    uvicorn.run(
        "eventrelay.dev_collector:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=os.getenv("RELAY_LOG_LEVEL", "info").lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventrelay", description="Relay node pipe events to the collector")
    parser.add_argument("--config", default=None, help="Path to conf.json (default: $RELAY_CONFIG or ./conf.json)")
    parser.set_defaults(func=cmd_run)

    sub = parser.add_subparsers(dest="command", required=False)

    run = sub.add_parser("run", help="Attach to the node and relay events (default)")
    run.add_argument("--config", default=argparse.SUPPRESS, help="Path to conf.json")
    run.set_defaults(func=cmd_run)

    dev = sub.add_parser("dev-collector", help="Serve a local collector that records deliveries")
    dev.add_argument("--host", default=os.getenv("RELAY_DEV_HOST", "127.0.0.1"))
    dev.add_argument("--port", type=int, default=int(os.getenv("RELAY_DEV_PORT", "8000")))
    dev.add_argument("--reload", action="store_true", help="Enable autoreload for development")
    dev.set_defaults(func=cmd_dev_collector)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
