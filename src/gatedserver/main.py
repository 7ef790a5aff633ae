from __future__ import annotations

import argparse
import logging
import os

from gatedserver.config import MODES, Settings
from gatedserver.routes import echo_route, raw_echo_route
from gatedserver.server import GatedServer

DEFAULT_PORT = 8888


def default_port() -> int:
    """Port from $PORT, or DEFAULT_PORT when unset or not a valid port number."""
    try:
        port = int(os.environ.get("PORT", DEFAULT_PORT))
    except ValueError:
        return DEFAULT_PORT
    if not 0 <= port <= 65535:
        return DEFAULT_PORT
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatedserve",
        description="Small threaded HTTP server with a fixed concurrency ceiling.",
    )
    parser.add_argument("--listen-host", default="0.0.0.0")
    parser.add_argument(
        "--listen-port",
        type=int,
        default=default_port(),
        help="Defaults to $PORT, then 8888.",
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        default=8,
        help="Connections served concurrently; further ones wait.",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="http",
        help="http parses requests before routing; raw passes bytes through.",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def validate_args(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    if args.max_connections < 1:
        parser.error("max-connections must be >= 1")
    if not 0 <= args.listen_port <= 65535:
        parser.error("listen-port must be between 0 and 65535")


def make_settings(args: argparse.Namespace) -> Settings:
    return Settings(
        listen_host=args.listen_host,
        listen_port=args.listen_port,
        max_connections=args.max_connections,
        mode=args.mode,
    )


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    validate_args(args, parser)
    settings = make_settings(args)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    logging.info(
        "Starting gatedserve (%s mode) on %s:%d",
        settings.mode,
        settings.listen_host,
        settings.listen_port,
    )

    try:
        server = GatedServer(
            settings.listen_host,
            settings.listen_port,
            max_connections=settings.max_connections,
        )
    except OSError as exc:
        logging.error(
            "Couldn't bind %s:%d: %s", settings.listen_host, settings.listen_port, exc
        )
        raise SystemExit(1) from exc

    try:
        if settings.mode == "raw":
            server.serve_raw(raw_echo_route)
        else:
            server.serve_http(echo_route)
    except KeyboardInterrupt:
        logging.info("Keyboard interrupt received, shutting down...")
    finally:
        server.shutdown()
        logging.info("Shutdown complete")


if __name__ == "__main__":
    main()
