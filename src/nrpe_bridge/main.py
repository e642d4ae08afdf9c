from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import dotenv
import uvloop

from nrpe_bridge import const
from nrpe_bridge.correlation import correlation_context
from nrpe_bridge.exporter import ExportServer
from nrpe_bridge.logging_abstraction import HumanReadableFormatter, configure_library_logging, get_logger
from nrpe_bridge.profiles import ProfileError, Profiles, load_profiles

logger = get_logger(__name__)

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def route_uvicorn_logs(level: int = logging.INFO) -> None:
    """Send uvicorn's own log lines through the bridge's human-readable format."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(HumanReadableFormatter())
    handler.setLevel(level)
    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = [handler]
        uv_logger.setLevel(level)
        uv_logger.propagate = False


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="nrpe-bridge", description="Expose NRPE check results as Prometheus metrics")
    parser.add_argument(
        "--listen-host",
        help=f"Address to listen on (default: {const.NRPE_BRIDGE_LISTEN_HOST})",
    )
    parser.add_argument(
        "--listen-port",
        type=int,
        help=f"Port to listen on (default: {const.NRPE_BRIDGE_LISTEN_PORT})",
    )
    parser.add_argument("--profiles-file", type=Path, help="YAML file with named command profiles")
    parser.add_argument("-D", "--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--env", type=Path, help="Read NRPE_BRIDGE_* settings from this .env file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {const.NRPE_BRIDGE_VERSION}")
    args = parser.parse_args(argv)

    if args.env:
        load_env_file(args.env)

    return args


def load_env_file(env_file: Path) -> bool:
    """Load ``env_file`` into os.environ, overriding values already set.

    Returns False when the file is missing or defines nothing.
    """
    env_path = env_file.expanduser().resolve()
    if not env_path.is_file():
        logger.error("Environment file %s does not exist", env_path)
        return False

    if not dotenv.load_dotenv(env_path, override=True):
        logger.warning("Environment file %s defines no variables", env_path)
        return False

    logger.info("Loaded environment from %s", env_path)
    return True


def resolve_profiles(args: argparse.Namespace) -> Profiles | None:
    """Load the profile file named on the command line or in the environment.

    Raises:
        ProfileError: If the file is missing or invalid
    """
    # os.environ first: a --env file is loaded after const was imported
    profiles_file = args.profiles_file or os.environ.get("NRPE_BRIDGE_PROFILES_FILE") or const.NRPE_BRIDGE_PROFILES_FILE
    if not profiles_file:
        logger.info("No profile file configured, only ad-hoc commands are available")
        return None
    return load_profiles(profiles_file)


def main(argv: list[str] | None = None) -> int:
    """Entry point of the ``nrpe-bridge`` command; returns the exit status."""
    with correlation_context():
        args = parse_cli(argv)

        level = logging.DEBUG if args.debug or const.NRPE_BRIDGE_DEBUG else logging.INFO
        logger.set_level(level)
        configure_library_logging(level)
        route_uvicorn_logs()
        logger.info("Starting NRPE bridge %s", const.NRPE_BRIDGE_VERSION, extra={"debug": level == logging.DEBUG})

        try:
            profiles = resolve_profiles(args)
        except ProfileError as e:
            logger.error("Cannot load profiles: %s", e, extra={"source": e.source})
            return 1

        server = ExportServer(
            profiles=profiles,
            host=args.listen_host or const.NRPE_BRIDGE_LISTEN_HOST,
            port=args.listen_port or const.NRPE_BRIDGE_LISTEN_PORT,
        )

        try:
            uvloop.run(server.start())
        except (asyncio.CancelledError, KeyboardInterrupt):
            logger.info("Interrupted, shutting down")
        except Exception as e:
            logger.exception("NRPE bridge stopped on an unexpected error: %s", e)
            return 1
        else:
            logger.info("NRPE bridge stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
