"""
Greeting Service Entry Point

Usage:
    python -m greeting_service                          # Settings from environment
    python -m greeting_service --config bootstrap.yaml  # Settings from bootstrap file
    python -m greeting_service --uri http://cfg:8888 --fail-fast
    python -m greeting_service -v                       # Debug logging
"""

import argparse
import sys

import uvicorn

from common.exceptions import ConfigError
from common.logging_setup import set_log_level

from .main import VERSION, create_app
from .settings import load_client_settings

DEFAULT_CONFIG_PATH = "bootstrap.yaml"


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Greeting Service - config server client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Endpoints:
    GET  /hello              Official greeting (text/plain)
    POST /actuator/refresh   Reload configuration, returns changed keys
    GET  /actuator/health    Health
    GET  /actuator/env       Property sources
        """,
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help=f"Bootstrap YAML file (e.g. {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--uri", type=str, default=None, help="Config server URI")
    parser.add_argument("--name", type=str, default=None, help="Application name")
    parser.add_argument("--profile", type=str, default=None, help="Comma-separated profiles")
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        default=None,
        help="Refuse to start when the config server is unreachable",
    )
    parser.add_argument("--host", type=str, default=None, help="Bind address")
    parser.add_argument("--port", "-p", type=int, default=None, help="Listen port")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Greeting Service v{VERSION}",
    )

    args = parser.parse_args(argv)

    try:
        settings = load_client_settings(
            args.config,
            uri=args.uri,
            application_name=args.name,
            profile=args.profile,
            fail_fast=args.fail_fast,
            host=args.host,
            port=args.port,
        )
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.verbose:
        set_log_level("DEBUG")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if args.verbose else "warning",
    )


if __name__ == "__main__":
    main()
