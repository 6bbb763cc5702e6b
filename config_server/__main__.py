"""
Config Server Entry Point

Usage:
    python -m config_server                       # Serve ./config-repo on port 8888
    python -m config_server --repo /srv/configs   # Serve another directory
    python -m config_server --port 9000 -v        # Other port, debug logging
"""

import argparse
import sys
from pathlib import Path

import uvicorn

from common.logging_setup import set_log_level

from .main import VERSION, create_app
from .settings import ServerSettings


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Cloud Config Server - serves configuration files over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Endpoints:
    GET /{application}/{profiles}[/{label}]        Environment as JSON
    GET /{application}-{profiles}.properties       Merged properties
    GET /{application}-{profiles}.yml              Merged YAML
    GET /health                                    Health check
        """,
    )

    parser.add_argument(
        "--repo", "-r",
        type=Path,
        default=None,
        help="Directory with configuration files (default: CONFIG_SERVER_REPO_DIR or ./config-repo)",
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
        version=f"Cloud Config Server v{VERSION}",
    )

    args = parser.parse_args(argv)

    overrides = {
        key: value
        for key, value in (("repo_dir", args.repo), ("host", args.host), ("port", args.port))
        if value is not None
    }
    settings = ServerSettings(**overrides)

    if args.verbose:
        set_log_level("DEBUG")

    if not settings.repo_dir.is_dir():
        print(f"Error: Config repository not found: {settings.repo_dir}")
        sys.exit(1)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if args.verbose else "warning",
    )


if __name__ == "__main__":
    main()
