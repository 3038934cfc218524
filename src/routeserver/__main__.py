"""
Entry point for running the demo server.

Usage:
    python -m routeserver
    python -m routeserver --port 8080
    python -m routeserver --host 0.0.0.0 --port 80 --workers 8
"""

import argparse
import sys

from . import __version__
from .app import create_app
from .config import LOG_LEVELS, ServerConfig


def main():
    parser = argparse.ArgumentParser(
        description="routeserver - routing and request-handling demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m routeserver                      # Start on 127.0.0.1:8080
    python -m routeserver -p 3000              # Start on port 3000
    python -m routeserver -H 0.0.0.0 -w 8      # All interfaces, 8 workers
    python -m routeserver --log-format json    # JSON access log lines

Settings not given on the command line come from ROUTESERVER_* environment
variables (ROUTESERVER_HOST, ROUTESERVER_PORT, ROUTESERVER_WORKERS, ...).
        """,
    )

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 4)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--app-name",
        help="Name reported by /app_name (default: routeserver)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Invalid environment configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.app_name:
        config.app_name = args.app_name

    try:
        server = create_app(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except OSError as e:
        print(f"Could not start server on {config.host}:{config.port}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
