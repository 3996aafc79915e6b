"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m helloserver                          # localhost:8080
    python -m helloserver -host 0.0.0.0 -port 80   # inside a container
    helloserver --port 3000 --log-level DEBUG      # installed console script

Single-dash long flags (-host, -port) are accepted alongside the usual
double-dash spelling.

Exit status:
    0  stopped by SIGINT/SIGTERM
    1  the listening socket could not be bound
    2  invalid arguments

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, DEFAULT_HOST, DEFAULT_PORT
from .service import Service, configure_logging


logger = logging.getLogger("helloserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helloserver",
        description="Serve 'hello' on /hello",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  helloserver                          # localhost:8080
  helloserver -host 0.0.0.0            # listen on all interfaces
  helloserver -port 3000               # custom port
        """,
    )

    parser.add_argument(
        "-host", "--host",
        default=DEFAULT_HOST,
        help=f"server host (default: {DEFAULT_HOST})",
    )
    parser.add_argument(
        "-port", "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"server port (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        type=str.upper,
        help="logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"helloserver {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None):
    """Parse flags, build the Service and serve until stopped."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ServerConfig(host=args.host, port=args.port, log_level=args.log_level)
    try:
        service = Service(config)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config.log_level)
    logger.info(f"started server on {config.address}")

    try:
        service.start()
    except OSError as e:
        logger.critical(f"cannot listen on {config.address}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
