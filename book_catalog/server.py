# book_catalog/server.py
"""
Server entry point
Configures logging and serves the app with uvicorn
"""
import argparse
from typing import List, Optional

import uvicorn

from .config import get_settings
from .utils import setup_logging, get_logger

logger = get_logger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="book-catalog", description="Book catalog HTTP service")
    parser.add_argument("--host", help="bind address (overrides CATALOG_HOST)")
    parser.add_argument("--port", type=int, help="bind port (overrides CATALOG_PORT)")
    return parser.parse_args(argv)


def run_server(argv: Optional[List[str]] = None):
    """Run the server until SIGINT/SIGTERM, then drain and close resources"""
    args = _parse_args(argv)

    settings = get_settings()
    setup_logging(settings)

    host = args.host or settings.host
    port = args.port or settings.port

    from .api import create_app

    try:
        app = create_app(settings)
    except Exception as e:
        logger.error(f"Failed to build application: {e}")
        raise

    logger.info(f"Starting server in {settings.environment} mode on {host}:{port}")

    # uvicorn stops accepting on signal, waits up to the grace period for
    # in-flight requests, then runs the lifespan shutdown
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=None,
        timeout_graceful_shutdown=settings.shutdown_timeout
    )


if __name__ == "__main__":
    run_server()
