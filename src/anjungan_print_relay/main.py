"""
Main entry point for the Anjungan print relay.
Loads configuration, sets up logging and serves the print routes.
"""
import sys
from typing import Optional

from aiohttp import web

from anjungan_print_relay.config.manager import ServerConfig
from anjungan_print_relay.logging import get_logger, setup_logging
from anjungan_print_relay.server.app import create_app


def run_server(config: Optional[ServerConfig] = None, config_file: str = None):
    """Start the print relay and block until it is stopped."""
    config = config or ServerConfig.load(config_file)
    setup_logging(config.log_level, config.log_dir, config.log_max_files)
    logger = get_logger('anjungan_print_relay')

    app = create_app(config, logger=logger)
    logger.info(f"🖨️ Print relay listening on http://{config.host}:{config.port}")
    if config.cors_origin != '*':
        logger.info(f"CORS origin: {config.cors_origin}")
    if config.api_key:
        logger.info("x-api-key required on all routes")
    logger.info(r"RAW printing needs a printer SHARE name (e.g. \\HOST\Share or just ShareName).")

    try:
        web.run_app(app, host=config.host, port=config.port, print=None)
    except OSError as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)


def main():
    """Main entry point."""
    try:
        run_server()
    except KeyboardInterrupt:
        print("\nServer stopped.")
        sys.exit(0)


if __name__ == "__main__":
    main()
