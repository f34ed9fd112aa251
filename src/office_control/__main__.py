# --- Standard library imports ---
import sys
import logging

# --- Project imports ---
from .config import Config
from .bootstrap import bootstrap
from .webhooks import create_app
from .errors import ConfigurationError
from .logger import get_logger, setup_logging


def main():
    """
    Entry point for the office control webhook server.

    Configures logging, builds the service graph once, and serves the
    Flask app. Configuration errors are fatal.
    """

    # Setup logging policy
    setup_logging(level=getattr(logging, Config.LOG_LEVEL, logging.INFO))
    logger = get_logger("main")
    logger.info("🚀 Starting Office Control webhook server")
    logger.debug(f"Python version: {sys.version}")

    try:
        services = bootstrap()
    except ConfigurationError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    app = create_app(services)

    logger.info(f"Server running at http://{Config.HOST}:{Config.PORT}")
    # Threaded so a long wake/sleep verification does not block other hooks
    app.run(host=Config.HOST, port=Config.PORT, threaded=True)

if __name__ == "__main__":
    main()
