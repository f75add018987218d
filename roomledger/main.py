"""Main application entry point."""

import logging
import os

import uvicorn

from roomledger.api.app import app
from roomledger.services.config import get_settings
from roomledger.services.logging import setup_server_logging

settings = get_settings()

# Configure logging (with file logging)
setup_server_logging(settings.log_file, default_level=settings.log_level)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the API server."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting RoomLedger API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
