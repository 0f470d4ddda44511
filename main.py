"""Main entry point for running the ANAF proxy."""

import os

import uvicorn
from loguru import logger

from src.api.main import app
from src.core.config import get_settings
from src.core.logging import setup_logging

TEST_CUI = "14399840"


def main() -> None:
    """Start uvicorn on the configured host and port."""
    settings = get_settings()

    setup_logging(settings)

    # Hosting platforms (Cloud Run, Heroku, ...) announce the port in PORT
    port = int(os.environ.get("PORT", settings.api_port))

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {
                "class": "src.core.logging.InterceptHandler",
            },
        },
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }

    logger.info(
        "Server running on port {} - http://{}:{}", port, settings.api_host, port
    )
    logger.info("Try with test CUI: {} (Oracle Romania)", TEST_CUI)

    if settings.debug:
        # Reload requires the app as an import string
        uvicorn.run(
            "src.api.main:app",
            host=settings.api_host,
            port=port,
            reload=True,
            log_config=log_config,
        )
    else:
        uvicorn.run(
            app,
            host=settings.api_host,
            port=port,
            reload=False,
            log_config=log_config,
        )


if __name__ == "__main__":
    main()
