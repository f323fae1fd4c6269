"""Booking API startup and main application entry point."""

import uvicorn

from hotel_booking.api.app import create_app
from hotel_booking.config import load_settings
from hotel_booking.logging import get_logger, setup_logging


def main() -> None:
    """Load settings and serve the API until stopped."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)

    logger.info("Starting hotel booking API", host=settings.api_host, port=settings.api_port)

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
