"""Logging and observability setup using Pydantic Logfire."""

import logging
import sys

import logfire

from ct_assistant.config.settings import settings


def setup_logging() -> None:
    """Configure application logging.

    Reduces noise from verbose third-party libraries.
    """
    log_level = getattr(logging, settings.log_level)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("github").setLevel(logging.WARNING)


def setup_observability() -> None:
    """Setup logging and, when a token is configured, Logfire instrumentation."""
    setup_logging()

    logger = logging.getLogger(__name__)

    if not settings.logfire_token:
        logger.info("Logfire token not configured, skipping observability setup")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="ct-assistant-worker",
            environment=settings.environment,
        )
        logfire.instrument_pydantic_ai()
        logfire.instrument_httpx()
        logger.info(f"Logfire observability enabled for {settings.environment} environment")
    except Exception as e:
        logger.error(f"Failed to setup Logfire observability: {e}")
