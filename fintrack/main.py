import logging
from typing import Optional

from fintrack.config import Settings, get_settings
from fintrack.db.session import engine, init_db

logger = logging.getLogger(__name__)

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "asyncio")


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings and silence noisy libraries."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.DEBUG else getattr(
        logging, settings.LOG_LEVEL.upper(), logging.INFO
    )
    logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


async def startup() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Starting {settings.APP_NAME}...")
    await init_db()


async def shutdown() -> None:
    logger.info(f"Shutting down {get_settings().APP_NAME}...")
    await engine.dispose()
