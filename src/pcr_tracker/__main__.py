"""Run the PCR tracker: ``python -m pcr_tracker``."""

import logging

from aiohttp import web

from .api import create_app
from .config import ConfigurationError
from .logging_config import setup_logging
from .service import SERVICE_NAME
from .settings import load_settings

logger = logging.getLogger(SERVICE_NAME)


def main() -> None:
    setup_logging(SERVICE_NAME)
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    logger.info("PCR tracker listening on %s:%s", settings.http_host, settings.http_port)
    web.run_app(
        create_app(settings),
        host=settings.http_host,
        port=settings.http_port,
        print=None,
    )


if __name__ == "__main__":
    main()
