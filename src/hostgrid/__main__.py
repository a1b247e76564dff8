"""Run the service with uvicorn: ``python -m hostgrid``."""

import logging

from uvicorn import run

from .config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("hostgrid")
    logger.info(
        "listening on %s:%s for *.%s", settings.bind_host, settings.bind_port, settings.site_hostname
    )
    run("hostgrid.api:app", host=settings.bind_host, port=settings.bind_port, log_level="info")


if __name__ == "__main__":
    main()
