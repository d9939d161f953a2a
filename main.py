"""
Aggregation API entry point
Builds the app from environment settings and serves it with uvicorn
"""

import sys

import uvicorn
from loguru import logger

from aggregator.api import create_app
from aggregator.settings import global_settings


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    """Main function"""
    configure_logging(global_settings.log_level)

    endpoints = global_settings.endpoints()
    for endpoint in endpoints.values():
        logger.info(
            f"Downstream {endpoint.name}: {endpoint.base_url} "
            f"(timeout {endpoint.timeout}s)"
        )

    app = create_app(global_settings)

    logger.info(
        f"Starting Aggregation API on {global_settings.host}:{global_settings.port}"
    )
    uvicorn.run(
        app,
        host=global_settings.host,
        port=global_settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
