"""Entry point for running the consult agent service."""

import logging
import sys

import uvicorn

from .config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def main():
    """Run the consult agent service."""
    settings = get_settings()

    logger.info(f"Starting consult agent service on {settings.app_host}:{settings.app_port}")

    uvicorn.run(
        "consult_agent_service.api.app:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
