"""FastAPI application setup."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..agents.credentials import close_token_source
from ..agents.polling import drain_background_tasks
from ..config import get_settings
from .routes import agent

logging.getLogger("consult_agent_service").setLevel(get_settings().log_level.upper())

logger = logging.getLogger(__name__)

RUN_CANCEL_DRAIN_SECONDS = 3.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Consult agent service starting...")

    yield

    logger.info("Consult agent service shutting down...")
    await drain_background_tasks(timeout=RUN_CANCEL_DRAIN_SECONDS)

    try:
        await asyncio.wait_for(close_token_source(), timeout=3.0)
    except asyncio.TimeoutError:
        logger.warning("Credential close timed out")
    except Exception as e:
        logger.warning(f"Error closing credential: {e}")

    logger.info("Consult agent service shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Consult Agent Service",
        description="Drafts structured consultation notes with an Azure AI agent",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Handles the browser's OPTIONS preflight
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agent.router, prefix="/api", tags=["agent"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
