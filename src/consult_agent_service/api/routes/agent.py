"""API routes for the consult extraction and chat workflows."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...agents.credentials import get_token_source
from ...agents.errors import status_for_code
from ...agents.orchestrator import AgentRunOrchestrator
from ...agents.workflows import CHAT_WORKFLOW, EXTRACTION_WORKFLOW, AgentWorkflow
from ...config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

DISCONNECT_CHECK_SECONDS = 0.5


def get_orchestrator(settings: Settings = Depends(get_settings)) -> AgentRunOrchestrator:
    return AgentRunOrchestrator(settings, get_token_source(settings))


async def _read_body(request: Request) -> Any:
    # Malformed JSON is left to the validator, which reports it as a 400
    try:
        return await request.json()
    except ValueError:
        return None


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    """Set ``cancel_event`` once the HTTP client goes away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("[AGENT_API] Client disconnected from %s, cancelling run", request.url.path)
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_CHECK_SECONDS)


async def _run_workflow(
    workflow: AgentWorkflow,
    request: Request,
    orchestrator: AgentRunOrchestrator,
) -> JSONResponse:
    body = await _read_body(request)
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        result = await orchestrator.run(workflow, body, cancel_event=cancel_event)
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    status_code = 200 if result.success else status_for_code(result.code)
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.post("/agent")
async def run_consult_extraction(
    request: Request,
    orchestrator: AgentRunOrchestrator = Depends(get_orchestrator),
):
    """Fill a JSON schema from a consultation draft."""
    return await _run_workflow(EXTRACTION_WORKFLOW, request, orchestrator)


@router.post("/chat")
async def run_chat(
    request: Request,
    orchestrator: AgentRunOrchestrator = Depends(get_orchestrator),
):
    """Send one chat message, optionally continuing an existing thread."""
    return await _run_workflow(CHAT_WORKFLOW, request, orchestrator)
