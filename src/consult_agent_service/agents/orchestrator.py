"""Agent run orchestration.

Turns one inbound request into one agent reply by driving the remote
service through thread -> message -> run -> poll -> extract. Steps run
strictly in order; nothing is retried and nothing is rolled back. Every
failure is converted to a failed :class:`AgentResult` at this boundary.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from .client import AgentServiceClient
from .credentials import TokenSource
from .deadline import Deadline
from .errors import (
    AgentServiceError,
    AuthenticationError,
    ConfigurationError,
    InternalError,
    ValidationError,
)
from .extraction import extract_response
from .polling import RunPolicy, poll_run
from .types import AgentRequest, AgentResult, AgentRun, ConversationThread
from .workflows import AgentWorkflow

logger = logging.getLogger(__name__)


@dataclass
class _Progress:
    """Where the current invocation got to, for error context."""

    step: str = "validate"
    thread_id: str | None = None
    run_id: str | None = None

    def as_context(self) -> dict[str, Any]:
        return {"step": self.step, "thread_id": self.thread_id, "run_id": self.run_id}


def policy_from_settings(settings: Settings) -> RunPolicy:
    return RunPolicy(
        poll_interval=settings.agent_poll_interval_seconds,
        max_attempts=settings.agent_max_poll_attempts,
        cancel_on_timeout=settings.agent_cancel_on_timeout,
        setup_allowance=settings.agent_setup_allowance_seconds,
    )


class AgentRunOrchestrator:
    """Runs one workflow invocation against the agent service."""

    def __init__(
        self,
        settings: Settings,
        token_source: TokenSource,
        *,
        policy: RunPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.token_source = token_source
        self.policy = policy or policy_from_settings(settings)
        self._transport = transport

    async def run(
        self,
        workflow: AgentWorkflow,
        body: Any,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AgentResult:
        """Run ``workflow`` for a raw request body. Never raises (except task cancellation)."""
        progress = _Progress()
        try:
            return await self._run(workflow, body, progress, cancel_event)
        except AgentServiceError as e:
            e.with_context(**progress.as_context())
            if isinstance(e, ValidationError):
                logger.warning("[AGENT_RUN] %s rejected: %s", workflow.name, e.message)
            else:
                logger.error(
                    "[AGENT_RUN] %s failed with %s: %s (%s)",
                    workflow.name,
                    e.code,
                    e.message,
                    e.log_context(),
                )
            return e.to_result()
        except Exception:
            logger.exception(
                "[AGENT_RUN] Unhandled error in %s (step=%s thread=%s run=%s)",
                workflow.name,
                progress.step,
                progress.thread_id,
                progress.run_id,
            )
            return InternalError(
                "Internal error while processing the agent request", **progress.as_context()
            ).to_result()

    async def _run(
        self,
        workflow: AgentWorkflow,
        body: Any,
        progress: _Progress,
        cancel_event: asyncio.Event | None,
    ) -> AgentResult:
        request = workflow.validate(body)

        progress.step = "configure"
        endpoint, agent_id = self._require_config(workflow)
        deadline = Deadline.after(self._timeout_for(request), cancel_event)
        logger.info(
            "[AGENT_RUN] Starting %s (thread=%s, deadline=%.0fs)",
            workflow.name,
            request.thread_id or "new",
            deadline.seconds,
        )

        progress.step = "authenticate"
        token = await self._acquire_token(deadline)

        async with AgentServiceClient(
            endpoint,
            token,
            self.settings.azure_ai_api_version,
            timeout=self.settings.agent_http_timeout_seconds,
            transport=self._transport,
        ) as client:
            progress.step = "create_thread"
            thread = await self.acquire_thread(client, request.thread_id, deadline)
            progress.thread_id = thread.id

            progress.step = "add_message"
            await self.submit_user_message(client, thread.id, workflow.build_message(request), deadline)

            progress.step = "create_run"
            run = await self.start_run(client, thread.id, agent_id, deadline)
            progress.run_id = run.id

            progress.step = "poll_run"
            run = await poll_run(client, run, self.policy, deadline)

            progress.step = "extract_response"
            deadline.check("get_messages")
            reply = await extract_response(
                client,
                thread.id,
                run.id,
                page_size=self.settings.agent_message_page_size,
                selector=workflow.select_response,
            )

        return AgentResult.ok(
            reply.text,
            thread_id=thread.id,
            run_id=run.id,
            attachments=list(reply.attachments),
        )

    async def acquire_thread(
        self,
        client: AgentServiceClient,
        caller_thread_id: str | None,
        deadline: Deadline,
    ) -> ConversationThread:
        """Reuse the caller's thread as-is, or create a new one."""
        if caller_thread_id:
            # Not verified here: an unknown id fails on the next call
            logger.info("[AGENT_RUN] Using existing thread: %s", caller_thread_id)
            return ConversationThread(id=caller_thread_id, reused=True)
        deadline.check("create_thread")
        return await client.create_thread()

    async def submit_user_message(
        self,
        client: AgentServiceClient,
        thread_id: str,
        content: str,
        deadline: Deadline,
    ) -> None:
        deadline.check("add_message")
        await client.create_message(thread_id, content)
        logger.info("[AGENT_RUN] Added user message to thread %s (%d chars)", thread_id, len(content))

    async def start_run(
        self,
        client: AgentServiceClient,
        thread_id: str,
        agent_id: str,
        deadline: Deadline,
    ) -> AgentRun:
        deadline.check("create_run")
        run = await client.create_run(thread_id, agent_id)
        logger.info(
            "[AGENT_RUN] Started run %s on thread %s (status=%s)", run.id, thread_id, run.status.value
        )
        return run

    def _require_config(self, workflow: AgentWorkflow) -> tuple[str, str]:
        endpoint = self.settings.azure_ai_endpoint
        agent_id = workflow.resolve_agent_id(self.settings)
        if not endpoint or not agent_id:
            raise ConfigurationError("Azure AI configuration missing", step="configure")
        return endpoint, agent_id

    def _timeout_for(self, request: AgentRequest) -> float:
        if request.timeout_seconds is not None:
            return min(request.timeout_seconds, self.settings.agent_max_request_seconds)
        return self.policy.default_timeout()

    async def _acquire_token(self, deadline: Deadline) -> str:
        deadline.check("authenticate")
        timeout = deadline.bound(self.settings.azure_ai_token_timeout_seconds)
        try:
            return await self.token_source.get_token(timeout)
        except AgentServiceError:
            raise
        except Exception as e:
            raise AuthenticationError("Authentication failed", step="authenticate", cause=e) from e
