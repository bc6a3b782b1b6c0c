"""REST client for the Azure AI Foundry agent service.

Covers the subset of the threads/messages/runs API the orchestrator needs:

- ``POST /threads``
- ``POST /threads/{thread_id}/messages``
- ``POST /threads/{thread_id}/runs``
- ``GET  /threads/{thread_id}/runs/{run_id}``
- ``POST /threads/{thread_id}/runs/{run_id}/cancel``
- ``GET  /threads/{thread_id}/messages``
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

from .errors import UpstreamError
from .types import AgentRun, ConversationThread, ThreadMessage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class AgentServiceClient:
    """Thin async wrapper over one bearer token and one endpoint.

    Use as an async context manager; the underlying ``httpx.AsyncClient`` is
    closed on exit. Every non-2xx answer raises :class:`UpstreamError` with
    the status and body preserved for logs.
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        api_version: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._client = httpx.AsyncClient(
            base_url=self.endpoint,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            params={"api-version": api_version},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> AgentServiceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def clone(self) -> AgentServiceClient:
        """New client with the same endpoint, token and transport, for background work."""
        return AgentServiceClient(
            self.endpoint,
            self._token,
            self.api_version,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        step: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        thread_id: str | None = None,
        run_id: str | None = None,
    ) -> dict[str, Any]:
        context = {"step": step, "thread_id": thread_id, "run_id": run_id}
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"Agent service did not respond during {step}", cause=e, **context
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Could not reach agent service during {step}", cause=e, **context
            ) from e

        if not response.is_success:
            raise UpstreamError(
                f"Failed to {step.replace('_', ' ')} ({response.status_code})",
                upstream_status=response.status_code,
                body=response.text,
                **context,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Agent service returned invalid JSON during {step}",
                upstream_status=response.status_code,
                body=response.text,
                cause=e,
                **context,
            ) from e

        if not isinstance(data, dict):
            raise UpstreamError(
                f"Agent service returned an unexpected payload during {step}",
                upstream_status=response.status_code,
                body=response.text,
                **context,
            )
        return data

    async def create_thread(self) -> ConversationThread:
        data = await self._request("POST", "/threads", "create_thread", json={})
        thread_id = data.get("id")
        if not thread_id:
            raise UpstreamError("Failed to get thread ID", step="create_thread", body=str(data))
        logger.info("[AGENT_CLIENT] Created thread %s", thread_id)
        return ConversationThread(id=str(thread_id))

    async def create_message(self, thread_id: str, content: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            "add_message",
            json={"role": "user", "content": content},
            thread_id=thread_id,
        )

    async def create_run(self, thread_id: str, agent_id: str) -> AgentRun:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/runs",
            "create_run",
            json={"assistant_id": agent_id},
            thread_id=thread_id,
        )
        if not data.get("id"):
            raise UpstreamError(
                "Failed to get run ID", step="create_run", thread_id=thread_id, body=str(data)
            )
        return AgentRun.from_dict(data, thread_id)

    async def get_run(self, thread_id: str, run_id: str) -> AgentRun:
        data = await self._request(
            "GET",
            f"/threads/{thread_id}/runs/{run_id}",
            "check_run_status",
            thread_id=thread_id,
            run_id=run_id,
        )
        if not data.get("status"):
            raise UpstreamError(
                "Run status missing from agent service response",
                step="check_run_status",
                thread_id=thread_id,
                run_id=run_id,
                body=str(data),
            )
        return AgentRun.from_dict({"id": run_id, **data}, thread_id)

    async def cancel_run(self, thread_id: str, run_id: str) -> None:
        await self._request(
            "POST",
            f"/threads/{thread_id}/runs/{run_id}/cancel",
            "cancel_run",
            json={},
            thread_id=thread_id,
            run_id=run_id,
        )
        logger.info("[AGENT_CLIENT] Requested cancel of run %s on thread %s", run_id, thread_id)

    async def list_messages(
        self,
        thread_id: str,
        *,
        order: Literal["asc", "desc"] = "desc",
        limit: int = 20,
        run_id: str | None = None,
    ) -> list[ThreadMessage]:
        data = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            "get_messages",
            params={"order": order, "limit": limit},
            thread_id=thread_id,
            run_id=run_id,
        )
        items = data.get("data")
        if not isinstance(items, list):
            raise UpstreamError(
                "Message list missing from agent service response",
                step="get_messages",
                thread_id=thread_id,
                run_id=run_id,
                body=str(data),
            )
        return [ThreadMessage.from_dict(item) for item in items if isinstance(item, dict)]
