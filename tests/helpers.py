"""Shared test helpers: a scripted fake agent service and a fake token source."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

import httpx

ENDPOINT = "https://consult-ai.services.example.com/api/projects/consult"

_ROUTES = [
    ("POST", re.compile(r"/threads$"), "create_thread"),
    ("POST", re.compile(r"/threads/(?P<thread>[^/]+)/messages$"), "add_message"),
    ("GET", re.compile(r"/threads/(?P<thread>[^/]+)/messages$"), "get_messages"),
    ("POST", re.compile(r"/threads/(?P<thread>[^/]+)/runs$"), "create_run"),
    ("GET", re.compile(r"/threads/(?P<thread>[^/]+)/runs/(?P<run>[^/]+)$"), "check_run_status"),
    ("POST", re.compile(r"/threads/(?P<thread>[^/]+)/runs/(?P<run>[^/]+)/cancel$"), "cancel_run"),
]


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": {"value": text, "annotations": []}}


def image_part(file_id: str) -> dict[str, Any]:
    return {"type": "image_file", "image_file": {"file_id": file_id}}


def agent_message(
    text: str | None = "Hello",
    *,
    message_id: str = "msg-agent-1",
    created_at: int = 200,
    run_id: str | None = "run-1",
    parts: Iterable[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    content = list(parts) if parts is not None else [text_part(text or "")]
    return {
        "id": message_id,
        "object": "thread.message",
        "role": "assistant",
        "created_at": created_at,
        "run_id": run_id,
        "content": content,
    }


def user_message(text: str = "Hi", *, message_id: str = "msg-user-1", created_at: int = 100) -> dict[str, Any]:
    return {
        "id": message_id,
        "object": "thread.message",
        "role": "user",
        "created_at": created_at,
        "run_id": None,
        "content": [text_part(text)],
    }


class FakeAgentService:
    """In-memory agent service speaking the threads/messages/runs REST shape.

    ``run_statuses`` is the sequence of statuses the run reports: the first
    comes back from run creation, each status check returns the next one, and
    the last one repeats forever.
    """

    def __init__(
        self,
        *,
        run_statuses: Iterable[str] = ("queued", "in_progress", "completed"),
        messages: list[dict[str, Any]] | None = None,
        last_error: dict[str, Any] | None = None,
        thread_id: str = "thread-new",
        run_id: str = "run-1",
    ):
        self.run_statuses = list(run_statuses)
        self.messages = messages if messages is not None else [agent_message("Hello"), user_message("Hi")]
        self.last_error = last_error
        self.thread_id = thread_id
        self.run_id = run_id
        self.requests: list[tuple[str, httpx.Request]] = []
        self._failures: dict[str, tuple[int, str]] = {}
        self._status_index = 0

    def fail(self, step: str, status_code: int = 500, body: str = '{"error": "boom"}') -> None:
        self._failures[step] = (status_code, body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.requests]

    def calls(self, step: str) -> list[httpx.Request]:
        return [request for name, request in self.requests if name == step]

    def handle(self, request: httpx.Request) -> httpx.Response:
        step, match = self._route(request)
        self.requests.append((step, request))

        if step in self._failures:
            status_code, body = self._failures[step]
            return httpx.Response(status_code, text=body)

        if step == "create_thread":
            return httpx.Response(200, json={"id": self.thread_id, "object": "thread"})
        if step == "add_message":
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"id": "msg-user-new", "thread_id": match["thread"], "role": body["role"]},
            )
        if step == "create_run":
            return httpx.Response(200, json=self._run_record(match["thread"], self.run_statuses[0]))
        if step == "check_run_status":
            self._status_index = min(self._status_index + 1, len(self.run_statuses) - 1)
            return httpx.Response(
                200, json=self._run_record(match["thread"], self.run_statuses[self._status_index])
            )
        if step == "cancel_run":
            return httpx.Response(200, json=self._run_record(match["thread"], "cancelling"))
        if step == "get_messages":
            return httpx.Response(200, json={"object": "list", "data": self.messages})
        return httpx.Response(404, text="not found")

    def _route(self, request: httpx.Request) -> tuple[str, dict[str, str]]:
        for method, pattern, step in _ROUTES:
            match = pattern.search(request.url.path)
            if request.method == method and match:
                return step, match.groupdict()
        return "unknown", {}

    def _run_record(self, thread_id: str, status: str) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.run_id,
            "object": "thread.run",
            "thread_id": thread_id,
            "assistant_id": "asst-consult",
            "status": status,
            "last_error": None,
        }
        if status in ("failed", "cancelled", "expired") and self.last_error is not None:
            record["last_error"] = self.last_error
        return record


class FakeTokenSource:
    """Token source returning a canned token, or raising ``error``."""

    def __init__(self, token: str = "test-token", error: Exception | None = None):
        self.token = token
        self.error = error
        self.timeouts: list[float] = []

    @property
    def calls(self) -> int:
        return len(self.timeouts)

    async def get_token(self, timeout: float) -> str:
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return self.token

    async def close(self) -> None:
        return None
