"""Run status polling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .client import AgentServiceClient
from .deadline import Deadline
from .errors import AgentServiceError, RunTerminalError, RunTimeoutError
from .types import AgentRun

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
MAX_POLL_ATTEMPTS = 60  # 60 attempts * 1 second = 1 minute

# Strong references to fire-and-forget cancel tasks
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class RunPolicy:
    """Timing policy shared by every workflow."""

    poll_interval: float = POLL_INTERVAL_SECONDS
    max_attempts: int = MAX_POLL_ATTEMPTS
    cancel_on_timeout: bool = True
    setup_allowance: float = 30.0

    @property
    def poll_budget(self) -> float:
        return self.poll_interval * self.max_attempts

    def default_timeout(self) -> float:
        """Deadline used when the caller does not supply one."""
        return self.poll_budget + self.setup_allowance


async def poll_run(
    client: AgentServiceClient,
    run: AgentRun,
    policy: RunPolicy,
    deadline: Deadline,
) -> AgentRun:
    """Poll until the run reaches a terminal status.

    Returns the completed run. Raises RunTerminalError for failed, cancelled
    or expired runs, and RunTimeoutError when the attempt budget or the
    deadline runs out first.
    """
    attempts = 0
    while not run.status.is_terminal:
        if attempts >= policy.max_attempts:
            _on_timeout(client, run, policy)
            raise RunTimeoutError(
                f"Run timed out after {attempts} status checks",
                step="poll_run",
                thread_id=run.thread_id,
                run_id=run.id,
            )

        await deadline.sleep(policy.poll_interval)
        attempts += 1
        try:
            deadline.check("check_run_status")
        except RunTimeoutError as e:
            _on_timeout(client, run, policy)
            raise e.with_context(thread_id=run.thread_id, run_id=run.id)

        run = await client.get_run(run.thread_id, run.id)
        logger.debug(
            "[AGENT_POLL] Run %s is %s (attempt %d/%d)",
            run.id,
            run.status.value,
            attempts,
            policy.max_attempts,
        )

    if run.status.is_failure:
        detail = run.last_error.describe() if run.last_error else None
        raise RunTerminalError(
            run.status,
            detail,
            step="poll_run",
            thread_id=run.thread_id,
            run_id=run.id,
        )

    logger.info("[AGENT_POLL] Run %s completed after %d status checks", run.id, attempts)
    return run


def _on_timeout(client: AgentServiceClient, run: AgentRun, policy: RunPolicy) -> None:
    if not policy.cancel_on_timeout:
        logger.warning("[AGENT_POLL] Abandoning run %s on thread %s", run.id, run.thread_id)
        return
    task = asyncio.create_task(_cancel_run(client.clone(), run))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def drain_background_tasks(timeout: float) -> None:
    """Wait for pending cancel requests. Any still running after ``timeout`` are cancelled."""
    pending = list(_background_tasks)
    if not pending:
        return
    logger.info("[AGENT_POLL] Waiting for %d pending run cancel(s)", len(pending))
    try:
        await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("[AGENT_POLL] Pending run cancels did not finish in %.1fs", timeout)


async def _cancel_run(client: AgentServiceClient, run: AgentRun) -> None:
    """Best-effort cancel of an abandoned run. Never raises."""
    async with client:
        try:
            await client.cancel_run(run.thread_id, run.id)
        except AgentServiceError as e:
            logger.warning(
                "[AGENT_POLL] Could not cancel run %s: %s (%s)", run.id, e.message, e.log_context()
            )
