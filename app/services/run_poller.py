"""Bounded polling of an assistant run until it reaches a terminal state."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from app.core.config import Settings
from app.exceptions.assistant import UpstreamError
from app.services.assistant_gateway import AssistantGateway

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT)


_TERMINAL_FAILURES = {"failed", "cancelled", "cancelling", "expired", "incomplete"}


def to_run_state(status: str | None) -> RunState:
    """Map a service run status onto ``RunState``; unknown statuses keep polling."""
    if status in _TERMINAL_FAILURES:
        return RunState.FAILED
    try:
        return RunState(status)
    except ValueError:
        logger.warning(f"Unknown run status {status!r}, treating as in progress")
        return RunState.IN_PROGRESS


class RunPoller:
    """Polls a run at a fixed interval up to ``max_attempts`` times.

    Returns ``COMPLETED`` or ``FAILED`` as soon as the service reports them and
    ``TIMED_OUT`` once the attempts are exhausted; it never raises for either.
    A transport or HTTP error while polling ends the loop as ``FAILED``.
    ``requires_action`` is polled again like ``in_progress``; no tool outputs are
    submitted and the run is never cancelled.
    """

    def __init__(
        self,
        gateway: AssistantGateway,
        interval: float = 1.0,
        max_attempts: int = 60,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    @classmethod
    def from_settings(cls, gateway: AssistantGateway, settings: Settings) -> "RunPoller":
        return cls(
            gateway,
            interval=settings.run_poll_interval_seconds,
            max_attempts=settings.run_poll_max_attempts,
        )

    async def wait(self, thread_id: str, run_id: str) -> RunState:
        async def tick() -> RunState:
            try:
                status = await self.gateway.poll_run(thread_id, run_id)
            except UpstreamError as e:
                logger.error(f"Polling run {run_id} failed: {e.message}")
                return RunState.FAILED
            state = to_run_state(status)
            logger.debug(f"Run {run_id} status: {state.value}")
            return state

        retrying = AsyncRetrying(
            wait=wait_fixed(self.interval),
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_result(lambda state: not state.is_terminal),
            retry_error_callback=lambda _retry_state: RunState.TIMED_OUT,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            sleep=self.sleep,
        )
        state = await retrying(tick)
        if state is RunState.TIMED_OUT:
            logger.warning(f"Run {run_id} on thread {thread_id} did not finish after {self.max_attempts} polls")
        return state
