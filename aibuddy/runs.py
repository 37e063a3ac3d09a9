"""RunExecutor -- one chat turn against an assistant thread.

Run state machine::

    QUEUED -> IN_PROGRESS -> COMPLETED  (read newest thread message)
                          -> FAILED     (any other terminal status)

The executor polls on a fixed interval. Sleep and clock are injected so
tests can drive status transitions without real delays.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from aibuddy import config
from aibuddy.errors import RunFailedError, RunTimeoutError, UnreadableReplyError
from aibuddy.models import MessageObject
from aibuddy.types import ReplyProblem, RunState

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]

_STATE_BY_STATUS = {
    "queued": RunState.QUEUED,
    "in_progress": RunState.IN_PROGRESS,
    "completed": RunState.COMPLETED,
}


def next_state(status: str) -> RunState:
    """Map a remote run status to the local state machine."""
    return _STATE_BY_STATUS.get(status, RunState.FAILED)


def get_text_content(msg: MessageObject, thread_id: str | None = None) -> str:
    """Text of the first content item of ``msg``."""
    if not msg.content:
        raise UnreadableReplyError(ReplyProblem.EMPTY_CONTENT, thread_id)

    first = msg.content[0]
    if first.type != "text" or first.text is None:
        raise UnreadableReplyError(ReplyProblem.NON_TEXT_CONTENT, thread_id)
    return first.text.value


async def get_first_thread_msg_content(service: Any, thread_id: str) -> str:
    """Text of the most recent message of the thread."""
    messages = await service.list_messages(thread_id, limit=1, order="desc")
    if not messages:
        raise UnreadableReplyError(ReplyProblem.NO_MESSAGE, thread_id)
    return get_text_content(messages[0], thread_id)


class RunExecutor:
    """Attach a user message, run the assistant, poll, return the reply.

    ``max_wait`` bounds the polling in seconds; ``None`` polls until the run
    reaches a terminal status, however long that takes.
    """

    def __init__(
        self,
        service: Any,
        poll_interval: float = config.POLL_INTERVAL,
        max_wait: float | None = config.RUN_MAX_WAIT,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
        on_poll: Callable[[RunState], None] | None = None,
    ) -> None:
        self.service = service
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep
        self._clock = clock
        self._on_poll = on_poll

    async def run_turn(self, asst_id: str, thread_id: str, message: str) -> str:
        await self.service.create_message(thread_id, message)

        run = await self.service.create_run(thread_id, asst_id)
        state = RunState.QUEUED
        started = self._clock()
        logger.debug("Run %s started on thread %s", run.id, thread_id)

        while True:
            run = await self.service.get_run(thread_id, run.id)
            state = next_state(run.status)
            if self._on_poll is not None:
                self._on_poll(state)

            if state is RunState.COMPLETED:
                logger.debug("Run %s completed", run.id)
                return await get_first_thread_msg_content(self.service, thread_id)

            if state is RunState.FAILED:
                detail = (run.last_error or {}).get("message")
                logger.warning("Run %s ended with status %s", run.id, run.status)
                raise RunFailedError(run.status, run.id, detail)

            waited = self._clock() - started
            if self.max_wait is not None and waited >= self.max_wait:
                raise RunTimeoutError(run.id, run.status, waited)

            await self._sleep(self.poll_interval)
