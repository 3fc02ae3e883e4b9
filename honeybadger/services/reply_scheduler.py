"""
Deferred companion replies.

Each reply is an asyncio task that sleeps for its delay and then runs its
job. Tasks are tracked per challenge so they can be inspected and cancelled,
and all of them are cancelled on shutdown.

Challenge state changes do not cancel pending replies: a reply scheduled
before a cancellation still fires.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, List, Set

from honeybadger.core.config import settings

logger = logging.getLogger(__name__)

ReplyJob = Callable[[], Awaitable[None]]


def random_reply_delay() -> float:
    """A 'typing...' pause before the companion answers."""
    return random.uniform(settings.COMPANION_REPLY_DELAY_MIN, settings.COMPANION_REPLY_DELAY_MAX)


class ReplyScheduler:
    """Work queue of delayed jobs keyed by challenge id."""

    def __init__(self):
        self._pending: Dict[int, Set[asyncio.Task]] = {}

    def schedule(self, challenge_id: int, delay: float, job: ReplyJob) -> asyncio.Task:
        """
        Run ``job`` after ``delay`` seconds.

        Must be called from a running event loop.
        """
        async def _run() -> None:
            await asyncio.sleep(delay)
            await job()

        task = asyncio.create_task(_run(), name=f"companion-reply-{challenge_id}")
        self._pending.setdefault(challenge_id, set()).add(task)

        def _on_done(t: asyncio.Task) -> None:
            tasks = self._pending.get(challenge_id)
            if tasks is not None:
                tasks.discard(t)
                if not tasks:
                    del self._pending[challenge_id]
            if t.cancelled():
                logger.debug(f"Companion reply for challenge {challenge_id} cancelled")
            elif t.exception() is not None:
                exc = t.exception()
                logger.error(
                    f"Companion reply for challenge {challenge_id} failed",
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(_on_done)
        logger.debug(f"Scheduled companion reply for challenge {challenge_id} in {delay:.2f}s")
        return task

    def pending(self, challenge_id: int) -> List[asyncio.Task]:
        return [t for t in self._pending.get(challenge_id, ()) if not t.done()]

    def cancel(self, challenge_id: int) -> int:
        """Cancel the challenge's pending replies; returns how many were cancelled."""
        tasks = self.pending(challenge_id)
        for task in tasks:
            task.cancel()
        return len(tasks)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel every pending reply and wait for the tasks to finish."""
        tasks = [t for group in self._pending.values() for t in group if not t.done()]
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} pending companion replies")
        for task in tasks:
            task.cancel()
        try:
            await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timeout waiting for companion replies to cancel")
