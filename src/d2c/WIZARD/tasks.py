"""
Background execution of registry calls.

Registry calls block on the network, so the wizard hands them to a single
worker thread and keeps reading keys. Finished calls are queued as
TaskOutcome objects which the event loop drains once per iteration; the
wizard state is only touched from the loop thread.
"""
import itertools
import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    """Result of one background call; exactly one of value/error is meaningful."""

    ticket: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TaskRunner:
    """
    Runs submitted callables on one worker thread, so at most one registry
    call is in flight at a time.
    """

    def __init__(self):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="d2c-task")
        self._outcomes: "queue.Queue[TaskOutcome]" = queue.Queue()
        self._tickets = itertools.count(1)

    def submit(self, fn: Callable[..., Any], *args: Any) -> int:
        """
        Schedules `fn(*args)`.

        :return: Ticket identifying the outcome once it is drained.
        """
        ticket = next(self._tickets)
        self._executor.submit(self._run, ticket, fn, args)
        logger.debug("submitted task %d: %s", ticket, getattr(fn, "__name__", fn))
        return ticket

    def _run(self, ticket: int, fn: Callable[..., Any], args) -> None:
        try:
            self._outcomes.put(TaskOutcome(ticket, value=fn(*args)))
        except Exception as e:
            logger.debug("task %d failed: %s", ticket, e)
            self._outcomes.put(TaskOutcome(ticket, error=e))

    def drain(self) -> List[TaskOutcome]:
        """Returns every outcome queued since the last call, without blocking."""
        outcomes = []
        while True:
            try:
                outcomes.append(self._outcomes.get_nowait())
            except queue.Empty:
                return outcomes

    def shutdown(self) -> None:
        # A hanging call is abandoned rather than joined.
        self._executor.shutdown(wait=False, cancel_futures=True)


class InlineTaskRunner(TaskRunner):
    """Runs tasks synchronously on submit; outcomes still wait for drain()."""

    def __init__(self):
        self._outcomes = queue.Queue()
        self._tickets = itertools.count(1)

    def submit(self, fn: Callable[..., Any], *args: Any) -> int:
        ticket = next(self._tickets)
        self._run(ticket, fn, args)
        return ticket

    def shutdown(self) -> None:
        pass
