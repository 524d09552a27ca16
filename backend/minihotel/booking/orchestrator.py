from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from minihotel.booking.models import RateQuery, RateQuote
from minihotel.hotel_api.client import HotelAPIError

logger = logging.getLogger(__name__)

RateCalculator = Callable[[RateQuery], Awaitable[Any]]
TransitionListener = Callable[["RateState", "RateState"], None]


class RateState(Enum):
    IDLE = "idle"
    READY_TO_QUERY = "ready_to_query"
    QUERYING = "querying"
    QUOTED = "quoted"


def extract_amount(payload: Any) -> float:
    if isinstance(payload, dict):
        for key in ("total_amount", "calculated_rate"):
            value = payload.get(key)
            if value is None or isinstance(value, bool):
                continue
            try:
                return float(value)
            except (TypeError, ValueError):
                continue
    raise ValueError(f"rate response carries no amount: {payload!r}")


class RateCalculationOrchestrator:
    """Keeps a price estimate in step with the booking form inputs.

    Every issued request is tagged with a sequence number. Only the response
    to the most recently issued request is shown; older responses are dropped
    whenever they arrive. Requests superseded during the debounce delay are
    never sent.
    """

    def __init__(
        self,
        calculate: RateCalculator,
        *,
        debounce_seconds: float = 0.0,
        listener: TransitionListener | None = None,
    ) -> None:
        self._calculate = calculate
        self._debounce = max(0.0, debounce_seconds)
        self._listener = listener
        self._state = RateState.IDLE
        self._quote: RateQuote | None = None
        self._inputs: RateQuery | None = None
        self._issued_query: RateQuery | None = None
        self._sequence = 0
        self._current: int | None = None
        self._pending: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> RateState:
        return self._state

    @property
    def quote(self) -> RateQuote | None:
        return self._quote

    @property
    def sequence(self) -> int:
        return self._sequence

    def update(self, query: RateQuery) -> RateState:
        self._inputs = query
        if not query.is_complete():
            self._cancel_pending()
            self._current = None
            self._issued_query = None
            self._transition(RateState.IDLE)
            return self._state

        if query == self._issued_query and self._state is not RateState.IDLE:
            return self._state

        self._cancel_pending()
        self._sequence += 1
        sequence = self._sequence
        self._current = sequence
        self._issued_query = query
        self._transition(RateState.READY_TO_QUERY)

        task = asyncio.get_running_loop().create_task(self._run(sequence, query))
        self._pending = task
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return self._state

    def refresh(self) -> RateState:
        """Re-issue the calculation for the current inputs."""

        if self._inputs is None:
            return self._state
        self._issued_query = None
        return self.update(self._inputs)

    async def wait(self) -> RateQuote | None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self._quote

    def close(self) -> None:
        self._current = None
        self._pending = None
        for task in list(self._tasks):
            task.cancel()

    async def _run(self, sequence: int, query: RateQuery) -> None:
        if self._debounce:
            await asyncio.sleep(self._debounce)
        if sequence != self._current:
            return
        if self._pending is asyncio.current_task():
            self._pending = None

        self._transition(RateState.QUERYING)
        try:
            amount = extract_amount(await self._calculate(query))
        except (HotelAPIError, ValueError) as exc:
            if sequence != self._current:
                return
            logger.warning("Rate calculation failed for room %s: %s", query.room_id, exc)
            # allow the same inputs to be retried on the next change
            self._issued_query = None
            self._transition(RateState.QUOTED if self._quote else RateState.READY_TO_QUERY)
            return

        if sequence != self._current:
            logger.debug(
                "Dropping stale rate response seq=%s (latest=%s)", sequence, self._current
            )
            return
        self._quote = RateQuote(amount=amount, query=query, sequence=sequence)
        self._transition(RateState.QUOTED)

    def _cancel_pending(self) -> None:
        # only debounced calls are cancelled, requests already sent run to completion
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("Rate calculation task failed: %s", exc)

    def _transition(self, new_state: RateState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        if self._listener is not None:
            self._listener(old_state, new_state)


__all__ = ["RateCalculationOrchestrator", "RateState", "extract_amount"]
