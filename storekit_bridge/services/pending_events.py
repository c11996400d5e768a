"""
Pending Event Buffer - holds inbound events until their family is dispatchable.

One FIFO queue per event family. The readiness predicate is injected by the
bridge and encodes the configured BufferingPolicy, so there is exactly one
place deciding whether an event is dispatched now or later.
"""

import itertools
from collections.abc import Callable

from structlog import get_logger

from storekit_bridge.models.events import (
    DownloadUpdate,
    EventFamily,
    PendingEvent,
    TransactionUpdate,
)
from storekit_bridge.observability.metrics import metrics
from storekit_bridge.observability.tracing import trace_operation

logger = get_logger(__name__)

Update = TransactionUpdate | DownloadUpdate


class PendingEventBuffer:
    """
    FIFO queues of inbound updates, one per EventFamily.

    Invariants:
    - events of a family are dispatched in arrival order;
    - each buffered event is dispatched exactly once;
    - while older events of a family are queued or being replayed, newer
      ones of that family queue behind them.
    """

    def __init__(self, is_open: Callable[[EventFamily], bool]) -> None:
        """
        Args:
            is_open: Readiness predicate; True when a family may be dispatched
        """
        self._is_open = is_open
        self._queues: dict[EventFamily, list[PendingEvent]] = {
            family: [] for family in EventFamily
        }
        self._draining: set[EventFamily] = set()
        self._sequence = itertools.count()

    def accept(self, family: EventFamily, update: Update) -> bool:
        """
        Decide whether an inbound update must wait.

        Returns:
            True if the update was buffered, False if the caller should
            dispatch it immediately
        """
        if self._is_open(family) and family not in self._draining and not self._queues[family]:
            return False
        self.enqueue(family, update)
        return True

    def enqueue(self, family: EventFamily, update: Update) -> PendingEvent:
        event = PendingEvent(family=family, update=update, sequence=next(self._sequence))
        self._queues[family].append(event)
        metrics.record_buffered(family.value)
        logger.debug(
            "event_buffered",
            family=family.value,
            state=update.state,
            sequence=event.sequence,
            queued=len(self._queues[family]),
        )
        return event

    def drain_and_replay(self, family: EventFamily, dispatch: Callable[[Update], None]) -> int:
        """
        Replay queued updates of a family through ``dispatch``.

        The live queue is swapped for an empty one before each pass, so updates
        arriving during replay land in a fresh queue and are replayed by the
        next pass. Reentrant calls and calls while the family is closed are
        no-ops.

        Returns:
            Number of updates dispatched
        """
        if family in self._draining or not self._is_open(family) or not self._queues[family]:
            return 0

        replayed = 0
        self._draining.add(family)
        try:
            with trace_operation("pending_events_replay", family=family.value) as span:
                while self._queues[family] and self._is_open(family):
                    snapshot = self._queues[family]
                    self._queues[family] = []
                    for event in snapshot:
                        dispatch(event.update)
                        replayed += 1
                span.set_attribute("replayed", replayed)
        finally:
            self._draining.discard(family)

        metrics.record_replayed(family.value, replayed)
        logger.info(
            "pending_events_replayed",
            family=family.value,
            count=replayed,
            remaining=len(self._queues[family]),
        )
        return replayed

    def pending(self, family: EventFamily) -> list[PendingEvent]:
        """Copy of the queued events of a family, oldest first."""
        return list(self._queues[family])

    def has_pending(self, family: EventFamily | None = None) -> bool:
        if family is not None:
            return bool(self._queues[family])
        return any(self._queues.values())

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._queues.values())
