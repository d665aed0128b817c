"""
Synchronous change notification for HazeDB.

Every successful mutation of a store is published as a ChangeEvent to the
listeners registered on its ChangeNotifier. Delivery happens inline, on the
thread that performed the write, before the write call returns.

Invariants:
    - Listeners are called in registration order
    - A listener registered after an emission never sees that event
    - A failing listener does not prevent delivery to the others
    - Events are never queued or retried

How to change safely:
    - New event kinds must be added to EventKind and emitted by the store
    - Keep delivery synchronous; listeners may rely on read-your-writes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Lifecycle events emitted by the document store."""

    CREATED = "created"
    UPDATED = "updated"
    DESTROYED = "destroyed"
    INCREMENTED = "incremented"


@dataclass(frozen=True)
class ChangeEvent:
    """A single document lifecycle change.

    Attributes:
        kind: What happened
        collection: Collection name
        document: Snapshot of the document after the change (the removed
            document for DESTROYED)
    """

    kind: EventKind
    collection: str
    document: Dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> Optional[str]:
        """Id of the affected document."""
        return self.document.get("id")


Listener = Callable[[ChangeEvent], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ChangeNotifier.subscribe()."""

    listener: Listener
    kinds: FrozenSet[EventKind]
    notifier: "ChangeNotifier"
    active: bool = True

    def accepts(self, kind: EventKind) -> bool:
        return self.active and kind in self.kinds

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        self.notifier.unsubscribe(self)


class ChangeNotifier:
    """Publish/subscribe broadcaster for document lifecycle events.

    Example:
        >>> notifier = ChangeNotifier()
        >>> seen = []
        >>> sub = notifier.subscribe(seen.append, kinds=[EventKind.CREATED])
        >>> notifier.emit(EventKind.CREATED, "users", {"id": "u1"})
        >>> seen[0].collection
        'users'
        >>> sub.unsubscribe()
    """

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        listener: Listener,
        kinds: Optional[Iterable[EventKind]] = None,
    ) -> Subscription:
        """Register a listener.

        Args:
            listener: Callable receiving each ChangeEvent
            kinds: Event kinds to receive (all kinds if None)

        Returns:
            Subscription handle
        """
        selected = frozenset(kinds) if kinds is not None else frozenset(EventKind)
        subscription = Subscription(listener=listener, kinds=selected, notifier=self)
        self._subscriptions.append(subscription)
        logger.debug(
            "Listener subscribed",
            extra={"kinds": sorted(k.value for k in selected)},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Unknown subscriptions are ignored."""
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def clear(self) -> None:
        """Remove all subscriptions."""
        for subscription in self._subscriptions:
            subscription.active = False
        self._subscriptions.clear()

    def emit(self, kind: EventKind, collection: str, document: Dict[str, Any]) -> ChangeEvent:
        """Deliver an event to every current subscriber of its kind.

        Args:
            kind: Event kind
            collection: Collection name
            document: Document snapshot (not copied; callers pass a copy)

        Returns:
            The emitted event
        """
        event = ChangeEvent(kind=kind, collection=collection, document=document)

        # Snapshot so listeners may (un)subscribe during delivery
        for subscription in list(self._subscriptions):
            if not subscription.accepts(kind):
                continue
            try:
                subscription.listener(event)
            except Exception as e:
                logger.error(
                    f"Listener failed on {kind.value} event: {e}",
                    exc_info=True,
                    extra={"collection": collection, "document_id": event.document_id},
                )

        return event
