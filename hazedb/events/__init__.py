"""
Document lifecycle notifications.

Four event kinds are published synchronously by every DocumentStore:
created, updated, destroyed and incremented.
"""

from .notifier import ChangeEvent, ChangeNotifier, EventKind, Listener, Subscription

__all__ = [
    "ChangeEvent",
    "ChangeNotifier",
    "EventKind",
    "Listener",
    "Subscription",
]
