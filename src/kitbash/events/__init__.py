"""Events subsystem for scene directory monitoring and live notification."""
from kitbash.events.debounce import DebounceEngine
from kitbash.events.hub import (
    BroadcastHub,
    Subscription,
    SubscriptionClosed,
    SubscriptionLagged,
)
from kitbash.events.session import EndReason, Session, SessionState
from kitbash.events.types import EventType, FileChangeEvent, RawKind, RawNotification
from kitbash.events.watcher import WatchSource, WatchSourceError

__all__ = [
    "BroadcastHub",
    "DebounceEngine",
    "EndReason",
    "EventType",
    "FileChangeEvent",
    "RawKind",
    "RawNotification",
    "Session",
    "SessionState",
    "Subscription",
    "SubscriptionClosed",
    "SubscriptionLagged",
    "WatchSource",
    "WatchSourceError",
]
