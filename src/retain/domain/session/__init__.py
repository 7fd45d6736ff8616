# Domain Session Package
from .models import (
    ReviewLogEntry,
    SessionKey,
    SessionQueue,
    SessionSnapshot,
    SessionState,
    SessionWarning,
    TransitionResult,
)
from .ports import SnapshotStore

__all__ = [
    "ReviewLogEntry",
    "SessionKey",
    "SessionQueue",
    "SessionSnapshot",
    "SessionState",
    "SessionWarning",
    "SnapshotStore",
    "TransitionResult",
]
