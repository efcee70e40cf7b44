"""Token-budgeted context store and its snapshot storage."""

from .storage import LocalFileStorage, SnapshotStorage
from .store import ContextStore
from .tokens import estimate_tokens

__all__ = [
    "ContextStore",
    "LocalFileStorage",
    "SnapshotStorage",
    "estimate_tokens",
]
