# Infrastructure Snapshot Store Adapters Package
from .json_store import JsonSnapshotStore
from .memory_store import InMemorySnapshotStore

__all__ = ["JsonSnapshotStore", "InMemorySnapshotStore"]
