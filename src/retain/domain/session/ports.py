"""
Ports (interfaces) for session persistence.

These define the contract that infrastructure adapters must implement.
The session layer depends on this abstraction, not on a storage technology.
"""

from abc import ABC, abstractmethod

from .models import SessionKey, SessionSnapshot


class SnapshotStore(ABC):
    """
    Port for persisting session snapshots, one per (deck, mode) key.

    Implementations:
        - JsonSnapshotStore: one JSON file per key in a directory.
        - InMemorySnapshotStore: serialized snapshots held in a dict.
    """

    @abstractmethod
    async def save(self, key: SessionKey, snapshot: SessionSnapshot) -> None:
        """Overwrite the snapshot stored under `key`."""
        pass

    @abstractmethod
    async def load(self, key: SessionKey) -> SessionSnapshot | None:
        """
        Fetch the snapshot stored under `key`.

        Returns:
            The snapshot, or None if nothing is stored.
        """
        pass

    @abstractmethod
    async def delete(self, key: SessionKey) -> None:
        """Remove the snapshot for `key`; a missing snapshot is not an error."""
        pass
