"""
In-memory Snapshot Store.

Keeps snapshots serialized as JSON so that anything stored here has made the
same round trip it would make through a file.
"""

from retain.domain.session.models import SessionKey, SessionSnapshot
from retain.domain.session.ports import SnapshotStore


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self.data: dict[SessionKey, str] = {}
        self.history: list[tuple[str, SessionKey]] = []  # (operation, key)

    async def save(self, key: SessionKey, snapshot: SessionSnapshot) -> None:
        self.history.append(("save", key))
        self.data[key] = snapshot.model_dump_json()

    async def load(self, key: SessionKey) -> SessionSnapshot | None:
        raw = self.data.get(key)
        if raw is None:
            return None
        return SessionSnapshot.model_validate_json(raw)

    async def delete(self, key: SessionKey) -> None:
        self.history.append(("delete", key))
        self.data.pop(key, None)
