"""
JSON Snapshot Store: infrastructure adapter for a directory of snapshot files.

Implements SnapshotStore with one `<storage_name>.json` file per session key.
Writes go to a temporary file first and are renamed into place, so a crash
mid-write leaves the previous snapshot intact.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from retain.domain.session.models import SessionKey, SessionSnapshot
from retain.domain.session.ports import SnapshotStore

logger = logging.getLogger(__name__)


class JsonSnapshotStore(SnapshotStore):
    def __init__(self, directory: Path):
        self.directory = directory

    def path_for(self, key: SessionKey) -> Path:
        return self.directory / f"{key.storage_name}.json"

    async def save(self, key: SessionKey, snapshot: SessionSnapshot) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), snapshot.model_dump_json(indent=2))

    async def load(self, key: SessionKey) -> SessionSnapshot | None:
        path = self.path_for(key)
        text = await asyncio.to_thread(self._read, path)
        if text is None:
            return None
        return SessionSnapshot.model_validate_json(text)

    async def delete(self, key: SessionKey) -> None:
        await asyncio.to_thread(self.path_for(key).unlink, missing_ok=True)

    def list_keys(self) -> list[str]:
        """Storage names of every stored snapshot."""
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def _write(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote snapshot {path}")

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
