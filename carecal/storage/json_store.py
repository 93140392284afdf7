"""File-backed document gateway.

Layout: ``<data_dir>/<owner_id>/<collection>.json``, one JSON object per
collection mapping document ID to document body.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles

from carecal.calendar.errors import DataUnavailable, WriteFailed
from carecal.config import get_settings
from carecal.storage.gateway import Collection, DocumentGateway


class JsonFileGateway(DocumentGateway):
    """Persist each owner's collections as JSON files with atomic replaces."""

    def __init__(self, data_dir: Path | None = None) -> None:
        super().__init__()
        self.data_dir = Path(data_dir or get_settings().data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _collection_file(self, owner_id: str, collection: Collection) -> Path:
        return self.data_dir / owner_id / f"{collection.value}.json"

    async def load(self) -> None:
        """Read every stored collection into memory.

        Unreadable files are recorded as stream errors so subscribers of that
        collection receive ``DataUnavailable`` instead of an empty snapshot.
        """
        for owner_dir in sorted(p for p in self.data_dir.iterdir() if p.is_dir()):
            for collection in Collection:
                await self._load_collection(owner_dir.name, collection)

        self.logger.info(
            "Document store loaded",
            data_dir=str(self.data_dir),
            collections=len(self._documents),
        )

    async def _load_collection(self, owner_id: str, collection: Collection) -> None:
        path = self._collection_file(owner_id, collection)
        if not path.exists():
            return

        key = (owner_id, collection)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content)
            if not isinstance(data, dict):
                raise ValueError("collection file must contain a JSON object")
        except (OSError, ValueError) as e:
            self.logger.error(
                "Failed to load collection",
                owner_id=owner_id,
                collection=collection.value,
                path=str(path),
                error=str(e),
            )
            self._stream_errors[key] = DataUnavailable(
                f"Could not read {collection.value} for {owner_id}: {e}",
                operation="load",
                stream=collection.value,
            )
            return

        self._stream_errors.pop(key, None)
        self._documents[key] = data

    async def _persist(
        self,
        owner_id: str,
        collection: Collection,
        documents: dict[str, dict[str, Any]],
    ) -> None:
        """Write the collection JSON using an atomic file replace."""
        load_error = self._stream_errors.get((owner_id, collection))
        if load_error is not None and load_error.operation == "load":
            # Never overwrite a file that could not be read
            raise WriteFailed(
                f"{collection.value} for {owner_id} is unreadable; refusing to overwrite",
                operation="persist",
                retryable=False,
            )

        target = self._collection_file(owner_id, collection)
        serialized = json.dumps(documents, indent=2, ensure_ascii=False)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=target.parent, prefix=f"{collection.value}_", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                    tmp_file.write(serialized)
                    tmp_file.flush()
                    os.fsync(tmp_file.fileno())
                os.replace(temp_path, target)
            finally:
                if os.path.exists(temp_path):
                    try:
                        os.remove(temp_path)
                    except FileNotFoundError:
                        pass

        await asyncio.to_thread(_write)
