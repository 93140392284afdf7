"""In-process document gateway."""

from collections.abc import Mapping
from typing import Any

from carecal.storage.gateway import Collection, DocumentGateway


class InMemoryGateway(DocumentGateway):
    """Keeps every owner's documents in memory for the life of the process."""

    def seed(
        self,
        owner_id: str,
        collection: Collection,
        documents: Mapping[str, Mapping[str, Any]],
    ) -> None:
        """Load raw documents as if they had been written by another client."""
        key = (owner_id, collection)
        current = self._documents.setdefault(key, {})
        for doc_id, document in documents.items():
            current[doc_id] = dict(document)
        self._publish(owner_id, collection)

    def documents(self, owner_id: str, collection: Collection) -> dict[str, dict[str, Any]]:
        """Copy of the raw stored documents, keyed by ID."""
        stored = self._documents.get((owner_id, collection), {})
        return {doc_id: dict(document) for doc_id, document in stored.items()}
