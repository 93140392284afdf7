"""Persistence gateway implementations."""

from carecal.storage.gateway import (
    Collection,
    DocumentGateway,
    PersistenceGateway,
    Unsubscribe,
)
from carecal.storage.json_store import JsonFileGateway
from carecal.storage.memory import InMemoryGateway

__all__ = [
    "Collection",
    "DocumentGateway",
    "PersistenceGateway",
    "Unsubscribe",
    "InMemoryGateway",
    "JsonFileGateway",
]
