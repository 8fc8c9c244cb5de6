"""
Storage collaborator contract and an in-memory mock.

In production, this would be a key-value store with secondary indexes
(ScyllaDB Alternator, DynamoDB, or similar) reached through an async client.
The engine only needs primary-key reads, conditional writes, and an
index lookup by creator or fan id.
"""

import asyncio
import copy
import json
import logging
from typing import Any, Optional, Protocol

from src.errors import ConditionFailedError, StorageError

logger = logging.getLogger(__name__)

BOOKINGS = "bookings"
BOOKING_SETTINGS = "booking_settings"
BOOKING_VERSIONS = "booking_versions"


class StorageBackend(Protocol):
    """Async key-value store with conditional writes and index queries.

    ``expected`` maps attribute names to the value the stored item must
    currently hold (``None`` meaning absent); a mismatch raises
    ``ConditionFailedError`` and nothing is written.
    """

    async def get_item(self, collection: str, key: str) -> Optional[dict[str, Any]]: ...

    async def put_item(
        self,
        collection: str,
        key: str,
        item: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> None: ...

    async def update_item(
        self,
        collection: str,
        key: str,
        changes: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]: ...

    async def query(self, collection: str, index: str, value: str) -> list[dict[str, Any]]: ...


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


class InMemoryStore:
    """Dict-backed store used by tests and the demo entry point."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise StorageError("Storage backend is unavailable")

    def _table(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _check_expected(current: Optional[dict[str, Any]], expected: Optional[dict[str, Any]]) -> None:
        if not expected:
            return
        stored = current or {}
        for field_name, value in expected.items():
            if _canonical(stored.get(field_name)) != _canonical(value):
                raise ConditionFailedError(field_name)

    async def get_item(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        self._check_available()
        item = self._table(collection).get(str(key))
        return copy.deepcopy(item) if item is not None else None

    async def put_item(
        self,
        collection: str,
        key: str,
        item: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> None:
        self._check_available()
        async with self._lock:
            table = self._table(collection)
            self._check_expected(table.get(str(key)), expected)
            table[str(key)] = copy.deepcopy(item)
        logger.debug("PUT %s/%s", collection, key)

    async def update_item(
        self,
        collection: str,
        key: str,
        changes: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        self._check_available()
        async with self._lock:
            table = self._table(collection)
            current = table.get(str(key))
            self._check_expected(current, expected)
            updated = {**(current or {}), **copy.deepcopy(changes)}
            table[str(key)] = updated
        logger.debug("UPDATE %s/%s fields=%s", collection, key, sorted(changes))
        return copy.deepcopy(updated)

    async def query(self, collection: str, index: str, value: str) -> list[dict[str, Any]]:
        self._check_available()
        rows = [
            copy.deepcopy(item)
            for item in self._table(collection).values()
            if str(item.get(index)) == str(value)
        ]
        return sorted(rows, key=lambda row: str(row.get("start_time", "")))

    def seed(self, collection: str, key: str, item: dict[str, Any]) -> None:
        """Insert an item synchronously, bypassing conditions. For fixtures and demos."""
        self._table(collection)[str(key)] = copy.deepcopy(item)

    def snapshot(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Synchronous read of a stored item, for assertions."""
        item = self._table(collection).get(str(key))
        return copy.deepcopy(item) if item is not None else None

    def reset(self) -> None:
        """Clear all collections. Used by test fixtures for isolation."""
        self._collections.clear()
        self.available = True
