"""Record store interface consumed by the playback/progress engine."""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


Record = dict[str, Any]


@runtime_checkable
class RecordStore(Protocol):
    """Async table-oriented persistence.

    Every method raises ``StoreError`` on failure; the ``kind`` attribute
    tells a uniqueness violation apart from a generic or transient failure.
    """

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        """Insert a new row. Fails with ``UNIQUE_VIOLATION`` if the key exists."""
        ...

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> None:
        """Apply ``patch`` to the row at ``key``, creating the row if absent."""
        ...

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        """Return rows whose columns equal every value in ``filters``."""
        ...

    async def delete(self, table: str, key: Mapping[str, Any]) -> None:
        """Delete the row at ``key``. Fails with ``NOT_FOUND`` if absent."""
        ...
