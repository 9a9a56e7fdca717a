"""In-process record store used for local runs and tests."""

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

from coursestream.core.logging import get_logger

from .base import Record
from .errors import StoreError, StoreErrorKind
from .tables import TABLES, TableSpec


logger = get_logger(__name__)


class InMemoryRecordStore:
    """Dict-backed implementation of ``RecordStore``.

    Rows are kept per table in insertion order, keyed by primary key tuple.
    Returned records are copies, so callers can't mutate stored state.
    """

    def __init__(self, tables: Mapping[str, TableSpec] | None = None):
        self._tables = dict(tables or TABLES)
        self._rows: dict[str, dict[tuple, Record]] = {
            name: {} for name in self._tables
        }

    def _spec(self, table: str) -> TableSpec:
        spec = self._tables.get(table)
        if spec is None:
            raise StoreError(StoreErrorKind.FAILURE, f"Unknown table: {table}", table)
        return spec

    def _key(self, spec: TableSpec, values: Mapping[str, Any]) -> tuple:
        missing = [c for c in spec.primary_key if values.get(c) is None]
        if missing:
            raise StoreError(
                StoreErrorKind.FAILURE,
                f"Missing key columns: {', '.join(missing)}",
                spec.name,
            )
        return spec.key_of(dict(values))

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        spec = self._spec(table)
        key = self._key(spec, record)
        rows = self._rows[table]
        if key in rows:
            raise StoreError(
                StoreErrorKind.UNIQUE_VIOLATION,
                f"Duplicate key {key} in {table}",
                table,
            )
        rows[key] = deepcopy(dict(record))
        logger.debug("store_insert", table=table, key=str(key))
        return deepcopy(rows[key])

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> None:
        spec = self._spec(table)
        row_key = self._key(spec, key)
        rows = self._rows[table]
        row = rows.setdefault(row_key, {c: key[c] for c in spec.primary_key})
        row.update(
            {c: deepcopy(v) for c, v in patch.items() if c not in spec.primary_key}
        )
        logger.debug("store_update", table=table, key=str(row_key))

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        self._spec(table)
        filters = filters or {}
        return [
            deepcopy(row)
            for row in self._rows[table].values()
            if all(row.get(column) == value for column, value in filters.items())
        ]

    async def delete(self, table: str, key: Mapping[str, Any]) -> None:
        spec = self._spec(table)
        row_key = self._key(spec, key)
        if self._rows[table].pop(row_key, None) is None:
            raise StoreError(
                StoreErrorKind.NOT_FOUND,
                f"No row {row_key} in {table}",
                table,
            )
        logger.debug("store_delete", table=table, key=str(row_key))

    def count(self, table: str) -> int:
        """Number of rows currently stored in ``table``."""
        self._spec(table)
        return len(self._rows[table])
