# ruff: noqa: S608 - CQL identifiers come from the table registry, not user input
"""Cassandra-backed record store.

Uses the session's ``aexecute()`` (cassandra-asyncio-driver) so no call
blocks the event loop. Uniqueness is enforced with lightweight transactions:
inserts run ``IF NOT EXISTS`` and deletes ``IF EXISTS``, and an unapplied
result is reported as the matching ``StoreErrorKind``.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from cassandra import DriverException, OperationTimedOut, RequestExecutionException
from cassandra import Unavailable
from cassandra.cluster import NoHostAvailable

from coursestream.core.logging import get_logger

from .base import Record
from .errors import StoreError, StoreErrorKind
from .tables import TABLES, TableSpec


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from cassandra.query import PreparedStatement


logger = get_logger(__name__)


class CassandraRecordStore:
    """``RecordStore`` over a Cassandra keyspace.

    Statements are prepared lazily and cached per CQL text, since the column
    set of an insert or update depends on the record shape.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        tables: Mapping[str, TableSpec] | None = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self._tables = dict(tables or TABLES)
        self._statements: dict[str, PreparedStatement] = {}

    def _spec(self, table: str) -> TableSpec:
        spec = self._tables.get(table)
        if spec is None:
            raise StoreError(StoreErrorKind.FAILURE, f"Unknown table: {table}", table)
        return spec

    def _prepare(self, cql: str) -> "PreparedStatement":
        statement = self._statements.get(cql)
        if statement is None:
            statement = self.session.prepare(cql)
            self._statements[cql] = statement
        return statement

    async def _execute(self, table: str, cql: str, params: Sequence[Any]):
        try:
            return await self.session.aexecute(self._prepare(cql), list(params))
        except (Unavailable, OperationTimedOut, NoHostAvailable) as e:
            logger.warning("cassandra_unavailable", table=table, error=str(e))
            raise StoreError(StoreErrorKind.UNAVAILABLE, str(e), table) from e
        except (DriverException, RequestExecutionException) as e:
            logger.error("cassandra_query_failed", table=table, error=str(e))
            raise StoreError(StoreErrorKind.FAILURE, str(e), table) from e

    @staticmethod
    def _where(columns: Sequence[str]) -> str:
        return " AND ".join(f"{column} = ?" for column in columns)

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        self._spec(table)
        columns = list(record)
        cql = (
            f"INSERT INTO {self.keyspace}.{table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) IF NOT EXISTS"
        )
        result = await self._execute(table, cql, [record[c] for c in columns])
        if not result.was_applied:
            raise StoreError(
                StoreErrorKind.UNIQUE_VIOLATION,
                f"Duplicate key in {table}",
                table,
            )
        return dict(record)

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> None:
        spec = self._spec(table)
        columns = [c for c in patch if c not in spec.primary_key]
        if not columns:
            return
        cql = (
            f"UPDATE {self.keyspace}.{table} "
            f"SET {', '.join(f'{c} = ?' for c in columns)} "
            f"WHERE {self._where(spec.primary_key)}"
        )
        params = [patch[c] for c in columns] + [key[c] for c in spec.primary_key]
        await self._execute(table, cql, params)

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        spec = self._spec(table)
        filters = dict(filters or {})
        cql = f"SELECT * FROM {self.keyspace}.{table}"
        if filters:
            cql += f" WHERE {self._where(list(filters))}"
            # Anything other than a full partition key plus key columns needs a scan
            if not (
                set(spec.partition_key) <= set(filters)
                and set(filters) <= set(spec.primary_key)
            ):
                cql += " ALLOW FILTERING"
        rows = await self._execute(table, cql, list(filters.values()))
        return [dict(row._asdict()) for row in rows]

    async def delete(self, table: str, key: Mapping[str, Any]) -> None:
        spec = self._spec(table)
        cql = (
            f"DELETE FROM {self.keyspace}.{table} "
            f"WHERE {self._where(spec.primary_key)} IF EXISTS"
        )
        result = await self._execute(table, cql, [key[c] for c in spec.primary_key])
        if not result.was_applied:
            raise StoreError(StoreErrorKind.NOT_FOUND, f"No such row in {table}", table)
