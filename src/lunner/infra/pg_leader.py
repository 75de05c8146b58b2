"""Claim store implementation on PostgreSQL via SQLAlchemy asyncio."""

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.ext.asyncio import AsyncConnection as SAConnection
from sqlalchemy.ext.asyncio import AsyncEngine

from lunner.core.interfaces.leader import ClaimRow, ClaimStore, ClaimTransaction

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

CREATE_TABLE = "CREATE TABLE IF NOT EXISTS {table} ( leader VARCHAR, since TIMESTAMPTZ, heartbeat TIMESTAMPTZ )"
# Tables created before heartbeats existed only have (leader, since)
ADD_HEARTBEAT = "ALTER TABLE {table} ADD COLUMN IF NOT EXISTS heartbeat TIMESTAMPTZ"
SELECT_LEADER = (
    "SELECT leader, since, COALESCE(heartbeat, since) AS heartbeat, NOW() AS now "
    "FROM {table} LIMIT 1"
)
UPDATE_LEADER = "UPDATE {table} SET leader = :node_id, heartbeat = NOW() WHERE leader = :node_id"
DELETE_LEADER = "DELETE FROM {table}"
INSERT_LEADER = "INSERT INTO {table} (leader, since, heartbeat) VALUES (:node_id, NOW(), NOW())"


class _Statements:
    """Claim queries bound to one table name."""

    def __init__(self, table: str) -> None:
        if not _IDENTIFIER_RE.match(table):
            raise ValueError(f"Invalid claim table name: {table!r}")
        self.create_table = text(CREATE_TABLE.format(table=table))
        self.add_heartbeat = text(ADD_HEARTBEAT.format(table=table))
        self.select = text(SELECT_LEADER.format(table=table))
        self.update = text(UPDATE_LEADER.format(table=table))
        self.delete = text(DELETE_LEADER.format(table=table))
        self.insert = text(INSERT_LEADER.format(table=table))


def _to_claim(row: Any) -> ClaimRow | None:
    if row is None:
        return None
    leader, since, heartbeat, now = row[0], row[1], row[2], row[3]
    # A NULL leader never equals a node identity
    return ClaimRow(leader=leader or "", since=since, heartbeat=heartbeat, now=now)


async def _select_claim(conn: SAConnection, select: TextClause) -> ClaimRow | None:
    result = await conn.execute(select)
    return _to_claim(result.fetchone())


class SQLAlchemyClaimTransaction(ClaimTransaction):
    """Claim operations on a connection with an open transaction."""

    def __init__(self, conn: SAConnection, statements: _Statements) -> None:
        self._conn = conn
        self._sql = statements

    async def read_claim(self) -> ClaimRow | None:
        return await _select_claim(self._conn, self._sql.select)

    async def insert_claim(self, node_id: str) -> None:
        await self._conn.execute(self._sql.insert, {"node_id": node_id})

    async def renew_claim(self, node_id: str) -> None:
        await self._conn.execute(self._sql.update, {"node_id": node_id})

    async def delete_claim(self) -> None:
        await self._conn.execute(self._sql.delete)


class SQLAlchemyClaimStore(ClaimStore):
    """Claim store using a SQLAlchemy AsyncEngine.

    The engine must be created with isolation_level="SERIALIZABLE"
    (see lunner.infra.postgresql.create_election_engine).
    """

    def __init__(self, engine: AsyncEngine, table: str = "lunner") -> None:
        """Initialize the claim store.

        Args:
            engine: SQLAlchemy AsyncEngine dedicated to the election engine.
            table: Claim table name (plain SQL identifier).
        """
        self._engine = engine
        self._table = table
        self._sql = _Statements(table)

    @property
    def table(self) -> str:
        return self._table

    async def ensure_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(self._sql.create_table)
            await conn.execute(self._sql.add_heartbeat)
        logger.debug("Created claim table (table=%s)", self._table)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ClaimTransaction]:
        async with self._engine.connect() as conn:
            async with conn.begin():
                yield SQLAlchemyClaimTransaction(conn, self._sql)

    async def read_claim(self) -> ClaimRow | None:
        async with self._engine.connect() as conn:
            async with conn.begin():
                return await _select_claim(conn, self._sql.select)

    async def close(self) -> None:
        await self._engine.dispose()
