"""Unit tests for SQLAlchemyClaimStore with a mocked engine."""

import logging
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from lunner.infra.pg_leader import SQLAlchemyClaimStore, _to_claim

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class _AsyncCM:
    """Async context manager yielding a fixed value."""

    def __init__(self, value: Any) -> None:
        self.value = value
        self.exited_with: type[BaseException] | None = None

    async def __aenter__(self) -> Any:
        return self.value

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.exited_with = exc_type
        return False


@pytest.fixture
def row() -> tuple:
    return ("node-a", T0, T0, T0)


@pytest.fixture
def conn(row: tuple) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=result)
    conn.tx = _AsyncCM(None)
    conn.begin = MagicMock(return_value=conn.tx)
    return conn


@pytest.fixture
def engine(conn: MagicMock) -> MagicMock:
    engine = MagicMock()
    engine.connect = MagicMock(side_effect=lambda: _AsyncCM(conn))
    engine.begin = MagicMock(side_effect=lambda: _AsyncCM(conn))
    engine.dispose = AsyncMock()
    return engine


def _sql(conn: MagicMock, index: int) -> str:
    return str(conn.execute.await_args_list[index].args[0])


class TestStatements:
    """Table name validation."""

    def test_default_table(self, engine: MagicMock) -> None:
        assert SQLAlchemyClaimStore(engine).table == "lunner"

    @pytest.mark.parametrize("table", ["lunner; DROP TABLE x", "1leader", "a-b", ""])
    def test_rejects_unsafe_table_names(self, engine: MagicMock, table: str) -> None:
        with pytest.raises(ValueError, match="Invalid claim table name"):
            SQLAlchemyClaimStore(engine, table)


class TestEnsureSchema:
    """Idempotent table creation."""

    @pytest.mark.asyncio
    async def test_creates_table_and_heartbeat_column(
        self, engine: MagicMock, conn: MagicMock
    ) -> None:
        store = SQLAlchemyClaimStore(engine, "elections")

        await store.ensure_schema()

        engine.begin.assert_called_once()
        assert "CREATE TABLE IF NOT EXISTS elections" in _sql(conn, 0)
        assert "ADD COLUMN IF NOT EXISTS heartbeat" in _sql(conn, 1)

    @pytest.mark.asyncio
    async def test_schema_ready_is_left_to_the_elector(
        self, engine: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="lunner.infra.pg_leader"):
            await SQLAlchemyClaimStore(engine).ensure_schema()

        assert [r for r in caplog.records if r.levelno >= logging.INFO] == []


class TestTransaction:
    """Claim operations run on one connection inside conn.begin()."""

    @pytest.mark.asyncio
    async def test_read_claim_maps_row(self, engine: MagicMock, conn: MagicMock) -> None:
        store = SQLAlchemyClaimStore(engine)

        async with store.transaction() as tx:
            claim = await tx.read_claim()

        assert claim is not None
        assert claim.leader == "node-a"
        assert claim.since == T0
        assert "SELECT leader, since" in _sql(conn, 0)
        assert "NOW() AS now" in _sql(conn, 0)

    @pytest.mark.asyncio
    async def test_insert_binds_node_id(self, engine: MagicMock, conn: MagicMock) -> None:
        store = SQLAlchemyClaimStore(engine)

        async with store.transaction() as tx:
            await tx.insert_claim("node-'b")

        call = conn.execute.await_args_list[0]
        assert "INSERT INTO lunner" in str(call.args[0])
        assert ":node_id" in str(call.args[0])
        assert call.args[1] == {"node_id": "node-'b"}

    @pytest.mark.asyncio
    async def test_renew_updates_heartbeat_only(self, engine: MagicMock, conn: MagicMock) -> None:
        store = SQLAlchemyClaimStore(engine)

        async with store.transaction() as tx:
            await tx.renew_claim("node-a")

        statement = _sql(conn, 0)
        assert statement.startswith("UPDATE lunner SET")
        assert "heartbeat = NOW()" in statement
        assert "since" not in statement
        assert conn.execute.await_args_list[0].args[1] == {"node_id": "node-a"}

    @pytest.mark.asyncio
    async def test_delete_claim(self, engine: MagicMock, conn: MagicMock) -> None:
        store = SQLAlchemyClaimStore(engine)

        async with store.transaction() as tx:
            await tx.delete_claim()

        assert _sql(conn, 0) == "DELETE FROM lunner"

    @pytest.mark.asyncio
    async def test_error_inside_block_propagates_through_begin(
        self, engine: MagicMock, conn: MagicMock
    ) -> None:
        store = SQLAlchemyClaimStore(engine)

        with pytest.raises(RuntimeError):
            async with store.transaction():
                raise RuntimeError("boom")

        # conn.begin() saw the exception, so SQLAlchemy rolls back
        assert conn.tx.exited_with is RuntimeError


class TestReadClaim:
    """Verdict read outside the election transaction."""

    @pytest.mark.asyncio
    async def test_read_claim(self, engine: MagicMock) -> None:
        claim = await SQLAlchemyClaimStore(engine).read_claim()

        assert claim is not None
        assert claim.leader == "node-a"
        engine.connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_read_claim_empty_table(self, engine: MagicMock, conn: MagicMock) -> None:
        conn.execute.return_value.fetchone.return_value = None

        assert await SQLAlchemyClaimStore(engine).read_claim() is None

    @pytest.mark.asyncio
    async def test_close_disposes_engine(self, engine: MagicMock) -> None:
        await SQLAlchemyClaimStore(engine).close()

        engine.dispose.assert_awaited_once()


class TestToClaim:
    """Row mapping."""

    def test_null_leader_becomes_empty_string(self) -> None:
        claim = _to_claim((None, T0, T0, T0))

        assert claim is not None
        assert claim.leader == ""

    def test_none_row(self) -> None:
        assert _to_claim(None) is None
