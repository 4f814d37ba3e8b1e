"""Shared fixtures: a codec with a test secret and an in-memory asyncpg-like pool."""
import re
import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from credential_vault.vault import credential_store as store
from credential_vault.vault.envelope import EnvelopeCodec

TEST_SECRET = "server-secret"

_ASSIGNMENT = re.compile(r"(\w+) = \$(\d+)")


class FakeConnection:
    """Executes the vault's statements against a list of dict rows."""

    def __init__(self, pool: "FakePool"):
        self._pool = pool
        self._held: list[asyncio.Lock] = []

    @asynccontextmanager
    async def transaction(self):
        try:
            yield
        finally:
            while self._held:
                self._held.pop().release()

    async def execute(self, sql, *args):
        if sql == store._LOCK_USER:
            lock = self._pool.user_locks[args[0]]
            await lock.acquire()
            self._held.append(lock)
            return "SELECT 1"
        raise AssertionError(f"unexpected statement: {sql}")

    def _owned(self, credential_id, user_id):
        for row in self._pool.rows:
            if row["id"] == credential_id and row["user_id"] == user_id:
                return row
        return None

    async def fetchval(self, sql, *args):
        if sql == store._COUNT_FOR_USER:
            count = sum(1 for r in self._pool.rows if r["user_id"] == args[0])
            # other tasks run while the result is in flight
            await asyncio.sleep(0)
            return count
        if sql == store._DELETE_CREDENTIAL:
            row = self._owned(*args)
            if row is None:
                return None
            self._pool.rows.remove(row)
            return row["id"]
        raise AssertionError(f"unexpected statement: {sql}")

    async def fetchrow(self, sql, *args):
        if sql == store._INSERT_CREDENTIAL:
            self._pool.next_id += 1
            now = datetime.now(timezone.utc)
            row = dict(zip(
                ("user_id", "site_name", "site_url", "username",
                 "password", "notes", "category"),
                args,
            ))
            row.update(id=self._pool.next_id, created_at=now, updated_at=now)
            self._pool.rows.append(row)
            return dict(row)
        if sql == store._SELECT_ONE:
            row = self._owned(*args)
            return dict(row) if row else None
        if sql.lstrip().startswith("UPDATE vault.credentials"):
            set_clause, where_clause = sql.split("WHERE")
            where = dict(
                (col, args[int(pos) - 1])
                for col, pos in _ASSIGNMENT.findall(where_clause)
            )
            row = self._owned(where["id"], where["user_id"])
            if row is None:
                return None
            for col, pos in _ASSIGNMENT.findall(set_clause):
                row[col] = args[int(pos) - 1]
            row["updated_at"] = datetime.now(timezone.utc)
            return dict(row)
        raise AssertionError(f"unexpected statement: {sql}")

    async def fetch(self, sql, *args):
        rows = [r for r in self._pool.rows if r["user_id"] == args[0]]
        if sql == store._SEARCH:
            term = re.sub(r"\\(.)", r"\1", args[1][1:-1]).lower()
            rows = [
                r for r in rows
                if term in r["site_name"].lower() or term in r["username"].lower()
            ]
        elif sql != store._SELECT_ALL:
            raise AssertionError(f"unexpected statement: {sql}")
        return [dict(r) for r in sorted(rows, key=lambda r: r["site_name"])]


class FakePool:
    """Minimal stand-in for an asyncpg pool."""

    def __init__(self):
        self.rows: list[dict] = []
        self.next_id = 0
        self.user_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)


@pytest.fixture
def secret():
    return TEST_SECRET


@pytest.fixture
def codec(secret):
    return EnvelopeCodec(secret)


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def vault(pool, codec):
    return store.CredentialVault(pool, codec, max_credentials=5)
