"""
Ghost Pool Request Journal

Records every submitted request so its outcome can be polled again later,
from this process or a new one. Two backends:

    MemoryJournal  - process lifetime only
    SqliteJournal  - aiosqlite file, survives restarts
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import aiosqlite

from ghostpool.core.types import RequestKind
from ghostpool.errors import Stage, UnknownRequestError
from ghostpool.orchestrator.state import RequestRecord, RequestState

logger = logging.getLogger(__name__)


class RequestJournal(ABC):
    """Storage of RequestRecords keyed by request id."""

    @abstractmethod
    async def save(self, record: RequestRecord) -> None:
        """Insert or replace a record."""

    @abstractmethod
    async def find(self, request_id: int) -> Optional[RequestRecord]:
        ...

    @abstractmethod
    async def recent(self, limit: int = 50) -> List[RequestRecord]:
        """Most recently updated first."""

    async def get(self, request_id: int) -> RequestRecord:
        """
        Raises:
            UnknownRequestError: If nothing was recorded under the id
        """
        record = await self.find(request_id)
        if record is None:
            raise UnknownRequestError(request_id)
        return record

    async def contains(self, request_id: int) -> bool:
        return await self.find(request_id) is not None

    async def close(self) -> None:
        pass


class MemoryJournal(RequestJournal):

    def __init__(self):
        self._records: Dict[int, RequestRecord] = {}

    async def save(self, record: RequestRecord) -> None:
        self._records[record.request_id] = record

    async def find(self, request_id: int) -> Optional[RequestRecord]:
        return self._records.get(request_id)

    async def recent(self, limit: int = 50) -> List[RequestRecord]:
        records = sorted(self._records.values(), key=lambda r: r.updated_at, reverse=True)
        return records[:limit]


# ==============================================================================
# SQLITE
# ==============================================================================

_SCHEMA = """
CREATE TABLE IF NOT EXISTS requests (
    request_id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    pool TEXT NOT NULL,
    computation TEXT NOT NULL,
    amount TEXT NOT NULL,
    baseline_deposits INTEGER NOT NULL,
    baseline_withdrawals INTEGER NOT NULL,
    baseline_state_nonce TEXT NOT NULL,
    state TEXT NOT NULL,
    signature TEXT,
    last_valid_height INTEGER,
    failed_stage TEXT,
    error TEXT,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
)
"""

_COLUMNS = (
    "request_id, kind, pool, computation, amount, baseline_deposits, "
    "baseline_withdrawals, baseline_state_nonce, state, signature, last_valid_height, "
    "failed_stage, error, created_at, updated_at"
)


def _to_row(record: RequestRecord) -> tuple:
    # u64 ids and amounts, u128 nonces exceed sqlite INTEGER; stored as text
    return (
        str(record.request_id),
        record.kind.value,
        record.pool,
        record.computation,
        str(record.amount),
        record.baseline_deposits,
        record.baseline_withdrawals,
        str(record.baseline_state_nonce),
        record.state.value,
        record.signature,
        record.last_valid_height,
        record.failed_stage.value if record.failed_stage else None,
        record.error,
        record.created_at,
        record.updated_at,
    )


def _from_row(row) -> RequestRecord:
    return RequestRecord(
        request_id=int(row[0]),
        kind=RequestKind(row[1]),
        pool=row[2],
        computation=row[3],
        amount=int(row[4]),
        baseline_deposits=row[5],
        baseline_withdrawals=row[6],
        baseline_state_nonce=int(row[7]),
        state=RequestState(row[8]),
        signature=row[9],
        last_valid_height=row[10],
        failed_stage=Stage(row[11]) if row[11] else None,
        error=row[12],
        created_at=row[13],
        updated_at=row[14],
    )


class SqliteJournal(RequestJournal):
    """Journal in a sqlite file. Each call opens its own connection."""

    def __init__(self, path: str):
        self.path = path
        self._ready = False

    async def _ensure_schema(self, db: aiosqlite.Connection) -> None:
        if not self._ready:
            await db.execute(_SCHEMA)
            await db.commit()
            self._ready = True
            logger.info(f"Request journal at {self.path}")

    async def save(self, record: RequestRecord) -> None:
        async with aiosqlite.connect(self.path) as db:
            await self._ensure_schema(db)
            await db.execute(
                f"INSERT OR REPLACE INTO requests ({_COLUMNS}) "
                f"VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                _to_row(record),
            )
            await db.commit()

    async def find(self, request_id: int) -> Optional[RequestRecord]:
        async with aiosqlite.connect(self.path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM requests WHERE request_id = ?",
                (str(request_id),),
            )
            row = await cursor.fetchone()
        return _from_row(row) if row else None

    async def recent(self, limit: int = 50) -> List[RequestRecord]:
        async with aiosqlite.connect(self.path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM requests ORDER BY updated_at DESC LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()
        return [_from_row(row) for row in rows]


def open_journal(path: Optional[str]) -> RequestJournal:
    """SqliteJournal for a path, MemoryJournal otherwise."""
    return SqliteJournal(path) if path else MemoryJournal()
