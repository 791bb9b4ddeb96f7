"""SQLite-backed snippet store.

Snippets are written once and then only read back by their short id.
"""

import asyncio
import logging
import os
import secrets
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import SnippetNotFound

logger = logging.getLogger(__name__)

ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
ID_SIZE = 7
MAX_ID_ATTEMPTS = 5


def generate_short_id(size: int = ID_SIZE) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(size))


class Snippet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    language: str
    unique_id: str = Field(alias="uniqueId")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


SCHEMA = """
CREATE TABLE IF NOT EXISTS snippets (
    unique_id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    language TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SnippetStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        if self._conn is not None:
            return
        parent = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(parent, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute(SCHEMA)
        logger.info(f"Snippet store opened at {self.db_path}")

    def close(self) -> None:
        if self._conn is None:
            return
        with self._lock:
            self._conn.close()
            self._conn = None
        logger.info("Snippet store closed")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Snippet store is not open")
        return self._conn

    def _insert(self, content: str, language: str) -> Snippet:
        now = datetime.now(timezone.utc)
        conn = self._connection()
        for _ in range(MAX_ID_ATTEMPTS):
            unique_id = generate_short_id()
            try:
                with self._lock, conn:
                    conn.execute(
                        "INSERT INTO snippets (unique_id, content, language, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (unique_id, content, language, now.isoformat(), now.isoformat()),
                    )
            except sqlite3.IntegrityError:
                logger.debug(f"Short id collision on {unique_id}, retrying")
                continue
            return Snippet(
                content=content,
                language=language,
                unique_id=unique_id,
                created_at=now,
                updated_at=now,
            )
        raise RuntimeError("Could not allocate a unique snippet id")

    def _select(self, unique_id: str) -> Snippet:
        conn = self._connection()
        with self._lock:
            row = conn.execute(
                "SELECT unique_id, content, language, created_at, updated_at FROM snippets WHERE unique_id = ?",
                (unique_id,),
            ).fetchone()
        if row is None:
            raise SnippetNotFound(unique_id)
        return Snippet(
            content=row["content"],
            language=row["language"],
            unique_id=row["unique_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def create(self, content: str, language: Optional[str] = None) -> Snippet:
        snippet = await asyncio.to_thread(self._insert, content, language or "plaintext")
        logger.info(f"Created snippet {snippet.unique_id} ({snippet.language})")
        return snippet

    async def get(self, unique_id: str) -> Snippet:
        return await asyncio.to_thread(self._select, unique_id)
