"""
DuckDB document store for Folio.

This module keeps workspace pages and user profiles in a DuckDB file, one JSON
document per row, so a single machine can act as the remote store.

DuckDB calls block, so every async method hands its queries to a worker thread
and the event loop keeps running while they execute. One lock serializes use
of the shared connection, which also makes the read-merge-write of metadata
and profile saves atomic.
"""

import asyncio
import duckdb
import json
import logging
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from ..errors import PersistenceError
from ..models import Page, UserProfile
from .base import BasePersistence


class DuckDBPersistence(BasePersistence):
    """
    Stores pages and profiles in a DuckDB database.
    """

    def __init__(self, db_path: str = "folio.db"):
        """
        Initialize the DuckDB store.

        Args:
            db_path: Path to the DuckDB database file (":memory:" for a scratch store)
        """
        self.db_path = db_path
        self.connection = None
        self._lock = RLock()

    def connect(self):
        """Establish connection to the database and make sure the tables exist."""
        with self._lock:
            self.connection = duckdb.connect(self.db_path)
            self.initialize_database()

    def disconnect(self):
        """Close the database connection."""
        with self._lock:
            if self.connection:
                self.connection.close()
                self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    async def close(self) -> None:
        await asyncio.to_thread(self.disconnect)

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        # Sequence keeps fetches in creation order across upserts
        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS page_seq;")
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS pages (
                seq BIGINT DEFAULT nextval('page_seq'),
                scope VARCHAR NOT NULL,
                page_id VARCHAR NOT NULL,
                document TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (scope, page_id)
            )
        """)

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                scope VARCHAR PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def _require_connection(self):
        if not self.connection:
            self.connect()
        return self.connection

    def _execute(self, query: str, params: Optional[List[Any]] = None):
        connection = self._require_connection()
        try:
            return connection.execute(query, params or [])
        except duckdb.Error as e:
            raise PersistenceError(f"DuckDB query failed: {e}") from e

    def _locked(self, work: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            return work(*args)

    async def _run(self, work: Callable[..., Any], *args: Any) -> Any:
        """Run blocking database work on a worker thread while holding the connection lock."""
        return await asyncio.to_thread(self._locked, work, *args)

    # Blocking work, always called through _run

    def _read_document(self, scope: str, page_id: str) -> Optional[Dict[str, Any]]:
        row = self._execute("""
            SELECT document FROM pages WHERE scope = ? AND page_id = ?
        """, [scope, page_id]).fetchone()
        return json.loads(row[0]) if row else None

    def _write_document(self, scope: str, page_id: str, document: Dict[str, Any]) -> None:
        self._execute("""
            INSERT INTO pages (scope, page_id, document, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (scope, page_id) DO UPDATE
            SET document = excluded.document, updated_at = excluded.updated_at
        """, [scope, page_id, json.dumps(document, ensure_ascii=False), datetime.now()])

    def _read_pages(self, scope: str) -> List[str]:
        rows = self._execute("""
            SELECT document FROM pages WHERE scope = ? ORDER BY seq
        """, [scope]).fetchall()
        return [document for (document,) in rows]

    def _merge_metadata(self, scope: str, page_id: str, updates: Dict[str, Any]) -> None:
        document = self._read_document(scope, page_id) or {"id": page_id}
        document.update(updates)
        self._write_document(scope, page_id, document)

    def _delete_document(self, scope: str, page_id: str) -> None:
        self._execute("""
            DELETE FROM pages WHERE scope = ? AND page_id = ?
        """, [scope, page_id])

    def _read_profile(self, scope: str) -> Optional[Dict[str, Any]]:
        row = self._execute("""
            SELECT document FROM profiles WHERE scope = ?
        """, [scope]).fetchone()
        return json.loads(row[0]) if row else None

    def _merge_profile(self, scope: str, updates: Dict[str, Any]) -> None:
        document = self._read_profile(scope) or {}
        document.update(updates)
        self._execute("""
            INSERT OR REPLACE INTO profiles (scope, document, updated_at)
            VALUES (?, ?, ?)
        """, [scope, json.dumps(document, ensure_ascii=False), datetime.now()])

    # BasePersistence

    async def fetch_pages(self, scope: str) -> List[Page]:
        documents = await self._run(self._read_pages, scope)

        pages = []
        for document in documents:
            try:
                pages.append(Page.from_wire(json.loads(document)))
            except ValueError as e:
                logging.warning(f"Skipping unreadable page document in {scope}: {e}")
        return pages

    async def save_page(self, scope: str, page: Page) -> None:
        await self._run(self._write_document, scope, page.id, page.to_wire())
        logging.debug(f"Saved page {page.id} to {self.db_path}")

    async def save_page_metadata(self, scope: str, page_id: str, updates: Dict[str, Any]) -> None:
        await self._run(self._merge_metadata, scope, page_id, dict(updates))

    async def delete_page(self, scope: str, page_id: str) -> None:
        await self._run(self._delete_document, scope, page_id)

    async def fetch_profile(self, scope: str) -> Optional[UserProfile]:
        document = await self._run(self._read_profile, scope)
        return UserProfile.model_validate(document) if document else None

    async def save_profile(self, scope: str, profile: UserProfile) -> None:
        await self._run(self._merge_profile, scope, profile.to_wire())
