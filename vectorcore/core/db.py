"""
Durable named key-value collections on SQLite.
One database file per store name, one table per collection; records are
JSON documents under an auto-increment key.
"""

import json
import re
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Union

import aiosqlite

from .config import VECTOR_COLLECTION_NAME, VECTOR_STORE_NAME, ensure_data_directory, get_data_dir
from .errors import ConfigurationError, PersistenceError
from ..util.logging import logger

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


def _check_name(kind: str, name: str) -> str:
    if not name or not _NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"Invalid {kind} name '{name}': use letters, digits, '_' or '-'"
        )
    return name


class SqliteCollectionStore:
    """Transactional collection addressed by (store_name, collection_name)."""

    def __init__(self, store_name: str = VECTOR_STORE_NAME,
                 collection_name: str = VECTOR_COLLECTION_NAME,
                 data_dir: Union[str, Path, None] = None):
        self.store_name = _check_name("store", store_name)
        self.collection_name = _check_name("collection", collection_name)
        self.data_dir = Path(data_dir) if data_dir is not None else get_data_dir()

    @property
    def db_path(self) -> Path:
        return self.data_dir / f"{self.store_name}.db"

    @property
    def _table(self) -> str:
        return f'"{self.collection_name}"'

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open the store, creating the collection if it is missing."""
        try:
            ensure_data_directory(self.data_dir)
            db = await aiosqlite.connect(self.db_path)
        except (OSError, sqlite3.Error) as e:
            logger.log_persistence_operation("open", self.store_name, self.collection_name,
                                             status="error", details={"error": str(e)})
            raise PersistenceError(f"Database initialization failed for '{self.store_name}': {e}") from e

        try:
            await db.execute(f'''
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    value TEXT NOT NULL
                )
            ''')
            await db.commit()
        except sqlite3.Error as e:
            await db.close()
            raise PersistenceError(f"Error creating collection '{self.collection_name}': {e}") from e

        try:
            yield db
        finally:
            await db.close()

    async def open(self) -> None:
        """Create the store and collection if they do not exist yet."""
        async with self._connect():
            pass
        logger.log_persistence_operation("open", self.store_name, self.collection_name)

    async def add(self, objs: Union[Dict[str, Any], List[Dict[str, Any]]]) -> int:
        """Insert one object or a list of objects in a single transaction.

        Either every record is written or none is. Returns the number of
        records written.
        """
        if not isinstance(objs, list):
            objs = [objs]

        try:
            rows = [(json.dumps(obj, allow_nan=False),) for obj in objs]
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to add object: {e}") from e

        async with self._connect() as db:
            try:
                await db.executemany(f"INSERT INTO {self._table} (value) VALUES (?)", rows)
                await db.commit()
            except sqlite3.Error as e:
                await db.rollback()
                logger.log_persistence_operation("add", self.store_name, self.collection_name,
                                                 status="error", details={"error": str(e)})
                raise PersistenceError(f"Failed to add object: {e}") from e

        logger.log_persistence_operation("add", self.store_name, self.collection_name,
                                         details={"records": len(rows)})
        return len(rows)

    async def iterate(self) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield stored records one at a time in insertion order.

        The connection stays open while the generator is suspended and is
        closed once it is exhausted or closed early.
        """
        async with self._connect() as db:
            async with db.execute(f"SELECT value FROM {self._table} ORDER BY id") as cursor:
                async for row in cursor:
                    yield json.loads(row[0])

    @asynccontextmanager
    async def stream(self) -> AsyncIterator[AsyncGenerator[Dict[str, Any], None]]:
        """Scoped iteration; the cursor is released even on early exit."""
        records = self.iterate()
        try:
            yield records
        finally:
            await records.aclose()

    async def load_all(self) -> List[Dict[str, Any]]:
        """Materialize the whole collection."""
        async with self.stream() as records:
            return [record async for record in records]

    async def count(self) -> int:
        async with self._connect() as db:
            async with db.execute(f"SELECT COUNT(*) FROM {self._table}") as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def delete_collection(self) -> None:
        """Drop the collection and every record in it."""
        async with self._connect() as db:
            try:
                await db.execute(f"DROP TABLE IF EXISTS {self._table}")
                await db.commit()
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to delete collection '{self.collection_name}': {e}") from e
        logger.log_persistence_operation("delete_collection", self.store_name, self.collection_name)

    async def delete_store(self) -> None:
        """Remove the whole store file."""
        try:
            self.db_path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to delete database '{self.store_name}': {e}") from e
        logger.log_persistence_operation("delete_store", self.store_name, self.collection_name)
