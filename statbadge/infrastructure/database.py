import logging
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.dialects.postgresql import insert, JSONB
from sqlalchemy import Table, Column, String, DateTime, MetaData, select, text

from statbadge.domain.exceptions import StorageException

logger = logging.getLogger(__name__)

# SQLAlchemy core Table definition
metadata = MetaData()
kv_table = Table(
    'badge_kv', metadata,
    Column('key', String, primary_key=True),
    Column('value', JSONB, nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=text('NOW()')),
)

class SqlStorage:
    """
    Key/value storage backed by a PostgreSQL table.
    Values are stored as JSONB and returned exactly as they were written.
    """

    def __init__(self, db_url: str):
        self.engine = create_async_engine(db_url, echo=False)
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        """Creates the key/value table on first use."""
        if self._schema_ready:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageException(f"Cannot create storage schema: {e}") from e
        self._schema_ready = True

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Reads the value stored under `key`.

        Returns:
            Optional[Dict[str, Any]]: The stored value, or None if the key is absent.
        """
        await self._ensure_schema()
        stmt = select(kv_table.c.value).where(kv_table.c.key == key)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.first()
        except SQLAlchemyError as e:
            raise StorageException(f"Cannot read key '{key}': {e}") from e
        return row[0] if row is not None else None

    async def write(self, key: str, value: Dict[str, Any]) -> None:
        """
        Inserts or replaces the value stored under `key` in a single statement.
        """
        await self._ensure_schema()
        stmt = insert(kv_table).values(key=key, value=value)

        # Only touch the row if the incoming value differs from the stored one.
        upsert_stmt = stmt.on_conflict_do_update(
            index_elements=['key'],
            set_={
                'value': stmt.excluded.value,
                'updated_at': text('NOW()'),
            },
            where=kv_table.c.value.is_distinct_from(stmt.excluded.value),
        )

        try:
            async with self.engine.begin() as conn:
                await conn.execute(upsert_stmt)
        except SQLAlchemyError as e:
            raise StorageException(f"Cannot write key '{key}': {e}") from e
        logger.debug(f"Stored '{key}' in table {kv_table.name}")

    async def exists(self, key: str) -> bool:
        await self._ensure_schema()
        stmt = select(kv_table.c.key).where(kv_table.c.key == key)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.first() is not None
        except SQLAlchemyError as e:
            raise StorageException(f"Cannot check key '{key}': {e}") from e
