import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import (
    BigInteger, Column, Float, Integer, LargeBinary, MetaData, Table, Text,
    func, insert, literal_column, select, update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from ..errors import StoreUnavailable
from ..models import TargetItem
from .engine_args import connect_args_for

logger = logging.getLogger(__name__)

metadata = MetaData()

# Subsets of Jellyfin's library.db schema
typed_base_items = Table(
    "TypedBaseItems",
    metadata,
    Column("guid", LargeBinary, primary_key=True),
    Column("type", Text),
    Column("Path", Text),
    Column("Name", Text),
    Column("UserDataKey", Text),
)

user_datas = Table(
    "UserDatas",
    metadata,
    Column("key", Text, nullable=False),
    Column("userId", Integer),
    Column("rating", Float),
    Column("played", Integer, nullable=False),
    Column("playCount", Integer, nullable=False),
    Column("isFavorite", Integer, nullable=False),
    Column("playbackPositionTicks", BigInteger, nullable=False),
    Column("lastPlayedDate", Text),
    Column("AudioStreamIndex", Integer),
    Column("SubtitleStreamIndex", Integer),
)

class JellyfinClient:
    def __init__(self, url: str, connect_timeout: int = 30):
        self.engine = create_async_engine(url, connect_args=connect_args_for(url, connect_timeout))

    async def __aenter__(self) -> "JellyfinClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self.engine.dispose()

    async def find_items_containing(self, path: str) -> List[TargetItem]:
        """
        Returns items whose Path contains `path` as a literal, case-sensitive substring
        (instr, not LIKE), in store row order. Items without a UserDataKey are left out.
        """
        stmt = (
            select(typed_base_items.c.guid, typed_base_items.c.UserDataKey, typed_base_items.c.Path)
            .where(func.instr(typed_base_items.c.Path, path) > 0)
            .where(typed_base_items.c.UserDataKey.is_not(None))
            .order_by(literal_column("rowid"))
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise StoreUnavailable("jellyfin", str(e)) from e

        return [
            TargetItem(identifier=row.guid, user_data_key=row.UserDataKey, path=row.Path)
            for row in rows
        ]

    async def get_user_data(self, key: str) -> Optional[Dict[str, Any]]:
        stmt = (
            select(user_datas.c.key, user_datas.c.playCount, user_datas.c.lastPlayedDate)
            .where(user_datas.c.key == key)
            .limit(1)
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.first()
        except SQLAlchemyError as e:
            raise StoreUnavailable("jellyfin", str(e)) from e
        return dict(row._mapping) if row is not None else None

    async def insert_user_data(self, key: str, values: Dict[str, Any]):
        await self._write(insert(user_datas).values(key=key, **values))

    async def update_user_data(self, key: str, values: Dict[str, Any]):
        await self._write(update(user_datas).where(user_datas.c.key == key).values(**values))

    async def _write(self, stmt):
        # One transaction per write: earlier writes stay committed if a later one fails
        try:
            async with self.engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreUnavailable("jellyfin", str(e)) from e
