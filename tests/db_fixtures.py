import os
import tempfile
import unittest
import uuid
from sqlalchemy import insert, select

from kodi_jellyfin_sync.clients.jellyfin_client import JellyfinClient, metadata as jellyfin_metadata, typed_base_items, user_datas
from kodi_jellyfin_sync.models import SourceWatchRecord

async def records_from(*records: SourceWatchRecord):
    for record in records:
        yield record

class JellyfinDbTestCase(unittest.IsolatedAsyncioTestCase):
    """Temporary SQLite library.db with the TypedBaseItems/UserDatas tables."""

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "library.db")
        self.jellyfin = JellyfinClient(f"sqlite+aiosqlite:///{self.db_path}")
        async with self.jellyfin.engine.begin() as conn:
            await conn.run_sync(jellyfin_metadata.create_all)

    async def asyncTearDown(self):
        await self.jellyfin.close()
        self.tmp.cleanup()

    async def add_item(self, path, key, guid=None) -> bytes:
        guid = guid or uuid.uuid4().bytes
        async with self.jellyfin.engine.begin() as conn:
            await conn.execute(insert(typed_base_items).values(guid=guid, Path=path, UserDataKey=key))
        return guid

    async def add_user_data(self, key, **values):
        row = {
            "userId": 1, "played": 0, "playCount": 0, "isFavorite": 0,
            "playbackPositionTicks": 0, "lastPlayedDate": None,
        }
        row.update(values)
        async with self.jellyfin.engine.begin() as conn:
            await conn.execute(insert(user_datas).values(key=key, **row))

    async def user_data_rows(self, key=None):
        stmt = select(user_datas)
        if key is not None:
            stmt = stmt.where(user_datas.c.key == key)
        async with self.jellyfin.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(r._mapping) for r in result.all()]
