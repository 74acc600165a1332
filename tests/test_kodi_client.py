import os
import tempfile
import unittest
from sqlalchemy import insert
from kodi_jellyfin_sync.clients.engine_args import connect_args_for
from kodi_jellyfin_sync.clients.kodi_client import KodiClient, files_table, metadata as kodi_metadata
from kodi_jellyfin_sync.errors import StoreUnavailable

class TestKodiClient(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.url = f"sqlite+aiosqlite:///{os.path.join(self.tmp.name, 'MyVideos.db')}"
        self.kodi = KodiClient(self.url)

    async def asyncTearDown(self):
        await self.kodi.close()
        self.tmp.cleanup()

    async def create_files(self, *rows):
        async with self.kodi.engine.begin() as conn:
            await conn.run_sync(kodi_metadata.create_all)
            for row in rows:
                await conn.execute(insert(files_table).values(**row))

    async def test_only_watched_files_are_returned(self):
        await self.create_files(
            {"strFilename": "Watched.mkv", "playCount": 2, "lastPlayed": "2023-01-01 10:00:00"},
            {"strFilename": "Unwatched.mkv", "playCount": 0, "lastPlayed": None},
            {"strFilename": "NeverOpened.mkv", "playCount": None, "lastPlayed": None},
            {"strFilename": "NoDate.mkv", "playCount": 1, "lastPlayed": ""},
        )

        records = [r async for r in self.kodi.fetch_watched_records()]

        self.assertEqual([r.file_path for r in records], ["Watched.mkv", "NoDate.mkv"])
        self.assertEqual(records[0].play_count, 2)
        self.assertEqual(records[0].last_played, "2023-01-01 10:00:00")
        self.assertIsNone(records[1].last_played)

    async def test_rows_without_filename_are_dropped(self):
        await self.create_files({"strFilename": "", "playCount": 3})
        records = [r async for r in self.kodi.fetch_watched_records()]
        self.assertEqual(records, [])

    async def test_query_failure_is_store_unavailable(self):
        # no `files` table
        with self.assertRaises(StoreUnavailable) as ctx:
            async for _ in self.kodi.fetch_watched_records():
                pass
        self.assertEqual(ctx.exception.store, "kodi")

class TestConnectArgs(unittest.TestCase):
    def test_driver_specific_timeouts(self):
        self.assertEqual(connect_args_for("sqlite+aiosqlite:///x.db", 5), {"timeout": 5})
        self.assertEqual(connect_args_for("mysql+aiomysql://u:p@h/db", 5), {"connect_timeout": 5})
        self.assertEqual(connect_args_for("postgresql+asyncpg://h/db", 5), {})

if __name__ == '__main__':
    unittest.main()
