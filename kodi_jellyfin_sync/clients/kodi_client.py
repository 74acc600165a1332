import logging
from typing import AsyncIterator
from sqlalchemy import Column, Integer, MetaData, Table, Text, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from ..errors import StoreUnavailable
from .engine_args import connect_args_for
from ..models import SourceWatchRecord

logger = logging.getLogger(__name__)

metadata = MetaData()

# Subset of Kodi's MyVideos `files` table
files_table = Table(
    "files",
    metadata,
    Column("idFile", Integer, primary_key=True),
    Column("idPath", Integer),
    Column("strFilename", Text),
    Column("playCount", Integer),
    Column("lastPlayed", Text),
    Column("dateAdded", Text),
)

class KodiClient:
    """Read-only access to the Kodi video database."""

    def __init__(self, url: str, connect_timeout: int = 30):
        self.engine = create_async_engine(url, connect_args=connect_args_for(url, connect_timeout))

    async def __aenter__(self) -> "KodiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self.engine.dispose()

    async def fetch_watched_records(self) -> AsyncIterator[SourceWatchRecord]:
        """
        Streams every file with playCount > 0.
        Any connection or query failure is raised as StoreUnavailable.
        """
        stmt = (
            select(files_table.c.strFilename, files_table.c.lastPlayed, files_table.c.playCount)
            .where(files_table.c.playCount > 0)
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.stream(stmt)
                async for row in result:
                    if not row.strFilename:
                        logger.debug("Skipping Kodi file row with empty filename")
                        continue
                    yield SourceWatchRecord(
                        file_path=row.strFilename,
                        last_played=row.lastPlayed or None,
                        play_count=row.playCount,
                    )
        except SQLAlchemyError as e:
            raise StoreUnavailable("kodi", str(e)) from e
