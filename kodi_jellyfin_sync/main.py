import asyncio
import logging
import signal
import sys
from contextlib import AsyncExitStack, aclosing

from .config import Settings, load_settings
from .clients.jellyfin_client import JellyfinClient
from .clients.kodi_client import KodiClient
from .engine import SyncEngine
from .errors import ConfigurationError, SyncError
from .matcher import Matcher
from .models import SyncReport

logger = logging.getLogger("main")

def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # Silence noisy libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("aiomysql").setLevel(logging.WARNING)

async def run_sync(settings: Settings) -> SyncReport:
    """
    One pass: Kodi watched files -> Jellyfin user data.
    Both database engines are disposed on every exit path.
    """
    async with AsyncExitStack() as stack:
        logger.info("Connecting to Kodi and Jellyfin databases...")
        kodi = await stack.enter_async_context(
            KodiClient(settings.kodi_url, connect_timeout=settings.DB_CONNECT_TIMEOUT_SECONDS)
        )
        jellyfin = await stack.enter_async_context(
            JellyfinClient(settings.jellyfin_url, connect_timeout=settings.DB_CONNECT_TIMEOUT_SECONDS)
        )
        engine = SyncEngine(
            jellyfin,
            Matcher(jellyfin),
            user_id=settings.JELLYFIN_USER_ID,
            dry_run=settings.DRY_RUN,
        )
        if settings.DRY_RUN:
            logger.info("Dry run: no changes will be written to Jellyfin")

        records = await stack.enter_async_context(aclosing(kodi.fetch_watched_records()))
        return await engine.run(records)

def handle_sigterm(sig, frame):
    logger.info("Received SIGTERM, shutting down...")
    sys.exit(1)

def main() -> int:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging("INFO")
        logger.error(str(e))
        return 2

    setup_logging(settings.LOG_LEVEL)
    signal.signal(signal.SIGTERM, handle_sigterm)
    try:
        asyncio.run(run_sync(settings))
    except SyncError as e:
        logger.error(f"Sync aborted: {e}", exc_info=True)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
