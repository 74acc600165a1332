import logging
from datetime import datetime, timezone
from typing import AsyncIterable, Optional, Union
from .clients.jellyfin_client import JellyfinClient
from .errors import RecordSyncFailed, StoreUnavailable
from .identifiers import display_identifier
from .matcher import Matcher
from .models import SourceWatchRecord, SyncAction, SyncOutcome, SyncReport, TargetItem, UserDataPayload

logger = logging.getLogger(__name__)

JELLYFIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

def format_last_played(value: Optional[Union[datetime, str]], now: Optional[datetime] = None) -> str:
    """
    Renders a Kodi lastPlayed value the way Jellyfin stores lastPlayedDate:
    'YYYY-MM-DD HH:MM:SS.000Z'. Zone-aware input is converted to UTC, naive input is
    kept as-is, and a missing value falls back to the current UTC time.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        ts = now or datetime.now(timezone.utc)
    elif isinstance(value, datetime):
        ts = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)

    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(JELLYFIN_DATE_FORMAT) + ".000Z"

class SyncEngine:
    def __init__(self, jellyfin: JellyfinClient, matcher: Matcher, user_id: int, dry_run: bool = False):
        self.jellyfin = jellyfin
        self.matcher = matcher
        self.user_id = user_id
        self.dry_run = dry_run
        # keys a dry run would have inserted earlier in this pass
        self._planned_inserts = set()

    def build_payload(self, record: SourceWatchRecord) -> UserDataPayload:
        return UserDataPayload(
            user_id=self.user_id,
            play_count=record.play_count,
            last_played_date=format_last_played(record.last_played),
        )

    async def reconcile(self, record: SourceWatchRecord, item: TargetItem) -> SyncAction:
        """
        Upserts Jellyfin user data for a matched item. An existing row gets the payload
        fields overwritten (other columns untouched); otherwise one row is inserted.
        """
        key = item.user_data_key
        existing = await self.jellyfin.get_user_data(key)
        if existing is None and key in self._planned_inserts:
            existing = {"key": key}
        values = self.build_payload(record).to_row()

        if existing is not None:
            if self.dry_run:
                logger.info(f"[DRY RUN] Would update watch for {record.file_path} (key {key})")
            else:
                await self.jellyfin.update_user_data(key, values)
                logger.info(f"Watch updated: {record.file_path}")
            return SyncAction.UPDATED

        if self.dry_run:
            logger.info(f"[DRY RUN] Would insert watch for {record.file_path} (key {key})")
            self._planned_inserts.add(key)
        else:
            await self.jellyfin.insert_user_data(key, values)
            logger.info(f"Watch inserted: {record.file_path}")
        return SyncAction.INSERTED

    async def sync_record(self, record: SourceWatchRecord) -> SyncOutcome:
        item = await self.matcher.find_target_item(record.file_path)
        if item is None:
            logger.debug(f"No Jellyfin match found for: {record.file_path}")
            return SyncOutcome(file_path=record.file_path, action=SyncAction.SKIPPED)

        action = await self.reconcile(record, item)
        return SyncOutcome(
            file_path=record.file_path,
            action=action,
            user_data_key=item.user_data_key,
            identifier=display_identifier(item.identifier),
        )

    async def run(self, records: AsyncIterable[SourceWatchRecord]) -> SyncReport:
        """
        Processes records one at a time. The first store or data error aborts the run;
        writes already made stay committed.
        """
        report = SyncReport()
        async for record in records:
            report.watched += 1
            try:
                outcome = await self.sync_record(record)
            except (StoreUnavailable, ValueError) as e:
                raise RecordSyncFailed(record.file_path, e) from e
            report.outcomes.append(outcome)

        logger.info(
            f"Sync complete: {report.watched} watched in Kodi, {report.matched} matched "
            f"({report.inserted} inserted, {report.updated} updated), {report.skipped} skipped"
        )
        return report
