from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union

class SourceWatchRecord(BaseModel):
    """One watched row from Kodi's `files` table."""
    model_config = ConfigDict(frozen=True)

    file_path: str = Field(min_length=1)
    last_played: Optional[Union[datetime, str]] = None
    play_count: int = Field(ge=1)

class TargetItem(BaseModel):
    """A Jellyfin library item. Never written by the sync."""
    model_config = ConfigDict(frozen=True)

    identifier: bytes
    user_data_key: str
    path: Optional[str] = None  # diagnostics only

class UserDataPayload(BaseModel):
    user_id: int
    is_favorite: bool = False
    played: bool = True
    playback_position_ticks: int = 0
    play_count: int
    last_played_date: str

    def to_row(self) -> Dict[str, Any]:
        # Jellyfin's SQLite schema stores booleans as integers
        return {
            "userId": self.user_id,
            "isFavorite": int(self.is_favorite),
            "played": int(self.played),
            "playbackPositionTicks": self.playback_position_ticks,
            "playCount": self.play_count,
            "lastPlayedDate": self.last_played_date,
        }

class SyncAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"

class SyncOutcome(BaseModel):
    file_path: str
    action: SyncAction
    user_data_key: Optional[str] = None
    identifier: Optional[str] = None  # formatted guid

class SyncReport(BaseModel):
    watched: int = 0
    outcomes: List[SyncOutcome] = Field(default_factory=list)

    def _count(self, action: SyncAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def inserted(self) -> int:
        return self._count(SyncAction.INSERTED)

    @property
    def updated(self) -> int:
        return self._count(SyncAction.UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(SyncAction.SKIPPED)

    @property
    def matched(self) -> int:
        return self.inserted + self.updated
