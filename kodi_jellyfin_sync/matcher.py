import logging
from typing import List, Optional

from .clients.jellyfin_client import JellyfinClient
from .identifiers import display_identifier
from .models import TargetItem

logger = logging.getLogger(__name__)

def rank_candidates(source_file_path: str, candidates: List[TargetItem]) -> List[TargetItem]:
    """
    Orders substring matches: paths ending with the source path first, then shorter
    paths, then store order (sorted() is stable).
    """
    def key(item: TargetItem):
        path = item.path or ""
        return (not path.endswith(source_file_path), len(path))
    return sorted(candidates, key=key)

class Matcher:
    def __init__(self, jellyfin: JellyfinClient):
        self.jellyfin = jellyfin

    async def find_target_item(self, source_file_path: str) -> Optional[TargetItem]:
        """
        Finds the Jellyfin item whose path contains `source_file_path`.
        Returns None when nothing matches; that is a normal outcome.
        """
        if not source_file_path:
            return None

        candidates = await self.jellyfin.find_items_containing(source_file_path)
        if not candidates:
            return None

        ranked = rank_candidates(source_file_path, candidates)
        chosen = ranked[0]
        if len(ranked) > 1:
            logger.warning(
                f"{len(ranked)} Jellyfin items contain {source_file_path!r}, "
                f"using {display_identifier(chosen.identifier)} ({chosen.path})"
            )
        return chosen
