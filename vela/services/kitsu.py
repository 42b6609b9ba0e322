from typing import Dict, Optional

from vela.config.settings import settings
from vela.utils.helpers import IMDB_ID_PATTERN
from vela.utils.http_client import http_client
from vela.utils.logger import metadata_logger

# ===========================
# Kitsu Service Class
# ===========================
class KitsuService:

    def __init__(self, http=http_client, addon_url: Optional[str] = None):
        self.http = http
        self.ADDON_URL = addon_url or settings.KITSU_ADDON_URL

    async def get_meta(self, kitsu_id: str) -> Optional[Dict]:
        if not kitsu_id or not kitsu_id.strip():
            metadata_logger.warning("Empty Kitsu ID")
            return None

        metadata_logger.debug(f"Fetching Kitsu meta: {kitsu_id}")

        try:
            response = await self.http.get(
                f"{self.ADDON_URL}/meta/anime/kitsu:{kitsu_id}.json",
                timeout=settings.METADATA_TIMEOUT
            )

            if response.status_code != 200:
                metadata_logger.warning(f"Kitsu addon {response.status_code}")
                return None

            meta = response.json().get("meta")
            if not isinstance(meta, dict):
                metadata_logger.warning("Invalid Kitsu response")
                return None

            return meta

        except Exception as e:
            metadata_logger.warning(f"Kitsu meta fetch error: {type(e).__name__}")
            return None

    async def get_imdb_id(self, kitsu_id: str) -> Optional[str]:
        meta = await self.get_meta(kitsu_id)
        if not meta:
            return None

        imdb_id = extract_imdb_id(meta)
        if not imdb_id:
            metadata_logger.debug(f"No IMDB id for kitsu:{kitsu_id}")
        return imdb_id


# ===========================
# IMDB Extraction
# ===========================
def extract_imdb_id(meta: Dict) -> Optional[str]:
    behavior_hints = meta.get("behaviorHints") or {}
    candidates = [behavior_hints.get("defaultVideoId"), meta.get("imdb_id")]

    for link in meta.get("links") or []:
        if not isinstance(link, dict):
            continue
        url = link.get("url") or ""
        if link.get("category") == "imdb" or "imdb.com" in url:
            candidates.append(url)

    for value in candidates:
        if not isinstance(value, str):
            continue
        match = IMDB_ID_PATTERN.search(value)
        if match:
            return match.group(0)

    return None


# ===========================
# Singleton Instance
# ===========================
kitsu_service = KitsuService()
