from typing import List, Optional

from vela.config.settings import settings
from vela.core.models import ContentType, Subtitle
from vela.utils.http_client import http_client
from vela.utils.languages import get_language_name
from vela.utils.logger import subtitles_logger

# ===========================
# OpenSubtitles Service Class
# ===========================
class OpenSubtitlesService:

    def __init__(self, http=http_client, addon_url: Optional[str] = None):
        self.http = http
        self.ADDON_URL = addon_url or settings.OPENSUBTITLES_URL

    def _build_key(self, content_id: str, content_type: ContentType,
                   season: Optional[int], episode: Optional[int]) -> str:
        if content_type != ContentType.movie and season is not None and episode is not None:
            return f"{content_id}:{season}:{episode}"
        return content_id

    async def get_subtitles(self, content_id: str, content_type: ContentType,
                            season: Optional[int] = None, episode: Optional[int] = None) -> List[Subtitle]:
        addon_type = "movie" if content_type == ContentType.movie else "series"
        key = self._build_key(content_id, content_type, season, episode)

        try:
            response = await self.http.get(
                f"{self.ADDON_URL}/subtitles/{addon_type}/{key}.json",
                timeout=settings.SUBTITLES_TIMEOUT
            )

            if response.status_code != 200:
                subtitles_logger.debug(f"HTTP {response.status_code}")
                return []

            subtitles = []
            for index, entry in enumerate(response.json().get("subtitles") or []):
                if not isinstance(entry, dict) or not entry.get("url"):
                    continue
                language = entry.get("lang") or "und"
                subtitles.append(Subtitle(
                    id=str(entry.get("id") or f"sub-{index}"),
                    language=language,
                    language_name=get_language_name(language),
                    url=entry["url"],
                ))

            subtitles_logger.debug(f"{len(subtitles)} tracks for {key}")
            return subtitles

        except Exception as e:
            subtitles_logger.error(f"Subtitles error: {type(e).__name__}")
            return []


# ===========================
# Singleton Instance
# ===========================
opensubtitles_service = OpenSubtitlesService()
