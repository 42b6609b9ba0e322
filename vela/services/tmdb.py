from typing import Optional

from vela.config.settings import settings
from vela.core.models import ContentType
from vela.utils.http_client import http_client
from vela.utils.logger import metadata_logger

# ===========================
# TMDB Service Class
# ===========================
class TMDBService:

    def __init__(self, http=http_client, api_url: Optional[str] = None, api_token: Optional[str] = None):
        self.http = http
        self.BASE_URL = api_url or settings.TMDB_API_URL
        self.api_token = api_token if api_token is not None else settings.TMDB_API_TOKEN

    async def get_imdb_id(self, tmdb_id: str, content_type: ContentType) -> Optional[str]:
        if not self.api_token or not self.api_token.strip():
            metadata_logger.warning("Empty TMDB token")
            return None

        media_type = "movie" if content_type == ContentType.movie else "tv"
        metadata_logger.debug(f"Fetching TMDB external ids: {media_type}/{tmdb_id}")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

        try:
            response = await self.http.get(
                f"{self.BASE_URL}/{media_type}/{tmdb_id}/external_ids",
                headers=headers,
                timeout=settings.METADATA_TIMEOUT
            )

            if response.status_code != 200:
                metadata_logger.warning(f"TMDB API {response.status_code}")
                return None

            imdb_id = response.json().get("imdb_id")
            if isinstance(imdb_id, str) and imdb_id.startswith("tt"):
                return imdb_id

            metadata_logger.debug(f"No IMDB id for tmdb:{tmdb_id}")
            return None

        except Exception as e:
            metadata_logger.warning(f"TMDB external ids error: {type(e).__name__}")
            return None


# ===========================
# Singleton Instance
# ===========================
tmdb_service = TMDBService()
