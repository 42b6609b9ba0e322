from typing import Optional

from vela.core.errors import IdentifierConversionFailed
from vela.core.models import ContentType
from vela.services.kitsu import KitsuService, kitsu_service
from vela.services.tmdb import TMDBService, tmdb_service
from vela.utils.helpers import decode_content_id
from vela.utils.logger import metadata_logger

TMDB_PREFIX = "tmdb:"
KITSU_PREFIX = "kitsu:"


# ===========================
# Identifier Normalizer Class
# ===========================
class IdentifierNormalizer:

    def __init__(self, tmdb: Optional[TMDBService] = None, kitsu: Optional[KitsuService] = None):
        self.tmdb = tmdb or tmdb_service
        self.kitsu = kitsu or kitsu_service

    async def normalize(self, content_id: str, content_type: ContentType) -> str:
        decoded = decode_content_id(content_id)

        try:
            if decoded.startswith(TMDB_PREFIX):
                return await self._convert(decoded, self.tmdb.get_imdb_id(decoded[len(TMDB_PREFIX):], content_type))

            if decoded.startswith(KITSU_PREFIX):
                kitsu_id = decoded[len(KITSU_PREFIX):].split(":")[0]
                return await self._convert(decoded, self.kitsu.get_imdb_id(kitsu_id))

        except IdentifierConversionFailed as e:
            metadata_logger.warning(f"{e.code}: {e.message}")

        return decoded

    async def _convert(self, content_id: str, lookup) -> str:
        imdb_id = await lookup
        if not imdb_id:
            raise IdentifierConversionFailed(f"Could not convert {content_id}, keeping original")

        metadata_logger.debug(f"Converted {content_id} to {imdb_id}")
        return imdb_id


# ===========================
# Singleton Instance
# ===========================
identifier_normalizer = IdentifierNormalizer()
