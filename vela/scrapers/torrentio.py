from typing import Dict, List, Optional

from vela.config.settings import settings
from vela.core.models import CandidateSource, ContentType, Quality
from vela.utils.helpers import extract_info_hash, extract_seeders, extract_size
from vela.utils.http_client import http_client
from vela.utils.logger import indexer_logger
from vela.utils.quality import extract_quality

# ===========================
# Torrentio Scraper Class
# ===========================
class TorrentioScraper:

    def __init__(self, http=http_client, base_url: Optional[str] = None, options: Optional[str] = None):
        self.http = http
        self.BASE_URL = base_url or settings.TORRENTIO_URL
        self.options = options if options is not None else settings.TORRENTIO_OPTIONS

    def build_url(self, content_id: str, content_type: ContentType,
                  season: Optional[int] = None, episode: Optional[int] = None) -> str:
        key = content_id
        if content_type != ContentType.movie and season is not None and episode is not None:
            key = f"{content_id}:{season}:{episode}"

        addon_type = "movie" if content_type == ContentType.movie else "series"
        prefix = f"{self.BASE_URL}/{self.options}" if self.options else self.BASE_URL
        return f"{prefix}/stream/{addon_type}/{key}.json"

    def parse_stream(self, entry: Dict) -> Optional[CandidateSource]:
        info_hash = extract_info_hash(entry.get("infoHash") or "") or extract_info_hash(entry.get("url") or "")
        if not info_hash:
            return None

        title = entry.get("title") or entry.get("name") or ""

        quality = extract_quality(title)
        if quality == Quality.unknown:
            # Torrentio also puts the resolution in "name".
            quality = extract_quality(entry.get("name") or "")

        return CandidateSource(
            info_hash=info_hash,
            title=title,
            quality=quality,
            size=extract_size(title),
            seeders=extract_seeders(title),
        )

    async def search(self, content_id: str, content_type: ContentType,
                     season: Optional[int] = None, episode: Optional[int] = None) -> List[CandidateSource]:
        url = self.build_url(content_id, content_type, season, episode)
        indexer_logger.debug(f"Searching: {url}")

        try:
            response = await self.http.get(url, timeout=settings.INDEXER_TIMEOUT)

            if response.status_code != 200:
                indexer_logger.error(f"Torrentio HTTP {response.status_code}")
                return []

            entries = response.json().get("streams") or []

        except Exception as e:
            indexer_logger.error(f"Torrentio error: {type(e).__name__}")
            return []

        candidates = []
        seen_hashes = set()

        for entry in entries:
            if not isinstance(entry, dict):
                continue

            candidate = self.parse_stream(entry)
            if not candidate or candidate.info_hash in seen_hashes:
                continue

            seen_hashes.add(candidate.info_hash)
            candidates.append(candidate)

        indexer_logger.debug(f"Found {len(candidates)} candidates ({len(entries)} entries)")
        return candidates


# ===========================
# Singleton Instance
# ===========================
torrentio_scraper = TorrentioScraper()
