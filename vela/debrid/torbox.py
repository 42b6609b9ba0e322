from asyncio import sleep
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from vela.config.settings import settings
from vela.core.errors import DebridAuthenticationFailed
from vela.core.models import AudioTrack, StreamMetadata
from vela.debrid.base import BaseDebridService, HTTP_AUTH_ERRORS, HTTP_RETRY_ERRORS
from vela.utils.http_client import http_client
from vela.utils.logger import debrid_logger

# ===========================
# TorBox Error Constants
# ===========================
DUPLICATE_ERRORS = [
    "DUPLICATE_ITEM",
]


# ===========================
# TorBox Configuration
# ===========================
class TorBoxConfig(BaseModel):
    api_key: str
    api_url: str = "https://api.torbox.app/v1/api"
    timeout: float = 15
    max_candidates: int = 8
    http_error_max_retries: int = 2
    http_error_retry_delay: float = 1


def torbox_config_from_settings() -> TorBoxConfig:
    return TorBoxConfig(
        api_key=settings.TORBOX_API_KEY or "",
        api_url=settings.TORBOX_API_URL,
        timeout=settings.DEBRID_TIMEOUT,
        max_candidates=settings.MAX_CANDIDATES,
        http_error_max_retries=settings.DEBRID_HTTP_ERROR_MAX_RETRIES,
        http_error_retry_delay=settings.DEBRID_HTTP_ERROR_RETRY_DELAY,
    )


# ===========================
# TorBox Service Class
# ===========================
class TorBoxService(BaseDebridService):
    def __init__(self, config: TorBoxConfig, http=http_client):
        self.config = config
        self.http = http
        self.API_URL = config.api_url.rstrip("/")

    def get_service_name(self) -> str:
        return "TorBox"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}"
        }

    async def _handle_cooldown_limit(
        self,
        error_code: Optional[str],
        http_error_count: int
    ) -> Tuple[Optional[str], int]:
        if error_code != "COOLDOWN_LIMIT":
            return (None, http_error_count)

        http_error_count += 1
        if http_error_count > self.config.http_error_max_retries:
            debrid_logger.error(f"COOLDOWN_LIMIT: Max ({self.config.http_error_max_retries})")
            return ("RETRY_ERROR", http_error_count)

        debrid_logger.debug(f"COOLDOWN_LIMIT: Retry {http_error_count}/{self.config.http_error_max_retries}")
        await sleep(self.config.http_error_retry_delay)
        return ("RETRY", http_error_count)

    async def _request(self, method: str, endpoint: str, **kwargs) -> Optional[Dict]:
        send = self.http.post if method == "POST" else self.http.get
        http_error_count = 0

        while True:
            try:
                response = await send(
                    f"{self.API_URL}/{endpoint}",
                    headers=self._get_headers(),
                    timeout=self.config.timeout,
                    **kwargs
                )
            except Exception as e:
                debrid_logger.error(f"{endpoint} error: {type(e).__name__}")
                return None

            should_retry, http_error_count = await self._handle_http_retry_error(
                response, http_error_count,
                self.config.http_error_retry_delay, self.config.http_error_max_retries
            )
            if should_retry:
                continue
            elif response.status_code in HTTP_RETRY_ERRORS:
                return None

            if response.status_code in HTTP_AUTH_ERRORS:
                debrid_logger.error(f"Auth error ({response.status_code})")
                raise DebridAuthenticationFailed(f"TorBox rejected the API key ({response.status_code})")

            try:
                data = response.json()
            except ValueError:
                debrid_logger.error(f"{endpoint} HTTP {response.status_code}: invalid JSON")
                return None

            if not isinstance(data, dict):
                debrid_logger.error(f"{endpoint}: unexpected response")
                return None

            cooldown_result, http_error_count = await self._handle_cooldown_limit(data.get("error"), http_error_count)
            if cooldown_result == "RETRY":
                continue
            elif cooldown_result == "RETRY_ERROR":
                return None

            return data

    # ===========================
    # Library
    # ===========================
    async def add_if_cached(self, info_hash: str) -> Optional[int]:
        magnet = f"magnet:?xt=urn:btih:{info_hash}"
        data = await self._request(
            "POST",
            "torrents/createtorrent",
            files={
                "magnet": (None, magnet),
                "seed": (None, "1"),
                "allow_zip": (None, "false"),
                "add_only_if_cached": (None, "true"),
            }
        )
        if not data:
            return None

        if data.get("success"):
            payload = data.get("data")
            if not isinstance(payload, dict):
                debrid_logger.error(f"createtorrent: unexpected data for {info_hash[:12]}")
                return None

            torrent_id = payload.get("torrent_id") or payload.get("id")
            if torrent_id:
                debrid_logger.debug(f"Added {info_hash[:12]} as {torrent_id}")
                return torrent_id

        error_code = data.get("error")
        detail = str(data.get("detail") or "")
        if error_code in DUPLICATE_ERRORS or "duplicate" in detail.lower():
            debrid_logger.debug(f"Duplicate {info_hash[:12]}, reusing library entry")
            return await self.find_in_library(info_hash)

        debrid_logger.debug(f"Not cached {info_hash[:12]}: {error_code or detail or 'no id'}")
        return None

    async def find_in_library(self, info_hash: str) -> Optional[int]:
        data = await self._request("GET", "torrents/mylist", params={"bypass_cache": "true"})
        if not data:
            return None

        for item in data.get("data") or []:
            if isinstance(item, dict) and str(item.get("hash") or "").lower() == info_hash.lower():
                return item.get("id")

        debrid_logger.debug(f"{info_hash[:12]} not in library")
        return None

    async def get_files(self, torrent_id: int) -> Optional[List[Dict]]:
        data = await self._request("GET", "torrents/mylist", params={"id": torrent_id, "bypass_cache": "true"})
        if not data or not data.get("success", True):
            return None

        payload = data.get("data")
        if not isinstance(payload, dict):
            debrid_logger.error("mylist no item")
            return None

        files = payload.get("files")
        if not isinstance(files, list):
            debrid_logger.error("mylist no files")
            return None

        return files

    # ===========================
    # Playback Links
    # ===========================
    async def request_download_link(self, torrent_id: int, file_id: int) -> Optional[str]:
        data = await self._request(
            "GET",
            "torrents/requestdl",
            params={
                "token": self.config.api_key,
                "torrent_id": torrent_id,
                "file_id": file_id,
                "zip_link": False
            }
        )
        if not data:
            return None

        direct_link = data.get("data")
        if data.get("success", True) and isinstance(direct_link, str) and direct_link:
            debrid_logger.debug("Direct link ready")
            return direct_link

        debrid_logger.error(f"No direct link: {data.get('error') or data.get('detail')}")
        return None

    async def create_stream(self, torrent_id: int, file_id: int) -> Optional[Tuple[str, Optional[StreamMetadata]]]:
        data = await self._request(
            "GET",
            "stream/createstream",
            params={"id": torrent_id, "file_id": file_id, "type": "torrent"}
        )
        if not data or not data.get("success", True):
            return None

        payload = data.get("data")
        if not isinstance(payload, dict):
            debrid_logger.error("Stream API: unexpected data")
            return None

        hls_url = payload.get("hls_url") or payload.get("playlist")
        if not hls_url:
            debrid_logger.error("Stream API: no HLS URL")
            return None

        debrid_logger.debug("HLS stream ready")
        return hls_url, parse_stream_metadata(payload.get("metadata"))


# ===========================
# Stream Metadata Parsing
# ===========================
def parse_stream_metadata(raw: Optional[Dict]) -> Optional[StreamMetadata]:
    if not isinstance(raw, dict):
        return None

    try:
        audio_tracks = []
        for position, audio in enumerate(raw.get("audios") or []):
            if not isinstance(audio, dict):
                continue
            audio_tracks.append(AudioTrack(
                index=audio.get("index", position),
                language=audio.get("language") or audio.get("language_full") or "unknown",
                title=audio.get("title"),
                default=bool(audio.get("default", False)),
            ))

        intro = raw.get("intro_information")
        if not isinstance(intro, dict):
            intro = {}

        return StreamMetadata(
            audio_tracks=audio_tracks,
            intro_start=intro.get("start_time"),
            intro_end=intro.get("end_time"),
        )

    except (TypeError, ValidationError) as e:
        debrid_logger.warning(f"Stream metadata ignored: {type(e).__name__}")
        return None
