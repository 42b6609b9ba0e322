import asyncio
import time
from typing import Callable, Dict, Optional

from vela.config.settings import settings
from vela.core.errors import DebridAuthenticationFailed, NoCandidatesFound, ResolutionCancelled
from vela.core.models import ContentType, PlayRequest, PlayResponse, Quality, StreamSession
from vela.debrid.base import BaseDebridService
from vela.debrid.resolver import DebridResolver, ResolverResult
from vela.debrid.torbox import TorBoxConfig, TorBoxService, torbox_config_from_settings
from vela.scrapers.torrentio import TorrentioScraper, torrentio_scraper
from vela.services.identifiers import IdentifierNormalizer, identifier_normalizer
from vela.services.opensubtitles import OpenSubtitlesService, opensubtitles_service
from vela.services.selector import select_stream
from vela.services.session import create_session, replace_session_stream, require_session
from vela.utils import cache
from vela.utils.database import database as default_database
from vela.utils.helpers import create_content_key
from vela.utils.logger import resolver_logger
from vela.utils.quality import normalize_quality


# ===========================
# Stream Service Class
# ===========================
class StreamService:

    def __init__(
        self,
        database=default_database,
        normalizer: Optional[IdentifierNormalizer] = None,
        indexer: Optional[TorrentioScraper] = None,
        subtitles: Optional[OpenSubtitlesService] = None,
        debrid_factory: Optional[Callable[[TorBoxConfig], BaseDebridService]] = None,
        single_flight: Optional[bool] = None
    ):
        self.database = database
        self.normalizer = normalizer or identifier_normalizer
        self.indexer = indexer or torrentio_scraper
        self.subtitles = subtitles or opensubtitles_service
        self.debrid_factory = debrid_factory or TorBoxService
        self.single_flight = settings.SINGLE_FLIGHT_ENABLED if single_flight is None else single_flight
        self._inflight: Dict[str, asyncio.Future] = {}
        self._inflight_lock = asyncio.Lock()

    def _episode_fields(self, content_type: ContentType, season: Optional[int], episode: Optional[int]):
        if content_type == ContentType.movie:
            return None, None
        return season, episode

    def _playback_url(self, session: StreamSession) -> str:
        if session.stream.hls_url:
            return f"/stream/{session.id}/master.m3u8"
        return session.stream.url

    # ===========================
    # Resolution
    # ===========================
    async def _resolve(self, content_id: str, content_type: ContentType, season: Optional[int],
                       episode: Optional[int], config: TorBoxConfig) -> ResolverResult:
        if not config.api_key:
            raise DebridAuthenticationFailed("TorBox API key not configured")

        candidates = await self.indexer.search(content_id, content_type, season, episode)
        if not candidates:
            raise NoCandidatesFound(f"No candidates for {content_id}")

        resolver = DebridResolver(self.debrid_factory(config), config)
        return await resolver.resolve(candidates, season, episode)

    async def _resolve_shared(self, content_key: str, content_id: str, content_type: ContentType,
                              season: Optional[int], episode: Optional[int],
                              config: TorBoxConfig) -> ResolverResult:
        async with self._inflight_lock:
            future = self._inflight.get(content_key)
            owner = future is None
            if owner:
                future = asyncio.get_running_loop().create_future()
                self._inflight[content_key] = future

        if not owner:
            resolver_logger.debug(f"Joining in-flight resolution: {content_key}")
            return await asyncio.shield(future)

        try:
            result = await self._resolve(content_id, content_type, season, episode, config)
            future.set_result(result)
            return result
        except asyncio.CancelledError:
            future.set_exception(ResolutionCancelled(f"Resolution of {content_key} was cancelled"))
            future.exception()
            raise
        except Exception as e:
            future.set_exception(e)
            # Marks the exception retrieved when nobody joined.
            future.exception()
            raise
        finally:
            async with self._inflight_lock:
                self._inflight.pop(content_key, None)

    # ===========================
    # Play
    # ===========================
    async def play(self, request: PlayRequest, debrid_config: Optional[TorBoxConfig] = None) -> PlayResponse:
        start_time = time.time()
        config = debrid_config or torbox_config_from_settings()

        content_id = await self.normalizer.normalize(request.content_id, request.type)
        season, episode = self._episode_fields(request.type, request.season, request.episode)
        content_key = create_content_key(content_id, season, episode)
        preferred: Quality = request.preferred_quality or normalize_quality(settings.DEFAULT_QUALITY)

        resolver_logger.info(f"Play: {content_key} ({request.type.value}, {preferred.value})")

        subtitles_task = asyncio.create_task(
            self.subtitles.get_subtitles(content_id, request.type, season, episode)
        )

        try:
            alternatives = []
            latency_ms = None

            stream = await cache.lookup(self.database, content_key, preferred)
            if stream:
                resolver_logger.info(f"Cache hit: {content_key}")
            else:
                if self.single_flight:
                    result = await self._resolve_shared(content_key, content_id, request.type, season, episode, config)
                else:
                    result = await self._resolve(content_id, request.type, season, episode, config)

                stream = select_stream([result.stream], preferred)
                alternatives = result.alternatives[:settings.MAX_ALTERNATIVES]
                latency_ms = result.latency_ms

            session = await create_session(
                self.database, content_id, request.type, stream, stream.upstream_url, season, episode
            )

            if latency_ms is not None:
                await cache.store(self.database, content_key, stream, latency_ms)

            subtitles = await subtitles_task

        except BaseException:
            subtitles_task.cancel()
            raise

        resolver_logger.info(f"Complete in {time.time() - start_time:.2f}s: session {session.id}")

        return PlayResponse(
            session_id=session.id,
            stream_url=self._playback_url(session),
            stream=stream,
            alternatives=alternatives,
            subtitles=subtitles,
        )

    # ===========================
    # Self-Healing
    # ===========================
    async def heal_session(self, session_id: str, debrid_config: Optional[TorBoxConfig] = None) -> StreamSession:
        config = debrid_config or torbox_config_from_settings()
        session = await require_session(self.database, session_id)
        content_key = create_content_key(session.content_id, session.season, session.episode)

        resolver_logger.info(f"Healing {session_id} ({content_key})")
        await cache.record_failure(self.database, content_key, session.stream)

        result = await self._resolve(session.content_id, session.type, session.season, session.episode, config)
        await cache.store(self.database, content_key, result.stream, result.latency_ms)
        await replace_session_stream(self.database, session_id, result.stream)

        return await require_session(self.database, session_id)


# ===========================
# Singleton Instance
# ===========================
stream_service = StreamService()
