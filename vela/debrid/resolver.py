import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from vela.core.errors import (
    AllCandidatesExhausted,
    CandidateAttemptFailed,
    CandidateError,
    CandidateNotCached,
    DebridAuthenticationFailed,
    DirectLinkFailed,
    FileInspectionFailed,
    NoCandidateCached,
    NoCandidatesFound,
    NoVideoFile,
    TranscodeFailed,
)
from vela.core.models import CandidateSource, Stream, StreamOrigin
from vela.debrid.base import BaseDebridService, Fatal, Outcome, Resolved, Skip
from vela.debrid.torbox import TorBoxConfig
from vela.utils.helpers import DIRECT_PLAY_EXTENSIONS, VIDEO_EXTENSIONS, get_extension, matches_episode
from vela.utils.logger import resolver_logger


# ===========================
# Resolver Result
# ===========================
@dataclass
class ResolverResult:
    stream: Stream
    alternatives: List[Stream] = field(default_factory=list)
    errors: List[CandidateError] = field(default_factory=list)
    latency_ms: int = 0


# ===========================
# File Selection
# ===========================
def file_name(entry: Dict) -> str:
    return entry.get("short_name") or entry.get("name") or ""


def pick_video_file(files: Sequence[Dict], season: Optional[int] = None,
                    episode: Optional[int] = None) -> Optional[Dict]:
    videos = [f for f in files if isinstance(f, dict) and get_extension(file_name(f)) in VIDEO_EXTENSIONS]
    if not videos:
        return None

    if season is not None and episode is not None:
        matching = [f for f in videos if matches_episode(file_name(f), season, episode)]
        if matching:
            videos = matching

    return max(videos, key=lambda f: f.get("size") or 0)


def dedupe_candidates(candidates: Sequence[CandidateSource]) -> List[CandidateSource]:
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.info_hash in seen:
            continue
        seen.add(candidate.info_hash)
        unique.append(candidate)
    return unique


def lazy_alternative(candidate: CandidateSource) -> Stream:
    return Stream(
        id=f"indexer-{candidate.info_hash}",
        url=candidate.magnet,
        quality=candidate.quality,
        origin=StreamOrigin.indexer,
        title=candidate.title or "Torrent",
        cached=False,
        info_hash=candidate.info_hash,
    )


# ===========================
# Debrid Resolver Class
# ===========================
class DebridResolver:
    def __init__(self, service: BaseDebridService, config: TorBoxConfig):
        self.service = service
        self.config = config

    async def attempt(self, candidate: CandidateSource, errors: List[CandidateError],
                      season: Optional[int] = None, episode: Optional[int] = None) -> Outcome:
        info_hash = candidate.info_hash

        try:
            torrent_id = await self.service.add_if_cached(info_hash)
            if not torrent_id:
                return Skip(CandidateNotCached(info_hash, f"{info_hash} is not cached"))

            files = await self.service.get_files(torrent_id)
            if files is None:
                return Skip(FileInspectionFailed(info_hash, f"No file list for torrent {torrent_id}"))

            video = pick_video_file(files, season, episode)
            if not video:
                return Skip(NoVideoFile(info_hash, f"No video file in torrent {torrent_id}"))

            file_id = video.get("id", 0)
            name = file_name(video)
            extension = get_extension(name)

            if extension in DIRECT_PLAY_EXTENSIONS:
                direct_link = await self.service.request_download_link(torrent_id, file_id)
                if direct_link:
                    return Resolved(Stream(
                        id=f"torbox-direct-{torrent_id}",
                        url=direct_link,
                        quality=candidate.quality,
                        origin=StreamOrigin.debrid,
                        title=candidate.title or name or "TorBox Direct",
                        cached=True,
                        info_hash=info_hash,
                        container=extension,
                        torbox_id=torrent_id,
                        file_id=file_id,
                    ))

                errors.append(DirectLinkFailed(info_hash, f"No direct link for {name}"))
                resolver_logger.debug(f"Direct link failed, trying HLS: {name}")

            transcoded = await self.service.create_stream(torrent_id, file_id)
            if not transcoded:
                return Skip(TranscodeFailed(info_hash, f"No HLS stream for {name}"))

            hls_url, metadata = transcoded
            return Resolved(Stream(
                id=f"torbox-{torrent_id}",
                url=hls_url,
                quality=candidate.quality,
                origin=StreamOrigin.debrid,
                title=candidate.title or name or "TorBox Stream",
                cached=True,
                hls_url=hls_url,
                info_hash=info_hash,
                torbox_id=torrent_id,
                file_id=file_id,
                metadata=metadata,
            ))

        except DebridAuthenticationFailed as e:
            return Fatal(e)

        except Exception as e:
            resolver_logger.error(f"Candidate {info_hash[:12]} error: {type(e).__name__}")
            return Skip(CandidateAttemptFailed(info_hash, f"Unexpected {type(e).__name__} on {info_hash}"))

    async def resolve(self, candidates: Sequence[CandidateSource], season: Optional[int] = None,
                      episode: Optional[int] = None) -> ResolverResult:
        unique = dedupe_candidates(candidates)
        if not unique:
            raise NoCandidatesFound("No candidates to resolve")

        start_time = time.time()
        errors: List[CandidateError] = []
        attempts = unique[:self.config.max_candidates]

        resolver_logger.debug(f"Trying {len(attempts)}/{len(unique)} candidates on {self.service.get_service_name()}")

        for position, candidate in enumerate(attempts):
            outcome = await self.attempt(candidate, errors, season, episode)

            if isinstance(outcome, Fatal):
                resolver_logger.error(f"Fatal: {outcome.error.code}")
                raise outcome.error

            if isinstance(outcome, Skip):
                resolver_logger.debug(f"Skip {candidate.info_hash[:12]}: {outcome.error.code}")
                errors.append(outcome.error)
                continue

            latency_ms = int((time.time() - start_time) * 1000)
            resolver_logger.info(f"Resolved {outcome.stream.quality.value} in {latency_ms}ms: {outcome.stream.title[:60]}")

            return ResolverResult(
                stream=outcome.stream,
                alternatives=[lazy_alternative(c) for c in unique[position + 1:]],
                errors=errors,
                latency_ms=latency_ms,
            )

        if errors and all(isinstance(e, CandidateNotCached) for e in errors):
            resolver_logger.info(f"None of {len(attempts)} candidates cached")
            raise NoCandidateCached(f"None of {len(attempts)} candidates is cached", errors=errors)

        resolver_logger.info(f"All {len(attempts)} candidates failed")
        raise AllCandidatesExhausted(f"All {len(attempts)} candidates failed", errors=errors)
