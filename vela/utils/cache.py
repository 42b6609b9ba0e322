import json
import time
from typing import Optional, List

from vela.config.settings import settings
from vela.core.models import Quality, Stream, StreamMetadata, StreamOrigin
from vela.services.selector import select_stream
from vela.utils.logger import cache_logger
from vela.utils.quality import normalize_quality

# ===========================
# Stream Kinds
# ===========================
KIND_HLS = "hls"
KIND_DIRECT = "direct"

# ===========================
# Row Conversion
# ===========================
def _row_to_stream(row) -> Stream:
    is_hls = row["stream_kind"] == KIND_HLS

    metadata = None
    if row["metadata"]:
        try:
            metadata = StreamMetadata.model_validate(json.loads(row["metadata"]))
        except ValueError:
            cache_logger.debug("Corrupted metadata ignored")

    return Stream(
        id=f"cache-{row['info_hash'] or row['origin']}-{row['quality']}",
        url=row["stream_url"],
        quality=normalize_quality(row["quality"]),
        origin=StreamOrigin(row["origin"]),
        title=row["filename"] or "Cached Stream",
        cached=True,
        hls_url=row["stream_url"] if is_hls else None,
        info_hash=row["info_hash"],
        container=row["container"],
        metadata=metadata,
    )

# ===========================
# Cache Retrieval
# ===========================
async def get_cached_streams(database, content_key: str) -> List[Stream]:
    try:
        current_time = int(time.time())
        rows = await database.fetch_all(
            """SELECT * FROM resolved_streams
               WHERE content_key = :content_key AND expires_at > :current_time
               ORDER BY resolved_at DESC""",
            {"content_key": content_key, "current_time": current_time}
        )
        return [_row_to_stream(row) for row in rows]
    except Exception as e:
        cache_logger.error(f"Cache read failed: {type(e).__name__}")
        return []


async def lookup(database, content_key: str, preferred: Optional[Quality] = None) -> Optional[Stream]:
    streams = await get_cached_streams(database, content_key)

    if not streams:
        cache_logger.debug(f"Miss: {content_key}")
        return None

    stream = select_stream(streams, preferred)
    cache_logger.debug(f"Hit: {content_key} - {stream.quality.value} ({len(streams)} entries)")

    try:
        await database.execute(
            """UPDATE resolved_streams
               SET use_count = COALESCE(use_count, 0) + 1, last_used_at = :now
               WHERE content_key = :content_key AND origin = :origin AND quality = :quality""",
            {
                "now": int(time.time()),
                "content_key": content_key,
                "origin": stream.origin.value,
                "quality": stream.quality.value
            }
        )
    except Exception as e:
        cache_logger.error(f"Usage update failed: {type(e).__name__}")

    return stream

# ===========================
# Cache Storage
# ===========================
async def store(database, content_key: str, stream: Stream, latency_ms: Optional[int] = None,
                ttl: Optional[int] = None):
    ttl = ttl if ttl is not None else settings.RESOLVED_STREAM_TTL

    latency_value = ":latency" if latency_ms is not None else "NULL"
    if latency_ms is None:
        avg_latency_update = "resolved_streams.avg_latency"
    else:
        avg_latency_update = """CASE
                       WHEN resolved_streams.avg_latency IS NULL THEN :latency
                       ELSE (resolved_streams.avg_latency * resolved_streams.success_count + :latency)
                            / (resolved_streams.success_count + 1)
                   END"""

    try:
        resolved_at = int(time.time())
        expires_at = resolved_at + ttl

        values = {
            "content_key": content_key,
            "origin": stream.origin.value,
            "quality": stream.quality.value,
            "provider": "torbox",
            "stream_url": stream.upstream_url,
            "stream_kind": KIND_HLS if stream.hls_url else KIND_DIRECT,
            "info_hash": stream.info_hash,
            "filename": stream.title,
            "container": stream.container,
            "metadata": metadata_to_json(stream.metadata),
            "resolved_at": resolved_at,
            "expires_at": expires_at
        }
        if latency_ms is not None:
            values["latency"] = latency_ms

        await database.execute(
            f"""INSERT INTO resolved_streams (
                   content_key, origin, quality, provider, stream_url, stream_kind, info_hash,
                   filename, container, metadata, resolved_at, expires_at, last_used_at,
                   use_count, success_count, failure_count, avg_latency)
               VALUES (
                   :content_key, :origin, :quality, :provider, :stream_url, :stream_kind, :info_hash,
                   :filename, :container, :metadata, :resolved_at, :expires_at, :resolved_at,
                   0, 1, 0, {latency_value})
               ON CONFLICT (content_key, origin, quality) DO UPDATE SET
                   stream_url = :stream_url,
                   stream_kind = :stream_kind,
                   info_hash = :info_hash,
                   filename = :filename,
                   container = :container,
                   metadata = :metadata,
                   resolved_at = :resolved_at,
                   expires_at = :expires_at,
                   avg_latency = {avg_latency_update},
                   success_count = resolved_streams.success_count + 1""",
            values
        )

        cache_logger.debug(f"Saved: {content_key} - {stream.quality.value} ({ttl}s)")
    except Exception as e:
        cache_logger.error(f"Cache save failed: {type(e).__name__}")

# ===========================
# Failure Tracking
# ===========================
async def record_failure(database, content_key: str, stream: Stream):
    try:
        await database.execute(
            """UPDATE resolved_streams
               SET failure_count = COALESCE(failure_count, 0) + 1, expires_at = :now
               WHERE content_key = :content_key AND origin = :origin AND quality = :quality""",
            {
                "now": int(time.time()),
                "content_key": content_key,
                "origin": stream.origin.value,
                "quality": stream.quality.value
            }
        )
        cache_logger.debug(f"Failure recorded: {content_key} - {stream.quality.value}")
    except Exception as e:
        cache_logger.error(f"Failure record failed: {type(e).__name__}")

# ===========================
# Metadata Serialization
# ===========================
def metadata_to_json(metadata: Optional[StreamMetadata]) -> Optional[str]:
    if metadata is None:
        return None
    return json.dumps(metadata.model_dump(mode="json"))
