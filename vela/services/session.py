import asyncio
import json
import time
from typing import Optional, Set

from vela.config.settings import settings
from vela.core.errors import SessionExpired, SessionNotFound
from vela.core.models import ContentType, Stream, StreamSession
from vela.utils.helpers import generate_session_id
from vela.utils.logger import session_logger

# Strong references for fire-and-forget sweeps.
_background_tasks: Set[asyncio.Task] = set()


# ===========================
# Row Conversion
# ===========================
def _row_to_session(row) -> StreamSession:
    stream_data = json.loads(row["stream_data"])
    stream_data.setdefault("url", row["upstream_url"])

    return StreamSession(
        id=row["id"],
        content_id=row["content_id"],
        type=ContentType(row["content_type"]),
        season=row["season"],
        episode=row["episode"],
        stream=Stream.model_validate(stream_data),
        upstream_url=row["upstream_url"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )


# ===========================
# Session Creation
# ===========================
async def create_session(database, content_id: str, content_type: ContentType, stream: Stream,
                         upstream_url: str, season: Optional[int] = None,
                         episode: Optional[int] = None) -> StreamSession:
    created_at = int(time.time())
    session = StreamSession(
        id=generate_session_id(),
        content_id=content_id,
        type=content_type,
        season=season,
        episode=episode,
        stream=stream,
        upstream_url=upstream_url,
        created_at=created_at,
        expires_at=created_at + settings.SESSION_TTL,
    )

    await database.execute(
        """INSERT INTO stream_sessions (
               id, content_id, content_type, season, episode, stream_data, upstream_url,
               created_at, expires_at)
           VALUES (
               :id, :content_id, :content_type, :season, :episode, :stream_data, :upstream_url,
               :created_at, :expires_at)""",
        {
            "id": session.id,
            "content_id": content_id,
            "content_type": content_type.value,
            "season": season,
            "episode": episode,
            "stream_data": json.dumps(stream.model_dump(mode="json")),
            "upstream_url": upstream_url,
            "created_at": session.created_at,
            "expires_at": session.expires_at,
        }
    )

    session_logger.debug(f"Created {session.id} ({content_id})")

    task = asyncio.create_task(cleanup_expired_sessions(database))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return session


# ===========================
# Session Lookup
# ===========================
async def require_session(database, session_id: str) -> StreamSession:
    row = await database.fetch_one(
        "SELECT * FROM stream_sessions WHERE id = :id",
        {"id": session_id}
    )

    if not row:
        raise SessionNotFound(f"Session {session_id} not found")

    if row["expires_at"] < int(time.time()):
        await delete_session(database, session_id)
        session_logger.debug(f"Expired {session_id}, deleted")
        raise SessionExpired(f"Session {session_id} expired")

    return _row_to_session(row)


async def get_session(database, session_id: str) -> Optional[StreamSession]:
    try:
        return await require_session(database, session_id)
    except SessionNotFound:
        return None


# ===========================
# Session Refresh
# ===========================
async def update_session_url(database, session_id: str, new_url: str) -> bool:
    existing = await database.fetch_one(
        "SELECT id FROM stream_sessions WHERE id = :id",
        {"id": session_id}
    )
    if not existing:
        return False

    await database.execute(
        "UPDATE stream_sessions SET upstream_url = :url, expires_at = :expires_at WHERE id = :id",
        {
            "url": new_url,
            "expires_at": int(time.time()) + settings.SESSION_TTL,
            "id": session_id,
        }
    )

    session_logger.debug(f"Refreshed {session_id}")
    return True


async def replace_session_stream(database, session_id: str, stream: Stream) -> bool:
    updated = await update_session_url(database, session_id, stream.upstream_url)
    if updated:
        await database.execute(
            "UPDATE stream_sessions SET stream_data = :stream_data WHERE id = :id",
            {"stream_data": json.dumps(stream.model_dump(mode="json")), "id": session_id}
        )
    return updated


# ===========================
# Session Teardown
# ===========================
async def delete_session(database, session_id: str) -> bool:
    existing = await database.fetch_one(
        "SELECT id FROM stream_sessions WHERE id = :id",
        {"id": session_id}
    )
    if not existing:
        return False

    await database.execute("DELETE FROM stream_sessions WHERE id = :id", {"id": session_id})
    session_logger.debug(f"Deleted {session_id}")
    return True


async def cleanup_expired_sessions(database) -> int:
    try:
        current_time = int(time.time())
        expired = await database.fetch_val(
            "SELECT COUNT(*) FROM stream_sessions WHERE expires_at < :current_time",
            {"current_time": current_time}
        )
        if expired:
            await database.execute(
                "DELETE FROM stream_sessions WHERE expires_at < :current_time",
                {"current_time": current_time}
            )
            session_logger.debug(f"Cleaned up {expired} expired sessions")
        return expired or 0
    except Exception as e:
        session_logger.error(f"Cleanup failed: {type(e).__name__}")
        return 0
