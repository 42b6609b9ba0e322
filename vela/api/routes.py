import time
from typing import Dict, Optional
from urllib.parse import quote, urljoin, urlparse

from fastapi import APIRouter, Path, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response

from vela.config.settings import settings
from vela.core.errors import DebridAuthenticationFailed, NoStreamsFound, ResolutionCancelled, SessionNotFound, VelaError
from vela.core.models import PlayRequest
from vela.services.session import delete_session, get_session
from vela.services.stream import stream_service
from vela.utils.database import database
from vela.utils.http_client import http_client
from vela.utils.logger import api_logger


# ===========================
# Router Instance
# ===========================
router = APIRouter()

HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_SUFFIXES = (".ts", ".m4s", ".m3u8", ".aac", ".vtt")


# ===========================
# Response Helpers
# ===========================
def error_response(error: VelaError, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error.message, "code": error.code})


def is_allowed_stream_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme != "https" or not parsed.hostname:
        return False

    host = parsed.hostname.lower()
    return any(host == domain or host.endswith(f".{domain}") for domain in settings.ALLOWED_STREAM_DOMAINS)


def rewrite_manifest(manifest: str, session_id: str, base_url: str) -> str:
    rewritten = []

    for line in manifest.split("\n"):
        stripped = line.strip()

        if stripped.startswith("http://") or stripped.startswith("https://"):
            target = stripped
        elif stripped and not stripped.startswith("#") and stripped.split("?")[0].endswith(SEGMENT_SUFFIXES):
            target = urljoin(base_url, stripped)
        else:
            rewritten.append(line)
            continue

        rewritten.append(f"/stream/{session_id}/segment?u={quote(target, safe='')}")

    return "\n".join(rewritten)


# ===========================
# Playback Endpoints
# ===========================
@router.post("/play",
             summary="Play content",
             description="Resolves content to a playable stream and opens a session")
async def play(request: PlayRequest):
    api_logger.debug(f"Play: {request.type.value}/{request.content_id}")

    try:
        response = await stream_service.play(request)
        return JSONResponse(content=response.model_dump(mode="json", by_alias=True))

    except NoStreamsFound as e:
        api_logger.debug(f"{e.code}: {e.message}")
        return error_response(e, 404)

    except DebridAuthenticationFailed as e:
        api_logger.error(f"{e.code}: {e.message}")
        return error_response(e, 502)

    except ResolutionCancelled as e:
        api_logger.warning(f"{e.code}: {e.message}")
        return error_response(e, 503)


@router.get("/stream/{session_id}/master.m3u8",
            summary="Stream manifest",
            description="Redirects to the session stream or serves a rewritten HLS manifest")
async def master_manifest(session_id: str = Path(..., description="Session identifier")):
    session = await get_session(database, session_id)
    if not session:
        api_logger.debug(f"Session not found: {session_id}")
        return JSONResponse(status_code=404, content={"error": "Session not found or expired", "code": SessionNotFound.code})

    if session.stream.hls_url:
        return RedirectResponse(session.upstream_url, status_code=302)

    headers = {"User-Agent": settings.PROXY_USER_AGENT}

    try:
        head_response = await http_client.head(session.upstream_url, headers=headers, timeout=settings.HTTP_TIMEOUT)
        content_type = head_response.headers.get("content-type", "").lower()
        final_url = str(head_response.url)

        is_manifest = "mpegurl" in content_type or "m3u8" in content_type or urlparse(final_url).path.endswith(".m3u8")
        if not is_manifest:
            api_logger.debug(f"Direct video, redirecting: {session_id}")
            return RedirectResponse(final_url, status_code=302)

        manifest_response = await http_client.get(final_url, headers=headers, timeout=settings.HTTP_TIMEOUT)
        if manifest_response.status_code != 200:
            api_logger.error(f"Manifest fetch HTTP {manifest_response.status_code}")
            return JSONResponse(status_code=502, content={"error": "Upstream error", "code": "UPSTREAM_ERROR"})

        rewritten = rewrite_manifest(manifest_response.text, session_id, str(manifest_response.url))
        return Response(
            content=rewritten,
            media_type=HLS_MEDIA_TYPE,
            headers={"Cache-Control": "public, max-age=5"}
        )

    except Exception as e:
        api_logger.error(f"Manifest proxy failed: {type(e).__name__}")
        return JSONResponse(status_code=502, content={"error": "Upstream error", "code": "UPSTREAM_ERROR"})


@router.get("/stream/{session_id}/segment",
            summary="Stream segment",
            description="Redirects to an allowed upstream segment URL")
async def segment(
    session_id: str = Path(..., description="Session identifier"),
    u: Optional[str] = Query(None, description="Encoded upstream URL")
):
    if not u:
        return JSONResponse(status_code=400, content={"error": "Missing segment URL", "code": "MISSING_URL"})

    session = await get_session(database, session_id)
    if not session:
        return JSONResponse(status_code=404, content={"error": "Session not found or expired", "code": SessionNotFound.code})

    if not is_allowed_stream_url(u):
        api_logger.debug(f"Blocked segment host: {urlparse(u).hostname}")
        return JSONResponse(status_code=403, content={"error": "Domain not allowed", "code": "DOMAIN_NOT_ALLOWED"})

    return RedirectResponse(u, status_code=302)


@router.post("/stream/{session_id}/heal",
             summary="Heal stream",
             description="Re-resolves a failing session and refreshes its upstream URL")
async def heal(session_id: str = Path(..., description="Session identifier")):
    try:
        session = await stream_service.heal_session(session_id)
        return JSONResponse(content=session.model_dump(mode="json", by_alias=True))

    except (SessionNotFound, NoStreamsFound) as e:
        api_logger.debug(f"Heal failed {session_id}: {e.code}")
        return error_response(e, 404)

    except DebridAuthenticationFailed as e:
        api_logger.error(f"{e.code}: {e.message}")
        return error_response(e, 502)


# ===========================
# Session Endpoints
# ===========================
@router.get("/session/{session_id}",
            summary="Get session",
            description="Returns the playback session")
async def read_session(session_id: str = Path(..., description="Session identifier")):
    session = await get_session(database, session_id)
    if not session:
        return JSONResponse(status_code=404, content={"error": "Session not found or expired", "code": SessionNotFound.code})

    return JSONResponse(content=session.model_dump(mode="json", by_alias=True))


@router.delete("/session/{session_id}",
               summary="Delete session",
               description="Ends the playback session")
async def end_session(session_id: str = Path(..., description="Session identifier")):
    deleted = await delete_session(database, session_id)
    if not deleted:
        return JSONResponse(status_code=404, content={"error": "Session not found", "code": SessionNotFound.code})

    return JSONResponse(content={"deleted": True})


# ===========================
# Health Endpoint
# ===========================
async def check_upstream(name: str, url: str) -> Dict:
    check_start = time.time()
    try:
        response = await http_client.get(url, timeout=settings.HEALTH_CHECK_TIMEOUT)
        elapsed = round((time.time() - check_start) * 1000)

        if response.status_code == 200:
            return {"status": "ok", "message": f"{name} accessible", "response_time_ms": elapsed}

        return {"status": "error", "message": f"{name} HTTP {response.status_code}", "response_time_ms": elapsed}

    except Exception as e:
        elapsed = round((time.time() - check_start) * 1000)
        return {"status": "error", "message": f"{name} unreachable: {type(e).__name__}", "response_time_ms": elapsed}


@router.get("/health",
            summary="Health check",
            description="Returns the current health status of the service")
async def health_check():
    start_time = time.time()
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "timestamp": int(time.time()),
        "checks": {}
    }

    health_status["checks"]["server"] = {
        "status": "ok",
        "message": "Server running"
    }

    try:
        await database.fetch_val("SELECT 1")
        health_status["checks"]["database"] = {
            "status": "ok",
            "message": "Database connection active"
        }
    except Exception as e:
        health_status["checks"]["database"] = {
            "status": "error",
            "message": f"Database error: {type(e).__name__}"
        }
        health_status["status"] = "unhealthy"

    health_status["checks"]["torrentio"] = await check_upstream("Torrentio", f"{settings.TORRENTIO_URL}/manifest.json")

    if settings.TORBOX_API_KEY:
        health_status["checks"]["torbox"] = await check_upstream("TorBox", f"{settings.TORBOX_API_URL}/stats")
    else:
        health_status["checks"]["torbox"] = {
            "status": "disabled",
            "message": "TorBox API key not configured"
        }

    upstream_errors = [
        name for name in ("torrentio", "torbox")
        if health_status["checks"][name]["status"] == "error"
    ]
    if upstream_errors and health_status["status"] == "healthy":
        health_status["status"] = "degraded"

    health_status["total_response_time_ms"] = round((time.time() - start_time) * 1000)

    return health_status
