import asyncio
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from vela.api.routes import router
from vela.config.settings import settings
from vela.utils.database import setup_database, teardown_database, cleanup_expired_data
from vela.utils.http_client import http_client
from vela.utils.logger import setup_logger, app_logger, api_logger


# ===========================
# Logger Setup
# ===========================
setup_logger(settings.LOG_LEVEL)


# ===========================
# Custom Middleware
# ===========================
class LoguruMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(f"Exception: {type(e).__name__}")
            raise
        finally:
            process_time = time.time() - start_time
            if request.url.path != "/health" and "/segment" not in request.url.path:
                status_code = response.status_code if response is not None else 500
                api_logger.debug(f"{request.method} {request.url.path} - {status_code} - {process_time:.2f}s")
        return response


# ===========================
# Application Lifecycle
# ===========================
@asynccontextmanager
async def lifespan(app: FastAPI):
    await setup_database()
    cleanup_task = asyncio.create_task(cleanup_expired_data())

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    await http_client.close()
    await teardown_database()


# ===========================
# FastAPI Application Setup
# ===========================
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(LoguruMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


# ===========================
# Application Entry Point
# ===========================
if __name__ == "__main__":

    if not settings.TORBOX_API_KEY:
        app_logger.error("No TorBox API key configured (TORBOX_API_KEY)!")
        app_logger.error("Streams cannot be resolved without a debrid account")

    if not settings.TMDB_API_TOKEN:
        app_logger.warning("TMDB_API_TOKEN not set, tmdb: ids will not be converted")

    app_logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    app_logger.info(f"Server: http://localhost:{settings.PORT}/")
    app_logger.info(f"Torrentio: {settings.TORRENTIO_URL}")
    app_logger.info(f"Database: {settings.DATABASE_TYPE} v{settings.DATABASE_VERSION}")
    app_logger.info(f"Single-flight: {'enabled' if settings.SINGLE_FLIGHT_ENABLED else 'disabled'}")
    app_logger.info(f"Proxy: {'enabled' if settings.PROXY_URL else 'disabled'}")
    app_logger.info(f"Log level: {settings.LOG_LEVEL}")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.PORT,
        log_config=None
    )
