import asyncio
import os
import time

from databases import Database

from vela.config.settings import settings
from vela.utils.logger import database_logger

# ===========================
# Database Instance
# ===========================
database = Database(settings.get_database_url())

# ===========================
# Schema
# ===========================
TABLES = ("resolved_streams", "stream_sessions")

RESOLVED_STREAMS_TABLE = """CREATE TABLE IF NOT EXISTS resolved_streams (
    content_key TEXT NOT NULL,
    origin TEXT NOT NULL,
    quality TEXT NOT NULL,
    provider TEXT NOT NULL,
    stream_url TEXT NOT NULL,
    stream_kind TEXT NOT NULL,
    info_hash TEXT,
    filename TEXT,
    container TEXT,
    metadata TEXT,
    resolved_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL,
    last_used_at INTEGER,
    use_count INTEGER DEFAULT 0,
    success_count INTEGER DEFAULT 0,
    failure_count INTEGER DEFAULT 0,
    avg_latency INTEGER,
    PRIMARY KEY (content_key, origin, quality)
)"""

STREAM_SESSIONS_TABLE = """CREATE TABLE IF NOT EXISTS stream_sessions (
    id TEXT PRIMARY KEY,
    content_id TEXT NOT NULL,
    content_type TEXT NOT NULL,
    season INTEGER,
    episode INTEGER,
    stream_data TEXT NOT NULL,
    upstream_url TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL
)"""

# ===========================
# Table Creation
# ===========================
async def create_tables(db: Database):
    await db.execute(RESOLVED_STREAMS_TABLE)
    await db.execute(STREAM_SESSIONS_TABLE)

    await db.execute("CREATE INDEX IF NOT EXISTS idx_resolved_streams_expires ON resolved_streams(expires_at)")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_stream_sessions_expires ON stream_sessions(expires_at)")

# ===========================
# Database Setup
# ===========================
async def setup_database(db: Database = database):
    try:
        database_logger.info(f"Setup {settings.DATABASE_TYPE} database")
        if settings.DATABASE_TYPE == "sqlite":
            os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
            if not os.path.exists(settings.DATABASE_PATH):
                open(settings.DATABASE_PATH, "a").close()

        await db.connect()
        database_logger.info("Connected")

        await db.execute("CREATE TABLE IF NOT EXISTS db_version (id INTEGER PRIMARY KEY CHECK (id = 1), version TEXT)")
        current_version = await db.fetch_val("SELECT version FROM db_version WHERE id = 1")

        if current_version != settings.DATABASE_VERSION:
            suffix = "" if settings.DATABASE_TYPE == "sqlite" else " CASCADE"
            for table in TABLES:
                await db.execute(f"DROP TABLE IF EXISTS {table}{suffix}")

            if settings.DATABASE_TYPE == "sqlite":
                await db.execute("INSERT OR REPLACE INTO db_version VALUES (1, :version)", {"version": settings.DATABASE_VERSION})
            else:
                await db.execute(
                    "INSERT INTO db_version VALUES (1, :version) ON CONFLICT (id) DO UPDATE SET version = :version",
                    {"version": settings.DATABASE_VERSION}
                )

        await create_tables(db)

        if settings.DATABASE_TYPE == "sqlite":
            await db.execute("PRAGMA busy_timeout=30000")
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.execute("PRAGMA temp_store=MEMORY")
            await db.execute("PRAGMA cache_size=-2000")

        database_logger.info("Setup completed")

    except Exception as e:
        database_logger.error(f"Setup failed: {type(e).__name__}")
        raise

# ===========================
# Cleanup Expired Data
# ===========================
async def purge_expired_rows(db: Database) -> None:
    current_time = int(time.time())

    deleted_streams = await db.execute(
        "DELETE FROM resolved_streams WHERE expires_at < :current_time",
        {"current_time": current_time}
    )

    deleted_sessions = await db.execute(
        "DELETE FROM stream_sessions WHERE expires_at < :current_time",
        {"current_time": current_time}
    )

    if deleted_streams or deleted_sessions:
        database_logger.debug(f"Cleanup: {deleted_streams} streams, {deleted_sessions} sessions")


async def cleanup_expired_data(db: Database = database):
    while True:
        try:
            await purge_expired_rows(db)
        except Exception as e:
            database_logger.error(f"Cleanup error: {type(e).__name__}")

        await asyncio.sleep(settings.CLEANUP_INTERVAL)

# ===========================
# Database Teardown
# ===========================
async def teardown_database(db: Database = database):
    try:
        await db.disconnect()
        database_logger.info("Disconnected")
    except Exception as e:
        database_logger.error(f"Failed to disconnect: {type(e).__name__}")
