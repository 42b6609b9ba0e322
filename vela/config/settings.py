from typing import Optional, List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    # ===========================
    # Application Customization
    # ===========================
    APP_NAME: Optional[str] = "Vela"
    APP_VERSION: str = "2.0.0"

    # ===========================
    # Server Configuration
    # ===========================
    PORT: Optional[int] = 7000

    # ===========================
    # Database Configuration
    # ===========================
    DATABASE_VERSION: str = "1.0"
    DATABASE_TYPE: Optional[str] = "sqlite"
    DATABASE_PATH: Optional[str] = "/app/data/vela.db"
    DATABASE_URL: Optional[str] = ""

    # ===========================
    # Cache & Session Configuration
    # ===========================
    RESOLVED_STREAM_TTL: int = 7200
    SESSION_TTL: int = 14400

    # ===========================
    # Resolution Configuration
    # ===========================
    DEFAULT_QUALITY: str = "1080p"
    MAX_CANDIDATES: int = 8
    MAX_ALTERNATIVES: int = 10
    SINGLE_FLIGHT_ENABLED: bool = False

    # ===========================
    # HTTP Timeout Configuration
    # ===========================
    HTTP_TIMEOUT: int = 15
    METADATA_TIMEOUT: int = 10
    INDEXER_TIMEOUT: int = 15
    DEBRID_TIMEOUT: int = 15
    SUBTITLES_TIMEOUT: int = 10
    HEALTH_CHECK_TIMEOUT: int = 5

    # ===========================
    # Debrid Services Configuration
    # ===========================
    DEBRID_HTTP_ERROR_MAX_RETRIES: int = 2
    DEBRID_HTTP_ERROR_RETRY_DELAY: float = 1

    # ===========================
    # TorBox Configuration
    # ===========================
    TORBOX_API_URL: str = "https://api.torbox.app/v1/api"
    TORBOX_API_KEY: Optional[str] = ""

    # ===========================
    # Torrentio Configuration
    # ===========================
    TORRENTIO_URL: str = "https://torrentio.strem.fun"
    TORRENTIO_OPTIONS: Optional[str] = ""

    # ===========================
    # TMDB Configuration
    # ===========================
    TMDB_API_URL: str = "https://api.themoviedb.org/3"
    TMDB_API_TOKEN: Optional[str] = ""

    # ===========================
    # Kitsu Configuration
    # ===========================
    KITSU_ADDON_URL: str = "https://anime-kitsu.strem.fun"

    # ===========================
    # OpenSubtitles Configuration
    # ===========================
    OPENSUBTITLES_URL: str = "https://opensubtitles-v3.strem.io"

    # ===========================
    # Stream Proxy Configuration
    # ===========================
    ALLOWED_STREAM_DOMAINS: List[str] = [
        "api.torbox.app",
        "stream.torbox.app",
        "debrid.torbox.app",
        "cdn.torbox.app",
        "torbox.app",
        "stremio.torbox.app",
    ]
    PROXY_USER_AGENT: str = "Vela/2.0"

    # ===========================
    # Proxy Configuration
    # ===========================
    PROXY_URL: Optional[str] = None

    # ===========================
    # Logging Configuration
    # ===========================
    LOG_LEVEL: Optional[str] = "DEBUG"

    # ===========================
    # Internal Configuration
    # ===========================
    CLEANUP_INTERVAL: int = 60

    # ===========================
    # Field Validators
    # ===========================
    @field_validator("TORBOX_API_URL", "TORRENTIO_URL", "TMDB_API_URL", "KITSU_ADDON_URL", "OPENSUBTITLES_URL", "PROXY_URL")
    @classmethod
    def normalize_urls(cls, v):
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("TORRENTIO_OPTIONS")
    @classmethod
    def normalize_options(cls, v):
        if isinstance(v, str):
            return v.strip("/")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    def get_database_url(self) -> str:
        if self.DATABASE_TYPE == "sqlite":
            return f"sqlite:///{self.DATABASE_PATH}"
        return f"postgresql://{self.DATABASE_URL}"


# ===========================
# Settings Instance
# ===========================
settings = Settings()
