from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ===========================
# Enumerations
# ===========================
class Quality(str, Enum):
    uhd = "4k"
    fhd = "1080p"
    hd = "720p"
    sd = "480p"
    unknown = "unknown"


class ContentType(str, Enum):
    movie = "movie"
    series = "series"
    anime = "anime"


class StreamOrigin(str, Enum):
    debrid = "debrid"
    indexer = "indexer"
    adult_catalog = "adult-catalog"


# ===========================
# Base Model
# ===========================
class CamelModel(BaseModel):
    """Serializes to the camelCase shape clients expect, accepts both spellings."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


# ===========================
# Content Key
# ===========================
class ContentKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_id: str
    season: Optional[int] = None
    episode: Optional[int] = None

    def __str__(self) -> str:
        if self.season is not None and self.episode is not None:
            return f"{self.content_id}:S{self.season:02d}E{self.episode:02d}"
        return self.content_id


# ===========================
# Candidate Source
# ===========================
class CandidateSource(BaseModel):
    info_hash: str
    title: str = ""
    quality: Quality = Quality.unknown
    size: Optional[str] = None
    seeders: Optional[int] = None

    @property
    def magnet(self) -> str:
        return f"magnet:?xt=urn:btih:{self.info_hash}"


# ===========================
# Stream
# ===========================
class AudioTrack(CamelModel):
    index: int
    language: str = "unknown"
    title: Optional[str] = None
    default: bool = False


class StreamMetadata(CamelModel):
    audio_tracks: List[AudioTrack] = Field(default_factory=list)
    intro_start: Optional[float] = None
    intro_end: Optional[float] = None


class Stream(CamelModel):
    id: str
    url: str
    quality: Quality = Quality.unknown
    origin: StreamOrigin = StreamOrigin.debrid
    title: str = "Stream"
    cached: bool = False
    hls_url: Optional[str] = None
    info_hash: Optional[str] = Field(default=None, alias="hash")
    container: Optional[str] = None
    torbox_id: Optional[int] = None
    file_id: Optional[int] = None
    metadata: Optional[StreamMetadata] = None

    @property
    def upstream_url(self) -> str:
        return self.hls_url or self.url


# ===========================
# Subtitle
# ===========================
class Subtitle(CamelModel):
    id: str
    language: str
    language_name: str
    url: str


# ===========================
# Play Request / Response
# ===========================
class PlayRequest(CamelModel):
    content_id: str = Field(min_length=1)
    type: ContentType
    season: Optional[int] = None
    episode: Optional[int] = None
    preferred_quality: Optional[Quality] = None

    @model_validator(mode="after")
    def check_episode_fields(self):
        if self.type == ContentType.series and (self.season is None or self.episode is None):
            raise ValueError("season and episode are required for series")
        return self


class PlayResponse(CamelModel):
    session_id: str
    stream_url: str
    stream: Stream
    alternatives: List[Stream] = Field(default_factory=list)
    subtitles: List[Subtitle] = Field(default_factory=list)


# ===========================
# Stream Session
# ===========================
class StreamSession(CamelModel):
    id: str
    content_id: str
    type: ContentType
    season: Optional[int] = None
    episode: Optional[int] = None
    stream: Stream
    upstream_url: str
    created_at: int
    expires_at: int
