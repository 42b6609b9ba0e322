import re
import uuid
from typing import Optional
from urllib.parse import unquote, urlparse

from vela.core.models import ContentKey

# ===========================
# Patterns
# ===========================
INFO_HASH_PATTERN = re.compile(r"^[a-fA-F0-9]{40}$")
MAGNET_HASH_PATTERN = re.compile(r"urn:btih:([a-fA-F0-9]{40})", re.IGNORECASE)
IMDB_ID_PATTERN = re.compile(r"tt\d+")
SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(GB|MB|TB)", re.IGNORECASE)
SEEDERS_PATTERN = re.compile(r"👤\s*(\d+)")

# ===========================
# Video Containers
# ===========================
VIDEO_EXTENSIONS = ("mp4", "mkv", "avi", "webm", "mov", "m4v")
DIRECT_PLAY_EXTENSIONS = ("mp4", "webm")


# ===========================
# Content Key Creation
# ===========================
def create_content_key(content_id: str, season: Optional[int] = None, episode: Optional[int] = None) -> str:
    return str(ContentKey(content_id=content_id, season=season, episode=episode))


# ===========================
# Identifier Decoding
# ===========================
def decode_content_id(content_id: str) -> str:
    return unquote(content_id or "").strip()


# ===========================
# Hash Extraction
# ===========================
def extract_info_hash(value: str) -> Optional[str]:
    if not value:
        return None

    if INFO_HASH_PATTERN.match(value):
        return value.lower()

    match = MAGNET_HASH_PATTERN.search(value)
    if match:
        return match.group(1).lower()

    return None


# ===========================
# Torrent Title Parsing
# ===========================
def extract_size(text: str) -> Optional[str]:
    match = SIZE_PATTERN.search(text or "")
    if match:
        return f"{match.group(1)} {match.group(2).upper()}"
    return None


def extract_seeders(text: str) -> Optional[int]:
    match = SEEDERS_PATTERN.search(text or "")
    if match:
        return int(match.group(1))
    return None


# ===========================
# File Extensions
# ===========================
def get_extension(name: str) -> str:
    if not name or "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def url_extension(url: str) -> str:
    try:
        return get_extension(urlparse(url).path)
    except ValueError:
        return ""


# ===========================
# Episode File Matching
# ===========================
def matches_episode(filename: str, season: int, episode: int) -> bool:
    patterns = [
        rf"S{season:02d}E{episode:02d}(?!\d)",
        rf"S{season}E{episode}(?!\d)",
        rf"(?<!\d){season}x{episode:02d}(?!\d)",
        rf"(?<!\d){season}x{episode}(?!\d)",
    ]
    return any(re.search(pattern, filename or "", re.IGNORECASE) for pattern in patterns)


# ===========================
# Session Identifier
# ===========================
def generate_session_id() -> str:
    return uuid.uuid4().hex
