from typing import List

from vela.core.models import Quality

# ===========================
# Available Resolutions
# ===========================
AVAILABLE_RESOLUTIONS = [
    Quality.uhd,
    Quality.fhd,
    Quality.hd,
    Quality.sd,
    Quality.unknown
]

# ===========================
# Selection Fallback Order
# ===========================
# 1080p ranks ahead of 4k: stability over pixels.
QUALITY_FALLBACK_ORDER: List[Quality] = [
    Quality.fhd,
    Quality.uhd,
    Quality.hd,
    Quality.sd,
]

# ===========================
# Quality Extraction
# ===========================
def extract_quality(text: str) -> Quality:
    if not text:
        return Quality.unknown

    lower = text.lower()

    if "4k" in lower or "2160p" in lower or "uhd" in lower:
        return Quality.uhd
    if "1080p" in lower:
        return Quality.fhd
    if "720p" in lower:
        return Quality.hd
    if "480p" in lower:
        return Quality.sd

    return Quality.unknown

# ===========================
# Quality Normalization
# ===========================
def normalize_quality(raw_quality) -> Quality:
    if isinstance(raw_quality, Quality):
        return raw_quality

    if not raw_quality:
        return Quality.unknown

    try:
        return Quality(str(raw_quality).strip().lower())
    except ValueError:
        return extract_quality(str(raw_quality))
