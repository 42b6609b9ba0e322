from typing import List, Optional, Sequence

from vela.core.models import Quality, Stream
from vela.utils.helpers import DIRECT_PLAY_EXTENSIONS, url_extension
from vela.utils.logger import resolver_logger
from vela.utils.quality import QUALITY_FALLBACK_ORDER


# ===========================
# Delivery Mode Checks
# ===========================
def is_direct_playable(stream: Stream) -> bool:
    if stream.container and stream.container.lower() in DIRECT_PLAY_EXTENSIONS:
        return True
    return url_extension(stream.url) in DIRECT_PLAY_EXTENSIONS


def is_adaptive(stream: Stream) -> bool:
    return bool(stream.hls_url)


# ===========================
# Quality Pick
# ===========================
def pick_by_quality(streams: Sequence[Stream], preferred: Optional[Quality]) -> Optional[Stream]:
    if not streams:
        return None

    order = [preferred] if preferred else []
    order.extend(q for q in QUALITY_FALLBACK_ORDER if q not in order)

    for quality in order:
        for stream in streams:
            if stream.quality == quality:
                return stream

    return streams[0]


# ===========================
# Stream Selection
# ===========================
def select_stream(streams: Sequence[Stream], preferred: Optional[Quality] = None) -> Optional[Stream]:
    """Pick exactly one stream: delivery mode first (direct > HLS > other), then quality."""
    direct: List[Stream] = [s for s in streams if is_direct_playable(s)]
    adaptive: List[Stream] = [s for s in streams if is_adaptive(s) and s not in direct]
    other: List[Stream] = [s for s in streams if s not in direct and s not in adaptive]

    resolver_logger.debug(f"Availability: direct={len(direct)}, hls={len(adaptive)}, other={len(other)}")

    for label, partition in (("direct", direct), ("hls", adaptive), ("other", other)):
        best = pick_by_quality(partition, preferred)
        if best:
            resolver_logger.debug(f"Selected {label}: {best.quality.value}")
            return best

    return None
