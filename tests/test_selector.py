"""Tests for stream selection."""

from __future__ import annotations

from vela.core.models import Quality, Stream
from vela.services.selector import is_direct_playable, pick_by_quality, select_stream


def _stream(
    stream_id: str,
    quality: Quality,
    *,
    url: str | None = None,
    container: str | None = None,
    hls_url: str | None = None,
) -> Stream:
    return Stream(
        id=stream_id,
        url=url or f"https://cdn.torbox.app/{stream_id}",
        quality=quality,
        container=container,
        hls_url=hls_url,
    )


class TestDirectPlayable:
    def test_container_decides(self) -> None:
        assert is_direct_playable(_stream("a", Quality.fhd, container="mp4"))
        assert is_direct_playable(_stream("b", Quality.fhd, container="WEBM"))
        assert not is_direct_playable(_stream("c", Quality.fhd, container="mkv"))

    def test_url_extension_ignores_query(self) -> None:
        stream = _stream("a", Quality.fhd, url="https://cdn.torbox.app/file.mp4?token=x")
        assert is_direct_playable(stream)

    def test_mkv_url_is_not_direct(self) -> None:
        assert not is_direct_playable(_stream("a", Quality.fhd, url="https://cdn.torbox.app/file.mkv"))


class TestPickByQuality:
    def test_requested_4k_missing_falls_back_to_1080p(self) -> None:
        streams = [_stream("720", Quality.hd), _stream("1080", Quality.fhd)]
        assert pick_by_quality(streams, Quality.uhd).id == "1080"

    def test_exact_match_wins(self) -> None:
        streams = [_stream("1080", Quality.fhd), _stream("720", Quality.hd)]
        assert pick_by_quality(streams, Quality.hd).id == "720"

    def test_4k_before_720p_without_1080p(self) -> None:
        streams = [_stream("720", Quality.hd), _stream("4k", Quality.uhd)]
        assert pick_by_quality(streams, Quality.sd).id == "4k"

    def test_480p_before_first(self) -> None:
        streams = [_stream("unknown", Quality.unknown), _stream("480", Quality.sd)]
        assert pick_by_quality(streams, None).id == "480"

    def test_first_available_when_nothing_ranks(self) -> None:
        streams = [_stream("x", Quality.unknown), _stream("y", Quality.unknown)]
        assert pick_by_quality(streams, Quality.fhd).id == "x"

    def test_empty(self) -> None:
        assert pick_by_quality([], Quality.fhd) is None


class TestSelectStream:
    def test_mp4_preferred_over_mkv_of_same_quality(self) -> None:
        mkv = _stream("mkv", Quality.fhd, container="mkv")
        mp4 = _stream("mp4", Quality.fhd, container="mp4")
        assert select_stream([mkv, mp4], Quality.fhd).id == "mp4"

    def test_direct_beats_better_quality_hls(self) -> None:
        hls = _stream("hls", Quality.uhd, hls_url="https://stream.torbox.app/x.m3u8")
        direct = _stream("direct", Quality.hd, container="mp4")
        assert select_stream([hls, direct], Quality.uhd).id == "direct"

    def test_hls_beats_other(self) -> None:
        other = _stream("other", Quality.fhd, container="mkv")
        hls = _stream("hls", Quality.hd, hls_url="https://stream.torbox.app/x.m3u8")
        assert select_stream([other, hls], Quality.fhd).id == "hls"

    def test_single_stream_returned(self) -> None:
        only = _stream("only", Quality.unknown, hls_url="https://stream.torbox.app/x.m3u8")
        assert select_stream([only], Quality.fhd) is only

    def test_deterministic(self) -> None:
        streams = [
            _stream("a", Quality.hd, container="mp4"),
            _stream("b", Quality.fhd, container="mp4"),
            _stream("c", Quality.fhd, container="webm"),
        ]
        picks = {select_stream(streams, Quality.uhd).id for _ in range(5)}
        assert picks == {"b"}

    def test_empty_returns_none(self) -> None:
        assert select_stream([], Quality.fhd) is None
