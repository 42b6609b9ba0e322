"""Tests for the resolved stream cache."""

from __future__ import annotations

import time

from vela.core.models import AudioTrack, Quality, Stream, StreamMetadata
from vela.utils import cache


def _hls_stream(quality: Quality = Quality.fhd, url: str = "https://stream.torbox.app/a/master.m3u8") -> Stream:
    return Stream(
        id="torbox-1",
        url=url,
        hls_url=url,
        quality=quality,
        title="Movie.2024.1080p.WEB",
        cached=True,
        info_hash="a" * 40,
        metadata=StreamMetadata(
            audio_tracks=[AudioTrack(index=0, language="eng", default=True)],
            intro_start=10.0,
            intro_end=70.0,
        ),
    )


async def _row(db, key: str):
    return await db.fetch_one("SELECT * FROM resolved_streams WHERE content_key = :key", {"key": key})


class TestStore:
    async def test_entry_lives_exactly_two_hours(self, db) -> None:
        await cache.store(db, "tt1", _hls_stream(), latency_ms=120)

        row = await _row(db, "tt1")
        assert row["expires_at"] - row["resolved_at"] == 7200
        assert row["success_count"] == 1
        assert row["avg_latency"] == 120
        assert row["stream_kind"] == cache.KIND_HLS

    async def test_upsert_keeps_one_row(self, db) -> None:
        await cache.store(db, "tt1", _hls_stream(url="https://stream.torbox.app/old.m3u8"), latency_ms=100)
        await cache.store(db, "tt1", _hls_stream(url="https://stream.torbox.app/new.m3u8"), latency_ms=300)

        count = await db.fetch_val("SELECT COUNT(*) FROM resolved_streams WHERE content_key = 'tt1'")
        row = await _row(db, "tt1")
        assert count == 1
        assert row["stream_url"] == "https://stream.torbox.app/new.m3u8"
        assert row["success_count"] == 2
        assert row["avg_latency"] == 200

    async def test_store_without_latency(self, db) -> None:
        await cache.store(db, "tt1", _hls_stream())

        row = await _row(db, "tt1")
        assert row["avg_latency"] is None


class TestLookup:
    async def test_hit_rebuilds_stream(self, db) -> None:
        await cache.store(db, "tt1:S01E02", _hls_stream(), latency_ms=50)

        stream = await cache.lookup(db, "tt1:S01E02", Quality.fhd)

        assert stream is not None
        assert stream.cached is True
        assert stream.hls_url == "https://stream.torbox.app/a/master.m3u8"
        assert stream.info_hash == "a" * 40
        assert stream.metadata.intro_end == 70.0
        assert stream.metadata.audio_tracks[0].language == "eng"

        row = await _row(db, "tt1:S01E02")
        assert row["use_count"] == 1

    async def test_miss_for_unknown_key(self, db) -> None:
        assert await cache.lookup(db, "tt404", Quality.fhd) is None

    async def test_expired_entry_is_a_miss(self, db) -> None:
        await cache.store(db, "tt1", _hls_stream(), ttl=7200)
        await db.execute(
            "UPDATE resolved_streams SET expires_at = :past",
            {"past": int(time.time()) - 1}
        )

        assert await cache.lookup(db, "tt1", Quality.fhd) is None

    async def test_picks_preferred_quality(self, db) -> None:
        await cache.store(db, "tt1", _hls_stream(Quality.fhd, url="https://stream.torbox.app/1080.m3u8"))
        await cache.store(db, "tt1", _hls_stream(Quality.hd, url="https://stream.torbox.app/720.m3u8"))

        stream = await cache.lookup(db, "tt1", Quality.hd)
        assert stream.quality == Quality.hd


class TestRecordFailure:
    async def test_failure_expires_entry(self, db) -> None:
        stream = _hls_stream()
        await cache.store(db, "tt1", stream)

        await cache.record_failure(db, "tt1", stream)

        row = await _row(db, "tt1")
        assert row["failure_count"] == 1
        assert await cache.lookup(db, "tt1", Quality.fhd) is None
