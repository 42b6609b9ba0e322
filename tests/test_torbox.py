"""Tests for the TorBox client."""

from __future__ import annotations

import httpx
import pytest

from tests.helpers import make_response
from vela.core.errors import DebridAuthenticationFailed
from vela.debrid.torbox import TorBoxConfig, TorBoxService, parse_stream_metadata

API = "https://torbox.test/v1/api"
HASH = "c" * 40


def _service(http, **overrides) -> TorBoxService:
    values = {
        "api_key": "secret",
        "api_url": API,
        "http_error_max_retries": 2,
        "http_error_retry_delay": 0,
    }
    values.update(overrides)
    return TorBoxService(TorBoxConfig(**values), http=http)


class TestAddIfCached:
    async def test_cached_torrent_returns_id(self, fake_http) -> None:
        fake_http.post.return_value = make_response(200, {"success": True, "data": {"torrent_id": 11, "hash": HASH}})

        assert await _service(fake_http).add_if_cached(HASH) == 11

        call = fake_http.post.await_args
        assert call.args[0] == f"{API}/torrents/createtorrent"
        assert call.kwargs["files"]["magnet"] == (None, f"magnet:?xt=urn:btih:{HASH}")
        assert call.kwargs["files"]["add_only_if_cached"] == (None, "true")
        assert call.kwargs["files"]["seed"] == (None, "1")
        assert call.kwargs["files"]["allow_zip"] == (None, "false")
        assert call.kwargs["headers"]["Authorization"] == "Bearer secret"
        assert call.kwargs["timeout"] == 15

    async def test_uncached_returns_none(self, fake_http) -> None:
        fake_http.post.return_value = make_response(
            400, {"success": False, "error": "DOWNLOAD_NOT_CACHED", "detail": "Not cached"}
        )
        assert await _service(fake_http).add_if_cached(HASH) is None

    async def test_duplicate_reuses_library_entry(self, fake_http) -> None:
        fake_http.post.return_value = make_response(
            200, {"success": False, "error": "DUPLICATE_ITEM", "detail": "Duplicate item"}
        )
        fake_http.get.return_value = make_response(200, {"success": True, "data": [
            {"id": 3, "hash": "d" * 40},
            {"id": 9, "hash": HASH.upper()},
        ]})

        service = _service(fake_http)
        first = await service.add_if_cached(HASH)
        second = await service.add_if_cached(HASH)

        assert first == second == 9
        assert fake_http.get.await_args.args[0] == f"{API}/torrents/mylist"

    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_errors_raise(self, fake_http, status) -> None:
        fake_http.post.return_value = make_response(status, {"success": False})

        with pytest.raises(DebridAuthenticationFailed):
            await _service(fake_http).add_if_cached(HASH)

    async def test_retries_on_server_errors(self, fake_http) -> None:
        fake_http.post.side_effect = [
            make_response(503, {}),
            make_response(200, {"success": True, "data": {"torrent_id": 5}}),
        ]

        assert await _service(fake_http).add_if_cached(HASH) == 5
        assert fake_http.post.await_count == 2

    async def test_gives_up_after_max_retries(self, fake_http) -> None:
        fake_http.post.return_value = make_response(429, {})

        assert await _service(fake_http).add_if_cached(HASH) is None
        assert fake_http.post.await_count == 2

    async def test_timeout_is_a_failure(self, fake_http) -> None:
        fake_http.post.side_effect = httpx.ReadTimeout("slow")
        assert await _service(fake_http).add_if_cached(HASH) is None


class TestFilesAndLinks:
    async def test_get_files(self, fake_http) -> None:
        files = [{"id": 0, "name": "Movie/movie.mkv", "short_name": "movie.mkv", "size": 10}]
        fake_http.get.return_value = make_response(200, {"success": True, "data": {"id": 11, "files": files}})

        assert await _service(fake_http).get_files(11) == files
        assert fake_http.get.await_args.kwargs["params"]["id"] == 11

    async def test_get_files_without_list(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": {"id": 11}})
        assert await _service(fake_http).get_files(11) is None

    async def test_request_download_link(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": "https://cdn.torbox.app/movie.mp4"})

        link = await _service(fake_http).request_download_link(11, 2)

        assert link == "https://cdn.torbox.app/movie.mp4"
        params = fake_http.get.await_args.kwargs["params"]
        assert params == {"token": "secret", "torrent_id": 11, "file_id": 2, "zip_link": False}

    async def test_request_download_link_failure(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": False, "error": "DATABASE_ERROR", "data": None})
        assert await _service(fake_http).request_download_link(11, 2) is None

    async def test_create_stream_with_metadata(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": {
            "playlist": "https://stream.torbox.app/11/master.m3u8",
            "metadata": {
                "audios": [{"index": 1, "language_full": "Japanese", "default": True}],
                "intro_information": {"start_time": 5.5, "end_time": 90},
            },
        }})

        hls_url, metadata = await _service(fake_http).create_stream(11, 0)

        assert hls_url == "https://stream.torbox.app/11/master.m3u8"
        assert metadata.audio_tracks[0].language == "Japanese"
        assert metadata.audio_tracks[0].default is True
        assert (metadata.intro_start, metadata.intro_end) == (5.5, 90)
        assert fake_http.get.await_args.kwargs["params"] == {"id": 11, "file_id": 0, "type": "torrent"}

    async def test_create_stream_without_url(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": {}})
        assert await _service(fake_http).create_stream(11, 0) is None


class TestParseStreamMetadata:
    def test_missing(self) -> None:
        assert parse_stream_metadata(None) is None

    def test_defaults(self) -> None:
        metadata = parse_stream_metadata({"audios": [{"index": 0}]})
        assert metadata.audio_tracks[0].language == "unknown"
        assert metadata.intro_start is None


class TestMalformedPayloads:
    async def test_non_dict_torrent_data(self, fake_http) -> None:
        fake_http.post.return_value = make_response(200, {"success": True, "data": "queued"})
        assert await _service(fake_http).add_if_cached(HASH) is None

    async def test_non_dict_stream_data(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": ["playlist"]})
        assert await _service(fake_http).create_stream(11, 0) is None

    async def test_invalid_metadata_keeps_hls_url(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"success": True, "data": {
            "hls_url": "https://stream.torbox.app/11/master.m3u8",
            "metadata": {"audios": [{"index": None, "language": "eng"}]},
        }})

        hls_url, metadata = await _service(fake_http).create_stream(11, 0)

        assert hls_url == "https://stream.torbox.app/11/master.m3u8"
        assert metadata is None

    def test_metadata_with_odd_shapes(self) -> None:
        assert parse_stream_metadata({"audios": 5}) is None
        metadata = parse_stream_metadata({"audios": [], "intro_information": "none"})
        assert metadata.intro_start is None
