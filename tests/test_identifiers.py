"""Tests for identifier normalization."""

from __future__ import annotations

import httpx

from tests.helpers import make_response
from vela.core.models import ContentType
from vela.services.identifiers import IdentifierNormalizer
from vela.services.kitsu import KitsuService, extract_imdb_id
from vela.services.tmdb import TMDBService


def _normalizer(http, token: str = "token") -> IdentifierNormalizer:
    return IdentifierNormalizer(
        tmdb=TMDBService(http=http, api_url="https://tmdb.test/3", api_token=token),
        kitsu=KitsuService(http=http, addon_url="https://kitsu.test"),
    )


class TestPassthrough:
    async def test_imdb_id_unchanged(self, fake_http) -> None:
        assert await _normalizer(fake_http).normalize("tt0111161", ContentType.movie) == "tt0111161"
        fake_http.get.assert_not_awaited()

    async def test_unknown_prefix_unchanged(self, fake_http) -> None:
        assert await _normalizer(fake_http).normalize("mal:21", ContentType.anime) == "mal:21"
        fake_http.get.assert_not_awaited()


class TestTmdb:
    async def test_url_encoded_movie_id(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"imdb_id": "tt0111161"})

        result = await _normalizer(fake_http).normalize("tmdb%3A278", ContentType.movie)

        assert result == "tt0111161"
        url = fake_http.get.await_args.args[0]
        assert url == "https://tmdb.test/3/movie/278/external_ids"
        assert fake_http.get.await_args.kwargs["headers"]["Authorization"] == "Bearer token"
        assert fake_http.get.await_args.kwargs["timeout"] == 10

    async def test_series_uses_tv_endpoint(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"imdb_id": "tt0944947"})

        assert await _normalizer(fake_http).normalize("tmdb:1399", ContentType.series) == "tt0944947"
        assert "/tv/1399/external_ids" in fake_http.get.await_args.args[0]

    async def test_failure_keeps_original(self, fake_http) -> None:
        fake_http.get.side_effect = httpx.ConnectTimeout("down")

        assert await _normalizer(fake_http).normalize("tmdb:278", ContentType.movie) == "tmdb:278"
        assert fake_http.get.await_count == 1

    async def test_missing_token_keeps_original(self, fake_http) -> None:
        assert await _normalizer(fake_http, token="").normalize("tmdb:278", ContentType.movie) == "tmdb:278"
        fake_http.get.assert_not_awaited()

    async def test_non_imdb_value_keeps_original(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"imdb_id": None})
        assert await _normalizer(fake_http).normalize("tmdb:278", ContentType.movie) == "tmdb:278"


class TestKitsu:
    async def test_default_video_id(self, fake_http) -> None:
        fake_http.get.return_value = make_response(200, {"meta": {"behaviorHints": {"defaultVideoId": "tt0388629"}}})

        result = await _normalizer(fake_http).normalize("kitsu%3A12", ContentType.anime)

        assert result == "tt0388629"
        assert fake_http.get.await_args.args[0] == "https://kitsu.test/meta/anime/kitsu:12.json"

    async def test_http_error_keeps_original(self, fake_http) -> None:
        fake_http.get.return_value = make_response(500, {})
        assert await _normalizer(fake_http).normalize("kitsu:12", ContentType.anime) == "kitsu:12"

    def test_imdb_field_then_links(self) -> None:
        assert extract_imdb_id({"imdb_id": "tt123"}) == "tt123"
        assert extract_imdb_id({"links": [
            {"category": "Genres", "url": "stremio:///discover/x"},
            {"category": "imdb", "name": "8.1", "url": "https://imdb.com/title/tt7654321/"},
        ]}) == "tt7654321"
        assert extract_imdb_id({"links": [{"url": "https://www.imdb.com/title/tt555/"}]}) == "tt555"

    def test_non_imdb_default_video_falls_through(self) -> None:
        meta = {"behaviorHints": {"defaultVideoId": "kitsu:12:1"}, "imdb_id": "tt42"}
        assert extract_imdb_id(meta) == "tt42"

    def test_nothing_found(self) -> None:
        assert extract_imdb_id({"behaviorHints": {}, "links": []}) is None
