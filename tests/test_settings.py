"""Tests for the settings model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vela.config.settings import Settings

TIMEOUTS = ["HTTP_TIMEOUT", "METADATA_TIMEOUT", "INDEXER_TIMEOUT", "DEBRID_TIMEOUT", "SUBTITLES_TIMEOUT"]


class TestTimeouts:
    @pytest.mark.parametrize("name", TIMEOUTS)
    def test_null_timeout_rejected(self, name) -> None:
        with pytest.raises(ValidationError):
            Settings(**{name: None})

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("DEBRID_TIMEOUT", "20")
        assert Settings().DEBRID_TIMEOUT == 20


class TestNormalization:
    def test_urls_and_options(self) -> None:
        configured = Settings(TORRENTIO_URL="https://torrentio.test/", TORRENTIO_OPTIONS="/sort=size/")

        assert configured.TORRENTIO_URL == "https://torrentio.test"
        assert configured.TORRENTIO_OPTIONS == "sort=size"
