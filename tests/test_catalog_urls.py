"""Tests for catalog share URL parsing."""

import pytest

from label_catalog.utils.catalog_urls import (
    extract_entity,
    extract_id_from_url,
    is_valid_catalog_url,
    normalize_track_url,
)


class TestExtractId:

    @pytest.mark.parametrize("url,kind,expected", [
        ("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC", "track", "4uLU6hMCjMI75M1A2tKUQC"),
        ("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=abc123", "track", "4uLU6hMCjMI75M1A2tKUQC"),
        ("https://open.spotify.com/intl-de/album/1DFixLWuPkv3KT3TnV35m3", "album", "1DFixLWuPkv3KT3TnV35m3"),
        ("https://open.spotify.com/playlist/37i9dQZF1DX0XUsuxWHRQd", "playlist", "37i9dQZF1DX0XUsuxWHRQd"),
        ("spotify:artist:0OdUWJ0sBjDrqHygGUXeCF", "artist", "0OdUWJ0sBjDrqHygGUXeCF"),
        ("https://open.spotify.com/album/1DFixLWuPkv3KT3TnV35m3", "track", None),
        ("not a url", "track", None),
        ("", "track", None),
        (None, "track", None),
    ])
    def test_extract(self, url, kind, expected):
        assert extract_id_from_url(url, kind) == expected

    def test_extract_entity(self):
        assert extract_entity("https://open.spotify.com/artist/0OdUWJ0sBjDrqHygGUXeCF") == (
            "artist", "0OdUWJ0sBjDrqHygGUXeCF"
        )
        assert extract_entity("https://example.com") is None


class TestValidation:

    def test_valid_track_and_album(self):
        assert is_valid_catalog_url("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=x")
        assert is_valid_catalog_url("https://open.spotify.com/album/1DFixLWuPkv3KT3TnV35m3")

    def test_kind_restriction(self):
        url = "https://open.spotify.com/playlist/37i9dQZF1DX0XUsuxWHRQd"
        assert not is_valid_catalog_url(url)
        assert is_valid_catalog_url(url, kinds=("playlist",))

    @pytest.mark.parametrize("url", [
        "http://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC",
        "https://open.spotify.com/track/",
        "https://example.com/track/4uLU6hMCjMI75M1A2tKUQC",
        "",
        None,
    ])
    def test_invalid(self, url):
        assert not is_valid_catalog_url(url)


class TestNormalize:

    def test_strips_query_and_locale(self):
        assert normalize_track_url(
            "https://open.spotify.com/intl-de/track/4uLU6hMCjMI75M1A2tKUQC?si=abc"
        ) == "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"

    def test_unrecognized_returned_as_is(self):
        assert normalize_track_url("https://example.com/x") == "https://example.com/x"
