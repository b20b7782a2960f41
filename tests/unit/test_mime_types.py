"""
Unit tests for MIME type lookup.
"""

import logging
from pathlib import Path

import pytest

from fileserver.http.mime_types import (
    DEFAULT_MIME_TYPE,
    get_mime_type,
    lookup_mime_type,
)


class TestGetMimeType:
    """Tests for get_mime_type."""

    @pytest.mark.parametrize("name, expected", [
        ("index.html", "text/html"),
        ("page.htm", "text/html"),
        ("style.css", "text/css"),
        ("app.js", "text/javascript"),
        ("data.json", "application/json"),
        ("logo.png", "image/png"),
        ("photo.jpeg", "image/jpeg"),
        ("icon.svg", "image/svg+xml"),
        ("doc.pdf", "application/pdf"),
        ("archive.7z", "application/x-7z-compressed"),
    ])
    def test_known_extensions(self, name: str, expected: str):
        assert get_mime_type(name) == expected

    def test_case_insensitive(self):
        assert get_mime_type("/path/to/IMAGE.PNG") == "image/png"

    def test_accepts_path_objects(self):
        assert get_mime_type(Path("docs") / "index.html") == "text/html"

    def test_unknown_extension_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="fileserver"):
            assert get_mime_type("unknown.xyz") == DEFAULT_MIME_TYPE

        assert "unknown.xyz" in caplog.text

    def test_no_extension(self):
        assert get_mime_type("README") == DEFAULT_MIME_TYPE

    def test_only_last_suffix_counts(self):
        assert get_mime_type("backup.html.zip") == "application/zip"


class TestLookupMimeType:
    """Tests for lookup_mime_type."""

    def test_unknown_returns_none(self):
        assert lookup_mime_type("file.unknown") is None

    def test_known(self):
        assert lookup_mime_type("a.txt") == "text/plain"
