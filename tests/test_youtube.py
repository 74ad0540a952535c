"""Tests for confcurate.youtube."""

import pytest

from confcurate.errors import ValidationError
from confcurate.youtube import extract_info, validate_url, video_id


class TestValidateUrl:
    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "http://youtube.com/watch?v=abc_123-x",
        "https://youtu.be/dQw4w9WgXcQ",
    ])
    def test_accepts(self, url):
        assert validate_url(url)

    @pytest.mark.parametrize("url", [
        "",
        None,
        "https://vimeo.com/123",
        "youtube.com/watch?v=abc",
        "https://www.youtube.com/playlist?list=PL123",
    ])
    def test_rejects(self, url):
        assert not validate_url(url)

    def test_video_id(self):
        assert video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert video_id("https://youtu.be/abc-1") == "abc-1"
        assert video_id("https://vimeo.com/1") is None


class TestExtractInfo:
    def test_returns_placeholder_metadata(self):
        info = extract_info("https://youtu.be/abc")
        assert info.title == "Sample Video Title"
        assert info.duration == "45 minutes"
        assert info.description == "Sample video description"

    def test_requires_url(self):
        with pytest.raises(ValidationError, match="URL is required"):
            extract_info("")
