"""Tests for confcurate.validation."""

import pytest

from confcurate.errors import ValidationError
from confcurate.models import Conference, Session
from confcurate.validation import check_conference, check_session, ensure_valid, validate_dataset


def _good_conf(conf_id="pycon"):
    return Conference.new("PyCon", id=conf_id, date="2025-05-14", location="Pittsburgh")


def _good_session(session_id="s1"):
    return Session(id=session_id, title="Talk", speaker="Ada")


class TestConferenceRules:
    def test_valid(self):
        assert check_conference(_good_conf()) == []

    def test_missing_fields(self):
        issues = check_conference(Conference(id="x", name="X", slug="x"))
        assert {i.field for i in issues} == {"date", "location"}
        assert "Date is required" in [i.message for i in issues]

    def test_blank_is_missing(self):
        conf = _good_conf()
        conf.location = "   "
        assert [i.field for i in check_conference(conf)] == ["location"]


class TestSessionRules:
    def test_valid(self):
        assert check_session(_good_session()) == []

    def test_required(self):
        issues = check_session(Session(id=""))
        assert {i.field for i in issues} == {"title", "speaker", "id"}

    def test_bad_youtube_url(self):
        s = _good_session()
        s.youtube_url = "https://vimeo.com/1"
        assert [i.field for i in check_session(s)] == ["youtubeUrl"]

    def test_empty_youtube_url_is_fine(self):
        s = _good_session()
        s.youtube_url = ""
        assert check_session(s) == []


class TestEnsureValid:
    def test_raises_with_every_message(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid(check_session(Session(id="s")))
        assert "Session title is required" in str(exc_info.value)
        assert "Speaker name is required" in str(exc_info.value)

    def test_no_issues_no_error(self):
        ensure_valid([])


class TestDataset:
    def test_clean_dataset(self):
        assert validate_dataset([_good_conf()], {"pycon": [_good_session()]}) == []

    def test_duplicate_ids(self):
        issues = validate_dataset(
            [_good_conf("a"), _good_conf("a")],
            {"a": [_good_session("s"), _good_session("s")]},
        )
        assert [i.record for i in issues if i.message == "Duplicate id"] == ["conference a", "session a/s"]

    def test_orphan_session_file(self):
        issues = validate_dataset([_good_conf("a")], {"b": []})
        assert [i.record for i in issues] == ["sessions b"]
