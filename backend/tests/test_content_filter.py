"""Tests for message screening."""

from app.services.content_filter import flag_reason, screen_message


def test_clean_message():
    assert screen_message("Happy to start on Monday, the scope looks good.") == []


def test_detects_email():
    violations = screen_message("Write to me at jane.doe@mail.com instead")

    assert violations == [{"type": "email", "content": "jane.doe@mail.com"}]


def test_detects_phone_numbers():
    for text in ("Call 555-123-4567", "Call (555) 123-4567", "Call +1 555 123 4567"):
        assert [v["type"] for v in screen_message(text)] == ["phone"], text


def test_flag_reason_lists_each_kind_once():
    violations = screen_message("a@b.io, c@d.io or 555.123.4567")

    assert flag_reason(violations) == "Contains email and phone"


def test_empty_content():
    assert screen_message("") == []
    assert screen_message(None) == []
