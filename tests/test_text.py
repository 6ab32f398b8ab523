"""Tests for tap_text.py"""

import re

from tap_text import LineBuffer, js_text, present, truncate, ts


def test_timestamp_format():
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}\.\d{3}", ts())


class TestTruncate:
    def test_short_strings_unchanged(self):
        assert truncate("hello", 200) == "hello"

    def test_long_strings_get_ellipsis(self):
        result = truncate("a" * 300, 200)
        assert len(result) == 200
        assert result.endswith("...")

    def test_exact_length_unchanged(self):
        exact = "b" * 200
        assert truncate(exact, 200) == exact

    def test_default_max_is_200(self):
        assert len(truncate("c" * 250)) == 200


def test_js_text_renders_scalars_like_json():
    assert js_text(1) == "1"
    assert js_text("abc") == "abc"
    assert js_text(None) == "null"
    assert js_text(True) == "true"
    assert js_text(2.0) == "2"


def test_present_treats_empty_containers_as_values():
    for value in ({}, [], "x", 1, -0.5, True):
        assert present(value)
    for value in (None, False, 0, 0.0, ""):
        assert not present(value)


class TestLineBuffer:
    def test_emits_complete_lines_only(self):
        got = []
        buf = LineBuffer(got.append)
        buf.feed('{"a":1}\n{"b"')
        assert got == ['{"a":1}']
        buf.feed(':2}\n')
        assert got == ['{"a":1}', '{"b":2}']

    def test_skips_blank_lines(self):
        got = []
        buf = LineBuffer(got.append)
        buf.feed("one\n\n   \ntwo\n")
        assert got == ["one", "two"]

    def test_flush_delivers_unterminated_tail(self):
        got = []
        buf = LineBuffer(got.append)
        buf.feed("tail without newline")
        assert got == []
        buf.flush()
        assert got == ["tail without newline"]
        buf.flush()
        assert got == ["tail without newline"]
