"""Tests for tap_colors.py"""

from dataclasses import astuple

from tap_colors import PLAIN, create_colors, method_color


def test_tty_colors_use_ansi_codes():
    c = create_colors(True)
    assert c.RESET == "\x1b[0m"
    assert c.RED == "\x1b[31m"
    assert c.BOLD == "\x1b[1m"


def test_non_tty_colors_are_empty():
    c = create_colors(False)
    assert c.RESET == "" and c.RED == "" and c.BOLD == ""


def test_plain_is_all_empty():
    assert all(v == "" for v in astuple(PLAIN))


class TestMethodColor:
    c = create_colors(True)

    def test_families(self):
        assert method_color("initialize", self.c) == self.c.MAGENTA
        assert method_color("tools/list", self.c) == self.c.GREEN
        assert method_color("tools/call", self.c) == self.c.GREEN
        assert method_color("resources/list", self.c) == self.c.CYAN
        assert method_color("prompts/list", self.c) == self.c.YELLOW
        assert method_color("notifications/initialized", self.c) == self.c.BLUE

    def test_unknown_and_missing(self):
        assert method_color("something/else", self.c) == self.c.WHITE
        assert method_color(None, self.c) == self.c.WHITE
