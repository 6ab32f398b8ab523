import pytest

from tap_colors import PLAIN
from tap_formatter import SessionContext


class RecordingSink:
    """Stands in for LogSink: keeps every (styled, plain) pair."""

    def __init__(self):
        self.written = []

    def write(self, styled, plain):
        self.written.append((styled, plain))

    @property
    def plain(self):
        return [p for _, p in self.written]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def ctx(sink):
    return SessionContext(sink, colors=PLAIN)
