# tap_sink.py  (where formatted records go: log file, tty echo, live subscribers)
import sys, os, logging, contextlib
from pathlib import Path
from typing import Optional, Set, TextIO

log = logging.getLogger(__name__)

# a subscriber with more than this many bytes still unsent is too slow to keep
MAX_SUBSCRIBER_BACKLOG = 1 << 20


def default_log_path(log_dir: str, server_cmd: str) -> str:
    """<log_dir>/<server basename without extension>-<pid>.log"""
    name = Path(server_cmd).stem or "server"
    return str(Path(log_dir) / f"{name}-{os.getpid()}.log")


class LogSink:
    """Persist plain records to a file, echo styled ones to a tty, fan out to subscribers.

    Subscribers are stream-writer-like objects (write(bytes)). One that fails
    or falls too far behind is dropped and closed without affecting the file
    or the others.
    """

    def __init__(self, log_file: str, echo: Optional[TextIO] = None):
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        self.log_file = log_file
        self.echo = echo
        self.subscribers: Set = set()
        self.fh = open(log_file, "a", encoding="utf-8", errors="replace")
        log.info("logging to %s", log_file)

    def write(self, styled: str, plain: str) -> None:
        if self.echo is not None:
            self.echo.write(styled + "\n"); self.echo.flush()
        if not self.fh.closed:
            self.fh.write(plain + "\n"); self.fh.flush()
        data = (plain + "\n").encode("utf-8")
        for sub in list(self.subscribers):
            try:
                closing = getattr(sub, "is_closing", None)
                if closing is not None and closing():
                    raise ConnectionResetError("subscriber closed")
                sub.write(data)
                transport = getattr(sub, "transport", None)
                if transport is not None and transport.get_write_buffer_size() > MAX_SUBSCRIBER_BACKLOG:
                    raise ConnectionAbortedError("subscriber backlog over limit")
            except (OSError, RuntimeError) as e:
                log.debug("dropping subscriber: %r", e)
                self.subscribers.discard(sub)
                with contextlib.suppress(Exception):
                    sub.close()

    def add_subscriber(self, sub) -> None:
        self.subscribers.add(sub)

    def remove_subscriber(self, sub) -> None:
        self.subscribers.discard(sub)

    def close(self) -> None:
        with contextlib.suppress(Exception):
            self.fh.close()


def make_sink(log_file: str, stream: TextIO = sys.__stderr__) -> LogSink:
    """Echo styled records only when the stream is an interactive terminal."""
    is_tty = bool(stream is not None and stream.isatty())
    return LogSink(log_file, echo=stream if is_tty else None)
