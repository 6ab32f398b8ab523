# tap_watch.py  (stream mcp-tap logs to a terminal with colors, following rotation)
import sys, os, re, asyncio, argparse, codecs, contextlib, logging, signal
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from tap_config import TapConfig, load_config

log = logging.getLogger(__name__)

RESET, BOLD, DIM = "\x1b[0m", "\x1b[1m", "\x1b[2m"
RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE = (
    "\x1b[31m", "\x1b[32m", "\x1b[33m", "\x1b[34m", "\x1b[35m", "\x1b[36m", "\x1b[37m")

STDERR_PREFIX = "[server stderr]"
LOG_SUFFIX = ".log"

# (pattern, replacement, count) applied in this order; count=0 means every match
_PASSES = [
    (re.compile(r"^(\d{2}:\d{2}:\d{2}\.\d{3})"), DIM + r"\1" + RESET, 1),
    (re.compile(r"→ CLIENT"), CYAN + BOLD + "→ CLIENT" + RESET, 0),
    (re.compile(r"← SERVER"), GREEN + BOLD + "← SERVER" + RESET, 0),
    (re.compile(r"\bERROR\b"), RED + BOLD + "ERROR" + RESET, 0),
    (re.compile(r"\bnotification\b"), BLUE + "notification" + RESET, 1),
    (re.compile(r"\brequest\b"), WHITE + "request" + RESET, 1),
    (re.compile(r"\bresponse\b"), WHITE + "response" + RESET, 1),
    # method families are separate passes: one method may pick up several
    (re.compile(r"\binitialize\w*"), MAGENTA + r"\g<0>" + RESET, 0),
    (re.compile(r"\btools/\S+"), GREEN + r"\g<0>" + RESET, 0),
    (re.compile(r"\bresources/\S+"), CYAN + r"\g<0>" + RESET, 0),
    (re.compile(r"\bprompts/\S+"), YELLOW + r"\g<0>" + RESET, 0),
    (re.compile(r"\bnotifications/\S+"), BLUE + r"\g<0>" + RESET, 0),
    (re.compile(r"(#\d+)"), DIM + r"\1" + RESET, 0),
    (re.compile(r"(\d+ms)"), DIM + r"\1" + RESET, 0),
]
_ERROR_DETAIL = re.compile(r"^\s+\[[-\d]+\]")


def colorize(line: str, use_color: bool) -> str:
    if not use_color:
        return line
    for pattern, repl, count in _PASSES:
        line = pattern.sub(repl, line, count=count)
    # indentation dim is checked first and wins over the error-detail red
    if line.startswith("    "):
        line = DIM + line + RESET
    elif line.startswith(STDERR_PREFIX):
        line = DIM + line + RESET
    elif _ERROR_DETAIL.match(line):
        line = RED + line + RESET
    return line


def find_latest_log(log_dir: str) -> Optional[str]:
    """Newest *.log in log_dir by modification time, or None."""
    try:
        entries = os.listdir(log_dir)
    except OSError:
        return None
    latest, latest_mtime = None, None
    for entry in entries:
        if not entry.endswith(LOG_SUFFIX):
            continue
        full = os.path.join(log_dir, entry)
        try:
            mtime = os.stat(full).st_mtime
        except OSError:
            continue  # deleted between listdir and stat
        if latest_mtime is None or mtime > latest_mtime:
            latest, latest_mtime = full, mtime
    return latest


class LogTailer:
    """Follow one log file at a time, writing colorized lines to `out`.

    All reads happen on the event loop: the content poll and the newer-file
    check share one coroutine, so the handle and offset need no locking.
    """

    def __init__(self, out: Optional[TextIO] = None, color: bool = True,
                 poll_interval: float = 0.2, switch_interval: float = 2.0,
                 wait_interval: float = 1.0):
        self.out = out if out is not None else sys.stdout
        self.color = color
        self.poll_interval = poll_interval
        self.switch_interval = switch_interval
        self.wait_interval = wait_interval
        self.current: Optional[str] = None
        self._stop = asyncio.Event()

    def stop(self):
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def say(self, text: str):
        self.out.write(text); self.out.flush()

    def _emit(self, line: str):
        self.out.write(colorize(line, self.color) + "\n")

    def _emit_lines(self, text: str) -> str:
        """Write every complete line of text; return the unterminated rest."""
        *lines, partial = text.split("\n")
        for ln in lines:
            self._emit(ln)
        if lines:
            self.out.flush()
        return partial

    async def _sleep(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True if stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_for_log(self, log_dir: str) -> Optional[str]:
        while not self.stopped:
            found = find_latest_log(log_dir)
            if found:
                return found
            if await self._sleep(self.wait_interval):
                break
        return None

    async def follow(self, path: Optional[str], auto_switch_dir: Optional[str] = None):
        while path and not self.stopped:
            path = await self._stream(path, auto_switch_dir)

    async def _file_gone(self, log_dir: str) -> Optional[str]:
        nxt = find_latest_log(log_dir)
        if nxt:
            self.say("\n")
            return nxt
        self.say(f"\nLog file removed. Waiting for new logs in {log_dir} ...\n")
        nxt = await self.wait_for_log(log_dir)
        if nxt:
            self.say("\n")
        return nxt

    async def _stream(self, path: str, auto_switch_dir: Optional[str]) -> Optional[str]:
        """Stream one file; return the next file to follow, or None to stop."""
        banner = f"--- watching {Path(path).name} ---"
        self.say((DIM + banner + RESET if self.color else banner) + "\n")
        try:
            fh = open(path, "rb")
        except OSError as e:
            if not auto_switch_dir:
                raise
            log.debug("cannot open %s: %r", path, e)
            return await self._file_gone(auto_switch_dir)

        self.current = path
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        offset, partial, gone = 0, "", False
        loop = asyncio.get_running_loop()
        next_switch = loop.time() + self.switch_interval
        try:
            while True:
                try:
                    size = os.stat(path).st_size
                except OSError:
                    gone = True
                    break
                if size < offset:
                    # truncated in place: start over
                    offset, partial = 0, ""
                    decoder.reset()
                if size > offset:
                    fh.seek(offset)
                    data = fh.read(size - offset)
                    offset += len(data)
                    partial = self._emit_lines(partial + decoder.decode(data))

                if auto_switch_dir and loop.time() >= next_switch:
                    next_switch = loop.time() + self.switch_interval
                    newest = find_latest_log(auto_switch_dir)
                    if newest and newest != path:
                        if partial:
                            self._emit(partial)
                        self.say("\n")
                        return newest

                if await self._sleep(self.poll_interval):
                    return None
        finally:
            fh.close()
            self.current = None

        # the file vanished; only reachable through `gone`
        if gone and auto_switch_dir:
            return await self._file_gone(auto_switch_dir)
        return None


@dataclass
class WatchOptions:
    dir: str
    file: Optional[str]
    color: bool


def parse_watch_args(argv: List[str], config: Optional[TapConfig] = None) -> WatchOptions:
    cfg = config or TapConfig()
    ap = argparse.ArgumentParser(prog="mcp-tap watch", description="stream MCP logs with colors")
    ap.add_argument("--dir", default=cfg.log_dir, help=f"log directory (default: {cfg.log_dir})")
    ap.add_argument("--file", default=None, help="watch a specific file instead of auto-detecting")
    ap.add_argument("--no-color", action="store_true", help="disable colors")
    args = ap.parse_args(argv)
    return WatchOptions(dir=args.dir, file=args.file, color=cfg.color and not args.no_color)


async def watch(opts: WatchOptions, config: Optional[TapConfig] = None,
                out: Optional[TextIO] = None) -> int:
    cfg = config or TapConfig()
    tailer = LogTailer(out=out, color=opts.color, poll_interval=cfg.poll_interval,
                       switch_interval=cfg.switch_interval, wait_interval=cfg.wait_interval)
    loop = asyncio.get_running_loop()
    handled = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, tailer.stop)
            handled.append(sig)
    try:
        with contextlib.suppress(OSError):
            Path(opts.dir).mkdir(parents=True, exist_ok=True)

        if opts.file:
            if not os.path.isfile(opts.file):
                print(f"Error: cannot open {opts.file}", file=sys.stderr)
                return 1
            await tailer.follow(opts.file)
            return 0

        path = find_latest_log(opts.dir)
        if not path:
            tailer.say(f"Waiting for mcp-tap logs in {opts.dir} ...\n")
            path = await tailer.wait_for_log(opts.dir)
            if path:
                tailer.say("\n")
        await tailer.follow(path, auto_switch_dir=opts.dir)
        return 0
    finally:
        for sig in handled:
            loop.remove_signal_handler(sig)


def main(argv: Optional[List[str]] = None) -> int:
    try:
        cfg = load_config()
    except ValueError as e:
        print(f"mcp-tap: {e}", file=sys.stderr)
        return 2
    opts = parse_watch_args(sys.argv[1:] if argv is None else argv, cfg)
    return asyncio.run(watch(opts, cfg))


if __name__ == "__main__":
    sys.exit(main())
