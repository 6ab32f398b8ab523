# mcp_stdio_tap.py  (transparent MCP stdio proxy; readable traffic log + optional HTTP stream)
import sys, os, asyncio, argparse, codecs, contextlib, logging, signal
from asyncio.subprocess import PIPE
from typing import List, Optional

from tap_colors import create_colors
from tap_config import load_config
from tap_formatter import SessionContext, format_message
from tap_http import start_http_server
from tap_sink import default_log_path, make_sink
from tap_text import LineBuffer
import tap_watch

__version__ = "0.1.0"
KILL_GRACE_SEC = 3.0
DRAIN_TIMEOUT_SEC = 2.0

log = logging.getLogger("mcp-tap")

USAGE = """\
mcp-tap: transparent MCP stdio proxy with logging

Usage:
  mcp-tap [options] [--] <command> [args...]
  mcp-tap watch [--dir DIR] [--file FILE] [--no-color]

Examples:
  mcp-tap python server.py
  mcp-tap --log /tmp/tap.log -- node ./my-server.js
  mcp-tap --port 3456 python server.py
"""


def split_cmd(argv: List[str]) -> List[str]:
    if argv and argv[0] == "--":
        return argv[1:]
    return argv


def parse_args(argv: List[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="mcp-tap", usage="%(prog)s [options] [--] <command> [args...]",
                                 description="transparent MCP stdio proxy with logging")
    ap.add_argument("-l", "--log", default=None, help="write logs to this file")
    ap.add_argument("-p", "--port", type=int, default=None, help="stream logs over HTTP on this port")
    ap.add_argument("--config", default=None, help="YAML config file")
    ap.add_argument("-v", "--version", action="version", version=f"mcp-tap {__version__}")
    ap.add_argument("command", nargs=argparse.REMAINDER, help="server command and its arguments")
    args = ap.parse_args(argv)
    args.command = split_cmd(args.command)
    return args


def note(ctx: SessionContext, msg: str, error: bool = False):
    """Lifecycle record (child exit, signals, ...) written alongside the traffic."""
    c = ctx.colors
    color = c.RED if error else c.DIM
    ctx.sink.write(f"{color}{msg}{c.RESET}", msg)


async def pump_client_to_child(reader: asyncio.StreamReader, child_stdin, ctx: SessionContext):
    """Client stdin -> server stdin. Lines logged as CLIENT, bytes forwarded untouched."""
    lines = LineBuffer(lambda ln: format_message(ln, "client", ctx))
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            chunk = await reader.read(4096)
            if not chunk: break
            lines.feed(decoder.decode(chunk))
            child_stdin.write(chunk); await child_stdin.drain()
        lines.feed(decoder.decode(b"", final=True)); lines.flush()
    except (BrokenPipeError, ConnectionResetError):
        log.debug("server stdin closed")
    finally:
        with contextlib.suppress(Exception):
            child_stdin.close()


async def pump_child_to_client(child_stdout: asyncio.StreamReader, out, ctx: SessionContext,
                               on_disconnect=None):
    """Server stdout -> client stdout. Lines logged as SERVER, bytes forwarded untouched."""
    lines = LineBuffer(lambda ln: format_message(ln, "server", ctx))
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    connected = True
    while True:
        chunk = await child_stdout.read(4096)
        if not chunk: break
        lines.feed(decoder.decode(chunk))
        if not connected:
            continue
        try:
            out.write(chunk); out.flush()
        except BrokenPipeError:
            connected = False
            note(ctx, "[mcp-tap] client disconnected (EPIPE)")
            if on_disconnect:
                on_disconnect()
    lines.feed(decoder.decode(b"", final=True)); lines.flush()


async def pump_child_stderr(child_stderr: asyncio.StreamReader, ctx: SessionContext):
    """Server stderr -> log only, one record per line."""
    c = ctx.colors
    def on_line(ln: str):
        ctx.sink.write(f"{c.DIM}{tap_watch.STDERR_PREFIX}{c.RESET} {ln}", f"{tap_watch.STDERR_PREFIX} {ln}")
    lines = LineBuffer(on_line)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await child_stderr.read(4096)
        if not chunk: break
        lines.feed(decoder.decode(chunk))
    lines.feed(decoder.decode(b"", final=True)); lines.flush()


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    r = asyncio.StreamReader(); p = asyncio.StreamReaderProtocol(r)
    await loop.connect_read_pipe(lambda: p, sys.stdin)
    return r


def exit_status(rc: int):
    """(process exit code, log message) for a child return code."""
    if rc < 0:
        try:
            name = signal.Signals(-rc).name
        except ValueError:
            name = str(-rc)
        return 1, f"[mcp-tap] server exited with signal {name}"
    return rc, f"[mcp-tap] server exited with code {rc}"


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    cmd = args.command
    if not cmd:
        sys.stderr.write(USAGE)
        return 1

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"mcp-tap: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(stream=sys.stderr, level=cfg.log_level, format="[mcp-tap] %(message)s")

    sink = make_sink(args.log or cfg.log_file or default_log_path(cfg.log_dir, cmd[0]))
    ctx = SessionContext(sink, colors=create_colors(sink.echo is not None))

    server = None
    port = args.port or cfg.http_port
    if port:
        try:
            server = await start_http_server(port, sink, " ".join(cmd))
        except OSError as e:
            log.error("failed to start HTTP server: %s", e)

    try:
        proc = await asyncio.create_subprocess_exec(*cmd, stdin=PIPE, stdout=PIPE, stderr=PIPE,
                                                    env=os.environ.copy())
    except OSError as e:
        note(ctx, f"[mcp-tap] failed to start server: {e}", error=True)
        sink.close()
        return 1

    loop = asyncio.get_running_loop()

    def terminate_child():
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()

    def shutdown(sig: signal.Signals):
        note(ctx, f"[mcp-tap] received {sig.name}, shutting down")
        with contextlib.suppress(ProcessLookupError):
            proc.send_signal(sig)
        loop.call_later(KILL_GRACE_SEC, lambda: proc.returncode is None and proc.kill())

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown, sig)

    client_pump = asyncio.create_task(pump_client_to_child(await open_stdin_reader(), proc.stdin, ctx))
    server_pumps = [
        asyncio.create_task(pump_child_to_client(proc.stdout, sys.stdout.buffer, ctx, terminate_child)),
        asyncio.create_task(pump_child_stderr(proc.stderr, ctx)),
    ]
    rc = await proc.wait()
    # whatever the child wrote before exiting still gets logged and forwarded
    await asyncio.wait(server_pumps, timeout=DRAIN_TIMEOUT_SEC)
    for t in [client_pump, *server_pumps]:
        t.cancel()

    code, msg = exit_status(rc)
    note(ctx, msg)
    if server is not None:
        server.close()
    sink.close()
    return code


def run():
    argv = sys.argv[1:]
    if argv and argv[0] == "watch":
        sys.exit(tap_watch.main(argv[1:]))
    try:
        sys.exit(asyncio.run(main(argv)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
