# tap_formatter.py  (classify each JSON-RPC line and write readable records)
import json, time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from tap_colors import Colors, PLAIN, method_color
from tap_results import format_result
from tap_text import compact_json, js_text, present, pretty_json, truncate, ts

CALL_METHOD = "tools/call"
_MISSING = object()


class Sink(Protocol):
    def write(self, styled: str, plain: str) -> None: ...


@dataclass
class PendingRequest:
    method: str
    tool_name: Optional[str]
    timestamp: float


@dataclass
class SessionContext:
    """Per-proxy-session state shared by both traffic directions."""
    sink: Sink
    colors: Colors = PLAIN
    pending: Dict[Any, PendingRequest] = field(default_factory=dict)


def _has_params(params: Any) -> bool:
    return isinstance(params, (dict, list)) and len(params) > 0


def _params_record(ctx: SessionContext, params: Any):
    c = ctx.colors
    text = truncate(compact_json(params), 200)
    ctx.sink.write(f"    {c.DIM}{text}{c.RESET}", f"    {text}")


def format_message(line: str, direction: str, ctx: SessionContext) -> None:
    """Write the records for one raw line seen travelling in `direction`.

    direction is "client" (client -> server) or "server" (server -> client).
    Never raises on bad input: anything unparsable becomes a [raw] record.
    """
    c = ctx.colors
    is_client = direction == "client"
    arrow = "→" if is_client else "←"
    label = "CLIENT" if is_client else "SERVER"
    dir_color = c.CYAN if is_client else c.GREEN
    stamp = ts()
    head = f"{c.DIM}{stamp}{c.RESET} {dir_color}{arrow} {label}{c.RESET}"
    head_plain = f"{stamp} {arrow} {label}"

    try:
        msg = json.loads(line)
    except ValueError:
        msg = None
    if msg is None:
        raw = truncate(line.strip(), 200)
        ctx.sink.write(f"{head}  {c.YELLOW}[raw]{c.RESET} {raw}", f"{head_plain}  [raw] {raw}")
        return

    if isinstance(msg, dict):
        msg_id = msg.get("id", _MISSING)
        method = msg.get("method")
    else:
        msg_id, method = _MISSING, None
    if method is not None and not isinstance(method, str):
        method = js_text(method)

    if method and msg_id is _MISSING:
        _notification(ctx, head, head_plain, method, msg.get("params"))
    elif method:
        _request(ctx, head, head_plain, method, msg_id, msg.get("params"))
    elif msg_id is not _MISSING:
        _response(ctx, head, head_plain, msg_id, msg)
    else:
        raw = truncate(line.strip(), 200)
        ctx.sink.write(f"{head}  {c.DIM}{raw}{c.RESET}", f"{head_plain}  {raw}")


def _notification(ctx, head, head_plain, method, params):
    c = ctx.colors
    mc = method_color(method, c)
    ctx.sink.write(
        f"{head}  {c.BLUE}notification{c.RESET}  {mc}{method}{c.RESET}",
        f"{head_plain}  notification  {method}",
    )
    if _has_params(params):
        _params_record(ctx, params)


def _request(ctx, head, head_plain, method, msg_id, params):
    c = ctx.colors
    mc = method_color(method, c)
    tool_name = None
    if method == CALL_METHOD and isinstance(params, dict) and params.get("name"):
        tool_name = js_text(params["name"])

    # reusing an id that is still outstanding simply replaces the entry
    try:
        ctx.pending[msg_id] = PendingRequest(method, tool_name, time.time())
    except TypeError:  # unhashable id (object/array)
        pass

    rid = js_text(msg_id)
    extra = f"  {c.BOLD}{tool_name}{c.RESET}" if tool_name else ""
    extra_plain = f"  {tool_name}" if tool_name else ""
    ctx.sink.write(
        f"{head}  {c.WHITE}request{c.RESET}  {mc}{method}{c.RESET}{extra}  {c.DIM}#{rid}{c.RESET}",
        f"{head_plain}  request  {method}{extra_plain}  #{rid}",
    )

    arguments = params.get("arguments") if isinstance(params, dict) else None
    if method == CALL_METHOD and present(arguments):
        for ln in pretty_json(arguments).split("\n"):
            ctx.sink.write(f"    {c.DIM}{ln}{c.RESET}", f"    {ln}")
    elif _has_params(params):
        _params_record(ctx, params)


def _response(ctx, head, head_plain, msg_id, msg):
    c = ctx.colors
    try:
        pending = ctx.pending.get(msg_id)
    except TypeError:  # unhashable id (object/array)
        pending = None
    req_method = pending.method if pending else "unknown"
    mc = method_color(req_method, c)
    elapsed = f"{round((time.time() - pending.timestamp) * 1000)}ms" if pending else ""
    rid = js_text(msg_id)

    error = msg.get("error")
    if present(error):
        err = error if isinstance(error, dict) else {}
        code = js_text(err.get("code") or "?")
        err_msg = js_text(err.get("message") or "Unknown error")
        ctx.sink.write(
            f"{head}  {c.RED}{c.BOLD}ERROR{c.RESET}  {mc}({req_method} #{rid}){c.RESET}  {c.DIM}{elapsed}{c.RESET}",
            f"{head_plain}  ERROR  ({req_method} #{rid})  {elapsed}",
        )
        ctx.sink.write(f"    {c.RED}[{code}] {err_msg}{c.RESET}", f"    [{code}] {err_msg}")
    else:
        ctx.sink.write(
            f"{head}  {c.WHITE}response{c.RESET}  {mc}{req_method}{c.RESET}  {c.DIM}#{rid}  {elapsed}{c.RESET}",
            f"{head_plain}  response  {req_method}  #{rid}  {elapsed}",
        )
        format_result(req_method, msg.get("result"), ctx)

    if pending:
        del ctx.pending[msg_id]
