# tap_text.py  (timestamps, truncation, line reassembly)
import datetime, json
from typing import Any, Callable


def ts() -> str:
    return datetime.datetime.now().strftime("%H:%M:%S.%f")[:-3]


def truncate(s: str, max_len: int = 200) -> str:
    """Cut s to max_len characters, ending in "..." when shortened."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."


def compact_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def pretty_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2)


def js_text(value: Any) -> str:
    """Render a JSON scalar as it appears inline in a record (ids, names)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return compact_json(value)
    return str(value)


def present(value: Any) -> bool:
    """True for any JSON value except null, false, 0 and "". Empty {} and [] count."""
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


class LineBuffer:
    """Accumulate decoded chunks and hand complete, non-blank lines to on_line."""

    def __init__(self, on_line: Callable[[str], None]):
        self.on_line = on_line
        self.pending = ""

    def feed(self, chunk: str):
        self.pending += chunk
        *lines, self.pending = self.pending.split("\n")
        for ln in lines:
            if ln.strip():
                self.on_line(ln)

    def flush(self):
        # best effort: a final line without a newline at EOF
        tail, self.pending = self.pending, ""
        if tail.strip():
            self.on_line(tail)
