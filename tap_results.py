# tap_results.py  (human summaries of JSON-RPC result payloads)
import json, math
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from tap_text import compact_json, js_text, pretty_json, truncate

if TYPE_CHECKING:  # pragma: no cover
    from tap_formatter import SessionContext

NOISE_FIELDS = {"id", "timestamp"}
LIST_FULL_MAX = 8
LIST_HEAD = 6


# ---------- JSON tree transforms ----------

class JsonVisitor:
    """Rebuild a parsed JSON value; subclasses override the node they change."""

    def visit(self, value: Any, inside_array: bool = False) -> Any:
        if isinstance(value, list):
            return self.visit_array(value)
        if isinstance(value, dict):
            return self.visit_object(value, inside_array)
        if isinstance(value, str):
            return self.visit_string(value)
        return value

    def visit_array(self, items: List[Any]) -> List[Any]:
        return [self.visit(item, inside_array=True) for item in items]

    def visit_object(self, obj: Dict[str, Any], inside_array: bool) -> Dict[str, Any]:
        return {k: self.visit(v) for k, v in obj.items()}

    def visit_string(self, s: str) -> Any:
        return s


class _ArrayTruncator(JsonVisitor):
    def __init__(self, max_items: int):
        self.max_items = max_items

    def visit_array(self, items):
        kept = [self.visit(item, inside_array=True) for item in items[: self.max_items]]
        if len(items) > self.max_items:
            kept.append(f"... +{len(items) - self.max_items} more")
        return kept


class _StringTruncator(JsonVisitor):
    def __init__(self, max_len: int):
        self.max_len = max_len

    def visit_string(self, s):
        return truncate(s, self.max_len)


class _NoiseRemover(JsonVisitor):
    # only objects sitting directly in an array lose their noise keys
    def visit_object(self, obj, inside_array):
        out = {}
        for k, v in obj.items():
            if inside_array and k in NOISE_FIELDS:
                continue
            if inside_array and k == "graphql" and isinstance(v, dict) and not v:
                continue
            out[k] = self.visit(v)
        return out


def truncate_arrays(obj: Any, max_items: int = 3) -> Any:
    return _ArrayTruncator(max_items).visit(obj)


def truncate_string_values(obj: Any, max_len: int = 100) -> Any:
    return _StringTruncator(max_len).visit(obj)


def remove_noise_fields(obj: Any, inside_array: bool = False) -> Any:
    return _NoiseRemover().visit(obj, inside_array)


def try_format_json(text: Any) -> Optional[str]:
    """Pretty-print text holding a JSON object or array, trimmed for display.

    Returns None for invalid JSON and for primitive top-level values.
    """
    if not isinstance(text, str):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    if not isinstance(parsed, (dict, list)):
        return None
    shortened = truncate_string_values(remove_noise_fields(truncate_arrays(parsed)))
    return pretty_json(shortened)


# ---------- result shapes ----------

class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


class ToolsListResult(_Lenient):
    tools: List[Any]


class ResourcesListResult(_Lenient):
    resources: List[Any]


class PromptsListResult(_Lenient):
    prompts: List[Any]


class CallToolResult(_Lenient):
    content: List[Any]
    isError: Any = None


class InitializeResult(_Lenient):
    capabilities: Dict[str, Any]
    serverInfo: Any = None


M = TypeVar("M", bound=BaseModel)


def _parse(model: Type[M], result: Any) -> Optional[M]:
    try:
        return model.model_validate(result)
    except ValidationError:
        return None


# ---------- emitters ----------

def _emit(ctx: "SessionContext", styled: str, plain: str):
    ctx.sink.write(styled, plain)


def _name_of(item: Any, fallback_key: Optional[str] = None) -> str:
    if not isinstance(item, dict):
        return ""
    name = item.get("name")
    if not name and fallback_key:
        name = item.get(fallback_key)
    return "" if name is None else js_text(name)


def _summarize_names(names: List[str]) -> str:
    if len(names) <= LIST_FULL_MAX:
        return ", ".join(names)
    return ", ".join(names[:LIST_HEAD]) + f", ... +{len(names) - LIST_HEAD} more"


def _emit_listing(ctx, kind: str, color: str, items: List[Any], fallback_key=None):
    c = ctx.colors
    summary = _summarize_names([_name_of(it, fallback_key) for it in items])
    text = f"({len(items)} {kind}: {summary})"
    _emit(ctx, f"    {color}{text}{c.RESET}", f"    {text}")


def _tools_list(ctx, result) -> bool:
    parsed = _parse(ToolsListResult, result)
    if parsed is None:
        return False
    _emit_listing(ctx, "tools", ctx.colors.GREEN, parsed.tools)
    return True


def _resources_list(ctx, result) -> bool:
    parsed = _parse(ResourcesListResult, result)
    if parsed is None:
        return False
    _emit_listing(ctx, "resources", ctx.colors.CYAN, parsed.resources, fallback_key="uri")
    return True


def _prompts_list(ctx, result) -> bool:
    parsed = _parse(PromptsListResult, result)
    if parsed is None:
        return False
    _emit_listing(ctx, "prompts", ctx.colors.YELLOW, parsed.prompts)
    return True


def image_size(data: Any) -> str:
    if not data or not isinstance(data, str):
        return "?"
    # base64 -> bytes -> KB, rounded half up
    return f"{math.floor(len(data) * 3 / 4 / 1024 + 0.5)}KB"


def _text_block(ctx, block: Dict[str, Any]):
    c = ctx.colors
    text = block.get("text")
    formatted = try_format_json(text)
    if formatted is not None:
        _emit(ctx, f"    {c.DIM}[text]{c.RESET}", "    [text]")
        for line in formatted.split("\n"):
            _emit(ctx, f"    {c.DIM}    {line}{c.RESET}", f"        {line}")
        return
    text = text if isinstance(text, str) else ("" if text is None else js_text(text))
    for line in text.split("\n"):
        _emit(ctx, f"    {c.DIM}[text]{c.RESET} {line}", f"    [text] {line}")


def _content_block(ctx, block: Any):
    c = ctx.colors
    kind = block.get("type") if isinstance(block, dict) else None
    if kind == "text":
        _text_block(ctx, block)
    elif kind == "image":
        mime = block.get("mimeType") or "?"
        size = image_size(block.get("data"))
        _emit(ctx, f"    {c.DIM}[image {mime}]{c.RESET} {size}", f"    [image {mime}] {size}")
    elif kind == "resource":
        resource = block.get("resource")
        uri = (resource.get("uri") if isinstance(resource, dict) else None) or "?"
        uri = truncate(js_text(uri))
        _emit(ctx, f"    {c.DIM}[resource]{c.RESET} {uri}", f"    [resource] {uri}")
    else:
        label = js_text(kind) if kind else "?"
        raw = truncate(compact_json(block), 200)
        _emit(ctx, f"    {c.DIM}[{label}]{c.RESET} {raw}", f"    [{label}] {raw}")


def _tools_call(ctx, result) -> bool:
    parsed = _parse(CallToolResult, result)
    if parsed is None:
        return False
    for block in parsed.content:
        _content_block(ctx, block)
    if parsed.isError:
        c = ctx.colors
        _emit(ctx, f"    {c.RED}(isError: true){c.RESET}", "    (isError: true)")
    return True


def _initialize(ctx, result) -> bool:
    parsed = _parse(InitializeResult, result)
    if parsed is None:
        return False
    c = ctx.colors
    caps = ", ".join(parsed.capabilities.keys())
    info = parsed.serverInfo if isinstance(parsed.serverInfo, dict) else {}
    name = js_text(info.get("name") or "?")
    version = js_text(info.get("version") or "?")
    _emit(
        ctx,
        f"    {c.MAGENTA}{name} v{version}{c.RESET}  capabilities: {caps}",
        f"    {name} v{version}  capabilities: {caps}",
    )
    return True


SUMMARIZERS: Dict[str, Callable[[Any, Any], bool]] = {
    "tools/list": _tools_list,
    "resources/list": _resources_list,
    "prompts/list": _prompts_list,
    "tools/call": _tools_call,
    "initialize": _initialize,
}


def _generic(ctx, result):
    raw = compact_json(result)
    if len(raw) > 2:
        c = ctx.colors
        display = truncate(raw, 300)
        _emit(ctx, f"    {c.DIM}{display}{c.RESET}", f"    {display}")


def format_result(method: str, result: Any, ctx: "SessionContext") -> None:
    """Write a summary of result (keyed by the originating method) to ctx.sink."""
    if not result:
        return
    summarize = SUMMARIZERS.get(method)
    if summarize is not None and summarize(ctx, result):
        return
    _generic(ctx, result)
