"""Tests for tap_formatter.py"""

import json
import re
import time

from tap_formatter import PendingRequest, format_message

TS = r"\d{2}:\d{2}:\d{2}\.\d{3}"


def rpc(**fields):
    return json.dumps({"jsonrpc": "2.0", **fields})


class TestNotification:
    def test_header(self, ctx, sink):
        format_message(rpc(method="notifications/initialized"), "client", ctx)
        assert len(sink.plain) == 1
        assert re.fullmatch(TS + r" → CLIENT  notification  notifications/initialized", sink.plain[0])

    def test_params_record(self, ctx, sink):
        format_message(rpc(method="notifications/progress", params={"token": "abc", "progress": 50}),
                       "server", ctx)
        assert len(sink.plain) == 2
        assert sink.plain[1] == '    {"token":"abc","progress":50}'

    def test_empty_params_skipped(self, ctx, sink):
        format_message(rpc(method="notifications/cancelled", params={}), "client", ctx)
        assert len(sink.plain) == 1

    def test_long_params_truncated(self, ctx, sink):
        format_message(rpc(method="notifications/message", params={"data": "x" * 500}), "server", ctx)
        assert len(sink.plain[1]) == 4 + 200


class TestRequest:
    def test_registers_pending(self, ctx, sink):
        format_message(rpc(id=1, method="tools/list"), "client", ctx)
        assert re.fullmatch(TS + r" → CLIENT  request  tools/list  #1", sink.plain[0])
        assert ctx.pending[1].method == "tools/list"
        assert ctx.pending[1].tool_name is None

    def test_tools_call_shows_tool_and_arguments(self, ctx, sink):
        format_message(rpc(id=5, method="tools/call", params={"name": "echo", "arguments": {"msg": "hi"}}),
                       "client", ctx)
        assert sink.plain[0].endswith("request  tools/call  echo  #5")
        assert sink.plain[1:] == ["    {", '      "msg": "hi"', "    }"]
        assert ctx.pending[5].tool_name == "echo"

    def test_tools_call_with_empty_arguments(self, ctx, sink):
        format_message(rpc(id=9, method="tools/call", params={"name": "ping", "arguments": {}}),
                       "client", ctx)
        assert sink.plain[0].endswith("request  tools/call  ping  #9")
        assert sink.plain[1:] == ["    {}"]

    def test_tools_call_without_arguments_logs_params(self, ctx, sink):
        format_message(rpc(id=10, method="tools/call", params={"name": "ping"}), "client", ctx)
        assert sink.plain[1:] == ['    {"name":"ping"}']

    def test_tool_name_only_for_call_method(self, ctx, sink):
        format_message(rpc(id=2, method="prompts/get", params={"name": "greeting"}), "client", ctx)
        assert sink.plain[0].endswith("request  prompts/get  #2")
        assert sink.plain[1] == '    {"name":"greeting"}'
        assert ctx.pending[2].tool_name is None

    def test_string_ids(self, ctx, sink):
        format_message(rpc(id="abc", method="ping"), "client", ctx)
        assert sink.plain[0].endswith("#abc")
        assert "abc" in ctx.pending

    def test_duplicate_id_overwrites(self, ctx, sink):
        format_message(rpc(id=7, method="tools/list"), "client", ctx)
        format_message(rpc(id=7, method="prompts/list"), "client", ctx)
        assert ctx.pending[7].method == "prompts/list"
        assert len(ctx.pending) == 1


class TestResponse:
    def test_success_uses_pending_method(self, ctx, sink):
        ctx.pending[1] = PendingRequest("tools/list", None, time.time() - 0.05)
        format_message(rpc(id=1, result={"tools": [{"name": "echo"}]}), "server", ctx)
        assert re.fullmatch(TS + r" ← SERVER  response  tools/list  #1  \d+ms", sink.plain[0])
        elapsed = int(re.search(r"(\d+)ms$", sink.plain[0]).group(1))
        assert elapsed >= 50
        assert sink.plain[1] == "    (1 tools: echo)"
        assert 1 not in ctx.pending

    def test_unknown_id(self, ctx, sink):
        format_message(rpc(id=99, result={"ok": True}), "server", ctx)
        assert re.fullmatch(TS + r" ← SERVER  response  unknown  #99  ", sink.plain[0])
        assert sink.plain[1] == '    {"ok":true}'

    def test_error(self, ctx, sink):
        ctx.pending[2] = PendingRequest("tools/call", "fail", time.time())
        format_message(rpc(id=2, error={"code": -32600, "message": "Invalid request"}), "server", ctx)
        assert re.fullmatch(TS + r" ← SERVER  ERROR  \(tools/call #2\)  \d+ms", sink.plain[0])
        assert sink.plain[1] == "    [-32600] Invalid request"
        assert 2 not in ctx.pending

    def test_error_for_unregistered_id(self, ctx, sink):
        format_message(rpc(id=3, error={"code": -32601, "message": "Method not found"}), "server", ctx)
        assert len(sink.plain) == 2
        assert "ERROR  (unknown #3)" in sink.plain[0]
        assert sink.plain[1] == "    [-32601] Method not found"

    def test_empty_error_object_is_an_error(self, ctx, sink):
        ctx.pending[4] = PendingRequest("tools/call", "x", time.time())
        format_message(rpc(id=4, error={}), "server", ctx)
        assert len(sink.plain) == 2
        assert re.fullmatch(TS + r" ← SERVER  ERROR  \(tools/call #4\)  \d+ms", sink.plain[0])
        assert sink.plain[1] == "    [?] Unknown error"
        assert 4 not in ctx.pending

    def test_error_defaults(self, ctx, sink):
        format_message(rpc(id=4, error={"data": 1}), "server", ctx)
        assert "ERROR  (unknown #4)" in sink.plain[0]
        assert sink.plain[1] == "    [?] Unknown error"

    def test_null_error_is_a_success(self, ctx, sink):
        format_message(rpc(id=6, error=None, result={"ok": 1}), "server", ctx)
        assert "response  unknown  #6" in sink.plain[0]
        assert sink.plain[1] == '    {"ok":1}'


def test_request_response_round_trip(ctx, sink):
    format_message('{"jsonrpc":"2.0","id":1,"method":"tools/list"}', "client", ctx)
    format_message('{"jsonrpc":"2.0","id":1,"result":{"tools":[{"name":"echo"},{"name":"add"}]}}',
                   "server", ctx)
    assert len(sink.plain) == 3
    assert "#1" in sink.plain[0] and "tools/list" in sink.plain[0]
    assert "tools/list" in sink.plain[1] and "#1" in sink.plain[1]
    assert re.search(r"\d+ms$", sink.plain[1])
    assert "2 tools" in sink.plain[2] and "echo, add" in sink.plain[2]
    assert 1 not in ctx.pending


class TestUnparsable:
    def test_invalid_json(self, ctx, sink):
        format_message("not json at all", "client", ctx)
        assert re.fullmatch(TS + r" → CLIENT  \[raw\] not json at all", sink.plain[0])

    def test_invalid_json_truncated(self, ctx, sink):
        format_message("  " + "y" * 400 + "  ", "server", ctx)
        assert sink.plain[0].endswith("[raw] " + "y" * 197 + "...")

    def test_object_without_method_or_id(self, ctx, sink):
        format_message('{"jsonrpc":"2.0"}', "server", ctx)
        assert re.fullmatch(TS + r' ← SERVER  \{"jsonrpc":"2.0"\}', sink.plain[0])
        assert "[raw]" not in sink.plain[0]

    def test_non_object_json(self, ctx, sink):
        format_message("[1, 2, 3]", "client", ctx)
        assert sink.plain[0].endswith("CLIENT  [1, 2, 3]")

    def test_unhashable_id_does_not_raise(self, ctx, sink):
        format_message(rpc(id={"x": 1}, method="ping"), "client", ctx)
        format_message(rpc(id={"x": 1}, result={}), "server", ctx)
        assert len(sink.plain) == 2


def test_direction_labels(ctx, sink):
    msg = rpc(method="notifications/test")
    format_message(msg, "client", ctx)
    format_message(msg, "server", ctx)
    assert "→ CLIENT" in sink.plain[0]
    assert "← SERVER" in sink.plain[1]


def test_contexts_are_isolated(sink):
    from tap_formatter import SessionContext
    a, b = SessionContext(sink), SessionContext(sink)
    format_message(rpc(id=1, method="initialize"), "client", a)
    assert 1 in a.pending and 1 not in b.pending
