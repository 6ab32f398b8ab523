#
# Small MCP server to run behind mcp-tap
#
# - Uses stdio
# - Covers every result shape the tap summarizes: tools, resources, prompts,
#   text and JSON tool output, tool errors
#
from mcp.server.fastmcp import FastMCP
import sys
import logging

logging.basicConfig(stream=sys.stderr, level=logging.WARNING)

mcp = FastMCP("Echo")


@mcp.tool()
def echo(message: str) -> str:
    """Echo the message back"""
    return message


@mcp.tool()
def add(a: int, b: int) -> int:
    """Add two numbers"""
    return a + b


@mcp.tool()
def search(query: str, limit: int = 5) -> dict:
    """Fake search returning a JSON document with a list of hits"""
    hits = [{"id": f"hit-{i}", "title": f"{query} #{i}", "timestamp": "2024-01-01T00:00:00Z"}
            for i in range(limit)]
    return {"query": query, "total": limit, "hits": hits}


@mcp.tool()
def fail(reason: str = "requested failure") -> str:
    """Always raises, so the client sees isError"""
    raise RuntimeError(reason)


@mcp.resource("echo://readme")
def readme() -> str:
    """What this server is for"""
    return "Echo server used to exercise mcp-tap."


@mcp.prompt()
def greeting(name: str) -> str:
    """Say hello"""
    return f"Say hello to {name}."


if __name__ == "__main__":
    print("echo server starting on stdio", file=sys.stderr, flush=True)
    mcp.run(transport="stdio")
