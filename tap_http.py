# tap_http.py  (plain-text HTTP stream of the log records, one response per client)
import asyncio, contextlib, logging

from tap_sink import LogSink

log = logging.getLogger(__name__)

RESPONSE_HEAD = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"Cache-Control: no-cache\r\n"
    b"Connection: close\r\n"
    b"\r\n"
)


async def _serve_client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                        sink: LogSink, description: str):
    peer = writer.get_extra_info("peername")
    try:
        # request head is ignored; every path gets the stream
        while True:
            line = await reader.readline()
            if not line or line in (b"\r\n", b"\n"):
                break
        writer.write(RESPONSE_HEAD)
        writer.write(f"[mcp-tap] streaming logs for: {description}\n\n".encode("utf-8"))
        await writer.drain()
        sink.add_subscriber(writer)
        log.debug("http client connected: %s", peer)
        # hold the connection until the client goes away
        while await reader.read(4096):
            pass
    except ConnectionError as e:
        log.debug("http client %s: %r", peer, e)
    finally:
        sink.remove_subscriber(writer)
        with contextlib.suppress(Exception):
            writer.close()
        log.debug("http client disconnected: %s", peer)


async def start_http_server(port: int, sink: LogSink, description: str,
                            host: str = "127.0.0.1") -> asyncio.AbstractServer:
    server = await asyncio.start_server(
        lambda r, w: _serve_client(r, w, sink, description), host, port)
    log.info("log server listening on http://%s:%d", host, port)
    return server
