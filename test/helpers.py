from __future__ import annotations

import socket
import threading

from gatedserver.server import GatedServer


class FakeReader:
    """Buffered-reader stand-in: peek() repeats the head chunk until read() consumes it."""

    def __init__(self, chunks: list[bytes | Exception], ops: list[str] | None = None) -> None:
        self._chunks = list(chunks)
        self.ops = ops if ops is not None else []
        self.consumed: list[bytes] = []

    def peek(self, _size: int = 0) -> bytes:
        self.ops.append("peek")
        if not self._chunks:
            return b""
        head = self._chunks[0]
        if isinstance(head, Exception):
            raise head
        return head

    def read(self, size: int) -> bytes:
        self.ops.append("read")
        head = self._chunks.pop(0)
        assert isinstance(head, bytes) and len(head) == size
        self.consumed.append(head)
        return head


class FakeWriter:
    def __init__(
        self,
        ops: list[str] | None = None,
        fail_write: bool = False,
        fail_flush: bool = False,
    ) -> None:
        self.ops = ops if ops is not None else []
        self.data = bytearray()
        self.writes = 0
        self.flushes = 0
        self._fail_write = fail_write
        self._fail_flush = fail_flush

    def write(self, data: bytes) -> int:
        self.ops.append("write")
        if self._fail_write:
            raise BrokenPipeError("Broken pipe")
        self.writes += 1
        self.data += data
        return len(data)

    def flush(self) -> None:
        self.ops.append("flush")
        if self._fail_flush:
            raise ConnectionResetError("Connection reset by peer")
        self.flushes += 1


def start_server(mode: str, route, max_connections: int = 4) -> GatedServer:
    server = GatedServer("127.0.0.1", 0, max_connections=max_connections)
    serve = server.serve_raw if mode == "raw" else server.serve_http
    t = threading.Thread(target=serve, args=(route,), daemon=True)
    t.start()
    return server


def connect(server: GatedServer) -> socket.socket:
    return socket.create_connection(server.server_address, timeout=5.0)


def recv_response(sock: socket.socket) -> bytes:
    """Read one response framed by Content-Length."""
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk

    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        key, _, value = line.partition(b":")
        if key.strip().lower() == b"content-length":
            length = int(value.strip())
    while len(body) < length:
        chunk = sock.recv(4096)
        if not chunk:
            break
        body += chunk
    return head + b"\r\n\r\n" + body


def recv_all(sock: socket.socket) -> bytes:
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk
