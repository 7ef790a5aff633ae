from __future__ import annotations

from typing import Dict, Tuple


def _format_headers(headers: Dict[str, str]) -> str:
    if not headers:
        return "{}"
    rows = "".join(f"    {k!r}: {v!r},\n" for k, v in headers.items())
    return "{\n" + rows + "}"


def echo_route(
    http_line: Tuple[str, str], headers: Dict[str, str], body: str
) -> Tuple[bytes, bool]:
    """
    Describe the parsed request back to the client as text/plain.

    The connection stays open unless the client sent "Connection: close".
    """
    text = f"Http Line: {http_line!r}\r\nHead: {_format_headers(headers)}\r\n"
    if body:
        text += f"Body: {body}\r\n"
    payload = text.encode("utf-8")

    response = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/plain; charset=utf-8\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "\r\n"
    ).encode("ascii") + payload

    keep_alive = headers.get("Connection") != "close"
    return response, keep_alive


def raw_echo_route(raw: bytes) -> Tuple[bytes, bool]:
    """Send the received bytes back as the body of a closing 200 response."""
    head = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: application/octet-stream\r\n"
        f"Content-Length: {len(raw)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode("ascii")
    return head + raw, False
