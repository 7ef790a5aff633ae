from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Dict, List


HEADER_END = "\r\n\r\n"

ERROR_HEAD = (
    "HTTP/1.1 520 LOVE YOU\r\n"
    "Content-Type: text/plain; charset=utf-8\r\n"
    "Connection: close\r\n"
    "\r\n"
)


class MalformedRequest(ValueError):
    pass


@dataclass(frozen=True)
class HttpRequest:
    method: str
    path: str
    version: str
    headers: Dict[str, str]
    body: str


def _lines(block: str) -> List[str]:
    # "\n" separated, with an optional "\r" before each break
    if not block:
        return []
    lines = block.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_http_request(raw: bytes) -> HttpRequest:
    """
    Parse one request out of a single read.

    Invalid UTF-8 is replaced rather than rejected. Everything after the
    first blank line is the body; no Content-Length is consulted.
    Header keys keep their case and a repeated key keeps the last value.
    """
    text = raw.decode("utf-8", errors="replace")
    head, sep, body = text.partition(HEADER_END)
    if not sep:
        raise MalformedRequest("Missing header terminator")

    lines = _lines(head)
    if not lines:
        raise MalformedRequest("Empty request head")

    parts = lines[0].split()
    if len(parts) != 3:
        raise MalformedRequest(f"Invalid request line: {lines[0]!r}")
    method, path, version = parts

    headers: Dict[str, str] = {}
    for line in lines[1:]:
        key, colon, value = line.partition(":")
        if not colon:
            continue
        headers[key.strip()] = value.strip()

    return HttpRequest(method=method, path=path, version=version, headers=headers, body=body)


def send_http_error(writer: BinaryIO, message: str) -> None:
    """
    Write the fixed 520 diagnostic response and flush it.

    Failures are logged and swallowed: the connection is being torn down
    either way.
    """
    response = (ERROR_HEAD + message + "\r\n").encode("utf-8")

    try:
        writer.write(response)
    except OSError as exc:
        logging.error("Write failure: %s FOR: %s", message, exc)

    try:
        writer.flush()
    except OSError as exc:
        logging.error("Flush failure: %s FOR: %s", message, exc)
