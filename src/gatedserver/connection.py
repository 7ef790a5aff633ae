from __future__ import annotations

import io
import logging
import socket
from typing import Any, Callable, Dict, Tuple

from gatedserver.http import MalformedRequest, parse_http_request, send_http_error


Outcome = Tuple[bytes, bool]
RawRoute = Callable[[bytes], Outcome]
HttpRoute = Callable[[Tuple[str, str], Dict[str, str], str], Outcome]
Dispatch = Callable[[bytes], Any]

EMPTY_INPUT = "Empty Input!"
NON_STANDARD = "Non-Standard HTTP Structure!"


def raw_dispatch(route: RawRoute) -> Dispatch:
    def dispatch(buffer: bytes) -> Any:
        return route(buffer)

    return dispatch


def http_dispatch(route: HttpRoute) -> Dispatch:
    def dispatch(buffer: bytes) -> Any:
        req = parse_http_request(buffer)
        return route((req.method, req.path), req.headers, req.body)

    return dispatch


def _unpack_outcome(outcome: Any) -> Outcome:
    try:
        data, keep_alive = outcome
    except (TypeError, ValueError):
        raise TypeError(f"route must return (bytes, keep_alive), got {outcome!r}") from None
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"route response must be bytes, got {type(data).__name__}")
    return bytes(data), bool(keep_alive)


def run_connection(
    reader: io.BufferedReader,
    writer: io.BufferedIOBase,
    dispatch: Dispatch,
    peer: Any = None,
) -> None:
    """
    Serve requests from one connection until the route declines keep-alive
    or something fails.

    Each cycle peeks whatever the reader has available without consuming it.
    The peeked bytes are consumed only when the connection is kept alive, so
    a single read is always treated as exactly one request.

    Any failure sends the 520 diagnostic and ends the loop.
    """
    while True:
        try:
            buffer = reader.peek()
        except OSError as exc:
            logging.debug("Read failed for %s: %s", peer, exc)
            send_http_error(writer, str(exc))
            return

        if not buffer:
            send_http_error(writer, EMPTY_INPUT)
            return

        try:
            response, keep_alive = _unpack_outcome(dispatch(buffer))
        except MalformedRequest as exc:
            logging.debug("Malformed request from %s: %s", peer, exc)
            send_http_error(writer, NON_STANDARD)
            return
        except BaseException as exc:
            # includes SystemExit raised from inside a route
            logging.exception("Route failed for %s", peer)
            send_http_error(writer, str(exc) or type(exc).__name__)
            return

        try:
            writer.write(response)
        except OSError as exc:
            logging.debug("Write failed for %s: %s", peer, exc)
            send_http_error(writer, str(exc))
            return

        if not keep_alive:
            return

        reader.read(len(buffer))

        try:
            writer.flush()
        except OSError as exc:
            logging.debug("Flush failed for %s: %s", peer, exc)
            send_http_error(writer, str(exc))
            return


def serve_connection(client_sock: socket.socket, client_addr: Any, dispatch: Dispatch) -> None:
    """Own an accepted socket for its whole life, closing it on the way out."""
    logging.debug("Connection opened: %s", client_addr)
    try:
        with client_sock:
            with client_sock.makefile("rb") as reader, client_sock.makefile("wb") as writer:
                run_connection(reader, writer, dispatch, peer=client_addr)
    except OSError as exc:
        # pending output could not be pushed out on close
        logging.debug("Error closing connection %s: %s", client_addr, exc)
    logging.debug("Connection closed: %s", client_addr)
