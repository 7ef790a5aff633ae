from __future__ import annotations

import logging
import socket
import threading
from typing import Tuple

from gatedserver.connection import (
    Dispatch,
    HttpRoute,
    RawRoute,
    http_dispatch,
    raw_dispatch,
    serve_connection,
)
from gatedserver.gate import AdmissionGate


def bind_listener(listen_host: str, listen_port: int, backlog: int = 128) -> socket.socket:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((listen_host, listen_port))
        s.listen(backlog)
        s.settimeout(1.0)  # allow periodic stop checks
    except OSError:
        s.close()
        raise
    return s


class GatedServer:
    """
    Accept connections one at a time and serve each on its own thread,
    never more than max_connections at once.

    The listening socket is bound in the constructor, so an unusable
    address fails here rather than inside serve_*().
    """

    def __init__(self, listen_host: str, listen_port: int, max_connections: int = 8) -> None:
        self.listen_host = listen_host
        self.listen_port = listen_port
        self.gate = AdmissionGate(max_connections)
        self._stop_event = threading.Event()
        self._sock = bind_listener(listen_host, listen_port)

    @property
    def server_address(self) -> Tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return host, port

    def serve_raw(self, route: RawRoute) -> None:
        self._serve(raw_dispatch(route))

    def serve_http(self, route: HttpRoute) -> None:
        self._serve(http_dispatch(route))

    def _serve(self, dispatch: Dispatch) -> None:
        host, port = self.server_address
        logging.info(
            "Listening on %s:%d (max %d connections)", host, port, self.gate.max_tasks
        )

        while not self._stop_event.is_set():
            try:
                client_sock, client_addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    break
                logging.warning("Accept failed: %s", exc)
                continue

            try:
                self.gate.submit(
                    lambda s=client_sock, a=client_addr: serve_connection(s, a, dispatch),
                    name=f"conn-{client_addr[0]}:{client_addr[1]}",
                )
            except Exception:
                logging.exception("Couldn't start handler for %s", client_addr)
                try:
                    client_sock.close()
                except OSError as exc:
                    logging.debug("Error closing connection %s: %s", client_addr, exc)

        logging.info("Server stopped accepting new connections")

    def shutdown(self) -> None:
        self._stop_event.set()
        try:
            self._sock.close()
        except OSError as exc:
            logging.debug("Error closing listener: %s", exc)
