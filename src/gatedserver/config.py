from __future__ import annotations

from dataclasses import dataclass

MODES = ("http", "raw")


@dataclass(frozen=True)
class Settings:
    listen_host: str = "0.0.0.0"
    listen_port: int = 8888
    max_connections: int = 8
    mode: str = "http"

    def __post_init__(self) -> None:
        if not 0 <= self.listen_port <= 65535:
            raise ValueError("listen_port must be between 0 and 65535")
        if self.max_connections < 0:
            raise ValueError("max_connections must be >= 0")
        if self.mode not in MODES:
            raise ValueError("mode must be http or raw")
