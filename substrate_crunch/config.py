#!/usr/bin/env python3
"""
Crunch Configuration
Read-only settings snapshot taken once at process start
"""

from dataclasses import dataclass, replace
from typing import Iterable, Tuple

DEFAULT_SUBSTRATE_WS_URL = "ws://127.0.0.1:9944"
DEFAULT_HEALTHCHECK_HOST = "127.0.0.1"
DEFAULT_HEALTHCHECK_PORT = 9999


@dataclass(frozen=True)
class CrunchConfig:
    substrate_ws_url: str = DEFAULT_SUBSTRATE_WS_URL
    stashes: Tuple[str, ...] = ()
    stashes_url: str = ""

    # Seconds between successful batches in flakes mode
    interval: int = 21600
    # Backoff base: wait = 60 * error_interval ** n
    error_interval: int = 2
    max_backoff: int = 21600
    reconnect_pause: float = 6.0
    restart_pause: float = 1.0
    # Upper bound of the random delay before reacting to a new era
    era_wait: int = 0

    onet_api_enabled: bool = False
    onet_api_url: str = ""
    onet_api_key: str = ""
    onet_number_last_sessions: int = 6

    notify_url: str = ""

    healthcheck_host: str = DEFAULT_HEALTHCHECK_HOST
    healthcheck_port: int = DEFAULT_HEALTHCHECK_PORT

    http_timeout: int = 10

    def with_stashes(self, stashes: Iterable[str]) -> "CrunchConfig":
        """Return a copy with the given stashes appended, preserving order and dropping duplicates"""
        merged = list(self.stashes)
        for stash in stashes:
            if stash not in merged:
                merged.append(stash)
        return replace(self, stashes=tuple(merged))


def parse_stashes(value: str) -> Tuple[str, ...]:
    """Split a comma separated stash list"""
    if not value:
        return ()
    return tuple(s.strip() for s in value.split(",") if s.strip())
