"""
Plugin usage counters.

Each accepted request bumps a statsd counter named after the plugin with
its file extension removed, so ``deploy.sh`` and ``deploy.py`` both count
as ``deploy``.
"""

import logging
import re
import socket
from typing import Protocol

from statsd import StatsClient

logger = logging.getLogger(__name__)

_EXTENSION_PATTERN = re.compile(r"\.\w+")


def metric_name(plugin: str) -> str:
    """Counter name for a plugin: every ``.ext`` segment stripped."""
    return _EXTENSION_PATTERN.sub("", plugin)


class Counter(Protocol):
    """Anything that can increment a named counter."""

    def increment(self, name: str) -> None: ...


class StatsdCounter:
    """Fire-and-forget counter backed by a statsd UDP client."""

    def __init__(self, host: str, port: int, prefix: str = ""):
        self._client = StatsClient(host=host, port=port, prefix=prefix or None)

    def increment(self, name: str) -> None:
        try:
            self._client.incr(name)
        except Exception as e:
            logger.warning(f"Failed to increment statsd counter {name}: {e}")

    def close(self) -> None:
        self._client.close()


class NullCounter:
    """Counter used when metrics are disabled."""

    def increment(self, name: str) -> None:
        logger.debug(f"Metrics disabled, not counting {name}")


def create_counter(enabled: bool, host: str, port: int, prefix: str) -> Counter:
    """
    Build the configured counter.

    A statsd host that cannot be resolved disables metrics with a warning
    rather than preventing the service from starting.
    """
    if not enabled:
        return NullCounter()
    try:
        return StatsdCounter(host, port, prefix)
    except (socket.gaierror, OSError) as e:
        logger.warning(f"statsd unavailable at {host}:{port}, metrics disabled: {e}")
        return NullCounter()
