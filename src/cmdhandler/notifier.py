"""
Failure notifications for background plugin runs.

When a plugin started from chat fails, its captured output is posted back to
the requester's callback URL (Slack's ``response_url``).
"""

import logging
from typing import Optional, Protocol

import httpx

from cmdhandler.exceptions import NotificationError
from cmdhandler.reporter import format_failure_payload

logger = logging.getLogger(__name__)


class FailureNotifier(Protocol):
    """Delivers plugin failure output to a callback URL."""

    def notify_failure(self, url: Optional[str], output: str) -> bool: ...


class WebhookNotifier:
    """
    HTTP client for the failure webhook.

    Delivery is attempted once. Errors are logged and reported through the
    return value, never raised to the caller.
    """

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "WebhookNotifier":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def send(self, url: str, output: str) -> None:
        """
        POST the failure payload.

        Raises:
            NotificationError: If the request fails or the callback rejects it
        """
        try:
            response = self._client.post(url, content=format_failure_payload(output))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(url, f"status {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NotificationError(url, str(e)) from e

    def notify_failure(self, url: Optional[str], output: str) -> bool:
        """
        Send plugin failure output to the callback URL.

        Returns:
            True if the callback accepted the payload
        """
        if not url:
            logger.warning("No response callback on request, failure not delivered")
            return False
        try:
            self.send(url, output)
        except NotificationError as e:
            logger.warning(str(e))
            return False
        return True
