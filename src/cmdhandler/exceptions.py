"""Custom exceptions for cmdhandler."""

from typing import TYPE_CHECKING, Optional

from cmdhandler.reporter import format_sync_failure

if TYPE_CHECKING:
    from cmdhandler.executor import ExecutionResult

INVALID_REQUEST_MESSAGE = "Plugin request not in appropriate format.\n"
AUDIT_FAILURE_MESSAGE = (
    "Error opening or writing plugin execution to log.  Aborting.  "
    "Please contact Devops"
)


class DispatchError(Exception):
    """
    Base class for errors that end a dispatch with a response to the caller.

    ``public_message`` is safe to show to the requester; ``str(error)`` may
    carry internal detail and is only meant for operational logs.
    """

    status_code: int = 500

    def __init__(self, message: str, public_message: str):
        self.public_message = public_message
        super().__init__(message)


class InvalidRequestError(DispatchError):
    """Raised when the plugin name is empty or unsafe, or the loader is unknown."""

    status_code = 400

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason, INVALID_REQUEST_MESSAGE)


class AuditFailureError(DispatchError):
    """Raised when the execution log cannot be opened or written."""

    def __init__(self, log_path: str, reason: str):
        self.log_path = log_path
        super().__init__(
            f"Error writing {log_path}. Reason: {reason}", AUDIT_FAILURE_MESSAGE
        )


class ExecutionFailureError(DispatchError):
    """Raised when a synchronous plugin run exits non-zero or cannot start."""

    def __init__(self, plugin: str, result: Optional["ExecutionResult"] = None):
        self.plugin = plugin
        self.result = result
        detail = result.failure_detail if result is not None else "unknown"
        super().__init__(
            f"Failure executing {plugin}. Reason: {detail}",
            format_sync_failure(plugin),
        )


class NotificationError(Exception):
    """Raised when the failure webhook could not be delivered."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Could not send error message via HTTP POST to {url}: {reason}")
