"""
Plugin execution audit log.

Every accepted request is appended to a plain text log before its plugin is
allowed to run. The file is opened and closed per event so it can be rotated
externally without restarting the service.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from cmdhandler.exceptions import AuditFailureError

logger = logging.getLogger(__name__)

# Go's time.RFC850 layout: "Monday, 02-Jan-06 15:04:05 MST"
RFC850_FORMAT = "%A, %d-%b-%y %H:%M:%S %Z"


def _single_line(value: Optional[str]) -> str:
    """Escape line breaks so a value cannot start a new log entry."""
    if not value:
        return ""
    return value.replace("\r", "\\r").replace("\n", "\\n")


def format_audit_line(
    user: Optional[str],
    loader: str,
    plugin: str,
    text: Optional[str],
    when: Optional[datetime] = None,
) -> str:
    """
    Render one audit line, newline included.

    CR and LF inside any field are written as literal ``\\r`` and ``\\n``.
    """
    timestamp = (when or datetime.now().astimezone()).strftime(RFC850_FORMAT)
    return (
        f"Time: [{timestamp}] :: User: [ {_single_line(user)} ] "
        f"attempted to use loader: [ {_single_line(loader)} ] "
        f"to execute plugin: [ {_single_line(plugin)} ] "
        f"with args: [ {_single_line(text)} ]\n"
    )


class ExecutionLog:
    """
    Append-only audit file shared by all request threads.

    Writes are serialized with a lock and each event is written as one
    complete line, so concurrent requests never interleave partial lines.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record_event(
        self,
        loader: str,
        plugin: str,
        user: Optional[str] = None,
        text: Optional[str] = None,
    ) -> None:
        """
        Append an execution attempt to the log.

        Raises:
            AuditFailureError: If the log cannot be opened or written
        """
        line = format_audit_line(user, loader, plugin, text)

        with self._lock:
            try:
                with open(self.path, "a", encoding="utf-8") as logfile:
                    logfile.write(line)
            except OSError as e:
                logger.error(f"Error writing to {self.path}. Reason: {e}")
                raise AuditFailureError(str(self.path), str(e)) from e

    def check_writable(self) -> None:
        """
        Open the log for append without writing anything.

        Raises:
            AuditFailureError: If the log cannot be opened for append
        """
        try:
            with open(self.path, "a", encoding="utf-8"):
                pass
        except OSError as e:
            raise AuditFailureError(str(self.path), str(e)) from e
