"""
Messages sent back to callers.

Synchronous callers get plain text on the HTTP response. Failures of
background runs are posted to the chat callback as a JSON payload whose
text wraps the plugin output in a code block.
"""

import json
from typing import Optional

FAILURE_PREAMBLE = "exception or error occurred in plugin:\n"


def format_acknowledgment(plugin: str) -> str:
    """Immediate response for interactive callers."""
    return f"Executing plugin: {plugin}. It should send additional output shortly...\n"


def format_success(plugin: str, raw_text: Optional[str]) -> str:
    """Log line for a background run that exited cleanly."""
    return f"Plugin {plugin} ran with args: {raw_text or ''} -- successfully"


def format_sync_failure(plugin: str) -> str:
    """Caller-facing message for a failed synchronous run."""
    return f"Failure executing {plugin}."


def format_failure_payload(output: str) -> str:
    """
    Webhook body for a failed background run.

    The output is JSON-encoded, so embedded quotes come out as ``\\"`` and
    newlines as ``\\n``; the payload is always valid JSON.
    """
    return json.dumps({"text": f"{FAILURE_PREAMBLE}```{output}```"})
