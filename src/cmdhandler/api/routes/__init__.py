"""
API routes for cmdhandler.
"""

from cmdhandler.api.routes import dispatch

__all__ = [
    "dispatch",
]
