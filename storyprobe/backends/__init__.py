"""Collaborators that reach the live service and its infrastructure."""

from storyprobe.backends.bus import (
    MessageBusBackend,
    MessageBusError,
    read_topic_snapshot,
)
from storyprobe.backends.http import HTTPClient, HTTPResponse
from storyprobe.backends.sql import SQLAlchemyBackend, SQLBackend

__all__ = [
    "HTTPClient",
    "HTTPResponse",
    "SQLBackend",
    "SQLAlchemyBackend",
    "MessageBusBackend",
    "MessageBusError",
    "read_topic_snapshot",
]
