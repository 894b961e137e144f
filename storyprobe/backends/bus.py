"""Message-bus access used by the ``kafka_*`` tools."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from storyprobe.core.exceptions import StoryProbeError

logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = 30.0


class MessageBusError(StoryProbeError):
    """Raised when a topic cannot be read."""

    pass


@runtime_checkable
class MessageBusBackend(Protocol):
    """Protocol for topic inspection.

    ``end_offsets`` maps partition number to the offset one past the last
    record. ``consume`` yields record values starting at the earliest offset.
    """

    async def end_offsets(self, topic: str) -> dict[int, int]: ...
    def consume(self, topic: str) -> AsyncIterator[bytes | str]: ...


async def read_topic_snapshot(
    bus: MessageBusBackend,
    topic: str,
    timeout: float = DEFAULT_READ_TIMEOUT,
) -> list[bytes | str]:
    """Read every message currently in ``topic``.

    The end offsets are fetched first, so the read stops once that many
    records have arrived instead of streaming forever. The whole read is
    bounded by ``timeout`` seconds.

    Raises:
        MessageBusError: On timeout or when the stream ends early
    """

    async def _read() -> list[bytes | str]:
        offsets = await bus.end_offsets(topic)
        total = sum(offset for partition, offset in offsets.items() if partition >= 0 and offset > 0)
        if total == 0:
            return []

        messages: list[bytes | str] = []
        stream = bus.consume(topic)
        try:
            async for value in stream:
                messages.append(value)
                if len(messages) >= total:
                    break
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if len(messages) < total:
            raise MessageBusError(
                f"read {topic}: stream ended after {len(messages)} of {total} messages"
            )
        return messages

    try:
        messages = await asyncio.wait_for(_read(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise MessageBusError(f"read {topic}: timed out after {timeout:g}s") from e

    logger.debug(f"Read {len(messages)} messages from {topic}")
    return messages
