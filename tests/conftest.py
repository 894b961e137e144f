"""Pytest configuration and fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from storyprobe.core import CompletionClient, Response, ToolCall, UserStory


class FakeBus:
    """In-memory message bus keyed by topic."""

    def __init__(self, topics: dict[str, list[str]] | None = None):
        self.topics = topics or {}
        self.closed = 0

    async def end_offsets(self, topic: str) -> dict[int, int]:
        return {0: len(self.topics.get(topic, []))}

    async def consume(self, topic: str):
        try:
            for value in self.topics.get(topic, []):
                yield value
        finally:
            self.closed += 1


@pytest.fixture
def tool_turn():
    """Build an assistant turn requesting ``(tool, input)`` calls."""

    def build(*calls: tuple[str, dict], prefix: str = "call") -> Response:
        return Response(
            tool_calls=[
                ToolCall(id=f"{prefix}_{i}", name=name, input=json.dumps(payload))
                for i, (name, payload) in enumerate(calls)
            ]
        )

    return build


@pytest.fixture
def text_turn():
    """Build a final text-only assistant turn."""
    return lambda content: Response(content=content)


@pytest.fixture
def fake_bus():
    return FakeBus


@pytest.fixture
def mock_llm():
    """Completion client whose replies are scripted through ``complete.side_effect``."""
    llm = MagicMock(spec=CompletionClient)
    llm.complete = AsyncMock()
    llm.close = AsyncMock()
    return llm


@pytest.fixture
def mock_http():
    http = MagicMock()
    http.request = AsyncMock()
    http.close = AsyncMock()
    return http


@pytest.fixture
def mock_sql():
    sql = MagicMock()
    sql.execute = AsyncMock(return_value=1)
    sql.query_one = AsyncMock(return_value=None)
    sql.query_all = AsyncMock(return_value=[])
    return sql


@pytest.fixture
def story():
    return UserStory(
        title="Create user",
        description="POST /users creates a row in users",
        steps=["POST /users", "SELECT from users"],
    )
