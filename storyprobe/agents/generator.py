"""Story generation: drafts integration-test scenarios from a source model."""

import json
import logging

from pydantic import BaseModel, Field, ValidationError

from storyprobe.core.client import CompletionClient
from storyprobe.core.exceptions import StoryGenerationError
from storyprobe.core.models import Message, MessageRole, UserStory
from storyprobe.source.models import SourceModel

logger = logging.getLogger(__name__)

RETRY_PROMPT = "Return only JSON array, your previous response was not valid JSON"

PLANNING_INSTRUCTIONS = """
Generate a JSON array of user stories covering:
- Main happy path for each endpoint
- Key error cases (404, invalid input)
- Cross-service flows (create entity → verify side effect in DB or Kafka)

Each story:
{
  "title": "short name",
  "description": "what is being tested",
  "steps": ["human-readable step 1", "step 2", ...]
}

Return ONLY valid JSON array. No markdown, no explanation."""


class StoryDraft(BaseModel):
    """Story as returned by the model."""

    title: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)


class StoryParseError(ValueError):
    """Raised when a reply does not contain a JSON array of stories."""

    pass


def build_planning_prompt(source_model: SourceModel) -> str:
    lines = ["You are an integration test planner for a backend service.", "", "Project endpoints:"]
    if not source_model.endpoints:
        lines.append("  none")
    for endpoint in source_model.endpoints:
        lines.append(f"  {endpoint.method} {endpoint.path} (handler: {endpoint.handler})")

    lines.extend(["", "Data models:"])
    if not source_model.models:
        lines.append("  none")
    for model in source_model.models:
        lines.append(f"  {model.name}: {', '.join(model.fields)}")

    lines.append("")
    lines.append(f"Database tables: {', '.join(source_model.sorted_tables) or 'none'}")
    lines.append(f"Kafka topics: {', '.join(source_model.sorted_topics) or 'none'}")

    return "\n".join(lines) + "\n" + PLANNING_INSTRUCTIONS


def extract_json_array(content: str) -> list:
    """Decode the text between the first ``[`` and the last ``]``."""
    start = content.find("[")
    end = content.rfind("]")
    if start == -1 or end == -1 or start >= end:
        raise StoryParseError("no JSON array found in response")

    try:
        data = json.loads(content[start : end + 1])
    except ValueError as e:
        raise StoryParseError(f"parse stories: {e}") from e
    if not isinstance(data, list):
        raise StoryParseError("parse stories: expected a JSON array")
    return data


def parse_stories(content: str) -> list[UserStory]:
    """Turn a model reply into pending user stories."""
    try:
        drafts = [StoryDraft.model_validate(item) for item in extract_json_array(content)]
    except ValidationError as e:
        raise StoryParseError(f"parse stories: {e}") from e

    return [
        UserStory(title=draft.title, description=draft.description, steps=draft.steps)
        for draft in drafts
    ]


class StoryGenerator:
    """Asks the completion backend for user stories, retrying once on bad JSON."""

    def __init__(self, client: CompletionClient) -> None:
        self.client = client

    async def generate(self, source_model: SourceModel) -> list[UserStory]:
        """Generate user stories for ``source_model``.

        Raises:
            StoryGenerationError: If the backend fails or two replies in a row
                cannot be parsed
        """
        messages = [Message(role=MessageRole.USER, content=build_planning_prompt(source_model))]

        content = await self._complete(messages, attempt=1)
        try:
            stories = parse_stories(content)
        except StoryParseError as e:
            logger.warning(f"Story reply was not a JSON array ({e}), retrying once")
            messages = messages + [
                Message(role=MessageRole.ASSISTANT, content=content),
                Message(role=MessageRole.USER, content=RETRY_PROMPT),
            ]
            content = await self._complete(messages, attempt=2)
            try:
                stories = parse_stories(content)
            except StoryParseError as retry_error:
                raise StoryGenerationError(str(retry_error), attempts=2) from retry_error

        logger.info(f"Generated {len(stories)} user stories")
        return stories

    async def _complete(self, messages: list[Message], attempt: int) -> str:
        try:
            response = await self.client.complete(messages, [])
        except Exception as e:
            suffix = " retry" if attempt > 1 else ""
            raise StoryGenerationError(f"llm complete{suffix}: {e}", attempts=attempt) from e
        return response.content
