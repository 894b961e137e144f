"""Read and write planned user stories as YAML or JSON files."""

import json
import logging
from pathlib import Path

import yaml

from storyprobe.core.models import UserStory

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")


def _story_data(story: UserStory) -> dict:
    return {"title": story.title, "description": story.description, "steps": list(story.steps)}


def save_stories(path: Path, stories: list[UserStory]) -> None:
    """Write stories as drafts (title, description, steps), ready for review."""
    data = [_story_data(story) for story in stories]
    if path.suffix in YAML_SUFFIXES:
        content = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        content = json.dumps(data, indent=2, ensure_ascii=False)

    path.write_text(content, encoding="utf-8")
    logger.info(f"Saved {len(stories)} stories to {path}")


def load_stories(path: Path) -> list[UserStory]:
    """Load stories from a YAML or JSON file.

    Accepts either a list of stories or a mapping with a ``stories`` key.
    Steps may be plain strings or mappings with a ``description``.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) if path.suffix in YAML_SUFFIXES else json.load(f)

    if isinstance(data, dict):
        data = data.get("stories", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of stories")

    stories = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: story {i + 1} is not a mapping")

        steps = []
        for raw_step in raw.get("steps") or []:
            if isinstance(raw_step, dict):
                steps.append(str(raw_step.get("description", "")))
            else:
                steps.append(str(raw_step))

        stories.append(
            UserStory(
                title=raw.get("title") or f"story-{i + 1}",
                description=raw.get("description", ""),
                steps=steps,
            )
        )

    logger.info(f"Loaded {len(stories)} stories from {path}")
    return stories
