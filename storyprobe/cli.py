import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from storyprobe.agents import (
    Agent,
    AgentConfig,
    ConsoleObserver,
    LoggingObserver,
    load_stories,
    save_stories,
)
from storyprobe.agents.config import DEFAULT_MAX_STEPS_PER_STORY, DEFAULT_MAX_STEPS_TOTAL
from storyprobe.backends import SQLAlchemyBackend
from storyprobe.core import LLMConfig, StoryProbeError
from storyprobe.providers import OpenAICompletionClient
from storyprobe.reporting import ReportGenerator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_PLAN_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyprobe",
        description="Generate and run LLM-driven integration tests against a backend service",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--api-key", default=os.environ.get("OPENAI_API_KEY"), help="LLM API key")
    parser.add_argument("--llm-base-url", default=os.environ.get("OPENAI_BASE_URL"))
    parser.add_argument("--model", default=os.environ.get("STORYPROBE_MODEL", "gpt-4o"))
    parser.add_argument(
        "--provider", choices=["openai", "openrouter", "zai", "ollama"], default="openai"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser("plan", help="Analyze the source and write user stories")
    plan.add_argument("--source", required=True, help="Service source directory")
    plan.add_argument("--output", help="Stories file (.yml/.yaml/.json); stdout when omitted")

    run = subparsers.add_parser("run", help="Execute user stories against a running service")
    stories_source = run.add_mutually_exclusive_group(required=True)
    stories_source.add_argument("--source", help="Service source directory to plan from")
    stories_source.add_argument("--stories", help="Stories file written by 'plan'")
    run.add_argument("--service-url", required=True, help="Base URL of the running service")
    run.add_argument("--database-url", default=os.environ.get("DATABASE_URL"))
    run.add_argument("--max-steps-total", type=int, default=DEFAULT_MAX_STEPS_TOTAL)
    run.add_argument("--max-steps-per-story", type=int, default=DEFAULT_MAX_STEPS_PER_STORY)
    run.add_argument("--report", help="Write the report to this path (.json for JSON)")
    run.add_argument("--quiet", action="store_true", help="Log progress instead of printing it")

    return parser


def build_llm(args: argparse.Namespace) -> OpenAICompletionClient:
    return OpenAICompletionClient(
        LLMConfig(
            api_key=args.api_key or "",
            base_url=args.llm_base_url,
            default_model=args.model,
            provider=args.provider,
        )
    )


async def plan_command(args: argparse.Namespace) -> int:
    llm = build_llm(args)
    try:
        async with Agent(AgentConfig(llm=llm, source_path=args.source)) as agent:
            stories = await agent.plan()
    finally:
        await llm.close()

    if args.output:
        save_stories(Path(args.output), stories)
    else:
        drafts = [story.model_dump(include={"title", "description", "steps"}) for story in stories]
        print(json.dumps(drafts, indent=2, ensure_ascii=False))
    return EXIT_OK


async def run_command(args: argparse.Namespace) -> int:
    llm = build_llm(args)
    sql = SQLAlchemyBackend(args.database_url) if args.database_url else None
    observer = LoggingObserver() if args.quiet else ConsoleObserver()

    try:
        config = AgentConfig(
            llm=llm,
            source_path=args.source,
            sql=sql,
            service_url=args.service_url,
            max_steps_total=args.max_steps_total,
            max_steps_per_story=args.max_steps_per_story,
            observer=observer,
        )
        async with Agent(config) as agent:
            if args.stories:
                report = await agent.run(load_stories(Path(args.stories)))
            else:
                report = await agent.run_all()
    finally:
        await llm.close()
        if sql is not None:
            await sql.close()

    generator = ReportGenerator(report)
    print(generator.generate_text())
    if args.report:
        generator.write(Path(args.report))

    return EXIT_OK if report.success else EXIT_FAILURES


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    command = plan_command if args.command == "plan" else run_command
    try:
        code = asyncio.run(command(args))
    except (StoryProbeError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        code = EXIT_PLAN_ERROR

    sys.exit(code)


if __name__ == "__main__":
    main()
