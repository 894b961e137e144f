"""Tests for the Agent orchestrator."""

import pytest

from storyprobe.agents import TOTAL_BUDGET_EXHAUSTED, Agent, AgentConfig, NoopObserver
from storyprobe.backends import HTTPResponse
from storyprobe.core import (
    ConfigurationError,
    ExtractionError,
    Response,
    StoryGenerationError,
    StoryStatus,
    UserStory,
)

HTTP_CALL = ("http_request", {"method": "GET", "path": "/health"})


@pytest.fixture
def stories():
    return [UserStory(title=f"story {i}", steps=["GET /health", "GET /health"]) for i in range(3)]


@pytest.fixture
def make_agent(mock_llm, mock_http):
    mock_http.request.return_value = HTTPResponse(200, b"{}")

    def build(**overrides) -> Agent:
        return Agent(AgentConfig(llm=mock_llm, **overrides), http=mock_http)

    return build


def test_config_validation(mock_llm):
    with pytest.raises(ConfigurationError):
        AgentConfig(llm=None)
    with pytest.raises(ConfigurationError):
        AgentConfig(llm=mock_llm, max_steps_per_story=0)
    with pytest.raises(ConfigurationError):
        AgentConfig(llm=mock_llm, max_steps_total=-1)


def test_config_defaults(mock_llm):
    config = AgentConfig(llm=mock_llm, observer=None)

    assert config.max_steps_total == 200
    assert config.max_steps_per_story == 20
    assert isinstance(config.observer, NoopObserver)


def test_tools_follow_configured_backends(make_agent, mock_sql, fake_bus):
    assert [t.name for t in make_agent().tools] == ["http_request"]
    assert len(make_agent(sql=mock_sql).tools) == 4
    assert len(make_agent(sql=mock_sql, bus=fake_bus()).tools) == 6


@pytest.mark.asyncio
async def test_total_budget_skips_remaining_stories(make_agent, mock_llm, stories, tool_turn):
    mock_llm.complete.side_effect = [
        tool_turn(HTTP_CALL),
        tool_turn(HTTP_CALL),
        Response(content="PASSED"),
        tool_turn(HTTP_CALL),
    ]
    agent = make_agent(max_steps_total=3)

    report = await agent.run(stories)

    assert [s.status for s in report.user_stories] == [
        StoryStatus.PASSED,
        StoryStatus.FAILED,
        StoryStatus.SKIPPED,
    ]
    assert report.user_stories[1].error == "maxStepsPerStory reached"
    assert report.user_stories[2].error == TOTAL_BUDGET_EXHAUSTED
    assert report.user_stories[2].step_results == []
    assert report.total_steps == 3
    assert (report.passed, report.failed, report.skipped) == (1, 1, 1)
    assert report.success is False


@pytest.mark.asyncio
async def test_report_invariants(make_agent, mock_llm, stories, tool_turn):
    mock_llm.complete.side_effect = [
        tool_turn(HTTP_CALL),
        Response(content="PASSED"),
        Response(content="FAILED: nope"),
        Response(content="PASSED"),
    ]

    report = await make_agent().run(stories)

    assert report.passed + report.failed + report.skipped == len(stories)
    assert report.total_steps == sum(len(s.step_results) for s in report.user_stories)
    assert [s.title for s in report.user_stories] == [s.title for s in stories]
    assert all(s.status == StoryStatus.PENDING for s in stories)


@pytest.mark.asyncio
async def test_zero_total_budget_skips_everything(make_agent, mock_llm, stories):
    report = await make_agent(max_steps_total=0).run(stories)

    assert report.skipped == 3
    assert report.success is True
    mock_llm.complete.assert_not_called()


@pytest.mark.asyncio
async def test_skipped_stories_notify_observer(make_agent, mocker, stories):
    observer = mocker.MagicMock()

    await make_agent(max_steps_total=0, observer=observer).run(stories)

    assert observer.on_story_start.call_count == 3
    assert observer.on_story_done.call_count == 3
    observer.on_step.assert_not_called()


@pytest.mark.asyncio
async def test_plan_requires_source_path(make_agent):
    with pytest.raises(ConfigurationError):
        await make_agent().plan()


@pytest.mark.asyncio
async def test_plan_missing_directory(make_agent, tmp_path):
    with pytest.raises(ExtractionError):
        await make_agent(source_path=tmp_path / "missing").plan()


@pytest.mark.asyncio
async def test_run_all_plans_then_runs(make_agent, mock_llm, tmp_path):
    (tmp_path / "api.py").write_text('@app.get("/health")\ndef health(): pass\n')
    mock_llm.complete.side_effect = [
        Response(content='[{"title": "Health", "steps": ["GET /health"]}]'),
        Response(content="PASSED"),
    ]

    async with make_agent(source_path=tmp_path) as agent:
        report = await agent.run_all()

    assert report.project_summary == "Project has 1 HTTP endpoint(s)."
    assert [s.title for s in report.user_stories] == ["Health"]
    assert report.passed == 1


@pytest.mark.asyncio
async def test_run_all_propagates_generation_error(make_agent, mock_llm, tmp_path):
    mock_llm.complete.side_effect = [Response(content="no"), Response(content="still no")]

    with pytest.raises(StoryGenerationError):
        await make_agent(source_path=tmp_path).run_all()


@pytest.mark.asyncio
async def test_injected_http_client_is_not_closed(make_agent, mock_http):
    async with make_agent():
        pass
    mock_http.close.assert_not_called()
