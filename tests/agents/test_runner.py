"""Tests for ConversationRunner and verdict parsing."""

from unittest.mock import MagicMock

import pytest

from storyprobe.agents import BUDGET_EXHAUSTED, ConversationRunner, RunConfig, ToolExecutor
from storyprobe.agents import available_tools, build_run_prompt, parse_verdict
from storyprobe.backends import HTTPResponse
from storyprobe.core import MessageRole, Response, StepResult, StoryStatus, UserStory

HTTP_CALL = ("http_request", {"method": "POST", "path": "/users", "body": '{"name":"a"}'})


@pytest.mark.parametrize(
    "content,status,reason",
    [
        ("PASSED", StoryStatus.PASSED, ""),
        ("**PASSED**", StoryStatus.PASSED, ""),
        ("All steps done.\n\npassed", StoryStatus.PASSED, ""),
        ("FAILED: expected 400 got 201", StoryStatus.FAILED, "expected 400 got 201"),
        ("FAILED: user not found\nmore detail", StoryStatus.FAILED, "user not found"),
        ("PASSED step 1, then FAILED: step 2 returned 500", StoryStatus.FAILED, "step 2 returned 500"),
        ("failed: lowercase marker", StoryStatus.FAILED, "lowercase marker"),
        ("  I am not sure what happened  ", StoryStatus.FAILED, "I am not sure what happened"),
        ("Straße check FAILED:bad status", StoryStatus.FAILED, "bad status"),
        ("ŉot PASSED", StoryStatus.PASSED, ""),
    ],
)
def test_parse_verdict(content, status, reason):
    assert parse_verdict(content) == (status, reason)


def test_run_config_effective_max():
    assert RunConfig(max_steps_per_story=20, steps_remaining=5).effective_max == 5
    assert RunConfig(max_steps_per_story=3, steps_remaining=50).effective_max == 3


def test_run_prompt_lists_steps(story):
    prompt = build_run_prompt(story, service_url="http://localhost:8080")

    assert "Service URL: http://localhost:8080" in prompt
    assert "Title: Create user" in prompt
    assert "1. POST /users\n2. SELECT from users" in prompt
    assert "FAILED: <reason>" in prompt


@pytest.fixture
def observer():
    return MagicMock()


@pytest.fixture
def runner(mock_llm, mock_http, observer):
    mock_http.request.return_value = HTTPResponse(201, b'{"id": 1}')
    executor = ToolExecutor(http=mock_http)
    return ConversationRunner(mock_llm, executor, available_tools(), observer)


@pytest.mark.asyncio
async def test_tool_turn_then_passed(runner, mock_llm, observer, story, tool_turn, text_turn):
    mock_llm.complete.side_effect = [tool_turn(HTTP_CALL), text_turn("PASSED")]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.steps == 1
    assert run.story.status == StoryStatus.PASSED
    assert run.story.error == ""
    assert run.story.step_results == [
        StepResult(
            tool="http_request",
            input=tool_turn(HTTP_CALL).tool_calls[0].input,
            output='{"status":201,"body":{"id":1}}',
        )
    ]
    assert mock_llm.complete.await_count == 2

    second_messages, tools = mock_llm.complete.await_args_list[1].args
    assert [m.role for m in second_messages] == [
        MessageRole.USER,
        MessageRole.ASSISTANT,
        MessageRole.TOOL,
    ]
    assert second_messages[1].tool_calls[0].id == "call_0"
    assert second_messages[2].tool_call_id == "call_0"
    assert second_messages[2].content == '{"status":201,"body":{"id":1}}'
    assert [t.name for t in tools] == ["http_request"]

    observer.on_story_start.assert_called_once()
    observer.on_step.assert_called_once()
    observer.on_story_done.assert_called_once()


@pytest.mark.asyncio
async def test_direct_failure(runner, mock_llm, story, text_turn):
    mock_llm.complete.side_effect = [text_turn("FAILED: expected 400 got 201")]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.steps == 0
    assert run.story.status == StoryStatus.FAILED
    assert run.story.error == "expected 400 got 201"
    assert run.story.step_results == []


@pytest.mark.asyncio
async def test_markdown_passed(runner, mock_llm, story, text_turn):
    mock_llm.complete.side_effect = [text_turn("**PASSED**")]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.story.status == StoryStatus.PASSED


@pytest.mark.asyncio
async def test_per_story_budget_exhausted(runner, mock_llm, story, tool_turn):
    mock_llm.complete.side_effect = lambda *args: tool_turn(HTTP_CALL)

    run = await runner.run_story(story, RunConfig(max_steps_per_story=2, steps_remaining=200))

    assert run.story.status == StoryStatus.FAILED
    assert run.story.error == BUDGET_EXHAUSTED
    assert run.steps == 2
    assert len(run.story.step_results) == 2
    assert mock_llm.complete.await_count == 2


@pytest.mark.asyncio
async def test_remaining_budget_caps_story(runner, mock_llm, story, tool_turn):
    mock_llm.complete.side_effect = lambda *args: tool_turn(HTTP_CALL)

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=1))

    assert run.steps == 1
    assert run.story.error == BUDGET_EXHAUSTED


@pytest.mark.asyncio
async def test_multiple_calls_in_one_turn_run_in_order(
    runner, mock_llm, mock_http, story, tool_turn, text_turn
):
    mock_llm.complete.side_effect = [
        tool_turn(HTTP_CALL, ("http_request", {"method": "GET", "path": "/users/1"})),
        text_turn("PASSED"),
    ]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.steps == 2
    assert [c.args[:2] for c in mock_http.request.await_args_list] == [
        ("POST", "/users"),
        ("GET", "/users/1"),
    ]
    messages = mock_llm.complete.await_args_list[1].args[0]
    tool_ids = [m.tool_call_id for m in messages if m.role is MessageRole.TOOL]
    assert tool_ids == ["call_0", "call_1"]


@pytest.mark.asyncio
async def test_guard_turn_consumes_a_step(runner, mock_llm, story, text_turn):
    mock_llm.complete.side_effect = [Response(done=False), text_turn("PASSED")]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.steps == 1
    assert run.story.status == StoryStatus.PASSED
    assert run.story.step_results == []


@pytest.mark.asyncio
async def test_endless_guard_turns_exhaust_budget(runner, mock_llm, story):
    mock_llm.complete.side_effect = lambda *args: Response(done=False)

    run = await runner.run_story(story, RunConfig(max_steps_per_story=3, steps_remaining=200))

    assert run.steps == 3
    assert run.story.error == BUDGET_EXHAUSTED
    assert mock_llm.complete.await_count == 3


@pytest.mark.asyncio
async def test_llm_error_fails_story(runner, mock_llm, story):
    mock_llm.complete.side_effect = ConnectionError("connection reset")

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.story.status == StoryStatus.FAILED
    assert run.story.error == "llm error: connection reset"
    assert run.steps == 0


@pytest.mark.asyncio
async def test_tool_error_is_fed_back(runner, mock_llm, mock_http, story, tool_turn, text_turn):
    mock_http.request.side_effect = ConnectionError("refused")
    mock_llm.complete.side_effect = [tool_turn(HTTP_CALL), text_turn("FAILED: service down")]

    run = await runner.run_story(story, RunConfig(max_steps_per_story=20, steps_remaining=200))

    assert run.story.step_results[0].output == '{"error":"refused"}'
    assert run.story.error == "service down"


@pytest.mark.asyncio
async def test_input_story_is_not_mutated(runner, mock_llm, text_turn):
    original = UserStory(title="t", status=StoryStatus.FAILED, error="old")
    mock_llm.complete.side_effect = [text_turn("PASSED")]

    run = await runner.run_story(original, RunConfig(max_steps_per_story=5, steps_remaining=5))

    assert run.story.status == StoryStatus.PASSED
    assert original.status == StoryStatus.FAILED
    assert original.error == "old"
