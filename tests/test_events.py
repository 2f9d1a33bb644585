"""Tests for event serialization."""

import json
from dataclasses import FrozenInstanceError

import pytest

from triad.core.pipeline import (
    Delegate,
    ErrorEvent,
    PipelineDone,
    ResearchDone,
    ResearchToolResult,
)


def test_kind_only_events_have_just_a_type():
    assert PipelineDone().to_dict() == {"type": "pipeline-done"}


def test_tool_result_count_only_when_known():
    assert ResearchToolResult(tool="get_wikipedia_article", preview="abc").to_dict() == {
        "type": "research-tool-result",
        "tool": "get_wikipedia_article",
        "preview": "abc",
    }
    assert ResearchToolResult(tool="search_wikipedia", preview="", count=0).to_dict()["count"] == 0


def test_research_done_marks_truncation():
    assert ResearchDone().to_dict() == {"type": "research-done"}
    assert ResearchDone(truncated=True).to_dict() == {"type": "research-done", "truncated": True}


def test_sse_frame():
    frame = Delegate(to="synthesizer", instructions="Write it up").to_sse()

    assert frame["event"] == "delegate"
    assert json.loads(frame["data"]) == {
        "type": "delegate",
        "to": "synthesizer",
        "instructions": "Write it up",
    }


def test_events_are_immutable():
    event = ErrorEvent(message="boom")
    with pytest.raises(FrozenInstanceError):
        event.message = "other"
