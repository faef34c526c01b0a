"""Tests for planning, plan validation and the deterministic fallback."""

import logging
from unittest.mock import AsyncMock, Mock

import pytest

from idea_evolver.llm_client import ProviderError
from idea_evolver.models import DOCUMENT_TO_UNIT, DOCUMENT_TYPES, TechStack
from idea_evolver.planner import (
    PLANNING_TEMPERATURE,
    Planner,
    PlanValidationError,
    fallback_plan,
    validate_plan,
)
from idea_evolver.responses import ResponseFormatError


def _planner(**mock_kwargs) -> Planner:
    client = Mock()
    client.execute = AsyncMock(**mock_kwargs)
    return Planner(client)


def _task(unit, goal="goal", focus="focus"):
    return {"unit": unit, "goal": goal, "focus": focus}


def test_fallback_plan_covers_exactly_the_requested_documents():
    requested = ["projectBrief", "dbSchema", "projectRoadmap"]
    tasks = fallback_plan(requested)

    assert [t.unit for t in tasks] == ["ProjectBriefAgent", "DBSchemaAgent", "RoadmapAgent"]
    assert tasks[0].goal == "Generate projectBrief based on user requirements"
    assert tasks[0].focus == "Create comprehensive projectBrief documentation"


def test_fallback_plan_for_every_document():
    tasks = fallback_plan(DOCUMENT_TYPES)
    assert [t.unit for t in tasks] == [DOCUMENT_TO_UNIT[d] for d in DOCUMENT_TYPES]


def test_validate_plan_accepts_array_and_wrapped_forms():
    raw = [_task("ProjectBriefAgent"), _task("UserPersonaAgent")]
    requested = ["projectBrief", "userPersonas"]

    assert [t.unit for t in validate_plan(raw, requested)] == ["ProjectBriefAgent", "UserPersonaAgent"]
    assert len(validate_plan({"tasks": raw}, requested)) == 2


def test_validate_plan_accepts_agent_key():
    tasks = validate_plan([{"agent": "ProjectBriefAgent", "goal": "g", "focus": "f"}], ["projectBrief"])
    assert tasks[0].unit == "ProjectBriefAgent"


def test_unknown_unit_is_rejected():
    with pytest.raises(PlanValidationError, match="FooAgent"):
        validate_plan([_task("ProjectBriefAgent"), _task("FooAgent")], ["projectBrief"])


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"tasks": "nope"},
        ["not-a-dict"],
        [{"unit": "ProjectBriefAgent", "goal": "g"}],
    ],
)
def test_malformed_plans_are_rejected(raw):
    with pytest.raises(PlanValidationError):
        validate_plan(raw, ["projectBrief"])


def test_unrequested_and_duplicate_units_are_dropped():
    raw = [
        _task("ProjectBriefAgent", goal="first"),
        _task("DBSchemaAgent"),
        _task("ProjectBriefAgent", goal="second"),
    ]
    tasks = validate_plan(raw, ["projectBrief"])

    assert len(tasks) == 1
    assert tasks[0].goal == "first"


def test_missing_requested_document_is_only_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="idea_evolver.planner"):
        tasks = validate_plan([_task("ProjectBriefAgent")], ["projectBrief", "userFlow"])

    assert len(tasks) == 1
    assert "userFlow" in caplog.text


@pytest.mark.asyncio
async def test_plan_preserves_llm_order():
    planner = _planner(
        return_value=[_task("RoadmapAgent"), _task("ProjectBriefAgent"), _task("UserFlowAgent")]
    )
    tasks = await planner.plan("A simple todo app", TechStack(), ["projectBrief", "userFlow", "projectRoadmap"])

    assert [t.unit for t in tasks] == ["RoadmapAgent", "ProjectBriefAgent", "UserFlowAgent"]

    request = planner.client.execute.await_args.args[0]
    assert request.expect_json is True
    assert request.temperature == PLANNING_TEMPERATURE
    assert "**Requested Documents:** projectBrief, userFlow, projectRoadmap" in request.prompt


@pytest.mark.asyncio
async def test_unknown_unit_falls_back_and_never_reaches_execution():
    planner = _planner(return_value=[_task("FooAgent")])
    tasks = await planner.plan("A simple todo app", TechStack(), ["projectBrief"])

    assert [t.unit for t in tasks] == ["ProjectBriefAgent"]
    assert all(t.unit != "FooAgent" for t in tasks)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [ProviderError("network down"), ResponseFormatError("bad json")],
)
async def test_planning_failure_uses_fallback(error):
    planner = _planner(side_effect=error)
    requested = ["userPersonas", "apiEndpoints"]

    tasks = await planner.plan("A simple todo app", TechStack(), requested)

    assert [t.unit for t in tasks] == ["UserPersonaAgent", "APIEndpointAgent"]
