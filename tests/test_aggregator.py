"""Tests for plan aggregation and final document assembly."""

from unittest.mock import AsyncMock, Mock

import pytest
from pydantic import ValidationError

from idea_evolver.aggregator import AssemblyError, Assembler, aggregate, expected_files
from idea_evolver.llm_client import ProviderError
from idea_evolver.models import DevelopmentPlan, TaskResult, TechStack


def _plan(**documents) -> DevelopmentPlan:
    plan = DevelopmentPlan(user_idea="A simple todo app", tech_stack=TechStack())
    for doc, content in documents.items():
        plan.set_document(doc, content)
    return plan


def _assembler(**mock_kwargs) -> Assembler:
    client = Mock()
    client.execute = AsyncMock(**mock_kwargs)
    return Assembler(client)


def test_aggregate_writes_only_successful_results():
    plan = _plan()
    results = [
        TaskResult(unit="ProjectBriefAgent", success=True, output="# Brief"),
        TaskResult(unit="UserFlowAgent", success=False, error="boom"),
        TaskResult(unit="DBSchemaAgent", success=True, output="# Schema"),
    ]

    aggregate(plan, results)

    assert plan.project_brief == "# Brief"
    assert plan.db_schema == "# Schema"
    assert plan.user_flow is None
    assert plan.generated_documents() == ["projectBrief", "dbSchema"]


def test_aggregate_rejects_duplicate_units():
    results = [
        TaskResult(unit="ProjectBriefAgent", success=True, output="one"),
        TaskResult(unit="ProjectBriefAgent", success=True, output="two"),
    ]
    with pytest.raises(ValueError):
        aggregate(_plan(), results)


def test_expected_files_skip_documents_without_content():
    plan = _plan(projectBrief="# Brief")
    assert expected_files(plan, ["projectBrief", "userFlow"]) == {"Project_Brief.md": "projectBrief"}


@pytest.mark.asyncio
async def test_bundle_is_clamped_to_requested_files():
    assembler = _assembler(
        return_value={
            "summary": "done",
            "documents": {
                "Project_Brief.md": "# Final brief",
                "User_Flow.md": "# Invented flow",
                "Database_Schema.md": "# Not requested",
                "Secrets.md": "# Nope",
            },
        }
    )
    plan = _plan(projectBrief="# Brief", dbSchema="# Schema")

    bundle = await assembler.assemble(plan, ["projectBrief", "userFlow"])

    assert bundle == {"Project_Brief.md": "# Final brief"}


@pytest.mark.asyncio
async def test_omitted_files_are_filled_from_the_plan():
    assembler = _assembler(return_value={"documents": {"Project_Brief.md": "# Final brief"}})
    plan = _plan(projectBrief="# Brief", projectRoadmap="# Roadmap")

    bundle = await assembler.assemble(plan, ["projectBrief", "projectRoadmap"])

    assert bundle == {"Project_Brief.md": "# Final brief", "Project_Roadmap.md": "# Roadmap"}


@pytest.mark.asyncio
async def test_non_text_content_is_replaced_by_plan_content():
    assembler = _assembler(return_value={"documents": {"Project_Brief.md": {"oops": 1}}})
    bundle = await assembler.assemble(_plan(projectBrief="# Brief"), ["projectBrief"])
    assert bundle == {"Project_Brief.md": "# Brief"}


@pytest.mark.asyncio
async def test_nothing_generated_fails_without_calling_the_llm():
    assembler = _assembler(return_value={"documents": {}})

    with pytest.raises(AssemblyError):
        await assembler.assemble(_plan(), ["projectBrief"])

    assembler.client.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_final_call_failure_is_fatal():
    assembler = _assembler(side_effect=ProviderError("down"))

    with pytest.raises(AssemblyError, match="down"):
        await assembler.assemble(_plan(projectBrief="# Brief"), ["projectBrief"])


@pytest.mark.asyncio
async def test_documents_must_be_an_object():
    assembler = _assembler(return_value={"documents": ["Project_Brief.md"]})

    with pytest.raises(AssemblyError):
        await assembler.assemble(_plan(projectBrief="# Brief"), ["projectBrief"])


@pytest.mark.asyncio
async def test_assembly_prompt_carries_the_whole_plan():
    assembler = _assembler(return_value={"documents": {}})
    await assembler.assemble(_plan(projectBrief="# Brief"), ["projectBrief"])

    request = assembler.client.execute.await_args.args[0]
    assert "expert AI document generator" in request.prompt
    assert '"projectBrief": "# Brief"' in request.prompt
    assert "**Requested Documents:** projectBrief" in request.prompt
    assert request.response_schema["required"] == ["documents"]


@pytest.mark.parametrize(
    "fields",
    [
        {"success": True},
        {"success": True, "output": "x", "error": "boom"},
        {"success": False},
        {"success": False, "output": "x", "error": "boom"},
    ],
)
def test_task_result_carries_exactly_one_of_output_or_error(fields):
    with pytest.raises(ValidationError):
        TaskResult(unit="ProjectBriefAgent", **fields)
