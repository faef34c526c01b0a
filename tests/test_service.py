"""End-to-end orchestration tests against the offline mock provider."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from idea_evolver.aggregator import AssemblyError
from idea_evolver.config import Settings
from idea_evolver.llm_client import ProviderError
from idea_evolver.models import DOCUMENT_FILENAMES, DOCUMENT_TYPES
from idea_evolver.progress import ProgressRecorder
from idea_evolver.service import IdeaEvolver, build_client
from idea_evolver.storage import InMemoryConfigStore


@pytest.fixture
def evolver(settings):
    return IdeaEvolver(settings)


@pytest.mark.asyncio
async def test_simple_todo_app_brief(evolver, tech_stack):
    result = await evolver.develop_idea("A simple todo app", tech_stack, ["projectBrief"])

    assert [t.unit for t in result.tasks] == ["ProjectBriefAgent"]
    assert len(result.results) == 1
    assert result.results[0].success
    assert list(result.documents) == ["Project_Brief.md"]
    assert result.documents["Project_Brief.md"].startswith("# Mock Project")


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", ["sequential", "parallel"])
async def test_all_documents(evolver, tech_stack, mode):
    result = await evolver.develop_idea("A simple todo app", tech_stack, list(DOCUMENT_TYPES), mode=mode)

    assert len(result.tasks) == len(DOCUMENT_TYPES)
    assert all(r.success for r in result.results)
    assert set(result.documents) == set(DOCUMENT_FILENAMES.values())


@pytest.mark.asyncio
async def test_tech_stack_may_be_a_plain_dict(evolver):
    result = await evolver.develop_idea(
        "A simple todo app",
        {"framework": "Vue", "backend": "Supabase", "uiLibrary": "Chakra UI"},
        ["dbSchema"],
    )
    assert list(result.documents) == ["Database_Schema.md"]


@pytest.mark.asyncio
async def test_one_failed_unit_only_removes_its_document(settings, tech_stack):
    store = InMemoryConfigStore()
    evolver = IdeaEvolver(settings, store=store)
    broken = evolver.agent_configs.get("UserPersonaAgent")
    evolver.agent_configs.save(broken.model_copy(update={"system_prompt": "{{NOT_A_BINDING}}"}))

    result = await evolver.develop_idea(
        "A simple todo app", tech_stack, ["projectBrief", "userPersonas", "userFlow"]
    )

    failed = [r for r in result.results if not r.success]
    assert [r.unit for r in failed] == ["UserPersonaAgent"]
    assert failed[0].error.startswith("User personas generation failed")
    assert set(result.documents) == {"Project_Brief.md", "User_Flow.md"}


@pytest.mark.asyncio
async def test_observers_see_the_whole_run(evolver, tech_stack):
    recorder = ProgressRecorder()
    evolver.add_observer(recorder)

    await evolver.develop_idea("A simple todo app", tech_stack, ["projectBrief"])

    sources = {e.source for e in recorder.events}
    assert {"Planner", "Executor", "ProjectBriefAgent", "DocumentGenerator"} <= sources
    assert len(recorder.completed) == 1

    evolver.remove_observer(recorder)
    count = len(recorder.events)
    await evolver.develop_idea("A simple todo app", tech_stack, ["projectBrief"])
    assert len(recorder.events) == count


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "idea, documents",
    [("", ["projectBrief"]), ("   ", ["projectBrief"]), ("idea", []), ("idea", ["notADocument"])],
)
async def test_invalid_requests_are_rejected(evolver, tech_stack, idea, documents):
    with pytest.raises(ValueError):
        await evolver.develop_idea(idea, tech_stack, documents)


@pytest.mark.asyncio
async def test_provider_outage_fails_the_run_at_assembly(settings, tech_stack):
    evolver = IdeaEvolver(settings)
    evolver.client.primary.complete = AsyncMock(side_effect=ProviderError("down"))
    evolver.client.retries = 0

    with pytest.raises(AssemblyError):
        await evolver.develop_idea("A simple todo app", tech_stack, ["projectBrief"])


def test_build_client_from_settings():
    client = build_client(
        Settings(
            provider="openai",
            fallback_provider="ollama",
            model="gpt-4o",
            request_timeout=12,
            retry_attempts=1,
            circuit_failure_threshold=2,
        )
    )

    assert client.primary.name == "openai"
    assert client.secondary.name == "ollama"
    assert client.primary_model == "gpt-4o"
    assert client.timeout == 12
    assert client.retries == 1
    assert client.breaker.failure_threshold == 2


def test_fallback_equal_to_primary_is_ignored():
    client = build_client(Settings(provider="mock", fallback_provider="mock"))
    assert client.secondary is None


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        build_client(Settings(provider="carrier-pigeon"))


@pytest.mark.asyncio
async def test_concurrent_runs_only_report_their_own_progress(evolver, tech_stack):
    brief, schema = ProgressRecorder(), ProgressRecorder()

    await asyncio.gather(
        evolver.develop_idea("A simple todo app", tech_stack, ["projectBrief"], observers=[brief]),
        evolver.develop_idea("A simple todo app", tech_stack, ["dbSchema"], observers=[schema]),
    )

    brief_sources = {e.source for e in brief.events}
    schema_sources = {e.source for e in schema.events}
    assert "ProjectBriefAgent" in brief_sources
    assert "DBSchemaAgent" not in brief_sources
    assert "DBSchemaAgent" in schema_sources
    assert "ProjectBriefAgent" not in schema_sources
    assert len(brief.completed) == len(schema.completed) == 1
