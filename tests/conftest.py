"""Shared fixtures for the idea_evolver test suite."""

from unittest.mock import AsyncMock

import pytest

from idea_evolver.config import Settings
from idea_evolver.llm_client import MockProvider
from idea_evolver.models import TechStack


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_provider(name: str = "primary", **mock_kwargs) -> MockProvider:
    """A provider whose complete() is an AsyncMock configured by kwargs."""
    provider = MockProvider()
    provider.name = name
    provider.complete = AsyncMock(**mock_kwargs)
    return provider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(provider="mock", inter_task_delay=0.0, retry_base_delay=0.0)


@pytest.fixture
def tech_stack():
    return TechStack(framework="React", backend="Convex")


BRIEF_JSON = {
    "title": "Todo App",
    "summary": "A simple todo app.",
    "problemStatement": "People forget things.",
    "solution": "A list that remembers for them.",
    "coreFeatures": ["Add todos", "Complete todos"],
}
