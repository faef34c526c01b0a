# idea_evolver/service.py

"""
Orchestration facade: plan -> execute -> aggregate -> assemble.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from .aggregator import Assembler, aggregate
from .api_client import ResilientClient
from .circuit_breaker import CircuitBreaker
from .config import Settings, load_settings
from .executor import Executor
from .llm_client import build_provider
from .models import DOCUMENT_TYPES, DevelopmentPlan, DevelopmentResult, TechStack
from .planner import Planner
from .progress import ProgressObserver, run_observers
from .storage import AgentConfigService, ConfigStore, DocumentationLibrary, InMemoryConfigStore
from .units import UnitDispatcher

logger = logging.getLogger(__name__)


def build_client(settings: Settings) -> ResilientClient:
    primary = build_provider(settings.provider, settings)

    secondary = None
    if settings.fallback_provider and settings.fallback_provider != settings.provider:
        secondary = build_provider(settings.fallback_provider, settings)

    breaker = CircuitBreaker(
        "llm",
        failure_threshold=settings.circuit_failure_threshold,
        cooldown_seconds=settings.circuit_cooldown_seconds,
    )
    return ResilientClient(
        primary,
        secondary,
        breaker,
        timeout=settings.request_timeout,
        retries=settings.retry_attempts,
        base_delay=settings.retry_base_delay,
        primary_model=settings.model,
    )


class IdeaEvolver:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ResilientClient] = None,
        store: Optional[ConfigStore] = None,
    ):
        self.settings = settings or load_settings()
        self.client = client or build_client(self.settings)
        self.store = store if store is not None else InMemoryConfigStore()

        self.agent_configs = AgentConfigService(self.store)
        self.documentation = DocumentationLibrary(self.store)

        self.planner = Planner(self.client)
        self.executor = Executor(
            UnitDispatcher(self.client, self.agent_configs, self.documentation),
            batch_size=self.settings.max_concurrent_tasks,
            inter_task_delay=self.settings.inter_task_delay,
        )
        self.assembler = Assembler(self.client)

    def add_observer(self, observer: ProgressObserver) -> None:
        self.client.add_observer(observer)
        self.executor.add_observer(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        self.client.remove_observer(observer)
        self.executor.remove_observer(observer)

    async def develop_idea(
        self,
        idea: str,
        tech_stack: Union[TechStack, Dict[str, Any]],
        requested_documents: Iterable[str],
        mode: Optional[str] = None,
        observers: Iterable[ProgressObserver] = (),
    ) -> DevelopmentResult:
        """
        Run one full orchestration.

        Individual document failures only shrink the bundle; an empty bundle
        or a failed final assembly raises AssemblyError. `observers` only
        hear about this run.
        """
        idea = (idea or "").strip()
        if not idea:
            raise ValueError("Idea must not be empty")

        documents = list(dict.fromkeys(requested_documents or []))
        if not documents:
            raise ValueError("At least one document must be requested")
        unknown = [d for d in documents if d not in DOCUMENT_TYPES]
        if unknown:
            raise ValueError(f"Unknown document type(s): {', '.join(unknown)}")

        if not isinstance(tech_stack, TechStack):
            tech_stack = TechStack.model_validate(tech_stack or {})

        mode = mode or self.settings.execution_mode
        logger.info("Developing idea (%d document(s), %s mode)", len(documents), mode)

        plan = DevelopmentPlan(user_idea=idea, tech_stack=tech_stack)
        with run_observers(observers):
            tasks = await self.planner.plan(idea, tech_stack, documents)
            results = await self.executor.run(tasks, plan, mode)
            aggregate(plan, results)
            bundle = await self.assembler.assemble(plan, documents)

        logger.info("Generated %d/%d document(s)", len(bundle), len(documents))
        return DevelopmentResult(documents=bundle, tasks=tasks, results=results)

    def get_status(self) -> Dict[str, Any]:
        status = self.client.get_status()
        status["execution_mode"] = self.settings.execution_mode
        status["max_concurrent_tasks"] = self.settings.max_concurrent_tasks
        return status
