# idea_evolver/units.py

"""
The eight document generation units.

All units share one implementation, `TemplatedUnit`, parameterised by an
output schema, a prompt template and a JSON -> markdown formatter. The
closed `UNITS` table is the only dispatch from a unit name to its code.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .api_client import LLMRequest, ResilientClient
from .formatters import (
    format_api_endpoints,
    format_component_architecture,
    format_db_schema,
    format_project_brief,
    format_roadmap,
    format_tech_rationale,
    format_user_flow,
    format_user_personas,
)
from .models import PlanContext, Task, TechStack
from .prompts import DEFAULT_TEMPLATES, TemplateRegistry, render
from .reference_docs import NO_DOCUMENTATION, framework_guidelines, lookup_documentation
from .storage import DEFAULT_TOOLS, AgentConfig, AgentConfigService, DocumentationLibrary

logger = logging.getLogger(__name__)


class UnitInputError(ValueError):
    pass


class GenerationError(RuntimeError):
    def __init__(self, unit: str, label: str, reason: str):
        self.unit = unit
        super().__init__(f"{label} generation failed: {reason}")


@dataclass(frozen=True)
class UnitContext:
    """What one unit gets to see: the original input and its own task."""

    user_idea: str
    tech_stack: Optional[TechStack]
    goal: str
    focus: str
    reference_docs: str = NO_DOCUMENTATION

    @classmethod
    def for_task(cls, context: PlanContext, task: Task, reference_docs: str = NO_DOCUMENTATION):
        return cls(
            user_idea=context.user_idea,
            tech_stack=context.tech_stack,
            goal=task.goal,
            focus=task.focus,
            reference_docs=reference_docs,
        )

    @property
    def plan_context(self) -> dict:
        return {
            "userIdea": self.user_idea,
            "techStack": self.tech_stack.to_wire() if self.tech_stack else None,
        }


# Placeholders a unit prompt (default or custom) may use
BINDING_NAMES = (
    "USER_IDEA",
    "TECH_STACK",
    "PLAN_CONTEXT",
    "TASK_GOAL",
    "TASK_FOCUS",
    "DOCUMENTATION",
    "BACKEND",
    "FRAMEWORK",
    "FRAMEWORK_GUIDELINES",
)


def _object_schema(*required: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "required": list(required),
        "properties": {key: {} for key in required},
    }


class TemplatedUnit:
    def __init__(
        self,
        name: str,
        label: str,
        template_id: str,
        schema: Dict[str, Any],
        formatter: Callable[[dict], str],
        temperature: float,
        max_tokens: Optional[int] = None,
        templates: TemplateRegistry = DEFAULT_TEMPLATES,
    ):
        self.name = name
        self.label = label
        self.template_id = template_id
        self.schema = schema
        self.formatter = formatter
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.templates = templates

    def validate_input(self, context: UnitContext) -> bool:
        if context is None:
            return False
        if not isinstance(context.user_idea, str) or not context.user_idea.strip():
            return False
        if context.tech_stack is None:
            return False
        if not (context.goal or "").strip() or not (context.focus or "").strip():
            return False
        return True

    def bindings(self, context: UnitContext) -> Dict[str, Any]:
        stack = context.tech_stack
        return {
            "USER_IDEA": context.user_idea,
            "TECH_STACK": stack,
            "PLAN_CONTEXT": context.plan_context,
            "TASK_GOAL": context.goal,
            "TASK_FOCUS": context.focus,
            "DOCUMENTATION": context.reference_docs,
            "BACKEND": stack.backend,
            "FRAMEWORK": stack.framework,
            "FRAMEWORK_GUIDELINES": framework_guidelines(stack.framework),
        }

    def build_prompt(self, context: UnitContext, system_prompt: Optional[str] = None) -> str:
        if system_prompt:
            return render(system_prompt, self.bindings(context), validate=True)
        return self.templates.build(self.template_id, self.bindings(context))

    def format(self, data: dict) -> str:
        return self.formatter(data)

    async def execute(
        self,
        context: UnitContext,
        client: ResilientClient,
        system_prompt: Optional[str] = None,
    ) -> str:
        if not self.validate_input(context):
            raise UnitInputError(
                f"{self.label}: missing required context (user idea, tech stack, goal and focus)"
            )

        try:
            prompt = self.build_prompt(context, system_prompt)
            data = await client.execute(
                LLMRequest(
                    prompt=prompt,
                    expect_json=True,
                    response_schema=self.schema,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    source=self.name,
                )
            )
            return self.format(data)
        except Exception as e:
            logger.warning("%s failed: %s", self.name, e)
            raise GenerationError(self.name, self.label, str(e)) from e

    def __repr__(self) -> str:
        return f"<TemplatedUnit {self.name}>"


UNITS: Dict[str, TemplatedUnit] = {
    unit.name: unit
    for unit in [
        TemplatedUnit(
            "ProjectBriefAgent",
            "Project brief",
            "projectBrief",
            _object_schema("title", "summary", "problemStatement", "solution", "coreFeatures"),
            format_project_brief,
            temperature=0.7,
        ),
        TemplatedUnit(
            "UserPersonaAgent",
            "User personas",
            "userPersona",
            _object_schema("personas"),
            format_user_personas,
            temperature=0.7,
        ),
        TemplatedUnit(
            "UserFlowAgent",
            "User flow",
            "userFlow",
            _object_schema("title", "steps"),
            format_user_flow,
            temperature=0.6,
        ),
        TemplatedUnit(
            "DBSchemaAgent",
            "Database schema",
            "dbSchema",
            _object_schema("title", "entities"),
            format_db_schema,
            temperature=0.6,
        ),
        TemplatedUnit(
            "APIEndpointAgent",
            "API endpoints",
            "apiEndpoints",
            _object_schema("title", "endpoints"),
            format_api_endpoints,
            temperature=0.6,
        ),
        TemplatedUnit(
            "ComponentArchitectureAgent",
            "Component architecture",
            "componentArchitecture",
            _object_schema("title", "architecture"),
            format_component_architecture,
            temperature=0.7,
        ),
        TemplatedUnit(
            "TechRationaleAgent",
            "Tech rationale",
            "techRationale",
            _object_schema("title", "technologies"),
            format_tech_rationale,
            temperature=0.6,
        ),
        TemplatedUnit(
            "RoadmapAgent",
            "Roadmap",
            "roadmap",
            _object_schema("title", "phases"),
            format_roadmap,
            temperature=0.7,
        ),
    ]
}


def documentation_for(
    unit: str,
    tech_stack: TechStack,
    config: Optional[AgentConfig] = None,
    library: Optional[DocumentationLibrary] = None,
) -> str:
    """Reference text for a unit, honouring its DocumentationSearch tool."""
    if config is None:
        enabled = "DocumentationSearch" in DEFAULT_TOOLS.get(unit, ())
        doc_ids: List[str] = []
    else:
        tool = config.tool("DocumentationSearch")
        enabled = bool(tool and tool.enabled)
        doc_ids = list(tool.params.get("documentationIds") or []) if tool else []

    if not enabled:
        return NO_DOCUMENTATION

    custom = []
    if library is not None:
        for doc_id in doc_ids:
            source = library.get(doc_id)
            if source is None:
                logger.warning("Documentation source %s selected for %s not found", doc_id, unit)
                continue
            custom.append(source)

    return lookup_documentation(tech_stack.backend, unit, custom)


class UnitDispatcher:
    """Runs one planned task: picks the unit, its prompt override and docs."""

    def __init__(
        self,
        client: ResilientClient,
        agent_configs: Optional[AgentConfigService] = None,
        library: Optional[DocumentationLibrary] = None,
        units: Optional[Dict[str, TemplatedUnit]] = None,
    ):
        self.client = client
        self.agent_configs = agent_configs
        self.library = library
        self.units = units if units is not None else UNITS

    async def run(self, task: Task, context: PlanContext) -> str:
        unit = self.units[task.unit]

        config = self.agent_configs.get(task.unit) if self.agent_configs else None
        system_prompt = config.system_prompt if config and config.is_custom else None
        docs = documentation_for(task.unit, context.tech_stack, config, self.library)

        return await unit.execute(
            UnitContext.for_task(context, task, docs), self.client, system_prompt=system_prompt
        )
