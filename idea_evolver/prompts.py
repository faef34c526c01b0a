"""
Prompt templates and the placeholder substitution that renders them.

Templates are named, versioned text blocks containing `{{PLACEHOLDER}}`
tokens. Rendering is a pure function of (template, bindings): strings are
inserted as-is, anything else is serialised to pretty-printed JSON.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


class PromptTemplateError(ValueError):
    pass


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    version: str
    text: str

    @property
    def placeholders(self) -> List[str]:
        seen: List[str] = []
        for name in PLACEHOLDER_RE.findall(self.text):
            if name not in seen:
                seen.append(name)
        return seen


def serialize_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    return json.dumps(value, indent=2, ensure_ascii=False)


def missing_placeholders(text: str, bindings: Mapping[str, Any]) -> List[str]:
    """Placeholders used by `text` that have no binding."""
    missing: List[str] = []
    for name in PLACEHOLDER_RE.findall(text):
        if name not in bindings and name not in missing:
            missing.append(name)
    return missing


def render(text: str, bindings: Mapping[str, Any], validate: bool = True) -> str:
    """Replace every `{{NAME}}` occurrence with its bound value.

    With validate=True an unbound placeholder raises PromptTemplateError.
    Otherwise the token is left in place, which makes it easy to spot in
    test output.
    """
    if validate:
        missing = missing_placeholders(text, bindings)
        if missing:
            raise PromptTemplateError(f"Unbound placeholders: {', '.join(missing)}")

    rendered = {key: serialize_value(value) for key, value in bindings.items()}

    def _sub(match: "re.Match[str]") -> str:
        return rendered.get(match.group(1), match.group(0))

    # single pass, so bound values are never re-scanned for tokens
    return PLACEHOLDER_RE.sub(_sub, text)


class TemplateRegistry:
    def __init__(self, templates: Optional[List[PromptTemplate]] = None):
        self._templates: Dict[str, PromptTemplate] = {}
        for template in templates or []:
            self.register(template)

    def register(self, template: PromptTemplate) -> None:
        self._templates[template.id] = template

    def get(self, template_id: str) -> PromptTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise PromptTemplateError(f"Template {template_id!r} not found") from None

    def has(self, template_id: str) -> bool:
        return template_id in self._templates

    def list(self) -> List[str]:
        return list(self._templates)

    def build(self, template_id: str, bindings: Mapping[str, Any], validate: bool = True) -> str:
        return render(self.get(template_id).text, bindings, validate=validate)

    def validate(self, template_id: str, bindings: Mapping[str, Any]) -> List[str]:
        return missing_placeholders(self.get(template_id).text, bindings)


# ----------------------------
# DEFAULT TEMPLATES
# ----------------------------

PLANNER_TEMPLATE = PromptTemplate(
    id="planner",
    version="2",
    text="""You are a world-class AI software architect. Your job is to create a step-by-step plan for generating project planning documents.
Analyze the user's idea, their chosen technology stack, and the list of documents they want to generate.
Based on this, output a JSON array of task objects. Each object represents a task for a specialized AI agent.

**User Idea:** "{{USER_IDEA}}"
**Tech Stack:**
{{TECH_STACK}}
**Requested Documents:** {{REQUESTED_DOCUMENTS}}

**Available Agents (document -> agent):**
{{AVAILABLE_UNITS}}

**Instructions:**
1. Your plan MUST be logical and sequential
2. Your plan MUST ONLY include agents that are absolutely necessary
3. If a document is not requested, you MUST NOT add an agent for it
4. Use ONLY the agent names listed above
5. Your output MUST be a valid JSON array of the form:
[
  {"unit": "ProjectBriefAgent", "goal": "What the agent must achieve", "focus": "What it should pay attention to"}
]

Create the JSON plan now.""",
)

PROJECT_BRIEF_TEMPLATE = PromptTemplate(
    id="projectBrief",
    version="2",
    text="""You are a Product Manager. Your task is to refine the user's idea into a formal Project Brief.
Analyze the project context and output a JSON object with the following structure:
{
  "title": "Project title",
  "summary": "One sentence summary",
  "problemStatement": "Detailed problem description",
  "solution": "How the app solves the problem",
  "coreFeatures": ["feature1", "feature2", "feature3"]
}

**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}
**Relevant Documentation:**
{{DOCUMENTATION}}

Generate the project brief now.""",
)

USER_PERSONA_TEMPLATE = PromptTemplate(
    id="userPersona",
    version="2",
    text="""You are a UX Researcher. Your task is to create user personas for this project.
Analyze the project context and create 2-3 distinct user personas.

**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}
**Relevant Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Create 2-3 realistic user personas based on the project idea
2. Each persona should have:
   - A realistic name and demographic info
   - A brief bio explaining their background
   - Their goals related to this app
   - Their frustrations that this app would solve
3. Output as JSON with the following structure:
{
  "personas": [
    {
      "name": "Persona Name",
      "bio": "Brief background description",
      "goals": ["Goal 1", "Goal 2"],
      "frustrations": ["Frustration 1", "Frustration 2"]
    }
  ]
}

Generate the user personas now.""",
)

USER_FLOW_TEMPLATE = PromptTemplate(
    id="userFlow",
    version="2",
    text="""You are a UX Designer. Your task is to outline a primary user flow for this project.
Analyze the project context and describe the key user journey from start to finish.

**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}
**Relevant Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Create a clear, step-by-step user flow based on the core features
2. Focus on the primary user journey (e.g., from landing to completing main action)
3. Each step should include:
   - Step number
   - User action
   - Brief description of what happens
4. Output as JSON with the following structure:
{
  "title": "Flow Title",
  "description": "Brief description of the flow",
  "steps": [
    {
      "step": 1,
      "action": "User lands on homepage",
      "description": "User sees the main landing page with value proposition"
    }
  ]
}

Generate the user flow now.""",
)

DB_SCHEMA_TEMPLATE = PromptTemplate(
    id="dbSchema",
    version="2",
    text="""You are a database architect. Your task is to design the database schema for this project.

**Backend Technology:** {{BACKEND}}
**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}

**Backend Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Design database tables/collections based on the project requirements
2. Consider the selected backend technology ({{BACKEND}})
3. Include all necessary fields with appropriate types
4. Define relationships between entities
5. Add appropriate indexes for performance
6. Output as JSON with the following structure:
{
  "title": "Database Schema",
  "backend": "{{BACKEND}}",
  "description": "Brief description of the schema design",
  "entities": [
    {
      "name": "users",
      "type": "table|collection",
      "fields": [
        {"name": "id", "type": "uuid|string", "required": true, "description": "Primary key"}
      ],
      "relationships": [
        {"type": "one-to-many", "target": "posts", "field": "userId"}
      ]
    }
  ]
}

Generate the database schema now.""",
)

API_ENDPOINTS_TEMPLATE = PromptTemplate(
    id="apiEndpoints",
    version="2",
    text="""You are a backend engineer. Your task is to design the API endpoints for this project.

**Backend Technology:** {{BACKEND}}
**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}

**Backend Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Design RESTful API endpoints based on the project requirements
2. Consider the selected backend technology ({{BACKEND}})
3. Include all CRUD operations and business logic endpoints
4. Specify HTTP methods, paths, and data structures
5. Include authentication/authorization where needed
6. Output as JSON with the following structure:
{
  "title": "API Endpoints",
  "backend": "{{BACKEND}}",
  "description": "Overview of the API design",
  "endpoints": [
    {
      "method": "GET",
      "path": "/api/users",
      "description": "Get all users",
      "requestBody": {"required": false, "schema": {}},
      "responseBody": {"status": 200, "schema": {"type": "array", "items": {"type": "object"}}}
    }
  ]
}

Generate the API endpoints now.""",
)

COMPONENT_ARCHITECTURE_TEMPLATE = PromptTemplate(
    id="componentArchitecture",
    version="2",
    text="""You are a senior frontend developer. Your task is to design the UI component architecture for this project.

**Framework:** {{FRAMEWORK}}
**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}

**Framework Guidelines:**
{{FRAMEWORK_GUIDELINES}}

**Relevant Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Break down the UI into a logical hierarchy of components
2. Consider the selected framework ({{FRAMEWORK}}) best practices
3. Define component purpose, props, state, and child relationships
4. Create a reusable and maintainable component structure
5. Output as JSON with the following structure:
{
  "title": "Component Architecture",
  "framework": "{{FRAMEWORK}}",
  "description": "Overview of the component design",
  "architecture": {
    "root": "App",
    "layout": "MainLayout",
    "pages": ["HomePage", "DashboardPage"],
    "components": {
      "App": {
        "purpose": "Root application component",
        "props": ["children"],
        "state": ["currentUser", "theme"],
        "children": ["MainLayout"]
      }
    }
  }
}

Generate the component architecture now.""",
)

TECH_RATIONALE_TEMPLATE = PromptTemplate(
    id="techRationale",
    version="2",
    text="""You are a software architect. Your task is to justify the chosen technology stack for this project.

**Project Context:**
{{PLAN_CONTEXT}}

**Selected Tech Stack:**
{{TECH_STACK}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}
**Relevant Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Analyze each technology choice and explain why it's suitable
2. Consider project requirements, team capabilities, and long-term maintenance
3. Compare with alternative technologies where relevant
4. Highlight benefits and potential trade-offs
5. Output as JSON with the following structure:
{
  "title": "Technology Stack Rationale",
  "overview": "Brief overview of the technology decisions",
  "technologies": [
    {
      "category": "Frontend Framework",
      "technology": "React",
      "rationale": "Chosen for its component-based architecture and large ecosystem",
      "alternatives": ["Vue.js", "Svelte", "Angular"],
      "benefits": ["Large community", "Rich ecosystem"]
    }
  ],
  "conclusion": "Overall assessment of the tech stack suitability"
}

Generate the technology rationale now.""",
)

ROADMAP_TEMPLATE = PromptTemplate(
    id="roadmap",
    version="2",
    text="""You are a Product Owner. Your task is to create a high-level project roadmap for this application.

**Project Context:**
{{PLAN_CONTEXT}}

**Your Goal:** {{TASK_GOAL}}
**Your Focus:** {{TASK_FOCUS}}
**Relevant Documentation:**
{{DOCUMENTATION}}

**Instructions:**
1. Group features into logical development phases
2. Consider MVP (Minimum Viable Product) as the first phase
3. Plan subsequent versions with incremental improvements
4. Include realistic timeframes and success criteria
5. Output as JSON with the following structure:
{
  "title": "Project Roadmap",
  "description": "Strategic development plan overview",
  "phases": [
    {
      "version": "1.0.0",
      "name": "MVP",
      "description": "Core functionality for initial launch",
      "timeframe": "4-6 weeks",
      "features": ["User authentication", "Basic CRUD operations"],
      "deliverables": ["Working application", "Production deployment"],
      "success_criteria": ["Core features working", "Positive user feedback"]
    }
  ]
}

Generate the project roadmap now.""",
)

DOCUMENT_GENERATOR_TEMPLATE = PromptTemplate(
    id="documentGenerator",
    version="2",
    text="""You are an expert AI document generator. Your final task is to assemble the project documents.

**Complete Development Plan:**
{{PLAN_CONTEXT}}

**Requested Documents:** {{REQUESTED_DOCUMENTS}}

**Instructions:**
1. Assemble all generated content into properly formatted markdown documents
2. Only include documents that were specifically requested AND have content in the plan
3. Never invent a document whose content is missing from the plan
4. Ensure each document has proper headers, formatting, and structure
5. Output as JSON with the following structure:
{
  "summary": "Brief summary of the generated documentation",
  "documents": {
    "Project_Brief.md": "Complete markdown content..."
  },
  "file_structure": {
    "description": "Overview of the generated file structure",
    "files": ["Project_Brief.md"]
  }
}

Generate the final JSON object containing the requested project documents now.""",
)

DEFAULT_TEMPLATES = TemplateRegistry(
    [
        PLANNER_TEMPLATE,
        PROJECT_BRIEF_TEMPLATE,
        USER_PERSONA_TEMPLATE,
        USER_FLOW_TEMPLATE,
        DB_SCHEMA_TEMPLATE,
        API_ENDPOINTS_TEMPLATE,
        COMPONENT_ARCHITECTURE_TEMPLATE,
        TECH_RATIONALE_TEMPLATE,
        ROADMAP_TEMPLATE,
        DOCUMENT_GENERATOR_TEMPLATE,
    ]
)


def build_prompt(
    template_id: str,
    bindings: Mapping[str, Any],
    validate: bool = True,
    registry: Optional[TemplateRegistry] = None,
) -> str:
    return (registry or DEFAULT_TEMPLATES).build(template_id, bindings, validate=validate)


# Default template for each generation unit
UNIT_TEMPLATES: Dict[str, str] = {
    "ProjectBriefAgent": "projectBrief",
    "UserPersonaAgent": "userPersona",
    "UserFlowAgent": "userFlow",
    "DBSchemaAgent": "dbSchema",
    "APIEndpointAgent": "apiEndpoints",
    "ComponentArchitectureAgent": "componentArchitecture",
    "TechRationaleAgent": "techRationale",
    "RoadmapAgent": "roadmap",
}
