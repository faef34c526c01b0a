# idea_evolver/mock_responses.py

"""
Canned replies for the `mock` provider.

The role line at the top of each built-in template decides which reply is
returned, so a full run works offline and every reply matches the schema
the caller expects.
"""

import json
import re
from typing import List

from .models import DOCUMENT_FILENAMES, DOCUMENT_TO_UNIT, DOCUMENT_TYPES

_REQUESTED_RE = re.compile(r"\*\*Requested Documents:\*\*\s*(.+)")
_PLAN_RE = re.compile(
    r"\*\*Complete Development Plan:\*\*\s*(\{.*\})\s*\*\*Requested Documents:\*\*",
    re.DOTALL,
)


def _requested_documents(prompt: str) -> List[str]:
    match = _REQUESTED_RE.search(prompt)
    if not match:
        return []
    names = [part.strip() for part in match.group(1).split(",")]
    return [n for n in names if n in DOCUMENT_TYPES]


def _plan_reply(prompt: str) -> list:
    tasks = []
    for doc in _requested_documents(prompt):
        tasks.append(
            {
                "unit": DOCUMENT_TO_UNIT[doc],
                "goal": f"Generate {doc} based on user requirements",
                "focus": f"Create comprehensive {doc} documentation",
            }
        )
    return tasks


def _assembly_reply(prompt: str) -> dict:
    plan = {}
    match = _PLAN_RE.search(prompt)
    if match:
        try:
            plan = json.loads(match.group(1))
        except json.JSONDecodeError:
            plan = {}

    documents = {}
    for doc in _requested_documents(prompt):
        content = plan.get(doc)
        if isinstance(content, str) and content.strip():
            documents[DOCUMENT_FILENAMES[doc]] = content

    return {
        "summary": f"Generated {len(documents)} project document(s).",
        "documents": documents,
        "file_structure": {
            "description": "Markdown documents ready for download",
            "files": list(documents),
        },
    }


_BRIEF = {
    "title": "Mock Project",
    "summary": "A focused app that turns the idea into a usable product.",
    "problemStatement": "Users lack a simple tool for this job.",
    "solution": "A lightweight web app with a clear core workflow.",
    "coreFeatures": ["Create items", "Edit items", "Track progress"],
}

_PERSONAS = {
    "personas": [
        {
            "name": "Alex Rivera",
            "bio": "Busy product designer juggling several projects.",
            "goals": ["Stay organised", "Save time"],
            "frustrations": ["Cluttered tools", "Slow onboarding"],
        },
        {
            "name": "Sam Lee",
            "bio": "Student who plans coursework weekly.",
            "goals": ["Plan deadlines"],
            "frustrations": ["Forgetting tasks"],
        },
    ]
}

_FLOW = {
    "title": "Primary User Flow",
    "description": "From landing to completing the main action.",
    "steps": [
        {"step": 1, "action": "User lands on homepage", "description": "Sees the value proposition"},
        {"step": 2, "action": "User signs up", "description": "Creates an account"},
        {"step": 3, "action": "User creates an item", "description": "Completes the core action"},
    ],
}

_SCHEMA = {
    "title": "Database Schema",
    "backend": "Convex",
    "description": "Minimal schema for the core entities.",
    "entities": [
        {
            "name": "users",
            "type": "table",
            "fields": [
                {"name": "id", "type": "id", "required": True, "description": "Primary key"},
                {"name": "email", "type": "string", "required": True, "description": "Login email"},
            ],
            "relationships": [{"type": "one-to-many", "target": "items", "field": "userId"}],
        },
        {
            "name": "items",
            "type": "table",
            "fields": [
                {"name": "id", "type": "id", "required": True, "description": "Primary key"},
                {"name": "title", "type": "string", "required": True, "description": "Item title"},
            ],
            "relationships": [],
        },
    ],
}

_API = {
    "title": "API Endpoints",
    "backend": "Convex",
    "description": "CRUD endpoints for items.",
    "endpoints": [
        {
            "method": "GET",
            "path": "/api/items",
            "description": "List items",
            "requestBody": {"required": False, "schema": {}},
            "responseBody": {"status": 200, "schema": {"type": "array"}},
        },
        {
            "method": "POST",
            "path": "/api/items",
            "description": "Create an item",
            "requestBody": {"required": True, "schema": {"title": "string"}},
            "responseBody": {"status": 201, "schema": {"type": "object"}},
        },
    ],
}

_COMPONENTS = {
    "title": "Component Architecture",
    "framework": "React",
    "description": "Page-based component tree.",
    "architecture": {
        "root": "App",
        "layout": "MainLayout",
        "pages": ["HomePage", "DashboardPage"],
        "components": {
            "App": {
                "purpose": "Root application component",
                "props": [],
                "state": ["currentUser"],
                "children": ["MainLayout"],
            },
            "MainLayout": {
                "purpose": "Shared page chrome",
                "props": ["children"],
                "state": [],
                "children": ["HomePage", "DashboardPage"],
            },
        },
    },
}

_RATIONALE = {
    "title": "Technology Stack Rationale",
    "overview": "A pragmatic stack for a small team.",
    "technologies": [
        {
            "category": "Frontend Framework",
            "technology": "React",
            "rationale": "Component model and ecosystem.",
            "alternatives": ["Vue", "Svelte"],
            "benefits": ["Large community"],
        }
    ],
    "conclusion": "The stack fits the project's scope.",
}

_ROADMAP = {
    "title": "Project Roadmap",
    "description": "Phased delivery plan.",
    "phases": [
        {
            "version": "1.0.0",
            "name": "MVP",
            "description": "Core functionality for initial launch",
            "timeframe": "4-6 weeks",
            "features": ["Authentication", "Basic CRUD"],
            "deliverables": ["Working application"],
            "success_criteria": ["Core features working"],
        },
        {
            "version": "1.1.0",
            "name": "Polish",
            "description": "Feedback-driven improvements",
            "timeframe": "2-3 weeks",
            "features": ["Notifications"],
            "deliverables": ["Release notes"],
            "success_criteria": ["Retention improves"],
        },
    ],
}

# checked in order; the planner line also contains "software architect"
_ROLE_REPLIES = [
    ("You are a Product Manager", _BRIEF),
    ("You are a UX Researcher", _PERSONAS),
    ("You are a UX Designer", _FLOW),
    ("You are a database architect", _SCHEMA),
    ("You are a backend engineer", _API),
    ("You are a senior frontend developer", _COMPONENTS),
    ("You are a software architect", _RATIONALE),
    ("You are a Product Owner", _ROADMAP),
]


def mock_reply(prompt: str) -> str:
    if "world-class AI software architect" in prompt:
        return json.dumps(_plan_reply(prompt))
    if "expert AI document generator" in prompt:
        return json.dumps(_assembly_reply(prompt))

    for phrase, reply in _ROLE_REPLIES:
        if phrase in prompt:
            return json.dumps(reply)

    return json.dumps({"message": "Mock response", "prompt_length": len(prompt)})
