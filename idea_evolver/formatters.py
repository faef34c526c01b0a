"""
JSON -> markdown renderers, one per generation unit.

Each formatter is a pure function of its input dict. Top-level keys are
guaranteed by the unit schema; nested entries are read leniently.
"""

import json


def _bullets(items) -> str:
    return "".join(f"- {item}\n" for item in items or [])


def _footer(unit: str) -> str:
    return f"*Generated by {unit}*\n"


def format_project_brief(data: dict) -> str:
    features = "\n".join(f"- {feature}" for feature in data.get("coreFeatures") or [])
    return (
        f"# {data['title']}\n\n"
        f"## Summary\n{data['summary']}\n\n"
        f"## Problem Statement\n{data['problemStatement']}\n\n"
        f"## Solution\n{data['solution']}\n\n"
        f"## Core Features\n{features}\n\n"
        "---\n\n"
        + _footer("ProjectBriefAgent")
    )


def format_user_personas(data: dict) -> str:
    md = "# User Personas\n\n"
    for persona in data["personas"]:
        md += f"## {persona.get('name', 'Unnamed persona')}\n\n"
        md += f"{persona.get('bio', '')}\n\n"
        if persona.get("goals"):
            md += "**Goals:**\n" + _bullets(persona["goals"]) + "\n"
        if persona.get("frustrations"):
            md += "**Frustrations:**\n" + _bullets(persona["frustrations"]) + "\n"
        md += "---\n\n"
    return md + _footer("UserPersonaAgent")


def format_user_flow(data: dict) -> str:
    md = f"# {data['title']}\n\n"
    if data.get("description"):
        md += f"{data['description']}\n\n"
    md += "## Steps\n\n"
    for i, step in enumerate(data["steps"], start=1):
        number = step.get("step", i)
        md += f"{number}. **{step.get('action', '')}**"
        if step.get("description"):
            md += f" - {step['description']}"
        md += "\n"
    md += "\n---\n\n"
    return md + _footer("UserFlowAgent")


def format_db_schema(data: dict) -> str:
    md = f"# {data['title']}\n\n"
    md += f"**Backend:** {data.get('backend', '')}\n\n"
    md += f"{data.get('description', '')}\n\n"
    md += "## Database Entities\n\n"

    for entity in data["entities"]:
        md += f"### {entity.get('name')} ({entity.get('type', 'table')})\n\n"
        md += "**Fields:**\n"
        for field in entity.get("fields") or []:
            md += f"- **{field.get('name')}** ({field.get('type')})"
            if field.get("required"):
                md += " *required*"
            md += f" - {field.get('description', '')}\n"

        if entity.get("relationships"):
            md += "\n**Relationships:**\n"
            for rel in entity["relationships"]:
                md += f"- {rel.get('type')} → {rel.get('target')} ({rel.get('field')})\n"

        md += "\n---\n\n"

    return md + _footer("DBSchemaAgent")


def format_api_endpoints(data: dict) -> str:
    md = f"# {data['title']}\n\n"
    md += f"**Backend:** {data.get('backend', '')}\n\n"
    md += f"{data.get('description', '')}\n\n"
    md += "## API Endpoints\n\n"

    for endpoint in data["endpoints"]:
        md += f"### {endpoint.get('method')} {endpoint.get('path')}\n\n"
        md += f"**Description:** {endpoint.get('description', '')}\n\n"

        request_body = endpoint.get("requestBody") or {}
        if request_body.get("required"):
            schema = json.dumps(request_body.get("schema", {}), indent=2)
            md += f"**Request Body:**\n```json\n{schema}\n```\n\n"

        response_body = endpoint.get("responseBody") or {}
        status = response_body.get("status") or 200
        schema = json.dumps(response_body.get("schema") or {}, indent=2)
        md += f"**Response Body (Status {status}):**\n```json\n{schema}\n```\n\n"
        md += "---\n\n"

    return md + _footer("APIEndpointAgent")


def format_component_architecture(data: dict) -> str:
    arch = data["architecture"]
    md = f"# {data['title']}\n\n"
    md += f"**Framework:** {data.get('framework', '')}\n\n"
    md += f"{data.get('description', '')}\n\n"

    md += "## Component Hierarchy\n\n"
    md += f"- **Root:** {arch.get('root', '')}\n"
    md += f"- **Layout:** {arch.get('layout', '')}\n"
    md += f"- **Pages:** {', '.join(arch.get('pages') or [])}\n\n"

    md += "## Component Details\n\n"
    for name, component in (arch.get("components") or {}).items():
        md += f"### {name}\n\n"
        md += f"**Purpose:** {component.get('purpose', '')}\n\n"
        if component.get("props"):
            md += "**Props:**\n" + _bullets(component["props"]) + "\n"
        if component.get("state"):
            md += "**State:**\n" + _bullets(component["state"]) + "\n"
        if component.get("children"):
            md += f"**Children:** {', '.join(component['children'])}\n\n"
        md += "---\n\n"

    return md + _footer("ComponentArchitectureAgent")


def format_tech_rationale(data: dict) -> str:
    md = f"# {data['title']}\n\n"
    md += f"{data.get('overview', '')}\n\n"
    md += "## Technology Choices\n\n"

    for tech in data["technologies"]:
        md += f"### {tech.get('category')}: {tech.get('technology')}\n\n"
        md += f"**Rationale:** {tech.get('rationale', '')}\n\n"
        if tech.get("alternatives"):
            md += f"**Alternatives Considered:** {', '.join(tech['alternatives'])}\n\n"
        if tech.get("benefits"):
            md += "**Key Benefits:**\n" + _bullets(tech["benefits"]) + "\n"
        md += "---\n\n"

    md += "## Conclusion\n\n"
    md += f"{data.get('conclusion', '')}\n\n"
    return md + _footer("TechRationaleAgent")


def format_roadmap(data: dict) -> str:
    md = f"# {data['title']}\n\n"
    md += f"{data.get('description', '')}\n\n"
    md += "## Development Phases\n\n"

    for phase in data["phases"]:
        md += f"### {phase.get('version')} - {phase.get('name')}\n\n"
        md += f"**Description:** {phase.get('description', '')}\n\n"
        if phase.get("timeframe"):
            md += f"**Timeframe:** {phase['timeframe']}\n\n"
        if phase.get("features"):
            md += "**Key Features:**\n" + _bullets(phase["features"]) + "\n"
        if phase.get("deliverables"):
            md += "**Deliverables:**\n" + _bullets(phase["deliverables"]) + "\n"
        if phase.get("success_criteria"):
            md += "**Success Criteria:**\n" + _bullets(phase["success_criteria"]) + "\n"
        md += "---\n\n"

    return md + _footer("RoadmapAgent")
