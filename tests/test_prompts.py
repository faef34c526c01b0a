"""Tests for template rendering and the default template set."""

import json

import pytest

from idea_evolver.models import TechStack
from idea_evolver.prompts import (
    DEFAULT_TEMPLATES,
    UNIT_TEMPLATES,
    PromptTemplate,
    PromptTemplateError,
    TemplateRegistry,
    build_prompt,
    missing_placeholders,
    render,
)
from idea_evolver.units import BINDING_NAMES


def test_render_replaces_every_occurrence():
    text = "{{NAME}} and {{NAME}} again, {{OTHER}}"
    assert render(text, {"NAME": "x", "OTHER": "y"}) == "x and x again, y"


def test_complex_values_become_pretty_json():
    stack = TechStack(ui_library="Shadcn/UI")
    rendered = render("{{STACK}}|{{LIST}}", {"STACK": stack, "LIST": [1, 2]})
    stack_json, list_json = rendered.split("|")

    assert json.loads(stack_json)["uiLibrary"] == "Shadcn/UI"
    assert "\n  " in stack_json
    assert json.loads(list_json) == [1, 2]


def test_missing_placeholders_are_reported():
    text = "{{A}} {{B}} {{A}} {{C}}"
    assert missing_placeholders(text, {"B": "1"}) == ["A", "C"]


def test_validation_mode_raises_on_unbound():
    with pytest.raises(PromptTemplateError, match="MISSING"):
        render("hello {{MISSING}}", {})


def test_lenient_mode_leaves_token_in_place():
    assert render("hello {{MISSING}}", {}, validate=False) == "hello {{MISSING}}"


def test_bound_values_are_not_rescanned():
    rendered = render("{{IDEA}}", {"IDEA": "an app called {{IDEA}}"})
    assert rendered == "an app called {{IDEA}}"


def test_registry_lookup():
    registry = TemplateRegistry([PromptTemplate(id="t", version="1", text="Hi {{X}}")])
    assert registry.has("t")
    assert registry.build("t", {"X": "there"}) == "Hi there"
    assert registry.validate("t", {}) == ["X"]
    with pytest.raises(PromptTemplateError):
        registry.get("nope")


def test_default_templates_are_versioned():
    for template_id in DEFAULT_TEMPLATES.list():
        assert DEFAULT_TEMPLATES.get(template_id).version


@pytest.mark.parametrize("template_id", sorted(set(UNIT_TEMPLATES.values())))
def test_unit_templates_only_use_unit_bindings(template_id):
    placeholders = DEFAULT_TEMPLATES.get(template_id).placeholders
    assert set(placeholders) <= set(BINDING_NAMES)
    assert "PLAN_CONTEXT" in placeholders
    assert "TASK_GOAL" in placeholders
    assert "TASK_FOCUS" in placeholders


def test_planner_template_builds():
    prompt = build_prompt(
        "planner",
        {
            "USER_IDEA": "A simple todo app",
            "TECH_STACK": TechStack(),
            "REQUESTED_DOCUMENTS": "projectBrief",
            "AVAILABLE_UNITS": "- projectBrief -> ProjectBriefAgent",
        },
    )
    assert "A simple todo app" in prompt
    assert "**Requested Documents:** projectBrief" in prompt
    assert "{{" not in prompt
