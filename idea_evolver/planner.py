import logging
from typing import Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from .api_client import LLMRequest, ResilientClient
from .models import DOCUMENT_TO_UNIT, UNIT_NAMES, UNIT_TO_DOCUMENT, Task, TechStack
from .prompts import DEFAULT_TEMPLATES, TemplateRegistry

logger = logging.getLogger(__name__)

PLANNING_TEMPERATURE = 0.3

_TASK_LIST = TypeAdapter(List[Task])


class PlanValidationError(ValueError):
  pass


def fallback_plan(requested_documents: Iterable[str]) -> List[Task]:
  """
  One task per requested document, mapped straight through the fixed
  document -> unit table. No I/O, cannot fail.
  """
  tasks: List[Task] = []
  seen = set()
  for doc in requested_documents:
      unit = DOCUMENT_TO_UNIT.get(doc)
      if unit is None or unit in seen:
          continue
      seen.add(unit)
      tasks.append(
          Task(
              unit=unit,
              goal=f"Generate {doc} based on user requirements",
              focus=f"Create comprehensive {doc} documentation",
          )
      )
  return tasks


def validate_plan(data, requested_documents: Iterable[str]) -> List[Task]:
  """
  Turn the planner's JSON into Tasks.

  Unknown units are a hard error. Tasks for documents nobody asked for and
  repeated units are dropped. Requested documents with no task are only
  logged.
  """
  requested = list(requested_documents)

  items = data.get("tasks") if isinstance(data, dict) else data
  if not isinstance(items, list) or not items:
      raise PlanValidationError("Plan must be a non-empty JSON array of tasks")

  for item in items:
      if not isinstance(item, dict):
          raise PlanValidationError(f"Invalid task entry: {item!r}")
      unit = item.get("unit", item.get("agent"))
      if unit not in UNIT_NAMES:
          raise PlanValidationError(f"Invalid unit generated: {unit}")

  try:
      planned = _TASK_LIST.validate_python(items)
  except ValidationError as e:
      raise PlanValidationError(f"Invalid plan structure: {e}") from e

  tasks: List[Task] = []
  seen = set()
  for task in planned:
      doc = UNIT_TO_DOCUMENT[task.unit]
      if doc not in requested:
          logger.warning("Planner scheduled %s for unrequested document %s; dropping", task.unit, doc)
          continue
      if task.unit in seen:
          logger.warning("Planner scheduled %s more than once; keeping the first", task.unit)
          continue
      seen.add(task.unit)
      tasks.append(task)

  if not tasks:
      raise PlanValidationError("Plan contains no task for any requested document")

  planned_docs = {UNIT_TO_DOCUMENT[t.unit] for t in tasks}
  for doc in requested:
      if doc not in planned_docs:
          logger.warning("Requested document %s is not covered by the plan", doc)

  return tasks


class Planner:
  def __init__(self, client: ResilientClient, templates: Optional[TemplateRegistry] = None):
      self.client = client
      self.templates = templates or DEFAULT_TEMPLATES

  def build_prompt(self, user_idea: str, tech_stack: TechStack, requested_documents: List[str]) -> str:
      units = "\n".join(f"- {doc} -> {DOCUMENT_TO_UNIT[doc]}" for doc in DOCUMENT_TO_UNIT)
      return self.templates.build(
          "planner",
          {
              "USER_IDEA": user_idea,
              "TECH_STACK": tech_stack,
              "REQUESTED_DOCUMENTS": ", ".join(requested_documents),
              "AVAILABLE_UNITS": units,
          },
      )

  async def plan(
      self, user_idea: str, tech_stack: TechStack, requested_documents: Iterable[str]
  ) -> List[Task]:
      requested = list(requested_documents)

      try:
          prompt = self.build_prompt(user_idea, tech_stack, requested)
          data = await self.client.execute(
              LLMRequest(
                  prompt=prompt,
                  expect_json=True,
                  temperature=PLANNING_TEMPERATURE,
                  source="Planner",
              )
          )
          tasks = validate_plan(data, requested)
      except Exception as e:
          logger.warning("Planning failed, using fallback plan: %s", e)
          return fallback_plan(requested)

      logger.info("Planner produced %d task(s)", len(tasks))
      return tasks
