# idea_evolver/models.py

"""
Core data models for the Idea Evolver service.

These Pydantic models define the shapes that flow between the planner,
the executor, the generation units and the final document assembly.
"""

from typing import Dict, List, Literal, Optional, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# The eight documents a caller can request
DocumentType = Literal[
    "projectBrief",
    "userPersonas",
    "userFlow",
    "dbSchema",
    "apiEndpoints",
    "componentArchitecture",
    "techRationale",
    "projectRoadmap",
]

# The eight specialised generation units the planner may schedule
UnitName = Literal[
    "ProjectBriefAgent",
    "UserPersonaAgent",
    "UserFlowAgent",
    "DBSchemaAgent",
    "APIEndpointAgent",
    "ComponentArchitectureAgent",
    "TechRationaleAgent",
    "RoadmapAgent",
]

# How the executor should run the planned tasks
# - "sequential": strictly one after another (debugging / determinism)
# - "parallel": bounded batches running concurrently
ExecutionMode = Literal["sequential", "parallel"]

ProgressEventType = Literal["started", "completed", "failed", "progress"]

Framework = Literal["React", "Vue", "Svelte"]
Backend = Literal["Convex", "Firebase", "Supabase", "Node.js (Express)", "None"]
Styling = Literal["Tailwind CSS", "CSS Modules"]
UILibrary = Literal["None", "Shadcn/UI", "Material-UI", "Chakra UI"]
StateManagement = Literal["None (useState/useReducer)", "Zustand", "Jotai"]
Auth = Literal["None", "Convex Auth", "Clerk", "Firebase Auth", "Supabase Auth"]

DOCUMENT_TYPES: tuple = get_args(DocumentType)
UNIT_NAMES: tuple = get_args(UnitName)

DOCUMENT_TO_UNIT: Dict[str, str] = {
    "projectBrief": "ProjectBriefAgent",
    "userPersonas": "UserPersonaAgent",
    "userFlow": "UserFlowAgent",
    "dbSchema": "DBSchemaAgent",
    "apiEndpoints": "APIEndpointAgent",
    "componentArchitecture": "ComponentArchitectureAgent",
    "techRationale": "TechRationaleAgent",
    "projectRoadmap": "RoadmapAgent",
}

UNIT_TO_DOCUMENT: Dict[str, str] = {unit: doc for doc, unit in DOCUMENT_TO_UNIT.items()}

DOCUMENT_FILENAMES: Dict[str, str] = {
    "projectBrief": "Project_Brief.md",
    "userPersonas": "User_Personas.md",
    "userFlow": "User_Flow.md",
    "dbSchema": "Database_Schema.md",
    "apiEndpoints": "API_Endpoints.md",
    "componentArchitecture": "Component_Architecture.md",
    "techRationale": "Tech_Rationale.md",
    "projectRoadmap": "Project_Roadmap.md",
}


class ProjectFeatures(BaseModel):
    model_config = ConfigDict(frozen=True)

    auth: bool = False
    crud: bool = False
    realtime: bool = False


class TechStack(BaseModel):
    """
    The target platform chosen by the user. Read-only for the whole run.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    framework: Framework = "React"
    backend: Backend = "Convex"
    styling: Styling = "Tailwind CSS"
    ui_library: UILibrary = Field("None", alias="uiLibrary")
    state_management: StateManagement = Field(
        "None (useState/useReducer)", alias="stateManagement"
    )
    auth: Auth = "None"
    features: ProjectFeatures = Field(default_factory=ProjectFeatures)

    def to_wire(self) -> dict:
        """Serialise with the camelCase field names used in prompts."""
        return self.model_dump(by_alias=True)


class Task(BaseModel):
    """
    One planned piece of work: which unit runs, and with what goal/focus.
    """

    model_config = ConfigDict(frozen=True)

    # planners trained on the older prompt still answer with "agent"
    unit: UnitName = Field(..., validation_alias=AliasChoices("unit", "agent"))
    goal: str
    focus: str


class TaskResult(BaseModel):
    """
    Outcome of executing one Task. Exactly one of output/error is set.
    """

    unit: UnitName
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @model_validator(mode="after")
    def _output_or_error(self) -> "TaskResult":
        if self.success and (self.output is None or self.error is not None):
            raise ValueError("A successful result carries output and no error")
        if not self.success and (self.error is None or self.output is not None):
            raise ValueError("A failed result carries an error and no output")
        return self


class PlanContext(BaseModel):
    """
    The immutable input every generation unit sees: the idea and the stack.
    """

    model_config = ConfigDict(frozen=True)

    user_idea: str
    tech_stack: TechStack

    def to_wire(self) -> dict:
        return {"userIdea": self.user_idea, "techStack": self.tech_stack.to_wire()}


class DevelopmentPlan(BaseModel):
    """
    Accumulator for the generated documents of one run.

    Starts with only the idea and tech stack; the aggregator writes one
    field per successfully generated document type.
    """

    user_idea: str
    tech_stack: TechStack

    project_brief: Optional[str] = None
    user_personas: Optional[str] = None
    user_flow: Optional[str] = None
    db_schema: Optional[str] = None
    api_endpoints: Optional[str] = None
    component_architecture: Optional[str] = None
    tech_rationale: Optional[str] = None
    project_roadmap: Optional[str] = None

    @property
    def context(self) -> PlanContext:
        return PlanContext(user_idea=self.user_idea, tech_stack=self.tech_stack)

    def get_document(self, document: str) -> Optional[str]:
        return getattr(self, _DOCUMENT_FIELDS[document])

    def set_document(self, document: str, content: str) -> None:
        setattr(self, _DOCUMENT_FIELDS[document], content)

    def generated_documents(self) -> List[str]:
        return [doc for doc in DOCUMENT_TYPES if self.get_document(doc)]

    def to_wire(self) -> dict:
        data = self.context.to_wire()
        for doc in self.generated_documents():
            data[doc] = self.get_document(doc)
        return data


_DOCUMENT_FIELDS: Dict[str, str] = {
    "projectBrief": "project_brief",
    "userPersonas": "user_personas",
    "userFlow": "user_flow",
    "dbSchema": "db_schema",
    "apiEndpoints": "api_endpoints",
    "componentArchitecture": "component_architecture",
    "techRationale": "tech_rationale",
    "projectRoadmap": "project_roadmap",
}


class ProgressEvent(BaseModel):
    """
    One entry of the progress stream consumed by the UI.
    """

    type: ProgressEventType
    source: str
    message: Optional[str] = None
    error: Optional[str] = None


class DevelopmentResult(BaseModel):
    """
    Everything a caller gets back from one orchestration run.
    """

    documents: Dict[str, str] = Field(default_factory=dict)
    tasks: List[Task] = Field(default_factory=list)
    results: List[TaskResult] = Field(default_factory=list)
