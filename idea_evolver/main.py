from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .aggregator import AssemblyError
from .circuit_breaker import CircuitOpenError
from .config import load_settings
from .logging_config import setup_logging
from .models import DocumentType, ExecutionMode, TechStack, UnitName
from .progress import ProgressRecorder
from .prompts import missing_placeholders
from .service import IdeaEvolver
from .storage import ToolConfig
from .units import BINDING_NAMES

SETTINGS = load_settings()
setup_logging(SETTINGS.log_level)

app = FastAPI(title="Idea Evolver")

# ----------------------------
# CORS + GLOBALS
# ----------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One orchestrator per process; the circuit breaker lives as long as it does.
EVOLVER = IdeaEvolver(SETTINGS)


@app.on_event("shutdown")
async def close_providers() -> None:
    await EVOLVER.client.close()


# ----------------------------
# REQUEST MODELS
# ----------------------------

class DevelopRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    idea: str = Field(..., min_length=1, description="Free-text product idea")
    tech_stack: TechStack = Field(default_factory=TechStack, alias="techStack")
    documents: List[DocumentType] = Field(..., min_length=1, description="Documents to generate")
    mode: Optional[ExecutionMode] = Field(None, description="sequential or parallel")


class AgentConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    system_prompt: str = Field(..., min_length=1, alias="systemPrompt")
    tools: Optional[List[ToolConfig]] = None


class DocumentationRequest(BaseModel):
    id: Optional[str] = Field(None, description="Existing source to update")
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


# ----------------------------
# ORCHESTRATION
# ----------------------------

@app.post("/api/develop")
async def api_develop(req: DevelopRequest) -> dict:
    """
    Plan, generate and assemble the requested documents for one idea.
    Returns the bundle plus the planned tasks, per-task results and the
    progress events recorded during the run.
    """
    recorder = ProgressRecorder()

    try:
        result = await EVOLVER.develop_idea(
            req.idea, req.tech_stack, req.documents, mode=req.mode, observers=[recorder]
        )

    except CircuitOpenError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AssemblyError as e:
        # an open breaker during assembly is still "try again later"
        if isinstance(e.__cause__, CircuitOpenError):
            raise HTTPException(status_code=503, detail=str(e.__cause__))
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        # Pass through clear LLM / config errors (missing keys, Ollama down, etc.)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception:
        raise HTTPException(
            status_code=500,
            detail="Unexpected error while developing the idea.",
        )

    return {
        "documents": result.documents,
        "tasks": [t.model_dump() for t in result.tasks],
        "results": [r.model_dump() for r in result.results],
        "events": [e.model_dump() for e in recorder.events],
    }


@app.get("/api/status")
def api_status() -> dict:
    return EVOLVER.get_status()


# ----------------------------
# AGENT CONFIGURATION
# ----------------------------

@app.get("/api/agents/{unit}/config")
def api_get_agent_config(unit: UnitName) -> dict:
    return EVOLVER.agent_configs.get(unit).model_dump(by_alias=True)


@app.put("/api/agents/{unit}/config")
def api_save_agent_config(unit: UnitName, req: AgentConfigRequest) -> dict:
    """
    Store a custom prompt (and optionally tool toggles) for one unit.
    The prompt may only use placeholders the unit can bind.
    """
    bindings = dict.fromkeys(BINDING_NAMES, "")
    unknown = missing_placeholders(req.system_prompt, bindings)
    if unknown:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown placeholders in prompt: {', '.join(unknown)}",
        )

    current = EVOLVER.agent_configs.get(unit)
    update = {"system_prompt": req.system_prompt}
    if req.tools is not None:
        update["tools"] = req.tools
    saved = EVOLVER.agent_configs.save(current.model_copy(update=update))
    return saved.model_dump(by_alias=True)


@app.delete("/api/agents/{unit}/config")
def api_reset_agent_config(unit: UnitName) -> dict:
    return EVOLVER.agent_configs.reset(unit).model_dump(by_alias=True)


# ----------------------------
# CUSTOM DOCUMENTATION
# ----------------------------

@app.get("/api/documentation")
def api_list_documentation() -> list:
    return [s.model_dump(by_alias=True) for s in EVOLVER.documentation.list()]


@app.post("/api/documentation")
def api_save_documentation(req: DocumentationRequest) -> dict:
    try:
        saved = EVOLVER.documentation.save(req.title, req.content, doc_id=req.id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Documentation source not found.")
    return saved.model_dump(by_alias=True)


@app.delete("/api/documentation/{doc_id}")
def api_delete_documentation(doc_id: str) -> dict:
    if not EVOLVER.documentation.delete(doc_id):
        raise HTTPException(status_code=404, detail="Documentation source not found.")
    return {"deleted": doc_id}
