# idea_evolver/storage.py

"""
Key-value configuration storage and the two services built on it:
per-unit agent configuration and the custom documentation library.

The orchestration core only talks to the `ConfigStore` protocol, so any
backend with get/set/delete/list works; `InMemoryConfigStore` is the one
shipped here.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import UNIT_NAMES
from .prompts import DEFAULT_TEMPLATES, UNIT_TEMPLATES

logger = logging.getLogger(__name__)

CONFIG_PREFIX = "agent-config-"
DOCS_KEY = "custom-documentation-sources"

TOOL_IDS = ("DocumentationSearch", "AgentCaller")

# Tools switched on when a unit has no stored configuration
DEFAULT_TOOLS: Dict[str, Tuple[str, ...]] = {
    "DBSchemaAgent": ("DocumentationSearch",),
    "APIEndpointAgent": ("DocumentationSearch",),
}

EPOCH = "1970-01-01T00:00:00+00:00"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConfigStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def list(self) -> List[Tuple[str, Any]]: ...


class InMemoryConfigStore:
    """Dict-backed store. Values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._lock = Lock()
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self) -> List[Tuple[str, Any]]:
        with self._lock:
            return [(k, copy.deepcopy(v)) for k, v in self._data.items()]


# ----------------------------
# AGENT CONFIGURATION
# ----------------------------

class ToolConfig(BaseModel):
    id: str
    enabled: bool = False
    params: Dict[str, Any] = Field(default_factory=dict)


class AgentConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    system_prompt: str = Field(..., alias="systemPrompt")
    is_custom: bool = Field(False, alias="isCustom")
    last_modified: str = Field(EPOCH, alias="lastModified")
    tools: List[ToolConfig] = Field(default_factory=list)

    def tool(self, tool_id: str) -> Optional[ToolConfig]:
        for tool in self.tools:
            if tool.id == tool_id:
                return tool
        return None

    def tool_enabled(self, tool_id: str) -> bool:
        tool = self.tool(tool_id)
        return bool(tool and tool.enabled)


def _check_unit(unit: str) -> None:
    if unit not in UNIT_NAMES:
        raise KeyError(f"Unknown unit: {unit}")


class AgentConfigService:
    def __init__(self, store: ConfigStore):
        self.store = store

    def default(self, unit: str) -> AgentConfig:
        _check_unit(unit)
        enabled = DEFAULT_TOOLS.get(unit, ())
        return AgentConfig(
            id=unit,
            system_prompt=DEFAULT_TEMPLATES.get(UNIT_TEMPLATES[unit]).text,
            is_custom=False,
            last_modified=EPOCH,
            tools=[ToolConfig(id=tool_id, enabled=tool_id in enabled) for tool_id in TOOL_IDS],
        )

    def get(self, unit: str) -> AgentConfig:
        _check_unit(unit)
        stored = self.store.get(f"{CONFIG_PREFIX}{unit}")
        if stored is None:
            return self.default(unit)

        try:
            config = AgentConfig.model_validate(stored)
        except ValidationError as e:
            logger.warning("Failed to parse config for %s, using default: %s", unit, e)
            return self.default(unit)

        # tools added after the config was saved show up disabled
        known = {t.id for t in config.tools}
        for tool_id in TOOL_IDS:
            if tool_id not in known:
                config.tools.append(ToolConfig(id=tool_id, enabled=False))
        return config

    def save(self, config: AgentConfig) -> AgentConfig:
        _check_unit(config.id)
        saved = config.model_copy(update={"is_custom": True, "last_modified": _now()})
        self.store.set(f"{CONFIG_PREFIX}{saved.id}", saved.model_dump(by_alias=True))
        logger.info("Saved custom configuration for %s", saved.id)
        return saved

    def reset(self, unit: str) -> AgentConfig:
        _check_unit(unit)
        self.store.delete(f"{CONFIG_PREFIX}{unit}")
        return self.default(unit)

    def all(self) -> List[AgentConfig]:
        return [self.get(unit) for unit in UNIT_NAMES]


# ----------------------------
# CUSTOM DOCUMENTATION
# ----------------------------

class DocumentationSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    content: str
    last_modified: str = Field(EPOCH, alias="lastModified")


class DocumentationLibrary:
    def __init__(self, store: ConfigStore):
        self.store = store

    def _load(self) -> List[DocumentationSource]:
        raw = self.store.get(DOCS_KEY) or []
        sources = []
        for item in raw:
            try:
                sources.append(DocumentationSource.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed documentation source: %s", e)
        return sources

    def _write(self, sources: List[DocumentationSource]) -> None:
        self.store.set(DOCS_KEY, [s.model_dump(by_alias=True) for s in sources])

    def list(self) -> List[DocumentationSource]:
        """All sources, newest first."""
        return sorted(self._load(), key=lambda s: s.last_modified, reverse=True)

    def get(self, doc_id: str) -> Optional[DocumentationSource]:
        for source in self._load():
            if source.id == doc_id:
                return source
        return None

    def save(self, title: str, content: str, doc_id: Optional[str] = None) -> DocumentationSource:
        sources = self._load()
        now = _now()

        if doc_id:
            for i, source in enumerate(sources):
                if source.id == doc_id:
                    saved = source.model_copy(
                        update={"title": title, "content": content, "last_modified": now}
                    )
                    sources[i] = saved
                    break
            else:
                raise KeyError("Document to update not found")
        else:
            saved = DocumentationSource(
                id=str(uuid.uuid4()), title=title, content=content, last_modified=now
            )
            sources.append(saved)

        self._write(sources)
        return saved

    def delete(self, doc_id: str) -> bool:
        sources = self._load()
        remaining = [s for s in sources if s.id != doc_id]
        self._write(remaining)
        return len(remaining) != len(sources)

    def clear(self) -> None:
        self.store.delete(DOCS_KEY)
