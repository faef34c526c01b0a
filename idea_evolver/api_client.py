"""
Resilient LLM client
====================

Wraps one logical request to an LLM provider with:
- a circuit breaker check before anything touches the network
- a per-attempt timeout
- retries with exponential backoff (base_delay * 2 ** attempt)
- a single fallback attempt against a secondary provider
- JSON parsing of the reply when the caller expects structured output

Progress events are emitted once per logical call, never per retry.

Usage:
    client = ResilientClient(primary, secondary, CircuitBreaker("llm"))
    data = await client.execute(LLMRequest(prompt=..., expect_json=True))
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .circuit_breaker import CircuitBreaker
from .llm_client import LLMProvider, ProviderError, ProviderTimeoutError
from .progress import ProgressObserver, notify_progress
from .responses import ResponseFormatError, parse_json_response

logger = logging.getLogger(__name__)


@dataclass
class LLMRequest:
    prompt: str
    model: Optional[str] = None
    expect_json: bool = False
    response_schema: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    source: str = "APIClient"

    @property
    def wants_json(self) -> bool:
        return self.expect_json or self.response_schema is not None


def check_schema(data: Any, schema: Optional[Dict[str, Any]]) -> Any:
    """Shallow check: top-level JSON type and required keys."""
    if not schema:
        return data

    expected = schema.get("type")
    if expected == "object":
        if not isinstance(data, dict):
            raise ResponseFormatError(f"Expected a JSON object, got {type(data).__name__}")
        missing = [k for k in schema.get("required", []) if k not in data]
        if missing:
            raise ResponseFormatError(f"Missing required fields: {', '.join(missing)}")
    elif expected == "array" and not isinstance(data, list):
        raise ResponseFormatError(f"Expected a JSON array, got {type(data).__name__}")
    return data


class ResilientClient:
    def __init__(
        self,
        primary: LLMProvider,
        secondary: Optional[LLMProvider] = None,
        breaker: Optional[CircuitBreaker] = None,
        timeout: float = 30.0,
        retries: int = 3,
        base_delay: float = 1.0,
        primary_model: Optional[str] = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.breaker = breaker or CircuitBreaker("llm")
        self.timeout = timeout
        self.retries = retries
        self.base_delay = base_delay
        self.primary_model = primary_model
        self._observers: List[ProgressObserver] = []

    def add_observer(self, observer: ProgressObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    async def execute(self, request: LLMRequest) -> Any:
        """Run one logical request; returns text, or parsed JSON when requested.

        Raises CircuitOpenError without a network call while the breaker is
        open, ResponseFormatError for unusable replies, and ProviderError when
        every provider failed.
        """
        self.breaker.before_call()
        notify_progress(self._observers, "started", request.source, "API call started")

        try:
            result = await self._execute_with_fallback(request)
        except Exception as e:
            self.breaker.record_failure()
            notify_progress(self._observers, "failed", request.source, error=str(e))
            raise
        except BaseException:
            # cancelled mid-call
            self.breaker.release_trial()
            raise

        self.breaker.record_success()
        notify_progress(self._observers, "completed", request.source, "API call completed")
        return result

    async def _execute_with_fallback(self, request: LLMRequest) -> Any:
        try:
            return await self._execute_with_retries(request)
        except ResponseFormatError:
            raise
        except Exception as primary_error:
            if self.secondary is None:
                raise

            logger.warning(
                "Primary provider %s failed (%s); falling back to %s",
                self.primary.name,
                primary_error,
                self.secondary.name,
            )
            try:
                return await self._attempt(self.secondary, request, model=None)
            except ResponseFormatError:
                raise
            except Exception as fallback_error:
                raise ProviderError(
                    f"All providers failed. {self.primary.name}: {primary_error}; "
                    f"{self.secondary.name}: {fallback_error}"
                ) from fallback_error

    async def _execute_with_retries(self, request: LLMRequest) -> Any:
        model = request.model or self.primary_model
        last_error: Optional[Exception] = None

        for attempt in range(self.retries + 1):
            try:
                return await self._attempt(self.primary, request, model=model)
            except ResponseFormatError:
                raise
            except Exception as e:
                last_error = e
                if attempt < self.retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.info(
                        "%s attempt %d/%d failed (%s); retrying in %.1fs",
                        self.primary.name,
                        attempt + 1,
                        self.retries + 1,
                        e,
                        delay,
                    )
                    await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error

    async def _attempt(self, provider: LLMProvider, request: LLMRequest, model: Optional[str]) -> Any:
        try:
            raw = await asyncio.wait_for(
                provider.complete(
                    request.prompt,
                    model=model,
                    temperature=request.temperature,
                    max_tokens=request.max_tokens,
                    json_mode=request.wants_json,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(f"Request timeout after {self.timeout}s") from None

        if not request.wants_json:
            return raw
        return check_schema(parse_json_response(raw), request.response_schema)

    async def close(self) -> None:
        await self.primary.close()
        if self.secondary is not None:
            await self.secondary.close()

    def get_status(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.name,
            "secondary": self.secondary.name if self.secondary else None,
            "timeout": self.timeout,
            "retries": self.retries,
            "circuit_breaker": self.breaker.get_status(),
        }
