"""
LLM provider backends with five modes:
- mock       : returns canned JSON (no external calls)
- ollama     : calls a local Ollama model
- openai     : calls OpenAI's chat API
- openrouter : calls OpenRouter through its OpenAI-compatible API
- hf/huggingface : calls Hugging Face Inference Providers using an
                   OpenAI-compatible chat completions API.

Every backend exposes the same coroutine, `complete()`, returning the raw
text of the reply. Retries, timeouts and fallback live in api_client.
"""

import asyncio
import logging
from typing import Dict, Optional

import requests

from .config import Settings
from .mock_responses import mock_reply

logger = logging.getLogger(__name__)

PROVIDER_NAMES = ("mock", "ollama", "openai", "openrouter", "hf", "huggingface")


class ProviderError(RuntimeError):
  """A transient backend failure: network, HTTP status or configuration."""

  def __init__(self, message: str, status_code: Optional[int] = None):
      super().__init__(message)
      self.status_code = status_code


class ProviderTimeoutError(ProviderError):
  pass


class LLMProvider:
  name = "base"

  def __init__(self, model: str):
      self.model = model

  async def complete(
      self,
      prompt: str,
      *,
      model: Optional[str] = None,
      temperature: Optional[float] = None,
      max_tokens: Optional[int] = None,
      json_mode: bool = False,
  ) -> str:
      raise NotImplementedError

  async def close(self) -> None:
      """Release network resources held by the provider."""

  def __repr__(self) -> str:
      return f"<{type(self).__name__} {self.name}:{self.model}>"


class MockProvider(LLMProvider):
  name = "mock"

  def __init__(self, model: str = "mock"):
      super().__init__(model)

  async def complete(
      self,
      prompt: str,
      *,
      model: Optional[str] = None,
      temperature: Optional[float] = None,
      max_tokens: Optional[int] = None,
      json_mode: bool = False,
  ) -> str:
      return mock_reply(prompt)


class OpenAICompatibleProvider(LLMProvider):
  """
  Chat completions through the openai SDK. Used for OpenAI itself and for
  the OpenAI-compatible routers (OpenRouter, Hugging Face).
  """

  def __init__(
      self,
      name: str,
      model: str,
      api_key: Optional[str],
      key_name: str,
      base_url: Optional[str] = None,
      headers: Optional[Dict[str, str]] = None,
      supports_json_mode: bool = True,
  ):
      super().__init__(model)
      self.name = name
      self.api_key = api_key
      self.key_name = key_name
      self.base_url = base_url
      self.headers = headers or {}
      self.supports_json_mode = supports_json_mode
      self._client = None

  def _get_client(self):
      # one SDK client (and connection pool) per provider
      if self._client is None:
          from openai import AsyncOpenAI

          self._client = AsyncOpenAI(
              api_key=self.api_key,
              base_url=self.base_url,
              default_headers=self.headers or None,
              max_retries=0,
          )
      return self._client

  async def close(self) -> None:
      if self._client is not None:
          await self._client.close()
          self._client = None

  async def complete(
      self,
      prompt: str,
      *,
      model: Optional[str] = None,
      temperature: Optional[float] = None,
      max_tokens: Optional[int] = None,
      json_mode: bool = False,
  ) -> str:
      if not self.api_key:
          raise ProviderError(f"{self.key_name} not set on the server.")

      import openai

      client = self._get_client()
      kwargs = {
          "model": model or self.model,
          "messages": [{"role": "user", "content": prompt}],
          "temperature": 0.4 if temperature is None else temperature,
      }
      if max_tokens is not None:
          kwargs["max_tokens"] = max_tokens
      if json_mode and self.supports_json_mode:
          kwargs["response_format"] = {"type": "json_object"}

      try:
          resp = await client.chat.completions.create(**kwargs)
      except openai.APIStatusError as e:
          raise ProviderError(
              f"Error calling {self.name}: {e.status_code} {e.message}",
              status_code=e.status_code,
          ) from e
      except openai.APIError as e:
          raise ProviderError(f"Error calling {self.name}: {e}") from e

      if not resp.choices:
          raise ProviderError(f"No response from {self.name} API")

      content = resp.choices[0].message.content
      if not isinstance(content, str):
          content = "" if content is None else str(content)
      return content


class OllamaProvider(LLMProvider):
  name = "ollama"

  def __init__(self, model: str, url: str, timeout: float = 60.0):
      super().__init__(model)
      self.url = url
      self.timeout = timeout

  async def complete(
      self,
      prompt: str,
      *,
      model: Optional[str] = None,
      temperature: Optional[float] = None,
      max_tokens: Optional[int] = None,
      json_mode: bool = False,
  ) -> str:
      payload = {
          "model": model or self.model,
          "messages": [{"role": "user", "content": prompt}],
          "stream": False,
      }
      options = {}
      if temperature is not None:
          options["temperature"] = temperature
      if max_tokens is not None:
          options["num_predict"] = max_tokens
      if options:
          payload["options"] = options
      if json_mode:
          payload["format"] = "json"

      # requests is blocking; keep the event loop free for sibling tasks
      return await asyncio.to_thread(self._post, payload)

  def _post(self, payload: dict) -> str:
      try:
          resp = requests.post(self.url, json=payload, timeout=self.timeout)
          resp.raise_for_status()
      except requests.HTTPError as e:
          status = e.response.status_code if e.response is not None else None
          raise ProviderError(f"Error calling Ollama: {e}", status_code=status) from e
      except requests.RequestException as e:
          raise ProviderError(f"Error calling Ollama: {e}") from e

      data = resp.json()
      message = data.get("message", {})
      content = message.get("content")
      if not isinstance(content, str):
          raise ProviderError("Ollama returned an unexpected response format.")
      return content


def build_provider(name: str, settings: Settings) -> LLMProvider:
  prov = (name or "").strip().lower()

  if prov == "openai":
      return OpenAICompatibleProvider(
          name="openai",
          model=settings.openai_model,
          api_key=settings.openai_api_key,
          key_name="OPENAI_API_KEY",
      )
  elif prov == "openrouter":
      return OpenAICompatibleProvider(
          name="openrouter",
          model=settings.openrouter_model,
          api_key=settings.openrouter_api_key,
          key_name="OPENROUTER_API_KEY",
          base_url=settings.openrouter_url,
          headers={
              "HTTP-Referer": "https://idea-evolver.local",
              "X-Title": "Idea Evolver",
          },
      )
  elif prov in ("hf", "huggingface"):
      return OpenAICompatibleProvider(
          name="huggingface",
          model=settings.hf_model,
          api_key=settings.hf_api_key,
          key_name="HF_API_KEY",
          base_url=settings.hf_url,
          supports_json_mode=False,
      )
  elif prov == "ollama":
      return OllamaProvider(
          model=settings.ollama_model,
          url=settings.ollama_url,
          timeout=max(settings.request_timeout, 1.0) * 2,
      )
  elif prov == "mock":
      return MockProvider()

  raise ValueError(f"Unknown LLM provider: {name!r} (expected one of {', '.join(PROVIDER_NAMES)})")
