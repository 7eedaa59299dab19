"""
Clients for the code generation collaborator.

The collaborator is a stateless text transform: a natural-language prompt in,
source text out. Two transports are provided:

- ``EndpointGenerationClient`` posts ``{"prompt": ...}`` to a generation
  endpoint that answers ``{"code": ...}`` or ``{"error": ...}``.
- ``ChatCompletionsGenerationClient`` talks to an OpenAI-compatible
  ``/chat/completions`` API directly, with the CodeCanvas system prompt.

Both strip surrounding code fences and raise ``GenerationError`` for
unreachable endpoints, non-2xx responses and malformed payloads. HTTP 429 is
flagged as ``rate_limited``. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import requests

from ..core.config import GenerationConfig
from ..core.exceptions import ConfigurationError, GenerationError
from .prompts import CODE_GENERATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_OPENING_FENCE_RE = re.compile(r"^```[a-z0-9_+-]*\s*\n?", re.IGNORECASE)
_CLOSING_FENCE_RE = re.compile(r"\n?```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence."""
    text = text.strip()
    text = _OPENING_FENCE_RE.sub("", text)
    text = _CLOSING_FENCE_RE.sub("", text)
    return text.strip()


@runtime_checkable
class CodeGenerator(Protocol):
    """Anything that turns a prompt into source text."""

    async def generate(self, prompt: str) -> str:
        ...


class _HTTPGenerationClient:
    """Shared request/response handling for HTTP collaborators."""

    service_name = "Generation service"

    def __init__(self, timeout: float = 120.0) -> None:
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self.generate_sync, prompt)

    def generate_sync(self, prompt: str) -> str:
        raise NotImplementedError

    def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error(f"{self.service_name} unreachable: {exc}")
            raise GenerationError(f"{self.service_name} is unreachable: {exc}") from exc

        if response.status_code == 429:
            logger.warning(f"{self.service_name} rate limit hit")
            raise GenerationError(
                "Too many requests.",
                status_code=429,
                rate_limited=True,
            )

        if not response.ok:
            detail = self._error_detail(response)
            logger.error(f"{self.service_name} error {response.status_code}: {detail}")
            raise GenerationError(
                f"{self.service_name} error {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationError(f"{self.service_name} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise GenerationError(f"{self.service_name} returned an unexpected payload")
        return data

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return (response.text or response.reason or "")[:220]
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                return str(error.get("message") or error)[:220]
            if error:
                return str(error)[:220]
        return str(payload)[:220]


class EndpointGenerationClient(_HTTPGenerationClient):
    """Posts prompts to a ``{"prompt"} -> {"code"}`` endpoint."""

    def __init__(self, endpoint: str, timeout: float = 120.0) -> None:
        super().__init__(timeout)
        self.endpoint = endpoint

    def generate_sync(self, prompt: str) -> str:
        data = self._post(
            self.endpoint,
            {"prompt": prompt},
            {"Content-Type": "application/json"},
        )
        code = data.get("code")
        if not isinstance(code, str):
            raise GenerationError(str(data.get("error") or "Response has no code"))
        return strip_code_fences(code)


class ChatCompletionsGenerationClient(_HTTPGenerationClient):
    """Generates code through an OpenAI-compatible chat completions API."""

    service_name = "Chat completions API"

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        system_prompt: str = CODE_GENERATION_SYSTEM_PROMPT,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(timeout)
        self.base_url = base_url
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

    def generate_sync(self, prompt: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        data = self._post(
            f"{self.base_url.rstrip('/')}/chat/completions",
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "stream": False,
            },
            headers,
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error(f"Invalid response structure: {str(data)[:220]}")
            raise GenerationError("Invalid response structure from the chat completions API") from exc
        return strip_code_fences(content or "")


class StaticCodeGenerator:
    """Returns fixed source text; used to run local files through the pipeline."""

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticCodeGenerator":
        return cls(Path(path).read_text(encoding="utf-8"))

    async def generate(self, prompt: str) -> str:
        return strip_code_fences(self.code)


def build_generator(config: GenerationConfig) -> CodeGenerator:
    """Create the generation client selected by ``config.provider``."""
    provider = config.provider.strip().lower()
    if provider == "endpoint":
        return EndpointGenerationClient(config.endpoint, timeout=config.request_timeout_seconds)
    if provider == "chat":
        return ChatCompletionsGenerationClient(
            base_url=config.base_url,
            model=config.model,
            api_key=config.api_key,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.request_timeout_seconds,
        )
    raise ConfigurationError(f"Unknown generation provider: {config.provider}")
