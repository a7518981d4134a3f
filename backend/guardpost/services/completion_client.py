"""Text-generation providers behind a single bounded ``complete`` call."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx
from openai import AsyncOpenAI

from guardpost.core.config import Settings, get_settings
from guardpost.core.errors import CompletionServiceError
from guardpost.core.logging import logger


@dataclass(frozen=True)
class CompletionPrompt:
    """System instructions, grounding context and the operator's question."""

    system: str
    context: str
    query: str

    def user_message(self) -> str:
        return (
            f"CONTEXT:\n{self.context}\n\n"
            f"QUESTION: {self.query}\n\n"
            "Answer from the context above and suggest concrete actions where useful."
        )


@dataclass(frozen=True)
class CompletionResult:
    ok: bool
    text: str = ""
    error: Optional[str] = None
    provider: str = ""

    @classmethod
    def success(cls, text: str, provider: str) -> "CompletionResult":
        return cls(ok=True, text=text, provider=provider)

    @classmethod
    def failure(cls, error: str, provider: str) -> "CompletionResult":
        return cls(ok=False, error=error, provider=provider)


class CompletionClient(Protocol):
    provider: str
    model: str

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        ...


class BoundedCompletionClient:
    """Wraps a provider call with a timeout and converts failures to results.

    Cancellation of the awaiting task is not intercepted.
    """

    provider = "base"

    def __init__(self, model: str, timeout_seconds: float) -> None:
        self.model = model
        self.timeout_seconds = max(0.1, float(timeout_seconds))

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        try:
            text = await asyncio.wait_for(self._generate(prompt), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Completion timed out", provider=self.provider, timeout_seconds=self.timeout_seconds)
            return CompletionResult.failure(f"timed out after {self.timeout_seconds:g}s", self.provider)
        except CompletionServiceError as exc:
            logger.warning("Completion service error", provider=self.provider, error=str(exc))
            return CompletionResult.failure(str(exc), self.provider)
        except Exception as exc:
            logger.warning("Completion request failed", provider=self.provider, error_type=type(exc).__name__)
            return CompletionResult.failure(f"{type(exc).__name__}: request failed", self.provider)

        text = (text or "").strip()
        if not text:
            return CompletionResult.failure("empty completion", self.provider)
        return CompletionResult.success(text, self.provider)

    async def _generate(self, prompt: CompletionPrompt) -> str:
        raise NotImplementedError


class OpenAICompletionClient(BoundedCompletionClient):
    """Any OpenAI-compatible chat completions endpoint."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: float,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 600,
        client: Any = None,
    ) -> None:
        super().__init__(model=model, timeout_seconds=timeout_seconds)
        self.temperature = temperature
        self.max_tokens = max_tokens
        if client is not None:
            self.client = client
        else:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=self.timeout_seconds,
                max_retries=0,
            )

    async def _generate(self, prompt: CompletionPrompt) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user_message()},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            raise CompletionServiceError("completion returned no choices")
        return (response.choices[0].message.content or "").strip()


class GeminiCompletionClient(BoundedCompletionClient):
    """Google Generative Language ``generateContent`` over HTTP."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: float,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.2,
        max_tokens: int = 600,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(model=model, timeout_seconds=timeout_seconds)
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._transport = transport

    async def _generate(self, prompt: CompletionPrompt) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": prompt.system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt.user_message()}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
            )
        if response.status_code >= 400:
            raise CompletionServiceError(f"Gemini request failed ({response.status_code})")

        data = response.json()
        try:
            return str(data["candidates"][0]["content"]["parts"][0]["text"]).strip()
        except (KeyError, IndexError, TypeError):
            raise CompletionServiceError("Gemini returned no candidates")


class UnconfiguredCompletionClient:
    """Stand-in when no provider is configured; every request is unavailable."""

    provider = "unconfigured"
    model = ""

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        return CompletionResult.failure("no completion provider configured", self.provider)


def build_completion_client(settings: Settings | None = None, timeout_seconds: float | None = None) -> CompletionClient:
    """Pick a provider from settings: explicit choice first, then Gemini, then OpenAI."""
    settings = settings or get_settings()
    timeout = float(timeout_seconds if timeout_seconds is not None else settings.analyst_timeout_seconds)
    choice = settings.normalized_completion_provider()

    gemini_key = (settings.gemini_api_key or "").strip()
    openai_key = settings.resolved_openai_api_key()

    if choice in {"auto", "gemini"} and gemini_key:
        logger.info("Using Gemini provider for security analyst", model=settings.gemini_model)
        return GeminiCompletionClient(
            api_key=gemini_key,
            model=settings.gemini_model,
            timeout_seconds=timeout,
            base_url=settings.gemini_base_url,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    if choice in {"auto", "openai"} and openai_key is not None:
        logger.info("Using OpenAI-compatible provider for security analyst", model=settings.llm_model)
        return OpenAICompletionClient(
            api_key=openai_key,
            model=settings.llm_model,
            timeout_seconds=timeout,
            base_url=settings.openai_base_url or None,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    logger.warning(
        "Security analyst completion provider is not configured; set GEMINI_API_KEY or OPENAI_API_KEY",
        requested=choice,
    )
    return UnconfiguredCompletionClient()
