"""
Inference client for the external language-model endpoint.

The client never raises: transport errors, timeouts, non-success statuses
and malformed payloads are all normalized to an "unavailable" result.
"""
import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.core.circuit_breaker import CircuitBreaker
from app.core.exceptions import InferenceUnavailableError
from app.services.prompt import SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


@dataclass
class InferenceResult:
    """Raw reply text, or the reason no reply is available."""

    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def unavailable(cls, reason: str) -> "InferenceResult":
        return cls(text=None, error=reason)


class InferenceClient(ABC):
    """Abstract base class for inference providers.

    Implementations:
    - OpenAIInferenceClient: chat-completions HTTP endpoint
    - StubInferenceClient: deterministic replies for local development
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def complete(self, prompt: str) -> InferenceResult:
        """Send the prompt and return the reply text or a failure; never raises."""
        ...


class OpenAIInferenceClient(InferenceClient):
    """Chat-completions client with an explicit time budget and circuit breaker."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4.1",
        base_url: str = "https://api.openai.com/v1",
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout_sec: float = 30.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout_sec = timeout_sec
        self._circuit_breaker = circuit_breaker
        self._transport = transport

        if not self._api_key:
            logger.warning("Inference API key not configured; inference tier will be unavailable")

    @property
    def name(self) -> str:
        return f"openai:{self._model}"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    async def complete(self, prompt: str) -> InferenceResult:
        if not self._api_key:
            return InferenceResult.unavailable("api key not configured")

        if self._circuit_breaker is not None and not self._circuit_breaker.allow_request():
            return InferenceResult.unavailable("circuit open")

        try:
            text = await asyncio.wait_for(self._request(prompt), timeout=self._timeout_sec)
        except asyncio.TimeoutError:
            return self._failed("timeout")
        except InferenceUnavailableError as e:
            return self._failed(e.details["reason"])
        except Exception as e:
            logger.exception(f"Unexpected inference client error: {e}")
            return self._failed(f"unexpected error: {type(e).__name__}")

        if self._circuit_breaker is not None:
            self._circuit_breaker.record_success()
        return InferenceResult(text=text)

    def _failed(self, reason: str) -> InferenceResult:
        if self._circuit_breaker is not None:
            self._circuit_breaker.record_failure()
        logger.warning(f"Inference unavailable: {reason}")
        return InferenceResult.unavailable(reason)

    async def _request(self, prompt: str) -> str:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_sec,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/chat/completions",
                    headers=headers,
                    json=self.build_payload(prompt),
                )
        except httpx.TimeoutException as e:
            raise InferenceUnavailableError("timeout") from e
        except httpx.HTTPError as e:
            raise InferenceUnavailableError(f"transport error: {e}") from e

        if not response.is_success:
            raise InferenceUnavailableError(f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise InferenceUnavailableError("invalid JSON body") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InferenceUnavailableError("malformed response structure") from e
        if not isinstance(content, str):
            raise InferenceUnavailableError("malformed response structure")

        logger.debug(f"Inference reply received: model={data.get('model', self._model)}")
        return content


class StubInferenceClient(InferenceClient):
    """Echoes the first prompt candidates back with descending scores."""

    _ID_PATTERN = re.compile(r"^ID:(\d+)\b", re.MULTILINE)

    def __init__(self, count: int = 10) -> None:
        self._count = count

    @property
    def name(self) -> str:
        return "stub"

    async def complete(self, prompt: str) -> InferenceResult:
        ids = self._ID_PATTERN.findall(prompt)[: self._count]
        if not ids:
            return InferenceResult(text="")
        pairs = [
            f"{video_id}:{max(0.95 - i * 0.05, 0.1):.2f}"
            for i, video_id in enumerate(ids)
        ]
        return InferenceResult(text=",".join(pairs))
