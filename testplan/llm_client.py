"""Async client for the hosted language model.

Wraps an Ollama-compatible HTTP API (``/api/generate``) with timeout
handling and structured responses. ``generate`` never raises; it reports
failures through ``LLMResponse.success``. ``invoke`` is the narrow boundary
used by the LLM-assisted extractor: it returns the raw reply text or raises
:class:`LLMError`.

Typical usage::

    client = LLMClient.from_config(ExtractionConfig.from_env().llm)
    reply = await client.invoke("Extract requirements from ...")
"""

from __future__ import annotations

from typing import Protocol

import httpx
from pydantic import BaseModel, Field

from testplan.config import LLMConfig


class LLMError(Exception):
    """Raised when the model endpoint cannot produce a reply."""


class LLMInvoker(Protocol):
    """Anything that turns a prompt into reply text."""

    async def invoke(self, prompt: str) -> str: ...


class LLMResponse(BaseModel):
    """Structured response from a generation call."""

    text: str = Field(default="", description="Generated text")
    model: str = Field(default="", description="Model that produced the response")
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class LLMClient:
    """Async client for an Ollama-compatible REST API.

    Uses ``httpx.AsyncClient`` for non-blocking HTTP. When ``api_key`` is set
    every request carries an ``Authorization: Bearer`` header so the same
    client works against a hosted gateway.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: int = 120,
        api_key: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.api_key = api_key

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        """Build a client from an :class:`LLMConfig`."""
        return cls(
            base_url=config.url,
            model=config.model,
            timeout=config.timeout,
            api_key=config.api_key,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers=headers,
        )

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Pull the generated text out of a /api/generate JSON response."""
        return data.get("response", "")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, prompt: str) -> LLMResponse:
        """Generate text from a prompt with the client's model.

        Returns:
            An ``LLMResponse`` with the generated text or an error.
        """
        payload: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
                return LLMResponse(
                    text=self._extract_text(data),
                    model=data.get("model", self.model),
                    success=True,
                )
        except httpx.ConnectError:
            return LLMResponse(
                model=self.model,
                success=False,
                error=f"Cannot connect to the model endpoint at {self.base_url}.",
            )
        except httpx.TimeoutException:
            return LLMResponse(
                model=self.model,
                success=False,
                error=f"Model request timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return LLMResponse(
                model=self.model,
                success=False,
                error=f"Model endpoint returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            )
        except Exception as exc:  # noqa: BLE001
            return LLMResponse(
                model=self.model,
                success=False,
                error=f"Unexpected error during generate: {exc}",
            )

    async def invoke(self, prompt: str) -> str:
        """Return the model's reply to *prompt*.

        Raises:
            LLMError: If the request failed for any reason.
        """
        result = await self.generate(prompt)
        if not result.success:
            raise LLMError(result.error or "unknown model error")
        return result.text
