"""Test plan extractor configuration.

Typed configuration for the extraction engine. Settings use Pydantic v2
models so they are validated at construction time and can be built from
environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class LLMConfig(BaseModel):
    """Connection settings for the hosted language model."""

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="llama3.1:8b")
    api_key: str | None = Field(default=None, description="Bearer token, if the endpoint needs one")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")


class ExtractionConfig(BaseModel):
    """Global extraction configuration.

    ``use_llm`` is the caller's request for AI-assisted extraction and
    ``llm_credentials_present`` is the capability gate; the strategy selector
    only picks the LLM-assisted extractor when both are true.
    """

    use_llm: bool = Field(default=False, description="Request AI-assisted extraction")
    llm_credentials_present: bool = Field(
        default=False, description="Whether an LLM endpoint/credential is configured"
    )
    min_narrative_yield: int = Field(
        default=3,
        ge=0,
        description="Narrative requirement count below which the PDF chain escalates",
    )
    llm: LLMConfig = Field(default_factory=LLMConfig)

    @property
    def llm_enabled(self) -> bool:
        """``True`` when LLM assistance is both requested and available."""
        return self.use_llm and self.llm_credentials_present

    @classmethod
    def from_env(cls) -> "ExtractionConfig":
        """Build an ``ExtractionConfig`` from environment variables.

        Recognised variables (all optional):
            TESTPLAN_USE_LLM, TESTPLAN_LLM_URL, TESTPLAN_LLM_MODEL,
            TESTPLAN_LLM_API_KEY, TESTPLAN_LLM_TIMEOUT,
            TESTPLAN_MIN_NARRATIVE_YIELD.

        Credentials count as present when an API key or an explicit endpoint
        URL is set.
        """
        llm_kwargs: dict[str, Any] = {}
        if os.environ.get("TESTPLAN_LLM_URL"):
            llm_kwargs["url"] = os.environ["TESTPLAN_LLM_URL"]
        if os.environ.get("TESTPLAN_LLM_MODEL"):
            llm_kwargs["model"] = os.environ["TESTPLAN_LLM_MODEL"]
        if os.environ.get("TESTPLAN_LLM_API_KEY"):
            llm_kwargs["api_key"] = os.environ["TESTPLAN_LLM_API_KEY"]
        if os.environ.get("TESTPLAN_LLM_TIMEOUT"):
            llm_kwargs["timeout"] = int(os.environ["TESTPLAN_LLM_TIMEOUT"])

        kwargs: dict[str, Any] = {}
        if os.environ.get("TESTPLAN_MIN_NARRATIVE_YIELD"):
            kwargs["min_narrative_yield"] = int(os.environ["TESTPLAN_MIN_NARRATIVE_YIELD"])

        use_llm = os.environ.get("TESTPLAN_USE_LLM", "").strip().lower() in _TRUTHY
        credentials = bool(llm_kwargs.get("api_key") or llm_kwargs.get("url"))

        return cls(
            use_llm=use_llm,
            llm_credentials_present=credentials,
            llm=LLMConfig(**llm_kwargs),
            **kwargs,
        )
