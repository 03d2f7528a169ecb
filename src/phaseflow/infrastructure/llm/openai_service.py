"""
OpenAI-compatible generation service.

Connects to any chat-completions endpoint (OpenAI, Ollama, vLLM) through
``openai.AsyncOpenAI``. Structured responses (checklists, sprint lists,
sprint specifications)
are requested as JSON and validated with pydantic.
"""

import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

from openai import AsyncOpenAI
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from phaseflow.domain.exceptions import GenerationFailure
from phaseflow.domain.interfaces import GenerationServiceInterface
from phaseflow.domain.models import ChecklistItem, SprintSeed, SprintSpecification

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434/v1"

SYSTEM_GENERATE = (
    "You are an expert engineering documentation assistant. Produce complete, "
    "professional documents in Markdown."
)
SYSTEM_SUMMARIZE = (
    "You compress project documents into context for other language models. "
    "Condense everything into a dense, token-efficient block of text. Keep ALL "
    "technical specifications, constraints, component names, metrics and "
    "numeric values. Use abbreviations and a compact key:value structure. Do "
    "not use conversational language or Markdown."
)
SYSTEM_COMPARE = (
    "You compare two versions of a document and summarize the key differences "
    "concisely in Markdown."
)
SYSTEM_EXPAND = (
    "You are an engineering project manager. From the design documents given, "
    "plan the follow-up development sprints, each about two weeks of work for "
    "one engineer. Respond with a JSON array of objects with 'name' and a "
    "detailed 'description'. Respond with JSON only."
)
SYSTEM_CHECKLIST = (
    "You are an engineering review assistant. From the document given, produce "
    "a checklist of 5-7 critical verification items. Respond with a JSON array "
    "of objects with a unique 'id' and a 'text'. Respond with JSON only."
)
SYSTEM_SPECIFY = (
    "You are an expert engineering assistant. Write the detailed technical "
    "specification for one development sprint in Markdown, ending with a "
    "'## Validation' section holding one goal and a 3-5 item checklist. "
    "Respond with a JSON object with a 'technicalSpec' string and a "
    "'deliverables' array of strings. Respond with JSON only."
)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class ChecklistEntry(BaseModel):
    """Checklist item as returned by the model."""

    id: str = ""
    text: str = Field(min_length=1)


class SprintProposal(BaseModel):
    """Sprint as proposed by the model."""

    name: str = Field(min_length=1)
    description: str = ""


class SprintSpecificationReply(BaseModel):
    """Sprint specification as returned by the model."""

    technicalSpec: str = Field(min_length=1)
    deliverables: list[str] = Field(default_factory=list)


_CHECKLIST_ADAPTER = TypeAdapter(list[ChecklistEntry])
_SPRINTS_ADAPTER = TypeAdapter(list[SprintProposal])
_SPECIFICATION_ADAPTER = TypeAdapter(SprintSpecificationReply)


@dataclass
class OpenAIGenerationConfig:
    """Configuration for OpenAIGenerationService.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = "qwen2.5:7b"
    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = "OPENAI_API_KEY"
    temperature: float = 0.7
    timeout: float = 120.0
    max_retries: int = 2


class OpenAIGenerationService(GenerationServiceInterface):
    """Generation service backed by an OpenAI-compatible API."""

    config_class = OpenAIGenerationConfig

    def __init__(
        self,
        config: OpenAIGenerationConfig | None = None,
        client: AsyncOpenAI | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            config: Typed configuration object (preferred)
            client: Pre-built client, mainly for tests
            **kwargs: Config fields when no config object is given
        """
        if config is None:
            config = OpenAIGenerationConfig(**kwargs)
        self._config = config
        # Local servers ignore the key but the client requires one.
        api_key = os.environ.get(config.api_key_env) or "not-needed"
        self._client = client or AsyncOpenAI(
            base_url=config.base_url,
            api_key=api_key,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    async def _complete(self, system: str, user: str) -> str:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        logger.debug("Calling %s (%d chars)", self._config.model, len(user))
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=cast(Any, messages),
            temperature=self._config.temperature,
        )
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise GenerationFailure("Model returned an empty response")
        return content

    async def generate(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> str:
        """Generate a document from project context and task prompt."""
        return await self._complete(
            SYSTEM_GENERATE, _document_request(prompt, context, tuning_settings)
        )

    async def specify_sprint(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> SprintSpecification:
        user = (
            f"{_document_request(prompt, context, tuning_settings)}\n\n"
            "## Task:\nReturn the technical specification and its deliverables as JSON."
        )
        raw = await self._complete(SYSTEM_SPECIFY, user)
        reply = self._parse(raw, _SPECIFICATION_ADAPTER, "sprint specification")
        return SprintSpecification(
            content=reply.technicalSpec,
            deliverables=tuple(d for d in reply.deliverables if d.strip()),
        )

    async def summarize(self, content: str) -> str:
        return await self._complete(SYSTEM_SUMMARIZE, content)

    async def compare(
        self, content_a: str, content_b: str, reason_a: str = "", reason_b: str = ""
    ) -> str:
        user = (
            "Compare the following two document versions and explain the changes.\n\n"
            f"Version A (Reason for change: {reason_a or 'unknown'}):\n---\n"
            f"{content_a}\n---\n\n"
            f"Version B (Reason for change: {reason_b or 'unknown'}):\n---\n"
            f"{content_b}\n---\n\n"
            "Provide a summary of the differences in Markdown format."
        )
        return await self._complete(SYSTEM_COMPARE, user)

    async def expand_sprints(self, seed_content: str) -> list[SprintSeed]:
        user = (
            f"## Completed design documents:\n\n{seed_content}\n\n---\n\n"
            "## Task:\nCreate the list of development sprints as JSON."
        )
        raw = await self._complete(SYSTEM_EXPAND, user)
        proposals = self._parse(raw, _SPRINTS_ADAPTER, "sprint list")
        return [SprintSeed(name=p.name, description=p.description) for p in proposals]

    async def review_checklist(self, content: str) -> list[ChecklistItem]:
        user = (
            f"## Engineering Document for Review:\n\n{content}\n\n"
            "## Task:\nGenerate the design review checklist as JSON."
        )
        raw = await self._complete(SYSTEM_CHECKLIST, user)
        entries = self._parse(raw, _CHECKLIST_ADAPTER, "checklist")
        return [
            ChecklistItem(id=e.id or f"item-{i + 1}", text=e.text, checked=False)
            for i, e in enumerate(entries)
        ]

    def _parse(self, raw: str, adapter: TypeAdapter[Any], what: str) -> Any:
        """Extract and validate JSON from a model response."""
        match = _FENCE.search(raw)
        text = match.group(1) if match else raw
        try:
            return adapter.validate_json(text.strip())
        except PydanticValidationError as e:
            raise GenerationFailure(
                f"Model returned invalid JSON for the {what}: {e.error_count()} errors"
            ) from e


def _document_request(prompt: str, context: str, tuning_settings: Mapping[str, int]) -> str:
    return (
        f"{context}\n\n---\n\n{prompt}\n\n"
        f"## Tuning Parameters:\n{json.dumps(dict(tuning_settings))}"
    )
