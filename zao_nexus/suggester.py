"""Optional OpenAI-backed tag suggestions with a deterministic local fallback."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import TYPE_CHECKING, cast

from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError, field_validator

from .extractor import TagExtractor
from .links import normalize_tag, unique_tags
from .models import Link

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping

    from openai.types.chat import ChatCompletion, ChatCompletionMessageParam

    from .models import TagMeta

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4.1-mini"
LOCAL_CONFIDENCE = 0.6
DEFAULT_AI_CONFIDENCE = 0.7
REQUEST_TIMEOUT_SECONDS = 20.0

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates relevant tags for web links. "
    "Respond with JSON only."
)


class TaggingRequest(BaseModel):
    """Input for a tag suggestion."""

    title: str
    description: str = ""
    url: str = ""
    existing_tags: list[str] = Field(default_factory=list)

    @field_validator("description", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class TaggingResponse(BaseModel):
    """Suggested tags; identical shape whether the AI or the local extractor answered."""

    suggested_tags: list[str] = Field(default_factory=list)
    confidence: float | None = None
    categories: list[str] = Field(default_factory=list)


class AITagPayload(BaseModel):
    """Model representing the JSON object the LLM is asked to return."""

    tags: list[str] = Field(default_factory=list)
    confidence: float | None = None
    categories: list[str] = Field(default_factory=list)

    @field_validator("tags", "categories", mode="before")
    @classmethod
    def _clean(cls, value: object) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if str(item).strip()]


class SuggestionError(RuntimeError):
    """Raised when every LLM attempt failed."""


def build_prompt(request: TaggingRequest) -> str:
    """Create the user prompt asking for tags, confidence and categories."""
    lines = ["Generate relevant tags for the following link:", "", f"Title: {request.title}"]
    if request.description:
        lines.append(f"Description: {request.description}")
    if request.url:
        lines.append(f"URL: {request.url}")
    if request.existing_tags:
        lines.append(f"Existing tags: {', '.join(request.existing_tags)}")
    lines.extend(
        [
            "",
            "Respond with a JSON object containing:",
            "1. An array of suggested tags (5-10 tags)",
            "2. A confidence score between 0 and 1",
            "3. An array of suggested categories",
            "",
            "Example response format:",
            '{"tags": ["tag1", "tag2", "tag3"], "confidence": 0.85, '
            '"categories": ["category1", "category2"]}',
        ],
    )
    return "\n".join(lines)


class AITagSuggester:
    """Tag suggester that asks an OpenAI chat model and falls back to :class:`TagExtractor`.

    The AI path is used only when a client is available (``OPENAI_API_KEY`` set, or a
    client injected). Any failure, timeout, unparseable reply or empty tag list
    yields the local extractor's answer with the same response shape. If the primary
    model is unavailable the first failed attempt switches to a fallback model (env
    ``OPENAI_FALLBACK_MODEL``, else the default) for the remaining attempts.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        extractor: TagExtractor | None = None,
        registry: Mapping[str, TagMeta] | None = None,
        fallback_model: str | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
    ) -> None:
        self._extractor = extractor or TagExtractor()
        self._registry = registry
        self._model = model
        fb = fallback_model or os.getenv("OPENAI_FALLBACK_MODEL") or DEFAULT_MODEL
        self._fallback_model: str = str(fb)
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)
        # Some models reject a custom temperature; disabled after the first such error.
        self._supports_temperature: bool = True
        self._client: object | None = None
        if os.getenv("OPENAI_API_KEY"):
            self._client = OpenAI(timeout=REQUEST_TIMEOUT_SECONDS, max_retries=0)

    # Test/extension hook -----------------------------------------------------
    def set_client(self, client: object | None) -> None:
        """Inject a mock / custom OpenAI-like client, or None to force local tagging."""
        self._client = client

    @property
    def uses_ai(self) -> bool:
        return self._client is not None

    def generate_tags(self, request: TaggingRequest) -> TaggingResponse:
        """Suggest tags for ``request``; never raises for service problems."""
        if self._client is None:
            LOGGER.debug("OpenAI client not configured; using local tag generation")
            return self.generate_locally(request)
        try:
            payload = self._invoke_with_retry(self._build_messages(request))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "AI tagging failed for %r (%s); falling back to local tag generation",
                request.title,
                exc,
            )
            return self.generate_locally(request)

        tags = unique_tags(
            [*request.existing_tags, *payload.tags], limit=self._extractor.max_tags,
        )
        return TaggingResponse(
            suggested_tags=tags,
            confidence=(
                DEFAULT_AI_CONFIDENCE if payload.confidence is None else payload.confidence
            ),
            categories=payload.categories,
        )

    def generate_locally(self, request: TaggingRequest) -> TaggingResponse:
        link = Link(
            id="",
            title=request.title,
            url=request.url,
            description=request.description,
            tags=[normalize_tag(tag) for tag in request.existing_tags],
        )
        return TaggingResponse(
            suggested_tags=self._extractor.extract_tags(link, self._registry),
            confidence=LOCAL_CONFIDENCE,
            categories=[],
        )

    # --- LLM invocation & validation helpers -------------------------------------------------

    def _invoke_with_retry(self, messages: list[ChatCompletionMessageParam]) -> AITagPayload:
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                payload = self._single_attempt(messages)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if self._process_exception(exc, attempt=attempt):
                    continue
                time.sleep(self._backoff_seconds * attempt)
                continue
            if payload.tags:
                return payload
            last_error = ValueError("LLM returned no tags")
        if last_error is not None:
            raise last_error
        raise SuggestionError

    def _single_attempt(self, messages: list[ChatCompletionMessageParam]) -> AITagPayload:
        client = cast("OpenAI", self._client)
        kwargs: dict[str, object] = {
            "model": self._model,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }
        if self._supports_temperature:
            kwargs["temperature"] = 0.3
        create = client.chat.completions.create
        response: ChatCompletion = create(**kwargs)  # type: ignore[call-overload]
        return self._parse_response(response)

    def _process_exception(self, exc: Exception, *, attempt: int) -> bool:
        """Handle a failed attempt; True means retry immediately without backoff."""
        message = str(exc).lower()
        if (
            self._supports_temperature
            and "temperature" in message
            and "unsupported" in message
        ):
            LOGGER.warning(
                "Model '%s' rejects custom temperature; omitting for remaining attempts",
                self._model,
            )
            self._supports_temperature = False
            return True

        if (
            attempt == 1
            and self._fallback_model != self._model
            and "model" in message
            and ("not found" in message or "does not exist" in message)
        ):
            LOGGER.warning(
                "Primary model '%s' unavailable; switching to fallback '%s'",
                self._model,
                self._fallback_model,
            )
            self._model = self._fallback_model
            return True

        LOGGER.warning(
            "LLM attempt %d/%d failed: %s; retrying in %.1fs",
            attempt,
            self._max_attempts,
            exc,
            self._backoff_seconds * attempt,
        )
        return False

    @staticmethod
    def _parse_response(response: ChatCompletion) -> AITagPayload:
        if not response.choices:
            msg = "OpenAI response missing choices"
            raise RuntimeError(msg)
        content = response.choices[0].message.content
        if content is None:
            msg = "OpenAI response content empty"
            raise RuntimeError(msg)
        raw_obj: object = json.loads(content)
        if not isinstance(raw_obj, dict):
            msg = "LLM response root is not an object"
            raise TypeError(msg)
        try:
            return AITagPayload.model_validate(raw_obj)
        except ValidationError as exc:
            msg = f"LLM response failed validation: {exc}"
            raise ValueError(msg) from exc

    @staticmethod
    def _build_messages(request: TaggingRequest) -> list[ChatCompletionMessageParam]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(request)},
        ]

