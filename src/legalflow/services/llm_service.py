"""
Completion gateway over the generative-language-model providers.

Supports Claude (Anthropic) and GPT-4o (OpenAI) with automatic fallback,
tenacity retries on transport errors, and best-effort JSON parsing that never
raises on malformed model output.
"""

import base64
import json
from functools import lru_cache
from typing import Any, Sequence, TypeVar

import structlog
from anthropic import Anthropic
from openai import OpenAI
from pydantic import BaseModel, ValidationError
from tenacity import Retrying, stop_after_attempt, wait_exponential

from legalflow.config import Settings, get_settings
from legalflow.exceptions import InvalidInput, UpstreamUnavailable

logger = structlog.get_logger(__name__)

T = TypeVar("T")

TEXT_SYSTEM_PROMPT = (
    "You are an expert legal drafter. Follow the user's instructions exactly "
    "and return only what is asked for."
)

JSON_SYSTEM_PROMPT = (
    "You are an expert legal analyst. Respond ONLY with a single valid JSON "
    "value matching the requested structure. No markdown, no commentary."
)

SUPPORTED_BINARY_TYPES = ("application/pdf", "text/plain")


# =============================================================================
# Content parts
# =============================================================================


class TextPart(BaseModel):
    """Plain text content."""

    text: str


class InlineBinaryPart(BaseModel):
    """Base64-encoded binary content such as a scanned page or a PDF."""

    mime_type: str
    data: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "InlineBinaryPart":
        return cls(mime_type=mime_type, data=base64.b64encode(data).decode("ascii"))

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


ContentPart = TextPart | InlineBinaryPart


class Completion(BaseModel):
    """Raw completion text plus the accounting needed for usage logging."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


# =============================================================================
# JSON parsing
# =============================================================================


def extract_json(text: str) -> Any:
    """Extract a JSON value from LLM response text. Returns None if there is none."""
    if not isinstance(text, str):
        return None

    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        text = text[start:end if end != -1 else None].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        text = text[start:end if end != -1 else None].strip()

    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError):
        pass

    # Try the outermost object or array, whichever opens first
    candidates = []
    for opener, closer in [("{", "}"), ("[", "]")]:
        start = text.find(opener)
        end = text.rfind(closer) + 1
        if start >= 0 and end > start:
            candidates.append((start, text[start:end]))
    for _, snippet in sorted(candidates):
        try:
            return json.loads(snippet)
        except (json.JSONDecodeError, ValueError, RecursionError):
            continue
    return None


def parse_or_default(raw: str, fallback: T) -> T:
    """
    Parse ``raw`` into the type of ``fallback``, or return ``fallback``.

    - pydantic model fallback: the parsed value is validated into that model.
    - dict/list fallback: the parsed value must be of the same container type.
    - None fallback: any JSON value is accepted.

    Never raises.
    """
    data = extract_json(raw)
    if data is None:
        return fallback

    if fallback is None:
        return data

    if isinstance(fallback, BaseModel):
        try:
            return type(fallback).model_validate(data)
        except ValidationError:
            return fallback

    if isinstance(data, type(fallback)):
        return data
    return fallback


def _token_count(usage: Any, *names: str) -> int:
    for name in names:
        value = getattr(usage, name, None)
        if isinstance(value, int):
            return value
    return 0


# =============================================================================
# Gateway
# =============================================================================


class CompletionGateway:
    """
    Completion gateway for the drafting pipeline.

    Supports Claude Sonnet (primary) and GPT-4o (fallback).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        anthropic_client: Anthropic | None = None,
        openai_client: OpenAI | None = None,
    ):
        self.settings = settings or get_settings()

        self._anthropic = anthropic_client
        self._openai = openai_client

        # Retries are driven by tenacity, not by the SDKs
        if self._anthropic is None and self.settings.anthropic_api_key:
            self._anthropic = Anthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=self.settings.llm_timeout,
                max_retries=0,
            )
        if self._openai is None and self.settings.openai_api_key:
            self._openai = OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.llm_timeout,
                max_retries=0,
            )

        self.primary_provider = self.settings.primary_llm_provider
        self.primary_model = self.settings.primary_llm_model
        self.fallback_provider = self.settings.fallback_llm_provider
        self.fallback_model = self.settings.fallback_llm_model

    def available_providers(self) -> dict[str, bool]:
        """Which provider clients are configured."""
        return {
            "anthropic": self._anthropic is not None,
            "openai": self._openai is not None,
        }

    # =========================================================================
    # Provider calls
    # =========================================================================

    def _retrying(self) -> Retrying:
        wait_min = self.settings.llm_retry_wait_min
        return Retrying(
            stop=stop_after_attempt(self.settings.llm_max_retries),
            wait=wait_exponential(multiplier=wait_min, min=wait_min, max=10),
            reraise=True,
        )

    def _call_anthropic(
        self,
        model: str,
        system_prompt: str,
        parts: list[ContentPart],
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> Completion:
        """Call Anthropic Claude API."""
        response = self._anthropic.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": self._anthropic_content(parts)}],
            timeout=timeout,
        )
        text = response.content[0].text if response.content else ""
        usage = getattr(response, "usage", None)
        return Completion(
            text=text or "",
            model=model,
            input_tokens=_token_count(usage, "input_tokens"),
            output_tokens=_token_count(usage, "output_tokens"),
        )

    def _call_openai(
        self,
        model: str,
        system_prompt: str,
        parts: list[ContentPart],
        max_tokens: int,
        temperature: float,
        timeout: float,
        json_mode: bool = False,
    ) -> Completion:
        """Call OpenAI GPT-4o API."""
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = self._openai.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": self._openai_content(parts)},
            ],
            timeout=timeout,
            **kwargs,
        )
        usage = getattr(response, "usage", None)
        return Completion(
            text=response.choices[0].message.content or "",
            model=model,
            input_tokens=_token_count(usage, "prompt_tokens"),
            output_tokens=_token_count(usage, "completion_tokens"),
        )

    @staticmethod
    def _anthropic_content(parts: list[ContentPart]) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, TextPart):
                blocks.append({"type": "text", "text": part.text})
            elif part.is_image:
                blocks.append({
                    "type": "image",
                    "source": {"type": "base64", "media_type": part.mime_type, "data": part.data},
                })
            elif part.mime_type == "text/plain":
                blocks.append({
                    "type": "text",
                    "text": base64.b64decode(part.data).decode("utf-8", errors="replace"),
                })
            else:
                blocks.append({
                    "type": "document",
                    "source": {"type": "base64", "media_type": part.mime_type, "data": part.data},
                })
        return blocks

    @staticmethod
    def _openai_content(parts: list[ContentPart]) -> str | list[dict[str, Any]]:
        if len(parts) == 1 and isinstance(parts[0], TextPart):
            return parts[0].text
        blocks: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, TextPart):
                blocks.append({"type": "text", "text": part.text})
            elif part.is_image:
                blocks.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:{part.mime_type};base64,{part.data}"},
                })
            elif part.mime_type == "text/plain":
                blocks.append({
                    "type": "text",
                    "text": base64.b64decode(part.data).decode("utf-8", errors="replace"),
                })
            else:
                blocks.append({
                    "type": "file",
                    "file": {
                        "filename": "document.pdf",
                        "file_data": f"data:{part.mime_type};base64,{part.data}",
                    },
                })
        return blocks

    def _candidates(self, use_fallback: bool) -> list[tuple[str, str]]:
        clients = self.available_providers()
        candidates = []
        if clients.get(self.primary_provider):
            candidates.append((self.primary_provider, self.primary_model))
        if use_fallback and clients.get(self.fallback_provider):
            fallback = (self.fallback_provider, self.fallback_model)
            if fallback not in candidates:
                candidates.append(fallback)
        return candidates

    # =========================================================================
    # Public API
    # =========================================================================

    def complete(
        self,
        prompt: str | Sequence[ContentPart],
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        json_mode: bool = False,
        use_fallback: bool = True,
    ) -> Completion:
        """
        Run one completion with automatic provider fallback.

        Raises UpstreamUnavailable when no provider could answer, including
        timeouts.
        """
        parts: list[ContentPart] = [TextPart(text=prompt)] if isinstance(prompt, str) else list(prompt)
        if not parts:
            raise InvalidInput("A completion needs at least one content part")
        for part in parts:
            if isinstance(part, InlineBinaryPart) and not (
                part.is_image or part.mime_type in SUPPORTED_BINARY_TYPES
            ):
                raise InvalidInput(f"Unsupported attachment type: {part.mime_type}")

        if system_prompt is None:
            system_prompt = JSON_SYSTEM_PROMPT if json_mode else TEXT_SYSTEM_PROMPT
        temperature = self.settings.llm_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.settings.llm_max_tokens
        timeout = timeout or self.settings.llm_timeout

        candidates = self._candidates(use_fallback)
        if not candidates:
            raise UpstreamUnavailable(
                "No LLM provider configured. Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )

        last_error: Exception | None = None
        for provider, model in candidates:
            try:
                if provider == "anthropic":
                    completion = self._retrying()(
                        self._call_anthropic,
                        model, system_prompt, parts, max_tokens, temperature, timeout,
                    )
                else:
                    completion = self._retrying()(
                        self._call_openai,
                        model, system_prompt, parts, max_tokens, temperature, timeout, json_mode,
                    )
            except Exception as e:  # SDK transport, status and timeout errors
                logger.warning(
                    "llm_provider_failed",
                    provider=provider,
                    model=model,
                    error=str(e),
                )
                last_error = e
                continue

            logger.debug(
                "llm_completion",
                provider=provider,
                model=model,
                input_tokens=completion.input_tokens,
                output_tokens=completion.output_tokens,
            )
            return completion

        logger.error("llm_all_providers_failed", error=str(last_error))
        raise UpstreamUnavailable(f"Completion service unavailable: {last_error}") from last_error

    def generate_text(self, prompt: str, **kwargs: Any) -> str:
        """Free-text completion."""
        return self.complete(prompt, **kwargs).text

    def generate_json(
        self,
        prompt: str,
        fallback: T,
        *,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> T:
        """
        Structured completion.

        Malformed output yields ``fallback``; upstream failures still raise
        UpstreamUnavailable so callers can decide how to treat them.
        """
        completion = self.complete(
            prompt, temperature=temperature, timeout=timeout, json_mode=True
        )
        result = parse_or_default(completion.text, fallback)
        if result is fallback:
            logger.warning(
                "llm_json_fallback_used",
                model=completion.model,
                response_preview=completion.text[:200],
            )
        return result

    def generate_from_parts(
        self,
        parts: Sequence[ContentPart],
        prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Completion over mixed text/binary input, e.g. a scanned document."""
        all_parts = list(parts)
        if prompt:
            all_parts.append(TextPart(text=prompt))
        return self.complete(all_parts, **kwargs).text


@lru_cache()
def get_completion_gateway() -> CompletionGateway:
    """Get cached completion gateway instance."""
    return CompletionGateway()
