"""AI judgment boundary: prompt in, schema-validated JSON object out."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol, TypeVar

from openai import APIError as OpenAIAPIError
from openai import AsyncOpenAI
from openai import OpenAIError as OpenAIBaseError
from openai import RateLimitError as OpenAIRateLimitError
from pydantic import BaseModel, ValidationError

from alpha_screener.config import settings
from alpha_screener.services.analysis.errors import JudgmentProviderError, JudgmentValidationError

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class JudgmentClient(Protocol):
    """Minimal contract for the AI collaborator that turns prompts into judgments."""

    async def analyze(self, prompt: str) -> dict[str, Any]:
        ...


class OpenAIJudgmentClient:
    """Thin wrapper around the async OpenAI Responses API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.5,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError("OPENAI_API_KEY is required to run AI judgments.")
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model
        self._temperature = temperature
        self._retry_attempts = max(1, retry_attempts)
        self._retry_backoff_seconds = retry_backoff_seconds

    @classmethod
    def from_settings(cls) -> OpenAIJudgmentClient:
        return cls(
            settings.openai_api_key or "",
            model=settings.judgment_model,
            temperature=settings.judgment_temperature,
            retry_attempts=settings.judgment_retry_attempts,
            retry_backoff_seconds=settings.judgment_retry_backoff_seconds,
        )

    async def analyze(self, prompt: str) -> dict[str, Any]:
        text = await self._generate_with_retry(prompt)
        try:
            return parse_json_payload(text)
        except ValueError as exc:
            logger.error("judgment.parse_error", extra={"model": self._model})
            raise JudgmentValidationError(
                "AI response did not contain a JSON object.",
                code="502_JUDGMENT_UPSTREAM",
            ) from exc

    async def _generate_with_retry(self, prompt: str) -> str:
        delay = self._retry_backoff_seconds
        for attempt in range(1, self._retry_attempts + 1):
            try:
                return await self._generate(prompt)
            except JudgmentProviderError as exc:
                logger.warning("judgment.retry", extra={"attempt": attempt, "code": exc.code})
                if attempt == self._retry_attempts or exc.code != "429_RATE_LIMIT":
                    raise
                await asyncio.sleep(delay)
                delay *= 2
        raise JudgmentProviderError("AI judgment retries exhausted.", code="502_JUDGMENT_UPSTREAM")

    async def _generate(self, prompt: str) -> str:
        try:
            response = await self._client.responses.create(
                model=self._model,
                temperature=self._temperature,
                input=[{"role": "user", "content": prompt}],
            )
        except OpenAIRateLimitError as exc:
            raise JudgmentProviderError(f"OpenAI rate limited: {exc}", code="429_RATE_LIMIT") from exc
        except (OpenAIAPIError, OpenAIBaseError) as exc:
            message = getattr(exc, "message", str(exc))
            raise JudgmentProviderError(
                f"OpenAI request failed: {message}", code="502_JUDGMENT_UPSTREAM"
            ) from exc
        return _extract_response_text(response)


def _extract_response_text(response: Any) -> str:
    """Normalize OpenAI responses across SDK versions."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()
    chunks: list[str] = []
    for item in getattr(response, "output", None) or []:
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                chunks.append(getattr(content, "text", ""))
    if chunks:
        return "".join(chunks).strip()
    raise JudgmentProviderError(
        "OpenAI response did not include text output.",
        code="502_JUDGMENT_UPSTREAM",
    )


def parse_json_payload(raw_text: str) -> dict[str, Any]:
    """Best-effort JSON decoding that tolerates code fences or prose."""
    candidate = raw_text.strip()
    if candidate.startswith("```"):
        candidate = "\n".join(
            line for line in candidate.splitlines() if not line.strip().startswith("```")
        ).strip()
    if candidate.startswith("{") and candidate.endswith("}"):
        return json.loads(candidate)
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end != -1 and end > start:
        return json.loads(candidate[start : end + 1])
    raise ValueError("Response did not contain JSON object.")


async def judge(client: JudgmentClient, prompt: str, schema: type[_ModelT], *, stage: str) -> _ModelT:
    """Run one judgment and validate it against the stage schema."""
    payload = await client.analyze(prompt)
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        logger.error(
            "judgment.schema_error",
            extra={"stage": stage, "errors": exc.error_count()},
        )
        raise JudgmentValidationError(
            f"AI judgment for {stage} did not match its schema.",
            code="502_JUDGMENT_SCHEMA",
        ) from exc


def to_prompt_json(value: Any) -> str:
    """Render a model (or plain data) as indented JSON for prompt context."""
    if isinstance(value, BaseModel):
        return value.model_dump_json(indent=2)
    return json.dumps(value, indent=2, default=str)
