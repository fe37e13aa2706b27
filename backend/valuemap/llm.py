"""
Value Mapper Backend — LLM Interactions

Single-call generation via litellm, structured output validation,
and the shared try-AI-else-template wrapper used by every stage.

A call never retries. Every caller owns a deterministic fallback, so
unavailability is signalled with None instead of an exception.
"""

import asyncio
import json
import re
import time
from typing import Awaitable, Callable, TypeVar

import litellm
from pydantic import BaseModel, ValidationError

from valuemap.config import LLM_CONFIG, PROVIDER_KEY_SETTINGS, generate_error_code, log, settings

litellm.suppress_debug_info = True
litellm.drop_params = True  # Prevent unsupported-param errors across providers

LLM_CALL_TIMEOUT_SECONDS = 60

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class LLMValidationError(Exception):
    """LLM output failed JSON decoding or Pydantic validation."""

    def __init__(self, raw_output: str, expected_schema: str, error: str):
        self.raw_output = raw_output
        self.expected_schema = expected_schema
        super().__init__(f"LLM validation failed: {error}")


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


async def call_llm(
    messages: list[dict],
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
    json_mode: bool = False,
    timeout: float | None = None,
    request_id: str | None = None,
) -> str | None:
    """
    Call the configured model once.

    Args:
        messages: Role-tagged messages (persona system prompt is injected here).
        temperature: Sampling temperature (defaults to LLM_CONFIG).
        max_tokens: Output budget (defaults to LLM_CONFIG).
        json_mode: Request a single JSON object response.
        timeout: Client-side timeout in seconds (defaults to LLM_CALL_TIMEOUT_SECONDS).
        request_id: Optional request ID for logging correlation.

    Returns:
        Raw response content, or None when the provider key is missing,
        the call fails, times out, or returns empty content.
    """
    model = settings.llm_model
    api_key = _api_key_for(model)
    if not api_key:
        log("WARN", "llm unavailable, no api key configured", request_id=request_id, model=model)
        return None

    completion_kwargs = {
        "model": model,
        "messages": _inject_system_prompt(messages),
        "temperature": LLM_CONFIG["temperature"] if temperature is None else temperature,
        "max_tokens": max_tokens or LLM_CONFIG["max_tokens"],
        "api_key": api_key,
    }
    if json_mode:
        completion_kwargs["response_format"] = {"type": "json_object"}

    call_timeout = timeout or LLM_CALL_TIMEOUT_SECONDS
    log("INFO", "llm call started", request_id=request_id, model=model, json_mode=json_mode)
    start = time.perf_counter()

    try:
        response = await asyncio.wait_for(
            litellm.acompletion(timeout=call_timeout, **completion_kwargs),
            timeout=call_timeout,
        )
    except Exception as e:
        code = generate_error_code()
        log(
            "ERROR",
            "llm call failed",
            request_id=request_id,
            model=model,
            error=str(e) or type(e).__name__,
            error_code=code,
        )
        return None

    duration_ms = int((time.perf_counter() - start) * 1000)
    content = ""
    if response.choices:
        content = response.choices[0].message.content or ""

    tokens_used = None
    if hasattr(response, "usage") and response.usage:
        tokens_used = getattr(response.usage, "total_tokens", None)

    if not content.strip():
        log("WARN", "llm returned empty content", request_id=request_id, model=model, duration_ms=duration_ms)
        return None

    log(
        "INFO",
        "llm call succeeded",
        request_id=request_id,
        model=model,
        duration_ms=duration_ms,
        tokens_used=tokens_used,
    )
    return content


def parse_structured(raw: str, response_model: type[M]) -> M:
    """
    Validate raw LLM output against a Pydantic model.

    Strips markdown code fences, decodes JSON, then runs model_validate.

    Raises:
        LLMValidationError: If decoding or validation fails.
    """
    stripped = _strip_code_fences(raw)
    try:
        parsed = json.loads(stripped)
        return response_model.model_validate(parsed)
    except (json.JSONDecodeError, ValidationError) as e:
        raise LLMValidationError(
            raw_output=raw,
            expected_schema=json.dumps(response_model.model_json_schema(), indent=2),
            error=str(e),
        ) from e


async def call_llm_structured(
    messages: list[dict],
    response_model: type[M],
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    request_id: str | None = None,
) -> M | None:
    """
    Call the LLM in JSON mode and validate the response.

    Malformed output is treated exactly like unavailability: it is logged
    and None is returned so the caller takes its fallback path.
    """
    raw = await call_llm(
        messages,
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=True,
        timeout=timeout,
        request_id=request_id,
    )
    if raw is None:
        return None

    try:
        return parse_structured(raw, response_model)
    except LLMValidationError as e:
        code = generate_error_code()
        log(
            "ERROR",
            "llm output validation failed",
            request_id=request_id,
            raw_output=raw[:500] + "..." if len(raw) > 500 else raw,
            schema=response_model.__name__,
            validation_error=str(e)[:300],
            error_code=code,
        )
        return None


async def with_fallback(
    generate: Callable[[], Awaitable[T | None]],
    fallback: Callable[[], T],
    *,
    stage: str,
    request_id: str | None = None,
) -> T:
    """
    Run an AI generator, substituting the deterministic fallback on failure.

    The fallback is used when the generator returns None or an empty
    collection, or raises.

    Args:
        generate: Zero-arg coroutine function producing the AI result.
        fallback: Zero-arg function producing the template result.
        stage: Stage name for logging.
        request_id: Optional request ID for logging correlation.
    """
    try:
        result = await generate()
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "stage generation failed", request_id=request_id, stage=stage, error=str(e), error_code=code)
        result = None

    if result is None or (isinstance(result, (list, tuple)) and not result):
        log("WARN", "stage using fallback", request_id=request_id, stage=stage)
        return fallback()

    log("INFO", "stage generated by llm", request_id=request_id, stage=stage)
    return result


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _api_key_for(model: str) -> str:
    """Return the configured key for the model's provider prefix ('' if none)."""
    provider = model.split("/", 1)[0] if "/" in model else "openai"
    attr = PROVIDER_KEY_SETTINGS.get(provider)
    if attr is None:
        return ""
    return getattr(settings, attr, "") or ""


def _inject_system_prompt(messages: list[dict]) -> list[dict]:
    """
    Prepend the persona system prompt to the message list.
    Returns a new list (does not mutate the input).
    """
    system_msg = {
        "role": "system",
        "content": LLM_CONFIG["persona"]["system_prompt"],
    }
    return [system_msg] + list(messages)


def _strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences from LLM output.
    Handles: ```json\\n...\\n```, ```\\n...\\n```, and plain text.
    """
    if not text or not isinstance(text, str):
        return text
    stripped = text.strip()
    match = re.match(r"^```(?:json)?\s*\n?(.*?)\n?```\s*$", stripped, re.DOTALL)
    if match:
        return match.group(1).strip()
    return stripped
