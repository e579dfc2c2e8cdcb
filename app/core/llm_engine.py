"""
PediBrief - Completion Client

Single-shot, non-streaming calls to the Gemini ``generateContent`` REST
endpoint. The raw response envelope is reduced to one string by
``extract_candidate_text``; nothing else in the application looks at
the envelope.

There is no retry: a failure is raised to the caller immediately.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.config import Settings, settings
from app.core.exceptions import (
    CompletionAPIError,
    CompletionExtractionError,
    CompletionHTTPError,
    CompletionTransportError,
    CompletionTruncatedError,
    ConfigurationError,
)
from app.utils.logger import get_logger, preview

logger = get_logger("llm_engine")


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters sent with every request."""
    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


def summary_generation_config(cfg: Settings = settings) -> GenerationConfig:
    """Generation parameters for discharge summary simplification."""
    return GenerationConfig(
        temperature=cfg.summary_temperature,
        top_k=cfg.summary_top_k,
        top_p=cfg.summary_top_p,
        max_output_tokens=cfg.summary_max_output_tokens,
    )


def grading_generation_config(cfg: Settings = settings) -> GenerationConfig:
    """Generation parameters for free-text answer grading."""
    return GenerationConfig(
        temperature=cfg.grading_temperature,
        top_k=cfg.grading_top_k,
        top_p=cfg.grading_top_p,
        max_output_tokens=cfg.grading_max_output_tokens,
    )


@dataclass
class CompletionResponse:
    """Generated text plus the bits of metadata worth logging."""
    text: str
    model: str
    finish_reason: Optional[str]
    usage: Dict[str, int]


# Envelope shapes, in the order they are tried
ENVELOPE_SHAPES = (
    "candidates[0].content.parts[0].text",
    "candidates[0].content.parts[0].inlineData.data",
    "candidates[0].text",
    "text",
)


def _first_candidate(payload: Dict[str, Any]) -> Dict[str, Any]:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise CompletionExtractionError("no candidates in response", ENVELOPE_SHAPES)
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise CompletionExtractionError("candidate is not an object", ENVELOPE_SHAPES)
    return candidate


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_candidate_text(payload: Dict[str, Any]) -> str:
    """
    Locate the generated text in a ``generateContent`` response.

    Args:
        payload: Decoded JSON response body

    Returns:
        The generated text, stripped

    Raises:
        CompletionExtractionError: when none of ENVELOPE_SHAPES yields text
    """
    candidate = _first_candidate(payload)

    content = candidate.get("content")
    if not isinstance(content, dict) and "text" not in candidate and "text" not in payload:
        raise CompletionExtractionError("candidate has no content", ENVELOPE_SHAPES)

    parts = content.get("parts") if isinstance(content, dict) else None
    if isinstance(parts, list) and parts and isinstance(parts[0], dict):
        part = parts[0]
        text = _non_empty(part.get("text"))
        if text:
            return text
        inline = part.get("inlineData")
        if isinstance(inline, dict):
            text = _non_empty(inline.get("data"))
            if text:
                return text

    text = _non_empty(candidate.get("text")) or _non_empty(payload.get("text"))
    if text:
        return text

    raise CompletionExtractionError("no text field in response", ENVELOPE_SHAPES)


class CompletionClient:
    """
    Thin client for the Gemini REST API.

    One ``httpx.AsyncClient`` is opened per call so that no connection
    state outlives a request.
    """

    def __init__(
        self,
        cfg: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = cfg.gemini_api_key
        self.model = cfg.gemini_model
        self.api_base = cfg.gemini_api_base.rstrip("/")
        self.timeout = cfg.gemini_timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str, config: GenerationConfig) -> CompletionResponse:
        """
        Send one prompt and return the generated text.

        Raises:
            ConfigurationError: no API key
            CompletionTransportError: the request could not be made
            CompletionHTTPError: non-success status
            CompletionAPIError: error object inside the payload
            CompletionTruncatedError: output token limit reached
            CompletionExtractionError: no recognizable text
        """
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": config.to_payload(),
        }

        logger.info(
            "Sending completion request",
            model=self.model,
            prompt_chars=len(prompt),
            max_output_tokens=config.max_output_tokens
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=body,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Completion transport failure", error=str(e))
            raise CompletionTransportError(f"Gemini API request failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Completion HTTP failure",
                status_code=response.status_code,
                body=preview(response.text)
            )
            raise CompletionHTTPError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            # JSONDecodeError or UnicodeDecodeError
            raise CompletionExtractionError(
                f"response body is not JSON ({e})", ENVELOPE_SHAPES
            ) from e

        if not isinstance(payload, dict):
            raise CompletionExtractionError("response body is not an object", ENVELOPE_SHAPES)

        return self._parse_payload(payload)

    def _parse_payload(self, payload: Dict[str, Any]) -> CompletionResponse:
        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else None
            raise CompletionAPIError(f"Gemini API error: {message or json.dumps(error)}")

        usage = payload.get("usageMetadata") or {}
        candidate = _first_candidate(payload)
        finish_reason = candidate.get("finishReason")

        if finish_reason == "MAX_TOKENS":
            thinking = usage.get("thoughtsTokenCount", 0) if isinstance(usage, dict) else 0
            logger.warning("Completion truncated", thinking_tokens=thinking)
            raise CompletionTruncatedError(thinking_tokens=thinking or 0)

        text = extract_candidate_text(payload)

        logger.info(
            "Completion received",
            model=self.model,
            finish_reason=finish_reason,
            response_chars=len(text)
        )

        return CompletionResponse(
            text=text,
            model=self.model,
            finish_reason=finish_reason,
            usage={
                key: value for key, value in usage.items()
                if isinstance(value, int)
            } if isinstance(usage, dict) else {},
        )


# Module-level singleton
_client_instance: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Get or create singleton completion client."""
    global _client_instance
    if _client_instance is None:
        _client_instance = CompletionClient()
    return _client_instance
