"""
Anthropic-first annotation gateway with optional OpenAI fallback.
"""

from __future__ import annotations

from typing import Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from content_platform.config import AnnotationConfig
from content_platform.errors import AnnotationServiceError
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)


class AnnotationGateway:
    """
    Synchronous, single-shot calls to the annotation service.

    Each call is bounded by the configured timeout and is not retried; any
    transport error, error status or empty reply raises AnnotationServiceError.
    """

    def __init__(self, config: AnnotationConfig) -> None:
        self._config = config
        self._primary_model = None
        self._fallback_model = None

        if config.api_key:
            try:
                self._primary_model = ChatAnthropic(
                    model=config.model,
                    api_key=config.api_key,
                    base_url=config.api_url,
                    max_tokens=config.max_tokens,
                    timeout=config.timeout_seconds,
                    max_retries=0,
                    temperature=0,
                )
            except Exception as exc:
                logger.warning("Anthropic model init failed: %s", exc)
                self._primary_model = None

        if config.fallback_enabled and config.fallback_provider == "openai" and config.fallback_api_key:
            try:
                self._fallback_model = ChatOpenAI(
                    api_key=config.fallback_api_key,
                    model=config.fallback_model,
                    max_tokens=config.max_tokens,
                    timeout=config.timeout_seconds,
                    max_retries=0,
                    temperature=0,
                )
            except Exception as exc:
                logger.warning("OpenAI fallback init failed: %s", exc)
                self._fallback_model = None

    def available(self) -> bool:
        return self._primary_model is not None or self._fallback_model is not None

    def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        last_error: Optional[Exception] = None
        if self._primary_model is not None:
            try:
                output = self._primary_model.invoke(messages)
                _warn_if_truncated(output)
                text = _to_text(output)
                if text:
                    return text
                logger.warning("Annotation service returned an empty reply (model=%s)", _model_name(self._primary_model))
            except Exception as exc:
                last_error = exc
                logger.warning("Annotation service call failed: %s", exc)

        if self._fallback_model is not None:
            try:
                output = self._fallback_model.invoke(messages)
                text = _to_text(output)
                if text:
                    logger.warning(
                        "annotation_fallback_used provider=%s model=%s",
                        self._config.fallback_provider,
                        _model_name(self._fallback_model),
                    )
                    return text
            except Exception as exc:
                last_error = exc
                logger.warning("Fallback annotation call failed: %s", exc)

        if not self.available():
            raise AnnotationServiceError("Annotation service is not configured")
        raise AnnotationServiceError(
            "No annotation response available",
            detail=str(last_error) if last_error else "empty reply",
        )


def _warn_if_truncated(message_obj) -> None:
    metadata = getattr(message_obj, "response_metadata", None) or {}
    if metadata.get("stop_reason") == "max_tokens":
        logger.warning("Annotation service response truncated due to max_tokens limit")


def _to_text(message_obj) -> str:
    value = getattr(message_obj, "content", "")
    if isinstance(value, list):
        parts = []
        for item in value:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("text"):
                parts.append(str(item["text"]))
        return "\n".join(parts).strip()
    return str(value or "").strip()


def _model_name(model_obj) -> str:
    return getattr(model_obj, "model_name", None) or getattr(model_obj, "model", None) or "unknown_model"
