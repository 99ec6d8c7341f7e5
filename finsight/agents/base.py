"""Base helpers for constructing LangChain chat backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from langchain_core.language_models import BaseLanguageModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..config import Settings

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """A backend answered but the answer is unusable."""

    code = "generation_error"


class EmptyResponseError(GenerationError):
    code = "empty_response"


class MarkupValidationError(GenerationError):
    code = "validation_failed"


class Backend(Protocol):
    name: str

    async def attempt(self, payload: Any) -> Any:
        ...


def error_code(exc: BaseException) -> str:
    """Short label for metrics: explicit code, HTTP status, or the exception class."""

    for attr in ("code", "status_code", "http_status"):
        value = getattr(exc, attr, None)
        if value not in (None, ""):
            return str(value)
    return type(exc).__name__


def response_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(str(part))
        return "".join(parts)
    return str(content or "")


def build_chat_model(model: str, settings: Settings, *, temperature: float) -> Optional[ChatOpenAI]:
    """``vendor/model`` ids go through OpenRouter, bare ids straight to OpenAI; ``None`` without a key."""

    if "/" in model:
        if not settings.openrouter_api_key:
            logger.warning("OPENROUTER_API_KEY ausente; modelo %s ignorado.", model)
            return None
        return ChatOpenAI(
            model=model,
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            temperature=temperature,
            timeout=settings.request_timeout,
            max_retries=0,
        )
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY ausente; modelo %s ignorado.", model)
        return None
    return ChatOpenAI(
        model=model,
        api_key=settings.openai_api_key,
        temperature=temperature,
        timeout=settings.request_timeout,
        max_retries=0,
    )


@dataclass
class LLMBackend:
    """Narrative-analysis backend: one chat call per attempt."""

    name: str
    llm: BaseLanguageModel
    system_message: Optional[str] = None

    async def attempt(self, payload: Dict[str, Any]) -> str:
        messages: List[Any] = []
        if self.system_message:
            messages.append(SystemMessage(content=self.system_message))
        messages.append(HumanMessage(content=payload["prompt"]))
        resp = await self.llm.ainvoke(messages)
        text = response_text(resp).strip()
        if not text:
            raise EmptyResponseError(f"{self.name} devolveu resposta vazia")
        return text


def build_analysis_backends(settings: Settings, system_message: Optional[str] = None) -> List[LLMBackend]:
    backends: List[LLMBackend] = []
    for model in settings.analysis_models:
        llm = build_chat_model(model, settings, temperature=settings.temperature)
        if llm is not None:
            backends.append(LLMBackend(name=model, llm=llm, system_message=system_message))
    return backends
