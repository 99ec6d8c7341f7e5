"""Chart markup generation over LLM backends, plus a tool that writes visualization blocks."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from langchain_core.language_models import BaseLanguageModel
from langchain_core.messages import HumanMessage
from langchain_core.tools import StructuredTool, Tool

from ..config import Settings
from ..domain.blocks import TYPE_LABELS, format_block
from ..domain.charts import ChartSpecification, normalize
from ..domain.markup import (
    ALLOWED_COMPONENTS,
    detect_chart_type,
    parse_generation_response,
    repair_markup,
    synthesize_markup,
    validate_markup,
)
from .base import GenerationError, MarkupValidationError, build_chat_model, response_text
from .prompts import build_chart_prompt

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    markup: str
    valid: bool
    repaired: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    chart_type: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GenerationResult":
        return cls(
            markup=payload.get("markup", ""),
            valid=bool(payload.get("valid")),
            repaired=bool(payload.get("repaired")),
            title=payload.get("title"),
            description=payload.get("description"),
            chart_type=payload.get("chart_type"),
            error=payload.get("error"),
        )


def chart_payload(spec: ChartSpecification) -> Dict[str, Any]:
    """Content-only view of a spec; the cache key must not depend on text offsets."""

    return {
        "type": spec.type,
        "title": spec.title,
        "description": spec.description,
        "data": spec.data,
        "xAxisLabel": spec.x_axis_label,
        "yAxisLabel": spec.y_axis_label,
    }


def check_and_repair(markup: str) -> GenerationResult:
    """Validate ``markup``; on failure run exactly one repair pass and validate again."""

    check = validate_markup(markup)
    if check.valid:
        return GenerationResult(markup=markup, valid=True, chart_type=detect_chart_type(markup))
    logger.debug("Markup inválido (%s); tentando reparo.", check.error)
    repaired = repair_markup(markup)
    second = validate_markup(repaired)
    return GenerationResult(
        markup=repaired,
        valid=second.valid,
        repaired=True,
        chart_type=detect_chart_type(repaired),
        error=second.error,
    )


async def generate(spec: ChartSpecification, backend: BaseLanguageModel) -> GenerationResult:
    """Ask ``backend`` for Recharts markup for ``spec`` and validate it."""

    prompt = build_chart_prompt(spec, ALLOWED_COMPONENTS)
    resp = await backend.ainvoke([HumanMessage(content=prompt)])
    payload = parse_generation_response(response_text(resp))
    if payload is None:
        return GenerationResult(markup="", valid=False, error="Unparseable response")
    result = check_and_repair(payload["jsx"])
    result.title = payload.get("title") or spec.title
    result.description = payload.get("description") or spec.description
    return result


def local_generation(spec: ChartSpecification) -> GenerationResult:
    markup = synthesize_markup(spec)
    return GenerationResult(
        markup=markup,
        valid=validate_markup(markup).valid,
        title=spec.title,
        description=spec.description,
        chart_type=spec.type,
    )


@dataclass
class ChartCodeBackend:
    """Failover attempt for chart markup; invalid markup after repair counts as a failure."""

    name: str
    llm: BaseLanguageModel

    async def attempt(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        spec = normalize(payload)
        result = await generate(spec, self.llm)
        if not result.markup:
            raise GenerationError(f"{self.name}: {result.error}")
        if not result.valid:
            raise MarkupValidationError(f"{self.name}: {result.error}")
        return result.to_dict()


def build_chart_backends(settings: Settings) -> List[ChartCodeBackend]:
    backends: List[ChartCodeBackend] = []
    for model in settings.chart_models:
        llm = build_chat_model(model, settings, temperature=settings.chart_temperature)
        if llm is not None:
            backends.append(ChartCodeBackend(name=model, llm=llm))
    return backends


# -----------------------------
# Agent tools
# -----------------------------

TOOL_CHART_TYPES = ("line", "bar", "pie")


def build_visual_tools() -> List[Any]:
    def list_chart_types(_: str = "") -> str:
        return "Доступные типы диаграмм: " + ", ".join(f"{key} ({TYPE_LABELS[key]})" for key in TOOL_CHART_TYPES)

    def create_visualization_block(
        chart_type: str,
        title: str,
        labels: List[str],
        values: List[float],
        description: Optional[str] = None,
        x_axis_label: Optional[str] = None,
        y_axis_label: Optional[str] = None,
    ) -> str:
        if not labels or len(labels) != len(values):
            return "Количество подписей и значений должно совпадать и быть больше нуля."
        spec = normalize(
            {
                "type": chart_type,
                "title": title,
                "description": description,
                "data": [{"name": label, "value": value} for label, value in zip(labels, values)],
                "xAxisLabel": x_axis_label,
                "yAxisLabel": y_axis_label,
            }
        )
        if spec.type not in TOOL_CHART_TYPES:
            return "Неподдерживаемый тип диаграммы. Используйте line, bar или pie."
        return format_block(spec)

    return [
        Tool.from_function(
            func=list_chart_types,
            name="list_chart_types",
            description="Перечисляет типы диаграмм, которые умеет строить приложение.",
        ),
        StructuredTool.from_function(
            func=create_visualization_block,
            name="create_visualization_block",
            description=(
                "Формирует блок ---VISUALIZATION--- с типом, заголовком, осями и данными. "
                "Используйте, когда график поможет пояснить вывод."
            ),
        ),
    ]
