"""Keyword classifier for analysis text that carries no explicit visualization blocks."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .charts import DEFAULT_BLOCK_TITLE, ChartSpecification, chart_type_from_text
from .numeric import (
    Pair,
    contains_numeric_data,
    extract_categories,
    extract_distribution,
    extract_generic,
    extract_pairs,
    extract_time_series,
)

logger = logging.getLogger(__name__)

SECTION_SPLIT_RE = re.compile(r"\n\s*\n|\n\s*-{3,}\s*\n")
NUMBERED_PREFIX_RE = re.compile(r"^\s*(?:#+\s*)?\d+[.)]\s*")
DESCRIPTION_STEMS = ("показыва", "отобража", "представля", "демонстрир", "видно", "можно увидеть")

OPPORTUNITY_TRIGGERS = ("тип визуализации:", "визуализация:")
AXES_WORD_RE = re.compile(r"\bоси\b")
AXES_RE = re.compile(r"Оси\s+X\s+и\s+Y\s*:([^•\n]+)|(Ось\s+X[^,\n]+,\s*ось\s+Y[^•\n]+)", re.IGNORECASE)
AXIS_X_RE = re.compile(r"X\s*[-—–]\s*([^,\n]+)")
AXIS_Y_RE = re.compile(r"Y\s*[-—–]\s*([^,\n]+)")
OPPORTUNITY_TYPE_RE = re.compile(r"визуализаци\w*\s*:\s*([^•\n]+)", re.IGNORECASE)
OPPORTUNITY_DATA_RE = re.compile(r"Данные\s*:([^•\n]+)", re.IGNORECASE)
OPPORTUNITY_NOTE_RE = re.compile(r"(?:Аномалия|Вывод)\s*:([^•\n]+)", re.IGNORECASE)


@dataclass(frozen=True)
class SectionRule:
    chart_type: str
    keywords: Sequence[str]
    extractor: Callable[[str], List[Pair]]
    title: str
    description: str
    x_axis_label: Optional[str]
    y_axis_label: Optional[str]


TIME_SERIES_RULE = SectionRule(
    chart_type="line",
    keywords=("изменени", "динамик", "тренд", "рост", "падени", "по месяцам", "по годам", "по кварталам"),
    extractor=extract_time_series,
    title="Динамика показателей",
    description="График изменения показателей во времени",
    x_axis_label="Период",
    y_axis_label="Значение",
)
DISTRIBUTION_RULE = SectionRule(
    chart_type="pie",
    keywords=("распределени", "долей", "доля", "процент", "части", "сегмент"),
    extractor=extract_distribution,
    title="Распределение показателей",
    description="Диаграмма распределения долей",
    x_axis_label=None,
    y_axis_label=None,
)
COMPARISON_RULE = SectionRule(
    chart_type="bar",
    keywords=("сравнени", "категори", "группам", "по типам", "по видам"),
    extractor=extract_categories,
    title="Сравнение категорий",
    description="Сравнение значений по категориям",
    x_axis_label="Категория",
    y_axis_label="Значение",
)
GENERIC_RULE = SectionRule(
    chart_type="bar",
    keywords=(),
    extractor=extract_generic,
    title="Анализ показателей",
    description="Сравнение значений показателей",
    x_axis_label="Показатель",
    y_axis_label="Значение",
)
SECTION_RULES = (TIME_SERIES_RULE, DISTRIBUTION_RULE, COMPARISON_RULE)


# -----------------------------
# Section helpers
# -----------------------------

def split_sections(text: str) -> List[str]:
    return [section.strip() for section in SECTION_SPLIT_RE.split(text or "") if section and section.strip()]


def _clean_heading(line: str) -> str:
    line = line.replace("**", "").replace("__", "")
    line = NUMBERED_PREFIX_RE.sub("", line)
    return line.strip().lstrip("#").strip().rstrip(":").strip()


def section_title(section: str) -> Optional[str]:
    for line in section.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("-", "•")):
            continue
        cleaned = _clean_heading(stripped)
        if cleaned and len(cleaned) < 100:
            return cleaned
    return None


def section_description(section: str) -> Optional[str]:
    for line in section.splitlines():
        stripped = line.strip().replace("**", "")
        if not 20 <= len(stripped) <= 200:
            continue
        if stripped.startswith(("-", "•")) or NUMBERED_PREFIX_RE.match(stripped):
            continue
        lowered = stripped.lower()
        if any(stem in lowered for stem in DESCRIPTION_STEMS):
            return stripped
    return None


def pick_rule(section: str) -> SectionRule:
    lowered = section.lower()
    for rule in SECTION_RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule
    return GENERIC_RULE


# -----------------------------
# Opportunity paragraphs
# -----------------------------

def is_opportunity(section: str) -> bool:
    lowered = section.lower()
    if any(trigger in lowered for trigger in OPPORTUNITY_TRIGGERS):
        return True
    return "диаграмма" in lowered and bool(AXES_WORD_RE.search(lowered))


def parse_opportunity(section: str) -> Optional[ChartSpecification]:
    """Bullet paragraph that spells a chart out (``• Тип визуализации: ...``, ``• Данные: ...``)."""

    data_match = OPPORTUNITY_DATA_RE.search(section)
    if not data_match:
        return None
    data = extract_pairs(data_match.group(1))
    if not data:
        return None

    type_match = OPPORTUNITY_TYPE_RE.search(section)
    chart_type = chart_type_from_text(type_match.group(1) if type_match else section)
    if chart_type not in {"bar", "line", "pie"}:
        chart_type = "bar"

    x_label, y_label = "Категория", "Значение"
    axes = AXES_RE.search(section)
    if axes:
        axes_text = axes.group(1) or axes.group(2)
        x_match = AXIS_X_RE.search(axes_text)
        y_match = AXIS_Y_RE.search(axes_text)
        if x_match:
            x_label = x_match.group(1).strip()
        if y_match:
            y_label = y_match.group(1).strip()

    first_line = section.strip().splitlines()[0]
    title = _clean_heading(first_line.split("•")[0]) or DEFAULT_BLOCK_TITLE
    note = OPPORTUNITY_NOTE_RE.search(section)
    return ChartSpecification(
        type=chart_type,
        title=title,
        description=note.group(1).strip() if note else "",
        data=data,
        x_axis_label=None if chart_type == "pie" else x_label,
        y_axis_label=None if chart_type == "pie" else y_label,
    )


# -----------------------------
# Public API
# -----------------------------

def classify_section(section: str) -> Optional[ChartSpecification]:
    if is_opportunity(section):
        spec = parse_opportunity(section)
        if spec is not None:
            return spec
    if not contains_numeric_data(section):
        return None
    rule = pick_rule(section)
    data = rule.extractor(section)
    if not data:
        return None
    return ChartSpecification(
        type=rule.chart_type,
        title=section_title(section) or rule.title,
        description=section_description(section) or rule.description,
        data=data,
        x_axis_label=rule.x_axis_label,
        y_axis_label=rule.y_axis_label,
    )


def classify_sections(text: str) -> List[ChartSpecification]:
    """One chart per section with recoverable numbers; sections without data are skipped."""

    specs: List[ChartSpecification] = []
    for index, section in enumerate(split_sections(text)):
        spec = classify_section(section)
        if spec is None:
            logger.debug("Seção %d sem dados numéricos aproveitáveis.", index)
            continue
        specs.append(spec)
    return specs
