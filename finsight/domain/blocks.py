"""Visualization blocks delimited by ``---VISUALIZATION---`` sentinels."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional

from .charts import DEFAULT_BLOCK_TITLE, ChartSpecification, RawTextBlock, chart_type_from_text
from .numeric import extract_pairs, find_numbers, parse_number

logger = logging.getLogger(__name__)

START_MARKER = "---VISUALIZATION---"
END_MARKER = "---ENDVISUALIZATION---"

FIELD_PATTERNS = (
    ("type", re.compile(r"^тип\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
    ("title", re.compile(r"^заголовок\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
    ("description", re.compile(r"^описание\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
    ("x", re.compile(r"^ось\s*[xх]\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
    ("y", re.compile(r"^ось\s*[yу]\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
    ("data", re.compile(r"^данные\s*:\s*(?P<value>.*)$", re.IGNORECASE)),
)
BULLET_RE = re.compile(r"^[-•*–]\s*")
PERCENT_RE = re.compile(r"([-−]?\d+(?:[.,]\d+)?)\s*%")
LOSS_STEM = "убыт"
LOSS_SUFFIX = " (убыток)"
BLOCK_TYPES = ("bar", "line", "pie")

TYPE_LABELS = {
    "line": "линейный график",
    "bar": "столбчатая диаграмма",
    "pie": "круговая диаграмма",
    "scatter": "диаграмма рассеяния",
}


# -----------------------------
# Sentinel scan
# -----------------------------

def extract_blocks(text: str) -> List[RawTextBlock]:
    """Single forward pass over ``text`` collecting complete, non-empty blocks.

    A start marker with no end marker, or one followed by another start marker
    before its end, is dropped.
    """

    blocks: List[RawTextBlock] = []
    if not text:
        return blocks
    cursor = 0
    while True:
        start = text.find(START_MARKER, cursor)
        if start == -1:
            break
        interior_start = start + len(START_MARKER)
        end = text.find(END_MARKER, interior_start)
        if end == -1:
            logger.debug("Bloco de visualização sem marcador final na posição %d; descartado.", start)
            break
        next_start = text.find(START_MARKER, interior_start)
        if next_start != -1 and next_start < end:
            logger.debug("Bloco de visualização na posição %d não foi fechado; descartado.", start)
            cursor = next_start
            continue
        stop = end + len(END_MARKER)
        interior = text[interior_start:end].strip()
        if interior:
            blocks.append(RawTextBlock(start_offset=start, length=stop - start, content=interior))
        else:
            logger.debug("Bloco de visualização vazio na posição %d.", start)
        cursor = stop
    return blocks


# -----------------------------
# Field parser
# -----------------------------

def _match_field(line: str) -> Optional[tuple]:
    candidate = line.strip().strip("*").strip()
    for name, pattern in FIELD_PATTERNS:
        match = pattern.match(candidate)
        if match:
            return name, match.group("value").strip().strip("*").strip()
    return None


def parse_data_line(line: str, chart_type: str) -> Optional[Dict[str, object]]:
    """``- name: value[ (percent%)]``; pie charts plot the percentage when one is given."""

    body = BULLET_RE.sub("", line.strip(), count=1)
    if ":" not in body:
        return None
    name, rest = body.split(":", 1)
    name = name.strip().strip("*").strip()
    if not name:
        return None
    note = ""
    paren = re.search(r"\(([^)]*)\)", rest)
    head = rest
    if paren:
        note = paren.group(1)
        head = rest[: paren.start()]
    numbers = find_numbers(head)
    if not numbers:
        return None
    value = numbers[0].value
    if chart_type == "pie" and note:
        percent = PERCENT_RE.search(note)
        if percent:
            value = parse_number(percent.group(1))
            if LOSS_STEM in note.lower():
                name = f"{name}{LOSS_SUFFIX}"
    return {"name": name, "value": int(value) if float(value).is_integer() else value}


def parse_block(content: str) -> Optional[ChartSpecification]:
    """Parse the interior of one block; ``None`` when the type line or the data are missing."""

    fields: Dict[str, str] = {}
    data: List[Dict[str, object]] = []
    inline_data = ""
    in_data = False
    data_lines: List[str] = []

    for raw_line in (content or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        matched = _match_field(line)
        if matched:
            name, value = matched
            in_data = name == "data"
            if in_data:
                inline_data = value
            elif name not in fields:
                fields[name] = value
            continue
        if in_data and BULLET_RE.match(line):
            data_lines.append(line)

    if "type" not in fields:
        return None
    chart_type = chart_type_from_text(fields["type"])
    if chart_type not in BLOCK_TYPES:
        chart_type = "bar"

    for line in data_lines:
        point = parse_data_line(line, chart_type)
        if point is not None:
            data.append(point)
    if not data and inline_data:
        data = extract_pairs(inline_data)
    if not data:
        return None

    axis_default_x, axis_default_y = (None, None) if chart_type == "pie" else ("Категория", "Значение")
    return ChartSpecification(
        type=chart_type,
        title=fields.get("title") or DEFAULT_BLOCK_TITLE,
        description=fields.get("description", ""),
        data=data,
        x_axis_label=fields.get("x") or axis_default_x,
        y_axis_label=fields.get("y") or axis_default_y,
    )


def parse_blocks(text: str) -> List[ChartSpecification]:
    """Block scan plus field parse; each spec is anchored to its block's span."""

    specs: List[ChartSpecification] = []
    for block in extract_blocks(text):
        spec = parse_block(block.content)
        if spec is None:
            logger.debug("Bloco na posição %d sem tipo ou dados; ignorado.", block.start_offset)
            continue
        specs.append(replace(spec, source_span=block.span))
    return specs


def _format_value(value: object) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_block(spec: ChartSpecification) -> str:
    """Render ``spec`` in the sentinel wire format understood by :func:`parse_block`."""

    lines = [START_MARKER, f"Тип: {TYPE_LABELS.get(spec.type, TYPE_LABELS['bar'])}"]
    if spec.title:
        lines.append(f"Заголовок: {spec.title}")
    if spec.description:
        lines.append(f"Описание: {spec.description}")
    if spec.x_axis_label:
        lines.append(f"Ось X: {spec.x_axis_label}")
    if spec.y_axis_label:
        lines.append(f"Ось Y: {spec.y_axis_label}")
    lines.append("Данные:")
    for point in spec.data or []:
        if spec.type == "scatter":
            lines.append(f"- {point.get('name', '')}: {_format_value(point.get('y'))}")
        else:
            lines.append(f"- {point.get('name', '')}: {_format_value(point.get('value'))}")
    lines.append(END_MARKER)
    return "\n".join(lines)
