"""Validação, reparo e síntese local de markup Recharts."""

from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .charts import ChartSpecification

logger = logging.getLogger(__name__)

REQUIRED_WRAPPER = "ResponsiveContainer"
CHART_COMPONENTS = ("BarChart", "LineChart", "PieChart", "ScatterChart", "AreaChart", "RadarChart")
ALLOWED_COMPONENTS = CHART_COMPONENTS + (
    REQUIRED_WRAPPER, "CartesianGrid", "XAxis", "YAxis", "ZAxis", "Tooltip", "Legend",
    "Bar", "Line", "Pie", "Cell", "Scatter", "Area", "Radar", "PolarGrid", "PolarAngleAxis",
    "PolarRadiusAxis", "LabelList", "Label", "ReferenceLine",
)
COLORS = ("#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884D8", "#82CA9D")
PRIMARY_COLOR = "#3b82f6"
TOOLTIP_FIX = "<Tooltip formatter={(value) => value.toLocaleString()} />"

DATA_REFERENCE_RE = re.compile(r"data=\{\s*(?:\[|`\[|[A-Za-z_])")
TAG_NAME_RE = re.compile(r"[A-Za-z][\w.]*")
WRAPPED_MARKUP_RE = re.compile(r"<ResponsiveContainer[\s\S]*</ResponsiveContainer>")
FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


@dataclass(frozen=True)
class Tag:
    name: str
    kind: str  # "open", "close" or "self"
    start: int
    end: int


@dataclass(frozen=True)
class MarkupValidation:
    valid: bool
    error: Optional[str] = None


# -----------------------------
# Tag scanner
# -----------------------------

def _tag_end(markup: str, pos: int) -> int:
    """Index just past the ``>`` closing the tag opened before ``pos``; braces and quotes are skipped."""

    depth = 0
    quote: Optional[str] = None
    length = len(markup)
    while pos < length:
        char = markup[pos]
        if quote:
            if char == "\\":
                pos += 2
                continue
            if char == quote:
                quote = None
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth = max(0, depth - 1)
        elif char == ">" and depth == 0:
            return pos + 1
        pos += 1
    return length


def scan_tags(markup: str) -> Iterator[Tag]:
    """Yield JSX tags in order; ``<`` inside top-level ``{...}`` expressions is not a tag."""

    pos = 0
    depth = 0
    length = len(markup or "")
    while pos < length:
        char = markup[pos]
        if char == "{":
            depth += 1
            pos += 1
            continue
        if char == "}":
            depth = max(0, depth - 1)
            pos += 1
            continue
        if char != "<" or depth > 0:
            pos += 1
            continue
        closing = markup.startswith("</", pos)
        name_match = TAG_NAME_RE.match(markup, pos + (2 if closing else 1))
        if not name_match:
            pos += 1
            continue
        end = _tag_end(markup, name_match.end())
        if closing:
            kind = "close"
        elif markup[:end].rstrip(">").rstrip().endswith("/"):
            kind = "self"
        else:
            kind = "open"
        yield Tag(name=name_match.group(0), kind=kind, start=pos, end=end)
        pos = end


# -----------------------------
# Validation
# -----------------------------

def check_balance(markup: str) -> Optional[str]:
    stack: List[Tag] = []
    for tag in scan_tags(markup):
        if tag.kind == "open":
            stack.append(tag)
        elif tag.kind == "close":
            if not stack:
                return f"Unexpected closing tag: {tag.name}"
            top = stack[-1]
            if top.name != tag.name:
                return f"Mismatched tag: expected </{top.name}>, found </{tag.name}>"
            stack.pop()
    if stack:
        return "Unclosed tags: " + ", ".join(tag.name for tag in stack)
    return None


def validate_markup(markup: Optional[str]) -> MarkupValidation:
    if not markup or not markup.strip():
        return MarkupValidation(False, "Empty markup")
    balance_error = check_balance(markup)
    if balance_error:
        return MarkupValidation(False, balance_error)
    if REQUIRED_WRAPPER not in markup:
        return MarkupValidation(False, f"Missing required component: {REQUIRED_WRAPPER}")
    if not any(f"<{component}" in markup for component in CHART_COMPONENTS):
        return MarkupValidation(False, "Missing chart component (BarChart, LineChart, etc.)")
    if not DATA_REFERENCE_RE.search(markup):
        return MarkupValidation(False, "Missing data array in JSX")
    return MarkupValidation(True)


# -----------------------------
# Repair
# -----------------------------

def _apply_edits(markup: str, edits: List[Tuple[int, int, int, str]]) -> str:
    """Apply ``(position, order, end, text)`` edits from the back so earlier offsets hold."""

    for position, _order, end, text in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        markup = markup[:position] + text + markup[end:]
    return markup


def fix_unclosed_tooltip(markup: str) -> str:
    if "</Tooltip>" in markup:
        return markup
    edits = [
        (tag.start, idx, tag.end, TOOLTIP_FIX)
        for idx, tag in enumerate(scan_tags(markup))
        if tag.name == "Tooltip" and tag.kind == "open"
    ]
    return _apply_edits(markup, edits) if edits else markup


def repair_markup(markup: str) -> str:
    """Best-effort single repair pass.

    Unclosed ``Tooltip`` tags become self-closing. A closing tag that matches a
    deeper open tag gets the inner tags closed right before it; closing tags
    with no open counterpart are removed; tags still open at the end are closed
    innermost first.
    """

    markup = fix_unclosed_tooltip(markup or "")
    stack: List[Tag] = []
    edits: List[Tuple[int, int, int, str]] = []
    order = 0
    for tag in scan_tags(markup):
        if tag.kind == "open":
            stack.append(tag)
        elif tag.kind == "close":
            open_names = [item.name for item in stack]
            if tag.name not in open_names:
                edits.append((tag.start, order, tag.end, ""))
                order += 1
                continue
            while stack[-1].name != tag.name:
                inner = stack.pop()
                edits.append((tag.start, order, tag.start, f"</{inner.name}>"))
                order += 1
            stack.pop()
    for inner in reversed(stack):
        edits.append((len(markup), order, len(markup), f"</{inner.name}>"))
        order += 1
    if edits:
        logger.debug("Reparo de markup aplicou %d edição(ões).", len(edits))
    return _apply_edits(markup, edits)


# -----------------------------
# Response parsing
# -----------------------------

def clean_markup(markup: str) -> str:
    cleaned = FENCE_RE.sub("", (markup or "").strip())
    return cleaned.strip().strip("`").strip()


def parse_generation_response(content: str) -> Optional[Dict[str, Any]]:
    """Pull ``{jsx, title, description, chartType}`` out of a backend reply.

    Tries plain JSON, then the outermost ``{...}`` span, then a bare
    ``<ResponsiveContainer>`` element. ``None`` when nothing usable is found.
    """

    text = clean_markup(content)
    candidates = [text]
    first, last = text.find("{"), text.rfind("}")
    if 0 <= first < last:
        candidates.append(text[first:last + 1])
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except (TypeError, ValueError):
            continue
        if isinstance(payload, dict) and isinstance(payload.get("jsx"), str):
            payload["jsx"] = clean_markup(payload["jsx"])
            return payload
    match = WRAPPED_MARKUP_RE.search(text)
    if match:
        return {"jsx": match.group(0)}
    return None


def detect_chart_type(markup: str) -> str:
    for component, chart_type in (
        ("PieChart", "pie"),
        ("LineChart", "line"),
        ("AreaChart", "line"),
        ("ScatterChart", "scatter"),
        ("BarChart", "bar"),
    ):
        if f"<{component}" in (markup or ""):
            return chart_type
    return "bar"


# -----------------------------
# Local synthesis
# -----------------------------

def _js(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _attr(value: str) -> str:
    return html.escape(value or "", quote=True)


def _axes(spec: ChartSpecification, x_key: str, numeric_x: bool = False) -> List[str]:
    x_label = spec.x_axis_label or ""
    y_label = spec.y_axis_label or ""
    x_type = ' type="number"' if numeric_x else ""
    y_key = ' dataKey="y" type="number"' if numeric_x else ""
    return [
        '    <CartesianGrid strokeDasharray="3 3" />',
        f'    <XAxis dataKey="{x_key}"{x_type} label={{{{ value: {_js(x_label)}, position: "insideBottom", offset: -5 }}}} />',
        f'    <YAxis{y_key} label={{{{ value: {_js(y_label)}, angle: -90, position: "insideLeft" }}}} />',
        f"    {TOOLTIP_FIX}",
        "    <Legend />",
    ]


def synthesize_markup(spec: ChartSpecification) -> str:
    """Deterministic Recharts markup for a structured spec; used when no backend delivers."""

    data = spec.data if isinstance(spec.data, list) else []
    data_js = _js(data)
    title = _attr(spec.title)
    margin = "margin={{ top: 20, right: 30, left: 20, bottom: 5 }}"

    if spec.type == "pie":
        cells = [
            f'      <Cell key="cell-{idx}" fill="{COLORS[idx % len(COLORS)]}" />' for idx in range(len(data))
        ]
        body = [
            "  <PieChart>",
            f'    <Pie data={{{data_js}}} dataKey="value" nameKey="name" cx="50%" cy="50%" outerRadius={{100}} label>',
            *cells,
            "    </Pie>",
            f"    {TOOLTIP_FIX}",
            "    <Legend />",
            "  </PieChart>",
        ]
    elif spec.type == "line":
        body = [
            f"  <LineChart data={{{data_js}}} {margin}>",
            *_axes(spec, "name"),
            f'    <Line type="monotone" dataKey="value" name="{title}" stroke="{PRIMARY_COLOR}" activeDot={{{{ r: 8 }}}} />',
            "  </LineChart>",
        ]
    elif spec.type == "scatter":
        body = [
            f"  <ScatterChart {margin}>",
            *_axes(spec, "x", numeric_x=True),
            f'    <Scatter name="{title}" data={{{data_js}}} fill="{PRIMARY_COLOR}" />',
            "  </ScatterChart>",
        ]
    else:
        body = [
            f"  <BarChart data={{{data_js}}} {margin}>",
            *_axes(spec, "name"),
            f'    <Bar dataKey="value" name="{title}" fill="{PRIMARY_COLOR}" />',
            "  </BarChart>",
        ]
    lines = ['<ResponsiveContainer width="100%" height={300}>', *body, "</ResponsiveContainer>"]
    return "\n".join(lines)
