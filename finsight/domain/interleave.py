"""Renderer-side walk that interleaves text segments and charts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from .charts import ChartSpecification
from .sections import COMPARISON_RULE, DISTRIBUTION_RULE, TIME_SERIES_RULE, split_sections
from .splice import PLACEHOLDER_RE

EXTRA_HEADING = "Дополнительные визуализации"

TYPE_KEYWORDS = {
    "line": TIME_SERIES_RULE.keywords,
    "pie": DISTRIBUTION_RULE.keywords,
    "bar": COMPARISON_RULE.keywords,
}


@dataclass(frozen=True)
class Segment:
    kind: str  # "text", "chart" or "heading"
    text: str = ""
    chart: Optional[ChartSpecification] = None
    index: Optional[int] = None


def _chart_for_token(token: str, number: int, charts: Sequence[ChartSpecification], consumed: Set[int]) -> Optional[int]:
    for idx, chart in enumerate(charts):
        if idx not in consumed and chart.placeholder_token == token:
            return idx
    if number < len(charts) and number not in consumed and charts[number].placeholder_token in (None, token):
        return number
    return None


def _chart_for_paragraph(paragraph: str, charts: Sequence[ChartSpecification], consumed: Set[int]) -> Optional[int]:
    lowered = paragraph.lower()
    for idx, chart in enumerate(charts):
        if idx in consumed:
            continue
        if chart.title and chart.title.lower() in lowered:
            return idx
        keywords = TYPE_KEYWORDS.get(chart.chart_type or chart.type, ())
        if any(keyword in lowered for keyword in keywords):
            return idx
    return None


def _with_leftovers(segments: List[Segment], charts: Sequence[ChartSpecification], consumed: Set[int]) -> List[Segment]:
    leftovers = [idx for idx in range(len(charts)) if idx not in consumed]
    if leftovers:
        segments.append(Segment(kind="heading", text=EXTRA_HEADING))
        segments.extend(Segment(kind="chart", chart=charts[idx], index=idx) for idx in leftovers)
    return segments


def interleave(text: str, charts: Sequence[ChartSpecification]) -> List[Segment]:
    """Walk ``text`` once, swapping placeholder tokens for their charts.

    Text without tokens is matched paragraph by paragraph on chart keywords.
    Consumed chart indices live in a local set; the specs are never touched.
    Charts left over are listed under an extra heading.
    """

    consumed: Set[int] = set()
    segments: List[Segment] = []
    text = text or ""

    if PLACEHOLDER_RE.search(text):
        cursor = 0
        for match in PLACEHOLDER_RE.finditer(text):
            before = text[cursor:match.start()]
            if before.strip():
                segments.append(Segment(kind="text", text=before))
            idx = _chart_for_token(match.group(0), int(match.group(1)), charts, consumed)
            if idx is not None:
                consumed.add(idx)
                segments.append(Segment(kind="chart", chart=charts[idx], index=idx))
            cursor = match.end()
        tail = text[cursor:]
        if tail.strip():
            segments.append(Segment(kind="text", text=tail))
        return _with_leftovers(segments, charts, consumed)

    for paragraph in split_sections(text):
        segments.append(Segment(kind="text", text=paragraph))
        idx = _chart_for_paragraph(paragraph, charts, consumed)
        if idx is not None:
            consumed.add(idx)
            segments.append(Segment(kind="chart", chart=charts[idx], index=idx))
    return _with_leftovers(segments, charts, consumed)
