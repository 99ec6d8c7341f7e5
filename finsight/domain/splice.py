"""Replace block spans with ordered placeholder tokens."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

from .charts import ChartSpecification

logger = logging.getLogger(__name__)

PLACEHOLDER_TEMPLATE = "---VISUALIZATION_PLACEHOLDER_{index}---"
PLACEHOLDER_RE = re.compile(r"---VISUALIZATION_PLACEHOLDER_(\d+)---")


def placeholder_token(index: int) -> str:
    return PLACEHOLDER_TEMPLATE.format(index=index)


@dataclass
class SpliceResult:
    text: str
    ordered_specs: List[ChartSpecification]


def _anchored(original_text: str, specs: Sequence[ChartSpecification]) -> Tuple[List[int], List[int]]:
    """Split spec indices into usable anchored ones (reading order) and the rest."""

    candidates = sorted(
        (idx for idx, spec in enumerate(specs) if spec.source_span is not None),
        key=lambda idx: specs[idx].source_span.position,
    )
    anchored: List[int] = []
    rejected: List[int] = []
    last_end = 0
    for idx in candidates:
        span = specs[idx].source_span
        if span.position < 0 or span.length <= 0 or span.end > len(original_text):
            logger.warning("Span fora do texto original (%s); gráfico anexado sem marcador.", span)
            rejected.append(idx)
        elif anchored and span.position < last_end:
            logger.warning("Span sobreposto em %d; gráfico anexado sem marcador.", span.position)
            rejected.append(idx)
        else:
            anchored.append(idx)
            last_end = span.end
    return anchored, rejected


def splice(original_text: str, specs: Sequence[ChartSpecification]) -> SpliceResult:
    """Swap every anchored span for ``---VISUALIZATION_PLACEHOLDER_<n>---``.

    Tokens are numbered from 0 in reading order. Replacement runs once over the
    original string from the last span backwards, so offsets never shift.
    Specs without a usable span follow the anchored ones in encounter order.
    Input specs are left untouched; the result holds copies.
    """

    anchored, rejected = _anchored(original_text, specs)
    tokens = {idx: placeholder_token(n) for n, idx in enumerate(anchored)}

    text = original_text
    for idx in reversed(anchored):
        span = specs[idx].source_span
        text = text[: span.position] + tokens[idx] + text[span.end:]

    ordered = [replace(specs[idx], placeholder_token=tokens[idx]) for idx in anchored]
    rejected_set = set(rejected)
    for idx, spec in enumerate(specs):
        if spec.source_span is None or idx in rejected_set:
            ordered.append(replace(spec, placeholder_token=None))
    return SpliceResult(text=text, ordered_specs=ordered)


def restore(spliced_text: str, original_text: str, specs: Sequence[ChartSpecification]) -> str:
    """Put the original span content back in place of each placeholder token."""

    by_token = {spec.placeholder_token: spec for spec in specs if spec.placeholder_token and spec.source_span}

    def _sub(match: re.Match) -> str:
        spec = by_token.get(match.group(0))
        if spec is None:
            return match.group(0)
        span = spec.source_span
        return original_text[span.position:span.end]

    return PLACEHOLDER_RE.sub(_sub, spliced_text)
