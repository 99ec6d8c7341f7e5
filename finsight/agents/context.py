"""Request/response holders passed between the handler layer and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..domain.charts import ChartSpecification
from ..domain.figures import build_figure
from ..domain.files import UploadedFile


@dataclass
class AnalysisRequest:
    """User query plus uploaded-file summaries and the recent conversation."""

    query: str
    files: List[UploadedFile] = field(default_factory=list)
    history: List[Dict[str, str]] = field(default_factory=list)

    def require_query(self) -> str:
        """Return the stripped query or raise a user-friendly error."""

        query = (self.query or "").strip()
        if not query:
            raise ValueError("Пустой запрос: опишите, что нужно проанализировать.")
        return query


@dataclass
class AnalysisResponse:
    response_text: str
    charts: List[ChartSpecification] = field(default_factory=list)
    source: str = "local"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "responseText": self.response_text,
            "charts": [chart.to_dict() for chart in self.charts],
            "source": self.source,
        }

    def figures(self) -> List[Any]:
        return [fig for fig in (build_figure(chart) for chart in self.charts) if fig is not None]
