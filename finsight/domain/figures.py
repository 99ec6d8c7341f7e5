"""Plotly figures for structured chart specifications."""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .charts import ChartSpecification, validate_chart_data
from .markup import COLORS

logger = logging.getLogger(__name__)


def spec_frame(spec: ChartSpecification) -> pd.DataFrame:
    if not isinstance(spec.data, list):
        return pd.DataFrame()
    return pd.DataFrame(spec.data)


def build_figure(spec: ChartSpecification) -> Optional[go.Figure]:
    """Figure for bar/line/pie/scatter specs; ``None`` for opaque payloads or bad data."""

    if spec.type not in {"bar", "line", "pie", "scatter"}:
        return None
    if not validate_chart_data(spec.data, spec.type):
        logger.debug("Dados inválidos para o gráfico '%s'.", spec.title)
        return None
    df = spec_frame(spec)
    labels = {}
    if spec.x_axis_label:
        labels["name" if spec.type != "scatter" else "x"] = spec.x_axis_label
    if spec.y_axis_label:
        labels["value" if spec.type != "scatter" else "y"] = spec.y_axis_label

    if spec.type == "bar":
        fig = px.bar(df, x="name", y="value", labels=labels, title=spec.title)
        fig.update_traces(marker_color=COLORS[0])
    elif spec.type == "line":
        fig = px.line(df, x="name", y="value", labels=labels, title=spec.title, markers=True)
    elif spec.type == "pie":
        fig = px.pie(df, names="name", values="value", title=spec.title, color_discrete_sequence=list(COLORS))
    else:
        fig = px.scatter(df, x="x", y="y", hover_name="name", labels=labels, title=spec.title)
    return fig
