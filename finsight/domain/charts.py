"""Chart specification model and the normalizer shared across agents and UI."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from .numeric import parse_number

CHART_TYPES = {"bar", "line", "pie", "scatter", "jsx", "image", "data", "error"}
CARTESIAN_TYPES = {"bar", "line", "scatter"}
SERIES_TYPES = {"bar", "line", "pie"}
OPAQUE_TYPES = {"jsx", "image", "data", "error"}

DEFAULT_BLOCK_TITLE = "Визуализация данных"

# title, description, x axis, y axis
TYPE_DEFAULTS: Dict[str, tuple] = {
    "line": ("Динамика показателей", "График изменения показателей во времени", "Период", "Значение"),
    "bar": ("Сравнение категорий", "Сравнение значений по категориям", "Категория", "Значение"),
    "pie": ("Распределение показателей", "Диаграмма распределения долей", None, None),
    "scatter": ("Диаграмма рассеяния", "Взаимосвязь двух показателей", "X", "Y"),
    "jsx": (DEFAULT_BLOCK_TITLE, "", None, None),
    "image": ("Изображение", "", None, None),
    "data": ("Данные", "", None, None),
    "error": ("Ошибка визуализации", "Не удалось построить график", None, None),
}

TYPE_KEYWORDS = (
    ("pie", ("кругов", "пирог", "pie")),
    ("scatter", ("рассеян", "точечн", "scatter")),
    ("bar", ("столбчат", "гистограмм", "bar")),
    ("line", ("линейн", "график", "line")),
)

_ALIASES = {
    "type": ("type", "kind", "tipo", "chartType"),
    "title": ("title", "titulo"),
    "description": ("description", "descricao"),
    "x_axis_label": ("x_axis_label", "xAxisLabel", "xAxis", "x"),
    "y_axis_label": ("y_axis_label", "yAxisLabel", "yAxis", "y"),
    "data": ("data", "points", "series"),
    "source_span": ("source_span", "sourceSpan"),
    "placeholder_token": ("placeholder_token", "placeholderToken", "placeholder"),
    "chart_type": ("chart_type", "chartType"),
    "markup": ("markup", "jsx"),
    "valid": ("valid", "isValid"),
}


@dataclass(frozen=True)
class SourceSpan:
    position: int
    length: int

    @property
    def end(self) -> int:
        return self.position + self.length


@dataclass(frozen=True)
class RawTextBlock:
    """Sentinel-delimited region of the source text; ``content`` is the stripped interior."""

    start_offset: int
    length: int
    content: str

    @property
    def span(self) -> SourceSpan:
        return SourceSpan(self.start_offset, self.length)


@dataclass
class ChartSpecification:
    type: str
    title: str = ""
    description: str = ""
    data: Any = field(default_factory=list)
    x_axis_label: Optional[str] = None
    y_axis_label: Optional[str] = None
    source_span: Optional[SourceSpan] = None
    placeholder_token: Optional[str] = None
    chart_type: Optional[str] = None
    markup: Optional[str] = None
    valid: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "data": self.data,
            "xAxisLabel": self.x_axis_label,
            "yAxisLabel": self.y_axis_label,
        }
        if self.source_span is not None:
            payload["sourceSpan"] = {"position": self.source_span.position, "length": self.source_span.length}
        if self.placeholder_token is not None:
            payload["placeholderToken"] = self.placeholder_token
        if self.chart_type is not None:
            payload["chartType"] = self.chart_type
        if self.markup is not None:
            payload["markup"] = self.markup
        if self.valid is not None:
            payload["valid"] = self.valid
        return payload


# -----------------------------
# Coercion helpers
# -----------------------------

def chart_type_from_text(text: Optional[str], default: str = "bar") -> str:
    """Map free type text (``"круговая диаграмма"``, ``"line"``) onto the closed type set."""

    if not text:
        return default
    lowered = str(text).strip().lower()
    if lowered in CHART_TYPES:
        return lowered
    for chart_type, stems in TYPE_KEYWORDS:
        if any(stem in lowered for stem in stems):
            return chart_type
    return default


def round_value(value: float) -> float:
    """Round to 2 decimals with ties going up (``0.125 -> 0.13``); integral results come back as ``int``."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if value is None or math.isnan(value) or math.isinf(value):
        return 0
    rounded = math.floor(float(value) * 100 + 0.5) / 100
    if rounded.is_integer():
        return int(rounded)
    return rounded


def to_number(value: Any) -> float:
    if isinstance(value, (int, float)):
        return round_value(value)
    if isinstance(value, str):
        parsed = parse_number(value)
        return round_value(parsed) if parsed is not None else 0
    try:
        return round_value(float(value))
    except (TypeError, ValueError):
        return 0


def _pick(raw: Mapping[str, Any], name: str) -> Any:
    for alias in _ALIASES[name]:
        if alias in raw and raw[alias] is not None:
            return raw[alias]
    return None


def _as_mapping(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, ChartSpecification):
        return {f.name: getattr(raw, f.name) for f in fields(raw)}
    if isinstance(raw, Mapping):
        return dict(raw)
    return {}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _span(value: Any) -> Optional[SourceSpan]:
    if isinstance(value, SourceSpan):
        return value
    if isinstance(value, Mapping):
        try:
            return SourceSpan(int(value["position"]), int(value["length"]))
        except (KeyError, TypeError, ValueError):
            return None
    return None


def _series_point(item: Any, index: int) -> Optional[Dict[str, Any]]:
    if isinstance(item, Mapping):
        name = item.get("name", item.get("label", item.get("category")))
        value = item.get("value", item.get("y", item.get("count")))
    elif isinstance(item, (list, tuple)) and len(item) >= 2:
        name, value = item[0], item[1]
    else:
        return None
    name = _text(name) or f"Значение {index + 1}"
    return {"name": name, "value": to_number(value)}


def _scatter_point(item: Any, index: int) -> Optional[Dict[str, Any]]:
    if isinstance(item, Mapping):
        x, y = item.get("x"), item.get("y", item.get("value"))
        name = _text(item.get("name")) or f"Точка {index + 1}"
    elif isinstance(item, (list, tuple)) and len(item) >= 2:
        x, y = item[0], item[1]
        name = _text(item[2]) if len(item) > 2 else None
        name = name or f"Точка {index + 1}"
    else:
        return None
    return {"x": to_number(x), "y": to_number(y), "name": name}


def _normalize_data(chart_type: str, data: Any) -> Any:
    if chart_type in OPAQUE_TYPES:
        if chart_type == "jsx" and data is not None and not isinstance(data, str):
            return str(data)
        return data
    if not isinstance(data, (list, tuple)):
        return []
    builder = _scatter_point if chart_type == "scatter" else _series_point
    points = (builder(item, idx) for idx, item in enumerate(data))
    return [p for p in points if p is not None]


# -----------------------------
# Public API
# -----------------------------

def normalize(raw: Any) -> ChartSpecification:
    """Return a canonical :class:`ChartSpecification` for any extracted shape.

    Accepts a specification or a loose mapping (``kind``/``xAxis`` aliases
    included). Unknown types fall back to ``bar``; missing display strings get
    type-specific defaults; numeric values are coerced (``0`` on failure) and
    rounded to 2 decimals. ``normalize(normalize(x)) == normalize(x)``.
    """

    mapping = _as_mapping(raw)
    chart_type = chart_type_from_text(_text(_pick(mapping, "type")))
    title_default, desc_default, x_default, y_default = TYPE_DEFAULTS[chart_type]

    x_label = _text(_pick(mapping, "x_axis_label")) or x_default
    y_label = _text(_pick(mapping, "y_axis_label")) or y_default

    data = _pick(mapping, "data")
    if chart_type == "jsx" and data is None:
        data = _pick(mapping, "markup")

    valid = _pick(mapping, "valid")
    inner_type = _text(_pick(mapping, "chart_type"))
    if chart_type != "jsx":
        inner_type = None
    elif inner_type:
        inner_type = chart_type_from_text(inner_type)

    return ChartSpecification(
        type=chart_type,
        title=_text(_pick(mapping, "title")) or title_default,
        description=_text(_pick(mapping, "description")) or desc_default,
        data=_normalize_data(chart_type, data),
        x_axis_label=x_label,
        y_axis_label=y_label,
        source_span=_span(_pick(mapping, "source_span")),
        placeholder_token=_text(_pick(mapping, "placeholder_token")),
        chart_type=inner_type,
        markup=_text(_pick(mapping, "markup")) if chart_type not in OPAQUE_TYPES else None,
        valid=bool(valid) if valid is not None else None,
    )


def has_data(spec: ChartSpecification) -> bool:
    if spec.type in OPAQUE_TYPES:
        return bool(spec.data)
    return isinstance(spec.data, list) and len(spec.data) > 0


def validate_chart_data(data: Any, chart_type: str) -> bool:
    """Shape check used before handing series to a renderer (pie values must be >= 0)."""

    if not isinstance(data, list) or not data:
        return False
    for item in data:
        if not isinstance(item, Mapping):
            return False
        if chart_type == "scatter":
            if not all(isinstance(item.get(k), (int, float)) for k in ("x", "y")):
                return False
            continue
        if "name" not in item or not isinstance(item.get("value"), (int, float)):
            return False
        if chart_type == "pie" and item["value"] < 0:
            return False
    return True
