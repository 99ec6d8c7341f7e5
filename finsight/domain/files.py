"""Uploaded-file summaries (planilhas, JSON, texto) as a secondary chart source."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .charts import ChartSpecification, has_data, normalize
from .numeric import extract_pairs

logger = logging.getLogger(__name__)

MAX_CHART_ROWS = 10
SAMPLE_ROWS = 5
TEXT_PREVIEW_CHARS = 1000
_NAME_KEYS = ("name", "label", "title", "category", "id")
_VALUE_KEYS = ("value", "count", "amount", "total", "sum")


@dataclass
class UploadedFile:
    """Pre-parsed upload as handed over by the file-dispatch layer."""

    name: str
    type: str
    extracted_data: Any = None

    @property
    def kind(self) -> str:
        lowered = (self.type or "").lower()
        if any(tag in lowered for tag in ("excel", "spreadsheet", "sheet", "xls", "csv")):
            return "excel"
        if "json" in lowered:
            return "json"
        if "image" in lowered:
            return "image"
        return "text"


# -----------------------------
# DataFrame helpers
# -----------------------------

def coerce_numeric(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    for col in out.columns:
        if pd.api.types.is_object_dtype(out[col]) or pd.api.types.is_string_dtype(out[col]):
            s = out[col].astype(str).str.replace("\u00a0", "", regex=False).str.replace(" ", "", regex=False)
            s = s.str.replace(",", ".", regex=False)
            looks_num = s.str.fullmatch(r"[-+]?\d*(?:\.\d+)?").fillna(False)
            if looks_num.mean() > 0.8:
                out[col] = pd.to_numeric(s, errors="coerce")
    return out


def sheet_frames(extracted: Any) -> Dict[str, pd.DataFrame]:
    """``{summary, <sheet>: {headers, data, rowCount, columnCount}}`` -> one frame per sheet."""

    frames: Dict[str, pd.DataFrame] = {}
    if not isinstance(extracted, dict):
        return frames
    for sheet, payload in extracted.items():
        if sheet == "summary" or not isinstance(payload, dict):
            continue
        rows = payload.get("data") or []
        if not rows:
            continue
        headers = [h for h in (payload.get("headers") or []) if h]
        if isinstance(rows[0], dict):
            df = pd.DataFrame(rows)
            ordered = [h for h in headers if h in df.columns]
            if ordered:
                df = df[ordered + [c for c in df.columns if c not in ordered]]
        else:
            df = pd.DataFrame(rows)
            if headers and len(headers) == df.shape[1]:
                df.columns = headers
        frames[str(sheet)] = df
    return frames


def frame_chart(df: pd.DataFrame, source: str) -> Optional[ChartSpecification]:
    """Bar chart of the first rows: first text column as names, first numeric column as values."""

    if df is None or df.empty or df.shape[1] < 2:
        return None
    head = coerce_numeric(df.head(MAX_CHART_ROWS))
    numeric_cols = head.select_dtypes(include=[np.number]).columns.tolist()
    text_cols = [c for c in head.columns if c not in numeric_cols]
    name_col = text_cols[0] if text_cols else head.columns[0]
    value_cols = [c for c in numeric_cols if c != name_col]
    if not value_cols:
        return None
    value_col = value_cols[0]
    values = head[value_col].replace([np.inf, -np.inf], np.nan).fillna(0)
    data = [
        {"name": "Unknown" if pd.isna(name) else str(name), "value": float(value)}
        for name, value in zip(head[name_col], values)
    ]
    return normalize(
        {
            "type": "bar",
            "title": f"{value_col} по {name_col}",
            "description": f"Сравнение значений «{value_col}» по «{name_col}» ({source})",
            "data": data,
            "xAxisLabel": str(name_col),
            "yAxisLabel": str(value_col),
        }
    )


def _first_key(item: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if item.get(key) not in (None, ""):
            return item[key]
    return None


def json_chart(payload: Any, source: str) -> Optional[ChartSpecification]:
    data = payload.get("data") if isinstance(payload, dict) and "data" in payload else payload
    if isinstance(data, list) and data and all(isinstance(item, dict) for item in data):
        rows = data[:MAX_CHART_ROWS]
        if any(_first_key(item, _VALUE_KEYS) is not None for item in rows):
            points = [
                {
                    "name": str(_first_key(item, _NAME_KEYS) or f"Элемент {idx + 1}"),
                    "value": _first_key(item, _VALUE_KEYS) or 0,
                }
                for idx, item in enumerate(rows)
            ]
            return normalize({"type": "bar", "title": f"Данные файла {source}", "data": points})
        return frame_chart(pd.json_normalize(data), source)
    if isinstance(data, dict):
        points = [
            {"name": str(key), "value": value}
            for key, value in data.items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
        ][:MAX_CHART_ROWS]
        if points:
            return normalize({"type": "bar", "title": f"Данные файла {source}", "data": points})
    return None


def text_chart(payload: Any, source: str) -> Optional[ChartSpecification]:
    content = payload.get("content") if isinstance(payload, dict) else payload
    if not isinstance(content, str):
        return None
    pairs = extract_pairs(content)
    if len(pairs) < 2:
        return None
    return normalize({"type": "bar", "title": f"Показатели из файла {source}", "data": pairs[:MAX_CHART_ROWS]})


# -----------------------------
# Public API
# -----------------------------

def charts_from_files(files: Sequence[UploadedFile]) -> List[ChartSpecification]:
    specs: List[ChartSpecification] = []
    for upload in files or []:
        try:
            if upload.kind == "excel":
                candidates = [frame_chart(df, f"{upload.name}: {sheet}") for sheet, df in sheet_frames(upload.extracted_data).items()]
            elif upload.kind == "json":
                candidates = [json_chart(upload.extracted_data, upload.name)]
            elif upload.kind == "text":
                candidates = [text_chart(upload.extracted_data, upload.name)]
            else:
                candidates = []
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("Falha ao derivar gráfico do arquivo %s: %s", upload.name, exc)
            continue
        specs.extend(spec for spec in candidates if spec is not None and has_data(spec))
    return specs


def describe_files(files: Sequence[UploadedFile]) -> str:
    """Plain-text digest of the uploads for the analysis prompt."""

    parts: List[str] = []
    for upload in files or []:
        data = upload.extracted_data
        if upload.kind == "excel":
            frames = sheet_frames(data)
            lines = [f"Файл Excel: {upload.name}", f"Количество листов: {len(frames)}"]
            for sheet, df in frames.items():
                lines.append(f"Лист «{sheet}»: {df.shape[0]} строк, {df.shape[1]} столбцов")
                lines.append("Пример данных:")
                lines.append(df.head(SAMPLE_ROWS).to_string(index=False))
            parts.append("\n".join(lines))
        elif upload.kind == "json":
            analysis = data.get("analysis") if isinstance(data, dict) else None
            body = analysis if analysis is not None else data
            preview = json.dumps(body, ensure_ascii=False, default=str)[:TEXT_PREVIEW_CHARS]
            parts.append(f"Файл JSON: {upload.name}\nАнализ структуры: {preview}")
        elif upload.kind == "image":
            parts.append(f"Изображение: {upload.name}")
        else:
            content = data.get("content") if isinstance(data, dict) else data
            parts.append(f"Текстовый файл: {upload.name}\nСодержимое:\n{str(content or '')[:TEXT_PREVIEW_CHARS]}")
    return "\n\n".join(parts)
