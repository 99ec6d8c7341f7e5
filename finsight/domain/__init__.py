"""Domain-level utilities for chart recovery from analysis text."""

from .blocks import END_MARKER, START_MARKER, extract_blocks, format_block, parse_block, parse_blocks
from .charts import (
    CHART_TYPES,
    ChartSpecification,
    RawTextBlock,
    SourceSpan,
    normalize,
    round_value,
    validate_chart_data,
)
from .files import UploadedFile, charts_from_files, describe_files
from .interleave import Segment, interleave
from .markup import (
    MarkupValidation,
    detect_chart_type,
    parse_generation_response,
    repair_markup,
    synthesize_markup,
    validate_markup,
)
from .numeric import (
    contains_numeric_data,
    extract_categories,
    extract_distribution,
    extract_generic,
    extract_pairs,
    extract_time_series,
    parse_number,
)
from .sections import classify_sections, split_sections
from .splice import SpliceResult, placeholder_token, splice

__all__ = [
    "END_MARKER",
    "START_MARKER",
    "extract_blocks",
    "format_block",
    "parse_block",
    "parse_blocks",
    "CHART_TYPES",
    "ChartSpecification",
    "RawTextBlock",
    "SourceSpan",
    "normalize",
    "round_value",
    "validate_chart_data",
    "UploadedFile",
    "charts_from_files",
    "describe_files",
    "Segment",
    "interleave",
    "MarkupValidation",
    "detect_chart_type",
    "parse_generation_response",
    "repair_markup",
    "synthesize_markup",
    "validate_markup",
    "contains_numeric_data",
    "extract_categories",
    "extract_distribution",
    "extract_generic",
    "extract_pairs",
    "extract_time_series",
    "parse_number",
    "classify_sections",
    "split_sections",
    "SpliceResult",
    "placeholder_token",
    "splice",
]
