from finsight.domain.blocks import parse_blocks
from finsight.domain.charts import ChartSpecification, SourceSpan
from finsight.domain.splice import placeholder_token, restore, splice


def _spec(title, position=None, length=None):
    span = SourceSpan(position, length) if position is not None else None
    return ChartSpecification(type="bar", title=title, data=[{"name": "A", "value": 1}], source_span=span)


def test_scenario_block_becomes_first_placeholder(scenario_text):
    result = splice(scenario_text, parse_blocks(scenario_text))
    assert result.text == "Расходы по месяцам\n---VISUALIZATION_PLACEHOLDER_0---\nИтог."
    assert [spec.placeholder_token for spec in result.ordered_specs] == [placeholder_token(0)]


def test_tokens_follow_reading_order_not_input_order():
    text = "aa[XX]bb[YY]cc"
    second = _spec("second", text.index("[YY]"), 4)
    first = _spec("first", text.index("[XX]"), 4)
    result = splice(text, [second, first])
    assert result.text == f"aa{placeholder_token(0)}bb{placeholder_token(1)}cc"
    assert [spec.title for spec in result.ordered_specs] == ["first", "second"]
    assert [spec.placeholder_token for spec in result.ordered_specs] == [placeholder_token(0), placeholder_token(1)]


def test_restore_puts_original_spans_back(scenario_text):
    result = splice(scenario_text, parse_blocks(scenario_text))
    assert restore(result.text, scenario_text, result.ordered_specs) == scenario_text


def test_unanchored_specs_are_appended_without_token():
    text = "one [XX] two"
    anchored = _spec("anchored", text.index("[XX]"), 4)
    loose = _spec("loose")
    result = splice(text, [loose, anchored])
    assert [spec.title for spec in result.ordered_specs] == ["anchored", "loose"]
    assert result.ordered_specs[1].placeholder_token is None


def test_inputs_are_not_mutated():
    text = "x[XX]y"
    spec = _spec("a", 1, 4)
    splice(text, [spec])
    assert spec.placeholder_token is None


def test_overlapping_and_out_of_range_spans_are_not_spliced():
    text = "0123456789"
    keep = _spec("keep", 1, 4)
    overlap = _spec("overlap", 3, 4)
    outside = _spec("outside", 8, 5)
    result = splice(text, [keep, overlap, outside])
    assert result.text == f"0{placeholder_token(0)}56789"
    assert [spec.title for spec in result.ordered_specs] == ["keep", "overlap", "outside"]
    assert [spec.placeholder_token for spec in result.ordered_specs] == [placeholder_token(0), None, None]


def test_no_specs_leaves_text_untouched():
    result = splice("просто текст", [])
    assert result.text == "просто текст"
    assert result.ordered_specs == []
