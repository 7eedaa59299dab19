"""
Tests for outcome classification.
"""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from codecanvas.classifier import (
    classify,
    is_full_document,
    looks_like_markup,
    split_image_payload,
)
from codecanvas.results import EMPTY_RESULT_MESSAGE, ExecutionOutcome, ResultKind

base64_text = st.text(
    alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/=",
    max_size=200,
)


class TestMarkupDetection:
    @pytest.mark.parametrize(
        "source",
        [
            "<div>hi</div>",
            "  <p>padded</p>\n",
            "<!DOCTYPE html><html></html>",
            "<!-- comment --><span>x</span>",
            "<svg viewBox='0 0 1 1'></svg>",
            "# header\n<body>content</body>",
        ],
    )
    def test_markup_sources(self, source):
        assert looks_like_markup(source)

    @pytest.mark.parametrize(
        "source",
        [
            "print('<div>')",
            "x = 1 < 2",
            "1 <2",
            "'<table>'",
            "",
        ],
    )
    def test_code_sources(self, source):
        assert not looks_like_markup(source)

    @pytest.mark.parametrize(
        "markup, expected",
        [
            ("<!DOCTYPE html><html></html>", True),
            ("<!doctype html>", True),
            ("<html lang='en'></html>", True),
            ("  <HTML>", True),
            ("<div>hi</div>", False),
            ("<htmlish>", False),
            ("<!-- note --><p>x</p>", False),
        ],
    )
    def test_full_document_detection(self, markup, expected):
        assert is_full_document(markup) is expected


class TestImagePayload:
    def test_split_plain_marker(self):
        assert split_image_payload("image/png;base64,AAAA") == ("image/png", "AAAA")

    def test_split_data_uri(self):
        assert split_image_payload("data:image/svg+xml;base64,PHN2Zz4=") == (
            "image/svg+xml",
            "PHN2Zz4=",
        )

    def test_split_rejects_other_strings(self):
        assert split_image_payload("text/plain;base64,AAAA") is None
        assert split_image_payload("see image/png;base64,AAAA") is None


class TestClassificationRules:
    def test_error_outcome(self):
        result = classify(ExecutionOutcome(threw=True, error_message="ValueError: boom"))
        assert result.kind is ResultKind.ERROR
        assert result.content == "ValueError: boom"

    def test_error_wins_over_markup_and_output(self):
        outcome = ExecutionOutcome(
            raw_value="<div>x</div>",
            captured_output="printed",
            threw=True,
            error_message="KeyError: 'a'",
            markup=True,
        )
        assert classify(outcome).kind is ResultKind.ERROR

    def test_markup_fragment(self):
        result = classify(ExecutionOutcome(raw_value="<div>hi</div>", markup=True))
        assert result.kind is ResultKind.MARKUP
        assert result.content == "<div>hi</div>"
        assert not result.is_full_document

    def test_markup_full_document(self):
        document = "<!DOCTYPE html><html><body>x</body></html>"
        result = classify(ExecutionOutcome(raw_value=document, markup=True))
        assert result.kind is ResultKind.MARKUP
        assert result.is_full_document

    def test_plot_value(self):
        result = classify(ExecutionOutcome(raw_value="image/png;base64,AAAA"))
        assert result.kind is ResultKind.PLOT
        assert result.content == "image/png;base64,AAAA"

    def test_plot_wins_over_captured_output(self):
        outcome = ExecutionOutcome(raw_value="image/png;base64,AAAA", captured_output="saved figure")
        assert classify(outcome).kind is ResultKind.PLOT

    def test_table_value(self):
        table = '<table class="generated-table"><tr><td>1</td></tr></table>'
        result = classify(ExecutionOutcome(raw_value=table, captured_output="noise"))
        assert result.kind is ResultKind.MARKUP
        assert result.content == table
        assert not result.is_full_document

    def test_structured_value(self):
        result = classify(ExecutionOutcome(raw_value="[1,2,3]"))
        assert result.kind is ResultKind.STRUCTURED
        assert result.content == json.dumps([1, 2, 3], indent=2)

    def test_structured_object_keeps_unicode(self):
        result = classify(ExecutionOutcome(raw_value='{"name": "Zoë"}'))
        assert result.kind is ResultKind.STRUCTURED
        assert "Zoë" in result.content

    def test_structured_wins_over_captured_output(self):
        outcome = ExecutionOutcome(raw_value='{"a": 1}', captured_output="computing...")
        assert classify(outcome).kind is ResultKind.STRUCTURED

    def test_invalid_json_falls_through_to_text(self):
        result = classify(ExecutionOutcome(raw_value="[not json"))
        assert result.kind is ResultKind.TEXT
        assert result.content == "[not json"

    def test_bare_json_scalar_is_not_structured(self):
        result = classify(ExecutionOutcome(raw_value="42"))
        assert result.kind is ResultKind.TEXT
        assert result.content == "42"

    def test_captured_output_is_trimmed(self):
        result = classify(ExecutionOutcome(captured_output="\n  done \n"))
        assert result.kind is ResultKind.TEXT
        assert result.content == "done"

    def test_captured_output_wins_over_plain_value(self):
        outcome = ExecutionOutcome(raw_value=7, captured_output="result is 7\n")
        result = classify(outcome)
        assert result.content == "result is 7"

    def test_non_string_value_is_stringified(self):
        assert classify(ExecutionOutcome(raw_value=0)).content == "0"
        assert classify(ExecutionOutcome(raw_value=[1, 2])).content == "[1, 2]"
        assert classify(ExecutionOutcome(raw_value=False)).content == "False"

    def test_done_output_without_value(self):
        result = classify(ExecutionOutcome(captured_output="done"))
        assert result.kind is ResultKind.TEXT
        assert result.content == "done"

    def test_nothing_is_empty(self):
        result = classify(ExecutionOutcome())
        assert result.kind is ResultKind.EMPTY
        assert result.content == EMPTY_RESULT_MESSAGE

    def test_empty_string_value_is_empty(self):
        assert classify(ExecutionOutcome(raw_value="", captured_output="   ")).kind is ResultKind.EMPTY

    def test_classify_is_pure(self):
        outcome = ExecutionOutcome(raw_value="[1, 2]", captured_output="x")
        assert classify(outcome) == classify(outcome)
        assert outcome.raw_value == "[1, 2]"
        assert outcome.captured_output == "x"


class TestClassificationProperties:
    @given(payload=base64_text, captured=st.text(max_size=50))
    def test_image_marker_always_wins(self, payload, captured):
        outcome = ExecutionOutcome(raw_value="image/png;base64," + payload, captured_output=captured)
        assert classify(outcome).kind is ResultKind.PLOT

    @given(message=st.text(min_size=1, max_size=80), captured=st.text(max_size=50))
    def test_threw_always_yields_error(self, message, captured):
        outcome = ExecutionOutcome(captured_output=captured, threw=True, error_message=message)
        result = classify(outcome)
        assert result.kind is ResultKind.ERROR
        assert result.content == message

    @given(values=st.lists(st.integers(), max_size=10))
    def test_json_lists_are_structured(self, values):
        result = classify(ExecutionOutcome(raw_value=json.dumps(values)))
        assert result.kind is ResultKind.STRUCTURED
        assert json.loads(result.content) == values

    @given(captured=st.text(max_size=50))
    def test_result_kind_is_always_one_of_the_tags(self, captured):
        result = classify(ExecutionOutcome(captured_output=captured))
        assert result.kind in (ResultKind.TEXT, ResultKind.EMPTY)
        if captured.strip():
            assert result.content == captured.strip()


class TestMalformedValues:
    def test_deeply_nested_json_falls_through_to_text(self):
        raw = "[" * 100_000
        result = classify(ExecutionOutcome(raw_value=raw))
        assert result.kind is ResultKind.TEXT
        assert result.content == raw

    def test_deeply_nested_json_prefers_captured_output(self):
        outcome = ExecutionOutcome(raw_value='{"a":' * 100_000, captured_output="printed")
        result = classify(outcome)
        assert result.kind is ResultKind.TEXT
        assert result.content == "printed"
