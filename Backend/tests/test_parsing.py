import json

import pytest

from journal.errors import ParseError
from journal.parsing import (
    FALLBACK_BENEFITS,
    FALLBACK_FOUR_QUESTIONS,
    FALLBACK_INSIGHTS,
    FALLBACK_REPORT,
    FALLBACK_REPORT_INSIGHTS,
    FALLBACK_REPORT_RECOMMENDATIONS,
    decode_json_object,
    extract_emotion_keywords,
    parse_analysis,
    parse_report_payload,
    strip_code_fence,
)


def _words(data):
    return [(w.word, w.count) for w in data.emotion_words]


def test_complete_response_passes_through_unchanged(analysis_payload):
    raw = json.dumps({**analysis_payload, "selectedBenefits": ["你很勇敢"]}, ensure_ascii=False)
    result = parse_analysis(raw, "今天有点紧张")
    expected = {**analysis_payload, "transcript": "今天有点紧张", "selectedBenefits": []}
    assert result.to_json_dict() == expected


@pytest.mark.parametrize("fence", ["```json\n{body}\n```", "```\n{body}\n```", "```JSON {body}```"])
def test_code_fences_are_stripped(analysis_payload, fence):
    raw = fence.replace("{body}", json.dumps(analysis_payload, ensure_ascii=False))
    result = parse_analysis(raw, "x")
    assert _words(result) == [("焦虑", 2), ("期待", 1)]


def test_strip_code_fence_leaves_plain_text_alone():
    assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'


def test_decode_rejects_non_object_json():
    with pytest.raises(ParseError):
        decode_json_object("[1, 2, 3]")


def test_decode_with_brace_scan_skips_prose():
    assert decode_json_object('好的，这是结果：{"a": {"b": 1}} 希望有帮助', scan_braces=True) == {"a": {"b": 1}}


def test_malformed_response_uses_keyword_fallback():
    result = parse_analysis("抱歉，我无法完成。", "我今天感觉很焦虑，也有点累")
    words = dict(_words(result))
    assert words["焦虑"] >= 1
    assert words["疲惫"] >= 1
    assert result.insights == FALLBACK_INSIGHTS
    assert len(result.suggested_benefits) == 4
    assert result.selected_benefits == []
    assert result.transcript == "我今天感觉很焦虑，也有点累"


def test_keyword_counts_sum_over_a_group():
    words = dict((w.word, w.count) for w in extract_emotion_keywords("开心开心，还很高兴；但也担心"))
    assert words == {"开心": 3, "焦虑": 1}


def test_keyword_matching_is_case_insensitive():
    # keyword table is CJK; lowering must not break matching of mixed input
    assert [w.word for w in extract_emotion_keywords("ABC 压力 DEF")] == ["压力"]


def test_no_keyword_match_yields_default_words():
    result = parse_analysis("", "今天去了公园")
    assert _words(result) == [("表达", 1), ("思考", 1), ("感受", 1)]


@pytest.mark.parametrize("raw", ["", "not json", "{broken", "null", '"just a string"', "```json\n```"])
def test_emotion_words_never_empty(raw):
    assert len(parse_analysis(raw, "随便说说").emotion_words) >= 1


def test_partial_response_is_filled_field_by_field():
    raw = json.dumps({
        "emotionWords": [{"word": "开心"}, {"count": 3}, "bad", {"word": "平静", "count": "2"}],
        "insights": "should be a list",
        "fourQuestionsAnalysis": {"feeling": "我听到了", "needs": 5},
        "suggestedBenefits": [],
    }, ensure_ascii=False)
    result = parse_analysis(raw, "text")
    assert _words(result) == [("开心", 1), ("平静", 2)]
    assert result.insights == FALLBACK_INSIGHTS
    assert result.four_questions_analysis.feeling == "我听到了"
    assert result.four_questions_analysis.needs == ""
    assert result.four_questions_analysis.challenges == ""
    assert result.growth_summary.discovered
    assert result.suggested_benefits == FALLBACK_BENEFITS


def test_empty_emotion_words_from_model_fall_back_to_keywords(analysis_payload):
    raw = json.dumps({**analysis_payload, "emotionWords": []}, ensure_ascii=False)
    assert _words(parse_analysis(raw, "好累啊")) == [("疲惫", 1)]


def test_missing_four_questions_gets_fallback_text():
    result = parse_analysis("{}", "x")
    assert result.four_questions_analysis.to_json_dict() == FALLBACK_FOUR_QUESTIONS


def test_non_string_input_does_not_raise():
    result = parse_analysis(None, None)
    assert result.transcript == ""
    assert len(result.emotion_words) == 3


def test_report_payload_with_surrounding_prose():
    raw = '当然！\n{"insights": ["a"], "personalGrowth": "g", "recommendations": ["r"], "progressSummary": "p"}\n祝好'
    assert parse_report_payload(raw) == {
        "insights": ["a"],
        "personalGrowth": "g",
        "recommendations": ["r"],
        "progressSummary": "p",
    }


def test_report_payload_replaces_invalid_arrays():
    raw = '{"insights": "oops", "personalGrowth": "g", "progressSummary": 3}'
    payload = parse_report_payload(raw)
    assert payload["insights"] == FALLBACK_REPORT_INSIGHTS
    assert payload["recommendations"] == FALLBACK_REPORT_RECOMMENDATIONS
    assert payload["personalGrowth"] == "g"
    assert payload["progressSummary"] == ""


def test_report_payload_total_failure_uses_full_fallback():
    assert parse_report_payload("no json here") == FALLBACK_REPORT


def test_infinite_word_count_falls_back_to_one():
    raw = '{"emotionWords": [{"word": "焦虑", "count": Infinity}, {"word": "累", "count": -Infinity}]}'
    assert _words(parse_analysis(raw, "x")) == [("焦虑", 1), ("累", 1)]


def test_deeply_nested_analysis_uses_keyword_fallback():
    result = parse_analysis("[" * 100000, "我很开心")
    assert _words(result) == [("开心", 1)]
    assert result.insights == FALLBACK_INSIGHTS


def test_deeply_nested_report_uses_full_fallback():
    raw = '{"a": ' * 100000 + "1" + "}" * 100000
    assert parse_report_payload(raw) == FALLBACK_REPORT


def test_report_payload_keeps_empty_arrays():
    raw = '{"insights": [], "personalGrowth": "g", "recommendations": [], "progressSummary": "p"}'
    payload = parse_report_payload(raw)
    assert payload["insights"] == []
    assert payload["recommendations"] == []
