import json

import pytest

from journal import config
from journal.errors import ReportSynthesisError, UpstreamTimeoutError, ValidationError
from journal.parsing import FALLBACK_REPORT
from journal.reports import build_records_digest, build_report


REPORT_JSON = {
    "insights": ["我看到你每天都在表达", "这7天里，你更愿意面对焦虑"],
    "personalGrowth": "从第一天到现在，你慢慢学会了停下来",
    "recommendations": ["我觉得你可以试试散步"],
    "progressSummary": "真的为你感到骄傲",
}


def test_report_from_seven_records(make_records, fake_llm):
    records = make_records(7)
    fake_llm.reply = "这是你的周报：\n```json\n" + json.dumps(REPORT_JSON, ensure_ascii=False) + "\n```"
    report = build_report(records, fake_llm)
    assert report.start_date == records[0].timestamp
    assert report.end_date == records[6].timestamp
    assert report.total_sessions == 7
    assert [t.session for t in report.emotion_trends] == [1, 2, 3, 4, 5, 6, 7]
    assert report.emotion_trends[0].dominant_emotion == "焦虑"
    assert report.emotion_trends[0].intensity == 30
    assert report.insights == REPORT_JSON["insights"]
    assert report.personal_growth == REPORT_JSON["personalGrowth"]


def test_report_call_uses_single_attempt_and_large_budget(make_records, fake_llm):
    fake_llm.reply = json.dumps(REPORT_JSON)
    build_report(make_records(7), fake_llm)
    call = fake_llm.calls[0]
    assert call["max_retries"] == 0
    assert call["max_tokens"] == config.REPORT_MAX_TOKENS
    assert call["model"] == config.WEEKLY_REPORT_MODEL
    assert "第7天" in call["user"]


@pytest.mark.parametrize("n", [0, 6, 8])
def test_report_requires_exactly_seven_records(make_records, fake_llm, n):
    with pytest.raises(ValidationError):
        build_report(make_records(n), fake_llm)
    assert fake_llm.calls == []


def test_unparseable_report_uses_fallback(make_records, fake_llm):
    fake_llm.reply = "今天我不想写JSON"
    report = build_report(make_records(7), fake_llm)
    assert report.insights == FALLBACK_REPORT["insights"]
    assert report.personal_growth == FALLBACK_REPORT["personalGrowth"]
    assert report.recommendations == FALLBACK_REPORT["recommendations"]
    assert report.progress_summary == FALLBACK_REPORT["progressSummary"]
    assert len(report.emotion_trends) == 7


def test_upstream_timeout_becomes_synthesis_error(make_records, fake_llm):
    fake_llm.error = UpstreamTimeoutError(details="Request timed out.")
    with pytest.raises(ReportSynthesisError) as exc:
        build_report(make_records(7), fake_llm)
    assert exc.value.status_code == 500
    assert exc.value.code == "TIMEOUT"
    assert exc.value.details == "Request timed out."


def test_empty_model_reply_is_a_synthesis_error(make_records, fake_llm):
    fake_llm.reply = ""
    with pytest.raises(ReportSynthesisError):
        build_report(make_records(7), fake_llm)


def test_digest_lists_each_day(make_records):
    digest = build_records_digest(make_records(2))
    assert digest.startswith("第1天 (2024/3/1):")
    assert "- 情绪词汇: 焦虑(2次), 期待(1次)" in digest
    assert "第2天 (2024/3/2):" in digest
    assert "- 内在需求: 也许你现在最需要的是休息" in digest
