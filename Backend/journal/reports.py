"""Weekly growth report built from one completed cycle of 7 records."""
import logging
import typing as t

from . import config
from .errors import JournalError, ReportSynthesisError, ValidationError
from .models import EmotionRecord, WeeklyReport
from .parsing import parse_report_payload
from .prompts import REPORT_SYSTEM_PROMPT, REPORT_USER_TEMPLATE
from .tracker import SESSIONS_PER_CYCLE, analyze_emotion_trends, short_date

logger = logging.getLogger(__name__)


def build_records_digest(records: t.Sequence[EmotionRecord]) -> str:
    parts = []
    for index, record in enumerate(records):
        data = record.emotion_data
        words = ", ".join(f"{w.word}({w.count}次)" for w in data.emotion_words)
        four = data.four_questions_analysis
        parts.append(
            f"第{index + 1}天 ({short_date(record.timestamp)}):\n"
            f"- 情绪词汇: {words}\n"
            f"- AI洞察: {'; '.join(data.insights)}\n"
            f"- 核心感受: {four.feeling}\n"
            f"- 内在需求: {four.needs}\n"
            f"- 关键挑战: {four.challenges}\n"
            f"- 新发现: {four.insights}"
        )
    return "\n\n".join(parts)


def build_report(records: t.Sequence[EmotionRecord], llm) -> WeeklyReport:
    """Summarize 7 records, given oldest first.

    The model gets a single attempt. Malformed output is replaced by fallback
    text; a failed call raises ``ReportSynthesisError`` keeping the upstream
    error code.
    """
    if len(records) != SESSIONS_PER_CYCLE:
        raise ValidationError(f"需要提供完整的{SESSIONS_PER_CYCLE}次情绪记录", details={"count": len(records)})

    trends = analyze_emotion_trends(records)
    prompt = REPORT_USER_TEMPLATE.format(digest=build_records_digest(records))
    try:
        raw = llm.complete(
            REPORT_SYSTEM_PROMPT,
            prompt,
            max_tokens=config.REPORT_MAX_TOKENS,
            temperature=0.7,
            model=config.WEEKLY_REPORT_MODEL,
            max_retries=0,
        )
    except JournalError as e:
        raise ReportSynthesisError(details=e.details or e.message, code=e.code) from e
    if not raw:
        raise ReportSynthesisError(details="未能获取AI分析结果")

    payload = parse_report_payload(raw)
    return WeeklyReport(
        start_date=records[0].timestamp,
        end_date=records[-1].timestamp,
        total_sessions=SESSIONS_PER_CYCLE,
        emotion_trends=trends,
        insights=payload["insights"],
        personal_growth=payload["personalGrowth"],
        recommendations=payload["recommendations"],
        progress_summary=payload["progressSummary"],
    )
