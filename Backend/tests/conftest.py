from datetime import datetime, timedelta, timezone

import pytest

from journal.models import EmotionData, EmotionRecord


class FakeLLM:
    """Stands in for LLMClient: returns ``reply`` or raises ``error``."""

    def __init__(self):
        self.reply = ""
        self.error = None
        self.calls = []

    def complete(self, system, user, max_tokens, temperature=0.7, model=None, max_retries=None):
        self.calls.append({
            "system": system,
            "user": user,
            "max_tokens": max_tokens,
            "model": model,
            "max_retries": max_retries,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class TickClock:
    """Clock advancing one minute per call."""

    def __init__(self, start=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def clock():
    return TickClock()


@pytest.fixture
def analysis_payload():
    return {
        "emotionWords": [{"word": "焦虑", "count": 2}, {"word": "期待", "count": 1}],
        "insights": ["我听到你很在意这件事", "你一直在努力", "你愿意面对自己"],
        "fourQuestionsAnalysis": {
            "feeling": "我感受到你有些紧张",
            "needs": "也许你现在最需要的是休息",
            "challenges": "我觉得最难的可能是开始",
            "insights": "有没有发现你其实很有韧性",
        },
        "growthSummary": {
            "discovered": "通过这次聊天，你可能意识到自己很在乎",
            "reminder": "想对未来的你说，慢慢来",
        },
        "suggestedBenefits": ["你很勇敢", "你很真诚", "你有责任心", "你懂得照顾自己"],
    }


@pytest.fixture
def emotion_data(analysis_payload):
    return EmotionData.model_validate({**analysis_payload, "transcript": "今天有点紧张", "selectedBenefits": []})


@pytest.fixture
def make_records(emotion_data):
    def _make(n=7, cycle_number=1, start=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)):
        records = []
        for i in range(n):
            ts = (start + timedelta(days=i)).isoformat().replace("+00:00", "Z")
            records.append(EmotionRecord(
                id=str(1709280000000 + i),
                timestamp=ts,
                emotion_data=emotion_data,
                session_number=min(i + 1, 7),
                cycle_number=cycle_number,
            ))
        return records
    return _make
