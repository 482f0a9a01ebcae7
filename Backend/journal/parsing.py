"""Turn free-form model output into analysis and report payloads.

Models are asked for JSON but do not always comply: the reply may be wrapped
in a markdown fence, prefixed with prose, truncated, or missing fields. The
functions here never raise. Whatever the model returned, the caller gets a
fully populated result, built from fixed fallback content where needed.
"""
import json
import logging
import re
import typing as t

from pydantic import BaseModel, ConfigDict

from .errors import ParseError
from .models import EmotionData, EmotionWord, FourQuestionsAnalysis, GrowthSummary
from .validation import sanitize_text

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# label -> keywords counted towards it
EMOTION_KEYWORD_GROUPS: t.List[t.Tuple[str, t.Tuple[str, ...]]] = [
    ("开心", ("开心", "高兴", "愉快", "快乐", "兴奋")),
    ("难过", ("难过", "伤心", "悲伤", "失望", "沮丧")),
    ("焦虑", ("焦虑", "担心", "紧张", "不安", "害怕")),
    ("愤怒", ("愤怒", "生气", "烦躁", "恼火")),
    ("疲惫", ("疲惫", "累", "疲倦", "没精神")),
    ("迷茫", ("迷茫", "困惑", "无助", "不知所措")),
    ("平静", ("平静", "放松", "安心", "满足")),
    ("压力", ("压力", "压抑", "喘不过气")),
]

DEFAULT_EMOTION_WORDS = ("表达", "思考", "感受")

FALLBACK_INSIGHTS = [
    "感谢你的真诚分享，这需要勇气",
    "每一次表达都是自我觉察的开始",
    "你的感受都是珍贵和有价值的",
]

FALLBACK_FOUR_QUESTIONS = {
    "feeling": "从你的表达中，我感受到你内心有着复杂而真实的情绪",
    "needs": "你可能需要被理解、被接纳，以及一个安全的空间来表达自己",
    "challenges": "当前的主要挑战可能是如何更好地理解和表达自己的感受",
    "insights": "你已经迈出了重要的一步，愿意诚实地面对和表达自己的感受",
}

FALLBACK_GROWTH_SUMMARY = {
    "discovered": "你发现了自己有勇气面对和表达内心的感受，这是自我成长的重要能力",
    "reminder": "记住，每一次真诚的表达都是成长，给自己一些耐心和关爱",
}

FALLBACK_BENEFITS = [
    "你有勇气面对和表达真实的感受",
    "你正在主动寻求自我理解和成长",
    "你愿意花时间关注自己的内心世界",
    "你有自我觉察的能力和意愿",
]

FALLBACK_REPORT_INSIGHTS = [
    "我看到你这7天里的勇敢和坚持",
    "你的情绪表达越来越真实和深入",
    "感受到你对自我成长的渴望",
]

FALLBACK_REPORT_RECOMMENDATIONS = [
    "我觉得你可以试试继续保持这种情绪觉察",
    "如果是我的话，会给自己更多的耐心和关爱",
    "也许可以把这些洞察记录下来",
]

FALLBACK_REPORT = {
    "insights": [
        "我看到你这7天里一直在勇敢地面对和表达自己的感受",
        "你的每一次倾诉都展现了对自我成长的渴望",
        "从你的表达中，我感受到了你内心的力量和韧性",
    ],
    "personalGrowth": (
        "从第一天到现在，我发现你慢慢学会了更深入地觉察自己的情绪。"
        "你不再只是表达表面的感受，而是开始探索内心更深层的需求和想法。这种成长真的很珍贵。"
    ),
    "recommendations": [
        "我觉得你可以试试每天花几分钟静下来感受自己的情绪",
        "如果是我的话，会把这些洞察写在日记里，慢慢积累",
        "也许可以找信任的朋友分享，获得更多支持",
    ],
    "progressSummary": (
        "真的为你感到骄傲！看着你这7天从开始的尝试到现在的坚持，每一次表达都是成长。"
        "你已经建立了很好的情绪觉察习惯，这将是你人生路上最珍贵的能力之一。"
    ),
}


class PartialAnalysis(BaseModel):
    """Analysis fields as decoded from the model; any of them may be missing or malformed."""

    model_config = ConfigDict(extra="ignore")

    emotionWords: t.Any = None
    insights: t.Any = None
    fourQuestionsAnalysis: t.Any = None
    growthSummary: t.Any = None
    suggestedBenefits: t.Any = None


def strip_code_fence(text: str) -> str:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned)
        cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned


def decode_json_object(text: str, scan_braces: bool = False) -> dict:
    """Decode a JSON object from model output.

    With ``scan_braces`` the span from the first ``{`` to the last ``}`` is
    decoded, which tolerates prose around the object.
    """
    cleaned = strip_code_fence(text)
    if scan_braces:
        match = _JSON_OBJECT.search(cleaned)
        if not match:
            raise ParseError("no JSON object found in model output")
        cleaned = match.group(0)
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        raise ParseError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def extract_emotion_keywords(text: str) -> t.List[EmotionWord]:
    """Count keyword-group hits in the user's own words.

    Always returns at least one word: when nothing matches, the neutral
    default set is used.
    """
    haystack = (text or "").lower()
    words = []
    for label, keywords in EMOTION_KEYWORD_GROUPS:
        total = sum(haystack.count(k.lower()) for k in keywords)
        if total:
            words.append(EmotionWord(word=label, count=total))
    if not words:
        words = [EmotionWord(word=w, count=1) for w in DEFAULT_EMOTION_WORDS]
    return words


def _string_list(value: t.Any) -> t.List[str]:
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, str):
            out.append(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            out.append(str(item))
    return out


def _emotion_words(value: t.Any) -> t.List[EmotionWord]:
    if not isinstance(value, list):
        return []
    words = []
    for item in value:
        if not isinstance(item, dict):
            continue
        word = item.get("word")
        if not isinstance(word, str) or not word.strip():
            continue
        count = item.get("count", 1)
        try:
            count = max(0, int(count))
        except (TypeError, ValueError, OverflowError):
            count = 1
        words.append(EmotionWord(word=word, count=count))
    return words


def _string_fields(value: t.Any, keys: t.Iterable[str], fallback: dict) -> dict:
    if not isinstance(value, dict):
        return dict(fallback)
    out = {}
    for k in keys:
        v = value.get(k)
        out[k] = v if isinstance(v, str) else ""
    return out


def normalize_analysis(partial: PartialAnalysis, transcript: str) -> EmotionData:
    """Fill every field of an analysis, using fallbacks for anything missing."""
    emotion_words = _emotion_words(partial.emotionWords)
    if not emotion_words:
        emotion_words = extract_emotion_keywords(transcript)
    insights = _string_list(partial.insights) or list(FALLBACK_INSIGHTS)
    benefits = _string_list(partial.suggestedBenefits) or list(FALLBACK_BENEFITS)
    four = _string_fields(partial.fourQuestionsAnalysis, FourQuestionsAnalysis.model_fields, FALLBACK_FOUR_QUESTIONS)
    growth = _string_fields(partial.growthSummary, GrowthSummary.model_fields, FALLBACK_GROWTH_SUMMARY)
    return EmotionData(
        transcript=transcript,
        emotion_words=emotion_words,
        insights=insights,
        four_questions_analysis=FourQuestionsAnalysis(**four),
        growth_summary=GrowthSummary(**growth),
        suggested_benefits=benefits,
        # the user picks benefits later
        selected_benefits=[],
    )


def parse_analysis(raw_text: t.Any, original_input: t.Any) -> EmotionData:
    transcript = sanitize_text(original_input)
    try:
        data = decode_json_object(raw_text if isinstance(raw_text, str) else "")
        partial = PartialAnalysis.model_validate(data)
    except ParseError as e:
        logger.warning("analysis response unparseable, using keyword fallback: %s", e)
        logger.debug("raw analysis response: %r", raw_text)
        partial = PartialAnalysis()
    return normalize_analysis(partial, transcript)


def parse_report_payload(raw_text: t.Any) -> dict:
    """Decode the weekly summary fields, substituting fallbacks as needed."""
    try:
        data = decode_json_object(raw_text if isinstance(raw_text, str) else "", scan_braces=True)
    except ParseError as e:
        logger.warning("weekly report response unparseable, using fallback report: %s", e)
        logger.debug("raw weekly report response: %r", raw_text)
        return {k: (list(v) if isinstance(v, list) else v) for k, v in FALLBACK_REPORT.items()}

    # only a missing or non-array value is replaced; an empty array is kept
    insights = data.get("insights")
    insights = _string_list(insights) if isinstance(insights, list) else list(FALLBACK_REPORT_INSIGHTS)
    recommendations = data.get("recommendations")
    if isinstance(recommendations, list):
        recommendations = _string_list(recommendations)
    else:
        recommendations = list(FALLBACK_REPORT_RECOMMENDATIONS)
    personal_growth = data.get("personalGrowth")
    progress_summary = data.get("progressSummary")
    return {
        "insights": insights,
        "personalGrowth": personal_growth if isinstance(personal_growth, str) else "",
        "recommendations": recommendations,
        "progressSummary": progress_summary if isinstance(progress_summary, str) else "",
    }
