import logging
import typing as t

from . import config
from .errors import UpstreamUnavailableError
from .models import EmotionData
from .parsing import parse_analysis
from .prompts import ANALYSIS_SYSTEM_PROMPT, ANALYSIS_USER_TEMPLATE
from .validation import validate_analysis_text

logger = logging.getLogger(__name__)


def analyze_emotion(text: t.Any, llm) -> EmotionData:
    """Analyze one reflection.

    Validation, credential, quota and timeout errors propagate. When the model
    is unreachable the analysis is built from the keyword fallback instead, so
    the session can still be recorded.
    """
    sanitized = validate_analysis_text(text)
    try:
        raw = llm.complete(
            ANALYSIS_SYSTEM_PROMPT,
            ANALYSIS_USER_TEMPLATE.format(text=sanitized),
            max_tokens=config.ANALYSIS_MAX_TOKENS,
            temperature=0.7,
        )
    except UpstreamUnavailableError as e:
        logger.warning("model unavailable, falling back to keyword analysis: %s", e.details)
        raw = ""
    return parse_analysis(raw, sanitized)
