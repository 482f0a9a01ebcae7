import re
import typing as t

import jwt
from fastapi import Request

from . import config
from .errors import ValidationError

MAX_TEXT_LENGTH = 5000

_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_HTML_TAG = re.compile(r"<[^>]*>")


def sanitize_text(text: t.Any) -> str:
    """Clean user text before it is placed into a model prompt.

    Never raises; anything that is not a string sanitizes to "".
    """
    if not isinstance(text, str):
        return ""
    cleaned = text.strip()
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    cleaned = _SCRIPT_BLOCK.sub("", cleaned)
    cleaned = _HTML_TAG.sub("", cleaned)
    return cleaned[:MAX_TEXT_LENGTH]


def validate_analysis_text(text: t.Any) -> str:
    """Check the analysis request text and return its sanitized form."""
    if text is None or not isinstance(text, str):
        raise ValidationError("请提供有效的文本内容")
    txt = text.strip()
    if not txt:
        raise ValidationError("文本内容不能为空")
    if len(txt) > MAX_TEXT_LENGTH:
        raise ValidationError(f"文本内容不能超过{MAX_TEXT_LENGTH}字符")
    sanitized = sanitize_text(txt).strip()
    if not sanitized:
        # e.g. the whole input was markup or control characters
        raise ValidationError("文本内容清理后为空")
    return sanitized


def _token_subject(request: Request) -> t.Optional[str]:
    auth_hdr = request.headers.get("authorization") or ""
    if not auth_hdr.lower().startswith("bearer "):
        return None
    token = auth_hdr[7:].strip()
    if not token:
        return None
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.InvalidTokenError:
        return None
    return payload.get("sub")


def client_identifier(request: Request) -> str:
    """Rate-limit key: token subject first, then the forwarded client IP."""
    sub = _token_subject(request)
    if sub:
        return f"user:{sub}"
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return f"ip:{first}"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return f"ip:{real_ip.strip()}"
    client = request.client
    if client and client.host:
        return f"ip:{client.host}"
    return "ip:unknown"
