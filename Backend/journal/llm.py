import logging
import typing as t

import openai
from openai import OpenAI

from . import config
from .errors import (
    JournalError,
    ServiceMisconfiguredError,
    UnknownError,
    UpstreamAuthError,
    UpstreamQuotaError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


def translate_openai_error(e: Exception) -> JournalError:
    """Map an OpenAI SDK exception onto the service's error taxonomy."""
    details = str(e)
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(e, openai.APITimeoutError):
        return UpstreamTimeoutError(details=details)
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return UpstreamAuthError(details=details)
    if isinstance(e, openai.RateLimitError):
        if getattr(e, "code", None) == "insufficient_quota" or "insufficient_quota" in details:
            return UpstreamQuotaError(details=details)
        return UpstreamUnavailableError(details=details)
    if isinstance(e, openai.NotFoundError):
        return ServiceMisconfiguredError("模型不可用，请联系管理员", details=details, code="MODEL_NOT_FOUND")
    if isinstance(e, (openai.APIConnectionError, openai.InternalServerError)):
        return UpstreamUnavailableError(details=details)
    return UnknownError(details=details)


class LLMClient:
    """Chat-completion gateway owning the timeout and retry policy."""

    def __init__(
        self,
        api_key: t.Optional[str],
        model: str,
        base_url: t.Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        client: t.Any = None,
    ):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=max_retries)

    @classmethod
    def from_config(cls) -> "LLMClient":
        return cls(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            base_url=config.OPENAI_BASE_URL,
            timeout=config.OPENAI_TIMEOUT_SECONDS,
            max_retries=config.OPENAI_MAX_RETRIES,
        )

    def complete(
        self,
        system: str,
        user: str,
        max_tokens: int,
        temperature: float = 0.7,
        model: t.Optional[str] = None,
        max_retries: t.Optional[int] = None,
    ) -> str:
        if self._client is None:
            raise ServiceMisconfiguredError("API密钥未配置")
        client = self._client if max_retries is None else self._client.with_options(max_retries=max_retries)
        model = model or self.model
        logger.info("calling %s (prompt length %d)", model, len(user))
        try:
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            err = translate_openai_error(e)
            logger.error("%s call failed (%s): %s", model, err.code, e)
            raise err from e
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            content = None
        logger.info("%s call finished", model)
        return content or ""
