"""Error taxonomy shared by the HTTP layer and the services.

Every error the API can return derives from :class:`JournalError`, which
carries the HTTP status and a machine-readable code. ``ParseError`` and
``StorageError`` never reach a client: the parser and the tracker recover
from them with fallback content.
"""
import typing as t


class JournalError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "服务器内部错误"

    def __init__(self, message: t.Optional[str] = None, details: t.Any = None, code: t.Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details
        if code:
            self.code = code

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(JournalError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "输入数据格式错误"


class RateLimitError(JournalError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "请求过于频繁，请稍后再试"


class UpstreamTimeoutError(JournalError):
    status_code = 504
    code = "TIMEOUT"
    message = "网络连接超时，请检查网络或稍后重试"


class UpstreamAuthError(JournalError):
    status_code = 401
    code = "INVALID_API_KEY"
    message = "API密钥无效，请检查配置"


class UpstreamQuotaError(JournalError):
    status_code = 402
    code = "INSUFFICIENT_QUOTA"
    message = "API配额不足，请充值后重试"


class ServiceMisconfiguredError(JournalError):
    status_code = 503
    code = "SERVICE_MISCONFIGURED"
    message = "AI服务未正确配置"


class UpstreamUnavailableError(JournalError):
    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"
    message = "AI服务暂时不可用"


class ReportSynthesisError(JournalError):
    status_code = 500
    code = "REPORT_FAILED"
    message = "生成情绪周报失败"


class UnknownError(JournalError):
    status_code = 500
    code = "UNKNOWN_ERROR"
    message = "分析过程中出现错误，请稍后重试"


class ParseError(JournalError):
    code = "PARSE_ERROR"
    message = "AI响应解析失败"


class StorageError(JournalError):
    code = "STORAGE_ERROR"
    message = "存储不可用"
