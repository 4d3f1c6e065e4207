"""
Failure types raised by the generative call client and the pure decision
function that sorts a provider exception into one of four kinds.

Provider SDKs (openai, anthropic, httpx underneath LangChain) do not agree on
where a status code lives, so the classifier looks in several places and
falls back to substring matching on the exception's type name, message and
arguments.
"""
import asyncio
import errno
import traceback
from enum import Enum
from typing import Any, Iterator, List, Optional

from audit_reports.config import settings


class ErrorKind(str, Enum):
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    UNAVAILABLE = "UNAVAILABLE"
    OTHER = "OTHER"


class GenerationError(Exception):
    """Base class for failures surfaced by the generative call client."""

    # Status used when the failure reaches an HTTP caller
    http_status = 502

    def __init__(self, message: str, *, model_name: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.model_name = model_name
        self.code = code


class GenerationInterruptedError(GenerationError):
    http_status = 504


class ServiceOverloadedError(GenerationError):
    http_status = 429


class ServiceUnavailableError(GenerationError):
    http_status = 503


class GenerationFailedError(GenerationError):
    pass


RATE_LIMIT_CODES = {"429", "RESOURCE_EXHAUSTED"}
RATE_LIMIT_MARKERS = ("429", "too many requests", "resource_exhausted", "overloaded")
TIMEOUT_MARKERS = ("timed out", "timeout", "aborted")

_STATUS_ATTRS = ("status_code", "status", "code", "http_status")
_MAX_CHAIN = 5


def _chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen and len(seen) < _MAX_CHAIN:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _attr(obj: Any, name: str) -> Any:
    # httpx raises RuntimeError from .request when none was attached
    try:
        return getattr(obj, name, None)
    except Exception:
        return None


def _codes_from_mapping(data: Any) -> List[Any]:
    if not isinstance(data, dict):
        return []
    found = [data.get("code"), data.get("status"), data.get("type")]
    nested = data.get("error")
    if isinstance(nested, dict):
        found.extend([nested.get("code"), nested.get("status"), nested.get("type")])
    return [code for code in found if code is not None]


def error_codes(exc: BaseException) -> List[str]:
    """All status / error codes found on the exception and its causes."""
    found: List[Any] = []
    for item in _chain(exc):
        for attr in _STATUS_ATTRS:
            value = _attr(item, attr)
            if value is not None and not callable(value):
                found.append(value)

        response = _attr(item, "response")
        if response is not None:
            status_code = getattr(response, "status_code", None)
            if status_code is not None:
                found.append(status_code)

        error = _attr(item, "error")
        if isinstance(error, dict):
            found.extend(_codes_from_mapping(error))
        elif error is not None:
            code = getattr(error, "code", None)
            if code is not None:
                found.append(code)

        found.extend(_codes_from_mapping(_attr(item, "body")))

        err_no = getattr(item, "errno", None)
        if isinstance(err_no, int) and err_no in errno.errorcode:
            found.append(errno.errorcode[err_no])

    codes: List[str] = []
    for code in found:
        text = str(code)
        if text and text not in codes:
            codes.append(text)
    return codes


def _haystack(exc: BaseException) -> str:
    parts: List[str] = []
    for item in _chain(exc):
        parts.append(str(item))
        parts.append(type(item).__name__)
        parts.append("".join(traceback.format_exception_only(type(item), item)))
        parts.append(repr(item.args))
        request = _attr(item, "request")
        url = _attr(request, "url") if request is not None else None
        if url is not None:
            parts.append(str(url))
    return "\n".join(parts)


def _is_timeout(exc: BaseException) -> bool:
    for item in _chain(exc):
        if isinstance(item, (asyncio.TimeoutError, TimeoutError)):
            return True
        if "timeout" in type(item).__name__.lower():
            return True
        message = str(item).lower()
        if any(marker in message for marker in TIMEOUT_MARKERS):
            return True
    return False


def classify_error(
    exc: BaseException,
    *,
    unavailable_code: Optional[str] = None,
    unavailable_host: Optional[str] = None,
) -> ErrorKind:
    """Sort a provider exception into TIMEOUT, RATE_LIMITED, UNAVAILABLE or OTHER."""
    if _is_timeout(exc):
        return ErrorKind.TIMEOUT

    codes = error_codes(exc)
    haystack = _haystack(exc)
    lowered = haystack.lower()

    if any(code in RATE_LIMIT_CODES for code in codes):
        return ErrorKind.RATE_LIMITED
    if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED

    code = unavailable_code or settings.LLM_UNAVAILABLE_ERROR_CODE
    host = unavailable_host or settings.LLM_UNAVAILABLE_HOST
    if (code in codes or code in haystack) and host in haystack:
        return ErrorKind.UNAVAILABLE

    return ErrorKind.OTHER


def provider_error_code(exc: BaseException) -> Optional[str]:
    codes = error_codes(exc)
    return codes[0] if codes else None
