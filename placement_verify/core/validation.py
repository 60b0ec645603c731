"""
Validation & normalization primitives.

Both services push untrusted input through these helpers. Each helper is
bound to an error family by the caller (``error_cls``) and fails with
status 400 and the ``invalid_<field>`` code it was given, so the code
that reaches the client is always field-specific.
"""

import math
from typing import Any, Iterable, List, NoReturn, Optional, Pattern, Type
from urllib.parse import urlparse

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from placement_verify.core.errors import DomainError


def fail(error_cls: Type[DomainError], code: str, message: str) -> NoReturn:
    raise error_cls(400, code, message)


def as_text(value: Any) -> str:
    """Coerce to a trimmed string; None becomes the empty string."""
    if value is None:
        return ""
    return str(value).strip()


def is_blank(value: Any) -> bool:
    return as_text(value) == ""


def bounded_text(
    value: Any,
    *,
    error_cls: Type[DomainError],
    code: str,
    label: str,
    min_length: int = 1,
    max_length: Optional[int] = None,
) -> str:
    """
    Trim and enforce length bounds.

    A min_length of 1 reads as "required"; anything larger is reported as
    a between-bounds violation and needs a max_length.
    """
    normalized = as_text(value)
    if min_length <= 1:
        if not normalized:
            fail(error_cls, code, f"{label} is required")
        if max_length is not None and len(normalized) > max_length:
            fail(error_cls, code, f"{label} must be <= {max_length} characters")
    elif not min_length <= len(normalized) <= max_length:
        fail(error_cls, code, f"{label} must be between {min_length} and {max_length} characters")
    return normalized


def optional_text(
    value: Any,
    *,
    error_cls: Type[DomainError],
    code: str,
    label: str,
    max_length: int,
    default: Optional[str] = None,
) -> Optional[str]:
    """Blank input collapses to ``default``; otherwise trim and cap length."""
    normalized = as_text(value)
    if not normalized:
        return default
    if len(normalized) > max_length:
        fail(error_cls, code, f"{label} must be <= {max_length} characters")
    return normalized


def one_of(
    value: Any,
    allowed: Iterable[str],
    *,
    error_cls: Type[DomainError],
    code: str,
    label: str,
) -> str:
    """Case-insensitive enum membership; returns the upper-cased member."""
    allowed = tuple(allowed)
    normalized = as_text(value).upper()
    if normalized not in allowed:
        fail(error_cls, code, f"{label} must be one of {', '.join(allowed)}")
    return normalized


def matching(
    value: Any,
    pattern: Pattern,
    *,
    error_cls: Type[DomainError],
    code: str,
    message: str,
    upper: bool = False,
) -> str:
    normalized = as_text(value)
    if upper:
        normalized = normalized.upper()
    if not pattern.fullmatch(normalized):
        fail(error_cls, code, message)
    return normalized


def is_unsafe_path(value: str) -> bool:
    """Absolute paths and parent-directory segments are never accepted."""
    return value.startswith("/") or ".." in value


def safe_object_key(
    value: Any,
    *,
    error_cls: Type[DomainError],
    code: str,
    max_length: int,
) -> str:
    normalized = as_text(value)
    if not normalized:
        fail(error_cls, code, "supporting object key must be non-empty string")
    if len(normalized) > max_length:
        fail(error_cls, code, f"supporting object key must be <= {max_length} characters")
    if is_unsafe_path(normalized):
        fail(error_cls, code, "supporting object key is invalid")
    return normalized


def bounded_list(
    values: Any,
    *,
    error_cls: Type[DomainError],
    code: str,
    label: str,
    max_items: int,
) -> List[Any]:
    """None means empty; anything that is not a list/tuple is rejected."""
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        fail(error_cls, code, f"{label} must be an array")
    if len(values) > max_items:
        fail(error_cls, code, f"{label} must contain <= {max_items} items")
    return list(values)


def bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int,
    maximum: Optional[int] = None,
    error_cls: Type[DomainError],
    code: str,
    message: str,
) -> int:
    """
    Parse an integer query-style value; blank falls back to ``default``.

    Integral numeric text such as "2.0" or "1e1" is accepted.
    """
    if is_blank(value):
        return default
    if isinstance(value, bool):
        fail(error_cls, code, message)
    if isinstance(value, int):
        normalized = value
    else:
        try:
            number = float(as_text(value))
        except ValueError:
            fail(error_cls, code, message)
        if not math.isfinite(number) or not number.is_integer():
            fail(error_cls, code, message)
        normalized = int(number)
    if normalized < minimum or (maximum is not None and normalized > maximum):
        fail(error_cls, code, message)
    return normalized


_HTTP_URL = TypeAdapter(AnyHttpUrl)


def http_url(
    value: Any,
    *,
    error_cls: Type[DomainError],
    code: str,
    max_length: int,
) -> str:
    """
    Absolute http(s) URL with a host, trimmed and length-capped.

    The URL must parse as ``AnyHttpUrl`` and name its host explicitly
    (``http:///path`` is rejected). The trimmed input is returned as sent.
    """
    normalized = as_text(value)
    if not normalized or len(normalized) > max_length:
        fail(error_cls, code, f"avatarUrl must be a valid http(s) URL <= {max_length} characters")
    try:
        _HTTP_URL.validate_python(normalized)
        hostname = urlparse(normalized).hostname
    except (ValidationError, ValueError):
        hostname = None
    if not hostname:
        fail(error_cls, code, "avatarUrl must be an absolute http(s) URL")
    return normalized
