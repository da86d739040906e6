"""Low-assurance visitor identifier.

There is no authentication in this service. A visitor is told apart from
another only by a fingerprint of ambient request signals (user agent,
language, screen dimensions). Two visitors with identical signals get the
same identifier and are treated as the same signer. The token is not a
secret and must never be used for anything beyond duplicate-signature
detection.
"""

from __future__ import annotations

from fastapi import Request

from app.core.config import settings

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - 0x100000000 if value & _INT32_SIGN else value


def rolling_hash(text: str) -> int:
    """Fold ``text`` into a signed 32-bit integer with ``h = h * 31 + unit``.

    Iterates UTF-16 code units, so characters outside the BMP contribute
    their two surrogates, and wraps to the signed 32-bit range on every step.
    Lone surrogates are hashed as the single code unit they are.
    """

    data = text.encode("utf-16-le", "surrogatepass")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = _to_int32(value * 31 + unit)
    return value


def simple_identifier(
    user_agent: str,
    language: str,
    width: int,
    height: int,
    *,
    prefix: str | None = None,
) -> str:
    """Return the visitor token, e.g. ``anon_5e918d2``."""

    fingerprint = f"{user_agent}{language}{width}{height}"
    tag = settings.IDENTIFIER_PREFIX if prefix is None else prefix
    return f"{tag}{abs(rolling_hash(fingerprint)):x}"


def _primary_language(accept_language: str | None) -> str:
    if not accept_language:
        return ""
    first = accept_language.split(",", 1)[0]
    return first.split(";", 1)[0].strip()


def identifier_from_request(
    request: Request,
    *,
    language: str | None = None,
    width: int = 0,
    height: int = 0,
) -> str:
    """Derive the visitor token from request headers plus client-reported screen size."""

    user_agent = request.headers.get("User-Agent", "")
    if language is None:
        language = _primary_language(request.headers.get("Accept-Language"))
    return simple_identifier(user_agent, language, width, height)
