"""Map HTTP-level failures onto ``TransportError`` kinds.

The completion loop only distinguishes "the provider rejected this request
shape" from everything else, so classification has to be stable and based on
status codes, not message text.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from parley.errors import TransportError, TransportErrorKind

if TYPE_CHECKING:
    from collections.abc import Iterator

# 4xx codes that signal load or timing rather than an unacceptable request.
_TRANSIENT_CLIENT_CODES: frozenset[int] = frozenset({408, 429})


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def classify_status(status_code: int) -> TransportErrorKind:
    """Return the transport error kind for a non-2xx status."""
    if 400 <= status_code < 500 and status_code not in _TRANSIENT_CLIENT_CODES:
        return TransportErrorKind.REJECTED_REQUEST
    return TransportErrorKind.SERVER_ERROR


def _auth_hint(status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return "Check credentials (set PARLEY_API_KEY or pass Host(api_key=...))."
    return None


def status_error(status_code: int, body: str) -> TransportError:
    """Build a TransportError for an HTTP error response."""
    kind = classify_status(status_code)
    detail = body.strip()
    if len(detail) > 500:
        detail = detail[:500] + "..."
    message = f"Provider returned HTTP {status_code}"
    return TransportError(
        f"{message}: {detail}" if detail else message,
        kind=kind,
        status_code=status_code,
        hint=_auth_hint(status_code),
    )


def wrap_transport_error(exc: BaseException) -> TransportError:
    """Map an httpx (or already-wrapped) exception into a TransportError."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, TransportError):
        return exc

    status_code = extract_status_code(exc)
    if status_code is not None and status_code >= 400:
        return status_error(status_code, str(exc))

    for e in _walk_exception_chain(exc):
        if isinstance(e, httpx.TimeoutException):
            return TransportError(
                f"Provider request timed out: {e}",
                kind=TransportErrorKind.NETWORK,
                hint="Raise Host(timeout_s=...) for slow models.",
            )
        if isinstance(e, httpx.RequestError):
            return TransportError(
                f"Provider unreachable: {e}",
                kind=TransportErrorKind.NETWORK,
                hint="Check Host.base_url and that the server is running.",
            )

    return TransportError(
        f"Provider request failed: {type(exc).__name__}: {exc}",
        kind=TransportErrorKind.NETWORK,
    )
