"""Exception hierarchy for Parley."""

from __future__ import annotations

from enum import Enum


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ParleyError):
    """Host, option, or tool registration validation failed."""


class TransportErrorKind(str, Enum):
    """Coarse classification of a failed provider round-trip."""

    REJECTED_REQUEST = "rejected_request"
    NETWORK = "network"
    SERVER_ERROR = "server_error"


class TransportError(ParleyError):
    """The provider round-trip failed.

    Only ``REJECTED_REQUEST`` is treated as recoverable by the completion loop,
    and only once per feature it can disable.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: TransportErrorKind,
        hint: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.kind = kind
        self.status_code = status_code

    @property
    def is_rejected_request(self) -> bool:
        return self.kind is TransportErrorKind.REJECTED_REQUEST


class GenerationError(ParleyError):
    """A completion could not produce a usable answer."""


class UnexpectedResponseError(GenerationError):
    """The provider returned neither usable content nor a tool call."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        finish_reason: str | None = None,
        iteration: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.finish_reason = finish_reason
        self.iteration = iteration


class MaxIterationsExceededError(GenerationError):
    """The completion loop hit its iteration ceiling."""


class SchemaDecodeError(GenerationError):
    """A structured response did not decode into the requested type.

    The raw response text is kept on ``raw_text`` for diagnosis.
    """

    def __init__(
        self, message: str, *, raw_text: str, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.raw_text = raw_text


class ToolError(ParleyError):
    """Base class for tool invocation failures."""

    def __init__(
        self, message: str, *, tool_name: str, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """The provider asked for a tool that is not registered (fatal)."""


class ToolArgumentDecodeError(ToolError):
    """Tool arguments did not decode into the tool's argument type."""


class ToolExecutionError(ToolError):
    """The tool raised while running."""


class CodingError(ParleyError):
    """Encoding, decoding, or schema inference failed."""


class DecodingError(CodingError):
    """A value did not match the shape its type expects."""

    def __init__(
        self, message: str, *, path: tuple[str, ...] = (), hint: str | None = None
    ) -> None:
        location = ".".join(path) or "<root>"
        super().__init__(f"{message} (at {location})", hint=hint)
        self.path = path


class UnsupportedRecursiveSchemaError(CodingError):
    """Schema inference hit a self-referential type."""
