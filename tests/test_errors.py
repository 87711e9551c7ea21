from __future__ import annotations

import pytest

from parley.errors import (
    CodingError,
    ConfigurationError,
    DecodingError,
    GenerationError,
    MaxIterationsExceededError,
    ParleyError,
    SchemaDecodeError,
    ToolArgumentDecodeError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
    TransportErrorKind,
    UnexpectedResponseError,
    UnsupportedRecursiveSchemaError,
)

pytestmark = pytest.mark.unit


def test_transport_error_structured_metadata() -> None:
    err = TransportError(
        "boom",
        kind=TransportErrorKind.REJECTED_REQUEST,
        hint="drop the feature",
        status_code=400,
    )

    assert str(err) == "boom"
    assert err.hint == "drop the feature"
    assert err.kind is TransportErrorKind.REJECTED_REQUEST
    assert err.status_code == 400
    assert err.is_rejected_request is True


@pytest.mark.parametrize("kind", [TransportErrorKind.NETWORK, TransportErrorKind.SERVER_ERROR])
def test_only_rejected_requests_are_flagged(kind: TransportErrorKind) -> None:
    assert TransportError("x", kind=kind).is_rejected_request is False


def test_errors_default_to_no_hint() -> None:
    err = UnexpectedResponseError("empty")

    assert err.hint is None
    assert err.finish_reason is None
    assert err.iteration is None


def test_decoding_error_names_the_path() -> None:
    assert str(DecodingError("expected string", path=("a", "0", "b"))) == (
        "expected string (at a.0.b)"
    )
    assert str(DecodingError("invalid JSON")) == "invalid JSON (at <root>)"


def test_schema_decode_error_keeps_raw_text() -> None:
    err = SchemaDecodeError("bad", raw_text="{oops")

    assert err.raw_text == "{oops"


def test_subclass_hierarchy() -> None:
    """Every failure is catchable as ParleyError, grouped by layer."""
    for cls in (ConfigurationError, TransportError, GenerationError, ToolError, CodingError):
        assert issubclass(cls, ParleyError)
    for cls in (UnexpectedResponseError, MaxIterationsExceededError, SchemaDecodeError):
        assert issubclass(cls, GenerationError)
    for cls in (ToolNotFoundError, ToolArgumentDecodeError, ToolExecutionError):
        assert issubclass(cls, ToolError)
    for cls in (DecodingError, UnsupportedRecursiveSchemaError):
        assert issubclass(cls, CodingError)


def test_tool_errors_carry_the_tool_name() -> None:
    err = ToolNotFoundError("missing", tool_name="bad_tool", hint="Registered tools: []")

    assert err.tool_name == "bad_tool"
    assert err.hint == "Registered tools: []"
