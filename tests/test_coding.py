"""Coding boundary tests: the JSON codec and the Record mixin."""

from __future__ import annotations

from dataclasses import dataclass
import json

from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import BaseModel
import pytest

from parley.coding import Record, from_json, from_json_value, to_json, to_json_value
from parley.errors import CodingError, ConfigurationError, DecodingError
from parley.session import unwrap_json_fence
from parley.structured import decode_json, encode_json, schema_for, validate_structured_type

pytestmark = pytest.mark.unit


@dataclass(frozen=True)
class Person(Record):
    name: str
    age: int
    nickname: str | None = None


@dataclass(frozen=True)
class Roster(Record):
    title: str
    people: list[Person]
    ratings: list[float]


class NotADataclass(Record):
    pass


@dataclass(frozen=True)
class BadUnion(Record):
    value: int | str


people = st.builds(
    Person,
    name=st.text(max_size=20),
    age=st.integers(min_value=-(2**31), max_value=2**31),
    nickname=st.one_of(st.none(), st.text(max_size=10)),
)


@given(
    roster=st.builds(
        Roster,
        title=st.text(max_size=20),
        people=st.lists(people, max_size=4),
        ratings=st.lists(
            st.floats(allow_nan=False, allow_infinity=False), max_size=4
        ),
    )
)
@settings(max_examples=10, deadline=None, derandomize=True)
def test_json_round_trip_through_own_decode(roster: Roster) -> None:
    """Property: decoding the encoded JSON yields an equal value."""
    assert from_json(Roster, to_json(roster)) == roster


def test_absent_optional_is_omitted_on_encode() -> None:
    assert to_json_value(Person("Ada", 36)) == {"name": "Ada", "age": 36}


@pytest.mark.parametrize("payload", [{"name": "Ada", "age": 36}, {"name": "Ada", "age": 36, "nickname": None}])
def test_missing_or_null_optional_decodes_to_none(payload: dict[str, object]) -> None:
    assert from_json_value(Person, payload) == Person("Ada", 36, None)


def test_missing_required_key_reports_the_path() -> None:
    payload = {"title": "t", "people": [{"name": "a", "age": 1}, {"name": "b"}], "ratings": []}

    with pytest.raises(DecodingError) as exc:
        from_json_value(Roster, payload)

    assert exc.value.path == ("people", "1")
    assert "missing required key 'age'" in str(exc.value)
    assert "(at people.1)" in str(exc.value)


@pytest.mark.parametrize(
    ("age", "ok"),
    [(3, True), (3.0, True), (3.5, False), (True, False), ("3", False)],
)
def test_integer_fields_accept_only_integral_numbers(age: object, ok: bool) -> None:
    payload = {"name": "x", "age": age}
    if ok:
        assert from_json_value(Person, payload).age == 3
    else:
        with pytest.raises(DecodingError, match="expected integer"):
            from_json_value(Person, payload)


def test_invalid_json_text_is_a_decoding_error() -> None:
    with pytest.raises(DecodingError, match="invalid JSON"):
        from_json(Person, "{not json")


def test_record_must_be_a_dataclass() -> None:
    with pytest.raises(CodingError, match="not a dataclass"):
        from_json(NotADataclass, "{}")


def test_only_optional_unions_are_supported() -> None:
    with pytest.raises(CodingError, match="Unsupported union"):
        from_json(BadUnion, '{"value": 1}')


def test_unencodable_values_are_rejected() -> None:
    with pytest.raises(CodingError):
        to_json(object())


# =============================================================================
# Structured-type dispatch
# =============================================================================


class City(BaseModel):
    name: str
    population: int


def test_decode_json_wraps_pydantic_validation_errors() -> None:
    with pytest.raises(DecodingError) as exc:
        decode_json(City, '{"name": "Oslo"}')

    assert "City validation failed" in str(exc.value)
    assert exc.value.hint is not None


def test_decode_json_dispatches_to_codables_and_models() -> None:
    assert decode_json(Person, '{"name": "Ada", "age": 1}') == Person("Ada", 1)
    assert decode_json(City, '{"name": "Oslo", "population": 1}') == City(
        name="Oslo", population=1
    )
    assert decode_json(list[int], "[1, 2]") == [1, 2]


@dataclass(frozen=True)
class Positive(Record):
    n: int

    def __post_init__(self) -> None:
        if self.n < 0:
            raise ValueError("n must be >= 0")


def test_decode_json_wraps_errors_raised_by_the_type_itself() -> None:
    with pytest.raises(DecodingError) as exc:
        decode_json(Positive, '{"n": -1}')

    assert "n must be >= 0" in str(exc.value)
    assert isinstance(exc.value.__cause__, ValueError)


def test_decode_json_supports_lists_of_pydantic_models() -> None:
    cities = decode_json(list[City], '[{"name": "Oslo", "population": 1}]')

    assert cities == [City(name="Oslo", population=1)]
    with pytest.raises(DecodingError, match="validation failed"):
        decode_json(list[City], '[{"name": "Oslo"}]')


def test_schema_for_lists_of_pydantic_models() -> None:
    schema = schema_for(list[City])

    assert schema["type"] == "array"
    assert "City" in json.dumps(schema)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"k": [1, 2]}, '{"k": [1, 2]}'),
        ([{"a": 1}], '[{"a": 1}]'),
        ("plain", '"plain"'),
        (None, "null"),
        (Person("Ada", 1), '{"name": "Ada", "age": 1}'),
        ([Person("Ada", 1)], '[{"name": "Ada", "age": 1}]'),
    ],
)
def test_encode_json_handles_plain_data_and_records(value: object, expected: str) -> None:
    assert encode_json(value) == expected


def test_encode_json_uses_pydantic_serialization() -> None:
    assert encode_json(City(name="Oslo", population=1)) == '{"name":"Oslo","population":1}'


def test_encode_json_rejects_unserializable_output() -> None:
    with pytest.raises(CodingError, match="Cannot serialize"):
        encode_json({"when": object()})


@pytest.mark.parametrize("type_", [Person, City, int, list[Person], list[City], list[list[int]]])
def test_validate_structured_type_accepts_supported_types(type_: object) -> None:
    validate_structured_type(type_, role="test")


@pytest.mark.parametrize("type_", [dict, object, "Person", list[dict], list[object]])
def test_validate_structured_type_rejects_others(type_: object) -> None:
    with pytest.raises(ConfigurationError) as exc:
        validate_structured_type(type_, role="generating")

    assert "generating" in str(exc.value)
    assert exc.value.hint is not None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"a": 1}', '{"a": 1}'),
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```\n', '{"a": 1}'),
    ],
)
def test_unwrap_json_fence(text: str, expected: str) -> None:
    assert unwrap_json_fence(text) == expected
