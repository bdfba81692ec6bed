from __future__ import annotations

import pytest

from chara_stream.tools.partial_json import complete_partial_json, parse_streaming_json


def test_complete_json_is_not_repaired() -> None:
    parsed = parse_streaming_json('{"q": "x"}')
    assert parsed.ok
    assert parsed.value == {"q": "x"}
    assert parsed.repaired is False


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"q": "x"', {"q": "x"}),
        ('{"q": "x', {"q": "x"}),
        ('{"q": "x",', {"q": "x"}),
        ('{"q": "x", "pa', {"q": "x"}),
        ('{"q":', {"q": None}),
        ('{"a": [1, 2', {"a": [1, 2]}),
        ('{"path": "a\\', {"path": "a"}),
        ('{"a": {"b": "c"', {"a": {"b": "c"}}),
    ],
)
def test_truncated_objects_are_repaired(text: str, expected: dict) -> None:
    parsed = parse_streaming_json(text)
    assert parsed.ok, parsed.error
    assert parsed.repaired
    assert parsed.value == expected


def test_unparseable_text() -> None:
    assert parse_streaming_json("").error == "empty"
    assert parse_streaming_json("   ").ok is False

    parsed = parse_streaming_json("not json")
    assert parsed.ok is False
    assert parsed.error is not None and "pos=" in parsed.error


def test_complete_partial_json() -> None:
    assert complete_partial_json('{"a": 1') == '{"a": 1}'
    assert complete_partial_json('{"a": 1}') is None
    assert complete_partial_json("") is None
