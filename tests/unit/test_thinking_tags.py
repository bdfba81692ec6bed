from __future__ import annotations

import pytest

from chara_stream.text.thinking_tags import (
    THINKING_TAG_RE,
    Channel,
    Emission,
    ThinkingState,
    ThinkingTagFilter,
    clean_thinking_tags,
    contains_thinking_tags,
    extract_thinking_content,
    scan_thinking_tags,
    split_partial_marker,
)


def _run(deltas: list[str]) -> tuple[str, str]:
    f = ThinkingTagFilter()
    emissions: list[Emission] = []
    for d in deltas:
        emissions.extend(f.feed(d))
    emissions.extend(f.flush())

    visible = "".join(e.text for e in emissions if e.channel is Channel.VISIBLE)
    thinking = "".join(e.text for e in emissions if e.channel is Channel.THINKING)
    return visible, thinking


def test_single_delta_routes_channels() -> None:
    state, emissions = scan_thinking_tags(ThinkingState(), "Hi <think>secret</think>there")

    assert emissions == [
        Emission(Channel.VISIBLE, "Hi "),
        Emission(Channel.THINKING, "secret"),
        Emission(Channel.VISIBLE, "there"),
    ]
    assert state == ThinkingState(is_thinking=False, carry="")


def test_marker_split_across_deltas_is_carried() -> None:
    f = ThinkingTagFilter()

    assert f.feed("Hi <thi") == [Emission(Channel.VISIBLE, "Hi ")]
    assert f.carry == "<thi"
    assert f.feed("nk>deep</th") == [Emission(Channel.THINKING, "deep")]
    assert f.is_thinking
    assert f.feed("ink>after") == [Emission(Channel.VISIBLE, "after")]
    assert not f.is_thinking


@pytest.mark.parametrize("text", ["Hi <think>secret</think>there", "a <THINKING kind='x'>b</Thinking> c"])
def test_result_does_not_depend_on_split_point(text: str) -> None:
    expected = _run([text])

    for i in range(len(text) + 1):
        assert _run([text[:i], text[i:]]) == expected, i


def test_malformed_markers() -> None:
    assert _run(["a <THINKING kind='x'>b</Thinking> c"]) == ("a  c", "b")
    # Closing marker without ">" at the very end of the stream.
    assert _run(["x<think>y</think"]) == ("x", "y")
    assert _run(["<think >y</think >z"]) == ("z", "y")


def test_non_marker_angle_brackets_stay_visible() -> None:
    assert _run(["1 < 2 and <b>bold</b>"]) == ("1 < 2 and <b>bold</b>", "")
    # A held-back "<" that never became a marker is released on flush.
    assert _run(["ends with <"]) == ("ends with <", "")
    assert _run(["ends with <thi"]) == ("ends with <thi", "")


def test_unclosed_thinking_block() -> None:
    f = ThinkingTagFilter()
    f.feed("<think>still going")

    assert f.is_thinking
    assert f.flush() == []


def test_disabled_filter_passes_text_through() -> None:
    f = ThinkingTagFilter(enabled=False)

    assert f.feed("<think>x</think>") == [Emission(Channel.VISIBLE, "<think>x</think>")]
    assert f.feed("") == []
    assert f.flush() == []


def test_split_partial_marker() -> None:
    assert split_partial_marker("abc") == ("abc", "")
    assert split_partial_marker("abc </thin") == ("abc ", "</thin")
    assert split_partial_marker("abc <thinking a=1") == ("abc ", "<thinking a=1")
    assert split_partial_marker("a <b") == ("a <b", "")


def test_text_helpers() -> None:
    assert clean_thinking_tags("Some text <thinking>hidden</thinking> visible </think>") == "Some text hidden visible"
    assert clean_thinking_tags("") == ""
    assert contains_thinking_tags("x <Think>")
    assert not contains_thinking_tags("plain")
    assert extract_thinking_content("<think> a </think> b <thinking>c</thinking>") == ["a", "c"]


def test_bracketless_closing_marker_releases_following_text() -> None:
    f = ThinkingTagFilter()
    emitted = [f.feed(d) for d in ["<think>plan</think", "\n\nThe answer", " is 42."]]

    assert emitted == [
        [Emission(Channel.THINKING, "plan")],
        [Emission(Channel.VISIBLE, "\n\nThe answer")],
        [Emission(Channel.VISIBLE, " is 42.")],
    ]
    assert f.carry == ""
    assert not f.is_thinking
    assert f.flush() == []


def test_marker_attributes_do_not_span_lines_or_markers() -> None:
    assert split_partial_marker("x </think\nanswer") == ("x </think\nanswer", "")
    assert split_partial_marker("<think a <thi") == ("<think a ", "<thi")
    assert _run(["</think the rest"]) == (" the rest", "")
    assert _run(["<thinking\nnote=1>x"]) == ("", "\nnote=1>x")


def test_carry_is_bounded() -> None:
    f = ThinkingTagFilter()
    f.feed("<think " + "a" * 64)
    assert f.carry == "<think " + "a" * 64

    f.feed("a")
    assert f.carry == ""
    assert f.is_thinking


ROUND_TRIP_INPUTS = [
    "Hi <think>secret</think>there",
    "a <THINKING kind='x'>b</Thinking> c",
    "<think>plan</think\n\nThe answer is 42.",
    "x <think >y</thinking > z",
    "1 < 2 and <b>bold</b> <thi",
    "plain text only",
    "<think>never closed",
]


@pytest.mark.parametrize("text", ROUND_TRIP_INPUTS)
def test_channels_round_trip_to_input_without_markers(text: str) -> None:
    stripped = THINKING_TAG_RE.sub("", text)

    for i in range(len(text) + 1):
        f = ThinkingTagFilter()
        emissions = f.feed(text[:i]) + f.feed(text[i:]) + f.flush()
        assert "".join(e.text for e in emissions) == stripped, i
