# -*- coding: utf-8 -*-
import pytest

from utils.text_helpers import byte_length, compose_display, filter_candidates, format_list, trim

ELLIPSIS = "…"


# --- trim ---
@pytest.mark.parametrize("text,width", [
    ("hello world", 8),
    ("héllo wörld ünïcödé", 10),
    ("日本語のタイトル", 10),
    ("🎵🎶🎵🎶", 9),
    ("plain ascii that is long", 24),
])
def test_trim_never_exceeds_width(text, width):
    result = trim(text, width)
    assert byte_length(result) <= width
    result.encode('utf-8').decode('utf-8')


def test_trim_returns_fitting_text_unchanged():
    assert trim("hello", 10) == "hello"
    assert trim("hello", 5) == "hello"


def test_trim_cuts_and_marks():
    assert trim("hello world", 8) == "hello" + ELLIPSIS


def test_trim_does_not_split_multibyte_characters():
    # Each é is two bytes, so a 5 byte cut must back off to 4
    assert trim("ééééé", 8) == "éé" + ELLIPSIS


def test_trim_tiny_widths_give_ellipsis_only():
    assert trim("hello", 3) == ELLIPSIS
    assert trim("hello", 0) == ELLIPSIS
    assert trim("", -1) == ELLIPSIS


def test_trim_none_is_empty():
    assert trim(None, 10) == ""


# --- compose_display ---
def test_compose_display_keeps_fitting_fields():
    assert compose_display(["Song", "Artist", "Origin", "No tags"]) == "Song | Artist | Origin | No tags"


def test_compose_display_cuts_longest_field_first():
    fields = ["a" * 60, "b" * 30, "c" * 20, "d" * 10]
    label = compose_display(fields)
    assert byte_length(label) <= 100
    assert label == " | ".join(["a" * 28 + ELLIPSIS, "b" * 30, "c" * 20, "d" * 10])


def test_compose_display_first_field_wins_ties():
    label = compose_display(["x" * 60, "y" * 60])
    first, second = label.split(" | ")
    assert first.endswith(ELLIPSIS)
    assert second == "y" * 60
    assert byte_length(label) <= 100


def test_compose_display_shortens_several_fields_when_needed():
    label = compose_display(["a" * 80, "b" * 80, "c" * 80])
    assert byte_length(label) <= 100
    assert label.count(ELLIPSIS) >= 2


def test_compose_display_multibyte_fields_stay_valid():
    label = compose_display(["日本語" * 20, "アーティスト" * 5, "origin", "tag"])
    assert byte_length(label) <= 100
    assert label.split(" | ")[2:] == ["origin", "tag"]


def test_compose_display_empty():
    assert compose_display([]) == ""


# --- filter_candidates ---
def test_filter_candidates_case_insensitive_dedupe_and_sort():
    candidates = ["Zelda Theme", "Mario", "zelda remix", "Zelda Theme"]
    assert filter_candidates("zel", candidates) == ["Zelda Theme", "zelda remix"]


def test_filter_candidates_empty_needle_accepts_everything():
    assert filter_candidates("", ["b", "a", "c"]) == ["a", "b", "c"]
    assert filter_candidates(None, ["b", "a"]) == ["a", "b"]


def test_filter_candidates_stops_at_max_choices():
    candidates = [f"item {n:02d}" for n in range(40)]
    chosen = filter_candidates("item", candidates)
    assert len(chosen) == 25
    # Collection stops at the cap, sorting happens afterwards
    assert chosen == [f"item {n:02d}" for n in range(25)]


def test_filter_candidates_zero_max():
    assert filter_candidates("", ["a"], max_choices=0) == []


def test_filter_candidates_custom_key_and_match():
    records = [("id1", "Alpha", "hidden words"), ("id2", "Beta", "nothing"), ("id1", "Alpha again", "hidden")]
    chosen = filter_candidates(
        "hidden",
        records,
        key=lambda r: r[0],
        display=lambda r: r[1],
        match=lambda r: r[2],
    )
    assert chosen == [records[0]]


def test_format_list():
    assert format_list(["rock", "", "jazz"]) == "rock, jazz"
    assert format_list([], empty="No tags") == "No tags"
