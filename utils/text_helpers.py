# -*- coding: utf-8 -*-
from typing import Any, Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar

import config

T = TypeVar('T')

_UTF8_CONTINUATION_MASK = 0xC0
_UTF8_CONTINUATION_BITS = 0x80


def byte_length(text: str) -> int:
    """Length of a string as Discord counts it (UTF-8 bytes)."""
    return len(text.encode('utf-8'))


def _cut_to_boundary(encoded: bytes, cutoff: int) -> str:
    """
    Returns the longest prefix of `encoded` that is at most `cutoff` bytes and
    does not end inside a multi-byte character.
    """
    cutoff = max(0, min(cutoff, len(encoded)))
    # A continuation byte at the cutoff means the previous character would be split
    while 0 < cutoff < len(encoded) and (encoded[cutoff] & _UTF8_CONTINUATION_MASK) == _UTF8_CONTINUATION_BITS:
        cutoff -= 1
    return encoded[:cutoff].decode('utf-8')


def trim(text: Optional[str], max_width: int, ellipsis: str = config.ELLIPSIS) -> str:
    """
    Shortens `text` to at most `max_width` UTF-8 bytes, marking the cut with an ellipsis.
    Widths too small to show any content return the ellipsis alone.
    """
    ellipsis_len = byte_length(ellipsis)
    if max_width <= ellipsis_len:
        return ellipsis
    text = text or ""
    encoded = text.encode('utf-8')
    if len(encoded) <= max_width:
        return text
    return _cut_to_boundary(encoded, max_width - ellipsis_len) + ellipsis


def compose_display(
    fields: Sequence[Optional[str]],
    max_length: int = config.AUTOCOMPLETE_MAX_LENGTH,
    separator: str = config.AUTOCOMPLETE_SEPARATOR,
    ellipsis: str = config.ELLIPSIS
) -> str:
    """
    Joins several fields into one label no longer than `max_length` bytes.

    While the fields don't fit, the currently longest field (first one on ties)
    is cut by the remaining excess and marked with an ellipsis. Cutting the
    biggest offender each round spreads the loss across fields instead of
    blanking a single one. Fields that are already no longer than the ellipsis
    are never cut further, so a budget too small for every field to keep a
    marker returns the best effort.
    """
    if not fields:
        return ""
    ellipsis_len = byte_length(ellipsis)
    budget = max_length - byte_length(separator) * (len(fields) - 1)

    encoded = [(field or "").encode('utf-8') for field in fields]
    lengths = [len(e) for e in encoded]
    excess = sum(lengths) - budget

    while excess > 0:
        longest = max(range(len(lengths)), key=lengths.__getitem__)
        longest_len = lengths[longest]
        if longest_len <= ellipsis_len:
            break # Nothing left to shorten

        chop = min(excess, longest_len)
        remaining = longest_len - chop
        keep = remaining - ellipsis_len if remaining > ellipsis_len else 0

        shortened = _cut_to_boundary(encoded[longest], keep) + ellipsis
        encoded[longest] = shortened.encode('utf-8')
        lengths[longest] = len(encoded[longest])
        excess = sum(lengths) - budget

    return separator.join(e.decode('utf-8') for e in encoded)


def filter_candidates(
    needle: Optional[str],
    candidates: Iterable[T],
    max_choices: int = config.AUTOCOMPLETE_MAX_CHOICES,
    key: Optional[Callable[[T], Hashable]] = None,
    display: Optional[Callable[[T], str]] = None,
    match: Optional[Callable[[T], str]] = None
) -> List[T]:
    """
    Case-insensitive substring filter used by every autocomplete.

    `display` gives the label a candidate is shown (and sorted) by, `match` the
    text the needle is searched in (defaults to the label) and `key` the value
    duplicates are detected on (defaults to the label). An empty needle accepts
    everything. At most `max_choices` candidates are collected, then returned
    sorted by label.
    """
    display = display or str
    match = match or display
    key = key or display
    needle_lower = (needle or "").lower()

    seen = set()
    chosen: List[T] = []
    if max_choices <= 0:
        return chosen
    for candidate in candidates:
        if needle_lower and needle_lower not in match(candidate).lower():
            continue
        candidate_key = key(candidate)
        if candidate_key in seen:
            continue
        seen.add(candidate_key)
        chosen.append(candidate)
        if len(chosen) >= max_choices:
            break

    chosen.sort(key=display)
    return chosen


def format_list(values: Iterable[Any], empty: str = "") -> str:
    """Comma-joins the non-empty values, or returns `empty` if there are none."""
    items = [str(v) for v in values if v]
    return ", ".join(items) if items else empty
