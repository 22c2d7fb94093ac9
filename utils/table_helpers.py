# -*- coding: utf-8 -*-
"""
Fixed-width text tables for the library listings.

Discord renders code blocks in a monospace font, so every listing is laid out
as a table of exactly `LIBRARY_ROW_MAX_WIDTH` columns: a right-aligned row
number followed by weighted content columns, split into pages of
`MAX_RESULTS_PER_PAGE` rows.
"""
from typing import Iterable, Iterator, List, Optional, Sequence

import config
from utils.text_helpers import byte_length, trim


def allocate_column_widths(
    weights: Sequence[float],
    total_width: int = config.LIBRARY_ROW_MAX_WIDTH,
    rownum_width: int = config.ROWNUM_WIDTH,
    separator_len: int = byte_length(config.LIBRARY_SEPARATOR),
    min_width: int = config.MIN_COLUMN_WIDTH
) -> List[int]:
    """
    Splits `total_width` between a row-number column and one column per weight.

    Returns the row-number width first (omitted when `rownum_width` is 0),
    then the weighted widths. Each weighted column gets its floored share of
    the usable width but never less than `min_width`. Whatever flooring lost
    is handed back one unit at a time, round-robin from the first weighted
    column, so that widths plus separators always add up to `total_width`.
    If the floors overshoot the total, the excess is taken back the same way
    from columns still above the floor.
    """
    prefix = [rownum_width] if rownum_width > 0 else []
    if not weights:
        return prefix

    column_count = len(weights) + len(prefix)
    separators = separator_len * (column_count - 1)
    usable = total_width - separators - sum(prefix)

    total_weight = sum(weights)
    if total_weight <= 0:
        weights = [1.0] * len(weights)
        total_weight = float(len(weights))

    widths = [max(min_width, int(weight * usable // total_weight)) for weight in weights]

    leftover = total_width - (sum(widths) + separators + sum(prefix))
    index = 0
    while leftover > 0:
        widths[index % len(widths)] += 1
        leftover -= 1
        index += 1

    index = 0
    while leftover < 0 and any(w > min_width for w in widths):
        column = index % len(widths)
        if widths[column] > min_width:
            widths[column] -= 1
            leftover += 1
        index += 1

    return prefix + widths


def format_row(
    fields: Sequence[str],
    widths: Sequence[int],
    numbered: bool = True,
    separator: str = config.LIBRARY_SEPARATOR
) -> str:
    """Trims and pads each field to its column. The row-number column is right-aligned."""
    cells = []
    for column, (field, width) in enumerate(zip(fields, widths)):
        cell = trim(field, width)
        if numbered and column == 0:
            cells.append(cell.rjust(width))
        else:
            cells.append(cell.ljust(width))
    return separator.join(cells)


def render_header(headers: Sequence[str], widths: Sequence[int], numbered: bool = True) -> str:
    return format_row(headers, widths, numbered=numbered)


def render_rows(
    rows: Iterable[Sequence[str]],
    widths: Sequence[int],
    page_size: int = config.MAX_RESULTS_PER_PAGE,
    suppress_duplicates: bool = True,
    numbered: bool = True,
    marker: str = config.DUPLICATE_MARKER
) -> List[str]:
    """
    Formats every row. With `suppress_duplicates`, a value equal to the one
    directly above it in the same column is replaced by `marker`. The first
    row of each page is always shown in full and empty values are never
    replaced. The row-number column is left alone.
    """
    page_size = max(page_size, 1)
    first_content_column = 1 if numbered else 0
    lines = []
    previous: Optional[Sequence[str]] = None

    for index, row in enumerate(rows):
        if index % page_size == 0:
            previous = None # New page
        shown = list(row)
        if suppress_duplicates and previous is not None:
            for column in range(first_content_column, min(len(row), len(previous))):
                if row[column] and row[column] == previous[column]:
                    shown[column] = marker
        lines.append(format_row(shown, widths, numbered=numbered))
        previous = row

    return lines


def number_rows(rows: Iterable[Sequence[str]], start: int = 1) -> List[List[str]]:
    """Prefixes each row with its 1-based position in the full result."""
    return [[str(position), *row] for position, row in enumerate(rows, start=start)]


def chunk_lines(lines: Iterable[str], page_size: int = config.MAX_RESULTS_PER_PAGE) -> Iterator[List[str]]:
    page_size = max(page_size, 1)
    chunk: List[str] = []
    for line in lines:
        chunk.append(line)
        if len(chunk) == page_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def _wrap_page(header: str, separator_line: str, body: Sequence[str]) -> str:
    content = "\n".join([header, separator_line, *body])
    return f"```text\n{content}\n```"


def paginate(
    lines: Iterable[str],
    header: str,
    page_size: int = config.MAX_RESULTS_PER_PAGE,
    row_width: int = config.LIBRARY_ROW_MAX_WIDTH
) -> Iterator[str]:
    """
    Yields code-block pages of at most `page_size` lines, each starting with
    the header and a separator rule. No lines still yield one (empty) page.
    """
    separator_line = config.ROW_SEPARATOR * row_width
    produced = False
    for chunk in chunk_lines(lines, page_size):
        produced = True
        yield _wrap_page(header, separator_line, chunk)
    if not produced:
        yield _wrap_page(header, separator_line, [])


def build_table_pages(
    headers: Sequence[str],
    weights: Sequence[float],
    rows: Sequence[Sequence[str]],
    total_width: int = config.LIBRARY_ROW_MAX_WIDTH,
    page_size: int = config.MAX_RESULTS_PER_PAGE,
    suppress_duplicates: bool = True
) -> List[str]:
    """Numbers, lays out, renders and paginates `rows` under `headers`."""
    # Widen the number column for libraries past 999 tracks
    rownum_width = max(config.ROWNUM_WIDTH, len(str(len(rows))))
    widths = allocate_column_widths(weights, total_width, rownum_width)
    header = render_header([config.ROWNUM_HEADER, *headers], widths)
    lines = render_rows(number_rows(rows), widths, page_size, suppress_duplicates)
    return list(paginate(lines, header, page_size, total_width))
