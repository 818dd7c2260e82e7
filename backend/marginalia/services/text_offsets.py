"""
Occurrence search over document source text.

Both the server (resolving a highlight request) and the selection helper
(computing the occurrence index of a user selection) count occurrences with
``iter_occurrences``. The scan advances one character past each hit, so
overlapping repetitions such as "aa" in "aaa" count as separate occurrences.
Client and server must agree on this or the wrong repetition gets picked.
"""

import re
from dataclasses import dataclass
from typing import Iterator

from ..exceptions import UnresolvableOccurrenceError

_WHITESPACE_RUN = re.compile(r"\s+")
_NON_WHITESPACE_RUN = re.compile(r"\S+")


@dataclass(frozen=True)
class TextOffset:
    """Half-open ``[start_offset, end_offset)`` range into source text."""

    start_offset: int
    end_offset: int


def iter_occurrences(text: str, search_text: str) -> Iterator[int]:
    """Yield every start position of ``search_text`` in ``text``, left to right."""
    if not search_text:
        return
    position = text.find(search_text)
    while position != -1:
        yield position
        position = text.find(search_text, position + 1)


def count_occurrences_before(text: str, search_text: str, position: int) -> int:
    """
    Count occurrences of ``search_text`` that start before ``position``.

    This is the occurrence index of a selection that starts at ``position``.
    Occurrences overlapping the selection start are counted too, so the index
    lines up with the positions ``iter_occurrences`` yields.
    """
    count = 0
    for start in iter_occurrences(text, search_text):
        if start >= position:
            break
        count += 1
    return count


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim both ends."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def build_normalized_index(text: str) -> tuple[str, list[int]]:
    """
    Normalize ``text`` and record where each normalized character came from.

    Returns:
        tuple[str, list[int]]: The normalized string and a list mapping each of
        its positions to the position in ``text`` it was taken from. A collapsed
        space maps to the first character of the whitespace run it replaced.
    """
    chars: list[str] = []
    positions: list[int] = []
    previous_end = None

    for match in _NON_WHITESPACE_RUN.finditer(text):
        if previous_end is not None:
            chars.append(" ")
            positions.append(previous_end)
        chars.append(match.group())
        positions.extend(range(match.start(), match.end()))
        previous_end = match.end()

    return "".join(chars), positions


def _exact_ranges(content: str, search_text: str) -> list[TextOffset]:
    length = len(search_text)
    return [
        TextOffset(start, start + length)
        for start in iter_occurrences(content, search_text)
    ]


def _normalized_ranges(content: str, search_text: str) -> list[TextOffset]:
    normalized_search = normalize_whitespace(search_text)
    if not normalized_search:
        return []

    normalized_content, positions = build_normalized_index(content)
    length = len(normalized_search)
    return [
        TextOffset(positions[start], positions[start + length - 1] + 1)
        for start in iter_occurrences(normalized_content, normalized_search)
    ]


def find_all_occurrence_ranges(content: str, search_text: str) -> list[TextOffset]:
    """
    Find every occurrence of ``search_text`` as raw source ranges.

    Exact matches win. Only when there are none is the search repeated on
    whitespace-normalized copies of both strings, with the hits mapped back to
    ranges spanning the original, unnormalized text.
    """
    ranges = _exact_ranges(content, search_text)
    if ranges:
        return ranges
    return _normalized_ranges(content, search_text)


def find_all_occurrences(content: str, search_text: str) -> list[int]:
    """Return the ascending start offsets of every occurrence of ``search_text``."""
    return [r.start_offset for r in find_all_occurrence_ranges(content, search_text)]


def find_text_offset(
    content: str, search_text: str, occurrence_index: int
) -> TextOffset:
    """
    Resolve the zero-based ``occurrence_index``-th occurrence of ``search_text``.

    Raises:
        UnresolvableOccurrenceError: If the index is out of range for both the
            exact and the whitespace-normalized search.
    """
    ranges = find_all_occurrence_ranges(content, search_text)
    if occurrence_index < 0 or occurrence_index >= len(ranges):
        raise UnresolvableOccurrenceError(search_text, occurrence_index, len(ranges))
    return ranges[occurrence_index]
