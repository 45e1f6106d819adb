"""Unit tests for column letter conversion."""

from __future__ import annotations

import pytest

from tabular_io.columns import (
    MAX_COLUMN,
    column_of,
    index_to_letter,
    letter_to_index,
    split_reference,
)
from tabular_io.errors import FormatError, RangeError


def test_letter_round_trip_covers_whole_range() -> None:
    for index in range(1, MAX_COLUMN + 1):
        assert letter_to_index(index_to_letter(index)) == index


def test_known_letters() -> None:
    assert letter_to_index("A") == 1
    assert letter_to_index("z") == 26
    assert letter_to_index("AA") == 27
    assert letter_to_index("XFD") == MAX_COLUMN
    assert index_to_letter(28) == "AB"
    assert index_to_letter(letter_to_index("xfd")) == "XFD"


@pytest.mark.parametrize("letters", ["", " ", "1A", "A1", "A-"])
def test_invalid_letters_raise_format_error(letters: str) -> None:
    with pytest.raises(FormatError):
        letter_to_index(letters)


@pytest.mark.parametrize("letters", ["XFE", "ZZZ", "AAAA"])
def test_letters_beyond_last_column_raise_range_error(letters: str) -> None:
    with pytest.raises(RangeError):
        letter_to_index(letters)


@pytest.mark.parametrize("index", [0, -1, MAX_COLUMN + 1])
def test_index_outside_limits_raises_range_error(index: int) -> None:
    with pytest.raises(RangeError):
        index_to_letter(index)


def test_split_reference() -> None:
    assert split_reference("BC12") == ("BC", 12)
    assert column_of("AA3") == 27
    with pytest.raises(FormatError):
        split_reference("12")
