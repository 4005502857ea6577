"""Tests for MV2H text rendering."""

from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mv2h_convert.hierarchy import Hierarchy  # noqa: E402
from mv2h_convert.model import Key, Note, Tatum  # noqa: E402
from mv2h_convert.output import (  # noqa: E402
    format_hierarchy,
    format_key,
    format_note,
    format_tatum,
    iter_lines,
    to_text,
)
from mv2h_convert.session import convert_lines  # noqa: E402


def test_format_note() -> None:
    assert format_note(Note(60, 0, 300, 1200, 2)) == "Note 60 0 300 1200 2"


def test_format_tatum() -> None:
    assert format_tatum(Tatum(150)) == "Tatum 150"


def test_format_key() -> None:
    assert format_key(Key(9, False, 600)) == "Key 9 min 600"
    assert format_key(Key(0, True, 0)) == "Key 0 maj 0"


def test_format_hierarchy() -> None:
    assert format_hierarchy(Hierarchy(2, 3, 2, 4)) == "Hierarchy 2,3 2 a=4"


def test_grouped_order() -> None:
    lines = [
        "0\t1\t1\t1\t1\tattributes\t4\t1\tmajor\t4\t4",
        "0\t1\t1\t1\t1\tchord\t2\t0\t1\tG4",
    ]
    result = convert_lines(lines)
    assert list(iter_lines(result)) == [
        "Note 67 0 0 300 0",
        "Tatum 0",
        "Tatum 150",
        "Key 7 maj 0",
        "Hierarchy 4,2 2 a=0",
    ]


def test_to_text_ends_with_newline() -> None:
    text = to_text(convert_lines([]))
    assert text == "Hierarchy 4,2 2 a=0\n"
