"""Tests for note-name decoding."""

from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mv2h_convert.pitch import PitchDecodeError, decode_pitch, pitch_name  # noqa: E402


@pytest.mark.parametrize(
    "token, expected",
    [
        ("C4", 60),
        ("A4", 69),
        ("Ab4", 68),
        ("C##4", 62),
        ("B3", 59),
        ("Cb4", 59),
        ("E#4", 65),
        ("Bb-1", 10),
        ("C-1", 0),
        ("G9", 127),
    ],
)
def test_decode_pitch(token: str, expected: int) -> None:
    assert decode_pitch(token) == expected


def test_mixed_accidentals_cancel() -> None:
    assert decode_pitch("C#b4") == 60
    assert decode_pitch("Cb#4") == 60


@pytest.mark.parametrize("token", ["H4", "c4", "", "#4", "C", "Cx4", "C4.5"])
def test_decode_pitch_rejects_bad_tokens(token: str) -> None:
    with pytest.raises(PitchDecodeError):
        decode_pitch(token)


def test_pitch_decode_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        decode_pitch("H4")


def test_pitch_name_uses_sharps() -> None:
    assert pitch_name(60) == "C4"
    assert pitch_name(61) == "C#4"
    assert pitch_name(69) == "A4"
    assert pitch_name(0) == "C-1"


def test_pitch_name_is_decodable_over_midi_range() -> None:
    for pitch in range(128):
        assert decode_pitch(pitch_name(pitch)) == pitch
