"""Note-name tokens <-> integer pitch numbers.

Tokens look like ``C4``, ``Ab4``, ``F##3`` or ``Bb-1``: a letter A-G, any
run of ``#``/``b`` accidentals, then a signed octave.  Pitch numbers are
MIDI-style, so ``C4`` is 60 and ``A4`` is 69.
"""

from __future__ import annotations

from typing import Dict

BASE_PITCH_CLASSES: Dict[str, int] = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}

# Spelling used when turning a pitch number back into a token (MIDI input).
SHARP_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


class PitchDecodeError(ValueError):
    """Raised when a pitch token cannot be decoded."""


def decode_pitch(token: str) -> int:
    """Return the pitch number for a note-name token.

    Net accidental is ``count('#') - count('b')``; accidentals may appear
    in any order.  Raises :class:`PitchDecodeError` for anything that does
    not start with A-G or has no integer octave.
    """
    if not token or token[0] not in BASE_PITCH_CLASSES:
        raise PitchDecodeError(f"bad pitch letter in {token!r}")

    pos = 1
    sharps = 0
    flats = 0
    while pos < len(token) and token[pos] in "#b":
        if token[pos] == "#":
            sharps += 1
        else:
            flats += 1
        pos += 1

    try:
        octave = int(token[pos:])
    except ValueError:
        raise PitchDecodeError(f"bad octave in {token!r}") from None

    return (octave + 1) * 12 + BASE_PITCH_CLASSES[token[0]] + sharps - flats


def pitch_name(pitch: int) -> str:
    """Inverse of :func:`decode_pitch`, spelled with sharps (61 -> ``C#4``)."""
    octave, pitch_class = divmod(pitch, 12)
    return f"{SHARP_NAMES[pitch_class]}{octave - 1}"
