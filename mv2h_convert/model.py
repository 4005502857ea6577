from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Note:
    """A resolved note.  All times are in milliseconds.

    ``onset_ms`` is the sounding onset (start of the tie chain);
    ``value_onset_ms`` is the notated onset, which only differs from
    ``onset_ms`` for the tail of a tie chain.
    """

    pitch: int
    onset_ms: int
    value_onset_ms: int
    offset_ms: int
    voice: int

    def __post_init__(self) -> None:
        if not (self.onset_ms <= self.value_onset_ms <= self.offset_ms):
            raise ValueError(
                f"note times out of order: onset={self.onset_ms} "
                f"value_onset={self.value_onset_ms} offset={self.offset_ms}"
            )


@dataclass(frozen=True)
class Key:
    tonic: int  # pitch class 0-11
    is_major: bool
    time_ms: int


@dataclass(frozen=True)
class Tatum:
    time_ms: int


def key_from_fifths(fifths: int, mode: str, time_ms: int) -> Key:
    """Build a :class:`Key` from a key signature.

    ``fifths`` counts sharps (positive) or flats (negative).  Minor keys
    sit three semitones below their relative major.  Any mode other than
    ``minor`` is treated as major.
    """
    is_major = mode.strip().lower() != "minor"
    tonic = (7 * fifths) % 12
    if not is_major:
        tonic = (tonic + 9) % 12
    return Key(tonic=tonic, is_major=is_major, time_ms=time_ms)
