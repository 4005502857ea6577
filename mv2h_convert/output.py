"""Render a conversion result in the MV2H text format.

  Note <pitch> <onset> <value onset> <offset> <voice>
  Tatum <time>
  Key <tonic> <maj|min> <time>
  Hierarchy <beats per bar>,<sub-beats per beat> <tatums per sub-beat> a=<anacrusis>

Grouped in that order, one record per line.  Times are milliseconds.
"""

from __future__ import annotations

from typing import Iterator

from .hierarchy import Hierarchy
from .model import Key, Note, Tatum
from .session import ConversionResult


def format_note(note: Note) -> str:
    return (
        f"Note {note.pitch} {note.onset_ms} {note.value_onset_ms} "
        f"{note.offset_ms} {note.voice}"
    )


def format_tatum(tatum: Tatum) -> str:
    return f"Tatum {tatum.time_ms}"


def format_key(key: Key) -> str:
    return f"Key {key.tonic} {'maj' if key.is_major else 'min'} {key.time_ms}"


def format_hierarchy(hierarchy: Hierarchy) -> str:
    return (
        f"Hierarchy {hierarchy.beats_per_bar},{hierarchy.sub_beats_per_beat} "
        f"{hierarchy.tatums_per_sub_beat} a={hierarchy.anacrusis_ticks}"
    )


def iter_lines(result: ConversionResult) -> Iterator[str]:
    for note in result.notes:
        yield format_note(note)
    for tatum in result.tatums:
        yield format_tatum(tatum)
    for key in result.keys:
        yield format_key(key)
    yield format_hierarchy(result.hierarchy)


def to_text(result: ConversionResult) -> str:
    return "\n".join(iter_lines(result)) + "\n"
