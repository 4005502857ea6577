"""Turn a Standard MIDI File into the shared record stream.

``mido`` does all of the file parsing.  This module only pairs note
on/off messages into single-pitch chord records and turns time and key
signature meta messages into attributes records, so MIDI input goes
through exactly the same resolution engine as parsed MusicXML.

Field mapping: ``part`` = track index, ``staff`` = channel, ``voice`` = 0.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import mido

from .diagnostics import DiagnosticKind, DiagnosticLog
from .pitch import decode_pitch, pitch_name
from .records import AttributesRecord, ChordRecord, EventRecord
from .session import ConversionResult, ResolutionSession, SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_TIME_SIGNATURE = (4, 4)


def key_signature_fifths(key: str) -> Tuple[int, str]:
    """Convert a mido key name (``'Bb'``, ``'F#m'``) to ``(fifths, mode)``."""
    mode = "minor" if key.endswith("m") else "major"
    root = key[:-1] if mode == "minor" else key
    tonic = decode_pitch(f"{root}-1") % 12
    relative_major = tonic if mode == "major" else (tonic - 9) % 12
    fifths = (7 * relative_major) % 12
    if fifths > 6:
        fifths -= 12
    return fifths, mode


def _collect(
    mid: mido.MidiFile, diagnostics: Optional[DiagnosticLog] = None
) -> Tuple[List[Tuple[int, int, int, int, int]], Dict[int, Dict[str, object]]]:
    notes: List[Tuple[int, int, int, int, int]] = []  # (onset, track, channel, pitch, duration)
    meta: Dict[int, Dict[str, object]] = {}

    for track_index, track in enumerate(mid.tracks):
        abs_tick = 0
        open_notes: Dict[Tuple[int, int], List[int]] = {}
        for msg in track:
            abs_tick += msg.time
            if msg.type == "time_signature":
                meta.setdefault(abs_tick, {})["time"] = (msg.numerator, msg.denominator)
            elif msg.type == "key_signature":
                meta.setdefault(abs_tick, {})["key"] = msg.key
            elif msg.type == "note_on" and msg.velocity > 0:
                open_notes.setdefault((msg.channel, msg.note), []).append(abs_tick)
            elif msg.type in ("note_on", "note_off"):
                onsets = open_notes.get((msg.channel, msg.note))
                if not onsets:
                    continue
                onset = onsets.pop(0)
                notes.append((onset, track_index, msg.channel, msg.note, abs_tick - onset))

        for (channel, pitch), onsets in open_notes.items():
            for onset in onsets:
                message = (
                    f"note {pitch} on track {track_index} channel {channel} "
                    f"at tick {onset} never released; dropped"
                )
                if diagnostics is None:
                    logger.warning("%s", message)
                else:
                    diagnostics.report(DiagnosticKind.UNRELEASED_NOTE, message)
    return notes, meta


def records_from_midi(
    mid: mido.MidiFile, diagnostics: Optional[DiagnosticLog] = None
) -> List[EventRecord]:
    """Build the ordered record stream for a MIDI file.

    A file without a time signature at tick 0 gets an implicit 4/4 there.
    At equal ticks, attributes come before notes.  Notes that are never
    released are dropped and reported to ``diagnostics`` when given,
    otherwise only logged.
    """
    notes, meta = _collect(mid, diagnostics)
    if "time" not in meta.get(0, {}):
        meta.setdefault(0, {})["time"] = DEFAULT_TIME_SIGNATURE

    records: List[EventRecord] = []
    time_signature = DEFAULT_TIME_SIGNATURE
    for tick in sorted(meta):
        entry = meta[tick]
        time_signature = entry.get("time", time_signature)  # type: ignore[assignment]
        key_fifths: Optional[int] = None
        key_mode = "major"
        if "key" in entry:
            key_fifths, key_mode = key_signature_fifths(str(entry["key"]))
        records.append(
            AttributesRecord(
                tick=tick,
                ticks_per_quarter_note=mid.ticks_per_beat,
                key_fifths=key_fifths,
                key_mode=key_mode,
                numerator=time_signature[0],
                denominator=time_signature[1],
            )
        )

    for onset, track_index, channel, pitch, duration in sorted(notes):
        records.append(
            ChordRecord(
                tick=onset,
                part=track_index,
                staff=channel,
                duration=duration,
                pitches=(pitch_name(pitch),),
            )
        )

    records.sort(key=lambda r: (r.tick, 0 if isinstance(r, AttributesRecord) else 1))
    return records


def load_midi(path: Union[str, Path]) -> List[EventRecord]:
    return records_from_midi(mido.MidiFile(str(path)))


def convert_midi(
    mid: Union[mido.MidiFile, str, Path], config: Optional[SessionConfig] = None
) -> ConversionResult:
    """Run a full conversion of a MIDI file, or of the file at a path.

    Dropped notes land in the result's diagnostics alongside everything
    the session reports.
    """
    if not isinstance(mid, mido.MidiFile):
        mid = mido.MidiFile(str(mid))
    session = ResolutionSession(config)
    for record in records_from_midi(mid, session.diagnostics):
        session.feed(record)
    return session.finish()
