"""Resolve tie chains across chord records into single notes.

A tie-out leaves a *pending* note keyed by ``(pitch, voice, offset_ms)``.
A later tie-in for the same pitch and voice whose onset falls exactly on
that offset picks it up.  Times come straight from ticks, so the match
is exact with no tolerance window.

  tie type 0 : emit the note
  tie type 1 : store as pending
  tie type 2 : pop the pending note, emit it extended to this offset
  tie type 3 : pop the pending note, store it again extended to this offset

A tie-in with nothing to pick up is treated as the start of a new note
and reported.  Whatever is still pending at the end of the stream is
flushed as-is and reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .diagnostics import DiagnosticKind, DiagnosticLog
from .model import Note
from .pitch import PitchDecodeError, decode_pitch
from .records import ChordRecord, TieType, TremoloRecord

PendingKey = Tuple[int, int, int]  # (pitch, voice, offset_ms)
TickToMs = Callable[[int], int]


@dataclass(frozen=True)
class TieResult:
    note: Optional[Note]  # None while the chain is still open
    matched: bool = True  # False when a tie-in found no pending note


class TieResolver:
    def __init__(self, diagnostics: Optional[DiagnosticLog] = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._pending: Dict[PendingKey, List[Note]] = {}

    # ── pending store ─────────────────────────────────────────────────

    def _push(self, note: Note) -> None:
        key = (note.pitch, note.voice, note.offset_ms)
        self._pending.setdefault(key, []).append(note)

    def _pop(self, pitch: int, voice: int, offset_ms: int) -> Optional[Note]:
        key = (pitch, voice, offset_ms)
        chain = self._pending.get(key)
        if not chain:
            return None
        note = chain.pop(0)
        if not chain:
            del self._pending[key]
        return note

    @property
    def pending(self) -> List[Note]:
        return [note for chain in self._pending.values() for note in chain]

    # ── resolution ────────────────────────────────────────────────────

    def resolve(
        self, pitch: int, voice: int, onset_ms: int, offset_ms: int, tie_type: TieType
    ) -> TieResult:
        """Apply one note segment to the pending set.

        Returns the note that became final (if any) and whether a tie-in
        found its predecessor.  Nothing is reported here; see
        :meth:`process_chord`.
        """
        segment = Note(
            pitch=pitch,
            onset_ms=onset_ms,
            value_onset_ms=onset_ms,
            offset_ms=offset_ms,
            voice=voice,
        )
        if tie_type == TieType.NONE:
            return TieResult(segment)
        if tie_type == TieType.OUT:
            self._push(segment)
            return TieResult(None)

        head = self._pop(pitch, voice, onset_ms)
        if head is not None:
            segment = Note(
                pitch=pitch,
                onset_ms=head.onset_ms,
                value_onset_ms=head.value_onset_ms,
                offset_ms=offset_ms,
                voice=voice,
            )
        if tie_type == TieType.BOTH:
            self._push(segment)
            return TieResult(None, matched=head is not None)
        return TieResult(segment, matched=head is not None)

    def _decode_pitches(self, record: ChordRecord) -> List[int]:
        pitches: List[int] = []
        for token in record.pitches:
            try:
                pitches.append(decode_pitch(token))
            except PitchDecodeError as exc:
                self.diagnostics.report(
                    DiagnosticKind.PITCH_DECODE_ERROR, str(exc), record.line_number
                )
        return pitches

    def process_chord(self, record: ChordRecord, voice: int, time_ms: TickToMs) -> List[Note]:
        """Resolve every pitch of a chord record; return the notes it completes."""
        onset_ms = time_ms(record.tick)
        offset_ms = time_ms(record.end_tick)
        notes: List[Note] = []
        for pitch in self._decode_pitches(record):
            result = self.resolve(pitch, voice, onset_ms, offset_ms, record.tie_type)
            if not result.matched:
                self.diagnostics.report(
                    DiagnosticKind.TIE_NOT_FOUND,
                    f"no pending tie for pitch {pitch} voice {voice} at {onset_ms}ms",
                    record.line_number,
                )
            if result.note is not None:
                notes.append(result.note)
        return notes

    def process_tremolo(
        self,
        record: TremoloRecord,
        voice: int,
        time_ms: TickToMs,
        ticks_per_quarter_note: int,
    ) -> List[Note]:
        """Expand a tremolo into untied eighth-note slices.

        ``duration // (ticks_per_quarter_note // 2)`` slices are produced per
        pitch; a remainder shorter than one slice is dropped.
        """
        ticks_per_tremolo = max(1, ticks_per_quarter_note // 2)
        num_tremolos = record.duration // ticks_per_tremolo
        pitches = self._decode_pitches(record)
        notes: List[Note] = []
        for i in range(num_tremolos):
            start = record.tick + i * ticks_per_tremolo
            onset_ms = time_ms(start)
            offset_ms = time_ms(start + ticks_per_tremolo)
            for pitch in pitches:
                notes.append(
                    Note(
                        pitch=pitch,
                        onset_ms=onset_ms,
                        value_onset_ms=onset_ms,
                        offset_ms=offset_ms,
                        voice=voice,
                    )
                )
        return notes

    def flush(self) -> List[Note]:
        """Empty the pending set, reporting each note as an unterminated tie."""
        flushed = self.pending
        self._pending.clear()
        for note in flushed:
            self.diagnostics.report(
                DiagnosticKind.UNTERMINATED_TIE,
                f"tie on pitch {note.pitch} voice {note.voice} from {note.onset_ms}ms "
                f"never ended",
            )
        return flushed
