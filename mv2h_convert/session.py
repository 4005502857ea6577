"""Drive a whole record stream through the resolution engine.

The session owns every output collection for one conversion run.  Feed
it lines (or already-built records) in document order, then call
:meth:`ResolutionSession.finish` once to flush open ties and build the
tatum grid::

    session = ResolutionSession(SessionConfig())
    session.feed_lines(sys.stdin)
    result = session.finish()

Nothing in here raises for bad input; problems end up in
``session.diagnostics``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional

from .diagnostics import Diagnostic, DiagnosticKind, DiagnosticLog
from .hierarchy import (
    DEFAULT_TICKS_PER_QUARTER_NOTE,
    MUSICXML_MS_PER_BEAT,
    Hierarchy,
    HierarchyApplied,
    HierarchyConflictIgnored,
    HierarchyDecision,
    apply_hierarchy,
    default_hierarchy,
    infer_hierarchy,
)
from .model import Key, Note, Tatum, key_from_fifths
from .records import (
    AttributesRecord,
    ChordRecord,
    EventRecord,
    MalformedRecordError,
    RecordError,
    RestRecord,
    TremoloRecord,
    UnrecognizedRecordKindError,
    is_comment,
    parse_record,
)
from .tatums import build_tatums
from .ties import TieResolver
from .voices import MUSICXML_VOICE_FIELDS, VoiceMapper, normalize_voice_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    ms_per_beat: int = MUSICXML_MS_PER_BEAT
    voice_fields: FrozenSet[str] = MUSICXML_VOICE_FIELDS
    anacrusis_sub_beats: Optional[int] = None  # None: use the first meter's tick
    default_ticks_per_quarter_note: int = DEFAULT_TICKS_PER_QUARTER_NOTE

    def __post_init__(self) -> None:
        if self.ms_per_beat <= 0:
            raise ValueError(f"ms_per_beat must be positive, got {self.ms_per_beat}")
        if self.anacrusis_sub_beats is not None and self.anacrusis_sub_beats < 0:
            raise ValueError(f"anacrusis must not be negative, got {self.anacrusis_sub_beats}")
        if self.default_ticks_per_quarter_note <= 0:
            raise ValueError(
                "default_ticks_per_quarter_note must be positive, "
                f"got {self.default_ticks_per_quarter_note}"
            )
        object.__setattr__(self, "voice_fields", normalize_voice_fields(self.voice_fields))


@dataclass(frozen=True)
class ConversionResult:
    notes: List[Note]
    tatums: List[Tatum]
    keys: List[Key]
    hierarchy: Hierarchy
    diagnostics: List[Diagnostic] = field(default_factory=list)


class ResolutionSession:
    def __init__(self, config: Optional[SessionConfig] = None) -> None:
        self.config = config if config is not None else SessionConfig()
        self.diagnostics = DiagnosticLog()
        self.notes: List[Note] = []
        self.keys: List[Key] = []
        self.tatums: List[Tatum] = []
        self.hierarchy: Optional[Hierarchy] = None
        self.hierarchy_decisions: List[HierarchyDecision] = []
        self.ticks_per_quarter_note = self.config.default_ticks_per_quarter_note
        self.first_tick: Optional[int] = None
        self.last_tick: Optional[int] = None
        self._fallback = default_hierarchy(self.config.default_ticks_per_quarter_note)
        self._rejected: Optional[Hierarchy] = None  # meter of the last ignored change
        self._ties = TieResolver(self.diagnostics)
        self._voices = VoiceMapper(self.config.voice_fields)
        self._finished = False

    @property
    def active_hierarchy(self) -> Hierarchy:
        return self.hierarchy if self.hierarchy is not None else self._fallback

    @property
    def pending_ties(self) -> List[Note]:
        return self._ties.pending

    def time_ms(self, tick: int) -> int:
        return self.active_hierarchy.time_ms(tick, self.config.ms_per_beat)

    # ── input ─────────────────────────────────────────────────────────

    def feed_line(self, line: str, line_number: Optional[int] = None) -> None:
        """Parse and process one input line; comments and blank lines are skipped."""
        if not line.strip() or is_comment(line):
            return
        try:
            record = parse_record(line, line_number)
        except UnrecognizedRecordKindError as exc:
            self.diagnostics.report(DiagnosticKind.UNRECOGNIZED_RECORD_KIND, str(exc), line_number)
            return
        except MalformedRecordError as exc:
            self.diagnostics.report(DiagnosticKind.MALFORMED_RECORD, str(exc), line_number)
            return
        self.feed(record)

    def feed_lines(self, lines: Iterable[str]) -> "ResolutionSession":
        for line_number, line in enumerate(lines, start=1):
            self.feed_line(line, line_number)
        return self

    def feed(self, record: EventRecord) -> None:
        """Process one record.  Records must arrive in non-decreasing tick order."""
        if self._finished:
            raise RuntimeError("session already finished")

        self._track_ticks(record)
        if isinstance(record, AttributesRecord):
            self.apply_attributes(record)
        elif isinstance(record, TremoloRecord):
            voice = self._voices.voice_of(record)
            self.notes.extend(
                self._ties.process_tremolo(record, voice, self.time_ms, self.ticks_per_quarter_note)
            )
        elif isinstance(record, ChordRecord):
            voice = self._voices.voice_of(record)
            self.notes.extend(self._ties.process_chord(record, voice, self.time_ms))
        elif isinstance(record, RestRecord):
            pass
        else:
            raise RecordError(f"unsupported record type {type(record).__name__}")

    def apply_attributes(self, record: AttributesRecord) -> HierarchyDecision:
        """Update resolution, meter and key from an attributes record."""
        self.ticks_per_quarter_note = record.ticks_per_quarter_note
        candidate = infer_hierarchy(
            record.ticks_per_quarter_note,
            record.numerator,
            record.denominator,
            is_first=self.hierarchy is None,
            tick=record.tick,
        )
        if self.hierarchy is None and self.config.anacrusis_sub_beats is not None:
            candidate = replace(
                candidate,
                anacrusis_ticks=self.config.anacrusis_sub_beats * candidate.tatums_per_sub_beat,
            )

        decision = apply_hierarchy(self.hierarchy, candidate)
        if isinstance(decision, HierarchyApplied):
            self.hierarchy = decision.hierarchy
            self._rejected = None
        elif isinstance(decision, HierarchyConflictIgnored):
            # Records restating an already ignored meter are the same change.
            if self._rejected is None or not self._rejected.same_meter(decision.rejected):
                self.diagnostics.report(
                    DiagnosticKind.METER_CHANGE_DETECTED, decision.warning, record.line_number
                )
            self._rejected = decision.rejected
        self.hierarchy_decisions.append(decision)

        if record.key_fifths is not None:
            self.keys.append(
                key_from_fifths(record.key_fifths, record.key_mode, self.time_ms(record.tick))
            )
        return decision

    def _track_ticks(self, record: EventRecord) -> None:
        low = record.tick
        high = max(record.tick, record.end_tick)
        self.first_tick = low if self.first_tick is None else min(self.first_tick, low)
        self.last_tick = high if self.last_tick is None else max(self.last_tick, high)

    # ── output ────────────────────────────────────────────────────────

    def finish(self) -> ConversionResult:
        """Flush unterminated ties, build the tatum grid and return the result.

        Safe to call more than once; later calls return the same data.
        """
        if not self._finished:
            self._finished = True
            self.notes.extend(self._ties.flush())
            self.tatums = build_tatums(
                self.active_hierarchy, self.first_tick, self.last_tick, self.config.ms_per_beat
            )
            logger.debug(
                "resolved %d notes, %d keys, %d tatums with %d warnings",
                len(self.notes),
                len(self.keys),
                len(self.tatums),
                len(self.diagnostics),
            )
        return ConversionResult(
            notes=list(self.notes),
            tatums=list(self.tatums),
            keys=list(self.keys),
            hierarchy=self.active_hierarchy,
            diagnostics=list(self.diagnostics),
        )


def convert_lines(lines: Iterable[str], config: Optional[SessionConfig] = None) -> ConversionResult:
    """Run a full conversion over tab-delimited lines."""
    return ResolutionSession(config).feed_lines(lines).finish()


def convert_records(
    records: Iterable[EventRecord], config: Optional[SessionConfig] = None
) -> ConversionResult:
    """Run a full conversion over already-built records (e.g. from MIDI)."""
    session = ResolutionSession(config)
    for record in records:
        session.feed(record)
    return session.finish()
