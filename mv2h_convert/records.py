"""Tab-delimited event records produced by the upstream score parser.

Every line starts with six common columns::

  0 tick | 1 measure | 2 part | 3 staff | 4 voice | 5 kind

followed by kind-specific payload:

  attributes : 6 ticks/quarter | 7 key fifths | 8 key mode | 9 ts numerator | 10 ts denominator
  chord      : 6 duration | 7 tie type | 8 note count | 9.. pitch tokens
  tremolo-m  : same as chord
  rest       : [6 duration]

Lines starting with ``//`` are comments.  Records are immutable and
carry the raw part/staff/voice fields; the session decides which of
them make up a voice.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

COMMENT_MARKER = "//"
MIN_COLUMNS = 6


class RecordError(ValueError):
    """A line that cannot be turned into a record."""


class MalformedRecordError(RecordError):
    pass


class UnrecognizedRecordKindError(RecordError):
    pass


class RecordKind(str, Enum):
    ATTRIBUTES = "attributes"
    REST = "rest"
    CHORD = "chord"
    TREMOLO_MIDDLE = "tremolo-m"


class TieType(IntEnum):
    NONE = 0
    OUT = 1  # tie starts here
    IN = 2  # tie ends here
    BOTH = 3  # tie passes through


@dataclass(frozen=True)
class EventRecord:
    tick: int
    measure: int = 0
    part: int = 0
    staff: int = 0
    voice: int = 0
    line_number: Optional[int] = None

    kind = None  # type: Optional[RecordKind]

    @property
    def end_tick(self) -> int:
        return self.tick


@dataclass(frozen=True)
class AttributesRecord(EventRecord):
    ticks_per_quarter_note: int = 4
    key_fifths: Optional[int] = None  # None: no key signature on this record
    key_mode: str = "major"
    numerator: int = 4
    denominator: int = 4

    kind = RecordKind.ATTRIBUTES


@dataclass(frozen=True)
class RestRecord(EventRecord):
    duration: int = 0

    kind = RecordKind.REST

    @property
    def end_tick(self) -> int:
        return self.tick + self.duration


@dataclass(frozen=True)
class ChordRecord(EventRecord):
    duration: int = 0
    tie_type: TieType = TieType.NONE
    pitches: Tuple[str, ...] = ()

    kind = RecordKind.CHORD

    @property
    def end_tick(self) -> int:
        return self.tick + self.duration


@dataclass(frozen=True)
class TremoloRecord(ChordRecord):
    kind = RecordKind.TREMOLO_MIDDLE


def is_comment(line: str) -> bool:
    return line.lstrip().startswith(COMMENT_MARKER)


def _int_field(columns: List[str], index: int, name: str) -> int:
    try:
        return int(columns[index])
    except ValueError:
        raise MalformedRecordError(f"{name} is not an integer: {columns[index]!r}") from None


def _require_columns(columns: List[str], count: int, kind: str) -> None:
    if len(columns) < count:
        raise MalformedRecordError(
            f"{kind} record needs at least {count} columns, got {len(columns)}"
        )


def parse_record(line: str, line_number: Optional[int] = None) -> EventRecord:
    """Parse one non-comment line into an :class:`EventRecord`.

    Raises :class:`MalformedRecordError` for short lines or bad integers
    and :class:`UnrecognizedRecordKindError` for unknown kinds.
    """
    columns = line.rstrip("\r\n").split("\t")
    if len(columns) < MIN_COLUMNS:
        raise MalformedRecordError(
            f"need at least {MIN_COLUMNS} columns, got {len(columns)}"
        )

    common = dict(
        tick=_int_field(columns, 0, "tick"),
        measure=_int_field(columns, 1, "measure"),
        part=_int_field(columns, 2, "part"),
        staff=_int_field(columns, 3, "staff"),
        voice=_int_field(columns, 4, "voice"),
        line_number=line_number,
    )
    kind_text = columns[5].strip()

    if kind_text == RecordKind.ATTRIBUTES.value:
        _require_columns(columns, 11, kind_text)
        ticks_per_quarter_note = _int_field(columns, 6, "ticks per quarter note")
        numerator = _int_field(columns, 9, "time signature numerator")
        denominator = _int_field(columns, 10, "time signature denominator")
        if ticks_per_quarter_note <= 0:
            raise MalformedRecordError(
                f"ticks per quarter note must be positive, got {ticks_per_quarter_note}"
            )
        if numerator <= 0 or denominator <= 0:
            raise MalformedRecordError(f"bad time signature {numerator}/{denominator}")
        return AttributesRecord(
            **common,
            ticks_per_quarter_note=ticks_per_quarter_note,
            key_fifths=_int_field(columns, 7, "key fifths"),
            key_mode=columns[8].strip(),
            numerator=numerator,
            denominator=denominator,
        )

    if kind_text == RecordKind.REST.value:
        duration = _int_field(columns, 6, "duration") if len(columns) > 6 else 0
        return RestRecord(**common, duration=duration)

    if kind_text in (RecordKind.CHORD.value, RecordKind.TREMOLO_MIDDLE.value):
        _require_columns(columns, 9, kind_text)
        duration = _int_field(columns, 6, "duration")
        if duration < 0:
            raise MalformedRecordError(f"negative duration {duration}")
        raw_tie = _int_field(columns, 7, "tie type")
        try:
            tie_type = TieType(raw_tie)
        except ValueError:
            raise MalformedRecordError(f"unknown tie type {raw_tie}") from None
        count = _int_field(columns, 8, "note count")
        if count < 0:
            raise MalformedRecordError(f"negative note count {count}")
        _require_columns(columns, 9 + count, kind_text)
        pitches = tuple(token.strip() for token in columns[9 : 9 + count])
        cls = ChordRecord if kind_text == RecordKind.CHORD.value else TremoloRecord
        return cls(**common, duration=duration, tie_type=tie_type, pitches=pitches)

    raise UnrecognizedRecordKindError(f"unrecognized record kind {kind_text!r}")


def format_record(record: EventRecord) -> str:
    """Render a record back into its tab-delimited line (no newline)."""
    columns = [
        str(record.tick),
        str(record.measure),
        str(record.part),
        str(record.staff),
        str(record.voice),
    ]
    if isinstance(record, AttributesRecord):
        columns += [
            RecordKind.ATTRIBUTES.value,
            str(record.ticks_per_quarter_note),
            str(record.key_fifths if record.key_fifths is not None else 0),
            record.key_mode,
            str(record.numerator),
            str(record.denominator),
        ]
    elif isinstance(record, ChordRecord):
        columns += [
            record.kind.value,
            str(record.duration),
            str(int(record.tie_type)),
            str(len(record.pitches)),
            *record.pitches,
        ]
    elif isinstance(record, RestRecord):
        columns += [RecordKind.REST.value, str(record.duration)]
    else:
        raise ValueError(f"cannot format {type(record).__name__}")
    return "\t".join(columns)
