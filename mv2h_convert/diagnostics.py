"""Recoverable problems found while resolving a stream.

None of these stop a conversion.  Each one names the unit that was
skipped or approximated:

  MALFORMED_RECORD         line skipped (too few columns, bad integer)
  UNRECOGNIZED_RECORD_KIND line skipped
  PITCH_DECODE_ERROR       one pitch skipped, rest of the record kept
  TIE_NOT_FOUND            tie-in treated as a fresh note
  METER_CHANGE_DETECTED    previous hierarchy kept
  UNTERMINATED_TIE         pending tie flushed as a plain note
  UNRELEASED_NOTE          MIDI note-on with no release, dropped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    MALFORMED_RECORD = "malformed record"
    UNRECOGNIZED_RECORD_KIND = "unrecognized record kind"
    PITCH_DECODE_ERROR = "pitch decode error"
    TIE_NOT_FOUND = "tied note not found"
    METER_CHANGE_DETECTED = "meter change"
    UNTERMINATED_TIE = "unterminated tie"
    UNRELEASED_NOTE = "unreleased note"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    line_number: Optional[int] = None

    def __str__(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        return f"{where}{self.kind.value}: {self.message}"


class DiagnosticLog:
    """Ordered list of diagnostics; every entry is also logged as a warning."""

    def __init__(self) -> None:
        self.entries: List[Diagnostic] = []

    def report(
        self, kind: DiagnosticKind, message: str, line_number: Optional[int] = None
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, line_number=line_number)
        self.entries.append(diagnostic)
        logger.warning("%s", diagnostic)
        return diagnostic

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.entries if d.kind is kind]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
