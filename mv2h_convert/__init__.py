"""Resolve tagged score event streams into MV2H notes, tatums, keys and meter."""

from .diagnostics import Diagnostic, DiagnosticKind, DiagnosticLog  # noqa: F401
from .hierarchy import (  # noqa: F401
    DEFAULT_MS_PER_BEAT,
    DEFAULT_TICKS_PER_QUARTER_NOTE,
    MUSICXML_MS_PER_BEAT,
    Hierarchy,
    HierarchyApplied,
    HierarchyConflictIgnored,
    apply_hierarchy,
    default_hierarchy,
    infer_hierarchy,
)
from .model import Key, Note, Tatum, key_from_fifths  # noqa: F401
from .pitch import PitchDecodeError, decode_pitch, pitch_name  # noqa: F401
from .records import (  # noqa: F401
    AttributesRecord,
    ChordRecord,
    EventRecord,
    MalformedRecordError,
    RecordKind,
    RestRecord,
    TieType,
    TremoloRecord,
    UnrecognizedRecordKindError,
    format_record,
    parse_record,
)
from .session import (  # noqa: F401
    ConversionResult,
    ResolutionSession,
    SessionConfig,
    convert_lines,
    convert_records,
)
from .tatums import build_tatums  # noqa: F401
from .ties import TieResolver, TieResult  # noqa: F401
from .voices import MIDI_VOICE_FIELDS, MUSICXML_VOICE_FIELDS, VoiceMapper  # noqa: F401
