from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Tuple

from .records import EventRecord

# Upstream fields that may separate voices, in column order.
VOICE_FIELDS = ("part", "staff", "voice")
MUSICXML_VOICE_FIELDS: FrozenSet[str] = frozenset(VOICE_FIELDS)
# The MIDI front end stores the track in ``part`` and the channel in ``staff``.
MIDI_FIELD_ALIASES = {"track": "part", "channel": "staff"}
MIDI_VOICE_FIELDS: FrozenSet[str] = frozenset(MIDI_FIELD_ALIASES)


def normalize_voice_fields(fields: Iterable[str]) -> FrozenSet[str]:
    """Map user-facing field names (incl. MIDI ``track``/``channel``) to record fields."""
    normalized = set()
    for name in fields:
        name = MIDI_FIELD_ALIASES.get(name, name)
        if name not in VOICE_FIELDS:
            raise ValueError(f"unknown voice field {name!r}")
        normalized.add(name)
    if not normalized:
        raise ValueError("at least one voice field is required")
    return frozenset(normalized)


class VoiceMapper:
    """Assign compact voice ids to distinct combinations of upstream fields.

    Ids start at 0 and are handed out in first-seen order, so the same
    input always maps to the same voices.
    """

    def __init__(self, fields: Iterable[str] = VOICE_FIELDS) -> None:
        selected = normalize_voice_fields(fields)
        self.fields: Tuple[str, ...] = tuple(f for f in VOICE_FIELDS if f in selected)
        self._ids: Dict[Tuple[int, ...], int] = {}

    def voice_of(self, record: EventRecord) -> int:
        key = tuple(getattr(record, f) for f in self.fields)
        voice = self._ids.get(key)
        if voice is None:
            voice = len(self._ids)
            self._ids[key] = voice
        return voice

    def __len__(self) -> int:
        return len(self._ids)
