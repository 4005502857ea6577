"""Tests for the MIDI front end, using in-memory mido files."""

from __future__ import annotations

from pathlib import Path
import sys

import mido
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mv2h_convert.diagnostics import DiagnosticKind, DiagnosticLog  # noqa: E402
from mv2h_convert.hierarchy import DEFAULT_MS_PER_BEAT, Hierarchy  # noqa: E402
from mv2h_convert.midi_source import (  # noqa: E402
    convert_midi,
    key_signature_fifths,
    load_midi,
    records_from_midi,
)
from mv2h_convert.model import Key, Note  # noqa: E402
from mv2h_convert.records import AttributesRecord, ChordRecord  # noqa: E402
from mv2h_convert.session import SessionConfig, convert_records  # noqa: E402
from mv2h_convert.voices import MIDI_VOICE_FIELDS  # noqa: E402

TPB = 480
MIDI_CONFIG = SessionConfig(ms_per_beat=DEFAULT_MS_PER_BEAT, voice_fields=MIDI_VOICE_FIELDS)


def _build_track(
    notes: list[tuple[int, int, int]], channel: int = 0, meta: list[mido.MetaMessage] | None = None
) -> mido.MidiTrack:
    """Build one MIDI track from (onset_tick, pitch, duration_ticks) tuples."""
    events: list[tuple[int, mido.Message]] = []
    for msg in meta or []:
        events.append((msg.time, msg.copy(time=0)))
    for onset, pitch, dur in notes:
        events.append((onset, mido.Message("note_on", channel=channel, note=pitch, velocity=90)))
        events.append((onset + dur, mido.Message("note_off", channel=channel, note=pitch, velocity=0)))
    events.sort(key=lambda item: (item[0], 0 if item[1].type == "note_off" else 1))

    track = mido.MidiTrack()
    last_tick = 0
    for tick, msg in events:
        track.append(msg.copy(time=tick - last_tick))
        last_tick = tick
    return track


def _midi(*tracks: mido.MidiTrack) -> mido.MidiFile:
    mid = mido.MidiFile(ticks_per_beat=TPB)
    mid.tracks.extend(tracks)
    return mid


# ── key signatures ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "key, expected",
    [
        ("C", (0, "major")),
        ("G", (1, "major")),
        ("Bb", (-2, "major")),
        ("Am", (0, "minor")),
        ("F#m", (3, "minor")),
        ("Dm", (-1, "minor")),
    ],
)
def test_key_signature_fifths(key, expected):
    assert key_signature_fifths(key) == expected


# ── record stream ─────────────────────────────────────────────────────


class TestRecordsFromMidi:
    def test_implicit_common_time(self):
        records = records_from_midi(_midi(_build_track([(0, 60, TPB)])))
        assert isinstance(records[0], AttributesRecord)
        assert (records[0].numerator, records[0].denominator) == (4, 4)
        assert records[0].ticks_per_quarter_note == TPB
        assert records[0].key_fifths is None
        assert records[1] == ChordRecord(tick=0, duration=TPB, pitches=("C4",))

    def test_meta_messages_become_attributes(self):
        meta = [
            mido.MetaMessage("time_signature", numerator=6, denominator=8, time=0),
            mido.MetaMessage("key_signature", key="Em", time=0),
        ]
        records = records_from_midi(_midi(_build_track([], meta=meta), _build_track([(0, 64, 240)])))
        attrs = records[0]
        assert (attrs.numerator, attrs.denominator) == (6, 8)
        assert (attrs.key_fifths, attrs.key_mode) == (1, "minor")
        assert len([r for r in records if isinstance(r, AttributesRecord)]) == 1

    def test_key_change_carries_current_meter(self):
        meta = [
            mido.MetaMessage("time_signature", numerator=3, denominator=4, time=0),
            mido.MetaMessage("key_signature", key="D", time=TPB * 3),
        ]
        records = records_from_midi(_midi(_build_track([], meta=meta)))
        later = records[1]
        assert later.tick == TPB * 3
        assert (later.numerator, later.key_fifths) == (3, 2)

    def test_track_and_channel_fields(self):
        mid = _midi(_build_track([(0, 60, TPB)], channel=2), _build_track([(0, 48, TPB)], channel=5))
        chords = [r for r in records_from_midi(mid) if isinstance(r, ChordRecord)]
        assert [(c.part, c.staff, c.pitches) for c in chords] == [
            (0, 2, ("C4",)),
            (1, 5, ("C3",)),
        ]

    def test_notes_are_in_tick_order_across_tracks(self):
        mid = _midi(_build_track([(TPB, 60, TPB)]), _build_track([(0, 48, TPB), (TPB * 2, 50, TPB)]))
        ticks = [r.tick for r in records_from_midi(mid)]
        assert ticks == sorted(ticks)

    def test_note_on_velocity_zero_releases(self):
        track = mido.MidiTrack(
            [
                mido.Message("note_on", note=62, velocity=80, time=0),
                mido.Message("note_on", note=62, velocity=0, time=240),
            ]
        )
        chords = [r for r in records_from_midi(_midi(track)) if isinstance(r, ChordRecord)]
        assert chords == [ChordRecord(tick=0, duration=240, pitches=("D4",))]

    def test_unreleased_note_is_dropped(self):
        track = mido.MidiTrack([mido.Message("note_on", note=62, velocity=80, time=0)])
        records = records_from_midi(_midi(track))
        assert not any(isinstance(r, ChordRecord) for r in records)

    def test_unreleased_note_is_reported(self):
        track = mido.MidiTrack([mido.Message("note_on", note=62, velocity=80, time=0)])
        diagnostics = DiagnosticLog()
        records_from_midi(_midi(track), diagnostics)
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNRELEASED_NOTE]
        assert "note 62" in diagnostics.entries[0].message


# ── full conversion ───────────────────────────────────────────────────


class TestMidiConversion:
    def test_notes_keys_and_hierarchy(self):
        meta = [mido.MetaMessage("key_signature", key="F", time=0)]
        mid = _midi(_build_track([(0, 60, TPB), (TPB, 62, 240)], meta=meta))
        result = convert_records(records_from_midi(mid), MIDI_CONFIG)
        assert result.notes == [Note(60, 0, 0, 500, 0), Note(62, 500, 500, 750, 0)]
        assert result.keys == [Key(5, True, 0)]
        assert result.hierarchy == Hierarchy(4, 2, 240, 0)
        assert len(result.tatums) == TPB + 240
        assert result.diagnostics == []

    def test_channels_separate_voices(self):
        mid = _midi(_build_track([(0, 60, TPB)], channel=0), _build_track([(0, 48, TPB)], channel=1))
        result = convert_records(records_from_midi(mid), MIDI_CONFIG)
        assert sorted(n.voice for n in result.notes) == [0, 1]

    def test_channel_only_voice_mode(self):
        mid = _midi(_build_track([(0, 60, TPB)], channel=0), _build_track([(0, 48, TPB)], channel=0))
        config = SessionConfig(ms_per_beat=DEFAULT_MS_PER_BEAT, voice_fields=frozenset({"channel"}))
        result = convert_records(records_from_midi(mid), config)
        assert [n.voice for n in result.notes] == [0, 0]

    def test_anacrusis_in_sub_beats(self):
        config = SessionConfig(
            ms_per_beat=DEFAULT_MS_PER_BEAT, voice_fields=MIDI_VOICE_FIELDS, anacrusis_sub_beats=1
        )
        result = convert_records(records_from_midi(_midi(_build_track([(0, 60, TPB)]))), config)
        assert result.hierarchy.anacrusis_ticks == 240

    def test_load_midi_from_file(self, tmp_path):
        path = tmp_path / "song.mid"
        _midi(_build_track([(0, 67, TPB)])).save(str(path))
        records = load_midi(path)
        assert [r.pitches for r in records if isinstance(r, ChordRecord)] == [("G4",)]

    def test_key_changes_after_meter_change_warn_once(self):
        meta = [
            mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0),
            mido.MetaMessage("time_signature", numerator=3, denominator=4, time=16),
            mido.MetaMessage("key_signature", key="G", time=28),
            mido.MetaMessage("key_signature", key="D", time=40),
        ]
        mid = _midi(_build_track([(0, 60, 48)], meta=meta))
        result = convert_records(records_from_midi(mid), MIDI_CONFIG)
        changes = [d for d in result.diagnostics if d.kind is DiagnosticKind.METER_CHANGE_DETECTED]
        assert len(changes) == 1
        assert result.hierarchy == Hierarchy(4, 2, 240, 0)
        assert [k.tonic for k in result.keys] == [7, 2]

    def test_convert_midi_reports_unreleased_notes(self):
        track = _build_track([(0, 60, TPB)])
        track.append(mido.Message("note_on", note=64, velocity=80, time=0))
        result = convert_midi(_midi(track), MIDI_CONFIG)
        assert result.notes == [Note(60, 0, 0, 500, 0)]
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.UNRELEASED_NOTE]

    def test_convert_midi_from_path(self, tmp_path):
        path = tmp_path / "song.mid"
        _midi(_build_track([(0, 67, TPB)])).save(str(path))
        result = convert_midi(path, MIDI_CONFIG)
        assert result.notes == [Note(67, 0, 0, 500, 0)]
