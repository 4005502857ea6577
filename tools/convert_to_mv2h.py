#!/usr/bin/env python3
"""Convert a parsed MusicXML event stream or a MIDI file into MV2H format.

Examples
--------
Parsed MusicXML from stdin to stdout:
    python tools/convert_to_mv2h.py -x < piece_parsed.txt

MIDI, separating voices by channel only:
    python tools/convert_to_mv2h.py -m -i piece.mid --channel -o piece.mv2h

Show the record stream a MIDI file turns into:
    python tools/convert_to_mv2h.py -m -i piece.mid --dump-records
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mv2h_convert.hierarchy import DEFAULT_MS_PER_BEAT, MUSICXML_MS_PER_BEAT  # noqa: E402
from mv2h_convert.midi_source import convert_midi, load_midi  # noqa: E402
from mv2h_convert.output import to_text  # noqa: E402
from mv2h_convert.records import format_record  # noqa: E402
from mv2h_convert.session import (  # noqa: E402
    ConversionResult,
    SessionConfig,
    convert_lines,
)
from mv2h_convert.voices import MIDI_VOICE_FIELDS, MUSICXML_VOICE_FIELDS  # noqa: E402


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert parsed MusicXML or MIDI into MV2H notes, tatums, keys and meter",
    )
    fmt = parser.add_mutually_exclusive_group(required=True)
    fmt.add_argument("-x", dest="musicxml", action="store_true", help="Convert from parsed MusicXML")
    fmt.add_argument("-m", dest="midi", action="store_true", help="Convert from MIDI")
    parser.add_argument(
        "-i",
        dest="input",
        type=Path,
        default=None,
        help="Read input from FILE (required for MIDI; MusicXML defaults to stdin)",
    )
    parser.add_argument(
        "-o",
        dest="output",
        type=Path,
        default=None,
        help="Write output to FILE (default: stdout)",
    )
    parser.add_argument(
        "-a",
        dest="anacrusis",
        type=int,
        default=None,
        help="Length of the anacrusis (pick-up bar), in sub-beats",
    )
    parser.add_argument(
        "--ms-per-beat",
        type=int,
        default=None,
        help=f"Beat length in ms (default: {MUSICXML_MS_PER_BEAT} for -x, {DEFAULT_MS_PER_BEAT} for -m)",
    )

    voices = parser.add_argument_group(
        "voice separation", "Fields that separate voices; defaults to all fields of the format"
    )
    for name, help_text in (
        ("part", "MusicXML: separate voices by part (instrument)"),
        ("staff", "MusicXML: separate voices by staff"),
        ("voice", "MusicXML: separate voices by voice"),
        ("channel", "MIDI: separate voices by channel"),
        ("track", "MIDI: separate voices by track"),
    ):
        voices.add_argument(f"--{name}", action="store_true", help=help_text)

    parser.add_argument(
        "--dump-records",
        action="store_true",
        help="Print the tagged record stream instead of converting (MIDI only)",
    )
    parser.add_argument("--quiet", action="store_true", help="Only log errors")
    return parser


def _voice_fields(args: argparse.Namespace, parser: argparse.ArgumentParser) -> List[str]:
    allowed = MIDI_VOICE_FIELDS if args.midi else MUSICXML_VOICE_FIELDS
    other = MUSICXML_VOICE_FIELDS if args.midi else MIDI_VOICE_FIELDS
    chosen = [name for name in sorted(allowed | other) if getattr(args, name)]
    wrong = [name for name in chosen if name not in allowed]
    if wrong:
        flags = " ".join(f"--{name}" for name in wrong)
        parser.error(f"{flags} cannot be used with {'-m' if args.midi else '-x'}")
    return chosen or sorted(allowed)


def _convert(args: argparse.Namespace, config: SessionConfig) -> ConversionResult:
    if args.midi:
        return convert_midi(args.input, config)
    if args.input is not None:
        with args.input.open("r", encoding="utf-8") as handle:
            return convert_lines(handle, config)
    return convert_lines(sys.stdin, config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.ERROR if args.quiet else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if args.midi and args.input is None:
        parser.error("-i FILE is required with MIDI files (-m)")
    if args.input is not None and not args.input.exists():
        parser.error(f"input file {args.input} does not exist")
    if args.anacrusis is not None and args.anacrusis < 0:
        parser.error("anacrusis must not be negative")
    if args.ms_per_beat is not None and args.ms_per_beat <= 0:
        parser.error("--ms-per-beat must be positive")
    if args.dump_records and not args.midi:
        parser.error("--dump-records requires -m")

    if args.dump_records:
        try:
            records = load_midi(args.input)
        except (OSError, ValueError, EOFError) as exc:
            print(f"Error reading from {args.input}:\n{exc}", file=sys.stderr)
            return 1
        for record in records:
            print(format_record(record))
        return 0

    default_ms = DEFAULT_MS_PER_BEAT if args.midi else MUSICXML_MS_PER_BEAT
    config = SessionConfig(
        ms_per_beat=args.ms_per_beat if args.ms_per_beat is not None else default_ms,
        voice_fields=frozenset(_voice_fields(args, parser)),
        anacrusis_sub_beats=args.anacrusis,
    )

    try:
        result = _convert(args, config)
    except (OSError, ValueError, EOFError) as exc:
        print(f"Error reading from {args.input}:\n{exc}", file=sys.stderr)
        return 1

    text = to_text(result)
    if args.output is not None:
        try:
            args.output.write_text(text, encoding="utf-8")
            return 0
        except OSError as exc:
            print(f"Error writing to {args.output}:\n{exc}", file=sys.stderr)
            print("\nPrinting to std out instead:", file=sys.stderr)
    sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
