#!/usr/bin/env python3
"""Render MIDI tracks into WAVE files using a sample clip as the instrument.

Examples
--------
Render the first track with the default clip (wave.wav):
    python tools/midify_cli.py make song.mid

Pick a clip, track and output, replacing an existing file:
    python tools/midify_cli.py make song.mid -c piano.wav --track 1 -o song.wav --force

Summarize MIDI files:
    python tools/midify_cli.py info "midi/*.mid"
"""

from __future__ import annotations

import argparse
import glob
import logging
import sys
from pathlib import Path
from typing import Iterable, List

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from midify.errors import MidifyError  # noqa: E402
from midify.midi import Midi  # noqa: E402
from midify.wave import Wave  # noqa: E402

DEFAULT_CLIP = "wave.wav"
DEFAULT_OUTPUT = "out.wav"
UNITY_VOLUME = 64


def collect_paths(patterns: Iterable[str]) -> List[Path]:
    paths: List[Path] = []
    for pattern in patterns:
        matches = sorted(Path(p) for p in glob.glob(pattern, recursive=True))
        if matches:
            paths.extend(matches)
        else:
            # Literal path; missing files are reported per row.
            paths.append(Path(pattern))
    return paths


def cmd_make(args: argparse.Namespace) -> int:
    midi = Midi.load(args.midi)
    if not midi.tracks:
        print(f"error: {args.midi} has no playable tracks", file=sys.stderr)
        return 1
    if not 0 <= args.track < len(midi.tracks):
        print(
            f"error: track {args.track} out of range (file has {len(midi.tracks)})",
            file=sys.stderr,
        )
        return 1

    clip = Wave.load(args.clip)
    wave = midi.track_to_wave(args.track, clip)
    if args.volume != UNITY_VOLUME:
        wave.scale_volume(args.volume)
    out = wave.save(args.output, overwrite=args.force)
    print(f"{out}: {wave.frame_count} frames, {wave.duration:.2f}s")
    return 0


def _summarize(path: Path) -> List[str]:
    midi = Midi.load(path)
    tempo = "120.0"
    if midi.tempo_changes and midi.tempo_changes[0].absolute_tick == 0:
        tempo = f"{midi.tempo_changes[0].payload.bpm:.1f}"
    time_sig = "-"
    if midi.time_signature_changes:
        ts = midi.time_signature_changes[0].payload
        time_sig = f"{ts.numerator}/{ts.beat_unit}"
    return [
        str(path),
        str(midi.header.format_type),
        f"{len(midi.tracks)}/{midi.header.track_count}",
        str(midi.division),
        tempo,
        str(len(midi.tempo_changes)),
        time_sig,
        str(sum(len(t.events) for t in midi.tracks)),
        str(max((t.tick_size for t in midi.tracks), default=0)),
    ]


def cmd_info(args: argparse.Namespace) -> int:
    targets = collect_paths(args.paths)
    rows = []
    failed = False
    for path in targets:
        try:
            rows.append(_summarize(path))
        except (MidifyError, OSError) as err:
            failed = True
            rows.append([str(path), "ERR", str(err), "", "", "", "", "", ""])

    header = ["File", "Fmt", "Tracks", "Division", "BPM", "Tempos", "TimeSig", "Events", "Ticks"]
    widths = [max(len(row[i]) for row in ([header] + rows)) for i in range(len(header))]

    def fmt_row(row: List[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    print(fmt_row(header))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print(fmt_row(row))
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="midify",
        description="Render MIDI tracks into 16-bit / 44100 Hz stereo WAVE files.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("help", help="Show this message.")

    make = sub.add_parser("make", help="Render a MIDI track into a WAVE file.")
    make.add_argument("midi", type=Path, help="MIDI file to render.")
    make.add_argument(
        "-c", "--clip", type=Path, default=Path(DEFAULT_CLIP),
        help=f"WAVE clip played for every note (default: {DEFAULT_CLIP}).",
    )
    make.add_argument(
        "-o", "--output", type=Path, default=Path(DEFAULT_OUTPUT),
        help=f"Output WAVE path (default: {DEFAULT_OUTPUT}).",
    )
    make.add_argument(
        "--track", type=int, default=0,
        help="Index of the playable track to render (default: 0).",
    )
    make.add_argument(
        "--volume", type=int, default=UNITY_VOLUME,
        help=f"Output volume, {UNITY_VOLUME} = unchanged (default: {UNITY_VOLUME}).",
    )
    make.add_argument("--force", action="store_true", help="Overwrite an existing output file.")

    info = sub.add_parser("info", help="Summarize MIDI files.")
    info.add_argument(
        "paths", nargs="+",
        help="File paths or glob patterns (quotes recommended for wildcards).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command in (None, "help"):
        parser.print_help()
        return 0

    try:
        if args.command == "make":
            return cmd_make(args)
        return cmd_info(args)
    except (MidifyError, OSError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
