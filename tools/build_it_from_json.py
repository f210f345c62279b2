#!/usr/bin/env python3
"""Compile a JSON song description into an Impulse Tracker .it module."""

from __future__ import annotations

import argparse
import hashlib
import logging
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from itwriter.errors import ITWriteError  # noqa: E402
from itwriter.json_song_spec import load_song_spec  # noqa: E402
from itwriter.structs import DEFAULT_CREATED_WITH  # noqa: E402
from itwriter.writer import serialize  # noqa: E402


def _sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def _hex_word(text: str) -> int:
    return int(text, 0)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a .it file from a JSON song description",
    )
    parser.add_argument(
        "spec",
        type=Path,
        help="Path to JSON song description",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output .it path (default: description path with .it suffix)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and serialize without writing output",
    )
    parser.add_argument(
        "--created-with",
        type=_hex_word,
        default=DEFAULT_CREATED_WITH,
        help="Cwt/v tracker id written to the header (default: 0x%(default)04X)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log layout details",
    )
    return parser


def main() -> int:
    parser = _build_arg_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)-24s %(levelname)-7s %(message)s",
    )

    try:
        song = load_song_spec(args.spec)
        it_bytes = serialize(song, created_with=args.created_with)
    except ITWriteError as exc:
        print(f"error: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: invalid song description: {exc}", file=sys.stderr)
        return 1

    if args.dry_run:
        print(
            f"dry-run OK: samples={len(song.samples)} patterns={len(song.patterns)} "
            f"size={len(it_bytes)}B sha1={_sha1(it_bytes)}"
        )
        return 0

    out_path = args.output if args.output is not None else args.spec.with_suffix(".it")
    out_path = out_path.expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(it_bytes)

    print(f"Wrote {len(it_bytes)} bytes -> {out_path}")
    print(f"  samples={len(song.samples)} patterns={len(song.patterns)} orders={len(song.order_list)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
