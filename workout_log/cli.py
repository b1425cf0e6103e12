#!/usr/bin/env python3
import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from .errors import SettingsError
from .journal import WorkoutJournal
from .lint import lint
from .model import WorkoutState
from .parser import BlockPosition, block_text, find_blocks, parse_workout, sample_workout, serialize_workout
from .session import SessionManager, reset_workout
from .settings import load_settings
from .store import MarkdownStore


def _blocks(text: str, path: str) -> List[Tuple[Optional[BlockPosition], str]]:
    """Every ```workout block of a note, or the whole file when it has none."""
    found = find_blocks(text, path)
    if not found: return [(None, text)]
    return [(pos, block_text(text, pos)) for pos in found]


def _pick(blocks, index: Optional[int]):
    if index is None: return list(enumerate(blocks))
    if not 0 <= index < len(blocks):
        print(f"No workout block #{index} (found {len(blocks)})", file=sys.stderr); sys.exit(2)
    return [(index, blocks[index])]


def _splice(text: str, pos: BlockPosition, body: str) -> str:
    lines = text.split("\n")
    return "\n".join(lines[:pos.line_start + 1] + [body] + lines[pos.line_end:])


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING",
               format="<level>{level: <8}</level> {message}")


def main(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(prog="workout-log")
    ap.add_argument("-v", "--verbose", action="store_true")
    sub = ap.add_subparsers(dest="cmd", required=True)
    p1 = sub.add_parser("parse");    p1.add_argument("file"); p1.add_argument("-o", "--out")
    p2 = sub.add_parser("lint");     p2.add_argument("file")
    p3 = sub.add_parser("fmt");      p3.add_argument("file"); p3.add_argument("-i", "--in-place", action="store_true"); p3.add_argument("-o", "--out")
    p4 = sub.add_parser("progress"); p4.add_argument("file"); p4.add_argument("--block", type=int)
    p5 = sub.add_parser("complete"); p5.add_argument("file"); p5.add_argument("--block", type=int, default=0)
    p5.add_argument("--settings", help="settings JSON (logFolder, logGrouping)")
    p5.add_argument("--log-root", default=".", help="directory the log folder lives in")
    sub.add_parser("sample")
    args = ap.parse_args(argv)
    _configure_logging(args.verbose)

    if args.cmd == "sample":
        print(serialize_workout(sample_workout())); sys.exit(0)

    path = Path(args.file)
    text = path.read_text(encoding="utf-8")
    blocks = _blocks(text, str(path))

    if args.cmd == "parse":
        data = json.dumps([asdict(parse_workout(body)) for _, body in blocks], ensure_ascii=False, indent=2)
        if args.out: Path(args.out).write_text(data, encoding="utf-8"); print(f"Saved -> {args.out}")
        else: print(data)
        sys.exit(0)

    if args.cmd == "lint":
        errors = False
        for n, (_, body) in enumerate(blocks):
            for i in lint(parse_workout(body)):
                print(f"{i['level'].upper()} {i['code']} BLOCK[{n}].{i['path']}: {i['msg']}")
                errors = errors or i["level"] == "error"
        sys.exit(1 if errors else 0)

    if args.cmd == "fmt":
        out = text
        for pos, body in reversed(blocks):
            formatted = serialize_workout(parse_workout(body))
            out = formatted + "\n" if pos is None else _splice(out, pos, formatted)
        if args.out: Path(args.out).write_text(out, encoding="utf-8"); print(f"Saved -> {args.out}")
        elif args.in_place: path.write_text(out, encoding="utf-8")
        else: print(out, end="" if out.endswith("\n") else "\n")
        sys.exit(0)

    if args.cmd == "progress":
        for n, (_, body) in _pick(blocks, args.block):
            workout = reset_workout(parse_workout(body))
            print(f"# block {n}\n{serialize_workout(workout)}\n")
        sys.exit(0)

    if args.cmd == "complete":
        try:
            settings = load_settings(args.settings)
        except SettingsError as e:
            print(e, file=sys.stderr); sys.exit(2)
        (n, (pos, body)), = _pick(blocks, args.block)
        manager = SessionManager(store=MarkdownStore() if pos is not None else None,
                                 recorder=WorkoutJournal(settings, args.log_root))
        session = manager.open(body, source=str(path), position=pos)
        if session.workout.metadata.state is WorkoutState.PLANNED:
            session.start()
        ok = session.finish_workout() if session.workout.metadata.state is WorkoutState.STARTED else session.flush()
        if pos is None and ok:
            path.write_text(session.text + "\n", encoding="utf-8")
        print(f"Completed '{session.workout.metadata.title}' (block {n})" if ok else "Workout was not saved", file=sys.stderr)
        sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
