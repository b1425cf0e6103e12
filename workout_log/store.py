"""Writes workout blocks back into markdown notes on disk.

Every commit re-reads the note under a per-path lock, checks that the fences
are still where the caller thinks they are (and, optionally, that the block
still carries the expected title) and replaces the block body. Anything off
fails closed: nothing is written and ``commit`` returns False.
"""
import re
import threading
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from .errors import PersistenceError
from .model import workout_identity
from .parser import FENCE_CLOSE_RE, FENCE_OPEN_RE, BlockPosition, block_text, find_blocks, parse_workout

TITLE_RE = re.compile(r'^\s*title:\s*(.+?)\s*$', re.M)


class MarkdownStore:
    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock(self, path: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(str(Path(path).resolve()), threading.Lock())

    def locate(self, path: str, workout_id: str, near: Optional[BlockPosition] = None) -> Optional[BlockPosition]:
        """Fresh position of the block whose identity is ``workout_id``.

        Identical blocks share an identity; among several matches the one
        closest to ``near`` wins, and without ``near`` there is no answer.
        """
        p = Path(path)
        if not p.is_file(): return None
        note = p.read_text(encoding="utf-8")
        matches = [pos for pos in find_blocks(note, path)
                   if workout_identity(parse_workout(block_text(note, pos)), path) == workout_id]
        if len(matches) <= 1: return matches[0] if matches else None
        if near is None:
            logger.warning("{} identical workout blocks in {}; cannot tell which one to write", len(matches), path)
            return None
        return min(matches, key=lambda pos: abs(pos.line_start - near.line_start))

    def commit(self, context: BlockPosition, new_text: str, expected_title: Optional[str] = None) -> bool:
        try:
            with self._lock(context.path):
                self._splice(context, new_text, expected_title)
        except PersistenceError as e:
            logger.error("Workout block not written: {}", e)
            return False
        logger.info("Wrote workout block at {}:{}", context.path, context.line_start)
        return True

    def _splice(self, pos: BlockPosition, new_text: str, expected_title: Optional[str]) -> None:
        p = Path(pos.path)
        if not p.is_file():
            raise PersistenceError(f"file not found: {pos.path}")
        try:
            lines = p.read_text(encoding="utf-8").split("\n")
        except OSError as e:
            raise PersistenceError(f"cannot read {pos.path}: {e}") from e
        if pos.line_start >= len(lines) or not FENCE_OPEN_RE.match(lines[pos.line_start]):
            raise PersistenceError(f"stale position: no ```workout fence at line {pos.line_start} of {pos.path}")
        if pos.line_end >= len(lines) or pos.line_end <= pos.line_start or not FENCE_CLOSE_RE.match(lines[pos.line_end]):
            raise PersistenceError(f"stale position: no closing fence at line {pos.line_end} of {pos.path}")
        if expected_title:
            m = TITLE_RE.search("\n".join(lines[pos.line_start + 1:pos.line_end]))
            actual = m.group(1) if m else None
            if actual and actual != expected_title:
                raise PersistenceError(f"title mismatch: expected '{expected_title}' but found '{actual}'")
        out = lines[:pos.line_start + 1] + [new_text] + lines[pos.line_end:]
        try:
            p.write_text("\n".join(out), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"cannot write {pos.path}: {e}") from e
