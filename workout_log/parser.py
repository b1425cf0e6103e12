"""Text codec for ```workout blocks.

A block is a small metadata header, a ``---`` line, then one exercise set per
line::

    title: Push Day
    state: planned
    restDuration: 90s
    ---
    - [ ] Bench Press | Weight: [(w+2.5){60,80}70] kg | Reps: [(r+1){8,12}10]
    - [ ] Plank | Duration: [60s] | Rest: [30s]

Parsing is permissive: anything it does not understand is dropped rather than
raised.
"""
import copy
import re
from dataclasses import dataclass
from typing import List, Optional

from .durations import parse_duration
from .model import (CHAR_STATES, DURATION_KEY, REST_KEY, STATE_CHARS, Exercise, ExerciseParam,
                    ExerciseState, Workout, WorkoutMetadata, WorkoutState)
from .progression import format_progression_value, parse_progression_value

EXERCISE_RE = re.compile(r'^-\s*\[(.)\]\s*(.+)$')
BRACKET_RE = re.compile(r'^\[([^\]]*)\](.*)$', re.S)
META_RE = re.compile(r'^([A-Za-z][A-Za-z0-9_]*)\s*:\s*(.*)$')
SEPARATOR = "---"
FENCE_OPEN_RE = re.compile(r'^\s*```workout\s*$')
FENCE_CLOSE_RE = re.compile(r'^\s*```\s*$')


def parse_param(segment: str) -> Optional[ExerciseParam]:
    if ":" not in segment: return None
    key, rest = segment.split(":", 1)
    key = key.strip(); rest = rest.strip()
    if not key: return None
    m = BRACKET_RE.match(rest)
    if m:
        pv = parse_progression_value(m.group(1))
        unit = m.group(2).strip() or None
        return ExerciseParam(key, pv.value, True, unit, pv.formula, pv.initial, pv.max)
    parts = rest.split(None, 1)
    first = parts[0] if parts else ""
    unit = parts[1].strip() if len(parts) > 1 else None
    pv = parse_progression_value(first)
    return ExerciseParam(key, pv.value, False, unit or None, pv.formula, pv.initial, pv.max)


def parse_line(line: str, line_index: Optional[int] = None) -> Optional[Exercise]:
    """One ``- [c] name | Key: value`` line, or None when it is not an exercise."""
    m = EXERCISE_RE.match(line.strip())
    if not m: return None
    state = CHAR_STATES.get(m.group(1), ExerciseState.PENDING)
    parts = [p.strip() for p in m.group(2).split("|")]
    ex = Exercise(name=parts[0], state=state, line_index=line_index)
    for seg in parts[1:]:
        p = parse_param(seg)
        if p is None: continue
        if p.kind == REST_KEY:
            text = p.value if p.editable or not p.unit else f"{p.value} {p.unit}"
            if text: ex.rest_after = parse_duration(text)
            continue
        ex.params.append(p)
        if p.kind == DURATION_KEY:
            if p.editable: ex.target_duration = parse_duration(p.value)
            else: ex.recorded_duration = p.value + (f" {p.unit}" if p.unit else "")
    return ex


def serialize_param(p: ExerciseParam) -> str:
    v = format_progression_value(p.value, p.formula, p.initial, p.max)
    out = f"{p.key}: " + (f"[{v}]" if p.editable else v)
    return out + (f" {p.unit}" if p.unit else "")


def serialize_line(ex: Exercise) -> str:
    line = f"- [{STATE_CHARS[ex.state]}] {ex.name}"
    for p in ex.params:
        line += " | " + serialize_param(p)
    if ex.rest_after is not None:
        line += f" | Rest: [{ex.rest_after}s]"
    return line


def _meta_value(raw: str) -> Optional[str]:
    v = raw.strip()
    if v.startswith("[") and v.endswith("]"): v = v[1:-1].strip()
    return v or None


def parse_workout(text: str) -> Workout:
    md = WorkoutMetadata(); exercises: List[Exercise] = []
    in_body = False
    for i, raw in enumerate(text.splitlines()):
        line = raw.strip()
        if not line: continue
        if line == SEPARATOR: in_body = True; continue
        ex = parse_line(line, i)
        if ex is not None: exercises.append(ex); continue
        if in_body: continue
        m = META_RE.match(line)
        if not m: continue
        key = m.group(1).lower(); val = _meta_value(m.group(2))
        if key == "title": md.title = val or ""
        elif key == "state":
            try: md.state = WorkoutState(val or "planned")
            except ValueError: md.state = WorkoutState.PLANNED
        elif key == "startdate": md.start_date = val
        elif key == "duration": md.duration = val
        elif key == "restduration": md.rest_duration = parse_duration(val) if val else None
    return Workout(md, exercises)


def serialize_workout(workout: Workout) -> str:
    md = workout.metadata
    lines = [f"title: {md.title}", f"state: {md.state.value}"]
    if md.start_date: lines.append(f"startDate: {md.start_date}")
    if md.duration: lines.append(f"duration: {md.duration}")
    if md.rest_duration is not None: lines.append(f"restDuration: {md.rest_duration}s")
    lines.append(SEPARATOR)
    lines.extend(serialize_line(ex) for ex in workout.exercises)
    return "\n".join(lines)


@dataclass(frozen=True)
class BlockPosition:
    """Where a block sits in a note: the opening and closing fence line indexes."""
    path: str
    line_start: int
    line_end: int


def find_blocks(note: str, path: str = "") -> List[BlockPosition]:
    out: List[BlockPosition] = []
    lines = note.split("\n"); start = None
    for i, ln in enumerate(lines):
        if start is None:
            if FENCE_OPEN_RE.match(ln): start = i
        elif FENCE_CLOSE_RE.match(ln):
            out.append(BlockPosition(path, start, i)); start = None
    return out


def block_text(note: str, pos: BlockPosition) -> str:
    return "\n".join(note.split("\n")[pos.line_start + 1:pos.line_end])


def sample_workout() -> Workout:
    md = WorkoutMetadata(title="Sample Workout", rest_duration=90)
    return Workout(md, [
        parse_line("- [ ] Squat | Weight: [(w+2.5){60,100}60] kg | Reps: [(r+1){8,12}8]"),
        parse_line("- [ ] Squat | Weight: [(w+2.5){60,100}60] kg | Reps: [(r+1){8,12}8]"),
        parse_line("- [ ] Push-ups | Reps: [(r+2){10,30}10] | Rest: [60s]"),
        parse_line("- [ ] Plank | Duration: [60s]"),
    ])


# in-place mutations used by the session

def update_param_value(workout: Workout, index: int, key: str, value: str) -> bool:
    if not 0 <= index < len(workout.exercises): return False
    ex = workout.exercises[index]
    p = next((p for p in ex.params if p.key == key), None) or ex.param(key)
    if p is None or p.value == value: return False
    p.value = value
    if p.kind == DURATION_KEY and p.editable: ex.target_duration = parse_duration(value)
    return True


def set_recorded_duration(ex: Exercise, text: str) -> None:
    """Record a measured duration. A countdown target (editable Duration) is kept as is."""
    ex.recorded_duration = text
    current = ex.param(DURATION_KEY)
    if current is not None and current.editable: return
    value, _, unit = text.partition(" ")
    recorded = ExerciseParam("Duration", value, False, unit or None)
    if current is None: ex.params.append(recorded)
    else: ex.params[ex.params.index(current)] = recorded


def clear_recorded_duration(ex: Exercise) -> None:
    ex.recorded_duration = None
    ex.params = [p for p in ex.params if not (p.kind == DURATION_KEY and not p.editable)]


def lock_all_fields(workout: Workout) -> Workout:
    """Make every param bare; a countdown target becomes what was recorded for it."""
    for ex in workout.exercises:
        d = ex.param(DURATION_KEY)
        if d is not None and d.editable:
            if ex.recorded_duration:
                value, _, unit = ex.recorded_duration.partition(" ")
                d.value = value; d.unit = unit or None
            ex.recorded_duration = d.value + (f" {d.unit}" if d.unit else "")
        for p in ex.params: p.editable = False
        ex.target_duration = None
    return workout


def clone_set(ex: Exercise) -> Exercise:
    twin = copy.deepcopy(ex)
    twin.line_index = None
    clear_recorded_duration(twin)
    return twin

