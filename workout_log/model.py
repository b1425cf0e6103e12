import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ExerciseState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class WorkoutState(str, Enum):
    PLANNED = "planned"
    STARTED = "started"
    COMPLETED = "completed"


# checkbox character inside "- [ ]"
STATE_CHARS = {
    ExerciseState.PENDING: " ",
    ExerciseState.IN_PROGRESS: "\\",
    ExerciseState.COMPLETED: "x",
    ExerciseState.SKIPPED: "-",
}
CHAR_STATES = {c: s for s, c in STATE_CHARS.items()}

DURATION_KEY = "duration"
REPS_KEY = "reps"
WEIGHT_KEY = "weight"
REST_KEY = "rest"


@dataclass
class ExerciseParam:
    """One ``Key: value unit`` segment of an exercise line.

    ``editable`` is True for a bracketed ``[value]``. ``formula``, ``initial``
    and ``max`` come from the ``(formula){initial,max}value`` syntax.
    """
    key: str
    value: str
    editable: bool = False
    unit: Optional[str] = None
    formula: Optional[str] = None
    initial: Optional[str] = None
    max: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.key.strip().lower()


@dataclass
class Exercise:
    name: str
    state: ExerciseState = ExerciseState.PENDING
    params: List[ExerciseParam] = field(default_factory=list)
    target_duration: Optional[int] = None
    recorded_duration: Optional[str] = None
    rest_after: Optional[int] = None
    line_index: Optional[int] = field(default=None, compare=False)

    def param(self, key: str) -> Optional[ExerciseParam]:
        k = key.lower()
        return next((p for p in self.params if p.kind == k), None)


@dataclass
class WorkoutMetadata:
    title: str = ""
    state: WorkoutState = WorkoutState.PLANNED
    start_date: Optional[str] = None
    duration: Optional[str] = None
    rest_duration: Optional[int] = None


@dataclass
class Workout:
    metadata: WorkoutMetadata = field(default_factory=WorkoutMetadata)
    exercises: List[Exercise] = field(default_factory=list)

    def active_index(self) -> int:
        return next((i for i, e in enumerate(self.exercises) if e.state is ExerciseState.IN_PROGRESS), -1)

    def has_pending_after(self, index: int) -> bool:
        return any(e.state is ExerciseState.PENDING for e in self.exercises[index + 1:])

    def next_pending(self, after: int) -> int:
        """First pending exercise after ``after``, else the first one before it; -1 if none."""
        later = [i for i, e in enumerate(self.exercises) if i > after and e.state is ExerciseState.PENDING]
        if later: return later[0]
        return next((i for i, e in enumerate(self.exercises) if e.state is ExerciseState.PENDING), -1)


def workout_identity(workout: Workout, source: str = "") -> str:
    """Stable key for a block: source, title and the distinct exercise names in order.

    Independent of line positions and of how many sets each exercise has, so
    it survives metadata being filled in and sets being added.
    """
    names = list(dict.fromkeys(e.name for e in workout.exercises))
    raw = "\x1f".join([source, workout.metadata.title, *names])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
