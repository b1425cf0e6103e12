"""Per-workout timers.

Timers are passive accumulators read against an injectable monotonic clock;
nothing runs in the background. The host calls ``WorkoutSession.tick()`` on
its own schedule and the session asks the timer how much time has passed.

Workout elapsed always runs once started. Exercise elapsed pauses, freezes
while resting and restarts from zero on every advance.
"""
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from loguru import logger


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    RESTING = "resting"


@dataclass(frozen=True)
class TimerSnapshot:
    status: TimerStatus
    active_index: int
    workout_elapsed: int
    exercise_elapsed: int
    rest_remaining: Optional[int] = None


@dataclass
class _Timer:
    active_index: int
    workout_started: float
    exercise_resumed: Optional[float]
    exercise_accum: float = 0.0
    status: TimerStatus = TimerStatus.RUNNING
    rest_started: Optional[float] = None
    rest_duration: int = 0


class TimerManager:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._timers: Dict[str, _Timer] = {}

    def start_workout(self, workout_id: str, active_index: int) -> None:
        now = self.clock()
        self._timers[workout_id] = _Timer(active_index, now, now)
        logger.debug("Timer started for {} at exercise {}", workout_id, active_index)

    def stop_workout(self, workout_id: str) -> None:
        if self._timers.pop(workout_id, None) is not None:
            logger.debug("Timer stopped for {}", workout_id)

    def destroy(self) -> None:
        self._timers.clear()

    def is_running(self, workout_id: str) -> bool:
        return workout_id in self._timers

    def status(self, workout_id: str) -> TimerStatus:
        t = self._timers.get(workout_id)
        return t.status if t else TimerStatus.IDLE

    def active_index(self, workout_id: str) -> int:
        t = self._timers.get(workout_id)
        return t.active_index if t else -1

    def set_active_index(self, workout_id: str, index: int) -> None:
        t = self._timers.get(workout_id)
        if t is None: return
        logger.debug("Timer for {} re-synced from exercise {} to {}", workout_id, t.active_index, index)
        t.active_index = index

    def _freeze(self, t: _Timer, now: float) -> None:
        if t.exercise_resumed is not None:
            t.exercise_accum += now - t.exercise_resumed
            t.exercise_resumed = None

    def advance_exercise(self, workout_id: str, index: int) -> None:
        t = self._timers.get(workout_id)
        if t is None: return
        t.active_index = index
        t.exercise_accum = 0.0
        t.exercise_resumed = self.clock()
        t.status = TimerStatus.RUNNING
        t.rest_started = None; t.rest_duration = 0

    def pause_exercise(self, workout_id: str) -> None:
        t = self._timers.get(workout_id)
        if t is None or t.status is not TimerStatus.RUNNING: return
        self._freeze(t, self.clock())
        t.status = TimerStatus.PAUSED

    def resume_exercise(self, workout_id: str) -> None:
        t = self._timers.get(workout_id)
        if t is None or t.status is not TimerStatus.PAUSED: return
        t.exercise_resumed = self.clock()
        t.status = TimerStatus.RUNNING

    def start_rest(self, workout_id: str, seconds: int) -> None:
        t = self._timers.get(workout_id)
        if t is None: return
        now = self.clock()
        self._freeze(t, now)
        t.status = TimerStatus.RESTING
        t.rest_started = now; t.rest_duration = int(seconds)

    def end_rest(self, workout_id: str) -> None:
        t = self._timers.get(workout_id)
        if t is None or t.status is not TimerStatus.RESTING: return
        t.status = TimerStatus.RUNNING
        t.rest_started = None; t.rest_duration = 0
        t.exercise_resumed = self.clock()

    def snapshot(self, workout_id: str) -> Optional[TimerSnapshot]:
        t = self._timers.get(workout_id)
        if t is None: return None
        now = self.clock()
        exercise = t.exercise_accum + (now - t.exercise_resumed if t.exercise_resumed is not None else 0.0)
        remaining = None
        if t.status is TimerStatus.RESTING and t.rest_started is not None:
            remaining = max(0, math.ceil(t.rest_duration - (now - t.rest_started)))
        return TimerSnapshot(t.status, t.active_index, int(now - t.workout_started), int(exercise), remaining)
