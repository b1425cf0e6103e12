"""Workout session state machine.

A ``WorkoutSession`` owns one freshly parsed ``Workout`` and mutates it in
place through the session: start, finish/skip an exercise, rest, add a set,
edit a parameter. Every transition ends with a flush of the whole block
through the persistence collaborator. When nothing is left pending the
workout is completed: a locked copy goes to the recorder, then the workout is
reset to ``planned`` and progressed for the next session.

The text is the source of truth. ``SessionManager.open`` re-parses on every
render and reconciles the (derived) timer with what the text says.
"""
import copy
import time
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from loguru import logger

from .durations import format_human
from .model import ExerciseState, Exercise, Workout, WorkoutState, workout_identity
from .parser import (BlockPosition, clear_recorded_duration, clone_set, lock_all_fields, parse_workout,
                     serialize_workout, set_recorded_duration, update_param_value)
from .progression import progress_exercises
from .timer import TimerManager, TimerStatus

START_DATE_FORMAT = "%Y-%m-%d %H:%M"


class BlockStore(Protocol):
    def commit(self, context: Any, new_text: str, expected_title: Optional[str] = None) -> bool: ...


class WorkoutRecorder(Protocol):
    def record(self, workout: Workout) -> None: ...


def reset_workout(workout: Workout) -> Workout:
    """Back to ``planned`` and progressed; exercises skipped this session do not progress."""
    skipped = {e.name for e in workout.exercises if e.state is ExerciseState.SKIPPED}
    md = workout.metadata
    md.state = WorkoutState.PLANNED
    md.start_date = None; md.duration = None
    for ex in workout.exercises:
        ex.state = ExerciseState.PENDING
        clear_recorded_duration(ex)
    workout.exercises = progress_exercises(workout.exercises, exempt=skipped)
    return workout


class WorkoutSession:
    def __init__(self, workout: Workout, workout_id: str, timers: TimerManager,
                 store: Optional[BlockStore] = None,
                 context: Optional[Callable[[], Any]] = None,
                 recorder: Optional[WorkoutRecorder] = None,
                 now: Callable[[], datetime] = datetime.now):
        self.workout = workout
        self.workout_id = workout_id
        self.timers = timers
        self.pending = False
        self.text = serialize_workout(workout)
        self._store = store
        self._context = context
        self._recorder = recorder
        self._now = now

    # persistence

    def flush(self) -> bool:
        """Write pending changes. On failure they stay pending for the next call."""
        if not self.pending: return True
        text = serialize_workout(self.workout)
        title = self.workout.metadata.title
        if self._store is not None:
            ctx = self._context() if self._context else None
            if ctx is None:
                logger.error("No position for workout '{}'; changes kept until the next flush", title)
                return False
            if not self._store.commit(ctx, text, title or None):
                logger.error("Workout '{}' was not saved; changes kept until the next flush", title)
                return False
        self.text = text
        self.pending = False
        return True

    def _commit(self) -> bool:
        self.pending = True
        return self.flush()

    def _active(self, index: int, action: str) -> Optional[Exercise]:
        if self.workout.metadata.state is not WorkoutState.STARTED:
            logger.warning("Ignoring {} on '{}': workout is {}", action, self.workout.metadata.title,
                           self.workout.metadata.state.value)
            return None
        if not 0 <= index < len(self.workout.exercises):
            logger.warning("Ignoring {}: no exercise #{}", action, index); return None
        ex = self.workout.exercises[index]
        if ex.state is not ExerciseState.IN_PROGRESS:
            logger.warning("Ignoring {} on '{}': it is {}", action, ex.name, ex.state.value); return None
        return ex

    def _record_elapsed(self, ex: Exercise, only_if_any: bool = False) -> None:
        snap = self.timers.snapshot(self.workout_id)
        if snap is None or (only_if_any and snap.exercise_elapsed <= 0): return
        set_recorded_duration(ex, format_human(snap.exercise_elapsed))

    def _advance(self, index: int) -> bool:
        nxt = self.workout.next_pending(index)
        if nxt < 0: return self._complete()
        self.workout.exercises[nxt].state = ExerciseState.IN_PROGRESS
        self.timers.advance_exercise(self.workout_id, nxt)
        logger.debug("Advanced to '{}' (#{})", self.workout.exercises[nxt].name, nxt)
        return self._commit()

    # transitions

    def start(self) -> bool:
        md = self.workout.metadata
        if md.state is not WorkoutState.PLANNED:
            logger.warning("Ignoring start on '{}': workout is {}", md.title, md.state.value)
            return False
        md.state = WorkoutState.STARTED
        md.start_date = self._now().strftime(START_DATE_FORMAT)
        first = self.workout.next_pending(-1)
        self.timers.start_workout(self.workout_id, max(first, 0))
        if first < 0: return self._complete()
        self.workout.exercises[first].state = ExerciseState.IN_PROGRESS
        return self._commit()

    def finish_exercise(self, index: int) -> bool:
        ex = self._active(index, "finish")
        if ex is None: return False
        if self.timers.status(self.workout_id) is TimerStatus.RESTING:
            logger.warning("Ignoring finish on '{}': already resting", ex.name); return False
        self._record_elapsed(ex)
        rest = ex.rest_after if ex.rest_after is not None else self.workout.metadata.rest_duration
        if rest and self.workout.has_pending_after(index):
            self.timers.start_rest(self.workout_id, rest)
            logger.debug("Resting {}s after '{}'", rest, ex.name)
            return self._commit()
        ex.state = ExerciseState.COMPLETED
        return self._advance(index)

    def complete_rest(self, index: int) -> bool:
        ex = self._active(index, "rest completion")
        if ex is None: return False
        self.timers.end_rest(self.workout_id)
        ex.state = ExerciseState.COMPLETED
        return self._advance(index)

    skip_rest = complete_rest

    def add_set(self, index: int) -> bool:
        ex = self._active(index, "add set")
        if ex is None: return False
        self._record_elapsed(ex)
        ex.state = ExerciseState.COMPLETED
        twin = clone_set(ex)
        twin.state = ExerciseState.IN_PROGRESS
        self.workout.exercises.insert(index + 1, twin)
        self.timers.advance_exercise(self.workout_id, index + 1)
        return self._commit()

    def skip_exercise(self, index: int) -> bool:
        ex = self._active(index, "skip")
        if ex is None: return False
        self.timers.end_rest(self.workout_id)
        self._record_elapsed(ex, only_if_any=True)
        ex.state = ExerciseState.SKIPPED
        return self._advance(index)

    def edit_param(self, index: int, key: str, value: str) -> bool:
        """Edit in memory only; call ``flush`` to persist."""
        changed = update_param_value(self.workout, index, key, value)
        if changed: self.pending = True
        return changed

    def pause(self) -> None:
        self.timers.pause_exercise(self.workout_id)

    def resume(self) -> None:
        self.timers.resume_exercise(self.workout_id)

    def tick(self) -> Optional[str]:
        """Host wake-up. Returns the transition it triggered, if any."""
        snap = self.timers.snapshot(self.workout_id)
        if snap is None: return None
        if snap.status is TimerStatus.RESTING and snap.rest_remaining == 0:
            if self.complete_rest(snap.active_index): return "rest_complete"
            # refused: drop the spent rest so it does not fire again
            self.timers.end_rest(self.workout_id)
            return None
        if snap.status is TimerStatus.RUNNING and 0 <= snap.active_index < len(self.workout.exercises):
            ex = self.workout.exercises[snap.active_index]
            if (ex.state is ExerciseState.IN_PROGRESS and ex.target_duration
                    and snap.exercise_elapsed >= ex.target_duration
                    and self.finish_exercise(snap.active_index)):
                return "exercise_finished"
        return None

    def finish_workout(self) -> bool:
        if self.workout.metadata.state is not WorkoutState.STARTED:
            logger.warning("Ignoring finish on '{}': workout is {}", self.workout.metadata.title,
                           self.workout.metadata.state.value)
            return False
        return self._complete()

    def _elapsed(self) -> int:
        snap = self.timers.snapshot(self.workout_id)
        if snap is not None: return snap.workout_elapsed
        try:
            started = datetime.strptime(self.workout.metadata.start_date or "", START_DATE_FORMAT)
        except ValueError:
            return 0
        return max(0, int((self._now() - started).total_seconds()))

    def _complete(self) -> bool:
        md = self.workout.metadata
        md.state = WorkoutState.COMPLETED
        md.duration = format_human(self._elapsed())
        record = lock_all_fields(copy.deepcopy(self.workout))
        if self._recorder is not None:
            try:
                self._recorder.record(record)
            except OSError as e:
                logger.error("Could not log workout '{}': {}", md.title, e)
        logger.info("Workout '{}' completed in {}", md.title, md.duration)
        reset_workout(self.workout)
        self.timers.stop_workout(self.workout_id)
        return self._commit()


class _Locator:
    """Position provider that remembers where its block was last found."""

    def __init__(self, locate: Callable[..., Optional[BlockPosition]], source: str, workout_id: str,
                 last: Optional[BlockPosition] = None):
        self.locate = locate
        self.source = source
        self.workout_id = workout_id
        self.last = last

    def __call__(self) -> Optional[BlockPosition]:
        pos = self.locate(self.source, self.workout_id, near=self.last)
        if pos is not None: self.last = pos
        return pos


class SessionManager:
    """Owns the timers and hands out one session per render of a block."""

    def __init__(self, store: Optional[BlockStore] = None, recorder: Optional[WorkoutRecorder] = None,
                 clock: Callable[[], float] = time.monotonic,
                 now: Callable[[], datetime] = datetime.now):
        self.timers = TimerManager(clock)
        self.store = store
        self.recorder = recorder
        self.now = now

    def open(self, text: str, source: str = "", context: Optional[Callable[[], Any]] = None,
             position: Optional[BlockPosition] = None) -> WorkoutSession:
        """Session for one block. ``position`` is where the block was read from;
        it tells identical blocks of the same note apart."""
        workout = parse_workout(text)
        workout_id = workout_identity(workout, source)
        self.sync(workout_id, workout)
        locate = getattr(self.store, "locate", None)
        if context is None and locate is not None and source:
            context = _Locator(locate, source, workout_id, position)
        return WorkoutSession(workout, workout_id, self.timers, self.store, context, self.recorder, self.now)

    def sync(self, workout_id: str, workout: Workout) -> None:
        """Bring the timer in line with re-parsed text (undo, external edits)."""
        if not self.timers.is_running(workout_id): return
        if workout.metadata.state is not WorkoutState.STARTED:
            logger.info("Workout '{}' is no longer started; stopping its timer", workout.metadata.title)
            self.timers.stop_workout(workout_id)
            return
        parsed = workout.active_index()
        if parsed >= 0 and parsed != self.timers.active_index(workout_id):
            self.timers.set_active_index(workout_id, parsed)

    def close(self) -> None:
        self.timers.destroy()
