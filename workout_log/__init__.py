"""Workout blocks in markdown: parse, run a session, progress between sessions."""
from .durations import format_clock, format_human, parse_duration
from .errors import EvaluationError, PersistenceError, SettingsError, WorkoutLogError
from .formula import evaluate
from .model import (Exercise, ExerciseParam, ExerciseState, Workout, WorkoutMetadata, WorkoutState,
                    workout_identity)
from .parser import parse_line, parse_workout, serialize_line, serialize_workout
from .progression import (ProgressionResult, apply_progression, format_progression_value,
                          parse_progression_value, progress_exercises)
from .session import SessionManager, WorkoutSession, reset_workout
from .timer import TimerManager, TimerStatus

__version__ = "0.1.0"
