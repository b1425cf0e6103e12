"""Error types shared across workout_log.

Nothing here is fatal: callers recover locally and report.
"""


class WorkoutLogError(Exception):
    """Base class for every error raised by this package."""


class EvaluationError(WorkoutLogError):
    """A progression formula could not be evaluated.

    Attributes:
        formula: the formula text as written in the block
        reason: short human readable cause
    """

    def __init__(self, formula: str, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(f"invalid progression formula '{formula}': {reason}")


class PersistenceError(WorkoutLogError):
    """A workout block could not be written back to its note."""


class SettingsError(WorkoutLogError):
    """The settings file is unreadable or invalid."""
