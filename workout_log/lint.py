from typing import Any, Dict, List

from .errors import EvaluationError
from .formula import evaluate
from .model import ExerciseState, Workout, WorkoutState
from .progression import param_variables, parse_number


def lint(workout: Workout) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    def add(level, code, path, msg): issues.append({"level": level, "code": code, "path": path, "msg": msg})

    active = [i for i, e in enumerate(workout.exercises) if e.state is ExerciseState.IN_PROGRESS]
    if len(active) > 1:
        add("error", "E003", "META", f"{len(active)} exercises in progress: {active}")
    if active and workout.metadata.state is not WorkoutState.STARTED:
        add("warning", "W002", "META", f"exercise in progress while workout is {workout.metadata.state.value}")

    for i, ex in enumerate(workout.exercises):
        variables = param_variables(ex.params)
        for p in ex.params:
            path = f"EXERCISE[{i}].{p.key}"
            if p.formula:
                try: evaluate(p.formula, variables)
                except EvaluationError as e: add("error", "E001", path, e.reason)
                if parse_number(p.value) is None:
                    add("warning", "W003", path, f"value '{p.value}' is not numeric")
            elif p.initial is not None or p.max is not None:
                add("warning", "W001", path, "bounds without a progression formula")
            lo, hi = parse_number(p.initial), parse_number(p.max)
            if lo is not None and hi is not None and lo > hi:
                add("error", "E002", path, f"initial {p.initial} is greater than max {p.max}")
    return issues
