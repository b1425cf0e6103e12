"""Progression between sessions.

A parameter value may carry a formula and bounds: ``(r+1){8,12}10`` reads
"currently 10, add one per session, cycle between 8 and 12". Reps-like
parameters climb every session; weight only moves when the reps cycle wraps;
a new set is added once both wrap.
"""
import copy
import math
import re
from dataclasses import dataclass, field, replace
from typing import Collection, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from .errors import EvaluationError
from .formula import evaluate
from .model import DURATION_KEY, REPS_KEY, WEIGHT_KEY, Exercise, ExerciseParam, ExerciseState

BOUNDS_RE = re.compile(r'^\{([^,]*),([^}]*)\}(.+)$', re.S)
NUMBER_PREFIX_RE = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


@dataclass(frozen=True)
class ProgressionValue:
    value: str
    formula: Optional[str] = None
    initial: Optional[str] = None
    max: Optional[str] = None


def _bounds(m) -> Tuple[Optional[str], Optional[str], str]:
    return (m.group(1).strip() or None, m.group(2).strip() or None, m.group(3).strip())


def parse_progression_value(raw: str) -> ProgressionValue:
    """Split ``(formula){initial,max}value``; every part but the value is optional."""
    raw = raw.strip()
    if raw.startswith("("):
        depth = 0; end = -1
        for i, ch in enumerate(raw):
            if ch == "(": depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0: end = i; break
        if end > 0:
            formula = raw[1:end].strip() or None
            rest = raw[end + 1:]
            m = BOUNDS_RE.match(rest)
            if m:
                initial, mx, value = _bounds(m)
                return ProgressionValue(value, formula, initial, mx)
            return ProgressionValue(rest.strip(), formula)
    m = BOUNDS_RE.match(raw)
    if m:
        initial, mx, value = _bounds(m)
        return ProgressionValue(value, None, initial, mx)
    return ProgressionValue(raw)


def format_progression_value(value: str, formula: Optional[str] = None,
                             initial: Optional[str] = None, max: Optional[str] = None) -> str:
    out = value
    if initial is not None or max is not None:
        out = f"{{{initial or ''},{max or ''}}}{out}"
    if formula:
        out = f"({formula}){out}"
    return out


def parse_number(text: Optional[str]) -> Optional[float]:
    """Leading number of ``text`` ('72.5kg' -> 72.5), None when there is none."""
    m = NUMBER_PREFIX_RE.match(text or "")
    return float(m.group(0)) if m else None


def format_number(x: float) -> str:
    if x == int(x) and abs(x) < 1e15: return str(int(x))
    return repr(x)


def round2(x: float) -> float:
    # half-up, not Python's banker's rounding
    return math.floor(x * 100 + 0.5) / 100


def var_name(key: str) -> str:
    return key.strip()[:1].lower()


@dataclass
class ProgressionResult:
    params: List[ExerciseParam]
    should_add_set: bool = False
    errors: List[Tuple[str, str]] = field(default_factory=list)


def param_variables(params: List[ExerciseParam]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for p in params:
        if p.kind == DURATION_KEY or not var_name(p.key): continue
        v = parse_number(p.value)
        if v is not None: out[var_name(p.key)] = v
    return out


def _bounded(p: ExerciseParam, rounded: float) -> Tuple[ExerciseParam, bool]:
    """Apply cap-vs-wrap to an evaluated bounded param; returns (param, wrapped)."""
    mx = parse_number(p.max)
    if mx is not None and rounded > mx:
        current = parse_number(p.value)
        if current is not None and current >= mx:
            return replace(p, value=p.initial or p.value), True
        return replace(p, value=format_number(mx)), False
    return replace(p, value=format_number(rounded)), False


def apply_progression(params: List[ExerciseParam]) -> ProgressionResult:
    """Progress one set's parameters. Pure: ``params`` is left untouched."""
    variables = param_variables(params)
    errors: List[Tuple[str, str]] = []
    wrapped_any = False; reps_wrapped = False; weight_wrapped = False

    # pass 1: params that always climb (bounded, not weight)
    first: List[ExerciseParam] = []
    for p in params:
        if not p.formula or not p.max or p.kind == WEIGHT_KEY:
            first.append(p); continue
        try:
            rounded = round2(evaluate(p.formula, variables))
        except EvaluationError as e:
            logger.warning("Progression of '{}' left unchanged: {}", p.key, e)
            errors.append((p.key, str(e))); first.append(p); continue
        new, wrapped = _bounded(p, rounded)
        if wrapped:
            wrapped_any = True
            if p.kind == REPS_KEY: reps_wrapped = True
        v = parse_number(new.value)
        if v is not None: variables[var_name(p.key)] = v
        first.append(new)

    # pass 2: weight and unbounded params, only once something wrapped
    final = first
    if wrapped_any:
        snapshot: Mapping[str, float] = dict(variables)
        final = []
        for p in first:
            if not p.formula or (p.max and p.kind != WEIGHT_KEY):
                final.append(p); continue
            try:
                rounded = round2(evaluate(p.formula, snapshot))
            except EvaluationError as e:
                logger.warning("Progression of '{}' left unchanged: {}", p.key, e)
                errors.append((p.key, str(e))); final.append(p); continue
            if p.kind == WEIGHT_KEY and p.max:
                new, wrapped = _bounded(p, rounded)
                weight_wrapped = weight_wrapped or wrapped
                final.append(new)
            else:
                final.append(replace(p, value=format_number(rounded)))

    has_weight = any(p.kind == WEIGHT_KEY for p in params)
    return ProgressionResult(final, reps_wrapped and (weight_wrapped or not has_weight), errors)


def progress_exercises(exercises: List[Exercise], exempt: Collection[str] = ()) -> List[Exercise]:
    """Progress every set whose name is not in ``exempt``.

    Exercise objects are updated in place. For each name where any set asked
    for a new set, every set of that name takes the reps/weight of the first
    such result and one pending copy of the last set is inserted after it.
    The returned list is the new exercise order.
    """
    grow: Dict[str, List[ExerciseParam]] = {}
    for ex in exercises:
        if ex.name in exempt: continue
        res = apply_progression(ex.params)
        ex.params = res.params
        if res.should_add_set and ex.name not in grow:
            grow[ex.name] = res.params
    if not grow: return list(exercises)

    last = {ex.name: i for i, ex in enumerate(exercises)}
    out: List[Exercise] = []
    for i, ex in enumerate(exercises):
        src = grow.get(ex.name)
        if src is not None:
            for p in src:
                if p.kind not in (REPS_KEY, WEIGHT_KEY): continue
                dst = ex.param(p.kind)
                if dst is not None: dst.value = p.value
        out.append(ex)
        if src is not None and last[ex.name] == i:
            extra = copy.deepcopy(ex)
            extra.state = ExerciseState.PENDING
            extra.recorded_duration = None
            extra.line_index = None
            out.append(extra)
            logger.info("Added a set of '{}' after progression", ex.name)
    return out
