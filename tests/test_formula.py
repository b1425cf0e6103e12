import pytest

from workout_log.errors import EvaluationError
from workout_log.formula import evaluate


def test_simple_increments():
    assert evaluate("r+1", {"r": 12}) == 13
    assert evaluate("w + 2.5", {"w": 70}) == 72.5


def test_precedence_and_parentheses():
    assert evaluate("((w/r)^2)", {"w": 40, "r": 8}) == 25
    assert evaluate("2+3*4", {}) == 14
    assert evaluate("(2+3)*4", {}) == 20
    assert evaluate("10-4-3", {}) == 3


def test_power_is_right_associative_and_binds_tighter_than_sign():
    assert evaluate("2^3^2", {}) == 512
    assert evaluate("-2^2", {}) == -4
    assert evaluate("2*-3", {}) == -6


def test_variables_are_whole_tokens():
    with pytest.raises(EvaluationError) as exc:
        evaluate("wr+1", {"w": 1, "r": 2})
    assert "wr" in exc.value.reason


@pytest.mark.parametrize("formula", ["x+1", "r+", "", "(r+1", "2r", "r**2"])
def test_undefined_or_malformed(formula):
    with pytest.raises(EvaluationError):
        evaluate(formula, {"r": 8})


@pytest.mark.parametrize("formula", ["1/0", "r/(r-8)", "(0-8)^0.5", "10^400"])
def test_non_finite_results(formula):
    with pytest.raises(EvaluationError):
        evaluate(formula, {"r": 8})
