import pytest

try:
    from workout_log.lint import lint
    from workout_log.parser import parse_workout, sample_workout
except Exception as e:  # pragma: no cover
    pytest.skip(f"workout_log unavailable: {e}", allow_module_level=True)


def collect_codes(issues):
    return {(i.get("level"), i.get("code")) for i in issues}


def lint_text(body, state="planned"):
    return lint(parse_workout(f"title: T\nstate: {state}\n---\n{body}\n"))


def test_bad_formula_triggers_E001():
    issues = lint_text("- [ ] Curl | Reps: [(r+q){8,12}10]")
    assert ("error", "E001") in collect_codes(issues)
    assert issues[0]["path"] == "EXERCISE[0].Reps"
    assert "q" in issues[0]["msg"]


def test_initial_above_max_triggers_E002():
    assert ("error", "E002") in collect_codes(lint_text("- [ ] Curl | Reps: [(r+1){12,8}10]"))


def test_two_in_progress_triggers_E003():
    issues = lint_text("- [\\] Curl | Reps: [8]\n- [\\] Row | Reps: [8]", state="started")
    assert collect_codes(issues) == {("error", "E003")}


def test_bounds_without_formula_triggers_W001():
    assert collect_codes(lint_text("- [ ] Curl | Reps: [{8,12}10]")) == {("warning", "W001")}


def test_in_progress_in_planned_workout_triggers_W002():
    assert ("warning", "W002") in collect_codes(lint_text("- [\\] Curl | Reps: [8]"))


def test_non_numeric_value_with_formula_triggers_W003():
    assert ("warning", "W003") in collect_codes(lint_text("- [ ] Curl | Reps: [(r+1)lots]"))


def test_sample_is_clean():
    assert lint(sample_workout()) == []
