from datetime import datetime

import pytest

from workout_log.errors import SettingsError
from workout_log.journal import WorkoutJournal
from workout_log.parser import parse_workout
from workout_log.settings import DEFAULT_LOG_FOLDER, LogSettings, load_settings

DONE = "title: Push\nstate: completed\nstartDate: {}\nduration: 40m\n---\n- [x] Bench | Reps: 8"


class Clock:
    def __init__(self, when):
        self.when = when

    def __call__(self):
        return self.when


def done(day):
    return parse_workout(DONE.format(f"{day} 09:30"))


def test_daily_file(tmp_path):
    j = WorkoutJournal(LogSettings(), tmp_path, now=lambda: datetime(2026, 3, 2, 10, 10))
    j.record(done("2026-03-02"))
    path = tmp_path / "Workout Logs" / "2026-03-02.md"
    assert j.log_path() == path
    assert path.read_text(encoding="utf-8") == (
        "# Monday, March 2, 2026\n\n"
        "## Push - 10:10\n\n```workout\n"
        "title: Push\nstate: completed\nstartDate: 2026-03-02 09:30\nduration: 40m\n---\n- [x] Bench | Reps: 8\n"
        "```\n\n\n"
    )
    j.record(done("2026-03-02"))
    assert path.read_text(encoding="utf-8").count("## Push - 10:10") == 2


def test_weekly_file_separates_days(tmp_path):
    clock = Clock(datetime(2026, 3, 2, 18, 0))
    j = WorkoutJournal(LogSettings(logGrouping="weekly", logFolder="Training"), tmp_path, now=clock)
    assert j.section_title() == "Week 10, 2026 (Mar 2 - Mar 8)"
    j.record(done("2026-03-02"))
    j.record(done("2026-03-02"))
    clock.when = datetime(2026, 3, 4, 7, 5)
    j.record(done("2026-03-04"))

    text = (tmp_path / "Training" / "2026-W10.md").read_text(encoding="utf-8")
    assert text.startswith("# Week 10, 2026 (Mar 2 - Mar 8)\n\n### Monday, March 2\n\n## Push - 18:00")
    assert text.count("\n---\n\n### ") == 1
    assert "\n---\n\n### Wednesday, March 4\n\n## Push - 07:05" in text


def test_week_spanning_months(tmp_path):
    j = WorkoutJournal(LogSettings(log_grouping="weekly"), tmp_path, now=lambda: datetime(2026, 12, 31))
    assert j.log_path().name == "2026-W53.md"
    assert j.section_title() == "Week 53, 2026 (Dec 28 - Jan 3)"


def test_settings_defaults_and_aliases(tmp_path):
    assert load_settings() == LogSettings()
    cfg = tmp_path / "settings.json"
    cfg.write_text('{"logFolder": "  Gym  ", "logGrouping": "weekly"}', encoding="utf-8")
    s = load_settings(cfg)
    assert (s.log_folder, s.log_grouping) == ("Gym", "weekly")
    assert LogSettings(logFolder="   ").log_folder == DEFAULT_LOG_FOLDER


@pytest.mark.parametrize("body", ['{"logGrouping": "monthly"}', "not json", "[1, 2]"])
def test_bad_settings_raise(tmp_path, body):
    cfg = tmp_path / "settings.json"
    cfg.write_text(body, encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(cfg)


def test_missing_settings_file(tmp_path):
    with pytest.raises(SettingsError):
        load_settings(tmp_path / "nope.json")
