import json

import pytest
from loguru import logger

try:
    from workout_log.cli import main
except Exception as e:  # pragma: no cover
    pytest.skip(f"workout_log unavailable: {e}", allow_module_level=True)


MESSY = "# Note\n\n```workout\ntitle:  Push \nstate: planned\n---\n-[ ]Bench|Reps:[(r+1){8,12}8]\n```\n"
CLEAN = "# Note\n\n```workout\ntitle: Push\nstate: planned\n---\n- [ ] Bench | Reps: [(r+1){8,12}8]\n```\n"


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger.remove()


def run(*argv):
    with pytest.raises(SystemExit) as exc:
        main(list(argv))
    return exc.value.code


def test_fmt_in_place_is_idempotent(tmp_path):
    path = tmp_path / "note.md"
    path.write_text(MESSY, encoding="utf-8")
    assert run("fmt", str(path), "-i") == 0
    assert path.read_text(encoding="utf-8") == CLEAN
    assert run("fmt", str(path), "-i") == 0
    assert path.read_text(encoding="utf-8") == CLEAN


def test_fmt_bare_file_to_stdout(tmp_path, capsys):
    path = tmp_path / "w.txt"
    path.write_text("title: Legs\n---\n-[x]Squat|Reps:8\n", encoding="utf-8")
    assert run("fmt", str(path)) == 0
    assert capsys.readouterr().out == "title: Legs\nstate: planned\n---\n- [x] Squat | Reps: 8\n"


def test_parse_outputs_json(tmp_path, capsys):
    path = tmp_path / "note.md"
    path.write_text(MESSY, encoding="utf-8")
    assert run("parse", str(path)) == 0
    data = json.loads(capsys.readouterr().out)
    assert data[0]["metadata"]["title"] == "Push"
    assert data[0]["exercises"][0]["params"][0]["formula"] == "r+1"
    assert data[0]["exercises"][0]["state"] == "pending"


def test_lint_exit_code(tmp_path, capsys):
    path = tmp_path / "note.md"
    path.write_text(CLEAN.replace("{8,12}", "{12,8}"), encoding="utf-8")
    assert run("lint", str(path)) == 1
    assert "ERROR E002 BLOCK[0].EXERCISE[0].Reps" in capsys.readouterr().out
    path.write_text(CLEAN, encoding="utf-8")
    assert run("lint", str(path)) == 0


def test_progress_prints_next_session(tmp_path, capsys):
    path = tmp_path / "note.md"
    path.write_text(CLEAN, encoding="utf-8")
    assert run("progress", str(path)) == 0
    out = capsys.readouterr().out
    assert out.startswith("# block 0\n")
    assert "- [ ] Bench | Reps: [(r+1){8,12}9]" in out
    assert path.read_text(encoding="utf-8") == CLEAN


def test_complete_logs_and_rewrites_block(tmp_path):
    path = tmp_path / "note.md"
    path.write_text(CLEAN, encoding="utf-8")
    assert run("complete", str(path), "--log-root", str(tmp_path)) == 0
    assert "- [ ] Bench | Reps: [(r+1){8,12}9]" in path.read_text(encoding="utf-8")
    logs = list((tmp_path / "Workout Logs").glob("*.md"))
    assert len(logs) == 1
    logged = logs[0].read_text(encoding="utf-8")
    assert "state: completed" in logged
    assert "Bench | Reps: (r+1){8,12}8" in logged


def test_complete_with_bad_settings(tmp_path):
    path = tmp_path / "note.md"
    path.write_text(CLEAN, encoding="utf-8")
    cfg = tmp_path / "s.json"
    cfg.write_text('{"logGrouping": "yearly"}', encoding="utf-8")
    assert run("complete", str(path), "--settings", str(cfg)) == 2


def test_sample(capsys):
    assert run("sample") == 0
    assert capsys.readouterr().out.startswith("title: Sample Workout\nstate: planned\nrestDuration: 90s\n---\n")
