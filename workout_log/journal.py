"""Append completed workouts to daily or weekly markdown log files."""
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from loguru import logger

from .model import Workout
from .parser import serialize_workout
from .settings import LogSettings

START_DATE_RE = re.compile(r'startDate:\s*\[?(\d{4}-\d{2}-\d{2})')


class WorkoutJournal:
    def __init__(self, settings: Optional[LogSettings] = None, root: Union[str, Path] = ".",
                 now: Callable[[], datetime] = datetime.now):
        self.settings = settings or LogSettings()
        self.root = Path(root)
        self.now = now

    def log_path(self) -> Path:
        now = self.now()
        folder = self.root / self.settings.log_folder
        if self.settings.log_grouping == "daily":
            return folder / f"{now:%Y-%m-%d}.md"
        year, week, _ = now.isocalendar()
        return folder / f"{year}-W{week:02d}.md"

    def section_title(self) -> str:
        now = self.now()
        if self.settings.log_grouping == "daily":
            return f"{now:%A, %B} {now.day}, {now.year}"
        year, week, weekday = now.isocalendar()
        start = now.toordinal() - (weekday - 1)
        first = datetime.fromordinal(start); last = datetime.fromordinal(start + 6)
        return f"Week {week}, {year} ({first:%b} {first.day} - {last:%b} {last.day})"

    def _day_heading(self) -> str:
        now = self.now()
        return f"### {now:%A, %B} {now.day}\n\n"

    def format_entry(self, workout: Workout) -> str:
        title = workout.metadata.title or "Workout"
        return f"## {title} - {self.now():%H:%M}\n\n```workout\n{serialize_workout(workout)}\n```\n\n\n"

    def record(self, workout: Workout) -> None:
        path = self.log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = self.format_entry(workout)
        weekly = self.settings.log_grouping == "weekly"
        if path.exists():
            content = path.read_text(encoding="utf-8")
            if weekly:
                found = START_DATE_RE.findall(content)
                if found and found[-1] != f"{self.now():%Y-%m-%d}":
                    content += f"\n---\n\n{self._day_heading()}"
            path.write_text(content + entry, encoding="utf-8")
        else:
            head = f"# {self.section_title()}\n\n" + (self._day_heading() if weekly else "")
            path.write_text(head + entry, encoding="utf-8")
        logger.info("Logged workout '{}' to {}", workout.metadata.title, path)
