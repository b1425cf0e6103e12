import json
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import SettingsError

DEFAULT_LOG_FOLDER = "Workout Logs"


class LogSettings(BaseModel):
    """Where completed workouts are journaled and how files are grouped."""

    model_config = ConfigDict(populate_by_name=True)

    log_folder: str = Field(default=DEFAULT_LOG_FOLDER, alias="logFolder")
    log_grouping: Literal["daily", "weekly"] = Field(default="daily", alias="logGrouping")

    @field_validator("log_folder", mode="before")
    @classmethod
    def _blank_folder(cls, v):
        if v is None or not str(v).strip(): return DEFAULT_LOG_FOLDER
        return str(v).strip()


def load_settings(path: Optional[Union[str, Path]] = None) -> LogSettings:
    if path is None: return LogSettings()
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return LogSettings.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise SettingsError(f"invalid settings file {path}: {e}") from e
