from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from config import YamlConfig


class SettingsSchema(BaseModel):
    default_user: str = "default"
    workout_history_limit: int = Field(100, gt=0)
    exercise_history_limit: int = Field(1000, gt=0)
    session_window_hours: float = Field(12.0, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(path: str = "settings.yaml") -> SettingsSchema:
    """Read ``path`` and return validated settings, defaults for missing keys."""
    data = YamlConfig(path).load()
    validate_settings(data)
    return SettingsSchema(**data)
