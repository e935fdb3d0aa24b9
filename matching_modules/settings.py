"""
Path settings: where invoices are read from and where the daily folders live.
Stored as JSON, validated against an allowlist of base roots.
"""

import os
import json
import logging
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import ALLOWED_BASE_PATHS, DEFAULT_SETTINGS, DRIVE_LETTERS, SETTINGS_FILE

logger = logging.getLogger(__name__)


def sanitize_relative_path(path: str) -> Optional[str]:
    """Reject traversal and encoded segments; normalize separators otherwise."""
    if ".." in path or "%" in path:
        return None
    return path.replace("/", os.sep).replace("\\", os.sep)


class PathSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    base_path: str = Field(min_length=1)
    source_relative: str = Field(min_length=1)
    destination_relative: str = Field(min_length=1)
    last_updated: Optional[str] = None

    @field_validator("source_relative", "destination_relative")
    @classmethod
    def _sanitized(cls, value: str) -> str:
        sanitized = sanitize_relative_path(value)
        if sanitized is None:
            raise ValueError(f"relative path may not contain '..' or '%': {value!r}")
        return sanitized

    @classmethod
    def defaults(cls) -> "PathSettings":
        return cls(**DEFAULT_SETTINGS)


def _normalize_separators(path: str) -> str:
    return path.replace("/", "\\").lower()


def is_allowed_base_path(base_path: str) -> bool:
    normalized = _normalize_separators(base_path)
    return any(normalized.startswith(_normalize_separators(base)) for base in ALLOWED_BASE_PATHS)


def is_within_base(full_path: str, settings: PathSettings) -> bool:
    normalized = _normalize_separators(full_path)
    base = _normalize_separators(settings.base_path).rstrip("\\")
    return normalized == base or normalized.startswith(base + "\\")


def detect_drives() -> List[str]:
    """Roots of the drive letters present on this machine."""
    return [f"{letter}:\\" for letter in DRIVE_LETTERS if os.path.exists(f"{letter}:\\")]


def detect_base_path() -> Optional[str]:
    """First allowlisted base root that is a reachable directory."""
    for base_path in ALLOWED_BASE_PATHS:
        if os.path.isdir(base_path):
            logger.info(f"Detected base path: {base_path}")
            return base_path
    logger.warning("No allowed base path is reachable")
    return None


def load_settings(path: str = SETTINGS_FILE) -> PathSettings:
    """Load settings from ``path``, falling back to the defaults."""
    if os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return PathSettings.model_validate(json.load(f))
        except ValidationError as e:
            logger.warning(f"Invalid settings in {path}, using defaults: {e}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading settings from {path}: {e}")
    return PathSettings.defaults()


def save_settings(settings: PathSettings, path: str = SETTINGS_FILE) -> bool:
    if not is_allowed_base_path(settings.base_path):
        logger.error(f"Base path not allowed: {settings.base_path}")
        return False

    settings.last_updated = datetime.now().isoformat()
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings.model_dump(), f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Error saving settings to {path}: {e}")
        return False
    return True


def source_folder(settings: PathSettings, year: int) -> str:
    return os.path.join(settings.base_path, settings.source_relative, str(year))


def destination_folder(settings: PathSettings, due_date: date) -> str:
    """{base}/{destination}/{year}/{MM}-{year}/{DD}-{MM}-{year}"""
    year = str(due_date.year)
    month_year = f"{due_date.month:02d}-{year}"
    day_month_year = f"{due_date.day:02d}-{due_date.month:02d}-{year}"
    return os.path.join(settings.base_path, settings.destination_relative, year, month_year, day_month_year)
