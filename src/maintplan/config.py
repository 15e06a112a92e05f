"""Configuration for the maintenance-plan scheduling engine.

Policy constants live here so the scheduling math can assume fully populated
inputs. A ``maintplan_config.yaml`` file may override them under a
``scheduler:`` section.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILE_NAME = "maintplan_config.yaml"

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class SchedulerConfig(BaseModel):
    """Defaults and bounds used by normalisation, scheduling and validation."""

    # Daily work window used when a plan leaves it blank
    default_work_start: str = "08:00"
    default_work_end: str = "17:00"

    # Quarter-hour floor, a task is never zero-length
    min_task_hours: float = Field(default=0.25, gt=0)
    # Duration of a pre-task safety control without durationMinutes
    default_safety_control_minutes: float = Field(default=15.0, gt=0)
    # Width of the placement given to tasks stuck in a cycle
    fallback_task_hours: float = Field(default=1.0, gt=0)
    # Longest duration a task record may carry; larger values are capped
    max_task_hours: float = Field(default=10000.0, gt=0)

    # Termination guards
    max_clock_iterations: int = Field(default=10000, gt=0)
    pass_multiplier: int = Field(default=3, gt=0)

    # Spares may arrive this many days after the plan end
    spares_grace_days: int = Field(default=7, ge=0)
    # Breaks beyond this count are dropped at the input boundary
    max_breaks: int = Field(default=5, gt=0)

    @field_validator("default_work_start", "default_work_end")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        """Require HH:MM times."""
        if not _HHMM.match(v.strip()):
            raise ValueError(f"Invalid time '{v}', expected HH:MM")
        return v.strip()


class MaintplanConfig(BaseModel):
    """Top-level configuration file contents."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


def load_config(config_path: Path | str) -> MaintplanConfig:
    """Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is empty or invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open() as f:
        data: dict[str, Any] | None = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")

    scheduler_config = SchedulerConfig()
    if "scheduler" in data:
        scheduler_config = SchedulerConfig.model_validate(data["scheduler"] or {})

    return MaintplanConfig(scheduler=scheduler_config)


def discover_config(
    plan_path: Path | None = None,
    config_path: Path | None = None,
) -> MaintplanConfig:
    """Find the configuration for a plan file.

    Search order:
    1. Explicit config_path argument
    2. plan file directory / maintplan_config.yaml
    3. Current directory / maintplan_config.yaml
    4. Built-in defaults
    """
    if config_path is not None:
        return load_config(config_path)

    if plan_path is not None:
        dir_config = Path(plan_path).parent / CONFIG_FILE_NAME
        if dir_config.exists():
            return load_config(dir_config)

    cwd_config = Path(CONFIG_FILE_NAME)
    if cwd_config.exists():
        return load_config(cwd_config)

    return MaintplanConfig()
