"""
Generation settings.

GenerationConfig is the per-run configuration passed through the engine.
SchedulerSettings reads defaults from the environment (prefix
LESSON_SCHEDULER_) or a local .env file, e.g.:

    LESSON_SCHEDULER_SEED=7
    LESSON_SCHEDULER_MAX_ATTEMPTS=10
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SEED = 12345


class TeacherKeyPolicy(str, Enum):
    """
    How teacher availability is keyed in double-shift institutions.

    PERIOD: (day, period) regardless of shift, so a teacher never holds the
        same period number in both shifts on one day.
    SHIFT: (shift, day, period), treating the two shifts as separate clock
        times.
    """
    PERIOD = "period"
    SHIFT = "shift"


class GenerationConfig(BaseModel):
    """Knobs for one generation run."""
    model_config = ConfigDict(extra="forbid")

    seed: int = Field(default=DEFAULT_SEED, description="Base seed; attempt i uses seed + i")
    max_attempts: int = Field(default=5, ge=1, le=200, description="Random restarts")
    max_backtrack_steps: int = Field(default=5, ge=0, le=500, description="Relocations tried per unit")
    teacher_key_policy: TeacherKeyPolicy = Field(default=TeacherKeyPolicy.PERIOD)
    enforce_teacher_cap: bool = Field(default=False, description="Refuse placements past a teacher's cap")
    default_teacher_weekly_cap: Optional[int] = Field(
        default=None, ge=1, le=80, description="Cap for teachers without their own"
    )
    max_imbalance: int = Field(
        default=0, ge=0, description="Accepted session imbalance before another restart"
    )
    spread_subjects: bool = Field(default=True, description="Prefer days without the same subject")
    max_consecutive_same_subject: Optional[int] = Field(
        default=None, ge=1, le=10, description="Longest run of one subject for a class on a day"
    )
    max_consecutive_teacher_periods: Optional[int] = Field(
        default=None, ge=1, le=10, description="Longest run of periods a teacher teaches on a day"
    )


class SchedulerSettings(BaseSettings):
    """Environment-backed defaults for GenerationConfig."""
    model_config = SettingsConfigDict(env_prefix="LESSON_SCHEDULER_", env_file=".env", extra="ignore")

    seed: int = DEFAULT_SEED
    max_attempts: int = 5
    max_backtrack_steps: int = 5
    teacher_key_policy: TeacherKeyPolicy = TeacherKeyPolicy.PERIOD
    enforce_teacher_cap: bool = False
    default_teacher_weekly_cap: Optional[int] = None
    max_imbalance: int = 0
    spread_subjects: bool = True
    max_consecutive_same_subject: Optional[int] = None
    max_consecutive_teacher_periods: Optional[int] = None

    def to_config(self, **overrides) -> GenerationConfig:
        """Build a GenerationConfig, letting non-None overrides win."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GenerationConfig(**values)


@lru_cache
def get_settings() -> SchedulerSettings:
    return SchedulerSettings()
