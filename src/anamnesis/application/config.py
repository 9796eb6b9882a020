from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from anamnesis.domain import constants as c


def _config_dir() -> Path:
    return Path.home() / ".config/anamnesis"


class SchedulerConfig(BaseModel):
    """
    Forgetting-curve and stability-update parameters.

    Injected into the Scheduler so tests can exercise edge-case
    parameterizations without touching module constants.
    """

    model_config = ConfigDict(frozen=True)

    target_retention: float = Field(default=c.TARGET_RETENTION, gt=0.0, lt=1.0)
    decay: float = Field(default=c.DECAY, lt=0.0)
    seed_stability: float = Field(default=c.SEED_STABILITY, gt=0.0)
    seed_difficulty: float = c.SEED_DIFFICULTY
    min_difficulty: float = c.MIN_DIFFICULTY
    max_difficulty: float = c.MAX_DIFFICULTY
    lapse_penalty: float = Field(default=c.LAPSE_PENALTY, gt=0.0, lt=1.0)
    stability_damping: float = Field(default=c.STABILITY_DAMPING, ge=0.0)
    recall_bonus: float = Field(default=c.RECALL_BONUS, ge=0.0)
    growth_hard: float = Field(default=c.GROWTH_HARD, gt=0.0)
    growth_good: float = Field(default=c.GROWTH_GOOD, gt=0.0)
    growth_easy: float = Field(default=c.GROWTH_EASY, gt=0.0)
    difficulty_step_again: float = Field(default=c.DIFFICULTY_STEP_AGAIN, ge=0.0)
    difficulty_step_hard: float = Field(default=c.DIFFICULTY_STEP_HARD, ge=0.0)
    difficulty_step_easy: float = Field(default=c.DIFFICULTY_STEP_EASY, le=0.0)
    minimum_interval_days: int = Field(default=c.MINIMUM_INTERVAL_DAYS, ge=1)
    maximum_interval_days: int = Field(default=c.MAXIMUM_INTERVAL_DAYS, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "SchedulerConfig":
        if not self.min_difficulty < self.max_difficulty:
            raise ValueError("min_difficulty must be below max_difficulty")
        if not self.min_difficulty <= self.seed_difficulty <= self.max_difficulty:
            raise ValueError("seed_difficulty must lie within the difficulty bounds")
        if self.minimum_interval_days > self.maximum_interval_days:
            raise ValueError("minimum_interval_days exceeds maximum_interval_days")
        if not self.growth_hard < self.growth_good < self.growth_easy:
            raise ValueError("growth factors must increase from hard to easy")
        return self


class MasteryConfig(BaseModel):
    """Mastery ladder cutoffs and misconception hysteresis."""

    model_config = ConfigDict(frozen=True)

    fragile_cutoff: float = Field(default=c.FRAGILE_CUTOFF, gt=0.0)
    developing_cutoff: float = Field(default=c.DEVELOPING_CUTOFF, gt=0.0)
    solid_cutoff: float = Field(default=c.SOLID_CUTOFF, gt=0.0)
    mastered_cutoff: float = Field(default=c.MASTERED_CUTOFF, gt=0.0)
    difficulty_shift: float = Field(default=c.DIFFICULTY_SHIFT, ge=0.0)
    misconception_min_lapses: int = Field(default=c.MISCONCEPTION_MIN_LAPSES, ge=1)
    misconception_lapse_ratio: float = Field(default=c.MISCONCEPTION_LAPSE_RATIO, ge=0.0, le=1.0)
    misconception_clear_streak: int = Field(default=c.MISCONCEPTION_CLEAR_STREAK, ge=1)

    @model_validator(mode="after")
    def check_ladder(self) -> "MasteryConfig":
        ladder = [self.fragile_cutoff, self.developing_cutoff, self.solid_cutoff, self.mastered_cutoff]
        if any(a >= b for a, b in zip(ladder, ladder[1:])):
            raise ValueError("mastery cutoffs must be strictly increasing")
        return self


class QueueConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_session_size: int = Field(default=c.DEFAULT_MAX_SESSION_SIZE, ge=1)
    load_days_ahead: int = Field(default=c.DEFAULT_LOAD_DAYS_AHEAD, ge=1)


class AppConfig(BaseSettings):
    """
    Configuration model for anamnesis.
    Supports loading from:
    1. Environment variables (ANAMNESIS_*, nested with ANAMNESIS_SCHEDULER__...)
    2. Config file (~/.config/anamnesis/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="ANAMNESIS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    store_path: Path = Field(
        default_factory=lambda: _config_dir() / "cards.yaml", validate_default=True
    )

    # Engine parameters
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    mastery: MasteryConfig = Field(default_factory=MasteryConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)

    # 0 warnings only, 1 info, 2+ debug
    verbose: int = Field(default=0, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = _config_dir() / "config.toml"

        # Overrides win over env, env wins over the file.
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("store_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/anamnesis/config.toml (if exists)
    3. Environment variables (ANAMNESIS_*)
    4. cli_overrides (passed from Typer; None values are dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
