from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from retain.application.leech import LeechPolicy
from retain.application.scheduler import SchedulerParams
from retain.domain import constants
from retain.domain.models import LeechAction, Rating


def config_files() -> list[Path]:
    """Candidate config files, highest priority first."""
    return [
        Path.home() / ".config/retain/config.toml",
        Path.home() / ".retain.toml",
    ]


class EngineConfig(BaseSettings):
    """
    Configuration model for retain.
    Supports loading from:
    1. Environment variables (RETAIN_*)
    2. Config file (~/.config/retain/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="RETAIN_",
        extra="ignore",
    )

    # Ease
    initial_ease: float = constants.INITIAL_EASE_FACTOR
    min_ease: float = Field(default=constants.MIN_EASE_FACTOR, gt=0)
    ease_delta_again: float = constants.EASE_DELTAS[Rating.AGAIN]
    ease_delta_hard: float = constants.EASE_DELTAS[Rating.HARD]
    ease_delta_good: float = constants.EASE_DELTAS[Rating.GOOD]
    ease_delta_easy: float = constants.EASE_DELTAS[Rating.EASY]
    lapse_penalty: float = Field(default=constants.LAPSE_PENALTY, ge=0)
    lapse_penalty_grace: int = Field(default=constants.LAPSE_PENALTY_GRACE, ge=0)

    # Intervals
    relearn_days: int = Field(default=constants.RELEARN_INTERVAL_DAYS, ge=1)
    graduating_hard: int = Field(default=constants.GRADUATING_INTERVALS[Rating.HARD], ge=1)
    graduating_good: int = Field(default=constants.GRADUATING_INTERVALS[Rating.GOOD], ge=1)
    graduating_easy: int = Field(default=constants.GRADUATING_INTERVALS[Rating.EASY], ge=1)
    hard_multiplier: float = Field(default=constants.HARD_INTERVAL_MULTIPLIER, gt=0, lt=1)
    easy_multiplier: float = Field(default=constants.EASY_INTERVAL_MULTIPLIER, gt=1)

    # Mastery
    mastery_cap_days: int = Field(default=constants.MASTERY_CAP_DAYS, ge=1)
    half_life_factor: float = Field(default=constants.HALF_LIFE_FACTOR, gt=0)
    mastered_threshold: float = Field(default=constants.MASTERED_THRESHOLD, ge=0, le=1)

    # Leeches
    leech_threshold: int = Field(default=constants.DEFAULT_LEECH_THRESHOLD, ge=1)
    leech_action: LeechAction = LeechAction.SUSPEND

    # Sessions
    shuffle: bool = False
    snapshot_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config/retain/sessions"
    )
    verbose: int = 1

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

        # First existing config file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("snapshot_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @model_validator(mode="after")
    def check_ordering(self) -> "EngineConfig":
        if not self.graduating_hard <= self.graduating_good <= self.graduating_easy:
            raise ValueError("graduating intervals must satisfy hard <= good <= easy")
        if self.initial_ease < self.min_ease:
            raise ValueError("initial_ease must not be below min_ease")
        return self

    def scheduler_params(self) -> SchedulerParams:
        return SchedulerParams(
            initial_ease=self.initial_ease,
            min_ease=self.min_ease,
            relearn_days=self.relearn_days,
            ease_deltas={
                Rating.AGAIN: self.ease_delta_again,
                Rating.HARD: self.ease_delta_hard,
                Rating.GOOD: self.ease_delta_good,
                Rating.EASY: self.ease_delta_easy,
            },
            graduating_intervals={
                Rating.HARD: self.graduating_hard,
                Rating.GOOD: self.graduating_good,
                Rating.EASY: self.graduating_easy,
            },
            hard_multiplier=self.hard_multiplier,
            easy_multiplier=self.easy_multiplier,
            lapse_penalty=self.lapse_penalty,
            lapse_penalty_grace=self.lapse_penalty_grace,
            mastery_cap_days=self.mastery_cap_days,
            half_life_factor=self.half_life_factor,
        )

    def leech_policy(self) -> LeechPolicy:
        return LeechPolicy(threshold=self.leech_threshold, action=self.leech_action)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> EngineConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in EngineConfig
    2. ~/.config/retain/config.toml (if exists)
    3. Environment variables (RETAIN_*)
    4. cli_overrides (passed from Typer), None values ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return EngineConfig(**overrides)
