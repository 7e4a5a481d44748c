from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from reprise.domain.constants import (
    CONFIG_PATHS,
    DEFAULT_DB_PATH,
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    ENV_PREFIX,
    HISTOGRAM_BINS,
    MATURE_INTERVAL_DAYS,
)

GradeTable = tuple[float, float, float, float]


class SchedulerParameters(BaseModel):
    """
    Every tunable of the memory model and update algorithm.

    Tables indexed by grade are ordered AGAIN, HARD, GOOD, EASY. The default
    weights follow the published FSRS-4.5 population priors, except the
    initial difficulty table which is given directly instead of as a curve.
    """

    model_config = ConfigDict(frozen=True)

    target_retention: float = Field(default=0.9, gt=0.0, lt=1.0)

    # Forgetting curve R = (1 + F * t / S) ** C
    decay_factor: float = Field(default=19 / 81, gt=0.0)
    decay_exponent: float = Field(default=-0.5, lt=0.0)

    initial_stability: GradeTable = (0.4872, 1.4003, 3.7145, 13.8206)
    initial_difficulty: GradeTable = (6.8, 5.9, 5.0, 3.3)

    # Difficulty update
    difficulty_step: float = Field(default=0.8975, ge=0.0)
    mean_reversion: float = Field(default=0.031, ge=0.0, le=1.0)

    # Stability after a successful recall
    success_base: float = 1.6474
    success_stability_exp: float = Field(default=0.1367, ge=0.0)
    success_retrievability_factor: float = Field(default=1.0461, ge=0.0)
    hard_penalty: float = Field(default=0.2272, gt=0.0, le=1.0)
    easy_bonus: float = Field(default=2.8755, ge=1.0)

    # Stability after a lapse
    lapse_base: float = Field(default=2.1072, gt=0.0)
    lapse_difficulty_exp: float = Field(default=0.0793, ge=0.0)
    lapse_stability_exp: float = Field(default=0.3246, gt=0.0)
    lapse_retrievability_factor: float = Field(default=1.587, ge=0.0)

    min_stability: float = Field(default=0.01, gt=0.0)
    maximum_interval_days: int = Field(default=36500, ge=1)

    # Statistics
    mature_interval_days: float = Field(default=MATURE_INTERVAL_DAYS, ge=0.0)
    histogram_bins: int = Field(default=HISTOGRAM_BINS, ge=1)
    difficulty_scale: float = Field(default=DIFFICULTY_MAX, gt=0.0)

    @field_validator("initial_stability")
    @classmethod
    def check_initial_stability(cls, v: GradeTable) -> GradeTable:
        if any(s <= 0 for s in v):
            raise ValueError("initial stability values must be positive")
        if list(v) != sorted(v):
            raise ValueError("initial stability must not decrease with grade")
        return v

    @field_validator("initial_difficulty")
    @classmethod
    def check_initial_difficulty(cls, v: GradeTable) -> GradeTable:
        if any(not DIFFICULTY_MIN <= d <= DIFFICULTY_MAX for d in v):
            raise ValueError(
                f"initial difficulty values must lie in [{DIFFICULTY_MIN}, {DIFFICULTY_MAX}]"
            )
        if list(v) != sorted(v, reverse=True):
            raise ValueError("initial difficulty must not increase with grade")
        return v

    @model_validator(mode="after")
    def check_min_stability(self) -> "SchedulerParameters":
        if self.min_stability > self.initial_stability[0]:
            raise ValueError("min_stability cannot exceed the smallest initial stability")
        return self


class AppConfig(BaseSettings):
    """
    Configuration model for reprise.
    Supports loading from:
    1. Manual overrides (CLI)
    2. Environment variables (REPRISE_*, nested with __)
    3. Config file (~/.config/reprise/config.toml or ~/.reprise.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    db_path: Path = DEFAULT_DB_PATH
    card_limit: int | None = Field(default=None, ge=0)
    new_card_limit: int | None = Field(default=None, ge=0)
    verbose: int = Field(default=0, ge=0)

    scheduler: SchedulerParameters = Field(default_factory=SchedulerParameters)

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

        toml_file = next((f for f in CONFIG_PATHS if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("db_path", mode="before")
    @classmethod
    def expand_db_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. TOML config file (if exists)
    3. Environment variables (REPRISE_*)
    4. cli_overrides (passed from Typer, None values dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
