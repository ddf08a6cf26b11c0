from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Literal, Optional, Tuple, Type

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from houndcast.models.results import OddsRange, odds_range_error
from houndcast.shared.errors import ConfigError


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _data_dir() -> Path:
    override = os.getenv("HOUNDCAST_DATA_DIR")
    if override:
        return Path(override)
    return _project_root() / "data"


class ScoringServiceSettings(BaseModel):
    """Chat-completions endpoint and model parameters."""

    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    model: Literal["o3-mini", "o4-mini"] = "o3-mini"
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    logprobs: bool = False
    reasoning_effort: Literal["low", "medium", "high"] = "medium"
    seed: Optional[int] = None
    max_completion_tokens: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: float = Field(default=120.0, gt=0.0)


class DispatchSettings(BaseModel):
    max_rounds: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Rounds of concurrent submission before unanswered requests are dropped.",
    )


class RequestSettings(BaseModel):
    max_races: int = Field(default=50, ge=1)
    races_per_request: int = Field(default=1, ge=1)
    max_request_defence: int = Field(
        default=500,
        ge=1,
        description="Hard cap on races per run regardless of max_races.",
    )
    instruction_path: Optional[str] = None


class BacktestSettings(BaseModel):
    """Flat settlement parameters for one backtest run."""

    initial_balance: float = 100.0
    fixed_stake: float = Field(
        default=10.0,
        validation_alias=AliasChoices("fixed_stake", "initial_stake"),
    )
    odds_range: OddsRange = Field(default_factory=lambda: OddsRange(low=1.5, high=5.0))
    favorite_protected: bool = False

    @model_validator(mode="after")
    def _validate_amounts(self) -> "BacktestSettings":
        if not math.isfinite(self.initial_balance) or self.initial_balance <= 2.0:
            raise ValueError(f"initial_balance must be finite and > 2.0, got {self.initial_balance}")
        if not math.isfinite(self.fixed_stake) or self.fixed_stake <= 0:
            raise ValueError(f"fixed_stake must be finite and > 0, got {self.fixed_stake}")
        problem = odds_range_error(self.odds_range.low, self.odds_range.high)
        if problem:
            raise ValueError(problem)
        return self


class DatabaseSettings(BaseModel):
    url: str = Field(
        default_factory=lambda: f"sqlite+aiosqlite:///{(_data_dir() / 'ground_truth.db').resolve()}"
    )
    echo: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"
    directory: Optional[str] = Field(default_factory=lambda: str(_data_dir() / "log"))
    max_bytes: int = 10_000_000
    backup_count: int = 10


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOUNDCAST_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    scoring: ScoringServiceSettings = Field(default_factory=ScoringServiceSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    requests: RequestSettings = Field(default_factory=RequestSettings)
    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Highest priority first; nested keys are merged across sources
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def _check_yaml(path: Path) -> None:
    """Surface unreadable or malformed settings files as ``ConfigError``."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read settings file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must contain a mapping at the top level")


def load_settings(yaml_path: str | os.PathLike[str] | None = None) -> Settings:
    """Build settings from an optional YAML file plus ``HOUNDCAST_*`` env vars.

    Environment variables win over the file. Without an explicit path,
    ``config/houndcast.yaml`` under the project root is used when present.
    """
    if yaml_path is not None:
        path: Optional[Path] = Path(yaml_path)
        if not path.exists():
            raise ConfigError(f"settings file not found: {path}")
    else:
        default = _project_root() / "config" / "houndcast.yaml"
        path = default if default.exists() else None

    if path is not None:
        _check_yaml(path)

    try:
        return _settings_class(path)()
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def _settings_class(yaml_file: Optional[Path]) -> Type[Settings]:
    """``Settings`` bound to ``yaml_file`` as its lowest-priority source."""
    if yaml_file is None:
        return Settings
    return type(
        "Settings",
        (Settings,),
        {
            "__module__": __name__,
            "model_config": SettingsConfigDict(yaml_file=yaml_file, yaml_file_encoding="utf-8"),
        },
    )


def load_instruction(path: str | os.PathLike[str]) -> str:
    """Read the system prompt used for every scoring request."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read instruction file {path}: {exc}") from exc
    if not content.strip():
        raise ConfigError(f"instruction file {path} is empty")
    return content
