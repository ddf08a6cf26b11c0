from .core import (
    BacktestSettings,
    DatabaseSettings,
    DispatchSettings,
    LoggingSettings,
    OddsRange,
    RequestSettings,
    ScoringServiceSettings,
    Settings,
    load_instruction,
    load_settings,
)

__all__ = [
    "BacktestSettings",
    "DatabaseSettings",
    "DispatchSettings",
    "LoggingSettings",
    "OddsRange",
    "RequestSettings",
    "ScoringServiceSettings",
    "Settings",
    "load_instruction",
    "load_settings",
]
