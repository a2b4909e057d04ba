# src/priority_forge/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every value has a default; an empty environment gives the stock engine.
- Library code never reads the environment directly, it receives Settings
  (or any object with the same attributes).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "PFORGE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local paths ----
    data_dir: Path
    tasks_file: Path | None

    # ---- Initial heuristic weights ----
    weight_blocking: float
    weight_cross_project: float
    weight_time_sensitive: float
    weight_effort_value: float
    weight_dependency: float

    # ---- Online learner ----
    learner_enabled: bool
    learning_rate: float
    momentum: float
    max_weight_change: float
    min_weight: float
    max_weight: float
    feedback_max_events: int

    # ---- Rebalance telemetry ----
    rebalance_threshold: int
    rebalance_max_events: int

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), None) or Path(".local/priority_forge")

        return Settings(
            app_name=_env(_k("APP_NAME"), "priority-forge"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=data_dir,
            tasks_file=_env_path(_k("TASKS_FILE"), None),
            weight_blocking=_env_float(_k("WEIGHT_BLOCKING"), 10.0),
            weight_cross_project=_env_float(_k("WEIGHT_CROSS_PROJECT"), 5.0),
            weight_time_sensitive=_env_float(_k("WEIGHT_TIME_SENSITIVE"), 8.0),
            weight_effort_value=_env_float(_k("WEIGHT_EFFORT_VALUE"), 3.0),
            weight_dependency=_env_float(_k("WEIGHT_DEPENDENCY"), 2.0),
            learner_enabled=_env_bool(_k("LEARNER_ENABLED"), True),
            learning_rate=_env_float(_k("LEARNING_RATE"), 0.01),
            momentum=_env_float(_k("MOMENTUM"), 0.9),
            max_weight_change=_env_float(_k("MAX_WEIGHT_CHANGE"), 0.5),
            min_weight=_env_float(_k("MIN_WEIGHT"), 0.1),
            max_weight=_env_float(_k("MAX_WEIGHT"), 50.0),
            feedback_max_events=_env_int(_k("FEEDBACK_MAX_EVENTS"), 500),
            rebalance_threshold=_env_int(_k("REBALANCE_THRESHOLD"), 2),
            rebalance_max_events=_env_int(_k("REBALANCE_MAX_EVENTS"), 500),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
