"""StrideSync configuration: pydantic sections loaded from YAML."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STRIDESYNC_CONFIG"
SYSTEM_CONFIG_PATH = Path("/etc/stridesync/stridesync.yml")
REPO_CONFIG_PATH = Path("configs/stridesync.yml")


class TrackingConfig(BaseModel):
    accuracy_threshold_m: float = Field(30.0, gt=0)
    min_movement_m: float = Field(5.0, ge=0)
    stride_length_m: float = Field(0.762, gt=0)
    calories_per_step: float = Field(0.04, ge=0)
    max_active_gap_minutes: float = Field(5.0, gt=0)
    min_route_points: int = Field(3, ge=1)  # routes need more than two points


class GPSConfig(BaseModel):
    """GPS daemon configuration."""

    host: str = Field("localhost")
    port: int = Field(2947, ge=1, le=65535)
    timeout: float = Field(10.0, ge=1.0)
    reconnect_delay: float = Field(5.0, ge=0.1)
    mock_mode: bool = Field(False)  # Use simulated walker
    mock_lat: float = Field(41.0082, ge=-90, le=90)
    mock_lon: float = Field(28.9784, ge=-180, le=180)
    mock_speed_mps: float = Field(1.4, gt=0, le=15)
    mock_interval_secs: float = Field(1.0, gt=0)
    mock_accuracy_m: float = Field(8.0, ge=0)


class RemoteConfig(BaseModel):
    base_url: str = Field("http://localhost:5000")
    token_env: str = Field("STRIDESYNC_API_TOKEN")
    timeout: float = Field(15.0, gt=0)
    today_path: str = Field("/api/activity/today")
    sync_path: str = Field("/api/activity/sync")
    routes_path: str = Field("/api/routes")

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("today_path", "sync_path", "routes_path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"endpoint path must start with '/': {value}")
        return value


class SyncConfig(BaseModel):
    interval_secs: float = Field(0.0, ge=0)  # 0 = sync only when tracking stops


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    format: str = Field("%(asctime)s | %(name)s | %(levelname)s | %(message)s")
    datefmt: str = Field("%Y-%m-%d %H:%M:%S")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log level: {value}")
        return level


class StrideSyncConfig(BaseModel):
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    gps: GPSConfig = Field(default_factory=GPSConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path) -> StrideSyncConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    try:
        return StrideSyncConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - formatting
        raise ValueError(str(exc)) from exc


def config_search_paths(cli_path: Path | None = None) -> list[tuple[str, Path]]:
    """Ordered (origin, path) candidates: CLI flag, environment, system, repo."""
    candidates: list[tuple[str, Path]] = []
    if cli_path:
        candidates.append(("cli", Path(cli_path).expanduser()))
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        candidates.append(("env", Path(env).expanduser()))
    candidates.append(("system", SYSTEM_CONFIG_PATH))
    candidates.append(("repo", REPO_CONFIG_PATH))
    return candidates


def resolve_config_path(cli_path: Path | None) -> Path:
    """First existing config file in search order, else the most specific candidate."""
    candidates = config_search_paths(cli_path)
    for origin, path in candidates:
        if path.is_file():
            logger.debug("Config from %s: %s", origin, path)
            return path.resolve()
    # Nothing on disk: hand back the first candidate so callers report that path
    return candidates[0][1]


def configure_logging(cfg: LoggingConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.level),
        format=cfg.format,
        datefmt=cfg.datefmt,
    )
