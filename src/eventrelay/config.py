from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from eventrelay.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = "conf.json"


class HandlerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_path: str = Field(description="Working directory of the node")
    events_file: str = Field(default="events.fifo", description="Events pipe name under <node_path>/fifo")
    log_file: str = Field(default="operations.log", description="Node log uploaded by the daily task")

    startup_delay_seconds: float = Field(default=1.0, gt=0)
    open_attempts: int = Field(default=5, ge=1)
    open_retry_delay_seconds: float = Field(default=3.0, ge=0)
    eof_poll_interval_seconds: float = Field(default=0.005, ge=0)
    max_line_bytes: int = Field(default=1 << 20, ge=2, description="Longest accepted event line")

    @property
    def events_pipe_path(self) -> Path:
        return Path(self.node_path) / "fifo" / self.events_file

    @property
    def log_file_path(self) -> Path:
        return Path(self.node_path) / self.log_file


class ServiceSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    allow_send_events: bool = True
    allow_send_logs: bool = False
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    url: Optional[str] = Field(default=None, description="Collector base URL; derived from host/port if unset")
    request_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    @property
    def base_url(self) -> str:
        if self.url:
            return self.url.rstrip("/")
        return f"http://{self.host}:{self.port}"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handler: HandlerSettings
    service: ServiceSettings = Field(default_factory=ServiceSettings, alias="collecting_data_service")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Reads the JSON configuration once at startup.

    The path falls back to RELAY_CONFIG, then to ./conf.json.
    RELAY_LOG_LEVEL overrides logging.level when set.
    """
    path = path or os.getenv("RELAY_CONFIG", DEFAULT_CONFIG_PATH)
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"can't read configuration {path}: {exc}") from exc

    try:
        settings = Settings.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration {path}: {exc}") from exc

    level = os.getenv("RELAY_LOG_LEVEL")
    if level:
        settings = settings.model_copy(
            update={"logging": settings.logging.model_copy(update={"level": level.strip().upper()})}
        )
    return settings
