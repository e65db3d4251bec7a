"""
Pydantic models for YAML configuration validation.
Provides schema validation with clear error messages for export configurations.
"""

from __future__ import annotations
from typing import Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from ticket_stream.core.errors import ConfigError


class ZendeskConfig(BaseModel):
    """Connection settings for one Zendesk domain."""
    domain: str = Field(..., description='Zendesk subdomain; "company" for company.zendesk.com')
    user: str = Field(..., description="Zendesk user with admin role")
    password: Optional[SecretStr] = Field(None, description="Password authentication")
    api_token: Optional[SecretStr] = Field(None, description="API token authentication")
    timeout_s: int = Field(30, ge=1, le=600, description="Per-request timeout in seconds")
    max_attempts: int = Field(5, ge=1, le=20, description="Attempts per request on rate limits and 5xx")

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v):
        v = v.strip()
        if not v or '/' in v or '.' in v:
            raise ValueError('domain must be the bare subdomain, e.g. "company" for company.zendesk.com')
        return v

    @model_validator(mode='after')
    def validate_credentials(self):
        if self.password is None and self.api_token is None:
            raise ValueError('Must specify either a password or api_token')
        if self.password is not None and self.api_token is not None:
            raise ValueError('Cannot specify both password and api_token')
        return self


class ExportConfig(BaseModel):
    """What to fetch and how often."""
    tickets: bool = Field(True, description="Whether or not to fetch tickets")
    tickets_last_updated_n_days_ago: float = Field(
        1,
        description="First-run reach in days (0.5 = 12 hours); -1 exports all tickets and runs once",
    )
    interval_minutes: float = Field(1, ge=0, description="Sleep between runs in minutes")
    run_once: Optional[bool] = Field(None, description="Run a single export; defaults to true for -1 lookback")

    @field_validator('tickets_last_updated_n_days_ago')
    @classmethod
    def validate_lookback(cls, v):
        if v != -1 and v < 0:
            raise ValueError('tickets_last_updated_n_days_ago must be -1 or >= 0')
        return v

    @property
    def single_run(self) -> bool:
        if self.run_once is not None:
            return self.run_once
        return self.tickets_last_updated_n_days_ago == -1


class StateConfig(BaseModel):
    """Where the export cursor is persisted."""
    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = Field("output/state.db", description="SQLite database path")


class JsonlSinkConfig(BaseModel):
    """Configuration for the JSONL sink."""
    type: Literal["jsonl"]
    path: str = Field(..., description='Output file, "-" for stdout')


class StdoutSinkConfig(BaseModel):
    """Configuration for writing JSON lines to stdout."""
    type: Literal["stdout"]


class QueueSinkConfig(BaseModel):
    """Configuration for handing events to an in-process queue."""
    type: Literal["queue"]
    maxsize: int = Field(0, ge=0, description="Queue bound, 0 for unbounded")
    timeout_s: Optional[float] = Field(None, gt=0, description="Put timeout on a full queue")


class StreamConfig(BaseModel):
    """Root configuration model for the ticket stream."""
    zendesk: ZendeskConfig
    export: ExportConfig = Field(default_factory=ExportConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    sink: Union[Dict[str, Any], JsonlSinkConfig, StdoutSinkConfig, QueueSinkConfig] = Field(
        default_factory=lambda: {"type": "stdout"}, description="Sink configuration"
    )
    logging_config: str = Field("configs/logging.yaml", description="Logging dictConfig YAML")

    @model_validator(mode='after')
    def validate_sink_config(self):
        """Validate and convert sink configuration."""
        sink_data = self.sink
        if isinstance(sink_data, (JsonlSinkConfig, StdoutSinkConfig, QueueSinkConfig)):
            return self

        sink_type = sink_data.get('type')
        if sink_type == 'jsonl':
            if 'path' not in sink_data:
                raise ValueError('JSONL sink requires "path" field')
            self.sink = JsonlSinkConfig(**sink_data)
        elif sink_type == 'stdout':
            self.sink = StdoutSinkConfig(**sink_data)
        elif sink_type == 'queue':
            self.sink = QueueSinkConfig(**sink_data)
        else:
            raise ValueError(f'Unknown sink type: {sink_type}. Must be "jsonl", "stdout" or "queue"')

        return self


def load_and_validate_config(config_path: str) -> StreamConfig:
    """
    Load and validate a stream configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated StreamConfig object

    Raises:
        ConfigError: If the file is missing, malformed or invalid
    """
    import yaml

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    try:
        return StreamConfig(**raw_config)
    except ValidationError as e:
        # Format validation errors nicely
        error_messages = []
        for error in e.errors():
            field_path = '.'.join(str(loc) for loc in error['loc'])
            error_messages.append(f"  {field_path}: {error['msg']}")

        raise ConfigError(
            f"Configuration validation failed for {config_path}:\n" +
            '\n'.join(error_messages)
        ) from e
