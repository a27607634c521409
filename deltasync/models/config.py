"""Configuration models for the delta sync engine."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from deltasync.models.patch import ConflictResolution


class SyncConfig(BaseModel):
    """Configuration for one sync coordinator."""

    model_config = {"frozen": True}

    endpoint: str = Field(default=..., min_length=1, description="Remote authority URL")
    batch_size: int = Field(default=50, ge=1, description="Maximum patches per transmission")
    retry_attempts: int = Field(
        default=3, ge=1, description="Transmission attempts per batch before failing"
    )
    conflict_resolution: ConflictResolution = Field(
        default=ConflictResolution.SERVER_WINS,
        description="Policy applied to every reported conflict",
    )
    retry_base_delay: float = Field(
        default=1.0, gt=0, description="Backoff base in seconds (delay = base * 2**attempt)"
    )
    retry_max_delay: float | None = Field(
        default=None, gt=0, description="Optional backoff ceiling in seconds; None means uncapped"
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    Values can also come from environment variables with the DELTASYNC_
    prefix, e.g. DELTASYNC_SYNC__BATCH_SIZE=10.
    """

    model_config = SettingsConfigDict(
        env_prefix="DELTASYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    sync: SyncConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
