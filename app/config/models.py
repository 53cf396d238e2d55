"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import parse_duration, validate_duration_range, DurationParseError


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class PushUrgency(str, Enum):
    """Web push urgency header values."""

    VERY_LOW = "very-low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class DispatchConfig(BaseModel):
    """Settings for one dispatch run and the periodic caller."""

    interval: str = Field("5m", description="Polling interval for the dispatcher")
    batch_size: int = Field(
        25, ge=1, le=500, description="Maximum due notifications processed per run"
    )
    lookup_batch_size: int = Field(
        500, ge=1, le=500, description="Maximum ids per 'id in set' store query"
    )
    max_concurrent_sends: int = Field(
        4, ge=1, le=32, description="Worker pool size for per-recipient sends"
    )

    # Computed field
    interval_seconds: Optional[int] = None

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        """Validate and parse dispatch interval."""
        try:
            seconds = parse_duration(v)
            validate_duration_range(seconds, min_seconds=60, max_seconds=86400)
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        """Compute the interval in seconds."""
        self.interval_seconds = parse_duration(self.interval)
        return self


class AudienceConfig(BaseModel):
    """Audience resolution settings."""

    include_admins_in_event_audience: bool = Field(
        False,
        description="Fold administrators into grouped event audiences for scheduled sends",
    )


class ScheduleConfig(BaseModel):
    """Default schedule computation settings."""

    timezone: str = Field("UTC", description="IANA time zone used for local-hour rules")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the time zone name is known to the zoneinfo database."""
        stripped = v.strip()
        try:
            ZoneInfo(stripped)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: '{v}'") from e
        return stripped

    def tzinfo(self) -> ZoneInfo:
        """Return the configured zone as a tzinfo object."""
        return ZoneInfo(self.timezone)


class EmailConfig(BaseModel):
    """Email (secondary channel) delivery settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        2, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        2, ge=1, le=60, description="Initial retry delay in seconds"
    )


class PushConfig(BaseModel):
    """Web push (primary channel) delivery settings."""

    ttl_seconds: int = Field(
        86400, ge=0, le=2419200, description="How long the push service keeps the message"
    )
    urgency: PushUrgency = Field(PushUrgency.NORMAL, description="Web push Urgency header")

    model_config = {"use_enum_values": True}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """Network timeouts for the store and both delivery channels."""

    push_timeout_seconds: int = Field(
        10, ge=1, le=120, description="Request timeout for push service calls (seconds)"
    )
    smtp_timeout_seconds: int = Field(
        30, ge=1, le=300, description="Socket timeout for SMTP connections (seconds)"
    )
    store_timeout_seconds: int = Field(
        30, ge=1, le=300, description="Lock/connect timeout for the store (seconds)"
    )


class AppConfig(BaseModel):
    """Root configuration object for the notification dispatcher."""

    dispatch: DispatchConfig = Field(
        default_factory=DispatchConfig, description="Dispatch run settings"
    )
    audience: AudienceConfig = Field(
        default_factory=AudienceConfig, description="Audience resolution settings"
    )
    schedule: ScheduleConfig = Field(
        default_factory=ScheduleConfig, description="Default schedule settings"
    )
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    push: PushConfig = Field(default_factory=PushConfig, description="Web push settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    advanced: AdvancedConfig = Field(
        default_factory=AdvancedConfig, description="Advanced runtime settings"
    )
