"""
Configuration models using Pydantic for validation.

All configuration is loaded from protocom.json and validated at startup.
"""

from typing import Dict, Optional
from pydantic import BaseModel, Field, field_validator


class SerialConfig(BaseModel):
    """Serial port configuration."""

    port: str = Field(default="", description="Serial port name (e.g., COM12, /dev/ttyUSB0)")
    baud: int = Field(default=115200, ge=300, description="Baud rate")
    timeout_seconds: float = Field(
        default=5.0, gt=0, le=60, description="Read timeout for one response line"
    )
    write_timeout_seconds: float = Field(
        default=2.0, gt=0, le=60, description="Write timeout"
    )


class EngineConfig(BaseModel):
    """Script engine configuration."""

    max_jumps: int = Field(
        default=10, ge=0, le=10000, description="Jump budget shared by one script run"
    )
    hex_inline_limit: int = Field(
        default=511,
        ge=2,
        le=511,
        description="Hex strings shorter than this are sent as binary D frames",
    )
    output_file: str = Field(
        default="protocom_output.txt",
        description="Default file for W commands without a path",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    file: Optional[str] = Field(
        default=None,
        description="Log file path (None for console only)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SimulatorConfig(BaseModel):
    """Simulated device configuration."""

    enabled: bool = Field(default=False, description="Use simulator instead of a serial port")
    firmware_version: str = Field(default="0.0.1", description="Reported by V and F commands")
    status: str = Field(default="READY", description="Reported by the S command")
    response_latency_ms: int = Field(
        default=0, ge=0, le=5000, description="Artificial response delay (ms)"
    )
    inject_timeout: bool = Field(default=False, description="Inject timeout errors")
    responses: Dict[str, str] = Field(
        default_factory=dict,
        description="Fixed replies keyed by full command text (without newline)",
    )

    @field_validator("firmware_version")
    @classmethod
    def validate_firmware_version(cls, v):
        """Firmware version must fit on one protocol line."""
        if not v or "\n" in v:
            raise ValueError("Firmware version must be a non-empty single line")
        return v


class AppConfig(BaseModel):
    """Root configuration model."""

    serial: SerialConfig = Field(default_factory=SerialConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)

    class Config:
        """Pydantic config."""
        extra = "forbid"  # Raise error on unknown fields
