"""
Configuration management using pydantic-settings.

Loads settings from environment variables and .env file.
Provides type-safe access with validation.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ─────────────────────────────────────────────────────────────
# MODE ENUMS
# ─────────────────────────────────────────────────────────────


class ChannelMode(str, Enum):
    """Motion channel transport."""

    MOCK = "mock"  # Records commands, touches no hardware
    ZMQ = "zmq"  # ZeroMQ PUB socket bridged to the robot


class ArmTimingMode(str, Enum):
    """How long the runner waits after an arm gesture."""

    FIXED = "fixed"  # Category constant for every gesture
    PARAMETRIZED = "parametrized"  # Per-block params.time, constant as fallback


class DiscoveryMode(str, Enum):
    """How the robot's address is resolved."""

    STATIC = "static"  # Host/port from settings
    HTTP = "http"  # Ask a find-bot endpoint


# ─────────────────────────────────────────────────────────────
# NESTED SETTINGS
# ─────────────────────────────────────────────────────────────


class ChannelSettings(BaseSettings):
    """Motion channel configuration."""

    model_config = SettingsConfigDict(env_prefix="CHANNEL_")

    mode: ChannelMode = ChannelMode.MOCK
    host: str = "0.0.0.0"
    port: int = 9090
    bind: bool = Field(
        default=True,
        description="Bind the PUB socket (robot bridge connects) instead of connecting out",
    )
    robot_name: str = "c20000002"
    connect_settle_ms: int = Field(
        default=200,
        ge=0,
        description="Pause after opening the socket so subscribers can join",
    )

    @property
    def arm_topic(self) -> str:
        return f"/{self.robot_name}/arm_topic"

    @property
    def cmd_vel_topic(self) -> str:
        return f"/{self.robot_name}/cmd_vel"

    @property
    def endpoint(self) -> str:
        return f"tcp://{self.host}:{self.port}"


class TimingSettings(BaseSettings):
    """Timing constants of the sequence executor."""

    model_config = SettingsConfigDict(env_prefix="TIMING_")

    arm_mode: ArmTimingMode = ArmTimingMode.FIXED
    arm_wait_ms: int = Field(default=5000, ge=0, description="Wait after an arm gesture")
    arm_settle_ms: int = Field(default=1500, ge=0, description="Extra settle after an arm block inside a loop")
    move_default_s: float = Field(default=2.0, gt=0, description="Move duration when none given")
    linear_speed: float = Field(default=0.3, gt=0, description="Default linear speed (m/s)")
    angular_speed: float = Field(default=0.3, gt=0, description="Commanded turn rate (rad/s)")
    slip_correction: float = Field(default=0.0634, ge=0, description="Added to the turn rate to compensate wheel slip")
    publish_interval_ms: int = Field(default=100, gt=0, description="Republish cadence while turning")
    interlock_ms: int = Field(default=2000, ge=0, description="Pause before a risky wheel transition")
    repeat_pause_ms: int = Field(default=2000, ge=0, description="Pause between loop iterations")
    time_scale: float = Field(default=1.0, gt=0, description="Multiplier on every wait (dry runs)")


class DiscoverySettings(BaseSettings):
    """Robot discovery configuration."""

    model_config = SettingsConfigDict(env_prefix="DISCOVERY_")

    mode: DiscoveryMode = DiscoveryMode.STATIC
    service: str = "CentoBot"
    url: str = "http://localhost:5001/find-bot"
    timeout_s: float = Field(default=5.0, gt=0)
    host: str = ""
    port: int = 9090


class StoreSettings(BaseSettings):
    """Program store configuration."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    path: str = "outputs/programs"


# ─────────────────────────────────────────────────────────────
# MAIN SETTINGS
# ─────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from .env file and environment variables.
    Environment variables take precedence over .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    channel: ChannelSettings = Field(default_factory=ChannelSettings)
    timing: TimingSettings = Field(default_factory=TimingSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


# ─────────────────────────────────────────────────────────────
# SINGLETON ACCESS
# ─────────────────────────────────────────────────────────────

_settings: Settings | None = None


def get_settings() -> Settings:
    """Get application settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (for testing)."""
    global _settings
    _settings = None
