"""
Configuration management for the button board host.

Loads/saves TOML configuration for operation mode, scene order, MQTT broker,
VLC and Lyrion players, and logging.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from buttonboard.pins import Button, parse_name


class OperationMode(str, Enum):
    """Whether capabilities talk to real hardware/services or simulations."""

    REAL = "real"
    SIMULATED = "simulated"


class ApplicationConfig(BaseModel):
    """Application-wide settings."""

    operation_mode: OperationMode = Field(
        default=OperationMode.REAL, description="real or simulated integrations"
    )
    disable_scene_order: bool = Field(
        default=False, description="Allow any scene to start regardless of stage"
    )
    scenario_assets_folder: str = Field(
        default="assets", min_length=1, description="Directory with *.json / *.scene assets"
    )


class SceneMapConfig(BaseModel):
    """Binding of a scene asset to its trigger button."""

    key: str = Field(min_length=1, description="Asset key (file name without extension)")
    trigger_button: str = Field(description="Button name, e.g. TopCenter")
    required_stage: int = Field(default=0, ge=0, description="Stage at which the scene may start")

    @field_validator("trigger_button")
    @classmethod
    def _known_button(cls, value: str) -> str:
        parse_name(Button, value)
        return value

    @property
    def button(self) -> Button:
        """Trigger button as enum member."""
        return parse_name(Button, self.trigger_button)


def _default_scenes() -> List[SceneMapConfig]:
    return [
        SceneMapConfig(key="scene1", trigger_button="TopCenter", required_stage=0),
        SceneMapConfig(key="scene2", trigger_button="BottomLeft", required_stage=1),
        SceneMapConfig(key="scene3", trigger_button="BottomCenter", required_stage=2),
        SceneMapConfig(key="scene4", trigger_button="BottomRight", required_stage=3),
    ]


class ScenarioConfig(BaseModel):
    """Setup asset and scene order."""

    setup_key: str = Field(default="setup", min_length=1, description="Key of the setup asset")
    scenes: List[SceneMapConfig] = Field(default_factory=_default_scenes)

    @model_validator(mode="after")
    def _unique_keys(self) -> "ScenarioConfig":
        keys = [scene.key.lower() for scene in self.scenes]
        if len(keys) != len(set(keys)):
            raise ValueError("scenario.scenes contains duplicate keys")
        return self


class MqttConfig(BaseModel):
    """MQTT broker connection."""

    server: str = Field(default="localhost", description="Broker host")
    port: int = Field(default=1883, ge=1, le=65535, description="Broker TCP port")
    username: str = Field(default="", description="Broker user (empty for anonymous)")
    password: str = Field(default="", description="Broker password")
    client_id: str = Field(default="buttonboard", description="MQTT client id")
    will_topic: str = Field(default="buttonboard/status", description="Retained last-will topic")
    online_topic: str = Field(default="buttonboard/status", description="Retained online topic")
    keepalive_s: int = Field(default=30, ge=1, description="Keep-alive interval in seconds")
    reconnect_delay_s: float = Field(default=5.0, gt=0, description="Fixed reconnect delay")


class VlcPlayerConfig(BaseModel):
    """VLC HTTP interface of one media player."""

    base_uri: str = Field(description="e.g. http://10.0.0.20:8080/")
    password: str = Field(default="", description="VLC HTTP password")


class VlcConfig(BaseModel):
    """Configured VLC players keyed by name."""

    players: Dict[str, VlcPlayerConfig] = Field(default_factory=dict)


class LyrionConfig(BaseModel):
    """Lyrion (Logitech Media Server) CLI endpoint."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=9090, ge=1, le=65535, description="CLI port")
    username: Optional[str] = Field(default=None, description="CLI login user")
    password: Optional[str] = Field(default=None, description="CLI login password")
    players: Dict[str, str] = Field(default_factory=dict, description="Player name -> player id")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_dir: str = Field(default="~/buttonboard_logs", description="Directory for log files")
    console: bool = Field(default=True, description="Also log to stderr")


class Config(BaseModel):
    """Complete button board configuration."""

    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    scenario: ScenarioConfig = Field(default_factory=ScenarioConfig)
    mqtt: MqttConfig = Field(default_factory=MqttConfig)
    vlc: VlcConfig = Field(default_factory=VlcConfig)
    lyrion: LyrionConfig = Field(default_factory=LyrionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def simulated(self) -> bool:
        """True when capabilities should bind to their simulations."""
        return self.application.operation_mode is OperationMode.SIMULATED


def get_config_path() -> Path:
    """Get default configuration file path."""
    config_home = os.getenv("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "buttonboard" / "config.toml"


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load configuration from TOML file.

    Args:
        path: Configuration file path. If None, uses default location.

    Returns:
        Loaded configuration object.

    Raises:
        pydantic.ValidationError: If the file content is invalid.
    """
    if path is None:
        path = get_config_path()

    if not path.exists():
        # Return default config if file doesn't exist
        return Config()

    import tomli

    with open(path, "rb") as f:
        data = tomli.load(f)

    return Config(**data)


def save_config(config: Config, path: Optional[Path] = None) -> None:
    """
    Save configuration to TOML file.

    Args:
        config: Configuration object to save.
        path: Configuration file path. If None, uses default location.
    """
    if path is None:
        path = get_config_path()

    # Create directory if it doesn't exist
    path.parent.mkdir(parents=True, exist_ok=True)

    import tomli_w

    with open(path, "wb") as f:
        tomli_w.dump(config.model_dump(mode="json", exclude_none=True), f)
