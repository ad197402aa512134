"""Configuration management for keybridge.

Loads settings from a YAML configuration file with environment variable
overrides (KEYBRIDGE_ prefix, ``__`` as the nested delimiter). Supports
.env files. Command-line values are layered on top by the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

DEFAULT_CONFIG_PATH = Path("config/keybridge.yaml")


class SerialConfig(BaseModel):
    """Serial line parameters. Frozen: a channel never changes them once open."""

    model_config = ConfigDict(frozen=True)

    port: str | None = Field(default=None, description="Serial device path, e.g. /dev/ttyUSB0")
    baudrate: int = Field(default=115200, gt=0)
    data_bits: Literal[5, 6, 7, 8] = Field(default=8)
    parity: Literal["none", "even", "odd"] = Field(default="none")
    stop_bits: Literal[1, 2] = Field(default=1)
    flow_control: Literal["none", "hardware", "software"] = Field(default="none")
    timeout: float = Field(default=0.01, gt=0, description="Read timeout in seconds")

    @field_validator("parity", "flow_control", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("data_bits", "stop_bits", mode="before")
    @classmethod
    def _numeric_string(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        return value


class BridgeConfig(BaseModel):
    read_chunk_size: int = Field(default=1000, gt=0)
    write_lock_timeout: float = Field(default=0.5, gt=0)
    interrupt_exit_code: int = Field(default=0, ge=0, le=255)


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class YamlDataSource(PydanticBaseSettingsSource):
    """Settings source over an already-parsed YAML mapping.

    Placed below the environment and .env sources, so values from the
    file only fill in what the environment leaves unset.
    """

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            name: self._data[name]
            for name in self.settings_cls.model_fields
            if name in self._data
        }


class Settings(BaseSettings):
    """Root configuration for keybridge.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "KEYBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Parsed YAML file contents; set on the subclass built by load_settings()
    yaml_data: ClassVar[dict[str, Any]] = {}

    serial: SerialConfig = Field(default_factory=SerialConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlDataSource(settings_cls, cls.yaml_data),
            file_secret_settings,
        )

    def with_serial_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with the given serial fields replaced and re-validated.

        ``None`` values are ignored so unset CLI options keep the configured
        value.

        Raises:
            pydantic.ValidationError: If any resulting value is invalid.
        """
        data = self.serial.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        serial = SerialConfig.model_validate(data)
        return self.model_copy(update={"serial": serial})


def resolve_config_path(config_path: Path | str | None = None) -> Path:
    return Path(config_path) if config_path else DEFAULT_CONFIG_PATH


def read_config_file(path: Path, required: bool = False) -> dict[str, Any]:
    """Parse a YAML config file into a mapping.

    A missing file yields an empty mapping unless ``required`` is set.

    Raises:
        ConfigError: If the file is required but missing, unreadable, not
            valid YAML, or its top level is not a mapping.
    """
    if not path.exists():
        if required:
            raise ConfigError(f"Config file {path} not found", path=str(path))
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}", path=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {path} is not valid YAML: {e}", path=str(path)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            path=str(path),
        )
    return data


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults. An explicitly
    given ``config_path`` must exist; the default path may be absent.

    Raises:
        ConfigError: If the config file cannot be used.
        pydantic.ValidationError: If a value is invalid.
    """
    path = resolve_config_path(config_path)
    file_data = read_config_file(path, required=config_path is not None)

    class FileSettings(Settings):
        yaml_data: ClassVar[dict[str, Any]] = file_data

    return FileSettings()
