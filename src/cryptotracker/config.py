from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
import sys
import tomllib
from typing import Any, ClassVar, TypeVar

import keyring
from keyring.errors import KeyringError
from loguru import logger

from cryptotracker.chart.models import ChartStyle, CurveMode

# --- Constants ---
APP_NAME = "cryptotracker"
# Use a platform-agnostic user config directory
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

# --- Keyring Service Name ---
KEYRING_SERVICE_NAME = f"{APP_NAME.lower()}-api-keys"
KEYRING_API_KEY_NAME = "coincap_key"

# --- Dataclass Models for Settings ---
T = TypeVar("T")


@dataclass
class GeneralSettings:
    """General application settings."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    log_directory: str = str(CONFIG_DIR / "logs")


@dataclass
class APISettings:
    """Settings for the CoinCap price API."""

    # Note: The optional API key is stored in the system keyring, not here.
    base_url: str = "https://api.coincap.io/v2"
    timeout_seconds: float = 20.0
    history_days: int = 5
    history_interval: str = "h6"


@dataclass
class ChartSettings:
    """Appearance and behaviour of the price chart."""

    chart_line_color: str = "#2D6CDF"
    unselected_color: str = "#7C7C7C"
    selected_color: str = "#1E1E1E"
    helper_lines_thickness_px: float = 1.0
    axis_lines_thickness_px: float = 5.0
    label_font_size: float = 10.0
    min_y_label_spacing: float = 25.0
    vertical_padding: float = 8.0
    horizontal_padding: float = 8.0
    x_axis_label_spacing: float = 8.0
    smooth_curve: bool = True
    show_helper_lines: bool = True
    unit: str = "$"
    # Number of most recent samples shown at once.
    visible_points: int = 20

    def to_style(self) -> ChartStyle:
        """Builds the immutable chart style from these settings."""
        return ChartStyle(
            chart_line_color=self.chart_line_color,
            unselected_color=self.unselected_color,
            selected_color=self.selected_color,
            helper_lines_thickness_px=self.helper_lines_thickness_px,
            axis_lines_thickness_px=self.axis_lines_thickness_px,
            label_font_size=self.label_font_size,
            min_y_label_spacing=self.min_y_label_spacing,
            vertical_padding=self.vertical_padding,
            horizontal_padding=self.horizontal_padding,
            x_axis_label_spacing=self.x_axis_label_spacing,
            curve_mode=CurveMode.CUBIC if self.smooth_curve else CurveMode.LINEAR,
        )


@dataclass
class Settings:
    """Root container for all application settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    api: APISettings = field(default_factory=APISettings)
    chart: ChartSettings = field(default_factory=ChartSettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the singleton instance of the Settings object."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary."""
    for f in field_names(dc_instance):
        if f in data:
            field_value = getattr(dc_instance, f)
            if is_dataclass(field_value):
                _update_dataclass(field_value, data[f])
            else:
                setattr(dc_instance, f, data[f])
    return dc_instance


def field_names(dc_instance: Any) -> list[str]:
    """Helper to get field names from a dataclass instance."""
    return [f.name for f in dc_instance.__dataclass_fields__.values()]


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    If the config file does not exist, it creates a commented stub so users
    know where to put overrides.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()
    logger.info(f"Loading configuration from '{path}'...")

    if not path.exists():
        logger.warning(f"Configuration file not found. Creating default at '{path}'.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                f.write("# CryptoTracker Configuration File\n")
                f.write("# Add your settings overrides here, e.g.:\n")
                f.write("# [chart]\n# unit = \"$\"\n")
        except OSError as e:
            logger.error(f"Failed to create default config file: {e}")
        return settings_obj

    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        logger.success("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()
    except OSError as e:
        logger.error(f"Could not read configuration from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()
    except (AttributeError, TypeError) as e:
        logger.error(f"Configuration in '{path}' has an invalid structure: {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()

    return settings_obj


# --- Keyring Management ---


def get_api_key() -> str | None:
    """Retrieves the CoinCap API key from the system keyring.

    Returns:
        The stored key, or None if none is stored or the keyring is unusable.
    """
    try:
        api_key = keyring.get_password(KEYRING_SERVICE_NAME, KEYRING_API_KEY_NAME)
    except KeyringError as e:
        logger.error(f"Could not retrieve the API key from keyring: {e}")
        return None
    if api_key:
        logger.debug("Retrieved the CoinCap API key from keyring.")
    return api_key


def set_api_key(api_key: str) -> None:
    """Stores the CoinCap API key in the system keyring.

    Args:
        api_key: The API key to store.
    """
    try:
        keyring.set_password(KEYRING_SERVICE_NAME, KEYRING_API_KEY_NAME, api_key)
        logger.info("Successfully stored the CoinCap API key in keyring.")
    except KeyringError as e:
        logger.error(f"Could not store the API key in keyring: {e}")


# --- Global Singleton Instance ---
# Other modules can simply `from cryptotracker.config import settings`
settings = Settings.get_instance()
