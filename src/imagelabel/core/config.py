"""Configuration management for ImageLabel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("imagelabel.yaml")


@dataclass
class AppConfig:
    """
    Interaction, styling and logging settings.

    Serialized with camelCase keys.
    """

    default_directory: str = ""
    edge_slop: float = 12.0  # Handle hit tolerance in view pixels
    touch_slop: int = 8  # Pointer travel in pixels before a press becomes a drag
    long_press_ms: int = 500
    preview_after_operate: bool = False  # Back to preview after each draw/update gesture
    auto_select_after_draw: bool = True
    rect_color: str = "#FF0000"
    highlight_color: str = "#FFFF00"
    highlight_alpha: int = 51  # 0-255
    stroke_width: float = 2.0
    zoom_factor: float = 1.1  # Per wheel notch
    min_zoom: float = 0.2
    max_zoom: float = 20.0
    background_color: str = "#202020"
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "defaultDirectory": self.default_directory,
            "edgeSlop": self.edge_slop,
            "touchSlop": self.touch_slop,
            "longPressMs": self.long_press_ms,
            "previewAfterOperate": self.preview_after_operate,
            "autoSelectAfterDraw": self.auto_select_after_draw,
            "rectColor": self.rect_color,
            "highlightColor": self.highlight_color,
            "highlightAlpha": self.highlight_alpha,
            "strokeWidth": self.stroke_width,
            "zoomFactor": self.zoom_factor,
            "minZoom": self.min_zoom,
            "maxZoom": self.max_zoom,
            "backgroundColor": self.background_color,
            "logLevel": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppConfig:
        """Create config from dictionary, using defaults for missing keys."""
        defaults = cls()
        return cls(
            default_directory=data.get("defaultDirectory", defaults.default_directory),
            edge_slop=float(data.get("edgeSlop", defaults.edge_slop)),
            touch_slop=int(data.get("touchSlop", defaults.touch_slop)),
            long_press_ms=int(data.get("longPressMs", defaults.long_press_ms)),
            preview_after_operate=bool(data.get("previewAfterOperate", defaults.preview_after_operate)),
            auto_select_after_draw=bool(data.get("autoSelectAfterDraw", defaults.auto_select_after_draw)),
            rect_color=data.get("rectColor", defaults.rect_color),
            highlight_color=data.get("highlightColor", defaults.highlight_color),
            highlight_alpha=int(data.get("highlightAlpha", defaults.highlight_alpha)),
            stroke_width=float(data.get("strokeWidth", defaults.stroke_width)),
            zoom_factor=float(data.get("zoomFactor", defaults.zoom_factor)),
            min_zoom=float(data.get("minZoom", defaults.min_zoom)),
            max_zoom=float(data.get("maxZoom", defaults.max_zoom)),
            background_color=data.get("backgroundColor", defaults.background_color),
            log_level=str(data.get("logLevel", defaults.log_level)).upper(),
        )


class ConfigManager:
    """
    Loads and saves the application configuration as YAML.

    The config is loaded lazily on first access and cached.
    """

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> AppConfig:
        """
        Load configuration from file.

        Returns:
            AppConfig with loaded values, or defaults if the file is
            missing or unreadable
        """
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            return AppConfig()

        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            return AppConfig()
        except OSError as e:
            logger.error(f"Error reading config file: {e}")
            return AppConfig()

        if not isinstance(data, dict):
            logger.error(f"Config file {self.config_path} does not contain a mapping")
            return AppConfig()

        try:
            config = AppConfig.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid config value: {e}")
            return AppConfig()

        logger.info(f"Loaded configuration from {self.config_path}")
        return config

    def save(self, config: Optional[AppConfig] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration to save, or the current config

        Returns:
            True if save was successful
        """
        if config is not None:
            self._config = config

        if self._config is None:
            logger.warning("No configuration to save")
            return False

        try:
            with open(self.config_path, "w") as f:
                yaml.dump(self._config.to_dict(), f, default_flow_style=False)
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            return False

        logger.info(f"Saved configuration to {self.config_path}")
        return True

    def update(self, **kwargs: Any) -> None:
        """
        Update configuration values and save.

        Args:
            **kwargs: Field names of AppConfig and their new values
        """
        config = self.config
        for key, value in kwargs.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")
        self.save()
