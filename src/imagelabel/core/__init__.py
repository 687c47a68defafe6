"""Core interaction and geometry modules for ImageLabel."""

from .collection import LabelCollection
from .config import AppConfig, ConfigManager
from .controller import InteractionController, Mode, mode_to_string
from .label import DragTarget, Label, UpdateResult
from .rect_label import RectLabel, clamped_delta
from .transform import ViewportState

__all__ = [
    "LabelCollection",
    "AppConfig",
    "ConfigManager",
    "InteractionController",
    "Mode",
    "mode_to_string",
    "DragTarget",
    "Label",
    "UpdateResult",
    "RectLabel",
    "clamped_delta",
    "ViewportState",
]
