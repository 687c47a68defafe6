"""UI components for ImageLabel."""

from .label_view import ImageLabelView
from .main_window import MainWindow

__all__ = [
    "ImageLabelView",
    "MainWindow",
]
