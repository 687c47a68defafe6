"""
ImageLabel - interactive rectangle labeling over images.

Built with PyQt6. Pan and zoom an image, draw labels over it, then move,
resize and select them with the mouse or touchpad gestures.
"""

__version__ = "1.0.0"
__author__ = "ImageLabel Team"
