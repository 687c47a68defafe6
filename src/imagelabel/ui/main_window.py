"""Main application window for ImageLabel."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QAction, QColor, QImageReader, QKeySequence, QPixmap
from PyQt6.QtWidgets import (
    QFileDialog, QLabel, QMainWindow, QMessageBox, QStatusBar, QToolBar
)

from ..core.config import AppConfig, ConfigManager
from ..core.controller import Mode, mode_to_string
from ..core.label import Label
from ..core.rect_label import RectLabel
from .label_view import ImageLabelView

logger = logging.getLogger(__name__)

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp *.tif *.tiff)"


class MainWindow(QMainWindow):
    """
    Sample window around ``ImageLabelView``.

    Opens an image, cycles through the interaction modes and reports every
    label lifecycle event in the status bar.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        """Initialize the main window."""
        super().__init__()

        # Remove image allocation limit for large images
        QImageReader.setAllocationLimit(0)

        self.config_manager = config_manager or ConfigManager()

        self._init_ui()
        self._setup_connections()
        self._update_mode_action()

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self.config_manager.config

    def _init_ui(self) -> None:
        self.setWindowTitle("ImageLabel")
        self.setGeometry(100, 100, 1000, 750)

        self.label_view = ImageLabelView()
        self.label_view.apply_config(self.config)
        self.label_view.controller.label_factory = self._create_label
        self.setCentralWidget(self.label_view)

        self._create_toolbar()
        self._create_status_bar()

    def _create_toolbar(self) -> None:
        self.toolbar = QToolBar()
        self.toolbar.setObjectName("MainToolBar")
        self.addToolBar(self.toolbar)

        open_action = QAction("Open Image", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_image)
        self.toolbar.addAction(open_action)

        self.toolbar.addSeparator()

        self.mode_action = QAction(self)
        self.mode_action.setShortcut("M")
        self.mode_action.triggered.connect(self._cycle_mode)
        self.toolbar.addAction(self.mode_action)

        fit_action = QAction("Fit", self)
        fit_action.setShortcut("F")
        fit_action.triggered.connect(self.label_view.controller.reset_view)
        self.toolbar.addAction(fit_action)

        self.toolbar.addSeparator()

        delete_action = QAction("Delete Label", self)
        delete_action.triggered.connect(self.label_view.delete_selected)
        self.toolbar.addAction(delete_action)

        clear_action = QAction("Clear Labels", self)
        clear_action.triggered.connect(self.label_view.controller.remove_all_labels)
        self.toolbar.addAction(clear_action)

    def _create_status_bar(self) -> None:
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

        self.zoom_label = QLabel()
        self.status_bar.addPermanentWidget(self.zoom_label)

        self.count_label = QLabel()
        self.status_bar.addPermanentWidget(self.count_label)
        self._update_count()

    def _setup_connections(self) -> None:
        controller = self.label_view.controller
        controller.mode_changed.connect(self._on_mode_changed)
        controller.draw_started.connect(self._on_draw_started)
        controller.draw_moved.connect(self._on_draw_moved)
        controller.draw_finished.connect(self._on_draw_finished)
        controller.update_started.connect(lambda label: self._show("Label update start"))
        controller.update_finished.connect(self._on_update_finished)
        controller.select_started.connect(lambda label: self._show("Label select start"))
        controller.select_finished.connect(lambda label: self._show("Label select end"))
        controller.zoom_changed.connect(self._on_zoom_changed)
        controller.repaint_requested.connect(self._update_count)

    def _create_label(self) -> Label:
        """Label factory for draw mode, styled from the config."""
        config = self.config
        label = RectLabel()
        label.rect_color = QColor(config.rect_color)
        label.highlight_color = QColor(config.highlight_color)
        label.highlight_alpha = config.highlight_alpha
        label.stroke_width = config.stroke_width
        return label

    # === Actions ===

    def _open_image(self) -> None:
        start_dir = self.config.default_directory
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", start_dir, IMAGE_FILTER)
        if path:
            self.load_image(path)

    def load_image(self, path: str) -> bool:
        """Load an image file into the view."""
        pixmap = QPixmap(path)
        if pixmap.isNull():
            logger.error(f"Failed to load image: {path}")
            QMessageBox.warning(self, "Open Image", f"Could not load image:\n{path}")
            self.label_view.set_pixmap(None)
            return False

        logger.info(f"Loaded image {path} ({pixmap.width()}x{pixmap.height()})")
        self.label_view.set_pixmap(pixmap)
        self.setWindowTitle(f"ImageLabel - {Path(path).name}")
        self.config_manager.update(default_directory=str(Path(path).parent))
        return True

    def _cycle_mode(self) -> None:
        controller = self.label_view.controller
        controller.set_mode(Mode((controller.mode + 1) % len(Mode)))

    # === Listener slots ===

    def _show(self, message: str) -> None:
        self.status_bar.showMessage(message)

    def _update_mode_action(self) -> None:
        self.mode_action.setText(mode_to_string(self.label_view.controller.mode))

    def _update_count(self) -> None:
        self.count_label.setText(f"Labels: {len(self.label_view.controller.labels())}")

    def _on_mode_changed(self, old: Mode, new: Mode) -> None:
        self._update_mode_action()
        self._show(f"Mode {mode_to_string(old)} -> {mode_to_string(new)}")

    def _on_draw_started(self, point: QPointF, label: Label) -> None:
        self._show(f"Down ({point.x():.1f}, {point.y():.1f})")

    def _on_draw_moved(self, point: QPointF, label: Label) -> None:
        self._show(f"Draw move ({point.x():.1f}, {point.y():.1f})")

    def _on_draw_finished(self, committed: bool, label: Optional[Label]) -> None:
        self._show(f"Draw end {committed}")
        self._update_count()

    def _on_update_finished(self, label: Label) -> None:
        data = label.data
        if isinstance(label, RectLabel) and data is not None:
            left, top, right, bottom = data
            self._show(f"Label update end ({left:.0f}, {top:.0f}, {right:.0f}, {bottom:.0f})")
        else:
            self._show("Label update end")

    def _on_zoom_changed(self, scale: float) -> None:
        self.zoom_label.setText(f"Zoom: {scale * 100:.0f}%")
