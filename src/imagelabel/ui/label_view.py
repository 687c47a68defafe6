"""Canvas widget hosting the interaction controller."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QEvent, QPointF, Qt, QTimer
from PyQt6.QtGui import (
    QColor, QKeyEvent, QMouseEvent, QNativeGestureEvent, QPainter,
    QPaintEvent, QPixmap, QResizeEvent, QWheelEvent
)
from PyQt6.QtWidgets import QGestureEvent, QPinchGesture, QWidget

from ..core.config import AppConfig
from ..core.controller import InteractionController, Mode

logger = logging.getLogger(__name__)


class ImageLabelView(QWidget):
    """
    Widget showing an image with labels drawn over it.

    Translates Qt mouse, wheel and pinch input into the gestures the
    ``InteractionController`` understands: raw press/move/release for draw
    and update, drags as scrolls in preview, taps and long presses in select.
    """

    ZOOM_FACTOR = 1.1
    TOUCH_SLOP = 8
    LONG_PRESS_MS = 500
    # Wheel pan distance per 1/8 degree of rotation
    WHEEL_PAN_STEP = 0.5

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """Initialize the view."""
        super().__init__(parent)

        self.controller = InteractionController(self)
        self.controller.repaint_requested.connect(self.update)

        self.background_color = QColor("#202020")
        self.zoom_factor = self.ZOOM_FACTOR
        self.touch_slop = self.TOUCH_SLOP
        self.long_press_ms = self.LONG_PRESS_MS

        self._pixmap: Optional[QPixmap] = None

        # Press tracking for tap/drag/long-press recognition
        self._press_pos: Optional[QPointF] = None
        self._last_pos = QPointF()
        self._dragging = False
        self._long_pressed = False
        self._long_press_timer = QTimer(self)
        self._long_press_timer.setSingleShot(True)
        self._long_press_timer.timeout.connect(self._on_long_press)

        self.setMinimumSize(200, 200)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.grabGesture(Qt.GestureType.PinchGesture)

    def apply_config(self, config: AppConfig) -> None:
        """Apply interaction and styling settings."""
        self.controller.apply_config(config)
        self.background_color = QColor(config.background_color)
        self.zoom_factor = config.zoom_factor
        self.touch_slop = config.touch_slop
        self.long_press_ms = config.long_press_ms
        self.update()

    # === Content ===

    def pixmap(self) -> Optional[QPixmap]:
        return self._pixmap

    def set_pixmap(self, pixmap: Optional[QPixmap]) -> None:
        """Show an image; None or a null pixmap clears the view."""
        if pixmap is not None and pixmap.isNull():
            pixmap = None
        self._pixmap = pixmap
        self.controller.resize_view(self.width(), self.height())
        self.controller.set_content(pixmap)

    # === Qt events ===

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self.controller.resize_view(event.size().width(), event.size().height())

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), self.background_color)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self.controller.render(painter)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return

        self.setFocus()
        pos = event.position()
        self._press_pos = pos
        self._last_pos = pos
        self._dragging = False
        self._long_pressed = False

        consumed = self.controller.pointer_down(pos.x(), pos.y())
        if self.controller.mode == Mode.SELECT:
            self._long_press_timer.start(self.long_press_ms)

        if consumed:
            event.accept()
        else:
            event.ignore()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._press_pos is None:
            super().mouseMoveEvent(event)
            return

        pos = event.position()
        if not self._dragging and (pos - self._press_pos).manhattanLength() > self.touch_slop:
            self._dragging = True
            self._long_press_timer.stop()
            # Pan the full distance from the press, including the slop
            self._last_pos = self._press_pos

        mode = self.controller.mode
        if mode in (Mode.DRAW, Mode.UPDATE):
            self.controller.pointer_move(pos.x(), pos.y())
        elif mode == Mode.PREVIEW and self._dragging:
            delta = pos - self._last_pos
            self.controller.scroll(delta.x(), delta.y())

        self._last_pos = pos

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or self._press_pos is None:
            super().mouseReleaseEvent(event)
            return

        pos = event.position()
        self._finish_press(pos, cancelled=False)

    def _finish_press(self, pos: QPointF, cancelled: bool) -> None:
        self._long_press_timer.stop()

        mode = self.controller.mode
        if mode in (Mode.DRAW, Mode.UPDATE):
            self.controller.pointer_up(pos.x(), pos.y(), cancelled=cancelled)
        elif mode == Mode.SELECT and not (cancelled or self._dragging or self._long_pressed):
            self.controller.single_tap_up(pos.x(), pos.y())

        self._press_pos = None
        self._dragging = False

    def _on_long_press(self) -> None:
        if self._press_pos is None or self._dragging:
            return
        self._long_pressed = True
        self.controller.long_press(self._last_pos.x(), self._last_pos.y())

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Ctrl+wheel zooms around the cursor, the plain wheel pans."""
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            delta = event.angleDelta().y()
            if delta == 0:
                event.ignore()
                return
            factor = self.zoom_factor if delta > 0 else 1 / self.zoom_factor
            pos = event.position()
            consumed = self.controller.scale(pos.x(), pos.y(), factor)
        else:
            pixel = event.pixelDelta()
            if not pixel.isNull():
                dx, dy = pixel.x(), pixel.y()
            else:
                angle = event.angleDelta()
                dx = angle.x() * self.WHEEL_PAN_STEP
                dy = angle.y() * self.WHEEL_PAN_STEP
            consumed = self.controller.scroll(dx, dy)

        if consumed:
            event.accept()
        else:
            event.ignore()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() == Qt.Key.Key_Escape:
            if self._press_pos is not None:
                self._finish_press(self._last_pos, cancelled=True)
            self.controller.set_mode(Mode.PREVIEW)
        elif event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.delete_selected()
        else:
            super().keyPressEvent(event)

    def delete_selected(self) -> bool:
        """Remove the selected label, if any."""
        label = self.controller.selecting_label
        if label is None:
            return False
        return self.controller.remove_label(label)

    def event(self, event: QEvent) -> bool:
        """Handle touchpad and touchscreen pinch gestures."""
        if event.type() == QEvent.Type.NativeGesture:
            return self._handle_native_gesture(event)
        if event.type() == QEvent.Type.Gesture:
            return self._handle_gesture(event)
        return super().event(event)

    def _handle_native_gesture(self, event: QNativeGestureEvent) -> bool:
        """macOS trackpad pinch-to-zoom."""
        gesture_type = event.gestureType()
        if gesture_type == Qt.NativeGestureType.BeginNativeGesture:
            self.controller.scale_begin()
        elif gesture_type == Qt.NativeGestureType.EndNativeGesture:
            self.controller.scale_end()
        elif gesture_type == Qt.NativeGestureType.ZoomNativeGesture:
            pos = event.position()
            if self.controller.scale(pos.x(), pos.y(), 1.0 + event.value()):
                event.accept()
                return True
            return False
        else:
            return False

        event.accept()
        return True

    def _handle_gesture(self, event: QGestureEvent) -> bool:
        pinch = event.gesture(Qt.GestureType.PinchGesture)
        if not isinstance(pinch, QPinchGesture):
            return False

        state = pinch.state()
        if state == Qt.GestureState.GestureStarted:
            self.controller.scale_begin()
        elif state in (Qt.GestureState.GestureFinished, Qt.GestureState.GestureCanceled):
            self.controller.scale_end()

        if pinch.changeFlags() & QPinchGesture.ChangeFlag.ScaleFactorChanged:
            center = self.mapFromGlobal(pinch.centerPoint().toPoint())
            self.controller.scale(center.x(), center.y(), pinch.scaleFactor())

        event.accept()
        return True
