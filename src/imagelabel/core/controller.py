"""Interaction state machine routing pointer gestures to labels and the viewport."""

from __future__ import annotations

import logging
import math
from enum import IntEnum
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Tuple

from PyQt6.QtCore import QObject, QPointF, pyqtSignal
from PyQt6.QtGui import QImage, QPainter, QPixmap

from .collection import LabelCollection
from .label import Label, UpdateResult
from .transform import ViewportState

if TYPE_CHECKING:
    from .config import AppConfig

logger = logging.getLogger(__name__)


class Mode(IntEnum):
    """Interaction modes."""

    PREVIEW = 0  # pan and zoom the content
    DRAW = 1  # draw new labels
    UPDATE = 2  # move or resize labels
    SELECT = 3  # select a label, e.g. to edit its message or delete it


def mode_to_string(mode: int) -> str:
    """Name of a mode for diagnostics."""
    try:
        return Mode(mode).name
    except ValueError:
        raise ValueError(f"unknown mode: {mode}") from None


class ContentSource(Protocol):
    """Anything with pixel dimensions; QPixmap and QImage qualify."""

    def width(self) -> int: ...

    def height(self) -> int: ...


LabelFactory = Callable[[], Label]


class InteractionController(QObject):
    """
    Mode state machine for an image labeling surface.

    Owns the viewport transform, the committed labels and the single active
    label. The host feeds it view-space pointer events and recognized
    gestures (scroll, scale, tap, long press); the controller mutates its
    state and reports back through signals. Everything runs synchronously on
    the thread that delivers the events.

    Pointer handlers return True when the event was consumed.
    """

    # Signals
    mode_changed = pyqtSignal(object, object)  # old Mode, new Mode
    draw_started = pyqtSignal(QPointF, object)  # content point, label
    draw_moved = pyqtSignal(QPointF, object)  # content point, label
    draw_finished = pyqtSignal(bool, object)  # committed, label or None
    update_started = pyqtSignal(object)
    update_finished = pyqtSignal(object)
    select_started = pyqtSignal(object)
    select_finished = pyqtSignal(object)
    repaint_requested = pyqtSignal()
    zoom_changed = pyqtSignal(float)

    # Handle tolerance in view pixels
    DEFAULT_EDGE_SLOP = 12.0

    def __init__(
        self,
        parent: Optional[QObject] = None,
        label_factory: Optional[LabelFactory] = None,
        edge_slop: float = DEFAULT_EDGE_SLOP,
        preview_after_operate: bool = False,
        auto_select_after_draw: bool = True
    ) -> None:
        """
        Initialize the controller.

        Args:
            parent: Optional Qt parent
            label_factory: Creates a new label for every draw gesture
            edge_slop: Handle hit tolerance in view pixels
            preview_after_operate: Return to preview after every draw or
                update gesture, including one that engaged no label
            auto_select_after_draw: Select a freshly committed label
        """
        super().__init__(parent)

        self.label_factory = label_factory
        self.edge_slop = edge_slop
        self.preview_after_operate = preview_after_operate
        self.auto_select_after_draw = auto_select_after_draw

        self.viewport = ViewportState()
        self._labels = LabelCollection()
        self._active_label: Optional[Label] = None
        self._mode = Mode.PREVIEW
        self._content: Optional[ContentSource] = None

        self._down_point = QPointF()
        self._scaling = False
        self._notify_depth = 0

    def apply_config(self, config: AppConfig) -> None:
        """Take interaction settings from the application config."""
        self.edge_slop = config.edge_slop
        self.preview_after_operate = config.preview_after_operate
        self.auto_select_after_draw = config.auto_select_after_draw
        self.viewport.min_scale = config.min_zoom
        self.viewport.max_scale = config.max_zoom

    # === Notifications ===

    def _emit(self, signal, *args) -> None:
        """Emit a listener signal, marking that listeners are running."""
        self._notify_depth += 1
        try:
            signal.emit(*args)
        finally:
            self._notify_depth -= 1

    def _request_repaint(self) -> None:
        self.repaint_requested.emit()

    # === Mode ===

    @property
    def mode(self) -> Mode:
        return self._mode

    @mode.setter
    def mode(self, value: int) -> None:
        self.set_mode(value)

    def set_mode(self, mode: int) -> None:
        """
        Switch to another mode, releasing the active label first.

        Requests made from inside a listener callback are ignored.
        """
        mode = Mode(mode)
        if mode == self._mode:
            return

        if self._notify_depth:
            logger.warning(
                f"Ignoring mode change {self._mode.name} -> {mode.name} requested from a listener"
            )
            return

        if self._mode != Mode.PREVIEW:
            self.release_active_label()

        self._switch_mode(mode)

    def _switch_mode(self, mode: Mode) -> None:
        old = self._mode
        if old == mode:
            return
        self._mode = mode
        self._scaling = False
        logger.debug(f"Mode {old.name} -> {mode.name}")
        self._emit(self.mode_changed, old, mode)

    # === Active label ===

    @property
    def active_label(self) -> Optional[Label]:
        return self._active_label

    @property
    def drawing_label(self) -> Optional[Label]:
        """Active label if it is being drawn."""
        label = self._active_label
        return label if label is not None and label.is_drawing else None

    @property
    def updating_label(self) -> Optional[Label]:
        """Active label if it is being moved or resized."""
        label = self._active_label
        return label if label is not None and label.is_updating else None

    @property
    def selecting_label(self) -> Optional[Label]:
        """Active label if it is selected."""
        label = self._active_label
        return label if label is not None and label.is_selecting else None

    def release_active_label(self) -> bool:
        """
        End the session of the active label and clear the active slot.

        A drawn label is committed to the collection if valid, an updated
        label is deleted if its geometry became invalid, a selected label is
        deselected. The matching ``*_finished`` signal is emitted.

        Returns:
            True if the view should be repainted
        """
        repaint, _ = self._release()
        if repaint:
            self._request_repaint()
        return repaint

    def _release(self) -> Tuple[bool, bool]:
        """Release the active label; returns ``(repaint, committed)``."""
        label = self._active_label
        if label is None:
            return False, False

        self._active_label = None
        repaint = False
        committed = False

        if label.is_drawing:
            committed = label.draw_end()
            if committed:
                self._labels.add(label)
            repaint = True
            self._emit(self.draw_finished, committed, label if committed else None)
        elif label.is_updating:
            result = label.update_end()
            self._emit(self.update_finished, label)
            if result is UpdateResult.DELETE:
                self._labels.remove(label)
                repaint = True
            elif result is UpdateResult.UPDATED:
                repaint = True
        elif label.is_selecting:
            repaint = label.select_end()
            self._emit(self.select_finished, label)

        return repaint, committed

    # === Labels ===

    def add_label(self, label: Label) -> None:
        """Add a label on top; a label already present is ignored."""
        if self._labels.add(label):
            self._request_repaint()

    def remove_label(self, label: Optional[Label]) -> bool:
        """
        Remove a label, releasing it if it is active.

        Falls back to preview mode when anything changed.
        """
        removed = self._labels.remove(label)
        if label is not None and label is self._active_label:
            removed = self.release_active_label() or removed
            # Releasing a label mid-draw commits it, so drop it again
            self._labels.remove(label)

        if removed:
            self._switch_mode(Mode.PREVIEW)
            self._request_repaint()
        return removed

    def remove_all_labels(self) -> None:
        """Drop every label and fall back to preview mode."""
        changed = self.release_active_label()
        changed = bool(self._labels) or changed
        self._labels.clear()

        if changed:
            self._switch_mode(Mode.PREVIEW)
            self._request_repaint()

    def most_recent_label(self) -> Optional[Label]:
        return self._labels.most_recent()

    def labels(self) -> List[Label]:
        """Copy of the committed labels, front to back."""
        return self._labels.labels()

    # === Content and view ===

    @property
    def content(self) -> Optional[ContentSource]:
        return self._content

    @property
    def has_content(self) -> bool:
        """Content is loaded and fitted into a sized view."""
        return self._content is not None and self.viewport.is_ready

    def set_content(self, content: Optional[ContentSource]) -> None:
        """
        Show new content.

        Different content drops all labels. ``None`` or empty content
        unloads; the same content is refitted.
        """
        if content is not self._content:
            self._active_label = None
            self._labels.clear()

        if content is None or content.width() <= 0 or content.height() <= 0:
            if self._content is None:
                return
            self._content = None
            self.viewport.reset()
            logger.info("Content cleared")
            self._request_repaint()
            return

        self._content = content
        self.viewport.fit(
            content.width(), content.height(),
            self.viewport.view_width, self.viewport.view_height
        )
        logger.info(f"Content set: {content.width()}x{content.height()}")
        self._emit(self.zoom_changed, self.viewport.scale)
        self._request_repaint()

    def resize_view(self, width: float, height: float) -> None:
        """Track the view size, refitting the content when both are sized."""
        if self.viewport.resize_view(width, height):
            self._emit(self.zoom_changed, self.viewport.scale)
            self._request_repaint()

    def reset_view(self) -> None:
        """Undo user pan and zoom."""
        v = self.viewport
        if v.fit(v.content_width, v.content_height, v.view_width, v.view_height):
            self._emit(self.zoom_changed, v.scale)
            self._request_repaint()

    def to_content(self, x: float, y: float) -> QPointF:
        return self.viewport.to_content(x, y)

    def _adjusted_point(self, x: float, y: float) -> QPointF:
        """Content point for a view position, moved onto the content bounds."""
        return self.viewport.clamp_to_content(self.viewport.to_content(x, y))

    def _content_slop(self) -> float:
        scale = self.viewport.effective_scale
        return self.edge_slop / scale if scale > 0 else self.edge_slop

    def _find_hit(self, x: float, y: float, for_update: bool) -> Optional[Label]:
        """Two-pass hit test: handles first, then whole shapes."""
        slop = self._content_slop()
        label = self._labels.first_match(
            lambda candidate: candidate.partial_hit_test(x, y, slop, for_update)
        )
        if label is None:
            label = self._labels.first_match(
                lambda candidate: candidate.hit_test(x, y, for_update)
            )
        return label

    # === Pointer events ===

    def pointer_down(self, x: float, y: float) -> bool:
        """Handle a pointer press at a view position."""
        if not self.has_content:
            return False

        if self._mode == Mode.DRAW:
            return self._draw_down(x, y)
        if self._mode == Mode.UPDATE:
            return self._update_down(x, y)

        self._down_point = self.viewport.to_content(x, y)
        return True

    def pointer_move(self, x: float, y: float) -> bool:
        """Handle a pointer drag at a view position."""
        if not self.has_content:
            return False

        if self._mode == Mode.DRAW:
            return self._draw_move(x, y)
        if self._mode == Mode.UPDATE:
            return self._update_move(x, y)
        return False

    def pointer_up(self, x: float, y: float, cancelled: bool = False) -> bool:
        """Handle a pointer release; a cancel behaves exactly like a release."""
        if not self.has_content:
            return False

        if cancelled:
            logger.debug(f"Pointer cancelled in {self._mode.name}")

        if self._mode == Mode.DRAW:
            return self._draw_up()
        if self._mode == Mode.UPDATE:
            return self._update_up()
        return False

    # --- Draw ---

    def _has_factory(self) -> bool:
        if self.label_factory is None:
            logger.warning("No label factory set, skipping draw")
            return False
        return True

    def _draw_down(self, x: float, y: float) -> bool:
        if not self._has_factory():
            return False

        point = self._adjusted_point(x, y)
        self.release_active_label()

        label = self.label_factory()
        self._active_label = label
        label.draw_start(point)
        self._emit(self.draw_started, point, label)
        self._request_repaint()
        return True

    def _draw_move(self, x: float, y: float) -> bool:
        label = self._active_label
        if label is not None and label.is_drawing:
            point = self._adjusted_point(x, y)
            label.draw_move(point)
            self._emit(self.draw_moved, point, label)
            self._request_repaint()
        return True

    def _draw_up(self) -> bool:
        label = self._active_label
        committed = False
        if label is not None and label.is_drawing:
            _, committed = self._release()

        if self.preview_after_operate:
            self._switch_mode(Mode.PREVIEW)
        elif committed and self.auto_select_after_draw:
            self._switch_mode(Mode.SELECT)
            if label.select_start():
                self._active_label = label
                self._emit(self.select_started, label)

        self._request_repaint()
        return True

    # --- Update ---

    def _update_down(self, x: float, y: float) -> bool:
        point = self.viewport.to_content(x, y)
        repaint = self.release_active_label()

        label = self._find_hit(point.x(), point.y(), for_update=True)
        if label is not None:
            self._active_label = label
            self._emit(self.update_started, label)
            repaint = True

        if repaint:
            self._request_repaint()
        return True

    def _update_move(self, x: float, y: float) -> bool:
        label = self._active_label
        if label is None or not label.is_updating:
            return True

        point = self.viewport.to_content(x, y)
        if label.update_move(
            point.x(), point.y(),
            self.viewport.content_width, self.viewport.content_height
        ):
            self._request_repaint()
        return True

    def _update_up(self) -> bool:
        self.release_active_label()
        if self.preview_after_operate:
            self._switch_mode(Mode.PREVIEW)
        return True

    # === Gestures ===

    def single_tap_up(self, x: float, y: float) -> bool:
        """
        Select the label under a tap in select mode.

        The label must be hit both where the pointer went down and where it
        came up, so a quick flick across labels selects nothing. Tapping
        empty space or the selected label clears the selection.
        """
        if self._mode != Mode.SELECT or not self.has_content:
            return False

        up = self.viewport.to_content(x, y)
        down = self._down_point
        current = self._active_label
        slop = self._content_slop()

        new_label = self._labels.first_match(
            lambda label: (
                label.partial_hit_test(down.x(), down.y(), slop, False)
                and label.partial_hit_test(up.x(), up.y(), slop, False)
                and label is not current
                and label.select_start()
            )
        )
        if new_label is None:
            new_label = self._labels.first_match(
                lambda label: (
                    label.hit_test(down.x(), down.y(), False)
                    and label.hit_test(up.x(), up.y(), False)
                    and label is not current
                    and label.select_start()
                )
            )

        repaint = self.release_active_label()
        self._active_label = new_label
        if new_label is not None:
            self._emit(self.select_started, new_label)
            self._request_repaint()
        elif repaint:
            self._request_repaint()
        return True

    def long_press(self, x: float, y: float) -> bool:
        """A long press selects like a tap."""
        return self.single_tap_up(x, y)

    def scroll(self, dx: float, dy: float) -> bool:
        """Pan the content by a view-space offset in preview mode."""
        if self._mode != Mode.PREVIEW or not self.has_content or self._scaling:
            return False
        self.viewport.pan(dx, dy)
        self._request_repaint()
        return True

    def scale_begin(self) -> bool:
        """Start a pinch; only accepted in preview mode."""
        if self._mode != Mode.PREVIEW or not self.has_content:
            return False
        self._scaling = True
        return True

    def scale(self, focus_x: float, focus_y: float, factor: float) -> bool:
        """Zoom around a view-space focus point."""
        if self._mode != Mode.PREVIEW or not self.has_content:
            return False

        if not (math.isfinite(focus_x) and math.isfinite(focus_y)):
            logger.debug(f"Rejecting zoom with non-finite focus ({focus_x}, {focus_y})")
            return False
        if not math.isfinite(factor) or factor <= 0:
            logger.debug(f"Rejecting zoom with factor {factor}")
            return False

        self.viewport.zoom(focus_x, focus_y, factor)
        self._emit(self.zoom_changed, self.viewport.scale)
        self._request_repaint()
        return True

    def scale_end(self) -> None:
        self._scaling = False

    @property
    def is_scaling(self) -> bool:
        return self._scaling

    # === Rendering ===

    def render(self, painter: QPainter) -> None:
        """Paint the content and all labels through the viewport transform."""
        if not self.has_content:
            return

        viewport = self.viewport
        painter.save()
        painter.translate(viewport.origin_x, viewport.origin_y)
        painter.scale(viewport.effective_scale, viewport.effective_scale)

        self._draw_content(painter)

        # Only a label being drawn is not yet part of the collection
        drawing = self.drawing_label
        if drawing is not None:
            drawing.draw(painter)
        for label in self._labels:
            label.draw(painter)

        painter.restore()

    def _draw_content(self, painter: QPainter) -> None:
        content = self._content
        origin = QPointF(0, 0)
        if isinstance(content, QPixmap):
            painter.drawPixmap(origin, content)
        elif isinstance(content, QImage):
            painter.drawImage(origin, content)
        else:
            paint = getattr(content, "paint", None)
            if callable(paint):
                paint(painter)
