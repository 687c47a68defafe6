"""Rectangle label: the reference shape."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from PyQt6.QtCore import QLineF, QPointF, QRectF, Qt
from PyQt6.QtGui import QColor, QPainter, QPen

from .label import DragTarget, Label, UpdateResult

logger = logging.getLogger(__name__)

RectData = Tuple[float, float, float, float]

# Handle regions in hit-test order:
#
#   TL --- TOP --- TR
#   |               |
#   LEFT         RIGHT
#   |               |
#   BL -- BOTTOM - BR
#
# MOVE drags the whole rect, SELECTED marks a selected label.
_CORNER_ORDER = (
    DragTarget.CORNER_TL,
    DragTarget.CORNER_TR,
    DragTarget.CORNER_BR,
    DragTarget.CORNER_BL,
)
_EDGE_ORDER = (
    DragTarget.EDGE_TOP,
    DragTarget.EDGE_RIGHT,
    DragTarget.EDGE_BOTTOM,
    DragTarget.EDGE_LEFT,
)

_LEFT_ANCHORED = (DragTarget.CORNER_TL, DragTarget.CORNER_BL, DragTarget.EDGE_LEFT)
_RIGHT_ANCHORED = (DragTarget.CORNER_TR, DragTarget.CORNER_BR, DragTarget.EDGE_RIGHT)
_TOP_ANCHORED = (DragTarget.CORNER_TL, DragTarget.CORNER_TR, DragTarget.EDGE_TOP)
_BOTTOM_ANCHORED = (DragTarget.CORNER_BR, DragTarget.CORNER_BL, DragTarget.EDGE_BOTTOM)


def clamped_delta(current: float, last: float, limit: float) -> float:
    """
    Compute the drag delta along one axis that is allowed inside ``[0, limit]``.

    Motion outside the range does not count, so a shape pinned at a boundary
    does not jump when the pointer comes back in.

    Args:
        current: Current pointer coordinate
        last: Last accepted coordinate
        limit: Size of the valid range on this axis

    Returns:
        The permitted delta
    """
    delta = current - last
    if delta == 0:
        return 0.0

    if (last <= 0 and current <= 0) or (last >= limit and current >= limit):
        # Both outside on the same side
        return 0.0
    if 0 < last < limit and 0 < current < limit:
        return delta
    if last <= 0 and current >= limit:
        # Across from the near side to the far side
        return limit
    if last >= limit and current <= 0:
        return -limit
    if last <= 0:
        # Near side outside into the range
        return current
    if current <= 0:
        # Out of the range through the near side
        return -last
    if last >= limit:
        # Far side outside into the range
        return current - limit
    # Out of the range through the far side
    return limit - last


class RectLabel(Label):
    """
    Axis-aligned rectangle label.

    The geometry lives in ``_base_rect``, which may be inverted while it is
    being drawn or resized and is normalized at the end of each session.
    ``data`` is ``(left, top, right, bottom)`` in content pixels.
    """

    DEFAULT_RECT_COLOR = QColor(255, 0, 0)
    DEFAULT_HIGHLIGHT_COLOR = QColor(255, 255, 0, 255 // 5)

    def __init__(self) -> None:
        super().__init__()
        self._base_rect = QRectF()
        self._highlight_rect = QRectF()
        self._target = DragTarget.NONE
        self._last_x = 0.0
        self._last_y = 0.0

        self._rect_color = QColor(self.DEFAULT_RECT_COLOR)
        self._highlight_color = QColor(self.DEFAULT_HIGHLIGHT_COLOR)
        self._stroke_width = 1.0
        self._highlight_stroke_width = 1.5

    @classmethod
    def from_rect(cls, left: float, top: float, right: float, bottom: float) -> RectLabel:
        """Create an already drawn label, e.g. to restore labels programmatically."""
        label = cls()
        label.start_point = QPointF(left, top)
        label.end_point = QPointF(right, bottom)
        label._base_rect = QRectF(label.start_point, label.end_point).normalized()
        return label

    # === Styling ===

    @property
    def rect_color(self) -> QColor:
        return QColor(self._rect_color)

    @rect_color.setter
    def rect_color(self, value: QColor) -> None:
        self._rect_color = QColor(value)

    @property
    def highlight_color(self) -> QColor:
        return QColor(self._highlight_color)

    @highlight_color.setter
    def highlight_color(self, value: QColor) -> None:
        self._highlight_color = QColor(value)

    @property
    def highlight_alpha(self) -> int:
        return self._highlight_color.alpha()

    @highlight_alpha.setter
    def highlight_alpha(self, value: int) -> None:
        self._highlight_color.setAlpha(max(0, min(255, int(value))))

    @property
    def stroke_width(self) -> float:
        return self._stroke_width

    @stroke_width.setter
    def stroke_width(self, value: float) -> None:
        """Set the outline width; the highlight stroke follows at 1.5x."""
        self._stroke_width = value
        self._highlight_stroke_width = 1.5 * value

    @property
    def highlight_stroke_width(self) -> float:
        return self._highlight_stroke_width

    @highlight_stroke_width.setter
    def highlight_stroke_width(self, value: float) -> None:
        self._highlight_stroke_width = value

    # === Geometry ===

    @property
    def rect(self) -> QRectF:
        """Normalized copy of the geometry."""
        return self._base_rect.normalized()

    @property
    def drag_target(self) -> DragTarget:
        return self._target

    @property
    def is_updating(self) -> bool:
        return self._target.is_update

    @property
    def is_selecting(self) -> bool:
        return self._target is DragTarget.SELECTED

    def get_data(
        self,
        start_point: Optional[QPointF],
        end_point: Optional[QPointF]
    ) -> Optional[RectData]:
        if start_point is None or end_point is None:
            return None
        rect = self._base_rect.normalized()
        return (rect.left(), rect.top(), rect.right(), rect.bottom())

    def check_valid(self) -> bool:
        self._base_rect = self._base_rect.normalized()
        return self._base_rect.width() > 0 and self._base_rect.height() > 0

    def on_draw_start(self, point: QPointF) -> None:
        self._base_rect = QRectF(point, point)

    def on_draw_move(self, point: QPointF) -> None:
        self._base_rect.setRight(point.x())
        self._base_rect.setBottom(point.y())

    # === Hit testing ===

    def _handle_regions(self, slop: float):
        """Yield ``(target, region, line)`` for every handle in hit-test order."""
        rect = self._base_rect.normalized()
        left, top, right, bottom = rect.left(), rect.top(), rect.right(), rect.bottom()

        corners = (
            QPointF(left, top),
            QPointF(right, top),
            QPointF(right, bottom),
            QPointF(left, bottom),
        )
        for target, corner in zip(_CORNER_ORDER, corners):
            region = QRectF(corner.x() - slop, corner.y() - slop, 2 * slop, 2 * slop)
            yield target, region, region

        edges = (
            QRectF(QPointF(left, top), QPointF(right, top)),
            QRectF(QPointF(right, top), QPointF(right, bottom)),
            QRectF(QPointF(left, bottom), QPointF(right, bottom)),
            QRectF(QPointF(left, top), QPointF(left, bottom)),
        )
        for target, line in zip(_EDGE_ORDER, edges):
            if target in (DragTarget.EDGE_TOP, DragTarget.EDGE_BOTTOM):
                region = line.adjusted(0, -slop, 0, slop)
            else:
                region = line.adjusted(-slop, 0, slop, 0)
            yield target, region, line

    def partial_hit_test(self, x: float, y: float, slop: float, for_update: bool) -> bool:
        point = QPointF(x, y)
        for target, region, highlight in self._handle_regions(slop):
            if region.contains(point):
                if for_update:
                    self._target = target
                    self._highlight_rect = QRectF(highlight)
                return True
        return False

    def hit_test(self, x: float, y: float, for_update: bool) -> bool:
        rect = self._base_rect.normalized()
        if not rect.contains(QPointF(x, y)):
            return False

        if for_update:
            self._target = DragTarget.MOVE
            self._highlight_rect = rect
            self._last_x = x
            self._last_y = y
        return True

    # === Updating ===

    def update_move(self, x: float, y: float, max_width: float, max_height: float) -> bool:
        target = self._target
        if not target.is_update:
            return False

        rect = self._base_rect
        if target in _LEFT_ANCHORED:
            last_x = rect.left()
        elif target in _RIGHT_ANCHORED:
            last_x = rect.right()
        elif target is DragTarget.MOVE:
            last_x = self._last_x
        else:
            last_x = x

        if target in _TOP_ANCHORED:
            last_y = rect.top()
        elif target in _BOTTOM_ANCHORED:
            last_y = rect.bottom()
        elif target is DragTarget.MOVE:
            last_y = self._last_y
        else:
            last_y = y

        dx = clamped_delta(x, last_x, max_width)
        dy = clamped_delta(y, last_y, max_height)

        if dx == 0 and dy == 0:
            return False

        if target is DragTarget.MOVE:
            return self._move_by(dx, dy, max_width, max_height)

        if target in _LEFT_ANCHORED:
            rect.setLeft(rect.left() + dx)
        elif target in _RIGHT_ANCHORED:
            rect.setRight(rect.right() + dx)

        if target in _TOP_ANCHORED:
            rect.setTop(rect.top() + dy)
        elif target in _BOTTOM_ANCHORED:
            rect.setBottom(rect.bottom() + dy)

        self._highlight_rect.translate(dx, dy)
        return True

    def _move_by(self, dx: float, dy: float, max_width: float, max_height: float) -> bool:
        """Translate the whole rect, keeping it inside the content bounds."""
        rect = self._base_rect.normalized()

        left = rect.left() + dx
        if left < 0:
            left = 0.0
        elif left + rect.width() > max_width:
            left = max_width - rect.width()

        top = rect.top() + dy
        if top < 0:
            top = 0.0
        elif top + rect.height() > max_height:
            top = max_height - rect.height()

        real_dx = left - rect.left()
        real_dy = top - rect.top()
        if real_dx == 0 and real_dy == 0:
            return False

        # The pointer origin only advances by what was actually applied
        self._last_x += real_dx
        self._last_y += real_dy
        self._base_rect = rect.translated(real_dx, real_dy)
        self._highlight_rect.translate(real_dx, real_dy)
        return True

    def update_end(self) -> UpdateResult:
        if not self.is_updating:
            return UpdateResult.IGNORE

        self._target = DragTarget.NONE
        if self.check_valid():
            return UpdateResult.UPDATED
        return UpdateResult.DELETE

    # === Selecting ===

    def select_start(self) -> bool:
        if self.is_selecting or self.is_drawing:
            return False
        self._target = DragTarget.SELECTED
        self._highlight_rect = self._base_rect.normalized()
        return True

    def select_end(self) -> bool:
        if not self.is_selecting:
            return False
        self._target = DragTarget.NONE
        return True

    # === Rendering ===

    def _pen(self, color: QColor, width: float) -> QPen:
        pen = QPen(color, width)
        pen.setCosmetic(True)
        return pen

    def on_draw(
        self,
        painter: QPainter,
        start_point: Optional[QPointF],
        end_point: Optional[QPointF]
    ) -> None:
        if start_point is None:
            return

        if end_point is None:
            painter.setPen(self._pen(self._rect_color, self._stroke_width))
            painter.drawPoint(start_point)
            return

        painter.save()
        highlight = self._highlight_rect
        target = self._target

        if target is DragTarget.MOVE:
            painter.setPen(self._pen(self._highlight_color, self._highlight_stroke_width))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(highlight)
        elif target.is_corner:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(self._highlight_color)
            painter.drawEllipse(highlight)
        elif target in (DragTarget.EDGE_TOP, DragTarget.EDGE_BOTTOM):
            painter.setPen(self._pen(self._highlight_color, self._highlight_stroke_width))
            painter.drawLine(QLineF(highlight.left(), highlight.top(), highlight.right(), highlight.top()))
        elif target in (DragTarget.EDGE_LEFT, DragTarget.EDGE_RIGHT):
            painter.setPen(self._pen(self._highlight_color, self._highlight_stroke_width))
            painter.drawLine(QLineF(highlight.left(), highlight.top(), highlight.left(), highlight.bottom()))
        elif target is DragTarget.SELECTED:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(self._highlight_color)
            painter.drawRect(highlight)

        painter.setPen(self._pen(self._rect_color, self._stroke_width))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(self._base_rect.normalized())
        painter.restore()

    def __repr__(self) -> str:
        rect = self._base_rect.normalized()
        return (
            f"RectLabel(left={rect.left():.1f}, top={rect.top():.1f}, "
            f"right={rect.right():.1f}, bottom={rect.bottom():.1f}, "
            f"target={self._target.value})"
        )
