"""Abstract label shape contract."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QPainter

logger = logging.getLogger(__name__)


class UpdateResult(Enum):
    """Outcome of finishing a drag session on a label."""

    UPDATED = "updated"  # geometry changed, repaint
    IGNORE = "ignore"  # nothing happened
    DELETE = "delete"  # geometry became invalid, remove the label


class DragTarget(Enum):
    """Part of a label engaged by the current update or select session."""

    NONE = "none"
    MOVE = "move"
    CORNER_TL = "corner_tl"
    CORNER_TR = "corner_tr"
    CORNER_BR = "corner_br"
    CORNER_BL = "corner_bl"
    EDGE_TOP = "edge_top"
    EDGE_RIGHT = "edge_right"
    EDGE_BOTTOM = "edge_bottom"
    EDGE_LEFT = "edge_left"
    SELECTED = "selected"

    @property
    def is_corner(self) -> bool:
        return self in _CORNERS

    @property
    def is_edge(self) -> bool:
        return self in _EDGES

    @property
    def is_update(self) -> bool:
        """Target belongs to an update (move/resize) session."""
        return self is DragTarget.MOVE or self.is_corner or self.is_edge


_CORNERS = frozenset({
    DragTarget.CORNER_TL, DragTarget.CORNER_TR,
    DragTarget.CORNER_BR, DragTarget.CORNER_BL,
})
_EDGES = frozenset({
    DragTarget.EDGE_TOP, DragTarget.EDGE_RIGHT,
    DragTarget.EDGE_BOTTOM, DragTarget.EDGE_LEFT,
})


class Label(ABC):
    """
    A single annotatable shape shown over the content.

    A label goes through three exclusive sessions: drawing (creation by a
    pointer drag), updating (move/resize of an existing label) and selecting.
    At most one of ``is_drawing``, ``is_updating`` and ``is_selecting`` is
    true at any time.

    All coordinates are in content space. Subclasses provide the geometry;
    the base class keeps the creation anchors and the drawing flag.
    """

    def __init__(self) -> None:
        self.start_point: Optional[QPointF] = None
        self.end_point: Optional[QPointF] = None
        self._in_drawing = False
        # Free-form payload, e.g. what the label encloses
        self.message: Any = None

    def draw(self, painter: QPainter) -> None:
        """Render on a painter already transformed into content space."""
        self.on_draw(painter, self.start_point, self.end_point)

    @property
    def data(self) -> Any:
        """Shape-specific geometry payload, or None if nothing was drawn."""
        return self.get_data(self.start_point, self.end_point)

    @property
    def is_drawing(self) -> bool:
        return self._in_drawing

    @property
    @abstractmethod
    def is_updating(self) -> bool:
        """A move/resize session is in progress."""

    @property
    @abstractmethod
    def is_selecting(self) -> bool:
        """The label is selected."""

    @property
    def is_idle(self) -> bool:
        return not (self.is_drawing or self.is_updating or self.is_selecting)

    @abstractmethod
    def on_draw(
        self,
        painter: QPainter,
        start_point: Optional[QPointF],
        end_point: Optional[QPointF]
    ) -> None:
        """Paint the shape and any active highlight."""

    @abstractmethod
    def get_data(self, start_point: Optional[QPointF], end_point: Optional[QPointF]) -> Any:
        """Build the geometry payload."""

    def partial_hit_test(self, x: float, y: float, slop: float, for_update: bool) -> bool:
        """
        Check whether a point hits a control point or edge of the label.

        A hit is the start of moving part of the label (a corner or an edge
        of a rectangle).

        Args:
            x: Content x
            y: Content y
            slop: Tolerance in content units
            for_update: Record the hit part for a following ``update_move``

        Returns:
            True if a handle was hit
        """
        return False

    def hit_test(self, x: float, y: float, for_update: bool) -> bool:
        """
        Check whether a point lies inside the label.

        A hit is the start of moving the whole label.
        """
        return False

    def check_valid(self) -> bool:
        """Whether the current geometry is usable (e.g. non-zero area)."""
        return True

    # === Drawing session ===

    def draw_start(self, point: QPointF) -> None:
        """Begin creating the label at a content point."""
        if self._in_drawing:
            return
        if self.is_updating or self.is_selecting:
            logger.debug("Ignoring draw start on a label that is updating or selecting")
            return
        self.start_point = QPointF(point)
        self._in_drawing = True
        self.on_draw_start(point)

    def draw_move(self, point: QPointF) -> None:
        if not self._in_drawing:
            return
        self.end_point = QPointF(point)
        self.on_draw_move(point)

    def draw_end(self) -> bool:
        """
        Finish creating the label.

        Returns:
            True if the label is valid and should be kept
        """
        if not self._in_drawing:
            return False
        result = self.check_valid()
        if not result:
            self.start_point = None
            self.end_point = None
        self._in_drawing = False
        return result

    def on_draw_start(self, point: QPointF) -> None:
        pass

    def on_draw_move(self, point: QPointF) -> None:
        pass

    # === Selecting session ===

    def select_start(self) -> bool:
        """
        Mark the label as selected.

        Returns:
            True on success, False if not selectable or already selected
        """
        return False

    def select_end(self) -> bool:
        """
        Leave the selected state.

        Returns:
            True if the view needs a repaint
        """
        return False

    # === Updating session ===

    def update_move(self, x: float, y: float, max_width: float, max_height: float) -> bool:
        """
        Drag the part recorded by the last hit test.

        Returns:
            True if the geometry changed
        """
        return False

    def update_end(self) -> UpdateResult:
        """Finish the drag session and re-validate the geometry."""
        return UpdateResult.IGNORE
