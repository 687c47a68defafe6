"""View <-> content coordinate transform with pan/zoom state."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PyQt6.QtCore import QPointF, QRectF

logger = logging.getLogger(__name__)


@dataclass
class ViewportState:
    """
    Pan/zoom state mapping view pixels onto content (bitmap) pixels.

    The base transform centers the content inside the view and is fixed by
    ``fit``; the user transform (translate/scale) is layered on top of it.
    A view point ``v`` maps to content as
    ``(v - translate - base_translate) / (scale * base_scale)``.
    """

    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0

    base_translate_x: float = 0.0
    base_translate_y: float = 0.0
    base_scale: float = 0.0

    content_width: float = 0.0
    content_height: float = 0.0
    view_width: float = 0.0
    view_height: float = 0.0

    min_scale: float = 0.2
    max_scale: float = 20.0

    @property
    def has_content(self) -> bool:
        """Content has positive dimensions."""
        return self.content_width > 0 and self.content_height > 0

    @property
    def has_view(self) -> bool:
        """View has positive dimensions."""
        return self.view_width > 0 and self.view_height > 0

    @property
    def is_ready(self) -> bool:
        """Both content and view are sized and the base transform is fitted."""
        return self.has_content and self.has_view and self.base_scale > 0

    @property
    def effective_scale(self) -> float:
        """Total content-to-view scale."""
        return self.scale * self.base_scale

    @property
    def origin_x(self) -> float:
        """View x of the content's left edge."""
        return self.base_translate_x + self.translate_x

    @property
    def origin_y(self) -> float:
        """View y of the content's top edge."""
        return self.base_translate_y + self.translate_y

    def to_content(self, view_x: float, view_y: float) -> QPointF:
        """
        Convert a view-space position to content-space coordinates.

        Args:
            view_x: X position in view pixels
            view_y: Y position in view pixels

        Returns:
            Point in content pixels; the input unchanged if the transform
            is degenerate
        """
        total = self.effective_scale
        if total == 0:
            return QPointF(view_x, view_y)
        return QPointF(
            (view_x - self.translate_x - self.base_translate_x) / total,
            (view_y - self.translate_y - self.base_translate_y) / total,
        )

    def to_view(self, content_x: float, content_y: float) -> QPointF:
        """Convert a content-space position back to view pixels."""
        total = self.effective_scale
        return QPointF(
            content_x * total + self.translate_x + self.base_translate_x,
            content_y * total + self.translate_y + self.base_translate_y,
        )

    def content_rect(self) -> QRectF:
        """Content bounds in view space."""
        total = self.effective_scale
        return QRectF(
            self.origin_x,
            self.origin_y,
            self.content_width * total,
            self.content_height * total,
        )

    def clamp_to_content(self, point: QPointF) -> QPointF:
        """Move a content-space point onto the nearest content edge if outside."""
        x = min(max(point.x(), 0.0), self.content_width)
        y = min(max(point.y(), 0.0), self.content_height)
        return QPointF(x, y)

    def fit(
        self,
        content_width: float,
        content_height: float,
        view_width: float,
        view_height: float
    ) -> bool:
        """
        Fit the content inside the view and reset the user transform.

        The content's long axis (relative to the view's aspect ratio) fills
        the view and the short axis is centered.

        Args:
            content_width: Content width in pixels
            content_height: Content height in pixels
            view_width: View width in pixels
            view_height: View height in pixels

        Returns:
            True if the base transform was recomputed
        """
        self.content_width = float(content_width)
        self.content_height = float(content_height)
        self.view_width = float(view_width)
        self.view_height = float(view_height)

        if not (self.has_content and self.has_view):
            logger.debug(
                f"Skipping fit for degenerate sizes: content "
                f"{content_width}x{content_height}, view {view_width}x{view_height}"
            )
            return False

        view_ratio = self.view_width / self.view_height
        content_ratio = self.content_width / self.content_height

        if view_ratio > content_ratio:
            # Content is relatively taller: fill height, center horizontally
            fitted_width = self.view_height * content_ratio
            self.base_scale = self.view_height / self.content_height
            self.base_translate_x = (self.view_width - fitted_width) / 2
            self.base_translate_y = 0.0
        else:
            # Content is relatively wider: fill width, center vertically
            fitted_height = self.view_width / content_ratio
            self.base_scale = self.view_width / self.content_width
            self.base_translate_x = 0.0
            self.base_translate_y = (self.view_height - fitted_height) / 2

        self.translate_x = 0.0
        self.translate_y = 0.0
        self.scale = 1.0
        return True

    def resize_view(self, view_width: float, view_height: float) -> bool:
        """
        Handle a view size change.

        Returns:
            True if the content was refitted to the new size
        """
        if view_width == self.view_width and view_height == self.view_height:
            return False
        return self.fit(self.content_width, self.content_height, view_width, view_height)

    def reset(self) -> None:
        """Forget the content and the base transform; keep the view size."""
        self.content_width = 0.0
        self.content_height = 0.0
        self.base_translate_x = 0.0
        self.base_translate_y = 0.0
        self.base_scale = 0.0
        self.translate_x = 0.0
        self.translate_y = 0.0
        self.scale = 1.0

    def pan(self, dx: float, dy: float) -> None:
        """Translate the content by a view-space offset."""
        self.translate_x += dx
        self.translate_y += dy
        self.clamp()

    def zoom(self, focus_x: float, focus_y: float, factor: float) -> float:
        """
        Scale around a view-space focus point.

        The content point under the focus stays under it after scaling:
        ``new_translate = focus - (focus - translate - base_translate) * factor
        - base_translate`` per axis.

        Args:
            focus_x: Focus x in view pixels
            focus_y: Focus y in view pixels
            factor: Requested multiplicative scale change; the resulting
                scale is bounded to ``[min_scale, max_scale]``, so the applied
                factor may be smaller

        Returns:
            The factor actually applied after zoom limits
        """
        new_scale = max(min(self.scale * factor, self.max_scale), self.min_scale)
        applied = new_scale / self.scale
        self.scale = new_scale

        self.translate_x = (
            focus_x - (focus_x - self.translate_x - self.base_translate_x) * applied
            - self.base_translate_x
        )
        self.translate_y = (
            focus_y - (focus_y - self.translate_y - self.base_translate_y) * applied
            - self.base_translate_y
        )

        self.clamp()
        return applied

    def clamp(self) -> None:
        """Keep the scaled content rectangle touching or inside the view."""
        if not (self.has_content and self.has_view):
            return

        width = self.content_width * self.effective_scale
        height = self.content_height * self.effective_scale
        left = self.origin_x
        top = self.origin_y

        if left > self.view_width:
            self.translate_x = self.view_width - self.base_translate_x
        elif left + width < 0:
            self.translate_x = -width - self.base_translate_x

        if top > self.view_height:
            self.translate_y = self.view_height - self.base_translate_y
        elif top + height < 0:
            self.translate_y = -height - self.base_translate_y
