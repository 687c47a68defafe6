"""Tests for the interaction state machine."""

import logging
import math

import pytest

from conftest import FakeContent
from imagelabel.core.controller import InteractionController, Mode, mode_to_string
from imagelabel.core.label import DragTarget
from imagelabel.core.rect_label import RectLabel


def draw(controller, start, end, cancelled=False):
    """Run a full draw gesture in view coordinates."""
    controller.pointer_down(*start)
    controller.pointer_move(*end)
    controller.pointer_up(*end, cancelled=cancelled)


def assert_single_active(controller):
    """Only the active label may be in a session."""
    active = controller.active_label
    for label in controller.labels():
        if label is not active:
            assert label.is_idle
    if active is not None:
        states = [active.is_drawing, active.is_updating, active.is_selecting]
        assert states.count(True) == 1


class TestModes:
    """Tests for mode switching."""

    def test_initial_mode(self, controller):
        assert controller.mode is Mode.PREVIEW
        assert controller.active_label is None

    def test_mode_changed_signal(self, controller, recorder):
        controller.set_mode(Mode.DRAW)
        controller.set_mode(Mode.DRAW)

        assert recorder.of("mode_changed") == [(Mode.PREVIEW, Mode.DRAW)]

    def test_mode_property_setter(self, controller):
        controller.mode = Mode.SELECT

        assert controller.mode is Mode.SELECT

    def test_unknown_mode_rejected(self, controller):
        with pytest.raises(ValueError):
            controller.set_mode(9)

    def test_mode_to_string(self):
        assert mode_to_string(Mode.UPDATE) == "UPDATE"
        assert mode_to_string(0) == "PREVIEW"
        with pytest.raises(ValueError):
            mode_to_string(42)

    def test_switch_releases_selection(self, controller, recorder):
        label = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(label)
        controller.set_mode(Mode.SELECT)
        controller.pointer_down(30, 30)
        controller.single_tap_up(30, 30)

        controller.set_mode(Mode.PREVIEW)

        assert recorder.of("select_finished") == [(label,)]
        assert controller.active_label is None
        assert label.is_idle

    def test_switch_mid_draw_commits(self, controller):
        """Leaving draw mode mid-gesture finishes the label."""
        controller.set_mode(Mode.DRAW)
        controller.pointer_down(10, 10)
        controller.pointer_move(40, 40)

        controller.set_mode(Mode.PREVIEW)

        assert len(controller.labels()) == 1
        assert controller.active_label is None

    def test_mode_change_from_listener_ignored(self, controller, caplog):
        """A listener cannot switch modes while being notified."""
        def on_mode_changed(old, new):
            controller.set_mode(Mode.UPDATE)

        controller.mode_changed.connect(on_mode_changed)

        with caplog.at_level(logging.WARNING, logger="imagelabel.core.controller"):
            controller.set_mode(Mode.DRAW)

        assert controller.mode is Mode.DRAW
        assert "requested from a listener" in caplog.text

    def test_mode_switch_ends_scaling(self, controller):
        controller.scale_begin()
        controller.set_mode(Mode.DRAW)

        assert controller.is_scaling is False


class TestDrawMode:
    """Tests for drawing new labels."""

    def test_draw_commits_and_selects(self, controller, recorder):
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 30))

        labels = controller.labels()
        assert len(labels) == 1
        label = labels[0]
        assert label.data == (10, 10, 40, 30)

        assert recorder.names() == [
            "mode_changed", "draw_started", "draw_moved", "draw_finished",
            "mode_changed", "select_started",
        ]
        assert recorder.of("draw_finished") == [(True, label)]
        assert recorder.of("mode_changed")[-1] == (Mode.DRAW, Mode.SELECT)
        assert controller.mode is Mode.SELECT
        assert controller.selecting_label is label

    def test_draw_started_carries_new_label(self, controller, recorder):
        controller.set_mode(Mode.DRAW)
        controller.pointer_down(20, 25)

        point, label = recorder.of("draw_started")[0]
        assert (point.x(), point.y()) == (20, 25)
        assert label is controller.drawing_label

    def test_degenerate_draw_discarded(self, controller, recorder):
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (10, 10))

        assert controller.labels() == []
        assert recorder.of("draw_finished") == [(False, None)]
        assert controller.mode is Mode.DRAW
        assert controller.active_label is None

    def test_draw_clamped_to_content(self, controller):
        controller.set_mode(Mode.DRAW)
        draw(controller, (-20, 50), (150, 80))

        assert controller.labels()[0].data == (0, 50, 100, 80)

    def test_cancel_behaves_like_release(self, controller):
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 30), cancelled=True)

        assert len(controller.labels()) == 1
        assert controller.mode is Mode.SELECT

    def test_preview_after_operate(self, controller):
        controller.preview_after_operate = True
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 30))

        assert len(controller.labels()) == 1
        assert controller.mode is Mode.PREVIEW
        assert controller.active_label is None

    def test_preview_after_discarded_draw(self, controller):
        """The policy applies even when nothing was committed."""
        controller.preview_after_operate = True
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (10, 10))

        assert controller.labels() == []
        assert controller.mode is Mode.PREVIEW

    def test_without_auto_select(self, controller):
        controller.auto_select_after_draw = False
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 30))

        assert controller.mode is Mode.DRAW
        assert controller.active_label is None

    def test_newest_label_first(self, controller):
        controller.auto_select_after_draw = False
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 30))
        draw(controller, (50, 50), (70, 70))

        assert controller.most_recent_label().data == (50, 50, 70, 70)

    def test_no_factory(self, content):
        controller = InteractionController(edge_slop=2.0)
        controller.resize_view(100, 100)
        controller.set_content(content)
        controller.set_mode(Mode.DRAW)

        assert controller.pointer_down(10, 10) is False
        assert controller.active_label is None

    def test_no_content(self):
        controller = InteractionController(label_factory=RectLabel)
        controller.set_mode(Mode.DRAW)

        assert controller.pointer_down(10, 10) is False
        assert controller.pointer_move(20, 20) is False
        assert controller.pointer_up(20, 20) is False


class TestUpdateMode:
    """Tests for moving and resizing labels."""

    def test_move_label(self, controller, recorder):
        older = RectLabel.from_rect(0, 0, 50, 50)
        newer = RectLabel.from_rect(20, 20, 70, 70)
        controller.add_label(older)
        controller.add_label(newer)
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(30, 30)
        assert controller.updating_label is newer

        controller.pointer_move(35, 30)
        controller.pointer_up(35, 30)

        assert newer.data == (25, 20, 75, 70)
        assert older.data == (0, 0, 50, 50)
        assert recorder.of("update_started") == [(newer,)]
        assert recorder.of("update_finished") == [(newer,)]
        assert controller.active_label is None

    def test_handles_win_over_bodies(self, controller):
        """A handle of an older label beats the body of a newer one."""
        older = RectLabel.from_rect(0, 0, 50, 50)
        newer = RectLabel.from_rect(30, 10, 90, 90)
        controller.add_label(older)
        controller.add_label(newer)
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(50, 30)

        assert controller.updating_label is older
        assert older.drag_target is DragTarget.EDGE_RIGHT
        assert newer.is_idle

    def test_miss(self, controller, recorder):
        controller.add_label(RectLabel.from_rect(10, 10, 50, 50))
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(90, 90)

        assert controller.active_label is None
        assert recorder.of("update_started") == []

    def test_collapsed_label_deleted(self, controller, recorder):
        label = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(label)
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(50, 30)
        controller.pointer_move(10, 30)
        controller.pointer_up(10, 30)

        assert controller.labels() == []
        assert recorder.of("update_finished") == [(label,)]

    def test_slop_is_in_view_pixels(self, controller):
        """Zooming in shrinks the handle tolerance in content units."""
        label = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(label)
        controller.scale(0, 0, 2.0)
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(103, 60)
        assert controller.active_label is None
        controller.pointer_up(103, 60)

        controller.pointer_down(101, 60)
        assert controller.updating_label is label
        assert label.drag_target is DragTarget.EDGE_RIGHT

    def test_preview_after_operate(self, controller):
        controller.preview_after_operate = True
        controller.add_label(RectLabel.from_rect(10, 10, 50, 50))
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(30, 30)
        controller.pointer_move(35, 35)
        controller.pointer_up(35, 35)

        assert controller.mode is Mode.PREVIEW

    def test_preview_after_missed_gesture(self, controller):
        """A gesture that engaged no label still returns to preview."""
        controller.preview_after_operate = True
        controller.add_label(RectLabel.from_rect(10, 10, 50, 50))
        controller.set_mode(Mode.UPDATE)

        controller.pointer_down(90, 90)
        controller.pointer_up(90, 90)

        assert controller.mode is Mode.PREVIEW


class TestSelectMode:
    """Tests for selecting labels by tapping."""

    @pytest.fixture
    def label(self, controller):
        label = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(label)
        controller.set_mode(Mode.SELECT)
        return label

    def tap(self, controller, x, y, up=None):
        controller.pointer_down(x, y)
        return controller.single_tap_up(*(up or (x, y)))

    def test_tap_selects(self, controller, recorder, label):
        assert self.tap(controller, 30, 30) is True

        assert controller.selecting_label is label
        assert recorder.of("select_started") == [(label,)]

    def test_flick_selects_nothing(self, controller, label):
        """Down and up must both hit the label."""
        self.tap(controller, 30, 30, up=(90, 90))

        assert controller.active_label is None
        assert label.is_idle

    def test_tap_selected_label_deselects(self, controller, recorder, label):
        self.tap(controller, 30, 30)
        self.tap(controller, 30, 30)

        assert controller.active_label is None
        assert recorder.of("select_finished") == [(label,)]

    def test_tap_empty_space_deselects(self, controller, label):
        self.tap(controller, 30, 30)
        self.tap(controller, 90, 90)

        assert controller.active_label is None
        assert label.is_idle

    def test_selection_moves(self, controller, recorder, label):
        other = RectLabel.from_rect(60, 60, 90, 90)
        controller.add_label(other)

        self.tap(controller, 30, 30)
        self.tap(controller, 75, 75)

        assert controller.selecting_label is other
        assert label.is_idle
        assert recorder.names()[-2:] == ["select_finished", "select_started"]
        assert_single_active(controller)

    def test_handle_tap_selects(self, controller, label):
        self.tap(controller, 50, 30)

        assert controller.selecting_label is label

    def test_long_press_selects(self, controller, label):
        controller.pointer_down(30, 30)

        assert controller.long_press(30, 30) is True
        assert controller.selecting_label is label

    def test_tap_outside_select_mode(self, controller, label):
        controller.set_mode(Mode.PREVIEW)
        controller.pointer_down(30, 30)

        assert controller.single_tap_up(30, 30) is False

    def test_newest_overlapping_label_wins(self, controller):
        """A tap inside two labels selects the one added last."""
        older = RectLabel.from_rect(0, 0, 60, 60)
        newer = RectLabel.from_rect(20, 20, 80, 80)
        controller.add_label(older)
        controller.add_label(newer)
        controller.set_mode(Mode.SELECT)

        self.tap(controller, 40, 40)

        assert controller.selecting_label is newer
        assert older.is_idle

    def test_newest_handle_wins(self, controller):
        """With corners of both labels under the tap, the newer label is selected."""
        older = RectLabel.from_rect(10, 10, 50, 50)
        newer = RectLabel.from_rect(49, 49, 90, 90)
        controller.add_label(older)
        controller.add_label(newer)
        controller.set_mode(Mode.SELECT)

        assert older.partial_hit_test(50, 50, 2, False) is True
        assert newer.partial_hit_test(50, 50, 2, False) is True

        self.tap(controller, 50, 50)

        assert controller.selecting_label is newer
        assert older.is_idle

    def test_handle_beats_newer_body(self, controller):
        """Handles are scanned before bodies, whatever the stacking order."""
        older = RectLabel.from_rect(0, 0, 50, 50)
        newer = RectLabel.from_rect(30, 10, 90, 90)
        controller.add_label(older)
        controller.add_label(newer)
        controller.set_mode(Mode.SELECT)

        self.tap(controller, 50, 30)

        assert controller.selecting_label is older
        assert newer.is_idle


class TestLabelManagement:
    """Tests for adding and removing labels."""

    def test_add_label_requests_repaint(self, controller):
        repaints = []
        controller.repaint_requested.connect(lambda: repaints.append(True))
        label = RectLabel.from_rect(0, 0, 10, 10)

        controller.add_label(label)
        controller.add_label(label)

        assert len(repaints) == 1
        assert controller.labels() == [label]

    def test_remove_label_forces_preview(self, controller):
        label = RectLabel.from_rect(0, 0, 10, 10)
        controller.add_label(label)
        controller.set_mode(Mode.UPDATE)

        assert controller.remove_label(label) is True
        assert controller.labels() == []
        assert controller.mode is Mode.PREVIEW

    def test_remove_absent_label(self, controller):
        controller.set_mode(Mode.UPDATE)

        assert controller.remove_label(RectLabel()) is False
        assert controller.remove_label(None) is False
        assert controller.mode is Mode.UPDATE

    def test_remove_label_mid_draw(self, controller):
        controller.set_mode(Mode.DRAW)
        controller.pointer_down(10, 10)
        controller.pointer_move(40, 40)

        assert controller.remove_label(controller.active_label) is True
        assert controller.labels() == []
        assert controller.active_label is None
        assert controller.mode is Mode.PREVIEW

    def test_remove_selected_label(self, controller, recorder):
        label = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(label)
        controller.set_mode(Mode.SELECT)
        controller.pointer_down(30, 30)
        controller.single_tap_up(30, 30)

        controller.remove_label(label)

        assert controller.active_label is None
        assert recorder.of("select_finished") == [(label,)]

    def test_remove_all_labels(self, controller, recorder):
        first = RectLabel.from_rect(10, 10, 50, 50)
        controller.add_label(first)
        controller.add_label(RectLabel.from_rect(60, 60, 90, 90))
        controller.set_mode(Mode.SELECT)
        controller.pointer_down(30, 30)
        controller.single_tap_up(30, 30)

        controller.remove_all_labels()

        assert controller.labels() == []
        assert controller.active_label is None
        assert controller.mode is Mode.PREVIEW
        assert recorder.of("select_finished") == [(first,)]

    def test_remove_all_mid_draw(self, controller):
        controller.set_mode(Mode.DRAW)
        controller.pointer_down(10, 10)
        controller.pointer_move(40, 40)

        controller.remove_all_labels()

        assert controller.labels() == []

    def test_labels_returns_copy(self, controller):
        controller.add_label(RectLabel.from_rect(0, 0, 10, 10))
        controller.labels().clear()

        assert len(controller.labels()) == 1


class TestContent:
    """Tests for content and view changes."""

    def test_new_content_clears_labels(self, controller):
        controller.add_label(RectLabel.from_rect(0, 0, 10, 10))

        controller.set_content(FakeContent(200, 100))

        assert controller.labels() == []
        assert controller.viewport.base_scale == pytest.approx(0.5)

    def test_same_content_keeps_labels(self, controller, content):
        controller.add_label(RectLabel.from_rect(0, 0, 10, 10))
        controller.scale(50, 50, 2.0)

        controller.set_content(content)

        assert len(controller.labels()) == 1
        assert controller.viewport.scale == 1

    def test_unload(self, controller):
        controller.set_content(None)

        assert controller.has_content is False
        assert controller.pointer_down(10, 10) is False

    def test_empty_content_unloads(self, controller):
        controller.set_content(FakeContent(0, 10))

        assert controller.has_content is False

    def test_resize_refits_and_keeps_labels(self, controller):
        zooms = []
        controller.zoom_changed.connect(lambda scale: zooms.append(scale))
        label = RectLabel.from_rect(0, 0, 10, 10)
        controller.add_label(label)

        controller.resize_view(200, 200)

        assert controller.viewport.base_scale == pytest.approx(2.0)
        assert controller.labels() == [label]
        assert zooms == [1.0]

    def test_content_before_view(self, content):
        controller = InteractionController(label_factory=RectLabel)
        controller.set_content(content)

        assert controller.has_content is False

        controller.resize_view(50, 50)

        assert controller.has_content is True
        assert controller.to_content(25, 25).x() == pytest.approx(50.0)


class TestGestures:
    """Tests for pan and zoom gestures."""

    def test_scroll_pans(self, controller):
        assert controller.scroll(10, 0) is True
        assert controller.viewport.translate_x == pytest.approx(10.0)

    def test_scroll_outside_preview(self, controller):
        controller.set_mode(Mode.DRAW)

        assert controller.scroll(10, 0) is False

    def test_scroll_suppressed_while_scaling(self, controller):
        assert controller.scale_begin() is True
        assert controller.scroll(10, 0) is False

        controller.scale_end()

        assert controller.scroll(10, 0) is True

    def test_scale_begin_outside_preview(self, controller):
        controller.set_mode(Mode.SELECT)

        assert controller.scale_begin() is False

    def test_scale(self, controller):
        zooms = []
        controller.zoom_changed.connect(lambda scale: zooms.append(scale))

        assert controller.scale(50, 50, 2.0) is True
        assert controller.viewport.scale == pytest.approx(2.0)
        assert zooms == [pytest.approx(2.0)]

    @pytest.mark.parametrize("focus_x, focus_y, factor", [
        (math.nan, 10, 2.0),
        (10, math.inf, 2.0),
        (10, 10, 0.0),
        (10, 10, -1.0),
        (10, 10, math.nan),
    ])
    def test_scale_rejects_bad_input(self, controller, focus_x, focus_y, factor):
        assert controller.scale(focus_x, focus_y, factor) is False
        assert controller.viewport.scale == 1

    def test_reset_view(self, controller):
        controller.scale(50, 50, 3.0)
        controller.scroll(5, 5)

        controller.reset_view()

        assert controller.viewport.scale == 1
        assert controller.viewport.translate_x == 0


class TestRendering:
    """Tests for painting through the controller."""

    def test_render_paints_content_and_labels(self, qapp, controller, content):
        from PyQt6.QtGui import QColor, QImage, QPainter

        controller.add_label(RectLabel.from_rect(10, 10, 50, 50))
        image = QImage(100, 100, QImage.Format.Format_ARGB32)
        image.fill(QColor(255, 255, 255))

        painter = QPainter(image)
        controller.render(painter)
        painter.end()

        assert content.painted == 1
        edge = [image.pixelColor(x, 30) for x in (9, 10, 11)]
        assert any(color.green() < 128 for color in edge)

    def test_render_without_content(self, qapp, content):
        from PyQt6.QtGui import QImage, QPainter

        controller = InteractionController(label_factory=RectLabel)
        controller.set_content(content)
        image = QImage(10, 10, QImage.Format.Format_ARGB32)

        painter = QPainter(image)
        controller.render(painter)
        painter.end()

        assert content.painted == 0


class TestInvariants:
    """Tests for the single active label rule."""

    def test_mixed_session(self, controller):
        controller.add_label(RectLabel.from_rect(60, 60, 90, 90))
        controller.set_mode(Mode.DRAW)
        draw(controller, (10, 10), (40, 40))
        assert_single_active(controller)

        controller.set_mode(Mode.UPDATE)
        controller.pointer_down(75, 75)
        assert_single_active(controller)
        controller.pointer_move(70, 70)
        controller.pointer_up(70, 70)
        assert_single_active(controller)

        controller.set_mode(Mode.SELECT)
        controller.pointer_down(20, 20)
        controller.single_tap_up(20, 20)
        assert_single_active(controller)

        controller.set_mode(Mode.DRAW)
        controller.pointer_down(5, 5)
        assert_single_active(controller)
        assert all(label.is_idle for label in controller.labels())
