"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Run Qt without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class FakeContent:
    """Content source with dimensions only."""

    def __init__(self, width, height):
        self._width = width
        self._height = height
        self.painted = 0

    def width(self):
        return self._width

    def height(self):
        return self._height

    def paint(self, painter):
        self.painted += 1


class SignalRecorder:
    """Collects signal emissions as (name, args) tuples."""

    def __init__(self, controller):
        self.events = []
        for name in (
            "mode_changed", "draw_started", "draw_moved", "draw_finished",
            "update_started", "update_finished", "select_started", "select_finished",
        ):
            getattr(controller, name).connect(self._recorder(name))

    def _recorder(self, name):
        def record(*args):
            self.events.append((name, args))
        return record

    def names(self):
        return [name for name, _ in self.events]

    def of(self, name):
        return [args for event, args in self.events if event == name]


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication for tests that need it."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])

    yield app


@pytest.fixture
def content():
    """100x100 content so that view and content coordinates coincide."""
    return FakeContent(100, 100)


@pytest.fixture
def controller(content):
    """Controller with a 100x100 view showing 100x100 content."""
    from imagelabel.core.controller import InteractionController
    from imagelabel.core.rect_label import RectLabel

    ctrl = InteractionController(label_factory=RectLabel, edge_slop=2.0)
    ctrl.resize_view(100, 100)
    ctrl.set_content(content)
    return ctrl


@pytest.fixture
def recorder(controller):
    """Record the lifecycle signals of the controller fixture."""
    return SignalRecorder(controller)


@pytest.fixture
def sample_config_file(tmp_path):
    """Create a sample configuration file."""
    path = tmp_path / "imagelabel.yaml"
    path.write_text(
        "edgeSlop: 16.0\n"
        "previewAfterOperate: true\n"
        "rectColor: '#00FF00'\n"
        "logLevel: debug\n"
    )
    return path
