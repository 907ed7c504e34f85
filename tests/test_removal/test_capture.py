"""
Tests for pointer stroke capture
"""
import pytest

import config

from services.removal.capture import StrokeCapture
from services.removal.strokes import Point, StrokeLog
from services.removal.types import StrokeMode


@pytest.fixture
def capture():
    """Capture over a 200x100 image shown in a 400x400 container (scale 2)"""
    capture = StrokeCapture(200, 100)
    capture.update_layout(400, 400)
    return capture


class TestStrokeCapture:
    """Tests for StrokeCapture"""

    def test_no_layout_no_stroke(self):
        """Test pointer input is ignored before the first layout"""
        capture = StrokeCapture(200, 100)

        assert capture.pointer_down(100, 200, brush_size=20) is False
        assert not capture.is_capturing

    def test_draw_stroke(self, capture):
        """Test a press-move-release gesture seals one stroke in image pixels"""
        assert capture.pointer_down(100, 200, brush_size=20) is True
        assert capture.pointer_move(140, 200) is True

        stroke = capture.pointer_up()

        assert stroke.points == (Point(50, 50), Point(70, 50))
        assert stroke.size == pytest.approx(10)
        assert stroke.mode == StrokeMode.DRAW
        assert capture.log.strokes == (stroke,)
        assert not capture.is_capturing

    def test_erase_mode(self, capture):
        """Test the brush mode is carried into the stroke"""
        capture.pointer_down(100, 200, brush_size=20, mode=StrokeMode.ERASE)

        assert capture.pointer_up().is_erase

    def test_single_tap(self, capture):
        """Test a tap without movement seals a one-point stroke"""
        capture.pointer_down(100, 200, brush_size=20)

        assert len(capture.pointer_up().points) == 1

    def test_press_in_letterbox(self, capture):
        """Test a press outside the image starts nothing"""
        assert capture.pointer_down(200, 20, brush_size=20) is False
        assert capture.pointer_up() is None
        assert len(capture.log) == 0

    def test_move_outside_ignored(self, capture):
        """Test moves leaving the image are dropped"""
        capture.pointer_down(100, 200, brush_size=20)

        assert capture.pointer_move(100, 10) is False
        assert len(capture.pointer_up().points) == 1

    def test_move_without_press(self, capture):
        """Test moves with no active stroke are ignored"""
        assert capture.pointer_move(100, 200) is False

    def test_cancel_seals(self, capture):
        """Test a cancelled gesture keeps what was drawn"""
        capture.pointer_down(100, 200, brush_size=20)
        capture.pointer_move(160, 200)

        stroke = capture.pointer_cancel()

        assert len(stroke.points) == 2
        assert len(capture.log) == 1

    def test_disabled(self, capture):
        """Test capture is blocked while disabled"""
        capture.disabled = True

        assert capture.pointer_down(100, 200, brush_size=20) is False

    def test_small_brush_floor(self, capture):
        """Test brush size in image pixels never drops below one"""
        capture.pointer_down(100, 200, brush_size=1)

        assert capture.pointer_up().size == 1.0

    def test_layout_change_keeps_strokes(self, capture):
        """Test strokes stay in image pixels across layout changes"""
        capture.pointer_down(100, 200, brush_size=20)
        stroke = capture.pointer_up()

        capture.update_layout(800, 800)

        assert capture.log.strokes == (stroke,)
        assert capture.rect.scale == pytest.approx(4)

    def test_same_image_point_after_resize(self, capture):
        """Test a new layout maps the same image point from its new screen spot"""
        capture.update_layout(200, 200)
        capture.pointer_down(50, 100, brush_size=10)

        assert capture.pointer_up().points == (Point(50, 50),)

    def test_shared_log(self):
        """Test strokes go into a provided log"""
        log = StrokeLog()
        capture = StrokeCapture(200, 100, log=log)
        capture.update_layout(200, 100)
        capture.pointer_down(10, 10, brush_size=5)
        capture.pointer_up()

        assert len(log) == 1

    def test_default_brush_size(self, capture):
        """Test the configured brush size is used when none is given"""
        capture.pointer_down(100, 200)

        assert capture.pointer_up().size == pytest.approx(config.DEFAULT_BRUSH_SIZE / 2)
