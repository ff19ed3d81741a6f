from __future__ import annotations

from typing import Iterator

import numpy as np
import pytest

from fractalgrid import transform as tr
from fractalgrid.errors import InvalidCanvasDimensionsError, NonInvertibleTransformError
from fractalgrid.grid import MAX_PIXELS_PER_UNIT, MIN_PIXELS_PER_UNIT
from fractalgrid.session import ConstantWalker, RenderSession


@pytest.fixture()
def session() -> Iterator[RenderSession]:
    s = RenderSession(40, 30, max_iterations=20, n_threads=2)
    yield s
    s.close()


def test_initial_view(session: RenderSession) -> None:
    assert session.zoom == 100.0
    assert session.dirty
    assert session.buffer is None
    np.testing.assert_allclose(session.grid.grid_dimensions[:2], [0.4, 0.3])
    assert tr.equal(session.grid.grid_screen_centre, tr.point(20.0, 15.0))


def test_frame_renders_once_and_reuses_buffer(session: RenderSession) -> None:
    first = session.frame()
    assert first.shape == (30, 40, 4)
    assert session.render_count == 1
    assert not session.dirty

    again = session.frame()
    assert session.render_count == 1
    assert np.shares_memory(first, again)

    session.set_constant(0.1, 0.2)
    assert session.dirty
    third = session.frame()
    assert session.render_count == 2
    assert np.shares_memory(first, third)


def test_unchanged_constant_does_not_invalidate(session: RenderSession) -> None:
    session.frame()
    session.set_constant(*session.constant)
    assert not session.dirty
    session.nudge_constant(0.01, 0.0)
    assert session.dirty
    assert session.constant == pytest.approx((-0.39, 0.6))


def test_resize_reallocates(session: RenderSession) -> None:
    session.frame()
    session.resize(50, 20)
    assert session.buffer is None
    assert session.dirty
    image = session.frame()
    assert image.shape == (20, 50, 4)
    np.testing.assert_allclose(session.grid.grid_dimensions[:2], [0.5, 0.2])


def test_resize_to_empty_keeps_old_size(session: RenderSession) -> None:
    with pytest.raises(InvalidCanvasDimensionsError):
        session.resize(0, 10)
    assert session.screen_size == (40, 30)
    assert session.canvas.width == 40


def test_zoom_by_rescales_grid(session: RenderSession) -> None:
    session.frame()
    session.zoom_by(1)
    assert session.zoom == pytest.approx(110.0)
    assert session.dirty
    assert session.canvas.resolution_x == pytest.approx(110.0)
    np.testing.assert_allclose(session.grid.grid_dimensions[:2], [40 / 110.0, 30 / 110.0])


def test_zoom_out_stops_at_minimum(session: RenderSession) -> None:
    session.zoom_by(-100)
    assert session.zoom == MIN_PIXELS_PER_UNIT
    session.frame()
    session.zoom_by(-1)
    assert not session.dirty


def test_linear_zoom_mode(session: RenderSession) -> None:
    session.set_deep_zoom(False)
    session.zoom_by(2)
    assert session.zoom == 120.0


def test_pan_and_mouse_position(session: RenderSession) -> None:
    grid_pos, engineering = session.mouse_position(20.0, 15.0)
    np.testing.assert_allclose(grid_pos[:2], [0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(engineering[:2], [0.0, 0.0], atol=1e-12)

    session.frame()
    session.pan_to(30.0, 5.0)
    assert session.dirty
    np.testing.assert_allclose(session.grid.grid_center_value[:2], [0.1, 0.1], atol=1e-12)
    _, engineering = session.mouse_position(20.0, 15.0)
    np.testing.assert_allclose(engineering[:2], [0.1, 0.1], atol=1e-12)


def test_verbose_is_one_shot() -> None:
    s = RenderSession(20, 10, max_iterations=5, n_threads=1, verbose=True)
    s.frame()
    assert s.verbose is False


def test_zero_scale_is_rejected() -> None:
    with pytest.raises(NonInvertibleTransformError):
        RenderSession(20, 10, pixels_per_unit=0.0)


def test_walker_wraps_row_then_column() -> None:
    walker = ConstantWalker()
    assert walker.advance((0.0, 0.0)) == pytest.approx((0.01, 0.0))
    assert walker.advance((1.0, 0.0)) == pytest.approx((-1.0, 0.01))
    assert walker.advance((1.0, 1.0)) == pytest.approx((-1.0, -1.0))


def test_step_constant_invalidates(session: RenderSession) -> None:
    session.frame()
    constant = session.step_constant()
    assert constant == pytest.approx((-0.39, 0.6))
    assert session.dirty


def test_failed_render_drops_buffer(session: RenderSession, monkeypatch) -> None:
    from fractalgrid import renderer as renderer_mod

    session.frame()
    session.set_constant(0.3, 0.3)
    real_render_band = renderer_mod.render_band

    def fail_second_band(task, out) -> None:
        if task.band.index == 1:
            raise ValueError("band failed")
        real_render_band(task, out)

    monkeypatch.setattr(renderer_mod, "render_band", fail_second_band)
    with pytest.raises(ValueError, match="band failed"):
        session.frame()
    assert session.buffer is None
    assert session.dirty

    monkeypatch.setattr(renderer_mod, "render_band", real_render_band)
    assert session.frame().shape == (30, 40, 4)


@pytest.mark.parametrize(
    "ppu,deep,expected",
    [(10.0, True, MIN_PIXELS_PER_UNIT), (5000.0, False, MAX_PIXELS_PER_UNIT), (5000.0, True, 5000.0)],
)
def test_initial_zoom_is_clamped(ppu: float, deep: bool, expected: float) -> None:
    s = RenderSession(20, 10, pixels_per_unit=ppu, deep_zoom=deep)
    assert s.zoom == expected
    assert s.canvas.resolution_x == expected
    np.testing.assert_allclose(s.grid.grid_dimensions[:2], [20 / expected, 10 / expected])


def test_non_finite_zoom_is_rejected() -> None:
    with pytest.raises(NonInvertibleTransformError):
        RenderSession(20, 10, pixels_per_unit=float("nan"))
