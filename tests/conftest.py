"""Shared fixtures: a small 100x100 view and helpers to build canvases."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from fractalgrid import transform as tr
from fractalgrid.canvas import PixelCanvas, configure_canvas
from fractalgrid.grid import GridConfig, build_transform, fit_grid_to_canvas, rebuild_grid

SIZE = 100
ZOOM = 100.0


@pytest.fixture(scope="session", autouse=True)
def np_seed() -> None:
    np.random.seed(12345)


@pytest.fixture()
def small_transform() -> np.ndarray:
    ppu = tr.point(ZOOM, ZOOM, ZOOM)
    return build_transform(tr.point(0.0, 0.0), ppu, tr.point(SIZE / 2.0, SIZE / 2.0))


@pytest.fixture()
def small_grid(small_transform: np.ndarray) -> GridConfig:
    """A 1x1 unit grid centred on the origin, exactly covering the canvas."""
    grid = fit_grid_to_canvas(GridConfig(), SIZE, SIZE, ZOOM)
    return rebuild_grid(small_transform, grid)


@pytest.fixture()
def make_canvas() -> Callable[[int], PixelCanvas]:
    def _make(n_threads: int) -> PixelCanvas:
        return configure_canvas(SIZE // 2, SIZE // 2, SIZE, SIZE, ZOOM, ZOOM, n_threads=n_threads)

    return _make
