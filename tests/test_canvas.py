from __future__ import annotations

import numpy as np
import pytest

from fractalgrid import transform as tr
from fractalgrid.canvas import CHANNELS, allocate_buffer, band_view, configure_canvas, partition_rows
from fractalgrid.errors import InvalidCanvasDimensionsError


def test_configure_canvas_geometry() -> None:
    pc = configure_canvas(250, 250, 500, 500, 100, 100)

    # z scale is zero, so this matrix only projects
    assert not tr.is_invertible(pc.screen_to_pixel)
    assert pc.screen_to_pixel[0, 0] == 100
    assert pc.screen_to_pixel[1, 1] == -100
    assert tr.equal(tr.apply(pc.screen_to_pixel, tr.point(0.0, 0.0)), tr.point(250.0, 250.0))

    assert tr.equal(pc.pos_ul, tr.point(0.0, 0.0))
    assert pc.dimension == (500, 500)
    assert pc.dimension[0] == pc.pos_ur[0] - pc.pos_ul[0]
    assert pc.dimension[1] == -(pc.pos_ur[1] - pc.pos_lr[1])
    assert pc.dimension[1] == -(pc.pos_ul[1] - pc.pos_ll[1])
    assert pc.num_pixels == 250000


def test_configure_canvas_odd_size_upper_left() -> None:
    pc = configure_canvas(10, 10, 7, 5, 1.0, 1.0, n_threads=2)
    assert tr.equal(pc.pos_ul, tr.point(7.0, 8.0))
    assert tr.equal(pc.pos_lr, tr.point(14.0, 13.0))
    assert pc.n_threads == 2
    assert pc.y_increment == 2.5


def test_configure_canvas_defaults_to_hardware_threads() -> None:
    assert configure_canvas(50, 50, 100, 100, 1.0, 1.0).n_threads >= 1


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
def test_configure_canvas_rejects_empty(width: int, height: int) -> None:
    with pytest.raises(InvalidCanvasDimensionsError):
        configure_canvas(0, 0, width, height, 1.0, 1.0)
    # also a ValueError for callers that do not know the package
    with pytest.raises(ValueError):
        configure_canvas(0, 0, width, height, 1.0, 1.0)


@pytest.mark.parametrize("height", [1, 7, 100, 101, 599])
@pytest.mark.parametrize("n_threads", [1, 2, 3, 8, 16])
def test_partition_covers_rows_exactly_once(height: int, n_threads: int) -> None:
    width = 13
    bands = partition_rows(height, width, n_threads)
    assert len(bands) == n_threads
    assert bands[0].y_start == 0
    assert bands[-1].y_end == height
    for prev, nxt in zip(bands, bands[1:]):
        assert prev.y_end == nxt.y_start
    assert sum(b.rows for b in bands) == height
    assert sum(b.length for b in bands) == height * width
    for band in bands:
        assert band.offset == band.y_start * width
        assert band.rows >= 0


def test_partition_more_threads_than_rows_leaves_empty_bands() -> None:
    bands = partition_rows(3, 4, 8)
    assert sum(1 for b in bands if b.rows == 0) == 5
    assert [b.rows for b in bands if b.rows] == [1, 1, 1]


def test_band_views_are_disjoint_and_writable() -> None:
    pc = configure_canvas(5, 5, 10, 10, 1.0, 1.0, n_threads=3)
    buffer = allocate_buffer(pc)
    assert buffer.shape == (100, CHANNELS)
    assert buffer.dtype == np.uint8
    for band in pc.bands():
        view = band_view(buffer, band)
        assert view.shape == (band.length, CHANNELS)
        view[...] = band.index + 1
    assert not (buffer == 0).any()
    assert buffer[0, 0] == 1
    assert buffer[-1, 0] == 3
