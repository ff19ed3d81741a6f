"""Pixel canvas geometry and the row-band partition used by the renderer."""

from __future__ import annotations

from dataclasses import dataclass
from multiprocessing import cpu_count
from typing import Optional

import numpy as np

from . import transform as tr
from .errors import InvalidCanvasDimensionsError

CHANNELS = 4


@dataclass(frozen=True)
class RowBand:
    """Half-open row range ``[y_start, y_end)`` owned by one worker.

    ``offset`` and ``length`` locate the band in the flat pixel buffer.
    """

    index: int
    y_start: int
    y_end: int
    offset: int
    length: int

    @property
    def rows(self) -> int:
        return self.y_end - self.y_start


@dataclass(frozen=True)
class PixelCanvas:
    """Device-space rectangle to render into."""

    width: int
    height: int
    pos_ul: np.ndarray
    pos_ur: np.ndarray
    pos_ll: np.ndarray
    pos_lr: np.ndarray
    resolution_x: float
    resolution_y: float
    n_threads: int
    y_increment: float
    screen_to_pixel: np.ndarray

    @property
    def dimension(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def num_pixels(self) -> int:
        return self.width * self.height

    def bands(self) -> tuple[RowBand, ...]:
        return partition_rows(self.height, self.width, self.n_threads)


def hardware_threads() -> int:
    try:
        return max(cpu_count(), 1)
    except NotImplementedError:
        return 1


def configure_canvas(
    center_x: int,
    center_y: int,
    width: int,
    height: int,
    resolution_x: float,
    resolution_y: float,
    n_threads: Optional[int] = None,
) -> PixelCanvas:
    """Build a canvas of ``width`` x ``height`` pixels centred on ``(center_x, center_y)``.

    ``resolution_x`` and ``resolution_y`` are pixels per engineering unit.
    ``n_threads`` defaults to the hardware concurrency.
    """

    width = int(width)
    height = int(height)
    if width <= 0 or height <= 0:
        raise InvalidCanvasDimensionsError(f"canvas must have a positive size, got {width}x{height}")

    upper_left_x = int(center_x) - (width >> 1)
    upper_left_y = int(center_y) - (height >> 1)

    screen_to_pixel = tr.multiply(
        tr.translation(tr.vector(upper_left_x + width / 2.0, upper_left_y + height / 2.0)),
        tr.scaling(tr.vector(resolution_x, -resolution_y, 0.0)),
    )

    threads = hardware_threads() if n_threads is None else max(int(n_threads), 1)

    return PixelCanvas(
        width=width,
        height=height,
        pos_ul=tr.point(upper_left_x, upper_left_y),
        pos_ur=tr.point(upper_left_x + width, upper_left_y),
        pos_ll=tr.point(upper_left_x, upper_left_y + height),
        pos_lr=tr.point(upper_left_x + width, upper_left_y + height),
        resolution_x=float(resolution_x),
        resolution_y=float(resolution_y),
        n_threads=threads,
        y_increment=height / threads,
        screen_to_pixel=screen_to_pixel,
    )


def partition_rows(height: int, width: int, n_threads: int) -> tuple[RowBand, ...]:
    """Split ``[0, height)`` into ``n_threads`` contiguous bands.

    Band ``b`` covers ``[b * height // n, (b + 1) * height // n)``: the bands
    never overlap, leave no gap and the last one ends at ``height``. With more
    threads than rows some bands are empty.
    """

    if height < 0 or width < 0:
        raise InvalidCanvasDimensionsError(f"negative canvas size {width}x{height}")
    n = max(int(n_threads), 1)
    bands = []
    for index in range(n):
        y_start = index * height // n
        y_end = (index + 1) * height // n
        bands.append(
            RowBand(
                index=index,
                y_start=y_start,
                y_end=y_end,
                offset=y_start * width,
                length=(y_end - y_start) * width,
            )
        )
    return tuple(bands)


def allocate_buffer(canvas: PixelCanvas) -> np.ndarray:
    """Flat RGBA buffer, one row of ``CHANNELS`` bytes per pixel."""

    return np.zeros((canvas.num_pixels, CHANNELS), dtype=np.uint8)


def band_view(buffer: np.ndarray, band: RowBand) -> np.ndarray:
    """Writable view onto the pixels owned by ``band``."""

    return buffer[band.offset:band.offset + band.length]
