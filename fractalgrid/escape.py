"""Escape-time iteration of the quadratic map and its colour palette."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import tensorflow as tf

ESCAPE_RADIUS2 = 4.0
DEFAULT_MAX_ITERATIONS = 500
PALETTE_SPAN = float(0xFFFFFF)


@dataclass(frozen=True)
class FractalParameters:
    """Constant and iteration cap of a Julia set render."""

    constant: tuple[float, float] = (-0.4, 0.6)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    escape_radius2: float = ESCAPE_RADIUS2


def next_value(z: tuple[float, float], c: tuple[float, float]) -> tuple[float, float]:
    """One step of ``z -> z**2 + c``."""

    zx, zy = z
    return zx * zx - zy * zy + c[0], 2.0 * zx * zy + c[1]


def mod2(z: tuple[float, float]) -> float:
    return z[0] * z[0] + z[1] * z[1]


def iterate(
    z0: tuple[float, float],
    c: tuple[float, float],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    escape_radius2: float = ESCAPE_RADIUS2,
) -> int:
    """Escape time of ``z0`` under the map; ``max_iterations`` if it never escapes.

    A point has escaped once ``|z|**2`` reaches ``escape_radius2``.
    """

    z = (float(z0[0]), float(z0[1]))
    c = (float(c[0]), float(c[1]))
    n = 0
    while mod2(z) < escape_radius2 and n < max_iterations:
        z = next_value(z, c)
        n += 1
    return n


def fractal_color(t: float) -> tuple[int, int, int, int]:
    """Map ``t`` in ``[0, 1]`` to an opaque RGBA colour.

    ``t * 0xFFFFFF`` is read as a packed integer with red in the low byte.
    """

    code = int(PALETTE_SPAN * t)
    return code & 0xFF, (code >> 8) & 0xFF, (code >> 16) & 0xFF, 0xFF


def colorize(counts: np.ndarray, max_iterations: int) -> np.ndarray:
    """Vectorised :func:`fractal_color` over escape counts, shape ``(n, 4)`` uint8."""

    t = np.asarray(counts, dtype=np.float64) / np.float64(max_iterations)
    code = (np.float64(PALETTE_SPAN) * t).astype(np.int64)
    rgba = np.empty(code.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = code & 0xFF
    rgba[..., 1] = (code >> 8) & 0xFF
    rgba[..., 2] = (code >> 16) & 0xFF
    rgba[..., 3] = 0xFF
    return rgba


_FLAT_F64 = tf.TensorSpec(shape=[None], dtype=tf.float64)
_SCALAR_F64 = tf.TensorSpec(shape=[], dtype=tf.float64)
_SCALAR_I32 = tf.TensorSpec(shape=[], dtype=tf.int32)


@tf.function(input_signature=[_FLAT_F64, _FLAT_F64, _SCALAR_F64, _SCALAR_F64, _SCALAR_I32, _SCALAR_F64])
def _julia_run(
    zx: tf.Tensor, zy: tf.Tensor, cx: tf.Tensor, cy: tf.Tensor, max_iterations: tf.Tensor, radius2: tf.Tensor
) -> tf.Tensor:
    """Iterate every point until it escapes or hits the cap; returns the counts."""

    two = tf.constant(2.0, dtype=tf.float64)
    ns = tf.zeros_like(zx, dtype=tf.int32)
    active = tf.logical_and(zx * zx + zy * zy < radius2, ns < max_iterations)

    def cond(zx: tf.Tensor, zy: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tf.Tensor:
        return tf.reduce_any(active)

    def body(zx: tf.Tensor, zy: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zx_new = zx * zx - zy * zy + cx
        zy_new = two * zx * zy + cy
        zx = tf.where(active, zx_new, zx)
        zy = tf.where(active, zy_new, zy)
        ns = ns + tf.cast(active, tf.int32)
        active = tf.logical_and(active, tf.logical_and(zx * zx + zy * zy < radius2, ns < max_iterations))
        return zx, zy, ns, active

    _, _, ns, _ = tf.while_loop(cond, body, (zx, zy, ns, active))
    return ns


def escape_counts(
    xs: np.ndarray,
    ys: np.ndarray,
    constant: tuple[float, float],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    *,
    escape_radius2: float = ESCAPE_RADIUS2,
) -> np.ndarray:
    """Escape time for each ``(xs[i], ys[i])`` starting point, as int32."""

    xs = np.ascontiguousarray(xs, dtype=np.float64).ravel()
    ys = np.ascontiguousarray(ys, dtype=np.float64).ravel()
    if xs.size == 0:
        return np.zeros(0, dtype=np.int32)

    with tf.device("/CPU:0"):
        ns = _julia_run(
            tf.convert_to_tensor(xs),
            tf.convert_to_tensor(ys),
            tf.constant(float(constant[0]), dtype=tf.float64),
            tf.constant(float(constant[1]), dtype=tf.float64),
            tf.constant(int(max_iterations), dtype=tf.int32),
            tf.constant(float(escape_radius2), dtype=tf.float64),
        )
    return ns.numpy()
