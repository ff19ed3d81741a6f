"""Homogeneous 4x4 transform algebra.

Matrices are ``(4, 4)`` float64 arrays in row-major order as written, so the
translation part of a transform lives in column 3. Vectors are ``(4,)``
arrays: ``w == 1`` marks a point, ``w == 0`` a vector.
"""

from __future__ import annotations

import numpy as np

from .errors import NonInvertibleTransformError

Matrix = np.ndarray
Vector4 = np.ndarray


def identity() -> Matrix:
    return np.eye(4, dtype=np.float64)


def point(x: float, y: float, z: float = 0.0) -> Vector4:
    return np.array([x, y, z, 1.0], dtype=np.float64)


def vector(x: float, y: float, z: float = 0.0) -> Vector4:
    return np.array([x, y, z, 0.0], dtype=np.float64)


def is_point(v: Vector4) -> bool:
    return bool(v[3] != 0.0)


def translation(v: Vector4) -> Matrix:
    """Pure translation by the x, y, z components of ``v``."""

    result = identity()
    result[0, 3] = v[0]
    result[1, 3] = v[1]
    result[2, 3] = v[2]
    return result


def scaling(v: Vector4, reflect: bool = False) -> Matrix:
    """Diagonal scale matrix. ``reflect`` negates all three factors."""

    sign = -1.0 if reflect else 1.0
    result = identity()
    result[0, 0] = sign * v[0]
    result[1, 1] = sign * v[1]
    result[2, 2] = sign * v[2]
    return result


def multiply(m1: Matrix, m2: Matrix) -> Matrix:
    """Matrix product; applied to a column vector, ``m2`` acts first."""

    return np.asarray(m1, dtype=np.float64) @ np.asarray(m2, dtype=np.float64)


def apply(m: Matrix, v: Vector4) -> Vector4:
    return np.asarray(m, dtype=np.float64) @ np.asarray(v, dtype=np.float64)


def add(v1: Vector4, v2: Vector4) -> Vector4:
    """Vector + Vector gives a Vector, Point + Vector gives a Point.

    ``w`` saturates at 1, so Point + Point yields something that looks like a
    point but carries no meaning.
    """

    result = np.asarray(v1, dtype=np.float64) + np.asarray(v2, dtype=np.float64)
    result[3] = min(1.0, result[3])
    return result


def subtract(v1: Vector4, v2: Vector4) -> Vector4:
    return np.asarray(v1, dtype=np.float64) - np.asarray(v2, dtype=np.float64)


def scale(v: Vector4, t: float) -> Vector4:
    """Multiply x, y, z by ``t``; ``w`` is left unchanged."""

    result = np.array(v, dtype=np.float64, copy=True)
    result[:3] *= t
    return result


def dot(v1: Vector4, v2: Vector4) -> float:
    return float(np.dot(v1, v2))


def lerp(a: Vector4, b: Vector4, t: float) -> Vector4:
    """Linear interpolation between ``a`` and ``b`` for ``t`` in ``[0, 1]``.

    Outside that range the zero vector is returned.
    """

    if t < 0.0 or t > 1.0:
        return np.zeros(4, dtype=np.float64)
    return add(a, scale(subtract(b, a), t))


def add_matrices(m1: Matrix, m2: Matrix) -> Matrix:
    return np.asarray(m1, dtype=np.float64) + np.asarray(m2, dtype=np.float64)


def diag_vector(m: Matrix) -> Vector4:
    """Diagonal scale factors of ``m`` as a vector (pixels per unit)."""

    return vector(m[0, 0], m[1, 1], m[2, 2])


def diag_vector_abs(m: Matrix) -> Vector4:
    return vector(abs(m[0, 0]), abs(m[1, 1]), abs(m[2, 2]))


def _minors(m: np.ndarray) -> tuple[list[float], list[float]]:
    # 2x2 minors of the top two rows and the bottom two rows.
    s = [
        m[0, 0] * m[1, 1] - m[1, 0] * m[0, 1],
        m[0, 0] * m[1, 2] - m[1, 0] * m[0, 2],
        m[0, 0] * m[1, 3] - m[1, 0] * m[0, 3],
        m[0, 1] * m[1, 2] - m[1, 1] * m[0, 2],
        m[0, 1] * m[1, 3] - m[1, 1] * m[0, 3],
        m[0, 2] * m[1, 3] - m[1, 2] * m[0, 3],
    ]
    c = [
        m[2, 0] * m[3, 1] - m[3, 0] * m[2, 1],
        m[2, 0] * m[3, 2] - m[3, 0] * m[2, 2],
        m[2, 0] * m[3, 3] - m[3, 0] * m[2, 3],
        m[2, 1] * m[3, 2] - m[3, 1] * m[2, 2],
        m[2, 1] * m[3, 3] - m[3, 1] * m[2, 3],
        m[2, 2] * m[3, 3] - m[3, 2] * m[2, 3],
    ]
    return s, c


def determinant(m: Matrix) -> float:
    """Closed-form determinant; exact for integer valued matrices."""

    s, c = _minors(np.asarray(m, dtype=np.float64))
    return float(s[0] * c[5] - s[1] * c[4] + s[2] * c[3] + s[3] * c[2] - s[4] * c[1] + s[5] * c[0])


def is_invertible(m: Matrix) -> bool:
    return determinant(m) != 0.0


def invert(m: Matrix) -> Matrix:
    """Inverse through the adjugate.

    Raises :class:`NonInvertibleTransformError` when the determinant is zero.
    """

    a = np.asarray(m, dtype=np.float64)
    s, c = _minors(a)
    det = s[0] * c[5] - s[1] * c[4] + s[2] * c[3] + s[3] * c[2] - s[4] * c[1] + s[5] * c[0]
    if det == 0.0:
        raise NonInvertibleTransformError("matrix is not invertible (determinant is zero)")

    inv_det = 1.0 / det
    result = np.empty((4, 4), dtype=np.float64)

    result[0, 0] = (a[1, 1] * c[5] - a[1, 2] * c[4] + a[1, 3] * c[3]) * inv_det
    result[0, 1] = (-a[0, 1] * c[5] + a[0, 2] * c[4] - a[0, 3] * c[3]) * inv_det
    result[0, 2] = (a[3, 1] * s[5] - a[3, 2] * s[4] + a[3, 3] * s[3]) * inv_det
    result[0, 3] = (-a[2, 1] * s[5] + a[2, 2] * s[4] - a[2, 3] * s[3]) * inv_det

    result[1, 0] = (-a[1, 0] * c[5] + a[1, 2] * c[2] - a[1, 3] * c[1]) * inv_det
    result[1, 1] = (a[0, 0] * c[5] - a[0, 2] * c[2] + a[0, 3] * c[1]) * inv_det
    result[1, 2] = (-a[3, 0] * s[5] + a[3, 2] * s[2] - a[3, 3] * s[1]) * inv_det
    result[1, 3] = (a[2, 0] * s[5] - a[2, 2] * s[2] + a[2, 3] * s[1]) * inv_det

    result[2, 0] = (a[1, 0] * c[4] - a[1, 1] * c[2] + a[1, 3] * c[0]) * inv_det
    result[2, 1] = (-a[0, 0] * c[4] + a[0, 1] * c[2] - a[0, 3] * c[0]) * inv_det
    result[2, 2] = (a[3, 0] * s[4] - a[3, 1] * s[2] + a[3, 3] * s[0]) * inv_det
    result[2, 3] = (-a[2, 0] * s[4] + a[2, 1] * s[2] - a[2, 3] * s[0]) * inv_det

    result[3, 0] = (-a[1, 0] * c[3] + a[1, 1] * c[1] - a[1, 2] * c[0]) * inv_det
    result[3, 1] = (a[0, 0] * c[3] - a[0, 1] * c[1] + a[0, 2] * c[0]) * inv_det
    result[3, 2] = (-a[3, 0] * s[3] + a[3, 1] * s[1] - a[3, 2] * s[0]) * inv_det
    result[3, 3] = (a[2, 0] * s[3] - a[2, 1] * s[1] + a[2, 2] * s[0]) * inv_det

    return result


def equal(a: np.ndarray, b: np.ndarray) -> bool:
    """Exact component-wise comparison."""

    return bool(np.array_equal(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)))


def format_vector(v: Vector4) -> str:
    label = "Point :" if is_point(v) else "Vector:"
    return label + "".join(f" {float(value):10.5f}" for value in v)


def format_matrix(m: Matrix) -> str:
    rows = ["Matrix"]
    for row in np.asarray(m, dtype=np.float64):
        rows.append("".join(f" {float(value):10.5f}" for value in row))
    return "\n".join(rows)
