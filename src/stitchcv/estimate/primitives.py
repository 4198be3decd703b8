# Andy Zhao
"""
Fixed-size vector / matrix helpers shared by the solvers.

Everything here is pure arithmetic on tiny float64 arrays:
  - 2-vectors and 3-vectors (points, rays, homogeneous coordinates)
  - 3x3 matrices, also in the flat row-major form H[0..8]

No failure modes: callers are responsible for passing the right shapes.
"""
from __future__ import annotations

import numpy as np

from .types import Vec2, Vec3, Mat3x3, FloatArray


# ---------- Zeroing ----------
def zero2(v: Vec2) -> None:
    """Zero a 2-vector in place (also works on a view, e.g. the row H[2, :2])."""
    v[0] = 0.0
    v[1] = 0.0


# ---------- Products / norms ----------
def dot3(a: Vec3, b: Vec3) -> float:
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def cross3(a: Vec3, b: Vec3) -> Vec3:
    """
    3D cross product a x b.

    For homogeneous image points, cross3(p, q) is the line through p and q.
    """
    return np.array(
        [
            a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0],
        ],
        dtype=np.float64,
    )


def sqr_norm3(a: Vec3) -> float:
    return dot3(a, a)


def norm3(a: Vec3) -> float:
    return float(np.sqrt(sqr_norm3(a)))


def normalize3(a: Vec3) -> Vec3:
    """
    Return a / |a|. A zero vector is returned unchanged (as a copy).
    """
    n = norm3(a)
    if n == 0.0:
        return np.array(a, dtype=np.float64)
    return np.asarray(a, dtype=np.float64) / n


def det3_rows(a: Vec3, b: Vec3, c: Vec3) -> float:
    """
    Determinant of the 3x3 matrix with rows a, b, c (= a . (b x c)).

    Zero when three homogeneous image points are collinear.
    """
    return dot3(a, cross3(b, c))


# ---------- 3x3 helpers ----------
def identity3x3() -> Mat3x3:
    return np.eye(3, dtype=np.float64)


def mat3x3_from_flat(h: FloatArray) -> Mat3x3:
    """Flat (9,) row-major [H00, H01, H02, H10, ..., H22] -> 3x3 copy."""
    h = np.asarray(h, dtype=np.float64)
    if h.shape != (9,):
        raise ValueError(f"Expected flat shape (9,), got {h.shape}")
    return h.reshape(3, 3).copy()


def normalize_h22(H: Mat3x3, eps: float = 1e-12) -> Mat3x3:
    """
    Scale a homography so that H[2,2] = 1.

    Homographies with H[2,2] ~ 0 (the origin maps to infinity) cannot be
    normalized that way; they are scaled to unit Frobenius norm instead.
    """
    h22 = float(H[2, 2])
    scale = float(np.max(np.abs(H)))
    if scale == 0.0:
        return H.copy()
    if abs(h22) > eps * scale:
        return H / h22
    return H / np.linalg.norm(H)
