# Andy Zhao
"""
Projective model (homography) via the direct linear transform (DLT).

We estimate H such that, for homogeneous image points,

    xp_i  ~  H @ x_i          (equal up to a nonzero scale)

with

    H = [[h0, h1, h2],
         [h3, h4, h5],
         [h6, h7, h8]]

For x = (x, y, w) and xp = (u, v, s), "xp parallel to H x" gives two
independent linear equations per correspondence:

    s*(h0 x + h1 y + h2 w) - u*(h6 x + h7 y + h8 w) = 0
    s*(h3 x + h4 y + h5 w) - v*(h6 x + h7 y + h8 w) = 0

4 correspondences -> 8 equations for the 8 degrees of freedom of H, so the
solution is the 1-D null space of the 8x9 system (no iteration).

Points are conditioned before building the system and H is mapped back
afterwards; the result is scaled so that H[2,2] = 1 where possible.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from .types import (
    Points2D, PointsHomog, Mat3x3, FloatArray,
    as_homogeneous, as_point_array, from_homogeneous, is_valid_mat3x3)
from .primitives import identity3x3, mat3x3_from_flat, normalize_h22


# ---------- Conditioning ----------
def normalization_transform(pts: Points2D) -> Optional[Mat3x3]:
    """
    Hartley normalization for (N,2) points: translate the centroid to the origin
    and scale so the mean distance to it is sqrt(2).

        T = [[k, 0, -k*mx],
             [0, k, -k*my],
             [0, 0,   1  ]]

    Returns None when all points coincide (no scale can be defined).
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")

    m = pts.mean(axis=0)
    mean_dist = float(np.mean(np.linalg.norm(pts - m, axis=1)))
    if mean_dist < 1e-12:
        return None

    k = np.sqrt(2.0) / mean_dist
    T = np.array(
        [
            [k, 0.0, -k * m[0]],
            [0.0, k, -k * m[1]],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )
    return T


def _isotropic_scale_transform(ph: PointsHomog) -> Mat3x3:
    """
    Scale-only conditioning for homogeneous points: T = diag(1/k, 1/k, 1) with

        k = rms(|(x, y)|) / rms(|w|)

    Unlike the Hartley transform this is defined for points at infinity (w = 0),
    so it is safe for arbitrary homogeneous input.
    """
    rms_xy = float(np.sqrt(np.mean(np.sum(ph[:, :2] ** 2, axis=1))))
    rms_w = float(np.sqrt(np.mean(ph[:, 2] ** 2)))
    if rms_xy == 0.0 or rms_w == 0.0:
        return identity3x3()
    k = rms_xy / rms_w
    return np.diag([1.0 / k, 1.0 / k, 1.0]).astype(np.float64)


# ---------- DLT core ----------
def _dlt_system(x: PointsHomog, xp: PointsHomog) -> FloatArray:
    """
    Stack the 2 DLT rows of every correspondence into a (2N, 9) matrix.

    Unknown vector: h = [h0, h1, ..., h8] (H flattened row-major).
    """
    n = x.shape[0]
    A = np.zeros((2 * n, 9), dtype=np.float64)

    for i in range(n):
        # X = (x, y, w) in image 1, (u, v, s) its match in image 2
        X = x[i]
        u, v, s = float(xp[i, 0]), float(xp[i, 1]), float(xp[i, 2])

        # H X = (r0 . X, r1 . X, r2 . X) with r_k the rows of H.
        # Parallel to (u, v, s) means  s*(r0 . X) = u*(r2 . X)  and
        # s*(r1 . X) = v*(r2 . X); each gives one row of A.

        # Row for the x-coordinate: s*(h0..h2 . X) - u*(h6..h8 . X) = 0
        #   h0..h2 multiply  s*X
        #   h3..h5 do not appear (left 0)
        #   h6..h8 multiply -u*X
        A[2 * i + 0, 0:3] = s * X
        A[2 * i + 0, 6:9] = -u * X

        # Row for the y-coordinate: s*(h3..h5 . X) - v*(h6..h8 . X) = 0
        #   h0..h2 do not appear (left 0)
        #   h3..h5 multiply  s*X
        #   h6..h8 multiply -v*X
        A[2 * i + 1, 3:6] = s * X
        A[2 * i + 1, 6:9] = -v * X
    return A


def _null_vector(A: FloatArray, eps_rank: float) -> Optional[FloatArray]:
    """
    Unit vector h minimizing ||A h|| (last right singular vector).

    Returns None when the null space is more than one-dimensional, i.e. when
    the 8th singular value is negligible: the correspondences do not pin H
    down (collinear / repeated points).
    """
    if A.shape[0] < 9:
        # Zero rows leave the null space unchanged and give a square V^T.
        A = np.vstack([A, np.zeros((9 - A.shape[0], 9), dtype=np.float64)])

    try:
        _, S, Vt = np.linalg.svd(A, full_matrices=False)
    except np.linalg.LinAlgError:
        return None

    if S[0] == 0.0 or S[7] <= eps_rank * S[0]:
        return None
    return Vt[-1]


def _solve_dlt(
        x: PointsHomog,
        xp: PointsHomog,
        T0: Mat3x3,
        T1: Mat3x3,
        eps_rank: float,
) -> Optional[Mat3x3]:
    """
    Solve H from conditioned points and undo the conditioning:

        xp_n ~ Hn x_n,  x_n = T0 x,  xp_n = T1 xp   =>   H = T1^-1 Hn T0
    """
    xn = x @ T0.T
    xpn = xp @ T1.T

    h = _null_vector(_dlt_system(xn, xpn), eps_rank)
    if h is None:
        return None

    Hn = mat3x3_from_flat(h)
    if abs(np.linalg.det(Hn)) <= eps_rank * np.linalg.norm(Hn) ** 3:
        # A singular H maps the plane onto a line or a point.
        return None

    try:
        H = np.linalg.solve(T1, Hn @ T0)
    except np.linalg.LinAlgError:
        return None

    H = normalize_h22(H)
    if not is_valid_mat3x3(H):
        return None
    return H


# ---------- Homography fitting ----------
def fit_homography_4points(
        x: PointsHomog,
        xp: PointsHomog,
        *,
        eps_rank: float = 1e-10,
) -> Optional[Mat3x3]:
    """
    Solve for projective H such that xp_i ~ H x_i from exactly 4 correspondences.

    x:  (4,3) homogeneous points in image 1
    xp: (4,3) homogeneous points in image 2

    Prior normalization is not required (points are conditioned internally).

    Returns:
      3x3 homography with H[2,2] = 1 (when H[2,2] != 0), or None if three of
      the points are collinear and the system is singular.
    """
    x = as_point_array(x, 3, "x")
    xp = as_point_array(xp, 3, "xp")
    if x.shape != (4, 3) or xp.shape != (4, 3):
        raise ValueError(f"fit_homography_4points expects (4,3) inputs, got {x.shape} and {xp.shape}")

    return _solve_dlt(x, xp, _isotropic_scale_transform(x), _isotropic_scale_transform(xp), eps_rank)


def fit_homography_least_squares(
        pts0: Points2D,
        pts1: Points2D,
        *,
        eps_rank: float = 1e-10,
) -> Optional[Mat3x3]:
    """
    Fit a homography from N >= 4 planar correspondences (algebraic least squares).

    This is used after inlier selection: refit with all inliers for the best
    estimate. Both point sets are Hartley-normalized first.
    """
    p0 = as_point_array(pts0, 2, "pts0")
    p1 = as_point_array(pts1, 2, "pts1")
    if p0.shape != p1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {p0.shape} vs {p1.shape}")
    if p0.shape[0] < 4:
        return None

    T0 = normalization_transform(p0)
    T1 = normalization_transform(p1)
    if T0 is None or T1 is None:
        return None

    return _solve_dlt(as_homogeneous(p0), as_homogeneous(p1), T0, T1, eps_rank)


# ---------- Apply transform + residuals ----------
def apply_homography(H: Mat3x3, pts: Points2D) -> Points2D:
    """
    Apply a 3x3 homography to (N,2) points, dividing by the projected w.
    """
    pts = as_point_array(pts, 2)
    if H.shape != (3, 3):
        raise ValueError(f"Expected H shape (3,3), got {H.shape}")

    ph_t = as_homogeneous(pts) @ H.T
    return from_homogeneous(ph_t)


def residuals_homography_L2(H: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Per-point transfer error in pixels:

        e_i = || apply_homography(H, pts0[i]) - pts1[i] ||_2

    Points mapped to infinity get an infinite residual. Returns shape (N,).
    """
    pts0 = as_point_array(pts0, 2, "pts0")
    pts1 = as_point_array(pts1, 2, "pts1")
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    predicted = apply_homography(H, pts0)
    err = np.linalg.norm(predicted - pts1, axis=1)
    return np.where(np.isfinite(err), err, np.inf).astype(np.float64)
