# Andy Zhao
"""
Affine model utilities (3x3 homogeneous form).

We estimate an affine transform T such that:

    [x', y', 1]^T  ≈  T @ [x, y, 1]^T

where:

    T = [[a, b, tx],
         [c, d, ty],
         [0, 0,  1]]

Unknowns are 6 parameters: theta = [a, b, tx, c, d, ty].
3 correspondences give 6 equations, so the minimal solve is exact; more
correspondences are solved in the least-squares sense with the same system.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import (
    Points2D, PointsHomog, Mat3x3, FloatArray,
    as_homogeneous, as_point_array, is_valid_mat3x3)
from .primitives import det3_rows, norm3


# ---------- Degeneracy checks ----------
def _is_collinear_homog(x: PointsHomog, eps_det: float) -> bool:
    """
    Collinearity of 3 homogeneous points:

        det([x1; x2; x3]) ~ 0   <=>   x1, x2, x3 collinear

    The determinant is compared against the product of the row norms so the
    test does not depend on how each point was scaled.
    """
    det = det3_rows(x[0], x[1], x[2])
    ref = norm3(x[0]) * norm3(x[1]) * norm3(x[2])
    return ref == 0.0 or abs(det) <= eps_det * ref


def _is_degenerate_triplet(pts: Points2D, eps_area: float) -> bool:
    """
    Pixel-space version for (3,2) points. With w = 1 the determinant of the
    homogeneous rows is twice the signed triangle area, so eps_area is an
    absolute threshold on 2x area.
    """
    ph = as_homogeneous(pts)
    return abs(det3_rows(ph[0], ph[1], ph[2])) < eps_area


# ---------- Linear system ----------
def _affine_system(x: PointsHomog, xp: PointsHomog) -> tuple[FloatArray, FloatArray]:
    """
    Build A (2N x 6) and b (2N,) with A @ theta = b for N homogeneous
    correspondences x_i = (x, y, w) -> xp_i = (u, v, s).
    """
    n = x.shape[0]
    A = np.zeros((2 * n, 6), dtype=np.float64)
    b = np.zeros((2 * n,), dtype=np.float64)

    # With T's last row fixed, T x = (a x + b y + tx w, c x + d y + ty w, w).
    # xp ~ T x then reads  u / s = (a x + b y + tx w) / w, i.e. after
    # clearing the denominators:
    #   s*x*a + s*y*b + s*w*tx = w*u
    #   s*x*c + s*y*d + s*w*ty = w*v
    s = xp[:, 2:3]
    w = x[:, 2]

    # Even rows: [s*x, s*y, s*w, 0, 0, 0] . theta = w*u
    A[0::2, 0:3] = s * x
    b[0::2] = w * xp[:, 0]

    # Odd rows:  [0, 0, 0, s*x, s*y, s*w] . theta = w*v
    A[1::2, 3:6] = s * x
    b[1::2] = w * xp[:, 1]
    return A, b


def _affine_from_theta(theta: FloatArray) -> Mat3x3:
    # [a, b, tx, c, d, ty] -> two rows of T, then the fixed [0, 0, 1]
    return np.vstack([theta.reshape(2, 3), [0.0, 0.0, 1.0]]).astype(np.float64)


# ---------- Affine fitting ----------
def fit_affine_3points(
        x: PointsHomog,
        xp: PointsHomog,
        *,
        eps_det: float = 1e-12,
) -> Optional[Mat3x3]:
    """
    Solve for affine H (bottom row [0,0,1]) such that xp_i ~ H x_i exactly,
    from 3 homogeneous correspondences.

    x:  (3,3) homogeneous points in image 1, rows (x, y, w)
    xp: (3,3) homogeneous points in image 2, rows (u, v, s)

    Returns:
      3x3 affine matrix, or None if x is collinear (singular system).
    """
    x = as_point_array(x, 3, "x")
    xp = as_point_array(xp, 3, "xp")
    if x.shape != (3, 3) or xp.shape != (3, 3):
        raise ValueError(f"fit_affine_3points expects (3,3) inputs, got {x.shape} and {xp.shape}")

    if _is_collinear_homog(x, eps_det):
        return None

    A, b = _affine_system(x, xp)
    try:
        theta = np.linalg.solve(A, b)
    except np.linalg.LinAlgError:
        return None

    T = _affine_from_theta(theta)
    if not is_valid_mat3x3(T):
        return None
    return T


def fit_affine_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit affine transform from exactly 3 planar point correspondences.

    pts0: (3,2) source points
    pts1: (3,2) target points

    Returns:
      3x3 affine matrix, or None if degenerate / solve fails.
    """
    pts0 = as_point_array(pts0, 2, "pts0")
    pts1 = as_point_array(pts1, 2, "pts1")
    if pts0.shape != (3, 2) or pts1.shape != (3, 2):
        raise ValueError(f"fit_affine_minimal expects (3,2) inputs, got {pts0.shape} and {pts1.shape}")

    # A collinear source makes the system singular; a collinear target would
    # give a rank-deficient T that flattens the plane onto a line.
    if _is_degenerate_triplet(pts0, eps_area) or _is_degenerate_triplet(pts1, eps_area):
        return None

    return fit_affine_3points(as_homogeneous(pts0), as_homogeneous(pts1))


def fit_affine_least_squares(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """
    Fit affine transform from N >= 3 correspondences using least squares.

    Used after inlier selection: refit with all inliers for the best estimate.

    Same system as the 3-point solve (with w = s = 1), solved with
    np.linalg.lstsq: theta minimizes ||A theta - b||^2.
    """
    p0 = as_point_array(pts0, 2, "pts0")
    p1 = as_point_array(pts1, 2, "pts1")
    if p0.shape != p1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {p0.shape} vs {p1.shape}")
    if p0.shape[0] < 3:
        return None

    A, b = _affine_system(as_homogeneous(p0), as_homogeneous(p1))
    try:
        theta, _residuals, rank, _singular_vals = np.linalg.lstsq(A, b, rcond=None)
    except np.linalg.LinAlgError:
        return None

    # Affine has 6 unknowns; fewer independent constraints means the points
    # are collinear / repeated and the fit is not unique.
    if rank < 6:
        return None

    T = _affine_from_theta(theta)
    if not is_valid_mat3x3(T):
        return None
    return T


# ---------- Apply transform + residuals ----------
def apply_T(T: Mat3x3, pts: Points2D) -> Points2D:
    """
    Apply a 3x3 affine (or similarity) transform to (N,2) points.

    The bottom row is taken to be [0, 0, 1], so no division by w:

        p' = T[:2, :2] @ p + T[:2, 2]
    """
    pts = as_point_array(pts, 2)
    if T.shape != (3, 3):
        raise ValueError(f"Expected T shape (3,3), got {T.shape}")
    return pts @ T[:2, :2].T + T[:2, 2]


def residuals_L2(T: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Per-point transfer error in pixels, e_i = || apply_T(T, pts0[i]) - pts1[i] ||.
    Returns shape (N,).
    """
    pts0 = as_point_array(pts0, 2, "pts0")
    pts1 = as_point_array(pts1, 2, "pts1")
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    return np.linalg.norm(apply_T(T, pts0) - pts1, axis=1)
