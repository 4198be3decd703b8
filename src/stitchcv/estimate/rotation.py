# Andy Zhao
"""
Rotation-constrained estimators.

1) Pure camera rotation from 2 ray correspondences:

       xp_i ~ R @ x_i,   R in SO(3)

   Reduces to the 3D similarity solve with scaling and translation switched
   off. Image points must be of unit norm for the least squares to be
   meaningful (caller contract).

2) Homography generated by a rotation seen through an unknown focal length f
   shared by both views:

       H = K @ R @ K^-1,   K = diag(f, f, 1)

   K^-1 x is proportional to the viewing ray (x, y, f*w). A rotation keeps the
   angle between any two rays, so for every pair (i, j):

       cos(a_i, a_j) = cos(b_i, b_j),   a = (x, y, f w),  b = (x', y', f w')

   Squaring and clearing denominators gives a polynomial in g = f^2 per pair
   (a cubic: the g^4 terms cancel).
   The real positive roots are the focal candidates; each one is checked by
   fitting R to the three ray pairs and keeping the best consistent fit.
"""
from __future__ import annotations

import itertools
import logging
import os
from typing import Optional

import numpy as np

from .types import (
    PointsHomog, Mat3x3, FloatArray,
    DofConfig, FocalSolverParams, FocalHomography, as_point_array, is_valid_mat3x3)
from .primitives import norm3, normalize3, normalize_h22
from .similarity import similarity_3d_raw

logger = logging.getLogger(__name__)
_FOCAL_DEBUG = os.environ.get("STITCHCV_FOCAL_DEBUG", "0") == "1"

# Rotation only, about the origin, no reflections.
_ROTATION_DOF = DofConfig(
    allow_scaling=False,
    allow_rotation=True,
    allow_translation=False,
    orientation_preserving=True,
)

_ALL_SIGNS = [np.array(s, dtype=np.float64) for s in itertools.product((1.0, -1.0), repeat=3)]
_FRONT_SIGNS = [np.ones(3, dtype=np.float64)]


# ---------- Camera rotation ----------
def camera_rotation_2points(x: FloatArray, xp: FloatArray) -> Mat3x3:
    """
    Solve for rotation R such that xp_i ~ R x_i from 2 correspondences.

    x:  (2,3) unit-norm rays in image 1
    xp: (2,3) unit-norm rays in image 2

    Non-unit input still returns a rotation, just not a meaningful one.
    """
    x = as_point_array(x, 3, "x")
    xp = as_point_array(xp, 3, "xp")
    if x.shape != (2, 3) or xp.shape != (2, 3):
        raise ValueError(f"camera_rotation_2points expects (2,3) inputs, got {x.shape} and {xp.shape}")

    return similarity_3d_raw(x, xp, _ROTATION_DOF).R


# ---------- Common focal length ----------
def _conditioning_scale(x: PointsHomog, xp: PointsHomog) -> Optional[float]:
    """
    One isotropic image scale k for both views (f is shared, so both views must
    be scaled alike): k = rms(|(x, y)|) / rms(|w|) over all six points.

    Scaling x, y by 1/k scales f by 1/k and leaves R unchanged.
    """
    pts = np.vstack([x, xp])
    rms_xy = float(np.sqrt(np.mean(np.sum(pts[:, :2] ** 2, axis=1))))
    rms_w = float(np.sqrt(np.mean(pts[:, 2] ** 2)))
    if rms_xy == 0.0 or rms_w == 0.0:
        return None
    return rms_xy / rms_w


def _pair_polynomial(x: PointsHomog, xp: PointsHomog, i: int, j: int) -> tuple[FloatArray, float]:
    """
    Polynomial in g = f^2 (highest power first) whose roots make the angle between
    rays i and j the same in both views:

        (a_i.a_j)^2 |b_i|^2 |b_j|^2  -  (b_i.b_j)^2 |a_i|^2 |a_j|^2  =  0

    with  a.a' = (x x' + y y') + g (w w')  and  |a|^2 = (x^2 + y^2) + g w^2.

    Also returns the magnitude of the two products, the yardstick for deciding
    whether the difference is zero.
    """
    def dot_poly(P: PointsHomog, k: int, m: int) -> FloatArray:
        # Ray k . ray m as a degree-1 polynomial in g: [w_k w_m, x_k x_m + y_k y_m]
        return np.array(
            [P[k, 2] * P[m, 2], P[k, 0] * P[m, 0] + P[k, 1] * P[m, 1]],
            dtype=np.float64,
        )

    # Cross dot products a_i.a_j and b_i.b_j (degree 1)
    a_ij = dot_poly(x, i, j)
    b_ij = dot_poly(xp, i, j)

    # Products of squared norms |a_i|^2 |a_j|^2 and |b_i|^2 |b_j|^2 (degree 2)
    a_norms = np.polymul(dot_poly(x, i, i), dot_poly(x, j, j))
    b_norms = np.polymul(dot_poly(xp, i, i), dot_poly(xp, j, j))

    # cos^2 equal in both views, denominators cleared (degree 4 each side)
    lhs = np.polymul(np.polymul(a_ij, a_ij), b_norms)
    rhs = np.polymul(np.polymul(b_ij, b_ij), a_norms)
    ref = float(max(np.max(np.abs(lhs)), np.max(np.abs(rhs))))
    # Both g^4 coefficients equal (w_i w_j w'_i w'_j)^2: drop the term so rounding
    # in it cannot show up as a spurious root near infinity.
    return np.polysub(lhs, rhs)[1:], ref


def _focal_sq_candidates(x: PointsHomog, xp: PointsHomog, params: FocalSolverParams) -> list[float]:
    """
    Real positive roots g of the three pair polynomials.

    A pair whose polynomial vanishes identically (e.g. a rotation about the
    optical axis) carries no information about f and is skipped.
    """
    candidates: list[float] = []
    for i, j in ((0, 1), (0, 2), (1, 2)):
        poly, ref = _pair_polynomial(x, xp, i, j)
        if ref == 0.0:
            continue
        # Relative coefficients: "zero" now means small next to the products.
        poly = poly / ref
        # Drop numerically-zero leading terms so np.roots does not invent huge roots.
        nz = np.flatnonzero(np.abs(poly) > 1e-12)
        if nz.size == 0 or nz[0] == poly.size - 1:
            # Identically zero (no information) or a nonzero constant (no root).
            continue
        poly = poly[nz[0]:]

        for r in np.roots(poly):
            g = float(r.real)
            # Keep real roots only (up to rounding in the imaginary part) ...
            if abs(r.imag) > params.root_imag_tol * max(1.0, abs(g)):
                continue
            # ... and only those giving a real focal length f = sqrt(g).
            if g <= params.min_focal_sq:
                continue
            candidates.append(g)
    return candidates


def _unit_rays(P: PointsHomog, focal: float) -> Optional[FloatArray]:
    # (x, y, w) -> (x, y, f*w), scaled to unit length
    rays = np.column_stack([P[:, 0], P[:, 1], focal * P[:, 2]])
    if any(norm3(r) == 0.0 for r in rays):
        return None
    return np.array([normalize3(r) for r in rays], dtype=np.float64)


def _fit_rotation_for_focal(
        x: PointsHomog,
        xp: PointsHomog,
        focal: float,
        sign_patterns: list[FloatArray],
) -> Optional[tuple[float, Mat3x3]]:
    """
    Best rotation mapping the source rays onto the (possibly sign-flipped) target
    rays for a given focal length. Returns (cost, R) where cost is the sum of
    squared distances between unit rays.
    """
    a = _unit_rays(x, focal)
    b = _unit_rays(xp, focal)
    if a is None or b is None:
        return None

    best: Optional[tuple[float, Mat3x3]] = None
    for signs in sign_patterns:
        bs = b * signs[:, None]
        R = similarity_3d_raw(a, bs, _ROTATION_DOF).R
        cost = float(np.sum((a @ R.T - bs) ** 2))
        if best is None or cost < best[0]:
            best = (cost, R)
    return best


def rotation_common_focal_length_3points(
        x: PointsHomog,
        xp: PointsHomog,
        *,
        signed_disambiguation: bool = True,
        params: FocalSolverParams = FocalSolverParams(),
) -> Optional[FocalHomography]:
    """
    Solve for H = diag(f,f,1) @ R @ diag(1/f,1/f,1) such that xp_i ~ H x_i.

    x:  (3,3) homogeneous points in image 1
    xp: (3,3) homogeneous points in image 2

    The principal point is assumed to be the origin of the image coordinates.
    No specific normalization of the homogeneous points is required.

    signed_disambiguation:
      - True: points must be in front of the camera, i.e. R @ ray_i points the
        same way as ray'_i (positive depth). Solutions that only fit with a
        flipped ray are rejected.
      - False: xp_i ~ H x_i holds up to any nonzero scale, including negative.

    Returns:
      FocalHomography (H, R, f, residual), or None when no (R, f) fits the
      correspondences (inconsistent or degenerate input).
    """
    x = as_point_array(x, 3, "x")
    xp = as_point_array(xp, 3, "xp")
    if x.shape != (3, 3) or xp.shape != (3, 3):
        raise ValueError(
            f"rotation_common_focal_length_3points expects (3,3) inputs, got {x.shape} and {xp.shape}")
    if np.any(np.all(x == 0.0, axis=1)) or np.any(np.all(xp == 0.0, axis=1)):
        raise ValueError("homogeneous points must not be all zero")

    # ---------- Conditioning ----------
    k = _conditioning_scale(x, xp)
    if k is None:
        if _FOCAL_DEBUG:
            logger.debug("focal: no image spread or all points at infinity")
        return None

    xn = x.copy()
    xpn = xp.copy()
    xn[:, :2] /= k
    xpn[:, :2] /= k

    # ---------- Focal candidates ----------
    candidates = _focal_sq_candidates(xn, xpn, params)
    if not candidates:
        if _FOCAL_DEBUG:
            logger.debug("focal: no real positive f^2 root")
        return None

    # ---------- Rotation per candidate, keep the best ----------
    sign_patterns = _FRONT_SIGNS if signed_disambiguation else _ALL_SIGNS

    best_cost = np.inf
    best_g = 0.0
    best_R: Optional[Mat3x3] = None
    for g in candidates:
        fit = _fit_rotation_for_focal(xn, xpn, float(np.sqrt(g)), sign_patterns)
        if fit is None:
            continue
        cost, R = fit
        if _FOCAL_DEBUG:
            logger.debug("focal: candidate f=%.6g cost=%.3g", np.sqrt(g) * k, cost)
        if cost < best_cost:
            best_cost, best_g, best_R = cost, g, R

    if best_R is None or best_cost > params.residual_tol:
        if _FOCAL_DEBUG:
            logger.debug("focal: rejected, best cost %.3g > %.3g", best_cost, params.residual_tol)
        return None

    # ---------- Back to input units ----------
    focal = float(np.sqrt(best_g) * k)
    K = np.diag([focal, focal, 1.0])
    K_inv = np.diag([1.0 / focal, 1.0 / focal, 1.0])
    H = normalize_h22(K @ best_R @ K_inv)
    if not is_valid_mat3x3(H):
        return None

    return FocalHomography(H=H, R=best_R, focal=focal, residual=float(best_cost))
