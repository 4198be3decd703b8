# Andy Zhao
"""
Similarity model (scale + rotation + translation), closed form.

We estimate s, R, t such that for every correspondence X_i -> Xp_i:

    Xp_i  ≈  s * R @ X_i + t

minimizing  sum_i || s*R@X_i + t - Xp_i ||^2  (orthogonal Procrustes / Umeyama).

Steps (one pass over the points, O(N)):
  1) centroids of X and Xp            (skipped when translation is disabled)
  2) center both point sets
  3) cross-covariance  C = sum_i (Xp_i - mXp)(X_i - mX)^T
  4) rotation from C                  (R = I when rotation is disabled)
  5) scale = trace(R^T C) / sum_i ||X_i - mX||^2   (s = 1 when disabled)
  6) t = mXp - s*R@mX                 (t = 0 when disabled)

Any subset of (s, R, t) can be switched off through DofConfig.
"""
from __future__ import annotations

import logging
import math

import numpy as np

from .types import DofConfig, SimilarityTransform, Mat2x2, FloatArray, as_point_array

logger = logging.getLogger(__name__)

_DEFAULT_DOF = DofConfig()


# ---------- Minimal counts ----------
def minimal_point_count(dof: DofConfig = _DEFAULT_DOF) -> int:
    """
    Number of correspondences that makes the 2D similarity solve unique.

    Without orientation_preserving:
        3 points is minimal for (s,R,t) (R,t)
        2 points is minimal for (s,t) (s,R) (R)
        1 point is minimal for  (s) (t)

    With orientation_preserving:
        2 points is minimal for (s,R,t) (R,t) (s,t)
        1 point is minimal for  (s,R) (R) (s) (t)

    Nothing enabled -> 0 (the identity needs no data).
    """
    if not dof.allow_rotation:
        return int(dof.allow_scaling) + int(dof.allow_translation)

    # Rotation enabled. A reflection candidate costs one extra point.
    n = 2 if dof.allow_translation else 1
    if not dof.orientation_preserving:
        n += 1
    return n


# ---------- Shared pieces ----------
def _centroids(
        pts0: FloatArray,
        pts1: FloatArray,
        allow_translation: bool,
) -> tuple[FloatArray, FloatArray]:
    dim = pts0.shape[1]
    if not allow_translation:
        # Rotation/scale act about the origin: no centering.
        return np.zeros(dim, dtype=np.float64), np.zeros(dim, dtype=np.float64)
    return pts0.mean(axis=0), pts1.mean(axis=0)


def _scale_from_trace(trace_term: float, var0: float, total0: float, eps_var: float) -> float:
    """
    s = trace(R^T C) / sum ||X_i - mX||^2

    If X has (numerically) no spread about its centroid, every scale fits
    equally well; report s = 1.
    """
    if var0 <= eps_var * max(total0, 1.0):
        logger.debug("similarity: degenerate source spread (var=%g), scale set to 1", var0)
        return 1.0
    return float(trace_term / var0)


def _check_pair(pts0, pts1, dim: int) -> tuple[FloatArray, FloatArray]:
    p0 = as_point_array(pts0, dim, "pts0")
    p1 = as_point_array(pts1, dim, "pts1")
    if p0.shape != p1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {p0.shape} vs {p1.shape}")
    if p0.shape[0] < 1:
        raise ValueError("similarity solve needs at least one correspondence")
    return p0, p1


def _rotation_2d(c: float, s: float) -> Mat2x2:
    return np.array([[c, -s], [s, c]], dtype=np.float64)


def _reflection_2d(c: float, s: float) -> Mat2x2:
    # Reflection about the line at angle phi/2: det = -1
    return np.array([[c, s], [s, -c]], dtype=np.float64)


# ---------- 2D ----------
def similarity_2d_raw(
        pts0: FloatArray,
        pts1: FloatArray,
        dof: DofConfig = _DEFAULT_DOF,
        *,
        eps_var: float = 1e-12,
) -> SimilarityTransform:
    """
    Find scale, rotation and translation of the similarity taking the planar
    points pts0 (N,2) to pts1 (N,2):

        [pts1; 1]  ~  [s*R  t] @ [pts0; 1]
                      [ 0   1]

    If dof.orientation_preserving, R is restricted to det(R) > 0. Otherwise the
    reflection is returned whenever it fits better than every proper rotation.

    Below minimal_point_count(dof) the result is a valid least-squares fit but
    not unique. Never fails for N >= 1.
    """
    p0, p1 = _check_pair(pts0, pts1, 2)

    # ---------- 1) + 2) centroids and centering ----------
    m0, m1 = _centroids(p0, p1, dof.allow_translation)
    X = p0 - m0
    Y = p1 - m1

    # ---------- 3) cross-covariance ----------
    # C[i, j] = sum_k Y[k, i] * X[k, j]
    C = Y.T @ X
    var0 = float(np.sum(X * X))

    # ---------- 4) rotation ----------
    if dof.allow_rotation:
        # For R(theta) = [[c,-s],[s,c]]:
        #   trace(R^T C) = c*(C00 + C11) + s*(C10 - C01)
        # maximized at theta = atan2(C10 - C01, C00 + C11).
        a = float(C[0, 0] + C[1, 1])
        b = float(C[1, 0] - C[0, 1])
        theta = math.atan2(b, a)
        R = _rotation_2d(math.cos(theta), math.sin(theta))
        trace_term = math.hypot(a, b)

        if not dof.orientation_preserving:
            # For the reflection family [[c,s],[s,-c]]:
            #   trace(R^T C) = c*(C00 - C11) + s*(C01 + C10)
            a_ref = float(C[0, 0] - C[1, 1])
            b_ref = float(C[0, 1] + C[1, 0])
            trace_ref = math.hypot(a_ref, b_ref)
            if trace_ref > trace_term:
                phi = math.atan2(b_ref, a_ref)
                R = _reflection_2d(math.cos(phi), math.sin(phi))
                trace_term = trace_ref
    else:
        R = np.eye(2, dtype=np.float64)
        trace_term = float(C[0, 0] + C[1, 1])

    # ---------- 5) scale ----------
    if dof.allow_scaling:
        scale = _scale_from_trace(trace_term, var0, float(np.sum(p0 * p0)), eps_var)
    else:
        scale = 1.0

    # ---------- 6) translation ----------
    if dof.allow_translation:
        t = m1 - scale * (R @ m0)
    else:
        t = np.zeros(2, dtype=np.float64)

    return SimilarityTransform(scale=float(scale), R=R, t=t.astype(np.float64))


# ---------- 3D ----------
def similarity_3d_raw(
        pts0: FloatArray,
        pts1: FloatArray,
        dof: DofConfig = _DEFAULT_DOF,
        *,
        eps_var: float = 1e-12,
) -> SimilarityTransform:
    """
    3D version of similarity_2d_raw: pts0 (N,3) -> pts1 (N,3).

    Rotation comes from the SVD of the 3x3 cross-covariance, C = U S V^T:

        R = U @ D @ V^T,   D = diag(1, 1, sign(det(U V^T)))

    The D correction (orientation_preserving) keeps det(R) = +1; without it
    D = I and R may be a reflection.

    The returned SimilarityTransform carries a (3,3) R and (3,) t.
    """
    p0, p1 = _check_pair(pts0, pts1, 3)

    m0, m1 = _centroids(p0, p1, dof.allow_translation)
    X = p0 - m0
    Y = p1 - m1

    C = Y.T @ X
    var0 = float(np.sum(X * X))

    if dof.allow_rotation:
        U, S, Vt = np.linalg.svd(C)
        d = np.ones(3, dtype=np.float64)
        if dof.orientation_preserving and np.linalg.det(U @ Vt) < 0.0:
            # Flip the axis with the smallest singular value.
            d[2] = -1.0
        R = (U * d) @ Vt
        trace_term = float(np.sum(S * d))
    else:
        R = np.eye(3, dtype=np.float64)
        trace_term = float(np.trace(C))

    if dof.allow_scaling:
        scale = _scale_from_trace(trace_term, var0, float(np.sum(p0 * p0)), eps_var)
    else:
        scale = 1.0

    if dof.allow_translation:
        t = m1 - scale * (R @ m0)
    else:
        t = np.zeros(3, dtype=np.float64)

    return SimilarityTransform(scale=float(scale), R=R, t=t.astype(np.float64))
