# Andy Zhao

"""
Shared typed primitives for the transform estimators.

Defines:
- Typed NumPy aliases for geometry
    - Planar points are (N,2) float arrays
    - Image points are (N,3) homogeneous float arrays
    - Transforms are 3x3 (or 2x2) row-major matrices
- Degrees-of-freedom configuration for the similarity solver
- Result containers (similarity parameters, focal-length homography)
- Generic model protocol for an external robust estimator (e.g. RANSAC)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TypeVar, Optional, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 everywhere: the minimal solvers are small but badly conditioned.

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Points in 3D (rays for the rotation solver).
Points3D: TypeAlias = FloatArray      # shape: (N, 3)

# Homogeneous image points [x, y, w]. w is not required to be 1.
PointsHomog: TypeAlias = FloatArray   # shape: (N, 3)

Vec2: TypeAlias = FloatArray          # shape: (2,)
Vec3: TypeAlias = FloatArray          # shape: (3,)

# 2x2 rotation (raw similarity API).
Mat2x2: TypeAlias = FloatArray        # shape: (2, 2)

# 3x3 homogeneous transform matrix.
# Affine and similarity are represented as 3x3 with last row [0,0,1].
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)

M = TypeVar("M")


# ---------- Configuration ----------
@dataclass(frozen=True)
class DofConfig:
    """
    Degrees of freedom the similarity solver is allowed to use.

    A disabled DOF is held at identity:
        allow_scaling=False      -> s = 1
        allow_rotation=False     -> R = I
        allow_translation=False  -> t = 0

    orientation_preserving restricts R to det(R) = +1 (no reflection).
    """
    allow_scaling: bool = True
    allow_rotation: bool = True
    allow_translation: bool = True
    orientation_preserving: bool = True


@dataclass(frozen=True)
class FocalSolverParams:
    """
    Tuning for the common-focal-length solver.

    - residual_tol:
      Largest accepted sum of squared distances between rotated source rays and
      target rays (all unit length). 1e-4 is roughly 0.3 degrees per ray, about
      5 px at f = 800.
    - root_imag_tol:
      Relative imaginary part below which a polynomial root counts as real.
    - min_focal_sq:
      Candidate f^2 (in normalized units) at or below this are discarded.
    """
    residual_tol: float = 1e-4
    root_imag_tol: float = 1e-6
    min_focal_sq: float = 1e-12

    def __post_init__(self) -> None:
        if self.residual_tol <= 0.0:
            raise ValueError("FocalSolverParams.residual_tol must be > 0")
        if self.root_imag_tol < 0.0:
            raise ValueError("FocalSolverParams.root_imag_tol must be >= 0")
        if self.min_focal_sq < 0.0:
            raise ValueError("FocalSolverParams.min_focal_sq must be >= 0")


# ---------- Result containers ----------
@dataclass(frozen=True)
class SimilarityTransform:
    """
    Raw similarity parameters: Xp ~ s * R @ X + t

    2D solves carry a (2,2) R and (2,) t; 3D solves a (3,3) R and (3,) t.
    """
    scale: float
    R: FloatArray
    t: FloatArray

    def as_mat3x3(self) -> Mat3x3:
        """
        Pack into the homogeneous form

            [ s*R00  s*R01  tx ]
            [ s*R10  s*R11  ty ]
            [   0      0     1 ]
        """
        if self.R.shape != (2, 2):
            raise ValueError(f"as_mat3x3 needs a 2D similarity, got R shape {self.R.shape}")
        # primitives imports the aliases above, so pull it in lazily.
        from .primitives import zero2

        H = np.empty((3, 3), dtype=np.float64)
        H[:2, :2] = self.scale * self.R
        H[:2, 2] = self.t
        zero2(H[2, :2])
        H[2, 2] = 1.0
        return H


@dataclass(frozen=True)
class FocalHomography:
    """
    Successful common-focal-length solve: H = diag(f,f,1) @ R @ diag(1/f,1/f,1)
    """
    H: Mat3x3           # homography, H[2,2] normalized to 1 when possible
    R: Mat3x3           # camera rotation
    focal: float        # shared focal length (same units as the input x,y)
    residual: float     # sum of squared unit-ray errors of the accepted fit


# ---------- Generic model typing ----------
class ModelFitter(Protocol[M]):
    """
    Interface an external robust estimator uses to drive a model.

    1) Fit a model from a minimal sample
    2) Refit a better model from all inliers (least squares)
    3) Score all correspondences with a per-point residual error
    """

    @property
    def min_samples(self) -> int:
        """Number of correspondences a minimal fit needs."""
        ...

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[M]:
        """
        Fit from the minimal number of correspondences required.
        Return None if the sample is degenerate.
        """
        ...

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[M]:
        """
        Refit the model using all inliers.
        Return None if the set is degenerate or the solve fails.
        """
        ...

    def residuals(self, model: M, pts0: Points2D, pts1: Points2D) -> FloatArray:
        """
        Return a vector of residual errors, one per correspondence.
        Shape: (N,). Smaller = better.
        """
        ...


# ---------- Helper Functions ----------
def as_homogeneous(pts: Points2D) -> PointsHomog:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, 1].
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def from_homogeneous(ph: PointsHomog) -> Points2D:
    """
    Convert (N,3) homogeneous points -> (N,2) by dividing through by w.

    Points at infinity (w == 0) come back as inf/nan; callers scoring residuals
    treat those as outliers.
    """
    if ph.ndim != 2 or ph.shape[1] != 3:
        raise ValueError(f"Expected points shape (N, 3) but got {ph.shape}")

    with np.errstate(divide="ignore", invalid="ignore"):
        out = ph[:, :2] / ph[:, 2:3]
    return out.astype(np.float64)


def as_point_array(pts, dim: int, name: str = "pts") -> FloatArray:
    """
    Coerce caller input (list of tuples, array, ...) to a float64 (N, dim) array.
    """
    arr = np.asarray(pts, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != dim:
        raise ValueError(f"Expected {name} shape (N, {dim}), got {arr.shape}")
    return arr


def is_valid_mat3x3(T: Mat3x3) -> bool:
    """
    Verify a 3x3 transform matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (3, 3) and bool(np.isfinite(T).all())


def is_rotation(R: FloatArray, atol: float = 1e-9) -> bool:
    """
    True if R is square, orthogonal (R^T R = I) and has det(R) = +1.
    """
    if R.ndim != 2 or R.shape[0] != R.shape[1]:
        return False
    eye = np.eye(R.shape[0])
    return bool(np.allclose(R.T @ R, eye, atol=atol) and np.linalg.det(R) > 0.0)
