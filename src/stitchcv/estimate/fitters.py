# Andy Zhao
"""
Adapters: make the estimators conform to the ModelFitter Protocol.

An external robust estimator (RANSAC, LMedS, ...) only needs:
    fitter.min_samples
    fitter.fit_minimal(pts0, pts1)
    fitter.fit_least_squares(pts0, pts1)
    fitter.residuals(model, pts0, pts1)

Every model is returned as a 3x3 homogeneous matrix (Mat3x3).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .types import (
    Points2D, Mat3x3, FloatArray, ModelFitter, DofConfig, as_homogeneous, as_point_array, is_valid_mat3x3)
from .affine import fit_affine_minimal, fit_affine_least_squares, residuals_L2
from .projective import fit_homography_4points, fit_homography_least_squares, residuals_homography_L2
from .similarity import similarity_2d_raw, minimal_point_count


@dataclass(frozen=True)
class AffineFitter(ModelFitter[Mat3x3]):
    eps_area: float = 1e-6

    @property
    def min_samples(self) -> int:
        return 3

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_affine_minimal(pts0, pts1, eps_area=self.eps_area)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_affine_least_squares(pts0, pts1)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return residuals_L2(model, pts0, pts1)


@dataclass(frozen=True)
class HomographyFitter(ModelFitter[Mat3x3]):
    """
    Projective model: 4-point DLT for hypotheses, normalized DLT for the refit.
    """
    eps_rank: float = 1e-10

    @property
    def min_samples(self) -> int:
        return 4

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        pts0 = as_point_array(pts0, 2, "pts0")
        pts1 = as_point_array(pts1, 2, "pts1")
        if pts0.shape != (4, 2) or pts1.shape != (4, 2):
            raise ValueError(f"HomographyFitter.fit_minimal expects (4,2) inputs, got {pts0.shape} and {pts1.shape}")
        return fit_homography_4points(as_homogeneous(pts0), as_homogeneous(pts1), eps_rank=self.eps_rank)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_homography_least_squares(pts0, pts1, eps_rank=self.eps_rank)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return residuals_homography_L2(model, pts0, pts1)


@dataclass(frozen=True)
class SimilarityFitter(ModelFitter[Mat3x3]):
    """
    Similarity model with selectable degrees of freedom.

    DofConfig(allow_scaling=False, allow_rotation=False) leaves translation as
    the only free parameter: the model is x' = x + t, fitted from a single
    correspondence (t is the mean displacement when refitting).
    """
    dof: DofConfig = DofConfig()

    @property
    def min_samples(self) -> int:
        # A minimal fit needs at least one point even for the identity model.
        return max(1, minimal_point_count(self.dof))

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return self._fit(pts0, pts1)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return self._fit(pts0, pts1)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return residuals_L2(model, pts0, pts1)

    def _fit(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        if len(pts0) < self.min_samples:
            return None
        T = similarity_2d_raw(pts0, pts1, self.dof).as_mat3x3()
        if not is_valid_mat3x3(T):
            return None
        return T
