"""P-curve estimation of the true effect from significant results."""

import logging
from warnings import warn

import numpy as np
from scipy.optimize import minimize_scalar

from ..errors import ConvergenceError, InsufficientSignificantDataError
from ..results import PCurveResults
from ..stats import critical_value, ks_uniform_distance, pp_values
from ..utils import _requires_observations, _time_limited
from .estimators import BaseEstimator, _prepare_inputs

logger = logging.getLogger(__name__)


class PCurve(BaseEstimator):
    """P-curve estimator of the true effect size.

    Finds the effect size under which the "pp-values" of the significant,
    positive observations are closest to uniform, as measured by the
    Kolmogorov-Smirnov distance :footcite:p:`simonsohn2014p`. The search runs
    over an evenly spaced grid and is then refined by a bounded scalar
    minimization in a window around the best grid point.

    Parameters
    ----------
    alpha : :obj:`float`, optional
        Two-sided significance level defining which observations were
        selected for publication. Default = 0.05.
    bounds : :obj:`tuple` of :obj:`float`, optional
        Search interval (lower, upper) for the true effect. Default = (0, 1).
    grid_points : :obj:`int`, optional
        Number of grid points in the initial search. Default = 100.
    search_window : :obj:`float`, optional
        Half-width of the refinement window around the best grid point. The
        window is clipped to ``bounds``. Default = 0.1.
    maxiter : :obj:`int`, optional
        Maximum number of function evaluations in the refinement. Default = 500.
    xatol : :obj:`float`, optional
        Absolute tolerance of the refinement. Default = 1e-5.
    timeout : None or :obj:`float`, optional
        Wall-clock budget in seconds for one fit. Default = None.

    Notes
    -----
    When several grid points share the minimum distance, the lowest one seeds
    the refinement. If the refinement exhausts its budget, a
    :obj:`~pybias.errors.ConvergenceError` is raised whose
    ``fallback_estimate`` is the grid minimizer.

    References
    ----------
    .. footbibliography::
    """

    def __init__(
        self,
        alpha=0.05,
        bounds=(0.0, 1.0),
        grid_points=100,
        search_window=0.1,
        maxiter=500,
        xatol=1e-5,
        timeout=None,
    ):
        lo, hi = bounds
        if not lo < hi:
            raise ValueError("bounds must be an increasing pair; got {}.".format(bounds))
        if grid_points < 2:
            raise ValueError("grid_points must be at least 2.")
        if not 0 < alpha < 1:
            raise ValueError("alpha must lie strictly between 0 and 1; got {}.".format(alpha))
        if not search_window > 0:
            raise ValueError("search_window must be positive; got {}.".format(search_window))
        self.alpha = alpha
        self.bounds = (float(lo), float(hi))
        self.grid_points = grid_points
        self.search_window = search_window
        self.maxiter = maxiter
        self.xatol = xatol
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            alpha=config.pcurve_alpha,
            bounds=config.pcurve_bounds,
            grid_points=config.pcurve_grid_points,
            search_window=config.pcurve_search_window,
            maxiter=config.pcurve_maxiter,
            xatol=config.pcurve_xatol,
            timeout=config.timeout,
        )

    def significant(self, y, se):
        """Boolean mask of positive observations significant at ``alpha``."""
        z_crit = critical_value(self.alpha)
        return (y > 0) & (np.abs(y / se) >= z_crit)

    @_requires_observations(1)
    def fit(self, y, se):
        """Estimate the true effect from the significant observations."""
        self.dataset_ = None
        y, se = _prepare_inputs(y, se)

        keep = self.significant(y, se)
        n_negative = int(((y <= 0) & (np.abs(y / se) >= critical_value(self.alpha))).sum())
        if n_negative:
            warn(
                "{} significant observation(s) with a non-positive effect were excluded "
                "from the p-curve.".format(n_negative)
            )
        if not keep.any():
            raise InsufficientSignificantDataError(
                "None of the {} observations is positive and significant at alpha={}.".format(
                    y.size, self.alpha
                )
            )
        y_sig, se_sig = y[keep], se[keep]

        def _ks(theta):
            return ks_uniform_distance(pp_values(theta, y_sig, se_sig, self.alpha))

        objective = _time_limited(_ks, self.timeout, "p-curve search")

        lo, hi = self.bounds
        grid = np.linspace(lo, hi, self.grid_points)
        grid_ks = np.array([objective(theta) for theta in grid])
        # argmin returns the first (lowest-theta) minimizer on ties.
        i_best = int(np.argmin(grid_ks))
        grid_estimate = float(grid[i_best])

        window = (max(lo, grid_estimate - self.search_window),
                  min(hi, grid_estimate + self.search_window))
        try:
            res = minimize_scalar(
                objective,
                bounds=window,
                method="bounded",
                options={"maxiter": self.maxiter, "xatol": self.xatol},
            )
        except ConvergenceError as exc:
            raise ConvergenceError(str(exc), fallback_estimate=grid_estimate) from exc

        if not res.success:
            raise ConvergenceError(
                "P-curve refinement did not converge within {} iterations: {}".format(
                    self.maxiter, res.message
                ),
                fallback_estimate=grid_estimate,
                n_iter=int(res.nfev),
            )

        estimate, ks = float(res.x), float(res.fun)
        # The window contains the grid minimizer, so never return anything worse.
        if ks > grid_ks[i_best]:
            estimate, ks = grid_estimate, float(grid_ks[i_best])
        logger.debug("p-curve: grid minimizer %.4f refined to %.4f", grid_estimate, estimate)

        self.params_ = {
            "estimate": estimate,
            "grid_estimate": grid_estimate,
            "ks_distance": ks,
            "n_significant": int(keep.sum()),
            "n_iter": int(res.nfev),
            "grid": grid,
            "grid_ks": grid_ks,
        }
        return self

    def _summary(self):
        return PCurveResults(self, self.dataset_, self.params_)
