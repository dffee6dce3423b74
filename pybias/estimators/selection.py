"""Step-function selection model for publication bias."""

import logging

import numpy as np
import scipy.stats as ss
from scipy.optimize import Bounds, minimize

from ..errors import ConvergenceError
from ..results import SelectionModelResults
from ..stats import critical_value
from ..utils import _requires_observations, _time_limited
from .estimators import BaseEstimator, _prepare_inputs

logger = logging.getLogger(__name__)

_TINY = np.finfo(float).tiny


class SelectionModel(BaseEstimator):
    """Maximum-likelihood selection model with a single significance step.

    Observations are assumed to be drawn from ``N(theta, se^2 + tau^2)`` and
    then published with probability proportional to 1 if significant at the
    two-sided 0.05 level, and ``p1`` otherwise
    :footcite:p:`andrews2019identification`. The parameters (p1, theta, tau)
    are estimated by box-constrained minimization of the negative
    log-likelihood.

    Parameters
    ----------
    bounds : sequence of three (lower, upper) pairs, optional
        Bounds on (p1, theta, tau). The default, ``((0, 1), (-inf, inf),
        (0, 0))``, fixes tau at 0 (a fixed-effect model); use ``(0, inf)`` for
        tau to estimate heterogeneity.
    start : sequence of three floats, optional
        Starting values of (p1, theta, tau), clipped to the bounds.
        Default = (0.5, 1, 0).
    tol : :obj:`float`, optional
        Optimizer tolerance. Default = 1e-6.
    maxiter : :obj:`int`, optional
        Maximum number of optimizer iterations. Default = 1000.
    timeout : None or :obj:`float`, optional
        Wall-clock budget in seconds for one fit. Default = None.

    Notes
    -----
    The optimization is carried out with SciPy's L-BFGS-B minimizer
    (scipy.optimize.minimize). Parameters whose lower and upper bounds
    coincide are held fixed.

    References
    ----------
    .. footbibliography::
    """

    # Significance threshold of the publication step function.
    _alpha = 0.05

    def __init__(
        self,
        bounds=((0.0, 1.0), (-np.inf, np.inf), (0.0, 0.0)),
        start=(0.5, 1.0, 0.0),
        tol=1e-6,
        maxiter=1000,
        timeout=None,
    ):
        bounds = tuple(tuple(float(b) for b in pair) for pair in bounds)
        if len(bounds) != 3 or any(len(pair) != 2 for pair in bounds):
            raise ValueError("bounds must hold three (lower, upper) pairs for (p1, theta, tau).")
        if any(lb > ub for lb, ub in bounds):
            raise ValueError("Each bound must satisfy lower <= upper; got {}.".format(bounds))
        (p1_lb, p1_ub), _, (tau_lb, _) = bounds
        if p1_lb < 0 or p1_ub > 1:
            raise ValueError("Bounds on p1 must lie within [0, 1].")
        if tau_lb < 0:
            raise ValueError("The lower bound on tau must be >= 0.")
        if len(start) != 3:
            raise ValueError("start must hold three values (p1, theta, tau).")

        self.bounds = bounds
        self.start = tuple(float(s) for s in start)
        self.tol = tol
        self.maxiter = maxiter
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            bounds=config.selmodel_bounds,
            start=config.selmodel_start,
            tol=config.selmodel_tol,
            maxiter=config.selmodel_maxiter,
            timeout=config.timeout,
        )

    def nll(self, params, y, se):
        """Negative log-likelihood of (p1, theta, tau) given the observations."""
        p1, theta, tau = params
        z_crit = critical_value(self._alpha)
        sigma = np.sqrt(se**2 + tau**2)

        nonsig = np.abs(y / se) < z_crit
        log_weight = np.where(nonsig, np.log(max(p1, _TINY)), 0.0)
        log_density = ss.norm.logpdf(y, loc=theta, scale=sigma)

        # Probability that a draw is published, given (theta, tau).
        p_nonsig = (ss.norm.cdf((z_crit * se - theta) / sigma)
                    - ss.norm.cdf((-z_crit * se - theta) / sigma))
        log_published = np.log(np.maximum(p1 * p_nonsig + (1 - p_nonsig), _TINY))

        return -(log_weight + log_density - log_published).sum()

    @_requires_observations(3)
    def fit(self, y, se):
        """Estimate (p1, theta, tau) by maximum likelihood."""
        self.dataset_ = None
        y, se = _prepare_inputs(y, se)

        lb, ub = (np.array(b) for b in zip(*self.bounds))
        x0 = np.clip(self.start, lb, ub)
        objective = _time_limited(self.nll, self.timeout, "selection model")

        res = minimize(
            objective,
            x0,
            (y, se),
            method="L-BFGS-B",
            bounds=Bounds(lb, ub),
            tol=self.tol,
            options={"maxiter": self.maxiter},
        )
        if not res.success:
            raise ConvergenceError(
                "Selection model did not converge: {}".format(res.message),
                n_iter=int(res.get("nit", 0)),
            )

        p1, theta, tau = (float(x) for x in res.x)
        logger.debug("Selection model converged: p1=%.4f theta=%.4f tau=%.4f", p1, theta, tau)
        self.params_ = {
            "p1": p1,
            "theta": theta,
            "tau": tau,
            "nll": float(res.fun),
            "n_iter": int(res.get("nit", 0)),
            "message": str(res.message),
        }
        return self

    def _summary(self):
        return SelectionModelResults(self, self.dataset_, self.params_)
