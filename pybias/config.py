"""Immutable estimator configuration."""

from dataclasses import asdict, dataclass, field, fields, replace

import numpy as np

_SELMODEL_PARAMS = ("p1", "theta", "tau")


def _default_selmodel_bounds():
    return ((0.0, 1.0), (-np.inf, np.inf), (0.0, 0.0))


@dataclass(frozen=True)
class EstimatorConfig:
    """Named options shared by the bias-correction estimators.

    A single instance is passed explicitly to every estimator built by the
    evaluation harness, so batches with different settings can run side by
    side.

    Parameters
    ----------
    fat_alpha : :obj:`float`, optional
        Significance level of the funnel asymmetry test. Default = 0.10.
    fat_one_sided : :obj:`bool`, optional
        Whether the funnel asymmetry test is one-sided. Default = True.
    pet_alpha : :obj:`float`, optional
        Significance level of the precision-effect test. Default = 0.05.
    pet_one_sided : :obj:`bool`, optional
        Whether the precision-effect test is one-sided. Default = False.
    fallback_on_negative_slope : :obj:`bool`, optional
        If True, FAT-PET-PEESE returns the WLS estimate whenever the slope of
        effect on standard error is negative. Default = True.
    pcurve_alpha : :obj:`float`, optional
        Two-sided significance level used to select p-curve observations.
        Default = 0.05.
    pcurve_grid_points : :obj:`int`, optional
        Number of grid points in the p-curve search. Default = 100.
    pcurve_search_window : :obj:`float`, optional
        Half-width of the local refinement window around the best grid point.
        Default = 0.1.
    pcurve_bounds : :obj:`tuple` of :obj:`float`, optional
        Search interval for the p-curve estimate. Default = (0, 1).
    pcurve_maxiter : :obj:`int`, optional
        Iteration budget of the p-curve refinement. Default = 500.
    pcurve_xatol : :obj:`float`, optional
        Absolute tolerance of the p-curve refinement. Default = 1e-5.
    selmodel_bounds : :obj:`tuple` of (lower, upper) pairs, optional
        Box bounds on (p1, theta, tau). The default fixes tau at 0.
    selmodel_start : :obj:`tuple` of :obj:`float`, optional
        Starting values of (p1, theta, tau). Default = (0.5, 1, 0).
    selmodel_tol : :obj:`float`, optional
        Optimizer tolerance. Default = 1e-6.
    selmodel_maxiter : :obj:`int`, optional
        Iteration budget of the selection-model optimizer. Default = 1000.
    timeout : None or :obj:`float`, optional
        Wall-clock budget in seconds for each optimization-based estimate.
        Default = None (no limit).
    n_jobs : :obj:`int`, optional
        Number of parallel workers used by the harness. Default = 1.
    """

    fat_alpha: float = 0.10
    fat_one_sided: bool = True
    pet_alpha: float = 0.05
    pet_one_sided: bool = False
    fallback_on_negative_slope: bool = True
    pcurve_alpha: float = 0.05
    pcurve_grid_points: int = 100
    pcurve_search_window: float = 0.1
    pcurve_bounds: tuple = (0.0, 1.0)
    pcurve_maxiter: int = 500
    pcurve_xatol: float = 1e-5
    selmodel_bounds: tuple = field(default_factory=_default_selmodel_bounds)
    selmodel_start: tuple = (0.5, 1.0, 0.0)
    selmodel_tol: float = 1e-6
    selmodel_maxiter: int = 1000
    timeout: float = None
    n_jobs: int = 1

    def __post_init__(self):
        for name in ("fat_alpha", "pet_alpha", "pcurve_alpha"):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise ValueError("{} must lie strictly between 0 and 1; got {}.".format(
                    name, value))
        if self.pcurve_grid_points < 2:
            raise ValueError("pcurve_grid_points must be at least 2.")
        if self.pcurve_search_window <= 0:
            raise ValueError("pcurve_search_window must be positive.")
        lo, hi = self.pcurve_bounds
        if not lo < hi:
            raise ValueError("pcurve_bounds must be an increasing pair; got {}.".format(
                self.pcurve_bounds))

        bounds = tuple(tuple(float(b) for b in pair) for pair in self.selmodel_bounds)
        if len(bounds) != 3 or any(len(pair) != 2 for pair in bounds):
            raise ValueError("selmodel_bounds must hold three (lower, upper) pairs.")
        if any(lb > ub for lb, ub in bounds):
            raise ValueError("Each selmodel bound must satisfy lower <= upper.")
        if len(self.selmodel_start) != 3:
            raise ValueError("selmodel_start must hold three values (p1, theta, tau).")
        # Frozen dataclass: normalize through object.__setattr__.
        object.__setattr__(self, "selmodel_bounds", bounds)
        object.__setattr__(self, "selmodel_start", tuple(float(s) for s in self.selmodel_start))
        object.__setattr__(self, "pcurve_bounds", (float(lo), float(hi)))

    @classmethod
    def from_dict(cls, options):
        """Build a configuration from a (possibly nested) mapping of options.

        ``selmodel_bounds`` may be given as a mapping with keys 'p1', 'theta'
        and 'tau'; omitted parameters keep their default bounds.
        """
        options = dict(options)
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ValueError("Unknown configuration options: {}".format(sorted(unknown)))

        bounds = options.get("selmodel_bounds")
        if isinstance(bounds, dict):
            bad = set(bounds) - set(_SELMODEL_PARAMS)
            if bad:
                raise ValueError("Unknown selection-model parameters: {}".format(sorted(bad)))
            defaults = dict(zip(_SELMODEL_PARAMS, _default_selmodel_bounds()))
            defaults.update(bounds)
            options["selmodel_bounds"] = tuple(defaults[p] for p in _SELMODEL_PARAMS)

        for name in ("selmodel_start", "pcurve_bounds"):
            if name in options:
                options[name] = tuple(options[name])

        return cls(**options)

    def to_dict(self):
        """Return the configuration as a plain dictionary."""
        options = asdict(self)
        options["selmodel_bounds"] = dict(zip(_SELMODEL_PARAMS, self.selmodel_bounds))
        return options

    def replace(self, **changes):
        """Return a copy of this configuration with some options changed."""
        return replace(self, **changes)
