"""Tools for representing and manipulating bias-correction results."""

from abc import ABCMeta, abstractmethod
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from .stats import critical_value, two_sided_p

_PREDICTOR_FUNCS = {
    "none": lambda se: np.zeros_like(se),
    "se": lambda se: se,
    "variance": lambda se: se**2,
}


@dataclass(frozen=True)
class EstimateRecord:
    """One method's estimate for one study.

    ``intercept``, ``slope`` and ``predictor`` are set only by methods that fit
    a regression on the standard errors; together they define the corrected
    curve ``intercept + slope * f(se)``, with ``f`` given by ``predictor``.
    """

    study: str
    method: str
    point_estimate: float
    standard_error: float = None
    intercept: float = None
    slope: float = None
    predictor: str = None

    def bias(self, truth):
        """Deviation of the point estimate from a benchmark value."""
        return self.point_estimate - truth


@dataclass(frozen=True)
class EstimateFailure:
    """A (study, method) pair for which no estimate could be produced.

    ``degraded_estimate`` holds a fallback value (e.g., a p-curve grid-search
    minimizer) when one was available. It is never used for scoring.
    """

    study: str
    method: str
    error_type: str
    reason: str
    degraded_estimate: float = None

    @property
    def degraded(self):
        return self.degraded_estimate is not None


@dataclass(frozen=True)
class PerformanceSummary:
    """Bias, mean absolute deviation and RMSE of one method across a batch.

    Studies for which the method failed are listed in ``excluded`` and do not
    contribute to the statistics; ``degraded`` is the subset of excluded
    studies for which only a fallback estimate exists.
    """

    method: str
    mean_bias: float
    mean_absolute_deviation: float
    root_mean_square_error: float
    n_studies: int
    excluded: tuple = ()
    degraded: tuple = ()


class _BaseResults(metaclass=ABCMeta):
    """Shared behavior of estimator results."""

    def __init__(self, estimator, dataset, params):
        self.estimator = estimator
        self.dataset = dataset
        self.params = params

    @property
    @abstractmethod
    def estimate(self):
        """Bias-corrected point estimate."""

    @property
    def se(self):
        """Standard error of the point estimate, or None if unavailable."""
        return None

    def _curve(self):
        return {}

    def to_record(self, study=None, method=None):
        """Freeze the point estimate into an :obj:`EstimateRecord`."""
        if study is None and self.dataset is not None:
            study = self.dataset.name
        if method is None:
            method = self.estimator.__class__.__name__
        se = self.se
        return EstimateRecord(
            study=study,
            method=method,
            point_estimate=float(self.estimate),
            standard_error=None if se is None else float(se),
            **self._curve(),
        )


class RegressionResults(_BaseResults):
    """Container for a weighted regression of effect size on standard errors.

    Parameters
    ----------
    estimator : :obj:`~pybias.estimators.WeightedLeastSquares`
        The fitted estimator.
    dataset : None or :obj:`~pybias.core.StudyDataset`
        The dataset the estimator was fitted to, if any.
    params : :obj:`dict`
        Fitted parameters, with keys 'intercept', 'intercept_se', 'slope',
        'slope_se' and 'k'. Slope entries are None for intercept-only fits.
    predictor : {"none", "se", "variance"}
        The function of the standard error used as the predictor.
    """

    def __init__(self, estimator, dataset, params, predictor):
        super().__init__(estimator, dataset, params)
        self.predictor = predictor

    @property
    def intercept(self):
        return self.params["intercept"]

    @property
    def intercept_se(self):
        return self.params["intercept_se"]

    @property
    def slope(self):
        return self.params["slope"]

    @property
    def slope_se(self):
        return self.params["slope_se"]

    @property
    def estimate(self):
        return self.intercept

    @property
    def se(self):
        return self.intercept_se

    def predict(self, se):
        """Evaluate the fitted curve at the given standard errors.

        Parameters
        ----------
        se : array_like
            Standard errors at which to evaluate ``intercept + slope * f(se)``.

        Returns
        -------
        :obj:`numpy.ndarray`
        """
        se = np.asarray(se, dtype=float)
        slope = 0.0 if self.slope is None else self.slope
        return self.intercept + slope * _PREDICTOR_FUNCS[self.predictor](se)

    def get_stats(self, alpha=0.05):
        """Get z-scores, two-sided p-values and confidence intervals.

        Parameters
        ----------
        alpha : :obj:`float`, optional
            CIs will have 1 - alpha coverage. Default = 0.05.

        Returns
        -------
        :obj:`dict`
            Keys are 'name', 'est', 'se', 'z', 'p', 'ci_l' and 'ci_u'; values are
            arrays with one entry per fitted parameter.
        """
        names = ["intercept"]
        est = [self.intercept]
        se = [self.intercept_se]
        if self.slope is not None:
            names.append(self.predictor)
            est.append(self.slope)
            se.append(self.slope_se)
        est, se = np.array(est), np.array(se)

        with np.errstate(divide="ignore", invalid="ignore"):
            z = est / se
        z_se = critical_value(alpha)
        return {
            "name": names,
            "est": est,
            "se": se,
            "z": z,
            "p": two_sided_p(z),
            "ci_l": est - z_se * se,
            "ci_u": est + z_se * se,
        }

    def to_df(self, alpha=0.05):
        """Return a pandas DataFrame summarizing the fitted parameters.

        Parameters
        ----------
        alpha : :obj:`float`, optional
            CIs will have 1 - alpha coverage. Default = 0.05.

        Returns
        -------
        :obj:`pandas.DataFrame`
        """
        stats = self.get_stats(alpha)
        df = pd.DataFrame(stats)
        ci_l = "ci_{:.6g}".format(alpha / 2)
        ci_u = "ci_{:.6g}".format(1 - alpha / 2)
        df.columns = ["name", "estimate", "se", "z-score", "p-val", ci_l, ci_u]
        return df

    def _curve(self):
        return {
            "intercept": float(self.intercept),
            "slope": 0.0 if self.slope is None else float(self.slope),
            "predictor": self.predictor,
        }


class DecisionResults(_BaseResults):
    """Results of a rule that picks among WLS, PET and PEESE regressions.

    Parameters
    ----------
    estimator : :obj:`~pybias.estimators.BaseEstimator`
        The fitted estimator.
    dataset : None or :obj:`~pybias.core.StudyDataset`
        The dataset the estimator was fitted to, if any.
    params : :obj:`dict`
        Must contain 'estimate', 'se' and 'stage', plus any test statistics.
    components : :obj:`dict`
        Mapping from component name ('wls', 'fat_pet', 'peese') to the
        :obj:`RegressionResults` the decision was based on.
    trace : :obj:`tuple`, optional
        Sequence of decision states visited.
    """

    # Which component regression defines the curve for each stage.
    _STAGE_COMPONENTS = {
        "wls": "wls",
        "wls_negative_slope": "wls",
        "pet": "fat_pet",
        "peese": "peese",
    }

    def __init__(self, estimator, dataset, params, components, trace=()):
        super().__init__(estimator, dataset, params)
        self.components = components
        self.trace = tuple(trace)

    @property
    def estimate(self):
        return self.params["estimate"]

    @property
    def se(self):
        return self.params["se"]

    @property
    def stage(self):
        """Which procedure produced the final estimate."""
        return self.params["stage"]

    def __getitem__(self, key):
        return self.components[key]

    def to_df(self, alpha=0.05):
        """Return the component regressions as a single pandas DataFrame."""
        dfs = []
        for name, component in self.components.items():
            df = component.to_df(alpha)
            df.insert(0, "model", name)
            dfs.append(df)
        return pd.concat(dfs, axis=0, ignore_index=True)

    def _curve(self):
        component = self.components[self._STAGE_COMPONENTS[self.stage]]
        curve = component._curve()
        if self.stage == "pet":
            # The PET-stage estimate is zero, not the fitted intercept.
            curve["intercept"] = 0.0
        return curve


class PCurveResults(_BaseResults):
    """Results of the p-curve estimator.

    ``params`` holds 'estimate' (the refined minimizer), 'grid_estimate',
    'ks_distance', 'n_significant', 'n_iter', 'grid' and 'grid_ks'.
    """

    @property
    def estimate(self):
        return self.params["estimate"]

    @property
    def grid_estimate(self):
        return self.params["grid_estimate"]

    @property
    def ks_distance(self):
        return self.params["ks_distance"]

    def to_df(self):
        """Return the KS distance at each grid point as a pandas DataFrame."""
        return pd.DataFrame({"theta": self.params["grid"], "ks_distance": self.params["grid_ks"]})


class SelectionModelResults(_BaseResults):
    """Results of the selection-model estimator.

    ``params`` holds 'p1', 'theta', 'tau', 'nll', 'n_iter' and 'message'.
    """

    @property
    def estimate(self):
        return self.params["theta"]

    @property
    def p1(self):
        return self.params["p1"]

    @property
    def theta(self):
        return self.params["theta"]

    @property
    def tau(self):
        return self.params["tau"]

    @property
    def nll(self):
        return self.params["nll"]

    def to_df(self):
        """Return the parameter estimates as a pandas DataFrame."""
        return pd.DataFrame(
            {"name": ["p1", "theta", "tau"], "estimate": [self.p1, self.theta, self.tau]}
        )


class EvaluationResults:
    """Output of a harness run.

    Parameters
    ----------
    records : :obj:`list` of :obj:`EstimateRecord`
    failures : :obj:`list` of :obj:`EstimateFailure`
    summaries : :obj:`dict`
        Mapping from method name to :obj:`PerformanceSummary`.
    ground_truth : :obj:`dict`
        Mapping from study name to :obj:`~pybias.core.GroundTruthRecord`.
    """

    def __init__(self, records, failures, summaries, ground_truth):
        self.records = list(records)
        self.failures = list(failures)
        self.summaries = dict(summaries)
        self.ground_truth = dict(ground_truth)

    def __getitem__(self, method):
        return self.summaries[method]

    def get_summary(self, method):
        """Return the :obj:`PerformanceSummary` of one method."""
        if method not in self.summaries:
            raise KeyError("No summary for method {!r}.".format(method))
        return self.summaries[method]

    def get_estimate(self, study, method):
        """Return the :obj:`EstimateRecord` for one (study, method) pair, or None."""
        for record in self.records:
            if record.study == study and record.method == method:
                return record
        return None

    def records_df(self):
        """All estimates, with their benchmark and bias, as a pandas DataFrame."""
        columns = [
            "study", "method", "point_estimate", "standard_error", "intercept", "slope",
            "predictor", "replication_effect", "bias",
        ]
        rows = []
        for record in self.records:
            row = asdict(record)
            truth = self.ground_truth[record.study].replication_effect
            row["replication_effect"] = truth
            row["bias"] = record.bias(truth)
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)

    def failures_df(self):
        """All failed (study, method) pairs as a pandas DataFrame."""
        columns = ["study", "method", "error_type", "reason", "degraded_estimate"]
        return pd.DataFrame([asdict(f) for f in self.failures], columns=columns)

    def summary_df(self):
        """Per-method performance as a pandas DataFrame indexed by method."""
        rows = []
        for summary in self.summaries.values():
            row = asdict(summary)
            row["n_excluded"] = len(summary.excluded)
            rows.append(row)
        columns = [
            "method", "mean_bias", "mean_absolute_deviation", "root_mean_square_error",
            "n_studies", "n_excluded", "excluded", "degraded",
        ]
        return pd.DataFrame(rows, columns=columns).set_index("method")
