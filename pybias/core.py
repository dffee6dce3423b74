"""Core classes and functions."""

import logging
from collections import namedtuple
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import GroundTruthJoinError, ZeroVarianceError
from .estimators import ESTIMATORS
from .stats import inverse_variance_weights
from .utils import _check_inputs_shape

logger = logging.getLogger(__name__)


class Observation(namedtuple("Observation", ["effect_size", "std_error"])):
    """A single (effect size, standard error) pair."""

    __slots__ = ()

    @property
    def variance(self):
        """Sampling variance of the effect size."""
        return self.std_error**2


class StudyDataset:
    """Immutable container for the observations belonging to one study.

    Parameters
    ----------
    y : None or :obj:`numpy.ndarray` of shape (K,) or :obj:`str`, optional
        1d array of effect sizes with length K, or the name of the column in data
        containing the y values.
        Default = None.
    se : None or :obj:`numpy.ndarray` of shape (K,) or :obj:`str`, optional
        1d array of standard errors with length K, or the name of the column in
        data containing the se values.
        Default = None.
    name : None or :obj:`str`, optional
        Name of the study (i.e., of the meta-analysis the observations belong
        to). Required by the evaluation harness. Default = None.
    data : None or :obj:`pandas.DataFrame`, optional
        A pandas DataFrame containing y and se values.
        By default, columns are expected to have the same names as arguments
        (e.g., the y values will be expected in the 'y' column).
        Default = None.
    strict : :obj:`bool`, optional
        If True, a standard error that is zero, negative or NaN raises
        :obj:`~pybias.errors.ZeroVarianceError`. If False, the dataset is
        built but marked invalid: its weights are unavailable and every
        estimator fitted to it fails with ZeroVarianceError. Default = True.

    Notes
    -----
    The arrays exposed by a StudyDataset are read-only. Derived quantities
    (variances and normalized inverse-variance weights) are computed once at
    construction; use :meth:`subset` to obtain a dataset with a different set
    of observations.
    """

    def __init__(self, y=None, se=None, name=None, data=None, strict=True):
        if y is None and data is None:
            raise ValueError(
                "If no y values are provided, a pandas DataFrame "
                "containing a 'y' column must be passed to the "
                "data argument."
            )

        # Extract columns from DataFrame
        if data is not None:
            y = data.loc[:, y or "y"].values
            se = data.loc[:, se or "se"].values

        if se is None:
            raise ValueError("Standard errors (se) are required.")

        y = np.array(y, dtype=float).ravel()
        se = np.array(se, dtype=float).ravel()
        _check_inputs_shape(y, se, "y", "se")

        if y.size == 0:
            raise ValueError("A StudyDataset needs at least one observation.")
        if not np.all(np.isfinite(y)):
            raise ValueError("Effect sizes must be finite.")
        self._invalid = None
        # Also rejects NaN standard errors.
        if not np.all(se > 0):
            self._invalid = (
                "Standard errors must be strictly positive; study {!r} has {} invalid "
                "value(s).".format(name, int((~(se > 0)).sum()))
            )
            if strict:
                raise ZeroVarianceError(self._invalid)
            weights = np.full(se.shape, np.nan)
        else:
            weights = inverse_variance_weights(se)
        for arr in (y, se, weights):
            arr.setflags(write=False)

        self._y = y
        self._se = se
        self._weights = weights
        self.name = name

    @classmethod
    def from_observations(cls, observations, name=None):
        """Build a dataset from a sequence of (effect size, standard error) pairs."""
        observations = [Observation(*obs) for obs in observations]
        if not observations:
            raise ValueError("A StudyDataset needs at least one observation.")
        y, se = zip(*observations)
        return cls(y, se, name=name)

    @property
    def y(self):
        """Effect sizes."""
        return self._y

    @property
    def se(self):
        """Standard errors."""
        return self._se

    @property
    def v(self):
        """Sampling variances."""
        return self._se**2

    @property
    def weights(self):
        """Normalized inverse-variance weights; positive and summing to 1."""
        if self._invalid is not None:
            raise ZeroVarianceError(self._invalid)
        return self._weights

    @property
    def is_valid(self):
        """Whether every standard error is strictly positive."""
        return self._invalid is None

    @property
    def k(self):
        """Number of observations."""
        return self._y.size

    @property
    def observations(self):
        """The observations as a list of :obj:`Observation` tuples."""
        return [Observation(float(d), float(s)) for d, s in zip(self._y, self._se)]

    def __len__(self):
        return self.k

    def __repr__(self):
        return "{}(name={!r}, k={})".format(self.__class__.__name__, self.name, self.k)

    def subset(self, mask):
        """Return a new dataset holding only the selected observations.

        Parameters
        ----------
        mask : array_like
            Boolean mask or integer indices into the observations.

        Returns
        -------
        :obj:`~pybias.core.StudyDataset`
            A new dataset, with weights recomputed over the retained observations.
        """
        return self.__class__(self._y[mask], self._se[mask], name=self.name, strict=False)

    def to_df(self):
        """Convert the dataset to a pandas DataFrame.

        Returns
        -------
        :obj:`pandas.DataFrame`
            A DataFrame containing the y, se, v, and weight values.
        """
        df = pd.DataFrame({"y": self._y, "se": self._se, "v": self.v, "weight": self._weights})
        if self.name is not None:
            df.insert(0, "study", self.name)
        return df


@dataclass(frozen=True)
class GroundTruthRecord:
    """Benchmark effect sizes for one study.

    ``replication_effect`` is the value bias-corrected estimates are scored
    against.
    """

    study_name: str
    original_effect: float
    meta_analytic_effect: float
    replication_effect: float


def load_ground_truth(
    data,
    study="study",
    original_effect="original_effect",
    meta_analytic_effect="meta_analytic_effect",
    replication_effect="replication_effect",
):
    """Convert a table of benchmark effects into ground-truth records.

    Parameters
    ----------
    data : :obj:`pandas.DataFrame`
        One row per study.
    study, original_effect, meta_analytic_effect, replication_effect : :obj:`str`, optional
        Names of the corresponding columns in ``data``.

    Returns
    -------
    :obj:`dict`
        Mapping from study name to :obj:`GroundTruthRecord`.
    """
    names = data[study]
    duplicated = names[names.duplicated()].unique().tolist()
    if duplicated:
        raise ValueError("Ground truth contains duplicate studies: {}".format(duplicated))

    records = {}
    for row in data.to_dict(orient="records"):
        name = row[study]
        records[name] = GroundTruthRecord(
            study_name=name,
            original_effect=float(row[original_effect]),
            meta_analytic_effect=float(row[meta_analytic_effect]),
            replication_effect=float(row[replication_effect]),
        )
    return records


def join_ground_truth(datasets, ground_truth):
    """Pair each StudyDataset with its ground-truth record.

    Parameters
    ----------
    datasets : iterable of :obj:`StudyDataset`
    ground_truth : :obj:`dict` or :obj:`pandas.DataFrame`
        Mapping from study name to :obj:`GroundTruthRecord`, or a table
        accepted by :func:`load_ground_truth`.

    Returns
    -------
    :obj:`list` of (:obj:`StudyDataset`, :obj:`GroundTruthRecord`) tuples

    Raises
    ------
    :obj:`~pybias.errors.GroundTruthJoinError`
        If any study has no matching record.
    """
    if isinstance(ground_truth, pd.DataFrame):
        ground_truth = load_ground_truth(ground_truth)

    datasets = list(datasets)
    missing = [ds.name for ds in datasets if ds.name not in ground_truth]
    if missing:
        raise GroundTruthJoinError(
            "No ground-truth record found for {} studies: {}".format(len(missing), missing)
        )
    return [(ds, ground_truth[ds.name]) for ds in datasets]


def make_batch(observations, ground_truth, study="study", y="y", se="se"):
    """Build an evaluation batch from long-format tables.

    Parameters
    ----------
    observations : :obj:`pandas.DataFrame`
        One row per observation, with a column identifying the study.
    ground_truth : :obj:`dict` or :obj:`pandas.DataFrame`
        Benchmarks keyed by study name (see :func:`join_ground_truth`).
    study, y, se : :obj:`str`, optional
        Column names in ``observations``.

    Returns
    -------
    :obj:`list` of (:obj:`StudyDataset`, :obj:`GroundTruthRecord`) tuples
        In order of first appearance of each study in ``observations``.
        Studies with invalid standard errors are kept (see
        :attr:`StudyDataset.is_valid`), so the harness reports them as
        failed for every method instead of the whole batch being lost.
    """
    datasets = []
    for name, group in observations.groupby(study, sort=False):
        dataset = StudyDataset(y, se, name=name, data=group, strict=False)
        if not dataset.is_valid:
            logger.warning("Study %r has invalid standard errors and cannot be estimated.",
                           name)
        datasets.append(dataset)
    return join_ground_truth(datasets, ground_truth)


def correct_bias(y=None, se=None, data=None, method="fat_pet_peese", config=None, **kwargs):
    """Apply a single bias-correction method to one set of observations.

    Parameters
    ----------
    y : None or :obj:`numpy.ndarray` of shape (K,) or :obj:`str`, optional
        1d array of effect sizes, or the name of the column in data containing them.
    se : None or :obj:`numpy.ndarray` of shape (K,) or :obj:`str`, optional
        1d array of standard errors, or the name of the column in data containing them.
    data : None or :obj:`pandas.DataFrame` or :obj:`~pybias.core.StudyDataset`, optional
        If a StudyDataset instance is passed, y and se are ignored.
    method : {"wls", "pet", "peese", "peese_positive", "fat_pet_peese", "pcurve", \
            "selection_model"}, optional
        Name of the estimation method. Default = 'fat_pet_peese'.
    config : None or :obj:`~pybias.config.EstimatorConfig`, optional
        If provided, the estimator is built from this configuration and
        ``kwargs`` are ignored.
    **kwargs
        Optional keyword arguments to pass onto the chosen estimator.

    Returns
    -------
    Results object of the chosen estimator (see :mod:`pybias.results`).
    """
    if not isinstance(data, StudyDataset):
        data = StudyDataset(y, se, data=data)

    key = method.lower().replace("-", "_")
    if key not in ESTIMATORS:
        raise ValueError(
            "Unknown method {!r}; choose one of {}.".format(method, sorted(ESTIMATORS))
        )
    est_cls = ESTIMATORS[key]
    est = est_cls.from_config(config) if config is not None else est_cls(**kwargs)
    return est.fit_dataset(data).summary()
