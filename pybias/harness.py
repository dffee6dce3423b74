"""Benchmarking of bias-correction methods against replication effects."""

import copy
import logging

from joblib import Parallel, delayed

from .config import EstimatorConfig
from .errors import BiasCorrectionError, GroundTruthJoinError
from .estimators import ESTIMATORS
from .results import EstimateFailure, EvaluationResults, PerformanceSummary
from .stats import bias_metrics

logger = logging.getLogger(__name__)


def default_methods(config=None):
    """Build one estimator per registered method from a configuration.

    Parameters
    ----------
    config : None or :obj:`~pybias.config.EstimatorConfig`, optional
        If None, the default configuration is used.

    Returns
    -------
    :obj:`dict`
        Mapping from method name to an unfitted estimator.
    """
    config = config or EstimatorConfig()
    return {name: est_cls.from_config(config) for name, est_cls in ESTIMATORS.items()}


def _estimate_study(dataset, methods):
    """Apply every method to one study; failures stay local to the pair."""
    records, failures = [], []
    for method, estimator in methods.items():
        est = copy.deepcopy(estimator)
        try:
            results = est.fit_dataset(dataset).summary()
        except BiasCorrectionError as exc:
            failures.append(
                EstimateFailure(
                    study=dataset.name,
                    method=method,
                    error_type=exc.__class__.__name__,
                    reason=str(exc),
                    degraded_estimate=getattr(exc, "fallback_estimate", None),
                )
            )
            continue
        records.append(results.to_record(dataset.name, method))
    return records, failures


def _check_batch(batch):
    names = set()
    for dataset, truth in batch:
        if dataset.name is None:
            raise ValueError("Every StudyDataset in a batch must have a name.")
        if dataset.name in names:
            raise ValueError("Study {!r} appears more than once in the batch.".format(
                dataset.name))
        names.add(dataset.name)
        if truth is None or truth.study_name != dataset.name:
            raise GroundTruthJoinError(
                "Study {!r} has no matching ground-truth record.".format(dataset.name)
            )


def _summarize(method, studies, records, failures, ground_truth):
    by_study = {r.study: r for r in records if r.method == method}
    included = [s for s in studies if s in by_study]
    method_failures = [f for f in failures if f.method == method]
    metrics = bias_metrics(
        [by_study[s].point_estimate for s in included],
        [ground_truth[s].replication_effect for s in included],
    )
    return PerformanceSummary(
        method=method,
        n_studies=len(included),
        excluded=tuple(f.study for f in method_failures),
        degraded=tuple(f.study for f in method_failures if f.degraded),
        **metrics,
    )


class BiasEvaluationHarness:
    """Score bias-correction methods against replication effect sizes.

    Parameters
    ----------
    methods : None or :obj:`dict`, optional
        Mapping from method name to an unfitted estimator. Each (study, method)
        pair is fitted on a fresh copy of the estimator. If None, one estimator
        per registered method is built from ``config``.
    config : None or :obj:`~pybias.config.EstimatorConfig`, optional
        Configuration used for the default methods and the number of jobs.
    n_jobs : None or :obj:`int`, optional
        Number of parallel workers (joblib semantics; -1 uses all cores).
        If None, ``config.n_jobs`` is used.

    Notes
    -----
    Studies are processed independently, in parallel when ``n_jobs != 1``.
    Performance summaries are computed only after every study is done. A
    method that fails on a study contributes nothing to that method's summary;
    the study is listed in the summary's ``excluded`` field instead.
    """

    def __init__(self, methods=None, config=None, n_jobs=None):
        self.config = config or EstimatorConfig()
        self.methods = dict(methods) if methods is not None else default_methods(self.config)
        if not self.methods:
            raise ValueError("At least one method is required.")
        self.n_jobs = self.config.n_jobs if n_jobs is None else n_jobs

    def run(self, batch):
        """Estimate every study with every method and score the results.

        Parameters
        ----------
        batch : iterable of (:obj:`~pybias.core.StudyDataset`, \
                :obj:`~pybias.core.GroundTruthRecord`) tuples
            As returned by :func:`~pybias.core.make_batch`.

        Returns
        -------
        :obj:`~pybias.results.EvaluationResults`
        """
        batch = list(batch)
        _check_batch(batch)
        logger.info(
            "Evaluating %d method(s) on %d studies (n_jobs=%s).",
            len(self.methods), len(batch), self.n_jobs,
        )

        outputs = Parallel(n_jobs=self.n_jobs)(
            delayed(_estimate_study)(dataset, self.methods) for dataset, _ in batch
        )

        records, failures = [], []
        for study_records, study_failures in outputs:
            records.extend(study_records)
            failures.extend(study_failures)

        for failure in failures:
            logger.warning(
                "%s failed on study %r (%s): %s%s",
                failure.method, failure.study, failure.error_type, failure.reason,
                " [degraded estimate available]" if failure.degraded else "",
            )

        ground_truth = {dataset.name: truth for dataset, truth in batch}
        studies = [dataset.name for dataset, _ in batch]
        summaries = {
            method: _summarize(method, studies, records, failures, ground_truth)
            for method in self.methods
        }
        logger.info("Finished: %d estimates, %d failures.", len(records), len(failures))
        return EvaluationResults(records, failures, summaries, ground_truth)


def evaluate(batch, config=None, methods=None, n_jobs=None):
    """Run a :obj:`BiasEvaluationHarness` over a batch of studies.

    See :class:`BiasEvaluationHarness` for a description of the arguments.

    Returns
    -------
    :obj:`~pybias.results.EvaluationResults`
    """
    harness = BiasEvaluationHarness(methods=methods, config=config, n_jobs=n_jobs)
    return harness.run(batch)
