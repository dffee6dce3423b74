"""Exceptions raised by bias-correction estimators and the evaluation harness."""


class BiasCorrectionError(Exception):
    """Base class for failures local to a single (study, method) estimate."""


class InsufficientDataError(BiasCorrectionError, ValueError):
    """Too few observations for the requested fit."""


class InsufficientSignificantDataError(BiasCorrectionError, ValueError):
    """The significance filter left no observations to estimate from."""


class SingularDesignError(BiasCorrectionError, ValueError):
    """The predictor has zero variance across observations."""


class ZeroVarianceError(BiasCorrectionError, ValueError):
    """A standard error is zero or negative."""


class ConvergenceError(BiasCorrectionError, RuntimeError):
    """An iterative optimizer exhausted its budget without meeting tolerance.

    Parameters
    ----------
    message : :obj:`str`
        Description of the failure.
    fallback_estimate : None or :obj:`float`, optional
        A lower-quality estimate that was available when the optimizer gave up
        (e.g., the p-curve grid-search minimizer). It must only ever be
        reported as degraded. Default = None.
    n_iter : None or :obj:`int`, optional
        Number of iterations performed before giving up. Default = None.
    """

    def __init__(self, message, fallback_estimate=None, n_iter=None):
        super().__init__(message)
        self.fallback_estimate = fallback_estimate
        self.n_iter = n_iter


class GroundTruthJoinError(ValueError):
    """A study in a batch has no matching ground-truth record.

    Unlike the other errors in this module, this one aborts the whole batch,
    since no study can be scored without its benchmark.
    """
