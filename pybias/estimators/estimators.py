"""Regression-based bias-correction estimator classes."""

import logging
from abc import ABCMeta, abstractmethod
from collections import namedtuple
from enum import Enum
from inspect import getfullargspec

import numpy as np

from ..errors import SingularDesignError, ZeroVarianceError
from ..results import DecisionResults, RegressionResults
from ..stats import inverse_variance_weights, weighted_least_squares, z_test
from ..utils import _requires_observations

logger = logging.getLogger(__name__)

_PREDICTORS = {
    "none": None,
    "se": lambda se: se,
    "variance": lambda se: se**2,
}


def _prepare_inputs(y, se):
    """Coerce y and se to matching 1d float arrays with positive se."""
    y = np.asarray(y, dtype=float).ravel()
    se = np.asarray(se, dtype=float).ravel()
    if y.shape != se.shape:
        raise ValueError(
            "y and se should have the same shape. You provided y with shape {} and se "
            "with shape {}.".format(y.shape, se.shape)
        )
    if not np.all(se > 0):
        raise ZeroVarianceError("Standard errors must be strictly positive.")
    return y, se


class BaseEstimator(metaclass=ABCMeta):

    # A class-level mapping from StudyDataset attributes to fit() arguments.
    # Used by fit_dataset() for estimators whose fit() arguments are not named
    # after the dataset attributes. Keys are fit() argument names; values are
    # the StudyDataset attribute names.
    _dataset_attr_map = {}

    @abstractmethod
    def fit(self, *args, **kwargs):
        pass

    @classmethod
    def from_config(cls, config):
        """Build an estimator from an :obj:`~pybias.config.EstimatorConfig`.

        Estimators without configurable options ignore the configuration.
        """
        return cls()

    def fit_dataset(self, dataset, *args, **kwargs):
        """Apply the current estimator to the passed StudyDataset container.

        A convenience interface that wraps fit() and automatically aligns the
        variables held in a StudyDataset with the required arguments.

        Parameters
        ----------
        dataset : :obj:`~pybias.core.StudyDataset`
            A StudyDataset instance holding the data.
        *args, **kwargs
            Optional positional and keyword arguments to pass onto the fit() method.
        """
        all_kwargs = {}
        spec = getfullargspec(self.fit)
        n_kw = len(spec.defaults) if spec.defaults else 0
        n_args = len(spec.args) - n_kw - 1

        for i, name in enumerate(spec.args[1:]):
            # Check for remapped name
            attr_name = self._dataset_attr_map.get(name, name)
            if i >= n_args:
                all_kwargs[name] = getattr(dataset, attr_name, spec.defaults[i - n_args])
            else:
                all_kwargs[name] = getattr(dataset, attr_name)

        all_kwargs.update(kwargs)
        self.fit(*args, **all_kwargs)
        self.dataset_ = dataset

        return self

    def summary(self):
        """Generate a results object from the fitted parameters."""
        if not hasattr(self, "params_"):
            name = self.__class__.__name__
            raise ValueError(
                "This {} instance hasn't been fitted yet. Please "
                "call fit() before summary().".format(name)
            )
        return self._summary()

    @abstractmethod
    def _summary(self):
        pass


class WeightedLeastSquares(BaseEstimator):
    """Weighted least-squares regression of effect size on standard error.

    Fits ``y ~ a + b * f(se)`` using normalized inverse-variance weights, where
    ``f`` is selected by ``predictor``. With ``predictor="none"`` (default),
    the model is intercept-only and the intercept is the standard
    inverse-variance weighted (fixed-effect) meta-analytic estimate.

    Parameters
    ----------
    predictor : {"none", "se", "variance"}, optional
        Function of the standard errors used as the predictor: nothing
        (intercept-only), the standard error itself, or its square.
        Default = "none".

    Notes
    -----
    Standard errors of the coefficients use the weighted residual mean square
    as a multiplicative dispersion term (the "unrestricted" WLS model of
    :footcite:t:`stanley2015neither`). A fit with as many observations as
    parameters has no residual degrees of freedom; its coefficients are
    exact and their standard errors are NaN, so no test on them rejects.

    References
    ----------
    .. footbibliography::
    """

    def __init__(self, predictor="none"):
        if predictor not in _PREDICTORS:
            raise ValueError(
                "Unknown predictor {!r}; choose one of {}.".format(predictor, sorted(_PREDICTORS))
            )
        self.predictor = predictor

    @_requires_observations(2)
    def fit(self, y, se):
        """Fit the regression to effect sizes and their standard errors."""
        self.dataset_ = None
        y, se = _prepare_inputs(y, se)
        k = y.size

        func = _PREDICTORS[self.predictor]
        if func is None:
            X = np.ones((k, 1))
        else:
            x = func(se)
            if np.ptp(x) <= np.finfo(float).eps * np.abs(x).max():
                raise SingularDesignError(
                    "Predictor {!r} has zero variance across observations.".format(self.predictor)
                )
            X = np.column_stack([np.ones(k), x])

        p = X.shape[1]
        if k == p:
            logger.debug("%s: no residual degrees of freedom; standard errors are NaN.",
                         self.__class__.__name__)

        w =inverse_variance_weights(se)
        beta, cov = weighted_least_squares(y, w, X, return_cov=True)
        beta_se = np.sqrt(np.diag(cov))

        self.params_ = {
            "intercept": float(beta[0]),
            "intercept_se": float(beta_se[0]),
            "slope": float(beta[1]) if p > 1 else None,
            "slope_se": float(beta_se[1]) if p > 1 else None,
            "k": k,
        }
        return self

    def _summary(self):
        return RegressionResults(self, self.dataset_, self.params_, self.predictor)


class PrecisionEffectTest(WeightedLeastSquares):
    """FAT-PET regression of effect size on standard error.

    The slope is the funnel asymmetry test (FAT) statistic and the intercept is
    the precision-effect test (PET) estimate of the bias-corrected effect
    :footcite:p:`stanley2014meta`.

    References
    ----------
    .. footbibliography::
    """

    def __init__(self):
        super().__init__(predictor="se")


class PEESE(WeightedLeastSquares):
    """Precision-effect estimate with standard error.

    Regresses effect size on the squared standard error; the intercept is the
    bias-corrected estimate :footcite:p:`stanley2014meta`.

    References
    ----------
    .. footbibliography::
    """

    def __init__(self):
        super().__init__(predictor="variance")


class DecisionState(Enum):
    """States of the FAT-PET-PEESE decision procedure."""

    START = "start"
    FAT_REJECTED = "fat_rejected"
    PET_REJECTED = "pet_rejected"
    DONE = "done"


Decision = namedtuple("Decision", ["estimate", "se", "stage", "trace", "fat_z", "pet_z"])


def _transition(state, wls, fat_pet, peese, tests):
    """Advance the decision procedure by one state.

    Returns the next state and, on reaching DONE, the (estimate, se, stage)
    outcome; ``tests`` collects the z-statistics computed along the way.
    """
    if state is DecisionState.START:
        z, rejected = z_test(fat_pet.slope, fat_pet.slope_se, tests["fat_alpha"],
                             tests["fat_one_sided"])
        tests["fat_z"] = z
        if not rejected:
            return DecisionState.DONE, (wls.intercept, wls.intercept_se, "wls")
        return DecisionState.FAT_REJECTED, None

    if state is DecisionState.FAT_REJECTED:
        z, rejected = z_test(fat_pet.intercept, fat_pet.intercept_se, tests["pet_alpha"],
                             tests["pet_one_sided"])
        tests["pet_z"] = z
        if not rejected:
            return DecisionState.DONE, (0.0, fat_pet.intercept_se, "pet")
        return DecisionState.PET_REJECTED, None

    if state is DecisionState.PET_REJECTED:
        return DecisionState.DONE, (peese.intercept, peese.intercept_se, "peese")

    raise ValueError("No transition defined from state {}.".format(state))


def decide(
    wls,
    fat_pet,
    peese,
    fat_alpha=0.10,
    fat_one_sided=True,
    pet_alpha=0.05,
    pet_one_sided=False,
    fallback_on_negative_slope=True,
):
    """Run the FAT-PET-PEESE decision procedure on fitted regressions.

    Parameters
    ----------
    wls, fat_pet, peese
        Fitted intercept-only, effect-on-se and effect-on-se^2 regressions.
        Any objects with ``intercept``, ``intercept_se``, ``slope`` and
        ``slope_se`` attributes are accepted.
    fat_alpha, pet_alpha : :obj:`float`, optional
        Significance levels of the FAT and PET tests.
    fat_one_sided, pet_one_sided : :obj:`bool`, optional
        Sidedness of the FAT and PET tests.
    fallback_on_negative_slope : :obj:`bool`, optional
        If True, a negative FAT-PET slope overrides the outcome with the WLS
        estimate.

    Returns
    -------
    :obj:`Decision`
        The final estimate and standard error, the stage that produced them
        ('wls', 'pet', 'peese' or 'wls_negative_slope'), the visited states
        and the FAT and PET z-statistics (None if a test was not reached).
    """
    tests = {
        "fat_alpha": fat_alpha,
        "fat_one_sided": fat_one_sided,
        "pet_alpha": pet_alpha,
        "pet_one_sided": pet_one_sided,
        "fat_z": None,
        "pet_z": None,
    }
    state = DecisionState.START
    trace = [state]
    outcome = None
    while state is not DecisionState.DONE:
        state, outcome = _transition(state, wls, fat_pet, peese, tests)
        logger.debug("FAT-PET-PEESE transition to %s", state.value)
        trace.append(state)

    estimate, se, stage = outcome
    if fallback_on_negative_slope and np.sign(fat_pet.slope) < 0:
        logger.debug("Negative FAT-PET slope; using the WLS estimate instead of %s.", stage)
        estimate, se, stage = wls.intercept, wls.intercept_se, "wls_negative_slope"

    return Decision(estimate, se, stage, tuple(trace), tests["fat_z"], tests["pet_z"])


def _fit_components(y, se, names):
    estimators = {
        "wls": WeightedLeastSquares,
        "fat_pet": PrecisionEffectTest,
        "peese": PEESE,
    }
    return {name: estimators[name]().fit(y, se).summary() for name in names}


class FatPetPeese(BaseEstimator):
    """The FAT-PET-PEESE conditional bias-correction procedure.

    First tests for funnel asymmetry (FAT). If no asymmetry is detected, the
    WLS estimate is returned. Otherwise the precision-effect test (PET) checks
    whether the bias-corrected effect differs from zero; if it does not, the
    estimate is zero, and if it does, the PEESE estimate is returned
    :footcite:p:`stanley2014meta`.

    Parameters
    ----------
    fat_alpha : :obj:`float`, optional
        Significance level of the FAT. Default = 0.10.
    fat_one_sided : :obj:`bool`, optional
        Whether the FAT is one-sided (rejecting only for a positive slope).
        Default = True.
    pet_alpha : :obj:`float`, optional
        Significance level of the PET. Default = 0.05.
    pet_one_sided : :obj:`bool`, optional
        Whether the PET is one-sided. Default = False.
    fallback_on_negative_slope : :obj:`bool`, optional
        If True, a negative slope of effect size on standard error makes the
        procedure return the WLS estimate regardless of the test outcomes.
        Default = True.

    Notes
    -----
    The WLS, FAT-PET and PEESE regressions are all fitted, whichever stage
    ends up producing the estimate, and are available from the results
    object for diagnostics and plotting.

    References
    ----------
    .. footbibliography::
    """

    def __init__(
        self,
        fat_alpha=0.10,
        fat_one_sided=True,
        pet_alpha=0.05,
        pet_one_sided=False,
        fallback_on_negative_slope=True,
    ):
        self.fat_alpha = fat_alpha
        self.fat_one_sided = fat_one_sided
        self.pet_alpha = pet_alpha
        self.pet_one_sided = pet_one_sided
        self.fallback_on_negative_slope = fallback_on_negative_slope

    @classmethod
    def from_config(cls, config):
        return cls(
            fat_alpha=config.fat_alpha,
            fat_one_sided=config.fat_one_sided,
            pet_alpha=config.pet_alpha,
            pet_one_sided=config.pet_one_sided,
            fallback_on_negative_slope=config.fallback_on_negative_slope,
        )

    @_requires_observations(2)
    def fit(self, y, se):
        """Fit the component regressions and run the decision procedure."""
        self.dataset_ = None
        components = _fit_components(y, se, ["wls", "fat_pet", "peese"])
        decision = decide(
            components["wls"],
            components["fat_pet"],
            components["peese"],
            fat_alpha=self.fat_alpha,
            fat_one_sided=self.fat_one_sided,
            pet_alpha=self.pet_alpha,
            pet_one_sided=self.pet_one_sided,
            fallback_on_negative_slope=self.fallback_on_negative_slope,
        )
        self.components_ = components
        self.params_ = {
            "estimate": decision.estimate,
            "se": decision.se,
            "stage": decision.stage,
            "fat_z": decision.fat_z,
            "pet_z": decision.pet_z,
        }
        self.trace_ = decision.trace
        return self

    def _summary(self):
        return DecisionResults(self, self.dataset_, self.params_, self.components_, self.trace_)


class PeesePositiveOnly(BaseEstimator):
    """PEESE, falling back to WLS unless the PEESE slope is positive.

    A slope of effect size on squared standard error that is not positive
    contradicts the small-study pattern publication bias produces, so the
    plain WLS estimate is returned instead.
    """

    @_requires_observations(2)
    def fit(self, y, se):
        """Fit the WLS and PEESE regressions and select between them."""
        self.dataset_ = None
        components = _fit_components(y, se, ["wls", "peese"])
        wls, peese = components["wls"], components["peese"]
        if not peese.slope > 0:
            estimate, se_, stage = wls.intercept, wls.intercept_se, "wls_negative_slope"
        else:
            estimate, se_, stage = peese.intercept, peese.intercept_se, "peese"
        self.components_ = components
        self.params_ = {"estimate": estimate, "se": se_, "stage": stage}
        return self

    def _summary(self):
        return DecisionResults(self, self.dataset_, self.params_, self.components_)
