"""Tests for pybias.estimators.selection."""
import numpy as np
import pytest
import scipy.stats as ss

from pybias.config import EstimatorConfig
from pybias.errors import ConvergenceError, InsufficientDataError
from pybias.estimators import SelectionModel


def test_selection_model_estimator(selection_dataset):
    """Test the default (fixed-effect) selection model."""
    results = SelectionModel().fit_dataset(selection_dataset).summary()
    assert 0 <= results.p1 <= 1
    assert results.tau == 0
    assert np.isfinite(results.theta)
    assert results.estimate == results.theta
    assert results.se is None

    df = results.to_df()
    assert df["name"].tolist() == ["p1", "theta", "tau"]


def test_selection_model_nll_without_selection(selection_dataset):
    """With p1 = 1 and tau = 0, the likelihood is an ordinary normal one."""
    y, se = selection_dataset.y, selection_dataset.se
    nll = SelectionModel().nll((1.0, 0.25, 0.0), y, se)
    assert np.isclose(nll, -ss.norm.logpdf(y, 0.25, se).sum())


def test_selection_model_p1_lower_bound(selection_dataset):
    """Raising the lower bound on p1 above its optimum cannot improve the fit."""
    free = SelectionModel().fit_dataset(selection_dataset).summary()
    lower = (free.p1 + 1) / 2
    bounds = ((lower, 1.0), (-np.inf, np.inf), (0.0, 0.0))
    constrained = SelectionModel(bounds=bounds).fit_dataset(selection_dataset).summary()
    assert constrained.p1 >= lower
    assert constrained.nll >= free.nll - 1e-4


def test_selection_model_heterogeneity(selection_dataset):
    """Relaxing the bounds on tau estimates heterogeneity."""
    config = EstimatorConfig.from_dict({"selmodel_bounds": {"tau": [0, np.inf]}})
    est = SelectionModel.from_config(config)
    assert est.bounds[2] == (0.0, np.inf)
    results = est.fit_dataset(selection_dataset).summary()
    assert results.tau >= 0
    assert np.isfinite(results.theta)


def test_selection_model_failures(selection_dataset):
    """Test failure modes of the selection model."""
    with pytest.raises(ConvergenceError):
        SelectionModel(maxiter=1).fit_dataset(selection_dataset)
    with pytest.raises(ConvergenceError):
        SelectionModel(timeout=0.0).fit_dataset(selection_dataset)
    with pytest.raises(InsufficientDataError):
        SelectionModel().fit([0.3, 0.1], [0.1, 0.1])


def test_selection_model_init():
    """Test SelectionModel argument validation."""
    with pytest.raises(ValueError):
        SelectionModel(bounds=((0, 1), (-np.inf, np.inf)))
    with pytest.raises(ValueError):
        SelectionModel(bounds=((0, 2), (-np.inf, np.inf), (0, 0)))
    with pytest.raises(ValueError):
        SelectionModel(bounds=((0, 1), (1, -1), (0, 0)))
    with pytest.raises(ValueError):
        SelectionModel(start=(0.5, 1.0))
