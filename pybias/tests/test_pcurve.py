"""Tests for pybias.estimators.pcurve."""
import numpy as np
import pytest

from pybias import StudyDataset
from pybias.config import EstimatorConfig
from pybias.errors import ConvergenceError, InsufficientSignificantDataError
from pybias.estimators import PCurve


def test_pcurve_scenario(significant_dataset):
    """Grid and refined minimizers stay in the interval and within the window."""
    results = PCurve(alpha=0.05, bounds=(0, 1), grid_points=100).fit_dataset(
        significant_dataset).summary()
    assert 0 <= results.grid_estimate <= 1
    assert 0 <= results.estimate <= 1
    assert abs(results.estimate - results.grid_estimate) < 0.1
    assert results.params["n_significant"] == 3
    assert results.se is None


def test_pcurve_recovers_true_effect(pcurve_truth):
    """The estimate lies within one grid step of the generating effect."""
    theta, dataset = pcurve_truth
    est = PCurve(bounds=(0, 1), grid_points=100)
    results = est.fit_dataset(dataset).summary()
    assert abs(results.estimate - theta) <= 1 / 99
    assert abs(results.grid_estimate - theta) <= 1 / 99
    assert results.ks_distance <= 0.5 / dataset.k + 1e-3


def test_pcurve_grid(significant_dataset):
    """The grid holds one KS distance per point and the first minimizer is used."""
    results = PCurve(grid_points=25).fit_dataset(significant_dataset).summary()
    df = results.to_df()
    assert df.shape == (25, 2)
    assert np.isclose(df["theta"].iloc[0], 0)
    assert np.isclose(df["theta"].iloc[-1], 1)
    assert results.grid_estimate == df["theta"][df["ks_distance"].idxmin()]
    assert results.ks_distance <= df["ks_distance"].min()


def test_pcurve_no_significant_results():
    """Samples without positive significant results cannot be p-curved."""
    with pytest.raises(InsufficientSignificantDataError):
        PCurve().fit([0.1, 0.05, -0.5], [0.1, 0.1, 0.2])


def test_pcurve_negative_significant_excluded(significant_dataset):
    """Significant negative effects are dropped with a warning."""
    y = np.r_[significant_dataset.y, -0.9]
    se = np.r_[significant_dataset.se, 0.1]
    with pytest.warns(UserWarning):
        results = PCurve().fit(y, se).summary()
    assert results.params["n_significant"] == 3


def test_pcurve_convergence_failure(significant_dataset):
    """A refinement that runs out of iterations reports a degraded fallback."""
    converged = PCurve().fit_dataset(significant_dataset).summary()
    with pytest.raises(ConvergenceError) as exc_info:
        PCurve(maxiter=1).fit_dataset(significant_dataset)
    assert exc_info.value.fallback_estimate == converged.grid_estimate


def test_pcurve_timeout(significant_dataset):
    """An exhausted time budget is a convergence failure."""
    with pytest.raises(ConvergenceError):
        PCurve(timeout=0.0).fit_dataset(significant_dataset)


def test_pcurve_init():
    """Test PCurve argument validation and configuration."""
    with pytest.raises(ValueError):
        PCurve(bounds=(1, 0))
    with pytest.raises(ValueError):
        PCurve(grid_points=1)
    with pytest.raises(ValueError):
        PCurve(alpha=0)
    with pytest.raises(ValueError):
        PCurve(alpha=1.5)
    with pytest.raises(ValueError):
        PCurve(search_window=0)

    config = EstimatorConfig(pcurve_alpha=0.01, pcurve_bounds=(-1, 2),
                             pcurve_grid_points=50, pcurve_search_window=0.2)
    est = PCurve.from_config(config)
    assert est.alpha == 0.01
    assert est.bounds == (-1.0, 2.0)
    assert est.grid_points == 50
    assert est.search_window == 0.2


def test_pcurve_significance_filter():
    """Only positive results significant at alpha are used."""
    est = PCurve(alpha=0.05)
    dataset = StudyDataset([0.3, 0.1, -0.3, 0.15], [0.1, 0.1, 0.1, 0.1])
    assert est.significant(dataset.y, dataset.se).tolist() == [True, False, False, False]
