"""Tests for pybias.stats."""
import numpy as np
import pytest

from pybias import stats


def test_weighted_least_squares_unit_weights():
    """With equal weights, WLS reduces to ordinary least squares."""
    X = np.column_stack([np.ones(6), [0.1, 0.4, 0.2, 0.8, 0.5, 0.3]])
    y = np.array([0.3, 0.9, 0.4, 1.8, 1.0, 0.7])
    beta = stats.weighted_least_squares(y, np.ones(6), X)
    expected = np.linalg.lstsq(X, y, rcond=None)[0]
    assert np.allclose(beta, expected)


def test_weighted_least_squares_scale_invariance(variables):
    """Rescaling the weights changes neither estimates nor covariance."""
    y, se = variables
    X = np.column_stack([np.ones(len(y)), se])
    w = 1 / se**2
    beta1, cov1 = stats.weighted_least_squares(y, w, X, return_cov=True)
    beta2, cov2 = stats.weighted_least_squares(y, w / w.sum(), X, return_cov=True)
    assert np.allclose(beta1, beta2)
    assert np.allclose(cov1, cov2)


def test_inverse_variance_weights():
    """Test pybias.stats.inverse_variance_weights."""
    w = stats.inverse_variance_weights([1.0, 0.5])
    assert np.allclose(w, [0.2, 0.8])


def test_critical_value():
    """Test pybias.stats.critical_value."""
    assert round(stats.critical_value(0.05), 4) == 1.96
    assert round(stats.critical_value(0.10, one_sided=True), 4) == 1.2816
    with pytest.raises(ValueError):
        stats.critical_value(0)
    with pytest.raises(ValueError):
        stats.critical_value(1.5)


def test_z_test():
    """Test pybias.stats.z_test."""
    z, rejected = stats.z_test(1.0, 0.5, alpha=0.05)
    assert z == 2.0
    assert rejected

    # One-sided tests only reject for positive z
    z, rejected = stats.z_test(-1.0, 0.5, alpha=0.05, one_sided=True)
    assert z == -2.0
    assert not rejected
    _, rejected = stats.z_test(-1.0, 0.5, alpha=0.05)
    assert rejected

    # Undefined statistics never reject
    _, rejected = stats.z_test(0.0, 0.0)
    assert not rejected


def test_pp_values_uniform_at_true_effect(pcurve_truth):
    """pp-values are the generating quantiles at the true effect."""
    theta, dataset = pcurve_truth
    pp = stats.pp_values(theta, dataset.y, dataset.se)
    n = dataset.k
    assert np.allclose(np.sort(pp), (np.arange(1, n + 1) - 0.5) / n)

    # pp-values increase with the candidate effect and stay in [0, 1]
    lower = stats.pp_values(theta - 0.2, dataset.y, dataset.se)
    assert np.all(lower <= pp)
    extreme = stats.pp_values(-5.0, dataset.y, dataset.se)
    assert np.all((extreme >= 0) & (extreme <= 1))


def test_ks_uniform_distance():
    """Test pybias.stats.ks_uniform_distance."""
    n = 10
    assert np.isclose(stats.ks_uniform_distance((np.arange(n) + 0.5) / n), 0.5 / n)
    assert np.isclose(stats.ks_uniform_distance([1.0, 1.0]), 1.0)


def test_bias_metrics():
    """Test pybias.stats.bias_metrics."""
    metrics = stats.bias_metrics([1.0, 2.0, 3.0], [2.0, 2.0, 2.0])
    assert metrics["mean_bias"] == 0
    assert np.isclose(metrics["mean_absolute_deviation"], 2 / 3)
    assert np.isclose(metrics["root_mean_square_error"], np.sqrt(2 / 3))

    empty = stats.bias_metrics([], [])
    assert all(np.isnan(v) for v in empty.values())


def test_weighted_least_squares_exact_fit():
    """With as many observations as parameters the covariance is undefined."""
    X = np.column_stack([np.ones(2), [0.1, 0.2]])
    y = np.array([0.1, 0.3])
    beta, cov = stats.weighted_least_squares(y, np.array([0.8, 0.2]), X, return_cov=True)
    assert np.allclose(beta, [-0.1, 2.0])
    assert np.isnan(cov).all()
