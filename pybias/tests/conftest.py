import numpy as np
import pytest
import scipy.stats as ss

from pybias import GroundTruthRecord, StudyDataset


@pytest.fixture(scope='package')
def variables():
    y = np.array([0.10, 0.20, 0.15, 0.30, 0.25])
    se = np.array([0.05, 0.10, 0.08, 0.15, 0.12])
    return (y, se)


@pytest.fixture(scope='package')
def dataset(variables):
    return StudyDataset(*variables, name='scenario')


@pytest.fixture(scope='package')
def negative_slope_dataset():
    y = np.array([0.50, 0.42, 0.37, 0.28, 0.20])
    se = np.array([0.05, 0.10, 0.15, 0.20, 0.25])
    return StudyDataset(y, se, name='negative_slope')


@pytest.fixture(scope='package')
def linear_se_dataset():
    # effect = 0.2 + 1.5 * se, plus a small deterministic perturbation
    se = np.array([0.05, 0.10, 0.15, 0.20, 0.25, 0.30])
    noise = np.array([0.001, -0.001, 0.002, -0.002, 0.001, -0.001])
    return StudyDataset(0.2 + 1.5 * se + noise, se, name='linear_se')


@pytest.fixture(scope='package')
def quadratic_se_dataset():
    # effect = 0.2 + 3 * se^2, plus a small deterministic perturbation
    se = np.array([0.05, 0.10, 0.15, 0.20, 0.25, 0.30])
    noise = np.array([0.001, -0.001, 0.002, -0.002, 0.001, -0.001])
    return StudyDataset(0.2 + 3 * se**2 + noise, se, name='quadratic_se')


@pytest.fixture(scope='package')
def significant_dataset():
    return StudyDataset([0.5, 0.6, 0.55], [0.1, 0.12, 0.11], name='significant')


@pytest.fixture(scope='package')
def pcurve_truth():
    """Effects whose pp-values are exactly uniform quantiles when theta = 0.4."""
    theta, n = 0.4, 20
    se = np.full(n, 0.1)
    u = (np.arange(1, n + 1) - 0.5) / n
    z_crit = ss.norm.ppf(0.975)
    y = theta - se * ss.norm.ppf(u * ss.norm.cdf(theta / se - z_crit))
    return theta, StudyDataset(y, se, name='pcurve_truth')


@pytest.fixture(scope='package')
def selection_dataset():
    sig = [0.21, 0.25, 0.30, 0.22, 0.35, 0.28, 0.40, 0.24, 0.31, 0.27, 0.23, 0.33, 0.26,
           0.38, 0.29]
    nonsig = [0.05, 0.12, -0.03, 0.15, 0.08]
    y = np.array(sig + nonsig)
    return StudyDataset(y, np.full(y.size, 0.1), name='selection')


@pytest.fixture(scope='package')
def batch(dataset, linear_se_dataset, significant_dataset):
    no_significant = StudyDataset([0.01, 0.05, -0.02, 0.03], [0.1, 0.2, 0.15, 0.12],
                                  name='null')
    datasets = [dataset, linear_se_dataset, significant_dataset, no_significant]
    replication = {'scenario': 0.12, 'linear_se': 0.25, 'significant': 0.4, 'null': 0.0}
    return [
        (ds, GroundTruthRecord(ds.name, 0.5, 0.3, replication[ds.name]))
        for ds in datasets
    ]
