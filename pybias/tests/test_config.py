"""Tests for pybias.config."""
import dataclasses

import numpy as np
import pytest

from pybias import EstimatorConfig


def test_config_defaults():
    """Test the default configuration values."""
    config = EstimatorConfig()
    assert config.fat_alpha == 0.10
    assert config.fat_one_sided
    assert config.pet_alpha == 0.05
    assert not config.pet_one_sided
    assert config.fallback_on_negative_slope
    assert config.pcurve_grid_points == 100
    assert config.pcurve_bounds == (0.0, 1.0)
    assert config.selmodel_bounds == ((0.0, 1.0), (-np.inf, np.inf), (0.0, 0.0))
    assert config.selmodel_start == (0.5, 1.0, 0.0)
    assert config.timeout is None
    assert config.n_jobs == 1


def test_config_is_immutable():
    """Configurations cannot be changed in place."""
    config = EstimatorConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.fat_alpha = 0.2

    changed = config.replace(fat_alpha=0.2)
    assert changed.fat_alpha == 0.2
    assert config.fat_alpha == 0.10
    assert changed != config


def test_config_validation():
    """Invalid options are rejected on construction."""
    with pytest.raises(ValueError):
        EstimatorConfig(fat_alpha=0)
    with pytest.raises(ValueError):
        EstimatorConfig(pet_alpha=1.2)
    with pytest.raises(ValueError):
        EstimatorConfig(pcurve_grid_points=1)
    with pytest.raises(ValueError):
        EstimatorConfig(pcurve_search_window=0)
    with pytest.raises(ValueError):
        EstimatorConfig(pcurve_bounds=(1, 0))
    with pytest.raises(ValueError):
        EstimatorConfig(selmodel_bounds=((0, 1), (0, 1)))
    with pytest.raises(ValueError):
        EstimatorConfig(selmodel_bounds=((0, 1), (1, 0), (0, 0)))
    with pytest.raises(ValueError):
        EstimatorConfig(selmodel_start=(0.5, 1.0))


def test_config_from_dict():
    """Test building a configuration from a nested mapping."""
    config = EstimatorConfig.from_dict(
        {
            "fat_alpha": 0.05,
            "pcurve_bounds": [-0.5, 1.5],
            "selmodel_bounds": {"tau": [0, np.inf]},
            "selmodel_start": [0.2, 0.3, 0.1],
        }
    )
    assert config.fat_alpha == 0.05
    assert config.pcurve_bounds == (-0.5, 1.5)
    assert config.selmodel_bounds == ((0.0, 1.0), (-np.inf, np.inf), (0.0, np.inf))
    assert config.selmodel_start == (0.2, 0.3, 0.1)

    with pytest.raises(ValueError):
        EstimatorConfig.from_dict({"grid_points": 10})
    with pytest.raises(ValueError):
        EstimatorConfig.from_dict({"selmodel_bounds": {"sigma": [0, 1]}})


def test_config_to_dict():
    """to_dict output is accepted by from_dict."""
    config = EstimatorConfig(fat_alpha=0.2, timeout=5.0)
    options = config.to_dict()
    assert options["selmodel_bounds"]["p1"] == (0.0, 1.0)
    assert EstimatorConfig.from_dict(options) == config
