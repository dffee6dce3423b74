"""PyBIAS: publication-bias correction and replication benchmarking."""

from .config import EstimatorConfig
from .core import GroundTruthRecord, Observation, StudyDataset, correct_bias, make_batch
from .harness import BiasEvaluationHarness, evaluate
from .info import VERSION

__all__ = [
    "Observation",
    "StudyDataset",
    "GroundTruthRecord",
    "EstimatorConfig",
    "correct_bias",
    "make_batch",
    "BiasEvaluationHarness",
    "evaluate",
]

__version__ = VERSION
