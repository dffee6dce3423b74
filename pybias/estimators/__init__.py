"""Estimators that correct meta-analytic effect sizes for publication bias."""
from .estimators import (
    PEESE,
    DecisionState,
    FatPetPeese,
    PeesePositiveOnly,
    PrecisionEffectTest,
    WeightedLeastSquares,
    decide,
)
from .pcurve import PCurve
from .selection import SelectionModel

# Method names accepted by correct_bias() and used by the evaluation harness.
ESTIMATORS = {
    "wls": WeightedLeastSquares,
    "pet": PrecisionEffectTest,
    "peese": PEESE,
    "peese_positive": PeesePositiveOnly,
    "fat_pet_peese": FatPetPeese,
    "pcurve": PCurve,
    "selection_model": SelectionModel,
}

__all__ = [
    "WeightedLeastSquares",
    "PrecisionEffectTest",
    "PEESE",
    "PeesePositiveOnly",
    "FatPetPeese",
    "DecisionState",
    "decide",
    "PCurve",
    "SelectionModel",
    "ESTIMATORS",
]
