"""
Shooting Pulse - Base Classes for Datasets

Abstract base classes that dataset implementations inherit from.
These provide a consistent interface for:
- Record preprocessing (BasePreprocessor)
- Feature building (BaseFeatureBuilder)

Usage:
    from shooting_pulse.datasets.base import BasePreprocessor, BaseFeatureBuilder

    class ShootingPreprocessor(BasePreprocessor):
        def transform(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
"""

from shooting_pulse.datasets.base.feature_builder import (
    BaseFeatureBuilder,
    FeatureBuildResult,
    FeatureDefinition,
)
from shooting_pulse.datasets.base.preprocessor import BasePreprocessor, PreprocessingResult

__all__ = [
    "BasePreprocessor",
    "PreprocessingResult",
    "BaseFeatureBuilder",
    "FeatureBuildResult",
    "FeatureDefinition",
]
