"""
Shooting Pulse - Shooting Feature Encoder

Projects the canonical incident table onto the model features:

    perp_age_group, perp_sex, victim_age_group, victim_sex -> is_murder

Rows with an absent value in any of the four features are removed (listwise
deletion, no imputation). The removed count is reported as an informational
metric, not an error.

Categorical features are nominal. CategoryVocabulary fixes the label set of
each feature once, from the training rows, in lexicographic order; the first
label of each feature is the reference category and gets no indicator column.

Usage:
    from shooting_pulse.datasets.shooting.features import ShootingFeatureEncoder

    encoder = ShootingFeatureEncoder()
    encoded = encoder.encode(incidents_df)
    vocabulary = CategoryVocabulary.from_frame(encoded.rows)
    X = vocabulary.design_matrix(encoded.rows)
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base import BaseFeatureBuilder, FeatureDefinition
from shooting_pulse.shared.config import Settings

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = ["perp_age_group", "perp_sex", "victim_age_group", "victim_sex"]
LABEL_COLUMN = "is_murder"


@dataclass(frozen=True)
class EncodedFeatures:
    """Model-ready rows plus the count removed by listwise deletion."""

    rows: pd.DataFrame
    rows_dropped: int

    @property
    def labels(self) -> pd.Series:
        return self.rows[LABEL_COLUMN]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class CategoryVocabulary:
    """
    Fixed, ordered label set per categorical feature.

    Built once from training rows and reused for every later design matrix,
    so encoding never depends on the rows being encoded.
    """

    categories: tuple[tuple[str, tuple[str, ...]], ...]

    @classmethod
    def from_frame(
        cls, rows: pd.DataFrame, features: list[str] | None = None
    ) -> CategoryVocabulary:
        """Collect the sorted distinct labels of each feature."""
        features = features or FEATURE_COLUMNS
        return cls(
            categories=tuple(
                (feature, tuple(sorted(str(v) for v in rows[feature].dropna().unique())))
                for feature in features
            )
        )

    @property
    def features(self) -> list[str]:
        return [feature for feature, _ in self.categories]

    @property
    def version(self) -> str:
        """Short content hash identifying this vocabulary."""
        payload = json.dumps([[f, list(labels)] for f, labels in self.categories])
        return hashlib.sha256(payload.encode()).hexdigest()[:12]

    def labels_for(self, feature: str) -> tuple[str, ...]:
        for name, labels in self.categories:
            if name == feature:
                return labels
        raise KeyError(feature)

    def reference_category(self, feature: str) -> str | None:
        labels = self.labels_for(feature)
        return labels[0] if labels else None

    @property
    def indicator_names(self) -> list[str]:
        """Design matrix column names, one per non-reference category."""
        return [
            f"{feature}[{label}]" for feature, labels in self.categories for label in labels[1:]
        ]

    @property
    def n_indicators(self) -> int:
        return len(self.indicator_names)

    def design_matrix(self, rows: pd.DataFrame) -> pd.DataFrame:
        """
        Expand the categorical features into 0/1 indicator columns.

        Raises:
            UnknownCategoryError: If a row holds a label outside the vocabulary
        """
        columns: dict[str, Any] = {}
        for feature, labels in self.categories:
            values = rows[feature].astype(str)
            unknown = sorted(set(values) - set(labels))
            if unknown:
                raise UnknownCategoryError(feature, unknown)
            for label in labels[1:]:
                columns[f"{feature}[{label}]"] = (values == label).astype(float).to_numpy()

        return pd.DataFrame(columns, index=rows.index, columns=self.indicator_names)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "categories": {feature: list(labels) for feature, labels in self.categories},
        }


class ShootingFeatureEncoder(BaseFeatureBuilder):
    """
    Feature builder for the murder-flag classifier.

    Selects the demographic features and the label and applies listwise
    deletion on missing features.
    """

    def __init__(self, config: Settings | None = None):
        """Initialize shooting feature encoder."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shooting"

    def get_feature_definitions(self) -> list[FeatureDefinition]:
        """Return feature definitions."""
        return [
            FeatureDefinition(
                name="perp_age_group",
                description="Perpetrator age band (descriptive taxonomy)",
                dtype="category",
                source_columns=["perp_age_group"],
            ),
            FeatureDefinition(
                name="perp_sex",
                description="Perpetrator sex as reported",
                dtype="category",
                source_columns=["perp_sex"],
            ),
            FeatureDefinition(
                name="victim_age_group",
                description="Victim age band (descriptive taxonomy)",
                dtype="category",
                source_columns=["victim_age_group"],
            ),
            FeatureDefinition(
                name="victim_sex",
                description="Victim sex as reported",
                dtype="category",
                source_columns=["victim_sex"],
            ),
            FeatureDefinition(
                name=LABEL_COLUMN,
                description="Incident resulted in a murder (1) or not (0)",
                dtype="int",
                source_columns=["is_murder"],
                is_label=True,
                min_value=0,
                max_value=1,
            ),
        ]

    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Select features and label, dropping rows with any absent feature.

        Args:
            df: Canonical incident table

        Returns:
            DataFrame with the four feature columns and the label
        """
        selected = df[FEATURE_COLUMNS + [LABEL_COLUMN]]

        complete_mask = selected[FEATURE_COLUMNS].notna().all(axis=1)
        dropped = int((~complete_mask).sum())
        if dropped > 0:
            self.log_dropped_rows("missing_feature", dropped)
            logger.info(
                f"Listwise deletion removed {dropped} of {len(df)} rows with a missing feature",
                extra={"reason": "missing_feature", "count": dropped},
            )

        rows = selected[complete_mask].copy()
        for col in FEATURE_COLUMNS:
            rows[col] = rows[col].astype(str)
        rows[LABEL_COLUMN] = rows[LABEL_COLUMN].astype(int)
        return rows.reset_index(drop=True)

    def encode(self, df: pd.DataFrame) -> EncodedFeatures:
        """
        Encode incidents into model-ready rows.

        Invariant: len(result) + result.rows_dropped == len(df).
        """
        self._drop_reasons = {}
        rows = self.build_features(df)
        return EncodedFeatures(rows=rows, rows_dropped=len(df) - len(rows))


# =============================================================================
# Exception Classes
# =============================================================================


class UnknownCategoryError(ValueError):
    """Raised when a feature value is not part of the fitted vocabulary."""

    def __init__(self, feature: str, labels: list[str]):
        self.feature = feature
        self.labels = labels
        super().__init__(f"Unknown categories for '{feature}': {labels}")


# =============================================================================
# Convenience Functions
# =============================================================================


def encode_features(df: pd.DataFrame, config: Settings | None = None) -> EncodedFeatures:
    """Convenience function for encoding shooting features."""
    return ShootingFeatureEncoder(config).encode(df)
