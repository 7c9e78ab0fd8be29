"""
Shooting Pulse - Pipeline Driver

Composes the stages explicitly. Each stage takes a DataFrame and returns a
new one; nothing is shared between stages except what is passed along.

    raw rows -> ShootingPreprocessor -> incidents
    incidents -> IncidentAggregator -> monthly, yearly, cross_tab
    incidents -> ShootingFeatureEncoder -> encoded
    encoded -> ClassifierTrainer -> model
    model, encoded -> Evaluator -> evaluation

Row-level problems (malformed dates, missing features) are reported in the
result and do not stop the run. Training and evaluation failures do.

Usage:
    from shooting_pulse.pipeline import run_pipeline

    result = run_pipeline(raw_df)
    result.monthly          # period, incident_count, death_count
    result.evaluation.accuracy
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from shooting_pulse.datasets.base import FeatureBuildResult, PreprocessingResult
from shooting_pulse.datasets.shooting.aggregate import Granularity, IncidentAggregator
from shooting_pulse.datasets.shooting.features import EncodedFeatures, ShootingFeatureEncoder
from shooting_pulse.datasets.shooting.preprocess import ShootingPreprocessor
from shooting_pulse.modeling.evaluator import EvaluationResult, Evaluator
from shooting_pulse.modeling.trainer import ClassifierTrainer, FittedModel
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything one pipeline run produces."""

    incidents: pd.DataFrame
    monthly: pd.DataFrame
    yearly: pd.DataFrame
    cross_tab: pd.DataFrame
    encoded: EncodedFeatures
    model: FittedModel
    evaluation: EvaluationResult
    preprocessing: PreprocessingResult
    feature_build: FeatureBuildResult

    @property
    def excluded_records(self) -> list[str]:
        """Keys of raw rows excluded for malformed occurrence dates."""
        return self.preprocessing.excluded_keys.get("invalid_date", [])

    def to_summary(self) -> dict[str, Any]:
        """Summary dictionary for reporting."""
        return {
            "rows_input": self.preprocessing.rows_input,
            "incidents": len(self.incidents),
            "malformed_records": self.preprocessing.drop_reasons.get("invalid_date", 0),
            "excluded_keys": self.excluded_records,
            "missing_key_records": self.preprocessing.drop_reasons.get("missing_key", 0),
            "unrecognized_murder_flags": self.preprocessing.defaulted_keys.get(
                "unrecognized_murder_flag", []
            ),
            "monthly_buckets": len(self.monthly),
            "yearly_buckets": len(self.yearly),
            "cross_tab_cells": len(self.cross_tab),
            "model_rows": len(self.encoded),
            "rows_dropped_missing_feature": self.encoded.rows_dropped,
            "model": self.model.to_dict(),
            "evaluation": self.evaluation.to_dict(),
        }


class ShootingPipeline:
    """Run normalization, aggregation, encoding, training and evaluation in order."""

    def __init__(self, config: Settings | None = None):
        self.config = config or get_config()
        self.preprocessor = ShootingPreprocessor(self.config)
        self.aggregator = IncidentAggregator(self.config)
        self.encoder = ShootingFeatureEncoder(self.config)
        self.trainer = ClassifierTrainer(self.config)
        self.evaluator = Evaluator(self.config)

    def run(self, raw: pd.DataFrame, threshold: float | None = None) -> PipelineResult:
        """
        Run the full pipeline over raw source rows.

        Args:
            raw: Raw NYPD shooting incident rows
            threshold: Decision threshold (defaults to config.modeling.threshold)

        Returns:
            PipelineResult

        Raises:
            PipelineError: If preprocessing or feature building fails as a whole
            InsufficientDataError: If the model cannot be fitted or evaluated
        """
        preprocessing = self.preprocessor.run(raw)
        if not preprocessing.success:
            raise PipelineError("preprocess", preprocessing.error_message)
        incidents = self.preprocessor.get_data()

        monthly = self.aggregator.aggregate_by_time_bucket(incidents, Granularity.MONTH)
        yearly = self.aggregator.aggregate_by_time_bucket(incidents, Granularity.YEAR)
        cross_tab = self.aggregator.cross_tabulate(incidents)

        feature_build = self.encoder.run(incidents)
        if not feature_build.success:
            raise PipelineError("features", feature_build.error_message)
        encoded = EncodedFeatures(
            rows=self.encoder.get_data(),
            rows_dropped=feature_build.rows_dropped,
        )

        model = self.trainer.train(encoded)
        evaluation = self.evaluator.evaluate(model, encoded, threshold)

        logger.info(
            f"Pipeline complete: {len(incidents)} incidents, {len(encoded)} model rows, "
            f"accuracy {evaluation.accuracy:.2f}%",
            extra={
                "malformed_records": preprocessing.drop_reasons.get("invalid_date", 0),
                "rows_dropped_missing_feature": encoded.rows_dropped,
            },
        )

        return PipelineResult(
            incidents=incidents,
            monthly=monthly,
            yearly=yearly,
            cross_tab=cross_tab,
            encoded=encoded,
            model=model,
            evaluation=evaluation,
            preprocessing=preprocessing,
            feature_build=feature_build,
        )


# =============================================================================
# Exception Classes
# =============================================================================


class PipelineError(Exception):
    """Raised when a pipeline stage fails as a whole."""

    def __init__(self, stage: str, message: str | None):
        self.stage = stage
        super().__init__(f"Stage '{stage}' failed: {message}")


# =============================================================================
# Convenience Functions
# =============================================================================


def run_pipeline(
    raw: pd.DataFrame,
    threshold: float | None = None,
    config: Settings | None = None,
) -> PipelineResult:
    """Convenience function for running the full pipeline."""
    return ShootingPipeline(config).run(raw, threshold)
