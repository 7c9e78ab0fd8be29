"""
Shooting Pulse - Classifier Evaluator

Thresholds predicted probabilities and scores them against the true labels.

A row is classified as Death only when its probability is strictly greater
than the threshold; a probability equal to the threshold is Non-Death.

Usage:
    from shooting_pulse.modeling import Evaluator

    result = Evaluator().evaluate(model, encoded)
    print(result.confusion_matrix)
    print(f"Accuracy: {result.accuracy:.2f}%")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from shooting_pulse.datasets.shooting.features import LABEL_COLUMN, EncodedFeatures
from shooting_pulse.modeling.trainer import InsufficientDataError
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

CLASS_LABELS = ["Non-Death", "Death"]


class ProbabilityModel(Protocol):
    """Anything that returns P(is_murder = 1) for a frame of feature rows."""

    def predict_probabilities(self, rows: pd.DataFrame) -> np.ndarray: ...


@dataclass(frozen=True)
class EvaluationResult:
    """Confusion matrix and accuracy of a thresholded classifier."""

    confusion_matrix: pd.DataFrame
    accuracy: float
    threshold: float
    total: int

    @property
    def true_negatives(self) -> int:
        return int(self.confusion_matrix.loc["Non-Death", "Non-Death"])

    @property
    def false_positives(self) -> int:
        return int(self.confusion_matrix.loc["Non-Death", "Death"])

    @property
    def false_negatives(self) -> int:
        return int(self.confusion_matrix.loc["Death", "Non-Death"])

    @property
    def true_positives(self) -> int:
        return int(self.confusion_matrix.loc["Death", "Death"])

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging/reporting."""
        return {
            "accuracy": self.accuracy,
            "threshold": self.threshold,
            "total": self.total,
            "confusion_matrix": {
                actual: {
                    predicted: int(self.confusion_matrix.loc[actual, predicted])
                    for predicted in CLASS_LABELS
                }
                for actual in CLASS_LABELS
            },
        }


class Evaluator:
    """Score a fitted classifier on labelled feature rows."""

    def __init__(self, config: Settings | None = None):
        """
        Initialize the evaluator.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    def evaluate(
        self,
        model: ProbabilityModel,
        encoded: EncodedFeatures | pd.DataFrame,
        threshold: float | None = None,
    ) -> EvaluationResult:
        """
        Classify each row and compare against its label.

        Args:
            model: Fitted model exposing predict_probabilities()
            encoded: Encoded feature rows with the is_murder label
            threshold: Decision threshold (defaults to config.modeling.threshold, 0.5)

        Returns:
            EvaluationResult with a 2x2 confusion matrix (rows actual,
            columns predicted) and accuracy as a percentage

        Raises:
            InsufficientDataError: If there are no rows to evaluate
        """
        rows = encoded.rows if isinstance(encoded, EncodedFeatures) else encoded
        if threshold is None:
            threshold = self.config.modeling.threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be within [0, 1], got {threshold}")

        if len(rows) == 0:
            raise InsufficientDataError("No rows to evaluate")

        probabilities = np.asarray(model.predict_probabilities(rows), dtype=float)
        predicted = classify(probabilities, threshold)
        actual = rows[LABEL_COLUMN].astype(int).to_numpy()

        matrix = confusion_matrix(actual, predicted, labels=[0, 1])
        cm = pd.DataFrame(
            matrix,
            index=pd.Index(CLASS_LABELS, name="Actual"),
            columns=pd.Index(CLASS_LABELS, name="Predicted"),
        )

        total = int(matrix.sum())
        accuracy = float(np.trace(matrix)) / total * 100

        result = EvaluationResult(
            confusion_matrix=cm,
            accuracy=accuracy,
            threshold=threshold,
            total=total,
        )

        logger.info(
            f"Evaluated classifier on {total} rows: accuracy {accuracy:.2f}%",
            extra=result.to_dict(),
        )

        return result


def classify(probabilities: np.ndarray, threshold: float = 0.5) -> np.ndarray:
    """Map probabilities to 1 (Death) when strictly above threshold, else 0."""
    return (np.asarray(probabilities, dtype=float) > threshold).astype(int)


# =============================================================================
# Convenience Functions
# =============================================================================


def evaluate_classifier(
    model: ProbabilityModel,
    encoded: EncodedFeatures | pd.DataFrame,
    threshold: float | None = None,
    config: Settings | None = None,
) -> EvaluationResult:
    """Convenience function for evaluating the murder-flag classifier."""
    return Evaluator(config).evaluate(model, encoded, threshold)
