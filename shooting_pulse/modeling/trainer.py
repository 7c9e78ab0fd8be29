"""
Shooting Pulse - Murder Flag Classifier Trainer

Fits a binomial logistic regression of the murder flag on the indicator-
expanded demographic features:

    P(is_murder = 1 | x) = 1 / (1 + exp(-(b0 + b . x)))

The fit is unpenalized maximum likelihood (scikit-learn LogisticRegression
with C=inf), with an intercept and one coefficient per non-reference category.
When no feature has a second category the intercept-only model is fitted
instead, which predicts the observed murder rate for every row.

Usage:
    from shooting_pulse.modeling import ClassifierTrainer

    trainer = ClassifierTrainer()
    model = trainer.train(encoded)
    model.predict_probability({"perp_age_group": "ADULT (25-44)", ...})
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.dummy import DummyClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression

from shooting_pulse.datasets.shooting.features import (
    LABEL_COLUMN,
    CategoryVocabulary,
    EncodedFeatures,
)
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "(Intercept)"


@dataclass(frozen=True)
class FittedModel:
    """A fitted logistic classifier together with the vocabulary it was fitted on."""

    vocabulary: CategoryVocabulary
    estimator: LogisticRegression | DummyClassifier
    n_observations: int
    converged: bool = True

    def predict_probabilities(self, rows: pd.DataFrame) -> np.ndarray:
        """Predicted P(is_murder = 1) for each row."""
        if len(rows) == 0:
            return np.empty(0, dtype=float)
        X = self.vocabulary.design_matrix(rows).to_numpy()
        return self.estimator.predict_proba(X)[:, 1]

    def predict_probability(self, row: Mapping[str, Any]) -> float:
        """Predicted P(is_murder = 1) for a single feature row."""
        frame = pd.DataFrame([{feature: row[feature] for feature in self.vocabulary.features}])
        return float(self.predict_probabilities(frame)[0])

    def coefficients(self) -> pd.Series:
        """Intercept and indicator coefficients, named after their design columns."""
        if isinstance(self.estimator, DummyClassifier):
            prior = float(self.estimator.class_prior_[1])
            return pd.Series([float(np.log(prior / (1 - prior)))], index=[INTERCEPT_NAME])
        values = [float(self.estimator.intercept_[0])] + [
            float(c) for c in self.estimator.coef_[0]
        ]
        return pd.Series(values, index=[INTERCEPT_NAME] + self.vocabulary.indicator_names)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/reporting."""
        return {
            "n_observations": self.n_observations,
            "converged": self.converged,
            "vocabulary": self.vocabulary.to_dict(),
            "coefficients": self.coefficients().to_dict(),
        }


class ClassifierTrainer:
    """
    Train the murder-flag classifier on encoded feature rows.

    Refuses to fit when there are fewer rows than parameters or when the
    label never varies.
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the trainer.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    def train(self, encoded: EncodedFeatures | pd.DataFrame) -> FittedModel:
        """
        Fit the logistic regression.

        Args:
            encoded: Encoded feature rows (EncodedFeatures or its rows DataFrame)

        Returns:
            FittedModel

        Raises:
            InsufficientDataError: If rows < indicator dimensions + 1 or the label
                is constant
        """
        rows = encoded.rows if isinstance(encoded, EncodedFeatures) else encoded

        vocabulary = CategoryVocabulary.from_frame(rows)
        n_params = vocabulary.n_indicators + 1

        if len(rows) < n_params:
            raise InsufficientDataError(
                f"{len(rows)} rows cannot fit {n_params} parameters "
                f"({vocabulary.n_indicators} indicators + intercept)"
            )

        labels = rows[LABEL_COLUMN].astype(int)
        if labels.nunique() < 2:
            raise InsufficientDataError(
                f"Label '{LABEL_COLUMN}' is constant ({labels.iloc[0] if len(labels) else 'empty'})"
            )

        X = vocabulary.design_matrix(rows).to_numpy()
        y = labels.to_numpy()

        if vocabulary.n_indicators == 0:
            return self._fit_intercept_only(vocabulary, X, y)

        modeling = self.config.modeling
        estimator = LogisticRegression(
            C=np.inf,
            solver=modeling.solver,
            max_iter=modeling.max_iter,
            tol=modeling.tolerance,
        )

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            estimator.fit(X, y)
        converged = True
        for w in caught:
            if issubclass(w.category, ConvergenceWarning):
                converged = False
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

        if not converged:
            logger.warning(
                "Logistic regression did not converge; coefficients may be unstable",
                extra={"max_iter": modeling.max_iter, "n_observations": len(rows)},
            )

        model = FittedModel(
            vocabulary=vocabulary,
            estimator=estimator,
            n_observations=len(rows),
            converged=converged,
        )

        logger.info(
            f"Fitted logistic regression on {len(rows)} rows with {n_params} parameters",
            extra={
                "n_observations": len(rows),
                "n_parameters": n_params,
                "vocabulary_version": vocabulary.version,
                "converged": converged,
            },
        )

        return model

    def _fit_intercept_only(
        self,
        vocabulary: CategoryVocabulary,
        X: np.ndarray,
        y: np.ndarray,
    ) -> FittedModel:
        """
        Fit the intercept-only model when no feature has a second category.

        The maximum likelihood estimate is the label mean, so every row is
        predicted the observed murder rate.
        """
        estimator = DummyClassifier(strategy="prior")
        estimator.fit(X, y)

        logger.warning(
            "Every feature has a single category; fitted intercept-only model",
            extra={"n_observations": len(y), "murder_rate": float(y.mean())},
        )

        return FittedModel(
            vocabulary=vocabulary,
            estimator=estimator,
            n_observations=len(y),
        )


# =============================================================================
# Exception Classes
# =============================================================================


class InsufficientDataError(Exception):
    """Raised when there is not enough usable data to fit or evaluate a model."""


# =============================================================================
# Convenience Functions
# =============================================================================


def train_classifier(
    encoded: EncodedFeatures | pd.DataFrame,
    config: Settings | None = None,
) -> FittedModel:
    """Convenience function for training the murder-flag classifier."""
    return ClassifierTrainer(config).train(encoded)
