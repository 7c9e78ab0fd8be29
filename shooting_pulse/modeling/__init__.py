"""
Shooting Pulse - Modeling

Logistic classifier for the murder flag:
    - ClassifierTrainer / FittedModel: unpenalized logistic regression on
      indicator-expanded demographic features
    - Evaluator / EvaluationResult: thresholding, confusion matrix, accuracy
"""

from shooting_pulse.modeling.evaluator import (
    CLASS_LABELS,
    EvaluationResult,
    Evaluator,
    classify,
    evaluate_classifier,
)
from shooting_pulse.modeling.trainer import (
    ClassifierTrainer,
    FittedModel,
    InsufficientDataError,
    train_classifier,
)

__all__ = [
    # Trainer
    "ClassifierTrainer",
    "FittedModel",
    "InsufficientDataError",
    "train_classifier",
    # Evaluator
    "CLASS_LABELS",
    "EvaluationResult",
    "Evaluator",
    "classify",
    "evaluate_classifier",
]
