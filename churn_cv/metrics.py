"""
Confusion-matrix based classification metrics.

Both the cross-validated and the single train/test evaluation paths reduce their
predictions to a `ConfusionMatrix` first, and every metric is computed from it.

Ratios with a zero denominator are defined as 0 instead of NaN. The metric names
that hit this convention are reported in `ClassificationMetrics.degenerate`.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Union

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfusionMatrix:
    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    @classmethod
    def from_labels(cls, truth, estimate, positive) -> "ConfusionMatrix":
        """
        Count predicted/true label pairs.

        Args:
            truth: True labels.
            estimate: Predicted labels, aligned with `truth`.
            positive: The label value treated as the positive class.
        """
        truth = np.asarray(truth)
        estimate = np.asarray(estimate)
        if truth.shape != estimate.shape:
            raise ValueError(
                f"truth and estimate differ in length: {truth.shape} vs {estimate.shape}"
            )

        actual_pos = truth == positive
        predicted_pos = estimate == positive
        return cls(
            tp=int((predicted_pos & actual_pos).sum()),
            fp=int((predicted_pos & ~actual_pos).sum()),
            tn=int((~predicted_pos & ~actual_pos).sum()),
            fn=int((~predicted_pos & actual_pos).sum()),
        )

    @classmethod
    def from_predictions(cls, records: Iterable, positive) -> "ConfusionMatrix":
        """Count records exposing `truth` and `estimate` fields."""
        records = list(records)
        return cls.from_labels(
            [r.truth for r in records],
            [r.estimate for r in records],
            positive,
        )

    def as_table(self, positive="positive", negative="negative") -> pd.DataFrame:
        """2x2 table of counts, rows keyed by predicted class, columns by true class."""
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index([positive, negative], name="predicted"),
            columns=pd.Index([positive, negative], name="truth"),
        )


@dataclass(frozen=True)
class ClassificationMetrics:
    accuracy: float
    precision: float
    recall: float
    f1: float
    confusion: ConfusionMatrix
    degenerate: FrozenSet[str] = field(default_factory=frozenset)

    def as_dict(self) -> dict:
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1,
            "confusion_matrix": {
                "tp": self.confusion.tp,
                "fp": self.confusion.fp,
                "tn": self.confusion.tn,
                "fn": self.confusion.fn,
            },
            "degenerate": sorted(self.degenerate),
        }


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _confusion(predictions, positive) -> ConfusionMatrix:
    if isinstance(predictions, ConfusionMatrix):
        return predictions
    if positive is None:
        raise ValueError("positive label is required to count prediction records")
    return ConfusionMatrix.from_predictions(predictions, positive)


def compute_metrics(
    predictions: Union[ConfusionMatrix, Iterable], positive=None
) -> ClassificationMetrics:
    """
    Accuracy, precision, recall and F1 for a set of predictions.

    Args:
        predictions: Either a ConfusionMatrix or an iterable of prediction records.
        positive: The positive label. Required unless a ConfusionMatrix is passed.

    Returns:
        ClassificationMetrics: All four metrics and the confusion matrix they came from.
    """
    cm = _confusion(predictions, positive)
    degenerate = set()

    if cm.total == 0:
        degenerate.add("accuracy")
    if cm.tp + cm.fp == 0:
        degenerate.add("precision")
    if cm.tp + cm.fn == 0:
        degenerate.add("recall")

    accuracy_ = _ratio(cm.tp + cm.tn, cm.total)
    precision = _ratio(cm.tp, cm.tp + cm.fp)
    recall = _ratio(cm.tp, cm.tp + cm.fn)
    if precision + recall == 0:
        degenerate.add("f1")
    f1 = _ratio(2 * precision * recall, precision + recall)

    if degenerate:
        logger.warning("Metrics defined as 0 by convention: %s", ", ".join(sorted(degenerate)))

    return ClassificationMetrics(
        accuracy=accuracy_,
        precision=precision,
        recall=recall,
        f1=f1,
        confusion=cm,
        degenerate=frozenset(degenerate),
    )


def accuracy(predictions: Union[ConfusionMatrix, Iterable], positive=None) -> float:
    """Accuracy alone, from the same confusion matrix `compute_metrics` uses."""
    cm = _confusion(predictions, positive)
    return _ratio(cm.tp + cm.tn, cm.total)
