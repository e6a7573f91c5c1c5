import logging
from dataclasses import dataclass
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from churn_cv.classifiers import ClassifierFactory
from churn_cv.errors import (
    ClassifierFitFailure,
    FoldError,
    InsufficientData,
    InvalidConfiguration,
)
from churn_cv.folds import FoldAssignment, assign_folds
from churn_cv.metrics import ClassificationMetrics, compute_metrics
from churn_cv.preprocessing import FittedPreprocessor


logger = logging.getLogger(__name__)

METRIC_COLUMNS = ["accuracy", "precision", "recall", "f1"]

Preprocess = Callable[[pd.DataFrame], Tuple[FittedPreprocessor, pd.DataFrame]]


class PredictionRecord(NamedTuple):
    fold_id: int
    row: int
    truth: Any
    estimate: Any


@dataclass(frozen=True)
class CrossValidationResult:
    """
    Held-out predictions from every fold of a cross-validation run.

    Attributes:
        predictions (tuple): One PredictionRecord per record of the dataset, ordered by fold id.
        positive: The label value treated as the positive class.
        n_folds (int): Number of folds.
        classifier_name (str): Name of the evaluated classifier.
    """

    predictions: Tuple[PredictionRecord, ...]
    positive: Any
    n_folds: int
    classifier_name: str = ""

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.predictions, columns=PredictionRecord._fields)

    def metrics(self) -> ClassificationMetrics:
        """Metrics pooled over the predictions of all folds."""
        return compute_metrics(self.predictions, self.positive)

    def fold_metrics(self) -> pd.DataFrame:
        """One row of metrics per fold."""
        rows = []
        for fold_id in range(self.n_folds):
            records = [r for r in self.predictions if r.fold_id == fold_id]
            fold = compute_metrics(records, self.positive)
            rows.append({
                "fold_id": fold_id,
                "n": len(records),
                "accuracy": fold.accuracy,
                "precision": fold.precision,
                "recall": fold.recall,
                "f1": fold.f1,
            })
        return pd.DataFrame(rows).set_index("fold_id")

    def summary(self) -> pd.DataFrame:
        """Mean and standard error of each metric across folds."""
        per_fold = self.fold_metrics()[METRIC_COLUMNS]
        summary = per_fold.agg(["mean", "std"]).T
        summary["std_err"] = summary.pop("std") / np.sqrt(self.n_folds)
        summary["n"] = self.n_folds
        summary.index.name = "metric"
        return summary


def _evaluate_fold(
    fold_id: int,
    analysis: pd.DataFrame,
    assessment: pd.DataFrame,
    preprocessor: Preprocess,
    classifier: ClassifierFactory,
    outcome: str,
) -> List[PredictionRecord]:
    if analysis.empty:
        raise InsufficientData(fold_id, "analysis partition is empty")

    logger.debug(
        "Fold %d: fitting %s on %d rows, assessing %d rows",
        fold_id, classifier.name, len(analysis), len(assessment),
    )

    try:
        fitted, prepared_analysis = preprocessor(analysis.drop(columns=[outcome]))
        prepared_assessment = fitted.apply(assessment.drop(columns=[outcome]))
    except Exception as exc:
        raise FoldError(fold_id, f"preprocessing failed: {exc}") from exc

    try:
        model = classifier.fit(prepared_analysis, analysis[outcome])
        estimates = classifier.predict(model, prepared_assessment)
    except Exception as exc:
        raise ClassifierFitFailure(fold_id, f"{classifier.name} failed: {exc}") from exc

    return [
        PredictionRecord(fold_id, int(row), truth, estimate)
        for row, truth, estimate in zip(assessment.index, assessment[outcome], estimates)
    ]


def _check_outcome(data: pd.DataFrame, outcome: str, positive):
    if outcome not in data.columns:
        raise InvalidConfiguration(f"outcome column {outcome!r} not in dataset")

    levels = data[outcome].unique()
    if len(levels) != 2:
        raise InvalidConfiguration(
            f"outcome column {outcome!r} must hold exactly two values, found {list(levels)}"
        )
    if positive not in levels:
        raise InvalidConfiguration(
            f"positive label {positive!r} not among outcome values {list(levels)}"
        )


def cross_validate(
    data: pd.DataFrame,
    folds: FoldAssignment,
    preprocessor: Preprocess,
    classifier: ClassifierFactory,
    outcome: str,
    positive,
    n_jobs: Optional[int] = 1,
    backend: Optional[str] = None,
) -> CrossValidationResult:
    """
    Fit and assess `classifier` once per fold.

    For every fold the preprocessor is fitted on the analysis records only, then
    applied unchanged to the held-out assessment records. A fresh model is fitted on
    the prepared analysis records and predicts the assessment records. Folds share no
    state, so with `n_jobs` other than 1 they are run through `joblib.Parallel`.

    Args:
        data (pd.DataFrame): Predictors plus the outcome column.
        folds (FoldAssignment): Fold id of every row of `data`.
        preprocessor: Callable fitting preprocessing on a predictor frame, returning the
            fitted preprocessing and the prepared frame.
        classifier (ClassifierFactory): The classifier to evaluate.
        outcome (str): Name of the outcome column.
        positive: Outcome value treated as the positive class.
        n_jobs (int, optional): Number of folds evaluated concurrently. Defaults to 1.
        backend (str, optional): joblib backend used when running folds concurrently.

    Returns:
        CrossValidationResult: Held-out predictions for every row of `data`.

    Raises:
        InvalidConfiguration: Before any fold is fitted, if `folds` does not match
            `data` or the outcome column is unusable.
        FoldError: If any fold fails. The whole run is aborted.
    """
    folds.validate(len(data))
    _check_outcome(data, outcome, positive)

    # positional rows, so prediction records point back into `data`
    data = data.reset_index(drop=True)

    logger.info(
        "Cross-validating %s with %d folds on %d records",
        classifier.name, folds.n_folds, len(data),
    )
    fold_predictions = Parallel(n_jobs=n_jobs, backend=backend)(
        delayed(_evaluate_fold)(
            fold_id,
            data.iloc[analysis_idx],
            data.iloc[assessment_idx],
            preprocessor,
            classifier,
            outcome,
        )
        for fold_id, analysis_idx, assessment_idx in folds
    )

    predictions = tuple(record for fold in fold_predictions for record in fold)
    return CrossValidationResult(
        predictions=predictions,
        positive=positive,
        n_folds=folds.n_folds,
        classifier_name=classifier.name,
    )


class CrossValidator:
    """
    Partition a dataset into folds and cross-validate classifiers on it.

    Args:
        n_folds (int): Number of folds. Defaults to 10.
        seed (int, optional): Shuffle seed, so classifiers can be compared on identical folds.
        n_jobs (int, optional): Number of folds evaluated concurrently. Defaults to 1.
        backend (str, optional): joblib backend used when `n_jobs` is not 1.
    """

    def __init__(
        self,
        n_folds: int = 10,
        seed: Optional[int] = None,
        n_jobs: Optional[int] = 1,
        backend: Optional[str] = None,
    ):
        if n_folds < 2:
            raise InvalidConfiguration(f"need at least 2 folds, got {n_folds}")
        self.n_folds = n_folds
        self.seed = seed
        self.n_jobs = n_jobs
        self.backend = backend

    def split(self, data: pd.DataFrame) -> FoldAssignment:
        return assign_folds(len(data), self.n_folds, seed=self.seed)

    def evaluate(
        self,
        data: pd.DataFrame,
        preprocessor: Preprocess,
        classifier: ClassifierFactory,
        outcome: str,
        positive,
    ) -> CrossValidationResult:
        folds = self.split(data)
        result = cross_validate(
            data,
            folds,
            preprocessor,
            classifier,
            outcome,
            positive,
            n_jobs=self.n_jobs,
            backend=self.backend,
        )

        pooled = result.metrics()
        logger.info(
            "%s: %d-fold accuracy=%.4f precision=%.4f recall=%.4f f1=%.4f",
            classifier.name, self.n_folds,
            pooled.accuracy, pooled.precision, pooled.recall, pooled.f1,
        )
        return result
