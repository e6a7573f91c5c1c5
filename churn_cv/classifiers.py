from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import LabelEncoder
from xgboost import XGBClassifier


@dataclass
class TrainedModel:
    """
    A fitted estimator together with what it needs to predict.

    Attributes:
        estimator: The fitted scikit-learn compatible estimator.
        label_encoder (LabelEncoder): Maps the original labels to the 0/1 targets the
            estimator was fitted on.
        columns (tuple): Feature columns seen at fit time, in order.
    """

    estimator: Any
    label_encoder: LabelEncoder
    columns: Tuple[str, ...]

    @property
    def classes(self) -> np.ndarray:
        return self.label_encoder.classes_


class ClassifierFactory(ABC):
    """
    A trainable binary classifier.

    Factories hold hyperparameters only. Every call to `fit` builds a new model, so a
    factory can be shared between folds without sharing any fitted state.
    """

    name: str = "classifier"

    @abstractmethod
    def fit(self, features: pd.DataFrame, labels: pd.Series) -> TrainedModel:
        """Fit a new model on `features` and `labels`."""

    @abstractmethod
    def predict(self, model: TrainedModel, features: pd.DataFrame) -> np.ndarray:
        """Predict a label for every row of `features`."""

    def predict_proba(self, model: TrainedModel, features: pd.DataFrame, positive) -> np.ndarray:
        """Probability of `positive` for every row of `features`."""
        raise NotImplementedError(f"{self.name} does not produce probabilities")

    def __repr__(self):
        return f"{type(self).__name__}()"


class SklearnClassifierFactory(ClassifierFactory):
    """
    Shared fit/predict for scikit-learn style estimators.

    Labels are encoded with `LabelEncoder` before fitting, so estimators that require
    numeric targets (XGBoost) accept "Yes"/"No" outcomes, and predictions are decoded
    back to the original labels.
    """

    @abstractmethod
    def build_estimator(self):
        """Return a new, unfitted estimator."""

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> TrainedModel:
        label_encoder = LabelEncoder()
        targets = label_encoder.fit_transform(np.asarray(labels))
        if len(label_encoder.classes_) != 2:
            raise ValueError(
                f"{self.name} needs exactly two classes to fit, got {list(label_encoder.classes_)}"
            )

        estimator = self.build_estimator()
        estimator.fit(features, targets)
        return TrainedModel(
            estimator=estimator,
            label_encoder=label_encoder,
            columns=tuple(features.columns),
        )

    def predict(self, model: TrainedModel, features: pd.DataFrame) -> np.ndarray:
        targets = model.estimator.predict(features[list(model.columns)])
        return model.label_encoder.inverse_transform(np.asarray(targets).astype(int))

    def predict_proba(self, model: TrainedModel, features: pd.DataFrame, positive) -> np.ndarray:
        column = int(model.label_encoder.transform([positive])[0])
        return model.estimator.predict_proba(features[list(model.columns)])[:, column]


class LogisticRegressionFactory(SklearnClassifierFactory):
    name = "LogisticRegression"

    def __init__(self, C: float = 1.0, max_iter: int = 1000):
        self.C = C
        self.max_iter = max_iter

    def build_estimator(self):
        return LogisticRegression(C=self.C, max_iter=self.max_iter)

    def __repr__(self):
        return f"LogisticRegressionFactory(C={self.C}, max_iter={self.max_iter})"


class RandomForestFactory(SklearnClassifierFactory):
    name = "RandomForest"

    def __init__(
        self,
        n_estimators: int = 500,
        random_state: Optional[int] = 42,
        n_jobs: Optional[int] = None,
    ):
        self.n_estimators = n_estimators
        self.random_state = random_state
        self.n_jobs = n_jobs

    def build_estimator(self):
        return RandomForestClassifier(
            n_estimators=self.n_estimators,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )

    def __repr__(self):
        return (
            f"RandomForestFactory(n_estimators={self.n_estimators}, "
            f"random_state={self.random_state})"
        )


class XGBoostFactory(SklearnClassifierFactory):
    name = "XGBoost"

    def __init__(self, n_estimators: int = 100, max_depth: int = 6, learning_rate: float = 0.3):
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.learning_rate = learning_rate

    def build_estimator(self):
        return XGBClassifier(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            learning_rate=self.learning_rate,
            eval_metric="logloss",
        )

    def __repr__(self):
        return (
            f"XGBoostFactory(n_estimators={self.n_estimators}, max_depth={self.max_depth}, "
            f"learning_rate={self.learning_rate})"
        )
