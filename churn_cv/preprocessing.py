"""
Preprocessing steps with a two-stage fit/apply contract.

Every step learns its state from the frame passed to `fit` and returns a fitted
step. Fitted steps only ever transform; they never look at the data they are
applied to when deciding how to transform it. Steps are chained with `compose`.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import reduce
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import OneHotEncoder, StandardScaler


logger = logging.getLogger(__name__)

CATEGORICAL_DTYPES = ["object", "category", "bool"]


def categorical_columns(frame: pd.DataFrame) -> Tuple[str, ...]:
    return tuple(frame.select_dtypes(include=CATEGORICAL_DTYPES).columns)


def numeric_columns(frame: pd.DataFrame) -> Tuple[str, ...]:
    return tuple(frame.select_dtypes(include="number").columns)


class Step(ABC):
    @abstractmethod
    def fit(self, frame: pd.DataFrame) -> "FittedStep":
        """Learn this step's state from `frame` only."""


class FittedStep(ABC):
    @abstractmethod
    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Transform `frame` with the learned state, returning a new frame."""


@dataclass(frozen=True)
class FittedDummyEncoder(FittedStep):
    columns: Tuple[str, ...]
    encoder: Optional[OneHotEncoder]

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        if self.encoder is None:
            return frame.copy()

        encoded = pd.DataFrame(
            # bool and object levels are matched by their string form
            self.encoder.transform(frame[list(self.columns)].astype(str)),
            columns=self.encoder.get_feature_names_out(list(self.columns)),
            index=frame.index,
        )
        return pd.concat([frame.drop(columns=list(self.columns)), encoded], axis=1)


class DummyEncoder(Step):
    """
    Replace categorical predictors with indicator columns.

    Levels are learned from the fitting frame. With `drop="first"` the first level of
    each column is the reference level, and levels never seen during fitting encode as
    all zeros.
    """

    def __init__(self, drop: Optional[str] = "first"):
        self.drop = drop

    def fit(self, frame: pd.DataFrame) -> FittedDummyEncoder:
        columns = categorical_columns(frame)
        if not columns:
            return FittedDummyEncoder(columns=(), encoder=None)

        encoder = OneHotEncoder(drop=self.drop, handle_unknown="ignore", sparse_output=False)
        encoder.fit(frame[list(columns)].astype(str))
        return FittedDummyEncoder(columns=columns, encoder=encoder)


@dataclass(frozen=True)
class FittedMeanImputer(FittedStep):
    columns: Tuple[str, ...]
    imputer: Optional[SimpleImputer]

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        frame = frame.copy()
        if self.imputer is None:
            return frame

        values = frame[list(self.columns)].replace([np.inf, -np.inf], np.nan)
        frame[list(self.columns)] = self.imputer.transform(values)
        return frame


class MeanImputer(Step):
    """Fill missing (or infinite) numeric values with the fitting frame's column means."""

    def fit(self, frame: pd.DataFrame) -> FittedMeanImputer:
        columns = numeric_columns(frame)
        if not columns:
            return FittedMeanImputer(columns=(), imputer=None)

        imputer = SimpleImputer(strategy="mean", keep_empty_features=True)
        imputer.fit(frame[list(columns)].replace([np.inf, -np.inf], np.nan))
        return FittedMeanImputer(columns=columns, imputer=imputer)


@dataclass(frozen=True)
class FittedNormalizer(FittedStep):
    columns: Tuple[str, ...]
    scaler: Optional[StandardScaler]

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        frame = frame.copy()
        if self.scaler is None:
            return frame

        frame[list(self.columns)] = self.scaler.transform(frame[list(self.columns)])
        return frame


class Normalizer(Step):
    """Center and scale numeric predictors to the fitting frame's mean and standard deviation."""

    def fit(self, frame: pd.DataFrame) -> FittedNormalizer:
        columns = numeric_columns(frame)
        if not columns:
            return FittedNormalizer(columns=(), scaler=None)

        scaler = StandardScaler()
        scaler.fit(frame[list(columns)])
        return FittedNormalizer(columns=columns, scaler=scaler)


@dataclass(frozen=True)
class FittedPreprocessor:
    steps: Tuple[FittedStep, ...]

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        return reduce(lambda prepared, step: step.apply(prepared), self.steps, frame)


class Preprocessor:
    """
    A chain of steps fitted one after another.

    Calling the preprocessor on an analysis frame fits the first step on it, applies it,
    fits the next step on the result and so on. It returns the fitted chain together
    with the prepared analysis frame. The fitted chain is then applied, unchanged, to
    any held-out frame.
    """

    def __init__(self, steps: Sequence[Step]):
        self.steps = tuple(steps)

    def __call__(self, analysis: pd.DataFrame) -> Tuple[FittedPreprocessor, pd.DataFrame]:
        fitted_steps = []
        prepared = analysis
        for step in self.steps:
            fitted = step.fit(prepared)
            prepared = fitted.apply(prepared)
            fitted_steps.append(fitted)

        logger.debug(
            "Fitted %d preprocessing steps on %d rows, %d columns out",
            len(fitted_steps), len(analysis), prepared.shape[1],
        )
        return FittedPreprocessor(tuple(fitted_steps)), prepared


def compose(*steps: Step) -> Preprocessor:
    return Preprocessor(steps)


def default_preprocessor() -> Preprocessor:
    """Dummy-encode categorical predictors, then impute and normalize numeric ones."""
    return compose(DummyEncoder(), MeanImputer(), Normalizer())
