"""
Pytest configuration and fixtures for churn_cv tests
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from churn_cv.classifiers import ClassifierFactory


class ThresholdClassifier(ClassifierFactory):
    """Predicts "Yes" above the midpoint between the two classes on one column."""

    name = "Threshold"

    def __init__(self, column: str = "x"):
        self.column = column

    def fit(self, features, labels):
        values = features[self.column].to_numpy()
        labels = np.asarray(labels)
        return (values[labels == "No"].max() + values[labels == "Yes"].min()) / 2

    def predict(self, model, features):
        return np.where(features[self.column].to_numpy() > model, "Yes", "No")


class FailingClassifier(ClassifierFactory):
    name = "Failing"

    def fit(self, features, labels):
        raise RuntimeError("solver did not converge")

    def predict(self, model, features):
        raise AssertionError("predict must not be reached")


@pytest.fixture
def threshold_classifier():
    return ThresholdClassifier()


@pytest.fixture
def failing_classifier():
    return FailingClassifier()


@pytest.fixture
def separable_df():
    """100 records, perfectly separable on `x`: "No" in [0, 1), "Yes" in [10, 11)."""
    rng = np.random.default_rng(7)
    negatives = rng.uniform(0, 1, size=50)
    positives = rng.uniform(10, 11, size=50)
    return pd.DataFrame({
        "x": np.concatenate([negatives, positives]),
        "Churn": ["No"] * 50 + ["Yes"] * 50,
    })


@pytest.fixture
def churn_df():
    """Small Telco-like dataset with categorical and numeric predictors."""
    rng = np.random.default_rng(0)
    n = 200
    contract = rng.choice(["Month-to-month", "One year", "Two year"], size=n, p=[0.5, 0.3, 0.2])
    tenure = rng.integers(1, 72, size=n)
    monthly = rng.uniform(20, 110, size=n).round(2)
    churn = np.where(
        ((contract == "Month-to-month") & (tenure < 24)) | (rng.uniform(size=n) < 0.05),
        "Yes",
        "No",
    )
    return pd.DataFrame({
        "gender": rng.choice(["Male", "Female"], size=n),
        "SeniorCitizen": rng.integers(0, 2, size=n),
        "Contract": contract,
        "tenure": tenure,
        "MonthlyCharges": monthly,
        "TotalCharges": (monthly * tenure).round(2),
        "Churn": churn,
    })


@pytest.fixture
def churn_csv(tmp_path, churn_df):
    """The churn dataset as a raw CSV with an id column, a blank total and a missing value."""
    raw = churn_df.copy()
    raw.insert(0, "customerID", [f"{i:04d}-ABCDE" for i in range(len(raw))])
    raw["TotalCharges"] = raw["TotalCharges"].astype(str)
    raw.loc[3, "TotalCharges"] = " "
    raw.loc[5, "gender"] = None

    path = tmp_path / "churn.csv"
    raw.to_csv(path, index=False)
    return path
