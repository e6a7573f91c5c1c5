import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import joblib
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from sklearn.model_selection import train_test_split

from churn_cv.classifiers import ClassifierFactory, TrainedModel
from churn_cv.cross_validation import CrossValidationResult, CrossValidator
from churn_cv.metrics import ClassificationMetrics, ConfusionMatrix, accuracy, compute_metrics
from churn_cv.preprocessing import FittedPreprocessor, Preprocessor, default_preprocessor
from churn_cv.processing import OUTCOME


logger = logging.getLogger(__name__)


@dataclass
class Split:
    train: pd.DataFrame
    test: pd.DataFrame


@dataclass
class FittedWorkflow:
    """Preprocessing and model fitted together on the training split."""

    preprocessor: FittedPreprocessor
    model: TrainedModel


class ModelTrainer:
    def __init__(
        self,
        df: pd.DataFrame,
        classifier: ClassifierFactory,
        outcome: str = OUTCOME,
        positive="Yes",
        preprocessor: Optional[Preprocessor] = None,
        test_size: float = 0.2,
        random_state: int = 42,
        results_dir: str = "output",
        models_dir: str = "models",
    ):
        """
        Initialize the ModelTrainer with the dataset, classifier, and output directories.

        Args:
            df (pd.DataFrame): The cleaned dataset, predictors plus the outcome column.
            classifier (ClassifierFactory): The classifier to cross-validate, train and evaluate.
            outcome (str, optional): Name of the outcome column. Defaults to "Churn".
            positive (optional): Outcome value treated as the positive class. Defaults to "Yes".
            preprocessor (Preprocessor, optional): Preprocessing fitted on training data only.
                Defaults to `default_preprocessor()`.
            test_size (float, optional): Share of records held out for the final test.
                Defaults to 0.2.
            random_state (int, optional): Seed for the train/test split and the folds.
                Defaults to 42.
            results_dir (str, optional): Where metrics and plots are written.
            models_dir (str, optional): Where fitted workflows are written.

        Attributes:
            name (str): The name of the classifier.
            splits (Split or None): The training and testing data splits.
            workflow (FittedWorkflow or None): Preprocessing and model fitted on the training split.
            cv_result (CrossValidationResult or None): Result of the last cross-validation run.
        """
        self.name = classifier.name
        self.df = df
        self.classifier = classifier
        self.outcome = outcome
        self.positive = positive
        self.preprocessor = preprocessor or default_preprocessor()
        self.test_size = test_size
        self.random_state = random_state

        self.splits = None
        self.workflow = None
        self.cv_result = None

        self.results_dir = Path(results_dir)
        self.models_dir = Path(models_dir)

        self.results_dir.mkdir(exist_ok=True, parents=True)
        self.models_dir.mkdir(exist_ok=True, parents=True)

    def split(self) -> Split:
        """
        Split the dataset into training and testing sets, stratified on the outcome.

        No preprocessing happens here: preprocessing is fitted later, on training
        records only.
        """
        train, test = train_test_split(
            self.df,
            test_size=self.test_size,
            random_state=self.random_state,
            stratify=self.df[self.outcome],
        )
        self.splits = Split(train=train.reset_index(drop=True), test=test.reset_index(drop=True))
        logger.info("Split %d records: %d train, %d test", len(self.df), len(train), len(test))
        return self.splits

    def cross_validate(
        self, n_folds: int = 10, seed: Optional[int] = None, n_jobs: Optional[int] = 1
    ) -> CrossValidationResult:
        """
        Cross-validate the classifier on the training split.

        The per-fold summary (mean and standard error of each metric) is saved as JSON
        to the results directory.

        Args:
            n_folds (int, optional): Number of folds. Defaults to 10.
            seed (int, optional): Fold shuffle seed. Defaults to `random_state`.
            n_jobs (int, optional): Number of folds evaluated concurrently. Defaults to 1.

        Returns:
            CrossValidationResult: Held-out predictions for every training record.
        """
        if self.splits is None:
            self.split()

        validator = CrossValidator(
            n_folds=n_folds,
            seed=self.random_state if seed is None else seed,
            n_jobs=n_jobs,
        )
        self.cv_result = validator.evaluate(
            self.splits.train, self.preprocessor, self.classifier, self.outcome, self.positive
        )

        report = {
            "n_folds": n_folds,
            "pooled": self.cv_result.metrics().as_dict(),
            "summary": self.cv_result.summary().to_dict(orient="index"),
        }
        report_path = self.results_dir / f"{self.name.lower()}_cv_metrics.json"
        with open(report_path, "w") as json_file:
            json.dump(report, json_file, indent=4)

        return self.cv_result

    def train(self) -> FittedWorkflow:
        """
        Fit the preprocessing and the classifier on the whole training split.

        Returns:
            FittedWorkflow: The fitted preprocessing and model.
        """
        if self.splits is None:
            self.split()

        train = self.splits.train
        fitted, prepared = self.preprocessor(train.drop(columns=[self.outcome]))
        model = self.classifier.fit(prepared, train[self.outcome])
        self.workflow = FittedWorkflow(preprocessor=fitted, model=model)
        return self.workflow

    def predict(self, df: pd.DataFrame):
        """Predict the outcome of every row of `df` with the fitted workflow."""
        if self.workflow is None:
            raise RuntimeError("train() must be called before predict()")

        features = df.drop(columns=[self.outcome], errors="ignore")
        prepared = self.workflow.preprocessor.apply(features)
        return self.classifier.predict(self.workflow.model, prepared)

    def score(self) -> float:
        """Accuracy of the trained workflow on the test split."""
        if self.workflow is None:
            self.train()

        y_test = self.splits.test[self.outcome]
        cm = ConfusionMatrix.from_labels(y_test, self.predict(self.splits.test), self.positive)
        return accuracy(cm)

    def evaluate(self) -> ClassificationMetrics:
        """
        Evaluate the trained workflow once on the test split.

        Outputs:
            - Prints the model name, accuracy, and F1 score.
            - Saves the fitted workflow as a pickle file in the models directory.
            - Saves the metrics as a JSON file in the results directory.
            - Saves the confusion matrix as an image file in the results directory.
        """
        if self.workflow is None:
            self.train()

        y_test = self.splits.test[self.outcome]
        y_pred = self.predict(self.splits.test)

        cm = ConfusionMatrix.from_labels(y_test, y_pred, self.positive)
        metrics = compute_metrics(cm)

        print(f"\nModel: {self.name}")
        print("Accuracy:", metrics.accuracy)
        print("F1 Score:", metrics.f1)

        model_filename = self.name.lower()
        joblib.dump(self.workflow, self.models_dir / f"{model_filename}.pkl")

        report_path = self.results_dir / f"{model_filename}_metrics.json"
        with open(report_path, "w") as json_file:
            json.dump(metrics.as_dict(), json_file, indent=4)

        self.plot_confusion_matrix(cm)
        return metrics

    def plot_confusion_matrix(self, cm: ConfusionMatrix) -> Path:
        """Save the confusion matrix of `cm` as a heatmap in the results directory."""
        negative = next(
            level for level in self.df[self.outcome].unique() if level != self.positive
        )
        table = cm.as_table(positive=self.positive, negative=negative)

        plt.figure(figsize=(6, 4))
        sns.heatmap(table, annot=True, fmt="d", cmap="Blues")
        plt.title(f"Confusion Matrix - {self.name}")
        plt.xlabel("Actual")
        plt.ylabel("Predicted")
        fig_path = self.results_dir / f"{self.name.lower()}_confusion_matrix.png"
        plt.savefig(fig_path, bbox_inches="tight", dpi=300)
        plt.close()
        return fig_path
