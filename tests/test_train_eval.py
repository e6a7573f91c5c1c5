"""
Tests for the train/cross-validate/evaluate workflow
"""

import json

import joblib
import pytest

from churn_cv.classifiers import LogisticRegressionFactory, RandomForestFactory
from churn_cv.cross_validation import CrossValidationResult
from churn_cv.metrics import ClassificationMetrics
from churn_cv.train_eval import FittedWorkflow, ModelTrainer


@pytest.fixture
def trainer(churn_df, tmp_path):
    return ModelTrainer(
        churn_df,
        LogisticRegressionFactory(),
        results_dir=str(tmp_path / "output"),
        models_dir=str(tmp_path / "models"),
    )


class TestModelTrainer:
    """Test ModelTrainer"""

    def test_split_is_stratified(self, trainer, churn_df):
        """80/20 split keeping the churn rate"""
        splits = trainer.split()

        assert len(splits.train) == 160
        assert len(splits.test) == 40
        rate = (churn_df["Churn"] == "Yes").mean()
        assert (splits.train["Churn"] == "Yes").mean() == pytest.approx(rate, abs=0.02)

    def test_cross_validate_on_training_split(self, trainer, tmp_path):
        """Cross-validation only uses training records and saves its summary"""
        result = trainer.cross_validate(n_folds=5)

        assert isinstance(result, CrossValidationResult)
        assert len(result.predictions) == len(trainer.splits.train)

        with open(tmp_path / "output" / "logisticregression_cv_metrics.json") as f:
            report = json.load(f)
        assert report["n_folds"] == 5
        assert set(report["summary"]) == {"accuracy", "precision", "recall", "f1"}
        assert report["pooled"]["confusion_matrix"]["tp"] >= 0

    def test_train(self, trainer):
        workflow = trainer.train()

        assert isinstance(workflow, FittedWorkflow)
        assert trainer.splits is not None

    def test_predict_requires_training(self, trainer, churn_df):
        with pytest.raises(RuntimeError):
            trainer.predict(churn_df)

    def test_evaluate_writes_outputs(self, trainer, tmp_path, capsys):
        """Single-split evaluation prints and saves metrics, plot and model"""
        trainer.train()
        metrics = trainer.evaluate()

        assert isinstance(metrics, ClassificationMetrics)
        assert metrics.confusion.total == 40
        assert "Model: LogisticRegression" in capsys.readouterr().out

        with open(tmp_path / "output" / "logisticregression_metrics.json") as f:
            assert json.load(f)["accuracy"] == pytest.approx(metrics.accuracy)
        assert (tmp_path / "output" / "logisticregression_confusion_matrix.png").exists()

        workflow = joblib.load(tmp_path / "models" / "logisticregression.pkl")
        assert isinstance(workflow, FittedWorkflow)

    def test_score_matches_evaluate(self, trainer):
        """Accuracy alone agrees with the full single-split metrics"""
        assert trainer.score() == pytest.approx(trainer.evaluate().accuracy)

    def test_loaded_workflow_predicts_like_trainer(self, trainer, tmp_path):
        trainer.evaluate()
        workflow = joblib.load(tmp_path / "models" / "logisticregression.pkl")

        test = trainer.splits.test
        prepared = workflow.preprocessor.apply(test.drop(columns=["Churn"]))

        assert list(trainer.classifier.predict(workflow.model, prepared)) == list(trainer.predict(test))

    def test_classifiers_share_folds(self, churn_df, tmp_path):
        """Two classifiers cross-validated with one seed see identical folds"""
        results = []
        for classifier in [LogisticRegressionFactory(), RandomForestFactory(n_estimators=10)]:
            trainer = ModelTrainer(
                churn_df,
                classifier,
                results_dir=str(tmp_path / "output"),
                models_dir=str(tmp_path / "models"),
            )
            results.append(trainer.cross_validate(n_folds=4, seed=3))

        folds = [[(r.fold_id, r.row) for r in result.predictions] for result in results]
        assert folds[0] == folds[1]
