import logging

from churn_cv.classifiers import LogisticRegressionFactory, RandomForestFactory
from churn_cv.processing import DatasetProcessor
from churn_cv.train_eval import ModelTrainer


CSV_FILE = "dataset/WA_Fn-UseC_-Telco-Customer-Churn.csv"
N_FOLDS = 10
SEED = 42
TEST_SIZE = 0.2
CLASSIFIERS = [
    LogisticRegressionFactory(),
    RandomForestFactory(n_estimators=500, random_state=SEED),
]

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    processed_df = DatasetProcessor(CSV_FILE).process()
    for classifier in CLASSIFIERS:
        trainer = ModelTrainer(processed_df, classifier, test_size=TEST_SIZE, random_state=SEED)
        cv_result = trainer.cross_validate(n_folds=N_FOLDS, seed=SEED)
        print(f"\n{trainer.name} {N_FOLDS}-fold cross-validation")
        print(cv_result.summary())
        trainer.train()
        trainer.evaluate()
