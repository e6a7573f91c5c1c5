"""
Customer churn classification with k-fold cross-validation
for pluggable binary classifiers.
"""

from .errors import (
    ClassifierFitFailure,
    CrossValidationError,
    FoldError,
    InsufficientData,
    InvalidConfiguration,
)
from .folds import FoldAssignment, assign_folds
from .preprocessing import (
    DummyEncoder,
    MeanImputer,
    Normalizer,
    Preprocessor,
    compose,
    default_preprocessor,
)
from .classifiers import (
    ClassifierFactory,
    LogisticRegressionFactory,
    RandomForestFactory,
    TrainedModel,
    XGBoostFactory,
)
from .metrics import ClassificationMetrics, ConfusionMatrix, accuracy, compute_metrics
from .cross_validation import (
    CrossValidationResult,
    CrossValidator,
    PredictionRecord,
    cross_validate,
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "CrossValidationError",
    "InvalidConfiguration",
    "FoldError",
    "InsufficientData",
    "ClassifierFitFailure",

    # Folds
    "FoldAssignment",
    "assign_folds",

    # Preprocessing
    "DummyEncoder",
    "MeanImputer",
    "Normalizer",
    "Preprocessor",
    "compose",
    "default_preprocessor",

    # Classifiers
    "ClassifierFactory",
    "LogisticRegressionFactory",
    "RandomForestFactory",
    "XGBoostFactory",
    "TrainedModel",

    # Metrics
    "ConfusionMatrix",
    "ClassificationMetrics",
    "compute_metrics",
    "accuracy",

    # Cross Validation
    "PredictionRecord",
    "CrossValidationResult",
    "CrossValidator",
    "cross_validate",
]
