class CrossValidationError(Exception):
    """Base class for errors raised while evaluating a classifier."""


class InvalidConfiguration(CrossValidationError, ValueError):
    """Raised for a bad fold count or a dataset the evaluator cannot use."""


class FoldError(CrossValidationError):
    """
    An error tied to one fold of a cross-validation run.

    Any FoldError aborts the whole run, so no metrics are reported over
    partial data.
    """

    def __init__(self, fold_id: int, message: str):
        self.fold_id = fold_id
        self.message = message
        super().__init__(f"fold {fold_id}: {message}")

    def __reduce__(self):
        # joblib workers send exceptions back pickled
        return type(self), (self.fold_id, self.message)


class InsufficientData(FoldError):
    """Raised when a fold has no records left to fit on."""


class ClassifierFitFailure(FoldError):
    """Raised when the classifier fails to fit or predict on a fold."""
