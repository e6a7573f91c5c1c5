import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
from sklearn.model_selection import KFold

from churn_cv.errors import InvalidConfiguration


logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FoldAssignment:
    """
    Fold id of every record in a dataset.

    Attributes:
        fold_ids (np.ndarray): Integer fold id in `[0, n_folds)` for each record index.
        n_folds (int): Number of folds.
        seed (int or None): Seed used to shuffle the records before slicing.
    """

    fold_ids: np.ndarray
    n_folds: int
    seed: Optional[int] = None

    def __len__(self) -> int:
        return len(self.fold_ids)

    def analysis_indices(self, fold_id: int) -> np.ndarray:
        """Record indices used to fit the model for `fold_id`."""
        return np.flatnonzero(self.fold_ids != fold_id)

    def assessment_indices(self, fold_id: int) -> np.ndarray:
        """Record indices held out for `fold_id`."""
        return np.flatnonzero(self.fold_ids == fold_id)

    def sizes(self) -> np.ndarray:
        return np.bincount(self.fold_ids, minlength=self.n_folds)

    def validate(self, n_records: int):
        """
        Check the assignment can be used on a dataset of `n_records` rows.

        Raises:
            InvalidConfiguration: If the lengths differ or a fold id is out of range.
        """
        if len(self.fold_ids) != n_records:
            raise InvalidConfiguration(
                f"fold assignment covers {len(self.fold_ids)} records, dataset has {n_records}"
            )
        if self.n_folds < 2:
            raise InvalidConfiguration(f"need at least 2 folds, got {self.n_folds}")
        if len(self.fold_ids) and (
            self.fold_ids.min() < 0 or self.fold_ids.max() >= self.n_folds
        ):
            raise InvalidConfiguration(f"fold ids must lie in [0, {self.n_folds})")

    def __iter__(self) -> Iterator[Tuple[int, np.ndarray, np.ndarray]]:
        for fold_id in range(self.n_folds):
            yield fold_id, self.analysis_indices(fold_id), self.assessment_indices(fold_id)


def assign_folds(n_records: int, n_folds: int, seed: Optional[int] = None) -> FoldAssignment:
    """
    Partition record indices `0..n_records-1` into `n_folds` folds.

    Records are shuffled with `seed` and then sliced into contiguous blocks, so fold
    sizes differ by at most one and the same seed always gives the same folds.

    Args:
        n_records (int): Number of records in the dataset.
        n_folds (int): Number of folds, `2 <= n_folds <= n_records`.
        seed (int, optional): Shuffle seed. Defaults to None (not reproducible).

    Returns:
        FoldAssignment: The fold id of every record.

    Raises:
        InvalidConfiguration: If `n_folds` is below 2 or above `n_records`.
    """
    if n_folds < 2:
        raise InvalidConfiguration(f"need at least 2 folds, got {n_folds}")
    if n_folds > n_records:
        raise InvalidConfiguration(
            f"cannot split {n_records} records into {n_folds} folds"
        )

    fold_ids = np.empty(n_records, dtype=int)
    kfold = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    for fold_id, (_, test_idx) in enumerate(kfold.split(np.zeros(n_records))):
        fold_ids[test_idx] = fold_id

    logger.debug("Assigned %d records to %d folds (seed=%s)", n_records, n_folds, seed)
    return FoldAssignment(fold_ids=fold_ids, n_folds=n_folds, seed=seed)
