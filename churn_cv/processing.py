import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from churn_cv.errors import InvalidConfiguration


logger = logging.getLogger(__name__)

OUTCOME = "Churn"
ID_COLUMNS = ("customerID",)
NUMERIC_COLUMNS = ("TotalCharges",)


class DatasetProcessor:
    def __init__(
        self,
        csv_file: str,
        outcome: str = OUTCOME,
        drop_columns: Sequence[str] = ID_COLUMNS,
        numeric_columns: Sequence[str] = NUMERIC_COLUMNS,
        output_dir: Optional[str] = None,
    ):
        """
        Load the churn dataset from a CSV file.

        Args:
            csv_file (str): Path to the CSV file.
            outcome (str, optional): Name of the binary outcome column. Defaults to "Churn".
            drop_columns (Sequence[str], optional): Columns that are not predictors
                (identifiers). Defaults to ("customerID",).
            numeric_columns (Sequence[str], optional): Columns that must be numeric but may
                be read as text because of blank entries. Defaults to ("TotalCharges",).
            output_dir (str, optional): If set, `process` writes the cleaned dataset there.
        """
        self.csv_file = csv_file
        self.outcome = outcome
        self.drop_columns = list(drop_columns)
        self.numeric_columns = list(numeric_columns)
        self.output_dir = Path(output_dir) if output_dir else None

        self.df = pd.read_csv(self.csv_file)
        logger.info("Loaded %s: %d rows, %d columns", self.csv_file, *self.df.shape)

    def clean_dataset(self):
        """
        Clean the dataset by doing the following:
            1. Drop the identifier columns
            2. Convert the numeric columns, turning blank entries into missing values
            3. Drop every row with a missing value
        """
        self.df = self.df.drop(columns=[c for c in self.drop_columns if c in self.df.columns])

        for col in self.numeric_columns:
            if col in self.df.columns:
                self.df[col] = pd.to_numeric(self.df[col], errors="coerce")

        n_before = len(self.df)
        self.df = self.df.dropna().reset_index(drop=True)
        logger.info("Dropped %d rows with missing values", n_before - len(self.df))

    def validate(self):
        """
        Check the outcome column exists and holds exactly two distinct values.

        Raises:
            InvalidConfiguration: If the outcome column is missing or not binary.
        """
        if self.outcome not in self.df.columns:
            raise InvalidConfiguration(f"outcome column {self.outcome!r} not in {self.csv_file}")

        levels = self.df[self.outcome].unique()
        if len(levels) != 2:
            raise InvalidConfiguration(
                f"outcome column {self.outcome!r} must hold exactly two values, found {list(levels)}"
            )

    def process(self) -> pd.DataFrame:
        """
        Process the dataset by cleaning and validating it.

        The cleaned dataset is saved to `clean_dataset.csv` in `output_dir` when one was
        given. The function returns the cleaned dataset.
        """
        self.clean_dataset()
        self.validate()

        if self.output_dir is not None:
            self.output_dir.mkdir(exist_ok=True, parents=True)
            self.df.to_csv(self.output_dir / "clean_dataset.csv", index=False)
        return self.df
