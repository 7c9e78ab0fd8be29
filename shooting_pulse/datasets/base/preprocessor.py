"""
Shooting Pulse - Base Preprocessor

Abstract base class for dataset preprocessors. Provides a consistent interface
for record normalization with:
- Column standardization
- Required column checks on the raw input and the output
- Drop tracking (every excluded row is counted and its key reported)
- Default tracking (kept rows whose value fell back to a default)

Usage:
    class ShootingPreprocessor(BasePreprocessor):
        def transform(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
        def get_column_mappings(self) -> dict[str, str]:
            return {"INCIDENT_KEY": "incident_key"}
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass
class PreprocessingResult:
    """Result of a preprocessing operation."""

    dataset: str
    rows_input: int
    rows_output: int
    rows_dropped: int
    columns_input: int
    columns_output: int
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    transformations_applied: list[str] = field(default_factory=list)
    drop_reasons: dict[str, int] = field(default_factory=dict)
    excluded_keys: dict[str, list[str]] = field(default_factory=dict)
    defaulted_keys: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging/reporting."""
        return {
            "dataset": self.dataset,
            "rows_input": self.rows_input,
            "rows_output": self.rows_output,
            "rows_dropped": self.rows_dropped,
            "columns_input": self.columns_input,
            "columns_output": self.columns_output,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "transformations_applied": self.transformations_applied,
            "drop_reasons": self.drop_reasons,
            "excluded_keys": self.excluded_keys,
            "defaulted_keys": self.defaulted_keys,
        }


class BasePreprocessor(ABC):
    """
    Abstract base class for dataset preprocessing.

    Subclasses must implement:
    - transform(): Apply dataset-specific transformations
    - get_dataset_name(): Return the dataset name
    - get_required_columns(): Return list of required output columns
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the preprocessor.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self._transformations: list[str] = []
        self._drop_reasons: dict[str, int] = {}
        self._excluded_keys: dict[str, list[str]] = {}
        self._defaulted_keys: dict[str, list[str]] = {}

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply dataset-specific transformations.

        Args:
            df: Raw DataFrame with renamed columns

        Returns:
            Transformed DataFrame
        """
        pass

    @abstractmethod
    def get_dataset_name(self) -> str:
        """
        Get the dataset name.

        Returns:
            Dataset name (e.g., "shooting")
        """
        pass

    @abstractmethod
    def get_required_columns(self) -> list[str]:
        """
        Get list of required columns in the output.

        Returns:
            List of column names that must be present after preprocessing
        """
        pass

    def get_required_raw_columns(self) -> list[str]:
        """
        Get list of source columns that must be present before preprocessing.

        Override this method when the transformation cannot run without them.
        """
        return []

    def get_column_mappings(self) -> dict[str, str]:
        """
        Get column name mappings (old -> new).

        Override this method to rename columns during preprocessing.

        Returns:
            Dictionary mapping old column names to new names
        """
        return {}

    def run(self, df: pd.DataFrame) -> PreprocessingResult:
        """
        Run the preprocessing pipeline.

        Args:
            df: Raw DataFrame to preprocess

        Returns:
            PreprocessingResult with details about the preprocessing
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()
        rows_input = len(df)
        columns_input = len(df.columns)

        logger.info(
            f"Starting preprocessing for {dataset_name}",
            extra={"dataset": dataset_name, "rows_input": rows_input},
        )

        try:
            # Reset tracking
            self._transformations = []
            self._drop_reasons = {}
            self._excluded_keys = {}
            self._defaulted_keys = {}

            self._validate_raw_columns(df)

            # Never mutate the caller's frame
            df = df.copy()

            df = self._apply_column_mappings(df)
            df = self.transform(df)

            self._validate_required_columns(df)

            duration = time.time() - start_time
            rows_output = len(df)

            result = PreprocessingResult(
                dataset=dataset_name,
                rows_input=rows_input,
                rows_output=rows_output,
                rows_dropped=rows_input - rows_output,
                columns_input=columns_input,
                columns_output=len(df.columns),
                duration_seconds=duration,
                success=True,
                transformations_applied=self._transformations,
                drop_reasons=self._drop_reasons,
                excluded_keys=self._excluded_keys,
                defaulted_keys=self._defaulted_keys,
            )

            logger.info(
                f"Preprocessing complete for {dataset_name}: {rows_input} -> {rows_output} rows",
                extra=result.to_dict(),
            )

            self._data = df

            return result

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Preprocessing failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return PreprocessingResult(
                dataset=dataset_name,
                rows_input=rows_input,
                rows_output=0,
                rows_dropped=rows_input,
                columns_input=columns_input,
                columns_output=0,
                duration_seconds=duration,
                success=False,
                error_message=str(e),
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently processed data."""
        return getattr(self, "_data", None)

    def _apply_column_mappings(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply column name mappings."""
        mappings = self.get_column_mappings()
        if mappings:
            df = df.rename(columns=mappings)
            self._transformations.append(f"renamed_columns: {list(mappings.keys())}")
        return df

    def _validate_raw_columns(self, df: pd.DataFrame) -> None:
        """Validate that the source columns the transformation needs are present."""
        missing = set(self.get_required_raw_columns()) - set(df.columns)
        if missing:
            raise ValueError(f"Missing required source columns: {sorted(missing)}")

    def _validate_required_columns(self, df: pd.DataFrame) -> None:
        """Validate that all required columns are present."""
        required = set(self.get_required_columns())
        present = set(df.columns)
        missing = required - present

        if missing:
            raise ValueError(f"Missing required columns: {missing}")

    def log_transformation(self, name: str) -> None:
        """Log a transformation that was applied."""
        self._transformations.append(name)

    def log_dropped_rows(self, reason: str, count: int, keys: list[str] | None = None) -> None:
        """Log rows that were dropped, optionally with the keys of the dropped rows."""
        self._drop_reasons[reason] = self._drop_reasons.get(reason, 0) + count
        if keys:
            self._excluded_keys.setdefault(reason, []).extend(keys)

    def log_defaulted_values(self, reason: str, keys: list[str]) -> None:
        """Log kept rows whose value fell back to a default, keyed by reason."""
        self._defaulted_keys.setdefault(reason, []).extend(keys)

    def select_columns(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        """Select and order output columns, dropping everything else."""
        available_columns = [c for c in columns if c in df.columns]
        df = df[available_columns].copy()
        self.log_transformation("select_output_columns")
        return df
