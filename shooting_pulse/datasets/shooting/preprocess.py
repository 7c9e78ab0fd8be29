"""
Shooting Pulse - Shooting Incident Preprocessor

Normalizes raw NYPD shooting incident rows into the canonical incident schema.

Transformations:
    - Occurrence date parsing (month/day/year); unparseable dates exclude the row
    - Combined "<date>, <time>" occurrence field
    - Composite "<borough>, <location description>" location field
    - Age band reclassification for perpetrator and victim
    - Murder flag conversion to 0/1
    - Selection of the canonical columns (coordinates, precinct and the
      remaining descriptors are dropped)

Every helper works on one value, so the per-record entry point
(normalize_record) and the vectorized preprocessor share one definition
of each rule.

Usage:
    from shooting_pulse.datasets.shooting.preprocess import ShootingPreprocessor

    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df)
    incidents_df = preprocessor.get_data()
    print(result.excluded_keys.get("invalid_date", []))
"""

from __future__ import annotations

import logging
import numbers
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

import numpy as np
import pandas as pd

from shooting_pulse.datasets.base import BasePreprocessor
from shooting_pulse.datasets.shooting.reclassify import reclassify_age_group, reclassify_age_groups
from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%m/%d/%Y"
DEFAULT_NULL_TOKENS = ("", "(null)", "NULL", "NA", "N/A")
TRUE_TOKENS = frozenset({"Y", "1", "TRUE", "YES"})
FALSE_TOKENS = frozenset({"N", "0", "FALSE", "NO"})

LOCATION_SEPARATOR = ", "
DATETIME_SEPARATOR = ", "

# Column order of the canonical incident table
CANONICAL_COLUMNS = [
    "incident_key",
    "occurred_at",
    "occurred_datetime",
    "location",
    "perp_age_group",
    "perp_sex",
    "victim_age_group",
    "victim_sex",
    "is_murder",
]


@dataclass(frozen=True)
class Incident:
    """One normalized shooting incident record."""

    incident_key: str
    occurred_at: date
    occurred_datetime: str
    location: str | None
    perp_age_group: str | None
    perp_sex: str | None
    victim_age_group: str | None
    victim_sex: str | None
    is_murder: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary keyed by canonical column name."""
        return asdict(self)


# =============================================================================
# Field Rules
# =============================================================================


def clean_text(value: Any, null_tokens: Iterable[str] = DEFAULT_NULL_TOKENS) -> str | None:
    """Strip a text value, returning None for missing or null-like values."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    if text.upper() in {token.upper() for token in null_tokens}:
        return None
    return text


def parse_occurrence_date(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> date:
    """
    Parse an occurrence date in the source's month/day/year format.

    Raises:
        MalformedRecordError: If the value is missing or does not match the format
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise MalformedRecordError(f"Missing occurrence date: {value!r}")
    try:
        parsed = pd.to_datetime(value, format=date_format)
    except (ValueError, TypeError) as e:
        raise MalformedRecordError(f"Unparseable occurrence date: {value!r}") from e
    if pd.isna(parsed):
        raise MalformedRecordError(f"Unparseable occurrence date: {value!r}")
    return parsed.date()


def clean_incident_key(
    value: Any, null_tokens: Iterable[str] = DEFAULT_NULL_TOKENS
) -> str | None:
    """Source key as text; integral floats (a numeric key column with gaps) lose their ".0"."""
    if isinstance(value, float) and not pd.isna(value) and value.is_integer():
        return str(int(value))
    return clean_text(value, null_tokens)


def format_occurred_datetime(occurred_at: date, time_of_day: str | None) -> str:
    """Combine date and time as "<YYYY-MM-DD>, <time>"; the time segment may be empty."""
    time_segment = time_of_day if isinstance(time_of_day, str) else ""
    return f"{occurred_at.isoformat()}{DATETIME_SEPARATOR}{time_segment}"


def join_location(borough: str | None, description: str | None) -> str | None:
    """Join borough and location description, omitting absent sides and their separator."""
    parts = [part for part in (borough, description) if isinstance(part, str) and part]
    return LOCATION_SEPARATOR.join(parts) if parts else None


def parse_murder_flag(value: Any) -> int | None:
    """
    Read the murder flag as 0/1.

    Accepts true/false, Y/N, yes/no and 1/0 in any case, booleans, and numbers
    (non-zero is 1). Returns None when the flag is missing or unrecognized.
    """
    if isinstance(value, (bool, np.bool_)):
        return int(value)
    if isinstance(value, numbers.Number):
        return None if pd.isna(value) else int(value != 0)
    if isinstance(value, str):
        token = value.strip().upper()
        if token in TRUE_TOKENS:
            return 1
        if token in FALSE_TOKENS:
            return 0
    return None


def murder_flag_to_int(value: Any) -> int:
    """Convert the murder flag to 0/1; missing or unrecognized flags count as 0."""
    flag = parse_murder_flag(value)
    return 0 if flag is None else flag


# =============================================================================
# Per-record Normalization
# =============================================================================


def normalize_record(raw: Mapping[str, Any], config: Settings | None = None) -> Incident:
    """
    Normalize one raw source row into an Incident.

    Args:
        raw: Mapping keyed by source column name (INCIDENT_KEY, OCCUR_DATE, ...)
        config: Configuration object (uses default if not provided)

    Returns:
        Incident

    Raises:
        MalformedRecordError: If the incident key is missing or the occurrence
            date cannot be parsed
    """
    config = config or get_config()
    null_tokens = config.normalization.null_tokens

    incident_key = clean_incident_key(raw.get("INCIDENT_KEY"), null_tokens)
    if incident_key is None:
        raise MalformedRecordError(f"Missing incident key: {raw.get('INCIDENT_KEY')!r}")
    occurred_at = parse_occurrence_date(raw.get("OCCUR_DATE"), config.normalization.date_format)
    time_of_day = clean_text(raw.get("OCCUR_TIME"), null_tokens)

    return Incident(
        incident_key=incident_key,
        occurred_at=occurred_at,
        occurred_datetime=format_occurred_datetime(occurred_at, time_of_day),
        location=join_location(
            clean_text(raw.get("BORO"), null_tokens),
            clean_text(raw.get("LOCATION_DESC"), null_tokens),
        ),
        perp_age_group=reclassify_age_group(raw.get("PERP_AGE_GROUP")),
        perp_sex=clean_text(raw.get("PERP_SEX"), null_tokens),
        victim_age_group=reclassify_age_group(raw.get("VIC_AGE_GROUP")),
        victim_sex=clean_text(raw.get("VIC_SEX"), null_tokens),
        is_murder=murder_flag_to_int(raw.get("STATISTICAL_MURDER_FLAG")),
    )


def incidents_to_frame(incidents: Iterable[Incident]) -> pd.DataFrame:
    """Build a canonical incident table from Incident values."""
    df = pd.DataFrame([incident.to_dict() for incident in incidents], columns=CANONICAL_COLUMNS)
    df["occurred_at"] = pd.to_datetime(df["occurred_at"])
    df["is_murder"] = df["is_murder"].astype(int)
    return df


def frame_to_incidents(df: pd.DataFrame) -> list[Incident]:
    """Convert a canonical incident table back into Incident values."""
    incidents = []
    for row in df[CANONICAL_COLUMNS].itertuples(index=False):
        values = row._asdict()
        values["occurred_at"] = pd.Timestamp(values["occurred_at"]).date()
        values["is_murder"] = int(values["is_murder"])
        for col in ("location", "perp_age_group", "perp_sex", "victim_age_group", "victim_sex"):
            if not isinstance(values[col], str):
                values[col] = None
        incidents.append(Incident(**values))
    return incidents


# =============================================================================
# Vectorized Preprocessor
# =============================================================================


class ShootingPreprocessor(BasePreprocessor):
    """
    Preprocessor for NYPD shooting incident data.

    Applies the field rules column-wise. Rows whose occurrence date cannot be
    parsed are excluded; their count lands in drop_reasons["invalid_date"] and
    their keys in excluded_keys["invalid_date"].
    """

    # Column mapping from raw source names to standardized names
    COLUMN_MAPPINGS = {
        "INCIDENT_KEY": "incident_key",
        "OCCUR_DATE": "occur_date",
        "OCCUR_TIME": "occur_time",
        "BORO": "borough",
        "LOCATION_DESC": "location_desc",
        "STATISTICAL_MURDER_FLAG": "murder_flag",
        "PERP_AGE_GROUP": "perp_age_raw",
        "PERP_SEX": "perp_sex",
        "VIC_AGE_GROUP": "victim_age_raw",
        "VIC_SEX": "victim_sex",
    }

    REQUIRED_RAW_COLUMNS = ["INCIDENT_KEY", "OCCUR_DATE", "STATISTICAL_MURDER_FLAG"]

    # Optional source columns; absent ones are treated as all-missing
    OPTIONAL_COLUMNS = [
        "occur_time",
        "borough",
        "location_desc",
        "perp_age_raw",
        "perp_sex",
        "victim_age_raw",
        "victim_sex",
    ]

    def __init__(self, config: Settings | None = None):
        """Initialize shooting preprocessor."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shooting"

    def get_required_columns(self) -> list[str]:
        """Return required output columns."""
        return CANONICAL_COLUMNS

    def get_required_raw_columns(self) -> list[str]:
        """Return source columns the transformation cannot do without."""
        return self.REQUIRED_RAW_COLUMNS

    def get_column_mappings(self) -> dict[str, str]:
        """Return column name mappings."""
        return self.COLUMN_MAPPINGS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply shooting-specific transformations.

        Args:
            df: Raw DataFrame with renamed columns

        Returns:
            Canonical incident table
        """
        for col in self.OPTIONAL_COLUMNS:
            if col not in df.columns:
                df[col] = None

        df = self._process_incident_key(df)
        df = self._process_occurrence_date(df)
        df = self._clean_text_fields(df)
        df = self._build_occurred_datetime(df)
        df = self._build_location(df)
        df = self._reclassify_age_groups(df)
        df = self._process_murder_flag(df)

        return self.select_columns(df, CANONICAL_COLUMNS)

    def _process_incident_key(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize incident keys to text and exclude rows without one."""
        null_tokens = self.config.normalization.null_tokens
        df["incident_key"] = pd.Series(
            [clean_incident_key(v, null_tokens) for v in df["incident_key"]],
            index=df.index,
            dtype=object,
        )

        missing_mask = df["incident_key"].isna()
        missing_count = int(missing_mask.sum())
        if missing_count > 0:
            logger.warning(
                f"Excluding {missing_count} records without an incident key",
                extra={"reason": "missing_key", "count": missing_count},
            )
            self.log_dropped_rows("missing_key", missing_count)
            df = df[~missing_mask].copy()

        self.log_transformation("clean_incident_key")
        return df

    def _process_occurrence_date(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse occurrence dates and exclude rows that do not parse."""
        df["occurred_at"] = pd.to_datetime(
            df["occur_date"],
            format=self.config.normalization.date_format,
            errors="coerce",
        ).dt.normalize()

        invalid_mask = df["occurred_at"].isna()
        invalid_count = int(invalid_mask.sum())
        if invalid_count > 0:
            keys = df.loc[invalid_mask, "incident_key"].tolist()
            logger.warning(
                f"Excluding {invalid_count} records with malformed occurrence dates",
                extra={"reason": "invalid_date", "count": invalid_count, "keys": keys[:20]},
            )
            self.log_dropped_rows("invalid_date", invalid_count, keys)
            df = df[~invalid_mask].copy()

        self.log_transformation("parse_occurrence_date")
        return df

    def _clean_text_fields(self, df: pd.DataFrame) -> pd.DataFrame:
        """Strip text fields and unify null-like values as None."""
        null_tokens = self.config.normalization.null_tokens
        for col in ("occur_time", "borough", "location_desc", "perp_sex", "victim_sex"):
            # object dtype keeps None as the absent marker
            df[col] = pd.Series(
                [clean_text(v, null_tokens) for v in df[col]],
                index=df.index,
                dtype=object,
            )
        self.log_transformation("clean_text_fields")
        return df

    def _build_occurred_datetime(self, df: pd.DataFrame) -> pd.DataFrame:
        """Build the combined "<date>, <time>" field."""
        df["occurred_datetime"] = [
            format_occurred_datetime(ts.date(), time_of_day)
            for ts, time_of_day in zip(df["occurred_at"], df["occur_time"], strict=True)
        ]
        self.log_transformation("build_occurred_datetime")
        return df

    def _build_location(self, df: pd.DataFrame) -> pd.DataFrame:
        """Build the composite location field."""
        df["location"] = pd.Series(
            [
                join_location(borough, description)
                for borough, description in zip(df["borough"], df["location_desc"], strict=True)
            ],
            index=df.index,
            dtype=object,
        )
        self.log_transformation("build_location")
        return df

    def _reclassify_age_groups(self, df: pd.DataFrame) -> pd.DataFrame:
        """Map perpetrator and victim age bands onto the descriptive taxonomy."""
        df["perp_age_group"] = reclassify_age_groups(df["perp_age_raw"])
        df["victim_age_group"] = reclassify_age_groups(df["victim_age_raw"])
        self.log_transformation("reclassify_age_groups")
        return df

    def _process_murder_flag(self, df: pd.DataFrame) -> pd.DataFrame:
        """Convert the murder flag to 0/1, reporting flags that default to 0."""
        flags = [parse_murder_flag(v) for v in df["murder_flag"]]

        unrecognized = [
            key for key, flag in zip(df["incident_key"], flags, strict=True) if flag is None
        ]
        if unrecognized:
            logger.warning(
                f"{len(unrecognized)} records have a missing or unrecognized murder flag; "
                "counted as non-murders",
                extra={
                    "reason": "unrecognized_murder_flag",
                    "count": len(unrecognized),
                    "keys": unrecognized[:20],
                },
            )
            self.log_defaulted_values("unrecognized_murder_flag", unrecognized)

        df["is_murder"] = pd.Series(
            [0 if flag is None else flag for flag in flags],
            index=df.index,
            dtype=int,
        )
        self.log_transformation("convert_murder_flag_to_int")
        return df


# =============================================================================
# Exception Classes
# =============================================================================


class MalformedRecordError(ValueError):
    """Raised when a raw record has no incident key or an unparseable occurrence date."""


# =============================================================================
# Convenience Functions
# =============================================================================


def normalize_records(
    rows: Sequence[Mapping[str, Any]],
    config: Settings | None = None,
) -> tuple[list[Incident], list[tuple[int, MalformedRecordError]]]:
    """
    Normalize a sequence of raw rows, collecting malformed ones instead of stopping.

    Returns:
        (incidents, failures) where failures holds (row position, error) pairs
    """
    incidents: list[Incident] = []
    failures: list[tuple[int, MalformedRecordError]] = []
    for position, raw in enumerate(rows):
        try:
            incidents.append(normalize_record(raw, config))
        except MalformedRecordError as e:
            failures.append((position, e))

    if failures:
        logger.warning(
            f"Excluded {len(failures)} of {len(rows)} malformed records",
            extra={"reason": "malformed_record", "count": len(failures)},
        )
    return incidents, failures


def preprocess_shooting_data(
    df: pd.DataFrame,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for preprocessing shooting data.

    Returns result dictionary suitable for logging/reporting.
    """
    preprocessor = ShootingPreprocessor(config)
    result = preprocessor.run(df)
    return result.to_dict()
