"""
Shooting Pulse - Incident Aggregator

Folds the canonical incident table into summary tables for charting:
- Time buckets: incidents and deaths per month or per year
- Cross-tabulation: incidents per (perpetrator age group, victim age group)

Time buckets are keyed by the truncated occurrence date (first day of the
month or year), come back in ascending order, and exist only for periods that
have at least one incident.

Usage:
    from shooting_pulse.datasets.shooting.aggregate import Granularity, IncidentAggregator

    aggregator = IncidentAggregator()
    monthly = aggregator.aggregate_by_time_bucket(incidents_df, Granularity.MONTH)
    cross_tab = aggregator.cross_tabulate(incidents_df)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

import pandas as pd

from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = ["period", "incident_count", "death_count"]
CROSS_TAB_COLUMNS = ["perp_age_group", "victim_age_group", "incident_count"]


class Granularity(StrEnum):
    """Time bucket size."""

    MONTH = "month"
    YEAR = "year"

    @property
    def period_freq(self) -> str:
        """pandas period frequency for this granularity."""
        return "M" if self is Granularity.MONTH else "Y"


@dataclass(frozen=True)
class AggregateBucket:
    """Incident and death counts for one truncated period."""

    period: date
    incident_count: int
    death_count: int


@dataclass(frozen=True)
class CrossTabCell:
    """Incident count for one (perpetrator age group, victim age group) pair."""

    perp_age_group: str
    victim_age_group: str
    incident_count: int


class IncidentAggregator:
    """
    Aggregate canonical incidents into time-series and cross-tabulation tables.

    Every method is a pure function of its input table.
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the aggregator.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    def aggregate_by_time_bucket(
        self,
        incidents: pd.DataFrame,
        granularity: Granularity | str | None = None,
    ) -> pd.DataFrame:
        """
        Count incidents and deaths per truncated period.

        Args:
            incidents: Canonical incident table (occurred_at, is_murder)
            granularity: Month or year (defaults to the configured granularity)

        Returns:
            DataFrame with columns period, incident_count, death_count,
            sorted by period ascending
        """
        granularity = Granularity(granularity or self.config.aggregation.default_granularity)

        if len(incidents) == 0:
            return self._empty_buckets()

        periods = truncate_dates(incidents["occurred_at"], granularity).rename("period")

        buckets = (
            incidents.assign(period=periods)
            .groupby("period", sort=True)
            .agg(
                incident_count=("is_murder", "size"),
                death_count=("is_murder", "sum"),
            )
            .reset_index()
        )
        buckets["incident_count"] = buckets["incident_count"].astype(int)
        buckets["death_count"] = buckets["death_count"].astype(int)

        logger.info(
            f"Aggregated {len(incidents)} incidents into {len(buckets)} {granularity} buckets",
            extra={"granularity": str(granularity), "num_buckets": len(buckets)},
        )

        return buckets[BUCKET_COLUMNS]

    def select_known_age_pairs(self, incidents: pd.DataFrame) -> pd.DataFrame:
        """
        Keep only incidents where both age groups are present.

        This is the pre-condition of cross_tabulate, exposed on its own so the
        excluded share can be reported.
        """
        mask = incidents["perp_age_group"].notna() & incidents["victim_age_group"].notna()
        excluded = int((~mask).sum())
        if excluded > 0:
            logger.info(
                f"Cross-tabulation excludes {excluded} incidents with an unknown age group",
                extra={"reason": "missing_age_group", "count": excluded},
            )
        return incidents[mask].copy()

    def cross_tabulate(self, incidents: pd.DataFrame) -> pd.DataFrame:
        """
        Count incidents per (perpetrator age group, victim age group) pair.

        Args:
            incidents: Canonical incident table

        Returns:
            DataFrame with columns perp_age_group, victim_age_group, incident_count
        """
        known = self.select_known_age_pairs(incidents)
        if len(known) == 0:
            return pd.DataFrame({col: pd.Series(dtype=object) for col in CROSS_TAB_COLUMNS})

        cross_tab = (
            known.groupby(["perp_age_group", "victim_age_group"], sort=True)
            .size()
            .reset_index(name="incident_count")
        )
        cross_tab["incident_count"] = cross_tab["incident_count"].astype(int)
        return cross_tab[CROSS_TAB_COLUMNS]

    def merge_buckets(self, *tables: pd.DataFrame) -> pd.DataFrame:
        """
        Merge bucket tables computed over independent chunks of the input.

        Counts are summed per period, so the result does not depend on the
        order of the tables.
        """
        non_empty = [t for t in tables if len(t) > 0]
        if not non_empty:
            return self._empty_buckets()

        merged = (
            pd.concat(non_empty, ignore_index=True)
            .groupby("period", sort=True)[["incident_count", "death_count"]]
            .sum()
            .reset_index()
        )
        return merged[BUCKET_COLUMNS]

    @staticmethod
    def to_buckets(table: pd.DataFrame) -> list[AggregateBucket]:
        """Convert a bucket table into AggregateBucket values."""
        return [
            AggregateBucket(
                period=pd.Timestamp(row.period).date(),
                incident_count=int(row.incident_count),
                death_count=int(row.death_count),
            )
            for row in table.itertuples(index=False)
        ]

    @staticmethod
    def to_cells(table: pd.DataFrame) -> dict[tuple[str, str], CrossTabCell]:
        """Convert a cross-tabulation table into a {(perp, victim): cell} mapping."""
        return {
            (row.perp_age_group, row.victim_age_group): CrossTabCell(
                perp_age_group=row.perp_age_group,
                victim_age_group=row.victim_age_group,
                incident_count=int(row.incident_count),
            )
            for row in table.itertuples(index=False)
        }

    @staticmethod
    def _empty_buckets() -> pd.DataFrame:
        return pd.DataFrame(
            {
                "period": pd.Series(dtype="datetime64[ns]"),
                "incident_count": pd.Series(dtype=int),
                "death_count": pd.Series(dtype=int),
            }
        )


def truncate_dates(dates: pd.Series, granularity: Granularity | str) -> pd.Series:
    """Truncate dates to the first day of their month or year."""
    granularity = Granularity(granularity)
    return pd.to_datetime(dates).dt.to_period(granularity.period_freq).dt.to_timestamp()
