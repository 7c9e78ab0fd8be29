"""
Shooting Pulse - Age Group Reclassification

Rewrites the free-form age bands of the source into a fixed descriptive
taxonomy. The same mapping is applied to perpetrator and victim fields.

Any value outside the five known bands ("UNKNOWN", "(null)", data-entry codes
such as "1020", missing values) maps to the absent marker ``None``.

Usage:
    from shooting_pulse.datasets.shooting.reclassify import reclassify_age_group

    reclassify_age_group("18-24")    # "YOUNG ADULT (18-24)"
    reclassify_age_group("UNKNOWN")  # None
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

import pandas as pd


class AgeGroup(StrEnum):
    """Descriptive age bands used for both perpetrators and victims."""

    CHILD = "CHILD (<18)"
    YOUNG_ADULT = "YOUNG ADULT (18-24)"
    ADULT = "ADULT (25-44)"
    OLDER_ADULT = "OLDER ADULT (45-64)"
    SENIOR = "SENIOR (65+)"


# Raw source band -> descriptive band
AGE_GROUP_MAP: dict[str, AgeGroup] = {
    "<18": AgeGroup.CHILD,
    "18-24": AgeGroup.YOUNG_ADULT,
    "25-44": AgeGroup.ADULT,
    "45-64": AgeGroup.OLDER_ADULT,
    "65+": AgeGroup.SENIOR,
}


def reclassify_age_group(value: Any) -> str | None:
    """
    Map a raw age band onto the descriptive taxonomy.

    Args:
        value: Raw age band from the source (any type, possibly missing)

    Returns:
        The descriptive band label, or None when the value is absent or unrecognized
    """
    if not isinstance(value, str):
        return None
    group = AGE_GROUP_MAP.get(value.strip())
    return group.value if group is not None else None


def reclassify_age_groups(values: pd.Series) -> pd.Series:
    """Vectorized form of reclassify_age_group; absent values come back as None."""
    return pd.Series(
        [reclassify_age_group(v) for v in values],
        index=values.index,
        name=values.name,
        dtype=object,
    )
