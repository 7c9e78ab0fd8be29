"""
Shooting Pulse - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Raw and canonical sample data
"""

import itertools
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

# Set test environment
os.environ["SP_ENVIRONMENT"] = "dev"

RAW_AGE_BANDS = {"perp": ["18-24", "25-44"], "victim": ["25-44", "65+"]}
SEXES = ["F", "M"]

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from shooting_pulse.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


# =============================================================================
# Data Fixtures
# =============================================================================


def make_raw_row(
    key: int | None,
    occur_date: str = "01/05/2020",
    occur_time: str = "14:30:00",
    boro: str | None = "BRONX",
    location_desc: str | None = "MULTI DWELL - APT BUILD",
    murder: str | int | None = "false",
    perp_age: str | None = "25-44",
    perp_sex: str | None = "M",
    vic_age: str | None = "18-24",
    vic_sex: str | None = "M",
) -> dict[str, Any]:
    """Build one raw row in the NYPD source schema."""
    return {
        "INCIDENT_KEY": key,
        "OCCUR_DATE": occur_date,
        "OCCUR_TIME": occur_time,
        "BORO": boro,
        "LOC_OF_OCCUR_DESC": "INSIDE",
        "PRECINCT": 44,
        "JURISDICTION_CODE": 0,
        "LOC_CLASSFCTN_DESC": "DWELLING",
        "LOCATION_DESC": location_desc,
        "STATISTICAL_MURDER_FLAG": murder,
        "PERP_AGE_GROUP": perp_age,
        "PERP_SEX": perp_sex,
        "PERP_RACE": "BLACK",
        "VIC_AGE_GROUP": vic_age,
        "VIC_SEX": vic_sex,
        "VIC_RACE": "BLACK",
        "X_COORD_CD": 1006343.0,
        "Y_COORD_CD": 234270.0,
        "Latitude": 40.8379,
        "Longitude": -73.9197,
        "Lon_Lat": "POINT (-73.9197 40.8379)",
    }


@pytest.fixture
def raw_row() -> dict[str, Any]:
    """A single well-formed raw row."""
    return make_raw_row(228798151)


@pytest.fixture
def sample_raw_data() -> pd.DataFrame:
    """Small raw frame covering dates, locations and unknown age bands."""
    return pd.DataFrame(
        [
            make_raw_row(1, occur_date="01/05/2020", murder="false"),
            make_raw_row(2, occur_date="01/20/2020", murder="true", location_desc=None),
            make_raw_row(3, occur_date="02/01/2020", murder="false", boro=None, perp_age="UNKNOWN"),
            make_raw_row(4, occur_date="03/15/2021", murder="true", vic_age="65+", occur_time=None),
        ]
    )


@pytest.fixture
def modeling_raw_data() -> pd.DataFrame:
    """
    Balanced raw frame for the end-to-end classifier.

    Every combination of the four features appears three times. Rows whose
    victim is 65+ are murders two times out of three, all other combinations
    one time out of three.
    """
    rows = []
    key = 1000
    combos = itertools.product(
        RAW_AGE_BANDS["perp"], SEXES, RAW_AGE_BANDS["victim"], SEXES
    )
    for perp_age, perp_sex, vic_age, vic_sex in combos:
        murders = [True, True, False] if vic_age == "65+" else [True, False, False]
        for repeat, murder in enumerate(murders):
            key += 1
            rows.append(
                make_raw_row(
                    key,
                    occur_date=f"{(key % 12) + 1:02d}/{repeat + 1:02d}/{2019 + key % 3}",
                    murder=str(murder).lower(),
                    perp_age=perp_age,
                    perp_sex=perp_sex,
                    vic_age=vic_age,
                    vic_sex=vic_sex,
                )
            )

    # Rows excluded from modeling but kept as incidents
    rows.append(make_raw_row(2001, perp_age="UNKNOWN"))
    rows.append(make_raw_row(2002, perp_sex=None))
    rows.append(make_raw_row(2003, vic_age="1022"))
    # Row excluded at normalization
    rows.append(make_raw_row(2004, occur_date="2020-13-45"))

    return pd.DataFrame(rows)


@pytest.fixture
def balanced_encoded_rows() -> pd.DataFrame:
    """Encoded rows with the same balanced design as modeling_raw_data."""
    rows = []
    combos = itertools.product(
        ["ADULT (25-44)", "YOUNG ADULT (18-24)"],
        SEXES,
        ["ADULT (25-44)", "SENIOR (65+)"],
        SEXES,
    )
    for perp_age, perp_sex, vic_age, vic_sex in combos:
        murders = [1, 1, 0] if vic_age == "SENIOR (65+)" else [1, 0, 0]
        for murder in murders:
            rows.append(
                {
                    "perp_age_group": perp_age,
                    "perp_sex": perp_sex,
                    "victim_age_group": vic_age,
                    "victim_sex": vic_sex,
                    "is_murder": murder,
                }
            )
    return pd.DataFrame(rows)


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
