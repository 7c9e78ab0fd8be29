"""
Shooting Pulse - Shooting Incident Dataset

NYPD shooting incident reports, from raw rows to model-ready features.

Components:
    - ShootingPreprocessor / normalize_record: canonical incident records
    - reclassify_age_group: descriptive age band taxonomy
    - IncidentAggregator: monthly/yearly buckets and age cross-tabulation
    - ShootingFeatureEncoder / CategoryVocabulary: categorical model features

Data Source:
    NYPD Shooting Incident Data (Historic)
    https://data.cityofnewyork.us/Public-Safety/NYPD-Shooting-Incident-Data-Historic-/833y-fsy8

Usage:
    from shooting_pulse.datasets.shooting import (
        IncidentAggregator,
        ShootingFeatureEncoder,
        ShootingPreprocessor,
    )

    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df)
    incidents_df = preprocessor.get_data()

    monthly = IncidentAggregator().aggregate_by_time_bucket(incidents_df, "month")
    encoded = ShootingFeatureEncoder().encode(incidents_df)
"""

from shooting_pulse.datasets.shooting.aggregate import (
    AggregateBucket,
    CrossTabCell,
    Granularity,
    IncidentAggregator,
    truncate_dates,
)
from shooting_pulse.datasets.shooting.features import (
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    CategoryVocabulary,
    EncodedFeatures,
    ShootingFeatureEncoder,
    UnknownCategoryError,
    encode_features,
)
from shooting_pulse.datasets.shooting.preprocess import (
    CANONICAL_COLUMNS,
    Incident,
    MalformedRecordError,
    ShootingPreprocessor,
    frame_to_incidents,
    incidents_to_frame,
    normalize_record,
    normalize_records,
    preprocess_shooting_data,
)
from shooting_pulse.datasets.shooting.reclassify import (
    AGE_GROUP_MAP,
    AgeGroup,
    reclassify_age_group,
    reclassify_age_groups,
)

__all__ = [
    # Preprocessing
    "CANONICAL_COLUMNS",
    "Incident",
    "MalformedRecordError",
    "ShootingPreprocessor",
    "frame_to_incidents",
    "incidents_to_frame",
    "normalize_record",
    "normalize_records",
    "preprocess_shooting_data",
    # Reclassification
    "AGE_GROUP_MAP",
    "AgeGroup",
    "reclassify_age_group",
    "reclassify_age_groups",
    # Aggregation
    "AggregateBucket",
    "CrossTabCell",
    "Granularity",
    "IncidentAggregator",
    "truncate_dates",
    # Features
    "FEATURE_COLUMNS",
    "LABEL_COLUMN",
    "CategoryVocabulary",
    "EncodedFeatures",
    "ShootingFeatureEncoder",
    "UnknownCategoryError",
    "encode_features",
]
