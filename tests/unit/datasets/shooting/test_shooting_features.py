"""
Unit tests for ShootingFeatureEncoder and CategoryVocabulary.
"""

import pandas as pd
import pytest

from shooting_pulse.datasets.shooting.features import (
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    CategoryVocabulary,
    ShootingFeatureEncoder,
    UnknownCategoryError,
    encode_features,
)


@pytest.fixture
def encoder(test_config):
    """Create a ShootingFeatureEncoder instance."""
    return ShootingFeatureEncoder(test_config)


@pytest.fixture
def incidents():
    """Canonical incidents with some missing features."""
    return pd.DataFrame(
        {
            "incident_key": ["1", "2", "3", "4", "5"],
            "occurred_at": pd.to_datetime(["2020-01-05"] * 5),
            "location": ["BRONX"] * 5,
            "perp_age_group": [
                None,
                "ADULT (25-44)",
                "CHILD (<18)",
                "ADULT (25-44)",
                "ADULT (25-44)",
            ],
            "perp_sex": ["M", "M", "F", None, "M"],
            "victim_age_group": [
                "ADULT (25-44)",
                "SENIOR (65+)",
                "ADULT (25-44)",
                "ADULT (25-44)",
                "ADULT (25-44)",
            ],
            "victim_sex": ["M", "F", "M", "M", "U"],
            "is_murder": [1, 1, 0, 0, 0],
        }
    )


class TestShootingFeatureEncoder:
    """Test cases for the encoder."""

    def test_get_dataset_name(self, encoder):
        """Test dataset name is correct."""
        assert encoder.get_dataset_name() == "shooting"

    def test_feature_definitions(self, encoder):
        """Test four features and one label are defined."""
        definitions = encoder.get_feature_definitions()
        assert [d.name for d in definitions if not d.is_label] == FEATURE_COLUMNS
        assert [d.name for d in definitions if d.is_label] == [LABEL_COLUMN]

    def test_encode_drops_rows_with_missing_features(self, encoder, incidents):
        """Test a missing perpetrator age excludes the row whatever else is present."""
        encoded = encoder.encode(incidents)

        assert len(encoded) == 3
        assert encoded.rows_dropped == 2
        assert "ADULT (25-44)" in encoded.rows["perp_age_group"].tolist()
        assert encoded.rows[FEATURE_COLUMNS].notna().all().all()

    def test_encode_count_law(self, encoder, incidents):
        """Test kept plus dropped equals the input size."""
        encoded = encoder.encode(incidents)
        assert len(encoded) + encoded.rows_dropped == len(incidents)

    def test_encode_columns(self, encoder, incidents):
        """Test only features and label are selected."""
        encoded = encoder.encode(incidents)
        assert list(encoded.rows.columns) == FEATURE_COLUMNS + [LABEL_COLUMN]
        assert encoded.labels.tolist() == [1, 0, 0]

    def test_encode_does_not_accumulate_drop_reasons(self, encoder, incidents):
        """Test drop reasons reflect only the latest call."""
        encoder.encode(incidents)
        encoder.encode(incidents)
        assert encoder._drop_reasons == {"missing_feature": 2}

    def test_run_reports_drops(self, encoder, incidents):
        """Test the stage run reports the listwise deletion count."""
        result = encoder.run(incidents)

        assert result.success
        assert result.rows_output == 3
        assert result.rows_dropped == 2
        assert result.drop_reasons == {"missing_feature": 2}
        assert result.feature_stats["perp_sex"]["unique_count"] == 2

    def test_run_missing_columns(self, encoder):
        """Test a table without feature columns fails the stage."""
        result = encoder.run(pd.DataFrame({"incident_key": ["1"]}))
        assert not result.success

    def test_encode_features_convenience(self, incidents, test_config):
        """Test encode_features convenience function."""
        assert len(encode_features(incidents, test_config)) == 3


class TestCategoryVocabulary:
    """Test cases for the fixed vocabulary."""

    @pytest.fixture
    def rows(self, encoder, incidents):
        return encoder.encode(incidents).rows

    def test_labels_sorted(self, rows):
        """Test labels are lexicographically ordered."""
        vocabulary = CategoryVocabulary.from_frame(rows)

        assert vocabulary.labels_for("perp_age_group") == ("ADULT (25-44)", "CHILD (<18)")
        assert vocabulary.labels_for("victim_sex") == ("F", "M", "U")
        assert vocabulary.reference_category("victim_sex") == "F"

    def test_order_independent(self, rows):
        """Test the vocabulary does not depend on row order."""
        shuffled = rows.iloc[::-1].reset_index(drop=True)
        first = CategoryVocabulary.from_frame(rows)
        second = CategoryVocabulary.from_frame(shuffled)

        assert first == second
        assert first.version == second.version

    def test_indicator_names_drop_reference(self, rows):
        """Test one indicator per non-reference category."""
        vocabulary = CategoryVocabulary.from_frame(rows)

        assert vocabulary.indicator_names == [
            "perp_age_group[CHILD (<18)]",
            "perp_sex[M]",
            "victim_age_group[SENIOR (65+)]",
            "victim_sex[M]",
            "victim_sex[U]",
        ]
        assert vocabulary.n_indicators == 5

    def test_design_matrix(self, rows):
        """Test indicator expansion values."""
        vocabulary = CategoryVocabulary.from_frame(rows)
        X = vocabulary.design_matrix(rows)

        assert list(X.columns) == vocabulary.indicator_names
        assert X.loc[0].tolist() == [0.0, 1.0, 1.0, 0.0, 0.0]
        assert X.loc[1].tolist() == [1.0, 0.0, 0.0, 1.0, 0.0]
        assert X.loc[2].tolist() == [0.0, 1.0, 0.0, 0.0, 1.0]

    def test_design_matrix_unknown_category(self, rows):
        """Test labels outside the vocabulary are rejected."""
        vocabulary = CategoryVocabulary.from_frame(rows)
        other = rows.copy()
        other.loc[0, "perp_age_group"] = "SENIOR (65+)"

        with pytest.raises(UnknownCategoryError, match="perp_age_group"):
            vocabulary.design_matrix(other)

    def test_to_dict(self, rows):
        """Test dictionary form carries version and categories."""
        data = CategoryVocabulary.from_frame(rows).to_dict()
        assert set(data) == {"version", "categories"}
        assert data["categories"]["perp_sex"] == ["F", "M"]
