"""Tests for dimension keys, classification, and grouping."""

from datetime import date, datetime

import pytest

from firreports.services.grouping import (
    UNKNOWN,
    DimensionStats,
    StatusCounts,
    age_bracket,
    classify,
    composite_key,
    count_incident,
    date_key,
    dimension,
    field_key,
    group_by,
    month_key,
    status_key,
)


class TestKeys:
    """Tests for dimension key functions."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_dimension_is_unknown(self, value):
        assert dimension(value) == UNKNOWN

    def test_dimension_strips(self):
        assert dimension("  Central ") == "Central"

    def test_field_key(self):
        key = field_key("district_name", "thana_name")
        assert key({"district_name": "Central", "thana_name": None}) == ("Central", UNKNOWN)

    def test_month_key_falls_back(self):
        key = month_key("incident_date", fallback="created_at")
        assert key({"incident_date": "2024-03-09"}) == ("2024-03",)
        assert key({"incident_date": None, "created_at": "2024-04-01T10:00:00+00:00"}) == ("2024-04",)
        assert key({"incident_date": datetime(2024, 5, 1, 8)}) == ("2024-05",)
        assert key({}) == (UNKNOWN,)

    def test_date_key(self):
        key = date_key("incident_date")
        assert key({"incident_date": date(2024, 1, 2)}) == ("2024-01-02",)
        assert key({"incident_date": "not a date"}) == (UNKNOWN,)

    def test_composite_key(self):
        key = composite_key(field_key("district_name"), month_key("incident_date"))
        assert key({"district_name": "North", "incident_date": "2024-02-10"}) == ("North", "2024-02")


class TestClassification:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("arrested", "arrested"),
            (" Bailed ", "bailed"),
            ("ABSCONDING", "absconding"),
            (None, "unknown"),
            ("", "unknown"),
            ("in hospital", None),
        ],
    )
    def test_classify(self, raw, expected):
        assert classify(raw) == expected

    def test_status_key_keeps_unrecognized_values(self):
        key = status_key()
        assert key({"accused_type": "Arrested"}) == ("arrested",)
        assert key({"accused_type": "in hospital"}) == ("in hospital",)

    def test_unrecognized_status_counts_toward_total_only(self):
        counts = StatusCounts()
        for status in ["arrested", "in hospital", None]:
            counts.add(status)

        assert counts.total == 3
        assert counts.as_dict() == {"arrested": 1, "bailed": 0, "absconding": 0, "unknown": 1}

    @pytest.mark.parametrize(
        "age, bracket",
        [(16, "minor"), (18, "18-30"), ("29", "18-30"), (30, "30-50"), (50, "50+"), (None, UNKNOWN)],
    )
    def test_age_bracket(self, age, bracket):
        assert age_bracket(age) == bracket


class TestGroupBy:
    """Tests for partition-and-fold."""

    def test_every_row_lands_in_exactly_one_group(self, sample_firs):
        groups = group_by(sample_firs, field_key("district_name"), count_incident, DimensionStats)

        assert sum(stats.incidents for stats in groups.values()) == len(sample_firs)
        assert groups[("Central",)].incidents == 2
        assert groups[("North",)].incidents == 1
        assert groups[(UNKNOWN,)].incidents == 1

    def test_empty_input(self):
        assert group_by([], field_key("district_name"), count_incident, DimensionStats) == {}

    def test_blank_thana_goes_to_unknown(self, sample_firs):
        groups = group_by(sample_firs, field_key("thana_name"), count_incident, DimensionStats)

        assert groups[(UNKNOWN,)].incidents == 1
        assert ("",) not in groups
