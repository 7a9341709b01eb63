"""Tests for identity fingerprints."""

from firreports.services.grouping import group_by
from firreports.services.identity import BLANK_FINGERPRINT, fingerprint, is_blank_fingerprint


class TestFingerprint:
    """Tests for the mobile, national ID, name fallback chain."""

    def test_same_mobile_ignores_name(self):
        a = {"mobile": "9990001111", "name": "A"}
        b = {"mobile": " 9990001111 ", "name": "A. Kumar", "aadhaar": "5678"}

        assert fingerprint(a) == fingerprint(b) == "mobile:9990001111"

    def test_national_id_when_mobile_blank(self):
        a = {"mobile": None, "aadhaar": "1234", "name": "B"}
        b = {"mobile": "  ", "aadhaar": "1234", "name": "Bee"}

        assert fingerprint(a) == fingerprint(b) == "aadhaar:1234"

    def test_name_fallback_is_case_sensitive(self):
        assert fingerprint({"name": "Ravi"}) == "name:Ravi"
        assert fingerprint({"name": "Ravi"}) != fingerprint({"name": "ravi"})

    def test_source_tag_prevents_cross_field_collision(self):
        assert fingerprint({"mobile": "1234"}) != fingerprint({"aadhaar": "1234"})

    def test_blank_identity(self):
        value = fingerprint({"mobile": "", "aadhaar": None, "name": " "})

        assert value == BLANK_FINGERPRINT
        assert is_blank_fingerprint(value)
        assert not is_blank_fingerprint("name:Ravi")

    def test_custom_fields(self):
        row = {"bailer_mobile": "8880001111", "bailer_name": "Mahesh"}

        assert fingerprint(row, mobile_field="bailer_mobile", name_field="bailer_name") == "mobile:8880001111"

    def test_rows_group_by_fingerprint(self):
        rows = [
            {"mobile": "9990001111", "name": "A"},
            {"mobile": "9990001111", "name": "A. Kumar"},
            {"mobile": None, "aadhaar": "1234", "name": "B"},
        ]

        groups = group_by(rows, fingerprint, lambda acc, row: acc.append(row), lambda key: [])

        assert sorted(len(members) for members in groups.values()) == [1, 2]
        assert len(groups["mobile:9990001111"]) == 2
