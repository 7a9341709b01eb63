"""Tests for the in-memory join."""

from firreports.services.join import index_by, resolve


class TestIndexBy:
    def test_skips_none_and_keeps_first(self):
        rows = [{"id": 1, "v": "a"}, {"id": None, "v": "b"}, {"id": 1, "v": "c"}]

        index = index_by(rows, "id")

        assert list(index) == [1]
        assert index[1]["v"] == "a"


class TestResolve:
    """Tests for attaching parent fields to dependent rows."""

    def test_drops_rows_with_missing_parent(self, sample_firs, sample_accused):
        """An accused row pointing at an absent FIR is not in the output."""
        enriched = resolve(sample_firs, sample_accused, "id", "fir_id", ["fir_number"])

        resolvable = [a for a in sample_accused if a["fir_id"] in {f["id"] for f in sample_firs}]
        assert len(enriched) == len(resolvable) == 5
        assert 13 not in {row["id"] for row in enriched}

    def test_copies_named_fields(self, sample_firs, sample_accused):
        enriched = resolve(sample_firs, sample_accused, "id", "fir_id", ["fir_number", "district_name"])

        first = enriched[0]
        assert first["id"] == 10
        assert first["fir_number"] == "FIR/2024/001"
        assert first["district_name"] == "Central"
        assert "thana_name" not in first

    def test_mapping_renames_fields(self, sample_firs, sample_accused):
        enriched = resolve(sample_firs, sample_accused, "id", "fir_id", {"created_at": "fir_created_at"})

        assert enriched[0]["created_at"] == "2024-01-05T11:00:00+00:00"
        assert enriched[0]["fir_created_at"] == "2024-01-05T10:00:00+00:00"

    def test_default_never_overwrites_dependent_fields(self):
        parents = [{"id": 1, "name": "parent", "district_name": "Central"}]
        children = [{"id": 5, "fir_id": 1, "name": "child"}]

        enriched = resolve(parents, children, "id", "fir_id")

        assert enriched == [{"id": 5, "fir_id": 1, "name": "child", "district_name": "Central"}]

    def test_callable_keys(self):
        parents = [{"id": "7"}]
        children = [{"fir_id": 7}]

        enriched = resolve(parents, children, lambda r: int(r["id"]), "fir_id", [])

        assert enriched == [{"fir_id": 7}]

    def test_inputs_not_mutated(self, sample_firs, sample_accused):
        before = [dict(row) for row in sample_accused]

        resolve(sample_firs, sample_accused, "id", "fir_id", ["fir_number"])

        assert sample_accused == before

    def test_preserves_input_order(self):
        parents = [{"id": 1}, {"id": 2}]
        children = [{"n": 3, "fir_id": 2}, {"n": 1, "fir_id": 1}, {"n": 2, "fir_id": 2}]

        enriched = resolve(parents, children, "id", "fir_id", [])

        assert [row["n"] for row in enriched] == [3, 1, 2]
