"""
Tests for utility functions.
"""

import pandas as pd
import pytest

from qpcrplate import (
    MissingColumnError,
    WellUniquenessError,
    assert_unique_wells,
    get_value_column,
    make_well_key,
    natural_sort_key,
    normalize_well_key,
    require_columns,
)


class TestNaturalSortKey:
    def test_numbers_sort_numerically(self):
        names = ["Sample10", "Sample2", "sample1"]
        assert sorted(names, key=natural_sort_key) == ["sample1", "Sample2", "Sample10"]


class TestWellKeys:
    def test_make_well_key(self):
        assert make_well_key("A", 1) == "A1"
        assert make_well_key("Aa", "12") == "Aa12"

    @pytest.mark.parametrize("raw", ["A1", "A01", "a01", " a1 "])
    def test_normalize_well_key(self, raw):
        assert normalize_well_key(raw) == "A1"

    def test_normalize_keeps_multiletter_rows(self):
        assert normalize_well_key("AF048") == "AF48"


class TestColumnAccess:
    def test_get_value_column(self):
        table = pd.DataFrame({"cq": [20.0]})
        assert get_value_column(table, "cq").tolist() == [20.0]

    @pytest.mark.parametrize("name", ["ct", None, 3])
    def test_get_value_column_rejects_unknown(self, name):
        with pytest.raises(MissingColumnError):
            get_value_column(pd.DataFrame({"cq": [20.0]}), name)

    def test_require_columns_names_missing(self):
        with pytest.raises(MissingColumnError, match="target_id"):
            require_columns(pd.DataFrame({"cq": [1.0]}), ["cq", "target_id"], "test")


class TestAssertUniqueWells:
    def test_unique_wells_pass(self):
        assert_unique_wells(pd.DataFrame({"well": ["A1", "A2"]}))

    def test_repeated_wells_raise(self):
        with pytest.raises(WellUniquenessError, match="A1"):
            assert_unique_wells(pd.DataFrame({"well": ["A1", "A2", "A1"]}))

    def test_missing_well_column_raises(self):
        with pytest.raises(MissingColumnError):
            assert_unique_wells(pd.DataFrame({"cq": [1.0]}))
