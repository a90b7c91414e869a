"""
Tests for EfficiencyEstimator dilution-series fits.
"""

import numpy as np
import pandas as pd
import pytest

from qpcrplate import EfficiencyEstimator, MissingColumnError
from qpcrplate.efficiency import SUMMARY_COLUMNS


def _target(dilution_series, target_id, prep_type="+RT"):
    rows = dilution_series[
        (dilution_series["target_id"] == target_id) & (dilution_series["prep_type"] == prep_type)
    ]
    return rows.reset_index(drop=True)


class TestCalculateEfficiency:
    def test_perfect_doubling_gives_efficiency_one(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency(_target(dilution_series, "TGT_PERFECT"))

        assert list(result.columns) == SUMMARY_COLUMNS
        assert len(result) == 1
        assert result["slope"].item() == pytest.approx(-1.0)
        assert result["efficiency"].item() == pytest.approx(1.0)

    def test_slower_target_efficiency(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency(_target(dilution_series, "TGT_SLOW"))

        assert result["slope"].item() == pytest.approx(-1.25)
        assert result["efficiency"].item() == pytest.approx(2.0 ** 0.8 - 1.0)
        assert result["efficiency"].item() < 1.0

    def test_efficiency_plus_one_is_amplification_ratio(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency(_target(dilution_series, "TGT_SLOW"))
        slope = result["slope"].item()

        assert result["efficiency"].item() + 1 == pytest.approx(2.0 ** (-1.0 / slope))
        assert result["efficiency"].item() + 1 != pytest.approx(2.0 ** (-slope))

    def test_replicate_term_absorbs_offsets(self, dilution_series):
        data = _target(dilution_series, "TGT_PERFECT")

        plain = EfficiencyEstimator.calculate_efficiency(data)
        with_rep = EfficiencyEstimator.calculate_efficiency(
            data, formula="cq ~ log2(dilution) + biol_rep"
        )

        assert with_rep["r.squared"].item() == pytest.approx(1.0)
        assert plain["r.squared"].item() < 1.0
        assert with_rep["slope.sd"].item() < plain["slope.sd"].item()
        assert with_rep["slope"].item() == pytest.approx(plain["slope"].item())

    def test_noisy_series_has_positive_standard_errors(self):
        rng = np.random.default_rng(7)
        dilutions = np.repeat([1, 0.1, 0.01, 0.001], 3)
        cq = 18.0 - 3.32 * np.log10(dilutions) + rng.normal(0, 0.15, dilutions.size)
        result = EfficiencyEstimator.calculate_efficiency(
            pd.DataFrame({"dilution": dilutions, "cq": cq})
        )

        assert result["slope.sd"].item() > 0
        assert result["efficiency.sd"].item() > 0
        assert 0.8 < result["efficiency"].item() < 1.2
        assert 0.9 < result["r.squared"].item() <= 1.0

    def test_single_dilution_gives_missing_row(self):
        data = pd.DataFrame({"dilution": [1, 1, 1], "cq": [20.0, 20.1, 19.9]})
        result = EfficiencyEstimator.calculate_efficiency(data)

        assert list(result.columns) == SUMMARY_COLUMNS
        assert result.iloc[0].isna().all()

    def test_all_missing_cq_gives_missing_row(self):
        data = pd.DataFrame({"dilution": [1, 0.5, 0.25], "cq": [np.nan, np.nan, np.nan]})
        result = EfficiencyEstimator.calculate_efficiency(data)

        assert result.iloc[0].isna().all()

    def test_two_points_leave_no_residual_freedom(self):
        data = pd.DataFrame({"dilution": [1, 0.5], "cq": [20.0, 21.0]})
        result = EfficiencyEstimator.calculate_efficiency(data)

        assert result.iloc[0].isna().all()

    def test_non_positive_dilutions_are_excluded(self, dilution_series):
        data = _target(dilution_series, "TGT_PERFECT")
        with_ntc = pd.concat(
            [data, pd.DataFrame({"target_id": ["TGT_PERFECT"], "dilution": [0], "cq": [35.0]})],
            ignore_index=True,
        )
        result = EfficiencyEstimator.calculate_efficiency(with_ntc)

        assert result["slope"].item() == pytest.approx(-1.0)

    def test_several_targets_raise(self, dilution_series):
        with pytest.raises(ValueError):
            EfficiencyEstimator.calculate_efficiency(dilution_series)

    def test_formula_without_dilution_term_raises(self, dilution_series):
        with pytest.raises(ValueError):
            EfficiencyEstimator.calculate_efficiency(
                _target(dilution_series, "TGT_PERFECT"), formula="cq ~ biol_rep"
            )

    def test_missing_dilution_column_raises(self):
        with pytest.raises(MissingColumnError):
            EfficiencyEstimator.calculate_efficiency(pd.DataFrame({"cq": [20.0, 21.0]}))


class TestCalculateEfficiencyByTarget:
    def test_one_row_per_target_in_order(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency_by_target(dilution_series)

        assert result["target_id"].tolist() == ["TGT_PERFECT", "TGT_SLOW"]
        assert list(result.columns) == ["target_id"] + SUMMARY_COLUMNS
        np.testing.assert_allclose(result["slope"], [-1.0, -1.25])

    def test_minus_rt_rows_are_excluded(self, dilution_series):
        default = EfficiencyEstimator.calculate_efficiency_by_target(dilution_series)
        everything = EfficiencyEstimator.calculate_efficiency_by_target(
            dilution_series, use_prep_types=None
        )

        assert default.loc[0, "slope"] == pytest.approx(-1.0)
        assert everything.loc[0, "slope"] != pytest.approx(-1.0)

    def test_formula_is_passed_through(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency_by_target(
            dilution_series, formula="cq ~ log2(dilution) + biol_rep"
        )
        np.testing.assert_allclose(result["r.squared"], [1.0, 1.0])

    def test_no_matching_prep_type_gives_empty_frame(self, dilution_series):
        result = EfficiencyEstimator.calculate_efficiency_by_target(
            dilution_series, use_prep_types="NTC"
        )

        assert result.empty
        assert list(result.columns) == ["target_id"] + SUMMARY_COLUMNS
