"""EfficiencyEstimator — amplification efficiency from dilution series.

Fits Cq against log2(dilution) by ordinary least squares (statsmodels
formula API) and converts the slope into an efficiency estimate.
"""

import re
import warnings

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from pandas.api.types import is_list_like

from qpcrplate.constants import AnalysisConstants
from qpcrplate.log import get_logger
from qpcrplate.utils import require_columns

logger = get_logger(__name__)

SLOPE_TERM = "log2_dilution"
SUMMARY_COLUMNS = ["slope", "slope.sd", "efficiency", "efficiency.sd", "r.squared"]

_LOG2_DILUTION = re.compile(r"(?:np\.|numpy\.)?log2\(\s*dilution\s*\)")


class EfficiencyEstimator:
    @staticmethod
    def _empty_summary() -> pd.DataFrame:
        return pd.DataFrame([{column: np.nan for column in SUMMARY_COLUMNS}])

    @staticmethod
    def _summarise_slope(slope: float, slope_sd: float, r_squared: float) -> dict:
        """Efficiency from the slope of Cq on log2(dilution).

        Amplification factor per cycle is 2^(-1/slope); efficiency is that
        factor minus one, so exact doubling (slope -1) gives 1.0.
        efficiency + 1 is therefore the amplification ratio 2^(-1/slope), not
        2^(-slope).
        The standard error follows from the slope's by the delta method.
        """
        if not np.isfinite(slope) or slope == 0:
            amplification = efficiency_sd = np.nan
        else:
            amplification = 2.0 ** (-1.0 / slope)
            efficiency_sd = abs(amplification * np.log(2.0) * slope_sd / slope**2)
        efficiency = amplification - 1.0
        return {
            "slope": slope,
            "slope.sd": slope_sd,
            "efficiency": efficiency,
            "efficiency.sd": efficiency_sd,
            "r.squared": r_squared,
        }

    @staticmethod
    def calculate_efficiency(
        table: pd.DataFrame, formula: str = AnalysisConstants.EFFICIENCY_FORMULA
    ) -> pd.DataFrame:
        """Estimate efficiency for a single target's dilution series.

        Args:
            table: Rows of one target_id with cq and dilution columns
            formula: Model formula; ``log2(dilution)`` stands for the log2 of
                the dilution column. Extra terms such as ``+ biol_rep`` absorb
                per-replicate offsets before the slope is estimated.

        Returns:
            One-row DataFrame with slope, slope.sd, efficiency, efficiency.sd
            and r.squared. Fields are NaN when the data cannot support a fit
            (fewer than two dilutions, no residual degrees of freedom).
        """
        require_columns(table, ["cq", "dilution"], "calculate_efficiency")
        if "target_id" in table.columns and table["target_id"].nunique(dropna=True) > 1:
            raise ValueError(
                "calculate_efficiency expects a single target_id; "
                "use calculate_efficiency_by_target for several"
            )

        model_formula = _LOG2_DILUTION.sub(SLOPE_TERM, formula)
        if SLOPE_TERM not in model_formula:
            raise ValueError(f"formula must contain log2(dilution), got {formula!r}")

        data = table.copy()
        data["cq"] = pd.to_numeric(data["cq"], errors="coerce")
        dilution = pd.to_numeric(data["dilution"], errors="coerce").astype(float)
        with np.errstate(divide="ignore", invalid="ignore"):
            data[SLOPE_TERM] = np.log2(dilution.where(dilution > 0))
        data = data[data["cq"].notna() & np.isfinite(data[SLOPE_TERM])]

        if data[SLOPE_TERM].nunique() < 2:
            logger.info("Fewer than two dilutions with Cq values; efficiency left missing")
            return EfficiencyEstimator._empty_summary()

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                fit = smf.ols(model_formula, data=data).fit()
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.info("Efficiency fit failed: %s", e)
            return EfficiencyEstimator._empty_summary()

        if fit.df_resid < 1:
            logger.info("No residual degrees of freedom; efficiency left missing")
            return EfficiencyEstimator._empty_summary()

        summary = EfficiencyEstimator._summarise_slope(
            float(fit.params[SLOPE_TERM]),
            float(fit.bse[SLOPE_TERM]),
            float(fit.rsquared),
        )
        return pd.DataFrame([summary], columns=SUMMARY_COLUMNS)

    @staticmethod
    def calculate_efficiency_by_target(
        table: pd.DataFrame,
        formula: str = AnalysisConstants.EFFICIENCY_FORMULA,
        use_prep_types=AnalysisConstants.EFFICIENCY_PREP_TYPES,
    ) -> pd.DataFrame:
        """Estimate efficiency separately for every target_id.

        Args:
            use_prep_types: prep_type values to include (e.g. "+RT"), so that
                -RT and no-template controls do not enter the fit. Ignored when
                the table has no prep_type column; None keeps every row.

        Returns:
            One row per target_id, in order of first appearance, with
            target_id followed by the calculate_efficiency summary columns.
        """
        require_columns(table, ["target_id"], "calculate_efficiency_by_target")

        data = table
        if use_prep_types is not None and "prep_type" in data.columns:
            prep_types = (
                [use_prep_types]
                if isinstance(use_prep_types, str) or not is_list_like(use_prep_types)
                else list(use_prep_types)
            )
            data = data[data["prep_type"].isin(prep_types)]

        rows = []
        for target, target_data in data.groupby("target_id", sort=False, observed=True):
            summary = EfficiencyEstimator.calculate_efficiency(target_data, formula)
            summary.insert(0, "target_id", target)
            rows.append(summary)

        if not rows:
            return pd.DataFrame(columns=["target_id"] + SUMMARY_COLUMNS)
        return pd.concat(rows, ignore_index=True)
