"""CurveAnalyzer — melt-curve derivatives, melt peaks, and amplification baselines.

All methods work well by well on long-format curve tables (one row per well
per temperature point or cycle). A single call must only contain one plate:
wells are identified by their key alone.
"""

import warnings

import numpy as np
import pandas as pd
from scipy.interpolate import UnivariateSpline
from scipy.signal import find_peaks

from qpcrplate.config import get_settings
from qpcrplate.constants import AnalysisConstants, PlateConstants
from qpcrplate.log import get_logger
from qpcrplate.utils import require_columns

logger = get_logger(__name__)

DRDT_METHODS = ("spline", "diff")


class CurveAnalyzer:
    @staticmethod
    def _diff_derivative(temperature: np.ndarray, fluor: np.ndarray) -> np.ndarray:
        """First differences between temperature-adjacent points; the lowest point is NaN."""
        order = np.argsort(temperature, kind="mergesort")
        derivative = np.full(len(temperature), np.nan)
        with np.errstate(divide="ignore", invalid="ignore"):
            steps = np.diff(fluor[order]) / np.diff(temperature[order])
        derivative[order[1:]] = steps
        return derivative

    @staticmethod
    def _spline_derivative(
        temperature: np.ndarray, fluor: np.ndarray, **smooth_kwargs
    ) -> np.ndarray:
        """Derivative of a smoothing spline of fluorescence, at each observed temperature."""
        derivative = np.full(len(temperature), np.nan)
        valid = np.isfinite(temperature) & np.isfinite(fluor)

        # Spline knots need strictly increasing x; average repeated temperatures
        points = pd.Series(fluor[valid]).groupby(temperature[valid]).mean()
        min_points = max(AnalysisConstants.MIN_SPLINE_POINTS, smooth_kwargs.get("k", 3) + 1)
        if len(points) < min_points:
            return derivative

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            spline = UnivariateSpline(
                points.index.to_numpy(dtype=float), points.to_numpy(dtype=float), **smooth_kwargs
            )
        observed = np.isfinite(temperature)
        derivative[observed] = spline.derivative()(temperature[observed])
        return derivative

    @staticmethod
    def calculate_drdt(
        melt_table: pd.DataFrame,
        method: str = None,
        group_by=PlateConstants.WELL,
        temperature_col: str = "temperature",
        fluor_col: str = "fluor_raw",
        **smooth_kwargs,
    ) -> pd.DataFrame:
        """Derivative of fluorescence with respect to temperature, per well.

        Args:
            melt_table: Melt curve rows for a single plate
            method: "spline" fits a smoothing spline per well and takes its
                first derivative; "diff" uses first differences between
                temperature-adjacent points. Defaults to the DRDT_METHOD setting.
            group_by: Column(s) identifying one curve
            **smooth_kwargs: Passed to scipy.interpolate.UnivariateSpline
                (e.g. ``s`` for smoothing, ``k`` for degree)

        Returns:
            Copy of ``melt_table`` with a dRdT column; row i of the output
            corresponds to row i of the input.
        """
        if method is None:
            method = get_settings().DRDT_METHOD
        if method not in DRDT_METHODS:
            raise ValueError(f"method must be one of {DRDT_METHODS}, got {method!r}")

        keys = [group_by] if isinstance(group_by, str) else list(group_by)
        require_columns(melt_table, keys + [temperature_col, fluor_col], "calculate_drdt")

        temperature = pd.to_numeric(melt_table[temperature_col], errors="coerce").to_numpy(dtype=float)
        fluor = pd.to_numeric(melt_table[fluor_col], errors="coerce").to_numpy(dtype=float)
        drdt = np.full(len(melt_table), np.nan)

        groups = melt_table.groupby(keys, sort=False, dropna=False, observed=True).indices
        for positions in groups.values():
            if method == "diff":
                drdt[positions] = CurveAnalyzer._diff_derivative(
                    temperature[positions], fluor[positions]
                )
            else:
                drdt[positions] = CurveAnalyzer._spline_derivative(
                    temperature[positions], fluor[positions], **smooth_kwargs
                )

        logger.debug("Calculated dRdT (%s) for %d curves", method, len(groups))
        result = melt_table.copy()
        result["dRdT"] = drdt
        return result

    @staticmethod
    def find_melt_peaks(
        drdt_table: pd.DataFrame,
        group_by: str = PlateConstants.WELL,
        temperature_col: str = "temperature",
        prominence: float = AnalysisConstants.MELT_PEAK_PROMINENCE,
    ) -> pd.DataFrame:
        """Melting temperature of each well: the most prominent peak of -dRdT.

        Returns one row per well with columns well, tm and peak_height; tm and
        peak_height are NaN for wells without a peak.
        """
        require_columns(drdt_table, [group_by, temperature_col, "dRdT"], "find_melt_peaks")

        rows = []
        for well, curve in drdt_table.groupby(group_by, sort=False, observed=True):
            curve = curve.sort_values(temperature_col, kind="mergesort")
            curve = curve[curve["dRdT"].notna() & curve[temperature_col].notna()]
            melt_signal = -curve["dRdT"].to_numpy(dtype=float)

            tm = peak_height = np.nan
            if len(melt_signal) >= 3:
                peaks, properties = find_peaks(melt_signal, prominence=prominence)
                if len(peaks) > 0:
                    best = peaks[np.argmax(properties["prominences"])]
                    tm = float(curve[temperature_col].iloc[best])
                    peak_height = float(melt_signal[best])
            rows.append({group_by: well, "tm": tm, "peak_height": peak_height})

        return pd.DataFrame(rows, columns=[group_by, "tm", "peak_height"])

    @staticmethod
    def debaseline(
        amp_table: pd.DataFrame,
        baseline_cycles=AnalysisConstants.BASELINE_CYCLES,
        group_by: str = PlateConstants.WELL,
    ) -> pd.DataFrame:
        """Subtract each well's baseline from its raw amplification fluorescence.

        The baseline is the median fluor_raw over ``baseline_cycles``. Adds
        fluor_base and fluor_signal = fluor_raw - fluor_base.
        """
        require_columns(amp_table, [group_by, "cycle", "fluor_raw"], "debaseline")

        result = amp_table.copy()
        fluor = pd.to_numeric(result["fluor_raw"], errors="coerce").astype(float)
        in_baseline = result["cycle"].isin(list(baseline_cycles))
        result["fluor_base"] = (
            fluor.where(in_baseline)
            .groupby(result[group_by], sort=False, dropna=False, observed=True)
            .transform("median")
        )
        result["fluor_signal"] = fluor - result["fluor_base"]
        return result
