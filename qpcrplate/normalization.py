"""NormalizationEngine — delta-Cq and delta-delta-Cq relative quantification.

Both stages are the same partition / aggregate / subtract pass:
delta-Cq normalizes Cq to reference targets within each sample, and
delta-delta-Cq normalizes delta-Cq to reference samples within each target.
"""

import numpy as np
import pandas as pd
from pandas.api.types import is_list_like

from qpcrplate.config import get_settings
from qpcrplate.log import get_logger
from qpcrplate.utils import require_columns

logger = get_logger(__name__)


def _as_id_list(ids) -> list:
    if isinstance(ids, str) or not is_list_like(ids):
        return [ids]
    return list(ids)


def _reference_aggregator(agg):
    """Turn ``agg`` into a transform-compatible reducer that yields NaN for empty groups."""
    if isinstance(agg, str):
        if agg not in ("median", "mean"):
            raise ValueError(f"agg must be 'median', 'mean' or a callable, got {agg!r}")
        return agg
    if not callable(agg):
        raise ValueError(f"agg must be 'median', 'mean' or a callable, got {agg!r}")

    def reduce(values: pd.Series):
        present = values.dropna()
        if present.empty:
            return np.nan
        return agg(present)

    return reduce


class NormalizationEngine:
    @staticmethod
    def calculate_normvalue(
        table: pd.DataFrame,
        ref_ids,
        value_col: str = "cq",
        id_col: str = "target_id",
        group_col: str = "sample_id",
        agg=None,
        norm_col: str = "norm_value",
        ref_col: str = "ref_value",
    ) -> pd.DataFrame:
        """Normalize a value to the aggregate of reference rows within each group.

        Within each ``group_col`` partition, ``ref_col`` is ``agg`` of
        ``value_col`` over rows whose ``id_col`` is in ``ref_ids``, and
        ``norm_col`` is ``value_col - ref_col`` for every row of the partition.

        A partition with no reference rows, or only missing reference values,
        gets NaN in both columns. Rows are never dropped or reordered.

        Args:
            agg: "median", "mean", or a callable reducing a Series of the
                non-missing reference values to a scalar. Defaults to the
                DEFAULT_AGGREGATION setting.
        """
        require_columns(table, [value_col, id_col, group_col], "calculate_normvalue")
        if agg is None:
            agg = get_settings().DEFAULT_AGGREGATION
        reducer = _reference_aggregator(agg)
        refs = _as_id_list(ref_ids)

        result = table.copy()
        values = pd.to_numeric(result[value_col], errors="coerce").astype(float)
        is_ref = result[id_col].isin(refs)
        ref_values = values.where(is_ref)

        grouped = ref_values.groupby(result[group_col], dropna=False, observed=True, sort=False)
        reference = grouped.transform(reducer)

        result[ref_col] = reference.astype(float)
        result[norm_col] = values - result[ref_col]

        missing = (
            result.loc[result[ref_col].isna() & values.notna(), group_col]
            .drop_duplicates()
            .tolist()
        )
        if missing:
            logger.warning(
                "No %s reference (%s in %s) for %s %s; %s left missing",
                value_col,
                id_col,
                ", ".join(str(r) for r in refs),
                group_col,
                ", ".join(str(g) for g in missing[:10]),
                norm_col,
            )
        result.attrs["_missing_reference_groups"] = missing
        return result

    @staticmethod
    def calculate_deltacq(
        table: pd.DataFrame,
        ref_target_ids,
        group_col: str = "sample_id",
        agg=None,
    ) -> pd.DataFrame:
        """Delta-Cq against reference targets within each sample.

        Adds ref_cq (aggregate Cq of the reference targets in the sample),
        delta_cq = cq - ref_cq, and rel_abund = 2^(-delta_cq).
        """
        result = NormalizationEngine.calculate_normvalue(
            table,
            ref_target_ids,
            value_col="cq",
            id_col="target_id",
            group_col=group_col,
            agg=agg,
            norm_col="delta_cq",
            ref_col="ref_cq",
        )
        result["rel_abund"] = np.power(2.0, -result["delta_cq"])
        return result

    @staticmethod
    def calculate_deltadeltacq(
        table: pd.DataFrame,
        ref_sample_ids,
        group_col: str = "target_id",
        agg=None,
    ) -> pd.DataFrame:
        """Delta-delta-Cq against reference samples within each target.

        Expects the output of calculate_deltacq. Adds ref_delta_cq (aggregate
        delta_cq of the reference samples for the target),
        deltadelta_cq = delta_cq - ref_delta_cq, and
        fold_change = 2^(-deltadelta_cq).
        """
        result = NormalizationEngine.calculate_normvalue(
            table,
            ref_sample_ids,
            value_col="delta_cq",
            id_col="sample_id",
            group_col=group_col,
            agg=agg,
            norm_col="deltadelta_cq",
            ref_col="ref_delta_cq",
        )
        result["fold_change"] = np.power(2.0, -result["deltadelta_cq"])
        return result
