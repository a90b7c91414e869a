"""MeasurementJoiner — attach instrument measurements to a labelled plate.

Joins externally parsed Cq summaries or amplification/melt curve traces onto
a plate layout by exact, case-sensitive well key.
"""

import warnings

import numpy as np
import pandas as pd
from pandas.api.types import is_list_like

from qpcrplate.constants import PlateConstants
from qpcrplate.errors import ColumnCollisionWarning, JoinKeyError
from qpcrplate.log import get_logger
from qpcrplate.utils import assert_unique_wells, normalize_well_key, require_columns

logger = get_logger(__name__)

JOIN_KINDS = {"inner": "inner", "measurements": "right", "layout": "left"}

_LAYOUT_POS = "_layout_pos"
_MEASUREMENT_POS = "_measurement_pos"
_LAYOUT_SUFFIX = "_layout"


class MeasurementJoiner:
    @staticmethod
    def _check_well_keys(layout_wells: pd.Series, measured_wells: pd.Series) -> None:
        """Raise JoinKeyError when measurement keys differ from layout keys only in format."""
        layout_keys = set(layout_wells.dropna().astype(str))
        measured_keys = set(measured_wells.dropna().astype(str))
        if not measured_keys:
            return

        canonical = {normalize_well_key(k): k for k in layout_keys}
        mismatched = sorted(
            k for k in measured_keys - layout_keys if normalize_well_key(k) in canonical
        )
        if mismatched:
            examples = ", ".join(
                f"{k!r} vs {canonical[normalize_well_key(k)]!r}" for k in mismatched[:5]
            )
            raise JoinKeyError(
                f"Well keys in measurements differ from the layout in format "
                f"(zero padding or case): {examples}"
            )

        if not measured_keys & layout_keys:
            examples = ", ".join(sorted(measured_keys)[:5])
            raise JoinKeyError(
                f"No measurement well keys match the layout (e.g. {examples}); "
                f"the join would be empty"
            )

    @staticmethod
    def attach_measurements(
        layout: pd.DataFrame,
        measurements: pd.DataFrame,
        how: str = "inner",
        well_col: str = PlateConstants.WELL,
    ) -> pd.DataFrame:
        """Merge measurements onto a plate layout by well key.

        Columns present in both tables take the measured value, falling back
        to the layout's value where the measurement is missing. A
        ColumnCollisionWarning is issued only when the two disagree.

        Args:
            layout: Labelled plate, one row per well
            measurements: Instrument data with a well column; may hold many
                rows per well (one per cycle or temperature point)
            how: "inner" keeps rows present in both; "measurements" keeps every
                measurement row (missing layout attributes where unmatched);
                "layout" keeps every plate well (missing measurements where
                unmatched)
            well_col: Name of the well key column in both tables

        Returns:
            New DataFrame ordered by plate well order, then by the original
            order of measurement rows; unmatched rows last.
        """
        if how not in JOIN_KINDS:
            raise ValueError(f"how must be one of {sorted(JOIN_KINDS)}, got {how!r}")
        if well_col not in measurements.columns:
            raise JoinKeyError(f"measurements have no well identifier column {well_col!r}")
        require_columns(layout, [well_col], "layout")
        assert_unique_wells(layout, well_col)

        MeasurementJoiner._check_well_keys(layout[well_col], measurements[well_col])

        measured = measurements.copy()
        axis_overlap = [
            c for c in PlateConstants.AXIS_COLUMNS if c in measured.columns and c in layout.columns
        ]
        if axis_overlap:
            logger.debug("Taking %s from the layout", ", ".join(axis_overlap))
            measured = measured.drop(columns=axis_overlap)

        collisions = [
            c for c in measured.columns if c != well_col and c in layout.columns
        ]
        plate = layout.copy()
        plate[_LAYOUT_POS] = np.arange(len(plate))
        measured[_MEASUREMENT_POS] = np.arange(len(measured))
        plate[well_col] = plate[well_col].astype(object)
        measured[well_col] = measured[well_col].astype(object)

        joined = plate.merge(
            measured,
            on=well_col,
            how=JOIN_KINDS[how],
            sort=False,
            suffixes=(_LAYOUT_SUFFIX, ""),
        )

        # Measured values win; the layout fills wells the measurements leave missing
        disagreeing = []
        for column in collisions:
            layout_values = joined.pop(column + _LAYOUT_SUFFIX)
            measured_values = joined[column]
            if isinstance(layout_values.dtype, pd.CategoricalDtype) or isinstance(
                measured_values.dtype, pd.CategoricalDtype
            ):
                layout_values = layout_values.astype(object)
                measured_values = measured_values.astype(object)
            both = measured_values.notna() & layout_values.notna()
            if (measured_values[both].astype(object) != layout_values[both]).any():
                disagreeing.append(column)
            joined[column] = measured_values.combine_first(layout_values)

        if disagreeing:
            message = (
                f"measurements overwrite layout column(s) {', '.join(disagreeing)} "
                f"where the two disagree"
            )
            logger.info(message)
            warnings.warn(message, ColumnCollisionWarning, stacklevel=2)

        joined = (
            joined.sort_values(
                [_LAYOUT_POS, _MEASUREMENT_POS], na_position="last", kind="mergesort"
            )
            .drop(columns=[_LAYOUT_POS, _MEASUREMENT_POS])
            .reset_index(drop=True)
        )

        logger.debug(
            "Joined %d measurement rows onto %d wells (%s): %d rows",
            len(measurements),
            len(layout),
            how,
            len(joined),
        )
        return joined

    @staticmethod
    def select_program(measurements: pd.DataFrame, program_no) -> pd.DataFrame:
        """Rows recorded under the given instrument program number(s).

        Program 2 is the amplification run, programs 3 and 4 the melt run.
        """
        require_columns(measurements, [PlateConstants.PROGRAM_COLUMN], "select_program")
        programs = list(program_no) if is_list_like(program_no) else [program_no]
        mask = measurements[PlateConstants.PROGRAM_COLUMN].isin(programs)
        return measurements[mask].reset_index(drop=True)
