"""PlateBuilder — well grids, row/column key tables, and plate labelling.

Builds the well-indexed layout table from a grid of (row, column) labels and
independent row and column descriptors. Both axes are carried as ordered
categoricals so that joins and sorting keep the plate's canonical order
(column "10" after column "2").
"""

import warnings

import numpy as np
import pandas as pd
from pandas.api.types import is_list_like

from qpcrplate.config import get_settings
from qpcrplate.constants import (
    COLS_96,
    COLS_384,
    COLS_1536,
    ROWS_96,
    ROWS_384,
    PlateConstants,
    make_row_names_lc1536,
)
from qpcrplate.errors import (
    AxisCoercionNotice,
    ColumnCollisionWarning,
    InvalidGeometryError,
    KeyTableError,
    LengthMismatchError,
    MissingLayoutColumnNotice,
    UnmatchedAxisNotice,
)
from qpcrplate.log import get_logger
from qpcrplate.utils import make_well_key

logger = get_logger(__name__)

WELL = PlateConstants.WELL
WELL_ROW = PlateConstants.WELL_ROW
WELL_COL = PlateConstants.WELL_COL


def _notify(notices: list, message: str, category, stacklevel: int = 4) -> None:
    """Keep a notice and issue it as a warning.

    The default stacklevel points at the caller of label_plate when the notice
    comes from one of its helpers; pass 3 for notices raised by label_plate itself.
    """
    notices.append(message)
    logger.info(message)
    warnings.warn(message, category, stacklevel=stacklevel)


def _is_ordered_categorical(series: pd.Series) -> bool:
    return isinstance(series.dtype, pd.CategoricalDtype) and series.cat.ordered


class PlateBuilder:
    # ==================== GRID ====================
    @staticmethod
    def _axis_labels(labels, axis: str) -> list:
        """Stringify axis labels, rejecting empty and duplicated label sets."""
        if labels is None or isinstance(labels, str) or not is_list_like(labels):
            raise InvalidGeometryError(f"{axis} labels must be a sequence of labels")

        labels = [str(label) for label in labels]
        if not labels:
            raise InvalidGeometryError(f"{axis} labels are empty")

        index = pd.Index(labels)
        duplicated = index[index.duplicated()].unique()
        if len(duplicated) > 0:
            raise InvalidGeometryError(
                f"{axis} labels contain duplicates: {', '.join(duplicated)}"
            )
        return labels

    @staticmethod
    def build_grid(row_labels, col_labels) -> pd.DataFrame:
        """Cartesian product of row and column labels, one row per well.

        Returns a DataFrame with columns well, well_row, well_col. Both axes are
        ordered categoricals whose level order is the input order; rows are in
        row-major order (A1, A2, ..., B1, ...).
        """
        rows = PlateBuilder._axis_labels(row_labels, WELL_ROW)
        cols = PlateBuilder._axis_labels(col_labels, WELL_COL)

        grid = pd.DataFrame(
            {
                WELL: [make_well_key(r, c) for r in rows for c in cols],
                WELL_ROW: pd.Categorical(
                    np.repeat(rows, len(cols)), categories=rows, ordered=True
                ),
                WELL_COL: pd.Categorical(
                    np.tile(cols, len(rows)), categories=cols, ordered=True
                ),
            }
        )

        if grid[WELL].duplicated().any():
            clashes = grid.loc[grid[WELL].duplicated(), WELL].unique()
            raise InvalidGeometryError(
                f"Row and column labels produce ambiguous well keys: {', '.join(clashes[:5])}"
            )

        logger.debug("Built %d x %d well grid", len(rows), len(cols))
        return grid

    @staticmethod
    def create_blank_plate(well_row=ROWS_384, well_col=COLS_384) -> pd.DataFrame:
        """Blank plate template; the default describes a full 384-well plate."""
        return PlateBuilder.build_grid(well_row, well_col)

    @staticmethod
    def create_blank_plate_96well() -> pd.DataFrame:
        return PlateBuilder.build_grid(ROWS_96, COLS_96)

    @staticmethod
    def create_blank_plate_384well() -> pd.DataFrame:
        return PlateBuilder.build_grid(ROWS_384, COLS_384)

    @staticmethod
    def create_blank_plate_1536well(well_row=None, well_col=COLS_1536) -> pd.DataFrame:
        """Blank 1536-well plate, rows named with the LightCycler convention by default."""
        if well_row is None:
            well_row = make_row_names_lc1536()
        return PlateBuilder.build_grid(well_row, well_col)

    # ==================== KEY TABLES ====================
    @staticmethod
    def _tile(values, n: int, name: str) -> pd.Series:
        if isinstance(values, str) or not is_list_like(values):
            return pd.Series([values] * n)

        values = pd.Series(list(values) if not isinstance(values, pd.Series) else values)
        length = len(values)
        if length == 0 or n % length != 0:
            raise LengthMismatchError(
                f"{name} has length {length}, which does not evenly divide "
                f"the {n} axis labels"
            )
        return values.iloc[np.arange(n) % length].reset_index(drop=True)

    @staticmethod
    def build_replicated_key(axis_labels, axis: str = WELL_COL, **values) -> pd.DataFrame:
        """Build a row or column key, tiling each value pattern across the axis.

        Args:
            axis_labels: Labels of the axis the key describes (e.g. 1..24)
            axis: Name of the axis column, "well_row" or "well_col"
            **values: Named attribute vectors. A vector of length L must divide
                the number of axis labels and is repeated whole, so the label at
                position i receives ``vector[i % L]``. Scalars are broadcast.

        Returns:
            DataFrame with one row per axis label: the axis column (ordered
            categorical) followed by the supplied attributes.
        """
        if axis not in PlateConstants.AXIS_COLUMNS:
            raise KeyTableError(f"axis must be one of {PlateConstants.AXIS_COLUMNS}, got {axis!r}")

        labels = PlateBuilder._axis_labels(axis_labels, axis)
        n = len(labels)

        key = pd.DataFrame({axis: pd.Categorical(labels, categories=labels, ordered=True)})
        for name, vector in values.items():
            if name in (WELL, WELL_ROW, WELL_COL):
                raise KeyTableError(f"{name} cannot be used as a key attribute")
            key[name] = PlateBuilder._tile(vector, n, name)
        return key

    @staticmethod
    def _require_pattern_length(values: dict, length: int) -> None:
        for name, vector in values.items():
            if isinstance(vector, str) or not is_list_like(vector) or len(vector) != length:
                raise LengthMismatchError(
                    f"Some input data is not of length {length}: {name}"
                )

    @staticmethod
    def create_colkey_6_in_24(**values) -> pd.DataFrame:
        """24-column key with 6 values repeated over the plate columns.

        Each of the 6 values is laid out over 3x +RT technical replicates and
        1x -RT, giving columns well_col, prep_type, tech_rep and the supplied
        attributes (e.g. ``sample_id=list("ABCDEF")``).
        """
        PlateBuilder._require_pattern_length(values, 6)
        base = {
            "prep_type": ["+RT"] * 18 + ["-RT"] * 6,
            "tech_rep": np.repeat([1, 2, 3, 1], 6),
        }
        return PlateBuilder.build_replicated_key(COLS_384, WELL_COL, **{**base, **values})

    @staticmethod
    def create_colkey_4diln_2ctrl_in_24(
        dilution=None,
        dilution_nice=None,
        prep_type=None,
        biol_rep=None,
        tech_rep=None,
    ) -> pd.DataFrame:
        """24-column primer calibration key: 4 five-fold dilutions of +RT, then -RT and NT.

        Two biological and two technical replicates; each 6-value pattern is
        repeated 4 times across the columns.
        """
        if dilution is None:
            dilution = [5.0 ** -k for k in range(4)] + [1.0, 1.0]
        if dilution_nice is None:
            dilution_nice = ["1x", "5x", "25x", "125x", "-RT", "NT"]
        if prep_type is None:
            prep_type = ["+RT"] * 4 + ["-RT", "NT"]
        if biol_rep is None:
            biol_rep = np.repeat(["A", "B"], 12)
        if tech_rep is None:
            tech_rep = np.tile(np.repeat([1, 2], 6), 2)

        return PlateBuilder.build_replicated_key(
            COLS_384,
            WELL_COL,
            dilution=dilution,
            dilution_nice=dilution_nice,
            prep_type=prep_type,
            biol_rep=biol_rep,
            tech_rep=tech_rep,
        )

    @staticmethod
    def create_colkey_6diln_2ctrl_in_24(
        dilution=None,
        dilution_nice=None,
        prep_type=None,
        tech_rep=None,
    ) -> pd.DataFrame:
        """24-column primer calibration key: 6 five-fold dilutions of +RT, then -RT and NT.

        One biological and three technical replicates; each 8-value pattern is
        repeated 3 times across the columns.
        """
        if dilution is None:
            dilution = [5.0 ** -k for k in range(6)] + [1.0, 1.0]
        if dilution_nice is None:
            dilution_nice = ["1x", "5x", "25x", "125x", "625x", "3125x", "-RT", "NT"]
        if prep_type is None:
            prep_type = ["+RT"] * 6 + ["-RT", "NT"]
        if tech_rep is None:
            tech_rep = np.repeat([1, 2, 3], 8)

        return PlateBuilder.build_replicated_key(
            COLS_384,
            WELL_COL,
            dilution=dilution,
            dilution_nice=dilution_nice,
            prep_type=prep_type,
            tech_rep=tech_rep,
        )

    @staticmethod
    def create_rowkey_4_in_16(**values) -> pd.DataFrame:
        """16-row key with 4 values, each over 3x +RT technical replicates and 1x -RT."""
        PlateBuilder._require_pattern_length(values, 4)
        base = {
            "prep_type": ["+RT"] * 12 + ["-RT"] * 4,
            "tech_rep": np.repeat([1, 2, 3, 1], 4),
        }
        return PlateBuilder.build_replicated_key(ROWS_384, WELL_ROW, **{**base, **values})

    @staticmethod
    def create_rowkey_8_in_16_plain(**values) -> pd.DataFrame:
        """16-row key with 8 values repeated twice; no other attributes."""
        PlateBuilder._require_pattern_length(values, 8)
        return PlateBuilder.build_replicated_key(ROWS_384, WELL_ROW, **values)

    # ==================== LABELLING ====================
    @staticmethod
    def _ensure_ordered_axes(plate: pd.DataFrame, notices: list) -> pd.DataFrame:
        for axis in PlateConstants.AXIS_COLUMNS:
            if _is_ordered_categorical(plate[axis]):
                continue
            labels = plate[axis].astype(str)
            plate[axis] = pd.Categorical(
                labels, categories=pd.unique(labels), ordered=True
            )
            _notify(
                notices,
                f"plate {axis} is not an ordered categorical. Automatically "
                f"generating {axis} levels in order of appearance; this may lead "
                f"to incorrect plate plans.",
                AxisCoercionNotice,
            )
        if WELL not in plate.columns:
            plate[WELL] = plate[WELL_ROW].astype(str) + plate[WELL_COL].astype(str)
        return plate

    @staticmethod
    def _merge_key(
        plate: pd.DataFrame, key: pd.DataFrame, axis: str, strict: bool, notices: list
    ) -> pd.DataFrame:
        kind = "row" if axis == WELL_ROW else "column"
        if not isinstance(key, pd.DataFrame) or axis not in key.columns:
            raise KeyTableError(f"{kind} key must be a DataFrame with a {axis} column")

        key = key.copy()
        levels = list(plate[axis].cat.categories)
        raw = key[axis]

        if raw.isna().any():
            raise KeyTableError(f"{kind} key has missing {axis} labels")

        labels = raw.astype(str)
        duplicated = labels[labels.duplicated()].unique()
        if len(duplicated) > 0:
            raise KeyTableError(
                f"{kind} key has more than one row for {axis} {', '.join(duplicated)}"
            )

        if not (_is_ordered_categorical(raw) and list(raw.cat.categories) == levels):
            _notify(
                notices,
                f"coercing {axis} to an ordered categorical with levels from plate {axis}",
                AxisCoercionNotice,
            )

        outside = labels[~labels.isin(levels)]
        if not outside.empty:
            message = (
                f"{kind} key has {axis} labels not on the plate: "
                f"{', '.join(outside.unique()[:10])}"
            )
            if strict:
                raise KeyTableError(message)
            _notify(notices, f"{message}; dropping them", UnmatchedAxisNotice)
            keep = labels.isin(levels).to_numpy()
            key = key[keep]
            labels = labels[keep]

        key[axis] = pd.Categorical(labels.to_numpy(), categories=levels, ordered=True)

        described = set(labels)
        used = pd.unique(plate[axis].astype(str))
        uncovered = [label for label in used if label not in described]
        if uncovered:
            _notify(
                notices,
                f"{kind} key does not describe plate {axis} "
                f"{', '.join(uncovered[:10])}; those wells get missing values",
                UnmatchedAxisNotice,
            )

        attributes = [c for c in key.columns if c != axis]
        structural = [c for c in attributes if c in (WELL, WELL_ROW, WELL_COL)]
        if structural:
            raise KeyTableError(
                f"{kind} key cannot set plate column(s) {', '.join(structural)}"
            )

        collisions = [c for c in attributes if c in plate.columns]
        if collisions:
            _notify(
                notices,
                f"{kind} key overwrites existing plate column(s) {', '.join(collisions)}",
                ColumnCollisionWarning,
            )
            plate = plate.drop(columns=collisions)

        return plate.merge(key, on=axis, how="left", sort=False)

    @staticmethod
    def label_plate(
        grid: pd.DataFrame,
        row_key: pd.DataFrame = None,
        col_key: pd.DataFrame = None,
        strict: bool = None,
    ) -> pd.DataFrame:
        """Label a plate with row and column descriptors.

        Left-joins ``row_key`` on well_row and then ``col_key`` on well_col, so
        every well inherits its row's and its column's attributes. Key axes are
        re-typed to the plate's ordered categories (with an AxisCoercionNotice)
        before joining. The result is ordered by well_row then well_col in the
        plate's canonical order.

        Args:
            grid: Plate with well_row and well_col, usually from build_grid()
            row_key: Optional table with well_row and per-row attributes
            col_key: Optional table with well_col and per-column attributes
            strict: Fail when a key names labels absent from the plate. When
                False, such key rows are dropped with a notice. Defaults to
                the STRICT_AXIS_LABELS setting.

        Returns:
            New DataFrame, one row per well. Advisory notices are also listed
            in ``result.attrs["_layout_notices"]``.
        """
        if strict is None:
            strict = get_settings().STRICT_AXIS_LABELS

        if not isinstance(grid, pd.DataFrame) or not all(
            c in grid.columns for c in PlateConstants.AXIS_COLUMNS
        ):
            raise KeyTableError("plate must be a DataFrame with well_row and well_col columns")

        notices = []
        plate = PlateBuilder._ensure_ordered_axes(grid.copy(), notices)

        if row_key is not None:
            plate = PlateBuilder._merge_key(plate, row_key, WELL_ROW, strict, notices)
        if col_key is not None:
            plate = PlateBuilder._merge_key(plate, col_key, WELL_COL, strict, notices)

        for column in PlateConstants.REQUIRED_LAYOUT_COLUMNS:
            if column not in plate.columns:
                _notify(
                    notices,
                    f"plate does not contain variable {column}",
                    MissingLayoutColumnNotice,
                    stacklevel=3,
                )

        plate = plate.sort_values([WELL_ROW, WELL_COL], kind="mergesort").reset_index(
            drop=True
        )
        plate.attrs["_layout_notices"] = notices
        logger.debug("Labelled plate with %d wells and %d columns", len(plate), plate.shape[1])
        return plate
