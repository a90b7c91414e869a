"""qPCR plate layout and normalization package.

Provides:
- PlateBuilder: well grids, replicated row/column keys, plate labelling
- MeasurementJoiner: joining Cq and curve data onto a plate by well key
- NormalizationEngine: delta-Cq and delta-delta-Cq normalization
- EfficiencyEstimator: amplification efficiency from dilution series
- CurveAnalyzer: melt-curve dR/dT, melt peaks, amplification baselines
- PlateDisplay: Plotly plate plans and per-well value heatmaps
"""

from qpcrplate.constants import (
    AnalysisConstants,
    PlateConstants,
    ROWS_96,
    COLS_96,
    ROWS_384,
    COLS_384,
    ROWS_1536_LC,
    ROWS_1536_ECHO,
    COLS_1536,
    make_row_names_lc1536,
    make_row_names_echo1536,
)
from qpcrplate.errors import (
    PlateLayoutError,
    InvalidGeometryError,
    LengthMismatchError,
    KeyTableError,
    JoinKeyError,
    MissingColumnError,
    WellUniquenessError,
    PlateNotice,
    AxisCoercionNotice,
    MissingLayoutColumnNotice,
    ColumnCollisionWarning,
    UnmatchedAxisNotice,
)
from qpcrplate.config import Settings, get_settings
from qpcrplate.utils import (
    natural_sort_key,
    make_well_key,
    normalize_well_key,
    get_value_column,
    require_columns,
    assert_unique_wells,
)
from qpcrplate.plate import PlateBuilder
from qpcrplate.measurements import MeasurementJoiner
from qpcrplate.normalization import NormalizationEngine
from qpcrplate.efficiency import EfficiencyEstimator
from qpcrplate.curves import CurveAnalyzer
from qpcrplate.display import DisplayConfig, PlateDisplay

__all__ = [
    "AnalysisConstants",
    "PlateConstants",
    "ROWS_96",
    "COLS_96",
    "ROWS_384",
    "COLS_384",
    "ROWS_1536_LC",
    "ROWS_1536_ECHO",
    "COLS_1536",
    "make_row_names_lc1536",
    "make_row_names_echo1536",
    "PlateLayoutError",
    "InvalidGeometryError",
    "LengthMismatchError",
    "KeyTableError",
    "JoinKeyError",
    "MissingColumnError",
    "WellUniquenessError",
    "PlateNotice",
    "AxisCoercionNotice",
    "MissingLayoutColumnNotice",
    "ColumnCollisionWarning",
    "UnmatchedAxisNotice",
    "Settings",
    "get_settings",
    "natural_sort_key",
    "make_well_key",
    "normalize_well_key",
    "get_value_column",
    "require_columns",
    "assert_unique_wells",
    "PlateBuilder",
    "MeasurementJoiner",
    "NormalizationEngine",
    "EfficiencyEstimator",
    "CurveAnalyzer",
    "DisplayConfig",
    "PlateDisplay",
]
