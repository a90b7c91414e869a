"""Constants for plate geometry and analysis.

Contains standard plate label sets, 1536-well row naming conventions,
well/program column conventions, and analysis defaults.
"""

import string

# ==================== PLATE GEOMETRY ====================
ROWS_96 = list(string.ascii_uppercase[:8])
COLS_96 = list(range(1, 13))

ROWS_384 = list(string.ascii_uppercase[:16])
COLS_384 = list(range(1, 25))

COLS_1536 = list(range(1, 49))


def make_row_names_lc1536():
    """Row names for Roche LightCycler 1536-well plates: Aa, Ab, Ac, Ad, Ba, ..., Hd."""
    return [
        f"{upper}{lower}"
        for upper in string.ascii_uppercase[:8]
        for lower in string.ascii_lowercase[:4]
    ]


def make_row_names_echo1536():
    """Row names for Labcyte Echo 1536-well plates: A, B, ..., Z, AA, ..., AF."""
    return list(string.ascii_uppercase) + [
        f"A{letter}" for letter in string.ascii_uppercase[:6]
    ]


ROWS_1536_LC = make_row_names_lc1536()
ROWS_1536_ECHO = make_row_names_echo1536()


# ==================== TABLE CONVENTIONS ====================
class PlateConstants:
    WELL = "well"
    WELL_ROW = "well_row"
    WELL_COL = "well_col"
    AXIS_COLUMNS = (WELL_ROW, WELL_COL)
    REQUIRED_LAYOUT_COLUMNS = ("sample_id", "target_id", "prep_type")

    PROGRAM_COLUMN = "program_no"
    PROGRAM_AMPLIFICATION = 2
    PROGRAM_MELT = (3, 4)


# ==================== ANALYSIS CONSTANTS ====================
class AnalysisConstants:
    DEFAULT_AGGREGATION = "median"
    BASELINE_CYCLES = range(3, 11)
    MIN_SPLINE_POINTS = 4
    MELT_PEAK_PROMINENCE = 0.0
    EFFICIENCY_FORMULA = "cq ~ log2(dilution)"
    EFFICIENCY_PREP_TYPES = ("+RT",)
