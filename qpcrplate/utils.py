"""Utility functions for plate tables.

Contains sorting helpers, well key construction, typed column access,
and the well-uniqueness assertion shared by joins and displays.
"""

import re
from typing import Iterable

import pandas as pd

from qpcrplate.errors import MissingColumnError, WellUniquenessError


def natural_sort_key(sample_name):
    """Extract numbers from sample name for natural sorting (e.g., Sample2 < Sample10)"""
    parts = re.split(r"(\d+)", str(sample_name))
    return [int(part) if part.isdigit() else part.lower() for part in parts]


def make_well_key(well_row, well_col) -> str:
    """Build the well identifier by concatenating row and column labels (e.g. "A1")."""
    return f"{well_row}{well_col}"


def normalize_well_key(well) -> str:
    """Canonical form of a well key, used only to diagnose format mismatches.

    Upper-cases the key and strips zero padding from numeric runs, so that
    "a01", "A01" and "A1" all normalize to "A1".
    """
    parts = re.split(r"(\d+)", str(well).strip().upper())
    return "".join(str(int(part)) if part.isdigit() else part for part in parts)


def require_columns(table: pd.DataFrame, columns: Iterable[str], context: str) -> None:
    """Raise MissingColumnError if any of ``columns`` is absent from ``table``."""
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise MissingColumnError(
            f"{context}: missing required column(s) {', '.join(missing)}"
        )


def get_value_column(table: pd.DataFrame, name: str) -> pd.Series:
    """Return ``table[name]``, raising MissingColumnError when it does not exist.

    Args:
        table: Plate or measurement table
        name: Column name supplied at runtime (e.g. "cq", "delta_cq")

    Returns:
        The requested column as a Series
    """
    if not isinstance(name, str) or name not in table.columns:
        raise MissingColumnError(
            f"{name!r} is not the name of a column in the given table"
        )
    return table[name]


def assert_unique_wells(table: pd.DataFrame, well_col: str = "well") -> None:
    """Check that every well appears at most once in ``table``.

    Raises:
        MissingColumnError: if ``well_col`` is absent
        WellUniquenessError: if any well occurs more than once
    """
    wells = get_value_column(table, well_col)
    counts = wells.value_counts(dropna=False)
    repeated = counts[counts > 1]
    if not repeated.empty:
        examples = ", ".join(str(w) for w in repeated.index[:5])
        raise WellUniquenessError(
            f"Wells do not have unique values: {len(repeated)} well(s) repeated "
            f"(e.g. {examples})"
        )
