"""Exceptions and advisory warning categories for plate analysis.

Structural problems raise a ``PlateLayoutError`` subclass and abort the call.
Advisory conditions are issued through :mod:`warnings` with a
``PlateNotice`` subclass and never abort.
"""


class PlateLayoutError(ValueError):
    """Base class for structural errors in plate construction and joins."""


class InvalidGeometryError(PlateLayoutError):
    """Axis label set is empty or contains duplicates."""


class LengthMismatchError(PlateLayoutError):
    """Attribute vector length does not evenly divide the axis length."""


class KeyTableError(PlateLayoutError):
    """Row or column key table cannot be merged onto the plate."""


class JoinKeyError(PlateLayoutError):
    """Measurements cannot be joined to the layout by well key."""


class MissingColumnError(PlateLayoutError):
    """A required or requested column is absent from a table."""


class WellUniquenessError(PlateLayoutError):
    """A table expected to hold one row per well holds more."""


# ==================== ADVISORY NOTICES ====================
class PlateNotice(UserWarning):
    """Base class for non-fatal diagnostics."""


class AxisCoercionNotice(PlateNotice):
    """An axis column was re-typed to the plate's ordered categories."""


class MissingLayoutColumnNotice(PlateNotice):
    """A column needed by downstream analysis is absent from the layout."""


class ColumnCollisionWarning(PlateNotice):
    """A merge overwrote an existing column."""


class UnmatchedAxisNotice(PlateNotice):
    """Axis labels of the plate and a key table do not fully overlap."""
