"""
Pytest configuration and fixtures for qpcrplate tests.

This module provides shared plates, Cq tables, dilution series and curve
data used across the test modules.
"""

import numpy as np
import pandas as pd
import pytest

from qpcrplate import PlateBuilder


# ==================== PLATE FIXTURES ====================
@pytest.fixture
def blank_96():
    """Blank 96-well plate (A-H x 1-12)."""
    return PlateBuilder.create_blank_plate_96well()


@pytest.fixture
def small_grid():
    """Blank 2 x 3 plate, rows A-B and columns 1-3."""
    return PlateBuilder.build_grid(["A", "B"], [1, 2, 3])


@pytest.fixture
def labelled_small_plate(small_grid):
    """2 x 3 plate with targets in rows and samples in columns."""
    rowkey = PlateBuilder.build_replicated_key(
        ["A", "B"], axis="well_row", target_id=["T_A", "T_B"]
    )
    colkey = PlateBuilder.build_replicated_key(
        [1, 2, 3], axis="well_col", sample_id=["S_1", "S_2", "S_3"], prep_type="+RT"
    )
    return PlateBuilder.label_plate(small_grid, rowkey, colkey)


# ==================== CQ FIXTURES ====================
@pytest.fixture
def two_sample_cq():
    """2 samples x 2 targets, T1 the reference target.

    sample1: T1=20, T2=25; sample2: T1=22, T2=24.
    """
    return pd.DataFrame(
        {
            "well": ["A1", "A2", "B1", "B2"],
            "sample_id": ["sample1", "sample1", "sample2", "sample2"],
            "target_id": ["T1", "T2", "T1", "T2"],
            "cq": [20.0, 25.0, 22.0, 24.0],
        }
    )


@pytest.fixture
def replicate_cq():
    """Realistic Cq table: 3 samples x 2 targets x 3 technical replicates.

    GAPDH is the housekeeping reference target; "Control" the reference sample.
    """
    rng = np.random.default_rng(42)
    base_cq = {
        ("Control", "GAPDH"): 18.5,
        ("Control", "COL1A1"): 25.0,
        ("Treated1", "GAPDH"): 18.3,
        ("Treated1", "COL1A1"): 23.5,
        ("Treated2", "GAPDH"): 18.6,
        ("Treated2", "COL1A1"): 26.5,
    }
    data = []
    well_counter = 1
    for (sample, target), cq in base_cq.items():
        for rep in range(1, 4):
            data.append(
                {
                    "well": f"A{well_counter}",
                    "sample_id": sample,
                    "target_id": target,
                    "tech_rep": rep,
                    "cq": round(cq + rng.normal(0, 0.2), 2),
                }
            )
            well_counter += 1
    return pd.DataFrame(data)


@pytest.fixture
def dilution_series():
    """Two targets over a 2-fold dilution series with two biological replicates.

    TGT_PERFECT doubles exactly every cycle (slope -1 on log2 dilution);
    TGT_SLOW needs 1.25 cycles per doubling. Biological replicate B sits half a
    cycle later than A. Two -RT rows are included that must not enter fits.
    """
    rows = []
    dilutions = [1, 0.5, 0.25, 0.125, 0.0625]
    for target, slope, intercept in [("TGT_PERFECT", -1.0, 20.0), ("TGT_SLOW", -1.25, 22.0)]:
        for biol_rep, offset in [("A", 0.0), ("B", 0.5)]:
            for dilution in dilutions:
                rows.append(
                    {
                        "target_id": target,
                        "biol_rep": biol_rep,
                        "prep_type": "+RT",
                        "dilution": dilution,
                        "cq": intercept + offset + slope * np.log2(dilution),
                    }
                )
        rows.append(
            {
                "target_id": target,
                "biol_rep": "A",
                "prep_type": "-RT",
                "dilution": 1,
                "cq": 38.0,
            }
        )
    return pd.DataFrame(rows)


# ==================== CURVE FIXTURES ====================
@pytest.fixture
def melt_curves():
    """Sigmoid melt curves for two wells melting at 80 and 85 degrees.

    Temperatures step by 0.5 degrees; well B1 rows are stored in descending
    temperature order to check that output order follows input order.
    """
    temps = np.arange(70.0, 95.0, 0.5)
    frames = []
    for well, tm, descending in [("A1", 80.0, False), ("B1", 85.0, True)]:
        fluor = 1000.0 / (1.0 + np.exp((temps - tm) / 0.8)) + 50.0
        frame = pd.DataFrame(
            {"well": well, "program_no": 3, "temperature": temps, "fluor_raw": fluor}
        )
        if descending:
            frame = frame.iloc[::-1]
        frames.append(frame)
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def amplification_curves():
    """40-cycle amplification curves for two wells with different baselines."""
    cycles = np.arange(1, 41)
    frames = []
    for well, baseline, midpoint in [("A1", 100.0, 20.0), ("A2", 250.0, 25.0)]:
        fluor = baseline + 5000.0 / (1.0 + np.exp(-(cycles - midpoint) / 1.5))
        frames.append(
            pd.DataFrame(
                {"well": well, "program_no": 2, "cycle": cycles, "fluor_raw": fluor}
            )
        )
    return pd.concat(frames, ignore_index=True)
