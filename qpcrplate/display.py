"""PlateDisplay — Plotly plate-plan and per-well value figures.

Renders labelled plates as grids with columns left to right and rows top to
bottom in the plate's canonical order. Styling comes from an explicit
DisplayConfig passed by the caller.
"""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from qpcrplate.constants import PlateConstants
from qpcrplate.utils import (
    assert_unique_wells,
    get_value_column,
    natural_sort_key,
    require_columns,
)

WELL_ROW = PlateConstants.WELL_ROW
WELL_COL = PlateConstants.WELL_COL


@dataclass
class DisplayConfig:
    """Figure styling for plate displays."""

    colorscale: list = field(
        default_factory=lambda: [[0, "#2ecc71"], [0.5, "#f1c40f"], [1, "#e74c3c"]]
    )
    category_opacity: float = 0.3
    text_size: int = 9
    cell_px: int = 40
    margin_px: int = 60
    font_family: str = "Arial, sans-serif"


class PlateDisplay:
    @staticmethod
    def _axis_levels(plate: pd.DataFrame, axis: str) -> list:
        values = plate[axis]
        if isinstance(values.dtype, pd.CategoricalDtype):
            present = set(values.astype(str))
            return [str(c) for c in values.cat.categories if str(c) in present]
        return [str(v) for v in pd.unique(values.astype(str))]

    @staticmethod
    def _grid(plate: pd.DataFrame, values: pd.Series, fill=np.nan):
        """Place one value per well into a rows x columns matrix."""
        rows = PlateDisplay._axis_levels(plate, WELL_ROW)
        cols = PlateDisplay._axis_levels(plate, WELL_COL)
        row_pos = {r: i for i, r in enumerate(rows)}
        col_pos = {c: j for j, c in enumerate(cols)}

        matrix = np.full((len(rows), len(cols)), fill, dtype=object)
        for r, c, v in zip(plate[WELL_ROW].astype(str), plate[WELL_COL].astype(str), values):
            matrix[row_pos[r], col_pos[c]] = v
        return rows, cols, matrix

    @staticmethod
    def _layout(fig: go.Figure, rows: list, cols: list, title: str, config: DisplayConfig):
        fig.update_layout(
            title=title,
            xaxis=dict(title="", side="top", type="category", showgrid=False),
            yaxis=dict(title="", type="category", autorange="reversed", showgrid=False),
            height=len(rows) * config.cell_px + 2 * config.margin_px,
            width=len(cols) * config.cell_px + 2 * config.margin_px,
            font=dict(family=config.font_family),
            plot_bgcolor="#FFFFFF",
        )
        return fig

    @staticmethod
    def display_plate(plate: pd.DataFrame, config: DisplayConfig = None) -> go.Figure:
        """Empty plate plan, ready to have traces added."""
        config = config or DisplayConfig()
        require_columns(plate, [WELL_ROW, WELL_COL], "display_plate")

        rows, cols, _ = PlateDisplay._grid(plate, plate[WELL_ROW])
        fig = go.Figure(
            data=go.Heatmap(
                z=np.zeros((len(rows), len(cols))),
                x=cols,
                y=rows,
                colorscale=[[0, "#FFFFFF"], [1, "#FFFFFF"]],
                showscale=False,
                xgap=1,
                ygap=1,
                hoverinfo="skip",
            )
        )
        return PlateDisplay._layout(fig, rows, cols, "", config)

    @staticmethod
    def _category_plate(
        plate: pd.DataFrame,
        fill: str,
        label_cols: list,
        title: str,
        config: DisplayConfig,
    ) -> go.Figure:
        """Plate plan with tiles coloured by ``fill`` and labelled with ``label_cols``."""
        levels = sorted(plate[fill].dropna().astype(str).unique(), key=natural_sort_key)
        level_code = {level: i for i, level in enumerate(levels)}
        codes = plate[fill].map(
            lambda v: level_code.get(str(v), np.nan) if pd.notna(v) else np.nan
        )
        labels = plate[label_cols[0]].astype(str)
        for column in label_cols[1:]:
            labels = labels + "<br>" + plate[column].astype(str)

        rows, cols, z = PlateDisplay._grid(plate, codes)
        _, _, text = PlateDisplay._grid(plate, labels, fill="")

        fig = go.Figure(
            data=go.Heatmap(
                z=z.astype(float),
                x=cols,
                y=rows,
                text=text,
                texttemplate="%{text}",
                textfont=dict(size=config.text_size),
                colorscale="Turbo",
                opacity=config.category_opacity,
                showscale=False,
                xgap=1,
                ygap=1,
                hoverinfo="text",
            )
        )
        return PlateDisplay._layout(fig, rows, cols, title, config)

    @staticmethod
    def display_plate_qpcr(plate: pd.DataFrame, config: DisplayConfig = None) -> go.Figure:
        """Plate plan with tiles coloured by target_id and labelled target/sample/prep."""
        require_columns(
            plate,
            [WELL_ROW, WELL_COL, "target_id", "sample_id", "prep_type"],
            "display_plate_qpcr",
        )
        return PlateDisplay._category_plate(
            plate,
            "target_id",
            ["target_id", "sample_id", "prep_type"],
            "Plate plan",
            config or DisplayConfig(),
        )

    @staticmethod
    def display_plate_sample_id(plate: pd.DataFrame, config: DisplayConfig = None) -> go.Figure:
        """Plate plan coloured by sample_id and labelled with sample_id and prep_type."""
        require_columns(
            plate, [WELL_ROW, WELL_COL, "sample_id", "prep_type"], "display_plate_sample_id"
        )
        return PlateDisplay._category_plate(
            plate,
            "sample_id",
            ["sample_id", "prep_type"],
            "Plate plan: sample_id",
            config or DisplayConfig(),
        )

    @staticmethod
    def display_plate_target_id(plate: pd.DataFrame, config: DisplayConfig = None) -> go.Figure:
        """Plate plan coloured and labelled by target_id only."""
        require_columns(plate, [WELL_ROW, WELL_COL, "target_id"], "display_plate_target_id")
        return PlateDisplay._category_plate(
            plate,
            "target_id",
            ["target_id"],
            "Plate plan: target_id",
            config or DisplayConfig(),
        )

    @staticmethod
    def display_plate_value(
        plate: pd.DataFrame, value: str = "cq", config: DisplayConfig = None
    ) -> go.Figure:
        """Heatmap of one value per well (e.g. cq, delta_cq).

        Raises:
            MissingColumnError: if ``value`` is not a column of ``plate``
            WellUniquenessError: if any well has more than one row
        """
        config = config or DisplayConfig()
        values = pd.to_numeric(get_value_column(plate, value), errors="coerce")
        require_columns(plate, [WELL_ROW, WELL_COL], "display_plate_value")
        assert_unique_wells(plate)

        rows, cols, z = PlateDisplay._grid(plate, values)
        fig = go.Figure(
            data=go.Heatmap(
                z=z.astype(float),
                x=cols,
                y=rows,
                colorscale=config.colorscale,
                colorbar=dict(title=value),
                xgap=1,
                ygap=1,
            )
        )
        return PlateDisplay._layout(
            fig, rows, cols, f"{value} values for each well across the plate", config
        )
