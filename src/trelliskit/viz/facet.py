"""
Faceting an altair chart into one precomputed panel per facet key.

Overview
- facet_panels() records how a chart should be split: facet columns, scale policy,
  optional "unfacet" background layer, and whether panels are interactive widgets.
- as_panels_df() turns that recipe into a polars DataFrame with one row per distinct
  facet key and a panel column of PrecomputedPanel values. Scale information is computed
  once over the unfaceted data and carried by the shared FacetChartBuilder.
- FacetChartBuilder.resolve(key) rebuilds one panel: the chart restricted to the facet
  subset, with shared/sliced scale domains applied and the title removed.

Examples:
    >>> import altair as alt
    >>> import polars as pl
    >>> from trelliskit.viz.facet import as_panels_df, facet_panels
    >>> data = pl.DataFrame({"g": ["a", "a", "b"], "x": [1, 2, 5], "y": [3, 4, 1]})
    >>> chart = alt.Chart(data).mark_point().encode(x="x:Q", y="y:Q")
    >>> df = as_panels_df(facet_panels(chart, "g"))
    >>> df.columns
    ['g', 'panel']
"""

from __future__ import annotations

import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import altair as alt
import polars as pl

from trelliskit.core.errors import ConfigurationError, KeyIntegrityError
from trelliskit.core.frame import TrelliscopeFrame, as_trelliscope_df
from trelliskit.core.panels import PrecomputedPanel, panel_series
from trelliskit.core.scales import ScalesInfo, compute_scale_info, upgrade_scales_param

from .render import VegaWidget
from .scales import add_panel_scales, axis_kind, encoding_channel, encoding_field, grid_fields

__all__ = [
    "Unfacet",
    "FacetPanels",
    "FacetChartBuilder",
    "facet_panels",
    "as_panels_df",
    "facet_trelliscope",
]

Unfacet = Literal["none", "line", "point"]

_UNFACET_COL = "__UNFACET__"


@dataclass(frozen=True)
class FacetPanels:
    """
    A chart paired with its faceting recipe (see facet_panels()).

    Attributes:
        chart (alt.Chart): Source chart (single view).
        facets (tuple[str, ...]): Facet columns.
        scales (str | tuple[str, ...]): Scale policy tokens.
        data (pl.DataFrame): Unfaceted data.
        as_widget (bool): Build interactive (html) panels.
        unfacet (Unfacet): Background layer of the whole data set.
        unfacet_color (str): Background mark color.
        unfacet_opacity (float): Background mark opacity.
    """

    chart: alt.Chart
    facets: tuple[str, ...]
    scales: str | tuple[str, ...]
    data: pl.DataFrame
    as_widget: bool = False
    unfacet: Unfacet = "none"
    unfacet_color: str = "gray"
    unfacet_opacity: float = 0.4

    @property
    def name(self) -> str:
        """Display name: the chart title, else "altair"."""
        title = self.chart._get("title")
        if isinstance(title, str) and title:
            return title
        if isinstance(title, alt.TitleParams):
            text = title._get("text")
            if isinstance(text, str) and text:
                return text
        return "altair"

    @property
    def description(self) -> str:
        return "Faceted by " + ", ".join(self.facets)


def facet_panels(
    chart: alt.Chart,
    facets: str | Sequence[str],
    scales: str | Sequence[str] = "same",
    data: pl.DataFrame | None = None,
    as_widget: bool = False,
    unfacet: Unfacet = "none",
    unfacet_color: str = "gray",
    unfacet_opacity: float = 0.4,
) -> FacetPanels:
    """
    Describe how to split a chart into panels.

    Args:
        chart: A single-view altair chart (alt.Chart).
        facets: Column(s) to facet on.
        scales: "same" (default), "free", "free_x", "free_y", "sliced", "sliced_x",
            "sliced_y", or a pair of "same"/"free"/"sliced" for x and y.
        data: Data to facet; defaults to the chart's own data.
        as_widget: Produce interactive vega-embed panels instead of static images.
        unfacet: "line" or "point" draws the whole data set, grouped by facet key, behind
            each panel; "none" (default) disables it.
        unfacet_color / unfacet_opacity: Style of the background layer.

    Raises:
        ConfigurationError: If the chart is not a single view, no polars data is available,
            facets are empty, or unfacet is unknown.
    """
    if not isinstance(chart, alt.Chart):
        raise ConfigurationError("facet_panels() only works with single-view alt.Chart objects")
    facet_cols = (facets,) if isinstance(facets, str) else tuple(facets)
    if not facet_cols or not all(isinstance(f, str) for f in facet_cols):
        raise ConfigurationError("facets must be one or more column names")
    if unfacet not in ("none", "line", "point"):
        raise ConfigurationError(f"unfacet must be 'none', 'line', or 'point', got {unfacet!r}")
    if data is None:
        data = chart._get("data")
    if not isinstance(data, pl.DataFrame):
        raise ConfigurationError(
            "a polars DataFrame must be provided either as the chart data or via data="
        )
    scales_tokens: str | tuple[str, ...] = scales if isinstance(scales, str) else tuple(scales)
    return FacetPanels(
        chart=chart,
        facets=facet_cols,
        scales=scales_tokens,
        data=data,
        as_widget=as_widget,
        unfacet=unfacet,
        unfacet_color=unfacet_color,
        unfacet_opacity=unfacet_opacity,
    )


@dataclass(frozen=True, eq=False)
class FacetChartBuilder:
    """
    PanelBuilder rebuilding one facet's chart from its key.

    Attributes:
        chart (alt.Chart): Source chart.
        facets (tuple[str, ...]): Facet columns.
        data (pl.DataFrame): Unfaceted data.
        scales (ScalesInfo): Cross-panel scale information.
        first_key (tuple): Key of the first panel; missing-axis warnings are only shown
            when building it.
        as_widget (bool): Wrap the chart in a VegaWidget.
        unfacet / unfacet_color / unfacet_opacity: Background layer settings.
    """

    chart: alt.Chart
    facets: tuple[str, ...]
    data: pl.DataFrame
    scales: ScalesInfo
    first_key: tuple[Any, ...] = ()
    as_widget: bool = False
    unfacet: Unfacet = "none"
    unfacet_color: str = "gray"
    unfacet_opacity: float = 0.4

    def subset(self, key: Mapping[str, Any]) -> pl.DataFrame:
        """Rows of the unfaceted data belonging to one facet key."""
        cond = pl.all_horizontal(
            [pl.col(c).eq_missing(pl.lit(key[c])) for c in self.facets]
        )
        return self.data.filter(cond)

    def _unfacet_layer(self, panel: alt.Chart) -> alt.Chart:
        bg_data = self.data.with_columns(
            pl.concat_str(
                [pl.col(c).cast(pl.Utf8) for c in self.facets], separator="_", ignore_nulls=True
            ).alias(_UNFACET_COL)
        ).drop(list(self.facets))
        mark = {"color": self.unfacet_color, "opacity": self.unfacet_opacity}
        base = alt.Chart(bg_data)
        layer = base.mark_line(**mark) if self.unfacet == "line" else base.mark_point(**mark)
        channels = {
            axis: ch for axis in ("x", "y") if (ch := encoding_channel(panel, axis)) is not None
        }
        return layer.encode(detail=f"{_UNFACET_COL}:N", **channels)

    def resolve(self, key: Mapping[str, Any]) -> Any:
        sub = self.subset(key)
        show = tuple(key[c] for c in self.facets) == self.first_key
        panel = self.chart.properties(data=sub, title="")
        panel = add_panel_scales(panel, self.scales, sub, show_warnings=show)
        out: Any = panel
        if self.unfacet != "none":
            background = add_panel_scales(self._unfacet_layer(panel), self.scales, sub)
            out = alt.layer(background, panel)
        if self.as_widget:
            return VegaWidget(out)
        return out


def as_panels_df(
    fp: FacetPanels,
    panel_col: str = "panel",
    keep_cols: Sequence[str] | None = None,
) -> pl.DataFrame:
    """
    Build a panel DataFrame: one row per facet key plus a precomputed panel column.

    Args:
        fp: Recipe from facet_panels().
        panel_col: Name of the panel column.
        keep_cols: Extra columns to keep; they must be constant within each facet.

    Returns:
        pl.DataFrame: facet columns, keep_cols, and `panel_col` (pl.Object).

    Raises:
        ConfigurationError: If a facet or keep column is missing, panel_col names a facet
            column, or an axis uses an unsupported scale type.
        KeyIntegrityError: If keep_cols vary within a facet.

    Notes:
        A data column named `panel_col` triggers a UserWarning and is replaced.
    """
    if not isinstance(panel_col, str) or not panel_col:
        raise ConfigurationError("panel_col must be a non-empty string")
    keep = [] if keep_cols is None else [keep_cols] if isinstance(keep_cols, str) else list(keep_cols)
    data = fp.data
    facets = list(fp.facets)

    missing = [c for c in facets if c not in data.columns]
    if missing:
        raise ConfigurationError(f"all facet columns must be found in the data; missing {missing!r}")
    if panel_col in facets:
        raise ConfigurationError(
            f"panel_col={panel_col!r} matches one of the facet columns; try a different panel_col"
        )
    missing_keep = [c for c in keep if c not in data.columns]
    if missing_keep:
        raise ConfigurationError(f"keep_cols not found in the data: {missing_keep!r}")
    if panel_col in data.columns:
        warnings.warn(
            f"a variable with name matching panel_col={panel_col!r} exists in the data and is "
            "being overwritten",
            UserWarning,
            stacklevel=2,
        )

    cols = facets + [c for c in keep if c not in facets and c != panel_col]
    rows = data.select(cols).unique(maintain_order=True)
    if keep:
        n_keys = data.select(facets).unique().height
        if rows.height != n_keys:
            raise KeyIntegrityError(
                f"the values of keep_cols={keep!r} must be distinct within the facet columns"
            )

    chart = fp.chart
    grid = grid_fields(chart)
    scales = upgrade_scales_param(fp.scales, has_facet_grid=bool(grid))
    scales = compute_scale_info(
        data,
        grid + facets,
        scales,
        x_field=encoding_field(chart, "x"),
        y_field=encoding_field(chart, "y"),
        x_kind=axis_kind(chart, "x", data),
        y_kind=axis_kind(chart, "y", data),
    )

    keys = rows.select(facets).rows()
    builder = FacetChartBuilder(
        chart=chart,
        facets=tuple(facets),
        data=data,
        scales=scales,
        first_key=tuple(keys[0]) if keys else (),
        as_widget=fp.as_widget,
        unfacet=fp.unfacet,
        unfacet_color=fp.unfacet_color,
        unfacet_opacity=fp.unfacet_opacity,
    )
    panels = [
        PrecomputedPanel(
            key=tuple(zip(facets, k, strict=True)),
            builder=builder,
            format="html" if fp.as_widget else None,
            as_widget=fp.as_widget,
        )
        for k in keys
    ]
    return rows.with_columns(panel_series(panel_col, panels))


def facet_trelliscope(
    fp: FacetPanels,
    panel_col: str = "panel",
    keep_cols: Sequence[str] | None = None,
    path: str | None = None,
) -> TrelliscopeFrame:
    """as_panels_df() bound to a display named after the chart and its facets."""
    return as_trelliscope_df(
        as_panels_df(fp, panel_col=panel_col, keep_cols=keep_cols),
        name=fp.name,
        description=fp.description,
        path=path,
        key_cols=fp.facets,
    )
