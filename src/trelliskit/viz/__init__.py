"""
trelliskit.viz: altair integration: faceting, panel scales, and rendering.

## Responsibilities
- Split a single altair chart into one precomputed panel per facet key.
- Apply cross-panel scale domains ("same", "free", "sliced") to each panel chart.
- Render charts to png/svg/html bytes and ship the vega-embed bundle for widget panels.

## Public API
- facet_panels: record a faceting recipe for a chart.
- as_panels_df: one row per facet key with a PrecomputedPanel column.
- facet_trelliscope: as_panels_df bound to a TrelliscopeFrame.
- add_panel_scales: apply a ScalesInfo to a panel chart.
- AltairRenderer: PanelRenderer for altair charts (vl-convert for static images).
- AltairWidgetBackend, VegaWidget: interactive html panels.

## Import DAG discipline
- Depends on: altair, vl-convert, polars, trelliskit.core.
- Must not import trelliskit.io; writing goes through the renderer protocols.

## Examples
```python
import altair as alt
import polars as pl
from trelliskit.viz import as_panels_df, facet_panels

data = pl.DataFrame({"g": ["a", "a", "b"], "x": [1, 2, 5], "y": [3, 4, 1]})
chart = alt.Chart(data).mark_point().encode(x="x:Q", y="y:Q")
panels = as_panels_df(facet_panels(chart, "g", scales="sliced"))
```
"""

from __future__ import annotations

from .facet import FacetChartBuilder, FacetPanels, as_panels_df, facet_panels, facet_trelliscope
from .render import AltairRenderer, AltairWidgetBackend, VegaWidget
from .scales import add_panel_scale, add_panel_scales, axis_kind, encoding_field, grid_fields

__all__ = [
    "FacetPanels",
    "FacetChartBuilder",
    "facet_panels",
    "as_panels_df",
    "facet_trelliscope",
    "add_panel_scale",
    "add_panel_scales",
    "axis_kind",
    "encoding_field",
    "grid_fields",
    "AltairRenderer",
    "AltairWidgetBackend",
    "VegaWidget",
]
