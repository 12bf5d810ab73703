"""
trelliskit: build small-multiple (trelliscope) displays from polars DataFrames.

## Public API
- Panels: panel_lazy, panel_local, panel_url, PrecomputedPanel, FunctionBuilder.
- Frames: as_trelliscope_df, TrelliscopeFrame (copy-on-write setters).
- Options: panel_options, PanelOptions.
- Faceting: facet_panels, as_panels_df, facet_trelliscope (altair).
- Writing: write_display (altair renderer and widget backend wired by default),
  DisplaySettings.
- Spec: build_display_spec, DisplaySpec, SPEC_V.

## Examples
```python
import altair as alt
import polars as pl
import trelliskit as tk

data = pl.DataFrame({"g": ["a", "a", "b"], "x": [1, 2, 5], "y": [3, 4, 1]})
chart = alt.Chart(data).mark_point().encode(x="x:Q", y="y:Q")
frame = tk.facet_trelliscope(tk.facet_panels(chart, "g"), path="out")
summary = tk.write_display(frame)  # doctest: +SKIP
```
"""

from __future__ import annotations

import logging
from typing import Any

from .core import (
    SPEC_V,
    CheckboxInput,
    ConfigurationError,
    CurrencyMeta,
    DateMeta,
    DatetimeMeta,
    DisplaySpec,
    FactorMeta,
    FunctionBuilder,
    HrefMeta,
    KeyIntegrityError,
    MultiselectInput,
    NumberInput,
    NumberMeta,
    PanelOptions,
    PanelResolutionError,
    PrecomputedPanel,
    RadioInput,
    SelectInput,
    StringMeta,
    TextInput,
    TrelliscopeFrame,
    TrelliskitError,
    as_trelliscope_df,
    build_display_spec,
    filter_range,
    filter_string,
    panel_lazy,
    panel_local,
    panel_options,
    panel_url,
)
from .core.panels import PanelRenderer, WidgetBackend
from .io import DisplaySettings, PanelWriteError, write_panels
from .io import write_display as _write_display
from .io.write import ConfirmCopyFn, ProgressFn
from .logging_utils import configure_logging, report_failure
from .viz import (
    AltairRenderer,
    AltairWidgetBackend,
    VegaWidget,
    as_panels_df,
    facet_panels,
    facet_trelliscope,
)

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def write_display(
    frame: TrelliscopeFrame,
    renderer: PanelRenderer | None = None,
    widgets: WidgetBackend | None = None,
    *,
    force: bool = False,
    settings: DisplaySettings | None = None,
    progress: ProgressFn | None = None,
    confirm_copy: ConfirmCopyFn | None = None,
) -> dict[str, Any]:
    """
    trelliskit.io.write_display with the altair renderer and widget backend as defaults.

    A failing write is reported on the "trelliskit" logger as one readable line (see
    trelliskit.logging_utils.report_failure) and the exception is re-raised unchanged.
    """
    try:
        return _write_display(
            frame,
            renderer if renderer is not None else AltairRenderer(),
            widgets if widgets is not None else AltairWidgetBackend(),
            force=force,
            settings=settings,
            progress=progress,
            confirm_copy=confirm_copy,
        )
    except Exception as exc:
        report_failure(logger, exc, what="write_display")
        raise


__all__ = [
    "__version__",
    "SPEC_V",
    "TrelliskitError",
    "ConfigurationError",
    "KeyIntegrityError",
    "PanelResolutionError",
    "PanelWriteError",
    "PrecomputedPanel",
    "FunctionBuilder",
    "panel_lazy",
    "panel_local",
    "panel_url",
    "PanelOptions",
    "panel_options",
    "TrelliscopeFrame",
    "as_trelliscope_df",
    "DisplaySpec",
    "build_display_spec",
    "NumberMeta",
    "CurrencyMeta",
    "FactorMeta",
    "DateMeta",
    "DatetimeMeta",
    "HrefMeta",
    "StringMeta",
    "CheckboxInput",
    "MultiselectInput",
    "NumberInput",
    "RadioInput",
    "SelectInput",
    "TextInput",
    "filter_range",
    "filter_string",
    "facet_panels",
    "as_panels_df",
    "facet_trelliscope",
    "AltairRenderer",
    "AltairWidgetBackend",
    "VegaWidget",
    "DisplaySettings",
    "write_display",
    "write_panels",
    "configure_logging",
]
