"""
Core package aggregator for trelliskit contracts (panels, options, scales, frames, spec).

## Contracts (single source of truth)
- Panels: the closed set of panel variants, path grammar, builder/renderer protocols.
- Options: validated, immutable panel options per panel column.
- Scales: scale policy tokens and cross-panel range inference.
- Frame: the DataFrame + DisplayContext binding with copy-on-write setters.
- Meta/Inputs/State: variable metadata, user inputs, default viewer state.
- Spec: the versioned display specification document.
- Hashing/Versioning: canonical JSON, key signatures, SPEC_V.

## Notes
- Zero-IO policy: stdlib + polars + pydantic only; no file/network IO.
- Errors from this layer derive from TrelliskitError; option validation raises
  pydantic.ValidationError.

## Downstream usage
- trelliskit.io: materializes panels and writes the spec produced here.
- trelliskit.viz: builds precomputed panel columns from altair charts and applies ScaleInfo.

## Examples
```python
import polars as pl
from trelliskit.core import as_trelliscope_df, build_display_spec, panel_options, panel_url

df = pl.DataFrame({"id": [1, 2]}).with_columns(
    panel_url(["https://x/1.png", "https://x/2.png"], name="img")
)
tr = as_trelliscope_df(df, name="demo").set_panel_options(img=panel_options(width=300, height=200))
build_display_spec(tr).panel_column("img").aspect  # 1.5
```
"""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    KeyIntegrityError,
    PanelResolutionError,
    TrelliskitError,
    VersionMismatch,
)
from .frame import DisplayContext, TrelliscopeFrame, as_trelliscope_df, primary_panel
from .inputs import (
    CheckboxInput,
    MultiselectInput,
    NumberInput,
    RadioInput,
    SelectInput,
    TextInput,
)
from .meta import (
    CurrencyMeta,
    DateMeta,
    DatetimeMeta,
    FactorMeta,
    HrefMeta,
    NumberMeta,
    StringMeta,
)
from .options import PanelOptions, panel_options
from .panels import (
    FunctionBuilder,
    LazyPanel,
    LocalPanel,
    PanelKind,
    PrecomputedPanel,
    UrlPanel,
    panel_lazy,
    panel_local,
    panel_url,
    relative_path,
    resolve,
)
from .scales import ScaleInfo, ScalesInfo, compute_scale_info, upgrade_scales_param
from .spec import DisplaySpec, build_display_spec
from .state import filter_range, filter_string
from .versioning import SPEC_V, is_compatible

__all__ = [
    "TrelliskitError",
    "ConfigurationError",
    "KeyIntegrityError",
    "PanelResolutionError",
    "VersionMismatch",
    "DisplayContext",
    "TrelliscopeFrame",
    "as_trelliscope_df",
    "primary_panel",
    "RadioInput",
    "CheckboxInput",
    "SelectInput",
    "MultiselectInput",
    "TextInput",
    "NumberInput",
    "NumberMeta",
    "CurrencyMeta",
    "FactorMeta",
    "DateMeta",
    "DatetimeMeta",
    "HrefMeta",
    "StringMeta",
    "PanelOptions",
    "panel_options",
    "PanelKind",
    "FunctionBuilder",
    "PrecomputedPanel",
    "LazyPanel",
    "LocalPanel",
    "UrlPanel",
    "panel_lazy",
    "panel_local",
    "panel_url",
    "relative_path",
    "resolve",
    "ScaleInfo",
    "ScalesInfo",
    "compute_scale_info",
    "upgrade_scales_param",
    "DisplaySpec",
    "build_display_spec",
    "filter_range",
    "filter_string",
    "SPEC_V",
    "is_compatible",
]
