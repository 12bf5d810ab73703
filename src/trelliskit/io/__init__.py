"""
trelliskit.io: filesystem layer for trelliscope displays.

## Responsibilities
- Materialize panel columns (render lazy panels, copy local files) with idempotent,
  atomic writes and per-panel failure isolation.
- Write the display documents (metaData.json, displayInfo.json, displayList.json,
  config.json) next to the panels.
- Load writer settings from environment, TOML, and defaults.

## Public API
- DisplaySettings: configuration for IO behavior (defaults from trelliskit.core.constants).
- write_panels: materialize one panel column, returning a PanelWriteResult.
- write_display: write a whole display with explicit renderer/widget backends.

## Import DAG discipline
- Depends only on stdlib, polars, and trelliskit.core.*.
- MUST NOT import trelliskit.viz; renderers arrive through the PanelRenderer protocol.

## Examples
```python
from trelliskit.io import DisplaySettings, write_display

summary = write_display(frame, renderer, settings=DisplaySettings(root_dir="out"))  # doctest: +SKIP
summary["panels"]["panel"]["written"]  # doctest: +SKIP
```

## Notes
- Write path: tmp file -> fsync -> os.replace(tmp, final) on the same filesystem.
- Layout: <root>/displays/<display>/panels/<column>/<key>.<ext>.
"""

from __future__ import annotations

from .config import DisplaySettings
from .display import write_display
from .errors import IoConfigError, IoError, PanelWriteError, SpecWriteError
from .write import PanelFailure, PanelWriteResult, estimate_copy_bytes, write_panels

__all__ = [
    "DisplaySettings",
    "write_display",
    "write_panels",
    "estimate_copy_bytes",
    "PanelWriteResult",
    "PanelFailure",
    "IoError",
    "IoConfigError",
    "PanelWriteError",
    "SpecWriteError",
]
