"""
Display writer: panels plus the JSON documents the viewer reads.

Overview
- build_display_spec() runs first, so configuration errors surface before anything is
  written.
- Every prerendered panel column is materialized with write_panels().
- Documents are then written atomically:
    - <display>/metaData.json       one object per row; panel columns replaced by the
                                    display-relative path (or url) of the panel
    - <display>/displayInfo.json    the DisplaySpec
    - <root>/displays/displayList.json  upserted entry for this display
    - <root>/config.json            app configuration (created or updated)

Notes
- Temporal values are written as ISO-8601 strings.
- Each row also carries __PANEL_KEY__ (the panel file stem) and __KEY__ (the raw key
  values joined by underscores); same-named input columns are overwritten.
- A row whose panel path collides with an earlier row's references no panel (null).
"""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from trelliskit.core.frame import TrelliscopeFrame
from trelliskit.core.grammar import format_key_value
from trelliskit.core.panels import Panel, PanelRenderer, UrlPanel, WidgetBackend, relative_path
from trelliskit.core.spec import DisplaySpec, build_display_spec, row_keys
from trelliskit.core.versioning import SPEC_V

from .config import DisplaySettings
from .errors import SpecWriteError
from .fs import write_bytes_atomic
from .paths import (
    config_path,
    display_dir,
    display_info_path,
    display_list_path,
    display_root,
    metadata_path,
)
from .write import ConfirmCopyFn, ProgressFn, find_path_collisions, write_panels

__all__ = [
    "write_display",
    "metadata_rows",
    "display_list_entry",
]

logger = logging.getLogger(__name__)


def _json_default(v: Any) -> Any:
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    if isinstance(v, Decimal):
        return float(v)
    return str(v)


def _dumps(obj: Any, indent: int | None) -> bytes:
    return json.dumps(obj, indent=indent, ensure_ascii=False, default=_json_default).encode("utf-8")


def _panel_ref(panel: Panel, column: str, fmt: str | None) -> str:
    if isinstance(panel, UrlPanel):
        return panel.url
    return relative_path(panel, column, fmt).replace(os.sep, "/")


def _panel_refs(panels: list[Panel], column: str, fmt: str | None) -> list[str | None]:
    paths = [_panel_ref(p, column, fmt) for p in panels]
    refs: list[str | None] = list(paths)
    if panels and isinstance(panels[0], UrlPanel):
        return refs
    # a row whose path was claimed by an earlier row has no artifact of its own
    _, collisions = find_path_collisions(paths)
    for c in collisions:
        refs[c.dropped] = None
    return refs


def metadata_rows(frame: TrelliscopeFrame, spec: DisplaySpec) -> list[dict[str, Any]]:
    """
    Rows of metaData.json.

    Panel values are replaced by display-relative paths ("panels/<col>/<key>.<fmt>") or
    urls; key columns are summarized into __PANEL_KEY__ and __KEY__. Rows whose panel path
    collides with an earlier row's (see find_path_collisions) get null instead of a path.
    """
    df = frame.df
    panel_cols = [pc.name for pc in spec.panel_columns]
    formats = {pc.name: pc.format for pc in spec.panel_columns}
    plain = df.drop(panel_cols).to_dicts()
    keys = row_keys(df, frame.context.key_cols)
    raw_keys = [
        "_".join(format_key_value(v) for v in row)
        for row in df.select(list(frame.context.key_cols)).rows()
    ]
    refs = {
        col: _panel_refs(df.get_column(col).to_list(), col, formats[col]) for col in panel_cols
    }
    rows: list[dict[str, Any]] = []
    for i, row in enumerate(plain):
        for col in panel_cols:
            row[col] = refs[col][i]
        row["__PANEL_KEY__"] = keys[i]
        row["__KEY__"] = raw_keys[i]
        rows.append(row)
    return rows


def display_list_entry(spec: DisplaySpec) -> dict[str, Any]:
    return {
        "name": spec.name,
        "description": spec.description,
        "tags": list(spec.tags),
        "keysig": spec.keysig,
        "version": spec.version,
    }


def _write_doc(path: str, obj: Any, indent: int | None) -> None:
    try:
        write_bytes_atomic(path, _dumps(obj, indent))
    except OSError as exc:
        raise SpecWriteError(f"failed to write {path}: {exc}") from exc


def _read_json(path: str) -> Any:
    if not os.path.exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise SpecWriteError(f"existing document {path} is not valid JSON: {exc}") from exc


def _upsert_display_list(path: str, entry: dict[str, Any], indent: int | None) -> None:
    current = _read_json(path)
    entries = [e for e in current if isinstance(e, dict)] if isinstance(current, list) else []
    entries = [e for e in entries if e.get("name") != entry["name"]]
    entries.append(entry)
    entries.sort(key=lambda e: str(e.get("name", "")))
    _write_doc(path, entries, indent)


def _write_config(path: str, indent: int | None) -> None:
    current = _read_json(path)
    cfg = dict(current) if isinstance(current, dict) else {}
    cfg.setdefault("name", "Trelliscope App")
    cfg["datatype"] = "json"
    cfg["specVersion"] = str(SPEC_V)
    _write_doc(path, cfg, indent)


def write_display(
    frame: TrelliscopeFrame,
    renderer: PanelRenderer | None,
    widgets: WidgetBackend | None = None,
    *,
    force: bool = False,
    settings: DisplaySettings | None = None,
    progress: ProgressFn | None = None,
    confirm_copy: ConfirmCopyFn | None = None,
) -> dict[str, Any]:
    """
    Write a display: panels, metaData.json, displayInfo.json, displayList.json, config.json.

    Args:
        frame (TrelliscopeFrame): Bound frame.
        renderer (PanelRenderer | None): Renderer for lazy panel columns.
        widgets (WidgetBackend | None): Widget backend for html panels.
        force (bool): Rewrite every panel.
        settings (DisplaySettings | None): IO settings (defaults to DisplaySettings.load()).
        progress (ProgressFn | None): Forwarded to write_panels for each column.
        confirm_copy (ConfirmCopyFn | None): Forwarded to write_panels for local columns.

    Returns:
        dict[str, Any]: Summary with keys:
            - name (str), path (str): display name and directory
            - rows (int)
            - keysig (str)
            - panels (dict[str, dict]): per-column PanelWriteResult.as_dict()
            - failures (int): total per-panel failures
            - files (list[str]): JSON documents written

    Raises:
        ConfigurationError: If the frame is not a valid display (nothing is written).
        PanelWriteError: If a panel artifact cannot be written.
        SpecWriteError: If a JSON document cannot be written.
    """
    settings = settings or DisplaySettings.load()
    spec = build_display_spec(frame)
    root = display_root(frame.context, settings)
    ddir = display_dir(frame.context, root)
    logger.info("writing display %r to %s", spec.name, ddir)

    results = {}
    for pc in spec.panel_columns:
        results[pc.name] = write_panels(
            frame,
            pc.name,
            renderer,
            widgets,
            force=force,
            settings=settings,
            progress=progress,
            confirm_copy=confirm_copy,
        )

    indent = settings.json_indent
    files = [
        metadata_path(frame.context, root),
        display_info_path(frame.context, root),
        display_list_path(root),
        config_path(root),
    ]
    _write_doc(files[0], metadata_rows(frame, spec), indent)
    _write_doc(files[1], spec.as_dict(), indent)
    _upsert_display_list(files[2], display_list_entry(spec), indent)
    _write_config(files[3], indent)

    n_failures = sum(len(r.failures) for r in results.values())
    if n_failures:
        logger.warning("display %r written with %d failed panels", spec.name, n_failures)
    return {
        "name": spec.name,
        "path": ddir,
        "rows": frame.df.height,
        "keysig": spec.keysig,
        "panels": {name: r.as_dict() for name, r in results.items()},
        "failures": n_failures,
        "files": files,
    }
