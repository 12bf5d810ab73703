"""
Display context and the bound trelliscope frame.

A TrelliscopeFrame pairs a polars DataFrame (one row per panel) with an immutable
DisplayContext holding the display name, output root, key columns, per-column panel
options, default viewer state, variable metadata, and user inputs.

Every setter is copy-on-write: it builds a new context (copying only the mapping or tuple
it changes) and returns a new frame. The original binding is never mutated, so one source
table can back several display variants without aliasing.

Examples:
    >>> import polars as pl
    >>> from trelliskit.core.frame import as_trelliscope_df
    >>> from trelliskit.core.panels import panel_url
    >>> df = pl.DataFrame({"country": ["a", "b"]}).with_columns(
    ...     panel_url(["https://x/a.png", "https://x/b.png"], name="img")
    ... )
    >>> tr = as_trelliscope_df(df, name="demo")
    >>> tr2 = tr.set_default_layout(ncol=2)
    >>> (tr.context.layout.ncol, tr2.context.layout.ncol)
    (3, 2)
"""

from __future__ import annotations

import os
import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import polars as pl

from .constants import DEFAULT_NCOL, DEFAULT_ROOT_DIR, RESERVED_COLUMNS
from .errors import ConfigurationError, KeyIntegrityError
from .grammar import sanitize
from .inputs import Input
from .meta import Meta
from .options import PanelOptions, resolve_panel_options
from .panels import Panel, PanelKind, PrecomputedPanel, column_kind, is_panel_column
from .state import FilterState, LayoutState, SortState

__all__ = [
    "DisplayContext",
    "TrelliscopeFrame",
    "as_trelliscope_df",
    "panel_columns",
    "effective_panel_options",
    "set_panel_options",
    "set_default_layout",
    "set_default_sort",
    "set_default_filters",
    "set_default_labels",
    "add_meta_defs",
    "add_inputs",
    "set_tags",
    "primary_panel",
    "set_primary_panel",
]


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class DisplayContext:
    """
    Immutable display configuration bound to a frame.

    Attributes:
        name (str): Display name (sanitized for the on-disk directory).
        description (str): Display description.
        path (str | None): Output root; the display lives under <path>/displays/<name>.
            None defers to the writer settings (DisplaySettings.root_dir).
        key_cols (tuple[str, ...]): Columns that uniquely identify a panel.
        tags (tuple[str, ...]): Free-form tags shown in the display list.
        panel_options (Mapping[str, PanelOptions]): Resolved options per panel column.
        layout (LayoutState): Default grid layout.
        sort (tuple[SortState, ...] | None): Default sort; None sorts by key columns.
        filters (tuple[FilterState, ...]): Default filters.
        labels (tuple[str, ...] | None): Variables labelled under each panel; None uses
            the key columns.
        metas (Mapping[str, Meta]): Explicit metadata overriding dtype inference.
        inputs (tuple[Input, ...]): User inputs collected by the viewer.
        primary (str | None): Panel column shown first; None picks the first panel column.
    """

    name: str
    description: str
    path: str | None
    key_cols: tuple[str, ...]
    tags: tuple[str, ...] = ()
    panel_options: Mapping[str, PanelOptions] = field(default_factory=lambda: _frozen({}))
    layout: LayoutState = field(default_factory=lambda: LayoutState(ncol=DEFAULT_NCOL))
    sort: tuple[SortState, ...] | None = None
    filters: tuple[FilterState, ...] = ()
    labels: tuple[str, ...] | None = None
    metas: Mapping[str, Meta] = field(default_factory=lambda: _frozen({}))
    inputs: tuple[Input, ...] = ()
    primary: str | None = None

    @property
    def display_dir_name(self) -> str:
        return sanitize(self.name)

    @property
    def display_path(self) -> str:
        """<path>/displays/<sanitized name>"""
        return self.display_path_under(self.path or DEFAULT_ROOT_DIR)

    def display_path_under(self, root: str) -> str:
        return os.path.join(root, "displays", self.display_dir_name)


@dataclass(frozen=True)
class TrelliscopeFrame:
    """A DataFrame bound to a DisplayContext. Setters return new frames."""

    df: pl.DataFrame
    context: DisplayContext

    def __len__(self) -> int:
        return self.df.height

    @property
    def panel_columns(self) -> list[str]:
        return panel_columns(self.df)

    def set_panel_options(self, **opts: PanelOptions) -> TrelliscopeFrame:
        return set_panel_options(self, **opts)

    def set_default_layout(self, **kwargs: Any) -> TrelliscopeFrame:
        return set_default_layout(self, **kwargs)

    def set_default_sort(
        self, varnames: Sequence[str], dirs: str | Sequence[str] = "asc"
    ) -> TrelliscopeFrame:
        return set_default_sort(self, varnames, dirs)

    def set_default_filters(self, *filters: FilterState) -> TrelliscopeFrame:
        return set_default_filters(self, *filters)

    def set_default_labels(self, varnames: Sequence[str]) -> TrelliscopeFrame:
        return set_default_labels(self, varnames)

    def add_meta_defs(self, *metas: Meta) -> TrelliscopeFrame:
        return add_meta_defs(self, *metas)

    def add_inputs(self, *inputs: Input) -> TrelliscopeFrame:
        return add_inputs(self, *inputs)

    def set_tags(self, tags: Sequence[str]) -> TrelliscopeFrame:
        return set_tags(self, tags)

    def set_primary_panel(self, column: str) -> TrelliscopeFrame:
        return set_primary_panel(self, column)


def panel_columns(df: pl.DataFrame) -> list[str]:
    """Names of the columns holding panel values, in frame order."""
    return [c for c in df.columns if is_panel_column(df.get_column(c))]


def _infer_key_cols(df: pl.DataFrame, panels: Sequence[str]) -> tuple[str, ...]:
    for col in panels:
        first = df.get_column(col)[0]
        if isinstance(first, PrecomputedPanel):
            return tuple(k for k, _ in first.key)
    candidates = [c for c in df.columns if c not in panels]
    for i in range(1, len(candidates) + 1):
        cols = candidates[:i]
        if bool(df.select(cols).is_unique().all()):
            return tuple(cols)
    raise KeyIntegrityError("could not find columns that uniquely identify each row")


def _check_unique_keys(df: pl.DataFrame, key_cols: Sequence[str]) -> None:
    keys = df.select(list(key_cols))
    dup_mask = keys.is_duplicated()
    if bool(dup_mask.any()):
        offending = keys.filter(dup_mask).unique(maintain_order=True).rows()
        raise KeyIntegrityError(
            f"key columns {list(key_cols)!r} do not uniquely identify rows", offending
        )


def as_trelliscope_df(
    df: pl.DataFrame,
    name: str,
    description: str | None = None,
    path: str | os.PathLike[str] | None = None,
    key_cols: Sequence[str] | None = None,
    tags: Sequence[str] = (),
) -> TrelliscopeFrame:
    """
    Bind a DataFrame to a new display.

    Args:
        df: One row per panel, with at least one panel column.
        name: Display name.
        description: Display description (defaults to the name).
        path: Output root (None: DisplaySettings.root_dir at write time).
        key_cols: Columns uniquely identifying each row. Inferred when omitted: the facet
            columns of a precomputed panel column, else the shortest leading run of
            non-panel columns that is unique.
        tags: Display tags.

    Returns:
        TrelliscopeFrame

    Raises:
        ConfigurationError: If the name is empty, or a key column is missing or is a
            panel column.
        KeyIntegrityError: If the key columns do not uniquely identify rows (the
            duplicated keys are reported).

    Notes:
        Columns named like reserved output columns trigger a UserWarning; their values
        are overwritten in the written metadata.
    """
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError("display name must be a non-empty string")
    if df.height == 0:
        raise ConfigurationError("cannot build a display from an empty data frame")

    panels = panel_columns(df)
    reserved = [c for c in df.columns if c in RESERVED_COLUMNS]
    if reserved:
        warnings.warn(
            f"columns {reserved!r} match reserved output column names and will be overwritten",
            UserWarning,
            stacklevel=2,
        )

    if key_cols is None:
        keys = _infer_key_cols(df, panels)
    else:
        keys = tuple(key_cols)
        missing = [c for c in keys if c not in df.columns]
        if missing:
            raise ConfigurationError(f"key columns not found in the data: {missing!r}")
        as_panel = [c for c in keys if c in panels]
        if as_panel:
            raise ConfigurationError(f"panel columns cannot be key columns: {as_panel!r}")
    _check_unique_keys(df, keys)

    ctx = DisplayContext(
        name=name,
        description=description if description is not None else name,
        path=os.fspath(path) if path is not None else None,
        key_cols=keys,
        tags=tuple(tags),
    )
    return TrelliscopeFrame(df=df, context=ctx)


# -----------------------------------------------------------------------------
# Panel options
# -----------------------------------------------------------------------------


def _resolve_for_column(df: pl.DataFrame, column: str, opts: PanelOptions | None) -> PanelOptions:
    values: list[Panel] = df.get_column(column).to_list()
    kind = column_kind(values, column)
    first = values[0]
    opts = opts or PanelOptions()
    if kind.is_lazy:
        # values carried by the panels fill what the user left unset
        inherited = {
            "format": opts.format or first.format,
            "width": opts.width if opts.width is not None else first.width,
            "height": opts.height if opts.height is not None else first.height,
        }
        opts = opts.model_copy(update=inherited)
    return resolve_panel_options(
        opts,
        kind,
        as_widget=bool(first.as_widget),
        column_format=first.format if kind in (PanelKind.LOCAL, PanelKind.URL) else None,
    )


def effective_panel_options(frame: TrelliscopeFrame, column: str) -> PanelOptions:
    """Options attached to a panel column, or the resolved defaults if none were set."""
    opts = frame.context.panel_options.get(column)
    if opts is not None:
        return opts
    return _resolve_for_column(frame.df, column, None)


def set_panel_options(frame: TrelliscopeFrame, **opts: PanelOptions) -> TrelliscopeFrame:
    """
    Attach panel options to panel columns (copy-on-write).

    Args:
        frame: Bound frame.
        **opts: Column name -> PanelOptions (see trelliskit.core.options.panel_options).

    Returns:
        TrelliscopeFrame: New frame; `frame` is unchanged.

    Raises:
        ConfigurationError: If a name is not a panel column, a value is not a PanelOptions
            record, or the options are invalid for the column's variant.
    """
    updated = dict(frame.context.panel_options)
    panels = frame.panel_columns
    for name, value in opts.items():
        if name not in frame.df.columns:
            raise ConfigurationError(f"{name!r} not found in the data frame; cannot set panel options")
        if name not in panels:
            raise ConfigurationError(f"{name!r} is not a panel column")
        if not isinstance(value, PanelOptions):
            raise ConfigurationError(
                f"panel options for {name!r} must be specified using panel_options()"
            )
        updated[name] = _resolve_for_column(frame.df, name, value)
    ctx = replace(frame.context, panel_options=_frozen(updated))
    return replace(frame, context=ctx)


# -----------------------------------------------------------------------------
# Default state
# -----------------------------------------------------------------------------


def _require_columns(frame: TrelliscopeFrame, varnames: Sequence[str], what: str) -> None:
    missing = [v for v in varnames if v not in frame.df.columns]
    if missing:
        raise ConfigurationError(f"{what} variables not found in the data: {missing!r}")


def set_default_layout(
    frame: TrelliscopeFrame,
    ncol: int | None = None,
    page: int | None = None,
    viewtype: str | None = None,
) -> TrelliscopeFrame:
    """Set the default grid layout. Omitted arguments keep their current values."""
    current = frame.context.layout
    try:
        layout = LayoutState(
            ncol=current.ncol if ncol is None else ncol,
            page=current.page if page is None else page,
            viewtype=current.viewtype if viewtype is None else viewtype,  # type: ignore[arg-type]
        )
    except ValueError as exc:
        raise ConfigurationError(f"invalid default layout: {exc}") from exc
    return replace(frame, context=replace(frame.context, layout=layout))


def set_default_sort(
    frame: TrelliscopeFrame, varnames: Sequence[str], dirs: str | Sequence[str] = "asc"
) -> TrelliscopeFrame:
    """
    Set the default sort order.

    Args:
        varnames: Variables to sort by, in priority order.
        dirs: "asc"/"desc" for all variables, or one direction per variable.
    """
    if isinstance(varnames, str):
        varnames = [varnames]
    _require_columns(frame, varnames, "sort")
    if isinstance(dirs, str):
        dirs = [dirs] * len(varnames)
    if len(dirs) != len(varnames):
        raise ConfigurationError("dirs must be a single direction or one per sort variable")
    panels = frame.panel_columns
    bad = [v for v in varnames if v in panels]
    if bad:
        raise ConfigurationError(f"cannot sort on panel columns: {bad!r}")
    try:
        sort = tuple(SortState(varname=v, dir=d) for v, d in zip(varnames, dirs, strict=True))  # type: ignore[arg-type]
    except ValueError as exc:
        raise ConfigurationError(f"invalid sort direction: {exc}") from exc
    return replace(frame, context=replace(frame.context, sort=sort))


def set_default_filters(frame: TrelliscopeFrame, *filters: FilterState) -> TrelliscopeFrame:
    """
    Set the default filters (see trelliskit.core.state.filter_range / filter_string).

    Range filters on Date/Datetime columns become "daterange" filters. Filters replace any
    previously set filter on the same variable.
    """
    _require_columns(frame, [f.varname for f in filters], "filter")
    out = {f.varname: f for f in frame.context.filters}
    for f in filters:
        dtype = frame.df.schema[f.varname]
        if f.filtertype != "category":
            if dtype == pl.Date or isinstance(dtype, pl.Datetime):
                f = f.model_copy(update={"filtertype": "daterange"})
            elif not dtype.is_numeric():
                raise ConfigurationError(
                    f"range filter on {f.varname!r} requires a numeric or date column, got {dtype}"
                )
        out[f.varname] = f
    return replace(frame, context=replace(frame.context, filters=tuple(out.values())))


def set_default_labels(frame: TrelliscopeFrame, varnames: Sequence[str]) -> TrelliscopeFrame:
    """Set the variables labelled under each panel."""
    if isinstance(varnames, str):
        varnames = [varnames]
    _require_columns(frame, varnames, "label")
    return replace(frame, context=replace(frame.context, labels=tuple(varnames)))


def add_meta_defs(frame: TrelliscopeFrame, *metas: Meta) -> TrelliscopeFrame:
    """Attach explicit variable metadata, overriding dtype inference for those variables."""
    _require_columns(frame, [m.varname for m in metas], "meta")
    updated = dict(frame.context.metas)
    for m in metas:
        updated[m.varname] = m
    return replace(frame, context=replace(frame.context, metas=_frozen(updated)))


def add_inputs(frame: TrelliscopeFrame, *inputs: Input) -> TrelliscopeFrame:
    """
    Add user inputs.

    Raises:
        KeyIntegrityError: If two inputs share a name.
    """
    combined = [*frame.context.inputs, *inputs]
    names = [i.name for i in combined]
    dups = sorted({n for n in names if names.count(n) > 1})
    if dups:
        raise KeyIntegrityError("input names must be unique", dups)
    return replace(frame, context=replace(frame.context, inputs=tuple(combined)))


def set_tags(frame: TrelliscopeFrame, tags: Sequence[str]) -> TrelliscopeFrame:
    if isinstance(tags, str):
        tags = [tags]
    return replace(frame, context=replace(frame.context, tags=tuple(str(t) for t in tags)))


def primary_panel(frame: TrelliscopeFrame) -> str:
    """
    Panel column the viewer shows first.

    Raises:
        ConfigurationError: If the frame has no panel column.
    """
    panels = frame.panel_columns
    if not panels:
        raise ConfigurationError("the data frame has no panel column")
    primary = frame.context.primary
    if primary is not None and primary in panels:
        return primary
    return panels[0]


def set_primary_panel(frame: TrelliscopeFrame, column: str) -> TrelliscopeFrame:
    if column not in frame.panel_columns:
        raise ConfigurationError(f"{column!r} is not a panel column")
    return replace(frame, context=replace(frame.context, primary=column))
