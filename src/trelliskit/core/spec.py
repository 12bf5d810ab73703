"""
Versioned display specification built from a bound frame.

Responsibilities
- Validate a TrelliscopeFrame for writing (panel columns, key columns, referenced variables).
- Describe every column: panel columns with their resolved options, other columns with
  explicit or dtype-inferred metadata plus summary statistics.
- Produce an immutable DisplaySpec whose JSON form (camelCase keys) is the viewer's
  displayInfo document.

Notes
- Building the spec never touches the filesystem; trelliskit.io.display writes it.
- Documents carry version "<major>.<minor>" of SPEC_V; readers gate on is_compatible().

Import DAG discipline
- Zero-IO. Depends on stdlib, polars, pydantic, and trelliskit.core only.
"""

from __future__ import annotations

import json
from typing import Any, Literal

import polars as pl
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import ConfigurationError
from .frame import TrelliscopeFrame, effective_panel_options, primary_panel
from .grammar import key_string
from .hashing import hash_keys
from .meta import infer_meta, summarize
from .panels import PanelKind, PrecomputedPanel, column_kind
from .state import FilterState, SortState
from .versioning import SPEC_V

__all__ = [
    "PanelColumnSpec",
    "VariableSpec",
    "DefaultLayoutSpec",
    "DisplaySpec",
    "build_display_spec",
    "row_keys",
]


class _SpecModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PanelColumnSpec(_SpecModel):
    """
    Description of one panel column.

    Attributes:
        name (str): Column name.
        kind (str): Panel variant ("precomputed", "lazy", "local", "url").
        type (str): "img" or "iframe".
        format (str | None): Output format; None for static files of unknown type.
        width / height (int | float | None): Render size (lazy variants only).
        aspect (float | None): width / height.
        force (bool): Rewrite existing outputs.
        prerender (bool): Materialized before viewing.
        source (str): "file" when the display serves the artifact, "url" when remote.
    """

    name: str
    kind: Literal["precomputed", "lazy", "local", "url"]
    type: Literal["img", "iframe"]
    format: str | None = None
    width: int | float | None = None
    height: int | float | None = None
    aspect: float | None = None
    force: bool = False
    prerender: bool = True
    source: Literal["file", "url"] = "file"


class VariableSpec(BaseModel):
    """
    Metadata and summary for one column.

    Type-specific fields (digits, levels, timezone, ...) and summary statistics (nMissing,
    min, max, mean, levels, counts, nUnique) are carried as extra fields.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    varname: str
    type: str
    label: str
    tags: tuple[str, ...] = ()


class DefaultLayoutSpec(_SpecModel):
    ncol: int
    page: int
    viewtype: Literal["grid", "table"]
    sort: tuple[SortState, ...] = ()
    filter: tuple[FilterState, ...] = ()
    labels: tuple[str, ...] = ()


class DisplaySpec(_SpecModel):
    """
    Display specification document (written as displayInfo.json).

    Serialize with as_dict() / as_json(); keys use the viewer's camelCase.
    """

    version: str = Field(default_factory=lambda: str(SPEC_V))
    name: str
    description: str
    tags: tuple[str, ...] = ()
    keysig: str
    keycols: tuple[str, ...]
    facet_columns: tuple[str, ...] = ()
    primary_panel: str
    panel_columns: tuple[PanelColumnSpec, ...]
    variables: tuple[VariableSpec, ...] = ()
    inputs: tuple[dict[str, Any], ...] = ()
    default_layout: DefaultLayoutSpec

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def as_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.as_dict(), indent=indent, ensure_ascii=False)

    def panel_column(self, name: str) -> PanelColumnSpec:
        for pc in self.panel_columns:
            if pc.name == name:
                return pc
        raise KeyError(name)


def row_keys(df: pl.DataFrame, key_cols: tuple[str, ...] | list[str]) -> list[str]:
    """Key string of every row (sanitized key values joined by underscores)."""
    return [key_string(row) for row in df.select(list(key_cols)).rows()]


def _validate(frame: TrelliscopeFrame, panels: list[str]) -> None:
    ctx = frame.context
    cols = set(frame.df.columns)
    if not panels:
        raise ConfigurationError("the data frame must contain at least one panel column")
    missing_keys = [k for k in ctx.key_cols if k not in cols]
    if missing_keys:
        raise ConfigurationError(f"key columns not found in the data: {missing_keys!r}")
    as_key = [p for p in panels if p in ctx.key_cols]
    if as_key:
        raise ConfigurationError(f"panel columns cannot be key columns: {as_key!r}")
    unknown_opts = [c for c in ctx.panel_options if c not in panels]
    if unknown_opts:
        raise ConfigurationError(f"panel options set for non-panel columns: {unknown_opts!r}")

    referenced: dict[str, list[str]] = {
        "sort": [s.varname for s in ctx.sort or ()],
        "filter": [f.varname for f in ctx.filters],
        "label": list(ctx.labels or ()),
        "meta": list(ctx.metas),
    }
    for what, names in referenced.items():
        missing = [v for v in names if v not in cols]
        if missing:
            raise ConfigurationError(f"{what} variables not found in the data: {missing!r}")


def _panel_column_spec(frame: TrelliscopeFrame, column: str) -> PanelColumnSpec:
    kind = column_kind(frame.df.get_column(column).to_list(), column)
    opts = effective_panel_options(frame, column)
    return PanelColumnSpec(
        name=column,
        kind=kind.value,
        type=opts.type,
        format=opts.format,
        width=opts.width,
        height=opts.height,
        aspect=opts.aspect,
        force=opts.force,
        prerender=opts.prerender,
        source="url" if kind is PanelKind.URL else "file",
    )


def _variable_spec(series: pl.Series, frame: TrelliscopeFrame) -> VariableSpec:
    meta = frame.context.metas.get(series.name) or infer_meta(series)
    fields = meta.model_dump(exclude={"varname", "label", "tags", "type"}, exclude_none=True)
    extra = {k: list(v) if isinstance(v, tuple) else v for k, v in fields.items()}
    extra.update(summarize(series, meta))
    return VariableSpec(
        varname=meta.varname,
        type=meta.type,
        label=meta.label or meta.varname,
        tags=meta.tags,
        **extra,
    )


def _facet_columns(frame: TrelliscopeFrame, panels: list[str]) -> tuple[str, ...]:
    for col in panels:
        first = frame.df.get_column(col)[0]
        if isinstance(first, PrecomputedPanel):
            return tuple(k for k, _ in first.key)
    return frame.context.key_cols


def build_display_spec(frame: TrelliscopeFrame) -> DisplaySpec:
    """
    Validate a bound frame and describe it as a DisplaySpec.

    Args:
        frame (TrelliscopeFrame): Frame to describe.

    Returns:
        DisplaySpec: Immutable specification document.

    Raises:
        ConfigurationError: If the frame has no panel column, a panel column is also a key
            column, a panel column mixes variants, or a sort/filter/label/meta variable is
            missing from the data.

    Examples:
        >>> import polars as pl
        >>> from trelliskit.core.frame import as_trelliscope_df
        >>> from trelliskit.core.panels import panel_url
        >>> from trelliskit.core.spec import build_display_spec
        >>> df = pl.DataFrame({"id": [1, 2]}).with_columns(
        ...     panel_url(["https://x/1.png", "https://x/2.png"], name="img")
        ... )
        >>> spec = build_display_spec(as_trelliscope_df(df, name="demo"))
        >>> (spec.version, spec.primary_panel, spec.panel_columns[0].source)
        ('1.0', 'img', 'url')
    """
    ctx = frame.context
    panels = frame.panel_columns
    _validate(frame, panels)

    panel_specs = tuple(_panel_column_spec(frame, c) for c in panels)
    variables = tuple(
        _variable_spec(frame.df.get_column(c), frame) for c in frame.df.columns if c not in panels
    )
    sort = ctx.sort if ctx.sort is not None else tuple(SortState(varname=k) for k in ctx.key_cols)
    layout = DefaultLayoutSpec(
        ncol=ctx.layout.ncol,
        page=ctx.layout.page,
        viewtype=ctx.layout.viewtype,
        sort=sort,
        filter=ctx.filters,
        labels=ctx.labels if ctx.labels is not None else ctx.key_cols,
    )
    return DisplaySpec(
        name=ctx.name,
        description=ctx.description,
        tags=ctx.tags,
        keysig=hash_keys(row_keys(frame.df, ctx.key_cols)),
        keycols=ctx.key_cols,
        facet_columns=_facet_columns(frame, panels),
        primary_panel=primary_panel(frame),
        panel_columns=panel_specs,
        variables=variables,
        inputs=tuple(i.as_dict() for i in ctx.inputs),
        default_layout=layout,
    )
