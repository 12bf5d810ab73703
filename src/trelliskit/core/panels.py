"""
Panel values: the closed set of panel-source variants stored in a panel column.

Variants
- PrecomputedPanel: resolved from a builder keyed by facet identity (one facet subset).
- LazyPanel: resolved from an arbitrary builder argument; no facet coupling assumed.
- LocalPanel: an artifact that already exists on the local filesystem (copied).
- UrlPanel: an artifact that already exists remotely (referenced, never written).

Every value carries format, as_widget, width and height. A panel column is a polars
Series of dtype pl.Object whose elements all share one variant.

Collaborator protocols
- PanelBuilder: explicit function object with a resolve(arg) method. Builders must bundle
  any captured state (e.g. an open dataset connection) explicitly so it can be audited.
- PanelRenderer: turns a resolved object into bytes for a format.
- WidgetBackend: detects interactive widgets and extracts their shared assets.

Import DAG discipline
- Zero-IO. Depends on stdlib, polars, and trelliskit.core only.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable
from urllib.parse import urlparse

import polars as pl

from .constants import DEFAULT_PANEL_HEIGHT, DEFAULT_PANEL_WIDTH
from .errors import ConfigurationError, PanelResolutionError
from .grammar import key_string, sanitize

__all__ = [
    "PanelKind",
    "PanelBuilder",
    "FunctionBuilder",
    "PanelRenderer",
    "WidgetBackend",
    "PrecomputedPanel",
    "LazyPanel",
    "LocalPanel",
    "UrlPanel",
    "Panel",
    "resolve",
    "relative_path",
    "panel_key",
    "panel_series",
    "panel_lazy",
    "panel_local",
    "panel_url",
    "is_panel_column",
    "column_panels",
    "column_kind",
]


class PanelKind(Enum):
    PRECOMPUTED = "precomputed"
    LAZY = "lazy"
    LOCAL = "local"
    URL = "url"

    @property
    def is_lazy(self) -> bool:
        return self in (PanelKind.PRECOMPUTED, PanelKind.LAZY)


@runtime_checkable
class PanelBuilder(Protocol):
    def resolve(self, arg: Any) -> Any: ...


class PanelRenderer(Protocol):
    def to_bytes(
        self,
        obj: Any,
        fmt: str,
        width: int | float,
        height: int | float,
        *,
        html_head: str | None = None,
    ) -> bytes: ...


class WidgetBackend(Protocol):
    """Finds widget panels and stores their shared assets through the caller's `write_file`."""

    def is_widget(self, obj: Any) -> bool: ...

    def extract_dependencies(
        self,
        obj: Any,
        libs_dir: str,
        panel_dir: str,
        *,
        write_file: Callable[[str, bytes], None],
    ) -> str: ...


@dataclass(frozen=True, slots=True)
class FunctionBuilder:
    """
    Builder wrapping a plain callable and the context it needs.

    Attributes:
        fn (Callable[..., Any]): Called as fn(arg, **context).
        context (Mapping[str, Any]): Captured state, passed explicitly.

    Examples:
        >>> from trelliskit.core.panels import FunctionBuilder
        >>> FunctionBuilder(lambda arg, scale: arg["x"] * scale, {"scale": 2}).resolve({"x": 3})
        6
    """

    fn: Callable[..., Any]
    context: Mapping[str, Any] = field(default_factory=dict)

    def resolve(self, arg: Any) -> Any:
        return self.fn(arg, **dict(self.context))


@dataclass(frozen=True, slots=True, kw_only=True)
class _PanelBase:
    format: str | None = None
    as_widget: bool = False
    width: int | float = DEFAULT_PANEL_WIDTH
    height: int | float = DEFAULT_PANEL_HEIGHT


@dataclass(frozen=True, slots=True, kw_only=True)
class PrecomputedPanel(_PanelBase):
    """Panel resolved from a facet key; `key` is an ordered tuple of (column, value)."""

    kind: ClassVar[PanelKind] = PanelKind.PRECOMPUTED
    key: tuple[tuple[str, Any], ...]
    builder: PanelBuilder

    @property
    def key_dict(self) -> dict[str, Any]:
        return dict(self.key)


@dataclass(frozen=True, slots=True, kw_only=True)
class LazyPanel(_PanelBase):
    """Panel resolved from `builder.resolve(arg)`; `key` only names the output file."""

    kind: ClassVar[PanelKind] = PanelKind.LAZY
    key: tuple[Any, ...]
    arg: Any
    builder: PanelBuilder


@dataclass(frozen=True, slots=True, kw_only=True)
class LocalPanel(_PanelBase):
    kind: ClassVar[PanelKind] = PanelKind.LOCAL
    path: str


@dataclass(frozen=True, slots=True, kw_only=True)
class UrlPanel(_PanelBase):
    kind: ClassVar[PanelKind] = PanelKind.URL
    url: str


Panel = PrecomputedPanel | LazyPanel | LocalPanel | UrlPanel
_PANEL_TYPES = (PrecomputedPanel, LazyPanel, LocalPanel, UrlPanel)


def resolve(panel: Panel, index: int, column: str | None = None) -> Any:
    """
    Resolve a lazy panel value into its renderable object.

    Args:
        panel (Panel): Panel value (precomputed or lazy).
        index (int): Row index, reported on failure.
        column (str | None): Column name, reported on failure.

    Returns:
        Any: Whatever the builder returns; the core never inspects it.

    Raises:
        PanelResolutionError: If the builder raises, or the panel is a static variant.
    """
    if isinstance(panel, PrecomputedPanel):
        builder, arg = panel.builder, panel.key_dict
    elif isinstance(panel, LazyPanel):
        builder, arg = panel.builder, panel.arg
    else:
        raise PanelResolutionError(
            f"{panel.kind.value} panels reference existing files and cannot be resolved",
            index=index,
            column=column,
        )
    try:
        return builder.resolve(arg)
    except Exception as exc:
        raise PanelResolutionError(
            f"panel {index} of column {column!r} failed to resolve: {exc}",
            index=index,
            column=column,
        ) from exc


def panel_key(panel: Panel) -> str:
    """File stem / key string of a panel (sanitized key values joined by underscore)."""
    if isinstance(panel, PrecomputedPanel):
        return key_string(v for _, v in panel.key)
    if isinstance(panel, LazyPanel):
        return key_string(panel.key)
    return os.path.splitext(_source_name(panel))[0]


def _source_name(panel: LocalPanel | UrlPanel) -> str:
    if isinstance(panel, LocalPanel):
        return sanitize(os.path.basename(panel.path))
    return sanitize(os.path.basename(urlparse(panel.url).path))


def relative_path(panel: Panel, column: str, fmt: str | None = None) -> str:
    """
    Path of a panel's artifact relative to the display directory.

    Args:
        panel (Panel): Panel value.
        column (str): Panel column name.
        fmt (str | None): Output format (extension) for lazy variants. Ignored for static
            variants, which mirror the source file name.

    Returns:
        str: "panels/<sanitized column>/<key>.<fmt>" or "panels/<sanitized column>/<name>".

    Notes:
        Pure and deterministic. Distinct keys can sanitize to the same path; writers must
        check for collisions.
    """
    col_dir = os.path.join("panels", sanitize(column))
    if isinstance(panel, (PrecomputedPanel, LazyPanel)):
        ext = fmt or panel.format
        if not ext:
            raise ConfigurationError(f"a format is required to name lazy panels of {column!r}")
        return os.path.join(col_dir, f"{panel_key(panel)}.{ext}")
    return os.path.join(col_dir, _source_name(panel))


# -----------------------------------------------------------------------------
# Panel columns
# -----------------------------------------------------------------------------


def panel_series(name: str, panels: Iterable[Panel]) -> pl.Series:
    """Wrap panel values in a pl.Object series after checking homogeneity."""
    values = list(panels)
    column_kind(values, name)
    return pl.Series(name, values, dtype=pl.Object)


def panel_lazy(
    builder: PanelBuilder | Callable[[Any], Any],
    df: pl.DataFrame,
    *,
    key_cols: Sequence[str],
    arg_cols: Sequence[str] | None = None,
    name: str = "panel",
    format: str | None = None,
    as_widget: bool = False,
    width: int | float = DEFAULT_PANEL_WIDTH,
    height: int | float = DEFAULT_PANEL_HEIGHT,
) -> pl.Series:
    """
    Build a lazy panel column, one LazyPanel per row of `df`.

    Args:
        builder: PanelBuilder, or a callable which is wrapped in FunctionBuilder.
        df: Rows to build panels for.
        key_cols: Columns whose values name each panel's output file.
        arg_cols: Columns passed to the builder as a dict (default: all non-panel columns).
        name: Name of the returned series.

    Raises:
        ConfigurationError: If a key or argument column is missing.
    """
    if not isinstance(builder, PanelBuilder):
        builder = FunctionBuilder(builder)
    if arg_cols is None:
        arg_cols = [c for c in df.columns if not is_panel_column(df.get_column(c))]
    missing = [c for c in [*key_cols, *arg_cols] if c not in df.columns]
    if missing:
        raise ConfigurationError(f"columns not found in data: {missing!r}")
    keys = df.select(list(key_cols)).rows()
    args = df.select(list(arg_cols)).to_dicts()
    panels = [
        LazyPanel(
            key=tuple(k),
            arg=a,
            builder=builder,
            format=format,
            as_widget=as_widget,
            width=width,
            height=height,
        )
        for k, a in zip(keys, args, strict=True)
    ]
    return panel_series(name, panels)


def _static_format(name: str) -> str | None:
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    if ext == "htm":
        return "html"
    return ext or None


def panel_local(paths: Iterable[str], *, name: str = "panel") -> pl.Series:
    """Panel column referencing existing local files (copied into the display)."""
    return panel_series(
        name, [LocalPanel(path=str(p), format=_static_format(str(p))) for p in paths]
    )


def panel_url(urls: Iterable[str], *, name: str = "panel") -> pl.Series:
    """Panel column referencing remote artifacts (never written)."""
    return panel_series(
        name, [UrlPanel(url=str(u), format=_static_format(urlparse(str(u)).path)) for u in urls]
    )


def is_panel_column(series: pl.Series) -> bool:
    """True if the series is an object column holding panel values."""
    if series.dtype != pl.Object or series.len() == 0:
        return False
    first = series[0]
    return isinstance(first, _PANEL_TYPES)


def column_kind(values: Sequence[Any], column: str) -> PanelKind:
    """
    Return the shared variant of a panel column.

    Raises:
        ConfigurationError: If the column is empty, holds non-panel values, or mixes variants.
    """
    if not values:
        raise ConfigurationError(f"panel column {column!r} is empty")
    kinds = set()
    for v in values:
        if not isinstance(v, _PANEL_TYPES):
            raise ConfigurationError(
                f"panel column {column!r} holds a non-panel value of type {type(v).__name__}"
            )
        kinds.add(v.kind)
    if len(kinds) > 1:
        names = sorted(k.value for k in kinds)
        raise ConfigurationError(f"panel column {column!r} mixes panel variants: {names}")
    return kinds.pop()


def column_panels(df: pl.DataFrame, column: str) -> list[Panel]:
    """Panel values of a column, checked for homogeneity."""
    if column not in df.columns:
        raise ConfigurationError(f"panel column {column!r} not found in the data")
    values = df.get_column(column).to_list()
    column_kind(values, column)
    return values
