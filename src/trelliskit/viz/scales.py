"""
Applying cross-panel scale information to altair charts.

Responsibilities
- Read a chart's x/y encodings (field, encoding type, scale type) without rendering it.
- Map each positional encoding to a scale handler (discrete, linear, log, temporal) and
  fail fast on scale types whose limits cannot be shared across panels.
- Set per-panel scale domains from a ScalesInfo computed by trelliskit.core.scales.

Notes
- An encoding whose scale already declares a domain is never overridden.
- Encodings with a shorthand ("year:Q") are parsed with altair's own shorthand parser;
  a missing type is inferred from the polars dtype of the column.
- Temporal domains are epoch milliseconds, which Vega-Lite accepts as timestamps.

Import DAG discipline
- Depends on altair, polars, and trelliskit.core only.
"""

from __future__ import annotations

import warnings
from typing import Any, Final

import altair as alt
import polars as pl
from altair.utils import parse_shorthand

from trelliskit.core.errors import ConfigurationError
from trelliskit.core.scales import AxisKind, ScaleInfo, ScalesInfo, sliced_limits

__all__ = [
    "encoding_channel",
    "encoding_field",
    "encoding_type",
    "axis_kind",
    "grid_fields",
    "add_panel_scale",
    "add_panel_scales",
]

_QUANT_SCALES: Final[frozenset[str]] = frozenset({"linear", "log", "pow", "sqrt", "symlog"})
_TIME_SCALES: Final[frozenset[str]] = frozenset({"time", "utc"})
_TYPE_CODES: Final[dict[str, str]] = {
    "Q": "quantitative",
    "T": "temporal",
    "N": "nominal",
    "O": "ordinal",
}


def _get(obj: Any, name: str) -> Any:
    """Read a schema property, Undefined when unset."""
    if obj is alt.Undefined or obj is None:
        return alt.Undefined
    return obj._get(name)


def encoding_channel(chart: alt.Chart, axis: str) -> Any:
    """The chart's channel object for `axis` ("x", "y", "row", ...), or None."""
    ch = _get(_get(chart, "encoding"), axis)
    return None if ch is alt.Undefined else ch


def _parsed(ch: Any) -> dict[str, Any]:
    if isinstance(ch, str):
        return parse_shorthand(ch)
    out: dict[str, Any] = {}
    shorthand = _get(ch, "shorthand")
    if isinstance(shorthand, str):
        out.update(parse_shorthand(shorthand))
    for prop in ("field", "type", "aggregate"):
        v = _get(ch, prop)
        if v is not alt.Undefined:
            out[prop] = v
    if isinstance(out.get("type"), str):
        out["type"] = _TYPE_CODES.get(out["type"], out["type"])
    return out


def encoding_field(chart: alt.Chart, axis: str) -> str | None:
    """
    Data column mapped to an axis.

    Returns:
        str | None: None when the axis is not encoded or is computed (aggregate or count).
    """
    ch = encoding_channel(chart, axis)
    if ch is None:
        return None
    spec = _parsed(ch)
    field = spec.get("field")
    if spec.get("aggregate") not in (None, alt.Undefined) or not isinstance(field, str):
        return None
    return field


def _dtype_type(dtype: pl.DataType) -> str:
    if dtype.is_numeric():
        return "quantitative"
    if dtype.is_temporal():
        return "temporal"
    return "nominal"


def encoding_type(chart: alt.Chart, axis: str, data: pl.DataFrame | None = None) -> str | None:
    """Vega-Lite encoding type of an axis, inferred from the data dtype when unset."""
    ch = encoding_channel(chart, axis)
    if ch is None:
        return None
    spec = _parsed(ch)
    enc_type = spec.get("type")
    if isinstance(enc_type, str):
        return enc_type
    field = encoding_field(chart, axis)
    if field is not None and data is not None and field in data.columns:
        return _dtype_type(data.schema[field])
    return None


def _scale_type(ch: Any) -> str | None:
    scale = _get(ch, "scale")
    st = _get(scale, "type") if isinstance(scale, alt.Scale) else alt.Undefined
    return st if isinstance(st, str) else None


def axis_kind(chart: alt.Chart, axis: str, data: pl.DataFrame | None = None) -> AxisKind | None:
    """
    Scale handler for an axis.

    Returns:
        AxisKind | None: "discrete" for nominal/ordinal, "linear" or "log" for quantitative
        axes with a linear/log/pow/sqrt/symlog scale, "temporal" for temporal axes with a
        time/utc scale; None for unencoded or computed axes.

    Raises:
        ConfigurationError: For scale types that cannot be shared (e.g. quantize, band on
            a quantitative axis) or unsupported encoding types.
    """
    if encoding_field(chart, axis) is None:
        return None
    ch = encoding_channel(chart, axis)
    enc_type = encoding_type(chart, axis, data)
    scale_type = _scale_type(ch)
    if enc_type in ("nominal", "ordinal"):
        return "discrete"
    if enc_type == "quantitative":
        if scale_type is None or scale_type in _QUANT_SCALES:
            return "log" if scale_type == "log" else "linear"
        raise ConfigurationError(
            f"scale type {scale_type!r} on the {axis} axis is not supported for shared panel scales"
        )
    if enc_type == "temporal":
        if scale_type is None or scale_type in _TIME_SCALES:
            return "temporal"
        raise ConfigurationError(
            f"scale type {scale_type!r} on the temporal {axis} axis is not supported"
        )
    raise ConfigurationError(f"cannot share scales for {axis} axis of encoding type {enc_type!r}")


def grid_fields(chart: alt.Chart) -> list[str]:
    """Fields of an existing facet grid declared through row/column/facet encodings."""
    out: list[str] = []
    for channel in ("facet", "row", "column"):
        ch = encoding_channel(chart, channel)
        if ch is None:
            continue
        field = _parsed(ch).get("field")
        if isinstance(field, str):
            out.append(field)
    return out


def _with_domain(ch: Any, domain: list[Any], kind: AxisKind | None = None) -> Any:
    scale = _get(ch, "scale")
    kwds: dict[str, Any] = {}
    if isinstance(scale, alt.Scale):
        kwds = {k: v for k, v in scale._kwds.items() if v is not alt.Undefined}
    kwds["domain"] = domain
    # Vega-Lite otherwise pads quantitative domains out to zero and to nice round ticks
    if kind in ("linear", "log", "temporal"):
        kwds["nice"] = False
    if kind == "linear":
        kwds["zero"] = False
    new = ch.copy()
    new["scale"] = alt.Scale(**kwds)
    return new


def _has_domain(ch: Any) -> bool:
    scale = _get(ch, "scale")
    if scale is None:
        # scale=None disables the scale entirely
        return True
    return isinstance(scale, alt.Scale) and _get(scale, "domain") is not alt.Undefined


def add_panel_scale(
    chart: alt.Chart,
    info: ScaleInfo,
    data: pl.DataFrame,
    show_warnings: bool = False,
) -> alt.Chart:
    """
    Set one axis' domain on a single panel chart.

    Args:
        chart: Panel chart (already restricted to the panel's data).
        info: Axis info from compute_scale_info().
        data: The panel's data (used for "sliced" limits).
        show_warnings: Warn when a shared axis has no encoded field (first panel only).

    Returns:
        alt.Chart: A chart with the domain set, or `chart` unchanged.
    """
    ch = encoding_channel(chart, info.name)
    if ch is None or info.field is None:
        if show_warnings and info.scale_type != "free":
            warnings.warn(
                f"axis {info.name!r} has no encoded field; add a custom scale to change the "
                "default behavior",
                UserWarning,
                stacklevel=2,
            )
        return chart
    if isinstance(ch, str):
        ch = getattr(alt, info.name.upper())(ch)
    if _has_domain(ch) or info.scale_type == "free":
        return chart

    domain: list[Any] | None = None
    if info.data_type == "discrete" and info.levels is not None:
        domain = list(info.levels)
    elif info.data_type == "continuous" and info.scale_type == "same" and info.range is not None:
        domain = list(info.range)
    elif info.data_type == "continuous" and info.scale_type == "sliced":
        limits = sliced_limits(data.get_column(info.field), info)
        domain = list(limits) if limits is not None else None
    if domain is None:
        return chart
    return chart.encode(**{info.name: _with_domain(ch, domain, info.kind)})


def add_panel_scales(
    chart: alt.Chart,
    scales: ScalesInfo,
    data: pl.DataFrame,
    show_warnings: bool = False,
) -> alt.Chart:
    """Apply both axes of `scales` to a panel chart (see add_panel_scale)."""
    for info in scales.axes():
        chart = add_panel_scale(chart, info, data, show_warnings=show_warnings)
    return chart
