"""
Scale policy normalization and cross-panel range inference.

Overview
- upgrade_scales_param() turns the user's scale tokens into one ScaleInfo per axis.
- compute_scale_info() inspects the unfaceted data once per render batch and records what
  each axis needs so that every panel can be rendered consistently:
    - discrete axes: the ordered level set (policy "same");
    - continuous "same": the global (min, max);
    - continuous "sliced": the maximum per-panel span.
- sliced_limits() computes one panel's limits for a "sliced" axis: its own midpoint
  plus or minus half the shared span.

Domain space
- linear: data values. log: data values for ranges, log10 values for spans and centres.
- temporal: epoch milliseconds (Date, Datetime) or milliseconds since midnight (Time).

Import DAG discipline
- Zero-IO. Depends on stdlib, polars, and trelliskit.core only. Applying the results to a
  plotting backend is the job of trelliskit.viz.scales.
"""

from __future__ import annotations

import math
import warnings
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any, Final, Literal

import polars as pl

from .constants import SCALE_EPSILON
from .errors import ConfigurationError

__all__ = [
    "ScaleType",
    "AxisKind",
    "ScaleInfo",
    "ScalesInfo",
    "upgrade_scales_param",
    "compute_scale_info",
    "domain_values",
    "sliced_limits",
]

ScaleType = Literal["same", "free", "sliced"]
DataType = Literal["discrete", "continuous"]
AxisKind = Literal["discrete", "linear", "log", "temporal"]

_SCALE_LOOKUP: Final[dict[str, tuple[ScaleType, ScaleType]]] = {
    "same": ("same", "same"),
    "free": ("free", "free"),
    "free_x": ("free", "same"),
    "free_y": ("same", "free"),
    "sliced": ("sliced", "sliced"),
    "sliced_x": ("sliced", "same"),
    "sliced_y": ("same", "sliced"),
}
_PAIR_TOKENS: Final[frozenset[str]] = frozenset({"same", "free", "sliced"})


@dataclass(frozen=True)
class ScaleInfo:
    """
    Cross-panel scale information for one axis.

    Attributes:
        name (str): "x" or "y".
        scale_type (ScaleType): "same", "free" or "sliced" (after downgrades).
        data_type (DataType | None): "discrete" or "continuous" once computed.
        kind (AxisKind | None): Scale handler of the axis.
        field (str | None): Data column mapped to the axis, None for computed axes.
        levels (tuple | None): Ordered category levels (discrete, "same").
        range (tuple[float, float] | None): Global domain (continuous, "same").
        width (float | None): Maximum per-panel span (continuous, "sliced").
    """

    name: str
    scale_type: ScaleType
    data_type: DataType | None = None
    kind: AxisKind | None = None
    field: str | None = None
    levels: tuple[Any, ...] | None = None
    range: tuple[float, float] | None = None
    width: float | None = None


@dataclass(frozen=True)
class ScalesInfo:
    x: ScaleInfo
    y: ScaleInfo

    def axes(self) -> tuple[ScaleInfo, ScaleInfo]:
        return (self.x, self.y)

    @property
    def all_free(self) -> bool:
        return self.x.scale_type == "free" and self.y.scale_type == "free"


def upgrade_scales_param(
    scales: str | Sequence[str], has_facet_grid: bool = False
) -> ScalesInfo:
    """
    Normalize scale tokens to an (x, y) policy pair.

    Args:
        scales: One token from {"same","free","free_x","free_y","sliced","sliced_x",
            "sliced_y"}, or two tokens from {"same","free","sliced"} for x and y.
        has_facet_grid: Whether the source chart already declares a multi-panel facet grid.
            Sliced axes cannot be honoured inside a grid and are downgraded to "free".

    Returns:
        ScalesInfo

    Raises:
        ConfigurationError: On empty, over-long, or unknown tokens.

    Examples:
        >>> from trelliskit.core.scales import upgrade_scales_param
        >>> info = upgrade_scales_param("free_x")
        >>> (info.x.scale_type, info.y.scale_type)
        ('free', 'same')
    """
    if isinstance(scales, str):
        tokens: list[str] = [scales]
    elif scales is None:
        tokens = []
    else:
        tokens = list(scales)
    if not tokens or any(not isinstance(t, str) for t in tokens):
        raise ConfigurationError("scales must be a sequence of one or two strings")
    if len(tokens) > 2:
        raise ConfigurationError("scales must not be longer than length 2")

    if len(tokens) == 1:
        pair = _SCALE_LOOKUP.get(tokens[0])
        if pair is None:
            raise ConfigurationError(
                f"a single scales value must be one of {sorted(_SCALE_LOOKUP)}, got {tokens[0]!r}"
            )
        x_type, y_type = pair
    else:
        if not all(t in _PAIR_TOKENS for t in tokens):
            raise ConfigurationError(
                "a length 2 scales parameter can only be made of 'same', 'free', or 'sliced'"
            )
        x_type, y_type = tokens  # type: ignore[assignment]

    if has_facet_grid:
        if x_type == "sliced":
            _warn_downgrade("x", "the chart declares a facet grid")
            x_type = "free"
        if y_type == "sliced":
            _warn_downgrade("y", "the chart declares a facet grid")
            y_type = "free"

    return ScalesInfo(x=ScaleInfo("x", x_type), y=ScaleInfo("y", y_type))


def _warn_downgrade(axis: str, reason: str) -> None:
    warnings.warn(
        f"the {axis} scale can not be sliced because {reason}; using 'free' instead",
        UserWarning,
        stacklevel=3,
    )


# -----------------------------------------------------------------------------
# Range inference
# -----------------------------------------------------------------------------


def domain_values(series: pl.Series, kind: AxisKind) -> pl.Series:
    """
    Convert an axis column into float values in domain space.

    Temporal columns become epoch milliseconds (Time: ms since midnight). Nulls and
    non-finite values are dropped; log axes also drop non-positive values.

    Raises:
        ConfigurationError: If the column dtype does not match the axis kind.
    """
    dtype = series.dtype
    if kind == "temporal":
        if dtype == pl.Date:
            out = series.cast(pl.Datetime("ms")).dt.epoch("ms")
        elif isinstance(dtype, pl.Datetime):
            out = series.dt.epoch("ms")
        elif dtype == pl.Time:
            out = series.cast(pl.Int64) / 1_000_000
        else:
            raise ConfigurationError(
                f"column {series.name!r} of dtype {dtype} cannot be used on a temporal axis"
            )
    elif dtype.is_numeric():
        out = series
    else:
        raise ConfigurationError(
            f"column {series.name!r} of dtype {dtype} cannot be used on a {kind} axis"
        )
    out = out.cast(pl.Float64).drop_nulls()
    out = out.filter(out.is_finite())
    if kind == "log":
        out = out.filter(out > 0)
    return out


def _span_space(values: pl.Series, kind: AxisKind) -> pl.Series:
    return values.log(10) if kind == "log" else values


def _levels(series: pl.Series) -> tuple[Any, ...]:
    observed = series.drop_nulls().unique()
    if isinstance(series.dtype, pl.Enum):
        present = set(observed.cast(pl.Utf8).to_list())
        return tuple(c for c in series.dtype.categories.to_list() if c in present)
    if isinstance(series.dtype, pl.Categorical):
        observed = observed.cast(pl.Utf8)
    return tuple(observed.sort().to_list())


def _axis_info(
    info: ScaleInfo,
    data: pl.DataFrame,
    group_cols: Sequence[str],
    field: str | None,
    kind: AxisKind | None,
) -> ScaleInfo:
    info = replace(info, field=field, kind=kind)
    if field is None or kind is None:
        # computed axis (e.g. a count); nothing to train on
        return info
    if field not in data.columns:
        raise ConfigurationError(f"axis field {field!r} not found in the data")

    if kind == "discrete":
        info = replace(info, data_type="discrete")
        if info.scale_type == "sliced":
            _warn_downgrade(info.name, "the data is discrete")
            return replace(info, scale_type="free")
        return replace(info, levels=_levels(data.get_column(field)))

    info = replace(info, data_type="continuous")
    if info.scale_type == "same":
        vals = domain_values(data.get_column(field), kind)
        if vals.len() == 0:
            return info
        return replace(info, range=(float(vals.min()), float(vals.max())))  # type: ignore[arg-type]
    if info.scale_type == "sliced":
        spans = _group_spans(data, group_cols, field, kind)
        if not spans:
            return info
        return replace(info, width=max(spans))
    return info


def _group_spans(
    data: pl.DataFrame, group_cols: Sequence[str], field: str, kind: AxisKind
) -> list[float]:
    spans: list[float] = []
    parts = data.partition_by(list(group_cols), maintain_order=True) if group_cols else [data]
    for part in parts:
        vals = _span_space(domain_values(part.get_column(field), kind), kind)
        if vals.len() == 0:
            continue
        spans.append(float(vals.max()) - float(vals.min()))  # type: ignore[operator]
    return spans


def compute_scale_info(
    data: pl.DataFrame,
    group_cols: Sequence[str],
    scales: ScalesInfo,
    *,
    x_field: str | None = None,
    y_field: str | None = None,
    x_kind: AxisKind | None = None,
    y_kind: AxisKind | None = None,
) -> ScalesInfo:
    """
    Compute cross-panel scale information over the full (unfaceted) data.

    Args:
        data: Unfaceted source data.
        group_cols: Columns defining a panel: any pre-existing facet grid columns followed
            by the new facet columns.
        scales: Policies from upgrade_scales_param().
        x_field / y_field: Columns mapped to each axis (None for computed axes).
        x_kind / y_kind: Scale handler of each axis.

    Returns:
        ScalesInfo with data_type, levels, range, or width filled in.

    Raises:
        ConfigurationError: If a grouping or axis column is missing, or an axis column
            does not match its scale handler.

    Notes:
        When both axes are "free" nothing needs to be shared and the data is not scanned.
    """
    missing = [c for c in group_cols if c not in data.columns]
    if missing:
        raise ConfigurationError(f"facet columns not found in the data: {missing!r}")
    if scales.all_free:
        return ScalesInfo(
            x=replace(scales.x, field=x_field, kind=x_kind),
            y=replace(scales.y, field=y_field, kind=y_kind),
        )
    return ScalesInfo(
        x=_axis_info(scales.x, data, group_cols, x_field, x_kind),
        y=_axis_info(scales.y, data, group_cols, y_field, y_kind),
    )


def sliced_limits(values: pl.Series, info: ScaleInfo) -> tuple[float, float] | None:
    """
    Limits for one panel on a "sliced" axis.

    Args:
        values: The panel's own axis column.
        info: Axis info carrying the shared span (`width`) and `kind`.

    Returns:
        (lo, hi) centred on the panel's own midpoint, or None when the panel has no data.
        A panel whose own range already spans the width gets exactly that range, so
        float drift never widens the widest panel.
    """
    if info.width is None or info.kind is None or info.kind == "discrete":
        return None
    raw = domain_values(values, info.kind)
    vals = _span_space(raw, info.kind)
    if vals.len() == 0:
        return None
    lo, hi = float(vals.min()), float(vals.max())  # type: ignore[arg-type]
    mid = (lo + hi) / 2.0
    limits = (mid - info.width / 2.0, mid + info.width / 2.0)
    if all(
        math.isclose(a, b, rel_tol=SCALE_EPSILON, abs_tol=SCALE_EPSILON)
        for a, b in zip((lo, hi), limits, strict=True)
    ):
        return (float(raw.min()), float(raw.max()))  # type: ignore[arg-type]
    if info.kind == "log":
        return (10.0 ** limits[0], 10.0 ** limits[1])
    return limits
