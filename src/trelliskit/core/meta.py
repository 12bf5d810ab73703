"""
Variable metadata definitions and dtype-based inference.

Responsibilities
- Define the meta types the viewer understands (number, currency, factor, date, datetime,
  href, string) as frozen pydantic models.
- Infer a meta definition from a polars column's dtype when the user did not attach one.
- Summarize a column for the display specification (ranges, level counts, missingness).

Notes
- "currency" is never inferred; it must be attached explicitly with CurrencyMeta.
- Panel columns are described separately (see trelliskit.core.spec).
- Zero-IO (stdlib + polars + pydantic).
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Final, Literal

import polars as pl
from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "NumberMeta",
    "CurrencyMeta",
    "FactorMeta",
    "DateMeta",
    "DatetimeMeta",
    "HrefMeta",
    "StringMeta",
    "Meta",
    "infer_meta",
    "summarize",
]

_HREF_PATTERN: Final[str] = r"(?i)^https?://"


class _MetaBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    varname: str
    label: str | None = None
    tags: tuple[str, ...] = Field(default_factory=tuple)


class NumberMeta(_MetaBase):
    """
    Numeric variable.

    Attributes:
        digits (int | None): Digits shown after the decimal point (None: as-is).
        locale (bool): Format with locale-aware separators.
        log (bool | None): Prefer a log scale in range filters.
    """

    type: Literal["number"] = "number"
    digits: int | None = None
    locale: bool = True
    log: bool | None = None


class CurrencyMeta(_MetaBase):
    type: Literal["currency"] = "currency"
    code: str = "USD"
    digits: int = 2


class FactorMeta(_MetaBase):
    """Categorical variable; `levels` fixes the display order when given."""

    type: Literal["factor"] = "factor"
    levels: tuple[str, ...] | None = None


class DateMeta(_MetaBase):
    type: Literal["date"] = "date"


class DatetimeMeta(_MetaBase):
    type: Literal["datetime"] = "datetime"
    timezone: str = "UTC"


class HrefMeta(_MetaBase):
    type: Literal["href"] = "href"


class StringMeta(_MetaBase):
    type: Literal["string"] = "string"


Meta = NumberMeta | CurrencyMeta | FactorMeta | DateMeta | DatetimeMeta | HrefMeta | StringMeta


def infer_meta(series: pl.Series) -> Meta:
    """
    Classify a column by inspecting its dtype (and, for strings, its values).

    Returns:
        Meta: number for integers/floats, factor for categoricals/enums/booleans and
        plain strings, href for strings whose non-null values are all http(s) URLs,
        date / datetime for temporal columns, string otherwise.
    """
    name = series.name
    dtype = series.dtype
    if isinstance(dtype, pl.Enum):
        return FactorMeta(varname=name, levels=tuple(dtype.categories.to_list()))
    if isinstance(dtype, pl.Categorical):
        return FactorMeta(varname=name)
    if dtype == pl.Boolean:
        return FactorMeta(varname=name, levels=("false", "true"))
    if dtype.is_integer():
        return NumberMeta(varname=name, digits=0)
    if dtype.is_numeric():
        return NumberMeta(varname=name, digits=2)
    if dtype == pl.Date:
        return DateMeta(varname=name)
    if isinstance(dtype, pl.Datetime):
        return DatetimeMeta(varname=name, timezone=dtype.time_zone or "UTC")
    if dtype == pl.Utf8:
        vals = series.drop_nulls()
        if vals.len() > 0 and bool(vals.str.contains(_HREF_PATTERN).all()):
            return HrefMeta(varname=name)
        return FactorMeta(varname=name)
    return StringMeta(varname=name)


def _json_scalar(v: Any) -> Any:
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    return v


def summarize(series: pl.Series, meta: Meta) -> dict[str, Any]:
    """
    Summary statistics for a column, keyed in the viewer's camelCase.

    Returns:
        dict: Always "nMissing"; plus "min"/"max"/"mean" for number and currency,
        "min"/"max" for date and datetime, "levels"/"counts" for factor, and "nUnique"
        for href and string.
    """
    out: dict[str, Any] = {"nMissing": int(series.null_count())}
    vals = series.drop_nulls()
    if isinstance(meta, (NumberMeta, CurrencyMeta)):
        if vals.len() and vals.dtype.is_numeric():
            out["min"] = _json_scalar(vals.min())
            out["max"] = _json_scalar(vals.max())
            out["mean"] = float(vals.mean())  # type: ignore[arg-type]
    elif isinstance(meta, (DateMeta, DatetimeMeta)):
        if vals.len():
            out["min"] = _json_scalar(vals.min())
            out["max"] = _json_scalar(vals.max())
    elif isinstance(meta, FactorMeta):
        counts = vals.cast(pl.Utf8).value_counts(sort=False)
        count_map = dict(zip(counts[:, 0].to_list(), counts[:, 1].to_list(), strict=True))
        levels = list(meta.levels) if meta.levels is not None else sorted(count_map)
        out["levels"] = levels
        out["counts"] = [int(count_map.get(lv, 0)) for lv in levels]
    else:
        out["nUnique"] = int(vals.n_unique())
    return out
