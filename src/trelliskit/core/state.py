"""
Default viewer state: layout, sort, filter, and label settings.

These records are embedded verbatim in the display specification's "defaultLayout".
They are frozen pydantic models; the frame-level setters in trelliskit.core.frame validate
variable names against the data before attaching them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "LayoutState",
    "SortState",
    "FilterState",
    "filter_range",
    "filter_string",
]


class LayoutState(BaseModel):
    """
    Grid layout of the viewer.

    Attributes:
        ncol (int): Number of panel columns per page (>= 1).
        page (int): Page shown first (>= 1).
        viewtype (str): "grid" or "table".
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    ncol: int = Field(default=3, ge=1)
    page: int = Field(default=1, ge=1)
    viewtype: Literal["grid", "table"] = "grid"


class SortState(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    varname: str
    dir: Literal["asc", "desc"] = "asc"


class FilterState(BaseModel):
    """
    One default filter.

    Attributes:
        varname (str): Variable to filter on.
        filtertype (str): "category" (values), "numberrange" or "daterange" (min/max).
        values (tuple[str, ...] | None): Allowed levels for category filters.
        min / max: Bounds for range filters (either may be None for open ranges).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    varname: str
    filtertype: Literal["category", "numberrange", "daterange"]
    values: tuple[str, ...] | None = None
    min: Any = None
    max: Any = None


def filter_range(varname: str, min: Any = None, max: Any = None) -> FilterState:
    """Range filter; the number/date flavour is decided against the column dtype."""
    return FilterState(varname=varname, filtertype="numberrange", min=min, max=max)


def filter_string(varname: str, values: str | Sequence[str]) -> FilterState:
    """Category filter keeping the given levels."""
    if isinstance(values, str):
        values = [values]
    return FilterState(varname=varname, filtertype="category", values=tuple(str(v) for v in values))
