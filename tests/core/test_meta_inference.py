from __future__ import annotations

from datetime import datetime

import polars as pl
import pytest

from trelliskit.core.meta import (
    DateMeta,
    DatetimeMeta,
    FactorMeta,
    HrefMeta,
    NumberMeta,
    StringMeta,
    infer_meta,
    summarize,
)


def test_infer_meta_by_dtype() -> None:
    assert isinstance(infer_meta(pl.Series("n", [1, 2])), NumberMeta)
    assert infer_meta(pl.Series("n", [1, 2])).digits == 0
    assert infer_meta(pl.Series("f", [1.5])).digits == 2
    assert isinstance(infer_meta(pl.Series("s", ["a", None])), FactorMeta)
    assert isinstance(infer_meta(pl.Series("u", ["http://x", "https://y"])), HrefMeta)
    assert infer_meta(pl.Series("b", [True])).levels == ("false", "true")
    assert isinstance(infer_meta(pl.Series("d", [datetime(2020, 1, 1)]).cast(pl.Date)), DateMeta)
    assert isinstance(infer_meta(pl.Series("l", [[1, 2]])), StringMeta)


def test_infer_meta_keeps_enum_order_and_timezone() -> None:
    enum = pl.Series("e", ["b"], dtype=pl.Enum(["b", "a"]))
    assert infer_meta(enum).levels == ("b", "a")

    ts = pl.Series("t", [datetime(2020, 1, 1)]).dt.replace_time_zone("Europe/Paris")
    meta = infer_meta(ts)
    assert isinstance(meta, DatetimeMeta)
    assert meta.timezone == "Europe/Paris"


def test_summaries() -> None:
    num = pl.Series("n", [1, 2, None, 5])
    assert summarize(num, infer_meta(num)) == {"nMissing": 1, "min": 1, "max": 5, "mean": pytest.approx(8 / 3)}

    fac = pl.Series("f", ["x", "y", "x"])
    assert summarize(fac, infer_meta(fac)) == {"nMissing": 0, "levels": ["x", "y"], "counts": [2, 1]}

    href = pl.Series("h", ["https://a", "https://a"])
    assert summarize(href, infer_meta(href)) == {"nMissing": 0, "nUnique": 1}
