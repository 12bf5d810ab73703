from __future__ import annotations

import os
from datetime import date

import polars as pl
import pytest

from trelliskit.core.errors import ConfigurationError, KeyIntegrityError
from trelliskit.core.frame import as_trelliscope_df, primary_panel
from trelliskit.core.inputs import RadioInput, TextInput
from trelliskit.core.meta import CurrencyMeta
from trelliskit.core.panels import FunctionBuilder, PrecomputedPanel, panel_series, panel_url
from trelliskit.core.state import filter_range, filter_string


def _url_df() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "country": ["a", "b", "c"],
            "year": [2000, 2000, 2001],
            "gdp": [1.5, 2.5, 3.5],
            "when": [date(2020, 1, 1), date(2020, 6, 1), date(2021, 1, 1)],
        }
    ).with_columns(panel_url([f"https://h/{c}.png" for c in "abc"], name="img"))


def test_binding_defaults() -> None:
    tr = as_trelliscope_df(_url_df(), name="My Display", path="out")
    ctx = tr.context
    assert ctx.description == "My Display"
    assert ctx.key_cols == ("country",)
    assert ctx.display_path == os.path.join("out", "displays", "My_Display")
    assert tr.panel_columns == ["img"]
    assert len(tr) == 3


def test_key_inference_prefers_precomputed_facets() -> None:
    builder = FunctionBuilder(lambda arg: arg)
    df = pl.DataFrame({"x": [1, 1], "g": ["a", "b"]}).with_columns(
        panel_series(
            "panel",
            [PrecomputedPanel(key=(("g", g),), builder=builder, format="png") for g in ("a", "b")],
        )
    )
    assert as_trelliscope_df(df, name="p").context.key_cols == ("g",)


def test_key_inference_takes_shortest_unique_prefix() -> None:
    df = pl.DataFrame({"a": [1, 1, 2], "b": [1, 2, 1]}).with_columns(
        panel_url(["https://h/1.png", "https://h/2.png", "https://h/3.png"], name="img")
    )
    assert as_trelliscope_df(df, name="p").context.key_cols == ("a", "b")


def test_duplicate_keys_report_offending_values() -> None:
    df = pl.DataFrame({"k": ["x", "x", "y"]}).with_columns(
        panel_url(["https://h/1.png", "https://h/2.png", "https://h/3.png"], name="img")
    )
    with pytest.raises(KeyIntegrityError) as info:
        as_trelliscope_df(df, name="dups", key_cols=["k"])
    assert info.value.offending == [("x",)]


def test_binding_rejects_bad_inputs() -> None:
    df = _url_df()
    with pytest.raises(ConfigurationError, match="non-empty"):
        as_trelliscope_df(df, name=" ")
    with pytest.raises(ConfigurationError, match="empty data frame"):
        as_trelliscope_df(df.clear(), name="x")
    with pytest.raises(ConfigurationError, match="not found"):
        as_trelliscope_df(df, name="x", key_cols=["nope"])
    with pytest.raises(ConfigurationError, match="cannot be key columns"):
        as_trelliscope_df(df, name="x", key_cols=["img"])


def test_reserved_columns_warn() -> None:
    df = _url_df().with_columns(pl.lit("z").alias("__KEY__"))
    with pytest.warns(UserWarning, match="reserved"):
        as_trelliscope_df(df, name="x", key_cols=["country"])


def test_setters_never_mutate_the_source_frame() -> None:
    tr = as_trelliscope_df(_url_df(), name="cow")
    ctx_before = tr.context

    tr2 = (
        tr.set_default_layout(ncol=4, viewtype="table")
        .set_default_sort(["gdp"], "desc")
        .set_default_filters(filter_string("country", ["a", "b"]))
        .set_default_labels(["country", "gdp"])
        .add_meta_defs(CurrencyMeta(varname="gdp", code="EUR"))
        .add_inputs(RadioInput(name="ok", label="OK?", options=["no", "yes"]))
        .set_tags(["demo"])
    )

    assert tr.context is ctx_before
    assert tr.context.layout.ncol == 3
    assert tr.context.sort is None
    assert tr.context.filters == ()
    assert dict(tr.context.metas) == {}
    assert tr.context.inputs == ()

    ctx = tr2.context
    assert (ctx.layout.ncol, ctx.layout.viewtype) == (4, "table")
    assert [(s.varname, s.dir) for s in ctx.sort] == [("gdp", "desc")]
    assert ctx.filters[0].values == ("a", "b")
    assert ctx.labels == ("country", "gdp")
    assert ctx.metas["gdp"].code == "EUR"
    assert ctx.tags == ("demo",)
    assert tr2.df is tr.df


def test_context_mappings_are_read_only() -> None:
    tr = as_trelliscope_df(_url_df(), name="ro").add_meta_defs(CurrencyMeta(varname="gdp"))
    with pytest.raises(TypeError):
        tr.context.metas["gdp"] = CurrencyMeta(varname="gdp")  # type: ignore[index]


def test_layout_and_sort_validation() -> None:
    tr = as_trelliscope_df(_url_df(), name="v")
    with pytest.raises(ConfigurationError, match="layout"):
        tr.set_default_layout(ncol=0)
    with pytest.raises(ConfigurationError, match="sort"):
        tr.set_default_sort(["missing"])
    with pytest.raises(ConfigurationError, match="panel columns"):
        tr.set_default_sort(["img"])
    with pytest.raises(ConfigurationError, match="one per sort variable"):
        tr.set_default_sort(["gdp", "year"], ["asc"])
    with pytest.raises(ConfigurationError, match="direction"):
        tr.set_default_sort(["gdp"], "sideways")


def test_range_filters_follow_column_dtype() -> None:
    tr = as_trelliscope_df(_url_df(), name="f")
    tr2 = tr.set_default_filters(
        filter_range("gdp", min=2), filter_range("when", min=date(2020, 3, 1))
    )
    kinds = {f.varname: f.filtertype for f in tr2.context.filters}
    assert kinds == {"gdp": "numberrange", "when": "daterange"}

    # a later filter replaces the earlier one for the same variable
    tr3 = tr2.set_default_filters(filter_range("gdp", max=3))
    gdp = [f for f in tr3.context.filters if f.varname == "gdp"]
    assert len(gdp) == 1 and gdp[0].max == 3

    with pytest.raises(ConfigurationError, match="numeric or date"):
        tr.set_default_filters(filter_range("country", min=1))


def test_inputs_must_have_unique_names() -> None:
    tr = as_trelliscope_df(_url_df(), name="i").add_inputs(TextInput(name="note", label="Note"))
    with pytest.raises(KeyIntegrityError, match="unique"):
        tr.add_inputs(TextInput(name="note", label="Again"))


def test_primary_panel_selection() -> None:
    df = _url_df().with_columns(panel_url([f"https://h/{c}.svg" for c in "abc"], name="alt"))
    tr = as_trelliscope_df(df, name="pp")
    assert primary_panel(tr) == "img"
    assert primary_panel(tr.set_primary_panel("alt")) == "alt"
    with pytest.raises(ConfigurationError):
        tr.set_primary_panel("gdp")
