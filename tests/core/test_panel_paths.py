from __future__ import annotations

import os
from datetime import date

import polars as pl
import pytest

from trelliskit.core.errors import ConfigurationError, PanelResolutionError
from trelliskit.core.grammar import format_key_value, key_string, sanitize
from trelliskit.core.panels import (
    FunctionBuilder,
    LazyPanel,
    LocalPanel,
    PanelKind,
    PrecomputedPanel,
    UrlPanel,
    column_kind,
    is_panel_column,
    panel_key,
    panel_lazy,
    panel_local,
    panel_series,
    panel_url,
    relative_path,
    resolve,
)


def _p(*parts: str) -> str:
    return os.path.join(*parts)


def test_sanitize_is_path_safe() -> None:
    assert sanitize("life expectancy") == "life_expectancy"
    assert sanitize("a/b") == "a_b"
    assert sanitize("..") == "__"
    assert sanitize("") == "_"
    assert sanitize("Côte d'Ivoire") == "C_te_d_Ivoire"


def test_format_key_value() -> None:
    assert format_key_value(2.0) == "2"
    assert format_key_value(2.5) == "2.5"
    assert format_key_value(None) == "null"
    assert format_key_value(True) == "true"
    assert format_key_value(date(2020, 1, 31)) == "2020-01-31"


def test_key_string_joins_sanitized_values() -> None:
    assert key_string(["Africa", "Burkina Faso", 2007]) == "Africa_Burkina_Faso_2007"


def test_relative_paths_per_variant() -> None:
    builder = FunctionBuilder(lambda arg: arg)
    pre = PrecomputedPanel(key=(("continent", "Asia"), ("country", "Sri Lanka")), builder=builder)
    lazy = LazyPanel(key=("x", 1), arg={}, builder=builder, format="svg")
    local = LocalPanel(path="/data/imgs/my plot.png")
    url = UrlPanel(url="https://example.com/img/a%20b.png?x=1")

    assert relative_path(pre, "my panel", "png") == _p("panels", "my_panel", "Asia_Sri_Lanka.png")
    assert relative_path(lazy, "plot") == _p("panels", "plot", "x_1.svg")
    assert relative_path(local, "img") == _p("panels", "img", "my_plot.png")
    assert relative_path(url, "img") == _p("panels", "img", "a_20b.png")
    assert panel_key(pre) == "Asia_Sri_Lanka"

    with pytest.raises(ConfigurationError, match="format is required"):
        relative_path(LazyPanel(key=("x",), arg={}, builder=builder), "plot")


def test_relative_path_is_deterministic_and_can_collide() -> None:
    builder = FunctionBuilder(lambda arg: arg)
    a = LazyPanel(key=("a b",), arg={}, builder=builder)
    b = LazyPanel(key=("a/b",), arg={}, builder=builder)
    assert relative_path(a, "p", "png") == relative_path(a, "p", "png")
    assert relative_path(a, "p", "png") == relative_path(b, "p", "png")


def test_resolve_wraps_builder_errors() -> None:
    def build(arg):
        raise KeyError("boom")

    panel = LazyPanel(key=(1,), arg={"id": 1}, builder=FunctionBuilder(build))
    with pytest.raises(PanelResolutionError) as info:
        resolve(panel, 4, "plot")
    assert info.value.index == 4
    assert info.value.column == "plot"

    with pytest.raises(PanelResolutionError, match="cannot be resolved"):
        resolve(UrlPanel(url="https://h/a.png"), 0, "img")


def test_precomputed_panel_resolves_key_dict() -> None:
    seen = {}
    panel = PrecomputedPanel(
        key=(("g", "a"), ("h", 1)),
        builder=FunctionBuilder(lambda arg, scale: seen.update(arg) or scale, {"scale": 3}),
    )
    assert resolve(panel, 0) == 3
    assert seen == {"g": "a", "h": 1}


def test_panel_lazy_builds_one_panel_per_row() -> None:
    df = pl.DataFrame({"id": [1, 2, 3], "v": [0.1, 0.2, 0.3]})
    s = panel_lazy(lambda arg: arg["v"], df, key_cols=["id"], name="plot", format="svg")
    assert s.dtype == pl.Object
    assert s.name == "plot"
    panels = s.to_list()
    assert [p.key for p in panels] == [(1,), (2,), (3,)]
    assert resolve(panels[1], 1) == pytest.approx(0.2)
    assert is_panel_column(s)

    with pytest.raises(ConfigurationError, match="not found"):
        panel_lazy(lambda arg: arg, df, key_cols=["nope"])


def test_static_columns_and_homogeneity() -> None:
    local = panel_local(["/x/a.PNG", "/x/b.htm"], name="img").to_list()
    assert [p.format for p in local] == ["png", "html"]
    url = panel_url(["https://h/a.svg"], name="u").to_list()
    assert url[0].format == "svg"

    assert column_kind(local, "img") is PanelKind.LOCAL
    with pytest.raises(ConfigurationError, match="mixes panel variants"):
        panel_series("mixed", [local[0], url[0]])
    with pytest.raises(ConfigurationError, match="non-panel value"):
        column_kind([local[0], "x"], "img")
    with pytest.raises(ConfigurationError, match="empty"):
        column_kind([], "img")
    assert not is_panel_column(pl.Series("x", [1, 2]))
