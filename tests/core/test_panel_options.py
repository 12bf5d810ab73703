from __future__ import annotations

import polars as pl
import pytest
from pydantic import ValidationError

from trelliskit.core.errors import ConfigurationError
from trelliskit.core.frame import as_trelliscope_df, effective_panel_options
from trelliskit.core.options import PanelOptions, panel_options, resolve_panel_options
from trelliskit.core.panels import PanelKind, panel_lazy, panel_local, panel_url


@pytest.mark.parametrize(
    "kwargs,field",
    [
        ({"width": 0}, "width"),
        ({"width": -10}, "width"),
        ({"height": "tall"}, "height"),
        ({"height": [1, 2]}, "height"),
        ({"width": True}, "width"),
        ({"width": float("nan")}, "width"),
    ],
)
def test_dimensions_must_be_single_positive_numbers(kwargs, field) -> None:
    with pytest.raises(ValidationError, match=f"{field} must be a single positive numeric"):
        panel_options(**kwargs)


def test_format_and_flags_are_validated() -> None:
    with pytest.raises(ValidationError, match="format must be one of"):
        panel_options(format="jpeg")
    with pytest.raises(ValidationError, match="single character"):
        panel_options(format=["png"])  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        panel_options(force="yes")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        panel_options(prerender=1)  # type: ignore[arg-type]


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        PanelOptions(colour="red")  # type: ignore[call-arg]


def test_type_is_derived_from_format() -> None:
    assert panel_options(format="html").type == "iframe"
    assert panel_options(format="svg").type == "img"
    assert panel_options().type == "img"


def test_options_are_immutable() -> None:
    opts = panel_options(width=300)
    with pytest.raises(ValidationError):
        opts.width = 100  # type: ignore[misc]


def test_resolve_lazy_fills_defaults_and_aspect() -> None:
    out = resolve_panel_options(panel_options(width=800), PanelKind.LAZY)
    assert (out.width, out.height, out.format) == (800, 400, "png")
    assert out.aspect == pytest.approx(2.0)


def test_resolve_lazy_widget_forces_html() -> None:
    out = resolve_panel_options(panel_options(format="png"), PanelKind.PRECOMPUTED, as_widget=True)
    assert out.format == "html"
    assert out.type == "iframe"


def test_resolve_static_clears_render_fields() -> None:
    out = resolve_panel_options(
        panel_options(width=300, height=200, force=True, format="svg"),
        PanelKind.URL,
        column_format="png",
    )
    assert out.width is None and out.height is None
    assert out.force is False
    assert out.format == "png"
    assert out.aspect == pytest.approx(1.5)


def test_resolve_static_rejects_deferred_rendering() -> None:
    with pytest.raises(ConfigurationError, match="prerender=False"):
        resolve_panel_options(panel_options(prerender=False), PanelKind.LOCAL)


def test_set_panel_options_is_copy_on_write() -> None:
    df = pl.DataFrame({"id": [1, 2]})
    df = df.with_columns(panel_lazy(lambda a: a, df, key_cols=["id"], name="plot"))
    tr = as_trelliscope_df(df, name="opts")

    tr2 = tr.set_panel_options(plot=panel_options(width=500, height=250, format="svg"))

    assert "plot" not in tr.context.panel_options
    opts = tr2.context.panel_options["plot"]
    assert (opts.width, opts.height, opts.format, opts.aspect) == (500, 250, "svg", 2.0)
    # defaults still resolve on the original frame
    assert effective_panel_options(tr, "plot").format == "png"


def test_set_panel_options_inherits_panel_values() -> None:
    df = pl.DataFrame({"id": [1, 2]})
    df = df.with_columns(
        panel_lazy(lambda a: a, df, key_cols=["id"], name="plot", format="svg", width=320, height=160)
    )
    tr = as_trelliscope_df(df, name="opts").set_panel_options(plot=panel_options(force=True))
    opts = tr.context.panel_options["plot"]
    assert (opts.format, opts.width, opts.height, opts.force) == ("svg", 320, 160, True)


def test_set_panel_options_rejects_bad_targets() -> None:
    df = pl.DataFrame({"id": [1, 2], "x": [3, 4]}).with_columns(
        panel_url(["https://h/a.png", "https://h/b.png"], name="img")
    )
    tr = as_trelliscope_df(df, name="opts")
    with pytest.raises(ConfigurationError, match="not found"):
        tr.set_panel_options(nope=panel_options())
    with pytest.raises(ConfigurationError, match="not a panel column"):
        tr.set_panel_options(x=panel_options())
    with pytest.raises(ConfigurationError, match="panel_options"):
        tr.set_panel_options(img={"width": 3})  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError, match="prerender=False"):
        tr.set_panel_options(img=panel_options(prerender=False))


def test_local_panels_take_format_from_file_extension(tmp_path) -> None:
    paths = [str(tmp_path / "a.svg"), str(tmp_path / "b.svg")]
    df = pl.DataFrame({"id": [1, 2]}).with_columns(panel_local(paths, name="img"))
    tr = as_trelliscope_df(df, name="local")
    opts = effective_panel_options(tr, "img")
    assert opts.format == "svg"
    assert opts.width is None
