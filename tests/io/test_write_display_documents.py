from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import polars as pl
import pytest
from helpers import FakeRenderer, make_lazy_frame

from trelliskit.core.errors import ConfigurationError
from trelliskit.core.frame import as_trelliscope_df
from trelliskit.core.panels import panel_lazy, panel_url
from trelliskit.core.versioning import SPEC_V
from trelliskit.io.config import DisplaySettings
from trelliskit.io.display import write_display


def _load(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_write_display_end_to_end(lazy_frame, renderer, settings) -> None:
    summary = write_display(lazy_frame, renderer, settings=settings)

    root = Path(settings.root_dir)
    ddir = root / "displays" / "demo"
    assert summary["name"] == "demo"
    assert Path(summary["path"]) == ddir
    assert summary["rows"] == 10
    assert summary["failures"] == 0
    assert summary["panels"]["plot"]["written"] == 10

    info = _load(ddir / "displayInfo.json")
    assert info["version"] == str(SPEC_V)
    assert info["keysig"] == summary["keysig"]
    assert info["panelColumns"][0]["name"] == "plot"

    meta = _load(ddir / "metaData.json")
    assert len(meta) == 10
    assert meta[3]["plot"] == "panels/plot/3.png"
    assert meta[3]["__PANEL_KEY__"] == "3"
    assert meta[3]["__KEY__"] == "3"
    assert (ddir / meta[3]["plot"]).exists()

    listing = _load(root / "displays" / "displayList.json")
    assert [d["name"] for d in listing] == ["demo"]
    assert _load(root / "config.json")["specVersion"] == str(SPEC_V)


def test_display_list_is_upserted(renderer, settings) -> None:
    write_display(make_lazy_frame(2, name="beta"), renderer, settings=settings)
    write_display(make_lazy_frame(2, name="alpha"), renderer, settings=settings)
    write_display(make_lazy_frame(3, name="beta"), renderer, settings=settings)

    listing = _load(Path(settings.root_dir) / "displays" / "displayList.json")
    assert [d["name"] for d in listing] == ["alpha", "beta"]


def test_existing_config_keeps_user_fields(renderer, settings) -> None:
    root = Path(settings.root_dir)
    root.mkdir(parents=True)
    (root / "config.json").write_text(json.dumps({"name": "My App", "theme": "dark"}))

    write_display(make_lazy_frame(2), renderer, settings=settings)

    cfg = _load(root / "config.json")
    assert cfg["name"] == "My App"
    assert cfg["theme"] == "dark"
    assert cfg["datatype"] == "json"


def test_metadata_values_are_json_friendly(renderer, settings) -> None:
    df = pl.DataFrame(
        {"day": [date(2024, 1, 1), date(2024, 1, 2)], "site": ["x y", "z"]}
    )
    df = df.with_columns(
        panel_lazy(lambda a: a["site"], df, key_cols=["site"], name="plot", format="svg")
    )
    frame = as_trelliscope_df(df, name="dates", key_cols=["site"])

    write_display(frame, renderer, settings=settings)

    meta = _load(Path(settings.root_dir) / "displays" / "dates" / "metaData.json")
    assert meta[0]["day"] == "2024-01-01"
    assert meta[0]["plot"] == "panels/plot/x_y.svg"
    assert meta[0]["__KEY__"] == "x y"


def test_url_panels_are_referenced_verbatim(settings) -> None:
    df = pl.DataFrame({"id": [1, 2]}).with_columns(
        panel_url(["https://h/1.png", "https://h/2.png"], name="img")
    )
    write_display(as_trelliscope_df(df, name="urls"), None, settings=settings)

    ddir = Path(settings.root_dir) / "displays" / "urls"
    meta = _load(ddir / "metaData.json")
    assert [m["img"] for m in meta] == ["https://h/1.png", "https://h/2.png"]
    assert not (ddir / "panels").exists()


def test_invalid_frames_write_nothing(settings) -> None:
    frame = make_lazy_frame(2).set_default_labels(["value"])
    broken = type(frame)(df=frame.df.drop("value"), context=frame.context)

    with pytest.raises(ConfigurationError):
        write_display(broken, FakeRenderer(), settings=settings)
    assert not Path(settings.root_dir).exists()


def test_compact_json_setting(renderer, tmp_path) -> None:
    settings = DisplaySettings(root_dir=str(tmp_path / "out"), json_indent=None)
    write_display(make_lazy_frame(2), renderer, settings=settings)
    text = (tmp_path / "out" / "displays" / "demo" / "displayInfo.json").read_text()
    assert "\n" not in text


def test_colliding_rows_reference_no_panel(renderer, settings) -> None:
    df = pl.DataFrame({"name": ["a b", "a/b", "c"]})
    df = df.with_columns(panel_lazy(lambda a: a["name"], df, key_cols=["name"], name="plot"))
    frame = as_trelliscope_df(df, name="demo")

    summary = write_display(frame, renderer, settings=settings)

    assert summary["panels"]["plot"]["written"] == 2
    meta = _load(Path(settings.root_dir) / "displays" / "demo" / "metaData.json")
    assert [m["plot"] for m in meta] == ["panels/plot/a_b.png", None, "panels/plot/c.png"]
    assert [m["__KEY__"] for m in meta] == ["a b", "a/b", "c"]
