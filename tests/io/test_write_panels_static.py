from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from trelliskit.core.frame import as_trelliscope_df
from trelliskit.core.panels import panel_local, panel_url
from trelliskit.io.config import DisplaySettings
from trelliskit.io.write import estimate_copy_bytes, find_path_collisions, write_panels


@pytest.fixture
def sources(tmp_path: Path) -> list[str]:
    src = tmp_path / "src"
    src.mkdir()
    paths = []
    for i in range(3):
        p = src / f"plot {i}.png"
        p.write_bytes(b"x" * (100 * (i + 1)))
        paths.append(str(p))
    return paths


def _local_frame(paths: list[str]):
    df = pl.DataFrame({"id": list(range(len(paths)))}).with_columns(panel_local(paths, name="img"))
    return as_trelliscope_df(df, name="files")


def _img_dir(settings: DisplaySettings) -> Path:
    return Path(settings.root_dir) / "displays" / "files" / "panels" / "img"


def test_local_files_are_copied_once(sources, settings) -> None:
    frame = _local_frame(sources)

    first = write_panels(frame, "img", None, settings=settings)
    second = write_panels(frame, "img", None, settings=settings)

    assert sorted(p.name for p in _img_dir(settings).iterdir()) == [
        "plot_0.png", "plot_1.png", "plot_2.png",
    ]
    assert (_img_dir(settings) / "plot_1.png").read_bytes() == b"x" * 200
    assert (first.written, first.estimated_bytes) == (3, 600)
    assert (second.selected, second.written) == (0, 0)


def test_missing_source_is_a_per_panel_failure(sources, settings) -> None:
    paths = [*sources, str(Path(sources[0]).parent / "gone.png")]
    result = write_panels(_local_frame(paths), "img", None, settings=settings)
    assert result.written == 3
    assert [(f.index, f.filename) for f in result.failures] == [(3, "gone.png")]


def test_large_copies_warn_and_can_be_declined(sources, tmp_path, caplog) -> None:
    settings = DisplaySettings(root_dir=str(tmp_path / "out"), copy_warn_mb=0.0001)
    asked: list[int] = []

    def decline(nbytes: int) -> bool:
        asked.append(nbytes)
        return False

    with caplog.at_level("WARNING", logger="trelliskit.io.write"):
        result = write_panels(_local_frame(sources), "img", None, settings=settings, confirm_copy=decline)

    assert asked == [600]
    assert result.skipped_reason == "copy declined"
    assert result.written == 0
    assert not _img_dir(settings).exists()
    assert "estimated copy size" in caplog.text


def test_url_columns_write_nothing(settings, renderer) -> None:
    df = pl.DataFrame({"id": [1, 2]}).with_columns(
        panel_url(["https://h/1.png", "https://h/2.png"], name="img")
    )
    result = write_panels(as_trelliscope_df(df, name="urls"), "img", renderer, settings=settings)
    assert result.skipped_reason == "url"
    assert renderer.calls == []
    assert not Path(settings.root_dir).exists()


def test_copy_estimate_samples_leading_files(sources) -> None:
    # mean of the first two files (150 bytes) times three files
    assert estimate_copy_bytes(sources, sample=2) == 450
    assert estimate_copy_bytes([]) == 0
    assert estimate_copy_bytes(["/does/not/exist"]) == 0


def test_find_path_collisions_reports_every_loser() -> None:
    keep, coll = find_path_collisions(["a", "b", "a", "a"])
    assert keep == [0, 1]
    assert [(c.path, c.kept, c.dropped) for c in coll] == [("a", 0, 2), ("a", 0, 3)]
