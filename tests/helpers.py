from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from trelliskit.core.frame import TrelliscopeFrame, as_trelliscope_df
from trelliskit.core.panels import panel_lazy


@dataclass
class FakeRenderer:
    """Renders any object as its repr; records every call."""

    calls: list[tuple[Any, str, Any, Any, str | None]] = field(default_factory=list)
    fail_on: list[Any] = field(default_factory=list)

    def to_bytes(self, obj, fmt, width, height, *, html_head=None) -> bytes:
        self.calls.append((obj, fmt, width, height, html_head))
        if obj in self.fail_on:
            raise RuntimeError(f"cannot render {obj!r}")
        return f"{fmt}:{obj!r}".encode()


@dataclass(frozen=True)
class FakeWidget:
    value: Any


@dataclass
class FakeWidgets:
    extracted: list[tuple[str, str]] = field(default_factory=list)

    def is_widget(self, obj) -> bool:
        return isinstance(obj, FakeWidget)

    def extract_dependencies(self, obj, libs_dir, panel_dir, *, write_file) -> str:
        self.extracted.append((libs_dir, panel_dir))
        write_file(os.path.join(libs_dir, "fake.js"), b"// fake")
        return '<script src="libs/fake.js"></script>'


def make_lazy_frame(
    n: int = 10,
    fail: set[int] | None = None,
    name: str = "demo",
    widget: bool = False,
) -> TrelliscopeFrame:
    """n rows keyed by `id`; the builder raises for ids in `fail`."""
    bad = fail or set()

    def build(arg):
        if arg["id"] in bad:
            raise ValueError(f"bad row {arg['id']}")
        return FakeWidget(arg["id"]) if widget else arg["id"] * 10

    df = pl.DataFrame({"id": list(range(n)), "value": [float(i) / 2 for i in range(n)]})
    df = df.with_columns(
        panel_lazy(build, df, key_cols=["id"], name="plot", as_widget=widget)
    )
    return as_trelliscope_df(df, name=name)
