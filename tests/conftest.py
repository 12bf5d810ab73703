from __future__ import annotations

import pytest
from helpers import FakeRenderer, make_lazy_frame

from trelliskit.core.frame import TrelliscopeFrame
from trelliskit.io.config import DisplaySettings


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def settings(tmp_path) -> DisplaySettings:
    return DisplaySettings(root_dir=str(tmp_path / "out"))


@pytest.fixture
def lazy_frame() -> TrelliscopeFrame:
    return make_lazy_frame()
