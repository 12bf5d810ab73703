"""
Altair rendering backend: charts to png/svg/html bytes, and interactive widgets.

Responsibilities
- AltairRenderer implements the PanelRenderer protocol: png and svg through vl-convert,
  html through altair's standalone page or, for widgets, a vega-embed page whose head is
  injected by the caller.
- VegaWidget marks a chart that should be shown as an interactive panel.
- AltairWidgetBackend implements the WidgetBackend protocol: the vega/vega-lite/vega-embed
  bundle is stored once in the shared libs directory through the write_file callable the
  IO layer passes, and every widget panel references it through a relative script tag.

Notes
- Rendering is offline: vl-convert embeds the Vega runtime, so no browser or network is
  needed for png/svg.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final

import altair as alt
import vl_convert as vlc

from trelliskit.core.errors import ConfigurationError

__all__ = [
    "VegaWidget",
    "AltairRenderer",
    "AltairWidgetBackend",
    "BUNDLE_NAME",
]

logger = logging.getLogger(__name__)

BUNDLE_NAME: Final[str] = "vega-embed-bundle.js"

_WIDGET_PAGE: Final[str] = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
{head}
<style>html, body {{ margin: 0; }}</style>
</head>
<body>
<div id="vis"></div>
<script type="text/javascript">
vegaEmbed("#vis", {spec}, {options}).catch(console.error);
</script>
</body>
</html>
"""


@dataclass(frozen=True)
class VegaWidget:
    """
    An altair chart rendered as an interactive (html) panel.

    Attributes:
        chart (alt.TopLevelMixin): Chart to embed.
        embed_options (dict): Options passed to vegaEmbed (e.g. {"actions": False}).
    """

    chart: Any
    embed_options: dict[str, Any] = field(default_factory=lambda: {"actions": False})


def _chart_of(obj: Any) -> Any:
    if isinstance(obj, VegaWidget):
        return obj.chart
    if isinstance(obj, alt.TopLevelMixin):
        return obj
    raise ConfigurationError(f"cannot render object of type {type(obj).__name__} as an altair chart")


@dataclass(frozen=True)
class AltairRenderer:
    """
    PanelRenderer for altair charts.

    Attributes:
        scale (float): Pixel scale factor for png output.
        ppi (int | None): Pixels per inch recorded in png output.

    Examples:
        >>> import altair as alt
        >>> from trelliskit.viz.render import AltairRenderer
        >>> chart = alt.Chart(alt.Data(values=[{"a": 1}])).mark_point().encode(x="a:Q")
        >>> AltairRenderer().to_bytes(chart, "svg", 100, 80)[:4]  # doctest: +SKIP
        b'<svg'
    """

    scale: float = 1.0
    ppi: int | None = None

    def to_bytes(
        self,
        obj: Any,
        fmt: str,
        width: int | float,
        height: int | float,
        *,
        html_head: str | None = None,
    ) -> bytes:
        chart = _chart_of(obj).properties(width=width, height=height)
        if fmt == "png":
            return vlc.vegalite_to_png(chart.to_dict(), scale=self.scale, ppi=self.ppi)
        if fmt == "svg":
            return vlc.vegalite_to_svg(chart.to_dict()).encode("utf-8")
        if fmt == "html":
            if html_head is not None:
                options = obj.embed_options if isinstance(obj, VegaWidget) else {}
                page = _WIDGET_PAGE.format(
                    head=html_head,
                    spec=json.dumps(chart.to_dict()),
                    options=json.dumps(options),
                )
                return page.encode("utf-8")
            return chart.to_html().encode("utf-8")
        raise ConfigurationError(f"unsupported panel format {fmt!r}")


@dataclass(frozen=True)
class AltairWidgetBackend:
    """WidgetBackend writing one shared vega-embed bundle per output root."""

    bundle_name: str = BUNDLE_NAME

    def is_widget(self, obj: Any) -> bool:
        return isinstance(obj, VegaWidget)

    def extract_dependencies(
        self,
        obj: Any,
        libs_dir: str,
        panel_dir: str,
        *,
        write_file: Callable[[str, bytes], None],
    ) -> str:
        """
        Store the javascript bundle in `libs_dir` (once) and return the head fragment.

        Args:
            obj: The first resolved widget of the batch.
            libs_dir: Shared dependency directory (<root>/displays/libs), already created.
            panel_dir: Directory the html panels are written to.
            write_file: Writes bytes to a path; the IO layer passes its atomic writer.

        Returns:
            str: A <script> tag referencing the bundle relative to `panel_dir`.
        """
        bundle = os.path.join(libs_dir, self.bundle_name)
        if not os.path.exists(bundle):
            payload = vlc.javascript_bundle().encode("utf-8")
            write_file(bundle, payload)
            logger.info("wrote widget bundle %s (%d bytes)", bundle, len(payload))
        rel = os.path.relpath(bundle, panel_dir).replace(os.sep, "/")
        return f'<script type="text/javascript" src="{rel}"></script>'
