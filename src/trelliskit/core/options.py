"""
Panel option records attached per panel column.

Responsibilities
- Validate user-supplied panel options (width, height, format, force, prerender) into an
  immutable pydantic model.
- Derive the viewer-facing fields: `type` ("img" | "iframe") from the format, and `aspect`
  from the dimensions.
- Resolve options against the column's panel variant (lazy vs. static, widget vs. image).

Style
- Zero-IO (stdlib + pydantic only).
- Defaults come from trelliskit.core.constants.

Examples:
    >>> from trelliskit.core.options import panel_options
    >>> panel_options(width=800, height=400, format="html").type
    'iframe'
    >>> panel_options().type
    'img'
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    ValidationInfo,
    computed_field,
    field_validator,
)

from .constants import (
    DEFAULT_PANEL_FORMAT,
    DEFAULT_PANEL_HEIGHT,
    DEFAULT_PANEL_WIDTH,
    PANEL_FORMATS,
)
from .errors import ConfigurationError
from .panels import PanelKind

__all__ = [
    "PanelFormat",
    "PanelOptions",
    "panel_options",
    "resolve_panel_options",
]

PanelFormat = Literal["png", "svg", "html"]


class PanelOptions(BaseModel):
    """
    Rendering options for one panel column.

    Attributes:
        width (int | float | None): Panel width in pixels (inherits DEFAULT_PANEL_WIDTH).
        height (int | float | None): Panel height in pixels (inherits DEFAULT_PANEL_HEIGHT).
        format (PanelFormat | None): "png", "svg" or "html"; None means inferred.
        force (bool): Regenerate panels even if cached output exists.
        prerender (bool): Render before viewing; False defers rendering to request time.
        aspect (float | None): width / height, filled by resolve_panel_options.

    Notes:
        - `type` is derived: "iframe" iff format == "html", otherwise "img".
        - Instances are frozen; use model_copy(update=...) for derived records.

    Raises:
        pydantic.ValidationError: If width/height is not a single positive number,
            force/prerender is not a single bool, or format is not an allowed token.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    width: int | float | None = None
    height: int | float | None = None
    format: PanelFormat | None = None
    force: StrictBool = False
    prerender: StrictBool = True
    aspect: float | None = None

    @field_validator("width", "height", mode="before")
    @classmethod
    def _single_positive_number(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return v
        if (
            isinstance(v, bool)
            or not isinstance(v, (int, float))
            or not math.isfinite(v)
            or v <= 0
        ):
            raise ValueError(f"{info.field_name} must be a single positive numeric value")
        return v

    @field_validator("format", mode="before")
    @classmethod
    def _known_format(cls, v: Any) -> Any:
        if v is None:
            return v
        if not isinstance(v, str):
            raise ValueError("format must be a single character value")
        if v not in PANEL_FORMATS:
            raise ValueError("format must be one of 'png', 'svg', or 'html'")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> Literal["img", "iframe"]:
        return "iframe" if self.format == "html" else "img"

    @property
    def panel_width(self) -> int | float:
        """Width with the module default applied."""
        return self.width if self.width is not None else DEFAULT_PANEL_WIDTH

    @property
    def panel_height(self) -> int | float:
        """Height with the module default applied."""
        return self.height if self.height is not None else DEFAULT_PANEL_HEIGHT

    @property
    def panel_format(self) -> str:
        """Format with the module default applied."""
        return self.format or DEFAULT_PANEL_FORMAT


def panel_options(
    width: int | float | None = None,
    height: int | float | None = None,
    format: str | None = None,
    force: bool = False,
    prerender: bool = True,
) -> PanelOptions:
    """
    Build a validated PanelOptions record.

    Args:
        width: Width in pixels of each panel.
        height: Height in pixels of each panel.
        format: "png", "svg" or "html". Ignored for static (file/url) panels.
        force: Rewrite panels even when the output file exists. Ignored for static panels.
        prerender: Render panels ahead of viewing. Only lazy panels may set False.

    Returns:
        PanelOptions

    Raises:
        pydantic.ValidationError: On invalid values (see PanelOptions).
    """
    return PanelOptions(
        width=width, height=height, format=format, force=force, prerender=prerender
    )


def resolve_panel_options(
    opts: PanelOptions | None,
    kind: PanelKind,
    *,
    as_widget: bool = False,
    column_format: str | None = None,
) -> PanelOptions:
    """
    Resolve user options against a panel column's variant.

    Args:
        opts (PanelOptions | None): Options attached by the user (None means defaults).
        kind (PanelKind): Variant of the column.
        as_widget (bool): Whether the column's builder produces interactive widgets.
        column_format (str | None): Format carried by the column's panel values; for
            static variants it replaces the user format since the files already exist.

    Returns:
        PanelOptions: A new record. Lazy variants get a concrete format ("html" for
        widgets regardless of the requested format, else the requested format or png),
        default dimensions and aspect. Static variants get aspect = width / height (when
        both were given) and have width, height and force cleared.

    Raises:
        ConfigurationError: If prerender=False is requested for a static variant.
    """
    opts = opts or PanelOptions()
    if kind.is_lazy:
        fmt = "html" if as_widget else opts.panel_format
        return opts.model_copy(
            update={
                "format": fmt,
                "width": opts.panel_width,
                "height": opts.panel_height,
                "aspect": float(opts.panel_width) / float(opts.panel_height),
            }
        )
    if not opts.prerender:
        raise ConfigurationError(
            f"prerender=False is only valid for lazy panels, not {kind.value!r} panels"
        )
    aspect = None
    if opts.width is not None and opts.height is not None:
        aspect = float(opts.width) / float(opts.height)
    return opts.model_copy(
        update={
            "format": column_format if column_format in PANEL_FORMATS else None,
            "width": None,
            "height": None,
            "force": False,
            "aspect": aspect,
        }
    )
