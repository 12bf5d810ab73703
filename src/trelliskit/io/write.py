"""
Panel materialization for one panel column of a bound frame.

Overview
- Lazy/precomputed columns: each selected panel is resolved through its builder, rendered
  by a PanelRenderer, and written atomically to
  <root>/displays/<display>/panels/<column>/<key>.<format>.
- Local columns: existing files are copied (atomically) next to the display.
- Url columns: nothing to write; the viewer references the remote artifact.

Selection and idempotence
- Without force, a panel is selected only when its target file is missing, so a second
  run over unchanged inputs writes nothing. force (argument, panel option, or setting)
  selects every panel.
- Distinct keys can sanitize to the same file name. Only the first panel per target is
  written; the rest are logged and reported as collisions, never silently overwritten.

Failure isolation
- A builder or renderer error for one panel is logged (index, column, file name) and
  recorded in the result; the batch continues.
- A filesystem error raises PanelWriteError (index, path). Panels written before it stay
  intact because every write is tmp -> fsync -> os.replace.
- Failing to write shared widget dependencies is a filesystem error too: it raises
  PanelWriteError with the libs directory as path instead of degrading every html panel.

Notes
- Widget dependencies are extracted once per batch into <root>/displays/libs and the
  returned head fragment is injected into every html panel.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from trelliskit.core.constants import COPY_SAMPLE_SIZE
from trelliskit.core.errors import ConfigurationError, PanelResolutionError
from trelliskit.core.frame import TrelliscopeFrame, effective_panel_options
from trelliskit.core.panels import (
    LocalPanel,
    Panel,
    PanelKind,
    PanelRenderer,
    WidgetBackend,
    column_kind,
    column_panels,
    relative_path,
    resolve,
)

from .config import DisplaySettings
from .errors import PanelWriteError
from .fs import copy_file_atomic, exists, file_size, makedirs, write_bytes_atomic
from .paths import display_dir, display_root, libs_dir

__all__ = [
    "PanelFailure",
    "PathCollision",
    "PanelWriteResult",
    "ProgressFn",
    "ConfirmCopyFn",
    "write_panels",
    "estimate_copy_bytes",
    "find_path_collisions",
]

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]
ConfirmCopyFn = Callable[[int], bool]


@dataclass(frozen=True, slots=True)
class PanelFailure:
    """A panel that could not be produced (builder, renderer, or missing source)."""

    index: int
    column: str
    filename: str
    error: str


@dataclass(frozen=True, slots=True)
class PathCollision:
    """Two rows whose panels map to the same target; `dropped` is not written."""

    path: str
    kept: int
    dropped: int


@dataclass
class PanelWriteResult:
    """
    Summary of one write_panels call.

    Attributes:
        column (str): Panel column name.
        kind (str): Panel variant value.
        selected (int): Panels selected for writing.
        written (int): Panels actually written (or copied).
        failures (list[PanelFailure]): Per-panel failures; the batch continued past them.
        collisions (list[PathCollision]): Rows skipped because their target was taken.
        estimated_bytes (int | None): Copy-size estimate for local columns.
        skipped_reason (str | None): Why nothing was attempted ("url", "not prerendered",
            "copy declined"), if applicable.
    """

    column: str
    kind: str
    selected: int = 0
    written: int = 0
    failures: list[PanelFailure] = field(default_factory=list)
    collisions: list[PathCollision] = field(default_factory=list)
    estimated_bytes: int | None = None
    skipped_reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def find_path_collisions(paths: Sequence[str]) -> tuple[list[int], list[PathCollision]]:
    """
    Split row indices into first-claimants and collisions by target path.

    Returns:
        (indices, collisions): indices whose path was claimed first, in row order, and one
        PathCollision for every later row mapping to an already-claimed path.

    Examples:
        >>> from trelliskit.io.write import find_path_collisions
        >>> idx, coll = find_path_collisions(["a.png", "b.png", "a.png"])
        >>> idx, [(c.kept, c.dropped) for c in coll]
        ([0, 1], [(0, 2)])
    """
    owner: dict[str, int] = {}
    keep: list[int] = []
    collisions: list[PathCollision] = []
    for i, p in enumerate(paths):
        if p in owner:
            collisions.append(PathCollision(path=p, kept=owner[p], dropped=i))
            continue
        owner[p] = i
        keep.append(i)
    return keep, collisions


def estimate_copy_bytes(paths: Sequence[str], sample: int = COPY_SAMPLE_SIZE) -> int:
    """
    Estimate the total size of copying `paths`: mean size of the first `sample` files
    times the number of files.

    Returns:
        int: Estimated bytes (0 for an empty list or unreadable samples).
    """
    if not paths:
        return 0
    sizes = [s for s in (file_size(p) for p in paths[: max(sample, 1)]) if s is not None]
    if not sizes:
        return 0
    return int(sum(sizes) / len(sizes) * len(paths))


def _log_collisions(column: str, collisions: list[PathCollision]) -> None:
    for c in collisions:
        logger.warning(
            "panel %d of column %r maps to %s already used by panel %d; not writing it",
            c.dropped,
            column,
            c.path,
            c.kept,
        )


def _tick(progress: ProgressFn | None, done: int, total: int) -> None:
    if progress is not None:
        progress(done, total)


def write_panels(
    frame: TrelliscopeFrame,
    column: str,
    renderer: PanelRenderer | None,
    widgets: WidgetBackend | None = None,
    *,
    force: bool = False,
    settings: DisplaySettings | None = None,
    progress: ProgressFn | None = None,
    confirm_copy: ConfirmCopyFn | None = None,
) -> PanelWriteResult:
    """
    Materialize the artifacts of one panel column.

    Args:
        frame (TrelliscopeFrame): Bound frame.
        column (str): Panel column to write.
        renderer (PanelRenderer | None): Turns resolved objects into bytes; required for
            lazy and precomputed columns.
        widgets (WidgetBackend | None): Detects widgets and extracts their dependencies.
        force (bool): Rewrite every panel even when its target exists.
        settings (DisplaySettings | None): IO settings (defaults to DisplaySettings.load()).
        progress (ProgressFn | None): Called as progress(done, total) after each selected
            panel.
        confirm_copy (ConfirmCopyFn | None): Called with the estimated copy size in bytes
            before copying local files; returning False skips the copy.

    Returns:
        PanelWriteResult

    Raises:
        ConfigurationError: If the column is not a homogeneous panel column, or a renderer
            is missing for a lazy column.
        PanelWriteError: If an artifact cannot be written; earlier artifacts stay intact.
    """
    settings = settings or DisplaySettings.load()
    panels = column_panels(frame.df, column)
    kind = column_kind(panels, column)
    root = display_root(frame.context, settings)
    base = display_dir(frame.context, root)
    force = force or settings.force

    if kind is PanelKind.URL:
        logger.debug("column %r references remote panels; nothing to write", column)
        return PanelWriteResult(column=column, kind=kind.value, skipped_reason="url")
    if kind is PanelKind.LOCAL:
        return _copy_local(
            panels, column, base, force=force, settings=settings,
            progress=progress, confirm_copy=confirm_copy,
        )
    if renderer is None:
        raise ConfigurationError(f"a renderer is required to write lazy panels of {column!r}")
    return _render_lazy(
        frame, panels, column, kind, base, root, renderer, widgets,
        force=force, progress=progress,
    )


def _render_lazy(
    frame: TrelliscopeFrame,
    panels: list[Panel],
    column: str,
    kind: PanelKind,
    base: str,
    root: str,
    renderer: PanelRenderer,
    widgets: WidgetBackend | None,
    *,
    force: bool,
    progress: ProgressFn | None,
) -> PanelWriteResult:
    result = PanelWriteResult(column=column, kind=kind.value)
    opts = effective_panel_options(frame, column)
    if not opts.prerender:
        logger.info("column %r is rendered on request (prerender=False); skipping", column)
        result.skipped_reason = "not prerendered"
        return result

    fmt = opts.panel_format
    rels = [relative_path(p, column, fmt) for p in panels]
    candidates, result.collisions = find_path_collisions(rels)
    _log_collisions(column, result.collisions)

    targets = {i: os.path.join(base, rels[i]) for i in candidates}
    if force or opts.force:
        selected = candidates
    else:
        selected = [i for i in candidates if not exists(targets[i])]
    result.selected = len(selected)
    if not selected:
        logger.info("column %r: all %d panels up to date", column, len(candidates))
        return result

    panel_dir = os.path.dirname(targets[selected[0]])
    makedirs(panel_dir, exist_ok=True)
    logger.info("writing %d of %d panels for column %r", len(selected), len(panels), column)

    html_head: str | None = None
    widget_checked = False
    for done, idx in enumerate(selected, start=1):
        target = targets[idx]
        try:
            obj = resolve(panels[idx], idx, column)
        except PanelResolutionError as exc:
            _record_failure(result, idx, column, target, exc)
            _tick(progress, done, len(selected))
            continue

        if not widget_checked:
            # the first resolved panel decides; dependency write failures are fatal
            if widgets is not None and widgets.is_widget(obj):
                html_head = _extract_widget_dependencies(widgets, obj, idx, column, root, panel_dir)
            widget_checked = True

        try:
            payload = renderer.to_bytes(
                obj, fmt, opts.panel_width, opts.panel_height, html_head=html_head
            )
        except Exception as exc:
            # renderer errors are isolated per panel
            _record_failure(result, idx, column, target, exc)
            _tick(progress, done, len(selected))
            continue

        try:
            write_bytes_atomic(target, payload)
        except OSError as exc:
            raise PanelWriteError(
                f"failed to write panel {idx} of column {column!r} to {target}: {exc}",
                index=idx,
                path=target,
            ) from exc
        result.written += 1
        _tick(progress, done, len(selected))

    if result.failures:
        logger.warning(
            "column %r: %d of %d panels failed", column, len(result.failures), len(selected)
        )
    return result


def _extract_widget_dependencies(
    widgets: WidgetBackend, obj: Any, idx: int, column: str, root: str, panel_dir: str
) -> str:
    deps = libs_dir(root)
    try:
        makedirs(deps, exist_ok=True)
        head = widgets.extract_dependencies(obj, deps, panel_dir, write_file=write_bytes_atomic)
    except OSError as exc:
        raise PanelWriteError(
            f"failed to write widget dependencies for column {column!r} to {deps}: {exc}",
            index=idx,
            path=deps,
        ) from exc
    logger.info("extracted widget dependencies for %r into %s", column, deps)
    return head


def _record_failure(
    result: PanelWriteResult, idx: int, column: str, target: str, exc: BaseException
) -> None:
    filename = os.path.basename(target)
    logger.error("error writing panel %s with output to %s: %s", column, filename, exc)
    result.failures.append(
        PanelFailure(index=idx, column=column, filename=filename, error=str(exc))
    )


def _copy_local(
    panels: list[Panel],
    column: str,
    base: str,
    *,
    force: bool,
    settings: DisplaySettings,
    progress: ProgressFn | None,
    confirm_copy: ConfirmCopyFn | None,
) -> PanelWriteResult:
    result = PanelWriteResult(column=column, kind=PanelKind.LOCAL.value)
    locals_: list[LocalPanel] = [p for p in panels if isinstance(p, LocalPanel)]
    rels = [relative_path(p, column) for p in locals_]
    candidates, result.collisions = find_path_collisions(rels)
    _log_collisions(column, result.collisions)

    selected: list[int] = []
    for i in candidates:
        target = os.path.join(base, rels[i])
        if not exists(locals_[i].path):
            logger.warning("source file for panel %d of column %r not found: %s", i, column, locals_[i].path)
            result.failures.append(
                PanelFailure(
                    index=i, column=column, filename=os.path.basename(target),
                    error=f"source file not found: {locals_[i].path}",
                )
            )
            continue
        if force or not exists(target):
            selected.append(i)
    result.selected = len(selected)
    if not selected:
        return result

    sources = [locals_[i].path for i in selected]
    est = estimate_copy_bytes(sources, settings.copy_sample_size)
    result.estimated_bytes = est
    logger.info("copying %d files for column %r (~%.1f MB)", len(selected), column, est / 1e6)
    if settings.copy_warn_mb and est / 1e6 > settings.copy_warn_mb:
        logger.warning(
            "estimated copy size for column %r is %.1f MB (threshold %.1f MB)",
            column,
            est / 1e6,
            settings.copy_warn_mb,
        )
    if confirm_copy is not None and not confirm_copy(est):
        logger.info("copy of column %r declined", column)
        result.skipped_reason = "copy declined"
        return result

    for done, i in enumerate(selected, start=1):
        target = os.path.join(base, rels[i])
        try:
            copy_file_atomic(locals_[i].path, target)
        except OSError as exc:
            raise PanelWriteError(
                f"failed to copy panel {i} of column {column!r} to {target}: {exc}",
                index=i,
                path=target,
            ) from exc
        result.written += 1
        _tick(progress, done, len(selected))
    return result
