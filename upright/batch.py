"""Normalize discovered images on disk and write upright copies."""

from __future__ import annotations

import concurrent.futures
import logging
import pathlib
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, cast

import rawpy

from .config import AppConfig, OutputConfig
from .errors import NormalizeError
from .loader import (
    load_bitmap,
    output_path_for,
    pil_format,
    read_orientation,
    resize_bitmap,
    save_bitmap,
)
from .normalizer import normalize
from .orientation import Orientation
from .paths import input_dir_from_cfg, output_dir_for_input

logger = logging.getLogger(__name__)

NORMALIZED = "normalized"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class FileResult:
    """Outcome of processing a single file."""

    path: pathlib.Path
    status: str
    orientation: Optional[Orientation] = None
    target: Optional[pathlib.Path] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate counts for a normalization run."""

    total: int
    normalized: int
    unchanged: int
    skipped: int
    failed: int


ProgressCallback = Optional[Callable[[int, int], None]]
LogCallback = Optional[Callable[[str], None]]


def _rewrites_upright(out_cfg: OutputConfig) -> bool:
    """True when upright files still need a new copy (resize or reformat)."""
    if int(out_cfg.get("long_edge", 0)) > 0:
        return True
    return out_cfg.get("format", "keep") != "keep"


def process_file(
    path: pathlib.Path,
    input_dir: pathlib.Path,
    output_dir: pathlib.Path,
    out_cfg: OutputConfig,
    dry_run: bool = False,
) -> FileResult:
    """Normalize one file and write its upright copy below ``output_dir``."""
    orientation = read_orientation(path)
    if orientation is Orientation.UP and not _rewrites_upright(out_cfg):
        return FileResult(path, UNCHANGED, orientation)

    target = output_path_for(path, input_dir, output_dir, out_cfg)
    if target.exists() and not out_cfg.get("overwrite", False):
        logger.info("Output exists, skipping: %s", target)
        return FileResult(path, SKIPPED, orientation, target)
    if dry_run:
        return FileResult(path, NORMALIZED, orientation, target)

    bitmap = normalize(load_bitmap(path, orientation))
    bitmap = resize_bitmap(bitmap, int(out_cfg.get("long_edge", 0)))
    save_bitmap(
        bitmap,
        target,
        pil_format(out_cfg.get("format", "keep"), path),
        quality=int(out_cfg.get("quality", 92)),
        keep_exif=bool(out_cfg.get("keep_exif", True)),
    )
    status = UNCHANGED if orientation is Orientation.UP else NORMALIZED
    return FileResult(path, status, orientation, target)


def _safe_process(
    path: pathlib.Path,
    input_dir: pathlib.Path,
    output_dir: pathlib.Path,
    out_cfg: OutputConfig,
    dry_run: bool,
) -> FileResult:
    """Run ``process_file`` and turn per-file failures into a result."""
    try:
        return process_file(path, input_dir, output_dir, out_cfg, dry_run)
    except (NormalizeError, OSError, ValueError, MemoryError, rawpy.LibRawError) as exc:
        logger.debug("Failed to process %s", path, exc_info=True)
        return FileResult(path, FAILED, error=str(exc))


def normalize_files(
    files: Sequence[pathlib.Path],
    cfg: AppConfig,
    *,
    dry_run: bool = False,
    progress_cb: ProgressCallback = None,
    log_cb: LogCallback = None,
) -> List[FileResult]:
    """Process ``files`` concurrently and return their results in input order."""
    input_dir = input_dir_from_cfg(cfg)
    output_dir = output_dir_for_input(input_dir)
    out_cfg = cast(OutputConfig, dict(cfg.get("output") or {}))
    total = len(files)
    results: Dict[pathlib.Path, FileResult] = {}

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, int(cfg.get("concurrency", 4)))
    ) as pool:
        jobs = {
            pool.submit(
                _safe_process, path, input_dir, output_dir, out_cfg, dry_run
            ): path
            for path in files
        }
        for done, job in enumerate(concurrent.futures.as_completed(jobs), 1):
            result = job.result()
            results[jobs[job]] = result
            if log_cb is not None:
                log_cb(_describe(result, dry_run))
            if progress_cb is not None:
                progress_cb(done, total)

    return [results[path] for path in files]


def _describe(result: FileResult, dry_run: bool) -> str:
    if result.status == FAILED:
        return f"FAILED {result.path}: {result.error}"
    tag = result.orientation.name if result.orientation else "?"
    if result.target is None:
        return f"{result.status.upper()} {result.path} ({tag})"
    verb = "PLAN" if dry_run else result.status.upper()
    return f"{verb} {result.path} ({tag}) -> {result.target}"


def summarize(results: Sequence[FileResult]) -> BatchSummary:
    counts = {NORMALIZED: 0, UNCHANGED: 0, SKIPPED: 0, FAILED: 0}
    for result in results:
        counts[result.status] += 1
    return BatchSummary(total=len(results), **counts)
