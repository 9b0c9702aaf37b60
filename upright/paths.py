"""Path constants and helpers derived from the input directory."""

from __future__ import annotations

import pathlib
from typing import Any, List, Mapping

OUTPUT_SUBDIR = "upright"


def input_dir_from_cfg(cfg: Mapping[str, Any]) -> pathlib.Path:
    """Return the input directory from config."""
    return pathlib.Path(cfg.get("input_dir", "./input")).expanduser()


def output_dir_for_input(input_dir: pathlib.Path) -> pathlib.Path:
    """Return the output directory under the input directory."""
    return input_dir / OUTPUT_SUBDIR


def exclude_list(cfg: Mapping[str, Any]) -> List[str]:
    """Return a de-duplicated, deterministic list of directories to ignore."""
    exclude_dirs = list(cfg.get("exclude_dirs") or [])
    exclude_dirs.append(str(output_dir_for_input(input_dir_from_cfg(cfg))))
    return list(dict.fromkeys(exclude_dirs))
