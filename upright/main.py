"""CLI entrypoint for inspecting and normalizing image orientation."""

import argparse
import json
import logging
import pathlib
import sys
import time
from typing import Any, Dict, Iterable, List, Optional

import rawpy
import tqdm

from .batch import normalize_files, summarize
from .config import AppConfig, LoggingConfig, load_config
from .discovery import find_image_files
from .errors import NormalizeError
from .loader import load_bitmap, read_orientation
from .paths import exclude_list

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s"


class _Progress:
    """Minimal progress interface compatible with tqdm update/close."""

    def __init__(self, total: int, desc: str, batch_size: int = 16):
        self._pending = 0
        self._batch_size = max(1, batch_size)
        self._impl = tqdm.tqdm(total=total, desc=desc, leave=False)

    def update(self, amount: int = 1) -> None:
        self._pending += amount
        if self._pending >= self._batch_size:
            self._impl.update(self._pending)
            self._pending = 0

    def close(self) -> None:
        if self._pending:
            self._impl.update(self._pending)
            self._pending = 0
        self._impl.close()


def setup_logging(cfg: LoggingConfig, level_override: Optional[str] = None) -> None:
    """Configure the root logger from the logging section of the config."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = cfg.get("file")
    if log_file:
        log_path = pathlib.Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    level_name = (level_override or cfg.get("level") or "INFO").upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    logging.getLogger("PIL").setLevel(logging.INFO)
    logging.getLogger("exifread").setLevel(logging.WARNING)


def _discover(cfg: AppConfig) -> List[pathlib.Path]:
    return find_image_files(
        cfg["input_dir"],
        exclude_dirs=exclude_list(cfg),
        extensions=cfg.get("extensions"),
    )


def scan_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    """List discovered images with their orientation tag."""
    files = _discover(cfg)
    print(f"Found {len(files)} image files in {cfg['input_dir']}")
    bar = _Progress(len(files), "Scan")
    data: List[Dict[str, Any]] = []

    for file_path in files:
        orientation = read_orientation(file_path)
        if args.json:
            data.append(
                {
                    "path": str(file_path),
                    "orientation": orientation.name,
                    "exif_code": orientation.exif_code,
                }
            )
        else:
            print(f"{file_path} | {orientation.name}")
        bar.update(1)
    bar.close()
    if args.json:
        print(json.dumps(data, indent=2))
    return 0


def normalize_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    """Write upright copies of every discovered image."""
    files = _discover(cfg)
    if not files:
        print("No image files found")
        return 0

    bar = _Progress(len(files), "Normalize")
    try:
        results = normalize_files(
            files,
            cfg,
            dry_run=args.dry_run,
            progress_cb=lambda current, total: bar.update(1),
            log_cb=logger.info,
        )
    except KeyboardInterrupt:
        bar.close()
        print("Normalization cancelled by user.")
        return 130
    bar.close()

    summary = summarize(results)
    if args.dry_run:
        print("Dry run complete; no files were written.")
    print(
        "Normalize summary: "
        f"total={summary.total} normalized={summary.normalized} "
        f"unchanged={summary.unchanged} skipped={summary.skipped} "
        f"failed={summary.failed}"
    )
    return 1 if summary.failed else 0


def inspect_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    """Print size, mode and orientation of a single file."""
    path = pathlib.Path(args.path)
    if not path.exists():
        print(f"File not found: {path}")
        return 1
    try:
        bitmap = load_bitmap(path)
    except (OSError, NormalizeError, rawpy.LibRawError) as exc:
        logger.debug("Failed to inspect %s", path, exc_info=True)
        print(f"Cannot read image {path}: {exc}")
        return 1
    fmt = bitmap.format
    tag = bitmap.orientation
    print(f"path:        {path}")
    print(f"size:        {bitmap.width}x{bitmap.height}")
    print(
        f"mode:        {fmt.mode} "
        f"({fmt.channels}ch {fmt.bit_depth}-bit {fmt.color_space})"
    )
    print(f"orientation: {tag.name} (EXIF {tag.exif_code})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Bake EXIF orientation into image pixels"
    )
    parser.add_argument("--config", help="Path to YAML config file", default=None)
    parser.add_argument(
        "--log-level", default=None, help="Override the configured log level"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="List images and their orientation")
    scan.add_argument("--json", action="store_true", help="Output JSON metadata")
    scan.set_defaults(func=scan_command)

    norm = sub.add_parser("normalize", help="Write upright copies of images")
    norm.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan outputs without writing any file",
    )
    norm.set_defaults(func=normalize_command)

    inspect = sub.add_parser("inspect", help="Describe a single image")
    inspect.add_argument("path", help="Image file to inspect")
    inspect.set_defaults(func=inspect_command)

    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Parse CLI arguments and dispatch the requested command."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    cfg = load_config(args.config)
    setup_logging(cfg.get("logging") or {}, args.log_level)
    start = time.perf_counter()
    try:
        return args.func(args, cfg)
    finally:
        elapsed = time.perf_counter() - start
        logger.info("%s completed in %.2fs", args.command, elapsed)


if __name__ == "__main__":
    sys.exit(main())
