# config.py
from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from .source import DEFAULT_MAX_BUFFERED_SIZE, DEFAULT_MAX_MAPPED_SIZE

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "pclbox.toml"


@dataclass
class DumpConfig:
    input_path: str
    max_mapped_size: int
    max_buffered_size: int
    show_offsets: bool
    show_labels: bool
    log_level: str


def build_arg_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser for the PCL dumper.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(
        description="Decode a PCL/PJL print job and list its commands",
    )
    p.add_argument("input", help="PCL file to decode, or - for stdin")
    p.add_argument(
        "--config",
        type=Path,
        help=f"TOML config file (defaults to {DEFAULT_CONFIG_NAME} if present)",
    )
    p.add_argument(
        "--max-mapped-size",
        type=int,
        help="Largest file (bytes) that is memory-mapped; larger files are streamed",
    )
    p.add_argument(
        "--max-buffered-size",
        type=int,
        help="Largest non-file stream (bytes) that is read into memory",
    )
    p.add_argument(
        "--no-offsets",
        dest="show_offsets",
        action="store_false",
        help="Do not prefix lines with command offsets",
    )
    p.add_argument(
        "--no-labels",
        dest="show_labels",
        action="store_false",
        help="Do not annotate well-known commands",
    )
    p.set_defaults(show_offsets=None, show_labels=None)
    p.add_argument("--log-level", help="Log level (default INFO)")
    return p


def _load_toml(path: Path) -> dict:
    """
    Load a TOML config file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed dictionary.

    Raises:
        FileNotFoundError: If the file is missing.
        tomllib.TOMLDecodeError: On parse errors.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("rb") as f:
        return tomllib.load(f)


def _dict_get_nested(data: dict, key: str, default: Any = None) -> Any:
    """
    Fetch a dotted-path value from a nested dict.

    Args:
        data: Mapping to search.
        key: Dot-separated key path.
        default: Fallback if key is absent.

    Returns:
        Retrieved value or default.

    Raises:
        SystemExit: If an enclosing key holds a value that is not a table.
    """
    parts = key.split(".")
    current_level = data
    for part in parts[:-1]:
        current_level = current_level.get(part, {})
        if not isinstance(current_level, dict):
            raise SystemExit(f"Config entry {part!r} must be a table, got {current_level!r}")
    return current_level.get(parts[-1], default)


def _size_limit(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SystemExit(f"{name} must be a non-negative integer, got {value!r}")
    return value


def load_config_and_args(args: argparse.Namespace) -> DumpConfig:
    """
    Merge CLI args with the TOML config into a DumpConfig.

    Args:
        args: Parsed argparse namespace.

    Returns:
        DumpConfig with source limits, dump options and log level.

    Raises:
        SystemExit: On a missing explicit config, an unreadable config or invalid values.
    """
    cfg_data: dict = {}
    cfg_path: Optional[Path] = getattr(args, "config", None)
    used_default = False

    if cfg_path is None:
        default_path = Path(DEFAULT_CONFIG_NAME)
        if default_path.exists():
            cfg_path = default_path
            used_default = True

    if cfg_path is not None:
        try:
            cfg_data = _load_toml(cfg_path)
        except FileNotFoundError:
            if not used_default:
                raise SystemExit(f"Config file not found: {cfg_path}")
        except Exception as e:  # TOML parse errors, permission issues, etc.
            raise SystemExit(f"Failed to load config file {cfg_path}: {e}") from e

    max_mapped_size = _dict_get_nested(cfg_data, "source.max_mapped_size", DEFAULT_MAX_MAPPED_SIZE)
    max_buffered_size = _dict_get_nested(
        cfg_data, "source.max_buffered_size", DEFAULT_MAX_BUFFERED_SIZE
    )
    show_offsets = bool(_dict_get_nested(cfg_data, "dump.show_offsets", True))
    show_labels = bool(_dict_get_nested(cfg_data, "dump.labels", True))
    log_level = str(_dict_get_nested(cfg_data, "logging.level", "INFO"))

    # CLI overrides
    if getattr(args, "max_mapped_size", None) is not None:
        max_mapped_size = args.max_mapped_size
    if getattr(args, "max_buffered_size", None) is not None:
        max_buffered_size = args.max_buffered_size
    if getattr(args, "show_offsets", None) is not None:
        show_offsets = bool(args.show_offsets)
    if getattr(args, "show_labels", None) is not None:
        show_labels = bool(args.show_labels)
    if getattr(args, "log_level", None):
        log_level = args.log_level

    config = DumpConfig(
        input_path=args.input,
        max_mapped_size=_size_limit("max_mapped_size", max_mapped_size),
        max_buffered_size=_size_limit("max_buffered_size", max_buffered_size),
        show_offsets=show_offsets,
        show_labels=show_labels,
        log_level=log_level,
    )
    log.debug("DumpConfig: %s", asdict(config))
    return config
