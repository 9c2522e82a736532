"""Filesystem helpers shared by the candidate scan, naming and cleanup steps."""
import os
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def ensure_directory(path: PathLike) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def filename_without_ext(path: PathLike) -> str:
    """Return the basename of path with its last extension removed"""
    return Path(path).stem


def is_directory_target(path: PathLike) -> bool:
    """True when path names an existing directory or ends with a separator"""
    text = os.fspath(path)
    if text.endswith(os.sep) or (os.altsep and text.endswith(os.altsep)):
        return True
    return Path(text).expanduser().is_dir()


def iterate_files(directory: PathLike) -> List[Path]:
    """Regular files directly inside directory (no recursion)"""
    with os.scandir(directory) as entries:
        return [
            Path(entry.path)
            for entry in entries
            if entry.is_file(follow_symlinks=True)
        ]


def remove_files(paths: Iterable[PathLike]) -> Tuple[List[Path], List[Path]]:
    """
    Remove files with `rm -f` semantics.

    Missing files count as removed; files that cannot be removed are
    logged and returned in the failed list instead of raising.

    Returns:
        Tuple of (removed, failed)
    """
    removed: List[Path] = []
    failed: List[Path] = []
    for path in paths:
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                f"Failed to delete source file {path}: {e}",
                extra={"path": str(path), "error_type": type(e).__name__},
            )
            failed.append(path)
            continue
        removed.append(path)
    return removed, failed
