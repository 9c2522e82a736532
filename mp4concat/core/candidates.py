#!/usr/bin/env python3
"""
Candidate selection: pattern-filtered directory scan, ordering and truncation
"""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

from ..settings import SORT_ALIASES
from ..utils.file_utils import iterate_files
from ..utils.logging_config import get_logger
from .exceptions import InvalidPatternError, NoCandidatesError, SourceDirectoryError

logger = get_logger(__name__)


class SortOrder(str, Enum):
    """Lexicographic ordering applied before truncation"""
    NORMAL = "normal"
    REVERSE = "reverse"

    @classmethod
    def parse(cls, value: Union[str, "SortOrder"]) -> "SortOrder":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = SORT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown sort order {value!r} (expected 'normal' or 'reverse')"
            ) from None


@dataclass(frozen=True)
class CandidateSet:
    """Files selected for one concatenation, in selection order"""
    directory: Path
    pattern: str
    order: SortOrder
    paths: Tuple[Path, ...]

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self):
        return iter(self.paths)

    def concat_order(self) -> List[Path]:
        """Selected files in ascending (recording) order"""
        return sorted(self.paths, key=str)


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e))


def scan_directory(directory: Union[str, Path], pattern: str) -> List[Path]:
    """
    List regular files directly inside directory whose name matches pattern

    Args:
        directory: Directory to scan (not recursed)
        pattern: Regular expression searched in each filename

    Returns:
        Matching absolute paths, unordered

    Raises:
        SourceDirectoryError: If directory does not exist or is not readable
        InvalidPatternError: If pattern is not a valid regular expression
    """
    regex = compile_pattern(pattern)
    directory = Path(directory).expanduser().resolve()

    if not directory.exists():
        raise SourceDirectoryError(str(directory), "missing")
    if not directory.is_dir():
        raise SourceDirectoryError(str(directory), "not a directory")

    try:
        files = iterate_files(directory)
    except PermissionError:
        raise SourceDirectoryError(str(directory), "not readable")

    matches = [path for path in files if regex.search(path.name)]
    logger.debug(
        f"Scanned {directory}: {len(matches)}/{len(files)} files match",
        extra={"directory": str(directory), "pattern": pattern},
    )
    return matches


def sort_paths(paths: Iterable[Path], order: Union[str, SortOrder] = SortOrder.REVERSE) -> List[Path]:
    """Deduplicate and sort paths lexicographically"""
    order = SortOrder.parse(order)
    unique = {Path(p) for p in paths}
    return sorted(unique, key=str, reverse=(order is SortOrder.REVERSE))


def limit_paths(paths: Sequence[Path], count: int = 0) -> List[Path]:
    """Keep the first count paths; 0 keeps all"""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if count == 0:
        return list(paths)
    return list(paths[:count])


def get_candidates(
    directory: Union[str, Path],
    pattern: str,
    order: Union[str, SortOrder] = SortOrder.REVERSE,
    limit: int = 0,
    exclude: Iterable[Union[str, Path]] = (),
) -> CandidateSet:
    """
    Build the candidate set for a concatenation

    Args:
        directory: Source directory
        pattern: Filename regular expression
        order: Sort order applied before truncation
        limit: Maximum number of files (0 = all)
        exclude: Paths never to select (e.g. the output file)

    Raises:
        NoCandidatesError: If nothing is left to concatenate
    """
    order = SortOrder.parse(order)
    excluded = {Path(p).expanduser().resolve() for p in exclude}

    matches = [p for p in scan_directory(directory, pattern) if p not in excluded]
    selected = limit_paths(sort_paths(matches, order), limit)

    resolved_dir = Path(directory).expanduser().resolve()
    if not selected:
        raise NoCandidatesError(str(resolved_dir), pattern)

    logger.info(
        f"Selected {len(selected)} of {len(matches)} matching files",
        extra={"order": order.value, "limit": limit},
    )
    return CandidateSet(
        directory=resolved_dir,
        pattern=pattern,
        order=order,
        paths=tuple(selected),
    )
