#!/usr/bin/env python3
"""
Output filename derivation from a set of source files.

Sequential recorders name segments with a shared stem (date, camera id) and a
varying suffix.  The derived name keeps the shared part once and lists only
the varying parts:

    20230101_0801.mp4, 20230101_0802.mp4  ->  20230101_080_1_2.mp4   (full)
    cam_0801.mp4 ... cam_0859.mp4         ->  cam_08_01-59.mp4       (first-last)
"""
import os
import re
from enum import Enum
from pathlib import Path
from typing import List, Sequence, Union

from ..utils.file_utils import filename_without_ext
from .exceptions import NoCandidatesError

SEPARATOR_CHARS = "_-. "
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


class NameMode(str, Enum):
    FULL = "full"
    FIRST_LAST = "first-last"

    @classmethod
    def parse(cls, value: Union[str, "NameMode"]) -> "NameMode":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown name mode {value!r} (expected 'full' or 'first-last')"
            ) from None


def common_filename_prefix(paths: Sequence[Union[str, Path]]) -> str:
    """Longest prefix shared by every filename (extension excluded)"""
    stems = [filename_without_ext(p) for p in paths]
    if not stems:
        return ""
    return os.path.commonprefix(stems)


def ensure_extension(name: str, extension: str = ".mp4") -> str:
    """Append extension unless name already ends with it (case-insensitive)"""
    if not extension:
        return name
    if not extension.startswith("."):
        extension = f".{extension}"
    if name.lower().endswith(extension.lower()):
        return name
    return f"{name}{extension}"


def _join(parts: List[str]) -> str:
    joined = "_".join(part for part in parts if part)
    return _REPEATED_UNDERSCORES.sub("_", joined).strip(SEPARATOR_CHARS)


def derive_concat_filename(
    paths: Sequence[Union[str, Path]],
    mode: Union[str, NameMode] = NameMode.FULL,
    extension: str = ".mp4",
) -> str:
    """
    Derive an output filename from the source files

    Args:
        paths: Source files in concatenation order
        mode: FULL lists every varying part, FIRST_LAST only the first and last
        extension: Extension appended when missing

    Returns:
        Filename (no directory component)

    Raises:
        NoCandidatesError: If paths is empty
    """
    if not paths:
        raise NoCandidatesError()

    mode = NameMode.parse(mode)
    stems = [filename_without_ext(p) for p in paths]
    prefix = common_filename_prefix(paths)
    remainders = [stem[len(prefix):].strip(SEPARATOR_CHARS) for stem in stems]
    head = prefix.rstrip(SEPARATOR_CHARS)

    if mode is NameMode.FIRST_LAST:
        first, last = remainders[0], remainders[-1]
        if len(stems) == 1 or first == last:
            tail = first
        elif first and last:
            tail = f"{first}-{last}"
        else:
            tail = first or last
        name = _join([head, tail])
    elif head:
        name = _join([head] + remainders)
    else:
        name = _join(stems)

    return ensure_extension(name or "concat", extension)
