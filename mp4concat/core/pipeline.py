#!/usr/bin/env python3
"""
Concat pipeline: scan -> sort/limit -> name -> ffmpeg -> verify -> cleanup
"""
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..providers.concat_editor import ConcatEditor
from ..settings import Settings, get_settings
from ..utils.file_utils import is_directory_target, remove_files
from ..utils.logging_config import get_logger, log_performance
from .candidates import CandidateSet, SortOrder, compile_pattern, get_candidates
from .exceptions import OutputVerificationError
from .naming import NameMode
from .output import resolve_output_path

logger = get_logger(__name__)


@dataclass
class ConcatResult:
    """Outcome of one concat run"""
    sources: List[Path]
    output_path: Path
    command: List[str]
    dry_run: bool = False
    output_size: int = 0
    deleted: List[Path] = field(default_factory=list)
    delete_failed: List[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [str(p) for p in self.sources],
            "output_path": str(self.output_path),
            "command": self.command,
            "dry_run": self.dry_run,
            "output_size": self.output_size,
            "deleted": [str(p) for p in self.deleted],
            "delete_failed": [str(p) for p in self.delete_failed],
            "elapsed_seconds": self.elapsed_seconds,
        }


def verify_output(path: Union[str, Path]) -> bool:
    """True when path exists and is non-empty"""
    path = Path(path)
    return path.is_file() and path.stat().st_size > 0


class Mp4Concat:
    """Concatenates the enumerated segments of a directory into one file"""

    def __init__(self, settings: Optional[Settings] = None, editor: Optional[ConcatEditor] = None):
        self.settings = settings or get_settings()
        self.editor = editor or ConcatEditor.from_settings(self.settings)

    def concat_enumerated(
        self,
        source_path: Union[str, Path, None] = None,
        scan_filter: Optional[str] = None,
        num_of_concat_files: Optional[int] = None,
        output_path: Union[str, Path, None] = None,
        delete_after_concat: Optional[bool] = None,
        sort: Union[str, SortOrder, None] = None,
        name_mode: Union[str, NameMode, None] = None,
        dry_run: bool = False,
    ) -> ConcatResult:
        """
        Run the whole pipeline. Arguments left as None fall back to settings.

        Raises:
            Mp4ConcatError: Any candidate, output or ffmpeg failure
            OutputVerificationError: If ffmpeg succeeded but left no usable output
        """
        defaults = self.settings.concat
        source_path = defaults.source_path if source_path is None else source_path
        scan_filter = defaults.filter if scan_filter is None else scan_filter
        limit = defaults.num_of_concat_files if num_of_concat_files is None else num_of_concat_files
        output_path = defaults.output_path if output_path is None else output_path
        delete = defaults.delete_after_concat if delete_after_concat is None else delete_after_concat
        order = SortOrder.parse(defaults.sort if sort is None else sort)
        name_mode = NameMode.parse(defaults.name_mode if name_mode is None else name_mode)
        extension = defaults.extension

        start = time.time()

        with log_performance("candidate selection", logger):
            if is_directory_target(output_path):
                candidates = get_candidates(source_path, scan_filter, order, limit)
                sources = candidates.concat_order()
                target = resolve_output_path(output_path, sources, name_mode, extension)
                self._warn_shared_directory(candidates, target)
            else:
                target = resolve_output_path(output_path, extension=extension)
                candidates = get_candidates(source_path, scan_filter, order, limit, exclude=[target])
                sources = candidates.concat_order()

        self._log_selection(candidates, target)

        with log_performance("concat", logger):
            command = self.editor.concat(sources, target, dry_run=dry_run)

        result = ConcatResult(sources=sources, output_path=target, command=command, dry_run=dry_run)

        if not dry_run:
            if not verify_output(target):
                raise OutputVerificationError(str(target))
            result.output_size = target.stat().st_size
            logger.info(f"Wrote {target} ({result.output_size} bytes)")

            if delete:
                result.deleted, result.delete_failed = remove_files(sources)
                logger.info(
                    f"Deleted {len(result.deleted)} source files",
                    extra={"failed": [str(p) for p in result.delete_failed]},
                )

        result.elapsed_seconds = round(time.time() - start, 3)
        return result

    def _log_selection(self, candidates: CandidateSet, target: Path):
        for path in candidates.concat_order():
            logger.debug(f"  source: {path}")
        logger.info(
            f"{len(candidates)} files from {candidates.directory} -> {target}",
            extra={"pattern": candidates.pattern, "order": candidates.order.value},
        )

    def _warn_shared_directory(self, candidates: CandidateSet, target: Path):
        """Derived results written next to their sources match the filter on the next run"""
        if target.parent != candidates.directory:
            return
        if not compile_pattern(candidates.pattern).search(target.name):
            return
        logger.warning(
            f"Writing {target.name} into the source directory; it matches "
            f"{candidates.pattern!r} and will be a candidate on the next run",
            extra={"directory": str(candidates.directory), "pattern": candidates.pattern},
        )
