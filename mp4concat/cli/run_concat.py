#!/usr/bin/env python3
"""
Command-line entry point
Usage: mp4concat -i /media/data/camera -f "[0-9]+\\.mp4" -n 10 -o /media/data/out/
"""
import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.candidates import SortOrder
from ..core.exceptions import Mp4ConcatError
from ..core.pipeline import ConcatResult, Mp4Concat
from ..settings import NAME_MODES, SORT_MODES, get_settings
from ..utils.ffmpeg_process_manager import get_process_manager
from ..utils.logging_config import configure_logging, get_logger, run_context
from ..providers.concat_editor import ConcatEditor
from .show_config import show_config

logger = get_logger(__name__)

console = Console()
err_console = Console(stderr=True)


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"count must be >= 0, got {number}")
    return number


def sort_mode(value: str) -> str:
    try:
        return SortOrder.parse(value).value
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser(settings=None) -> argparse.ArgumentParser:
    settings = settings or get_settings()
    defaults = settings.concat

    parser = argparse.ArgumentParser(
        prog="mp4concat",
        description="Concatenate sequentially recorded video segments with ffmpeg (stream copy)",
        epilog='Example: mp4concat -i /media/data/camera -f "[0-9]+\\.mp4"',
    )
    parser.add_argument(
        "-i", "--source-path", "--sourcePath", dest="source_path", default=str(defaults.source_path),
        help=f"Set source path (default: {defaults.source_path})",
    )
    parser.add_argument(
        "-f", "--filter", dest="filter", default=defaults.filter,
        help=f"Set source regexp file filter (default: {defaults.filter})",
    )
    parser.add_argument(
        "-s", "--sort", dest="sort", type=sort_mode, default=defaults.sort,
        help=f"Set sort mode used to pick files before the count limit: "
             f"{', '.join(SORT_MODES)} (aliases asc, desc; default: {defaults.sort})",
    )
    parser.add_argument(
        "-n", "--num-of-concat-files", "--numOfConcatFiles", dest="num_of_concat_files",
        type=non_negative_int, default=defaults.num_of_concat_files,
        help=f"Set number of concat files, 0: all (default: {defaults.num_of_concat_files})",
    )
    parser.add_argument(
        "-o", "--output-path", "--outputPath", dest="output_path", default=str(defaults.output_path),
        help=f"Set output file, or a directory to derive the filename in (default: {defaults.output_path})",
    )
    parser.add_argument(
        "-d", "--delete-after-concat", "--deleteAfterConcat", dest="delete_after_concat",
        action="store_true", default=defaults.delete_after_concat,
        help="Delete the source files after a successful concat",
    )
    parser.add_argument(
        "--name-mode", choices=NAME_MODES, default=defaults.name_mode,
        help=f"Derived filename style when the output is a directory (default: {defaults.name_mode})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done and exit")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--log-level", default=settings.logging.level, help="Logging level")
    parser.add_argument("--show-config", action="store_true", help="Show effective configuration and exit")
    return parser


def print_result(result: ConcatResult):
    table = Table(title="Sources" if not result.dry_run else "Sources (dry run)")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("File")
    for index, path in enumerate(result.sources, 1):
        table.add_row(str(index), escape(str(path)))
    console.print(table)

    if result.dry_run:
        console.print(f"Would write [bold]{escape(str(result.output_path))}[/bold]")
        console.print(" ".join(result.command), style="dim", markup=False)
        return

    console.print(
        f"✅ Wrote [bold]{escape(str(result.output_path))}[/bold] "
        f"({result.output_size / 1024 / 1024:.1f} MB in {result.elapsed_seconds:.1f}s)"
    )
    if result.deleted:
        console.print(f"🗑  Deleted {len(result.deleted)} source files")
    if result.delete_failed:
        console.print(
            f"⚠️  Could not delete {len(result.delete_failed)} files: "
            + escape(", ".join(str(p) for p in result.delete_failed)),
            style="yellow",
        )


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(
        log_level=args.log_level,
        enable_json=settings.logging.use_json_format,
        log_file=settings.logging.file_path,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    if args.show_config:
        show_config("json" if args.json else "tree")
        return 0

    process_manager = get_process_manager()
    process_manager.install_signal_handlers()
    concat = Mp4Concat(settings, ConcatEditor.from_settings(settings, process_manager))

    with run_context():
        try:
            result = concat.concat_enumerated(
                source_path=args.source_path,
                scan_filter=args.filter,
                num_of_concat_files=args.num_of_concat_files,
                output_path=args.output_path,
                delete_after_concat=args.delete_after_concat,
                sort=args.sort,
                name_mode=args.name_mode,
                dry_run=args.dry_run,
            )
        except Mp4ConcatError as e:
            logger.error(f"{e.code}: {e.message}")
            if args.json:
                print(json.dumps(e.to_dict(), indent=2))
            else:
                err_console.print(f"❌ {e.message}", style="red", markup=False)
                stderr_tail = e.details.get("stderr")
                if stderr_tail:
                    err_console.print(stderr_tail, style="dim", markup=False)
            return 1
        except KeyboardInterrupt:
            err_console.print("Interrupted", style="yellow")
            return 130

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
