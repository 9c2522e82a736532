"""Stream-copy concatenation through the ffmpeg concat demuxer"""
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union

import ffmpeg

from ..core.exceptions import ConcatError
from ..utils.ffmpeg_process_manager import (
    FFmpegProcessManager,
    ProcessExecutionError,
    ProcessLimitError,
    ProcessTimeoutError,
    run_ffmpeg_command,
)
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def escape_concat_path(path: PathLike) -> str:
    """Quote a path for a concat list line (single quotes, ' -> '\\'')"""
    return "'" + Path(path).as_posix().replace("'", "'\\''") + "'"


class ConcatEditor:
    def __init__(
        self,
        binary: str = "ffmpeg",
        loglevel: Optional[str] = "error",
        timeout_sec: Optional[int] = None,
        process_manager: Optional[FFmpegProcessManager] = None,
    ):
        self.binary = binary
        self.loglevel = loglevel
        self.timeout_sec = timeout_sec
        self.process_manager = process_manager

    @classmethod
    def from_settings(cls, settings, process_manager=None) -> "ConcatEditor":
        return cls(
            binary=settings.ffmpeg.binary,
            loglevel=settings.ffmpeg.loglevel,
            timeout_sec=settings.ffmpeg.timeout_seconds,
            process_manager=process_manager,
        )

    @staticmethod
    def create_concat_list(segment_paths: Sequence[PathLike], list_path: PathLike) -> Path:
        """Write an ffmpeg concat demuxer list file"""
        list_path = Path(list_path)
        with open(list_path, "w", encoding="utf-8") as f:
            for seg in segment_paths:
                f.write(f"file {escape_concat_path(Path(seg).resolve())}\n")
        return list_path

    def build_command(self, list_path: PathLike, output_path: PathLike) -> List[str]:
        stream = (
            ffmpeg
            .input(str(list_path), f="concat", safe=0)
            .output(str(output_path), c="copy")
            .overwrite_output()
        )
        if self.loglevel:
            stream = stream.global_args("-hide_banner", "-loglevel", self.loglevel)
        return stream.compile(cmd=self.binary)

    def concat(
        self,
        segment_paths: Sequence[PathLike],
        output_path: PathLike,
        dry_run: bool = False,
    ) -> List[str]:
        """
        Concatenate segments into output_path without re-encoding

        Args:
            segment_paths: Source files in playback order
            output_path: Destination file (overwritten)
            dry_run: Build and return the command without running it

        Returns:
            The ffmpeg command line that was (or would be) run

        Raises:
            ConcatError: If a segment is missing or ffmpeg fails
        """
        output_path = Path(output_path)
        for seg in segment_paths:
            if not Path(seg).is_file():
                raise ConcatError(str(output_path), f"segment missing: {seg}")
        if not segment_paths:
            raise ConcatError(str(output_path), "no segments given")

        if dry_run:
            return self.build_command(output_path.with_suffix(".txt"), output_path)

        list_file = None
        try:
            fd, list_file = tempfile.mkstemp(
                prefix=".mp4concat-", suffix=".txt", dir=str(output_path.parent)
            )
            os.close(fd)
            self.create_concat_list(segment_paths, list_file)
            cmd = self.build_command(list_file, output_path)
            logger.info(
                f"Concatenating {len(segment_paths)} files into {output_path}",
                extra={"command": " ".join(cmd)},
            )
            run_ffmpeg_command(
                cmd,
                timeout_sec=self.timeout_sec,
                cwd=str(Path(segment_paths[0]).resolve().parent),
                manager=self.process_manager,
            )
        except ProcessExecutionError as e:
            raise ConcatError(str(output_path), "ffmpeg exited with an error", e.stderr) from e
        except ProcessTimeoutError as e:
            raise ConcatError(str(output_path), str(e)) from e
        except ProcessLimitError as e:
            raise ConcatError(str(output_path), str(e)) from e
        except ValueError as e:
            # rejected command, e.g. a binary that is not ffmpeg
            raise ConcatError(str(output_path), str(e)) from e
        except OSError as e:
            raise ConcatError(str(output_path), f"cannot write concat list ({e})") from e
        finally:
            if list_file:
                Path(list_file).unlink(missing_ok=True)

        return cmd
