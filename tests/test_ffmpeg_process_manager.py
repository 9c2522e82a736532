"""
FFmpeg process management tests

Uses small shell scripts named ffmpeg so the real process path
(new session, psutil monitoring, timeout kill) is exercised without ffmpeg.
"""

import os
import time

import pytest

from mp4concat.settings import FFmpegSettings
from mp4concat.utils.ffmpeg_process_manager import (
    FFmpegProcessManager,
    ProcessExecutionError,
    ProcessLimitError,
    ProcessLimits,
    ProcessState,
    ProcessTimeoutError,
    run_ffmpeg_command,
)

pytestmark = pytest.mark.skipif(os.name == "nt", reason="uses /bin/sh scripts")


@pytest.fixture
def manager():
    manager = FFmpegProcessManager(
        ProcessLimits(timeout_sec=10, monitor_interval_sec=0.05, grace_period_sec=1)
    )
    yield manager
    manager.shutdown_all_processes()


class TestCommandValidation:

    def test_accepts_ffmpeg_and_ffprobe(self, manager):
        for cmd in (
            ["ffmpeg", "-i", "in.mp4", "out.mp4"],
            ["ffprobe", "-v", "quiet", "in.mp4"],
            ["/usr/local/bin/ffmpeg", "-version"],
        ):
            assert manager._validate_command(cmd) == cmd

    def test_rejects_other_executables(self, manager):
        with pytest.raises(ValueError):
            manager._validate_command(["rm", "-rf", "/"])

    def test_rejects_directory_named_ffmpeg(self, manager):
        with pytest.raises(ValueError):
            manager._validate_command(["/opt/ffmpeg/bin/sh", "-c", "true"])

    def test_rejects_empty(self, manager):
        with pytest.raises(ValueError):
            manager._validate_command([])

    def test_stringifies_arguments(self, manager):
        assert manager._validate_command(["ffmpeg", "-safe", 0]) == ["ffmpeg", "-safe", "0"]


class TestExecution:

    def test_success_returns_output(self, manager, shell_tool):
        tool = shell_tool('echo "out"; echo "err" >&2')

        stdout, stderr = run_ffmpeg_command([str(tool)], manager=manager)

        assert stdout.strip() == "out"
        assert stderr.strip() == "err"
        assert manager.active_process_count() == 0

    def test_runs_in_cwd(self, manager, shell_tool, tmp_path):
        tool = shell_tool("pwd")

        stdout, _ = run_ffmpeg_command([str(tool)], cwd=str(tmp_path), manager=manager)

        assert os.path.realpath(stdout.strip()) == os.path.realpath(tmp_path)

    def test_non_zero_exit(self, manager, shell_tool):
        tool = shell_tool('echo "Invalid data found" >&2; exit 1')

        with pytest.raises(ProcessExecutionError) as exc_info:
            run_ffmpeg_command([str(tool)], manager=manager)

        assert "exit code 1" in str(exc_info.value)
        assert "Invalid data found" in exc_info.value.stderr

    def test_missing_executable(self, manager, tmp_path):
        with pytest.raises(ProcessExecutionError):
            run_ffmpeg_command([str(tmp_path / "ffmpeg")], manager=manager)

    def test_timeout_kills_process(self, manager, shell_tool):
        tool = shell_tool("sleep 30")

        start = time.time()
        with pytest.raises(ProcessTimeoutError):
            with manager.managed_process([str(tool)], timeout_sec=1) as info:
                pass

        assert time.time() - start < 15
        assert info.state == ProcessState.TIMEOUT
        assert info.process.poll() is not None
        assert manager.active_process_count() == 0

    def test_process_info_tracks_exit_code(self, manager, shell_tool):
        tool = shell_tool("exit 0")

        with manager.managed_process([str(tool)]) as info:
            assert info.state == ProcessState.RUNNING

        assert info.exit_code == 0
        assert info.state == ProcessState.COMPLETED


class TestLimits:

    def test_from_settings(self):
        limits = ProcessLimits.from_settings(
            FFmpegSettings(timeout_seconds=42, max_memory_mb=512, monitor_interval_seconds=0.5)
        )

        assert limits.timeout_sec == 42
        assert limits.max_memory_mb == 512
        assert limits.monitor_interval_sec == 0.5

    def test_memory_ceiling_kills_process(self, shell_tool):
        manager = FFmpegProcessManager(
            ProcessLimits(timeout_sec=10, max_memory_mb=0, monitor_interval_sec=0.05, grace_period_sec=1)
        )
        tool = shell_tool("sleep 30")

        start = time.time()
        with pytest.raises(ProcessLimitError) as exc_info:
            run_ffmpeg_command([str(tool)], manager=manager)

        assert "Memory limit exceeded" in str(exc_info.value)
        assert time.time() - start < 10
        assert manager.active_process_count() == 0
