"""
FFmpeg process management

Runs the external media tool for mp4concat:
- Process group isolation so the whole ffmpeg tree can be killed
- Timeout handling with graceful shutdown, then SIGKILL
- Peak memory/CPU tracking via psutil, with a memory ceiling
- Signal handling so Ctrl-C does not leave ffmpeg running
"""

import os
import signal
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

import psutil

from .logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_EXECUTABLES = ("ffmpeg", "ffprobe")


class ProcessState(str, Enum):
    """FFmpeg process states"""
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    KILLED = "killed"
    ERROR = "error"


@dataclass
class ProcessLimits:
    """Process resource limits configuration"""
    timeout_sec: int = 1800
    max_memory_mb: int = 2048
    monitor_interval_sec: float = 1.0
    grace_period_sec: int = 10

    @classmethod
    def from_settings(cls, ffmpeg_settings) -> "ProcessLimits":
        return cls(
            timeout_sec=ffmpeg_settings.timeout_seconds,
            max_memory_mb=ffmpeg_settings.max_memory_mb,
            monitor_interval_sec=ffmpeg_settings.monitor_interval_seconds,
            grace_period_sec=ffmpeg_settings.grace_period_seconds,
        )


@dataclass
class ProcessInfo:
    """Information about a managed FFmpeg process"""
    pid: int
    command: List[str]
    start_time: datetime
    state: ProcessState
    timeout_sec: int
    process: subprocess.Popen
    psutil_process: Optional[psutil.Process]
    monitor_thread: Optional[threading.Thread] = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    max_memory_mb: float = 0.0
    max_cpu_percent: float = 0.0
    stdout: str = ""
    stderr: str = ""
    error_message: Optional[str] = None
    exit_code: Optional[int] = None


class ProcessLimitError(Exception):
    """Raised when process limits are exceeded"""
    def __init__(self, message="Process limit exceeded"):
        super().__init__(message)


class ProcessTimeoutError(Exception):
    """Raised when process times out"""
    def __init__(self, message="Process timed out"):
        super().__init__(message)


class ProcessExecutionError(Exception):
    """Raised when process execution fails"""
    def __init__(self, message="Process execution failed", stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class FFmpegProcessManager:
    """
    Runs ffmpeg commands in their own process group and keeps track of them
    so they can be torn down on timeout, memory overrun or shutdown.
    """

    def __init__(self, limits: Optional[ProcessLimits] = None):
        self.limits = limits or ProcessLimits()
        self._processes: Dict[int, ProcessInfo] = {}
        self._process_lock = threading.RLock()

    def install_signal_handlers(self):
        """Kill tracked processes on SIGTERM/SIGINT (main thread only)"""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame):
        logger.info(f"Received signal {signum}, shutting down ffmpeg processes")
        self.shutdown_all_processes()
        raise KeyboardInterrupt

    @contextmanager
    def managed_process(
        self,
        command: List[str],
        timeout_sec: Optional[int] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None
    ):
        """
        Context manager for FFmpeg process execution

        Args:
            command: FFmpeg command and arguments
            timeout_sec: Process timeout (default from limits)
            cwd: Working directory
            env: Extra environment variables

        Yields:
            ProcessInfo: Information about the running process

        Raises:
            ProcessLimitError: If the memory ceiling is exceeded
            ProcessTimeoutError: If process times out
            ProcessExecutionError: If process fails
        """
        process_info = None

        try:
            safe_command = self._validate_command(command)
            process_info = self._start_process(
                safe_command,
                timeout_sec or self.limits.timeout_sec,
                cwd,
                env
            )

            logger.debug(f"Started FFmpeg process {process_info.pid}: {' '.join(safe_command)}")

            yield process_info

            self._wait_for_completion(process_info)

        except Exception as e:
            if process_info:
                process_info.error_message = str(e)
                if process_info.state == ProcessState.RUNNING:
                    process_info.state = ProcessState.ERROR
            raise

        finally:
            if process_info:
                self._cleanup_process(process_info)

    def _validate_command(self, command: List[str]) -> List[str]:
        """
        Validate an FFmpeg command list

        Raises:
            ValueError: If command is empty or not an ffmpeg/ffprobe call
        """
        if not command or not isinstance(command, list):
            raise ValueError("Command must be a non-empty list")

        executable = os.path.basename(str(command[0])).lower()
        if not any(name in executable for name in ALLOWED_EXECUTABLES):
            raise ValueError(f"Only FFmpeg/FFprobe executables allowed, got: {command[0]}")

        return [str(arg) for arg in command]

    def _start_process(
        self,
        command: List[str],
        timeout_sec: int,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None
    ) -> ProcessInfo:
        """Start FFmpeg process in a new session and begin monitoring it"""
        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=process_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,  # ffmpeg prompts on stdin otherwise
                start_new_session=(os.name != "nt"),
                creationflags=subprocess.CREATE_NEW_PROCESS_GROUP if os.name == "nt" else 0,
            )
        except OSError as e:
            raise ProcessExecutionError(f"Process start failed: {e}")

        try:
            psutil_process = psutil.Process(process.pid)
        except psutil.NoSuchProcess:
            # Exited before we could attach; communicate() still collects output
            psutil_process = None

        process_info = ProcessInfo(
            pid=process.pid,
            command=command,
            start_time=datetime.now(timezone.utc),
            state=ProcessState.RUNNING,
            timeout_sec=timeout_sec,
            process=process,
            psutil_process=psutil_process,
        )

        with self._process_lock:
            self._processes[process.pid] = process_info

        monitor_thread = threading.Thread(
            target=self._monitor_process,
            args=(process_info,),
            daemon=True,
            name=f"FFmpegMonitor-{process.pid}"
        )
        monitor_thread.start()
        process_info.monitor_thread = monitor_thread

        return process_info

    def _monitor_process(self, process_info: ProcessInfo):
        """Track peak resources and enforce the memory ceiling"""
        while not process_info.stop_event.is_set():
            if process_info.process.poll() is not None:
                break

            if process_info.psutil_process:
                try:
                    memory_mb = process_info.psutil_process.memory_info().rss / 1024 / 1024
                    cpu_percent = process_info.psutil_process.cpu_percent()

                    process_info.max_memory_mb = max(process_info.max_memory_mb, memory_mb)
                    process_info.max_cpu_percent = max(process_info.max_cpu_percent, cpu_percent)

                    if memory_mb > self.limits.max_memory_mb:
                        logger.error(
                            f"Process {process_info.pid} exceeded memory limit: "
                            f"{memory_mb:.1f}MB > {self.limits.max_memory_mb}MB"
                        )
                        process_info.error_message = f"Memory limit exceeded: {memory_mb:.1f}MB"
                        process_info.state = ProcessState.KILLED
                        self._kill_process_tree(process_info)
                        break
                except psutil.NoSuchProcess:
                    break
                except psutil.AccessDenied:
                    logger.warning(f"Access denied monitoring process {process_info.pid}")

            process_info.stop_event.wait(self.limits.monitor_interval_sec)

    def _wait_for_completion(self, process_info: ProcessInfo):
        """
        Wait for process completion with timeout handling

        Raises:
            ProcessTimeoutError: If process times out
            ProcessLimitError: If the monitor killed the process
            ProcessExecutionError: If process exits non-zero
        """
        try:
            stdout, stderr = process_info.process.communicate(timeout=process_info.timeout_sec)
        except subprocess.TimeoutExpired:
            logger.error(f"Process {process_info.pid} timed out after {process_info.timeout_sec}s")
            self._kill_process_tree(process_info)
            process_info.state = ProcessState.TIMEOUT
            raise ProcessTimeoutError(f"Process timed out after {process_info.timeout_sec} seconds")

        process_info.stdout = stdout.decode("utf-8", errors="ignore")
        process_info.stderr = stderr.decode("utf-8", errors="ignore")
        process_info.exit_code = process_info.process.returncode

        if process_info.state == ProcessState.KILLED:
            raise ProcessLimitError(process_info.error_message or "Process was killed")

        if process_info.exit_code == 0:
            process_info.state = ProcessState.COMPLETED
            return

        process_info.state = ProcessState.ERROR
        error_msg = process_info.stderr[-1000:]
        process_info.error_message = error_msg
        logger.error(f"Process {process_info.pid} failed with exit code {process_info.exit_code}")
        raise ProcessExecutionError(
            f"Process failed with exit code {process_info.exit_code}: {error_msg}",
            stderr=process_info.stderr,
        )

    def _kill_process_tree(self, process_info: ProcessInfo):
        """Terminate the process group, escalating to SIGKILL after the grace period"""
        logger.warning(f"Terminating process tree for PID {process_info.pid}")

        try:
            children = []
            if process_info.psutil_process and process_info.psutil_process.is_running():
                children = process_info.psutil_process.children(recursive=True)

            if os.name != "nt":
                os.killpg(process_info.pid, signal.SIGTERM)
            else:
                process_info.process.terminate()

            try:
                process_info.process.wait(timeout=self.limits.grace_period_sec)
            except subprocess.TimeoutExpired:
                if os.name != "nt":
                    os.killpg(process_info.pid, signal.SIGKILL)
                else:
                    process_info.process.kill()

            for child in children:
                try:
                    if child.is_running():
                        child.kill()
                except psutil.NoSuchProcess:
                    pass

        except (ProcessLookupError, psutil.NoSuchProcess):
            logger.debug(f"Process {process_info.pid} already terminated")

        process_info.state = ProcessState.KILLED

    def _cleanup_process(self, process_info: ProcessInfo):
        """Stop monitoring and drop the process from tracking"""
        process_info.stop_event.set()
        if process_info.monitor_thread and process_info.monitor_thread.is_alive():
            process_info.monitor_thread.join(timeout=2.0)

        if process_info.state == ProcessState.RUNNING and process_info.process.poll() is None:
            self._kill_process_tree(process_info)

        with self._process_lock:
            self._processes.pop(process_info.pid, None)

        duration = (datetime.now(timezone.utc) - process_info.start_time).total_seconds()
        logger.debug(
            f"Process {process_info.pid} finished: "
            f"duration={duration:.1f}s, peak_memory={process_info.max_memory_mb:.1f}MB, "
            f"peak_cpu={process_info.max_cpu_percent:.1f}%, state={process_info.state.value}"
        )

    def shutdown_all_processes(self):
        """Kill every tracked process"""
        with self._process_lock:
            processes_to_cleanup = list(self._processes.values())

        for process_info in processes_to_cleanup:
            if process_info.process.poll() is None:
                self._kill_process_tree(process_info)
            self._cleanup_process(process_info)

    def active_process_count(self) -> int:
        with self._process_lock:
            return len(self._processes)


_process_manager: Optional[FFmpegProcessManager] = None


def get_process_manager() -> FFmpegProcessManager:
    """Get or create the global process manager"""
    global _process_manager
    if _process_manager is None:
        from ..settings import get_settings
        _process_manager = FFmpegProcessManager(
            ProcessLimits.from_settings(get_settings().ffmpeg)
        )
    return _process_manager


def run_ffmpeg_command(
    command: List[str],
    timeout_sec: Optional[int] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    manager: Optional[FFmpegProcessManager] = None,
) -> Tuple[str, str]:
    """
    Run FFmpeg command with process management

    Args:
        command: FFmpeg command and arguments
        timeout_sec: Process timeout
        cwd: Working directory
        env: Extra environment variables
        manager: Process manager to use (defaults to the global one)

    Returns:
        Tuple of (stdout, stderr) as strings

    Raises:
        ProcessLimitError: If resource limits exceeded
        ProcessTimeoutError: If process times out
        ProcessExecutionError: If process fails
    """
    manager = manager or get_process_manager()
    with manager.managed_process(command, timeout_sec, cwd, env) as process_info:
        pass

    return process_info.stdout, process_info.stderr
