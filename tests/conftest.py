import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from mp4concat.settings import get_settings


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Isolate every test from MP4CONCAT_* variables and cached settings"""
    for key in list(os.environ):
        if key.startswith("MP4CONCAT_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def segment_dir(tmp_path):
    """Directory of fake dashcam segments plus files the filter must skip"""
    directory = tmp_path / "camera"
    directory.mkdir()
    for minute in range(1, 6):
        (directory / f"20230101_08{minute:02d}.mp4").write_bytes(f"segment-{minute}".encode())
    (directory / "notes.txt").write_text("not a video")
    (directory / "thumb.jpg").write_bytes(b"\xff\xd8")
    (directory / "nested.mp4").mkdir()
    return directory


@pytest.fixture
def fake_ffmpeg(tmp_path):
    """
    Executable named ffmpeg that concatenates the files of a concat list by
    plain byte copy; enough to exercise the real process path without ffmpeg.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "ffmpeg"
    script.write_text(
        f"#!{sys.executable}\n"
        + textwrap.dedent(
            """
            import sys

            args = sys.argv[1:]
            list_path = args[args.index("-i") + 1]
            output = args[args.index("copy") + 1]
            with open(list_path, encoding="utf-8") as f:
                sources = [
                    line[len("file "):].strip()[1:-1].replace("'\\\\''", "'")
                    for line in f if line.startswith("file ")
                ]
            with open(output, "wb") as out:
                for source in sources:
                    with open(source, "rb") as src:
                        out.write(src.read())
            print("fake ffmpeg done", file=sys.stderr)
            """
        )
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def shell_tool(tmp_path):
    """Factory for small /bin/sh executables standing in for ffmpeg"""
    def _make(body: str, name: str = "ffmpeg") -> Path:
        tool_dir = tmp_path / "tools"
        tool_dir.mkdir(exist_ok=True)
        script = tool_dir / name
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        return script
    return _make
