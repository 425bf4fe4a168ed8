"""Pytest configuration: project root on sys.path and a fake ffmpeg toolchain."""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

# Ensure the repository root (containing the `mediaproc` package) is on sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from mediaproc.core.config import config  # noqa: E402
from mediaproc.core.setup_logging import setup_default_logging  # noqa: E402
from mediaproc.media.commands import reset_font_cache  # noqa: E402
from mediaproc.media.invoker import CommandResult  # noqa: E402
from mediaproc.media.toolchain import MediaToolchain  # noqa: E402
from mediaproc.models.models import ProbeResult  # noqa: E402


class FakeToolchain(MediaToolchain):
    """
    Toolchain simulating ffmpeg: every successful command writes its output file
    (the last argument). ``%03d`` outputs produce ``parts`` numbered files.
    """

    def __init__(
        self,
        probe_result: Optional[ProbeResult] = None,
        fail_tasks: Sequence[str] = (),
        parts: int = 2,
        leave_partial: bool = False,
    ):
        self.probe_result = probe_result
        self.fail_tasks = set(fail_tasks)
        self.parts = parts
        self.leave_partial = leave_partial
        self.calls: List[Tuple[str, List[str]]] = []
        self.probed: List[str] = []

    def probe(self, path: str) -> Optional[ProbeResult]:
        self.probed.append(path)
        return self.probe_result

    def _write_outputs(self, output: str, content: bytes) -> None:
        if "%03d" in output:
            for index in range(self.parts):
                Path(output % index).write_bytes(content)
        else:
            Path(output).write_bytes(content)

    def run(self, args: Sequence[str], task_name: str) -> CommandResult:
        args = [str(arg) for arg in args]
        self.calls.append((task_name, args))
        if task_name in self.fail_tasks:
            if self.leave_partial:
                self._write_outputs(args[-1], b"")
            return CommandResult(
                1, "Error: simulated failure\n", warnings=["Error: simulated failure"]
            )
        self._write_outputs(args[-1], b"fake media data")
        return CommandResult(0, "frame=  100 fps=25\n")

    @property
    def task_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def args_for(self, task_name: str) -> List[str]:
        for name, args in self.calls:
            if name == task_name:
                return args
        raise KeyError(task_name)


@pytest.fixture(scope="session", autouse=True)
def console_only_logging():
    """Replace handlers attached at import time (file, syslog) with the console one."""
    setup_default_logging()
    yield
    for handler in list(logging.getLogger("mediaproc").handlers):
        handler.close()


@pytest.fixture
def toolchain_factory():
    """Return the FakeToolchain class so tests can build custom instances."""
    return FakeToolchain


@pytest.fixture
def fake_toolchain():
    return FakeToolchain(probe_result=ProbeResult(width=1280, height=720, duration=30.0))


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Pin the shared config to test values and forget any cached font."""
    monkeypatch.setattr(config, "WATERMARK_ENABLED", False)
    monkeypatch.setattr(config, "WATERMARK_TEXT", "Media Automation Framework")
    monkeypatch.setattr(config, "WATERMARK_FONT_SIZE_DIVISOR", 35)
    monkeypatch.setattr(config, "WATERMARK_OPACITY", 0.7)
    monkeypatch.setattr(config, "WATERMARK_FONT_PATH", "")
    monkeypatch.setattr(config, "SPLIT_THRESHOLD_MB", 1999)
    monkeypatch.setattr(config, "TOOLS_DIR", str(tmp_path / "tools"))
    monkeypatch.setattr(config, "FFMPEG_BINARY", "")
    monkeypatch.setattr(config, "FFPROBE_BINARY", "")
    monkeypatch.setattr(config, "LOCK_DIRECTORY", str(tmp_path / "locks"))
    monkeypatch.setattr(config, "LOCK_TIMEOUT_SECONDS", 5)
    reset_font_cache()
    yield config
    reset_font_cache()


@pytest.fixture
def media_dir(tmp_path):
    directory = tmp_path / "media"
    directory.mkdir()
    return directory
