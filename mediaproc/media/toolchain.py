# mediaproc/media/toolchain.py
"""
Toolchain interface used by the decision engine.

The engine only talks to a ``MediaToolchain`` so that tests (or another
backend) can replace the ffmpeg subprocesses.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from mediaproc.core.config import config
from mediaproc.media.commands import resolve_ffmpeg_command, resolve_ffprobe_command
from mediaproc.media.invoker import CommandResult, run_command
from mediaproc.media.prober import probe_media, probe_video_metadata
from mediaproc.models.models import ProbeResult, VideoMetadata

# Arguments put in front of every ffmpeg invocation
FFMPEG_BASE_ARGS = ["-hide_banner", "-nostdin", "-y"]


class MediaToolchain(ABC):
    """Abstract access to the probe and transcoding binaries."""

    @abstractmethod
    def probe(self, path: str) -> Optional[ProbeResult]:
        """
        Probe the first video stream of a file.

        Args:
            path: Media file

        Returns:
            Optional[ProbeResult]: None when the file cannot be probed
        """
        pass

    @abstractmethod
    def run(self, args: Sequence[str], task_name: str) -> CommandResult:
        """
        Run the transcoder with the given arguments (binary name excluded).

        Args:
            args: ffmpeg arguments
            task_name: Label used in log lines

        Returns:
            CommandResult: Exit code and output of the invocation
        """
        pass

    def video_metadata(self, path: str) -> Optional[VideoMetadata]:
        """Structured metadata; defaults to the basic probe with rotation 0."""
        probe = self.probe(path)
        if probe is None:
            return None
        return VideoMetadata(
            width=probe.width, height=probe.height, duration=probe.duration, rotation=0
        )


class FFmpegToolchain(MediaToolchain):
    """Subprocess implementation driving ffmpeg and ffprobe."""

    def __init__(
        self,
        ffmpeg: Optional[str] = None,
        ffprobe: Optional[str] = None,
        timeout: Optional[float] = None,
        probe_timeout: Optional[float] = None,
    ):
        self.ffmpeg = ffmpeg or resolve_ffmpeg_command()
        self.ffprobe = ffprobe or resolve_ffprobe_command()
        self.timeout = timeout if timeout is not None else config.EXTERNAL_COMMAND_TIMEOUT_SECONDS
        self.probe_timeout = (
            probe_timeout if probe_timeout is not None else config.PROBE_TIMEOUT_SECONDS
        )

    def build_command(self, args: Sequence[str]) -> List[str]:
        return [self.ffmpeg] + FFMPEG_BASE_ARGS + [str(arg) for arg in args]

    def probe(self, path: str) -> Optional[ProbeResult]:
        return probe_media(path, ffprobe=self.ffprobe, timeout=self.probe_timeout)

    def run(self, args: Sequence[str], task_name: str) -> CommandResult:
        return run_command(self.build_command(args), task_name=task_name, timeout=self.timeout)

    def video_metadata(self, path: str) -> Optional[VideoMetadata]:
        return probe_video_metadata(path, ffprobe=self.ffprobe, timeout=self.probe_timeout)

    def run_raw(self, binary: str, args: Sequence[str], task_name: str) -> CommandResult:
        """Run ``binary`` without the base arguments (used by the smoke checks)."""
        return run_command(
            [binary] + [str(arg) for arg in args], task_name=task_name, timeout=self.probe_timeout
        )
