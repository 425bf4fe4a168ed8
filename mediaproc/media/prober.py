# mediaproc/media/prober.py
"""
Extraction of width, height and duration with ffprobe.
"""

import json
from typing import Any, Dict, List, Optional

from mediaproc.core.setup_logging import get_logger
from mediaproc.media.invoker import RC_NOT_FOUND, RC_TIMEOUT, run_command
from mediaproc.models.models import ProbeResult, VideoMetadata

logger = get_logger(__name__)


def build_probe_command(ffprobe: str, path: str) -> List[str]:
    return [
        ffprobe,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height,duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        path,
    ]


def parse_probe_output(text: str) -> ProbeResult:
    """
    Parse the unlabeled ``width/height/duration`` lines printed by ffprobe.

    The first line containing a dot is the duration, the first two integer
    lines are width then height. ``N/A`` and other unparseable lines are skipped.
    This relies on ffprobe printing the fields in a stable order.
    """
    width = 0
    height = 0
    duration = 0.0
    duration_found = False
    integers: List[int] = []

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if "." in line:
            if duration_found:
                continue
            try:
                duration = max(0.0, float(line))
                duration_found = True
            except ValueError:
                pass
            continue
        if len(integers) < 2:
            try:
                integers.append(int(line))
            except ValueError:
                continue

    if integers:
        width = max(0, integers[0])
    if len(integers) > 1:
        height = max(0, integers[1])

    return ProbeResult(width=width, height=height, duration=duration)


def probe_media(
    path: str, ffprobe: str = "ffprobe", timeout: Optional[float] = None
) -> Optional[ProbeResult]:
    """
    Probe the first video stream of a file.

    Args:
        path: Media file to probe
        ffprobe: Probe command
        timeout: Maximum probe duration in seconds

    Returns:
        Optional[ProbeResult]: None when ffprobe cannot run, times out,
            or reports neither width nor height
    """
    result = run_command(build_probe_command(ffprobe, path), task_name="ffprobe", timeout=timeout)
    if result.timed_out or result.returncode in (RC_TIMEOUT, RC_NOT_FOUND):
        return None

    probe = parse_probe_output(result.output)
    if probe.width == 0 and probe.height == 0:
        logger.debug(f"Probe found no dimensions for {path}")
        return None
    return probe


def _parse_rotation(stream: Dict[str, Any]) -> int:
    rotation: Optional[float] = None

    tags = stream.get("tags") or {}
    if "rotate" in tags:
        try:
            rotation = float(tags["rotate"])
        except (TypeError, ValueError):
            rotation = None

    if rotation is None:
        for side_data in stream.get("side_data_list") or []:
            if "rotation" in side_data:
                try:
                    rotation = float(side_data["rotation"])
                except (TypeError, ValueError):
                    continue
                break

    if rotation is None:
        return 0
    # Display matrix rotation is counter-clockwise and may be negative
    return int(round(rotation / 90.0)) * 90 % 360


def _parse_float(value: Any) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def parse_metadata_json(text: str) -> Optional[VideoMetadata]:
    """Build VideoMetadata from ``ffprobe -print_format json`` output."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(data, dict):
        return None

    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    if video is None:
        return None

    duration = _parse_float(video.get("duration"))
    if duration == 0.0:
        duration = _parse_float((data.get("format") or {}).get("duration"))

    return VideoMetadata(
        width=max(0, int(video.get("width") or 0)),
        height=max(0, int(video.get("height") or 0)),
        duration=duration,
        rotation=_parse_rotation(video),
        video_codec=video.get("codec_name"),
        has_audio=any(s.get("codec_type") == "audio" for s in streams),
    )


def probe_video_metadata(
    path: str, ffprobe: str = "ffprobe", timeout: Optional[float] = None
) -> Optional[VideoMetadata]:
    """
    Read structured metadata (including rotation) of a video file.

    Returns:
        Optional[VideoMetadata]: None on probe failure or when no video stream exists
    """
    cmd = [
        ffprobe,
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        path,
    ]
    result = run_command(cmd, task_name="ffprobe", timeout=timeout)
    if not result.success:
        return None
    return parse_metadata_json(result.output)
