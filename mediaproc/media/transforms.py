# mediaproc/media/transforms.py
"""
ffmpeg transforms: image watermark, GIF to MP4, transcode and split.

The exit code is the only success signal. When a command fails its partial
outputs are removed and the caller keeps the original file.
"""

import re
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from mediaproc.core.setup_logging import get_logger
from mediaproc.media.commands import resolve_font_path
from mediaproc.media.filters import (
    GIF_VIDEO_FILTER,
    IMAGE_SHADOW_OFFSET,
    TRANSCODE_FILTER,
    VIDEO_SHADOW_OFFSET,
    build_drawtext_filter,
    chain,
)
from mediaproc.media.toolchain import MediaToolchain
from mediaproc.models.models import ProcessingPolicy

logger = get_logger(__name__)

SEGMENT_SECONDS = 900
PART_PATTERN = "_part%03d.mp4"


def _millis() -> int:
    return int(time.time() * 1000)


def _remove_quietly(path: Path) -> None:
    try:
        if path.exists():
            path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove partial output {path}: {e}")


def _part_pattern(base: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(base)}_part\d{{3}}\.mp4$")


def _signature(path: Path) -> Tuple[int, int]:
    stat = path.stat()
    return stat.st_mtime_ns, stat.st_size


def list_parts(directory: Path, base: str) -> List[Path]:
    """Return the ``<base>_partNNN.mp4`` files of a directory sorted by name."""
    pattern = _part_pattern(base)
    return sorted(
        (entry for entry in directory.iterdir() if entry.is_file() and pattern.match(entry.name)),
        key=lambda entry: entry.name,
    )


def _snapshot_parts(directory: Path, base: str) -> Dict[Path, Tuple[int, int]]:
    return {part: _signature(part) for part in list_parts(directory, base)}


def _written_parts(directory: Path, base: str, before: Dict[Path, Tuple[int, int]]) -> List[Path]:
    # Parts left by an earlier run count only if this run rewrote them
    return [
        part
        for part in list_parts(directory, base)
        if part not in before or _signature(part) != before[part]
    ]


class TransformExecutor:
    """
    Build and run the transform commands for one media file.

    Args:
        toolchain: Backend used to run ffmpeg
        font_resolver: Callable returning the escaped font path or None
    """

    def __init__(
        self,
        toolchain: MediaToolchain,
        font_resolver: Callable[[], Optional[str]] = resolve_font_path,
    ):
        self.toolchain = toolchain
        self.font_resolver = font_resolver

    def _watermark_filter(self, policy: ProcessingPolicy, shadow_offset: int) -> str:
        if not policy.watermark_enabled:
            return ""
        font_path = self.font_resolver()
        if font_path is None:
            logger.warning("Watermark enabled but no font available, skipping watermark")
            return ""
        return build_drawtext_filter(policy, font_path, shadow_offset=shadow_offset)

    def watermark_image(self, path: Union[str, Path], policy: ProcessingPolicy) -> Optional[Path]:
        """
        Burn the watermark text into an image.

        Returns:
            Optional[Path]: ``wm_<millis><ext>`` next to the input, or None when
                no font is available or ffmpeg fails
        """
        source = Path(path)
        font_path = self.font_resolver()
        if font_path is None:
            logger.warning(f"No font available, image left unwatermarked: {source.name}")
            return None

        output = source.parent / f"wm_{_millis()}{source.suffix}"

        args = [
            "-i",
            str(source),
            "-vf",
            build_drawtext_filter(policy, font_path, shadow_offset=IMAGE_SHADOW_OFFSET),
            str(output),
        ]
        result = self.toolchain.run(args, task_name="watermark_image")
        if result.success and output.exists():
            logger.info(f"Image watermarked: {source.name} -> {output.name}")
            return output

        logger.error(f"Image watermark failed for {source.name} (exit {result.returncode})")
        _remove_quietly(output)
        return None

    def convert_gif(self, path: Union[str, Path], policy: ProcessingPolicy) -> Optional[Path]:
        """
        Convert an animated GIF into an H.264 MP4 (``<base>_v.mp4``).

        Returns:
            Optional[Path]: The MP4 path, or None on failure
        """
        source = Path(path)
        output = source.parent / f"{source.stem}_v.mp4"
        video_filter = chain(GIF_VIDEO_FILTER, self._watermark_filter(policy, VIDEO_SHADOW_OFFSET))

        args = [
            "-i",
            str(source),
            "-vf",
            video_filter,
            "-c:v",
            "libx264",
            "-preset",
            "slow",
            "-crf",
            "22",
            "-movflags",
            "+faststart",
            str(output),
        ]
        result = self.toolchain.run(args, task_name="convert_gif")
        if result.success and output.exists():
            logger.info(f"GIF converted: {source.name} -> {output.name}")
            return output

        logger.error(f"GIF conversion failed for {source.name} (exit {result.returncode})")
        _remove_quietly(output)
        return None

    def transcode(
        self, path: Union[str, Path], policy: ProcessingPolicy, split: bool = False
    ) -> List[Path]:
        """
        Re-encode a video, optionally cutting it into 900 s parts.

        Args:
            path: Source video
            policy: Watermark settings
            split: Write ``<base>_part%03d.mp4`` segments instead of ``<base>_processed.mp4``

        Returns:
            List[Path]: Produced files in order, empty on failure
        """
        source = Path(path)
        base = source.stem
        video_filter = chain(TRANSCODE_FILTER, self._watermark_filter(policy, VIDEO_SHADOW_OFFSET))

        args = [
            "-i",
            str(source),
            "-vf",
            video_filter,
            "-c:v",
            "libx264",
            "-preset",
            "veryfast",
            "-crf",
            "23",
            "-c:a",
            "aac",
            "-map_metadata",
            "-1",
            "-movflags",
            "+faststart",
        ]

        if split:
            args += [
                "-f",
                "segment",
                "-segment_time",
                str(SEGMENT_SECONDS),
                "-reset_timestamps",
                "1",
                str(source.parent / f"{base}{PART_PATTERN}"),
            ]
            before = _snapshot_parts(source.parent, base)
            result = self.toolchain.run(args, task_name="transcode_split")
            parts = _written_parts(source.parent, base, before)
            if result.success and parts:
                logger.info(f"Video split into {len(parts)} part(s): {source.name}")
                return parts
            logger.error(
                f"Split failed for {source.name} (exit {result.returncode}):\n{result.tail()}"
            )
            for part in parts:
                _remove_quietly(part)
            return []

        output = source.parent / f"{base}_processed.mp4"
        args.append(str(output))
        result = self.toolchain.run(args, task_name="transcode")
        if result.success and output.exists():
            logger.info(f"Video transcoded: {source.name} -> {output.name}")
            return [output]

        logger.error(
            f"Transcode failed for {source.name} (exit {result.returncode}):\n{result.tail()}"
        )
        _remove_quietly(output)
        return []
