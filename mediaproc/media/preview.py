# mediaproc/media/preview.py
"""
Preview clip generation.

A preview is made of 9 clips of 3 seconds taken evenly across the video,
re-encoded at 640px wide and concatenated without re-encoding, plus a 3x3
contact sheet extracted from it.
"""

import shutil
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Union

from mediaproc.core.setup_logging import get_logger
from mediaproc.media.filters import CONTACT_SHEET_FILTER, PREVIEW_CLIP_FILTER
from mediaproc.media.toolchain import MediaToolchain

logger = get_logger(__name__)

CLIP_COUNT = 9
CLIP_SECONDS = 3
MIN_START_SECONDS = 2.0
START_RATIO = 0.05


def plan_offsets(duration: float) -> List[float]:
    """
    Compute the start offset of every preview clip.

    The first clip skips the first 5% of the video (at least 2 s) and the last
    one ends at the end of the video.

    Returns:
        List[float]: CLIP_COUNT offsets in seconds, empty when the video is too short
    """
    start = max(MIN_START_SECONDS, START_RATIO * duration)
    usable = duration - start - CLIP_SECONDS
    if usable <= 0:
        return []
    step = usable / (CLIP_COUNT - 1)
    return [start + i * step for i in range(CLIP_COUNT)]


def contact_sheet_path(preview: Path) -> Path:
    return preview.with_name(preview.name + ".thumb.jpg")


def _concat_line(path: Path) -> str:
    # concat demuxer quoting: close the quote, escape, reopen
    escaped = str(path.absolute()).replace("'", "'\\''")
    return f"file '{escaped}'"


class PreviewGenerator:
    """Build ``<base>_preview.mp4`` from a source video."""

    def __init__(self, toolchain: MediaToolchain):
        self.toolchain = toolchain

    def make_preview(self, path: Union[str, Path], duration: float) -> Optional[Path]:
        """
        Generate the preview of a video.

        Args:
            path: Source video (left untouched)
            duration: Source duration in seconds

        Returns:
            Optional[Path]: Preview file, or None if the video is too short or a
                clip or the concatenation fails
        """
        source = Path(path)
        offsets = plan_offsets(duration)
        if not offsets:
            logger.info(f"Video too short for a preview ({duration:.2f}s): {source.name}")
            return None

        scratch = Path(
            tempfile.mkdtemp(prefix=f"preview_temp_{int(time.time() * 1000)}_", dir=source.parent)
        )
        try:
            segments: List[Path] = []
            for index, offset in enumerate(offsets):
                segment = scratch / f"seg_{index:03d}.mp4"
                args = [
                    "-ss",
                    f"{offset:.2f}",
                    "-t",
                    str(CLIP_SECONDS),
                    "-i",
                    str(source),
                    "-vf",
                    PREVIEW_CLIP_FILTER,
                    "-c:v",
                    "libx264",
                    "-preset",
                    "veryfast",
                    "-c:a",
                    "aac",
                    str(segment),
                ]
                result = self.toolchain.run(args, task_name=f"preview_segment_{index:03d}")
                if not result.success or not segment.exists():
                    logger.warning(
                        f"Preview clip {index} failed at {offset:.2f}s for {source.name}, "
                        "preview discarded"
                    )
                    return None
                segments.append(segment)

            list_file = scratch / "list.txt"
            list_file.write_text(
                "\n".join(_concat_line(segment) for segment in segments) + "\n", encoding="utf-8"
            )

            preview = source.parent / f"{source.stem}_preview.mp4"
            args = ["-f", "concat", "-safe", "0", "-i", str(list_file), "-c", "copy", str(preview)]
            result = self.toolchain.run(args, task_name="preview_concat")
            if not result.success or not preview.exists():
                logger.warning(f"Preview concatenation failed for {source.name}")
                if preview.exists():
                    preview.unlink()
                return None

            self.make_contact_sheet(preview)
            logger.info(f"Preview generated: {preview.name}")
            return preview
        finally:
            try:
                shutil.rmtree(scratch)
            except OSError as e:
                logger.warning(f"Could not remove preview scratch directory {scratch}: {e}")

    def make_contact_sheet(self, preview: Path) -> Optional[Path]:
        """Best-effort 3x3 mosaic of the preview (``<preview>.thumb.jpg``)."""
        sheet = contact_sheet_path(preview)
        args = [
            "-i",
            str(preview),
            "-vf",
            CONTACT_SHEET_FILTER,
            "-frames:v",
            "1",
            "-q:v",
            "3",
            str(sheet),
        ]
        result = self.toolchain.run(args, task_name="contact_sheet")
        if result.success and sheet.exists():
            return sheet

        logger.warning(f"Contact sheet generation failed for {preview.name}")
        if sheet.exists():
            sheet.unlink()
        return None
