# mediaproc/media/thumbnails.py
"""
Thumbnail cache: one JPEG frame per video, stored as ``<file>.thumb.jpg``.

Generation is serialized per thumbnail with a file lock so that two processes
asking for the same thumbnail invoke ffmpeg once.
"""

import hashlib
from pathlib import Path
from typing import Optional, Union

from filelock import FileLock, Timeout

from mediaproc.core.config import config
from mediaproc.core.setup_logging import get_logger
from mediaproc.media.filters import THUMBNAIL_FILTER
from mediaproc.media.toolchain import MediaToolchain

logger = get_logger(__name__)

THUMBNAIL_SUFFIX = ".thumb.jpg"
THUMBNAIL_SEEK = "00:00:05"


def thumbnail_path_for(path: Union[str, Path]) -> Path:
    source = Path(path)
    return source.with_name(source.name + THUMBNAIL_SUFFIX)


def _is_usable(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


class ThumbnailCache:
    """
    Lazily create and reuse video thumbnails.

    Args:
        toolchain: Backend used to run ffmpeg
        lock_dir: Directory holding the lock files (defaults to LOCK_DIRECTORY)
        lock_timeout: Seconds to wait for a concurrent generation (defaults to LOCK_TIMEOUT_SECONDS)
    """

    def __init__(
        self,
        toolchain: MediaToolchain,
        lock_dir: Optional[Union[str, Path]] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.toolchain = toolchain
        self.lock_dir = Path(lock_dir if lock_dir is not None else config.LOCK_DIRECTORY)
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else config.LOCK_TIMEOUT_SECONDS
        )

    def _get_lock(self, thumbnail: Path) -> FileLock:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        digest = hashlib.sha1(str(thumbnail.absolute()).encode("utf-8")).hexdigest()
        return FileLock(self.lock_dir / f"thumb_{digest}.lock", timeout=self.lock_timeout)

    def get_or_create(self, path: Union[str, Path]) -> Optional[Path]:
        """
        Return the thumbnail of a video, creating it on first use.

        Args:
            path: Video file

        Returns:
            Optional[Path]: Thumbnail path, or None if it could not be created
        """
        thumbnail = thumbnail_path_for(path)
        if _is_usable(thumbnail):
            return thumbnail

        try:
            with self._get_lock(thumbnail):
                # Another process may have finished while we waited
                if _is_usable(thumbnail):
                    return thumbnail
                return self._generate(Path(path), thumbnail)
        except Timeout:
            logger.warning(
                f"Could not acquire thumbnail lock for {thumbnail.name} "
                f"(timeout after {self.lock_timeout}s)"
            )
            return None
        except OSError as e:
            logger.warning(f"Thumbnail lock unavailable for {thumbnail.name}: {e}")
            return None

    def _generate(self, source: Path, thumbnail: Path) -> Optional[Path]:
        args = [
            "-i",
            str(source),
            "-ss",
            THUMBNAIL_SEEK,
            "-vframes",
            "1",
            "-q:v",
            "5",
            "-vf",
            THUMBNAIL_FILTER,
            str(thumbnail),
        ]
        result = self.toolchain.run(args, task_name="thumbnail")
        if result.success and _is_usable(thumbnail):
            logger.info(f"Thumbnail created: {thumbnail.name}")
            return thumbnail

        logger.warning(f"Thumbnail generation failed for {source.name} (exit {result.returncode})")
        if thumbnail.exists():
            try:
                thumbnail.unlink()
            except OSError as e:
                logger.warning(f"Could not remove empty thumbnail {thumbnail}: {e}")
        return None
