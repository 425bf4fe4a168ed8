# mediaproc/media/engine.py
"""
Decision engine: classify a downloaded file and apply the right transforms.
"""

from pathlib import Path
from typing import Any, List, Optional, Union

from mediaproc.core.config import config
from mediaproc.core.setup_logging import LogContext, setup_default_logging
from mediaproc.media.preview import PreviewGenerator
from mediaproc.media.thumbnails import ThumbnailCache
from mediaproc.media.toolchain import FFmpegToolchain, MediaToolchain
from mediaproc.media.transforms import TransformExecutor
from mediaproc.media.validators import has_recognized_header, read_header_snippet
from mediaproc.models.models import (
    BLIND_PROBE_RESULT,
    MediaAsset,
    MediaKind,
    ProcessingPolicy,
    ProbeResult,
    VideoMetadata,
)

logger = setup_default_logging()

# Videos longer than this get a preview clip
PREVIEW_MIN_DURATION = 60.0


class MediaPostProcessor:
    """
    Post-process downloaded media files.

    Images are watermarked, GIFs converted to MP4, videos re-encoded and split
    when needed, with a preview clip and a thumbnail generated on the side.
    Media failures are never raised: the original file is returned instead.

    Args:
        toolchain: ffmpeg backend (defaults to the subprocess implementation)
        cfg: Configuration read on each call to resolve the processing policy
    """

    def __init__(self, toolchain: Optional[MediaToolchain] = None, cfg: Any = None):
        self.toolchain = toolchain or FFmpegToolchain()
        self.cfg = cfg or config
        self.transforms = TransformExecutor(self.toolchain)
        self.previews = PreviewGenerator(self.toolchain)
        self.thumbnails = ThumbnailCache(
            self.toolchain,
            lock_dir=self.cfg.LOCK_DIRECTORY,
            lock_timeout=self.cfg.LOCK_TIMEOUT_SECONDS,
        )

    def process_media(
        self,
        path: Union[str, Path, None],
        force_reencode: bool = False,
        policy: Optional[ProcessingPolicy] = None,
    ) -> List[Path]:
        """
        Process one media file.

        Args:
            path: File to process
            force_reencode: Transcode videos even when no watermark or split is needed
            policy: Settings snapshot (resolved from the configuration when omitted)

        Returns:
            List[Path]: Output files. The preview, when generated, comes first,
                followed by the main outputs in order. Empty when the input is
                missing or was deleted as corrupt.
        """
        if not path:
            return []
        source = Path(path)
        if not source.exists():
            logger.warning(f"Media file not found: {source}")
            return []

        if policy is None:
            policy = ProcessingPolicy.from_config(self.cfg)
        asset = MediaAsset.from_path(source)

        with LogContext(logger, media_file=source.name, operation="process_media"):
            try:
                if asset.kind == MediaKind.IMAGE:
                    return self._process_image(asset, policy)
                if asset.kind in (MediaKind.VIDEO, MediaKind.GIF):
                    return self._process_video(asset, force_reencode, policy)
                logger.debug(f"No processing for {source.name}, returned unchanged")
                return [source]
            except Exception as e:
                logger.exception(f"Unexpected error while processing {source.name}: {e}")
                return [source] if source.exists() else []

    def get_or_create_thumbnail(self, path: Union[str, Path]) -> Optional[Path]:
        """Return the cached thumbnail of a video, creating it if needed."""
        source = Path(path)
        if not source.exists():
            return None
        return self.thumbnails.get_or_create(source)

    def get_video_metadata(self, path: Union[str, Path]) -> Optional[VideoMetadata]:
        """Return width, height, duration and rotation of a video."""
        source = Path(path)
        if not source.exists():
            return None
        return self.toolchain.video_metadata(str(source))

    @staticmethod
    def _file_size(path: Path) -> int:
        return path.stat().st_size

    @staticmethod
    def _delete(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")

    def _process_image(self, asset: MediaAsset, policy: ProcessingPolicy) -> List[Path]:
        if not policy.watermark_enabled:
            return [asset.path]

        watermarked = self.transforms.watermark_image(asset.path, policy)
        if watermarked is None:
            return [asset.path]

        self._delete(asset.path)
        return [watermarked]

    def _probe_or_validate(self, source: Path) -> Optional[ProbeResult]:
        probe = self.toolchain.probe(str(source))
        if probe is not None and probe.is_valid:
            return probe

        if has_recognized_header(source):
            logger.warning(f"Probe failed but header is valid, blind processing: {source.name}")
            return BLIND_PROBE_RESULT

        size = self._file_size(source)
        snippet = read_header_snippet(source)
        logger.error(
            f"Corrupt or non-media file deleted: {source.name} ({size} bytes), "
            f"head: {snippet!r}"
        )
        self._delete(source)
        return None

    def _process_video(
        self, asset: MediaAsset, force_reencode: bool, policy: ProcessingPolicy
    ) -> List[Path]:
        source = asset.path
        probe = self._probe_or_validate(source)
        if probe is None:
            return []

        if asset.kind == MediaKind.GIF:
            converted = self.transforms.convert_gif(source, policy)
            if converted is None:
                return [source]
            self._delete(source)
            self._make_thumbnail(converted)
            return [converted]

        size = self._file_size(source)
        needs_split = size > policy.split_threshold_bytes
        logger.info(
            f"Video {source.name}: {probe.width}x{probe.height}, {probe.duration:.2f}s, "
            f"{size} bytes, split={needs_split}"
        )

        # The transcode consumes the source, so the preview is taken first
        preview: Optional[Path] = None
        if probe.duration > PREVIEW_MIN_DURATION:
            preview = self.previews.make_preview(source, probe.duration)

        outputs: List[Path] = [source]
        if needs_split or force_reencode or policy.watermark_enabled:
            produced = self.transforms.transcode(source, policy, split=needs_split)
            if produced:
                self._delete(source)
                outputs = produced

        self._make_thumbnail(outputs[0])

        if preview is not None:
            outputs.insert(0, preview)
        return outputs

    def _make_thumbnail(self, path: Path) -> None:
        try:
            self.thumbnails.get_or_create(path)
        except OSError as e:
            logger.warning(f"Thumbnail skipped for {path.name}: {e}")
