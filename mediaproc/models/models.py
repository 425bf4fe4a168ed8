# mediaproc/models/models.py
"""
Data models for mediaproc.
Defines Pydantic models for probe results, processing policy and media assets.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png"})
GIF_EXTENSIONS = frozenset({"gif"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "m4v", "webm", "mkv"})


class MediaKind(str, Enum):
    """Kind of media inferred from the file extension."""

    IMAGE = "image"
    VIDEO = "video"
    GIF = "gif"
    OTHER = "other"

    @classmethod
    def from_path(cls, path: Any) -> "MediaKind":
        extension = Path(str(path)).suffix.lstrip(".").lower()
        if extension in IMAGE_EXTENSIONS:
            return cls.IMAGE
        if extension in GIF_EXTENSIONS:
            return cls.GIF
        if extension in VIDEO_EXTENSIONS:
            return cls.VIDEO
        return cls.OTHER


class MediaAsset(BaseModel):
    """
    A file handed over by the caller, with its inferred kind.

    Attributes:
        path: Location of the file on disk
        kind: Media kind derived from the extension
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Location of the media file on disk")
    kind: MediaKind = Field(..., description="Media kind derived from the file extension")

    @classmethod
    def from_path(cls, path: Any) -> "MediaAsset":
        return cls(path=Path(str(path)), kind=MediaKind.from_path(path))


class ProbeResult(BaseModel):
    """
    Dimensions and duration reported by the probe binary.

    A width or height of 0 means the stream could not be probed.
    """

    width: int = Field(0, ge=0, description="Video width in pixels")
    height: int = Field(0, ge=0, description="Video height in pixels")
    duration: float = Field(0.0, ge=0.0, description="Duration in seconds (0 when unknown)")

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0


# Metadata assumed for files whose header looks valid but cannot be probed
BLIND_PROBE_RESULT = ProbeResult(width=1920, height=1080, duration=0.0)


class VideoMetadata(BaseModel):
    """Structured metadata extracted from JSON probe output."""

    width: int = Field(0, ge=0, description="Video width in pixels")
    height: int = Field(0, ge=0, description="Video height in pixels")
    duration: float = Field(0.0, ge=0.0, description="Duration in seconds")
    rotation: int = Field(0, description="Display rotation in degrees (0, 90, 180 or 270)")
    video_codec: Optional[str] = Field(None, description="Codec of the first video stream")
    has_audio: bool = Field(False, description="Whether an audio stream is present")


class ProcessingPolicy(BaseModel):
    """
    Read-only snapshot of the processing settings for a single call.

    Attributes:
        watermark_enabled: Burn the watermark text into images and videos
        watermark_text: Text drawn in the bottom-right corner
        watermark_font_size_divisor: Font size is output height divided by this value
        watermark_opacity: Alpha of the watermark text
        split_threshold_bytes: Videos strictly larger than this are split into parts
    """

    model_config = ConfigDict(frozen=True)

    watermark_enabled: bool = Field(False, description="Burn the watermark into outputs")
    watermark_text: str = Field(
        "Media Automation Framework", description="Text drawn in the bottom-right corner"
    )
    watermark_font_size_divisor: int = Field(
        35, ge=1, description="Font size is output height divided by this value"
    )
    watermark_opacity: float = Field(0.7, ge=0.0, le=1.0, description="Alpha of the text")
    split_threshold_bytes: int = Field(
        1999 * 1024 * 1024, gt=0, description="Videos larger than this are split"
    )

    @classmethod
    def from_config(cls, cfg: Any) -> "ProcessingPolicy":
        """
        Resolve a policy snapshot from the live configuration.

        Args:
            cfg: Config instance (re-read on every call for hot reload)

        Returns:
            ProcessingPolicy: Immutable snapshot
        """
        return cls(
            watermark_enabled=cfg.WATERMARK_ENABLED,
            watermark_text=cfg.WATERMARK_TEXT,
            watermark_font_size_divisor=cfg.WATERMARK_FONT_SIZE_DIVISOR,
            watermark_opacity=cfg.WATERMARK_OPACITY,
            split_threshold_bytes=cfg.split_threshold_bytes,
        )
