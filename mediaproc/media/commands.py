# mediaproc/media/commands.py
"""
Platform-specific lookup of the ffmpeg/ffprobe binaries and of the watermark font.
"""

import os
import platform
import stat
import threading
from pathlib import Path
from typing import List, Optional

from mediaproc.core.config import config
from mediaproc.core.setup_logging import get_logger

logger = get_logger(__name__)

# Font path cache: set once a usable font file is found, never invalidated
_FONT_PATH_CACHE: Optional[str] = None
_FONT_PATH_LOCK = threading.Lock()

_PLATFORM_FONTS = {
    "Windows": ["C:/Windows/Fonts/arial.ttf"],
    "Linux": [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    ],
    "Darwin": ["/Library/Fonts/Arial.ttf", "/System/Library/Fonts/Supplemental/Arial.ttf"],
}


def is_windows() -> bool:
    return platform.system() == "Windows"


def make_executable(path: Path) -> None:
    """Set the executable bit on a tool-local binary (no-op on Windows)."""
    if is_windows() or not path.exists():
        return
    if os.access(path, os.X_OK):
        return
    try:
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        logger.warning(f"Could not apply chmod +x on {path.name}: {e}")


def _resolve_tool(name: str, explicit: str, tools_dir: Optional[str]) -> str:
    if explicit:
        return explicit

    tools_path = Path(tools_dir if tools_dir is not None else config.TOOLS_DIR)
    if is_windows():
        return str((tools_path / f"{name}.exe").absolute())

    local_binary = tools_path / name
    if local_binary.exists():
        make_executable(local_binary)
        return str(local_binary.absolute())

    # Fallback on the system binary
    return name


def resolve_ffmpeg_command(tools_dir: Optional[str] = None) -> str:
    """
    Return the ffmpeg command to execute.

    Order: FFMPEG_BINARY, then TOOLS_DIR/ffmpeg(.exe), then ``ffmpeg`` on PATH.
    """
    return _resolve_tool("ffmpeg", config.FFMPEG_BINARY, tools_dir)


def resolve_ffprobe_command(tools_dir: Optional[str] = None) -> str:
    """Return the ffprobe command to execute, resolved like ffmpeg."""
    return _resolve_tool("ffprobe", config.FFPROBE_BINARY, tools_dir)


def escape_font_path(path: str) -> str:
    """Make a font path safe for the ``fontfile`` option of the drawtext filter."""
    if is_windows():
        return path.replace("\\", "/").replace(":", "\\:")
    return path


def _font_candidates(tools_dir: Optional[str]) -> List[Path]:
    candidates: List[Path] = []
    if config.WATERMARK_FONT_PATH:
        candidates.append(Path(config.WATERMARK_FONT_PATH))
    tools_path = Path(tools_dir if tools_dir is not None else config.TOOLS_DIR)
    candidates.append(tools_path / "font.ttf")
    for font in _PLATFORM_FONTS.get(platform.system(), []):
        candidates.append(Path(font))
    return candidates


def resolve_font_path(tools_dir: Optional[str] = None) -> Optional[str]:
    """
    Locate a font usable by drawtext.

    The first hit is cached for the process lifetime. A miss is not cached so a
    font dropped into the tools directory later is still picked up.

    Returns:
        Optional[str]: Escaped absolute font path, or None (watermarking disabled)
    """
    global _FONT_PATH_CACHE

    if _FONT_PATH_CACHE is not None:
        return _FONT_PATH_CACHE

    with _FONT_PATH_LOCK:
        if _FONT_PATH_CACHE is not None:
            return _FONT_PATH_CACHE

        for candidate in _font_candidates(tools_dir):
            if candidate.is_file():
                _FONT_PATH_CACHE = escape_font_path(str(candidate.absolute()))
                logger.info(f"Watermark font resolved: {candidate}")
                return _FONT_PATH_CACHE

    logger.debug("No watermark font found, watermarking disabled")
    return None


def reset_font_cache() -> None:
    """Forget the cached font path."""
    global _FONT_PATH_CACHE
    with _FONT_PATH_LOCK:
        _FONT_PATH_CACHE = None
