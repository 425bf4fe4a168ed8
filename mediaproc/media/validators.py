# mediaproc/media/validators.py
"""
Header sniffing for files that ffprobe could not read.
"""

from pathlib import Path
from typing import Union

from mediaproc.core.setup_logging import get_logger

logger = get_logger(__name__)

HEADER_WINDOW = 32
SNIPPET_LENGTH = 100

ISO_BMFF_MARKERS = ("ftyp", "moov")
EBML_MAGIC = b"\x1a\x45\xdf\xa3"


def has_recognized_header(path: Union[str, Path]) -> bool:
    """
    Check whether the first bytes look like an MP4/MOV or Matroska/WebM container.

    Args:
        path: File to inspect

    Returns:
        bool: False for short (< 4 bytes), unreadable or unrecognized files
    """
    try:
        with open(path, "rb") as f:
            header = f.read(HEADER_WINDOW)
    except OSError as e:
        logger.warning(f"Could not read header of {path}: {e}")
        return False

    if len(header) < 4:
        return False

    text = header.decode("latin-1")
    if any(marker in text for marker in ISO_BMFF_MARKERS):
        return True
    return header[:4] == EBML_MAGIC


def read_header_snippet(path: Union[str, Path], length: int = SNIPPET_LENGTH) -> str:
    """
    Return the head of a file as printable text with newlines collapsed.

    Used to diagnose downloads that are really an HTML error page or JSON.
    """
    try:
        with open(path, "rb") as f:
            raw = f.read(length)
    except OSError:
        return "read_error"
    text = raw.decode("utf-8", errors="replace")
    return text.replace("\r", " ").replace("\n", " ").strip()
