# mediaproc/media/filters.py
"""
Filtergraph strings for the transform commands.
"""

from mediaproc.models.models import ProcessingPolicy

MAX_OUTPUT_WIDTH = 1920

# Even dimensions and 4:2:0 chroma, required by libx264 for GIF sources
GIF_VIDEO_FILTER = "scale=trunc(iw/2)*2:trunc(ih/2)*2,format=yuv420p"

TRANSCODE_FILTER = (
    f"scale='min({MAX_OUTPUT_WIDTH},iw)':-2,"
    "pad=ceil(iw/2)*2:ceil(ih/2)*2,setsar=1,format=yuv420p"
)

PREVIEW_CLIP_FILTER = "scale=640:-2,setsar=1"
CONTACT_SHEET_FILTER = "fps=1/3,tile=3x3,scale=320:-1"
THUMBNAIL_FILTER = "scale=320:-1"

VIDEO_SHADOW_OFFSET = 2
IMAGE_SHADOW_OFFSET = 4


def escape_drawtext_text(text: str) -> str:
    """Escape characters that end or split a quoted drawtext ``text`` value."""
    escaped = text.replace("\\", "\\\\")
    escaped = escaped.replace("'", "’")
    escaped = escaped.replace(":", "\\:")
    escaped = escaped.replace("%", "\\%")
    return escaped


def build_drawtext_filter(
    policy: ProcessingPolicy, font_path: str, shadow_offset: int = VIDEO_SHADOW_OFFSET
) -> str:
    """
    Build the bottom-right watermark drawtext filter.

    Args:
        policy: Watermark text, size divisor and opacity
        font_path: Font file, already escaped for the filter syntax
        shadow_offset: Shadow offset in pixels

    Returns:
        str: drawtext filter expression
    """
    return (
        f"drawtext=text='{escape_drawtext_text(policy.watermark_text)}'"
        f":fontfile='{font_path}'"
        f":fontcolor=white@{policy.watermark_opacity:.2f}"
        f":fontsize=h/{policy.watermark_font_size_divisor}"
        ":x=w-tw-(h/50):y=h-th-(h/50)"
        ":shadowcolor=black@0.6"
        f":shadowx={shadow_offset}:shadowy={shadow_offset}"
    )


def chain(*filters: str) -> str:
    """Join non-empty filters into one filter chain."""
    return ",".join(f for f in filters if f)
