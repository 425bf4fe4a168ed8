from mediaproc.media.filters import (
    GIF_VIDEO_FILTER,
    TRANSCODE_FILTER,
    build_drawtext_filter,
    chain,
    escape_drawtext_text,
)
from mediaproc.models.models import ProcessingPolicy


def test_transcode_filter():
    assert TRANSCODE_FILTER == (
        "scale='min(1920,iw)':-2,pad=ceil(iw/2)*2:ceil(ih/2)*2,setsar=1,format=yuv420p"
    )


def test_gif_filter_forces_even_dimensions():
    assert GIF_VIDEO_FILTER == "scale=trunc(iw/2)*2:trunc(ih/2)*2,format=yuv420p"


def test_drawtext_filter_uses_policy():
    policy = ProcessingPolicy(
        watermark_enabled=True,
        watermark_text="Media Automation Framework",
        watermark_font_size_divisor=35,
        watermark_opacity=0.7,
    )

    drawtext = build_drawtext_filter(policy, "/fonts/font.ttf")

    assert drawtext.startswith("drawtext=text='Media Automation Framework'")
    assert ":fontfile='/fonts/font.ttf'" in drawtext
    assert ":fontcolor=white@0.70" in drawtext
    assert ":fontsize=h/35" in drawtext
    assert ":x=w-tw-(h/50):y=h-th-(h/50)" in drawtext
    assert ":shadowcolor=black@0.6:shadowx=2:shadowy=2" in drawtext


def test_drawtext_filter_image_shadow_and_divisor():
    policy = ProcessingPolicy(watermark_font_size_divisor=40, watermark_opacity=0.5)
    drawtext = build_drawtext_filter(policy, "/fonts/font.ttf", shadow_offset=4)
    assert ":fontsize=h/40" in drawtext
    assert ":fontcolor=white@0.50" in drawtext
    assert ":shadowx=4:shadowy=4" in drawtext


def test_escape_drawtext_text():
    assert escape_drawtext_text("a:b") == "a\\:b"
    assert "'" not in escape_drawtext_text("it's")
    assert escape_drawtext_text("100%") == "100\\%"


def test_chain_skips_empty_filters():
    assert chain("scale=1:1", "", "format=yuv420p") == "scale=1:1,format=yuv420p"
    assert chain(GIF_VIDEO_FILTER, "") == GIF_VIDEO_FILTER
