from mediaproc.media.validators import has_recognized_header, read_header_snippet

MP4_HEADER = b"\x00\x00\x00\x20ftypisom\x00\x00\x02\x00isomiso2avc1mp41"
HTML_BODY = b"<!DOCTYPE html>\n<html><head><title>403 Forbidden</title></head>\n<body></body></html>"


def test_iso_bmff_header(media_dir):
    path = media_dir / "clip.mp4"
    path.write_bytes(MP4_HEADER + b"\x00" * 64)
    assert has_recognized_header(path)


def test_moov_atom_in_window(media_dir):
    path = media_dir / "clip.mov"
    path.write_bytes(b"\x00\x00\x01\x00moov" + b"\x00" * 40)
    assert has_recognized_header(path)


def test_ebml_magic(media_dir):
    path = media_dir / "clip.webm"
    path.write_bytes(b"\x1a\x45\xdf\xa3" + b"\x00" * 40)
    assert has_recognized_header(path)


def test_html_page_is_not_recognized(media_dir):
    path = media_dir / "clip.mp4"
    path.write_bytes(HTML_BODY)
    assert not has_recognized_header(path)


def test_marker_beyond_window_is_ignored(media_dir):
    path = media_dir / "clip.mp4"
    path.write_bytes(b"\x00" * 40 + b"ftyp")
    assert not has_recognized_header(path)


def test_short_and_missing_files(media_dir):
    short = media_dir / "short.mp4"
    short.write_bytes(b"ftv")
    assert not has_recognized_header(short)
    assert not has_recognized_header(media_dir / "missing.mp4")


def test_header_snippet_collapses_newlines(media_dir):
    path = media_dir / "clip.mp4"
    path.write_bytes(HTML_BODY)

    snippet = read_header_snippet(path)

    assert "\n" not in snippet
    assert snippet.startswith("<!DOCTYPE html> <html>")
    assert len(snippet) <= 100


def test_header_snippet_unreadable(media_dir):
    assert read_header_snippet(media_dir / "missing.mp4") == "read_error"
