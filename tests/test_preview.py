from pathlib import Path

import pytest

from mediaproc.media.preview import PreviewGenerator, contact_sheet_path, plan_offsets


def test_plan_offsets_long_video():
    offsets = plan_offsets(1800.0)

    assert len(offsets) == 9
    assert offsets[0] == pytest.approx(90.0)
    # Last clip ends exactly at the end of the video
    assert offsets[-1] + 3 == pytest.approx(1800.0)
    steps = [b - a for a, b in zip(offsets, offsets[1:])]
    assert all(step == pytest.approx(1707.0 / 8) for step in steps)


def test_plan_offsets_minimum_start():
    offsets = plan_offsets(20.0)
    assert offsets[0] == pytest.approx(2.0)
    assert offsets[-1] == pytest.approx(17.0)


def test_plan_offsets_too_short():
    assert plan_offsets(5.0) == []
    assert plan_offsets(4.0) == []
    assert plan_offsets(0.0) == []


def _scratch_dirs(directory: Path):
    return [p for p in directory.iterdir() if p.name.startswith("preview_temp_")]


def test_make_preview_success(fake_toolchain, media_dir):
    source = media_dir / "movie.mp4"
    source.write_bytes(b"mp4")
    concat_lists = []
    original_run = fake_toolchain.run

    def run(args, task_name):
        if task_name == "preview_concat":
            list_file = Path(args[args.index("-i") + 1])
            concat_lists.append(list_file.read_text(encoding="utf-8"))
        return original_run(args, task_name)

    fake_toolchain.run = run

    preview = PreviewGenerator(fake_toolchain).make_preview(source, 1800.0)

    assert preview == media_dir / "movie_preview.mp4"
    assert preview.exists()
    assert contact_sheet_path(preview).exists()
    assert contact_sheet_path(preview).name == "movie_preview.mp4.thumb.jpg"
    assert source.exists()
    assert _scratch_dirs(media_dir) == []

    names = fake_toolchain.task_names
    assert names[:9] == [f"preview_segment_{i:03d}" for i in range(9)]
    assert names[9:] == ["preview_concat", "contact_sheet"]

    first_segment = fake_toolchain.args_for("preview_segment_000")
    assert first_segment[:4] == ["-ss", "90.00", "-t", "3"]
    assert first_segment[first_segment.index("-vf") + 1] == "scale=640:-2,setsar=1"

    concat = fake_toolchain.args_for("preview_concat")
    assert concat[:4] == ["-f", "concat", "-safe", "0"]
    assert concat[concat.index("-c") + 1] == "copy"

    lines = concat_lists[0].splitlines()
    assert len(lines) == 9
    assert all(line.startswith("file '") and line.endswith(".mp4'") for line in lines)

    sheet = fake_toolchain.args_for("contact_sheet")
    assert sheet[sheet.index("-vf") + 1] == "fps=1/3,tile=3x3,scale=320:-1"
    assert sheet[sheet.index("-frames:v") + 1] == "1"


def test_make_preview_stops_at_first_failed_segment(toolchain_factory, media_dir):
    toolchain = toolchain_factory(fail_tasks=["preview_segment_003"])
    source = media_dir / "movie.mp4"
    source.write_bytes(b"mp4")

    assert PreviewGenerator(toolchain).make_preview(source, 600.0) is None
    assert toolchain.task_names == [f"preview_segment_{i:03d}" for i in range(4)]
    assert not (media_dir / "movie_preview.mp4").exists()
    assert _scratch_dirs(media_dir) == []


def test_make_preview_concat_failure(toolchain_factory, media_dir):
    toolchain = toolchain_factory(fail_tasks=["preview_concat"], leave_partial=True)
    source = media_dir / "movie.mp4"
    source.write_bytes(b"mp4")

    assert PreviewGenerator(toolchain).make_preview(source, 600.0) is None
    assert not (media_dir / "movie_preview.mp4").exists()
    assert _scratch_dirs(media_dir) == []


def test_contact_sheet_failure_keeps_preview(toolchain_factory, media_dir):
    toolchain = toolchain_factory(fail_tasks=["contact_sheet"])
    source = media_dir / "movie.mp4"
    source.write_bytes(b"mp4")

    preview = PreviewGenerator(toolchain).make_preview(source, 600.0)

    assert preview is not None and preview.exists()
    assert not contact_sheet_path(preview).exists()


def test_make_preview_too_short(fake_toolchain, media_dir):
    source = media_dir / "short.mp4"
    source.write_bytes(b"mp4")
    assert PreviewGenerator(fake_toolchain).make_preview(source, 4.0) is None
    assert fake_toolchain.calls == []
