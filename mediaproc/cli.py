#!/usr/bin/env python3
"""Command line entry point for mediaproc.

Usage examples:
  - Process a downloaded file (prints the produced paths as JSON):
      mediaproc process downloads/clip.mp4

  - Force a re-encode even without watermark or split:
      mediaproc process downloads/clip.mov --force-reencode

  - Inspect a file:
      mediaproc probe downloads/clip.mp4
      mediaproc metadata downloads/clip.mp4

  - FFmpeg smoke checks:
      mediaproc check --json

Exit codes (check):
  0: all required checks passed
  2: warnings only
  3: at least one required check failed
"""

import argparse
import json
import re
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set

from mediaproc.__version__ import __version__
from mediaproc.core.config import config
from mediaproc.media.commands import resolve_font_path
from mediaproc.media.engine import MediaPostProcessor
from mediaproc.media.toolchain import FFmpegToolchain

REQUIRED_ENCODERS = ("libx264", "aac")
REQUIRED_FILTERS = ("scale", "pad", "setsar", "format")
OPTIONAL_FILTERS = ("tile", "fps")


@dataclass
class CheckResult:
    name: str
    ok: bool
    required: bool
    details: str = ""

    def as_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ok": self.ok,
            "required": self.required,
            "details": self.details,
        }


def _parse_encoders(encoders_text: str) -> Set[str]:
    encoders: Set[str] = set()
    for line in encoders_text.splitlines():
        parts = line.split()
        # Typical line: " V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC"
        if len(parts) >= 2 and re.match(r"^[A-Z.]{6}$", parts[0]):
            encoders.add(parts[1])
    return encoders


def _parse_filters(filters_text: str) -> Set[str]:
    filters: Set[str] = set()
    for line in filters_text.splitlines():
        parts = line.split()
        # Typical line: " ... drawtext          V->V       Draw text on top of video frames"
        if len(parts) >= 3 and re.match(r"^[A-Z.]{2,3}$", parts[0]) and "->" in parts[2]:
            filters.add(parts[1])
    return filters


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def _collect_results(toolchain: FFmpegToolchain) -> List[CheckResult]:
    results: List[CheckResult] = []

    ffmpeg_version = toolchain.run_raw(toolchain.ffmpeg, ["-version"], task_name="check")
    results.append(
        CheckResult(
            f"ffmpeg runnable ({toolchain.ffmpeg})",
            ffmpeg_version.success,
            True,
            _first_line(ffmpeg_version.output),
        )
    )
    ffprobe_version = toolchain.run_raw(toolchain.ffprobe, ["-version"], task_name="check")
    results.append(
        CheckResult(
            f"ffprobe runnable ({toolchain.ffprobe})",
            ffprobe_version.success,
            True,
            _first_line(ffprobe_version.output),
        )
    )
    if not ffmpeg_version.success:
        return results

    encoders = _parse_encoders(
        toolchain.run_raw(toolchain.ffmpeg, ["-hide_banner", "-encoders"], "check").output
    )
    for encoder in REQUIRED_ENCODERS:
        results.append(CheckResult(f"encoder {encoder}", encoder in encoders, True))

    filters = _parse_filters(
        toolchain.run_raw(toolchain.ffmpeg, ["-hide_banner", "-filters"], "check").output
    )
    for name in REQUIRED_FILTERS:
        results.append(CheckResult(f"filter {name}", name in filters, True))
    for name in OPTIONAL_FILTERS:
        results.append(CheckResult(f"filter {name}", name in filters, False))
    results.append(
        CheckResult("filter drawtext", "drawtext" in filters, bool(config.WATERMARK_ENABLED))
    )

    font_path = resolve_font_path()
    results.append(
        CheckResult(
            "watermark font",
            font_path is not None,
            bool(config.WATERMARK_ENABLED),
            font_path or "no font found (TOOLS_DIR/font.ttf or system default)",
        )
    )
    return results


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _fmt_result(r: CheckResult) -> str:
    tag = "OK" if r.ok else ("FAIL" if r.required else "WARN")
    return f"[{tag}] {r.name}"


def _run_check(json_out: bool) -> int:
    all_results = _collect_results(FFmpegToolchain())
    required_failed = [r for r in all_results if r.required and not r.ok]
    warnings = [r for r in all_results if (not r.required) and (not r.ok)]

    if json_out:
        payload = {
            "version": __version__,
            "watermark_enabled": config.WATERMARK_ENABLED,
            "results": [r.as_json() for r in all_results],
            "summary": {"required_failed": len(required_failed), "warnings": len(warnings)},
        }
        _print_json(payload)
    else:
        print("FFmpeg smoke checks")
        for r in all_results:
            print(_fmt_result(r))
            if r.details:
                print(f"    {r.details}")
        print(f"Summary: {len(required_failed)} required failure(s), {len(warnings)} warning(s)")

    if required_failed:
        return 3
    if warnings:
        return 2
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediaproc", description="Post-process downloaded media with ffmpeg"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Watermark, transcode, split and preview")
    process.add_argument("file", help="Media file to process")
    process.add_argument(
        "--force-reencode",
        action="store_true",
        help="Re-encode videos even if no watermark or split is required",
    )

    probe = subparsers.add_parser("probe", help="Print width, height and duration")
    probe.add_argument("file")

    metadata = subparsers.add_parser("metadata", help="Print structured video metadata")
    metadata.add_argument("file")

    thumbnail = subparsers.add_parser("thumbnail", help="Get or create the thumbnail of a video")
    thumbnail.add_argument("file")

    check = subparsers.add_parser("check", help="FFmpeg smoke checks")
    check.add_argument("--json", dest="json_out", action="store_true", help="JSON output")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config.validate_configuration()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.command == "check":
        return _run_check(bool(args.json_out))

    processor = MediaPostProcessor()

    if args.command == "process":
        outputs = processor.process_media(args.file, force_reencode=args.force_reencode)
        _print_json({"input": args.file, "outputs": [str(p) for p in outputs]})
        return 0

    if args.command == "probe":
        probe = processor.toolchain.probe(args.file)
        _print_json({"file": args.file, "probe": probe.model_dump() if probe else None})
        return 0 if probe is not None else 1

    if args.command == "metadata":
        metadata = processor.get_video_metadata(args.file)
        _print_json({"file": args.file, "metadata": metadata.model_dump() if metadata else None})
        return 0 if metadata is not None else 1

    thumbnail = processor.get_or_create_thumbnail(args.file)
    _print_json({"file": args.file, "thumbnail": str(thumbnail) if thumbnail else None})
    return 0 if thumbnail is not None else 1


if __name__ == "__main__":
    raise SystemExit(main())
