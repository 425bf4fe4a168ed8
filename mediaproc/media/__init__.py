"""ffmpeg orchestration: probing, validation, transforms, previews and thumbnails."""
