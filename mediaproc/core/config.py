# mediaproc/core/config.py
"""
Configuration module for mediaproc.
Handles environment variables, watermark/split policy settings and tool locations.

Values are re-read by ``reload_config_from_env`` so that a running process
picks up edits of the .env file without restart.
"""

import os
import sys
from typing import Optional

from dotenv import load_dotenv

# Module-level global state - these persist across imports
_CONFIG_ENV_LOADED = False
_CONFIG_INSTANCE = None


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse a boolean from a string with a fallback default."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _parse_int(
    value: Optional[str],
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Parse an integer from a string with optional bounds and fallback default."""
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except (TypeError, ValueError):
        return default
    if min_value is not None:
        parsed = max(min_value, parsed)
    if max_value is not None:
        parsed = min(max_value, parsed)
    return parsed


def _parse_float(
    value: Optional[str],
    default: float,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    """Parse a float from a string with optional bounds and fallback default."""
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except (TypeError, ValueError):
        return default
    if min_value is not None:
        parsed = max(min_value, parsed)
    if max_value is not None:
        parsed = min(max_value, parsed)
    return parsed


def get_config():
    """
    Get or create the configuration instance.
    Ensures .env file is loaded only once.

    Returns:
        Config: Configuration instance
    """
    global _CONFIG_ENV_LOADED, _CONFIG_INSTANCE

    if _CONFIG_INSTANCE is None:
        # Load .env file only if not already loaded
        if not _CONFIG_ENV_LOADED:
            _load_environment_variables()
            _CONFIG_ENV_LOADED = True

        # Create configuration instance
        _CONFIG_INSTANCE = Config()

    return _CONFIG_INSTANCE


def reload_config_from_env():
    """Refresh the cached config instance from the .env file and environment.

    This updates the existing instance in-place so modules that already imported
    ``config`` keep seeing fresh values.
    """
    global _CONFIG_ENV_LOADED, _CONFIG_INSTANCE, config

    _load_environment_variables(override=True)
    _CONFIG_ENV_LOADED = True

    refreshed = Config()

    if _CONFIG_INSTANCE is None:
        _CONFIG_INSTANCE = refreshed
    else:
        _CONFIG_INSTANCE.__dict__.clear()
        _CONFIG_INSTANCE.__dict__.update(refreshed.__dict__)

    config = _CONFIG_INSTANCE
    return _CONFIG_INSTANCE


def _default_env_path() -> str:
    current_dir = os.path.dirname(os.path.abspath(__file__))
    package_dir = os.path.dirname(current_dir)
    project_dir = os.path.dirname(package_dir)
    return os.path.join(project_dir, ".env")


def _load_environment_variables(override: bool = False) -> None:
    """
    Load environment variables from .env file if it exists.

    Args:
        override: Replace variables already present in the environment
            (used when reloading)
    """
    env_path = os.getenv("CONFIG_ENV_PATH") or _default_env_path()

    if os.path.exists(env_path):
        load_dotenv(env_path, override=override)
        print(f"Loaded environment variables from: {env_path}", file=sys.stderr)
    else:
        print(
            f"Warning: no .env file found in: {env_path}, default configuration used",
            file=sys.stderr,
        )


class Config:
    """
    Configuration class that reads from environment variables.
    Assumes .env file has already been loaded.
    """

    def __init__(self):
        """Initialize configuration values."""

        # DEBUG mode
        self.DEBUG: bool = _parse_bool(os.getenv("DEBUG"), default=False)

        # Log directory
        self.LOG_DIRECTORY: str = os.getenv("LOG_DIRECTORY", "/tmp/mediaproc/logs")
        # Add slash at end if missing
        if not self.LOG_DIRECTORY.endswith("/"):
            self.LOG_DIRECTORY += "/"

        # Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        # Structured JSON log lines instead of plain text
        self.LOG_JSON: bool = _parse_bool(os.getenv("LOG_JSON"), default=False)

        # # # External tools # # #
        # Directory searched first for ffmpeg/ffprobe binaries and font.ttf
        self.TOOLS_DIR: str = os.getenv("TOOLS_DIR", "tools")
        # Explicit binaries (empty means: resolve from TOOLS_DIR, then PATH)
        self.FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY", "")
        self.FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY", "")

        # Maximum duration (seconds) allowed for one ffmpeg invocation
        external_timeout = _parse_int(os.getenv("EXTERNAL_COMMAND_TIMEOUT_SECONDS"), 18000)
        self.EXTERNAL_COMMAND_TIMEOUT_SECONDS: int = (
            external_timeout if external_timeout > 0 else 18000
        )
        # Maximum duration (seconds) allowed for one ffprobe invocation
        probe_timeout = _parse_int(os.getenv("PROBE_TIMEOUT_SECONDS"), 60)
        self.PROBE_TIMEOUT_SECONDS: int = probe_timeout if probe_timeout > 0 else 60

        # # # Watermark settings (hot-reloadable) # # #
        self.WATERMARK_ENABLED: bool = _parse_bool(os.getenv("WATERMARK_ENABLED"), default=False)
        self.WATERMARK_TEXT: str = os.getenv("WATERMARK_TEXT", "Media Automation Framework")
        # Font size is output height divided by this value (Ex: 35 => h/35)
        self.WATERMARK_FONT_SIZE_DIVISOR: int = _parse_int(
            os.getenv("WATERMARK_FONT_SIZE_DIVISOR"), 35, min_value=1
        )
        # Text alpha between 0.0 (invisible) and 1.0 (opaque)
        self.WATERMARK_OPACITY: float = _parse_float(
            os.getenv("WATERMARK_OPACITY"), 0.7, min_value=0.0, max_value=1.0
        )
        # Explicit font file (empty means: TOOLS_DIR/font.ttf, then platform default)
        self.WATERMARK_FONT_PATH: str = os.getenv("WATERMARK_FONT_PATH", "")

        # # # Split settings # # #
        # Videos larger than this are cut into 900s parts
        self.SPLIT_THRESHOLD_MB: int = _parse_int(
            os.getenv("SPLIT_THRESHOLD_MB"), 1999, min_value=1
        )

        # # # Thumbnail locking # # #
        self.LOCK_DIRECTORY: str = os.getenv("LOCK_DIRECTORY", "/tmp/mediaproc/locks")
        self.LOCK_TIMEOUT_SECONDS: int = _parse_int(
            os.getenv("LOCK_TIMEOUT_SECONDS"), 600, min_value=1
        )

    @property
    def split_threshold_bytes(self) -> int:
        """Return the split threshold converted from MB to bytes."""
        return self.SPLIT_THRESHOLD_MB * 1024 * 1024

    def validate_configuration(self) -> None:
        """
        Validate critical configuration settings.

        Raises:
            ValueError: If essential configuration is missing or invalid
        """
        self._validate_watermark()
        self._validate_split()

    def _validate_watermark(self) -> None:
        if self.WATERMARK_FONT_SIZE_DIVISOR < 1:
            raise ValueError("WATERMARK_FONT_SIZE_DIVISOR must be at least 1")
        if not (0.0 <= self.WATERMARK_OPACITY <= 1.0):
            raise ValueError("WATERMARK_OPACITY must be between 0.0 and 1.0")
        if self.WATERMARK_ENABLED and not self.WATERMARK_TEXT.strip():
            raise ValueError("WATERMARK_TEXT must not be empty when WATERMARK_ENABLED=true")

    def _validate_split(self) -> None:
        if self.SPLIT_THRESHOLD_MB < 1:
            raise ValueError("SPLIT_THRESHOLD_MB must be at least 1")


# Create global config instance using the factory function
config = get_config()
