import pytest

from mediaproc.core import config as config_module
from mediaproc.core.config import Config, _parse_bool, _parse_float, _parse_int, config

ENV_VARS = [
    "DEBUG",
    "LOG_DIRECTORY",
    "LOG_LEVEL",
    "WATERMARK_ENABLED",
    "WATERMARK_TEXT",
    "WATERMARK_FONT_SIZE_DIVISOR",
    "WATERMARK_OPACITY",
    "SPLIT_THRESHOLD_MB",
    "EXTERNAL_COMMAND_TIMEOUT_SECONDS",
    "PROBE_TIMEOUT_SECONDS",
    "LOCK_TIMEOUT_SECONDS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    cfg = Config()
    assert cfg.DEBUG is False
    assert cfg.LOG_DIRECTORY == "/tmp/mediaproc/logs/"
    assert cfg.LOG_LEVEL == "INFO"
    assert cfg.WATERMARK_ENABLED is False
    assert cfg.WATERMARK_TEXT == "Media Automation Framework"
    assert cfg.WATERMARK_FONT_SIZE_DIVISOR == 35
    assert cfg.WATERMARK_OPACITY == 0.7
    assert cfg.SPLIT_THRESHOLD_MB == 1999
    assert cfg.split_threshold_bytes == 1999 * 1024 * 1024
    assert cfg.EXTERNAL_COMMAND_TIMEOUT_SECONDS == 18000
    assert cfg.PROBE_TIMEOUT_SECONDS == 60
    assert cfg.LOCK_TIMEOUT_SECONDS == 600


def test_env_override(clean_env):
    clean_env.setenv("WATERMARK_ENABLED", "yes")
    clean_env.setenv("WATERMARK_TEXT", "My Channel")
    clean_env.setenv("SPLIT_THRESHOLD_MB", "10")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("LOG_DIRECTORY", "/var/log/mediaproc")

    cfg = Config()

    assert cfg.WATERMARK_ENABLED is True
    assert cfg.WATERMARK_TEXT == "My Channel"
    assert cfg.split_threshold_bytes == 10 * 1024 * 1024
    assert cfg.LOG_LEVEL == "DEBUG"
    assert cfg.LOG_DIRECTORY == "/var/log/mediaproc/"


def test_values_are_clamped(clean_env):
    clean_env.setenv("WATERMARK_OPACITY", "1.5")
    clean_env.setenv("WATERMARK_FONT_SIZE_DIVISOR", "0")
    clean_env.setenv("SPLIT_THRESHOLD_MB", "-5")

    cfg = Config()

    assert cfg.WATERMARK_OPACITY == 1.0
    assert cfg.WATERMARK_FONT_SIZE_DIVISOR == 1
    assert cfg.SPLIT_THRESHOLD_MB == 1


def test_non_positive_timeouts_use_default(clean_env):
    clean_env.setenv("EXTERNAL_COMMAND_TIMEOUT_SECONDS", "0")
    clean_env.setenv("PROBE_TIMEOUT_SECONDS", "-1")
    cfg = Config()
    assert cfg.EXTERNAL_COMMAND_TIMEOUT_SECONDS == 18000
    assert cfg.PROBE_TIMEOUT_SECONDS == 60


def test_parse_helpers():
    assert _parse_bool("On") is True
    assert _parse_bool("off") is False
    assert _parse_bool("maybe", default=True) is True
    assert _parse_bool(None) is False
    assert _parse_int("abc", 7) == 7
    assert _parse_int(" 12 ", 7, max_value=10) == 10
    assert _parse_float("0.25", 1.0) == 0.25
    assert _parse_float("x", 1.0) == 1.0


def test_validate_configuration_rejects_empty_watermark_text(clean_env):
    clean_env.setenv("WATERMARK_ENABLED", "true")
    clean_env.setenv("WATERMARK_TEXT", "   ")
    cfg = Config()
    with pytest.raises(ValueError):
        cfg.validate_configuration()


def test_validate_configuration_rejects_out_of_range_values(clean_env):
    cfg = Config()
    cfg.WATERMARK_OPACITY = 2.0
    with pytest.raises(ValueError):
        cfg.validate_configuration()

    cfg = Config()
    cfg.SPLIT_THRESHOLD_MB = 0
    with pytest.raises(ValueError):
        cfg.validate_configuration()


def test_validate_configuration_accepts_defaults(clean_env):
    Config().validate_configuration()


def test_reload_config_from_env_updates_shared_instance(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("WATERMARK_TEXT=Reloaded Text\nSPLIT_THRESHOLD_MB=42\n")
    monkeypatch.setenv("CONFIG_ENV_PATH", str(env_file))
    # Registered so monkeypatch restores them after dotenv overrides them
    monkeypatch.setenv("WATERMARK_TEXT", "before")
    monkeypatch.setenv("SPLIT_THRESHOLD_MB", "1999")

    saved = dict(config.__dict__)
    try:
        refreshed = config_module.reload_config_from_env()

        assert refreshed is config
        assert config.WATERMARK_TEXT == "Reloaded Text"
        assert config.SPLIT_THRESHOLD_MB == 42
    finally:
        config.__dict__.clear()
        config.__dict__.update(saved)
