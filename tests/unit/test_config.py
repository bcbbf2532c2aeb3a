"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError

from sharegate.core.config import Settings


def _settings(**overrides) -> Settings:
    values = {"metadata_backend": "memory", "database_url": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_defaults() -> None:
    settings = _settings()
    assert settings.mount_path == "/sharex"
    assert settings.buffer_size == 32 * 1024
    assert "image/png" in settings.inline_content_type_set


def test_inline_types_are_normalized() -> None:
    settings = _settings(inline_content_types=" Image/PNG , text/plain,,")
    assert settings.inline_content_type_set == frozenset({"image/png", "text/plain"})


@pytest.mark.parametrize(
    "overrides",
    [
        {"mount_path": "sharex"},
        {"get_path": "/get/{name}"},
        {"buffer_size": 0},
        {"id_max_attempts": 0},
        {"metadata_backend": "mongo"},
        {"metadata_backend": "sql", "database_url": ""},
    ],
)
def test_invalid_settings_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        _settings(**overrides)
