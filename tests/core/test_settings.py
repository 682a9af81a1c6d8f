"""Tests for sheetdb.core.settings module.

Covers:
- SheetDBSettings instantiation with defaults
- Environment variable override (SHEETDB_ prefix)
- Field validation
- get_settings caching
"""

import pydantic
import pytest

from sheetdb.core.settings import SheetDBSettings, get_settings


class TestSheetDBSettingsDefaults:
    def test_default_lock_timeout(self):
        s = SheetDBSettings(_env_file=None)
        assert s.lock_timeout_seconds == 10.0

    def test_default_reserved_prefix(self):
        assert SheetDBSettings(_env_file=None).reserved_prefix == "_"

    def test_default_cell_cap(self):
        assert SheetDBSettings(_env_file=None).cell_cap == 10_000_000

    def test_default_stream_chunk_size(self):
        assert SheetDBSettings(_env_file=None).stream_chunk_size == 5000

    def test_default_logging(self):
        s = SheetDBSettings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.json_logs is None


class TestSheetDBSettingsEnvOverride:
    def test_lock_timeout_from_env(self, monkeypatch):
        monkeypatch.setenv("SHEETDB_LOCK_TIMEOUT_SECONDS", "2.5")
        assert SheetDBSettings(_env_file=None).lock_timeout_seconds == 2.5

    def test_reserved_prefix_from_env(self, monkeypatch):
        monkeypatch.setenv("SHEETDB_RESERVED_PREFIX", "#")
        assert SheetDBSettings(_env_file=None).reserved_prefix == "#"

    def test_json_logs_from_env(self, monkeypatch):
        monkeypatch.setenv("SHEETDB_JSON_LOGS", "true")
        assert SheetDBSettings(_env_file=None).json_logs is True

    def test_unprefixed_variables_are_ignored(self, monkeypatch):
        monkeypatch.setenv("CELL_CAP", "5")
        assert SheetDBSettings(_env_file=None).cell_cap == 10_000_000


class TestSheetDBSettingsValidation:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("lock_timeout_seconds", -1),
            ("cell_cap", 0),
            ("stream_chunk_size", 0),
            ("reserved_prefix", ""),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(pydantic.ValidationError):
            SheetDBSettings(_env_file=None, **{field: value})


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_environment(self, monkeypatch):
        get_settings()
        monkeypatch.setenv("SHEETDB_CELL_CAP", "100")
        get_settings.cache_clear()
        assert get_settings().cell_cap == 100
