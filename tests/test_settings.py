"""Test configuration loading"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mp4concat.settings import ConcatSettings, Settings, get_settings


class TestSettings:

    def test_defaults(self):
        settings = Settings()

        assert settings.concat.source_path == Path(".")
        assert settings.concat.filter == r"\.mp4$"
        assert settings.concat.sort == "reverse"
        assert settings.concat.num_of_concat_files == 0
        assert settings.concat.output_path == Path("concat.mp4")
        assert settings.concat.delete_after_concat is False
        assert settings.ffmpeg.binary == "ffmpeg"
        assert settings.logging.level == "INFO"

    def test_nested_environment_override(self, monkeypatch):
        monkeypatch.setenv("MP4CONCAT_FFMPEG__BINARY", "/opt/ffmpeg/bin/ffmpeg")
        monkeypatch.setenv("MP4CONCAT_FFMPEG__TIMEOUT_SECONDS", "60")
        monkeypatch.setenv("MP4CONCAT_CONCAT__DELETE_AFTER_CONCAT", "true")
        monkeypatch.setenv("MP4CONCAT_LOGGING__LEVEL", "debug")

        settings = Settings()

        assert settings.ffmpeg.binary == "/opt/ffmpeg/bin/ffmpeg"
        assert settings.ffmpeg.timeout_seconds == 60
        assert settings.concat.delete_after_concat is True
        assert settings.logging.level == "DEBUG"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_safe_dict_is_json_friendly(self):
        data = Settings().get_safe_dict()

        assert data["concat"]["output_path"] == "concat.mp4"
        assert data["ffmpeg"]["timeout_seconds"] == 1800


class TestConcatSettingsValidation:

    def test_sort_normalized(self):
        assert ConcatSettings(sort="NORMAL").sort == "normal"

    @pytest.mark.parametrize("alias,expected", [("asc", "normal"), ("Descending", "reverse")])
    def test_sort_aliases(self, alias, expected):
        assert ConcatSettings(sort=alias).sort == expected

    def test_sort_alias_from_environment(self, monkeypatch):
        monkeypatch.setenv("MP4CONCAT_CONCAT__SORT", "asc")

        assert Settings().concat.sort == "normal"

    def test_invalid_sort(self):
        with pytest.raises(ValidationError):
            ConcatSettings(sort="random")

    def test_invalid_name_mode(self):
        with pytest.raises(ValidationError):
            ConcatSettings(name_mode="short")

    def test_negative_count(self):
        with pytest.raises(ValidationError):
            ConcatSettings(num_of_concat_files=-1)

    def test_extension_gets_dot(self):
        assert ConcatSettings(extension="mkv").extension == ".mkv"
