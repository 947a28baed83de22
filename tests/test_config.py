"""
Tests for ExamConfig and load_config.
"""

import json
import logging
from datetime import timedelta
from pathlib import Path

import pytest

from qbank_toolkit.config import ExamConfig, load_config


class TestExamConfig:
    """Tests for ExamConfig validation and dict conversion."""

    def test_config_when_defaults_then_sixty_minutes_and_grading_on_expiry(self):
        config = ExamConfig()

        assert config.default_time_limit == timedelta(minutes=60)
        assert config.grade_on_expiry is True
        assert config.store_path is None

    def test_config_when_non_positive_limit_then_raises(self):
        with pytest.raises(ValueError, match="default_time_limit"):
            ExamConfig(default_time_limit=timedelta(0))

    def test_config_when_code_bytes_too_small_then_raises(self):
        with pytest.raises(ValueError, match="access_code_bytes"):
            ExamConfig(access_code_bytes=3)

    def test_from_dict_when_to_dict_output_then_equal(self, tmp_path):
        config = ExamConfig(timedelta(minutes=90), False, 12, tmp_path)

        assert ExamConfig.from_dict(config.to_dict()) == config

    def test_from_dict_when_unknown_key_then_warned(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = ExamConfig.from_dict({"default_points": 2})

        assert config == ExamConfig()
        assert "default_points" in caplog.text


class TestLoadConfig:
    """Tests for load_config fallbacks."""

    def test_load_config_when_none_then_defaults(self):
        assert load_config(None) == ExamConfig()

    def test_load_config_when_file_then_values_read(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"default_time_limit_minutes": 25, "store_path": "data"}))

        config = load_config(path)

        assert config.default_time_limit == timedelta(minutes=25)
        assert config.store_path == Path("data")

    def test_load_config_when_missing_then_defaults_with_warning(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            config = load_config(tmp_path / "missing.json")

        assert config == ExamConfig()
        assert "not found" in caplog.text

    @pytest.mark.parametrize("content", [
        "{not json",
        "[1, 2]",
        '{"default_time_limit_minutes": -5}',
        '{"access_code_bytes": "many"}',
    ])
    def test_load_config_when_invalid_then_defaults(self, tmp_path, caplog, content):
        path = tmp_path / "config.json"
        path.write_text(content)

        with caplog.at_level(logging.WARNING):
            config = load_config(path)

        assert config == ExamConfig()
        assert "Invalid config" in caplog.text
