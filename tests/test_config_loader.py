"""Tests for config loading, saving and key conversion."""

import json

import pytest
from pydantic import ValidationError

from recallbot.config.loader import (
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
    snake_to_camel,
)
from recallbot.config.schema import AntiDeleteConfig, Config


class TestKeyConversion:
    def test_camel_to_snake(self):
        assert camel_to_snake("ownerChatId") == "owner_chat_id"
        assert camel_to_snake("capacity") == "capacity"

    def test_snake_to_camel(self):
        assert snake_to_camel("acquisition_timeout_s") == "acquisitionTimeoutS"
        assert snake_to_camel("enabled") == "enabled"

    def test_nested_conversion_round_trips(self):
        data = {"antidelete": {"snapshotPath": "/x", "ownerChatId": "1"}}
        assert convert_to_camel(convert_keys(data)) == data


class TestLoadSave:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.json")

        assert config.antidelete.enabled is True
        assert config.antidelete.capacity == 500
        assert config.channels.telegram.enabled is False

    def test_camel_case_file_is_loaded(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "antidelete": {"capacity": 50, "ownerChatId": "12345", "maxMediaMb": 8},
            "channels": {"telegram": {"enabled": True, "token": "abc"}},
        }))

        config = load_config(path)

        assert config.antidelete.capacity == 50
        assert config.antidelete.owner_chat_id == "12345"
        assert config.antidelete.max_media_mb == 8
        assert config.channels.telegram.token == "abc"

    def test_save_writes_camel_case(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config()
        config.antidelete.owner_chat_id = "999"

        save_config(config, path)

        data = json.loads(path.read_text())
        assert data["antidelete"]["ownerChatId"] == "999"
        assert "owner_chat_id" not in data["antidelete"]
        assert load_config(path).antidelete.owner_chat_id == "999"

    def test_invalid_json_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops")

        assert load_config(path).antidelete.capacity == 500

    def test_invalid_capacity_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"antidelete": {"capacity": 0}}))

        assert load_config(path).antidelete.capacity == 500

    def test_snapshot_file_is_expanded(self):
        config = Config()
        assert "~" not in str(config.snapshot_file)
        assert config.snapshot_file.name == "antidelete.json"


class TestValidation:
    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            AntiDeleteConfig(capacity=0)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            AntiDeleteConfig(acquisition_timeout_s=0)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RECALLBOT_ANTIDELETE__CAPACITY", "42")
        assert Config().antidelete.capacity == 42
