"""Unit tests for MemoirConfig."""

from pathlib import Path

import pytest

from memoir.config import MemoirConfig
from memoir.exceptions import ConfigurationError


@pytest.mark.unit
class TestMemoirConfig:

    def test_loads_values(self, config_file):
        config = MemoirConfig(config_file)

        assert config.get('audio.block_size') == 4800
        assert config.get('story_server.language_code') == "en-GB"
        assert config.get('audio.input_device_index') is None

    def test_missing_key_returns_default(self, config_file):
        config = MemoirConfig(config_file)

        assert config.get('audio.nothing', 7) == 7
        assert config.get('nothing.at.all') is None

    def test_set_creates_nested_keys(self, config_file):
        config = MemoirConfig(config_file)

        config.set('story_server.base_url', "http://other.test")
        config.set('new.section.value', 3)

        assert config.get('story_server.base_url') == "http://other.test"
        assert config.get('new.section.value') == 3

    def test_relative_paths_resolved_against_config_dir(self, config_file):
        config = MemoirConfig(config_file)
        config_dir = Path(config_file).parent

        assert config.get('storage.data_directory') == str(config_dir / "data")
        assert config.get('logging.file_path') == str(config_dir / "data/logs/memoir.log")
        assert config.get_data_directory() == str((config_dir / "data").absolute())

    def test_server_url_strips_trailing_slash(self, config_file):
        assert MemoirConfig(config_file).get_server_url() == "http://stories.test"

    def test_server_url_required(self, temp_data_dir):
        path = Path(temp_data_dir) / "memoir.yaml"
        path.write_text("audio:\n  block_size: 1024\n")

        with pytest.raises(ConfigurationError):
            MemoirConfig(str(path)).get_server_url()

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            MemoirConfig(str(Path(temp_data_dir) / "missing.yaml"))

    def test_empty_file(self, temp_data_dir):
        path = Path(temp_data_dir) / "memoir.yaml"
        path.write_text("")

        with pytest.raises(ConfigurationError):
            MemoirConfig(str(path))

    def test_invalid_yaml(self, temp_data_dir):
        path = Path(temp_data_dir) / "memoir.yaml"
        path.write_text("audio: [unclosed\n")

        with pytest.raises(ConfigurationError):
            MemoirConfig(str(path))

    def test_non_mapping_root(self, temp_data_dir):
        path = Path(temp_data_dir) / "memoir.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            MemoirConfig(str(path))
