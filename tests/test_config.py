"""
Configuration Tests
"""

import pytest

from taskbrain.config import TaskBrainConfig, load_config
from taskbrain.errors import TaskParseError, ValidationError
from taskbrain.task_model import Priority


class TestLoadConfig:

    def test_defaults_without_file(self, temp_dir):
        config = load_config(temp_dir)
        assert config.base_path == temp_dir
        assert config.task_id_pad_width == 5

    def test_file_overrides(self, temp_dir):
        (temp_dir / ".taskconfig").write_text(
            "task_id_prefix: WEB\n"
            "task_id_pad_width: 3\n"
            "default_priority: P1\n"
            "default_owner: dana\n"
        )
        config = load_config(temp_dir)
        assert config.task_id_prefix == "WEB"
        assert config.task_id_pad_width == 3
        assert config.default_priority == Priority.P1
        assert config.default_owner == "dana"

    @pytest.mark.parametrize("content", [
        "task_id_prefix: web\n",
        "task_id_prefix: 'A-B'\n",
        "task_id_pad_width: -1\n",
        "task_id_pad_width: wide\n",
        "default_priority: P9\n",
    ])
    def test_invalid_values(self, temp_dir, content):
        (temp_dir / ".taskconfig").write_text(content)
        with pytest.raises(ValidationError):
            load_config(temp_dir)

    def test_unparseable_file(self, temp_dir):
        (temp_dir / ".taskconfig").write_text("task_id_prefix: [\n")
        with pytest.raises(TaskParseError):
            load_config(temp_dir)

    def test_config_is_frozen(self, temp_dir):
        config = TaskBrainConfig(base_path=temp_dir)
        with pytest.raises(AttributeError):
            config.task_id_prefix = "OTHER"

    def test_to_dict(self, temp_dir):
        data = TaskBrainConfig(base_path=temp_dir).to_dict()
        assert data["default_priority"] == "P2"
        assert data["base_path"] == str(temp_dir)
