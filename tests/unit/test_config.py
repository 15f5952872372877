"""
Unit tests for configuration management.
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from seasonrange.utils.config import Config, load_config


class TestConfig:
    """Test cases for Config class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_default_config(self):
        """Test default configuration values."""
        config = Config()

        assert config.work_dir == "work"
        assert config.join_dir == "output_join"
        assert config.spark_app_name == "seasonRange"
        assert config.duplicate_station_policy == "last"
        assert config.precipitation_sentinel == 99.99
        assert config.country_filter is None
        assert config.overwrite is False

    def test_custom_config(self):
        """Test configuration with custom values."""
        config = Config(
            work_dir="custom_work",
            spark_app_name="custom_app",
            country_filter="US"
        )

        assert config.work_dir == "custom_work"
        assert config.spark_app_name == "custom_app"
        assert config.country_filter == "US"
        # Default values should still be present
        assert config.output_precision == 3

    def test_invalid_choices(self):
        """Test that unknown policies are rejected."""
        with pytest.raises(ValueError):
            Config(duplicate_station_policy="random")
        with pytest.raises(ValueError):
            Config(precipitation_mode="hourly")
        with pytest.raises(ValueError):
            Config(spark_log_level="VERBOSE")

    def test_to_dict(self):
        """Test conversion to dictionary."""
        config = Config(work_dir="test_work")
        config_dict = config.to_dict()

        assert isinstance(config_dict, dict)
        assert config_dict["work_dir"] == "test_work"
        assert "spark_app_name" in config_dict

    def test_from_dict(self):
        """Test creation from dictionary."""
        config_dict = {
            "work_dir": "dict_work",
            "spark_app_name": "dict_app",
            "join_partitions": 16,
            "not_a_setting": True,
        }

        config = Config.from_dict(config_dict)

        assert config.work_dir == "dict_work"
        assert config.spark_app_name == "dict_app"
        assert config.join_partitions == 16

    def test_save_and_load(self):
        """Test saving and loading configuration."""
        config = Config(
            work_dir="save_test",
            spark_app_name="save_app",
            month_names=True
        )

        config_path = Path(self.temp_dir) / "test_config.yml"

        config.save(str(config_path))
        assert config_path.exists()

        loaded_config = Config.load(str(config_path))

        assert loaded_config.work_dir == "save_test"
        assert loaded_config.spark_app_name == "save_app"
        assert loaded_config.month_names is True
        # Default values should be preserved
        assert loaded_config.output_delimiter == ","

    def test_stage_path(self):
        """Test stage directories are resolved under the work directory."""
        assert Config(work_dir="/tmp/w").stage_path("output_join") == str(Path("/tmp/w") / "output_join")
        assert Config(work_dir="hdfs://nn/w/").stage_path("x") == "hdfs://nn/w/x"


class TestLoadConfig:
    """Test cases for load_config function."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_load_config_file_exists(self):
        """Test loading config when file exists."""
        config_path = Path(self.temp_dir) / "config.yml"

        test_config = Config(work_dir="file_test")
        test_config.save(str(config_path))

        loaded_config = load_config(str(config_path))

        assert loaded_config.work_dir == "file_test"

    def test_load_config_file_not_exists(self):
        """Test loading config when file doesn't exist."""
        non_existent_path = Path(self.temp_dir) / "nonexistent.yml"

        config = load_config(str(non_existent_path))

        assert isinstance(config, Config)
        assert config.work_dir == "work"

    def test_load_config_empty_file(self):
        """Test loading an empty YAML file gives defaults."""
        config_path = Path(self.temp_dir) / "empty.yml"
        config_path.write_text("")

        config = load_config(str(config_path))

        assert config.work_dir == "work"
