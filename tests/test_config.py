"""Tests for configuration models and configuration files."""

import json

import pytest

from image_folder_pipeline.classifier_trainer.config import (
    Architecture,
    TrainingConfig,
    merge_overrides,
    parse_training_config,
)
from image_folder_pipeline.dataset_builder.config import DatasetConfig
from image_folder_pipeline.lib import ConfigurationError, load_config_file


class TestTrainingConfig:
    """Tests for TrainingConfig defaults and parsing."""

    def test_defaults(self):
        config = TrainingConfig()

        assert config.image.width == 224
        assert config.image.height == 224
        assert config.split.test == 0.2
        assert config.split.validation == 0.1
        assert config.seed == 42
        assert config.architecture == Architecture.LINEAR
        assert config.hyperparameters.num_epochs == 100
        assert config.hyperparameters.batch_size == 32
        assert config.device.use_gpu is False
        assert config.device.fallback_to_cpu is False
        assert config.timeout_seconds is None

    def test_parse_from_mapping(self):
        config = parse_training_config(
            {
                "architecture": "mlp",
                "split": {"test": 0.3, "validation": 0.0},
                "device": {"use_gpu": True, "device_id": 1},
            }
        )

        assert config.architecture == Architecture.MLP
        assert config.split.validation == 0.0
        assert config.device.torch_device == "cuda:1"

    def test_parse_none_gives_defaults(self):
        assert parse_training_config(None) == TrainingConfig()

    def test_parse_passes_instances_through(self):
        config = TrainingConfig(seed=7)

        assert parse_training_config(config) is config

    @pytest.mark.parametrize(
        "data",
        [
            {"split": {"test": 0.0}},
            {"split": {"test": 0.6, "validation": 0.5}},
            {"image": {"width": 0}},
            {"hyperparameters": {"batch_size": 0}},
            {"architecture": "transformer"},
            {"timeout_seconds": -1},
        ],
    )
    def test_invalid_values_raise_configuration_error(self, data):
        with pytest.raises(ConfigurationError):
            parse_training_config(data)


class TestMergeOverrides:
    """Tests for merge_overrides."""

    def test_none_values_keep_file_values(self):
        merged = merge_overrides(
            {"seed": 1, "split": {"test": 0.3, "validation": 0.2}},
            {"seed": None, "split": {"test": None, "validation": 0.1}},
        )

        assert merged == {"seed": 1, "split": {"test": 0.3, "validation": 0.1}}

    def test_nested_sections_are_created(self):
        merged = merge_overrides({}, {"device": {"use_gpu": True, "device_id": None}})

        assert merged == {"device": {"use_gpu": True}}


class TestDatasetConfig:
    """Tests for DatasetConfig."""

    def test_extensions_are_normalised(self):
        config = DatasetConfig(extensions=["JPG", ".PNG"])

        assert config.extensions == [".jpg", ".png"]

    def test_default_extensions(self):
        assert ".jpeg" in DatasetConfig().extensions


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("seed: 3\nsplit:\n  test: 0.25\n")

        assert load_config_file(path) == {"seed": 3, "split": {"test": 0.25}}

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"architecture": "mlp"}))

        assert load_config_file(path) == {"architecture": "mlp"}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")

        assert load_config_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("seed = 1")

        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_top_level_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError):
            load_config_file(path)
