"""
Tests for Configuration
=======================
"""

import os

import pytest

from modules.utils.config import Config, DEFAULTS


def write_yaml(tmp_path, text, name="config.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


class TestLoad:
    """Test suite for loading config files."""

    def test_shipped_config_loads(self):
        config = Config().load()

        assert config.get("exercise.goal") == 5
        assert config.get("exercise.cooldown_ms") == 1000
        assert config.get("exercise.thumb_tap.threshold") == 0.05
        assert config.get("exercise.fist.threshold") == 0.15

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "nope.yaml"))

        assert config.exercise == DEFAULTS["exercise"]
        assert config.camera["device_id"] == 0

    def test_partial_file_merges_over_defaults(self, tmp_path):
        path = write_yaml(tmp_path, "exercise:\n  goal: 8\n  fist:\n    threshold: 0.12\n")

        config = Config().load(path)

        assert config.get("exercise.goal") == 8
        assert config.get("exercise.fist.threshold") == 0.12
        assert config.get("exercise.thumb_tap.threshold") == 0.05
        assert config.get("exercise.cooldown_ms") == 1000

    def test_empty_file(self, tmp_path):
        config = Config().load(write_yaml(tmp_path, ""))

        assert config.get("exercise.goal") == 5

    def test_non_mapping_file_ignored(self, tmp_path):
        config = Config().load(write_yaml(tmp_path, "- just\n- a list\n"))

        assert config.get("exercise.goal") == 5

    def test_relative_model_path_resolved_against_project(self, tmp_path):
        path = write_yaml(tmp_path, "detector:\n  model_path: models/custom.task\n")

        config = Config().load(path)

        model_path = config.get("detector.model_path")
        assert os.path.isabs(model_path)
        assert model_path == os.path.join(config.base_dir, "models", "custom.task")

    def test_defaults_not_mutated_by_load(self, tmp_path):
        Config().load(write_yaml(tmp_path, "exercise:\n  goal: 2\n"))

        assert DEFAULTS["exercise"]["goal"] == 5


class TestValidation:
    """Test suite for schema warnings."""

    def test_valid_config_has_no_warnings(self):
        assert Config().load()._validate() == []

    def test_wrong_types_reported(self, tmp_path):
        path = write_yaml(tmp_path, "exercise:\n  goal: five\ncamera:\n  flip_horizontal: 1\n")

        warnings = Config().load(path)._validate()

        assert any("exercise.goal" in w for w in warnings)
        assert any("camera.flip_horizontal" in w for w in warnings)

    def test_int_accepted_for_float_but_not_bool(self, tmp_path):
        path = write_yaml(tmp_path,
                          "exercise:\n  cooldown_ms: 800\n"
                          "visualization:\n  confetti_duration_s: true\n")

        warnings = Config().load(path)._validate()

        assert not any("cooldown_ms" in w for w in warnings)
        assert any("confetti_duration_s" in w for w in warnings)

    def test_section_not_a_dict(self, tmp_path):
        warnings = Config().load(write_yaml(tmp_path, "camera: 3\n"))._validate()

        assert any("Section 'camera'" in w for w in warnings)


class TestAccess:
    """Test suite for get/set and the singleton."""

    def test_get_default_for_missing_key(self):
        config = Config()

        assert config.get("exercise.nope", 42) == 42
        assert config.get("exercise.goal.deeper") is None

    def test_set_overrides_nested_value(self):
        config = Config()

        config.set("camera.device_id", 2)
        config.set("new.section.key", "x")

        assert config.camera["device_id"] == 2
        assert config.get("new.section.key") == "x"

    def test_singleton(self):
        Config().set("exercise.goal", 9)

        assert Config().get("exercise.goal") == 9

    def test_reset_restores_defaults(self):
        Config().set("exercise.goal", 9)

        Config.reset()

        assert Config().get("exercise.goal") == 5

    def test_sections(self):
        config = Config()

        assert config.get_section("logging") == config.logging
        assert config.get_section("missing") == {}
        assert config.visualization["window_name"] == "Dexterity Dash"
        assert config.detector["max_num_hands"] == 1
