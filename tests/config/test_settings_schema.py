"""
Tests for config/settings_schema.py and config/settings_loader.py - typed config validation.
"""
from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from config import settings_loader
from config.settings_schema import (
    OptimizerSettings,
    load_validated_settings,
)
from core.exceptions import ConfigurationError
from evolution import GeneticConfig
from neural import Activation


class TestLoadValidatedSettings:
    """Tests for loading and validating settings."""

    def test_bundled_defaults(self):
        """The bundled optimizer.yaml validates and matches the documented defaults."""
        settings = load_validated_settings(Path(settings_loader.__file__).parent / "optimizer.yaml")

        assert settings.genetic.population_size == 20
        assert settings.genetic.seed is None
        assert settings.fitness_weights.success_probability == 0.3
        assert settings.neural.hidden_layers == [16, 8]
        assert settings.reinforcement.action_threshold == 0.5
        assert settings.reinforcement.qtable_path is None

    def test_loads_default_settings_without_file(self):
        """Missing file falls back to model defaults."""
        with patch('config.settings_schema.read_yaml', return_value={}):
            settings = load_validated_settings()
        assert settings.genetic.generations == 10
        assert settings.neural.activation == "relu"

    def test_loads_custom_settings(self):
        mock_config = {
            "genetic": {"population_size": 8, "seed": 3, "parallel": True},
            "neural": {"activation": "tanh", "hidden_layers": [4]},
        }
        with patch('config.settings_schema.read_yaml', return_value=mock_config):
            settings = load_validated_settings()
        assert settings.genetic.population_size == 8
        assert settings.genetic.parallel is True
        assert settings.neural.hidden_layers == [4]

    def test_invalid_rate_raises_configuration_error(self):
        with patch('config.settings_schema.read_yaml',
                   return_value={"genetic": {"mutation_rate": 1.5}}):
            with pytest.raises(ConfigurationError) as exc:
                load_validated_settings()
        assert exc.value.error_code == "INVALID_CONFIG"
        assert exc.value.context['errors'] == 1

    def test_unknown_activation_rejected(self):
        with patch('config.settings_schema.read_yaml',
                   return_value={"neural": {"activation": "softmax"}}):
            with pytest.raises(ConfigurationError):
                load_validated_settings()

    def test_weights_not_summing_to_one_warn(self, caplog):
        with caplog.at_level("WARNING"):
            settings = OptimizerSettings(fitness_weights={"success_probability": 0.9})
        assert settings.fitness_weights.success_probability == 0.9
        assert "sum to" in caplog.text

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("genetic:\n  generations: 0\n")
        assert load_validated_settings(path).genetic.generations == 0


class TestConversions:
    """Tests for building component configs from settings."""

    def test_genetic_config(self):
        config = OptimizerSettings(genetic={"population_size": 12, "elitism_rate": 0.25}).genetic_config()
        assert isinstance(config, GeneticConfig)
        assert config.population_size == 12
        assert config.elite_count == 3

    def test_network_config(self):
        config = OptimizerSettings(neural={"activation": "sigmoid"}).network_config()
        assert config.activation is Activation.SIGMOID

    def test_selector_and_weights(self):
        settings = OptimizerSettings(reinforcement={"action_threshold": 0.2, "confidence_visits": 3})
        assert settings.selector_config().action_threshold == 0.2
        assert settings.selector_config().confidence_visits == 3
        assert settings.fitness_weights_config().total == pytest.approx(1.0)


class TestSettingsLoader:
    """Tests for the cached dot-path loader."""

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("genetic:\n  population_size: 7\n")
        monkeypatch.setenv("PLANOPT_CONFIG_PATH", str(path))

        assert settings_loader.get_config_path() == path
        settings_loader.load_settings(force_reload=True)
        assert settings_loader.get_setting("genetic.population_size") == 7
        assert settings_loader.get_setting("genetic.missing", "fallback") == "fallback"

        monkeypatch.delenv("PLANOPT_CONFIG_PATH")
        settings_loader.load_settings(force_reload=True)

    def test_default_path_is_bundled(self, monkeypatch):
        monkeypatch.delenv("PLANOPT_CONFIG_PATH", raising=False)
        with patch('config.settings_loader.load_dotenv'):
            assert settings_loader.get_config_path().name == "optimizer.yaml"
