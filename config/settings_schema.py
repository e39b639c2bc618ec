"""
Typed Settings Schema (Pydantic)
================================

Typed, validated configuration for the plan optimizer.

Usage:
    from config.settings_schema import load_validated_settings

    settings = load_validated_settings()
    settings.genetic.population_size
    settings.genetic_config()          # -> evolution.GeneticConfig
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.exceptions import ConfigurationError
from evolution.fitness import FitnessWeights
from evolution.genetic_optimizer import GeneticConfig
from neural.network import NetworkConfig
from reinforcement.selector import SelectorConfig
from config.settings_loader import get_config_path, read_yaml

logger = logging.getLogger(__name__)


# ============================================================================
# Schema Definitions
# ============================================================================

class GeneticSettings(BaseModel):
    """Genetic search configuration."""
    population_size: int = Field(default=20, ge=1, description="Individuals per generation")
    generations: int = Field(default=10, ge=0, description="Generation budget")
    mutation_rate: float = Field(default=0.1, ge=0, le=1)
    crossover_rate: float = Field(default=0.7, ge=0, le=1)
    elitism_rate: float = Field(default=0.1, ge=0, le=1)
    tournament_fraction: float = Field(default=0.1, ge=0, le=1)
    convergence_threshold: float = Field(default=0.01, ge=0)
    seed: Optional[int] = None
    parallel: bool = False
    max_workers: int = Field(default=4, ge=1)


class FitnessWeightSettings(BaseModel):
    """Sub-score weights; expected to sum to 1.0."""
    success_probability: float = Field(default=0.3, ge=0)
    time_efficiency: float = Field(default=0.2, ge=0)
    resource_optimization: float = Field(default=0.15, ge=0)
    user_preference: float = Field(default=0.2, ge=0)
    learning_effectiveness: float = Field(default=0.1, ge=0)
    adaptability: float = Field(default=0.05, ge=0)

    @model_validator(mode="after")
    def _warn_on_sum(self) -> "FitnessWeightSettings":
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-6:
            logger.warning(f"fitness_weights sum to {total:.4f}; fitness stays clamped to [0, 1]")
        return self


class NeuralSettings(BaseModel):
    """Scorer network shape and training hyperparameters."""
    hidden_layers: List[int] = Field(default_factory=lambda: [16, 8])
    activation: Literal["relu", "sigmoid", "tanh"] = "relu"
    optimizer: Literal["adam", "sgd", "rmsprop"] = "adam"
    learning_rate: float = Field(default=0.001, gt=0)
    epochs: int = Field(default=50, ge=0)
    batch_size: int = Field(default=32, ge=1)
    seed: Optional[int] = None


class ReinforcementSettings(BaseModel):
    """Q-table learning and selection settings."""
    learning_rate: float = Field(default=0.1, ge=0, le=1)
    discount_factor: float = Field(default=0.9, ge=0, le=1)
    action_threshold: float = 0.5
    confidence_visits: int = Field(default=10, ge=1)
    qtable_path: Optional[str] = None


class OptimizerSettings(BaseModel):
    """Complete settings schema."""
    model_config = ConfigDict(extra="allow")

    genetic: GeneticSettings = Field(default_factory=GeneticSettings)
    fitness_weights: FitnessWeightSettings = Field(default_factory=FitnessWeightSettings)
    neural: NeuralSettings = Field(default_factory=NeuralSettings)
    reinforcement: ReinforcementSettings = Field(default_factory=ReinforcementSettings)

    def genetic_config(self) -> GeneticConfig:
        g = self.genetic
        return GeneticConfig(
            population_size=g.population_size,
            generations=g.generations,
            mutation_rate=g.mutation_rate,
            crossover_rate=g.crossover_rate,
            elitism_rate=g.elitism_rate,
            tournament_fraction=g.tournament_fraction,
            convergence_threshold=g.convergence_threshold,
            parallel=g.parallel,
            max_workers=g.max_workers,
        )

    def fitness_weights_config(self) -> FitnessWeights:
        return FitnessWeights(**self.fitness_weights.model_dump())

    def network_config(self) -> NetworkConfig:
        n = self.neural
        return NetworkConfig(
            hidden_layers=list(n.hidden_layers),
            activation=n.activation,
            optimizer=n.optimizer,
            learning_rate=n.learning_rate,
            epochs=n.epochs,
            batch_size=n.batch_size,
        )

    def selector_config(self) -> SelectorConfig:
        r = self.reinforcement
        return SelectorConfig(
            learning_rate=r.learning_rate,
            action_threshold=r.action_threshold,
            confidence_visits=r.confidence_visits,
        )


# ============================================================================
# Loading
# ============================================================================

def load_validated_settings(path: Optional[Union[str, Path]] = None) -> OptimizerSettings:
    """
    Load and validate settings.

    Args:
        path: Explicit YAML file; defaults to get_config_path()

    Raises:
        ConfigurationError: If the settings are invalid
    """
    config_path = Path(path) if path is not None else get_config_path()
    raw = read_yaml(config_path)
    if not raw:
        logger.warning(f"Config file not found or empty: {config_path}; using defaults")

    try:
        return OptimizerSettings(**raw)
    except ValidationError as e:
        logger.error(f"Settings validation failed: {e}")
        raise ConfigurationError(
            "Settings validation failed",
            context={'path': str(config_path), 'errors': len(e.errors())},
            cause=e,
        ) from e
