"""Configuration defaults and validation."""
from __future__ import annotations

import pytest

from imadet.config import (
    ConfigurationError,
    ExperimentConfig,
    MainBlockConfig,
    StaircaseConfig,
)


def test_defaults_are_valid():
    config = ExperimentConfig()
    config.validate()
    assert config.staircase.trials_per_cycle == 10
    assert config.staircase.cycles == 12
    assert config.staircase.min_visibility is None
    assert config.practice.repetitions == 2
    assert config.response_keys == ("f", "j")


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_visibility": 1.2},
        {"initial_visibility": -0.1},
        {"max_visibility": 0.0},
        {"max_visibility": 1.5},
        {"initial_visibility": 0.9, "max_visibility": 0.8},
        {"min_visibility": 0.9, "max_visibility": 0.8},
        {"min_visibility": -0.2},
        {"step_divisor": 0},
        {"cycles": -1},
        {"trials_per_cycle": 7},
    ],
)
def test_invalid_staircase_config(kwargs):
    with pytest.raises(ConfigurationError):
        StaircaseConfig(**kwargs).validate()


def test_optional_lower_clamp_accepted():
    StaircaseConfig(min_visibility=0.05).validate()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"signal_present_key": "f", "signal_absent_key": "F"},
        {"signal_present_key": ""},
        {"iti_range_s": (1.0, 0.5)},
        {"stimulus_duration_s": 0},
        {"noise_fps": 0},
    ],
)
def test_invalid_experiment_config(kwargs):
    with pytest.raises(ConfigurationError):
        ExperimentConfig(**kwargs).validate()


def test_nested_configs_are_validated():
    config = ExperimentConfig(main=MainBlockConfig(trials_per_condition=5))
    with pytest.raises(ConfigurationError, match="trials_per_condition"):
        config.validate()


def test_instructions_mention_both_keys():
    text = ExperimentConfig(signal_present_key="a", signal_absent_key="l").instructions_text()
    assert "[ A ]" in text
    assert "[ L ]" in text
