"""Command line parsing and the headless dry run."""
from __future__ import annotations

import pytest

from imadet import cli
from imadet.config import ConfigurationError, ExperimentConfig, StaircaseConfig
from imadet.design import TrialResponse
from imadet.thresholds import GratingTilt


def _perfect_observer(spec):
    return TrialResponse(response=spec.correct_response, rt=0.4)


def test_parser_defaults():
    args = cli.build_arg_parser().parse_args([])
    assert args.cycles == 12
    assert args.trials_per_cycle == 10
    assert args.initial_visibility == 0.8
    assert args.min_visibility is None
    assert not args.dry_run


def test_config_from_args():
    args = cli.build_arg_parser().parse_args(
        ["--signal-key", "a", "--noise-key", "l", "--cycles", "4", "--seed", "12", "--debug"]
    )
    config = cli.config_from_args(args)
    assert config.response_keys == ("a", "l")
    assert config.staircase.cycles == 4
    assert config.seed == 12
    assert config.debug_mode


def test_dry_run_with_perfect_observer(capsys):
    config = ExperimentConfig(staircase=StaircaseConfig(cycles=3), seed=4)
    thresholds = cli.perform_dry_run(config, observer=_perfect_observer)

    # 0.80 -> 0.74 -> 0.68; the third cycle is tested at 0.68.
    assert thresholds.get(GratingTilt.LEFT) == 0.68
    assert thresholds.get(GratingTilt.RIGHT) == 0.68
    out = capsys.readouterr().out
    assert "practice passed after 1 block(s) (accuracies: 100%)" in out
    assert "Threshold left : 0.68" in out
    assert out.rstrip().endswith("Dry-run complete.")


def test_main_dry_run_prints_every_cycle(capsys):
    cli.main(["--dry-run", "--seed", "3", "--cycles", "2"])
    lines = capsys.readouterr().out.splitlines()
    cycle_lines = [line for line in lines if line.startswith("[")]
    assert len(cycle_lines) == 4
    assert sum("cycle 02" in line for line in cycle_lines) == 2
    assert lines[-1] == "Dry-run complete."


def test_main_rejects_odd_trials_per_cycle():
    with pytest.raises(ConfigurationError):
        cli.main(["--dry-run", "--trials-per-cycle", "9"])
