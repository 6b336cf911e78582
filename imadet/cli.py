"""Command line helpers for running the imagery/detection experiment."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ExperimentConfig, StaircaseConfig
from .design import ResponseMapping, make_order_function
from .practice import PracticeGate, run_practice_gate
from .simulate import SimulatedObserver
from .staircase import run_calibration_phase
from .thresholds import GratingTilt, ParticipantVisibilityThreshold

DEFAULT_SIGNAL_KEY = ExperimentConfig.__dataclass_fields__["signal_present_key"].default
DEFAULT_NOISE_KEY = ExperimentConfig.__dataclass_fields__["signal_absent_key"].default
DEFAULT_CYCLES = StaircaseConfig.__dataclass_fields__["cycles"].default
DEFAULT_TRIALS_PER_CYCLE = StaircaseConfig.__dataclass_fields__["trials_per_cycle"].default
DEFAULT_INITIAL_VISIBILITY = StaircaseConfig.__dataclass_fields__["initial_visibility"].default


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser exposing minimal runtime options."""

    parser = argparse.ArgumentParser(
        description=(
            "Launch the imagery/detection task: practice, per-tilt threshold "
            "calibration, and the main imagery blocks."
        )
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data"),
        help="Folder where CSV/JSON/log outputs will be saved (default: %(default)s).",
    )
    parser.add_argument(
        "--signal-key",
        default=DEFAULT_SIGNAL_KEY,
        help="Key meaning 'grating present' (default: %(default)s).",
    )
    parser.add_argument(
        "--noise-key",
        default=DEFAULT_NOISE_KEY,
        help="Key meaning 'noise only' (default: %(default)s).",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_CYCLES,
        help="Staircase cycles per tilt (default: %(default)s).",
    )
    parser.add_argument(
        "--trials-per-cycle",
        type=int,
        default=DEFAULT_TRIALS_PER_CYCLE,
        help="Trials per staircase cycle; must be even (default: %(default)s).",
    )
    parser.add_argument(
        "--initial-visibility",
        type=float,
        default=DEFAULT_INITIAL_VISIBILITY,
        help="Starting grating opacity for each staircase (default: %(default)s).",
    )
    parser.add_argument(
        "--min-visibility",
        type=float,
        default=None,
        help="Optional lower clamp for the staircase visibility (default: none).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for all trial-order randomisation (default: random).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run in a framed window with verbose logging.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help=(
            "Run the practice gate and the calibration against a simulated "
            "observer, print the cycle log and thresholds, and exit without "
            "opening a PsychoPy window."
        ),
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ExperimentConfig:
    """Build an :class:`ExperimentConfig` from parsed CLI arguments."""

    staircase = StaircaseConfig(
        initial_visibility=args.initial_visibility,
        min_visibility=args.min_visibility,
        trials_per_cycle=args.trials_per_cycle,
        cycles=args.cycles,
    )
    return ExperimentConfig(
        results_directory=str(args.data_dir),
        signal_present_key=args.signal_key,
        signal_absent_key=args.noise_key,
        debug_mode=args.debug,
        seed=args.seed,
        staircase=staircase,
    )


def main(argv: list[str] | None = None) -> None:
    """Parse command line options and execute the experiment."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    config = config_from_args(args)
    config.validate()
    if args.dry_run:
        perform_dry_run(config)
        return

    # PsychoPy is only needed for a real session.
    from .experiment import ImadetExperiment

    experiment = ImadetExperiment(config)
    experiment.run()


def perform_dry_run(
    config: ExperimentConfig, observer: SimulatedObserver | None = None
) -> ParticipantVisibilityThreshold:
    """Simulate practice and calibration, print a summary and return thresholds."""

    mapping = ResponseMapping(config.signal_present_key, config.signal_absent_key)
    observer = observer or SimulatedObserver(mapping=mapping, seed=config.seed)
    order = make_order_function(config.seed)

    gate = PracticeGate(config.practice, mapping=mapping, order=order)
    accuracies = run_practice_gate(gate, observer)
    print(
        f"Dry-run: practice passed after {len(accuracies)} block(s) "
        f"(accuracies: {', '.join(f'{value}%' for value in accuracies)})."
    )

    thresholds = ParticipantVisibilityThreshold(
        config.staircase.initial_visibility, config.staircase.initial_visibility
    )
    records = run_calibration_phase(
        thresholds, observer, config.staircase, mapping=mapping, order=order
    )
    for record in records:
        print(
            f"[{record.tilt.value:<5}] cycle {record.cycle_index + 1:02} "
            f"| accuracy={record.accuracy:3d}% "
            f"| visibility={record.tested_visibility:.2f} -> {record.new_visibility:.2f}"
        )
    for tilt in GratingTilt:
        print(f"Threshold {tilt.value:<5}: {thresholds.get(tilt):.2f}")
    print("Dry-run complete.")
    return thresholds


if __name__ == "__main__":  # pragma: no cover - module level CLI hook
    main(sys.argv[1:])
