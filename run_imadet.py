"""Entry point script for the imagery/detection experiment.

This small wrapper simply dispatches to :mod:`imadet.cli`.  Keeping the actual
logic in the package makes it possible to launch the experiment via
``python -m imadet`` *or* by executing this file directly.
"""
from __future__ import annotations

from imadet.cli import main


if __name__ == "__main__":
    main()
