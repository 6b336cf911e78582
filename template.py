"""Reusable experiment template utilities.

:class:`BaseExperiment` collects the rows an experiment produces during a
session and writes them out at the end: a CSV file with one row per trial (or
per logged event) and a JSON file with the participant information.  Every
stored row is numbered with a session-wide ``trial_index`` so that the export
can be sorted back into presentation order.  Rows missing a column are written
with an empty cell; keys not listed in ``data_fields`` are ignored.
"""
from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

Row = Dict[str, object]


@dataclass
class BaseExperiment:
    """Core functionality for saving experiment data."""

    experiment_name: str
    data_fields: List[str]
    data_directory: str = "data"

    def __post_init__(self) -> None:
        self.experiment_data: List[Row] = []
        self.experiment_info: Dict[str, object] = {}
        self.experiment_data_filename: str | None = None
        self.data_lines_written: int = 0
        self.trial_index: int = 0

    # ------------------------------------------------------------------
    # Output paths
    # ------------------------------------------------------------------
    @property
    def subject_code(self) -> str:
        """Zero-padded participant ID, or the raw ID when it is not numeric."""

        participant = self.experiment_info.get("Participant ID", "000")
        try:
            return f"{int(participant):03d}"
        except (TypeError, ValueError):
            return str(participant)

    def _default_filename(self, suffix: str) -> str:
        directory = Path(self.data_directory)
        directory.mkdir(parents=True, exist_ok=True)
        return str(directory / f"{self.experiment_name}_{self.subject_code}{suffix}")

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    def add_rows(self, rows: Iterable[Mapping[str, object]]) -> List[Row]:
        """Number ``rows`` with the next ``trial_index`` values and store them.

        The stored copies are returned; the caller's mappings are not changed.
        """

        added = []
        for row in rows:
            self.trial_index += 1
            added.append({**row, "trial_index": self.trial_index})
        self.experiment_data.extend(added)
        return added

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    def save_experiment_info(self, filename: str | None = None) -> str:
        """Write the participant information to disk as JSON."""

        output_filename = filename or self._default_filename("_info.json")
        with open(output_filename, "w", encoding="utf-8") as info_file:
            json.dump(self.experiment_info, info_file, indent=2, default=str)
        return output_filename

    def open_csv_data_file(self, data_filename: str | None = None) -> str:
        """Create the CSV file with only its header row."""

        self.experiment_data_filename = data_filename or self._default_filename(".csv")
        with open(self.experiment_data_filename, "w", newline="", encoding="utf-8") as csv_file:
            csv.writer(csv_file).writerow(self.data_fields)
        self.data_lines_written = 0
        return self.experiment_data_filename

    def save_data_to_csv(self) -> int:
        """Append the rows not yet written and return how many were written."""

        if not self.experiment_data_filename:
            self.open_csv_data_file()
        assert self.experiment_data_filename is not None
        pending = self.experiment_data[self.data_lines_written :]
        with open(self.experiment_data_filename, "a", newline="", encoding="utf-8") as csv_file:
            writer = csv.DictWriter(csv_file, fieldnames=self.data_fields, extrasaction="ignore")
            writer.writerows(pending)
        self.data_lines_written += len(pending)
        return len(pending)


__all__ = ["BaseExperiment", "Row"]
