"""Per-participant grating visibility thresholds."""
from __future__ import annotations

import enum
import logging
from typing import Dict, Optional

from .config import VISIBILITY_LEVEL_INIT

logger = logging.getLogger(__name__)


class GratingTilt(enum.Enum):
    """The two grating orientations that are calibrated independently."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def rotation(self) -> float:
        """Grating orientation in degrees as drawn by the trial runner."""

        return 45.0 if self is GratingTilt.LEFT else 135.0


class ParticipantVisibilityThreshold:
    """Hold the calibrated visibility of both tilts for one session.

    A single instance is created per session and handed to both the staircase
    (which writes it once per tilt, at the end of that tilt's run) and the main
    experiment (which reads it on every grating trial).  The store performs no
    clamping; callers pass values already bounded to ``[0, 1]``.
    """

    def __init__(
        self,
        initial_left: Optional[float] = None,
        initial_right: Optional[float] = None,
    ) -> None:
        self._thresholds: Dict[GratingTilt, float] = {
            GratingTilt.LEFT: VISIBILITY_LEVEL_INIT if initial_left is None else initial_left,
            GratingTilt.RIGHT: VISIBILITY_LEVEL_INIT if initial_right is None else initial_right,
        }

    def get(self, tilt: GratingTilt) -> float:
        return self._thresholds[tilt]

    def set(self, tilt: GratingTilt, value: float) -> None:
        logger.debug("Threshold for %s tilt set to %.2f", tilt.value, value)
        self._thresholds[tilt] = value

    def as_dict(self) -> Dict[str, float]:
        """Return ``{"detection_threshold_left_tilt": ..., ...}`` for export."""

        return {
            f"detection_threshold_{tilt.value}_tilt": value
            for tilt, value in self._thresholds.items()
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(left={self._thresholds[GratingTilt.LEFT]!r}, "
            f"right={self._thresholds[GratingTilt.RIGHT]!r})"
        )


__all__ = ["GratingTilt", "ParticipantVisibilityThreshold"]
