"""State snapshot dataclasses for chemical fields."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import numpy as np


@dataclass(frozen=True)
class FieldSnapshot:
    """Immutable copy of a field's concentrations at a given update count."""
    name: Optional[str]
    step: int                       # diffusion updates applied so far
    colour: Tuple[int, int, int]
    displayed: bool
    concentrations: np.ndarray      # Read-only copy, indexed [x, y, z]

    @classmethod
    def capture(cls, name: Optional[str], step: int,
                colour: Tuple[int, int, int], displayed: bool,
                grid: np.ndarray) -> "FieldSnapshot":
        """Copy the grid and freeze the copy."""
        values = grid.copy()
        values.flags.writeable = False
        return cls(name=name, step=step, colour=colour,
                   displayed=displayed, concentrations=values)

    @property
    def total(self) -> float:
        return float(np.sum(self.concentrations))

    @property
    def maximum(self) -> float:
        return float(np.max(self.concentrations))

    @property
    def mean(self) -> float:
        return float(np.mean(self.concentrations))

    def metrics(self) -> Dict[str, float]:
        """Summary values for logging or reporting."""
        return {
            "step": self.step,
            "total": self.total,
            "max": self.maximum,
            "mean": self.mean,
        }
