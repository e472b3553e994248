# Ramp table: power-supply setpoints of every corrector at evenly spaced turn
# checkpoints. Adjacent setpoints of one corrector never differ by more than
# max_delta; edits are clamped into that slew-rate window, never rejected.

from typing import Optional
import logging

import numpy as np

from .correctors import CorrectorAxis, CorrectorNetwork

logger = logging.getLogger(__name__)


class RampTable:
    """
    Setpoints stored as a ``(num_cells, num_axes, num_checkpoints)`` array.

    Tracking uses a nearest-checkpoint lookup, no interpolation.
    """

    def __init__(self, num_cells: int, num_checkpoints: int = 10, max_delta: float = 0.5,
                 checkpoint_spacing: int = 1):
        if num_checkpoints < 1:
            raise ValueError("Ramp table needs at least one checkpoint")
        self.num_cells = num_cells
        self.num_checkpoints = num_checkpoints
        self.max_delta = max_delta
        self.checkpoint_spacing = checkpoint_spacing
        self.setpoints = np.zeros((num_cells, len(CorrectorAxis), num_checkpoints))

    def get(self, cell: int, axis: CorrectorAxis, checkpoint: int) -> float:
        return float(self.setpoints[cell, CorrectorAxis(axis).index, checkpoint])

    def values(self, cell: int, axis: CorrectorAxis) -> np.ndarray:
        """Copy of all setpoints of one corrector."""
        return self.setpoints[cell, CorrectorAxis(axis).index].copy()

    def checkpoint_for_turn(self, turn: int) -> int:
        return min(max(turn, 0) // self.checkpoint_spacing, self.num_checkpoints - 1)

    def value_for_turn(self, cell: int, axis: CorrectorAxis, turn: int) -> float:
        return self.get(cell, axis, self.checkpoint_for_turn(turn))

    def clamp_value(self, cell: int, axis: CorrectorAxis, checkpoint: int, value: float) -> float:
        """Clamp ``value`` to within max_delta of the existing neighbours."""
        row = self.setpoints[cell, CorrectorAxis(axis).index]
        v = float(value)
        if checkpoint > 0:
            prev = row[checkpoint - 1]
            v = min(max(v, prev - self.max_delta), prev + self.max_delta)
        if checkpoint < self.num_checkpoints - 1:
            nxt = row[checkpoint + 1]
            v = min(max(v, nxt - self.max_delta), nxt + self.max_delta)
        return float(v)

    def set(self, cell: int, axis: CorrectorAxis, checkpoint: int, value: float) -> float:
        """
        Write a setpoint, clamped into the slew-rate window.

        Returns:
            The value actually stored
        """
        if not np.isfinite(value):
            logger.warning(f"Ignoring non-finite ramp setpoint for cell {cell} {CorrectorAxis(axis).value}")
            return self.get(cell, axis, checkpoint)
        clamped = self.clamp_value(cell, axis, checkpoint, value)
        self.setpoints[cell, CorrectorAxis(axis).index, checkpoint] = clamped
        return clamped

    def adjust(self, cell: int, axis: CorrectorAxis, checkpoint: int, delta: float) -> float:
        """Add ``delta`` to a setpoint; returns the clamped result."""
        return self.set(cell, axis, checkpoint, self.get(cell, axis, checkpoint) + delta)

    def load_checkpoint(self, network: CorrectorNetwork, checkpoint: int):
        """Write every live corrector value from one checkpoint."""
        for cell, package in enumerate(network.packages):
            for axis in CorrectorAxis:
                package.set(axis, self.setpoints[cell, axis.index, checkpoint])

    def load_turn(self, network: CorrectorNetwork, turn: int):
        self.load_checkpoint(network, self.checkpoint_for_turn(turn))

    def copy_cell(self, source: int, axis: Optional[CorrectorAxis] = None):
        """Copy all checkpoints of one cell to every other cell."""
        if axis is None:
            self.setpoints[:] = self.setpoints[source]
        else:
            idx = CorrectorAxis(axis).index
            self.setpoints[:, idx] = self.setpoints[source, idx]

    def max_step(self) -> float:
        """Largest difference between adjacent setpoints anywhere in the table."""
        if self.num_checkpoints < 2:
            return 0.0
        return float(np.abs(np.diff(self.setpoints, axis=-1)).max())
