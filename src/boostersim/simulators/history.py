"""
Bounded beam histories for plotting collaborators.

All buffers are circular: the oldest entry is discarded once a buffer is full.
"""

from collections import deque
from typing import Tuple

import numpy as np

from .types import HistorySnapshot


class BeamHistory:
    """
    Circular buffers of recent beam positions.

    - trail: (cell, x, size) at every completed cell, 3 turns deep
    - turn_positions: (x, y) at turn boundaries
    - x_xp / y_yp / phi_de: turn-by-turn phase-space samples
    - positions: (x, sigma_x, y, sigma_y) sampled every few host ticks

    Transverse positions and sizes in trail, turn_positions and positions are in
    display units; phase-space samples are in mm/mrad and rad/GeV.

    NOT a Pydantic model because it uses deque and has mutable state.
    """

    def __init__(self, num_cells: int, history_length: int = 60, turn_position_length: int = 20):
        self.trail = deque(maxlen=3 * num_cells)
        self.turn_positions = deque(maxlen=turn_position_length)
        self.x_xp = deque(maxlen=history_length)
        self.y_yp = deque(maxlen=history_length)
        self.phi_de = deque(maxlen=history_length)
        self.positions = deque(maxlen=history_length)

    def record_cell(self, cell: int, x: float, size: float):
        self.trail.append((int(cell), float(x), float(size)))

    def record_turn(self, x_display: float, y_display: float,
                    x_xp: Tuple[float, float], y_yp: Tuple[float, float]):
        """Record the turn-boundary position and transverse phase space."""
        self.turn_positions.append((float(x_display), float(y_display)))
        self.x_xp.append((float(x_xp[0]), float(x_xp[1])))
        self.y_yp.append((float(y_yp[0]), float(y_yp[1])))

    def record_longitudinal(self, phi: float, de: float):
        self.phi_de.append((float(phi), float(de)))

    def record_tick(self, x: float, sigma_x: float, y: float, sigma_y: float):
        self.positions.append((float(x), float(sigma_x), float(y), float(sigma_y)))

    def clear(self):
        for buf in (self.trail, self.turn_positions, self.x_xp, self.y_yp, self.phi_de, self.positions):
            buf.clear()

    def positions_array(self) -> np.ndarray:
        """Per-tick samples as an (n, 4) array."""
        if not self.positions:
            return np.zeros((0, 4))
        return np.array(self.positions, dtype=float)

    def stability_score(self, aperture: float) -> float:
        """
        Stability indicator in [0, 100] from the per-tick samples.

        Each plane scores 0.6 * (1 - <|x|>/aperture) + 0.4 * (1 - <size>/aperture),
        each term floored at zero; the planes are averaged. An empty history
        scores 0.
        """
        data = self.positions_array()
        if len(data) == 0:
            return 0.0
        avg_x, avg_sx, avg_y, avg_sy = np.abs(data).mean(axis=0)

        def plane(pos, size):
            return 0.6 * max(1.0 - pos / aperture, 0.0) + 0.4 * max(1.0 - size / aperture, 0.0)

        return float((plane(avg_x, avg_sx) + plane(avg_y, avg_sy)) * 0.5 * 100.0)

    def snapshot(self) -> HistorySnapshot:
        return HistorySnapshot(
            trail=list(self.trail),
            turn_positions=list(self.turn_positions),
            x_xp=list(self.x_xp),
            y_yp=list(self.y_yp),
            phi_de=list(self.phi_de),
            positions=self.positions_array(),
        )

    def __len__(self):
        return len(self.positions)
