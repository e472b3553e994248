"""
Element-by-element beam tracker with aperture and loss accounting.

Every sub-step advances the beam's fractional progress through the current
element. Only when the progress reaches 1 is the element's physical effect
applied; sub-stepping is pacing, not a finer discretization.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from .types import BoosterConfig, BeamState, EnergyState, LossMode
from ..machine_portal.element import LatticeElement
from ..machine_portal.lattice import LatticeModel
from ..machine_portal.correctors import CorrectorNetwork
from ..machine_portal.aperture import Restriction
from ..optics.engine import OpticsEngine, OpticsState
from ..optics.matrix import apply

logger = logging.getLogger(__name__)

# Thin-lens corrector sensitivities
DISPERSION_KICK_SCALE = 0.1
TRIM_QUAD_KICK = 1e-3
SKEW_QUAD_KICK = 1e-3
SEXTUPOLE_KICK = 1e-6
ENVELOPE_GROWTH = 0.01
MIN_BETA_FOR_GROWTH = 0.1
# rad -> mrad for the bend bus kick
MRAD_PER_RAD = 1000.0


@dataclass
class StepEvent:
    """What happened during one sub-step."""
    element_applied: bool = False
    cell_completed: bool = False
    turn_completed: bool = False
    completed_cell: Optional[int] = None
    loss: Optional[LossMode] = None
    message: Optional[str] = None


class BeamTracker:
    """
    Integrates the beam through the lattice one element at a time.

    The tracker owns no state of its own; beam, energy, optics and correctors
    are passed in on every call.
    """

    def __init__(self, config: BoosterConfig, lattice: LatticeModel, optics_engine: OpticsEngine):
        self.config = config
        self.lattice = lattice
        self.optics_engine = optics_engine

    def to_display(self, value_mm: float) -> float:
        return value_mm * self.config.display_scale

    def step(self, beam: BeamState, energy: EnergyState, optics: OpticsState, network: CorrectorNetwork,
             bend_bus_trim: float = 0.0, quad_bus_trim: float = 0.0, hard: bool = False,
             restrictions: Sequence[Restriction] = ()) -> StepEvent:
        """
        Advance one sub-step.

        Args:
            beam: Beam to advance (mutated)
            energy: Energy of the current turn
            optics: Optics of the current turn
            network: Live corrector values
            bend_bus_trim: Fractional main bend trim
            quad_bus_trim: Fractional main gradient trim
            hard: Hard difficulty (envelope growth and restrictions)
            restrictions: One-sided aperture restrictions, checked in hard mode

        Returns:
            StepEvent; on a loss the beam position is not advanced
        """
        event = StepEvent()
        beam.progress += self.config.progress_per_step
        if beam.progress < 1.0:
            return event

        beam.progress = 0.0
        element = self.lattice.element(beam.cell, beam.element)
        self.apply_element(beam, element, energy, optics, network, bend_bus_trim, quad_bus_trim, hard)
        event.element_applied = True

        event.loss, event.message = self.check_losses(beam, hard, restrictions)
        if event.loss is not None:
            return event

        beam.element += 1
        if beam.element >= self.lattice.elements_per_cell:
            beam.element = 0
            event.cell_completed = True
            event.completed_cell = beam.cell
            beam.cell += 1
            if beam.cell >= self.lattice.num_cells:
                beam.cell = 0
                event.turn_completed = True
        return event

    def apply_element(self, beam: BeamState, element: LatticeElement, energy: EnergyState,
                      optics: OpticsState, network: CorrectorNetwork, bend_bus_trim: float = 0.0,
                      quad_bus_trim: float = 0.0, hard: bool = False):
        """Apply one element's matrices, kicks and envelope evolution to the beam."""
        mx, my = self.optics_engine.element_matrices(element, energy.brho, quad_bus_trim)

        disp_offset = 0.0
        if element.is_magnet:
            disp_offset = DISPERSION_KICK_SCALE * optics.dispersion_max * beam.dp

        beam.x, beam.xp = apply(mx, beam.x + disp_offset, beam.xp)
        beam.y, beam.yp = apply(my, beam.y, beam.yp)

        if element.is_magnet and bend_bus_trim != 0.0:
            brho_scale = self.optics_engine.brho_injection / energy.brho
            beam.xp += bend_bus_trim * self.config.dipole_angle * MRAD_PER_RAD * brho_scale

        if element.hosts_correctors:
            self.apply_correctors(beam, network, beam.cell)

        self.evolve_envelope(beam, optics, hard)

    @staticmethod
    def apply_correctors(beam: BeamState, network: CorrectorNetwork, cell: int):
        """Thin-lens kicks of one cell's corrector package."""
        corr = network[cell]
        x, y = beam.x, beam.y
        beam.xp += corr.h_trim
        beam.yp += corr.v_trim
        beam.xp -= corr.trim_quad * x * TRIM_QUAD_KICK
        beam.yp += corr.trim_quad * y * TRIM_QUAD_KICK
        beam.xp += corr.skew_quad * y * SKEW_QUAD_KICK
        beam.yp += corr.skew_quad * x * SKEW_QUAD_KICK
        beam.xp -= (corr.sext_a + corr.sext_b) * x * x * SEXTUPOLE_KICK

    def evolve_envelope(self, beam: BeamState, optics: OpticsState, hard: bool = False):
        """Multiplicative envelope growth from the orbit offset, floored at the minimum size."""
        gx = 1.0 + ENVELOPE_GROWTH * abs(beam.x) / optics.beta_x_max if optics.beta_x_max > MIN_BETA_FOR_GROWTH else 1.0
        gy = 1.0 + ENVELOPE_GROWTH * abs(beam.y) / optics.beta_y_max if optics.beta_y_max > MIN_BETA_FOR_GROWTH else 1.0
        beam.sigma_x = max(beam.sigma_x * gx, self.config.min_beam_size)
        beam.sigma_y = max(beam.sigma_y * gy, self.config.min_beam_size)
        if hard:
            beam.sigma_x += self.config.hard_size_growth
            beam.sigma_y += self.config.hard_size_growth

    def soft_loss(self, beam: BeamState) -> float:
        """Losses from the beam edges protruding past the loss zone."""
        cfg = self.config
        x, y = self.to_display(beam.x), self.to_display(beam.y)
        hx, hy = 0.5 * self.to_display(beam.sigma_x), 0.5 * self.to_display(beam.sigma_y)
        loss = 0.0
        for edge in (x + hx, y + hy):
            if edge > cfg.loss_zone:
                loss += (edge - cfg.loss_zone) * cfg.soft_loss_rate
        for edge in (x - hx, y - hy):
            if edge < -cfg.loss_zone:
                loss += (-edge - cfg.loss_zone) * cfg.soft_loss_rate
        return loss

    def check_losses(self, beam: BeamState, hard: bool = False,
                     restrictions: Sequence[Restriction] = ()):
        """
        Aperture and loss accounting after an element.

        Returns:
            (LossMode, message) when the beam is lost, else (None, None)
        """
        cfg = self.config
        x, y = self.to_display(beam.x), self.to_display(beam.y)

        if not beam.is_finite() or abs(x) > cfg.aperture or abs(y) > cfg.aperture:
            return LossMode.APERTURE, "Hit aperture wall!"

        loss = self.soft_loss(beam)
        if loss > 0.0:
            beam.losses += loss
            beam.intensity *= max(1.0 - loss * 0.001, 0.0)

        if beam.losses >= cfg.max_losses:
            return LossMode.LOSS_LIMIT, f"Beam losses exceeded {cfg.max_losses:.0f}!"

        if hard:
            for r in restrictions:
                if r.cell == beam.cell and r.blocks(x, y):
                    return LossMode.RESTRICTION, f"Hit cell {r.cell + 1} restriction! ({r.label})"
        return None, None
