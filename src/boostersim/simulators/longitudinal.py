"""
Longitudinal (RF bucket) dynamics and the transition crossing.

Synchrotron motion is integrated once per completed turn:

    phi += 2 pi h eta dp
    dE  += V / (2 pi beta^2 E) * (sin(phi_s + phi) - sin(phi_s))
    dp   = dE / E

Leaving the RF bucket is a longitudinal loss, accounted separately from
transverse aperture losses.
"""

from typing import Optional
import logging

import numpy as np

from .types import BoosterConfig, BeamState, EnergyState
from ..optics.engine import OpticsState

logger = logging.getLogger(__name__)

# Bucket half-height used where |eta| vanishes
TRANSITION_BUCKET_HEIGHT = 0.001
SLIP_EPSILON = 1e-6
BUCKET_ESCAPE_FACTOR = 3.0

# gamma / gamma_t window in which the crossing perturbation acts
TRANSITION_WINDOW = (0.99, 1.01)
TRANSITION_COMPLETE_RATIO = 1.005


class LongitudinalDynamics:
    """
    RF system and single-particle synchrotron motion.

    RF voltage and synchronous phase are player settings that survive a reset.
    """

    def __init__(self, config: BoosterConfig):
        self.config = config
        self.rf_voltage_mv = config.rf_voltage_mv
        self.rf_phase_deg = config.rf_phase_deg

    @property
    def voltage_gv(self) -> float:
        return self.rf_voltage_mv * 1e-3

    def adjust_voltage(self, steps: int) -> float:
        """Change the RF voltage by ``steps`` configured increments, clamped to [0, max]."""
        v = self.rf_voltage_mv + steps * self.config.rf_voltage_step_mv
        self.rf_voltage_mv = float(min(max(v, 0.0), self.config.max_rf_voltage_mv))
        return self.rf_voltage_mv

    def flip_phase(self) -> float:
        """Transition phase jump: phi_s -> 180 deg - phi_s."""
        self.rf_phase_deg = 180.0 - self.rf_phase_deg
        logger.info(f"RF phase flipped to {self.rf_phase_deg:.1f} deg")
        return self.rf_phase_deg

    def bucket_half_height(self, energy: EnergyState) -> float:
        """
        Separatrix half-height in GeV, sqrt(2 V beta^2 E / (pi h |eta|)).

        Returns a small fixed height at transition instead of diverging.
        """
        eta = energy.slip_factor
        if abs(eta) <= SLIP_EPSILON:
            return TRANSITION_BUCKET_HEIGHT
        return float(np.sqrt(2.0 * self.voltage_gv * energy.beta ** 2 * energy.total_energy_gev
                             / (np.pi * self.config.harmonic_number * abs(eta))))

    def advance(self, beam: BeamState, energy: EnergyState) -> bool:
        """
        Integrate one turn of synchrotron motion.

        Returns:
            True if the beam is outside the bucket after the update; the
            longitudinal loss has then already been added to ``beam.losses``
        """
        total_e = energy.total_energy_gev
        phi_s = np.deg2rad(self.rf_phase_deg)

        beam.phi += float(2 * np.pi * self.config.harmonic_number * energy.slip_factor * beam.dp)
        kick = self.voltage_gv / (2 * np.pi * energy.beta ** 2 * total_e) * (np.sin(phi_s + beam.phi) - np.sin(phi_s))
        beam.de += float(kick)
        beam.dp = beam.de / total_e

        escaped = abs(beam.de) > BUCKET_ESCAPE_FACTOR * self.bucket_half_height(energy) or abs(beam.phi) > np.pi
        if escaped:
            beam.losses += self.config.longitudinal_loss
        return bool(escaped)


class TransitionCrossing:
    """
    Perturbation applied while gamma sweeps through gamma_t.

    Acts on every completed turn inside the crossing window until the crossing
    completes; ``crossed`` is idempotent and only cleared at injection.
    """

    def __init__(self, config: BoosterConfig):
        self.config = config
        self.crossed = False

    def chromaticity_quality(self, optics: OpticsState) -> float:
        """Summed deviation of |chromaticity| from the target; 0 is a clean crossing."""
        target = self.config.chromaticity_target
        return abs(abs(optics.chromaticity_x) - target) + abs(abs(optics.chromaticity_y) - target)

    def in_window(self, energy: EnergyState) -> bool:
        return TRANSITION_WINDOW[0] < energy.gamma_ratio < TRANSITION_WINDOW[1]

    def apply(self, beam: BeamState, energy: EnergyState, optics: OpticsState) -> Optional[str]:
        """
        Apply one turn of the crossing perturbation.

        Returns:
            The completion message on the turn the crossing completes, else None
        """
        if self.crossed or not self.in_window(energy):
            return None

        quality = self.chromaticity_quality(optics)
        amplitude = 0.5 + 0.3 * quality
        beam.phi += 0.1 * amplitude
        beam.de += 0.001 * amplitude

        blowup = 1.0 + 0.05 * quality
        beam.sigma_x *= blowup
        beam.sigma_y *= blowup

        beam.losses += 2.0 * quality
        beam.intensity *= max(1.0 - 0.01 * quality, 0.5)

        if energy.gamma_ratio > TRANSITION_COMPLETE_RATIO:
            self.crossed = True
            message = f"Transition crossed! Chrom quality: {quality:.1f}"
            logger.info(f"{message} (turn {energy.turn})")
            return message
        return None
