"""
Energy ramp and relativistic kinematics.

The kinetic energy follows a fixed sinusoidal ramp with zero slope at both
ends; every other quantity is derived from it. The game phase while the beam
circulates is a pure function of gamma / gamma_t and the turns remaining.
"""

import logging
import numpy as np

from .types import BoosterConfig, EnergyState, GamePhase

logger = logging.getLogger(__name__)

# GeV/c -> T m
BRHO_PER_GEV = 0.29979

# gamma / gamma_t thresholds between the ramp phases
EARLY_RAMP_LIMIT = 0.85
PRE_TRANSITION_LIMIT = 0.97
TRANSITION_LIMIT = 1.03


def kinetic_to_gamma(ke_gev: float, mass_gev: float) -> float:
    return (ke_gev + mass_gev) / mass_gev


def gamma_to_beta(gamma: float) -> float:
    return float(np.sqrt(max(1.0 - 1.0 / gamma ** 2, 0.0)))


def gamma_to_momentum(gamma: float, mass_gev: float) -> float:
    """Momentum in GeV/c."""
    return gamma * gamma_to_beta(gamma) * mass_gev


def momentum_to_brho(momentum_gev: float) -> float:
    """Magnetic rigidity in T m."""
    return momentum_gev / BRHO_PER_GEV


def slip_factor(gamma: float, gamma_transition: float) -> float:
    """Phase slip factor eta = 1/gamma_t^2 - 1/gamma^2; changes sign at transition."""
    return 1.0 / gamma_transition ** 2 - 1.0 / gamma ** 2


class EnergyRampController:
    """Maps turn numbers to energy snapshots and ramp phases."""

    def __init__(self, config: BoosterConfig):
        self.config = config
        self.injection = self.state_for_turn(0)

    def ramp_fraction(self, turn: int) -> float:
        """Ramp parameter in [0, 1]; clamped so energy never exceeds extraction."""
        return min(max(turn, 0) / self.config.turns_in_cycle, 1.0)

    def kinetic_energy(self, turn: int) -> float:
        """Kinetic energy in GeV at a turn."""
        cfg = self.config
        t = self.ramp_fraction(turn)
        return cfg.ke_injection_gev + 0.5 * (cfg.ke_extraction_gev - cfg.ke_injection_gev) * (1.0 - np.cos(np.pi * t))

    def state_for_turn(self, turn: int) -> EnergyState:
        cfg = self.config
        ke = float(self.kinetic_energy(turn))
        gamma = kinetic_to_gamma(ke, cfg.proton_mass_gev)
        momentum = gamma_to_momentum(gamma, cfg.proton_mass_gev)
        return EnergyState(
            turn=max(turn, 0),
            ke_gev=ke,
            gamma=gamma,
            beta=gamma_to_beta(gamma),
            momentum_gev=momentum,
            brho=momentum_to_brho(momentum),
            total_energy_gev=gamma * cfg.proton_mass_gev,
            slip_factor=slip_factor(gamma, cfg.gamma_transition),
            gamma_ratio=gamma / cfg.gamma_transition,
        )

    def phase_for(self, energy: EnergyState) -> GamePhase:
        """
        Ramp phase of a circulating beam.

        Extraction is only reachable above transition, once the turn enters
        the extraction window at the end of the cycle.
        """
        ratio = energy.gamma_ratio
        if ratio < EARLY_RAMP_LIMIT:
            return GamePhase.EARLY_RAMP
        if ratio < PRE_TRANSITION_LIMIT:
            return GamePhase.PRE_TRANSITION
        if ratio < TRANSITION_LIMIT:
            return GamePhase.TRANSITION
        if energy.turn < self.config.turns_in_cycle - self.config.extraction_window_turns:
            return GamePhase.POST_TRANSITION
        return GamePhase.EXTRACTION

    def cycle_complete(self, turn: int) -> bool:
        return turn >= self.config.turns_in_cycle

    def __repr__(self):
        return (f"EnergyRampController({self.config.ke_injection_gev} -> "
                f"{self.config.ke_extraction_gev} GeV over {self.config.turns_in_cycle} turns)")
