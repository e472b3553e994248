"""
Type definitions and enums for the boostersim simulation engine.

This module provides the common enums, configuration model, read-only state
snapshots and exception classes used across the simulation components.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple
from pathlib import Path
import logging

import numpy as np
import yaml
from pydantic import Field, field_validator, model_validator

from ..models.base import PhysicsBaseModel
from ..models.validators import (
    validate_energy_range, validate_gamma_transition, validate_steps_per_tick
)
from ..optics.engine import OpticsState

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    """Phases of one booster cycle. Single source of truth for win/loss."""
    SETUP = "setup"                      # pre-injection: adjust correctors
    INJECTION = "injection"              # beam just entered at injection energy
    EARLY_RAMP = "early_ramp"            # ramping, tune correction needed
    PRE_TRANSITION = "pre_transition"    # approaching gamma_t, chromaticity critical
    TRANSITION = "transition"            # gamma close to gamma_t
    POST_TRANSITION = "post_transition"  # damp oscillations
    EXTRACTION = "extraction"            # reached extraction energy
    LOST = "lost"                        # beam lost

    @property
    def is_terminal(self) -> bool:
        return self in (GamePhase.EXTRACTION, GamePhase.LOST)

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    GamePhase.SETUP: "SETUP",
    GamePhase.INJECTION: "INJECT",
    GamePhase.EARLY_RAMP: "RAMP",
    GamePhase.PRE_TRANSITION: "PRE-Xt",
    GamePhase.TRANSITION: "TRANSITION",
    GamePhase.POST_TRANSITION: "POST-Xt",
    GamePhase.EXTRACTION: "EXTRACTED!",
    GamePhase.LOST: "LOST",
}


class LossMode(str, Enum):
    """Reason the beam was lost."""
    APERTURE = "aperture"            # hard wall: centroid outside the aperture
    LOSS_LIMIT = "loss_limit"        # cumulative soft losses reached the limit
    LONGITUDINAL = "longitudinal"    # limit reached through RF bucket escape
    RESTRICTION = "restriction"      # one-sided aperture restriction (hard mode)


class Difficulty(str, Enum):
    """Game difficulty."""
    EASY = "easy"
    HARD = "hard"

    def toggle(self) -> "Difficulty":
        return Difficulty.HARD if self == Difficulty.EASY else Difficulty.EASY


class SimSpeed(str, Enum):
    """Simulation pacing; maps to sub-steps per host tick."""
    SLOW = "slow"       # ~0.25 rev/s
    NORMAL = "normal"   # ~1 rev/s
    FAST = "fast"       # ~10 rev/s

    def next(self) -> "SimSpeed":
        order = list(SimSpeed)
        return order[(order.index(self) + 1) % len(order)]


class BoosterConfig(PhysicsBaseModel):
    """
    Configuration of the booster ring, its ramp and the game balance.

    Defaults describe a Fermilab-Booster-like machine: 24 identical cells of
    combined-function magnets, 0.4 -> 8 GeV kinetic energy, gamma_t = 5.446.
    The display/aperture numbers are game-balance constants tuned against the
    heuristic optics formulas and should be changed together.
    """

    # ========== Lattice ==========
    num_cells: int = Field(default=24, ge=5, description="Number of identical cells")
    magnet_length: float = Field(default=2.889, gt=0, description="Combined-function magnet length in m")
    short_drift_length: float = Field(default=1.2, gt=0, description="Short straight length in m")
    long_drift_length: float = Field(default=6.0, gt=0, description="Long straight length in m")
    k1_f_injection: float = Field(default=0.0542, ge=0, description="F-magnet gradient at injection in m^-2")
    k1_d_injection: float = Field(default=0.0577, ge=0, description="D-magnet gradient magnitude at injection in m^-2")
    dipoles_per_ring: int = Field(default=96, gt=0, description="Number of bending magnets sharing 2*pi")

    # ========== Energy ramp ==========
    ke_injection_gev: float = Field(default=0.4, description="Kinetic energy at injection in GeV")
    ke_extraction_gev: float = Field(default=8.0, description="Kinetic energy at extraction in GeV")
    proton_mass_gev: float = Field(default=0.93827, gt=0, description="Proton rest mass in GeV")
    gamma_transition: float = Field(default=5.446, description="Transition gamma")
    turns_in_cycle: int = Field(default=15000, ge=1, description="Turns from injection to extraction")
    extraction_window_turns: int = Field(default=500, ge=0, description="Turns before the end of the cycle counted as extraction")

    # ========== RF ==========
    harmonic_number: int = Field(default=84, gt=0, description="RF harmonic number")
    rf_voltage_mv: float = Field(default=0.5, ge=0, description="Initial ring RF voltage in MV")
    max_rf_voltage_mv: float = Field(default=1.16, gt=0, description="Maximum ring RF voltage in MV")
    rf_voltage_step_mv: float = Field(default=0.02, gt=0, description="RF voltage adjustment step in MV")
    rf_phase_deg: float = Field(default=0.0, description="Initial synchronous phase in degrees")

    # ========== Initial optics ==========
    tune_x_bare: float = Field(default=6.7, description="Horizontal bare tune before the first optics update")
    tune_y_bare: float = Field(default=6.8, description="Vertical bare tune before the first optics update")
    beta_x_initial: float = Field(default=33.7, gt=0, description="Initial horizontal beta max in m")
    beta_y_initial: float = Field(default=20.4, gt=0, description="Initial vertical beta max in m")
    dispersion_initial: float = Field(default=3.2, description="Initial maximum dispersion in m")
    chromaticity_x_natural: float = Field(default=-7.0, description="Initial horizontal chromaticity")
    chromaticity_y_natural: float = Field(default=-8.0, description="Initial vertical chromaticity")
    chromaticity_target: float = Field(default=7.0, ge=0, description="Chromaticity magnitude giving a clean transition crossing")

    # ========== Beam ==========
    emittance_norm_95: float = Field(default=12.0, gt=0, description="Normalized 95% emittance in pi mm mrad")
    injection_target_range: float = Field(default=5.0, ge=0, description="Half-range of the random injection target in mm")

    # ========== Apertures and losses (display units) ==========
    display_scale: float = Field(default=0.5, gt=0, description="Display units per mm")
    aperture: float = Field(default=50.0, gt=0, description="Hard aperture in display units")
    loss_zone: float = Field(default=25.0, gt=0, description="Soft-loss threshold in display units")
    max_losses: float = Field(default=100.0, gt=0, description="Cumulative losses ending the game")
    soft_loss_rate: float = Field(default=0.3, ge=0, description="Losses per display unit of protrusion")
    longitudinal_loss: float = Field(default=2.0, ge=0, description="Losses per turn outside the RF bucket")
    min_beam_size: float = Field(default=0.5, gt=0, description="Envelope floor in mm")
    hard_size_growth: float = Field(default=0.05, ge=0, description="Envelope growth per element in hard mode (mm)")
    restrictions_per_plane: int = Field(default=2, ge=0, description="One-sided restrictions per plane in hard mode")

    # ========== Ramp table and controls ==========
    num_ramp_checkpoints: int = Field(default=10, ge=1, description="Setpoints per corrector axis")
    ramp_checkpoint_spacing: int = Field(default=1, ge=1, description="Turns between ramp checkpoints")
    max_ramp_delta: float = Field(default=0.5, gt=0, description="Max difference between adjacent setpoints")
    adjust_speed: float = Field(default=0.001, gt=0, description="Initial corrector adjustment step")
    min_adjust_speed: float = Field(default=0.0001, gt=0, description="Smallest adjustment step")
    max_adjust_speed: float = Field(default=1.0, gt=0, description="Largest adjustment step")
    max_quad_bus_trim: float = Field(default=0.2, ge=0, description="Quad bus trim limit (fraction)")
    max_bend_bus_trim: float = Field(default=0.1, ge=0, description="Bend bus trim limit (fraction)")

    # ========== Pacing and history ==========
    progress_per_step: float = Field(default=0.35, gt=0, le=1.0, description="Element progress per sub-step")
    steps_per_tick: List[int] = Field(default_factory=lambda: [4, 14, 144], min_length=3, max_length=3,
                                      description="Sub-steps per tick for slow/normal/fast")
    history_length: int = Field(default=60, ge=1, description="Length of per-tick and per-turn histories")
    turn_position_length: int = Field(default=20, ge=1, description="Turn-boundary positions kept")
    history_interval_ticks: int = Field(default=3, ge=1, description="Ticks between display history samples")

    # ========== Randomness ==========
    seed: Optional[int] = Field(default=None, description="Seed for restriction placement and injection target")

    @field_validator('ke_injection_gev', 'ke_extraction_gev')
    @classmethod
    def validate_kinetic_energy(cls, v):
        """Validate kinetic energies are physically reasonable."""
        return validate_energy_range(v)

    @field_validator('gamma_transition')
    @classmethod
    def validate_gamma_t(cls, v):
        return validate_gamma_transition(v)

    @field_validator('steps_per_tick')
    @classmethod
    def validate_speed_table(cls, v):
        return validate_steps_per_tick(v)

    @model_validator(mode='after')
    def validate_consistency(self):
        """Cross-field checks."""
        if self.ke_extraction_gev <= self.ke_injection_gev:
            raise ValueError("Extraction energy must exceed injection energy")
        if self.loss_zone >= self.aperture:
            raise ValueError("Loss zone must lie inside the aperture")
        if self.min_adjust_speed > self.max_adjust_speed:
            raise ValueError("min_adjust_speed must not exceed max_adjust_speed")
        if self.rf_voltage_mv > self.max_rf_voltage_mv:
            raise ValueError("Initial RF voltage exceeds the maximum")
        return self

    @property
    def cell_length(self) -> float:
        """Length of one cell (F, Os, F, D, OL, D) in m."""
        return 4 * self.magnet_length + self.short_drift_length + self.long_drift_length

    @property
    def dipole_angle(self) -> float:
        """Design bend per magnet in rad."""
        return 2 * np.pi / self.dipoles_per_ring

    def steps_for(self, speed: SimSpeed) -> int:
        """Sub-steps per tick for a simulation speed."""
        return self.steps_per_tick[list(SimSpeed).index(SimSpeed(speed))]

    @classmethod
    def from_yaml(cls, path) -> "BoosterConfig":
        """
        Load a configuration from a YAML file.

        Keys absent from the file keep their defaults.

        Raises:
            ConfigurationError: If the file is missing or not a mapping
            pydantic.ValidationError: If a value fails validation
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} is malformed: root should be a mapping")
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    def to_yaml(self, path):
        """Write the configuration to a YAML file."""
        with open(Path(path), 'w') as f:
            yaml.safe_dump(self.to_yaml_dict(), f, sort_keys=False)


class EnergyState(PhysicsBaseModel):
    """Beam energy and derived relativistic quantities for one turn."""
    turn: int = Field(ge=0, description="Turn number in the cycle")
    ke_gev: float = Field(description="Kinetic energy in GeV")
    gamma: float = Field(ge=1.0, description="Lorentz factor")
    beta: float = Field(ge=0.0, le=1.0, description="Relativistic velocity")
    momentum_gev: float = Field(description="Momentum in GeV/c")
    brho: float = Field(description="Magnetic rigidity in T m")
    total_energy_gev: float = Field(description="Total energy in GeV")
    slip_factor: float = Field(description="Phase slip factor eta")
    gamma_ratio: float = Field(description="gamma / gamma_transition")


class BeamSnapshot(PhysicsBaseModel):
    """Read-only copy of the beam state."""
    x: float = Field(description="Horizontal position in mm")
    xp: float = Field(description="Horizontal angle in mrad")
    y: float = Field(description="Vertical position in mm")
    yp: float = Field(description="Vertical angle in mrad")
    sigma_x: float = Field(description="Horizontal envelope size in mm")
    sigma_y: float = Field(description="Vertical envelope size in mm")
    dp: float = Field(description="Relative momentum offset")
    phi: float = Field(description="RF phase relative to synchronous in rad")
    de: float = Field(description="Energy offset from synchronous in GeV")
    cell: int = Field(ge=0, description="Current cell")
    element: int = Field(ge=0, description="Current element in the cell")
    progress: float = Field(ge=0.0, description="Fractional progress through the element")
    losses: float = Field(ge=0.0, description="Accumulated losses")
    intensity: float = Field(ge=0.0, le=1.0, description="Relative surviving intensity")


def geometric_emittance_rms(config: BoosterConfig, energy: EnergyState) -> float:
    """
    Geometric rms emittance in mm mrad.

    The normalized 95% emittance is divided by beta*gamma, and by 6 to convert
    95% to rms for a Gaussian beam.
    """
    return config.emittance_norm_95 / (energy.beta * energy.gamma) / 6.0


@dataclass
class BeamState:
    """
    Centroid, envelope and longitudinal coordinates of the bunch.

    Created at injection and mutated every sub-step, so NOT a Pydantic model;
    use snapshot() for a validated copy.
    """
    x: float = 0.0
    xp: float = 0.0
    y: float = 0.0
    yp: float = 0.0
    sigma_x: float = 1.0
    sigma_y: float = 1.0
    dp: float = 0.0
    phi: float = 0.0
    de: float = 0.0
    cell: int = 0
    element: int = 0
    progress: float = 0.0
    losses: float = 0.0
    intensity: float = 1.0

    @classmethod
    def at_injection(cls, config: BoosterConfig, energy: EnergyState,
                     x: float = 0.0, y: float = 0.0) -> "BeamState":
        """
        Fresh beam at the start of cell 0 with zero angles and offsets.

        Envelopes are sigma = sqrt(eps_rms * beta_max) using the configured
        initial beta values.
        """
        emit = geometric_emittance_rms(config, energy)
        return cls(
            x=float(x),
            y=float(y),
            sigma_x=float(np.sqrt(emit * config.beta_x_initial)),
            sigma_y=float(np.sqrt(emit * config.beta_y_initial)),
        )

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite([self.x, self.xp, self.y, self.yp, self.sigma_x,
                                        self.sigma_y, self.dp, self.phi, self.de])))

    def snapshot(self) -> BeamSnapshot:
        return BeamSnapshot(
            x=self.x, xp=self.xp, y=self.y, yp=self.yp,
            sigma_x=self.sigma_x, sigma_y=self.sigma_y,
            dp=self.dp, phi=self.phi, de=self.de,
            cell=self.cell, element=self.element, progress=self.progress,
            losses=self.losses, intensity=min(max(self.intensity, 0.0), 1.0),
        )


class HistorySnapshot(PhysicsBaseModel):
    """Bounded histories for plotting collaborators."""
    trail: List[Tuple[int, float, float]] = Field(default_factory=list, description="(cell, x, size) in display units")
    turn_positions: List[Tuple[float, float]] = Field(default_factory=list, description="(x, y) at turn boundaries")
    x_xp: List[Tuple[float, float]] = Field(default_factory=list, description="Turn-by-turn (x, x')")
    y_yp: List[Tuple[float, float]] = Field(default_factory=list, description="Turn-by-turn (y, y')")
    phi_de: List[Tuple[float, float]] = Field(default_factory=list, description="Turn-by-turn (phi, dE)")
    positions: np.ndarray = Field(default_factory=lambda: np.zeros((0, 4)),
                                  description="Per-tick samples (x, sigma_x, y, sigma_y) in display units")


class SimulationSnapshot(PhysicsBaseModel):
    """Everything a rendering collaborator may read."""
    phase: GamePhase = Field(description="Current game phase")
    loss_mode: Optional[LossMode] = Field(default=None, description="Why the beam was lost")
    beam: BeamSnapshot
    energy: EnergyState
    optics: OpticsState
    history: HistorySnapshot
    running: bool = Field(description="Beam is circulating")
    paused: bool = Field(description="Ticks are withheld")
    turns_completed: int = Field(ge=0)
    best_turns: int = Field(ge=0)
    transition_crossed: bool
    difficulty: Difficulty
    sim_speed: SimSpeed
    selected_checkpoint: int = Field(ge=0)
    adjust_speed: float
    rf_voltage_mv: float
    rf_phase_deg: float
    bend_bus_trim: float
    quad_bus_trim: float
    bump: Optional[Dict[str, Any]] = Field(default=None, description="Active bump (size, start_cell, axis)")
    message: Optional[str] = Field(default=None, description="Most recent status message")


class SimulationError(Exception):
    """Base exception class for simulation errors."""
    pass


class ConfigurationError(SimulationError):
    """Raised when simulation configuration is invalid."""
    pass
