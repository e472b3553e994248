"""
Energy-dependent optics of the booster lattice.

The engine rebuilds every element matrix from scratch on each update, composes
one cell per plane and extracts tune, a beta-function proxy, dispersion and
chromaticity. The beta, dispersion and chromaticity formulas are deliberately
heuristic; the loss-zone, aperture and ramp-delta constants are balanced
against them.
"""

from typing import Optional, Tuple, TYPE_CHECKING
import logging

import numpy as np
from pydantic import Field

from ..models.base import PhysicsBaseModel
from ..machine_portal.element import ElementType, LatticeElement
from ..machine_portal.correctors import CorrectorAxis
from .matrix import drift_matrix, focusing_matrix, compose, phase_advance

if TYPE_CHECKING:
    from ..machine_portal.lattice import LatticeModel
    from ..machine_portal.correctors import CorrectorNetwork
    from ..simulators.types import BoosterConfig, EnergyState

logger = logging.getLogger(__name__)

# Fixed sensitivities of the heuristic model
TRIM_QUAD_TUNE_SENSITIVITY = 0.05
SEXT_PRIMARY_SENSITIVITY = 2.0
SEXT_SECONDARY_SENSITIVITY = 1.0
MIN_SIN_MU = 0.01
DISPERSION_SLIP_THRESHOLD = 0.01
DISPERSION_LIMIT = 50.0
SPACE_CHARGE_COEFFICIENT = -0.3


class OpticsState(PhysicsBaseModel):
    """
    Optics summary recomputed once per completed turn.

    ``bare_tune_*`` hold the matrix tunes; ``tune_*`` add the trim-quad
    correction. Both are retained from the previous state whenever a plane is
    momentarily unstable.
    """
    tune_x: float = Field(description="Horizontal tune (Qx)")
    tune_y: float = Field(description="Vertical tune (Qy)")
    bare_tune_x: float = Field(description="Horizontal tune from the cell matrix")
    bare_tune_y: float = Field(description="Vertical tune from the cell matrix")
    beta_x_max: float = Field(gt=0, description="Horizontal beta proxy in m")
    beta_y_max: float = Field(gt=0, description="Vertical beta proxy in m")
    dispersion_max: float = Field(description="Maximum dispersion in m")
    chromaticity_x: float = Field(description="Horizontal chromaticity")
    chromaticity_y: float = Field(description="Vertical chromaticity")
    sc_tune_shift: float = Field(default=0.0, description="Space-charge tune shift")
    stable_x: bool = Field(default=True, description="Horizontal cell matrix was stable")
    stable_y: bool = Field(default=True, description="Vertical cell matrix was stable")

    @property
    def effective_tune_x(self) -> float:
        """Horizontal tune including the space-charge shift."""
        return self.tune_x + self.sc_tune_shift

    @property
    def effective_tune_y(self) -> float:
        """Vertical tune including the space-charge shift."""
        return self.tune_y + self.sc_tune_shift


class OpticsEngine:
    """
    Computes transfer matrices and optics for the current energy.

    Gradients follow a fixed current profile, so the normalized focusing
    strength falls as the beam rigidity rises:
    ``k = k_inj * (Brho_inj / Brho) * (1 + quad_bus_trim)``.
    """

    def __init__(self, config: "BoosterConfig", lattice: "LatticeModel", brho_injection: float):
        self.config = config
        self.lattice = lattice
        self.brho_injection = brho_injection

    def initial_state(self) -> OpticsState:
        """Optics before the first update, taken from the configuration."""
        cfg = self.config
        return OpticsState(
            tune_x=cfg.tune_x_bare,
            tune_y=cfg.tune_y_bare,
            bare_tune_x=cfg.tune_x_bare,
            bare_tune_y=cfg.tune_y_bare,
            beta_x_max=cfg.beta_x_initial,
            beta_y_max=cfg.beta_y_initial,
            dispersion_max=cfg.dispersion_initial,
            chromaticity_x=cfg.chromaticity_x_natural,
            chromaticity_y=cfg.chromaticity_y_natural,
        )

    # === Matrices ===

    def gradient(self, element_type: ElementType, brho: float, quad_bus_trim: float = 0.0) -> float:
        """Signed horizontal gradient of an element at rigidity ``brho``."""
        scale = (self.brho_injection / brho) * (1.0 + quad_bus_trim)
        if element_type == ElementType.F_MAGNET:
            return self.config.k1_f_injection * scale
        if element_type == ElementType.D_MAGNET:
            return -self.config.k1_d_injection * scale
        return 0.0

    def element_matrices(self, element: LatticeElement, brho: float,
                         quad_bus_trim: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
        """
        Horizontal and vertical matrices of one element.

        The vertical plane sees the opposite sign of the horizontal gradient.
        """
        if not element.is_magnet:
            m = drift_matrix(element.length)
            return m, m
        k = self.gradient(element.type, brho, quad_bus_trim)
        return focusing_matrix(k, element.length), focusing_matrix(-k, element.length)

    def cell_matrices(self, brho: float, quad_bus_trim: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
        """One-cell matrices in both planes, in beam order."""
        pairs = [self.element_matrices(e, brho, quad_bus_trim) for e in self.lattice.cell_elements(0)]
        return compose(p[0] for p in pairs), compose(p[1] for p in pairs)

    # === Optics ===

    def compute(self, energy: "EnergyState", network: "CorrectorNetwork", previous: OpticsState,
                quad_bus_trim: float = 0.0, intensity: float = 1.0,
                emittance_rms: Optional[float] = None) -> OpticsState:
        """
        Recompute optics for the current energy and corrector settings.

        Args:
            energy: Energy snapshot of the completed turn
            network: Live corrector values
            previous: Last valid optics, used where a plane is unstable
            quad_bus_trim: Fractional trim on all main gradients
            intensity: Relative beam intensity (space charge)
            emittance_rms: Geometric rms emittance at injection (space charge)

        Returns:
            New OpticsState; never contains NaN or infinity
        """
        cell_x, cell_y = self.cell_matrices(energy.brho, quad_bus_trim)
        n = self.lattice.num_cells

        bare_x, beta_x, stable_x = self._plane(cell_x, n, previous.bare_tune_x, previous.beta_x_max)
        bare_y, beta_y, stable_y = self._plane(cell_y, n, previous.bare_tune_y, previous.beta_y_max)
        if not (stable_x and stable_y):
            logger.debug(f"Unstable cell matrix at turn {energy.turn}: x={stable_x} y={stable_y}")

        trim_quad_sum = network.total(CorrectorAxis.TRIM_QUAD)
        tune_x = bare_x + trim_quad_sum * TRIM_QUAD_TUNE_SENSITIVITY
        tune_y = bare_y - trim_quad_sum * TRIM_QUAD_TUNE_SENSITIVITY

        sext_a = network.total(CorrectorAxis.SEXT_A)
        sext_b = network.total(CorrectorAxis.SEXT_B)
        chrom_x = -tune_x + sext_a * SEXT_PRIMARY_SENSITIVITY + sext_b * SEXT_SECONDARY_SENSITIVITY
        chrom_y = -tune_y - sext_a * SEXT_SECONDARY_SENSITIVITY + sext_b * SEXT_PRIMARY_SENSITIVITY

        return OpticsState(
            tune_x=tune_x,
            tune_y=tune_y,
            bare_tune_x=bare_x,
            bare_tune_y=bare_y,
            beta_x_max=beta_x,
            beta_y_max=beta_y,
            dispersion_max=self.dispersion(energy.slip_factor),
            chromaticity_x=chrom_x,
            chromaticity_y=chrom_y,
            sc_tune_shift=self.space_charge_shift(energy, intensity, emittance_rms),
            stable_x=stable_x,
            stable_y=stable_y,
        )

    @staticmethod
    def _plane(cell: np.ndarray, num_cells: int, last_tune: float,
               last_beta: float) -> Tuple[float, float, bool]:
        mu = phase_advance(cell)
        if mu is None:
            return last_tune, last_beta, False
        tune = num_cells * mu / (2 * np.pi)
        sin_mu = np.sin(mu)
        beta = abs(float(cell[0, 1])) / sin_mu if sin_mu > MIN_SIN_MU else last_beta
        if not np.isfinite(beta) or beta <= 0:
            beta = last_beta
        return float(tune), float(beta), True

    def dispersion(self, slip_factor: float) -> float:
        """
        Maximum dispersion from the slip factor.

        Clamped to a fixed ceiling near transition, where |eta| -> 0.
        """
        if abs(slip_factor) <= DISPERSION_SLIP_THRESHOLD:
            return DISPERSION_LIMIT
        gamma_t2 = self.config.gamma_transition ** 2
        return min(self.config.dispersion_initial / (abs(slip_factor) * gamma_t2), DISPERSION_LIMIT)

    @staticmethod
    def space_charge_shift(energy: "EnergyState", intensity: float,
                           emittance_rms: Optional[float]) -> float:
        """Space-charge tune shift, proportional to N / (eps * beta * gamma^2)."""
        emit = emittance_rms if emittance_rms and emittance_rms > 0 else 1.0
        bg2 = energy.beta * energy.gamma ** 2
        if bg2 <= 0:
            return 0.0
        return SPACE_CHARGE_COEFFICIENT * intensity / (emit * bg2)
