"""
Test suite for transfer matrices and the optics engine.
"""

import pytest
import numpy as np

from boostersim.optics import (
    drift_matrix, focusing_matrix, compose, phase_advance, OpticsEngine, OpticsState
)
from boostersim.optics.engine import DISPERSION_LIMIT
from boostersim.machine_portal import (
    LatticeModel, CorrectorNetwork, CorrectorAxis, ElementType
)
from boostersim.simulators.energy import EnergyRampController


class TestTransferMatrices:
    """Test 2x2 element matrices."""

    @pytest.mark.parametrize("k", [-0.5, -0.0577, -1e-13, 0.0, 1e-13, 0.0542, 0.3, 2.0])
    @pytest.mark.parametrize("length", [0.1, 1.2, 2.889, 6.0])
    def test_unit_determinant(self, k, length):
        """Every element matrix is symplectic."""
        m = focusing_matrix(k, length)
        assert np.linalg.det(m) == pytest.approx(1.0, abs=1e-9)

    def test_tiny_gradient_is_drift(self):
        np.testing.assert_array_equal(focusing_matrix(1e-14, 2.0), drift_matrix(2.0))
        np.testing.assert_array_equal(focusing_matrix(-1e-14, 2.0), drift_matrix(2.0))

    def test_focusing_and_defocusing_forms(self):
        k, length = 0.25, 1.0
        f = focusing_matrix(k, length)
        d = focusing_matrix(-k, length)
        assert f[0, 0] == pytest.approx(np.cos(0.5))
        assert f[1, 0] == pytest.approx(-0.5 * np.sin(0.5))
        assert d[0, 0] == pytest.approx(np.cosh(0.5))
        assert d[1, 0] == pytest.approx(0.5 * np.sinh(0.5))

    def test_compose_in_beam_order(self):
        """The first matrix given is the first one the beam sees."""
        a = focusing_matrix(0.3, 1.0)
        b = drift_matrix(2.0)
        np.testing.assert_allclose(compose([a, b]), b @ a)
        np.testing.assert_allclose(compose([]), np.eye(2))

    def test_drift_chain_has_no_phase_advance(self):
        chain = compose([drift_matrix(2.889), drift_matrix(1.2), drift_matrix(6.0)])
        assert phase_advance(chain) is None

    def test_stable_cell_phase_advance(self):
        m = np.array([[np.cos(0.4), np.sin(0.4)], [-np.sin(0.4), np.cos(0.4)]])
        assert phase_advance(m) == pytest.approx(0.4)

    def test_unstable_cell(self):
        assert phase_advance(focusing_matrix(-0.5, 6.0)) is None
        assert phase_advance(np.full((2, 2), np.nan)) is None


class TestOpticsEngine:
    """Test tune, beta, dispersion and chromaticity extraction."""

    def test_gradients_scale_with_rigidity(self, engine, energy_ramp):
        inj = energy_ramp.injection
        assert engine.gradient(ElementType.F_MAGNET, inj.brho) == pytest.approx(0.0542)
        assert engine.gradient(ElementType.D_MAGNET, inj.brho) == pytest.approx(-0.0577)
        assert engine.gradient(ElementType.SHORT_DRIFT, inj.brho) == 0.0
        assert engine.gradient(ElementType.F_MAGNET, 2 * inj.brho) == pytest.approx(0.0271)
        assert engine.gradient(ElementType.F_MAGNET, inj.brho, quad_bus_trim=0.1) == pytest.approx(0.0542 * 1.1)

    def test_planes_see_opposite_gradients(self, engine, lattice, energy_ramp):
        f_magnet = lattice.element(0, 0)
        mx, my = engine.element_matrices(f_magnet, energy_ramp.injection.brho)
        assert mx[0, 0] < 1.0 < my[0, 0]

    def test_injection_optics_stable(self, engine, network, energy_ramp):
        optics = engine.compute(energy_ramp.injection, network, engine.initial_state())
        assert optics.stable_x and optics.stable_y
        assert 0 < optics.tune_x < 12
        assert 0 < optics.tune_y < 12
        assert optics.beta_x_max > 0 and optics.beta_y_max > 0
        assert optics.chromaticity_x == pytest.approx(-optics.tune_x)
        assert optics.chromaticity_y == pytest.approx(-optics.tune_y)

    def test_zero_gradients_keep_previous_tune(self, drift_config):
        """A pure drift chain is marginal; the previous tune and beta are retained."""
        lattice = LatticeModel(drift_config)
        ramp = EnergyRampController(drift_config)
        engine = OpticsEngine(drift_config, lattice, ramp.injection.brho)
        initial = engine.initial_state()

        optics = engine.compute(ramp.injection, CorrectorNetwork(drift_config.num_cells), initial)

        assert not optics.stable_x and not optics.stable_y
        assert optics.tune_x == initial.tune_x
        assert optics.tune_y == initial.tune_y
        assert optics.beta_x_max == initial.beta_x_max
        values = [v for v in optics.model_dump().values() if isinstance(v, float)]
        assert np.all(np.isfinite(values))

    def test_trim_quad_correction_does_not_accumulate(self, engine, network, energy_ramp):
        network.set(0, CorrectorAxis.TRIM_QUAD, 1.0)
        network.set(5, CorrectorAxis.TRIM_QUAD, 1.0)
        first = engine.compute(energy_ramp.injection, network, engine.initial_state())
        second = engine.compute(energy_ramp.injection, network, first)

        assert first.tune_x == pytest.approx(first.bare_tune_x + 0.1)
        assert first.tune_y == pytest.approx(first.bare_tune_y - 0.1)
        assert second.tune_x == pytest.approx(first.tune_x)
        assert second.tune_y == pytest.approx(first.tune_y)

    def test_sextupole_chromaticity(self, engine, network, energy_ramp):
        network.set(3, CorrectorAxis.SEXT_A, 1.0)
        network.set(4, CorrectorAxis.SEXT_B, 0.5)
        optics = engine.compute(energy_ramp.injection, network, engine.initial_state())
        assert optics.chromaticity_x == pytest.approx(-optics.tune_x + 2.0 + 0.5)
        assert optics.chromaticity_y == pytest.approx(-optics.tune_y - 1.0 + 1.0)

    def test_dispersion_clamped_near_transition(self, engine):
        assert engine.dispersion(0.0) == DISPERSION_LIMIT
        assert engine.dispersion(0.005) == DISPERSION_LIMIT
        assert engine.dispersion(-0.02) == pytest.approx(3.2 / (0.02 * 5.446 ** 2))
        assert engine.dispersion(0.011) <= DISPERSION_LIMIT

    def test_space_charge_shift(self, engine, energy_ramp):
        inj = energy_ramp.injection
        low = OpticsEngine.space_charge_shift(inj, 1.0, 2.0)
        high_energy = OpticsEngine.space_charge_shift(energy_ramp.state_for_turn(15000), 1.0, 2.0)
        assert low < 0
        assert abs(high_energy) < abs(low)
        assert OpticsEngine.space_charge_shift(inj, 0.5, 2.0) == pytest.approx(0.5 * low)

    def test_effective_tunes(self, engine):
        state = engine.initial_state().model_copy(update={"sc_tune_shift": -0.1})
        assert state.effective_tune_x == pytest.approx(6.6)
        assert state.effective_tune_y == pytest.approx(6.7)

    def test_state_rejects_non_positive_beta(self):
        with pytest.raises(Exception):
            OpticsState(tune_x=1, tune_y=1, bare_tune_x=1, bare_tune_y=1, beta_x_max=0.0,
                        beta_y_max=1, dispersion_max=1, chromaticity_x=-1, chromaticity_y=-1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
