"""
Test suite for the machine portal: lattice, correctors, bumps, ramp table
and aperture restrictions.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest
import numpy as np
from dataclasses import FrozenInstanceError

from boostersim.machine_portal import (
    ElementType, LatticeElement, LatticeModel, CorrectorAxis, CorrectorPackage,
    CorrectorNetwork, BumpAxis, BumpConfig, bump_coefficients, RampTable,
    Restriction, place_restrictions
)
from boostersim.machine_portal.lattice import cell_sequence


class TestLatticeModel:
    """Test the ring structure loaded from cell.yaml."""

    def test_cell_sequence(self):
        types = [t for t, _ in cell_sequence]
        assert types == [
            ElementType.F_MAGNET, ElementType.SHORT_DRIFT, ElementType.F_MAGNET,
            ElementType.D_MAGNET, ElementType.LONG_DRIFT, ElementType.D_MAGNET,
        ]

    def test_structure(self, lattice, config):
        assert lattice.num_cells == 24
        assert lattice.elements_per_cell == 6
        assert lattice.corrector_position == 4
        assert lattice.cell_length == pytest.approx(config.cell_length)
        assert lattice.circumference == pytest.approx(24 * config.cell_length)
        assert len(lattice.expand()) == 24 * 6

    def test_element_lengths_from_config(self, lattice):
        cell = lattice.cell_elements(3)
        assert cell[0].length == 2.889
        assert cell[1].length == 1.2
        assert cell[4].length == 6.0
        assert all(e.cell_index == 3 for e in cell)
        assert [e.position_in_cell for e in cell] == list(range(6))

    def test_cell_index_wraps(self, lattice):
        assert lattice.cell_elements(24) is lattice.cell_elements(0)
        assert lattice.cell_elements(-1) is lattice.cell_elements(23)
        assert lattice.valid_cell(23)
        assert not lattice.valid_cell(24)
        assert not lattice.valid_cell(-1)

    def test_s_position(self, lattice):
        assert lattice.s_position(0, 0) == 0.0
        assert lattice.s_position(0, 2) == pytest.approx(2.889 + 1.2)
        assert lattice.s_position(1, 0, 0.5) == pytest.approx(lattice.cell_length + 0.5 * 2.889)

    def test_corrector_host(self, lattice):
        hosts = [e for e in lattice.cell_elements(0) if e.hosts_correctors]
        assert len(hosts) == 1
        assert hosts[0].position_in_cell == lattice.corrector_position

    def test_custom_lengths(self):
        from boostersim.simulators import BoosterConfig
        lattice = LatticeModel(BoosterConfig(num_cells=6, long_drift_length=4.0))
        assert lattice.element(5, 4).length == 4.0
        assert lattice.num_cells == 6


class TestLatticeElement:
    """Test element validation and properties."""

    def test_name_and_flags(self):
        element = LatticeElement(ElementType.F_MAGNET, 2, 0, 2.889)
        assert element.name == "FMagnet_2_0"
        assert element.is_magnet
        assert not element.hosts_correctors

    def test_frozen(self):
        element = LatticeElement(ElementType.LONG_DRIFT, 0, 4, 6.0)
        with pytest.raises(FrozenInstanceError):
            element.length = 1.0

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            LatticeElement(ElementType.SHORT_DRIFT, 0, 1, -1.0)
        with pytest.raises(ValueError):
            LatticeElement(ElementType.SHORT_DRIFT, -1, 1, 1.0)

    def test_core_loads_without_matplotlib(self):
        """Matplotlib is only needed when an element is drawn."""
        script = (
            "import sys\n"
            "sys.modules['matplotlib'] = None\n"
            "from boostersim.simulators import Simulation, InjectBeam\n"
            "sim = Simulation()\n"
            "assert sim.apply_command(InjectBeam(x=0.0, y=0.0))\n"
            "sim.advance()\n"
        )
        src = str(Path(__file__).resolve().parents[1] / "src")
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)
        result = subprocess.run([sys.executable, "-c", script], env=env,
                                capture_output=True, text=True)
        assert result.returncode == 0, result.stderr


class TestCorrectors:
    """Test corrector packages and the per-cell network."""

    def test_axis_order(self):
        assert [a.value for a in CorrectorAxis] == [
            "h_trim", "v_trim", "trim_quad", "skew_quad", "sext_a", "sext_b"
        ]
        assert CorrectorAxis.SEXT_B.index == 5

    def test_package(self):
        package = CorrectorPackage()
        assert package.is_zero()
        package.set(CorrectorAxis.SKEW_QUAD, 0.2)
        package.set("sext_a", 1)
        assert package.get(CorrectorAxis.SKEW_QUAD) == 0.2
        assert package.sext_a == 1.0
        assert not package.is_zero()
        assert package.to_dict()["skew_quad"] == 0.2

    def test_network_total(self, network):
        assert len(network) == 24
        network.set(0, CorrectorAxis.TRIM_QUAD, 0.5)
        network.set(23, CorrectorAxis.TRIM_QUAD, -0.2)
        assert network.total(CorrectorAxis.TRIM_QUAD) == pytest.approx(0.3)
        assert network[23].trim_quad == -0.2
        assert len(network.to_list()) == 24


class TestBumps:
    """Test closed-orbit bump patterns."""

    @pytest.mark.parametrize("size", [3, 4, 5])
    def test_coefficients_sum_to_zero(self, size):
        coeffs = bump_coefficients(size)
        assert len(coeffs) == size
        assert sum(coeffs) == 0.0

    @pytest.mark.parametrize("size", [0, 2, 6])
    def test_invalid_size(self, size):
        with pytest.raises(ValueError):
            bump_coefficients(size)
        with pytest.raises(ValueError):
            BumpConfig(size=size)

    def test_wrapping_cells(self):
        bump = BumpConfig(size=4, start_cell=22)
        assert bump.cell_coefficients(24) == [(22, 1.0), (23, -1.0), (0, -1.0), (1, 1.0)]
        assert bump.contains_cell(0, 24)
        assert not bump.contains_cell(2, 24)
        assert bump.coefficient_for_cell(1, 24) == 1.0
        assert bump.coefficient_for_cell(5, 24) is None

    def test_shift_and_axis(self):
        bump = BumpConfig(size=3, start_cell=23)
        shifted = bump.shifted(2, 24)
        assert shifted.start_cell == 1
        assert bump.start_cell == 23
        assert shifted.shifted(-2, 24).start_cell == 23

        vertical = bump.with_axis(BumpAxis.Y)
        assert vertical.axis == BumpAxis.Y
        assert vertical.axis.corrector == CorrectorAxis.V_TRIM
        assert BumpAxis.X.toggle() == BumpAxis.Y
        assert vertical.to_dict() == {"size": 3, "start_cell": 23, "axis": "y"}

    def test_string_axis_accepted(self):
        assert BumpConfig(size=5, axis="y").axis is BumpAxis.Y


class TestRampTable:
    """Test ramp-table storage and slew-rate clamping."""

    def test_initially_zero(self):
        table = RampTable(24)
        assert table.setpoints.shape == (24, 6, 10)
        assert table.max_step() == 0.0

    def test_clamped_to_neighbours(self):
        table = RampTable(4, num_checkpoints=3, max_delta=0.5)
        stored = table.set(0, CorrectorAxis.H_TRIM, 1, 2.0)
        assert stored == 0.5
        assert table.get(0, CorrectorAxis.H_TRIM, 1) == 0.5
        assert table.adjust(0, CorrectorAxis.H_TRIM, 1, -3.0) == -0.5

    def test_first_checkpoint_has_one_neighbour(self):
        table = RampTable(2, num_checkpoints=3, max_delta=0.5)
        table.set(1, CorrectorAxis.SEXT_A, 1, 0.5)
        assert table.set(1, CorrectorAxis.SEXT_A, 0, 5.0) == 1.0

    def test_non_finite_ignored(self):
        table = RampTable(2)
        table.set(0, CorrectorAxis.V_TRIM, 4, 0.1)
        assert table.set(0, CorrectorAxis.V_TRIM, 4, float("nan")) == 0.1
        assert table.get(0, CorrectorAxis.V_TRIM, 4) == 0.1

    def test_random_edits_respect_slew_limit(self):
        """Any sequence of edits keeps adjacent setpoints within max_delta."""
        rng = np.random.default_rng(42)
        table = RampTable(5, num_checkpoints=10, max_delta=0.5)
        for _ in range(2000):
            cell = int(rng.integers(5))
            axis = list(CorrectorAxis)[int(rng.integers(6))]
            checkpoint = int(rng.integers(10))
            if rng.random() < 0.5:
                table.set(cell, axis, checkpoint, float(rng.uniform(-5, 5)))
            else:
                table.adjust(cell, axis, checkpoint, float(rng.uniform(-2, 2)))
            assert table.max_step() <= 0.5 + 1e-12

    def test_checkpoint_for_turn(self):
        table = RampTable(2, num_checkpoints=10, checkpoint_spacing=100)
        assert table.checkpoint_for_turn(0) == 0
        assert table.checkpoint_for_turn(250) == 2
        assert table.checkpoint_for_turn(50000) == 9

    def test_load_checkpoint(self, network):
        table = RampTable(24)
        table.set(7, CorrectorAxis.TRIM_QUAD, 3, 0.25)
        table.load_checkpoint(network, 3)
        assert network.get(7, CorrectorAxis.TRIM_QUAD) == 0.25
        table.load_turn(network, 0)
        assert network.get(7, CorrectorAxis.TRIM_QUAD) == 0.0

    def test_copy_cell(self):
        table = RampTable(4)
        table.set(2, CorrectorAxis.H_TRIM, 0, 0.1)
        table.set(2, CorrectorAxis.SEXT_B, 0, 0.3)
        table.copy_cell(2, CorrectorAxis.H_TRIM)
        assert table.get(0, CorrectorAxis.H_TRIM, 0) == 0.1
        assert table.get(0, CorrectorAxis.SEXT_B, 0) == 0.0

        table.copy_cell(2)
        np.testing.assert_array_equal(table.setpoints[3], table.setpoints[2])

    def test_values_is_copy(self):
        table = RampTable(2)
        values = table.values(0, CorrectorAxis.H_TRIM)
        values[:] = 9.0
        assert table.get(0, CorrectorAxis.H_TRIM, 0) == 0.0


class TestRestrictions:
    """Test one-sided aperture restrictions."""

    def test_blocks(self):
        positive = Restriction(cell=3, axis='x', positive_blocked=True)
        assert positive.blocks(0.1, 0.0)
        assert not positive.blocks(0.0, 5.0)
        assert not positive.blocks(-1.0, 0.0)
        negative = Restriction(cell=3, axis='y', positive_blocked=False)
        assert negative.blocks(0.0, -0.1)
        assert not negative.blocks(-9.0, 0.0)

    def test_invalid_axis(self):
        with pytest.raises(ValueError):
            Restriction(cell=0, axis='z', positive_blocked=True)

    def test_placement(self):
        restrictions = place_restrictions(np.random.default_rng(1), 24, per_plane=2)
        assert len(restrictions) == 4
        assert [r.axis for r in restrictions] == ['x', 'x', 'y', 'y']
        cells = [r.cell for r in restrictions]
        assert len(set(cells)) == 4
        assert all(0 <= c < 24 for c in cells)

    def test_placement_reproducible(self):
        first = place_restrictions(np.random.default_rng(7), 24)
        second = place_restrictions(np.random.default_rng(7), 24)
        assert first == second

    def test_placement_capped_by_ring_size(self):
        restrictions = place_restrictions(np.random.default_rng(0), 5, per_plane=4)
        assert len(restrictions) == 4
        assert place_restrictions(np.random.default_rng(0), 5, per_plane=0) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
