"""
Test suite for the matplotlib plotters.
"""

import pytest
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from boostersim.simulators import InjectBeam, SetSimSpeed
from boostersim.visualization import BeamlinePlotter, OrbitPlotter, PhaseSpacePlotter


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestBeamlinePlotter:
    """Test the cell layout drawing."""

    def test_magnets_drawn(self, lattice):
        plotter = BeamlinePlotter()
        end = plotter.plot(lattice, first_cell=0, num_cells=2)
        assert len(plotter.ax.patches) == 8
        assert end == pytest.approx(2 * lattice.cell_length)

    def test_f_above_d_below(self, lattice):
        fig, ax = plt.subplots()
        BeamlinePlotter().plot(lattice, ax=ax)
        ys = sorted(p.get_y() for p in ax.patches)
        assert ys == [-0.6, -0.6, 0.0, 0.0]

    def test_offset_start(self, lattice):
        plotter = BeamlinePlotter()
        end = plotter.plot(lattice, first_cell=3, num_cells=1)
        assert plotter.ax.get_xlim() == pytest.approx((3 * lattice.cell_length, end))


class TestSnapshotPlotters:
    """Test orbit and phase-space plots from snapshots."""

    def test_empty_orbit(self, sim, config):
        plotter = OrbitPlotter()
        plotter.plot(sim.snapshot(), config.aperture, config.loss_zone)
        assert len(plotter.ax.texts) == 1
        assert len(plotter.ax.lines) == 0

    def test_orbit_after_one_turn(self, sim, config):
        sim.apply_command(SetSimSpeed(speed="fast"))
        sim.apply_command(InjectBeam(x=2.0, y=0.0))
        for _ in range(3):
            sim.advance()
        plotter = OrbitPlotter()
        plotter.plot(sim.snapshot(), config.aperture, config.loss_zone)
        assert len(plotter.ax.lines) == 5
        assert plotter.ax.lines[0].get_xydata().shape == (24, 2)

    def test_phase_space_panels(self, sim):
        sim.apply_command(SetSimSpeed(speed="fast"))
        sim.apply_command(InjectBeam(x=2.0, y=1.0))
        for _ in range(6):
            sim.advance()
        plotter = PhaseSpacePlotter()
        plotter.plot(sim.snapshot())
        assert len(plotter.axes) == 3
        assert all(len(ax.lines) == 1 for ax in plotter.axes)
        assert len(plotter.axes[0].lines[0].get_xdata()) == 2

    def test_phase_space_empty(self, sim):
        fig, axes = plt.subplots(1, 3)
        PhaseSpacePlotter().plot(sim.snapshot(), axes=axes)
        assert all(len(ax.lines) == 0 for ax in axes)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
