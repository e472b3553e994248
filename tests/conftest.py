"""Shared fixtures for the boostersim test suite."""

import pytest

from boostersim.simulators import BoosterConfig, Simulation
from boostersim.machine_portal import LatticeModel, CorrectorNetwork
from boostersim.simulators.energy import EnergyRampController
from boostersim.optics import OpticsEngine


@pytest.fixture
def config():
    return BoosterConfig(seed=0)


@pytest.fixture
def drift_config():
    """All main gradients switched off: the cell is a pure drift chain."""
    return BoosterConfig(k1_f_injection=0.0, k1_d_injection=0.0, seed=0)


@pytest.fixture
def short_cycle_config():
    """Four-turn cycle that extracts exactly at the end of the ramp."""
    return BoosterConfig(turns_in_cycle=4, extraction_window_turns=0, seed=0)


@pytest.fixture
def lattice(config):
    return LatticeModel(config)


@pytest.fixture
def energy_ramp(config):
    return EnergyRampController(config)


@pytest.fixture
def engine(config, lattice, energy_ramp):
    return OpticsEngine(config, lattice, energy_ramp.injection.brho)


@pytest.fixture
def network(config):
    return CorrectorNetwork(config.num_cells)


@pytest.fixture
def sim(config):
    return Simulation(config)
