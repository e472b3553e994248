"""
boostersim - Turn-based proton booster beam-dynamics simulation

Simulation core of a tuning game: keep a proton bunch alive from injection to
extraction by adjusting correctors, ramp tables and the RF system.
"""

from .simulators import (
    Simulation,
    BoosterConfig,
    GamePhase,
    LossMode,
    Difficulty,
    SimSpeed,
    SimulationSnapshot,
    SimulationError,
    ConfigurationError,
)
from .simulators import commands
from .machine_portal import CorrectorAxis, BumpAxis

__version__ = "0.1.0"

__all__ = [
    'Simulation',
    'BoosterConfig',
    'GamePhase',
    'LossMode',
    'Difficulty',
    'SimSpeed',
    'SimulationSnapshot',
    'SimulationError',
    'ConfigurationError',
    'commands',
    'CorrectorAxis',
    'BumpAxis',
]
