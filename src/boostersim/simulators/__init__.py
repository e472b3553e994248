"""
boostersim simulation package.

The booster cycle is split into cohesive parts composed by one Simulation:

Key Components:
- EnergyRampController: turn -> energy and ramp phase
- LongitudinalDynamics / TransitionCrossing: RF bucket motion and gamma_t crossing
- BeamTracker: element-by-element transverse tracking with loss accounting
- BeamHistory: bounded histories for plotting collaborators
- Simulation: single owner of all state, driven by advance() and apply_command()

Example Usage:
    from boostersim.simulators import Simulation, BoosterConfig, InjectBeam

    sim = Simulation(BoosterConfig(seed=42))
    sim.apply_command(InjectBeam(x=0.0, y=0.0))
    while not sim.is_game_over():
        sim.advance()
    print(sim.get_score())
"""

from .types import (
    # Enums
    GamePhase,
    LossMode,
    Difficulty,
    SimSpeed,

    # Configuration and state
    BoosterConfig,
    EnergyState,
    BeamState,
    BeamSnapshot,
    HistorySnapshot,
    SimulationSnapshot,

    # Exceptions
    SimulationError,
    ConfigurationError
)

from .energy import EnergyRampController
from .longitudinal import LongitudinalDynamics, TransitionCrossing
from .tracker import BeamTracker, StepEvent
from .history import BeamHistory
from .commands import (
    Command,
    AdjustCorrector,
    SelectRampCheckpoint,
    SetBumpMode,
    AdjustBump,
    ShiftBump,
    ZeroBumpTrims,
    ZeroCorrector,
    CopyCorrectors,
    ScaleAdjustStep,
    AdjustRfVoltage,
    FlipRfPhase,
    AdjustBendBus,
    AdjustQuadBus,
    SetSimSpeed,
    ToggleDifficulty,
    InjectBeam,
    Reset,
    Pause,
    Resume,
)
from .simulation import Simulation

__all__ = [
    # Core classes
    "Simulation",
    "EnergyRampController",
    "LongitudinalDynamics",
    "TransitionCrossing",
    "BeamTracker",
    "StepEvent",
    "BeamHistory",

    # Types and enums
    "GamePhase",
    "LossMode",
    "Difficulty",
    "SimSpeed",
    "BoosterConfig",
    "EnergyState",
    "BeamState",
    "BeamSnapshot",
    "HistorySnapshot",
    "SimulationSnapshot",

    # Commands
    "Command",
    "AdjustCorrector",
    "SelectRampCheckpoint",
    "SetBumpMode",
    "AdjustBump",
    "ShiftBump",
    "ZeroBumpTrims",
    "ZeroCorrector",
    "CopyCorrectors",
    "ScaleAdjustStep",
    "AdjustRfVoltage",
    "FlipRfPhase",
    "AdjustBendBus",
    "AdjustQuadBus",
    "SetSimSpeed",
    "ToggleDifficulty",
    "InjectBeam",
    "Reset",
    "Pause",
    "Resume",

    # Exceptions
    "SimulationError",
    "ConfigurationError",
]

# Initialize logging for the package
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
