"""
Player commands accepted by Simulation.apply_command.

Commands are plain validated records; range checks that depend on the
configuration (cell index, checkpoint index, bump size) are made by the
simulation, which logs and ignores commands it cannot apply.
"""

from typing import Optional

from pydantic import Field, field_validator

from ..models.base import PhysicsBaseModel
from ..models.validators import validate_finite
from ..machine_portal.correctors import CorrectorAxis, BumpAxis
from .types import SimSpeed


class Command(PhysicsBaseModel):
    """Base class for all player commands."""
    pass


class AdjustCorrector(Command):
    """Add ``delta`` to one corrector's setpoint at the selected ramp checkpoint."""
    cell: int = Field(description="Cell index")
    axis: CorrectorAxis = Field(description="Corrector axis")
    delta: float = Field(description="Change of the setpoint")

    @field_validator('delta')
    @classmethod
    def validate_delta(cls, v):
        return validate_finite(v, "delta")


class SelectRampCheckpoint(Command):
    """Select the ramp checkpoint to edit; loads every live corrector from it."""
    index: int


class SetBumpMode(Command):
    """Enable a closed-orbit bump of ``size`` cells, or disable bump mode with size=None."""
    size: Optional[int] = None
    start_cell: int = 0
    axis: BumpAxis = BumpAxis.X


class AdjustBump(Command):
    """
    Step the active bump by adjust_speed times its coefficients.

    ``axis`` selects one plane; None moves the h-trim and v-trim of every
    bump cell together.
    """
    direction: int = Field(default=1, description="+1 or -1")
    axis: Optional[BumpAxis] = Field(default=None, description="Plane to move, None for both")

    @field_validator('direction')
    @classmethod
    def validate_direction(cls, v):
        if v not in (-1, 1):
            raise ValueError(f"Bump direction must be +1 or -1, got {v}")
        return v


class ShiftBump(Command):
    """Move the active bump by ``delta`` cells around the ring."""
    delta: int = 1


class ZeroBumpTrims(Command):
    """Zero both trim dipoles of the bump cells at the selected checkpoint."""
    pass


class ZeroCorrector(Command):
    """Zero one corrector at the selected checkpoint (clamped to the ramp window)."""
    cell: int
    axis: CorrectorAxis


class CopyCorrectors(Command):
    """Copy one cell's setpoints at every checkpoint to all cells."""
    cell: int


class ScaleAdjustStep(Command):
    """Double (up) or halve the corrector adjustment step."""
    up: bool = True


class AdjustRfVoltage(Command):
    """Change the RF voltage by a number of configured steps."""
    steps: int = 1


class FlipRfPhase(Command):
    """Jump the synchronous phase to 180 deg minus its value."""
    pass


class AdjustBendBus(Command):
    """Change the main bend bus trim (fraction of the design field)."""
    delta: float

    @field_validator('delta')
    @classmethod
    def validate_delta(cls, v):
        return validate_finite(v, "delta")


class AdjustQuadBus(Command):
    """Change the main quadrupole bus trim (fraction of the design gradient)."""
    delta: float

    @field_validator('delta')
    @classmethod
    def validate_delta(cls, v):
        return validate_finite(v, "delta")


class SetSimSpeed(Command):
    """Set the simulation speed; None cycles slow -> normal -> fast."""
    speed: Optional[SimSpeed] = None


class ToggleDifficulty(Command):
    """Switch between easy and hard; only before the beam is injected."""
    pass


class InjectBeam(Command):
    """Inject at (x, y) in mm; missing coordinates use the injection target."""
    x: Optional[float] = None
    y: Optional[float] = None


class Reset(Command):
    """Start a new cycle, keeping the player's machine settings."""
    pass


class Pause(Command):
    pass


class Resume(Command):
    pass
