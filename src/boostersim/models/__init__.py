"""
boostersim Pydantic Models Package

Base model and validators shared by the configuration and snapshot models.
"""

from .base import PhysicsBaseModel
from .validators import (
    BUMP_SIZES, validate_finite, validate_energy_range,
    validate_gamma_transition, validate_bump_size, validate_steps_per_tick
)

__all__ = [
    'PhysicsBaseModel',
    'BUMP_SIZES',
    'validate_finite',
    'validate_energy_range',
    'validate_gamma_transition',
    'validate_bump_size',
    'validate_steps_per_tick',
]
