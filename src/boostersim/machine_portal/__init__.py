"""
boostersim Machine Portal - Ring structure, correctors and ramp tables
"""

from boostersim.machine_portal.element import ElementType, LatticeElement
from boostersim.machine_portal.lattice import LatticeModel
from boostersim.machine_portal.correctors import (
    CorrectorAxis,
    CorrectorPackage,
    CorrectorNetwork,
    BumpAxis,
    BumpConfig,
    bump_coefficients,
)
from boostersim.machine_portal.ramp import RampTable
from boostersim.machine_portal.aperture import Restriction, place_restrictions

__all__ = [
    'ElementType',
    'LatticeElement',
    'LatticeModel',
    'CorrectorAxis',
    'CorrectorPackage',
    'CorrectorNetwork',
    'BumpAxis',
    'BumpConfig',
    'bump_coefficients',
    'RampTable',
    'Restriction',
    'place_restrictions',
]
