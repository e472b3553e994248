"""
boostersim Visualization Module

Matplotlib plotting of the lattice layout and simulation snapshots.
"""

from .plotters import (
    BeamlinePlotter,
    OrbitPlotter,
    PhaseSpacePlotter
)

__all__ = [
    'BeamlinePlotter',
    'OrbitPlotter',
    'PhaseSpacePlotter',
]
