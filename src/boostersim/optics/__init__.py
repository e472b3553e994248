"""
Optics of the booster lattice.

Transfer matrices and the energy-dependent optics summary consumed by the
beam tracker.
"""

from .matrix import drift_matrix, focusing_matrix, compose, phase_advance
from .engine import OpticsState, OpticsEngine

__all__ = [
    'drift_matrix',
    'focusing_matrix',
    'compose',
    'phase_advance',
    'OpticsState',
    'OpticsEngine',
]
