"""
Custom validators for physics-specific constraints in boostersim.

This module provides validation functions for accelerator and game-balance
parameters, ensuring physical correctness and reasonable value ranges.
"""

from typing import Optional, List
import math


BUMP_SIZES = (3, 4, 5)


def validate_finite(value: float, name: str = "value") -> float:
    """
    Validate that a value is a finite number.

    Args:
        value: Number to check
        name: Parameter name used in the error message

    Returns:
        Validated value

    Raises:
        ValueError: If value is NaN or infinite
    """
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    return value


def validate_energy_range(energy: float, min_energy: float = 1e-3, max_energy: float = 1e4) -> float:
    """
    Validate kinetic energy is in a reasonable range for a proton synchrotron.

    Args:
        energy: Kinetic energy in GeV
        min_energy: Minimum allowed energy (default: 1 MeV)
        max_energy: Maximum allowed energy (default: 10 TeV)

    Returns:
        Validated energy

    Raises:
        ValueError: If energy is outside reasonable range
    """
    if not (min_energy <= energy <= max_energy):
        raise ValueError(f"Energy {energy} GeV outside reasonable range ({min_energy} - {max_energy} GeV)")
    return energy


def validate_gamma_transition(gamma_t: float) -> float:
    """
    Validate the transition gamma.

    A transition gamma at or below 1 would put the ring above transition for
    every possible beam energy.

    Raises:
        ValueError: If gamma_t is not greater than 1
    """
    if gamma_t <= 1.0:
        raise ValueError(f"Transition gamma {gamma_t} must be greater than 1")
    return gamma_t


def validate_bump_size(size: Optional[int]) -> Optional[int]:
    """
    Validate closed-orbit bump size.

    Args:
        size: Number of correctors in the bump, or None for bump mode off

    Returns:
        Validated size

    Raises:
        ValueError: If size is not one of the supported bump sizes
    """
    if size is not None and size not in BUMP_SIZES:
        raise ValueError(f"Bump size {size} must be one of {BUMP_SIZES}")
    return size


def validate_steps_per_tick(steps: List[int]) -> List[int]:
    """
    Validate the simulation speed table.

    Raises:
        ValueError: If any entry is not a positive integer
    """
    for s in steps:
        if s < 1:
            raise ValueError(f"Steps per tick must be positive, got {s}")
    return steps
