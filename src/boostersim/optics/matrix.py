"""
Linear 2x2 transfer matrices for one transverse plane.

Coordinates are (position in mm, angle in mrad) and lengths are in m, so a
drift multiplies the angle by the length directly.
"""

from typing import Iterable, Optional, Tuple
import numpy as np

# Below this gradient magnitude an element is treated as a drift
GRADIENT_EPSILON = 1e-12


def drift_matrix(length: float) -> np.ndarray:
    """Transfer matrix of a field-free drift."""
    return np.array([[1.0, length],
                     [0.0, 1.0]])


def focusing_matrix(k: float, length: float) -> np.ndarray:
    """
    Thick-lens transfer matrix of a quadrupole-like element.

    Args:
        k: Normalized gradient in m^-2; positive focuses, negative defocuses
        length: Element length in m

    Returns:
        2x2 numpy array with unit determinant
    """
    if abs(k) < GRADIENT_EPSILON:
        return drift_matrix(length)
    sqrt_k = np.sqrt(abs(k))
    phi = sqrt_k * length
    if k > 0:
        c, s = np.cos(phi), np.sin(phi)
        return np.array([[c, s / sqrt_k],
                         [-sqrt_k * s, c]])
    ch, sh = np.cosh(phi), np.sinh(phi)
    return np.array([[ch, sh / sqrt_k],
                     [sqrt_k * sh, ch]])


def compose(matrices: Iterable[np.ndarray]) -> np.ndarray:
    """
    Compose element matrices given in beam order.

    The first element the beam traverses is applied first, so the product is
    accumulated as ``M_n ... M_2 M_1``.
    """
    total = np.eye(2)
    for m in matrices:
        total = m @ total
    return total


def apply(matrix: np.ndarray, u: float, up: float) -> Tuple[float, float]:
    """Apply a 2x2 matrix to (u, u') and return plain floats."""
    return (float(matrix[0, 0] * u + matrix[0, 1] * up),
            float(matrix[1, 0] * u + matrix[1, 1] * up))


def phase_advance(matrix: np.ndarray) -> Optional[float]:
    """
    Phase advance of a periodic cell from its one-turn matrix.

    Returns:
        mu in (0, pi) when the cell is strictly stable, None when
        |trace/2| >= 1 (unstable or marginal, e.g. a pure drift chain)
    """
    cos_mu = 0.5 * float(np.trace(matrix))
    if not np.isfinite(cos_mu) or abs(cos_mu) >= 1.0:
        return None
    return float(np.arccos(cos_mu))
