# Corrector packages and closed-orbit bumps.
# Every cell carries one package in its long drift:
## h_trim, v_trim  : trim dipoles (angle kicks in mrad)
## trim_quad       : trim quadrupole (tune and focusing correction)
## skew_quad       : skew quadrupole (x-y coupling)
## sext_a, sext_b  : two sextupole families (chromaticity)
# Live values are loaded from the ramp table; bumps edit the ramp table, never
# the live values.

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..models.validators import validate_bump_size


class CorrectorAxis(str, Enum):
    """Addressable corrector of a package."""
    H_TRIM = "h_trim"
    V_TRIM = "v_trim"
    TRIM_QUAD = "trim_quad"
    SKEW_QUAD = "skew_quad"
    SEXT_A = "sext_a"
    SEXT_B = "sext_b"

    @property
    def index(self) -> int:
        return list(CorrectorAxis).index(self)


@dataclass
class CorrectorPackage:
    """Live corrector values of one cell."""
    h_trim: float = 0.0
    v_trim: float = 0.0
    trim_quad: float = 0.0
    skew_quad: float = 0.0
    sext_a: float = 0.0
    sext_b: float = 0.0

    def get(self, axis: CorrectorAxis) -> float:
        return getattr(self, CorrectorAxis(axis).value)

    def set(self, axis: CorrectorAxis, value: float):
        setattr(self, CorrectorAxis(axis).value, float(value))

    def is_zero(self) -> bool:
        return all(getattr(self, f.name) == 0.0 for f in fields(self))

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class CorrectorNetwork:
    """One CorrectorPackage per cell."""

    def __init__(self, num_cells: int):
        self.packages: List[CorrectorPackage] = [CorrectorPackage() for _ in range(num_cells)]

    def __len__(self):
        return len(self.packages)

    def __getitem__(self, cell: int) -> CorrectorPackage:
        return self.packages[cell]

    def total(self, axis: CorrectorAxis) -> float:
        """Sum of one corrector axis over the ring."""
        return sum(p.get(axis) for p in self.packages)

    def get(self, cell: int, axis: CorrectorAxis) -> float:
        return self.packages[cell].get(axis)

    def set(self, cell: int, axis: CorrectorAxis, value: float):
        self.packages[cell].set(axis, value)

    def to_list(self) -> List[Dict[str, float]]:
        return [p.to_dict() for p in self.packages]


class BumpAxis(str, Enum):
    """Plane a bump acts on."""
    X = "x"
    Y = "y"

    def toggle(self) -> "BumpAxis":
        return BumpAxis.Y if self == BumpAxis.X else BumpAxis.X

    @property
    def corrector(self) -> CorrectorAxis:
        """Trim dipole driven by a bump in this plane."""
        return CorrectorAxis.H_TRIM if self == BumpAxis.X else CorrectorAxis.V_TRIM


# Zero-sum sign patterns keep the orbit closed outside the bump span
BUMP_COEFFICIENTS: Dict[int, Tuple[float, ...]] = {
    3: (1.0, -2.0, 1.0),
    4: (1.0, -1.0, -1.0, 1.0),
    5: (1.0, -2.0, 2.0, -2.0, 1.0),
}


def bump_coefficients(size: int) -> Tuple[float, ...]:
    """Sign pattern of a closed-orbit bump of ``size`` correctors."""
    validate_bump_size(size)
    return BUMP_COEFFICIENTS[size]


@dataclass(frozen=True)
class BumpConfig:
    """
    A closed-orbit bump over ``size`` consecutive cells starting at ``start_cell``.

    Coefficients are derived from the size, never stored.
    """
    size: int
    start_cell: int = 0
    axis: BumpAxis = BumpAxis.X

    def __post_init__(self):
        validate_bump_size(self.size)
        object.__setattr__(self, "axis", BumpAxis(self.axis))
        if self.start_cell < 0:
            raise ValueError(f"Bump start cell must be non-negative, got {self.start_cell}")

    @property
    def coefficients(self) -> Tuple[float, ...]:
        return bump_coefficients(self.size)

    def cell_coefficients(self, num_cells: int) -> List[Tuple[int, float]]:
        """(cell, coefficient) pairs, wrapping around the ring."""
        return [((self.start_cell + i) % num_cells, c) for i, c in enumerate(self.coefficients)]

    def contains_cell(self, cell: int, num_cells: int) -> bool:
        return any(c == cell for c, _ in self.cell_coefficients(num_cells))

    def coefficient_for_cell(self, cell: int, num_cells: int) -> Optional[float]:
        for c, coeff in self.cell_coefficients(num_cells):
            if c == cell:
                return coeff
        return None

    def shifted(self, delta: int, num_cells: int) -> "BumpConfig":
        return replace(self, start_cell=(self.start_cell + delta) % num_cells)

    def with_axis(self, axis: BumpAxis) -> "BumpConfig":
        return replace(self, axis=BumpAxis(axis))

    def to_dict(self) -> Dict[str, object]:
        return {"size": self.size, "start_cell": self.start_cell, "axis": BumpAxis(self.axis).value}
