# Static ring structure of the booster.
# The ring is N identical cells; the cell sequence is read from cell.yaml
# and the element lengths from the BoosterConfig.

from typing import List, Tuple, TYPE_CHECKING
import os
import yaml

from .element import ElementType, LatticeElement

if TYPE_CHECKING:
    from ..simulators.types import BoosterConfig


def _load_cell_sequence_from_yaml() -> List[Tuple[ElementType, str]]:
    yaml_path = os.path.join(os.path.dirname(__file__), 'cell.yaml')
    if not os.path.exists(yaml_path):
        raise FileNotFoundError(f"cell.yaml not found at {yaml_path}")
    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict) or not isinstance(data.get('cell'), list):
        raise ValueError("cell.yaml is malformed: expected a 'cell' list")
    sequence = []
    for entry in data['cell']:
        sequence.append((ElementType(entry['type']), str(entry['length'])))
    if sum(1 for t, _ in sequence if t == ElementType.LONG_DRIFT) != 1:
        raise ValueError("cell.yaml must contain exactly one LongDrift")
    return sequence

try:
    cell_sequence = _load_cell_sequence_from_yaml()
except Exception as e:
    raise RuntimeError(f"Failed to load the cell layout from cell.yaml: {e}")


class LatticeModel:
    """
    Immutable description of the ring: ``num_cells`` copies of the cell sequence.

    Elements are addressed by ``(cell, position)``; the corrector package of
    each cell sits at the single long drift.
    """

    def __init__(self, config: "BoosterConfig"):
        self.num_cells = config.num_cells
        lengths = [getattr(config, key) for _, key in cell_sequence]
        self._cells: List[Tuple[LatticeElement, ...]] = [
            tuple(LatticeElement(type=t, cell_index=c, position_in_cell=i, length=lengths[i])
                  for i, (t, _) in enumerate(cell_sequence))
            for c in range(self.num_cells)
        ]
        self.corrector_position = next(
            i for i, (t, _) in enumerate(cell_sequence) if t == ElementType.LONG_DRIFT
        )

    @property
    def elements_per_cell(self) -> int:
        return len(cell_sequence)

    @property
    def cell_length(self) -> float:
        return sum(e.length for e in self._cells[0])

    @property
    def circumference(self) -> float:
        return self.num_cells * self.cell_length

    def cell_elements(self, cell: int) -> Tuple[LatticeElement, ...]:
        """Elements of one cell in beam order; ``cell`` wraps modulo the ring."""
        return self._cells[cell % self.num_cells]

    def element(self, cell: int, position: int) -> LatticeElement:
        return self.cell_elements(cell)[position]

    def expand(self) -> List[LatticeElement]:
        """All ring elements in beam order, starting from cell 0."""
        return [e for cell in self._cells for e in cell]

    def s_position(self, cell: int, position: int, progress: float = 0.0) -> float:
        """Longitudinal position in m of a point inside an element."""
        s = (cell % self.num_cells) * self.cell_length
        elements = self.cell_elements(cell)
        s += sum(e.length for e in elements[:position])
        return s + progress * elements[position].length

    def valid_cell(self, cell: int) -> bool:
        return 0 <= cell < self.num_cells

    def __repr__(self):
        return f"LatticeModel(num_cells={self.num_cells}, cell_length={self.cell_length:.3f} m)"
