import random
from typing import Dict, Iterable, List, Optional

from .errors import InsufficientObjectives


class Objective:
    __slots__ = ('name', 'description')

    def __init__(self, name: str, description: str = ''):
        self.name = name
        self.description = description

    def __repr__(self):
        return f"Objective({self.name!r})"


class BoardCell:
    """One grid square: an objective plus the team that owns it, if any."""

    __slots__ = ('objective', 'team')

    def __init__(self, objective: Objective, team: Optional[str] = None):
        self.objective = objective
        self.team = team

    @property
    def name(self) -> str:
        return self.objective.name

    def to_dict(self):
        return {
            'name': self.objective.name,
            'description': self.objective.description,
            'team': self.team,
        }


class Board:
    """Ordered cells (grid order) plus a name index.

    The cell list is fixed at construction; only cell ownership changes.
    """

    def __init__(self, cells: Iterable[BoardCell]):
        self._cells: List[BoardCell] = list(cells)
        self._index: Dict[str, BoardCell] = {}
        for cell in self._cells:
            if cell.name in self._index:
                raise ValueError(f"duplicate objective on board: {cell.name}")
            self._index[cell.name] = cell

    def __len__(self):
        return len(self._cells)

    def __iter__(self):
        return iter(self._cells)

    def __contains__(self, name):
        return isinstance(name, str) and name in self._index

    def get(self, name: str) -> Optional[BoardCell]:
        if not isinstance(name, str):
            return None
        return self._index.get(name)

    def names(self) -> List[str]:
        return [cell.name for cell in self._cells]

    def to_list(self):
        return [cell.to_dict() for cell in self._cells]


def unique_objectives(pool: Iterable[Objective]) -> List[Objective]:
    """Drop repeated names, keeping the first occurrence."""
    seen = set()
    out = []
    for objective in pool:
        if objective.name in seen:
            continue
        seen.add(objective.name)
        out.append(objective)
    return out


def generate_board(pool: Iterable[Objective], board_size: int, rng: Optional[random.Random] = None) -> Board:
    """Draw ``board_size**2`` distinct objectives uniformly without replacement.

    Raises InsufficientObjectives before sampling when the pool is too small,
    so a board is either fully built or not built at all.
    """
    candidates = unique_objectives(pool)
    required = board_size * board_size
    if len(candidates) < required:
        raise InsufficientObjectives(
            f'Not enough objectives to create a {board_size}x{board_size} board. '
            f'Please try a smaller size.'
        )
    picked = (rng or random).sample(candidates, required)
    return Board(BoardCell(objective) for objective in picked)
