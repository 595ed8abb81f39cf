"""Square addressing and rook-line tables for the 9×9 Tablut board.

Squares are numbered row-major from the bottom-left corner:
- Index 0: a1 (col=0, row=0)
- Index 8: i1 (col=8, row=0)
- Index 9: a2 (col=0, row=1)
- ...
- Index 80: i9 (col=8, row=8)

Every square is created once at import time; ``sq()`` hands out the shared
instances, so squares can be compared with ``is`` as well as ``==``.
"""

from typing import List, Tuple


SIZE = 9
COLUMNS = "abcdefghi"

# Directions, clockwise from north
NORTH = 0
EAST = 1
SOUTH = 2
WEST = 3
DIRECTIONS = (NORTH, EAST, SOUTH, WEST)

# (dcol, drow) step for each direction
DIRECTION_STEPS = {
    NORTH: (0, 1),
    EAST: (1, 0),
    SOUTH: (0, -1),
    WEST: (-1, 0),
}


class Square:
    """One of the 81 board positions."""

    __slots__ = ("_col", "_row", "_index", "_name")

    def __init__(self, col: int, row: int):
        self._col = col
        self._row = row
        self._index = row * SIZE + col
        self._name = f"{COLUMNS[col]}{row + 1}"

    @property
    def col(self) -> int:
        return self._col

    @property
    def row(self) -> int:
        return self._row

    @property
    def index(self) -> int:
        return self._index

    def is_edge(self) -> bool:
        """Return True if the square lies on the outer border."""
        return self._col in (0, SIZE - 1) or self._row in (0, SIZE - 1)

    def direction(self, other: "Square") -> int:
        """Return the direction of travel from this square to OTHER.

        Returns -1 if the squares are equal or do not share a row or column.
        """
        if other is self:
            return -1
        if other.col == self._col:
            return NORTH if other.row > self._row else SOUTH
        if other.row == self._row:
            return EAST if other.col > self._col else WEST
        return -1

    def is_rook_move(self, other: "Square") -> bool:
        """Return True if OTHER is reachable along a row or column."""
        return self.direction(other) != -1

    def line(self, direction: int) -> Tuple["Square", ...]:
        """Squares from here to the edge in DIRECTION, nearest first."""
        return RookTables.LINES[self._index][direction]

    def neighbors(self) -> List["Square"]:
        """The orthogonally adjacent squares that exist on the board."""
        return [line[0] for line in RookTables.LINES[self._index] if line]

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"Square({self._name})"


# All squares in index order
SQUARE_LIST: List[Square] = [
    Square(index % SIZE, index // SIZE) for index in range(SIZE * SIZE)
]


def in_bounds(col: int, row: int) -> bool:
    """Check if (col, row) is on the board."""
    return 0 <= col < SIZE and 0 <= row < SIZE


def sq(col: int, row: int) -> Square:
    """Return the square at (COL, ROW)."""
    if not in_bounds(col, row):
        raise ValueError(f"Square ({col}, {row}) is off the board")
    return SQUARE_LIST[row * SIZE + col]


def parse_square(name: str) -> Square:
    """Parse square notation such as 'e5'."""
    name = name.strip().lower()
    if len(name) != 2 or name[0] not in COLUMNS or not name[1].isdigit():
        raise ValueError(f"Invalid square notation: {name!r}")
    col = COLUMNS.index(name[0])
    row = int(name[1]) - 1
    return sq(col, row)


class RookTables:
    """Pre-computed rook lines for every square and direction."""

    # LINES[index][direction] -> tuple of squares, nearest first
    LINES: List[Tuple[Tuple[Square, ...], ...]] = []

    @classmethod
    def initialize(cls):
        """Build the tables. Called once at import."""
        if cls.LINES:
            return
        for square in SQUARE_LIST:
            rays = []
            for direction in DIRECTIONS:
                dc, dr = DIRECTION_STEPS[direction]
                ray = []
                c, r = square.col + dc, square.row + dr
                while in_bounds(c, r):
                    ray.append(SQUARE_LIST[r * SIZE + c])
                    c += dc
                    r += dr
                rays.append(tuple(ray))
            cls.LINES.append(tuple(rays))


RookTables.initialize()


# The throne and its four neighbours
THRONE = sq(4, 4)
NTHRONE = sq(4, 5)
ETHRONE = sq(5, 4)
STHRONE = sq(4, 3)
WTHRONE = sq(3, 4)
THRONE_AREA = frozenset([THRONE, NTHRONE, ETHRONE, STHRONE, WTHRONE])
