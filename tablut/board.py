"""Tablut board representation and rules."""

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .square import (
    COLUMNS,
    DIRECTIONS,
    SIZE,
    SQUARE_LIST,
    THRONE,
    THRONE_AREA,
    Square,
    parse_square,
    sq,
)


class Side(Enum):
    """Player sides."""

    ATTACKER = "ATTACKER"  # Black, moves first
    DEFENDER = "DEFENDER"  # White, protects the king

    def opponent(self) -> "Side":
        return Side.DEFENDER if self is Side.ATTACKER else Side.ATTACKER

    @property
    def symbol(self) -> str:
        """Character used for the side to move in encodings."""
        return "B" if self is Side.ATTACKER else "W"


class Piece(Enum):
    """Contents of a square. The value is the piece's display symbol."""

    EMPTY = "-"
    ATTACKER = "B"
    DEFENDER = "W"
    KING = "K"

    @property
    def side(self) -> Optional[Side]:
        """The side owning this piece (None for EMPTY)."""
        if self is Piece.ATTACKER:
            return Side.ATTACKER
        if self is Piece.DEFENDER or self is Piece.KING:
            return Side.DEFENDER
        return None

    @property
    def symbol(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


SYMBOL_TO_PIECE = {piece.value: piece for piece in Piece}
SYMBOL_TO_SIDE = {side.symbol: side for side in Side}

# e.g. "e3-e6", "e3e6", or the short form "e3-6" / "e3-g"
_MOVE_PATTERN = re.compile(r"^([a-i][1-9])-?(?:([a-i][1-9])|([a-i])|([1-9]))$")


@dataclass(frozen=True)
class Move:
    """Represents a rook move between two aligned squares.

    Build moves with ``mv()``, which refuses pairs that are not a rook move.
    """

    from_sq: Square
    to_sq: Square

    def __str__(self) -> str:
        return f"{self.from_sq}-{self.to_sq}"

    def to_notation(self) -> str:
        """Convert to coordinate notation, e.g. 'e3-e6'."""
        return str(self)

    @classmethod
    def from_notation(cls, text: str) -> "Move":
        """Parse coordinate notation.

        Accepts 'e3-e6', 'e3e6', and the short forms 'e3-6' (same column)
        and 'e3-g' (same row).
        """
        match = _MOVE_PATTERN.match(text.strip().lower())
        if not match:
            raise ValueError(f"Invalid move notation: {text!r}")
        from_sq = parse_square(match.group(1))
        if match.group(2):
            to_sq = parse_square(match.group(2))
        elif match.group(3):
            to_sq = sq(COLUMNS.index(match.group(3)), from_sq.row)
        else:
            to_sq = sq(from_sq.col, int(match.group(4)) - 1)
        move = mv(from_sq, to_sq)
        if move is None:
            raise ValueError(f"Not a rook move: {text!r}")
        return move


def mv(from_sq: Square, to_sq: Square) -> Optional[Move]:
    """Return the move FROM_SQ-TO_SQ, or None if it is not a rook move."""
    if from_sq is to_sq or not from_sq.is_rook_move(to_sq):
        return None
    return Move(from_sq, to_sq)


class Board:
    """Tablut board state and rules engine."""

    SIZE = SIZE

    INITIAL_ATTACKERS = (
        sq(0, 3), sq(0, 4), sq(0, 5), sq(1, 4),
        sq(8, 3), sq(8, 4), sq(8, 5), sq(7, 4),
        sq(3, 0), sq(4, 0), sq(5, 0), sq(4, 1),
        sq(3, 8), sq(4, 8), sq(5, 8), sq(4, 7),
    )

    INITIAL_DEFENDERS = (
        sq(4, 5), sq(5, 4), sq(4, 3), sq(3, 4),
        sq(4, 6), sq(4, 2), sq(2, 4), sq(6, 4),
    )

    def __init__(self, setup: Optional[Dict[str, str]] = None, turn: Side = Side.ATTACKER):
        """Initialize a board.

        Args:
            setup: Optional dictionary mapping squares (e.g., "e5") to piece
                symbols ("K", "W", "B"). When omitted the standard starting
                position is used.
            turn: Side to move first
        """
        self.board: List[Piece] = [Piece.EMPTY] * (SIZE * SIZE)
        self.turn = turn
        self.winner: Optional[Side] = None
        self.repeated = False
        self.move_count = 0
        self.move_limit: Optional[int] = None
        self.king_position: Optional[Square] = None

        if setup is not None:
            self._initialize_custom_position(setup)
        else:
            self._initialize_starting_position()

        # Positions seen so far, and the snapshots needed to undo back to them
        self.position_history: List[str] = []
        self._position_counts: Counter = Counter()
        self._undo_stack: List[Tuple] = []
        self._record_position(self.encoded_board())
        self._check_escape()

    def _initialize_starting_position(self):
        """Set up the starting position."""
        for square in self.INITIAL_ATTACKERS:
            self.put(Piece.ATTACKER, square)
        for square in self.INITIAL_DEFENDERS:
            self.put(Piece.DEFENDER, square)
        self.put(Piece.KING, THRONE)
        self.king_position = THRONE

    def _initialize_custom_position(self, setup: Dict[str, str]):
        """Initialize board with custom piece positions.

        Args:
            setup: Dictionary mapping squares (e.g., "a4") to piece symbols
        """
        for name, symbol in setup.items():
            square = parse_square(name)
            piece = SYMBOL_TO_PIECE.get(symbol.strip().upper())
            if piece is None:
                raise ValueError(f"Unknown piece symbol {symbol!r} at {name}")
            self.put(piece, square)
        self._validate_grid()

    def _validate_grid(self):
        """Check the king and throne invariants and locate the king."""
        kings = [s for s in SQUARE_LIST if self.get(s) is Piece.KING]
        if len(kings) > 1:
            raise ValueError("Board may hold at most one king")
        occupant = self.get(THRONE)
        if occupant is not Piece.EMPTY and occupant is not Piece.KING:
            raise ValueError("Only the king may occupy the throne")
        self.king_position = kings[0] if kings else None

    @classmethod
    def from_encoding(cls, encoded: str) -> "Board":
        """Build a board from an ``encoded_board()`` string.

        The decoded position becomes the start of the board's history.
        """
        board = cls()
        board.decode(encoded)
        if encoded[0] not in SYMBOL_TO_SIDE:
            raise ValueError(f"Unknown side symbol {encoded[0]!r}")
        board.turn = SYMBOL_TO_SIDE[encoded[0]]
        board.clear_undo()
        board._check_escape()
        return board

    def copy(self) -> "Board":
        """Return an independent copy of this board, history included."""
        other = Board.__new__(Board)
        other.board = self.board[:]
        other.turn = self.turn
        other.winner = self.winner
        other.repeated = self.repeated
        other.move_count = self.move_count
        other.move_limit = self.move_limit
        other.king_position = self.king_position
        other.position_history = self.position_history[:]
        other._position_counts = Counter(self._position_counts)
        other._undo_stack = self._undo_stack[:]
        return other

    def get(self, square: Square) -> Piece:
        """Get piece at given square."""
        return self.board[square.index]

    def put(self, piece: Piece, square: Square) -> None:
        """Set SQUARE to PIECE without any rule checks."""
        self.board[square.index] = piece

    def set_move_limit(self, limit: int) -> None:
        """Limit each side to LIMIT moves.

        Raises:
            ValueError: if 2 * LIMIT moves have already been played
        """
        if 2 * limit <= self.move_count:
            raise ValueError(f"Illegal move limit {limit} after {self.move_count} moves")
        self.move_limit = limit

    def is_unblocked_move(self, from_sq: Square, to_sq: Square) -> bool:
        """Check that every square after FROM_SQ up to and including TO_SQ is empty."""
        direction = from_sq.direction(to_sq)
        if direction == -1:
            raise ValueError(f"{from_sq} and {to_sq} are not on a common line")
        for square in from_sq.line(direction):
            if self.get(square) is not Piece.EMPTY:
                return False
            if square is to_sq:
                break
        return True

    def is_legal(self, from_sq: Square, to_sq: Optional[Square] = None) -> bool:
        """Check a move (or just its origin) against the side to move."""
        piece = self.get(from_sq)
        if piece.side is not self.turn:
            return False
        if to_sq is None:
            return True
        if to_sq is THRONE and piece is not Piece.KING:
            return False
        return self.is_unblocked_move(from_sq, to_sq)

    def is_legal_move(self, move: Move) -> bool:
        """Check if a move is legal."""
        return self.is_legal(move.from_sq, move.to_sq)

    def make_move(self, move: Move) -> bool:
        """Make a move. Returns True if legal, False otherwise.

        An illegal move, or any move once the game is decided, leaves the
        board unchanged.
        """
        self._check_escape()
        if self.winner is not None or not self.is_legal_move(move):
            return False

        self._undo_stack.append(self._snapshot())

        piece = self.get(move.from_sq)
        self.put(piece, move.to_sq)
        self.put(Piece.EMPTY, move.from_sq)
        if piece is Piece.KING:
            self.king_position = move.to_sq
        self._check_escape()

        self.move_count += 1
        self.turn = self.turn.opponent()

        for direction in DIRECTIONS:
            line = move.to_sq.line(direction)
            if len(line) >= 2:
                self._capture(move.to_sq, line[0], line[1])

        self.check_repeated()
        self._check_move_limit()
        return True

    def _capture(self, sq0: Square, sq1: Square, sq2: Square) -> None:
        """Capture the piece on SQ1 if the piece that landed on SQ0 and SQ2 trap it."""
        victim = self.get(sq1)
        if victim is Piece.EMPTY or victim.side is self.get(sq0).side:
            return

        if victim is Piece.KING and sq1 in THRONE_AREA:
            # On or beside the throne the king must be surrounded on all sides
            captured = all(
                self._is_hostile(Piece.DEFENDER, square) for square in sq1.neighbors()
            )
        else:
            captured = self._is_hostile(victim, sq2)

        if captured:
            self.put(Piece.EMPTY, sq1)
            if victim is Piece.KING:
                self.king_position = None
                self._set_winner(Side.ATTACKER)

    def _is_hostile(self, piece: Piece, square: Square) -> bool:
        """Check if SQUARE can act as the far side of a capture against PIECE."""
        occupant = self.get(square)
        if occupant is Piece.EMPTY:
            return square is THRONE
        if piece is Piece.DEFENDER and square is THRONE:
            attackers = sum(
                1 for neighbor in THRONE.neighbors() if self.get(neighbor) is Piece.ATTACKER
            )
            return attackers >= 3
        return occupant.side is piece.side.opponent()

    def _check_escape(self) -> None:
        if self.king_position is not None and self.king_position.is_edge():
            self._set_winner(Side.DEFENDER)

    def _check_move_limit(self) -> None:
        # The side to move would exceed the limit with its next move
        if self.move_limit is not None and self.move_count >= 2 * self.move_limit:
            self._set_winner(self.turn.opponent())

    def _set_winner(self, side: Side) -> None:
        if self.winner is None:
            self.winner = side

    def check_repeated(self) -> None:
        """Record the current position; a repeat gives the game to the side to move."""
        encoded = self.encoded_board()
        if encoded in self._position_counts and self.winner is None:
            self.repeated = True
            self.winner = self.turn
        self._record_position(encoded)

    def _record_position(self, encoded: str) -> None:
        self.position_history.append(encoded)
        self._position_counts[encoded] += 1

    def _snapshot(self) -> Tuple:
        return (
            tuple(self.board),
            self.turn,
            self.king_position,
            self.winner,
            self.repeated,
        )

    def undo(self) -> None:
        """Undo one move. Has no effect on the initial position."""
        if self.move_count == 0:
            return
        grid, turn, king_position, winner, repeated = self._undo_stack.pop()
        encoded = self.position_history.pop()
        self._position_counts[encoded] -= 1
        if self._position_counts[encoded] <= 0:
            del self._position_counts[encoded]

        self.board = list(grid)
        self.turn = turn
        self.king_position = king_position
        self.winner = winner
        self.repeated = repeated
        self.move_count -= 1

    def clear_undo(self) -> None:
        """Forget all history; the current position becomes the initial one.

        The position and the winner are left as they are.
        """
        self.position_history = []
        self._position_counts = Counter()
        self._undo_stack = []
        self.move_count = 0
        self.repeated = False
        self._record_position(self.encoded_board())

    def legal_moves(self, side: Side) -> List[Move]:
        """Generate all legal moves for SIDE, whoever is to move."""
        moves = []
        for from_sq in self.piece_locations(side):
            piece = self.get(from_sq)
            for direction in DIRECTIONS:
                for to_sq in from_sq.line(direction):
                    if self.get(to_sq) is not Piece.EMPTY:
                        break
                    if to_sq is THRONE and piece is not Piece.KING:
                        continue
                    moves.append(Move(from_sq, to_sq))
        return moves

    def has_move(self, side: Side) -> bool:
        """Check if SIDE has at least one legal move."""
        return len(self.legal_moves(side)) > 0

    def piece_locations(self, side: Side) -> List[Square]:
        """Squares holding pieces of SIDE, in index order."""
        return [s for s in SQUARE_LIST if self.board[s.index].side is side]

    def piece_count(self, piece: Piece) -> int:
        """Count the squares holding PIECE."""
        return self.board.count(piece)

    def encoded_board(self) -> str:
        """Side to move followed by every square's symbol in index order."""
        return self.turn.symbol + "".join(piece.value for piece in self.board)

    def decode(self, encoded: str) -> None:
        """Restore the grid from an ``encoded_board()`` string.

        The king's position is recomputed from the decoded grid; turn,
        history and winner are left untouched.
        """
        if len(encoded) != SIZE * SIZE + 1:
            raise ValueError(f"Encoded board must be {SIZE * SIZE + 1} characters")
        grid = []
        for symbol in encoded[1:]:
            piece = SYMBOL_TO_PIECE.get(symbol)
            if piece is None:
                raise ValueError(f"Unknown piece symbol {symbol!r}")
            grid.append(piece)
        previous = self.board
        self.board = grid
        try:
            self._validate_grid()
        except ValueError:
            self.board = previous
            raise

    def to_string(self, coordinates: bool = True) -> str:
        """Text dump of the board, top row first.

        With COORDINATES, row numbers run down the left and column letters
        along the bottom.
        """
        lines = []
        for row in range(SIZE - 1, -1, -1):
            prefix = f"{row + 1:2d}" if coordinates else "  "
            cells = "".join(f" {self.board[row * SIZE + col]}" for col in range(SIZE))
            lines.append(prefix + cells)
        if coordinates:
            lines.append("  " + "".join(f" {c}" for c in COLUMNS))
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string(True)
