"""Tablut AI engine with minimax search."""

import logging
from typing import Callable, Optional

from .board import Board, Move, Piece, Side
from .square import DIRECTIONS

logger = logging.getLogger(__name__)

# Score magnitudes; positive scores favour the defenders.
INFTY = 2 ** 31 - 1
# A position that is won outright
WINNING_VALUE = INFTY - 20
# A position the defenders will win on their next move. Smaller than
# WINNING_VALUE so that immediate wins are preferred over deferred ones.
WILL_WIN_VALUE = INFTY - 40

DEFAULT_DEPTH = 2


class Engine:
    """Tablut AI engine: fixed-depth minimax with alpha-beta pruning."""

    def __init__(
        self,
        depth: int = DEFAULT_DEPTH,
        depth_policy: Optional[Callable[[Board], int]] = None,
    ):
        """Initialize engine.

        Args:
            depth: Search depth in plies
            depth_policy: Optional function choosing the depth from the
                position; overrides DEPTH when given
        """
        if depth < 1:
            raise ValueError(f"Search depth must be positive, got {depth}")
        self.depth = depth
        self.depth_policy = depth_policy
        self.nodes_searched = 0
        self.last_found_move: Optional[Move] = None

    def search(self, board: Board) -> Optional[Move]:
        """Search for the best move for the side to move.

        The caller's board is never modified. Returns None when the game is
        over or the side to move has no legal move.
        """
        self.nodes_searched = 0
        self.last_found_move = None
        if board.winner is not None:
            return None

        sense = 1 if board.turn is Side.DEFENDER else -1
        depth = self.max_depth(board)
        score = self.find_move(board.copy(), depth, True, sense, -INFTY, INFTY)

        logger.debug(
            "Search for %s at depth %d chose %s (score %d, %d nodes)",
            board.turn.value, depth, self.last_found_move, score, self.nodes_searched,
        )
        return self.last_found_move

    def choose_move(self, board: Board) -> Optional[str]:
        """Return the chosen move in coordinate notation, e.g. 'e3-e6'."""
        move = self.search(board)
        return None if move is None else move.to_notation()

    def max_depth(self, board: Board) -> int:
        """Return the search depth to use for BOARD."""
        if self.depth_policy is not None:
            return self.depth_policy(board)
        return self.depth

    def find_move(
        self,
        board: Board,
        depth: int,
        save_move: bool,
        sense: int,
        alpha: int,
        beta: int,
    ) -> int:
        """Find a move from BOARD and return its value.

        SENSE is 1 when the defenders move (maximizing) and -1 when the
        attackers move (minimizing); it must agree with ``board.turn``. The
        best move is stored in ``last_found_move`` iff SAVE_MOVE. At depth 0,
        or once the game is decided, the static score is returned and no
        move is stored.

        Raises:
            ValueError: if SENSE does not match the side to move
        """
        self.nodes_searched += 1
        if depth == 0 or board.winner is not None:
            return self.static_score(board)

        side = Side.DEFENDER if sense == 1 else Side.ATTACKER
        if board.turn is not side:
            raise ValueError(f"Sense {sense} does not match {board.turn.value} to move")

        if sense == 1:
            best_so_far = -INFTY
            for move in board.legal_moves(side):
                child = board.copy()
                child.make_move(move)
                # A child cut off at alpha returns a bound, which must not
                # tie with the recorded move
                child_alpha = alpha - 1 if save_move else alpha
                response = self.find_move(child, depth - 1, False, -1, child_alpha, beta)
                if response >= best_so_far:
                    if save_move:
                        self.last_found_move = move
                    best_so_far = response
                    alpha = max(alpha, best_so_far)
                    if beta <= alpha:
                        break
            return best_so_far

        best_so_far = INFTY
        for move in board.legal_moves(side):
            child = board.copy()
            child.make_move(move)
            child_beta = beta + 1 if save_move else beta
            response = self.find_move(child, depth - 1, False, 1, alpha, child_beta)
            if response <= best_so_far:
                if save_move:
                    self.last_found_move = move
                best_so_far = response
                beta = min(beta, best_so_far)
                if beta <= alpha:
                    break
        return best_so_far

    def static_score(self, board: Board) -> int:
        """Heuristic value of BOARD from the defenders' point of view."""
        king = board.king_position
        if king is None:
            return -INFTY
        if king.is_edge():
            return INFTY

        # An open line to the edge means the king escapes next move
        for direction in DIRECTIONS:
            edge = king.line(direction)[-1]
            if board.is_unblocked_move(king, edge):
                if board.turn is Side.ATTACKER:
                    return WILL_WIN_VALUE
                return WINNING_VALUE

        return board.piece_count(Piece.DEFENDER) - board.piece_count(Piece.ATTACKER)
