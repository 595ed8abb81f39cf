"""Unit tests for Engine class."""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tablut import Board, Move, Side, Engine, INFTY, WINNING_VALUE, WILL_WIN_VALUE


def plain_minimax(engine: Engine, board: Board, depth: int, sense: int) -> int:
    """Minimax without pruning, for comparison with the engine."""
    if depth == 0 or board.winner is not None:
        return engine.static_score(board)
    side = Side.DEFENDER if sense == 1 else Side.ATTACKER
    scores = []
    for move in board.legal_moves(side):
        child = board.copy()
        child.make_move(move)
        scores.append(plain_minimax(engine, child, depth - 1, -sense))
    if not scores:
        return -INFTY if sense == 1 else INFTY
    return max(scores) if sense == 1 else min(scores)


class TestEngineInitialization:
    """Test engine initialization."""

    def test_default_initialization(self):
        """Test default engine initialization."""
        engine = Engine()

        assert engine.depth == 2
        assert engine.nodes_searched == 0
        assert engine.last_found_move is None

    def test_custom_depth(self):
        """Test engine with custom depth."""
        engine = Engine(depth=3)

        assert engine.max_depth(Board()) == 3

    def test_invalid_depth(self):
        """Test a non-positive depth is rejected."""
        with pytest.raises(ValueError):
            Engine(depth=0)

    def test_depth_policy(self):
        """Test a depth policy overrides the fixed depth."""
        engine = Engine(depth=3, depth_policy=lambda board: 1 if board.move_count < 10 else 2)

        assert engine.max_depth(Board()) == 1


class TestEvaluation:
    """Test the static evaluation."""

    def test_starting_position(self):
        """Test the opening score is defenders minus attackers."""
        engine = Engine()
        assert engine.static_score(Board()) == 8 - 16

    def test_king_captured(self):
        """Test a missing king scores as an attacker win."""
        engine = Engine()
        board = Board(setup={"a4": "B", "c3": "W"})
        assert engine.static_score(board) == -INFTY

    def test_king_on_edge(self):
        """Test an escaped king scores as a defender win."""
        engine = Engine()
        board = Board(setup={"a3": "K", "c3": "B"})
        assert engine.static_score(board) == INFTY

    def test_open_escape_line(self):
        """Test an open line to the edge scores as a near-certain win."""
        engine = Engine()

        attacker_to_move = Board(setup={"c3": "K"}, turn=Side.ATTACKER)
        defender_to_move = Board(setup={"c3": "K"}, turn=Side.DEFENDER)

        assert engine.static_score(attacker_to_move) == WILL_WIN_VALUE
        assert engine.static_score(defender_to_move) == WINNING_VALUE
        assert WILL_WIN_VALUE < WINNING_VALUE < INFTY

    def test_blocked_lines_use_material(self):
        """Test a boxed-in king falls back to material."""
        engine = Engine()
        board = Board(setup={
            "c3": "K", "c2": "B", "c4": "W", "b3": "B", "d3": "W", "g7": "B",
        })
        assert engine.static_score(board) == 2 - 3


class TestFindMove:
    """Test the minimax search."""

    def test_depth_zero_is_static(self):
        """Test depth 0 returns the static score and records no move."""
        engine = Engine()
        board = Board()

        score = engine.find_move(board, 0, True, -1, -INFTY, INFTY)

        assert score == engine.static_score(board)
        assert engine.last_found_move is None

    def test_decided_game_is_static(self):
        """Test a finished game is not searched further."""
        engine = Engine()
        board = Board(setup={"a3": "K", "c3": "B"})

        score = engine.find_move(board, 2, True, -1, -INFTY, INFTY)

        assert score == INFTY
        assert engine.last_found_move is None

    def test_depth_two_opening(self):
        """Test the depth-2 opening search finds no gain for either side."""
        engine = Engine()
        board = Board()

        score = engine.find_move(board, 2, True, -1, -INFTY, INFTY)

        assert score == -8
        assert engine.last_found_move in board.legal_moves(Side.ATTACKER)

    def test_tie_break_prefers_later_move(self):
        """Test equal scores keep the last enumerated move."""
        engine = Engine(depth=1)
        board = Board()

        move = engine.search(board)

        assert move == board.legal_moves(Side.ATTACKER)[-1]

    def test_pruning_matches_minimax_opening(self):
        """Test alpha-beta returns the plain minimax value from the opening."""
        engine = Engine()
        board = Board()

        pruned = engine.find_move(board, 2, False, -1, -INFTY, INFTY)

        assert pruned == plain_minimax(engine, board, 2, -1)

    @pytest.mark.parametrize("setup,turn", [
        ({"c3": "K", "g7": "B", "f2": "B"}, Side.DEFENDER),
        ({"c3": "K", "g7": "B", "f2": "B"}, Side.ATTACKER),
        ({"e5": "K", "e6": "W", "c4": "B", "g6": "B", "d7": "B"}, Side.ATTACKER),
    ])
    def test_pruning_matches_minimax_depth_three(self, setup, turn):
        """Test alpha-beta returns the plain minimax value at depth 3."""
        engine = Engine()
        board = Board(setup=setup, turn=turn)
        sense = 1 if turn == Side.DEFENDER else -1

        pruned = engine.find_move(board, 3, False, sense, -INFTY, INFTY)

        assert pruned == plain_minimax(engine, board, 3, sense)

    @pytest.mark.parametrize("setup,turn", [
        ({"e7": "K", "d7": "B", "f7": "B", "e8": "B", "c2": "B"}, Side.ATTACKER),
        ({"c3": "K", "g7": "B", "f2": "B"}, Side.DEFENDER),
        ({"e5": "K", "e6": "W", "c4": "B", "g6": "B", "d7": "B"}, Side.ATTACKER),
    ])
    def test_chosen_move_has_search_value(self, setup, turn):
        """Test the recorded move is worth the value the search returns."""
        engine = Engine()
        board = Board(setup=setup, turn=turn)
        sense = 1 if turn == Side.DEFENDER else -1

        score = engine.find_move(board, 2, True, sense, -INFTY, INFTY)
        child = board.copy()
        child.make_move(engine.last_found_move)

        assert plain_minimax(engine, child, 1, -sense) == score

    def test_sense_must_match_turn(self):
        """Test searching for the side not to move is rejected."""
        engine = Engine()

        with pytest.raises(ValueError):
            engine.find_move(Board(), 2, True, 1, -INFTY, INFTY)


class TestEngineSearch:
    """Test engine search functionality."""

    def test_search_returns_legal_move(self):
        """Test search returns a legal move for the side to move."""
        board = Board()
        engine = Engine(depth=1)

        move = engine.search(board)

        assert isinstance(move, Move)
        assert board.is_legal_move(move)

    def test_search_does_not_modify_board(self):
        """Test the caller's board is left untouched."""
        board = Board()
        before = board.encoded_board()
        engine = Engine(depth=2)

        engine.search(board)

        assert board.encoded_board() == before
        assert board.move_count == 0
        assert len(board.position_history) == 1

    def test_search_updates_stats(self):
        """Test search updates node count."""
        engine = Engine(depth=2)
        engine.search(Board())
        assert engine.nodes_searched > 1

    def test_depth_affects_nodes(self):
        """Test higher depth searches more nodes."""
        board = Board()

        engine1 = Engine(depth=1)
        engine1.search(board)

        engine2 = Engine(depth=2)
        engine2.search(board)

        assert engine2.nodes_searched > engine1.nodes_searched

    def test_attacker_captures_king(self):
        """Test the attackers take the king when they can."""
        board = Board(setup={"c7": "K", "b7": "B", "d9": "B"})
        engine = Engine(depth=1)

        move = engine.search(board)

        assert str(move) == "d9-d7"

    def test_king_escapes(self):
        """Test the defenders escape when the king has an open line."""
        board = Board(setup={"c3": "K", "g7": "B"}, turn=Side.DEFENDER)
        engine = Engine(depth=2)

        move = engine.search(board)
        board.make_move(move)

        assert board.winner == Side.DEFENDER
        assert board.king_position.is_edge()

    def test_attacker_blocks_escape(self):
        """Test the attackers block a single open escape line."""
        board = Board(setup={
            "e7": "K", "d7": "B", "f7": "B", "e8": "B", "c2": "B",
        })
        engine = Engine(depth=2)

        move = engine.search(board)

        assert str(move) == "c2-e2"
        board.make_move(move)
        assert engine.static_score(board) < WILL_WIN_VALUE

    def test_search_finished_game(self):
        """Test no move is returned once the game is decided."""
        board = Board(setup={"a3": "K", "c3": "B"})
        assert Engine().search(board) is None

    def test_search_without_moves(self):
        """Test no move is returned when the side to move cannot move."""
        board = Board(setup={"c3": "K"})
        assert Engine().search(board) is None

    def test_choose_move_notation(self):
        """Test the chosen move is returned in coordinate notation."""
        board = Board()
        engine = Engine(depth=1)

        text = engine.choose_move(board)

        assert Move.from_notation(text) in board.legal_moves(Side.ATTACKER)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
